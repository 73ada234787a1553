from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from ..common.datetime_utils import end_of_local_day, start_of_local_day
from ..core.constants import MAX_SESSION_DURATION, MIN_PERIOD_DURATION
from ..core.enums import EndReason


@dataclass(frozen=True)
class OpenSession:
    """An attendance interval with a start but no committed end yet.

    Never mutated in place: closing deletes it and appends a HistoryEntry.
    """

    identity: str
    start_at: datetime
    auto_close_at: datetime
    remote_period_id: str
    opened_event_id: str


@dataclass(frozen=True)
class HistoryEntry:
    """Closed interval as committed to the HR system."""

    identity: str
    start_at: datetime
    end_at: datetime
    reason: EndReason
    remote_period_id: str
    closing_event_id: Optional[str]
    opened_event_id: Optional[str] = None
    recorded_at: Optional[datetime] = None
    entry_id: Optional[int] = None


def compute_auto_close(start_at: datetime, zone: ZoneInfo) -> datetime:
    """Earliest of start + 12h and 23:59 local on the start's day.

    A start at or after 23:59 local would give a deadline that is not after
    the start; such sessions close at the following local midnight, which is
    at most one minute away and keeps the period on a single local day.
    """

    deadline = min(start_at + MAX_SESSION_DURATION, end_of_local_day(start_at, zone))
    if deadline > start_at:
        return deadline
    midnight = start_of_local_day(start_at + MIN_PERIOD_DURATION, zone)
    if midnight > start_at:
        return midnight
    # Not reachable for real zones; Personio may reject a period crossing midnight.
    return start_at + MIN_PERIOD_DURATION
