from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

from ..core.enums import ClockDirection


@dataclass(frozen=True)
class ClockEvent:
    """Inbound punch from the time clock, independent of how it was delivered.

    Each known timestamp source is kept as its own optional field so the
    normalizer can apply its preference order explicitly.
    """

    event_id: Optional[str]
    event_type: str
    direction_raw: Optional[str] = None
    identity_candidates: Tuple[Optional[str], ...] = field(default_factory=tuple)
    time_logged: Optional[str] = None
    time_inserted: Optional[str] = None
    time_logged_rounded: Optional[str] = None
    time_zone: Optional[str] = None
    provider_user_id: Optional[str] = None

    @property
    def direction(self) -> Optional[ClockDirection]:
        value = (self.direction_raw or "").strip().lower()
        try:
            return ClockDirection(value)
        except ValueError:
            return None
