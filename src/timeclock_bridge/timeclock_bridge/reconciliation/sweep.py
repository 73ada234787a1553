from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from ..anomalies.repository import AnomalyLog
from ..common.datetime_utils import isoformat_utc, utc_now
from ..core.constants import DEFAULT_SWEEP_LIMIT
from ..core.enums import EndReason
from ..core.exceptions import AttendanceClientError
from ..personio.client import AttendanceClient
from ..sessions.repository import SessionStore
from .primitives import SessionPrimitives

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    closed: int = 0
    skipped: int = 0
    failed: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class AutoCloseSweep:
    """Force-closes sessions whose auto-close deadline has passed.

    Stateless and safe to re-enter: a session is only closed while it is still
    present in the store, and closing removes it. Index rows without a session
    are dropped as they are met.
    """

    def __init__(
        self,
        store: SessionStore,
        anomalies: AnomalyLog,
        client: AttendanceClient,
        *,
        zone: ZoneInfo,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._clock = clock
        self._ops = SessionPrimitives(store, anomalies, client, zone=zone, clock=clock)

    def run(self, now: Optional[datetime] = None, limit: int = DEFAULT_SWEEP_LIMIT) -> SweepResult:
        now = now or self._clock()
        closed = skipped = failed = 0

        for identity in self._store.due_before(now, limit):
            session = self._store.get_open(identity)
            if session is None:
                # Closed after the index was read, or a leftover row; either way
                # it must not hold the head of the queue.
                if self._store.drop_stale_due(identity):
                    logger.warning("attendance.autoclose_stale_index identity=%s", identity)
                skipped += 1
                continue
            if session.auto_close_at > now:
                skipped += 1
                continue

            try:
                self._ops.close_session(session, session.auto_close_at, EndReason.AUTO_CLOSE, None)
            except AttendanceClientError as exc:
                failed += 1
                logger.error("attendance.autoclose_failed identity=%s period=%s err=%s",
                             identity, session.remote_period_id, exc)
                continue
            closed += 1

        result = SweepResult(closed=closed, skipped=skipped, failed=failed)
        logger.info("attendance.sweep now=%s limit=%s result=%s", isoformat_utc(now), limit, result.to_dict())
        return result
