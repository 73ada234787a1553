from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo

from ..anomalies.repository import AnomalyLog
from ..common.datetime_utils import canonical_instant, isoformat_utc, utc_now
from ..common.validators import first_identity
from ..core.constants import ATTENDANCE_INSERTED_EVENT
from ..core.enums import AnomalyKind, Outcome
from ..events.model import ClockEvent
from ..personio.client import AttendanceClient
from ..sessions.repository import SessionStore
from .factory import TransitionFactory
from .primitives import SessionPrimitives
from .strategies.base import NormalizedEvent, TransitionResult

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """Turns clock events into attendance periods, one event at a time.

    State lives entirely in the session store. Validation and business
    anomalies are recorded and end processing cleanly; StoreUnavailable and
    AttendanceClientError propagate so the provider redelivers the event.
    """

    def __init__(
        self,
        store: SessionStore,
        anomalies: AnomalyLog,
        client: AttendanceClient,
        *,
        zone: ZoneInfo,
        factory: TransitionFactory | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._zone = zone
        self._factory = factory or TransitionFactory()
        self._clock = clock
        self._ops = SessionPrimitives(store, anomalies, client, zone=zone, clock=clock)

    def handle(self, event: ClockEvent) -> TransitionResult:
        if not event.event_id:
            logger.warning("attendance.missing_event_id event=%s", event.event_type)
            self._ops.record_anomaly(AnomalyKind.EVENT_ID_MISSING, event=event.event_type or None)
            return TransitionResult(outcome=Outcome.REJECTED)

        # Must run before anything reads the payload.
        if not self._store.mark_event_once(event.event_id, now=self._clock()):
            logger.info("attendance.duplicate event=%s", event.event_id)
            return TransitionResult(outcome=Outcome.DUPLICATE)

        if event.event_type != ATTENDANCE_INSERTED_EVENT:
            logger.info("attendance.ignored event=%s type=%s", event.event_id, event.event_type)
            return TransitionResult(outcome=Outcome.IGNORED)

        normalized = self._validate(event)
        if normalized is None:
            return TransitionResult(outcome=Outcome.REJECTED)

        session = self._store.get_open(normalized.identity)
        strategy = self._factory.for_event(
            direction=normalized.direction,
            session=session,
            instant=normalized.instant,
            zone=self._zone,
        )
        result = strategy.apply(event=normalized, session=session, ops=self._ops)
        logger.info(
            "attendance.processed event=%s identity=%s direction=%s at=%s outcome=%s",
            normalized.event_id, normalized.identity, normalized.direction.value,
            isoformat_utc(normalized.instant), result.outcome.value,
        )
        return result

    def _validate(self, event: ClockEvent) -> NormalizedEvent | None:
        direction = event.direction
        if direction is None:
            self._ops.record_anomaly(
                AnomalyKind.DIRECTION_UNRECOGNIZED,
                event_id=event.event_id,
                clocking_type=event.direction_raw,
            )
            return None

        identity = first_identity(event.identity_candidates)
        if identity is None:
            self._ops.record_anomaly(
                AnomalyKind.IDENTITY_MISSING,
                event_id=event.event_id,
                provider_user_id=event.provider_user_id,
            )
            return None

        instant = canonical_instant(event, default_zone=self._zone)
        if instant is None:
            self._ops.record_anomaly(AnomalyKind.TIMESTAMP_MISSING, identity=identity, event_id=event.event_id)
            return None

        return NormalizedEvent(event_id=event.event_id, identity=identity, direction=direction, instant=instant)
