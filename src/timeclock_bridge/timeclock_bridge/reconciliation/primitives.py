from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Optional
from zoneinfo import ZoneInfo

from ..anomalies.model import Anomaly
from ..anomalies.repository import AnomalyLog
from ..common.datetime_utils import isoformat_utc, utc_now
from ..core.constants import SHADOW_PERIOD_ID
from ..core.enums import AnomalyKind, EndReason
from ..personio.client import AttendanceClient
from ..sessions.model import HistoryEntry, OpenSession, compute_auto_close
from ..sessions.repository import SessionStore

logger = logging.getLogger(__name__)


class SessionPrimitives:
    """Open/close building blocks shared by every transition and by the sweep."""

    def __init__(
        self,
        store: SessionStore,
        anomalies: AnomalyLog,
        client: AttendanceClient,
        *,
        zone: ZoneInfo,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.anomalies = anomalies
        self.client = client
        self.zone = zone
        self.clock = clock

    def record_anomaly(
        self,
        kind: AnomalyKind,
        *,
        identity: Optional[str] = None,
        event_id: Optional[str] = None,
        **details: Any,
    ) -> Anomaly:
        anomaly = Anomaly(
            timestamp=self.clock(),
            kind=kind,
            identity=identity,
            event_id=event_id,
            details={k: (isoformat_utc(v) if isinstance(v, datetime) else v) for k, v in details.items()},
        )
        self.anomalies.append(anomaly)
        logger.warning("anomaly.recorded kind=%s identity=%s event=%s", kind.value, identity, event_id)
        return anomaly

    def can_patch(self, remote_period_id: str) -> bool:
        """A shadow-mode period id only means something to the shadow client."""
        if not remote_period_id:
            return False
        return self.client.shadow or remote_period_id != SHADOW_PERIOD_ID

    def open_session(self, identity: str, start_at: datetime, event_id: str) -> Optional[OpenSession]:
        person_id = self.client.resolve_identity(identity)
        if not person_id:
            self.record_anomaly(AnomalyKind.PERSON_NOT_FOUND, identity=identity, event_id=event_id)
            return None

        period_id = self.client.create_period(person_id, start_at)
        session = OpenSession(
            identity=identity,
            start_at=start_at,
            auto_close_at=compute_auto_close(start_at, self.zone),
            remote_period_id=period_id,
            opened_event_id=event_id,
        )
        self.store.set_open(session)
        logger.info(
            "attendance.in.opened identity=%s start=%s auto_close=%s period=%s",
            identity, isoformat_utc(start_at), isoformat_utc(session.auto_close_at), period_id,
        )
        return session

    def close_session(
        self,
        session: OpenSession,
        end_at: datetime,
        reason: EndReason,
        closing_event_id: Optional[str],
    ) -> HistoryEntry:
        """Patch the remote end, append history and clear the open session."""

        if not self.can_patch(session.remote_period_id):
            return self._drop_inconsistent(session, end_at, reason, closing_event_id)

        self.client.patch_period_end(session.remote_period_id, end_at)
        entry = self._append_history(session.identity, session.start_at, end_at, reason,
                                     session.remote_period_id, closing_event_id, session.opened_event_id)
        self.store.clear_open(session.identity)
        logger.info(
            "attendance.closed identity=%s reason=%s start=%s end=%s period=%s",
            session.identity, reason.value, isoformat_utc(session.start_at), isoformat_utc(end_at),
            session.remote_period_id,
        )
        return entry

    def create_closed_period(
        self,
        identity: str,
        start_at: datetime,
        end_at: datetime,
        reason: EndReason,
        event_id: str,
    ) -> Optional[HistoryEntry]:
        person_id = self.client.resolve_identity(identity)
        if not person_id:
            self.record_anomaly(AnomalyKind.PERSON_NOT_FOUND, identity=identity, event_id=event_id)
            return None

        period_id = self.client.create_period(person_id, start_at, end_at)
        entry = self._append_history(identity, start_at, end_at, reason, period_id, event_id, event_id)
        logger.info(
            "attendance.period_created identity=%s reason=%s start=%s end=%s period=%s",
            identity, reason.value, isoformat_utc(start_at), isoformat_utc(end_at), period_id,
        )
        return entry

    def _drop_inconsistent(
        self,
        session: OpenSession,
        end_at: datetime,
        reason: EndReason,
        closing_event_id: Optional[str],
    ) -> HistoryEntry:
        self.record_anomaly(
            AnomalyKind.INCONSISTENT_STATE,
            identity=session.identity,
            event_id=closing_event_id,
            problem="period_not_patchable",
            period=session.remote_period_id,
            intended_reason=reason.value,
            start=session.start_at,
            end=end_at,
        )
        entry = self._append_history(session.identity, session.start_at, end_at, EndReason.DROPPED_INCONSISTENT,
                                     session.remote_period_id, closing_event_id, session.opened_event_id)
        self.store.clear_open(session.identity)
        return entry

    def _append_history(
        self,
        identity: str,
        start_at: datetime,
        end_at: datetime,
        reason: EndReason,
        remote_period_id: str,
        closing_event_id: Optional[str],
        opened_event_id: Optional[str],
    ) -> HistoryEntry:
        entry = HistoryEntry(
            identity=identity,
            start_at=start_at,
            end_at=end_at,
            reason=reason,
            remote_period_id=remote_period_id,
            closing_event_id=closing_event_id,
            opened_event_id=opened_event_id,
            recorded_at=self.clock(),
        )
        entry_id = self.store.append_history(entry)
        return replace(entry, entry_id=entry_id)
