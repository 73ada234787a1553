from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from ...common.datetime_utils import end_of_local_day, isoformat_utc
from ...core.enums import AnomalyKind, EndReason, Outcome
from ...sessions.model import HistoryEntry, OpenSession
from ..primitives import SessionPrimitives
from .base import NormalizedEvent, TransitionResult, TransitionStrategy

logger = logging.getLogger(__name__)


def is_late_out_for(entry: HistoryEntry, out_instant, zone) -> bool:
    """An out after an auto-close that still belongs to the auto-closed day.

    Bounded by the end of the start's local day so the corrected period never
    crosses midnight.
    """
    return (
        entry.reason == EndReason.AUTO_CLOSE
        and entry.end_at < out_instant <= end_of_local_day(entry.start_at, zone)
    )


class OutWithoutInStrategy(TransitionStrategy):
    """Clock-out with no open session.

    Devices sometimes deliver the out after the sweep already auto-closed the
    session; in that case the auto-closed period is corrected instead of
    raising OUT_WITHOUT_IN.
    """

    def apply(self, *, event: NormalizedEvent, session: Optional[OpenSession], ops: SessionPrimitives) -> TransitionResult:
        recent = ops.store.recent_history(event.identity, 1)
        last = recent[0] if recent else None

        recoverable = (
            last is not None
            and last.entry_id is not None
            and is_late_out_for(last, event.instant, ops.zone)
            and ops.can_patch(last.remote_period_id)
        )
        if recoverable:
            ops.client.patch_period_end(last.remote_period_id, event.instant)
            ops.store.update_history_end(
                entry_id=last.entry_id,
                end_at=event.instant,
                reason=EndReason.OUT_LATE_AFTER_AUTO_CLOSE,
                closing_event_id=event.event_id,
            )
            ops.record_anomaly(
                AnomalyKind.OUT_LATE_AFTER_AUTO_CLOSE,
                identity=event.identity,
                event_id=event.event_id,
                auto_closed_at=last.end_at,
                out=event.instant,
                period=last.remote_period_id,
            )
            logger.info(
                "attendance.out.late_corrected identity=%s period=%s end=%s",
                event.identity, last.remote_period_id, isoformat_utc(event.instant),
            )
            corrected = replace(
                last,
                end_at=event.instant,
                reason=EndReason.OUT_LATE_AFTER_AUTO_CLOSE,
                closing_event_id=event.event_id,
            )
            return TransitionResult(outcome=Outcome.LATE_OUT_CORRECTED, closed=(corrected,))

        ops.record_anomaly(
            AnomalyKind.OUT_WITHOUT_IN,
            identity=event.identity,
            event_id=event.event_id,
            out=event.instant,
        )
        return TransitionResult(outcome=Outcome.OUT_WITHOUT_IN)
