from __future__ import annotations

from typing import Optional

from ...core.constants import DOUBLE_IN_MAX_DURATION
from ...core.enums import AnomalyKind, EndReason, Outcome
from ...sessions.model import OpenSession
from ..primitives import SessionPrimitives
from .base import NormalizedEvent, TransitionResult, TransitionStrategy


def double_in_close_at(session: OpenSession, new_instant):
    """Prior session ends at min(start + 1h, new in), never before its start."""
    return max(session.start_at, min(session.start_at + DOUBLE_IN_MAX_DURATION, new_instant))


class DoubleInStrategy(TransitionStrategy):
    """Clock-in while a session is already open: close the prior one, then open anew."""

    def apply(self, *, event: NormalizedEvent, session: Optional[OpenSession], ops: SessionPrimitives) -> TransitionResult:
        assert session is not None
        close_at = double_in_close_at(session, event.instant)
        ops.record_anomaly(
            AnomalyKind.DOUBLE_IN,
            identity=event.identity,
            event_id=event.event_id,
            prior_start=session.start_at,
            prior_event=session.opened_event_id,
            new_start=event.instant,
            closed_at=close_at,
        )
        closed = ops.close_session(session, close_at, EndReason.DOUBLE_IN_CLOSE, event.event_id)

        opened = ops.open_session(event.identity, event.instant, event.event_id)
        return TransitionResult(outcome=Outcome.DOUBLE_IN, opened=opened, closed=(closed,))
