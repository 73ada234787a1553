from __future__ import annotations

from typing import Optional

from ...core.constants import MIN_PERIOD_DURATION
from ...core.enums import EndReason, Outcome
from ...sessions.model import OpenSession
from ..primitives import SessionPrimitives
from .base import NormalizedEvent, TransitionResult, TransitionStrategy


class CloseStrategy(TransitionStrategy):
    """Clock-out on the same local day as the open session's start."""

    def apply(self, *, event: NormalizedEvent, session: Optional[OpenSession], ops: SessionPrimitives) -> TransitionResult:
        assert session is not None
        end_at = event.instant
        if end_at <= session.start_at:
            # Device clock drift: keep the period valid.
            end_at = session.start_at + MIN_PERIOD_DURATION
        closed = ops.close_session(session, end_at, EndReason.OUT, event.event_id)
        return TransitionResult(outcome=Outcome.CLOSED, closed=(closed,))
