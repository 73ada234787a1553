from __future__ import annotations

from typing import Optional

from ...core.enums import Outcome
from ...sessions.model import OpenSession
from ..primitives import SessionPrimitives
from .base import NormalizedEvent, TransitionResult, TransitionStrategy


class OpenStrategy(TransitionStrategy):
    """Clock-in with no open session."""

    def apply(self, *, event: NormalizedEvent, session: Optional[OpenSession], ops: SessionPrimitives) -> TransitionResult:
        opened = ops.open_session(event.identity, event.instant, event.event_id)
        if opened is None:
            return TransitionResult(outcome=Outcome.REJECTED)
        return TransitionResult(outcome=Outcome.OPENED, opened=opened)
