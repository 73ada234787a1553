from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from ...core.enums import ClockDirection, Outcome
from ...sessions.model import HistoryEntry, OpenSession
from ..primitives import SessionPrimitives


@dataclass(frozen=True)
class NormalizedEvent:
    """A clock event that passed the validation gate."""

    event_id: str
    identity: str
    direction: ClockDirection
    instant: datetime


@dataclass(frozen=True)
class TransitionResult:
    outcome: Outcome
    opened: Optional[OpenSession] = None
    closed: Tuple[HistoryEntry, ...] = ()


class TransitionStrategy(ABC):
    """Strategy Pattern: one state-machine transition for one identity."""

    @abstractmethod
    def apply(self, *, event: NormalizedEvent, session: Optional[OpenSession], ops: SessionPrimitives) -> TransitionResult:
        raise NotImplementedError
