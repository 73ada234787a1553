from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from ..common.datetime_utils import same_local_day
from ..core.enums import ClockDirection
from ..sessions.model import OpenSession
from .strategies.base import TransitionStrategy
from .strategies.close_strategy import CloseStrategy
from .strategies.double_in_strategy import DoubleInStrategy
from .strategies.open_strategy import OpenStrategy
from .strategies.out_without_in_strategy import OutWithoutInStrategy
from .strategies.split_strategy import SplitStrategy


@dataclass
class TransitionFactory:
    """Factory Pattern: choose the transition from direction and stored state."""

    def for_event(
        self,
        *,
        direction: ClockDirection,
        session: Optional[OpenSession],
        instant: datetime,
        zone: ZoneInfo,
    ) -> TransitionStrategy:
        if direction == ClockDirection.IN:
            if session is None:
                return OpenStrategy()
            return DoubleInStrategy()

        if session is None:
            return OutWithoutInStrategy()
        # An out stamped before the start (device clock drift) is not a next-day out.
        if instant <= session.start_at or same_local_day(session.start_at, instant, zone):
            return CloseStrategy()
        return SplitStrategy()
