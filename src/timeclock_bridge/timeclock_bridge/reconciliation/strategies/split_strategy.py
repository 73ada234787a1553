from __future__ import annotations

from typing import Optional

from ...common.datetime_utils import end_of_local_day, start_of_local_day
from ...core.enums import AnomalyKind, EndReason, Outcome
from ...sessions.model import OpenSession
from ..primitives import SessionPrimitives
from .base import NormalizedEvent, TransitionResult, TransitionStrategy


class SplitStrategy(TransitionStrategy):
    """Clock-out on a later local day.

    Personio periods must stay within one calendar day, so the session is
    closed at the end of its own day and a second period covers local
    midnight up to the clock-out.
    """

    def apply(self, *, event: NormalizedEvent, session: Optional[OpenSession], ops: SessionPrimitives) -> TransitionResult:
        assert session is not None
        day1_end = min(session.auto_close_at, end_of_local_day(session.start_at, ops.zone))
        if day1_end <= session.start_at:
            # Start at or after 23:59 local: the one-minute deadline lies past
            # midnight, so day 1 stops at that midnight to stay on one local day.
            day1_end = start_of_local_day(session.auto_close_at, ops.zone)
        day2_start = start_of_local_day(event.instant, ops.zone)

        day1 = ops.close_session(session, day1_end, EndReason.OUT_NEXT_DAY_SPLIT_DAY1, event.event_id)
        ops.record_anomaly(
            AnomalyKind.OUT_NEXT_DAY_SPLIT,
            identity=event.identity,
            event_id=event.event_id,
            start=session.start_at,
            out=event.instant,
            day1_end=day1_end,
            day2_start=day2_start,
        )

        closed = [day1]
        if event.instant > day2_start:
            day2 = ops.create_closed_period(
                event.identity, day2_start, event.instant, EndReason.OUT_NEXT_DAY_SPLIT_DAY2, event.event_id
            )
            if day2 is not None:
                closed.append(day2)
        return TransitionResult(outcome=Outcome.SPLIT, closed=tuple(closed))
