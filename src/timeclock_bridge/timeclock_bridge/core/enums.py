from __future__ import annotations

from enum import Enum


class ClockDirection(str, Enum):
    """Direction of a punch on the time clock."""

    IN = "in"
    OUT = "out"


class EndReason(str, Enum):
    """Why an attendance interval was closed (stored with each history entry)."""

    OUT = "OUT"
    DOUBLE_IN_CLOSE = "DOUBLE_IN_CLOSE"
    OUT_NEXT_DAY_SPLIT_DAY1 = "OUT_NEXT_DAY_SPLIT_DAY1"
    OUT_NEXT_DAY_SPLIT_DAY2 = "OUT_NEXT_DAY_SPLIT_DAY2"
    AUTO_CLOSE = "AUTO_CLOSE"
    OUT_LATE_AFTER_AUTO_CLOSE = "OUT_LATE_AFTER_AUTO_CLOSE"
    DROPPED_INCONSISTENT = "DROPPED_INCONSISTENT"


class AnomalyKind(str, Enum):
    """Exceptional conditions surfaced to operators."""

    EVENT_ID_MISSING = "EVENT_ID_MISSING"
    IDENTITY_MISSING = "IDENTITY_MISSING"
    DIRECTION_UNRECOGNIZED = "DIRECTION_UNRECOGNIZED"
    TIMESTAMP_MISSING = "TIMESTAMP_MISSING"
    PERSON_NOT_FOUND = "PERSON_NOT_FOUND"
    DOUBLE_IN = "DOUBLE_IN"
    OUT_WITHOUT_IN = "OUT_WITHOUT_IN"
    OUT_NEXT_DAY_SPLIT = "OUT_NEXT_DAY_SPLIT"
    OUT_LATE_AFTER_AUTO_CLOSE = "OUT_LATE_AFTER_AUTO_CLOSE"
    INCONSISTENT_STATE = "INCONSISTENT_STATE"


class Outcome(str, Enum):
    """What processing a single inbound event ended up doing."""

    DUPLICATE = "DUPLICATE"
    IGNORED = "IGNORED"
    REJECTED = "REJECTED"
    OPENED = "OPENED"
    DOUBLE_IN = "DOUBLE_IN"
    CLOSED = "CLOSED"
    SPLIT = "SPLIT"
    LATE_OUT_CORRECTED = "LATE_OUT_CORRECTED"
    OUT_WITHOUT_IN = "OUT_WITHOUT_IN"
