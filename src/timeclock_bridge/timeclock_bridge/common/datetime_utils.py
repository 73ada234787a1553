from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.constants import LOCAL_DAY_END_HOUR, LOCAL_DAY_END_MINUTE
from ..core.exceptions import ValidationError


def utc_now() -> datetime:
    """Current instant in UTC.

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now(timezone.utc)


def get_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(f"Unknown time zone: {name!r}") from exc


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive values (MySQL DATETIME columns are stored as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_db_datetime(value: datetime) -> datetime:
    return ensure_utc(value).replace(tzinfo=None)


# Wider than fromisoformat on 3.10: any fraction length, space before the offset.
_ISO_FALLBACK = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2})"
    r"(?:[.,](?P<fraction>\d+))?"
    r"\s*(?P<offset>[+-]\d{2}:?\d{2})?$"
)


def _parse_fallback(text: str) -> Optional[datetime]:
    match = _ISO_FALLBACK.match(text)
    if not match:
        return None
    try:
        parsed = datetime.strptime(match["base"].replace(" ", "T"), "%Y-%m-%dT%H:%M:%S")
    except ValueError:
        return None
    if match["fraction"]:
        parsed = parsed.replace(microsecond=int(match["fraction"][:6].ljust(6, "0")))
    offset = match["offset"]
    if not offset:
        return parsed
    hours, minutes = int(offset[1:3]), int(offset[-2:])
    if hours > 23 or minutes > 59:
        return None
    delta = timedelta(hours=hours, minutes=minutes)
    return parsed.replace(tzinfo=timezone(-delta if offset[0] == "-" else delta))


def parse_iso_datetime(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; an offset present in the text is never dropped."""
    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1].rstrip() + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return _parse_fallback(text)


def parse_with_offset(value: Optional[str], zone: ZoneInfo) -> Optional[datetime]:
    """Parse a timestamp that carries its own offset; offset-less strings are rejected."""
    if not isinstance(value, str):
        return None
    parsed = parse_iso_datetime(value)
    if parsed is None or parsed.tzinfo is None:
        return None
    return parsed.astimezone(timezone.utc)


def parse_assuming_zone(value: Optional[str], zone: ZoneInfo) -> Optional[datetime]:
    """Parse an offset-less provider-local timestamp as wall-clock time in ``zone``."""
    if not isinstance(value, str):
        return None
    parsed = parse_iso_datetime(value)
    if parsed is None or parsed.tzinfo is not None:
        return None
    return parsed.replace(tzinfo=zone).astimezone(timezone.utc)


TimestampParser = Callable[[Optional[str], ZoneInfo], Optional[datetime]]

# Raw before provider-rounded; within each, explicit offset before assumed zone.
TIMESTAMP_PARSE_ORDER: Sequence[Tuple[str, TimestampParser]] = (
    ("time_logged", parse_with_offset),
    ("time_inserted", parse_with_offset),
    ("time_logged", parse_assuming_zone),
    ("time_inserted", parse_assuming_zone),
    ("time_logged_rounded", parse_with_offset),
    ("time_logged_rounded", parse_assuming_zone),
)


def canonical_instant(event, *, default_zone: ZoneInfo) -> Optional[datetime]:
    """Resolve the event's punch time to a single UTC instant.

    The event's own named zone wins over ``default_zone`` for offset-less values.
    Returns None when no timestamp field can be parsed.
    """

    zone = default_zone
    if getattr(event, "time_zone", None):
        try:
            zone = get_zone(event.time_zone)
        except ValidationError:
            zone = default_zone

    for field_name, parser in TIMESTAMP_PARSE_ORDER:
        instant = parser(getattr(event, field_name, None), zone)
        if instant is not None:
            return instant
    return None


def local_date(instant: datetime, zone: ZoneInfo) -> date:
    return ensure_utc(instant).astimezone(zone).date()


def same_local_day(a: datetime, b: datetime, zone: ZoneInfo) -> bool:
    return local_date(a, zone) == local_date(b, zone)


def start_of_local_day(instant: datetime, zone: ZoneInfo) -> datetime:
    """UTC instant of local midnight on the calendar day containing ``instant``."""
    local_midnight = datetime.combine(local_date(instant, zone), time(0, 0), tzinfo=zone)
    return local_midnight.astimezone(timezone.utc)


def end_of_local_day(instant: datetime, zone: ZoneInfo) -> datetime:
    """UTC instant of 23:59 local on the calendar day containing ``instant``.

    Built from zone-local components, so DST transitions are handled by zoneinfo.
    """
    local_end = datetime.combine(
        local_date(instant, zone),
        time(LOCAL_DAY_END_HOUR, LOCAL_DAY_END_MINUTE),
        tzinfo=zone,
    )
    return local_end.astimezone(timezone.utc)


def to_local_naive_iso(instant: datetime, zone: ZoneInfo) -> str:
    """Wall-clock representation without offset, as the HR API expects it."""
    return ensure_utc(instant).astimezone(zone).strftime("%Y-%m-%dT%H:%M:%S")


def isoformat_utc(instant: Optional[datetime]) -> Optional[str]:
    if instant is None:
        return None
    return ensure_utc(instant).isoformat().replace("+00:00", "Z")
