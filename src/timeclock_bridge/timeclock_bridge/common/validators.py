from __future__ import annotations

from typing import Any, Iterable, Optional


def normalize_identity(raw: Any) -> Optional[str]:
    """Trim and lowercase an email-like identity.

    Returns None for anything that is not a string containing "@". Callers
    treat None as "cannot process" and record an anomaly; it is not an error.
    """

    if not isinstance(raw, str):
        return None
    value = raw.strip().lower()
    if "@" not in value:
        return None
    return value


def first_identity(candidates: Iterable[Any]) -> Optional[str]:
    for raw in candidates:
        identity = normalize_identity(raw)
        if identity:
            return identity
    return None


def clamp_limit(value: Any, *, default: int, maximum: int) -> int:
    try:
        limit = int(value)
    except (TypeError, ValueError):
        limit = default
    return min(maximum, max(1, limit))
