from __future__ import annotations

from typing import Any, Mapping

from ..core.exceptions import ValidationError
from .model import ClockEvent


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_timemoto_event(body: Any) -> ClockEvent:
    """Map a TimeMoto webhook body onto a ClockEvent.

    Only the envelope shape is checked here; field-level validation (identity,
    direction, timestamp) belongs to the reconciliation engine so that it runs
    after the idempotency gate.
    """

    if not isinstance(body, Mapping):
        raise ValidationError("Webhook body must be a JSON object")

    data = body.get("data")
    if not isinstance(data, Mapping):
        data = {}

    return ClockEvent(
        event_id=_opt_str(body.get("id")),
        event_type=_opt_str(body.get("event")) or "",
        direction_raw=_opt_str(data.get("clockingType")),
        # The employee number field carries the email address on our devices.
        identity_candidates=(
            _opt_str(data.get("userEmployeeNumber")),
            _opt_str(data.get("emailAddress")),
        ),
        time_logged=_opt_str(data.get("timeLogged")),
        time_inserted=_opt_str(data.get("timeInserted")),
        time_logged_rounded=_opt_str(data.get("timeLoggedRounded")),
        time_zone=_opt_str(data.get("timeZone")),
        provider_user_id=_opt_str(data.get("userId")),
    )
