import pytest

from src.timeclock_bridge.timeclock_bridge.core.enums import ClockDirection
from src.timeclock_bridge.timeclock_bridge.core.exceptions import ValidationError
from src.timeclock_bridge.timeclock_bridge.events.parser import parse_timemoto_event


def test_parse_attendance_inserted_body():
    body = {
        "id": 987,
        "event": "attendance.inserted",
        "data": {
            "clockingType": "Out",
            "userEmployeeNumber": "a@x.com",
            "emailAddress": "other@x.com",
            "userId": 17,
            "timeLogged": "2026-02-02T17:30:12",
            "timeLoggedRounded": "2026-02-02T17:30:00",
            "timeInserted": "2026-02-02T16:30:15Z",
            "timeZone": "Europe/Berlin",
        },
    }

    event = parse_timemoto_event(body)

    assert event.event_id == "987"
    assert event.event_type == "attendance.inserted"
    assert event.direction == ClockDirection.OUT
    assert event.identity_candidates == ("a@x.com", "other@x.com")
    assert event.time_logged == "2026-02-02T17:30:12"
    assert event.time_logged_rounded == "2026-02-02T17:30:00"
    assert event.time_inserted == "2026-02-02T16:30:15Z"
    assert event.time_zone == "Europe/Berlin"
    assert event.provider_user_id == "17"


def test_parse_tolerates_missing_data():
    event = parse_timemoto_event({"id": "x", "event": "attendance.inserted"})

    assert event.event_id == "x"
    assert event.direction is None
    assert event.identity_candidates == (None, None)
    assert event.time_logged is None


def test_blank_id_is_treated_as_missing():
    assert parse_timemoto_event({"id": "  ", "event": "attendance.inserted"}).event_id is None


def test_non_object_body_is_rejected():
    with pytest.raises(ValidationError):
        parse_timemoto_event(["not", "an", "object"])
