from __future__ import annotations

import hashlib
import hmac
import json

import pytest
from flask import Flask

from src.timeclock_bridge.timeclock_bridge.container import wire
from src.timeclock_bridge.timeclock_bridge.main import register_all

SECRET = "test-webhook-secret"
ADMIN = {"Authorization": "Bearer test-admin-token"}


@pytest.fixture()
def app(store, anomaly_log, client, zone):
    app = Flask(__name__)
    app.config.update(
        TESTING=True,
        TIMEMOTO_WEBHOOK_SECRET=SECRET,
        ALLOW_INVALID_SIGNATURE=False,
        ADMIN_TOKEN="test-admin-token",
        SWEEP_LIMIT=50,
    )
    container = wire(session_store=store, anomaly_log=anomaly_log, attendance_client=client, zone=zone)
    register_all(app, container)
    return app


@pytest.fixture()
def http(app):
    return app.test_client()


def _post(http, body, *, secret=SECRET):
    raw = json.dumps(body).encode("utf-8")
    sig = hmac.new(secret.encode(), raw, hashlib.sha256).hexdigest()
    return http.post(
        "/webhook/timemoto",
        data=raw,
        content_type="application/json",
        headers={"timemoto-signature": f"sha256={sig}"},
    )


def _punch(event_id, direction, stamp):
    return {
        "id": event_id,
        "event": "attendance.inserted",
        "data": {"clockingType": direction, "userEmployeeNumber": "a@x.com", "timeInserted": stamp},
    }


def test_health(http):
    res = http.get("/health")

    assert res.status_code == 200
    assert res.get_json()["ok"] is True
    assert res.get_json()["shadow"] is False


def test_webhook_processes_in_and_out(http, store):
    assert _post(http, _punch("e1", "in", "2026-02-02T08:00:00Z")).get_json()["outcome"] == "OPENED"
    assert _post(http, _punch("e2", "out", "2026-02-02T16:30:00Z")).get_json()["outcome"] == "CLOSED"
    assert _post(http, _punch("e2", "out", "2026-02-02T16:30:00Z")).get_json()["outcome"] == "DUPLICATE"

    assert store.recent_history("a@x.com", 1)[0].reason.value == "OUT"


def test_webhook_rejects_bad_signature(http, store):
    res = _post(http, _punch("e1", "in", "2026-02-02T08:00:00Z"), secret="wrong")

    assert res.status_code == 401
    assert res.get_json()["code"] == "SIGNATURE_INVALID"
    assert store.marks == {}


def test_webhook_allows_bad_signature_when_configured(app, http):
    app.config["ALLOW_INVALID_SIGNATURE"] = True

    res = _post(http, _punch("e1", "in", "2026-02-02T08:00:00Z"), secret="wrong")

    assert res.status_code == 200


def test_webhook_invalid_json(http):
    raw = b"{not json"
    sig = hmac.new(SECRET.encode(), raw, hashlib.sha256).hexdigest()

    res = http.post("/webhook/timemoto", data=raw, headers={"timemoto-signature": sig})

    assert res.status_code == 400
    assert res.get_json()["code"] == "INVALID_JSON"


def test_webhook_test_event_is_acknowledged(http, store):
    res = _post(http, {"event": "test"})

    assert res.status_code == 200
    assert store.marks == {}


def test_webhook_reports_infrastructure_failure_as_500(http, store):
    store.unavailable = True

    res = _post(http, _punch("e1", "in", "2026-02-02T08:00:00Z"))

    assert res.status_code == 500
    assert res.get_json()["code"] == "PROCESSING_ERROR"


def test_admin_endpoints_require_token(http):
    assert http.get("/admin/anomalies").status_code == 401
    assert http.get("/admin/anomalies", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_admin_anomalies_lists_newest_first(http):
    _post(http, _punch("e1", "out", "2026-02-02T16:00:00Z"))
    _post(http, _punch("e2", "in", "not a time"))

    items = http.get("/admin/anomalies?limit=10", headers=ADMIN).get_json()["items"]

    assert [i["kind"] for i in items] == ["TIMESTAMP_MISSING", "OUT_WITHOUT_IN"]
    assert items[1]["identity"] == "a@x.com"
    assert items[1]["eventId"] == "e1"
    assert set(items[0]) == {"timestamp", "kind", "identity", "eventId", "details"}


def test_admin_history_and_sessions(http):
    _post(http, _punch("e1", "in", "2026-02-02T08:00:00Z"))

    sessions = http.get("/admin/sessions", headers=ADMIN).get_json()["items"]
    assert sessions[0]["autoCloseAt"] == "2026-02-02T20:00:00Z"

    _post(http, _punch("e2", "out", "2026-02-02T16:30:00Z"))
    history = http.get("/admin/history?identity=A@X.COM", headers=ADMIN).get_json()["items"]
    assert history[0]["reason"] == "OUT"
    assert history[0]["end"] == "2026-02-02T16:30:00Z"

    assert http.get("/admin/history?identity=nobody", headers=ADMIN).status_code == 400


def test_admin_autoclose_runs_sweep(http, store):
    _post(http, _punch("e1", "in", "2020-01-01T08:00:00Z"))

    res = http.post("/admin/autoclose", headers=ADMIN)

    assert res.status_code == 200
    assert res.get_json()["closed"] == 1
    assert store.get_open("a@x.com") is None


def test_autoclose_cli_command(app, store):
    _post(app.test_client(), _punch("e1", "in", "2020-01-01T08:00:00Z"))

    result = app.test_cli_runner().invoke(args=["autoclose", "--limit", "10"])

    assert result.exit_code == 0
    assert json.loads(result.output.strip().splitlines()[-1])["closed"] == 1
