from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.auth import admin_required
from ..common.datetime_utils import isoformat_utc
from ..common.validators import clamp_limit, normalize_identity
from ..container import Container
from ..core.constants import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT
from ..core.exceptions import StoreUnavailable


def _history_to_dict(e) -> dict:
    return {
        "entryId": e.entry_id,
        "identity": e.identity,
        "start": isoformat_utc(e.start_at),
        "end": isoformat_utc(e.end_at),
        "reason": e.reason.value,
        "periodId": e.remote_period_id,
        "closingEventId": e.closing_event_id,
        "openedEventId": e.opened_event_id,
        "recordedAt": isoformat_utc(e.recorded_at),
    }


def _session_to_dict(s) -> dict:
    return {
        "identity": s.identity,
        "start": isoformat_utc(s.start_at),
        "autoCloseAt": isoformat_utc(s.auto_close_at),
        "periodId": s.remote_period_id,
        "openedEventId": s.opened_event_id,
    }


def register(app: Flask, container: Container) -> None:
    @app.route("/admin/history", methods=["GET"], endpoint="admin_history")
    @admin_required
    def admin_history():
        limit = clamp_limit(request.args.get("limit"), default=DEFAULT_LIST_LIMIT, maximum=MAX_LIST_LIMIT)
        identity = None
        if request.args.get("identity"):
            identity = normalize_identity(request.args["identity"])
            if identity is None:
                return jsonify({"ok": False, "code": "INVALID_IDENTITY"}), 400
        try:
            items = container.session_store.list_history(limit=limit, identity=identity)
        except StoreUnavailable as e:
            return jsonify({"ok": False, "code": "STORE_UNAVAILABLE", "message": str(e)}), 503
        return jsonify({"ok": True, "items": [_history_to_dict(e) for e in items]})

    @app.route("/admin/sessions", methods=["GET"], endpoint="admin_sessions")
    @admin_required
    def admin_sessions():
        limit = clamp_limit(request.args.get("limit"), default=DEFAULT_LIST_LIMIT, maximum=MAX_LIST_LIMIT)
        try:
            items = container.session_store.list_open(limit)
        except StoreUnavailable as e:
            return jsonify({"ok": False, "code": "STORE_UNAVAILABLE", "message": str(e)}), 503
        return jsonify({"ok": True, "items": [_session_to_dict(s) for s in items]})
