from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.auth import admin_required
from ..common.validators import clamp_limit
from ..container import Container
from ..core.constants import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT
from ..core.exceptions import StoreUnavailable


def register(app: Flask, container: Container) -> None:
    @app.route("/admin/anomalies", methods=["GET"], endpoint="admin_anomalies")
    @admin_required
    def admin_anomalies():
        limit = clamp_limit(request.args.get("limit"), default=DEFAULT_LIST_LIMIT, maximum=MAX_LIST_LIMIT)
        try:
            items = container.anomaly_log.list_recent(limit)
        except StoreUnavailable as e:
            return jsonify({"ok": False, "code": "STORE_UNAVAILABLE", "message": str(e)}), 503
        return jsonify({"ok": True, "items": [a.to_dict() for a in items]})
