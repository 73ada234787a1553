from __future__ import annotations

import hmac
from functools import wraps

from flask import current_app, jsonify, request


def admin_required(view):
    """Bearer-token guard for operator endpoints (token from ADMIN_TOKEN)."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        expected = current_app.config.get("ADMIN_TOKEN") or ""
        header = request.headers.get("Authorization", "")
        provided = header[7:].strip() if header[:7].lower() == "bearer " else header.strip()
        if not expected or not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
            return jsonify({"ok": False, "code": "UNAUTHORIZED"}), 401
        return view(*args, **kwargs)

    return wrapper
