from __future__ import annotations

import json
import logging

from flask import Flask, jsonify, request

from ..common.datetime_utils import isoformat_utc, utc_now
from ..container import Container
from ..core.exceptions import InfrastructureError, ValidationError
from .parser import parse_timemoto_event
from .signature import verify_signature

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"ok": True, "ts": isoformat_utc(utc_now()), "shadow": container.attendance_client.shadow})

    @app.route("/webhook/timemoto", methods=["POST"], endpoint="webhook_timemoto")
    def webhook_timemoto():
        raw = request.get_data(cache=True)
        signature = request.headers.get("timemoto-signature")

        if not verify_signature(raw, signature, app.config.get("TIMEMOTO_WEBHOOK_SECRET", "")):
            if not app.config.get("ALLOW_INVALID_SIGNATURE", False):
                logger.warning("webhook.signature_invalid")
                return jsonify({"ok": False, "code": "SIGNATURE_INVALID"}), 401
            logger.warning("webhook.signature_invalid_allowed")

        try:
            body = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            return jsonify({"ok": False, "code": "INVALID_JSON"}), 400

        if isinstance(body, dict) and body.get("event") == "test":
            return jsonify({"ok": True})

        try:
            event = parse_timemoto_event(body)
        except ValidationError as e:
            return jsonify({"ok": False, "code": "INVALID_EVENT", "message": str(e)}), 400

        if not event.event_type.startswith("attendance."):
            logger.info("webhook.ignored type=%s", event.event_type)
            return jsonify({"ok": True})

        try:
            result = container.engine.handle(event)
        except InfrastructureError as e:
            logger.error("webhook.processing_error event=%s err=%s", event.event_id, e)
            return jsonify({"ok": False, "code": "PROCESSING_ERROR", "message": str(e)}), 500

        return jsonify({"ok": True, "outcome": result.outcome.value})
