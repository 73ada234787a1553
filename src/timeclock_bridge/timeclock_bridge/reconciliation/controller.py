from __future__ import annotations

import json
import logging

import click
from flask import Flask, jsonify, request

from ..common.auth import admin_required
from ..common.datetime_utils import utc_now
from ..common.validators import clamp_limit
from ..container import Container
from ..core.exceptions import InfrastructureError

logger = logging.getLogger(__name__)


def run_autoclose(container: Container, *, limit: int) -> dict:
    now = utc_now()
    result = container.sweep.run(now, limit)
    purged = container.session_store.purge_expired_marks(now=now)
    if purged:
        logger.info("idempotency.purged count=%s", purged)
    return result.to_dict()


def register(app: Flask, container: Container) -> None:
    default_limit = int(app.config.get("SWEEP_LIMIT", 50))

    @app.route("/admin/autoclose", methods=["POST"], endpoint="admin_autoclose")
    @admin_required
    def admin_autoclose():
        limit = clamp_limit(request.args.get("limit"), default=default_limit, maximum=max(default_limit, 500))
        try:
            result = run_autoclose(container, limit=limit)
        except InfrastructureError as e:
            logger.error("autoclose.failed err=%s", e)
            return jsonify({"ok": False, "code": "PROCESSING_ERROR", "message": str(e)}), 500
        return jsonify({"ok": True, **result})

    @app.cli.command("autoclose")
    @click.option("--limit", default=default_limit, show_default=True, type=int, help="Max sessions per run")
    def autoclose_command(limit: int):
        """Close open sessions whose auto-close deadline has passed."""
        click.echo(json.dumps(run_autoclose(container, limit=limit)))
