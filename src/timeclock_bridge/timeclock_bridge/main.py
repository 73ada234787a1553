from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .database.bootstrap import apply_schema, list_tables

from .container import Container, build_container
from .anomalies.controller import register as register_anomalies
from .events.controller import register as register_events
from .reconciliation.controller import register as register_reconciliation
from .sessions.controller import register as register_sessions

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def register_all(app: Flask, container: Container) -> None:
    register_events(app, container)
    register_reconciliation(app, container)
    register_anomalies(app, container)
    register_sessions(app, container)


def create_app(container: Container | None = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TIMEMOTO_WEBHOOK_SECRET"] = getattr(settings, "TIMEMOTO_WEBHOOK_SECRET", "")
    app.config["ALLOW_INVALID_SIGNATURE"] = bool(getattr(settings, "ALLOW_INVALID_SIGNATURE", False))
    app.config["ADMIN_TOKEN"] = getattr(settings, "ADMIN_TOKEN", "")
    app.config["SWEEP_LIMIT"] = int(getattr(settings, "SWEEP_LIMIT", 50))

    logger.info(
        "server.settings module=%s db=%s shadow=%s",
        settings_module,
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}",
        bool(getattr(settings, "SHADOW_MODE", True)),
    )

    if container is None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("server.schema_ready tables=%s", len(list_tables(db_config)))
        container = build_container(settings)

    register_all(app, container)
    return app
