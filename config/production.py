import os

from config import env_flag


def _must(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing env var: {name}")
    return value


DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": _must("DB_PASSWORD"),
    "database": os.getenv("DB_NAME", "timeclock_bridge"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = env_flag("AUTO_INIT_DB", False)

LOCAL_TIMEZONE = os.getenv("LOCAL_TIMEZONE", "Europe/Berlin")

SHADOW_MODE = env_flag("SHADOW_MODE", True)

TIMEMOTO_WEBHOOK_SECRET = _must("TIMEMOTO_WEBHOOK_SECRET")
ALLOW_INVALID_SIGNATURE = env_flag("ALLOW_INVALID_SIGNATURE", False)

PERSONIO_BASE_URL = os.getenv("PERSONIO_BASE_URL", "https://api.personio.de")
PERSONIO_CLIENT_ID = _must("PERSONIO_CLIENT_ID")
PERSONIO_CLIENT_SECRET = _must("PERSONIO_CLIENT_SECRET")
PERSONIO_SKIP_APPROVAL = env_flag("PERSONIO_SKIP_APPROVAL", True)

ADMIN_TOKEN = _must("ADMIN_TOKEN")

SWEEP_LIMIT = int(os.getenv("SWEEP_LIMIT", "50"))
IDEMPOTENCY_TTL_DAYS = int(os.getenv("IDEMPOTENCY_TTL_DAYS", "14"))
HISTORY_CAP = int(os.getenv("HISTORY_CAP", "200"))
ANOMALY_CAP = int(os.getenv("ANOMALY_CAP", "500"))
