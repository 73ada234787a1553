import os

from config import env_flag

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timeclock_bridge"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = env_flag("AUTO_INIT_DB", True)

LOCAL_TIMEZONE = os.getenv("LOCAL_TIMEZONE", "Europe/Berlin")

# Shadow mode runs the full state machine without writing to Personio.
SHADOW_MODE = env_flag("SHADOW_MODE", True)

TIMEMOTO_WEBHOOK_SECRET = os.getenv("TIMEMOTO_WEBHOOK_SECRET", "dev-webhook-secret")
ALLOW_INVALID_SIGNATURE = env_flag("ALLOW_INVALID_SIGNATURE", True)

PERSONIO_BASE_URL = os.getenv("PERSONIO_BASE_URL", "https://api.personio.de")
PERSONIO_CLIENT_ID = os.getenv("PERSONIO_CLIENT_ID", "")
PERSONIO_CLIENT_SECRET = os.getenv("PERSONIO_CLIENT_SECRET", "")
PERSONIO_SKIP_APPROVAL = env_flag("PERSONIO_SKIP_APPROVAL", True)

ADMIN_TOKEN = os.getenv("ADMIN_TOKEN", "dev-admin-token")

SWEEP_LIMIT = int(os.getenv("SWEEP_LIMIT", "50"))
IDEMPOTENCY_TTL_DAYS = int(os.getenv("IDEMPOTENCY_TTL_DAYS", "14"))
HISTORY_CAP = int(os.getenv("HISTORY_CAP", "200"))
ANOMALY_CAP = int(os.getenv("ANOMALY_CAP", "500"))
