import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timeclock_bridge_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False

LOCAL_TIMEZONE = "Europe/Berlin"

SHADOW_MODE = True

TIMEMOTO_WEBHOOK_SECRET = "test-webhook-secret"
ALLOW_INVALID_SIGNATURE = False

PERSONIO_BASE_URL = "https://personio.invalid"
PERSONIO_CLIENT_ID = "test-client"
PERSONIO_CLIENT_SECRET = "test-secret"
PERSONIO_SKIP_APPROVAL = True

ADMIN_TOKEN = "test-admin-token"

SWEEP_LIMIT = 50
IDEMPOTENCY_TTL_DAYS = 14
HISTORY_CAP = 200
ANOMALY_CAP = 500
