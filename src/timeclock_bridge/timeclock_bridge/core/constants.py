"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import timedelta

DEFAULT_LOCAL_TIMEZONE = "Europe/Berlin"

MAX_SESSION_DURATION = timedelta(hours=12)
DOUBLE_IN_MAX_DURATION = timedelta(hours=1)
MIN_PERIOD_DURATION = timedelta(minutes=1)
# Local wall-clock time at which a working day is considered closed.
LOCAL_DAY_END_HOUR = 23
LOCAL_DAY_END_MINUTE = 59

DEFAULT_IDEMPOTENCY_TTL_DAYS = 14
DEFAULT_HISTORY_CAP = 200
DEFAULT_ANOMALY_CAP = 500
DEFAULT_SWEEP_LIMIT = 50
DEFAULT_LIST_LIMIT = 100
MAX_LIST_LIMIT = 200

ATTENDANCE_INSERTED_EVENT = "attendance.inserted"
SHADOW_PERIOD_ID = "shadow"

# Width of processed_events.event_id; longer ids are stored as a digest.
MAX_EVENT_ID_LENGTH = 128
