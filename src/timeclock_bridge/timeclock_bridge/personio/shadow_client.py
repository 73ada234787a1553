from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import isoformat_utc
from ..core.constants import SHADOW_PERIOD_ID

logger = logging.getLogger(__name__)


class ShadowAttendanceClient:
    """Stand-in used in shadow mode: the full state machine runs, Personio is never called."""

    shadow = True

    def resolve_identity(self, identity: str) -> Optional[str]:
        return identity

    def create_period(self, person_id: str, start_at: datetime, end_at: Optional[datetime] = None) -> str:
        logger.info(
            "shadow.create_period person=%s start=%s end=%s",
            person_id, isoformat_utc(start_at), isoformat_utc(end_at),
        )
        return SHADOW_PERIOD_ID

    def patch_period_end(self, period_id: str, end_at: datetime) -> None:
        logger.info("shadow.patch_end period=%s end=%s", period_id, isoformat_utc(end_at))
