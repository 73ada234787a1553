from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..common.datetime_utils import isoformat_utc
from ..core.enums import AnomalyKind


@dataclass(frozen=True)
class Anomaly:
    timestamp: datetime
    kind: AnomalyKind
    identity: Optional[str] = None
    event_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "timestamp": isoformat_utc(self.timestamp),
            "kind": self.kind.value,
            "identity": self.identity,
            "eventId": self.event_id,
            "details": self.details,
        }
