from __future__ import annotations

from typing import Protocol, Sequence

from .model import Anomaly


class AnomalyLog(Protocol):
    """Append-only, size-bounded record of exceptional conditions (newest first)."""

    def append(self, anomaly: Anomaly) -> None:
        raise NotImplementedError

    def list_recent(self, limit: int) -> Sequence[Anomaly]:
        raise NotImplementedError
