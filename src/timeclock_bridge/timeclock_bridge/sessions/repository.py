from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import EndReason
from .model import HistoryEntry, OpenSession


class SessionStore(Protocol):
    """Durable per-identity session state.

    Every method is atomic on its own; ``set_open`` and ``clear_open`` keep the
    session record and its due-index entry in step. Connectivity loss surfaces
    as StoreUnavailable.
    """

    def get_open(self, identity: str) -> Optional[OpenSession]:
        raise NotImplementedError

    def set_open(self, session: OpenSession) -> None:
        raise NotImplementedError

    def clear_open(self, identity: str) -> None:
        """Delete the session and its due-index entry; absent keys are a no-op."""

        raise NotImplementedError

    def due_before(self, instant: datetime, limit: int) -> Sequence[str]:
        """Identities whose deadline is <= instant, oldest deadline first."""

        raise NotImplementedError

    def drop_stale_due(self, identity: str) -> bool:
        """Remove the due-index entry only if the identity has no open session."""

        raise NotImplementedError

    def list_open(self, limit: int) -> Sequence[OpenSession]:
        raise NotImplementedError

    def mark_event_once(self, event_id: str, *, now: datetime) -> bool:
        """Claim an event id; True only for the first caller within the TTL."""

        raise NotImplementedError

    def purge_expired_marks(self, *, now: datetime) -> int:
        raise NotImplementedError

    def append_history(self, entry: HistoryEntry) -> int:
        raise NotImplementedError

    def recent_history(self, identity: str, limit: int) -> Sequence[HistoryEntry]:
        raise NotImplementedError

    def update_history_end(self, *, entry_id: int, end_at: datetime, reason: EndReason, closing_event_id: Optional[str]) -> bool:
        raise NotImplementedError

    def list_history(self, *, limit: int, identity: Optional[str] = None) -> Sequence[HistoryEntry]:
        raise NotImplementedError
