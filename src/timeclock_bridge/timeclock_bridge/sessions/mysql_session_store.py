from __future__ import annotations

import hashlib
from datetime import datetime, timedelta
from typing import Optional, Sequence

from ..common.datetime_utils import ensure_utc, to_db_datetime
from ..core.constants import DEFAULT_HISTORY_CAP, DEFAULT_IDEMPOTENCY_TTL_DAYS, MAX_EVENT_ID_LENGTH
from ..core.enums import EndReason
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import HistoryEntry, OpenSession
from .repository import SessionStore


def event_mark_key(event_id: str) -> str:
    """Key for processed_events; ids too long for the column are hashed, never cut."""
    if len(event_id) <= MAX_EVENT_ID_LENGTH:
        return event_id
    return "sha256:" + hashlib.sha256(event_id.encode("utf-8")).hexdigest()


def _row_to_session(r) -> OpenSession:
    return OpenSession(
        identity=r["identity"],
        start_at=ensure_utc(r["start_at"]),
        auto_close_at=ensure_utc(r["auto_close_at"]),
        remote_period_id=str(r["remote_period_id"]),
        opened_event_id=str(r["opened_event_id"]),
    )


def _row_to_history(r) -> HistoryEntry:
    return HistoryEntry(
        entry_id=int(r["entry_id"]),
        identity=r["identity"],
        start_at=ensure_utc(r["start_at"]),
        end_at=ensure_utc(r["end_at"]),
        reason=EndReason(r["reason"]),
        remote_period_id=str(r["remote_period_id"]),
        closing_event_id=r.get("closing_event_id"),
        opened_event_id=r.get("opened_event_id"),
        recorded_at=ensure_utc(r["recorded_at"]) if r.get("recorded_at") else None,
    )


_HISTORY_COLUMNS = """
    entry_id, identity, start_at, end_at, reason, remote_period_id,
    closing_event_id, opened_event_id, recorded_at
"""


class MySQLSessionStore(SessionStore):
    def __init__(
        self,
        conn_factory: DatabaseConnection,
        *,
        idempotency_ttl: timedelta = timedelta(days=DEFAULT_IDEMPOTENCY_TTL_DAYS),
        history_cap: int = DEFAULT_HISTORY_CAP,
    ):
        self._conn_factory = conn_factory
        self._idempotency_ttl = idempotency_ttl
        self._history_cap = int(history_cap)

    def get_open(self, identity: str) -> Optional[OpenSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT identity, start_at, auto_close_at, remote_period_id, opened_event_id
                FROM open_sessions
                WHERE identity=%s
                """,
                (identity,),
            )
            r = fetchone(cur)
            return _row_to_session(r) if r else None

    def set_open(self, session: OpenSession) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO open_sessions(identity, start_at, auto_close_at, remote_period_id, opened_event_id)
                VALUES(%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    start_at=VALUES(start_at),
                    auto_close_at=VALUES(auto_close_at),
                    remote_period_id=VALUES(remote_period_id),
                    opened_event_id=VALUES(opened_event_id)
                """,
                (
                    session.identity,
                    to_db_datetime(session.start_at),
                    to_db_datetime(session.auto_close_at),
                    session.remote_period_id,
                    session.opened_event_id,
                ),
            )
            cur.execute(
                """
                INSERT INTO session_due_index(identity, due_at)
                VALUES(%s,%s)
                ON DUPLICATE KEY UPDATE due_at=VALUES(due_at)
                """,
                (session.identity, to_db_datetime(session.auto_close_at)),
            )

    def clear_open(self, identity: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM open_sessions WHERE identity=%s", (identity,))
            cur.execute("DELETE FROM session_due_index WHERE identity=%s", (identity,))

    def due_before(self, instant: datetime, limit: int) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT identity
                FROM session_due_index
                WHERE due_at <= %s
                ORDER BY due_at ASC, identity ASC
                LIMIT %s
                """,
                (to_db_datetime(instant), int(limit)),
            )
            return [r["identity"] for r in fetchall(cur)]

    def drop_stale_due(self, identity: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            # Single statement so a concurrent set_open keeps its index row.
            cur.execute(
                """
                DELETE FROM session_due_index
                WHERE identity=%s
                  AND NOT EXISTS (SELECT 1 FROM open_sessions WHERE identity=%s)
                """,
                (identity, identity),
            )
            return cur.rowcount > 0

    def list_open(self, limit: int) -> Sequence[OpenSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT identity, start_at, auto_close_at, remote_period_id, opened_event_id
                FROM open_sessions
                ORDER BY auto_close_at ASC
                LIMIT %s
                """,
                (int(limit),),
            )
            return [_row_to_session(r) for r in fetchall(cur)]

    def mark_event_once(self, event_id: str, *, now: datetime) -> bool:
        key = event_mark_key(event_id)
        now_db = to_db_datetime(now)
        with db_cursor(self._conn_factory) as (_, cur):
            # An expired mark no longer blocks the id.
            cur.execute(
                "DELETE FROM processed_events WHERE event_id=%s AND expires_at<=%s",
                (key, now_db),
            )
            # Duplicate key is a no-op (rowcount 0); other data errors still raise.
            cur.execute(
                """
                INSERT INTO processed_events(event_id, claimed_at, expires_at)
                VALUES(%s,%s,%s)
                ON DUPLICATE KEY UPDATE event_id=event_id
                """,
                (key, now_db, to_db_datetime(now + self._idempotency_ttl)),
            )
            return cur.rowcount == 1

    def purge_expired_marks(self, *, now: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM processed_events WHERE expires_at<=%s", (to_db_datetime(now),))
            return int(cur.rowcount or 0)

    def append_history(self, entry: HistoryEntry) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO session_history(
                    identity, start_at, end_at, reason, remote_period_id,
                    closing_event_id, opened_event_id, recorded_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    entry.identity,
                    to_db_datetime(entry.start_at),
                    to_db_datetime(entry.end_at),
                    entry.reason.value,
                    entry.remote_period_id,
                    entry.closing_event_id,
                    entry.opened_event_id,
                    to_db_datetime(entry.recorded_at or entry.end_at),
                ),
            )
            entry_id = int(cur.lastrowid)
            # Keep only the newest ``history_cap`` entries for this identity.
            cur.execute(
                """
                DELETE FROM session_history
                WHERE identity=%s AND entry_id <= (
                    SELECT cutoff FROM (
                        SELECT entry_id AS cutoff
                        FROM session_history
                        WHERE identity=%s
                        ORDER BY entry_id DESC
                        LIMIT 1 OFFSET %s
                    ) AS oldest_kept
                )
                """,
                (entry.identity, entry.identity, self._history_cap),
            )
            return entry_id

    def recent_history(self, identity: str, limit: int) -> Sequence[HistoryEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_HISTORY_COLUMNS}
                FROM session_history
                WHERE identity=%s
                ORDER BY entry_id DESC
                LIMIT %s
                """,
                (identity, int(limit)),
            )
            return [_row_to_history(r) for r in fetchall(cur)]

    def update_history_end(
        self,
        *,
        entry_id: int,
        end_at: datetime,
        reason: EndReason,
        closing_event_id: Optional[str],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE session_history
                SET end_at=%s, reason=%s, closing_event_id=%s
                WHERE entry_id=%s
                """,
                (to_db_datetime(end_at), reason.value, closing_event_id, int(entry_id)),
            )
            return cur.rowcount > 0

    def list_history(self, *, limit: int, identity: Optional[str] = None) -> Sequence[HistoryEntry]:
        clauses = []
        params: list[object] = []
        if identity is not None:
            clauses.append("identity=%s")
            params.append(identity)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_HISTORY_COLUMNS}
                FROM session_history
                {where}
                ORDER BY entry_id DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [_row_to_history(r) for r in fetchall(cur)]
