from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from mysql.connector import errors as mysql_errors

from src.timeclock_bridge.timeclock_bridge.anomalies.model import Anomaly
from src.timeclock_bridge.timeclock_bridge.anomalies.mysql_anomaly_repository import MySQLAnomalyLog
from src.timeclock_bridge.timeclock_bridge.core.enums import AnomalyKind, EndReason
from src.timeclock_bridge.timeclock_bridge.core.exceptions import StoreUnavailable
from src.timeclock_bridge.timeclock_bridge.database.bootstrap import prepare_schema_sql
from src.timeclock_bridge.timeclock_bridge.database.mysql_base import db_cursor, load_json
from src.timeclock_bridge.timeclock_bridge.sessions.model import HistoryEntry, OpenSession
from src.timeclock_bridge.timeclock_bridge.sessions.mysql_session_store import MySQLSessionStore, event_mark_key

SCHEMA = Path(__file__).resolve().parents[2] / "database" / "schema.sql"


class FakeCursor:
    def __init__(self, rows=None, rowcount=1, fail_with=None):
        self.executed = []
        self.rows = list(rows or [])
        self.rowcount = rowcount
        self.lastrowid = 7
        self.fail_with = fail_with
        self.closed = False

    def execute(self, sql, params=None):
        if self.fail_with is not None:
            raise self.fail_with
        self.executed.append((" ".join(sql.split()), params))

    def fetchone(self):
        return self.rows[0] if self.rows else None

    def fetchall(self):
        return self.rows

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def cursor(self, dictionary=True):
        return self._cursor

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True


class FakeConnectionFactory:
    def __init__(self, cursor=None, connect_error=None):
        self.cursor = cursor or FakeCursor()
        self.connect_error = connect_error
        self.connections = []

    def connect(self):
        if self.connect_error is not None:
            raise self.connect_error
        conn = FakeConnection(self.cursor)
        self.connections.append(conn)
        return conn


def test_db_cursor_commits_and_closes():
    factory = FakeConnectionFactory()

    with db_cursor(factory) as (_, cur):
        cur.execute("SELECT 1")

    conn = factory.connections[0]
    assert conn.commits == 1
    assert conn.closed
    assert factory.cursor.closed


def test_connect_failure_becomes_store_unavailable():
    factory = FakeConnectionFactory(connect_error=mysql_errors.InterfaceError("Can't connect", errno=2003))

    with pytest.raises(StoreUnavailable):
        with db_cursor(factory):
            pass


def test_lost_connection_rolls_back_and_becomes_store_unavailable():
    factory = FakeConnectionFactory(cursor=FakeCursor(fail_with=mysql_errors.OperationalError("gone away", errno=2006)))

    with pytest.raises(StoreUnavailable):
        with db_cursor(factory) as (_, cur):
            cur.execute("SELECT 1")

    conn = factory.connections[0]
    assert conn.rollbacks == 1
    assert conn.commits == 0
    assert conn.closed


def test_sql_errors_propagate_unchanged():
    factory = FakeConnectionFactory(cursor=FakeCursor(fail_with=mysql_errors.ProgrammingError("syntax", errno=1064)))

    with pytest.raises(mysql_errors.ProgrammingError):
        with db_cursor(factory) as (_, cur):
            cur.execute("SELEC 1")


def test_mark_event_once_depends_on_insert_rowcount():
    now = datetime(2026, 2, 2, 12, 0, tzinfo=timezone.utc)
    claimed = MySQLSessionStore(FakeConnectionFactory(cursor=FakeCursor(rowcount=1)))
    repeated = MySQLSessionStore(FakeConnectionFactory(cursor=FakeCursor(rowcount=0)))

    assert claimed.mark_event_once("e1", now=now) is True
    assert repeated.mark_event_once("e1", now=now) is False


def test_mark_event_once_uses_ttl_for_expiry():
    factory = FakeConnectionFactory()
    store = MySQLSessionStore(factory, idempotency_ttl=timedelta(days=14))
    now = datetime(2026, 2, 2, 12, 0, tzinfo=timezone.utc)

    store.mark_event_once("e1", now=now)

    sql, params = factory.cursor.executed[-1]
    assert sql.startswith("INSERT INTO processed_events")
    assert sql.endswith("ON DUPLICATE KEY UPDATE event_id=event_id")
    assert params == ("e1", datetime(2026, 2, 2, 12, 0), datetime(2026, 2, 16, 12, 0))


def test_set_open_writes_session_and_due_index_in_one_transaction():
    factory = FakeConnectionFactory()
    store = MySQLSessionStore(factory)
    start = datetime(2026, 2, 2, 8, 0, tzinfo=timezone.utc)

    store.set_open(OpenSession("a@x.com", start, start + timedelta(hours=12), "p-1", "e1"))

    statements = [sql for sql, _ in factory.cursor.executed]
    assert statements[0].startswith("INSERT INTO open_sessions")
    assert statements[1].startswith("INSERT INTO session_due_index")
    assert len(factory.connections) == 1
    assert factory.connections[0].commits == 1


def test_rows_are_read_back_as_utc():
    row = {
        "entry_id": 3,
        "identity": "a@x.com",
        "start_at": datetime(2026, 2, 2, 8, 0),
        "end_at": datetime(2026, 2, 2, 20, 0),
        "reason": "AUTO_CLOSE",
        "remote_period_id": "p-1",
        "closing_event_id": None,
        "opened_event_id": "e1",
        "recorded_at": datetime(2026, 2, 2, 20, 0, 5),
    }
    store = MySQLSessionStore(FakeConnectionFactory(cursor=FakeCursor(rows=[row])))

    [entry] = store.recent_history("a@x.com", 1)

    assert entry.entry_id == 3
    assert entry.reason == EndReason.AUTO_CLOSE
    assert entry.end_at == datetime(2026, 2, 2, 20, 0, tzinfo=timezone.utc)


def test_load_json_tolerates_bad_values():
    assert load_json(None) == {}
    assert load_json('{"a": 1}') == {"a": 1}
    assert load_json(b"[1, 2]") == {"value": [1, 2]}
    assert load_json("not json") == {"raw": "not json"}


def test_schema_file_splits_into_create_table_statements():
    statements = prepare_schema_sql(SCHEMA.read_text(encoding="utf-8"))

    assert statements
    assert all(s.upper().startswith("CREATE TABLE IF NOT EXISTS") for s in statements)
    tables = {s.split()[5] for s in statements}
    assert {"open_sessions", "session_due_index", "processed_events", "session_history", "anomalies"} <= tables


def test_append_history_truncates_to_cap_in_same_transaction():
    factory = FakeConnectionFactory()
    store = MySQLSessionStore(factory, history_cap=3)
    start = datetime(2026, 2, 2, 8, 0, tzinfo=timezone.utc)
    entry = HistoryEntry("a@x.com", start, start + timedelta(hours=8), EndReason.OUT, "p-1", "e2", "e1")

    assert store.append_history(entry) == 7

    (insert_sql, _), (cutoff_sql, cutoff_params) = factory.cursor.executed
    assert insert_sql.startswith("INSERT INTO session_history")
    assert cutoff_sql.startswith("DELETE FROM session_history WHERE identity=%s AND entry_id <=")
    assert "ORDER BY entry_id DESC LIMIT 1 OFFSET %s" in cutoff_sql
    assert cutoff_params == ("a@x.com", "a@x.com", 3)
    assert factory.connections[0].commits == 1


def test_anomaly_append_truncates_to_cap():
    factory = FakeConnectionFactory()
    log = MySQLAnomalyLog(factory, cap=500)
    anomaly = Anomaly(datetime(2026, 2, 2, 8, 0, tzinfo=timezone.utc), AnomalyKind.DOUBLE_IN, "a@x.com", "e1", {"n": 1})

    log.append(anomaly)

    (insert_sql, insert_params), (cutoff_sql, cutoff_params) = factory.cursor.executed
    assert insert_sql.startswith("INSERT INTO anomalies")
    assert insert_params[1] == "DOUBLE_IN"
    assert insert_params[4] == '{"n":1}'
    assert cutoff_sql.startswith("DELETE FROM anomalies WHERE anomaly_id <=")
    assert "ORDER BY anomaly_id DESC LIMIT 1 OFFSET %s" in cutoff_sql
    assert cutoff_params == (500,)
    assert factory.connections[0].commits == 1


def test_drop_stale_due_is_guarded_by_open_session():
    factory = FakeConnectionFactory(cursor=FakeCursor(rowcount=1))
    store = MySQLSessionStore(factory)

    assert store.drop_stale_due("a@x.com") is True

    [(sql, params)] = factory.cursor.executed
    assert sql.startswith("DELETE FROM session_due_index WHERE identity=%s")
    assert "NOT EXISTS (SELECT 1 FROM open_sessions WHERE identity=%s)" in sql
    assert params == ("a@x.com", "a@x.com")


def test_long_event_ids_are_hashed_not_truncated():
    factory = FakeConnectionFactory()
    store = MySQLSessionStore(factory)
    now = datetime(2026, 2, 2, 12, 0, tzinfo=timezone.utc)
    first, second = "x" * 128 + "-a", "x" * 128 + "-b"

    store.mark_event_once(first, now=now)
    store.mark_event_once(second, now=now)

    keys = [params[0] for sql, params in factory.cursor.executed if sql.startswith("INSERT")]
    assert keys == [event_mark_key(first), event_mark_key(second)]
    assert keys[0] != keys[1]
    assert all(len(k) <= 128 for k in keys)
    assert event_mark_key("e1") == "e1"


def test_schema_keeps_sub_second_precision():
    statements = prepare_schema_sql(SCHEMA.read_text(encoding="utf-8"))

    datetime_columns = [line for s in statements for line in s.splitlines() if " DATETIME" in line]
    assert datetime_columns
    assert all("DATETIME(6)" in line for line in datetime_columns)


def test_sub_second_start_is_written_unchanged():
    factory = FakeConnectionFactory()
    store = MySQLSessionStore(factory)
    start = datetime(2026, 2, 2, 8, 0, 0, 734000, tzinfo=timezone.utc)

    store.set_open(OpenSession("a@x.com", start, start + timedelta(hours=12), "p-1", "e1"))

    _, params = factory.cursor.executed[0]
    assert params[1] == datetime(2026, 2, 2, 8, 0, 0, 734000)
