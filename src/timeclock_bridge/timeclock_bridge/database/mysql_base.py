from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errors as mysql_errors

from ..core.exceptions import StoreUnavailable
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

# Client-side error numbers that mean "the server went away" rather than "bad SQL".
_CONNECTION_ERRNOS = {2002, 2003, 2005, 2006, 2013, 2055}


def is_connectivity_error(exc: BaseException) -> bool:
    if isinstance(exc, (mysql_errors.InterfaceError, mysql_errors.OperationalError)):
        return True
    return isinstance(exc, mysql.connector.Error) and getattr(exc, "errno", None) in _CONNECTION_ERRNOS


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield ``(conn, cursor)`` inside a single transaction.

    Commits on success, rolls back on error. Connectivity failures are raised as
    StoreUnavailable; everything else propagates unchanged.
    """

    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as exc:
        raise StoreUnavailable(f"session store unreachable: {exc}") from exc

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as exc:
        _safe_rollback(conn)
        if is_connectivity_error(exc):
            raise StoreUnavailable(f"session store connection lost: {exc}") from exc
        raise
    except Exception:
        _safe_rollback(conn)
        raise
    finally:
        _safe_close(conn)


def _safe_rollback(conn) -> None:
    try:
        conn.rollback()
    except mysql.connector.Error as exc:
        logger.warning("db.rollback_failed err=%s", exc)


def _safe_close(conn) -> None:
    try:
        conn.close()
    except mysql.connector.Error as exc:
        logger.warning("db.close_failed err=%s", exc)


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def dump_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), sort_keys=True, default=str)


def load_json(value: Any) -> Dict[str, Any]:
    if value is None or value == "":
        return {}
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, dict):
        return value
    try:
        loaded = json.loads(value)
    except (TypeError, ValueError):
        return {"raw": str(value)}
    return loaded if isinstance(loaded, dict) else {"value": loaded}
