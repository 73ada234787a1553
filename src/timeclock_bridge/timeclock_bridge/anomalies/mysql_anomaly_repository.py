from __future__ import annotations

from typing import Sequence

from ..common.datetime_utils import ensure_utc, to_db_datetime
from ..core.constants import DEFAULT_ANOMALY_CAP
from ..core.enums import AnomalyKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, load_json
from .model import Anomaly
from .repository import AnomalyLog


class MySQLAnomalyLog(AnomalyLog):
    def __init__(self, conn_factory: DatabaseConnection, *, cap: int = DEFAULT_ANOMALY_CAP):
        self._conn_factory = conn_factory
        self._cap = int(cap)

    def append(self, anomaly: Anomaly) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO anomalies(created_at, kind, identity, event_id, details)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (
                    to_db_datetime(anomaly.timestamp),
                    anomaly.kind.value,
                    anomaly.identity,
                    anomaly.event_id,
                    dump_json(anomaly.details),
                ),
            )
            cur.execute(
                """
                DELETE FROM anomalies
                WHERE anomaly_id <= (
                    SELECT cutoff FROM (
                        SELECT anomaly_id AS cutoff
                        FROM anomalies
                        ORDER BY anomaly_id DESC
                        LIMIT 1 OFFSET %s
                    ) AS oldest_kept
                )
                """,
                (self._cap,),
            )

    def list_recent(self, limit: int) -> Sequence[Anomaly]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT created_at, kind, identity, event_id, details
                FROM anomalies
                ORDER BY anomaly_id DESC
                LIMIT %s
                """,
                (int(limit),),
            )
            return [
                Anomaly(
                    timestamp=ensure_utc(r["created_at"]),
                    kind=AnomalyKind(r["kind"]),
                    identity=r.get("identity"),
                    event_id=r.get("event_id"),
                    details=load_json(r.get("details")),
                )
                for r in fetchall(cur)
            ]
