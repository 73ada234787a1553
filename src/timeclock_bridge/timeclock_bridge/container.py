from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any
from zoneinfo import ZoneInfo

from .anomalies.mysql_anomaly_repository import MySQLAnomalyLog
from .anomalies.repository import AnomalyLog
from .common.datetime_utils import get_zone
from .core.constants import (
    DEFAULT_ANOMALY_CAP,
    DEFAULT_HISTORY_CAP,
    DEFAULT_IDEMPOTENCY_TTL_DAYS,
    DEFAULT_LOCAL_TIMEZONE,
)
from .database.connection import DatabaseConnection
from .personio.client import AttendanceClient, PersonioClient
from .personio.shadow_client import ShadowAttendanceClient
from .reconciliation.service import ReconciliationEngine
from .reconciliation.sweep import AutoCloseSweep
from .sessions.mysql_session_store import MySQLSessionStore
from .sessions.repository import SessionStore


@dataclass(frozen=True)
class Container:
    zone: ZoneInfo

    session_store: SessionStore
    anomaly_log: AnomalyLog
    attendance_client: AttendanceClient

    engine: ReconciliationEngine
    sweep: AutoCloseSweep


def wire(
    *,
    session_store: SessionStore,
    anomaly_log: AnomalyLog,
    attendance_client: AttendanceClient,
    zone: ZoneInfo,
) -> Container:
    return Container(
        zone=zone,
        session_store=session_store,
        anomaly_log=anomaly_log,
        attendance_client=attendance_client,
        engine=ReconciliationEngine(session_store, anomaly_log, attendance_client, zone=zone),
        sweep=AutoCloseSweep(session_store, anomaly_log, attendance_client, zone=zone),
    )


def build_attendance_client(settings: Any, zone: ZoneInfo) -> AttendanceClient:
    if bool(getattr(settings, "SHADOW_MODE", True)):
        return ShadowAttendanceClient()
    return PersonioClient(
        base_url=getattr(settings, "PERSONIO_BASE_URL", "https://api.personio.de"),
        client_id=getattr(settings, "PERSONIO_CLIENT_ID"),
        client_secret=getattr(settings, "PERSONIO_CLIENT_SECRET"),
        zone=zone,
        skip_approval=bool(getattr(settings, "PERSONIO_SKIP_APPROVAL", True)),
    )


def build_container(settings: Any) -> Container:
    zone = get_zone(getattr(settings, "LOCAL_TIMEZONE", DEFAULT_LOCAL_TIMEZONE))
    conn = DatabaseConnection.from_settings(getattr(settings, "DB_CONFIG"))

    session_store = MySQLSessionStore(
        conn,
        idempotency_ttl=timedelta(days=int(getattr(settings, "IDEMPOTENCY_TTL_DAYS", DEFAULT_IDEMPOTENCY_TTL_DAYS))),
        history_cap=int(getattr(settings, "HISTORY_CAP", DEFAULT_HISTORY_CAP)),
    )
    anomaly_log = MySQLAnomalyLog(conn, cap=int(getattr(settings, "ANOMALY_CAP", DEFAULT_ANOMALY_CAP)))

    return wire(
        session_store=session_store,
        anomaly_log=anomaly_log,
        attendance_client=build_attendance_client(settings, zone),
        zone=zone,
    )
