from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

import pytest

from src.timeclock_bridge.timeclock_bridge.core.enums import EndReason
from src.timeclock_bridge.timeclock_bridge.core.exceptions import AttendanceClientError, StoreUnavailable
from src.timeclock_bridge.timeclock_bridge.events.model import ClockEvent
from src.timeclock_bridge.timeclock_bridge.reconciliation.service import ReconciliationEngine
from src.timeclock_bridge.timeclock_bridge.reconciliation.sweep import AutoCloseSweep

BERLIN = ZoneInfo("Europe/Berlin")
FIXED_NOW = datetime(2026, 2, 2, 12, 0, tzinfo=timezone.utc)


class InMemorySessionStore:
    def __init__(self, *, idempotency_ttl: timedelta = timedelta(days=14), history_cap: int = 200):
        self.sessions = {}
        self.due = {}
        self.marks = {}
        self.history = {}
        self._next_entry_id = 0
        self._ttl = idempotency_ttl
        self._cap = history_cap
        self.unavailable = False

    def _check(self):
        if self.unavailable:
            raise StoreUnavailable("store down")

    def get_open(self, identity):
        self._check()
        return self.sessions.get(identity)

    def set_open(self, session):
        self._check()
        self.sessions[session.identity] = session
        self.due[session.identity] = session.auto_close_at

    def clear_open(self, identity):
        self._check()
        self.sessions.pop(identity, None)
        self.due.pop(identity, None)

    def due_before(self, instant, limit):
        self._check()
        items = sorted((due, identity) for identity, due in self.due.items() if due <= instant)
        return [identity for _, identity in items[:limit]]

    def drop_stale_due(self, identity):
        self._check()
        if identity in self.sessions or identity not in self.due:
            return False
        del self.due[identity]
        return True

    def list_open(self, limit):
        self._check()
        return sorted(self.sessions.values(), key=lambda s: s.auto_close_at)[:limit]

    def mark_event_once(self, event_id, *, now):
        self._check()
        expires = self.marks.get(event_id)
        if expires is not None and expires > now:
            return False
        self.marks[event_id] = now + self._ttl
        return True

    def purge_expired_marks(self, *, now):
        expired = [k for k, v in self.marks.items() if v <= now]
        for k in expired:
            del self.marks[k]
        return len(expired)

    def append_history(self, entry):
        self._check()
        self._next_entry_id += 1
        stored = replace(entry, entry_id=self._next_entry_id)
        items = self.history.setdefault(entry.identity, [])
        items.insert(0, stored)
        del items[self._cap:]
        return self._next_entry_id

    def recent_history(self, identity, limit):
        self._check()
        return list(self.history.get(identity, []))[:limit]

    def update_history_end(self, *, entry_id, end_at, reason, closing_event_id):
        for items in self.history.values():
            for i, e in enumerate(items):
                if e.entry_id == entry_id:
                    items[i] = replace(e, end_at=end_at, reason=reason, closing_event_id=closing_event_id)
                    return True
        return False

    def list_history(self, *, limit, identity=None):
        if identity is not None:
            return list(self.history.get(identity, []))[:limit]
        everything = [e for items in self.history.values() for e in items]
        everything.sort(key=lambda e: e.entry_id, reverse=True)
        return everything[:limit]

    def all_history(self):
        return self.list_history(limit=10_000)


class InMemoryAnomalyLog:
    def __init__(self, cap: int = 500):
        self.items = []
        self._cap = cap

    def append(self, anomaly):
        self.items.insert(0, anomaly)
        del self.items[self._cap:]

    def list_recent(self, limit):
        return self.items[:limit]

    def kinds(self):
        return [a.kind for a in self.items]


class FakeAttendanceClient:
    shadow = False

    def __init__(self, people: Optional[dict] = None):
        self.people = {"a@x.com": "emp-1"} if people is None else people
        self.periods = {}
        self.calls = []
        self.fail_patch = False
        self.fail_create = False
        self._next_id = 100

    def resolve_identity(self, identity):
        self.calls.append(("resolve", identity))
        return self.people.get(identity)

    def create_period(self, person_id, start_at, end_at=None):
        self.calls.append(("create", person_id, start_at, end_at))
        if self.fail_create:
            raise AttendanceClientError("create failed", status=503, transient=True)
        self._next_id += 1
        period_id = f"p-{self._next_id}"
        self.periods[period_id] = {"person": person_id, "start": start_at, "end": end_at}
        return period_id

    def patch_period_end(self, period_id, end_at):
        self.calls.append(("patch", period_id, end_at))
        if self.fail_patch:
            raise AttendanceClientError("patch failed", status=503, transient=True)
        self.periods[period_id]["end"] = end_at


@pytest.fixture()
def zone():
    return BERLIN


@pytest.fixture()
def store():
    return InMemorySessionStore()


@pytest.fixture()
def anomaly_log():
    return InMemoryAnomalyLog()


@pytest.fixture()
def client():
    return FakeAttendanceClient()


@pytest.fixture()
def engine(store, anomaly_log, client, zone):
    return ReconciliationEngine(store, anomaly_log, client, zone=zone, clock=lambda: FIXED_NOW)


@pytest.fixture()
def sweep(store, anomaly_log, client, zone):
    return AutoCloseSweep(store, anomaly_log, client, zone=zone, clock=lambda: FIXED_NOW)


@pytest.fixture()
def clock_event():
    """Build an attendance.inserted ClockEvent; ``at`` is an ISO string (UTC 'Z' or Berlin local)."""

    def make(event_id, direction, at, *, identity="a@x.com", event_type="attendance.inserted"):
        utc = isinstance(at, str) and at.endswith("Z")
        return ClockEvent(
            event_id=event_id,
            event_type=event_type,
            direction_raw=direction,
            identity_candidates=(identity,),
            time_inserted=at if utc else None,
            time_logged=None if utc else at,
        )

    return make
