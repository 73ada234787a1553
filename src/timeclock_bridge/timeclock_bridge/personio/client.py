from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Protocol, Tuple
from urllib.parse import quote
from zoneinfo import ZoneInfo

import requests

from ..common.datetime_utils import to_local_naive_iso
from ..core.exceptions import AttendanceClientError

logger = logging.getLogger(__name__)

TOKEN_REFRESH_MARGIN_SECONDS = 60
EMPLOYEE_CACHE_SECONDS = 24 * 3600
DEFAULT_TOKEN_TTL_SECONDS = 1800


class AttendanceClient(Protocol):
    """Contract the reconciliation engine needs from the HR system."""

    shadow: bool

    def resolve_identity(self, identity: str) -> Optional[str]:
        """Person handle for an identity, or None when there is no unique match."""

        raise NotImplementedError

    def create_period(self, person_id: str, start_at: datetime, end_at: Optional[datetime] = None) -> str:
        raise NotImplementedError

    def patch_period_end(self, period_id: str, end_at: datetime) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 6
    base_delay: float = 0.25
    max_delay: float = 10.0

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number ``attempt`` (1-indexed)."""
        return min(self.max_delay, self.base_delay * (2 ** attempt))


def _is_transient_status(status: int) -> bool:
    return status == 429 or status >= 500


class PersonioClient:
    """Personio REST client: token caching, employee lookup, attendance periods."""

    shadow = False

    def __init__(
        self,
        *,
        base_url: str,
        client_id: str,
        client_secret: str,
        zone: ZoneInfo,
        skip_approval: bool = True,
        timeout: float = 30.0,
        retry: RetryPolicy | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self._base_url = base_url.rstrip("/")
        self._client_id = client_id
        self._client_secret = client_secret
        self._zone = zone
        self._skip_approval = bool(skip_approval)
        self._timeout = float(timeout)
        self._retry = retry or RetryPolicy()
        self._http = session or requests.Session()
        self._sleep = sleep
        self._clock = clock
        self._token: Optional[Tuple[str, float]] = None
        self._employee_cache: Dict[str, Tuple[str, float]] = {}

    # -- auth -------------------------------------------------------------

    def _get_token(self) -> str:
        now = self._clock()
        if self._token and self._token[1] > now + TOKEN_REFRESH_MARGIN_SECONDS:
            return self._token[0]

        try:
            resp = self._http.post(
                f"{self._base_url}/v2/auth/token",
                json={"client_id": self._client_id, "client_secret": self._client_secret},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise AttendanceClientError(f"Personio token request failed: {exc}", transient=True) from exc

        if not resp.ok:
            raise AttendanceClientError(
                f"Personio token failed {resp.status_code}: {resp.text}",
                status=resp.status_code,
                transient=_is_transient_status(resp.status_code),
            )

        body = _json_or_none(resp) or {}
        data = body.get("data") if isinstance(body.get("data"), dict) else {}
        token = data.get("token") or body.get("token") or body.get("access_token")
        if not token:
            raise AttendanceClientError("Personio token missing in response")
        expires_in = float(data.get("expires_in") or body.get("expires_in") or DEFAULT_TOKEN_TTL_SECONDS)

        self._token = (str(token), now + expires_in)
        return self._token[0]

    # -- transport --------------------------------------------------------

    def _request_once(self, method: str, path: str, *, params=None, payload=None) -> Any:
        token = self._get_token()
        try:
            resp = self._http.request(
                method,
                f"{self._base_url}{path}",
                params=params,
                json=payload,
                headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise AttendanceClientError(f"Personio {method} {path} failed: {exc}", transient=True) from exc

        if resp.status_code == 401:
            # Token revoked early; fetch a fresh one on the next attempt.
            self._token = None
            raise AttendanceClientError(f"Personio unauthorized on {method} {path}", status=401, transient=True)

        if not resp.ok:
            raise AttendanceClientError(
                f"Personio error {resp.status_code} on {method} {path}: {resp.text}",
                status=resp.status_code,
                transient=_is_transient_status(resp.status_code),
            )
        return _json_or_none(resp)

    def _request(self, method: str, path: str, *, params=None, payload=None) -> Any:
        attempt = 0
        while True:
            try:
                return self._request_once(method, path, params=params, payload=payload)
            except AttendanceClientError as exc:
                attempt += 1
                if not exc.transient or attempt > self._retry.max_retries:
                    raise
                delay = self._retry.delay_for(attempt)
                logger.warning(
                    "personio.retry method=%s path=%s attempt=%s delay=%.2fs status=%s",
                    method, path, attempt, delay, exc.status,
                )
                self._sleep(delay)

    def _approval_params(self) -> Optional[dict]:
        return {"skip_approval": "true"} if self._skip_approval else None

    # -- AttendanceClient -------------------------------------------------

    def resolve_identity(self, identity: str) -> Optional[str]:
        now = self._clock()
        cached = self._employee_cache.get(identity)
        if cached and cached[1] > now:
            return cached[0]

        body = self._request("GET", "/v1/company/employees", params={"email": identity})
        employees = _extract_list(body)
        if len(employees) != 1:
            logger.warning("personio.employee_lookup_not_unique identity=%s count=%s", identity, len(employees))
            return None

        employee = employees[0]
        attributes = employee.get("attributes") if isinstance(employee.get("attributes"), dict) else {}
        raw_id = employee.get("id") or employee.get("employee_id") or _attribute_value(attributes.get("id"))
        if not raw_id:
            logger.warning("personio.employee_id_missing identity=%s", identity)
            return None

        person_id = str(raw_id)
        self._employee_cache[identity] = (person_id, now + EMPLOYEE_CACHE_SECONDS)
        return person_id

    def create_period(self, person_id: str, start_at: datetime, end_at: Optional[datetime] = None) -> str:
        payload = {
            "employee_id": person_id,
            "type": "WORK",
            "start": to_local_naive_iso(start_at, self._zone),
            "end": to_local_naive_iso(end_at, self._zone) if end_at else None,
        }
        body = self._request("POST", "/v2/attendance-periods", params=self._approval_params(), payload=payload)
        data = body.get("data") if isinstance(body, dict) and isinstance(body.get("data"), dict) else body or {}
        period_id = data.get("id") if isinstance(data, dict) else None
        if not period_id:
            raise AttendanceClientError("Personio create attendance: missing id")
        logger.info("personio.create_period.ok person=%s start=%s period=%s", person_id, payload["start"], period_id)
        return str(period_id)

    def patch_period_end(self, period_id: str, end_at: datetime) -> None:
        end_local = to_local_naive_iso(end_at, self._zone)
        self._request(
            "PATCH",
            f"/v2/attendance-periods/{quote(str(period_id), safe='')}",
            params=self._approval_params(),
            payload={"end": end_local},
        )
        logger.info("personio.patch_end.ok period=%s end=%s", period_id, end_local)


def _json_or_none(resp: requests.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return None


def _extract_list(body: Any) -> list:
    if isinstance(body, list):
        return [e for e in body if isinstance(e, dict)]
    if not isinstance(body, dict):
        return []
    for key in ("data", "employees"):
        value = body.get(key)
        if isinstance(value, list):
            return [e for e in value if isinstance(e, dict)]
        if isinstance(value, dict) and isinstance(value.get("employees"), list):
            return [e for e in value["employees"] if isinstance(e, dict)]
    return []


def _attribute_value(attr: Any) -> Any:
    if isinstance(attr, dict):
        return attr.get("value")
    return attr
