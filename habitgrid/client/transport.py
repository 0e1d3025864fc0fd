"""HTTP transport for the habits JSON API (requests based)."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, Optional

import requests

from habitgrid.domains.habits.errors import (
    HabitError,
    HabitValidationError,
    InvalidReference,
    NotFoundOrUnauthorized,
    TransientMutationFailure,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


def _iso(value) -> str:
    return value.isoformat() if isinstance(value, date) else str(value)


class HabitsTransport:
    """Thin wrapper over ``requests.Session`` that speaks the ``{"ok": ...}`` envelope.

    Error envelopes are turned back into the domain exceptions; network
    failures and 5xx responses become ``TransientMutationFailure``.
    """

    def __init__(
        self,
        base_url: str,
        access_token: Optional[str] = None,
        csrf_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.csrf_token = csrf_token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        if self.csrf_token:
            headers["X-CSRF-Token"] = self.csrf_token
        return headers

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise TransientMutationFailure(str(exc)) from exc

        if resp.status_code >= 500:
            logger.warning("%s %s returned %s", method, path, resp.status_code)
            raise TransientMutationFailure(f"server error {resp.status_code}")
        try:
            body = resp.json()
        except ValueError as exc:
            raise TransientMutationFailure(f"unreadable response ({resp.status_code})") from exc

        if resp.ok and body.get("ok", True):
            return body
        raise self._error_from(resp.status_code, body)

    @staticmethod
    def _error_from(status: int, body: Dict[str, Any]) -> HabitError:
        code = body.get("error")
        if code == "validation_error":
            return HabitValidationError(body.get("message"), details=body.get("details"))
        if code == "not_found" or status == 404:
            return NotFoundOrUnauthorized()
        if code == "invalid_reference":
            return InvalidReference()
        return HabitError(f"{status} {code or 'error'}")

    # auth

    def login(self, email: str, password: str) -> Dict[str, Any]:
        body = self._request("POST", "/auth/login", json={"email": email, "password": password})
        self.access_token = body.get("access_token")
        self.csrf_token = body.get("csrf_token")
        return body

    # habits API

    def fetch_week(self, start, end) -> Dict[str, Any]:
        return self._request(
            "GET", "/api/habits/week", params={"start_date": _iso(start), "end_date": _iso(end)}
        )

    def toggle(self, habit_id: int, day) -> Dict[str, Any]:
        return self._request(
            "POST", "/api/habits/completions/toggle", json={"habit_id": habit_id, "date": _iso(day)}
        )

    def reorder(self, ordered_ids: Iterable[int]) -> Dict[str, Any]:
        return self._request("POST", "/api/habits/reorder", json={"ordered_ids": list(ordered_ids)})

    def create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/api/habits", json=fields)

    def update(self, habit_id: int, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PATCH", f"/api/habits/{habit_id}", json=fields)

    def archive(self, habit_id: int) -> Dict[str, Any]:
        return self._request("POST", f"/api/habits/{habit_id}/archive")
