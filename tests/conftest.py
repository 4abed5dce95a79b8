"""Shared fakes for the unit tests."""

from __future__ import annotations

import json
import time
from typing import Any

import jwt
import pytest

from smeta_admin.config import AppSettings
from smeta_admin.models import Role, Session


def make_token(expires_in: float = 3600, **claims: Any) -> str:
    payload = {"sub": "user-1", "exp": int(time.time() + expires_in), **claims}
    return jwt.encode(payload, "test-secret", algorithm="HS256")


def make_session(role: Role | str = Role.DIREKTOR, expires_in: float = 3600, **overrides: Any) -> Session:
    values: dict[str, Any] = {
        "user_id": "user-1",
        "name": "Test User",
        "phone": "+998901234567",
        "role": Role.parse(role),
        "access_token": make_token(expires_in),
        "refresh_token": "refresh-1",
        "org_id": "org-1",
    }
    values.update(overrides)
    return Session(**values)


# ── Fakes ────────────────────────────────────────────────────────────

class FakeStorage:
    """In-memory stand-in for SessionStorage."""

    def __init__(self, payload: dict[str, Any] | None = None):
        self.payload = payload
        self.saves = 0
        self.clears = 0

    def load(self) -> dict[str, Any] | None:
        return dict(self.payload) if self.payload is not None else None

    def save(self, payload: dict[str, Any]) -> None:
        self.saves += 1
        self.payload = dict(payload)

    def clear(self) -> None:
        self.clears += 1
        self.payload = None


class ManualRunner:
    """Collects background jobs so a test decides when (and in which order) they finish."""

    def __init__(self):
        self.jobs: list = []

    def __call__(self, job) -> None:
        self.jobs.append(job)

    def run(self, index: int) -> None:
        self.jobs[index]()

    def run_all(self) -> None:
        for job in list(self.jobs):
            job()


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None, text: str | None = None):
        self.status_code = status_code
        self._body = body
        if text is not None:
            self.text = text
        elif body is not None:
            self.text = json.dumps(body)
        else:
            self.text = ""
        self.content = self.text.encode("utf-8")
        self.reason = "Fake"

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        if self._body is None:
            return json.loads(self.text)
        return self._body


class FakeRequestsSession:
    """Mimic requests.Session.request(); replies are consumed in order.

    A callable reply is invoked while the request is "in flight" and its
    return value is used as the response.
    """

    def __init__(self, *replies: Any):
        self._replies = list(replies)
        self.calls: list[dict[str, Any]] = []
        self.headers: dict[str, str] = {}

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        reply = self._replies.pop(0)
        if callable(reply) and not isinstance(reply, FakeResponse):
            reply = reply()
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture()
def settings(tmp_path) -> AppSettings:
    return AppSettings(
        api_url="http://api.test",
        login_path="/vendor/auth/login",
        refresh_path="/vendor/auth/refresh",
        profile_path="/vendor/auth/profile",
        projects_path="/vendor/projects",
        admin_path="/admin",
        timeout_seconds=5,
        retry_attempts=0,
        session_store_path=str(tmp_path / "session.bin"),
        log_level="INFO",
    )


@pytest.fixture()
def runner() -> ManualRunner:
    return ManualRunner()
