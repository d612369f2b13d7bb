from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from adminpanel_core.app import create_app

SHARED_URL = "http://shared.test"
PLAN_URL = "http://plan.test"
SHARED_KEY = "sv-secret-key"
PLAN_KEY = "pc-secret-key"
ADMIN_PASSWORD = "hunter2"

_ENV_NAMES = (
    "ADMINPANEL_CONFIG",
    "SHARED_VARIABLES_SERVICE_URL",
    "SHARED_VARIABLES_SERVICE_API_KEY",
    "PLAN_CONTROLLER_SERVICE_URL",
    "PLAN_CONTROLLER_SERVICE_API_KEY",
    "PLAN_CONTROLLER_HEALTH_REQUIRES_API_KEY",
    "ADMIN_PASSWORD",
    "NEXT_PUBLIC_ADMIN_PASSWORD",
    "ADMINPANEL_SESSION_SECRET",
    "ADMINPANEL_SESSION_MAX_AGE_S",
    "ADMINPANEL_COOKIE_SECURE",
    "ADMINPANEL_UPSTREAM_TIMEOUT_S",
    "ADMINPANEL_HEALTH_POLL_S",
)


@dataclass
class RecordedCall:
    method: str
    host: str
    path: str
    headers: dict[str, str]
    json: Any


Responder = Callable[[httpx.Request], httpx.Response]


class FakeUpstream:
    """Routes requests by (method, host, raw path) and records every call."""

    def __init__(self) -> None:
        self.calls: list[RecordedCall] = []
        self._routes: dict[tuple[str, str, str], Responder] = {}

    def route(
        self,
        method: str,
        url: str,
        *,
        status: int = 200,
        json_body: Any | None = None,
        content: bytes | None = None,
        raises: Exception | None = None,
    ) -> None:
        parsed = httpx.URL(url)

        def _respond(request: httpx.Request) -> httpx.Response:
            if raises is not None:
                raise raises
            if content is not None:
                return httpx.Response(status, content=content)
            if json_body is None:
                return httpx.Response(status)
            return httpx.Response(status, json=json_body)

        self._routes[(method, parsed.host, parsed.raw_path.decode("ascii"))] = _respond

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        raw_path = request.url.raw_path.decode("ascii")
        self.calls.append(
            RecordedCall(
                method=request.method,
                host=request.url.host,
                path=raw_path,
                headers=dict(request.headers),
                json=body,
            )
        )
        responder = self._routes.get((request.method, request.url.host, raw_path))
        if responder is None:
            return httpx.Response(404, json={"message": "no fake route"})
        return responder(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def gateway_env(monkeypatch) -> None:
    for name in _ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SHARED_VARIABLES_SERVICE_URL", SHARED_URL)
    monkeypatch.setenv("SHARED_VARIABLES_SERVICE_API_KEY", SHARED_KEY)
    monkeypatch.setenv("PLAN_CONTROLLER_SERVICE_URL", PLAN_URL)
    monkeypatch.setenv("PLAN_CONTROLLER_SERVICE_API_KEY", PLAN_KEY)
    monkeypatch.setenv("ADMIN_PASSWORD", ADMIN_PASSWORD)


@pytest.fixture
def client(gateway_env, upstream: FakeUpstream) -> Iterator[TestClient]:
    with TestClient(create_app(upstream_transport=upstream.transport())) as c:
        yield c


def login(client: TestClient) -> None:
    r = client.post("/ui/login", data={"password": ADMIN_PASSWORD}, follow_redirects=False)
    assert r.status_code == 303
    assert client.cookies.get("auth_token")
