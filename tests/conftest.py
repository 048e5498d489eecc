from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Callable

import httpx
import pytest

from adapters.http_client import build_async_client
from adapters.transport_http import TransportHTTP
from core.config import AppSettings
from fake_keys import ADMIN_XPUB, FakeSigningKey

SERVER_URL = "http://bux.test/v1"

Reply = Any


@dataclass
class FakeServer:
    """Route table for `httpx.MockTransport`: `(method, path) -> reply`.

    A reply is an `httpx.Response`, a callable taking the request, or any
    JSON value (sent with status 200).
    """

    routes: dict[tuple[str, str], Reply] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = (request.method, request.url.path)
        if route not in self.routes:
            return httpx.Response(404, json={"message": "route not found"})
        reply = self.routes[route]
        if callable(reply):
            reply = reply(request)
        if isinstance(reply, httpx.Response):
            return reply
        return httpx.Response(200, json=reply)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last.content)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("BUX_ADMIN_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(_env_file=None, server_url=SERVER_URL)


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def admin_key() -> FakeSigningKey:
    return FakeSigningKey(xpub=ADMIN_XPUB)


@pytest.fixture
def make_transport(
    settings: AppSettings, server: FakeServer, admin_key: FakeSigningKey
) -> Callable[..., TransportHTTP]:
    def factory(**overrides: Any) -> TransportHTTP:
        client = build_async_client(settings, transport=httpx.MockTransport(server.handler))
        kwargs: dict[str, Any] = {"admin_xpriv": admin_key, "settings": settings, "client": client}
        kwargs.update(overrides)
        return TransportHTTP(SERVER_URL, **kwargs)

    return factory
