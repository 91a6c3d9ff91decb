"""
bosbase_sdk test configuration.

No test talks to a real server: HTTP goes through httpx.MockTransport and
time comes from a frozen Clock.
"""
from __future__ import annotations

import base64
import json
import os
from typing import Any, Callable

import httpx
import pytest

# ── Deterministic config for all tests ─────────────────────────────────────
# Must be set before any bosbase_sdk config is read.

os.environ.setdefault("BOSBASE_URL", "http://test.local")
os.environ.setdefault("BOSBASE_LANG", "en-US")
os.environ.setdefault("BOSBASE_LOG_LEVEL", "WARNING")

NOW = 1_700_000_000


# ── Fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def reset_config():
    from bosbase_sdk.tier0_core.config import _reset_config
    _reset_config()
    yield
    _reset_config()


@pytest.fixture
def now() -> int:
    return NOW


@pytest.fixture
def frozen_clock():
    from bosbase_sdk.tier1_runtime.clock import Clock
    return Clock.frozen(NOW)


@pytest.fixture
def auth_store(frozen_clock):
    from bosbase_sdk.tier1_runtime.auth_store import AuthStore
    return AuthStore(clock=frozen_clock)


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Build an unsigned compact token carrying the given claims."""
    def _make(claims: Any = None, *, raw_payload: str | None = None) -> str:
        header = _b64url(json.dumps({"alg": "HS256", "typ": "JWT"}).encode())
        if raw_payload is None:
            payload = _b64url(json.dumps(claims if claims is not None else {}).encode())
        else:
            payload = raw_payload
        return f"{header}.{payload}.signature"
    return _make


class RecordingTransport:
    """MockTransport handler that records requests and replays canned responses."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: list[httpx.Response | BaseException] = []

    def queue(self, response: httpx.Response | BaseException) -> None:
        self.responses.append(response)

    def queue_json(self, status: int, data: Any) -> None:
        self.queue(httpx.Response(status, json=data))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            return httpx.Response(200, json={})
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
async def client(transport, auth_store):
    from bosbase_sdk.tier3_platform.client import BosbaseClient
    http = httpx.AsyncClient(transport=httpx.MockTransport(transport))
    pb = BosbaseClient("http://test.local/", auth_store=auth_store, http_client=http)
    yield pb
    await http.aclose()
