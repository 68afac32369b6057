"""Pytest configuration and shared fixtures for repository test runs."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from urllib.parse import unquote

import httpx
import pytest

CREDENTIAL_ENV = {
    "CLOUDFLARE_ACCOUNT_ID": "account-123",
    "CLOUDFLARE_KV_NS_ID": "namespace-456",
    "CLOUDFLARE_API_TOKEN": "token-789",
}


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


class FakeKVNamespace:
    """In-memory KV namespace served through ``httpx.MockTransport``.

    Keys listed but absent from ``values`` answer 404 at fetch time.
    """

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.listed_keys: list[str] | None = None
        self.failing_keys: set[str] = set()
        self.list_status = 200
        self.requests: list[httpx.Request] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    @property
    def value_requests(self) -> list[httpx.Request]:
        return [request for request in self.requests if "/values/" in request.url.path]

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        raw_path = request.url.raw_path.decode("ascii")
        if raw_path.endswith("/keys"):
            return self._list_response()
        key = unquote(raw_path.rsplit("/values/", 1)[1])
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.01)
        finally:
            self.in_flight -= 1
        if key in self.failing_keys:
            return httpx.Response(500)
        if key not in self.values:
            return httpx.Response(404)
        return httpx.Response(200, text=self.values[key])

    def _list_response(self) -> httpx.Response:
        if self.list_status != 200:
            return httpx.Response(self.list_status)
        keys = self.listed_keys if self.listed_keys is not None else list(self.values)
        payload = {"result": [{"name": key} for key in keys], "success": True}
        return httpx.Response(200, json=payload)


@pytest.fixture
def fake_kv() -> FakeKVNamespace:
    """Provide an empty fake KV namespace."""
    return FakeKVNamespace()


@pytest.fixture
def credential_env() -> dict[str, str]:
    """Provide environment values for the default credential variables."""
    return dict(CREDENTIAL_ENV)
