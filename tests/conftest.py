import asyncio
import json
import time
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from typer.testing import CliRunner

from pdcli.domain.models.common import Credential
from pdcli.infrastructure.config import settings


class FakePagerDuty:
    """Scriptable stand-in for the PagerDuty API, served through httpx.MockTransport.

    ``routes`` maps a path to a list of responses returned in order (the
    last one repeats). Every call is recorded with its monotonic timestamp,
    and the number of requests in flight is tracked. ``delays`` overrides
    the response latency for individual paths.
    """

    def __init__(self, latency: float = 0.0, delays: Optional[Dict[str, float]] = None):
        self.latency = latency
        self.delays = delays or {}
        self.routes: Dict[str, List[httpx.Response]] = {}
        self.handler: Optional[Callable[[httpx.Request], httpx.Response]] = None
        self.calls: List[httpx.Request] = []
        self.call_times: Dict[str, List[float]] = {}
        self.in_flight = 0
        self.max_in_flight = 0

    def add(self, path: str, *responses: httpx.Response) -> None:
        self.routes[path] = list(responses)

    def calls_to(self, path: str) -> int:
        return len(self.call_times.get(path, []))

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        self.call_times.setdefault(request.url.path, []).append(time.monotonic())
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(request.url.path, self.latency)
            if delay:
                await asyncio.sleep(delay)
            if self.handler:
                return self.handler(request)
            queue = self.routes.get(request.url.path)
            if not queue:
                return httpx.Response(404, json={"error": {"message": "Not Found", "code": 2100}})
            scripted = queue.pop(0) if len(queue) > 1 else queue[0]
            return httpx.Response(scripted.status_code, headers=scripted.headers, content=scripted.content)
        finally:
            self.in_flight -= 1

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def echo_put(request: httpx.Request) -> httpx.Response:
    """Responds to a PUT with the body it received, like PagerDuty does for updates."""
    return httpx.Response(200, json=json.loads(request.content))


@pytest.fixture
def fake_api() -> FakePagerDuty:
    return FakePagerDuty()


@pytest.fixture
def credential() -> Credential:
    return Credential("u+abcdefghijklmnopqrstuvwxyz")


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolate_config(monkeypatch, tmp_path):
    """Keeps tests away from the developer's real config, .env and token."""
    for name in settings.TOKEN_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(settings, "DEFAULT_CONFIG_FILE", tmp_path / "missing.yaml")
    monkeypatch.setattr(settings, "_loaded", True)
    monkeypatch.setattr(settings, "_config", {})
    yield
    settings.clear_test_config()


def payload_of(request: httpx.Request) -> Any:
    return json.loads(request.content) if request.content else None
