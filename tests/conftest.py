"""Shared fakes and fixtures for the test suite."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping

import pytest

from csp_recon import config as config_mod
from csp_recon.models import network

# ── Fake browser session ────────────────────────────────────────


class FakeBrowserSession:
    """Stands in for ``BrowserSession``: replays scripted events on navigation."""

    def __init__(
        self,
        events: Iterable[network.RequestEvent | network.ResponseEvent | Mapping[str, object]] = (),
        nav_result: network.NavigationResult | None = None,
        launch_error: Exception | None = None,
        nav_delay: float = 0.0,
        idle_delay: float = 0.0,
    ) -> None:
        self.events: asyncio.Queue = asyncio.Queue()
        self._scripted = list(events)
        self._nav_result = nav_result or network.NavigationResult(success=True, status_code=200)
        self._launch_error = launch_error
        self._nav_delay = nav_delay
        self._idle_delay = idle_delay
        self._stopped = False
        self.launched = False
        self.closed = False
        self.navigated_to: str | None = None
        self.idle_waits: list[int] = []

    async def launch_browser(self, headless: bool = True) -> None:
        if self._launch_error is not None:
            raise self._launch_error
        self.launched = True

    async def navigate_to(self, url: str, timeout: int = 30000) -> network.NavigationResult:
        self.navigated_to = url
        for event in self._scripted:
            self.events.put_nowait(event)
        if self._nav_delay:
            await asyncio.sleep(self._nav_delay)
        return self._nav_result

    async def wait_for_network_idle(self, timeout: int = 2000) -> bool:
        self.idle_waits.append(timeout)
        if self._idle_delay:
            await asyncio.sleep(self._idle_delay)
        return True

    def stop_observing(self) -> None:
        if not self._stopped:
            self._stopped = True
            self.events.put_nowait(None)

    async def close(self) -> None:
        self.stop_observing()
        self.closed = True


# ── Fake aiohttp session ────────────────────────────────────────


class FakeResponse:
    """Minimal stand-in for ``aiohttp.ClientResponse``."""

    def __init__(self, status: int = 200, body: str | bytes = b"") -> None:
        self.status = status
        self._body = body.encode() if isinstance(body, str) else body

    async def read(self) -> bytes:
        return self._body


class _FakeRequestContext:
    def __init__(self, outcome: FakeResponse | BaseException) -> None:
        self._outcome = outcome

    async def __aenter__(self) -> FakeResponse:
        if isinstance(self._outcome, BaseException):
            raise self._outcome
        return self._outcome

    async def __aexit__(self, *exc_info: object) -> bool:
        return False


class FakeHttpSession:
    """Answers ``get(url)`` from a URL → response/exception table."""

    def __init__(self, outcomes: Mapping[str, FakeResponse | BaseException] | None = None) -> None:
        self._outcomes = dict(outcomes or {})
        self.requested: list[str] = []
        self.closed = False

    def get(self, url: str) -> _FakeRequestContext:
        self.requested.append(url)
        return _FakeRequestContext(self._outcomes.get(url, FakeResponse(status=404)))

    async def __aenter__(self) -> FakeHttpSession:
        return self

    async def __aexit__(self, *exc_info: object) -> bool:
        self.closed = True
        return False


# ── Fake fetcher ────────────────────────────────────────────────


class FakeFetcher:
    """Returns canned domain sets per URL; ``None`` means the fetch fails."""

    def __init__(self, results: Mapping[str, Iterable[str] | None], delays: Mapping[str, float] | None = None) -> None:
        self._results = dict(results)
        self._delays = dict(delays or {})
        self.calls: list[str] = []

    async def __call__(self, url: str, http_session: object) -> network.FetchResult:
        self.calls.append(url)
        await asyncio.sleep(self._delays.get(url, 0))
        domains = self._results.get(url)
        if domains is None:
            return network.FetchResult(url=url, error="connection refused")
        return network.FetchResult(url=url, domains=set(domains))


# ── Fixtures ────────────────────────────────────────────────────


@pytest.fixture()
def fast_config() -> config_mod.ReconConfig:
    """Config with no settle delay and a short deadline."""
    return config_mod.ReconConfig(settle_ms=0, timeout_seconds=5)


@pytest.fixture()
def sample_csp_value() -> str:
    """A CSP value with one host source and one script URL."""
    return "default-src 'self' https://cdn.example.com; script-src https://scripts.example.com/app.js"


@pytest.fixture()
def csp_response(sample_csp_value: str) -> network.ResponseEvent:
    """A document response carrying a CSP header."""
    return network.ResponseEvent(
        url="https://example.com/",
        status=200,
        headers=[
            ("content-type", "text/html"),
            ("content-security-policy", sample_csp_value),
        ],
    )
