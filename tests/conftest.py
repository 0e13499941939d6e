"""
Shared fixtures for the provisioning clients test suite.
"""

import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from shared.retry import RetryConfig


class FakeClock:
    """Manually advanced clock for freshness tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class DummyMetrics:
    """Minimal metrics collector stub."""

    def __init__(self):
        self.counters = []
        self.histograms = []
        self.errors = []

    def increment_counter(self, metric_name: str, **labels):
        self.counters.append((metric_name, labels))

    def observe_histogram(self, metric_name: str, value: float, **labels):
        self.histograms.append((metric_name, value, labels))

    def record_error(self, error_type: str, service: Optional[str] = None):
        self.errors.append((error_type, service))

    def count(self, metric_name: str, **labels) -> int:
        return sum(
            1 for name, recorded in self.counters
            if name == metric_name and all(recorded.get(k) == v for k, v in labels.items())
        )


class FakeBackend:
    """Route table served through ``httpx.MockTransport``; records every request."""

    def __init__(self):
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []

    def on(self, method: str, path: str, status_code: int = 200, json_body: Any = None,
           headers: Optional[Dict[str, str]] = None) -> None:
        def _respond(request: httpx.Request) -> httpx.Response:
            if json_body is None:
                return httpx.Response(status_code, headers=headers)
            return httpx.Response(status_code, content=json.dumps(json_body), headers={
                "content-type": "application/json", **(headers or {})
            })
        self.routes[f"{method} {path}"] = _respond

    def handler(self, method: str, path: str, func: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[f"{method} {path}"] = func

    def calls(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r.method == method and r.url.path == path)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(f"{request.method} {request.url.path}")
        if route is None:
            return httpx.Response(404, json={"code": "ResourceNotFound", "message": f"{request.url.path} does not exist"})
        return route(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def clock():
    """Fake clock starting at an arbitrary instant."""
    return FakeClock()


@pytest.fixture
def metrics():
    """Recording metrics stub."""
    return DummyMetrics()


@pytest.fixture
def backend():
    """Fake backend with no routes."""
    return FakeBackend()


@pytest.fixture
def fast_retry():
    """Retry config that never sleeps."""
    return RetryConfig(max_attempts=3, base_delay=0.0, max_delay=0.0, jitter=False)
