"""
Generic JSON REST transport shared by the backend clients.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, TYPE_CHECKING

import httpx

from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException
from shared.logging import get_logger
from shared.retry import RetryConfig, RetryError, retry_on_exception

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


RETRIES_EXCEEDED = "RetriesExceeded"
SERVICE_UNAVAILABLE = "ServiceUnavailable"


@dataclass
class BackendError:
    """Raw failure as reported by a backend, before translation."""

    status_code: Optional[int] = None
    code: Optional[str] = None
    message: Optional[str] = None
    messages: List[str] = field(default_factory=list)
    errors: List[Any] = field(default_factory=list)
    body: Any = None

    @classmethod
    def from_response(cls, status_code: int, body: Any) -> "BackendError":
        """Build from an error response body of the form ``{code, message, messages[]}``."""
        if isinstance(body, Mapping):
            return cls(
                status_code=status_code,
                code=body.get("code"),
                message=body.get("message"),
                messages=list(body.get("messages") or []),
                errors=list(body.get("errors") or []),
                body=body,
            )
        return cls(status_code=status_code, message=body if isinstance(body, str) and body else None, body=body)


class RestResult(NamedTuple):
    """Outcome of one request: either ``error`` or ``body`` is meaningful."""

    error: Optional[BackendError]
    body: Any
    headers: Mapping[str, str]

    @property
    def ok(self) -> bool:
        return self.error is None


class _RetryableStatus(Exception):
    """Backend answered with a status worth retrying (>= 503)."""

    def __init__(self, response: httpx.Response):
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


class RestClient:
    """Async JSON client for one backend.

    Backend failures are returned inside :class:`RestResult`, never raised.
    Network errors and 503+ responses are retried, and the whole call runs
    behind a circuit breaker owned by this instance.
    """

    def __init__(
        self,
        base_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        *,
        name: str = "backend",
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 10.0,
        retry_config: Optional[RetryConfig] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        metrics: Optional["MetricsCollector"] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not base_url:
            raise ValueError("base_url is required")

        self.base_url = base_url.rstrip('/')
        self.name = name
        self.logger = get_logger(f"clients.{name}.transport")
        self.metrics = metrics
        self.retry_config = retry_config or RetryConfig(
            max_attempts=3,
            base_delay=0.5,
            max_delay=5.0,
            exponential_base=2.0,
            jitter=True
        )
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=30.0,
            name=name
        )

        auth = (username, password) if username and password else None
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=auth,
            headers={"Accept": "application/json", **(headers or {})},
            timeout=timeout,
            transport=transport,
        )
        self._send_with_retry = retry_on_exception(
            (httpx.TransportError, _RetryableStatus),
            config=self.retry_config
        )(self._send)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        body: Any = None,
        query: Optional[Dict[str, Any]] = None,
        expect: Optional[Iterable[int]] = None,
    ) -> RestResult:
        """Issue one request and return its result or backend error."""
        start = time.perf_counter()
        try:
            response = await self.circuit_breaker.call(
                self._send_with_retry, method, path, headers, body, query
            )
        except CircuitBreakerOpenException as exc:
            self.logger.warning("Backend call blocked", method=method, path=path, error=str(exc))
            return RestResult(
                BackendError(status_code=503, code=SERVICE_UNAVAILABLE, message=str(exc)),
                None,
                httpx.Headers()
            )
        except RetryError as exc:
            last = exc.last_exception
            status_code = last.response.status_code if isinstance(last, _RetryableStatus) else None
            self.logger.error(
                "Backend call failed after retries",
                method=method,
                path=path,
                attempts=exc.attempts,
                status_code=status_code,
                error=str(last)
            )
            self._record(method, status_code or 0, time.perf_counter() - start)
            return RestResult(
                BackendError(status_code=status_code, code=RETRIES_EXCEEDED, message=str(last)),
                None,
                httpx.Headers()
            )

        self._record(method, response.status_code, time.perf_counter() - start)
        payload = self._decode(response)

        if not self._expected(response.status_code, expect):
            error = BackendError.from_response(response.status_code, payload)
            self.logger.info(
                "Backend returned error",
                method=method,
                path=path,
                status_code=response.status_code,
                code=error.code
            )
            return RestResult(error, None, response.headers)

        self.logger.debug("Backend call succeeded", method=method, path=path, status_code=response.status_code)
        return RestResult(None, payload, response.headers)

    async def get(self, path: str, **kwargs) -> RestResult:
        return await self.request("GET", path, **kwargs)

    async def put(self, path: str, body: Any = None, **kwargs) -> RestResult:
        return await self.request("PUT", path, body=body, **kwargs)

    async def post(self, path: str, body: Any = None, **kwargs) -> RestResult:
        return await self.request("POST", path, body=body, **kwargs)

    async def delete(self, path: str, **kwargs) -> RestResult:
        return await self.request("DELETE", path, **kwargs)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RestClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _send(
        self,
        method: str,
        path: str,
        headers: Optional[Dict[str, str]],
        body: Any,
        query: Optional[Dict[str, Any]],
    ) -> httpx.Response:
        kwargs: Dict[str, Any] = {"headers": headers, "params": query}
        if isinstance(body, (dict, list)):
            kwargs["json"] = body
        elif body is not None:
            kwargs["content"] = str(body)

        response = await self._client.request(method, path, **kwargs)
        if response.status_code >= 503:
            raise _RetryableStatus(response)
        return response

    @staticmethod
    def _expected(status_code: int, expect: Optional[Iterable[int]]) -> bool:
        if expect is None:
            return 200 <= status_code < 300
        return status_code in set(expect)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _record(self, method: str, status_code: int, duration: float) -> None:
        if not self.metrics:
            return
        self.metrics.increment_counter("backend_requests_total", method=method, status_code=str(status_code))
        self.metrics.observe_histogram("backend_request_duration_seconds", duration, method=method)
