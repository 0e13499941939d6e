"""
Unit tests for the JSON REST transport.
"""

import base64
import json

import httpx
import pytest

from provisioning_clients.adapters import RestClient
from provisioning_clients.adapters.rest_client import RETRIES_EXCEEDED, SERVICE_UNAVAILABLE
from shared.circuit_breaker import CircuitBreaker


class TestRestClient:
    """Test cases for RestClient."""

    @pytest.fixture
    def client(self, backend, fast_retry, metrics):
        """Create a RestClient served by the fake backend."""
        return RestClient(
            "http://backend.test",
            "admin",
            "secret",
            name="test",
            retry_config=fast_retry,
            metrics=metrics,
            transport=backend.transport,
        )

    @pytest.mark.asyncio
    async def test_successful_json_response(self, client, backend):
        """Test a 2xx JSON body is decoded and returned."""
        backend.on("GET", "/packages", json_body=[{"name": "small"}])

        result = await client.get("/packages")

        assert result.ok
        assert result.body == [{"name": "small"}]

    @pytest.mark.asyncio
    async def test_basic_auth_and_accept_headers(self, client, backend):
        """Test credentials and the JSON accept header are sent."""
        backend.on("GET", "/ping", json_body={})

        await client.get("/ping", headers={"User": "c1"})

        request = backend.requests[0]
        expected = "Basic " + base64.b64encode(b"admin:secret").decode()
        assert request.headers["authorization"] == expected
        assert request.headers["accept"] == "application/json"
        assert request.headers["user"] == "c1"

    @pytest.mark.asyncio
    async def test_query_and_json_body(self, client, backend):
        """Test query parameters and JSON bodies are encoded."""
        backend.on("POST", "/machines", status_code=201, json_body={"ok": True})

        await client.post("/machines", body={"alias": "web"}, query={"dry": "1"})

        request = backend.requests[0]
        assert request.url.params["dry"] == "1"
        assert json.loads(request.content) == {"alias": "web"}

    @pytest.mark.asyncio
    async def test_no_content(self, client, backend):
        """Test a 204 yields an empty body."""
        backend.on("DELETE", "/keys/k1", status_code=204)

        result = await client.delete("/keys/k1")

        assert result.ok
        assert result.body is None

    @pytest.mark.asyncio
    async def test_error_payload_returned_not_raised(self, client, backend):
        """Test a non-2xx response is returned as a parsed backend error."""
        backend.on("GET", "/packages/g9", status_code=409, json_body={
            "code": "UnknownPackageError",
            "message": "package g9 not found.",
        })

        result = await client.get("/packages/g9")

        assert not result.ok
        assert result.error.status_code == 409
        assert result.error.code == "UnknownPackageError"
        assert result.body is None

    @pytest.mark.asyncio
    async def test_expect_overrides_success_statuses(self, client, backend):
        """Test ``expect`` widens and narrows the accepted statuses."""
        backend.on("DELETE", "/keys/gone", status_code=410, json_body={"code": "Gone"})
        backend.on("GET", "/accepted", status_code=202, json_body={})

        gone = await client.delete("/keys/gone", expect=(200, 204, 410))
        accepted = await client.get("/accepted", expect=(200,))

        assert gone.ok
        assert not accepted.ok
        assert accepted.error.status_code == 202

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, client, backend):
        """Test a transient 503 is retried."""
        responses = iter([httpx.Response(503), httpx.Response(200, json={"ok": True})])
        backend.handler("GET", "/flaky", lambda request: next(responses))

        result = await client.get("/flaky")

        assert result.ok
        assert backend.calls("GET", "/flaky") == 2

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, client, backend, metrics):
        """Test persistent 503s surface as a retries-exceeded error."""
        backend.on("GET", "/down", status_code=503)

        result = await client.get("/down")

        assert not result.ok
        assert result.error.code == RETRIES_EXCEEDED
        assert result.error.status_code == 503
        assert backend.calls("GET", "/down") == 3
        assert metrics.count("backend_requests_total", method="GET", status_code="503") == 1

    @pytest.mark.asyncio
    async def test_network_errors_retried(self, client, backend):
        """Test connection failures are retried and then reported."""
        def _fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        backend.handler("GET", "/unreachable", _fail)

        result = await client.get("/unreachable")

        assert result.error.code == RETRIES_EXCEEDED
        assert result.error.status_code is None
        assert backend.calls("GET", "/unreachable") == 3

    @pytest.mark.asyncio
    async def test_open_breaker_blocks_calls(self, backend, fast_retry):
        """Test an open breaker short-circuits without reaching the backend."""
        backend.on("GET", "/down", status_code=503)
        client = RestClient(
            "http://backend.test",
            retry_config=fast_retry,
            circuit_breaker=CircuitBreaker(failure_threshold=1, recovery_timeout=60, name="test"),
            transport=backend.transport,
        )

        await client.get("/down")
        result = await client.get("/down")

        assert result.error.code == SERVICE_UNAVAILABLE
        assert result.error.status_code == 503
        assert backend.calls("GET", "/down") == 3
        await client.close()

    def test_base_url_required(self):
        """Test a client cannot be built without a base URL."""
        with pytest.raises(ValueError):
            RestClient("")
