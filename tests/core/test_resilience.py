"""Test cases for the resilient HTTP client."""

import httpx
import pytest

from app.core.resilience import (
    CircuitBreaker,
    CircuitConfig,
    CircuitState,
    ResilientHttpClient,
    RetryPolicy,
)


class CountingHandler:
    """MockTransport handler that replays a list of status codes."""

    def __init__(self, statuses):
        self.statuses = list(statuses)
        self.calls = 0

    def __call__(self, request):
        self.calls += 1
        status = self.statuses[min(self.calls, len(self.statuses)) - 1]
        return httpx.Response(status, json={"success": status < 400})


def make_client(handler, max_attempts=3, failure_threshold=100):
    return ResilientHttpClient(
        timeout_seconds=5,
        retry_policy=RetryPolicy(max_attempts=max_attempts, initial_backoff_seconds=0),
        circuit_breaker=CircuitBreaker(CircuitConfig(failure_threshold=failure_threshold)),
        transport=httpx.MockTransport(handler),
    )


class TestRetries:
    """Test cases for retry behaviour."""

    @pytest.mark.asyncio
    async def test_idempotent_request_retried(self):
        """Retryable statuses are retried until success."""
        handler = CountingHandler([503, 503, 200])
        client = make_client(handler)

        response = await client.request("GET", "https://registrar.test/check")

        assert response.status_code == 200
        assert handler.calls == 3
        await client.aclose()

    @pytest.mark.asyncio
    async def test_non_idempotent_request_sent_once(self):
        """Purchases and DNS writes get exactly one attempt."""
        handler = CountingHandler([503, 200])
        client = make_client(handler)

        with pytest.raises(httpx.HTTPStatusError):
            await client.request(
                "POST", "https://registrar.test/create", idempotent=False
            )

        assert handler.calls == 1
        await client.aclose()

    @pytest.mark.asyncio
    async def test_allowed_status_returned(self):
        """Statuses in allowed_statuses are handed back for envelope decoding."""
        handler = CountingHandler([409])
        client = make_client(handler)

        response = await client.request(
            "POST", "https://registrar.test/create", allowed_statuses=(409,)
        )

        assert response.status_code == 409
        await client.aclose()


class TestCircuitBreaker:
    """Test cases for circuit breaking."""

    @pytest.mark.asyncio
    async def test_circuit_opens_and_short_circuits(self):
        handler = CountingHandler([500])
        client = make_client(handler, max_attempts=1, failure_threshold=2)

        for _ in range(2):
            with pytest.raises(httpx.HTTPStatusError):
                await client.request("GET", "https://registrar.test/x", circuit_key="reg")

        with pytest.raises(httpx.RequestError):
            await client.request("GET", "https://registrar.test/x", circuit_key="reg")

        assert handler.calls == 2
        assert client._circuit.state("reg") == CircuitState.OPEN
        await client.aclose()


class TestLogging:
    """Test cases for what request logs carry."""

    @pytest.mark.asyncio
    async def test_query_credentials_masked(self, caplog):
        """ApiKey sent as a query parameter never reaches the log."""
        client = make_client(CountingHandler([200]))

        with caplog.at_level("INFO", logger="app.core.resilience"):
            await client.request(
                "GET",
                "https://api.namecheap.com/xml.response",
                params={
                    "ApiUser": "apiuser",
                    "ApiKey": "secret-key",
                    "Command": "namecheap.domains.check",
                },
            )

        [record] = [
            r for r in caplog.records if r.getMessage() == "Registrar request completed"
        ]
        assert "secret-key" not in record.url
        assert "ApiKey=********" in record.url
        assert "Command=namecheap.domains.check" in record.url
        await client.aclose()
