from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import httpx

from app.core.config import settings
from app.core.logging import mask_query_secrets, sanitize_log_data

logger = logging.getLogger(__name__)


class CircuitState:
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitConfig:
    failure_threshold: int = 3
    recovery_timeout_seconds: int = 60
    half_open_probe_attempts: int = 1


@dataclass
class _Circuit:
    state: str = CircuitState.CLOSED
    failures: int = 0
    opened_at: float = 0.0
    probes: int = 0


class CircuitBreaker:
    """
    Per-key circuit breaker; one key per registrar API.

    After ``failure_threshold`` consecutive failures the circuit opens and
    requests are refused until ``recovery_timeout_seconds`` pass. Then a
    limited number of probes decide whether it closes again.
    """

    def __init__(self, config: CircuitConfig | None = None):
        self._config = config or CircuitConfig(
            failure_threshold=settings.CB_FAILURE_THRESHOLD,
            recovery_timeout_seconds=settings.CB_RECOVERY_TIMEOUT_SECONDS,
            half_open_probe_attempts=settings.CB_HALF_OPEN_PROBE_ATTEMPTS,
        )
        self._circuits: dict[str, _Circuit] = {}
        self._lock = asyncio.Lock()

    def state(self, key: str) -> str:
        circuit = self._circuits.get(key)
        return circuit.state if circuit else CircuitState.CLOSED

    async def allow_request(self, key: str) -> bool:
        async with self._lock:
            circuit = self._circuits.setdefault(key, _Circuit())

            if circuit.state == CircuitState.OPEN:
                elapsed = time.monotonic() - circuit.opened_at
                if elapsed < self._config.recovery_timeout_seconds:
                    return False
                circuit.state = CircuitState.HALF_OPEN
                circuit.probes = 0

            if circuit.state == CircuitState.HALF_OPEN:
                if circuit.probes >= self._config.half_open_probe_attempts:
                    return False
                circuit.probes += 1

            return True

    async def on_success(self, key: str) -> None:
        async with self._lock:
            circuit = self._circuits.setdefault(key, _Circuit())
            if circuit.state != CircuitState.CLOSED:
                logger.info(
                    "Circuit closed",
                    extra={"cb_key": key, "prev_state": circuit.state},
                )
            self._circuits[key] = _Circuit()

    async def on_failure(self, key: str) -> None:
        async with self._lock:
            circuit = self._circuits.setdefault(key, _Circuit())
            circuit.failures += 1

            if circuit.state == CircuitState.HALF_OPEN or (
                circuit.state == CircuitState.CLOSED
                and circuit.failures >= self._config.failure_threshold
            ):
                circuit.state = CircuitState.OPEN
                circuit.opened_at = time.monotonic()
                logger.warning(
                    "Circuit opened",
                    extra={
                        "cb_key": key,
                        "failures": circuit.failures,
                        "recovery_timeout_seconds": self._config.recovery_timeout_seconds,
                    },
                )


@dataclass
class RetryPolicy:
    max_attempts: int = 3
    initial_backoff_seconds: float = 0.2
    backoff_multiplier: float = 2.0
    jitter_ratio: float = 0.2
    retry_on_statuses: tuple[int, ...] = (408, 425, 429, 500, 502, 503, 504)
    retry_on_exceptions: tuple[type[BaseException], ...] = field(
        default=(
            httpx.ReadTimeout,
            httpx.ConnectTimeout,
            httpx.RemoteProtocolError,
            httpx.NetworkError,
        )
    )

    def attempts_for(self, idempotent: bool) -> int:
        # Registrations and DNS writes are never re-sent
        return self.max_attempts if idempotent else 1

    def compute_backoff(self, attempt: int) -> float:
        base = self.initial_backoff_seconds * (self.backoff_multiplier ** (attempt - 1))
        # Jitter only, not cryptographic use
        jitter = base * self.jitter_ratio * (2 * random.random() - 1)  # nosec B311
        return max(0.0, base + jitter)


class ConcurrencyLimiter:
    """Caps in-flight registrar requests, e.g. during a 35-TLD fan-out."""

    def __init__(self, max_concurrent: int | None = None):
        self._semaphore = asyncio.Semaphore(
            max_concurrent or settings.MAX_CONCURRENT_REQUESTS
        )

    @asynccontextmanager
    async def slot(self):
        async with self._semaphore:
            yield


class ResilientHttpClient:
    """
    httpx.AsyncClient wrapper shared by the registrar adapters.

    Adds a per-request timeout, retries with jittered backoff, a circuit
    breaker per registrar, and a concurrency cap. Requests flagged
    ``idempotent=False`` (registrations, DNS writes) get exactly one attempt,
    since re-sending them could register or charge twice.

    Statuses in ``allowed_statuses`` are returned to the caller instead of
    raising, so registrars that put error details in 4xx JSON bodies can be
    decoded.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float | None = None,
        retry_policy: RetryPolicy | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        concurrency_limiter: ConcurrencyLimiter | None = None,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._retry = retry_policy or RetryPolicy(
            max_attempts=settings.RETRY_MAX_ATTEMPTS,
            initial_backoff_seconds=settings.RETRY_INITIAL_BACKOFF_SECONDS,
            backoff_multiplier=settings.RETRY_BACKOFF_MULTIPLIER,
            jitter_ratio=settings.RETRY_JITTER_RATIO,
        )
        self._circuit = circuit_breaker or CircuitBreaker()
        self._limit = concurrency_limiter or ConcurrencyLimiter()
        self._client = httpx.AsyncClient(
            timeout=timeout_seconds or float(settings.EXTERNAL_API_TIMEOUT),
            headers=headers,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        json: Any | None = None,
        data: Any | None = None,
        allowed_statuses: Iterable[int] | None = None,
        circuit_key: str | None = None,
        idempotent: bool = True,
    ) -> httpx.Response:
        key = circuit_key or self._extract_host(url)
        # Namecheap credentials travel in the query parameters
        full_url = str(httpx.URL(url, params=params)) if params else url
        log_context = {"url": mask_query_secrets(full_url), "method": method, "cb_key": key}

        if not await self._circuit.allow_request(key):
            logger.warning("Circuit open, request refused", extra=log_context)
            raise httpx.RequestError(f"Circuit open for {key}")

        max_attempts = self._retry.attempts_for(idempotent)
        allowed = set(allowed_statuses or ())

        async with self._limit.slot():
            for attempt in range(1, max_attempts + 1):
                retries_left = attempt < max_attempts
                try:
                    start = time.perf_counter()
                    response = await self._client.request(
                        method, url, headers=headers, params=params, json=json, data=data
                    )
                except self._retry.retry_on_exceptions as exc:  # type: ignore[misc]
                    await self._circuit.on_failure(key)
                    if not retries_left:
                        logger.error(
                            "Registrar request failed after retries",
                            extra={
                                **log_context,
                                "exception": type(exc).__name__,
                                "attempts": attempt,
                            },
                        )
                        raise
                    await self._backoff(attempt, log_context, exception=type(exc).__name__)
                    continue
                except httpx.HTTPError as exc:
                    await self._circuit.on_failure(key)
                    logger.error(
                        "Registrar request error",
                        extra={**log_context, "exception": type(exc).__name__},
                    )
                    raise

                status = response.status_code
                if status < 400 or status in allowed:
                    await self._circuit.on_success(key)
                    logger.info(
                        "Registrar request completed",
                        extra={
                            **log_context,
                            "status": status,
                            "latency_ms": int((time.perf_counter() - start) * 1000),
                        },
                    )
                    return response

                if status in self._retry.retry_on_statuses and retries_left:
                    await self._backoff(attempt, log_context, status=status)
                    continue

                await self._circuit.on_failure(key)
                logger.error(
                    "Registrar request rejected",
                    extra={
                        **log_context,
                        "status": status,
                        "response_text": sanitize_log_data({"text": response.text[:512]}),
                    },
                )
                response.raise_for_status()

        raise httpx.RequestError("Request failed without response")

    async def _backoff(self, attempt: int, log_context: dict[str, Any], **reason: Any) -> None:
        delay = self._retry.compute_backoff(attempt)
        logger.warning(
            "Retrying registrar request",
            extra={
                **log_context,
                **reason,
                "attempt": attempt,
                "backoff_seconds": round(delay, 3),
            },
        )
        await asyncio.sleep(delay)

    @staticmethod
    def _extract_host(url: str) -> str:
        try:
            return httpx.URL(url).host or url
        except httpx.InvalidURL:
            return url
