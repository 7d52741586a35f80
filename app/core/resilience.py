from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import httpx

from app.core.config import settings
from app.core.logging import sanitize_log_data

logger = logging.getLogger(__name__)

IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class CircuitState:
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitConfig:
    failure_threshold: int = 3
    recovery_timeout_seconds: float = 60
    half_open_probe_attempts: int = 1


@dataclass
class _Circuit:
    state: str = CircuitState.CLOSED
    failures: int = 0
    opened_at: float = 0.0
    probes: int = 0


class CircuitBreaker:
    """
    One circuit per remote service.

    Consecutive failures open the circuit; after the recovery timeout a
    limited number of probes are let through and the first result decides
    whether it closes again or re-opens.
    """

    def __init__(self, config: CircuitConfig | None = None):
        self._config = config or CircuitConfig(
            failure_threshold=settings.CB_FAILURE_THRESHOLD,
            recovery_timeout_seconds=settings.CB_RECOVERY_TIMEOUT_SECONDS,
            half_open_probe_attempts=settings.CB_HALF_OPEN_PROBE_ATTEMPTS,
        )
        self._circuits: dict[str, _Circuit] = {}
        self._lock = asyncio.Lock()

    def _get(self, key: str) -> _Circuit:
        return self._circuits.setdefault(key, _Circuit())

    def state(self, key: str) -> str:
        return self._get(key).state

    async def allow_request(self, key: str) -> bool:
        async with self._lock:
            circuit = self._get(key)
            if circuit.state == CircuitState.CLOSED:
                return True

            if circuit.state == CircuitState.OPEN:
                elapsed = time.monotonic() - circuit.opened_at
                if elapsed < self._config.recovery_timeout_seconds:
                    return False
                circuit.state = CircuitState.HALF_OPEN
                circuit.probes = 0

            if circuit.probes < self._config.half_open_probe_attempts:
                circuit.probes += 1
                return True
            return False

    async def on_success(self, key: str) -> None:
        async with self._lock:
            circuit = self._get(key)
            previous = circuit.state
            self._circuits[key] = _Circuit()
            if previous != CircuitState.CLOSED:
                logger.info("Circuit closed", extra={"cb_key": key, "prev_state": previous})

    async def on_failure(self, key: str) -> None:
        async with self._lock:
            circuit = self._get(key)
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
    max_attempts: int = 1
    initial_backoff_seconds: float = 0.2
    backoff_multiplier: float = 2.0
    jitter_ratio: float = 0.2
    retry_on_statuses: tuple[int, ...] = (408, 425, 429, 502, 503, 504)
    retry_on_exceptions: tuple[type[BaseException], ...] = (
        httpx.ReadTimeout,
        httpx.ConnectTimeout,
        httpx.RemoteProtocolError,
        httpx.NetworkError,
    )

    def compute_backoff(self, attempt: int) -> float:
        base = self.initial_backoff_seconds * (self.backoff_multiplier ** (attempt - 1))
        jitter = base * self.jitter_ratio * (2 * random.random() - 1)  # nosec B311
        return max(0.0, base + jitter)

    def attempts_for(self, method: str) -> int:
        """Only idempotent reads are ever repeated."""
        if method.upper() in IDEMPOTENT_METHODS:
            return max(1, self.max_attempts)
        return 1


class ConcurrencyLimiter:
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
    httpx.AsyncClient wrapper with timeout, circuit breaker and concurrency
    limiting. Retries are opt-in through the policy and only ever apply to
    idempotent methods; payment and assignment POSTs run exactly once.
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

    @property
    def circuit(self) -> CircuitBreaker:
        return self._circuit

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _backoff(self, attempt: int, **log_fields: Any) -> None:
        delay = self._retry.compute_backoff(attempt)
        logger.warning(
            "HTTP retry",
            extra={**log_fields, "attempt": attempt, "backoff_seconds": round(delay, 3)},
        )
        await asyncio.sleep(delay)

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        json: Any | None = None,
        allowed_statuses: Iterable[int] | None = None,
        circuit_key: str | None = None,
    ) -> httpx.Response:
        """
        Send one logical request.

        Raises:
            httpx.ConnectError: The circuit for this service is open
            httpx.HTTPStatusError: Final status is an error and not allowed
            httpx.HTTPError: Transport failure after the last attempt
        """
        key = circuit_key or httpx.URL(url).host or url
        log_fields = {
            "url": sanitize_log_data({"url": url})["url"],
            "method": method,
            "cb_key": key,
        }

        if not await self._circuit.allow_request(key):
            logger.warning("Circuit open, request short-circuited", extra=log_fields)
            raise httpx.ConnectError(f"Circuit open for {key}")

        max_attempts = self._retry.attempts_for(method)
        allowed = set(allowed_statuses or ())

        async with self._limit.slot():
            for attempt in range(1, max_attempts + 1):
                last_attempt = attempt == max_attempts
                start = time.perf_counter()
                try:
                    response = await self._client.request(
                        method, url, headers=headers, params=params, json=json
                    )
                except self._retry.retry_on_exceptions as exc:  # type: ignore[misc]
                    await self._circuit.on_failure(key)
                    if last_attempt:
                        logger.error(
                            "HTTP request error, giving up",
                            extra={**log_fields, "exception": type(exc).__name__},
                        )
                        raise
                    await self._backoff(attempt, exception=type(exc).__name__, **log_fields)
                    continue
                except httpx.HTTPError as exc:
                    await self._circuit.on_failure(key)
                    logger.error(
                        "HTTP request error",
                        extra={**log_fields, "exception": type(exc).__name__},
                    )
                    raise

                status = response.status_code
                latency_ms = int((time.perf_counter() - start) * 1000)
                if status < 400 or status in allowed:
                    await self._circuit.on_success(key)
                    logger.info(
                        "HTTP request success",
                        extra={**log_fields, "status": status, "latency_ms": latency_ms},
                    )
                    return response

                if status in self._retry.retry_on_statuses and not last_attempt:
                    await self._backoff(attempt, status=status, **log_fields)
                    continue

                # A 4xx means the service answered; only 5xx counts against it
                if status >= 500:
                    await self._circuit.on_failure(key)
                else:
                    await self._circuit.on_success(key)
                logger.error(
                    "HTTP request failed",
                    extra={
                        **log_fields,
                        "status": status,
                        "response": sanitize_log_data({"text": response.text[:512]}),
                    },
                )
                response.raise_for_status()
                return response

        raise AssertionError("unreachable: retry loop always returns or raises")
