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

URL = "http://payments.local/api/payments/create-order"


def make_client(handler, *, attempts=3, threshold=2):
    calls = []

    def record(request):
        calls.append(request)
        return handler(request)

    client = ResilientHttpClient(
        retry_policy=RetryPolicy(max_attempts=attempts, initial_backoff_seconds=0),
        circuit_breaker=CircuitBreaker(
            CircuitConfig(failure_threshold=threshold, recovery_timeout_seconds=60)
        ),
        transport=httpx.MockTransport(record),
    )
    return client, calls


async def test_get_is_retried_on_503():
    responses = iter([httpx.Response(503), httpx.Response(200, json={"ok": True})])
    client, calls = make_client(lambda request: next(responses))

    response = await client.request("GET", URL, circuit_key="payments")

    assert response.json() == {"ok": True}
    assert len(calls) == 2
    await client.aclose()


async def test_post_runs_exactly_once():
    client, calls = make_client(lambda request: httpx.Response(503))

    with pytest.raises(httpx.HTTPStatusError):
        await client.request("POST", URL, json={"amount": 1}, circuit_key="payments")

    assert len(calls) == 1
    await client.aclose()


async def test_circuit_opens_after_server_errors():
    client, calls = make_client(lambda request: httpx.Response(500), attempts=1)

    for _ in range(2):
        with pytest.raises(httpx.HTTPStatusError):
            await client.request("GET", URL, circuit_key="payments")

    assert client.circuit.state("payments") == CircuitState.OPEN
    with pytest.raises(httpx.ConnectError):
        await client.request("GET", URL, circuit_key="payments")
    assert len(calls) == 2
    await client.aclose()


async def test_client_errors_do_not_open_circuit():
    client, _ = make_client(lambda request: httpx.Response(404), attempts=1)

    for _ in range(3):
        with pytest.raises(httpx.HTTPStatusError):
            await client.request("GET", URL, circuit_key="plans")

    assert client.circuit.state("plans") == CircuitState.CLOSED
    await client.aclose()


async def test_allowed_status_is_returned():
    client, _ = make_client(lambda request: httpx.Response(404), attempts=1)

    response = await client.request(
        "GET", URL, allowed_statuses=[404], circuit_key="plans"
    )

    assert response.status_code == 404
    await client.aclose()


async def test_half_open_probe_closes_circuit():
    breaker = CircuitBreaker(
        CircuitConfig(failure_threshold=1, recovery_timeout_seconds=0)
    )
    await breaker.on_failure("orders")
    assert breaker.state("orders") == CircuitState.OPEN

    assert await breaker.allow_request("orders") is True
    assert breaker.state("orders") == CircuitState.HALF_OPEN
    assert await breaker.allow_request("orders") is False

    await breaker.on_success("orders")
    assert breaker.state("orders") == CircuitState.CLOSED


def test_backoff_grows():
    policy = RetryPolicy(initial_backoff_seconds=0.2, jitter_ratio=0)

    assert policy.compute_backoff(1) == pytest.approx(0.2)
    assert policy.compute_backoff(3) == pytest.approx(0.8)
