from __future__ import annotations

import asyncio

import httpx
import pytest

from genaisdk.backend import GenAIBackend, _backoff_sleep
from genaisdk.exceptions import (
    BadRequestError,
    CancellationError,
    ConnectionError,
    ErrorKind,
    NotFoundError,
    RateLimitError,
    ServerError,
    TimeoutError,
)
from genaisdk.retry import RETRYABLE_STATUS_CODES, RetryPolicy, is_retryable_status
from tests.helpers import ScriptedAPI, error_response, json_response, make_options

pytestmark = pytest.mark.unit


def make_backend(api: ScriptedAPI, **overrides: object) -> GenAIBackend:
    return GenAIBackend(make_options(**overrides), http_client=api.http_client())


# =============================================================================
# Policy
# =============================================================================


def test_retryable_status_set() -> None:
    assert RETRYABLE_STATUS_CODES == {429, 500, 502, 503, 504}
    assert not is_retryable_status(400)
    assert not is_retryable_status(501)


def test_policy_exponential_schedule_is_capped() -> None:
    policy = RetryPolicy(max_attempts=5, initial_delay=1.0, max_delay=5.0)
    assert policy.delays() == [1.0, 2.0, 4.0, 5.0, 5.0]


def test_policy_constant_schedule() -> None:
    policy = RetryPolicy(max_attempts=3, initial_delay=0.5, use_exponential_backoff=False)
    assert policy.delays() == [0.5, 0.5, 0.5]


def test_policy_from_options() -> None:
    options = make_options(max_retry_attempts=2, retry_delay=0.25, max_retry_delay=1.0)
    policy = RetryPolicy.from_options(options)

    assert policy == RetryPolicy(max_attempts=2, initial_delay=0.25, max_delay=1.0)
    assert policy.delays() == [0.25, 0.5]


def test_policy_rejects_negative_attempts() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=-1)


# =============================================================================
# Transport retry loop
# =============================================================================


@pytest.mark.parametrize("status", sorted(RETRYABLE_STATUS_CODES))
async def test_retryable_status_exhausts_all_attempts(
    status: int, backoff_delays: list[float]
) -> None:
    api = ScriptedAPI(error_response(status, "try later"))
    backend = make_backend(api)

    with pytest.raises((ServerError, RateLimitError)) as exc_info:
        await backend.post("/v1/models/m:generateContent", body={"contents": []})

    err = exc_info.value
    assert len(api.requests) == 4
    assert err.status_code == status
    assert err.attempts == 3
    assert err.message.startswith("Request failed after 3 retry attempts")
    assert "try later" in err.message
    assert backoff_delays == [1.0, 2.0, 4.0]


async def test_transient_failure_then_success(backoff_delays: list[float]) -> None:
    api = ScriptedAPI(error_response(503), error_response(500), json_response({"ok": True}))
    backend = make_backend(api)

    assert await backend.get("/v1/models") == {"ok": True}
    assert len(api.requests) == 3
    assert backoff_delays == [1.0, 2.0]


async def test_constant_backoff(backoff_delays: list[float]) -> None:
    api = ScriptedAPI(error_response(502))
    backend = make_backend(api, use_exponential_backoff=False, retry_delay=0.5)

    with pytest.raises(ServerError):
        await backend.get("/v1/models")
    assert backoff_delays == [0.5, 0.5, 0.5]


async def test_backoff_is_capped_by_max_delay(backoff_delays: list[float]) -> None:
    api = ScriptedAPI(error_response(504))
    backend = make_backend(api, max_retry_attempts=4, retry_delay=3.0, max_retry_delay=5.0)

    with pytest.raises(ServerError):
        await backend.get("/v1/models")
    assert backoff_delays == [3.0, 5.0, 5.0, 5.0]


async def test_zero_retries_sends_once(backoff_delays: list[float]) -> None:
    api = ScriptedAPI(error_response(503))
    backend = make_backend(api, max_retry_attempts=0)

    with pytest.raises(ServerError) as exc_info:
        await backend.get("/v1/models")
    assert len(api.requests) == 1
    assert exc_info.value.attempts == 0
    assert backoff_delays == []


@pytest.mark.parametrize(
    ("status", "error_type"), [(400, BadRequestError), (404, NotFoundError)]
)
async def test_non_retryable_status_fails_immediately(
    status: int, error_type: type, backoff_delays: list[float]
) -> None:
    api = ScriptedAPI(error_response(status, "Model not found"))
    backend = make_backend(api)

    with pytest.raises(error_type) as exc_info:
        await backend.get("/v1/models/nope")

    assert len(api.requests) == 1
    assert backoff_delays == []
    assert exc_info.value.message == "Model not found"
    assert exc_info.value.attempts is None


async def test_rate_limit_records_retry_after_without_changing_schedule(
    backoff_delays: list[float],
) -> None:
    api = ScriptedAPI(error_response(429, "quota", headers={"Retry-After": "30"}))
    backend = make_backend(api, max_retry_attempts=1)

    with pytest.raises(RateLimitError) as exc_info:
        await backend.get("/v1/models")

    assert exc_info.value.kind is ErrorKind.RATE_LIMIT
    assert exc_info.value.retry_after_seconds is not None
    assert 25 <= exc_info.value.retry_after_seconds <= 30
    assert backoff_delays == [1.0]


async def test_transport_errors_are_retried_then_reported(backoff_delays: list[float]) -> None:
    api = ScriptedAPI(httpx.ConnectError("connection refused"))
    backend = make_backend(api)

    with pytest.raises(ConnectionError) as exc_info:
        await backend.get("/v1/models")

    assert len(api.requests) == 4
    assert exc_info.value.attempts == 3
    assert exc_info.value.kind is ErrorKind.CONNECTION
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


async def test_transport_error_then_success() -> None:
    api = ScriptedAPI(httpx.ConnectError("reset"), json_response({"models": []}))
    backend = make_backend(api)

    assert await backend.get("/v1/models") == {"models": []}
    assert len(api.requests) == 2


async def test_timeout_is_not_retried(backoff_delays: list[float]) -> None:
    api = ScriptedAPI(httpx.ReadTimeout("timed out"))
    backend = make_backend(api, timeout=7.0)

    with pytest.raises(TimeoutError) as exc_info:
        await backend.get("/v1/models")

    assert len(api.requests) == 1
    assert backoff_delays == []
    assert exc_info.value.timeout == 7.0
    assert exc_info.value.kind is ErrorKind.TIMEOUT


# =============================================================================
# Cancellation
# =============================================================================


async def test_cancelled_before_first_attempt_sends_nothing() -> None:
    api = ScriptedAPI(json_response({}))
    backend = make_backend(api)
    cancel = asyncio.Event()
    cancel.set()

    with pytest.raises(CancellationError):
        await backend.get("/v1/models", cancel_event=cancel)
    assert api.requests == []


async def test_cancel_during_backoff_stops_retrying() -> None:
    cancel = asyncio.Event()

    def fail_and_cancel(request: httpx.Request) -> httpx.Response:
        cancel.set()
        return error_response(503)

    api = ScriptedAPI(fail_and_cancel)
    backend = make_backend(api)

    with pytest.raises(CancellationError) as exc_info:
        await backend.get("/v1/models", cancel_event=cancel)

    assert exc_info.value.kind is ErrorKind.CANCELLED
    assert len(api.requests) == 1


async def test_cancel_abandons_in_flight_request() -> None:
    cancel = asyncio.Event()
    started = asyncio.Event()

    async def slow(request: httpx.Request) -> httpx.Response:
        started.set()
        await asyncio.sleep(10)
        return json_response({})

    backend = GenAIBackend(
        make_options(), http_client=httpx.AsyncClient(transport=httpx.MockTransport(slow))
    )

    async def cancel_once_started() -> None:
        await started.wait()
        cancel.set()

    canceller = asyncio.create_task(cancel_once_started())
    with pytest.raises(CancellationError):
        await asyncio.wait_for(backend.get("/v1/models", cancel_event=cancel), timeout=5)
    await canceller


@pytest.mark.real_backoff
async def test_backoff_sleep_waits_out_the_delay() -> None:
    loop = asyncio.get_running_loop()
    started = loop.time()

    await _backoff_sleep(0.05, asyncio.Event())
    await _backoff_sleep(0.01, None)

    assert loop.time() - started >= 0.05


@pytest.mark.real_backoff
async def test_backoff_sleep_wakes_when_cancelled_mid_wait() -> None:
    loop = asyncio.get_running_loop()
    cancel = asyncio.Event()
    loop.call_later(0.02, cancel.set)
    started = loop.time()

    with pytest.raises(CancellationError):
        await _backoff_sleep(10.0, cancel)

    assert loop.time() - started < 5.0


@pytest.mark.real_backoff
async def test_cancel_arriving_mid_backoff_stops_retrying() -> None:
    cancel = asyncio.Event()

    def fail_then_schedule_cancel(request: httpx.Request) -> httpx.Response:
        asyncio.get_running_loop().call_later(0.02, cancel.set)
        return error_response(503)

    api = ScriptedAPI(fail_then_schedule_cancel)
    backend = make_backend(api, retry_delay=10.0, max_retry_delay=10.0)

    with pytest.raises(CancellationError):
        await asyncio.wait_for(backend.get("/v1/models", cancel_event=cancel), 5.0)

    assert len(api.requests) == 1


async def test_out_of_range_retry_after_still_raises_rate_limit_error() -> None:
    api = ScriptedAPI(error_response(429, "quota", headers={"Retry-After": "999999999999"}))
    backend = make_backend(api, max_retry_attempts=0)

    with pytest.raises(RateLimitError) as exc_info:
        await backend.get("/v1/models")

    assert exc_info.value.retry_after is None
