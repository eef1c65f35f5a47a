import asyncio

import pytest

from sitesnap.errors import FetchError
from sitesnap.models import FailureKind
from sitesnap.throttle import RateLimiter, RetryPolicy, call_with_retry


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, delay):
        self.sleeps.append(delay)
        self.now += delay


def test_delay_schedule_doubles():
    policy = RetryPolicy(max_attempts=4, base_delay=0.5)
    assert [policy.delay_for(n) for n in range(3)] == [0.5, 1.0, 2.0]


@pytest.mark.asyncio
async def test_two_timeouts_then_success():
    attempts = []
    retries = []
    sleeps = []

    async def operation():
        attempts.append(1)
        if len(attempts) < 3:
            raise FetchError("https://example.org/", FailureKind.TIMEOUT)
        return "page"

    async def record_sleep(delay):
        sleeps.append(delay)

    result = await call_with_retry(
        operation,
        RetryPolicy(max_attempts=3, base_delay=1.0),
        on_retry=lambda retry, exc, delay: retries.append((retry, delay)),
        sleep=record_sleep,
    )

    assert result == "page"
    assert len(attempts) == 3
    assert retries == [(1, 1.0), (2, 2.0)]
    assert sleeps == sorted(sleeps)


@pytest.mark.asyncio
async def test_budget_exhausted_reraises():
    calls = []

    async def operation():
        calls.append(1)
        raise FetchError("https://example.org/", FailureKind.TIMEOUT)

    async def record_sleep(delay):
        return None

    with pytest.raises(FetchError):
        await call_with_retry(operation, RetryPolicy(max_attempts=3), sleep=record_sleep)
    assert len(calls) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        FetchError("https://example.org/x", FailureKind.HTTP, status=404),
        FetchError("not a url", FailureKind.INVALID_URL),
    ],
)
async def test_terminal_failures_are_not_retried(error):
    calls = []

    async def operation():
        calls.append(1)
        raise error

    with pytest.raises(FetchError):
        await call_with_retry(operation, RetryPolicy(max_attempts=3))
    assert len(calls) == 1


def test_retryable_classification():
    assert FetchError("u", FailureKind.TIMEOUT).retryable
    assert FetchError("u", FailureKind.NETWORK).retryable
    assert FetchError("u", FailureKind.HTTP, status=503).retryable
    assert not FetchError("u", FailureKind.HTTP, status=404).retryable
    assert not FetchError("u", FailureKind.INVALID_URL).retryable


@pytest.mark.asyncio
async def test_limiter_spaces_fetch_starts():
    clock = FakeClock()
    limiter = RateLimiter(max_concurrent=5, min_interval=1.5, clock=clock, sleep=clock.sleep)
    starts = []
    for _ in range(3):
        async with limiter:
            starts.append(clock.now)
    assert starts == [0.0, 1.5, 3.0]


@pytest.mark.asyncio
async def test_limiter_bounds_concurrency():
    limiter = RateLimiter(max_concurrent=2, min_interval=0.0)
    active = 0
    peak = 0

    async def task():
        nonlocal active, peak
        async with limiter:
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1

    await asyncio.gather(*(task() for _ in range(6)))
    assert peak == 2


def test_widen_interval_never_lowers():
    limiter = RateLimiter(max_concurrent=1, min_interval=2.0)
    limiter.widen_interval(1.0)
    assert limiter.min_interval == 2.0
    limiter.widen_interval(5.0)
    assert limiter.min_interval == 5.0


def test_limiter_rejects_zero_slots():
    with pytest.raises(ValueError):
        RateLimiter(max_concurrent=0, min_interval=0.0)
