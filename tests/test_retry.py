import pytest

from gateway_e2e.exceptions import AuthenticationError, RetryExhaustedError
from gateway_e2e.retry import (
    DEFAULT_AUTH_RETRY,
    RetryPolicy,
    constant_backoff,
    exponential_backoff,
    retry,
)

pytestmark = pytest.mark.asyncio


@pytest.fixture
def sleeps(monkeypatch):
    """Record requested delays instead of waiting."""
    recorded = []

    async def fake_sleep(delay):
        recorded.append(delay)

    monkeypatch.setattr("gateway_e2e.retry.anyio.sleep", fake_sleep)
    return recorded


class Flaky:
    def __init__(self, failures, exc_type=AuthenticationError):
        self.failures = failures
        self.exc_type = exc_type
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc_type("flaky@ugjb.com", 401)
        return "token"


async def test_first_attempt_success_does_not_sleep(sleeps):
    fn = Flaky(0)

    assert await retry(fn, RetryPolicy(max_attempts=3, delay=0.5)) == "token"
    assert fn.calls == 1
    assert sleeps == []


async def test_recovers_within_budget(sleeps):
    fn = Flaky(2)

    assert await retry(fn, RetryPolicy(max_attempts=5, delay=0.5)) == "token"
    assert fn.calls == 3
    assert sleeps == [0.5, 0.5]


async def test_exhaustion_reports_attempts_and_last_error(sleeps):
    fn = Flaky(10)

    with pytest.raises(RetryExhaustedError) as excinfo:
        await retry(fn, RetryPolicy(max_attempts=5, delay=0.5), operation="authenticate flaky")

    err = excinfo.value
    assert fn.calls == 5
    assert err.attempts == 5
    assert isinstance(err.last_error, AuthenticationError)
    assert err.__cause__ is err.last_error
    assert "authenticate flaky failed after 5 attempts" in str(err)
    # No sleep after the final attempt
    assert len(sleeps) == 4


async def test_non_matching_error_propagates_immediately(sleeps):
    async def boom():
        raise KeyError("nope")

    with pytest.raises(KeyError):
        await retry(boom, RetryPolicy(max_attempts=5, delay=0.5), retry_on=(AuthenticationError,))
    assert sleeps == []


async def test_exponential_schedule(sleeps):
    fn = Flaky(3)

    await retry(fn, RetryPolicy(max_attempts=4, delay=0.25, backoff=exponential_backoff))

    assert sleeps == [0.25, 0.5, 1.0]


async def test_single_attempt_policy(sleeps):
    with pytest.raises(RetryExhaustedError):
        await retry(Flaky(1), RetryPolicy(max_attempts=1, delay=1))
    assert sleeps == []


async def test_default_auth_policy():
    assert DEFAULT_AUTH_RETRY.max_attempts == 5
    assert DEFAULT_AUTH_RETRY.delay == 0.5
    assert DEFAULT_AUTH_RETRY.backoff is constant_backoff


@pytest.mark.parametrize("kwargs", [{"max_attempts": 0}, {"delay": -0.1}])
async def test_invalid_policy(kwargs):
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)
