"""Tests for the bounded retry policy."""

import pytest

from conftest import SleepRecorder
from showtracker.services.retry import RetryPolicy


class Flaky:
    """Fails a set number of times, then returns a value."""

    def __init__(self, failures: int, error: Exception | None = None, result: object = "ok"):
        self.failures = failures
        self.error = error or ConnectionError("boom")
        self.result = result
        self.calls = 0

    async def __call__(self) -> object:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return self.result


def test_delay_backoff_is_bounded() -> None:
    policy = RetryPolicy(delay=1.0, backoff=2.0, max_delay=5.0)
    assert [policy.delay_for(attempt) for attempt in range(1, 5)] == [1.0, 2.0, 4.0, 5.0]


def test_attempts_must_be_positive() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(attempts=0)


@pytest.mark.asyncio
async def test_retries_listed_exceptions(sleep_recorder: SleepRecorder) -> None:
    policy = RetryPolicy(attempts=3, delay=0.5, retry_on=(ConnectionError,))
    operation = Flaky(failures=2)

    assert await policy.run(operation, sleep=sleep_recorder) == "ok"
    assert operation.calls == 3
    assert sleep_recorder.delays == [0.5, 1.0]


@pytest.mark.asyncio
async def test_last_exception_is_raised(sleep_recorder: SleepRecorder) -> None:
    policy = RetryPolicy(attempts=2, retry_on=(ConnectionError,))
    operation = Flaky(failures=5)

    with pytest.raises(ConnectionError):
        await policy.run(operation, sleep=sleep_recorder)
    assert operation.calls == 2


@pytest.mark.asyncio
async def test_other_exceptions_propagate_immediately(sleep_recorder: SleepRecorder) -> None:
    policy = RetryPolicy(attempts=3, retry_on=(ConnectionError,))
    operation = Flaky(failures=1, error=KeyError("bad"))

    with pytest.raises(KeyError):
        await policy.run(operation, sleep=sleep_recorder)
    assert operation.calls == 1
    assert sleep_recorder.delays == []


@pytest.mark.asyncio
async def test_retry_if_result(sleep_recorder: SleepRecorder) -> None:
    results = iter([503, 503, 200])

    async def operation() -> int:
        return next(results)

    policy = RetryPolicy(attempts=3, delay=0, retry_if=lambda status: status == 503)
    assert await policy.run(operation, sleep=sleep_recorder) == 200


@pytest.mark.asyncio
async def test_last_rejected_result_is_returned(sleep_recorder: SleepRecorder) -> None:
    async def operation() -> int:
        return 429

    policy = RetryPolicy(attempts=2, delay=0, retry_if=lambda status: status == 429)
    assert await policy.run(operation, sleep=sleep_recorder) == 429
    assert len(sleep_recorder.delays) == 1
