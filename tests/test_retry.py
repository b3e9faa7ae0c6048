"""Tests for the linear-backoff retry wrapper."""

from __future__ import annotations

import asyncio
from typing import List

import pytest

from ocr_server.errors import DecodeError, FetchError, RecognitionError, RetryExhaustedError
from ocr_server.retry import run_with_retry


class Flaky:
    def __init__(self, failures: List[Exception], value: str = "done") -> None:
        self._failures = list(failures)
        self._value = value
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self._failures:
            raise self._failures.pop(0)
        return self._value


def _recorder():
    delays: List[float] = []

    async def sleep(delay: float) -> None:
        delays.append(delay)

    return delays, sleep


def test_succeeds_on_third_attempt() -> None:
    delays, sleep = _recorder()
    operation = Flaky([RecognitionError("one"), FetchError("two")])

    assert asyncio.run(run_with_retry(operation, sleep=sleep)) == "done"
    assert operation.calls == 3
    assert delays == [1.0, 2.0]
    assert sum(delays) == 3.0


def test_first_success_does_not_sleep() -> None:
    delays, sleep = _recorder()
    assert asyncio.run(run_with_retry(Flaky([]), sleep=sleep)) == "done"
    assert delays == []


def test_exhaustion_reports_attempts_and_last_cause() -> None:
    delays, sleep = _recorder()
    last = RecognitionError("third")
    operation = Flaky([RecognitionError("first"), RecognitionError("second"), last])

    with pytest.raises(RetryExhaustedError) as excinfo:
        asyncio.run(run_with_retry(operation, sleep=sleep))

    assert excinfo.value.attempts == 3
    assert excinfo.value.last_error is last
    assert excinfo.value.__cause__ is last
    assert "third" in str(excinfo.value)
    assert delays == [1.0, 2.0]


def test_non_retryable_error_propagates_immediately() -> None:
    delays, sleep = _recorder()
    operation = Flaky([DecodeError("garbage"), RecognitionError("never reached")])

    with pytest.raises(DecodeError):
        asyncio.run(run_with_retry(operation, sleep=sleep))
    assert operation.calls == 1
    assert delays == []


def test_unit_scales_backoff() -> None:
    delays, sleep = _recorder()
    operation = Flaky([FetchError("a"), FetchError("b"), FetchError("c"), FetchError("d")])

    with pytest.raises(RetryExhaustedError):
        asyncio.run(run_with_retry(operation, 4, sleep=sleep, unit=0.5))
    assert delays == [0.5, 1.0, 1.5]


def test_custom_retry_on() -> None:
    delays, sleep = _recorder()
    operation = Flaky([KeyError("k")])
    assert asyncio.run(run_with_retry(operation, retry_on=(KeyError,), sleep=sleep)) == "done"
    assert delays == [1.0]


def test_invalid_attempt_count() -> None:
    with pytest.raises(ValueError):
        asyncio.run(run_with_retry(Flaky([]), 0))
