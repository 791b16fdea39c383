from __future__ import annotations

import pytest

from repair_desk.cloudsync.retry import RetryExhaustedError, RetryPolicy


def test_default_schedule_doubles_from_five_seconds() -> None:
    policy = RetryPolicy()
    assert [policy.next_delay(n) for n in range(1, 6)] == [5.0, 10.0, 20.0, 40.0, 80.0]


def test_delay_is_capped() -> None:
    policy = RetryPolicy(base_delay=100, factor=3, max_delay=250, max_attempts=4)
    assert policy.next_delay(2) == 250


def test_exhaustion() -> None:
    policy = RetryPolicy(max_attempts=2)
    policy.next_delay(2)
    with pytest.raises(RetryExhaustedError) as exc:
        policy.next_delay(3)
    assert exc.value.attempts == 2


def test_zero_attempts_disables_retry() -> None:
    with pytest.raises(RetryExhaustedError):
        RetryPolicy(max_attempts=0).next_delay(1)
