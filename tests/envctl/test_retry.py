"""Tests for envctl.retry.poll_until."""

from unittest.mock import MagicMock

import pytest
from envctl.errors import ReadinessTimeoutError
from envctl.retry import poll_until


class FakeClock:
    """Monotonic clock advanced by the fake sleep."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class TestPollUntil:
    def test_immediate_success_does_not_sleep(self) -> None:
        clock = FakeClock()
        attempt = poll_until(lambda: True, sleep=clock.sleep, clock=clock)
        assert attempt == 1
        assert clock.sleeps == []

    def test_succeeds_on_third_attempt_with_backoff(self) -> None:
        clock = FakeClock()
        check = MagicMock(side_effect=[False, False, True])

        attempt = poll_until(
            check, attempts=3, delay=10, backoff=2.0, sleep=clock.sleep, clock=clock
        )

        assert attempt == 3
        assert check.call_count == 3
        assert clock.sleeps == [10, 20]

    def test_exhausts_attempts(self) -> None:
        clock = FakeClock()
        check = MagicMock(return_value=False)

        with pytest.raises(ReadinessTimeoutError, match="after 3 attempts"):
            poll_until(check, attempts=3, delay=1, sleep=clock.sleep, clock=clock)

        assert check.call_count == 3
        assert len(clock.sleeps) == 2

    def test_fixed_interval_when_backoff_is_one(self) -> None:
        clock = FakeClock()
        with pytest.raises(ReadinessTimeoutError):
            poll_until(
                lambda: False, attempts=4, delay=5, backoff=1.0, sleep=clock.sleep, clock=clock
            )
        assert clock.sleeps == [5, 5, 5]

    def test_sleep_clipped_to_deadline(self) -> None:
        clock = FakeClock()
        with pytest.raises(ReadinessTimeoutError):
            poll_until(
                lambda: False,
                attempts=5,
                delay=30,
                backoff=2.0,
                deadline=50,
                sleep=clock.sleep,
                clock=clock,
            )
        assert clock.sleeps == [30, 20]
        assert sum(clock.sleeps) <= 50

    def test_deadline_error_message(self) -> None:
        clock = FakeClock()
        with pytest.raises(ReadinessTimeoutError, match="within 50s"):
            poll_until(
                lambda: False,
                attempts=5,
                delay=30,
                deadline=50,
                description="db",
                sleep=clock.sleep,
                clock=clock,
            )

    def test_rejects_zero_attempts(self) -> None:
        with pytest.raises(ValueError):
            poll_until(lambda: True, attempts=0)
