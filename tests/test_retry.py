"""Tests for the retry/backoff harness.

- Success on first call returns without sleeping
- Failures are retried with full-jitter exponential backoff capped at max_backoff
- At most max_attempts + 2 calls are made and the last error propagates
"""

from __future__ import annotations

import pytest

from filestore.errors import ObjectNotFoundError, TransportError
from filestore.retry import Retryer, compute_backoff_seconds


class Flaky:
    """Callable that fails a fixed number of times before succeeding."""

    def __init__(self, failures: int, result: str = "ok") -> None:
        self.failures = failures
        self.result = result
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise TransportError(f"failure {self.calls}")
        return self.result


class TestComputeBackoff:
    """Tests for compute_backoff_seconds()."""

    def test_exponential_growth(self) -> None:
        """Delay is jitter * base ** attempt."""
        assert compute_backoff_seconds(0, jitter=0.5) == 0.5
        assert compute_backoff_seconds(1, jitter=0.5) == 1.0
        assert compute_backoff_seconds(3, jitter=0.5) == 4.0

    def test_capped_at_max_backoff(self) -> None:
        """Delay never exceeds max_backoff."""
        assert compute_backoff_seconds(10, jitter=0.99, max_backoff=20.0) == 20.0

    def test_zero_jitter_means_no_delay(self) -> None:
        """A zero draw sleeps for zero seconds."""
        assert compute_backoff_seconds(5, jitter=0.0) == 0.0

    def test_negative_attempt(self) -> None:
        """Negative attempt counters produce no delay."""
        assert compute_backoff_seconds(-1, jitter=0.5) == 0.0

    def test_random_draw_stays_in_bounds(self) -> None:
        """Without an explicit jitter the delay is within [0, base ** n)."""
        for _ in range(50):
            delay = compute_backoff_seconds(2)
            assert 0.0 <= delay < 4.0


class TestRetryer:
    """Tests for Retryer.send()."""

    def test_first_call_success_does_not_sleep(self) -> None:
        """A successful first call returns immediately."""
        sleeps: list[float] = []
        retryer: Retryer[str] = Retryer(sleep=sleeps.append)

        assert retryer.send(Flaky(0)) == "ok"
        assert sleeps == []

    def test_succeeds_after_failures(self) -> None:
        """Transient failures are retried until success."""
        sleeps: list[float] = []
        flaky = Flaky(2, "done")
        retryer: Retryer[str] = Retryer(max_attempts=3, sleep=sleeps.append, rand=lambda: 0.5)

        assert retryer.send(flaky) == "done"
        assert flaky.calls == 3
        assert sleeps == [0.5, 1.0]

    def test_exhausted_attempts_raise_last_error(self) -> None:
        """Retries stop once the attempt counter exceeds max_attempts."""
        sleeps: list[float] = []
        flaky = Flaky(100)
        retryer: Retryer[str] = Retryer(max_attempts=3, sleep=sleeps.append, rand=lambda: 0.0)

        with pytest.raises(TransportError, match="failure 5"):
            retryer.send(flaky)

        assert flaky.calls == 5
        assert len(sleeps) == 4

    def test_sleep_is_capped(self) -> None:
        """Every sleep is at most max_backoff."""
        sleeps: list[float] = []
        retryer: Retryer[str] = Retryer(
            max_attempts=8,
            max_backoff=3.0,
            sleep=sleeps.append,
            rand=lambda: 0.999,
        )

        retryer.send(Flaky(8))

        assert max(sleeps) == 3.0
        assert all(s <= 3.0 for s in sleeps)

    def test_zero_max_attempts_retries_once(self) -> None:
        """With max_attempts=0 the first failure is still retried once."""
        sleeps: list[float] = []
        flaky = Flaky(100)
        retryer: Retryer[str] = Retryer(max_attempts=0, sleep=sleeps.append, rand=lambda: 0.5)

        with pytest.raises(TransportError, match="failure 2"):
            retryer.send(flaky)

        assert flaky.calls == 2
        assert sleeps == [0.5]

    def test_recovers_on_last_permitted_call(self) -> None:
        """A success on call max_attempts + 2 is returned."""
        flaky = Flaky(4, "late")
        retryer: Retryer[str] = Retryer(max_attempts=3, sleep=lambda s: None)

        assert retryer.send(flaky) == "late"
        assert flaky.calls == 5

    def test_non_retryable_error_propagates_immediately(self) -> None:
        """Errors outside retry_on are not retried."""
        calls = 0

        def missing() -> str:
            nonlocal calls
            calls += 1
            raise ObjectNotFoundError(path="/a")

        retryer: Retryer[str] = Retryer(retry_on=(TransportError,), sleep=lambda s: None)

        with pytest.raises(ObjectNotFoundError):
            retryer.send(missing)

        assert calls == 1
