"""Property-based tests for retry logic with exponential backoff.

Feature: contentful-index-sync
"""

import pytest
import structlog
from hypothesis import given, settings, strategies as st

from indexsync.errors import FatalFetchError, TransientFetchError
from indexsync.utils.retry import backoff_delay, exponential_backoff_retry

log = structlog.stdlib.get_logger()


@given(
    st.integers(min_value=1, max_value=6),
    st.floats(min_value=0.01, max_value=5.0),
    st.floats(min_value=5.0, max_value=120.0),
)
@settings(max_examples=50)
def test_property_3_exponential_backoff_behavior(
    num_failures: int, base_delay: float, max_delay: float
):
    """Property 3: Exponential backoff behavior.

    For any sequence of transient failures, each delay doubles the previous
    one until it is capped at max_delay.
    """
    log.info("test_property_3_exponential_backoff_behavior", num_failures=num_failures)

    delays: list[float] = []
    call_count = 0

    @exponential_backoff_retry(
        max_retries=num_failures,
        base_delay=base_delay,
        max_delay=max_delay,
        exceptions=(TransientFetchError,),
        sleep=delays.append,
    )
    def flaky_fetch():
        nonlocal call_count
        call_count += 1
        if call_count <= num_failures:
            raise TransientFetchError(f"Simulated failure {call_count}")
        return "success"

    assert flaky_fetch() == "success"
    assert call_count == num_failures + 1
    assert delays == [min(base_delay * (2**i), max_delay) for i in range(num_failures)]

    for previous, current in zip(delays, delays[1:]):
        assert current == max_delay or current == pytest.approx(previous * 2)


@given(st.integers(min_value=0, max_value=10))
@settings(max_examples=20)
def test_retry_stops_after_max_retries(max_retries: int):
    """Attempts are bounded: the error surfaces after max_retries + 1 calls."""
    call_count = 0

    @exponential_backoff_retry(
        max_retries=max_retries,
        base_delay=0.01,
        max_delay=1.0,
        exceptions=(TransientFetchError,),
        sleep=lambda _: None,
    )
    def always_failing():
        nonlocal call_count
        call_count += 1
        raise TransientFetchError("Always fails")

    with pytest.raises(TransientFetchError):
        always_failing()

    assert call_count == max_retries + 1


def test_non_retryable_errors_propagate_immediately():
    """Exceptions outside the retry list are not retried."""
    call_count = 0
    delays: list[float] = []

    @exponential_backoff_retry(
        max_retries=5,
        exceptions=(TransientFetchError,),
        sleep=delays.append,
    )
    def rejected():
        nonlocal call_count
        call_count += 1
        raise FatalFetchError("token expired", reason=FatalFetchError.TOKEN_REJECTED)

    with pytest.raises(FatalFetchError):
        rejected()

    assert call_count == 1
    assert delays == []


def test_backoff_delay_is_capped():
    assert backoff_delay(0, 1.0, 60.0) == 1.0
    assert backoff_delay(3, 1.0, 60.0) == 8.0
    assert backoff_delay(10, 1.0, 60.0) == 60.0
