"""
Unit Tests: Retry Policy

Test cases:
- Exponential delays with cap
- Attempt budget
- Retryable status codes
"""

import pytest

from cascade_tracker.services.polymarket.retry import NO_RETRY, RetryPolicy


def test_default_delays_double():
    policy = RetryPolicy()
    assert [policy.delay_for(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]


def test_delay_is_capped():
    policy = RetryPolicy(base_delay_seconds=1.0, max_delay_seconds=5.0)
    assert policy.delay_for(10) == 5.0


def test_attempt_numbers_start_at_one():
    with pytest.raises(ValueError):
        RetryPolicy().delay_for(0)


def test_should_retry_respects_max_attempts():
    policy = RetryPolicy(max_attempts=3)
    assert policy.should_retry(1)
    assert policy.should_retry(2)
    assert not policy.should_retry(3)
    assert not NO_RETRY.should_retry(1)


def test_retryable_statuses():
    assert RetryPolicy.is_retryable_status(429)
    assert RetryPolicy.is_retryable_status(503)
    assert not RetryPolicy.is_retryable_status(404)
    assert not RetryPolicy.is_retryable_status(400)
