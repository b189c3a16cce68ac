"""Unit tests for poll delay calculation and poll policy creation.

Tests cover:
- Backoff delay calculation for different strategies
- Policy creation and validation
"""

import pytest

from storyboard_studio.agents.base import BackoffStrategy, PollPolicy
from storyboard_studio.orchestrator.retry_policy import (
    calculate_backoff_delay,
    create_poll_policy,
)


class TestBackoffDelayCalculation:
    """Test backoff delay calculation for different strategies."""

    def test_exponential_backoff(self):
        """Test exponential backoff: delay = base * 2^attempt."""
        assert calculate_backoff_delay(0, BackoffStrategy.EXPONENTIAL, 1.0, 60.0) == 1.0
        assert calculate_backoff_delay(1, BackoffStrategy.EXPONENTIAL, 1.0, 60.0) == 2.0
        assert calculate_backoff_delay(3, BackoffStrategy.EXPONENTIAL, 1.0, 60.0) == 8.0

    def test_exponential_backoff_capped_at_max(self):
        # 1.0 * 2^10 = 1024.0, capped at 60.0
        assert calculate_backoff_delay(10, BackoffStrategy.EXPONENTIAL, 1.0, 60.0) == 60.0

    def test_linear_backoff(self):
        """Test linear backoff: delay = base * (attempt + 1)."""
        assert calculate_backoff_delay(0, BackoffStrategy.LINEAR, 2.0, 60.0) == 2.0
        assert calculate_backoff_delay(4, BackoffStrategy.LINEAR, 2.0, 60.0) == 10.0
        assert calculate_backoff_delay(100, BackoffStrategy.LINEAR, 2.0, 60.0) == 60.0

    def test_constant_backoff(self):
        for attempt in range(5):
            assert calculate_backoff_delay(attempt, BackoffStrategy.CONSTANT, 5.0, 60.0) == 5.0

    def test_zero_base_delay(self):
        assert calculate_backoff_delay(3, BackoffStrategy.EXPONENTIAL, 0.0, 60.0) == 0.0


class TestCreatePollPolicy:
    """Test poll policy creation."""

    def test_defaults(self):
        policy = create_poll_policy()
        assert policy.interval_seconds == 5.0
        assert policy.max_attempts == 120
        assert policy.timeout_seconds == 600.0
        assert policy.backoff_strategy == BackoffStrategy.CONSTANT
        assert policy.max_interval_seconds == 60.0

    def test_explicit_timeout(self):
        policy = create_poll_policy(interval_seconds=10.0, max_attempts=90, timeout_seconds=900.0)
        assert policy.timeout_seconds == 900.0

    def test_max_interval_never_below_base(self):
        policy = create_poll_policy(interval_seconds=90.0, max_attempts=3)
        assert policy.max_interval_seconds == 90.0

    def test_invalid_policies_rejected(self):
        with pytest.raises(ValueError):
            PollPolicy(max_attempts=0)
        with pytest.raises(ValueError):
            PollPolicy(interval_seconds=-1.0)
