"""Delay calculation for bounded polling of long-running jobs.

The pipelines never retry failed service calls; the only repeated call is
the status check of a video job. This module computes the wait before each
check and builds the PollPolicy used by the video poll loop.
"""

import logging
from typing import Optional

from storyboard_studio.agents.base import BackoffStrategy, PollPolicy


logger = logging.getLogger(__name__)


def calculate_backoff_delay(
    attempt: int,
    strategy: BackoffStrategy,
    base_delay: float,
    max_delay: float
) -> float:
    """Calculate the delay before poll attempt ``attempt``.

    Args:
        attempt: Current attempt number (0-indexed)
        strategy: Backoff strategy to use
        base_delay: Base delay in seconds
        max_delay: Maximum delay in seconds

    Returns:
        Delay in seconds, capped at max_delay

    Examples:
        >>> calculate_backoff_delay(0, BackoffStrategy.EXPONENTIAL, 1.0, 60.0)
        1.0
        >>> calculate_backoff_delay(2, BackoffStrategy.EXPONENTIAL, 1.0, 60.0)
        4.0
        >>> calculate_backoff_delay(10, BackoffStrategy.CONSTANT, 5.0, 60.0)
        5.0
    """
    if strategy == BackoffStrategy.EXPONENTIAL:
        # Exponential: base_delay * 2^attempt
        delay = base_delay * (2 ** attempt)
    elif strategy == BackoffStrategy.LINEAR:
        # Linear: base_delay * (attempt + 1)
        delay = base_delay * (attempt + 1)
    else:  # CONSTANT
        delay = base_delay

    return min(delay, max_delay)


def create_poll_policy(
    interval_seconds: float = 5.0,
    max_attempts: int = 120,
    timeout_seconds: Optional[float] = None,
    backoff_strategy: BackoffStrategy = BackoffStrategy.CONSTANT
) -> PollPolicy:
    """Create a poll policy.

    Args:
        interval_seconds: Base wait before each status check
        max_attempts: Maximum number of status checks
        timeout_seconds: Overall time budget (None = interval * attempts)
        backoff_strategy: How the wait grows between checks

    Returns:
        PollPolicy with max interval capped at 60 seconds (or the base
        interval when that is larger)
    """
    if timeout_seconds is None:
        timeout_seconds = interval_seconds * max_attempts

    policy = PollPolicy(
        interval_seconds=interval_seconds,
        max_attempts=max_attempts,
        timeout_seconds=timeout_seconds,
        backoff_strategy=backoff_strategy,
        max_interval_seconds=max(60.0, interval_seconds)
    )
    logger.debug(f"Created poll policy: {policy}")
    return policy
