"""Bounded polling loop for remote video-generation jobs.

One loop instance waits for one video job. Each step waits (honoring the
cancel event), then asks the service for the job's state, until the job
reports done. The loop is bounded by both a maximum number of status
checks and a total time budget; exceeding either is a terminal failure.
A failed status check is terminal as well.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from storyboard_studio.agents.base import AgentExecutionError, PollPolicy
from storyboard_studio.orchestrator.retry_policy import calculate_backoff_delay
from storyboard_studio.services.base import GenerativeServices, VideoOperation


logger = logging.getLogger(__name__)


class VideoPollLoop:
    """Wait for a video operation to complete.

    Args:
        services: Service used for status checks
        policy: Interval, attempt and time bounds
        clock: Monotonic clock (seconds), injectable for tests
    """

    def __init__(
        self,
        services: GenerativeServices,
        policy: Optional[PollPolicy] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.services = services
        self.policy = policy or PollPolicy()
        self._clock = clock

    async def run(
        self,
        operation: VideoOperation,
        cancel_event: Optional[asyncio.Event] = None
    ) -> VideoOperation:
        """Poll until ``operation`` is done.

        Returns:
            The finished operation

        Raises:
            AgentExecutionError: VIDEO_POLL_TIMEOUT when the attempt or time
                budget runs out, VIDEO_POLL_CANCELLED when ``cancel_event``
                is set during a wait; errors from the status check propagate
            asyncio.CancelledError: If the surrounding task is cancelled
        """
        policy = self.policy
        started = self._clock()
        current = operation

        for attempt in range(policy.max_attempts):
            if current.done:
                return current

            elapsed = self._clock() - started
            remaining = policy.timeout_seconds - elapsed
            if remaining <= 0:
                break

            delay = calculate_backoff_delay(
                attempt,
                policy.backoff_strategy,
                policy.interval_seconds,
                policy.max_interval_seconds
            )
            await self._wait(min(delay, remaining), cancel_event, current)

            current = await self.services.poll_video_operation(current)
            logger.debug(
                f"Polled video operation {current.name} "
                f"(attempt {attempt + 1}/{policy.max_attempts}, done={current.done})"
            )

        if current.done:
            return current

        elapsed = self._clock() - started
        logger.error(
            f"Video operation {current.name} did not finish after "
            f"{policy.max_attempts} checks / {elapsed:.1f}s"
        )
        raise AgentExecutionError(
            "VIDEO_POLL_TIMEOUT",
            f"Video generation did not finish within {policy.timeout_seconds:.0f}s",
            {"operation": current.name, "elapsed_seconds": round(elapsed, 2)}
        )

    async def _wait(
        self,
        delay: float,
        cancel_event: Optional[asyncio.Event],
        operation: VideoOperation
    ) -> None:
        if cancel_event is None:
            await asyncio.sleep(delay)
            return

        if not cancel_event.is_set():
            try:
                await asyncio.wait_for(cancel_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                return

        logger.info(f"Polling of video operation {operation.name} cancelled")
        raise AgentExecutionError(
            "VIDEO_POLL_CANCELLED",
            "Video generation was cancelled",
            {"operation": operation.name}
        )
