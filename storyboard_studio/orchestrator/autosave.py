"""Debounced autosave of the draft."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional


logger = logging.getLogger(__name__)


class DebouncedAutosave:
    """Run ``save`` once after ``delay`` seconds without new changes.

    Each ``schedule()`` restarts the quiet period. Must be used from a
    running event loop.

    Args:
        save: Coroutine function performing the save
        delay: Quiet period in seconds
    """

    def __init__(self, save: Callable[[], Awaitable[None]], delay: float = 1.0):
        self._save = save
        self.delay = delay
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self) -> None:
        """(Re)start the quiet period."""
        if self.pending:
            self._task.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run_after_delay())

    async def _run_after_delay(self) -> None:
        await asyncio.sleep(self.delay)
        try:
            await self._save()
        except Exception as e:
            # A failed autosave is retried by the next change
            logger.error(f"Autosave failed: {e}", exc_info=True)

    async def flush(self) -> None:
        """Save now if a save is pending."""
        if not self.pending:
            return
        self._task.cancel()
        self._task = None
        await self._save()

    def cancel(self) -> None:
        """Drop a pending save."""
        if self.pending:
            self._task.cancel()
        self._task = None
