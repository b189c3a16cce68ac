"""Linear undo/redo log over full scene-list snapshots."""

import logging
from typing import Iterable, List, Tuple

from storyboard_studio.schemas.storyboard import Scene


logger = logging.getLogger(__name__)


Snapshot = Tuple[Scene, ...]


class HistoryManager:
    """Undo/redo history for the scene list.

    Holds a list of immutable snapshots, a cursor into it, and the live
    scene tuple. ``commit``/``undo``/``redo``/``reset`` keep the live tuple
    equal to the snapshot at the cursor. ``set_live`` is the transient path:
    it replaces the live tuple without recording history, so the live tuple
    may run ahead of the cursor snapshot until the next history operation.

    Only one future branch is kept; committing after an undo discards it.
    """

    def __init__(self, initial: Iterable[Scene] = ()):
        snapshot = tuple(initial)
        self._snapshots: List[Snapshot] = [snapshot]
        self._cursor = 0
        self._live: Snapshot = snapshot

    @property
    def live(self) -> Snapshot:
        return self._live

    @property
    def current(self) -> Snapshot:
        """Snapshot at the cursor."""
        return self._snapshots[self._cursor]

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._snapshots) - 1

    def __len__(self) -> int:
        return len(self._snapshots)

    def commit(self, scenes: Iterable[Scene]) -> bool:
        """Record ``scenes`` as a new history entry and make it live.

        Returns:
            False when ``scenes`` equals the snapshot at the cursor (no entry
            is added), True otherwise
        """
        snapshot = tuple(scenes)
        if snapshot == self.current:
            # Transient writes may have moved live away from the cursor
            self._live = snapshot
            return False

        del self._snapshots[self._cursor + 1:]
        self._snapshots.append(snapshot)
        self._cursor = len(self._snapshots) - 1
        self._live = snapshot
        logger.debug(f"History commit: {len(snapshot)} scenes, entry {self._cursor + 1}/{len(self._snapshots)}")
        return True

    def set_live(self, scenes: Iterable[Scene]) -> None:
        """Replace the live scene list without recording history."""
        self._live = tuple(scenes)

    def undo(self) -> bool:
        if not self.can_undo:
            return False
        self._cursor -= 1
        self._live = self._snapshots[self._cursor]
        return True

    def redo(self) -> bool:
        if not self.can_redo:
            return False
        self._cursor += 1
        self._live = self._snapshots[self._cursor]
        return True

    def reset(self, scenes: Iterable[Scene] = ()) -> None:
        """Start a fresh single-entry log containing ``scenes``."""
        snapshot = tuple(scenes)
        self._snapshots = [snapshot]
        self._cursor = 0
        self._live = snapshot
