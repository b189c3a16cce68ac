"""Shared image gallery fed by finished frame and video generations."""

import logging
from typing import Callable, Iterable, List, Optional


logger = logging.getLogger(__name__)


class ImageGallery:
    """Ordered, de-duplicated list of generated media (newest first).

    Args:
        items: Initial gallery contents
        on_change: Called with the full list after every mutation, used to
            persist the gallery
    """

    def __init__(
        self,
        items: Iterable[str] = (),
        on_change: Optional[Callable[[List[str]], None]] = None
    ):
        self._items: List[str] = []
        for item in items:
            if item and item not in self._items:
                self._items.append(item)
        self.on_change = on_change

    @property
    def items(self) -> List[str]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def add(self, new_items: Iterable[str]) -> List[str]:
        """Prepend items not already in the gallery.

        Returns:
            The items that were actually added
        """
        unique: List[str] = []
        for item in new_items:
            if item and item not in self._items and item not in unique:
                unique.append(item)
        if not unique:
            return []
        self._items = unique + self._items
        logger.info(f"Added {len(unique)} item(s) to gallery ({len(self._items)} total)")
        self._notify()
        return unique

    def remove(self, index: int) -> Optional[str]:
        if not 0 <= index < len(self._items):
            return None
        removed = self._items.pop(index)
        self._notify()
        return removed

    def replace(self, index: int, new_item: str) -> bool:
        if not 0 <= index < len(self._items) or not new_item:
            return False
        self._items[index] = new_item
        self._notify()
        return True

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.items)
