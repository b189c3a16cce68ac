"""Editing-session state: the draft, its scene history and the gallery.

A StoryboardSession is constructed explicitly for each editing session and
passed to whatever needs it. Scene changes go through one of two write
paths:

- transient (``apply_transient``): progress markers such as ``pending`` or a
  failed attempt. Written straight to the live scene list, not undoable.
- durable (``apply_durable`` / ``commit``): user-visible content. Recorded
  as a history entry.

Both paths read the live scene list at write time, so concurrent
generations never overwrite each other's progress with a stale copy.
"""

import logging
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from storyboard_studio.orchestrator.gallery import ImageGallery
from storyboard_studio.orchestrator.history import HistoryManager
from storyboard_studio.schemas.data_url import DataURL
from storyboard_studio.schemas.storyboard import (
    MAX_REFERENCE_IMAGES,
    Frame,
    FrameType,
    Scene,
    ScriptSummary,
    StoryboardDraft,
    renumber,
)


logger = logging.getLogger(__name__)


SceneUpdate = Callable[[Scene], Scene]


class StoryboardSession:
    """Mutable state of one storyboard editing session.

    Args:
        draft: Initial draft (empty when omitted)
        gallery: Shared gallery that finished generations are added to
    """

    def __init__(
        self,
        draft: Optional[StoryboardDraft] = None,
        gallery: Optional[ImageGallery] = None
    ):
        draft = draft or StoryboardDraft()
        self._fields = draft.model_copy(update={"scenes": ()})
        self.history = HistoryManager(draft.scenes)
        self.gallery = gallery if gallery is not None else ImageGallery()
        self.error: Optional[str] = None
        self._listeners: List[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def add_listener(self, listener: Callable[[], None]) -> None:
        """Register a callback run after every change to the draft."""
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    @property
    def scenes(self) -> Tuple[Scene, ...]:
        """Live scene list."""
        return self.history.live

    @property
    def draft(self) -> StoryboardDraft:
        """Current draft including the live scenes."""
        return self._fields.model_copy(update={"scenes": self.history.live})

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def scene_at(self, index: int) -> Optional[Scene]:
        scenes = self.history.live
        if 0 <= index < len(scenes):
            return scenes[index]
        return None

    def _require_scene(self, index: int) -> Scene:
        scene = self.scene_at(index)
        if scene is None:
            raise IndexError(f"scene index {index} out of range (have {len(self.scenes)} scenes)")
        return scene

    # ------------------------------------------------------------------
    # Whole-draft lifecycle
    # ------------------------------------------------------------------

    def load(self, draft: StoryboardDraft) -> None:
        """Replace every field with ``draft``; history restarts at its scenes."""
        self._fields = draft.model_copy(update={"scenes": ()})
        self.history.reset(draft.scenes)
        self.error = None
        self._notify()

    def reset(self, aspect_ratio: str = "16:9") -> None:
        """Empty draft, empty history."""
        self.load(StoryboardDraft(aspect_ratio=aspect_ratio))

    def update_draft(self, **changes: Any) -> StoryboardDraft:
        """Change input or parameter fields (anything except scenes).

        Raises:
            ValueError: If ``scenes`` is passed or a value fails validation
        """
        if "scenes" in changes:
            raise ValueError("scenes are changed through commit() or the scene operations")
        data = self._fields.model_dump()
        data.update(changes)
        self._fields = StoryboardDraft.model_validate(data)
        self._notify()
        return self.draft

    def set_error(self, error: Optional[str]) -> None:
        """Record (or clear) the session-level error message."""
        self.error = error
        self._notify()

    def set_script_summary(self, summary: Optional[ScriptSummary]) -> None:
        self._fields = self._fields.model_copy(update={"script_summary": summary})
        self._notify()

    def update_script_summary(self, **fields: Any) -> ScriptSummary:
        """Edit fields of the generated summary."""
        current = self._fields.script_summary or ScriptSummary()
        data = current.model_dump()
        data.update(fields)
        summary = ScriptSummary.model_validate(data)
        self.set_script_summary(summary)
        return summary

    # ------------------------------------------------------------------
    # Reference images
    # ------------------------------------------------------------------

    def add_reference_images(self, images: Iterable[str]) -> List[str]:
        """Append reference images, keeping at most four.

        Returns:
            The new images that were accepted
        """
        new_images = list(images)
        for image in new_images:
            DataURL.parse(image)
        existing = list(self._fields.reference_images)
        combined = existing + new_images
        kept = combined[:MAX_REFERENCE_IMAGES]
        if len(combined) > MAX_REFERENCE_IMAGES:
            logger.warning(
                f"Dropped {len(combined) - MAX_REFERENCE_IMAGES} reference image(s); "
                f"limit is {MAX_REFERENCE_IMAGES}"
            )
        self._fields = self._fields.model_copy(update={"reference_images": kept})
        self._notify()
        return kept[len(existing):]

    def remove_reference_image(self, index: int) -> Optional[str]:
        images = list(self._fields.reference_images)
        if not 0 <= index < len(images):
            return None
        removed = images.pop(index)
        self._fields = self._fields.model_copy(update={"reference_images": images})
        self._notify()
        return removed

    # ------------------------------------------------------------------
    # Write paths
    # ------------------------------------------------------------------

    def commit(self, scenes: Sequence[Scene]) -> bool:
        """Durable write of a whole scene list (renumbered first)."""
        recorded = self.history.commit(renumber(scenes))
        self._notify()
        return recorded

    def apply_transient(self, index: int, update: SceneUpdate) -> Optional[Scene]:
        """Apply ``update`` to the live scene at ``index`` without history."""
        return self._apply(index, update, durable=False)

    def apply_durable(self, index: int, update: SceneUpdate) -> Optional[Scene]:
        """Apply ``update`` to the live scene at ``index`` and commit."""
        return self._apply(index, update, durable=True)

    def _apply(self, index: int, update: SceneUpdate, durable: bool) -> Optional[Scene]:
        scenes = list(self.history.live)
        if not 0 <= index < len(scenes):
            logger.warning(f"Dropping write to scene index {index}: only {len(scenes)} scenes")
            return None
        scenes[index] = update(scenes[index])
        if durable:
            self.history.commit(scenes)
        else:
            self.history.set_live(scenes)
        self._notify()
        return scenes[index]

    def undo(self) -> bool:
        moved = self.history.undo()
        if moved:
            self._notify()
        return moved

    def redo(self) -> bool:
        moved = self.history.redo()
        if moved:
            self._notify()
        return moved

    # ------------------------------------------------------------------
    # Scene editing
    # ------------------------------------------------------------------

    def add_scene(self, after_index: Optional[int] = None) -> int:
        """Insert an empty scene after ``after_index`` (append when None).

        Returns:
            Index of the new scene
        """
        scenes = list(self.history.live)
        position = len(scenes) if after_index is None else after_index + 1
        if not 0 <= position <= len(scenes):
            raise IndexError(f"cannot insert after scene index {after_index}")
        scenes.insert(position, Scene(scene_number=position + 1))
        self.commit(scenes)
        return position

    def delete_scene(self, index: int) -> Scene:
        removed = self._require_scene(index)
        scenes = list(self.history.live)
        del scenes[index]
        self.commit(scenes)
        return removed

    def move_scene(self, index: int, direction: int) -> bool:
        """Swap a scene with its neighbour; ``direction`` is -1 (up) or +1 (down)."""
        if direction not in (-1, 1):
            raise ValueError(f"direction must be -1 or 1, got {direction}")
        self._require_scene(index)
        target = index + direction
        scenes = list(self.history.live)
        if not 0 <= target < len(scenes):
            return False
        scenes[index], scenes[target] = scenes[target], scenes[index]
        self.commit(scenes)
        return True

    def _update_frame(self, index: int, side: FrameType, update: Callable[[Frame], Frame]) -> Scene:
        self._require_scene(index)
        return self.apply_durable(index, lambda s: s.with_frame(side, update(s.frame(side))))

    def update_frame_description(self, index: int, side: FrameType, description: str) -> Scene:
        return self._update_frame(index, side, lambda f: f.with_description(description))

    def set_frame_image_source(self, index: int, side: FrameType, source: Any) -> Scene:
        return self._update_frame(index, side, lambda f: f.with_image_source(source))

    def use_custom_image(self, index: int, side: FrameType, data_url: str) -> Scene:
        DataURL.parse(data_url)
        return self._update_frame(index, side, lambda f: f.with_custom_image(data_url))

    def clear_frame(self, index: int, side: FrameType) -> Scene:
        return self._update_frame(index, side, lambda f: f.cleared())

    def update_animation_description(self, index: int, text: str) -> Scene:
        self._require_scene(index)
        return self.apply_durable(index, lambda s: s.with_animation_description(text))

    def update_video_prompt(self, index: int, text: str) -> Scene:
        self._require_scene(index)
        return self.apply_durable(index, lambda s: s.with_video_prompt(text))

    def clear_video(self, index: int) -> Scene:
        self._require_scene(index)
        return self.apply_durable(index, lambda s: s.video_cleared())
