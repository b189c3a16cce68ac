"""Persistence Agent for saving, exporting and importing drafts.

This agent is responsible for:
- Autosaving the draft to a DraftStore (file-backed or in-memory)
- Restoring the saved draft, failing any generation that was in flight
- Exporting the draft as a standalone JSON snapshot (audio excluded)
- Importing a snapshot, best-effort for everything except the scene list
- Writing downloaded videos to the media directory
- Bundling finished frames and videos into a zip archive

All file writes are atomic (temp file in the same directory, then rename).
"""

import asyncio
import json
import logging
import os
import tempfile
import zipfile
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from storyboard_studio.agents.base import Agent, AgentExecutionError, AgentInput, AgentOutput
from storyboard_studio.messages import message
from storyboard_studio.schemas.data_url import DataURL
from storyboard_studio.schemas.storyboard import (
    GenerationStatus,
    Scene,
    StoryboardDraft,
    renumber,
)


logger = logging.getLogger(__name__)


DRAFT_FILENAME = "storyboard_draft.json"
GALLERY_FILENAME = "gallery.json"
EXPORT_FILENAME_FORMAT = "storyboard-%Y%m%d-%H%M%S.json"

# Draft fields restored from an imported snapshot when present and valid
IMPORTABLE_FIELDS = (
    "scriptSummary",
    "activeInput",
    "idea",
    "scriptText",
    "referenceImages",
    "style",
    "numberOfScenes",
    "aspectRatio",
    "notes",
    "storyboardLanguage",
    "scriptType",
    "keepClothing",
    "keepBackground",
)


def write_file_atomically(file_path: Union[str, Path], content: Union[str, bytes]) -> None:
    """
    Write file atomically using temp file and rename.

    Args:
        file_path: Destination file path (parent directory must exist)
        content: Text (written as UTF-8) or bytes

    Raises:
        OSError: If the write fails; the destination is left untouched
    """
    file_path_obj = Path(file_path)
    binary = isinstance(content, bytes)
    temp_file_path = None

    try:
        with tempfile.NamedTemporaryFile(
            mode='wb' if binary else 'w',
            dir=file_path_obj.parent,
            delete=False,
            encoding=None if binary else 'utf-8',
            suffix='.tmp'
        ) as temp_file:
            temp_file_path = temp_file.name
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())

        os.replace(temp_file_path, file_path_obj)

    except Exception:
        if temp_file_path and os.path.exists(temp_file_path):
            try:
                os.unlink(temp_file_path)
            except OSError:
                logger.warning(f"Could not remove temp file {temp_file_path}")
        raise


# ---------------------------------------------------------------------------
# Draft stores
# ---------------------------------------------------------------------------

class DraftStore(ABC):
    """Key-value storage for the single current draft and the gallery."""

    @abstractmethod
    def load_draft(self) -> Optional[Dict[str, Any]]:
        """Saved draft payload, or None when nothing is saved."""

    @abstractmethod
    def save_draft(self, payload: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def clear_draft(self) -> None:
        pass

    @abstractmethod
    def load_gallery(self) -> List[str]:
        pass

    @abstractmethod
    def save_gallery(self, items: List[str]) -> None:
        pass


class FileDraftStore(DraftStore):
    """
    Stores the draft and gallery as JSON files in a data directory.

    Layout:
        {directory}/storyboard_draft.json
        {directory}/gallery.json
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    @property
    def draft_path(self) -> Path:
        return self.directory / DRAFT_FILENAME

    @property
    def gallery_path(self) -> Path:
        return self.directory / GALLERY_FILENAME

    def _read_json(self, path: Path) -> Optional[Any]:
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding='utf-8'))
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError
            raise AgentExecutionError(
                "DRAFT_UNREADABLE",
                f"Saved data in {path.name} is not valid UTF-8 JSON: {str(e)}",
                {"path": str(path)}
            ) from e

    def _write_json(self, path: Path, data: Any) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        write_file_atomically(path, json.dumps(data, ensure_ascii=False))

    def load_draft(self) -> Optional[Dict[str, Any]]:
        return self._read_json(self.draft_path)

    def save_draft(self, payload: Dict[str, Any]) -> None:
        self._write_json(self.draft_path, payload)

    def clear_draft(self) -> None:
        if self.draft_path.exists():
            self.draft_path.unlink()

    def load_gallery(self) -> List[str]:
        items = self._read_json(self.gallery_path)
        return [item for item in items or [] if isinstance(item, str)]

    def save_gallery(self, items: List[str]) -> None:
        self._write_json(self.gallery_path, list(items))


class MemoryDraftStore(DraftStore):
    """In-process store; payloads are copied through JSON like a real store."""

    def __init__(self):
        self._draft: Optional[str] = None
        self._gallery: List[str] = []

    def load_draft(self) -> Optional[Dict[str, Any]]:
        return json.loads(self._draft) if self._draft is not None else None

    def save_draft(self, payload: Dict[str, Any]) -> None:
        self._draft = json.dumps(payload)

    def clear_draft(self) -> None:
        self._draft = None

    def load_gallery(self) -> List[str]:
        return list(self._gallery)

    def save_gallery(self, items: List[str]) -> None:
        self._gallery = list(items)


# ---------------------------------------------------------------------------
# Agent contracts
# ---------------------------------------------------------------------------

class PersistenceInput(AgentInput, BaseModel):
    """Input to Persistence Agent (autosave of the draft)."""

    draft: StoryboardDraft = Field(..., description="Draft to save")

    model_config = ConfigDict(arbitrary_types_allowed=True)


class PersistenceOutput(AgentOutput, BaseModel):
    """Output from Persistence Agent."""

    saved_at: datetime = Field(..., description="When the draft was saved")
    scene_count: int = Field(..., ge=0)


class ExportResult(BaseModel):
    """A serialized snapshot and where it was written, if anywhere."""

    filename: str = Field(..., description="Timestamped snapshot file name")
    content: str = Field(..., description="Pretty-printed JSON document")
    path: Optional[str] = Field(None, description="Written file, when a directory was given")


class PersistenceAgent(Agent):
    """
    Persistence Agent saves and restores the storyboard draft.

    ``execute`` performs the autosave. The other operations (restore,
    export, import, media) are called directly by the orchestrator.
    """

    def __init__(self, store: DraftStore, media_directory: Optional[Union[str, Path]] = None):
        """
        Initialize Persistence Agent.

        Args:
            store: Where the draft and gallery live
            media_directory: Where downloaded videos are written
        """
        self.store = store
        self.media_directory = Path(media_directory) if media_directory else None

    def validate_input(self, input_data: AgentInput) -> bool:
        return isinstance(input_data, PersistenceInput)

    async def execute(self, input_data: AgentInput) -> AgentOutput:
        """
        Save the draft to the store.

        Raises:
            AgentExecutionError: INVALID_INPUT or DRAFT_SAVE_FAILED
        """
        if not self.validate_input(input_data):
            raise AgentExecutionError(
                "INVALID_INPUT",
                "Input validation failed for PersistenceAgent"
            )

        payload = self.serialize_draft(input_data.draft)
        try:
            await asyncio.to_thread(self.store.save_draft, payload)
        except OSError as e:
            raise AgentExecutionError(
                "DRAFT_SAVE_FAILED",
                f"Failed to save draft: {str(e)}",
                {"store": type(self.store).__name__}
            ) from e

        return PersistenceOutput(
            saved_at=datetime.now(),
            scene_count=len(input_data.draft.scenes)
        )

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    @staticmethod
    def serialize_draft(draft: StoryboardDraft, include_audio: bool = True) -> Dict[str, Any]:
        """Draft as a JSON-compatible dict with camelCase keys."""
        exclude = None if include_audio else {"audio_data"}
        return draft.model_dump(mode="json", by_alias=True, exclude=exclude)

    @staticmethod
    def restore_draft(payload: Dict[str, Any], language_hint: Optional[str] = None) -> StoryboardDraft:
        """
        Validate a saved payload; generations that were in flight are failed.

        Raises:
            ValidationError: If the payload is not a valid draft
        """
        draft = StoryboardDraft.model_validate(payload)
        interrupted = message("generation_interrupted", language_hint or draft.storyboard_language)
        scenes = tuple(scene.interrupted(interrupted) for scene in draft.scenes)
        return draft.model_copy(update={"scenes": scenes})

    def load(self) -> Optional[StoryboardDraft]:
        """
        Restore the saved draft, if any.

        Raises:
            AgentExecutionError: DRAFT_UNREADABLE if the saved data is corrupt
        """
        payload = self.store.load_draft()
        if payload is None:
            return None
        try:
            return self.restore_draft(payload)
        except ValidationError as e:
            raise AgentExecutionError(
                "DRAFT_UNREADABLE",
                f"Saved draft failed validation: {e.error_count()} error(s)",
                {"errors": e.errors(include_url=False)[:5]}
            ) from e

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export_snapshot(
        self,
        draft: StoryboardDraft,
        directory: Optional[Union[str, Path]] = None,
        timestamp: Optional[datetime] = None
    ) -> ExportResult:
        """
        Serialize the draft (without audio) as a pretty-printed JSON snapshot.

        Args:
            draft: Draft to export
            directory: If given, the snapshot is also written there
            timestamp: Time used in the file name (defaults to now)
        """
        timestamp = timestamp or datetime.now()
        filename = timestamp.strftime(EXPORT_FILENAME_FORMAT)
        content = json.dumps(
            self.serialize_draft(draft, include_audio=False),
            indent=2,
            ensure_ascii=False
        )

        path = None
        if directory is not None:
            target_dir = Path(directory)
            target_dir.mkdir(parents=True, exist_ok=True)
            path = target_dir / filename
            write_file_atomically(path, content)
            logger.info(f"Exported snapshot to {path}")

        return ExportResult(filename=filename, content=content, path=str(path) if path else None)

    def import_snapshot(self, text: str, current: StoryboardDraft) -> StoryboardDraft:
        """
        Build a draft from a snapshot document.

        The scene list is mandatory and replaces the current scenes. Every
        other known field is restored when present and valid; invalid ones
        keep the current value. The current audio attachment is kept.

        Raises:
            AgentExecutionError: IMPORT_FAILED when the document is not JSON
                or has no valid scene list
        """
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, TypeError) as e:
            raise AgentExecutionError(
                "IMPORT_FAILED",
                f"Snapshot is not valid JSON: {str(e)}"
            ) from e

        if not isinstance(data, dict) or not isinstance(data.get("scenes"), list):
            raise AgentExecutionError(
                "IMPORT_FAILED",
                "Snapshot has no scenes list",
                {"keys": sorted(data)[:20] if isinstance(data, dict) else []}
            )

        try:
            scenes = renumber([Scene.model_validate(scene) for scene in data["scenes"]])
        except ValidationError as e:
            raise AgentExecutionError(
                "IMPORT_FAILED",
                f"Snapshot scenes are invalid: {e.error_count()} error(s)",
                {"errors": e.errors(include_url=False)[:5]}
            ) from e

        fields = current.model_dump(by_alias=True, exclude={"scenes"})
        for key in IMPORTABLE_FIELDS:
            if key not in data:
                continue
            candidate = {**fields, key: data[key]}
            try:
                StoryboardDraft.model_validate(candidate)
            except ValidationError:
                logger.warning(f"Ignoring invalid '{key}' in imported snapshot")
                continue
            fields = candidate

        draft = StoryboardDraft.model_validate(fields)
        interrupted = message("generation_interrupted", draft.storyboard_language)
        scenes = tuple(scene.interrupted(interrupted) for scene in scenes)
        return draft.model_copy(update={"scenes": scenes})

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------

    def write_media(self, payload: bytes, filename: str) -> str:
        """
        Write a downloaded asset to the media directory.

        Returns:
            Path of the written file, used as the playable handle

        Raises:
            AgentExecutionError: MEDIA_WRITE_FAILED
        """
        if self.media_directory is None:
            raise AgentExecutionError(
                "MEDIA_WRITE_FAILED",
                "No media directory configured"
            )
        try:
            self.media_directory.mkdir(parents=True, exist_ok=True)
            path = self.media_directory / filename
            write_file_atomically(path, payload)
        except OSError as e:
            raise AgentExecutionError(
                "MEDIA_WRITE_FAILED",
                f"Failed to write media file: {str(e)}",
                {"filename": filename}
            ) from e
        return str(path)

    def export_media_zip(self, draft: StoryboardDraft, zip_path: Union[str, Path]) -> List[str]:
        """
        Bundle finished frame images and videos into a zip archive.

        Entries are named scene-NN-start.<ext>, scene-NN-end.<ext> and
        scene-NN.<ext>. Videos whose file no longer exists are skipped.

        Returns:
            Archive entry names
        """
        zip_path = Path(zip_path)
        zip_path.parent.mkdir(parents=True, exist_ok=True)
        entries: List[str] = []

        with zipfile.ZipFile(zip_path, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
            for scene in draft.scenes:
                prefix = f"scene-{scene.scene_number:02d}"

                for frame, side in ((scene.start_frame, "start"), (scene.end_frame, "end")):
                    if not frame.has_image or not DataURL.is_data_url(frame.image_url):
                        continue
                    image = DataURL.parse(frame.image_url)
                    name = f"{prefix}-{side}.{image.extension}"
                    archive.writestr(name, image.decode())
                    entries.append(name)

                if scene.video_status == GenerationStatus.DONE and scene.video_url:
                    video_path = Path(scene.video_url)
                    if not video_path.is_file():
                        logger.warning(f"Video for scene {scene.scene_number} missing at {video_path}")
                        continue
                    name = f"{prefix}{video_path.suffix or '.mp4'}"
                    archive.write(video_path, arcname=name)
                    entries.append(name)

        logger.info(f"Wrote {len(entries)} media file(s) to {zip_path}")
        return entries
