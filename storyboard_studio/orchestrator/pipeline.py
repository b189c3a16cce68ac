"""Generation orchestrator for the storyboard editor.

This module wires the agents to an editing session. Each pipeline reads
what it needs from the live draft, marks its target as pending, runs one
agent, and writes the result back into the live scene list:

- generate_script: inputs -> summary -> scenes (replaces the scene list)
- generate_image: one start/end frame
- generate_video: one scene video (start job, poll, download)
- generate_video_prompt / refine_scene_description / refine_scene_transition:
  model-assisted text edits of one scene

Error Handling Strategy:
- **Abort**: Precondition failures (missing input, unknown scene, a
  generation already running for the same target, unreadable import) raise
  PipelineAbortError before any state is touched.
- **Record**: Failures of the external services are written into the draft
  (the frame's or scene's error field, or ``session.error``) and never
  raised; other frames, scenes and pipelines are unaffected.
- **Drop**: A result whose target was cleared, replaced or deleted while the
  generation ran is discarded.

Progress markers (pending, failed) use the transient write path; finished
content uses the durable path and becomes an undo step.

Running generations are tracked by (scene index, target) in the
orchestrator, not by the stored status. A ``pending`` marker with no running
generation behind it (brought back by undo/redo, or left behind when a scene
was deleted or moved) is failed as interrupted so it can be re-triggered.
"""

import asyncio
import logging
import os
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, Union

from storyboard_studio.agents.base import (
    Agent,
    AgentExecutionError,
    AgentInput,
    AgentOutput,
    BackoffStrategy,
    PollPolicy,
)
from storyboard_studio.agents.frame_renderer import (
    FrameRendererAgent,
    FrameRenderInput,
    resolve_image_source,
)
from storyboard_studio.agents.persistence import (
    DraftStore,
    ExportResult,
    FileDraftStore,
    PersistenceAgent,
    PersistenceInput,
)
from storyboard_studio.agents.scene_editor import SceneEdit, SceneEditInput, SceneEditorAgent
from storyboard_studio.agents.script_writer import ScriptWriterAgent, ScriptWriterInput
from storyboard_studio.agents.video_generator import VideoGenerationInput, VideoGeneratorAgent
from storyboard_studio.messages import error_message, message
from storyboard_studio.orchestrator.autosave import DebouncedAutosave
from storyboard_studio.orchestrator.gallery import ImageGallery
from storyboard_studio.orchestrator.logger import StructuredJSONLogger
from storyboard_studio.orchestrator.retry_policy import create_poll_policy
from storyboard_studio.orchestrator.session import StoryboardSession
from storyboard_studio.schemas.data_url import DataURL
from storyboard_studio.schemas.storyboard import (
    Frame,
    FrameType,
    GenerationStatus,
    Scene,
    StoryboardDraft,
    VideoPromptMode,
)
from storyboard_studio.services.base import GenerativeServices, VideoOperation


logger = logging.getLogger(__name__)

VIDEO_TARGET = "video"


@dataclass
class StudioConfig:
    """Configuration for an editing session.

    Attributes:
        data_directory: Where the draft, gallery, media files and logs live
        autosave_delay_seconds: Quiet period before the draft is saved
        poll_interval_seconds: Delay between video status checks
        poll_max_attempts: Maximum number of video status checks
        poll_timeout_seconds: Maximum time spent waiting for a video
        poll_backoff: Growth of the delay between status checks
        default_aspect_ratio: Aspect ratio of a new draft
        enable_file_logging: Whether storyboard.log is written
    """
    data_directory: str = "storyboard_data"
    autosave_delay_seconds: float = 1.0
    poll_interval_seconds: float = 5.0
    poll_max_attempts: int = 120
    poll_timeout_seconds: float = 900.0
    poll_backoff: BackoffStrategy = BackoffStrategy.CONSTANT
    default_aspect_ratio: str = "16:9"
    enable_file_logging: bool = True

    @classmethod
    def from_env(cls) -> "StudioConfig":
        """Build a config from STORYBOARD_* environment variables.

        Raises:
            ValueError: If a variable is set to a malformed number
        """
        config = cls()
        env = os.environ
        if env.get("STORYBOARD_DATA_DIR"):
            config.data_directory = env["STORYBOARD_DATA_DIR"]
        if env.get("STORYBOARD_AUTOSAVE_DELAY"):
            config.autosave_delay_seconds = float(env["STORYBOARD_AUTOSAVE_DELAY"])
        if env.get("STORYBOARD_POLL_INTERVAL"):
            config.poll_interval_seconds = float(env["STORYBOARD_POLL_INTERVAL"])
        if env.get("STORYBOARD_POLL_MAX_ATTEMPTS"):
            config.poll_max_attempts = int(env["STORYBOARD_POLL_MAX_ATTEMPTS"])
        if env.get("STORYBOARD_POLL_TIMEOUT"):
            config.poll_timeout_seconds = float(env["STORYBOARD_POLL_TIMEOUT"])
        return config

    @property
    def media_directory(self) -> str:
        return os.path.join(self.data_directory, "media")

    def to_poll_policy(self) -> PollPolicy:
        return create_poll_policy(
            interval_seconds=self.poll_interval_seconds,
            max_attempts=self.poll_max_attempts,
            timeout_seconds=self.poll_timeout_seconds,
            backoff_strategy=self.poll_backoff
        )


class PipelineAbortError(Exception):
    """Exception raised when a pipeline cannot start.

    Attributes:
        stage: Pipeline where the abort occurred
        error_code: Machine-readable error code
        message: Human-readable error message
        context: Additional context about the failure
    """

    def __init__(self, stage: str, error_code: str, message: str, context: Optional[Dict[str, Any]] = None):
        self.stage = stage
        self.error_code = error_code
        self.message = message
        self.context = context or {}
        super().__init__(f"Pipeline aborted at {stage}: [{error_code}] {message}")


class StoryboardOrchestrator:
    """Runs the generation pipelines against one editing session.

    Usage::

        async with StoryboardOrchestrator(OpenAIServices()) as studio:
            studio.session.update_draft(idea="A lighthouse keeper adopts a seal")
            await studio.generate_script()
            await studio.generate_all_images()

    The saved draft is restored on ``open()``; from then on every change is
    autosaved after a quiet period. ``close()`` stops pending video polls
    and flushes the autosave.
    """

    def __init__(
        self,
        services: GenerativeServices,
        config: Optional[StudioConfig] = None,
        store: Optional[DraftStore] = None,
        structured_logger: Optional[StructuredJSONLogger] = None,
        session: Optional[StoryboardSession] = None
    ):
        """Initialize the orchestrator.

        Args:
            services: Remote model endpoints
            config: Session configuration (uses defaults if not provided)
            store: Draft storage (file store in the data directory by default)
            structured_logger: JSON logger (storyboard.log in the data directory by default)
            session: Session to drive (a new empty one by default)
        """
        self.config = config or StudioConfig()
        self.services = services
        self.store = store if store is not None else FileDraftStore(self.config.data_directory)
        self.structured_logger = structured_logger or StructuredJSONLogger(
            self.config.data_directory if self.config.enable_file_logging else None
        )
        self.session = session or StoryboardSession(
            StoryboardDraft(aspect_ratio=self.config.default_aspect_ratio)
        )

        # Initialize agents
        self.script_writer_agent = ScriptWriterAgent(services)
        self.frame_renderer_agent = FrameRendererAgent(services)
        self.video_generator_agent = VideoGeneratorAgent(services, self.config.to_poll_policy())
        self.scene_editor_agent = SceneEditorAgent(services)
        self.persistence_agent = PersistenceAgent(self.store, media_directory=self.config.media_directory)

        self.is_generating_script = False
        self._script_run = 0
        self._loaded = False
        self._dirty = False
        self._gallery_dirty = False
        self._in_flight: Set[Tuple[int, str]] = set()
        self._cancel_event = asyncio.Event()
        self._autosave = DebouncedAutosave(self.save_draft, self.config.autosave_delay_seconds)
        self._gallery_autosave = DebouncedAutosave(self.save_gallery, self.config.autosave_delay_seconds)

        self.session.gallery.on_change = self._save_gallery
        self.session.add_listener(self._on_session_change)

    # ------------------------------------------------------------------
    # Lifecycle and persistence
    # ------------------------------------------------------------------

    async def __aenter__(self) -> "StoryboardOrchestrator":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.close()
        return False

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def open(self) -> StoryboardDraft:
        """Restore the saved draft and gallery, then enable autosave.

        A saved draft that cannot be read is logged and replaced by the
        current (empty) draft on the next save.
        """
        try:
            draft = await asyncio.to_thread(self.persistence_agent.load)
        except AgentExecutionError as e:
            self.structured_logger.log_pipeline_failure("Load", "draft", e.message, e.error_code)
            draft = None

        if draft is not None:
            self.session.load(draft)

        try:
            items = await asyncio.to_thread(self.store.load_gallery)
        except AgentExecutionError as e:
            self.structured_logger.log_pipeline_failure("Load", "gallery", e.message, e.error_code)
            items = []
        self.session.gallery = ImageGallery(items, on_change=self._save_gallery)

        self._cancel_event.clear()
        self._loaded = True
        self.structured_logger.log_session_event("load", {
            "restored": draft is not None,
            "scene_count": len(self.session.scenes),
            "gallery_size": len(items)
        })
        return self.session.draft

    async def close(self) -> None:
        """Stop pending video polls, flush the autosaves and close the log.

        A failed final save is logged; the session is closed either way.
        """
        self._cancel_event.set()
        try:
            if self._loaded:
                if self._gallery_autosave.pending or self._gallery_dirty:
                    self._gallery_autosave.cancel()
                    await self.save_gallery()
                if self._autosave.pending or self._dirty:
                    self._autosave.cancel()
                    try:
                        await self.save_draft()
                    except AgentExecutionError as e:
                        self.structured_logger.log_pipeline_failure("Save", "draft", e.message, e.error_code)
                self.structured_logger.log_session_event("close", {"scene_count": len(self.session.scenes)})
        finally:
            self._loaded = False
            self.structured_logger.close()

    def _on_session_change(self) -> None:
        if not self._loaded:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No loop to debounce on; saved on the next scheduled save or close()
            self._dirty = True
            return
        self._autosave.schedule()

    async def save_draft(self) -> None:
        """Save the draft now."""
        self._dirty = False
        output = await self.persistence_agent.execute(PersistenceInput(draft=self.session.draft))
        self.structured_logger.log_session_event("save", {"scene_count": output.scene_count})

    async def save_gallery(self) -> None:
        """Save the gallery now; a failed write is logged."""
        self._gallery_dirty = False
        try:
            await asyncio.to_thread(self.store.save_gallery, self.session.gallery.items)
        except OSError as e:
            logger.error(f"Failed to save gallery: {e}", exc_info=True)

    def _save_gallery(self, items: List[str]) -> None:
        if not self._loaded:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            self._gallery_dirty = True
            return
        self._gallery_autosave.schedule()

    def new_draft(self) -> None:
        """Start over: empty draft, empty history, saved draft deleted."""
        self.session.reset(self.config.default_aspect_ratio)
        self._autosave.cancel()
        self._dirty = False
        self.store.clear_draft()
        self.structured_logger.log_session_event("new")

    def export_snapshot(self, directory: Optional[str] = None) -> ExportResult:
        """Export the draft (without audio) as a timestamped JSON snapshot."""
        result = self.persistence_agent.export_snapshot(self.session.draft, directory)
        self.structured_logger.log_session_event("export", {
            "filename": result.filename,
            "path": result.path,
            "scene_count": len(self.session.scenes)
        })
        return result

    def import_snapshot(self, text: str) -> StoryboardDraft:
        """Replace the draft with an exported snapshot.

        Raises:
            PipelineAbortError: IMPORT_FAILED if the document has no valid
                scene list; the current draft is left untouched
        """
        try:
            draft = self.persistence_agent.import_snapshot(text, current=self.session.draft)
        except AgentExecutionError as e:
            self.structured_logger.log_pipeline_failure("Import", "snapshot", e.message, e.error_code)
            raise PipelineAbortError(
                stage="Import",
                error_code="IMPORT_FAILED",
                message=message("import_failed", self.session.draft.storyboard_language),
                context={"reason": e.message}
            ) from e

        self.session.load(draft)
        self.structured_logger.log_session_event("import", {"scene_count": len(draft.scenes)})
        return self.session.draft

    def export_media_zip(self, zip_path: str) -> List[str]:
        """Bundle finished frame images and videos into ``zip_path``."""
        entries = self.persistence_agent.export_media_zip(self.session.draft, zip_path)
        self.structured_logger.log_session_event("export_media", {"path": zip_path, "entries": len(entries)})
        return entries

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def undo(self) -> bool:
        moved = self.session.undo()
        if moved:
            self._settle_stale_generations()
        return moved

    def redo(self) -> bool:
        moved = self.session.redo()
        if moved:
            self._settle_stale_generations()
        return moved

    def _settle_stale_generations(self) -> None:
        """Fail every pending frame or video that no running generation owns."""
        interrupted = message("generation_interrupted", self.session.draft.storyboard_language)
        for index, scene in enumerate(self.session.scenes):
            for side in FrameType:
                if scene.frame(side).status == GenerationStatus.PENDING \
                        and (index, side.value) not in self._in_flight:
                    logger.warning(f"Scene {index + 1} {side.value}: no generation running; marked interrupted")
                    self._write_frame(index, side, lambda f: f.mark_failed(interrupted), durable=False)
            if scene.video_status == GenerationStatus.PENDING and (index, VIDEO_TARGET) not in self._in_flight:
                logger.warning(f"Scene {index + 1} video: no generation running; marked interrupted")
                self.session.apply_transient(index, lambda s: s.video_failed(interrupted))

    # ------------------------------------------------------------------
    # Script
    # ------------------------------------------------------------------

    async def generate_script(self) -> Optional[Tuple[Scene, ...]]:
        """Generate the summary and scene list from the active input.

        On success the summary is stored and the new scene list becomes one
        undo step. A later run supersedes an earlier one still in flight.

        Returns:
            The new scenes, or None if the run failed or was superseded

        Raises:
            PipelineAbortError: MISSING_IDEA / MISSING_SCRIPT_TEXT /
                MISSING_AUDIO when the active input is empty
        """
        draft = self.session.draft
        try:
            self.script_writer_agent.validate_draft(draft)
        except AgentExecutionError as e:
            self.structured_logger.log_pipeline_failure("ScriptGeneration", "draft", e.message, e.error_code)
            raise PipelineAbortError(
                stage="ScriptGeneration",
                error_code=e.error_code,
                message=e.message,
                context=e.context
            ) from e

        self._script_run += 1
        run_id = self._script_run
        self.is_generating_script = True
        self.session.set_error(None)

        try:
            output = await self._execute_agent(
                self.script_writer_agent,
                ScriptWriterInput(draft),
                "ScriptGeneration",
                f"{draft.active_input.value} input"
            )
        except AgentExecutionError as e:
            if run_id == self._script_run:
                self.is_generating_script = False
                self.session.set_error(error_message(e, draft.storyboard_language))
            return None

        if run_id != self._script_run:
            logger.info(f"Script run {run_id} superseded by run {self._script_run}; result dropped")
            return None

        self.is_generating_script = False
        self.session.set_script_summary(output.summary)
        self.session.commit(output.scenes)
        return self.session.scenes

    # ------------------------------------------------------------------
    # Frames
    # ------------------------------------------------------------------

    async def generate_image(self, scene_index: int, frame_type: Union[FrameType, str]) -> Optional[str]:
        """Generate one frame image.

        Returns:
            The image data URL, or None if generation failed

        Raises:
            PipelineAbortError: SCENE_NOT_FOUND, or GENERATION_IN_PROGRESS if
                the frame is already generating
        """
        side = FrameType(frame_type)
        target = f"scene {scene_index + 1} {side.value}"
        key = (scene_index, side.value)
        self._require_scene(scene_index, "ImageGeneration")
        if key in self._in_flight:
            raise PipelineAbortError(
                stage="ImageGeneration",
                error_code="GENERATION_IN_PROGRESS",
                message=f"An image is already being generated for {target}",
                context={"scene_index": scene_index, "frame": side.value}
            )
        self._settle_stale_generations()

        self._in_flight.add(key)
        try:
            self.session.apply_transient(
                scene_index,
                lambda s: s.with_frame(side, s.frame(side).mark_pending())
            )

            draft = self.session.draft
            frame = draft.scenes[scene_index].frame(side)
            language = draft.storyboard_language

            try:
                source_image = resolve_image_source(frame.image_source, draft.scenes, draft.reference_images)
                output = await self._execute_agent(
                    self.frame_renderer_agent,
                    FrameRenderInput(
                        description=frame.description,
                        aspect_ratio=draft.aspect_ratio,
                        style=draft.style,
                        source_image=source_image,
                        language=language
                    ),
                    "ImageGeneration",
                    target
                )
            except (AgentExecutionError, ValueError) as e:
                failure = error_message(e, language)
                self._write_frame(scene_index, side, lambda f: f.mark_failed(failure), durable=False)
                return None

            self._write_frame(scene_index, side, lambda f: f.mark_done(output.image_url), durable=True)
            self.session.gallery.add([output.image_url])
            return output.image_url
        finally:
            self._in_flight.discard(key)
            self._settle_stale_generations()

    async def generate_all_images(self) -> List[Optional[str]]:
        """Generate every frame that is not finished or already generating.

        Frames run concurrently; each one records its own outcome.
        """
        self._settle_stale_generations()
        targets = [
            (index, side)
            for index, scene in enumerate(self.session.scenes)
            for side in FrameType
            if scene.frame(side).status in (GenerationStatus.IDLE, GenerationStatus.ERROR)
            and (index, side.value) not in self._in_flight
        ]
        logger.info(f"Generating {len(targets)} frame image(s)")
        return list(await asyncio.gather(
            *(self.generate_image(index, side) for index, side in targets)
        ))

    def _write_frame(
        self,
        scene_index: int,
        side: FrameType,
        update: Callable[[Frame], Frame],
        durable: bool
    ) -> Optional[Scene]:
        scene = self.session.scene_at(scene_index)
        if scene is None or scene.frame(side).status != GenerationStatus.PENDING:
            logger.warning(
                f"Dropping result for scene {scene_index + 1} {side.value}: "
                f"frame is no longer generating"
            )
            return None
        apply = self.session.apply_durable if durable else self.session.apply_transient
        return apply(scene_index, lambda s: s.with_frame(side, update(s.frame(side))))

    # ------------------------------------------------------------------
    # Videos
    # ------------------------------------------------------------------

    async def generate_video(self, scene_index: int) -> Optional[str]:
        """Generate the scene's video from its start frame and video prompt.

        Returns:
            Path of the downloaded video, or None if generation failed

        Raises:
            PipelineAbortError: SCENE_NOT_FOUND, MISSING_INPUT (no finished
                start frame or empty video prompt), GENERATION_IN_PROGRESS
        """
        scene = self._require_scene(scene_index, "VideoGeneration")
        language = self.session.draft.storyboard_language
        target = f"scene {scene_index + 1} video"

        if not scene.start_frame.has_image or not scene.video_prompt.strip() \
                or not DataURL.is_data_url(scene.start_frame.image_url):
            raise PipelineAbortError(
                stage="VideoGeneration",
                error_code="MISSING_INPUT",
                message=message("inputs_missing", language),
                context={
                    "scene_index": scene_index,
                    "has_start_image": scene.start_frame.has_image,
                    "has_video_prompt": bool(scene.video_prompt.strip())
                }
            )
        key = (scene_index, VIDEO_TARGET)
        if key in self._in_flight:
            raise PipelineAbortError(
                stage="VideoGeneration",
                error_code="GENERATION_IN_PROGRESS",
                message=f"A video is already being generated for {target}",
                context={"scene_index": scene_index}
            )
        self._settle_stale_generations()

        start_image = DataURL.parse(scene.start_frame.image_url)

        def on_started(operation: VideoOperation) -> None:
            if self._video_pending(scene_index):
                self.session.apply_transient(scene_index, lambda s: s.video_started(operation.name))

        self._in_flight.add(key)
        try:
            self.session.apply_transient(scene_index, lambda s: s.video_pending())
            try:
                output = await self._execute_agent(
                    self.video_generator_agent,
                    VideoGenerationInput(
                        prompt=scene.video_prompt,
                        start_image=start_image,
                        language=language,
                        cancel_event=self._cancel_event,
                        on_started=on_started
                    ),
                    "VideoGeneration",
                    target
                )
                filename = f"scene-{scene.scene_number:02d}-{_safe_name(output.operation.name)}.mp4"
                video_path = await asyncio.to_thread(
                    self.persistence_agent.write_media, output.video_bytes, filename
                )
            except AgentExecutionError as e:
                failure = error_message(e, language)
                if self._video_pending(scene_index):
                    self.session.apply_transient(scene_index, lambda s: s.video_failed(failure))
                return None

            if not self._video_pending(scene_index):
                logger.warning(f"Dropping video for {target}: scene is no longer generating")
                return None
            self.session.apply_durable(scene_index, lambda s: s.video_done(video_path))
            self.session.gallery.add([video_path])
            return video_path
        finally:
            self._in_flight.discard(key)
            self._settle_stale_generations()

    def _video_pending(self, scene_index: int) -> bool:
        scene = self.session.scene_at(scene_index)
        return scene is not None and scene.video_status == GenerationStatus.PENDING

    # ------------------------------------------------------------------
    # Text assists
    # ------------------------------------------------------------------

    async def generate_video_prompt(
        self,
        scene_index: int,
        mode: Union[VideoPromptMode, str] = VideoPromptMode.START_END
    ) -> Optional[str]:
        """Write the scene's video prompt from its frames and motion."""
        return await self._edit_scene(
            scene_index,
            SceneEdit.VIDEO_PROMPT,
            lambda s, text: s.with_video_prompt(text),
            mode=VideoPromptMode(mode)
        )

    async def refine_scene_description(
        self,
        scene_index: int,
        frame_type: Union[FrameType, str],
        modification: str
    ) -> Optional[str]:
        """Rewrite a frame description according to ``modification``."""
        side = FrameType(frame_type)
        return await self._edit_scene(
            scene_index,
            SceneEdit.REFINE_DESCRIPTION,
            lambda s, text: s.with_frame(side, s.frame(side).with_description(text)),
            side=side,
            modification=modification
        )

    async def refine_scene_transition(self, scene_index: int, modification: str) -> Optional[str]:
        """Rewrite the animation description according to ``modification``."""
        return await self._edit_scene(
            scene_index,
            SceneEdit.REFINE_TRANSITION,
            lambda s, text: s.with_animation_description(text),
            modification=modification
        )

    async def _edit_scene(
        self,
        scene_index: int,
        edit: SceneEdit,
        write: Callable[[Scene, str], Scene],
        **options: Any
    ) -> Optional[str]:
        scene = self._require_scene(scene_index, "SceneEdit")
        draft = self.session.draft
        if edit != SceneEdit.VIDEO_PROMPT and not options.get("modification", "").strip():
            raise PipelineAbortError(
                stage="SceneEdit",
                error_code="MISSING_INPUT",
                message="Describe the change you want first",
                context={"scene_index": scene_index, "edit": edit.value}
            )

        try:
            output = await self._execute_agent(
                self.scene_editor_agent,
                SceneEditInput(
                    edit=edit,
                    scene=scene,
                    language=draft.storyboard_language,
                    script_type=draft.script_type,
                    **options
                ),
                "SceneEdit",
                f"scene {scene_index + 1} {edit.value}"
            )
        except AgentExecutionError as e:
            self.session.set_error(error_message(e, draft.storyboard_language))
            return None

        if self.session.apply_durable(scene_index, lambda s: write(s, output.text)) is None:
            return None
        return output.text

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _require_scene(self, scene_index: int, stage: str) -> Scene:
        scene = self.session.scene_at(scene_index)
        if scene is None:
            raise PipelineAbortError(
                stage=stage,
                error_code="SCENE_NOT_FOUND",
                message=f"There is no scene {scene_index + 1}",
                context={"scene_index": scene_index, "scene_count": len(self.session.scenes)}
            )
        return scene

    async def _execute_agent(
        self,
        agent: Agent,
        input_data: AgentInput,
        pipeline: str,
        target: str
    ) -> AgentOutput:
        """Execute an agent with structured logging.

        Unexpected exceptions are wrapped so callers only handle
        AgentExecutionError; cancellation propagates unchanged.

        Raises:
            AgentExecutionError: If agent execution fails
        """
        self.structured_logger.log_pipeline_start(pipeline, target, self._summarize_input(input_data))
        start_time = time.time()

        try:
            result = await agent.execute(input_data)
        except AgentExecutionError as e:
            duration_ms = (time.time() - start_time) * 1000
            self.structured_logger.log_pipeline_failure(pipeline, target, e.message, e.error_code, duration_ms)
            raise
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(f"Unexpected error in {pipeline} for {target}: {e}", exc_info=True)
            self.structured_logger.log_pipeline_failure(pipeline, target, str(e), "UNEXPECTED_ERROR", duration_ms)
            raise AgentExecutionError(
                "UNEXPECTED_ERROR",
                str(e),
                {"error_type": type(e).__name__, "pipeline": pipeline}
            ) from e

        duration_ms = (time.time() - start_time) * 1000
        self.structured_logger.log_pipeline_complete(
            pipeline, target, duration_ms, self._summarize_output(result)
        )
        return result

    def _summarize_input(self, input_data: AgentInput) -> str:
        """Generate a brief summary of input data for logging."""
        if isinstance(input_data, FrameRenderInput):
            source = "with source image" if input_data.source_image else "without source image"
            return f"FrameRenderInput({input_data.aspect_ratio}, {source})"
        if isinstance(input_data, ScriptWriterInput):
            return f"ScriptWriterInput(active_input={input_data.draft.active_input.value})"
        return input_data.__class__.__name__

    def _summarize_output(self, output_data: AgentOutput) -> str:
        """Generate a brief summary of output data for logging."""
        scenes = getattr(output_data, "scenes", None)
        if scenes is not None:
            return f"{output_data.__class__.__name__}(scenes={len(scenes)})"
        return output_data.__class__.__name__


def _safe_name(value: str) -> str:
    return re.sub(r'[^\w.-]', '_', value)[:80] or "video"
