"""Tests for the generation orchestrator.

Covers:
- Script pipeline: input validation, summary selection, scene mapping
- Frame pipeline: pending/done/error writes, source resolution, concurrency
- Video pipeline: preconditions, polling, download, cancellation
- Text assists, history interaction, import/export and autosave
"""

import asyncio
import json
from dataclasses import replace
from pathlib import Path

import pytest

from storyboard_studio.agents.base import AgentExecutionError
from storyboard_studio.agents.persistence import DRAFT_FILENAME, MemoryDraftStore
from storyboard_studio.messages import message
from storyboard_studio.orchestrator.logger import LOG_FILENAME
from storyboard_studio.orchestrator.pipeline import (
    PipelineAbortError,
    StoryboardOrchestrator,
    StudioConfig,
)
from storyboard_studio.schemas import (
    AudioAttachment,
    FrameType,
    GenerationStatus,
    InputMethod,
    OutputLanguage,
    ReferenceSource,
    StoryboardDraft,
    VideoPromptMode,
)

from conftest import REFERENCE_IMAGE, image_for, service_failure


async def scripted(orchestrator):
    orchestrator.session.update_draft(idea="A keeper adopts a seal")
    await orchestrator.generate_script()
    return orchestrator.session.scenes


class TestStudioConfig:
    """Test configuration defaults and environment overrides."""

    def test_defaults(self):
        config = StudioConfig()
        policy = config.to_poll_policy()
        assert policy.interval_seconds == 5.0
        assert policy.max_attempts == 120
        assert policy.timeout_seconds == 900.0

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("STORYBOARD_DATA_DIR", "/tmp/boards")
        monkeypatch.setenv("STORYBOARD_POLL_INTERVAL", "2.5")
        monkeypatch.setenv("STORYBOARD_POLL_MAX_ATTEMPTS", "7")
        config = StudioConfig.from_env()
        assert config.data_directory == "/tmp/boards"
        assert config.poll_interval_seconds == 2.5
        assert config.poll_max_attempts == 7
        assert config.media_directory.endswith("media")

    def test_from_env_malformed(self, monkeypatch):
        monkeypatch.setenv("STORYBOARD_POLL_TIMEOUT", "soon")
        with pytest.raises(ValueError):
            StudioConfig.from_env()


class TestGenerateScript:
    """Test the script pipeline."""

    @pytest.mark.asyncio
    async def test_scenes_mapped_and_committed(self, orchestrator, fake_services):
        scenes = await scripted(orchestrator)

        assert [s.scene_number for s in scenes] == [1, 2, 3]
        for i, scene in enumerate(scenes, start=1):
            assert scene.start_frame.description == f"start {i}"
            assert scene.end_frame.description == f"end {i}"
            assert scene.animation_description == f"motion {i}"
            for side in FrameType:
                frame = scene.frame(side)
                assert frame.status == GenerationStatus.IDLE
                assert frame.image_source == ReferenceSource()
                assert frame.image_url is None and frame.error is None
            assert scene.video_status == GenerationStatus.IDLE
            assert scene.video_url is None

        assert orchestrator.session.draft.script_summary == fake_services.summary
        assert len(orchestrator.session.history) == 2
        assert orchestrator.is_generating_script is False
        assert len(fake_services.called("summarize_idea")) == 1

    @pytest.mark.asyncio
    async def test_empty_idea_aborts(self, orchestrator, fake_services):
        orchestrator.session.update_draft(idea="   ")
        with pytest.raises(PipelineAbortError) as exc_info:
            await orchestrator.generate_script()
        assert exc_info.value.error_code == "MISSING_IDEA"
        assert "no idea" in exc_info.value.message
        assert fake_services.calls == []
        assert len(orchestrator.session.history) == 1

    @pytest.mark.asyncio
    async def test_missing_audio_aborts(self, orchestrator):
        orchestrator.session.update_draft(active_input=InputMethod.AUDIO)
        with pytest.raises(PipelineAbortError) as exc_info:
            await orchestrator.generate_script()
        assert exc_info.value.error_code == "MISSING_AUDIO"

    @pytest.mark.asyncio
    async def test_text_input_uses_text_summary(self, orchestrator, fake_services):
        orchestrator.session.update_draft(active_input=InputMethod.TEXT, script_text="INT. LIGHTHOUSE - NIGHT")
        await orchestrator.generate_script()
        (args,) = fake_services.called("summarize_text")
        assert args[0] == "INT. LIGHTHOUSE - NIGHT"

    @pytest.mark.asyncio
    async def test_audio_input_uses_audio_summary(self, orchestrator, fake_services):
        audio = AudioAttachment.from_bytes("voice.mp3", "audio/mpeg", b"ID3")
        orchestrator.session.update_draft(active_input=InputMethod.AUDIO, audio_data=audio)
        await orchestrator.generate_script()
        (args,) = fake_services.called("summarize_audio")
        assert args[0].mime_type == "audio/mpeg"
        assert args[0].decode() == b"ID3"

    @pytest.mark.asyncio
    async def test_reference_images_and_parameters_passed(self, orchestrator, fake_services):
        orchestrator.session.update_draft(idea="seal", style="anime", number_of_scenes=3)
        orchestrator.session.add_reference_images([REFERENCE_IMAGE])
        await orchestrator.generate_script()
        (args,) = fake_services.called("summarize_idea")
        idea, reference_images, params = args[:3]
        assert [str(img) for img in reference_images] == [REFERENCE_IMAGE]
        assert params.style == "anime"
        assert params.number_of_scenes == 3

    @pytest.mark.asyncio
    async def test_failure_keeps_scenes_and_records_message(self, orchestrator, fake_services):
        before = await scripted(orchestrator)
        fake_services.summary_error = service_failure("quota exhausted")

        result = await orchestrator.generate_script()

        assert result is None
        assert orchestrator.session.scenes == before
        assert orchestrator.session.error == "quota exhausted"
        assert orchestrator.is_generating_script is False

    @pytest.mark.asyncio
    async def test_failure_without_message_uses_generic_text(self, orchestrator, fake_services):
        orchestrator.session.update_draft(idea="seal", storyboard_language=OutputLanguage.EN)
        fake_services.summary_error = AgentExecutionError("SERVICE_ERROR")
        await orchestrator.generate_script()
        assert orchestrator.session.error == message("generic_error", OutputLanguage.EN)

    @pytest.mark.asyncio
    async def test_unexpected_exception_recorded(self, orchestrator, fake_services):
        orchestrator.session.update_draft(idea="seal")
        fake_services.summary_error = RuntimeError("socket closed")
        await orchestrator.generate_script()
        assert orchestrator.session.error == "socket closed"


class TestGenerateImage:
    """Test the frame pipeline."""

    @pytest.mark.asyncio
    async def test_success_is_durable(self, orchestrator, fake_services):
        await scripted(orchestrator)
        history_before = len(orchestrator.session.history)

        image = await orchestrator.generate_image(0, "start")

        frame = orchestrator.session.scenes[0].start_frame
        assert frame.status == GenerationStatus.DONE
        assert frame.image_url == image == image_for("start 1")
        assert len(orchestrator.session.history) == history_before + 1
        assert image in orchestrator.session.gallery
        (args,) = fake_services.called("generate_images")
        assert args[1:] == (1, "16:9", None, False)

    @pytest.mark.asyncio
    async def test_empty_result_is_transient_error(self, orchestrator, fake_services):
        await scripted(orchestrator)
        history_before = len(orchestrator.session.history)
        fake_services.images = []

        result = await orchestrator.generate_image(0, FrameType.START)

        frame = orchestrator.session.scenes[0].start_frame
        assert result is None
        assert frame.status == GenerationStatus.ERROR
        assert frame.error == message("no_image_produced", OutputLanguage.VI)
        assert len(orchestrator.session.history) == history_before

    @pytest.mark.asyncio
    async def test_service_error_message_recorded(self, orchestrator, fake_services):
        await scripted(orchestrator)
        fake_services.image_error = service_failure("content policy")
        await orchestrator.generate_image(1, FrameType.END)
        assert orchestrator.session.scenes[1].end_frame.error == "content policy"
        assert orchestrator.session.scenes[0].end_frame.status == GenerationStatus.IDLE

    @pytest.mark.asyncio
    async def test_style_appended_to_prompt(self, orchestrator, fake_services):
        await scripted(orchestrator)
        orchestrator.session.update_draft(style="watercolor")
        await orchestrator.generate_image(0, FrameType.START)
        (args,) = fake_services.called("generate_images")
        assert args[0] == "start 1, watercolor style"

    @pytest.mark.asyncio
    async def test_reference_source_uses_first_reference_image(self, orchestrator, fake_services):
        await scripted(orchestrator)
        orchestrator.session.add_reference_images([REFERENCE_IMAGE, image_for("second")])
        await orchestrator.generate_image(0, FrameType.START)
        (args,) = fake_services.called("generate_images")
        assert str(args[3]) == REFERENCE_IMAGE

    @pytest.mark.asyncio
    async def test_cross_reference_source(self, orchestrator, fake_services):
        await scripted(orchestrator)
        await orchestrator.generate_image(0, FrameType.END)
        orchestrator.session.set_frame_image_source(1, FrameType.START, "0-end")

        await orchestrator.generate_image(1, FrameType.START)

        args = fake_services.called("generate_images")[-1]
        assert str(args[3]) == image_for("end 1")

    @pytest.mark.asyncio
    async def test_cross_reference_to_missing_image_sends_none(self, orchestrator, fake_services):
        await scripted(orchestrator)
        orchestrator.session.set_frame_image_source(1, FrameType.START, "0-end")
        await orchestrator.generate_image(1, FrameType.START)
        args = fake_services.called("generate_images")[-1]
        assert args[3] is None
        assert orchestrator.session.scenes[1].start_frame.status == GenerationStatus.DONE

    @pytest.mark.asyncio
    async def test_missing_scene_aborts(self, orchestrator):
        with pytest.raises(PipelineAbortError) as exc_info:
            await orchestrator.generate_image(4, FrameType.START)
        assert exc_info.value.error_code == "SCENE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_concurrent_frames_both_land(self, orchestrator, fake_services):
        await scripted(orchestrator)
        fake_services.image_gate = asyncio.Event()

        first = asyncio.create_task(orchestrator.generate_image(0, FrameType.START))
        second = asyncio.create_task(orchestrator.generate_image(2, FrameType.END))
        await asyncio.sleep(0)
        assert orchestrator.session.scenes[0].start_frame.status == GenerationStatus.PENDING
        assert orchestrator.session.scenes[2].end_frame.status == GenerationStatus.PENDING

        fake_services.image_gate.set()
        await asyncio.gather(first, second)

        assert orchestrator.session.scenes[0].start_frame.image_url == image_for("start 1")
        assert orchestrator.session.scenes[2].end_frame.image_url == image_for("end 3")

    @pytest.mark.asyncio
    async def test_same_frame_twice_rejected(self, orchestrator, fake_services):
        await scripted(orchestrator)
        fake_services.image_gate = asyncio.Event()
        task = asyncio.create_task(orchestrator.generate_image(0, FrameType.START))
        await asyncio.sleep(0)

        with pytest.raises(PipelineAbortError) as exc_info:
            await orchestrator.generate_image(0, FrameType.START)
        assert exc_info.value.error_code == "GENERATION_IN_PROGRESS"

        fake_services.image_gate.set()
        await task

    @pytest.mark.asyncio
    async def test_cleared_frame_drops_late_result(self, orchestrator, fake_services):
        await scripted(orchestrator)
        fake_services.image_gate = asyncio.Event()
        task = asyncio.create_task(orchestrator.generate_image(0, FrameType.START))
        await asyncio.sleep(0)

        orchestrator.session.clear_frame(0, FrameType.START)
        fake_services.image_gate.set()
        await task

        frame = orchestrator.session.scenes[0].start_frame
        assert frame.status == GenerationStatus.IDLE
        assert frame.image_url is None

    @pytest.mark.asyncio
    async def test_redo_does_not_revive_pending_frame(self, orchestrator, fake_services):
        await scripted(orchestrator)
        fake_services.image_gate = asyncio.Event()
        fake_services.failing_prompts = {"end 3": service_failure()}
        first = asyncio.create_task(orchestrator.generate_image(0, FrameType.START))
        second = asyncio.create_task(orchestrator.generate_image(2, FrameType.END))
        await asyncio.sleep(0)

        # The first result is committed while the second frame is still pending
        fake_services.image_gate.set()
        await asyncio.gather(first, second)
        assert orchestrator.session.scenes[2].end_frame.status == GenerationStatus.ERROR

        assert orchestrator.undo() is True
        assert orchestrator.redo() is True

        frame = orchestrator.session.scenes[2].end_frame
        assert frame.status == GenerationStatus.ERROR
        assert frame.error == message("generation_interrupted", orchestrator.session.draft.storyboard_language)

        fake_services.failing_prompts = {}
        assert await orchestrator.generate_image(2, FrameType.END) == image_for("end 3")

    @pytest.mark.asyncio
    async def test_deleted_scene_leaves_no_stuck_frame(self, orchestrator, fake_services):
        await scripted(orchestrator)
        fake_services.image_gate = asyncio.Event()
        task = asyncio.create_task(orchestrator.generate_image(1, FrameType.START))
        await asyncio.sleep(0)

        orchestrator.session.delete_scene(0)
        fake_services.image_gate.set()
        await task

        scenes = orchestrator.session.scenes
        assert scenes[0].start_frame.status == GenerationStatus.ERROR
        assert scenes[1].start_frame.status == GenerationStatus.IDLE
        fake_services.image_gate = None
        assert await orchestrator.generate_image(0, FrameType.START) == image_for("start 2")

    @pytest.mark.asyncio
    async def test_undo_removes_generated_image(self, orchestrator):
        await scripted(orchestrator)
        await orchestrator.generate_image(0, FrameType.START)
        assert orchestrator.undo() is True
        frame = orchestrator.session.scenes[0].start_frame
        assert frame.status == GenerationStatus.IDLE
        assert frame.image_url is None

    @pytest.mark.asyncio
    async def test_generate_all_images(self, orchestrator, fake_services):
        await scripted(orchestrator)
        orchestrator.session.use_custom_image(1, FrameType.END, REFERENCE_IMAGE)

        results = await orchestrator.generate_all_images()

        assert len(results) == 5
        for scene in orchestrator.session.scenes:
            assert scene.start_frame.status == GenerationStatus.DONE
            assert scene.end_frame.status == GenerationStatus.DONE
        assert orchestrator.session.scenes[1].end_frame.image_url == REFERENCE_IMAGE


class TestGenerateVideo:
    """Test the video pipeline."""

    async def ready_scene(self, orchestrator):
        await scripted(orchestrator)
        await orchestrator.generate_image(0, FrameType.START)
        orchestrator.session.update_video_prompt(0, "The seal dives.")

    @pytest.mark.asyncio
    async def test_missing_start_image_aborts_without_calls(self, orchestrator, fake_services):
        await scripted(orchestrator)
        orchestrator.session.update_video_prompt(0, "The seal dives.")
        calls_before = len(fake_services.calls)

        with pytest.raises(PipelineAbortError) as exc_info:
            await orchestrator.generate_video(0)

        assert exc_info.value.error_code == "MISSING_INPUT"
        assert len(fake_services.calls) == calls_before
        assert orchestrator.session.scenes[0].video_status == GenerationStatus.IDLE

    @pytest.mark.asyncio
    async def test_missing_prompt_aborts(self, orchestrator):
        await scripted(orchestrator)
        await orchestrator.generate_image(0, FrameType.START)
        with pytest.raises(PipelineAbortError) as exc_info:
            await orchestrator.generate_video(0)
        assert exc_info.value.error_code == "MISSING_INPUT"

    @pytest.mark.asyncio
    async def test_success_writes_media_file(self, orchestrator, fake_services):
        await self.ready_scene(orchestrator)
        fake_services.polls_until_done = 3

        path = await orchestrator.generate_video(0)

        scene = orchestrator.session.scenes[0]
        assert scene.video_status == GenerationStatus.DONE
        assert scene.video_url == path
        assert scene.video_operation == "operations/video-1"
        assert Path(path).read_bytes() == fake_services.video_bytes
        assert len(fake_services.called("poll_video_operation")) == 3
        (start_args,) = fake_services.called("start_video_generation")
        assert start_args[0] == "The seal dives."
        assert str(start_args[1]) == image_for("start 1")

    @pytest.mark.asyncio
    async def test_job_error_recorded(self, orchestrator, fake_services):
        await self.ready_scene(orchestrator)
        fake_services.video_job_error = "safety filter"
        history_before = len(orchestrator.session.history)

        assert await orchestrator.generate_video(0) is None

        scene = orchestrator.session.scenes[0]
        assert scene.video_status == GenerationStatus.ERROR
        assert scene.video_error == "safety filter"
        assert len(orchestrator.session.history) == history_before

    @pytest.mark.asyncio
    async def test_poll_budget_exhausted(self, orchestrator, fake_services):
        await self.ready_scene(orchestrator)
        fake_services.polls_until_done = None

        await orchestrator.generate_video(0)

        assert orchestrator.session.scenes[0].video_status == GenerationStatus.ERROR
        assert len(fake_services.called("poll_video_operation")) == 5

    @pytest.mark.asyncio
    async def test_fetch_failure_recorded(self, orchestrator, fake_services):
        await self.ready_scene(orchestrator)
        fake_services.fetch_error = ConnectionError("reset by peer")

        await orchestrator.generate_video(0)

        scene = orchestrator.session.scenes[0]
        assert scene.video_status == GenerationStatus.ERROR
        assert "reset by peer" in scene.video_error

    @pytest.mark.asyncio
    async def test_close_cancels_polling(self, fake_services, memory_store, tmp_path):
        config = StudioConfig(
            data_directory=str(tmp_path),
            poll_interval_seconds=30.0,
            poll_timeout_seconds=600.0,
            enable_file_logging=False
        )
        studio = StoryboardOrchestrator(fake_services, config=config, store=memory_store)
        await self.ready_scene(studio)
        fake_services.polls_until_done = None

        task = asyncio.create_task(studio.generate_video(0))
        await asyncio.sleep(0.01)
        assert studio.session.scenes[0].video_status == GenerationStatus.PENDING

        await studio.close()
        assert await asyncio.wait_for(task, timeout=5) is None
        assert studio.session.scenes[0].video_status == GenerationStatus.ERROR
        assert fake_services.called("poll_video_operation") == []


class TestTextAssists:
    """Test video prompt generation and refinements."""

    @pytest.mark.asyncio
    async def test_generate_video_prompt(self, orchestrator, fake_services):
        await scripted(orchestrator)
        text = await orchestrator.generate_video_prompt(1, "start-only")
        assert text == fake_services.video_prompt
        assert orchestrator.session.scenes[1].video_prompt == text
        (args,) = fake_services.called("generate_video_prompt")
        assert args[:3] == ("start 2", "motion 2", "end 2")
        assert args[4] == VideoPromptMode.START_ONLY

    @pytest.mark.asyncio
    async def test_refine_description(self, orchestrator):
        await scripted(orchestrator)
        await orchestrator.refine_scene_description(0, "end", "at night")
        assert orchestrator.session.scenes[0].end_frame.description == "end 1 (at night)"
        assert orchestrator.undo() is True
        assert orchestrator.session.scenes[0].end_frame.description == "end 1"

    @pytest.mark.asyncio
    async def test_refine_transition(self, orchestrator):
        await scripted(orchestrator)
        await orchestrator.refine_scene_transition(2, "slower")
        assert orchestrator.session.scenes[2].animation_description == "motion 3 (slower)"

    @pytest.mark.asyncio
    async def test_refine_requires_modification(self, orchestrator):
        await scripted(orchestrator)
        with pytest.raises(PipelineAbortError) as exc_info:
            await orchestrator.refine_scene_transition(0, "  ")
        assert exc_info.value.error_code == "MISSING_INPUT"


class TestPersistence:
    """Test open/close, autosave, export and import."""

    @pytest.mark.asyncio
    async def test_autosave_after_open(self, orchestrator, memory_store):
        await orchestrator.open()
        orchestrator.session.update_draft(idea="seal")
        await asyncio.sleep(0.1)
        assert memory_store.load_draft()["idea"] == "seal"

    @pytest.mark.asyncio
    async def test_no_autosave_before_open(self, orchestrator, memory_store):
        orchestrator.session.update_draft(idea="seal")
        await asyncio.sleep(0.1)
        assert memory_store.load_draft() is None

    @pytest.mark.asyncio
    async def test_open_restores_and_interrupts_pending(self, fake_services, studio_config, memory_store):
        first = StoryboardOrchestrator(fake_services, config=studio_config, store=memory_store)
        await first.open()
        await scripted(first)
        first.session.apply_transient(
            0, lambda s: s.with_frame(FrameType.START, s.start_frame.mark_pending())
        )
        await first.save_draft()
        await first.close()

        second = StoryboardOrchestrator(fake_services, config=studio_config, store=memory_store)
        draft = await second.open()

        assert len(draft.scenes) == 3
        frame = draft.scenes[0].start_frame
        assert frame.status == GenerationStatus.ERROR
        assert frame.error == message("generation_interrupted", draft.storyboard_language)
        assert not second.session.can_undo

    @pytest.mark.asyncio
    async def test_gallery_persisted(self, orchestrator, memory_store):
        await orchestrator.open()
        await scripted(orchestrator)
        image = await orchestrator.generate_image(0, FrameType.START)
        assert memory_store.load_gallery() == []

        await orchestrator.close()
        assert memory_store.load_gallery() == [image]

    @pytest.mark.asyncio
    async def test_gallery_autosaved(self, orchestrator, memory_store):
        await orchestrator.open()
        await scripted(orchestrator)
        image = await orchestrator.generate_image(0, FrameType.START)
        await asyncio.sleep(0.1)
        assert memory_store.load_gallery() == [image]

    @pytest.mark.asyncio
    async def test_open_undecodable_draft_starts_empty(self, fake_services, studio_config):
        data_dir = Path(studio_config.data_directory)
        data_dir.mkdir(parents=True)
        (data_dir / DRAFT_FILENAME).write_bytes(b'{"idea": "\xff\xfe"}')
        studio = StoryboardOrchestrator(fake_services, config=studio_config)

        draft = await studio.open()

        assert draft.scenes == ()
        assert draft.idea == ""
        assert studio.loaded
        await studio.close()

    @pytest.mark.asyncio
    async def test_close_survives_failed_final_save(self, fake_services, studio_config):
        class FullDiskStore(MemoryDraftStore):
            def save_draft(self, payload):
                raise OSError("disk full")

        config = replace(studio_config, enable_file_logging=True)
        studio = StoryboardOrchestrator(fake_services, config=config, store=FullDiskStore())
        await studio.open()
        studio.session.update_draft(idea="x")

        await studio.close()

        assert studio.loaded is False
        assert studio.structured_logger.json_file_handle is None
        log_path = Path(config.data_directory) / LOG_FILENAME
        entries = [json.loads(line) for line in log_path.read_text(encoding="utf-8").splitlines()]
        failures = [e for e in entries if e["event"] == "pipeline_failure"]
        assert failures[-1]["pipeline"] == "Save"
        assert failures[-1]["error_code"] == "DRAFT_SAVE_FAILED"
        assert entries[-1]["event"] == "session_event"

    @pytest.mark.asyncio
    async def test_new_draft_clears_store(self, orchestrator, memory_store):
        await orchestrator.open()
        await scripted(orchestrator)
        await orchestrator.save_draft()

        orchestrator.new_draft()

        assert memory_store.load_draft() is None
        assert orchestrator.session.scenes == ()
        assert not orchestrator.session.can_undo

    @pytest.mark.asyncio
    async def test_export_excludes_audio(self, orchestrator, tmp_path):
        await scripted(orchestrator)
        orchestrator.session.update_draft(
            audio_data=AudioAttachment.from_bytes("voice.mp3", "audio/mpeg", b"ID3")
        )
        result = orchestrator.export_snapshot(str(tmp_path))

        data = json.loads(result.content)
        assert "audioData" not in data
        assert len(data["scenes"]) == 3
        assert result.filename.startswith("storyboard-") and result.filename.endswith(".json")
        assert Path(result.path).read_text(encoding="utf-8") == result.content

    @pytest.mark.asyncio
    async def test_import_without_scenes_leaves_draft_untouched(self, orchestrator):
        await scripted(orchestrator)
        before = orchestrator.session.draft.model_dump_json()
        history_before = len(orchestrator.session.history)

        with pytest.raises(PipelineAbortError) as exc_info:
            orchestrator.import_snapshot(json.dumps({"idea": "other"}))

        assert exc_info.value.error_code == "IMPORT_FAILED"
        assert orchestrator.session.draft.model_dump_json() == before
        assert len(orchestrator.session.history) == history_before

    @pytest.mark.asyncio
    async def test_import_replaces_scenes_and_resets_history(self, orchestrator, fake_services):
        await scripted(orchestrator)
        exported = orchestrator.export_snapshot().content
        orchestrator.new_draft()
        orchestrator.session.add_scene()

        draft = orchestrator.import_snapshot(exported)

        assert len(draft.scenes) == 3
        assert draft.idea == "A keeper adopts a seal"
        assert draft.script_summary == fake_services.summary
        assert len(orchestrator.session.history) == 1

    def test_import_invalid_json(self, orchestrator):
        with pytest.raises(PipelineAbortError):
            orchestrator.import_snapshot("{not json")

    @pytest.mark.asyncio
    async def test_export_media_zip(self, orchestrator, tmp_path):
        await scripted(orchestrator)
        await orchestrator.generate_image(0, FrameType.START)
        entries = orchestrator.export_media_zip(str(tmp_path / "media.zip"))
        assert entries == ["scene-01-start.png"]

    def test_new_orchestrator_starts_with_empty_draft(self, orchestrator, studio_config):
        assert orchestrator.session.draft == StoryboardDraft(aspect_ratio=studio_config.default_aspect_ratio)
        assert orchestrator.loaded is False
