"""Shared fixtures: a scripted stand-in for the generative services."""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

import pytest

from storyboard_studio.agents.base import AgentExecutionError
from storyboard_studio.agents.persistence import MemoryDraftStore
from storyboard_studio.orchestrator.pipeline import StoryboardOrchestrator, StudioConfig
from storyboard_studio.schemas.data_url import DataURL
from storyboard_studio.schemas.storyboard import SceneDevelopment, SceneOutline, ScriptSummary
from storyboard_studio.services.base import GenerativeServices, VideoOperation


def image_for(text: str) -> str:
    """Deterministic fake image data URL for ``text``."""
    return DataURL.from_bytes(text.encode("utf-8"), "image/png").to_string()


REFERENCE_IMAGE = image_for("reference portrait")


class FakeServices(GenerativeServices):
    """Scripted services recording every call.

    Attributes to script:
        summary / outlines: what the script calls return
        summary_error: raised by every summary call when set
        images: fixed image result; None means one image derived from the prompt
        image_error: raised by generate_images when set
        image_gate: generate_images waits for this event when set
        failing_prompts: image prompts whose generate_images call raises the mapped error
        polls_until_done: status checks before a video job finishes (None = never)
        video_job_error: failure reported by a finished video job
        video_bytes: downloaded video payload
        fetch_error: raised by fetch_video when set
    """

    def __init__(self):
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.summary = ScriptSummary(title="The Keeper and the Seal", premise="A lonely keeper adopts a seal.")
        self.outlines = [
            SceneOutline(
                scene=i,
                start_frame_description=f"start {i}",
                animation_description=f"motion {i}",
                end_frame_description=f"end {i}"
            )
            for i in (1, 2, 3)
        ]
        self.summary_error: Optional[Exception] = None
        self.images: Optional[List[str]] = None
        self.image_error: Optional[Exception] = None
        self.image_gate: Optional[asyncio.Event] = None
        self.failing_prompts: Dict[str, Exception] = {}
        self.polls_until_done: Optional[int] = 1
        self.video_job_error: Optional[str] = None
        self.video_bytes = b"\x00\x00\x00\x18ftypmp42fake-video"
        self.fetch_error: Optional[Exception] = None
        self.video_prompt = "Slow dolly-in as the seal jumps."
        self._polls = 0

    def called(self, method: str) -> List[Tuple[Any, ...]]:
        return [args for name, args in self.calls if name == method]

    async def _summary(self, name, *args):
        self.calls.append((name, args))
        if self.summary_error is not None:
            raise self.summary_error
        return self.summary

    async def summarize_idea(self, idea, reference_images, params, language, script_type):
        return await self._summary("summarize_idea", idea, reference_images, params, language, script_type)

    async def summarize_text(self, script_text, reference_images, params, language, script_type):
        return await self._summary("summarize_text", script_text, reference_images, params, language, script_type)

    async def summarize_audio(self, audio, reference_images, params, language, script_type):
        return await self._summary("summarize_audio", audio, reference_images, params, language, script_type)

    async def develop_scenes(self, summary, language, script_type):
        self.calls.append(("develop_scenes", (summary, language, script_type)))
        return SceneDevelopment(scenes=self.outlines)

    async def generate_video_prompt(self, start_description, animation_description, end_description,
                                    language, mode, script_type):
        self.calls.append((
            "generate_video_prompt",
            (start_description, animation_description, end_description, language, mode, script_type)
        ))
        return self.video_prompt

    async def refine_scene_description(self, original, modification, language):
        self.calls.append(("refine_scene_description", (original, modification, language)))
        return f"{original} ({modification})"

    async def refine_scene_transition(self, original, modification, language):
        self.calls.append(("refine_scene_transition", (original, modification, language)))
        return f"{original} ({modification})"

    async def generate_images(self, prompt, count, aspect_ratio, source_image=None, remove_watermark=False):
        self.calls.append(("generate_images", (prompt, count, aspect_ratio, source_image, remove_watermark)))
        if self.image_gate is not None:
            await self.image_gate.wait()
        if prompt in self.failing_prompts:
            raise self.failing_prompts[prompt]
        if self.image_error is not None:
            raise self.image_error
        if self.images is not None:
            return list(self.images)
        return [image_for(prompt)]

    async def start_video_generation(self, prompt, image):
        self.calls.append(("start_video_generation", (prompt, image)))
        self._polls = 0
        return VideoOperation(name="operations/video-1")

    async def poll_video_operation(self, operation):
        self.calls.append(("poll_video_operation", (operation,)))
        self._polls += 1
        if self.polls_until_done is None or self._polls < self.polls_until_done:
            return VideoOperation(name=operation.name)
        if self.video_job_error:
            return VideoOperation(name=operation.name, done=True, error=self.video_job_error)
        return VideoOperation(
            name=operation.name,
            done=True,
            video_uri=f"https://media.example.test/{operation.name}/content"
        )

    async def fetch_video(self, uri):
        self.calls.append(("fetch_video", (uri,)))
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.video_bytes


@pytest.fixture
def fake_services():
    return FakeServices()


@pytest.fixture
def studio_config(tmp_path):
    return StudioConfig(
        data_directory=str(tmp_path / "studio"),
        autosave_delay_seconds=0.01,
        poll_interval_seconds=0.0,
        poll_max_attempts=5,
        poll_timeout_seconds=5.0,
        enable_file_logging=False
    )


@pytest.fixture
def memory_store():
    return MemoryDraftStore()


@pytest.fixture
def orchestrator(fake_services, studio_config, memory_store):
    studio = StoryboardOrchestrator(fake_services, config=studio_config, store=memory_store)
    yield studio
    studio.structured_logger.close()


def service_failure(message: str = "model overloaded") -> AgentExecutionError:
    return AgentExecutionError("API_UNAVAILABLE", message)
