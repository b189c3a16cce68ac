"""Contract for the remote generative-model services.

The storyboard pipelines only depend on this interface. Implementations
raise AgentExecutionError for failures; any other exception is treated as
an unexpected service failure by the orchestrator.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import BaseModel, Field

from storyboard_studio.schemas.data_url import DataURL
from storyboard_studio.schemas.storyboard import (
    GenerationParameters,
    OutputLanguage,
    SceneDevelopment,
    ScriptSummary,
    ScriptType,
    VideoPromptMode,
)


class VideoOperation(BaseModel):
    """Opaque handle of a remote video-generation job and its last known state."""

    name: str = Field(..., description="Operation identifier")
    done: bool = Field(False, description="Whether the job has finished")
    video_uri: Optional[str] = Field(
        None,
        description="Asset URI of the first generated video, once done"
    )
    error: Optional[str] = Field(None, description="Failure reported by the service")


class GenerativeServices(ABC):
    """Remote text, image and video model endpoints."""

    @abstractmethod
    async def summarize_idea(
        self,
        idea: str,
        reference_images: List[DataURL],
        params: GenerationParameters,
        language: OutputLanguage,
        script_type: ScriptType
    ) -> ScriptSummary:
        """Create a script summary from a short idea prompt."""

    @abstractmethod
    async def summarize_text(
        self,
        script_text: str,
        reference_images: List[DataURL],
        params: GenerationParameters,
        language: OutputLanguage,
        script_type: ScriptType
    ) -> ScriptSummary:
        """Create a script summary from full script text."""

    @abstractmethod
    async def summarize_audio(
        self,
        audio: DataURL,
        reference_images: List[DataURL],
        params: GenerationParameters,
        language: OutputLanguage,
        script_type: ScriptType
    ) -> ScriptSummary:
        """Create a script summary from an audio recording."""

    @abstractmethod
    async def develop_scenes(
        self,
        summary: ScriptSummary,
        language: OutputLanguage,
        script_type: ScriptType
    ) -> SceneDevelopment:
        """Break a summary into ordered scene descriptors."""

    @abstractmethod
    async def generate_video_prompt(
        self,
        start_description: str,
        animation_description: str,
        end_description: str,
        language: OutputLanguage,
        mode: VideoPromptMode,
        script_type: ScriptType
    ) -> str:
        """Write a video prompt bridging a scene's frames."""

    @abstractmethod
    async def refine_scene_description(
        self,
        original: str,
        modification: str,
        language: OutputLanguage
    ) -> str:
        """Rewrite a frame description according to a modification request."""

    @abstractmethod
    async def refine_scene_transition(
        self,
        original: str,
        modification: str,
        language: OutputLanguage
    ) -> str:
        """Rewrite an animation description according to a modification request."""

    @abstractmethod
    async def generate_images(
        self,
        prompt: str,
        count: int,
        aspect_ratio: str,
        source_image: Optional[DataURL] = None,
        remove_watermark: bool = False
    ) -> List[str]:
        """Generate images; returns data URLs (possibly empty)."""

    @abstractmethod
    async def start_video_generation(self, prompt: str, image: DataURL) -> VideoOperation:
        """Start a video job from a prompt and a start image."""

    @abstractmethod
    async def poll_video_operation(self, operation: VideoOperation) -> VideoOperation:
        """Fetch the current state of a video job."""

    @abstractmethod
    async def fetch_video(self, uri: str) -> bytes:
        """Download a finished video asset (credential appended by the implementation)."""
