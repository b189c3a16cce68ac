"""Video Generator Agent for scene videos.

Starts a remote video job from the scene's video prompt and start-frame
image, waits for it with the bounded poll loop, and downloads the first
generated video. Materializing the bytes into a playable handle is left to
the caller (see PersistenceAgent.write_media).
"""

import asyncio
import logging
from typing import Callable, Optional

from storyboard_studio.agents.base import Agent, AgentExecutionError, AgentInput, AgentOutput, PollPolicy
from storyboard_studio.messages import message
from storyboard_studio.orchestrator.video_poll import VideoPollLoop
from storyboard_studio.schemas.data_url import DataURL
from storyboard_studio.schemas.storyboard import OutputLanguage
from storyboard_studio.services.base import GenerativeServices, VideoOperation


logger = logging.getLogger(__name__)


class VideoGenerationInput(AgentInput):
    """Input for Video Generator Agent

    Attributes:
        prompt: Video prompt of the scene
        start_image: Finished start-frame image
        language: Language of fallback messages
        cancel_event: Set to stop waiting for the remote job
        on_started: Called with the operation handle once the job exists
    """

    def __init__(
        self,
        prompt: str,
        start_image: DataURL,
        language: OutputLanguage = OutputLanguage.VI,
        cancel_event: Optional[asyncio.Event] = None,
        on_started: Optional[Callable[[VideoOperation], None]] = None
    ):
        self.prompt = prompt
        self.start_image = start_image
        self.language = language
        self.cancel_event = cancel_event
        self.on_started = on_started


class VideoGenerationOutput(AgentOutput):
    """Output of Video Generator Agent"""

    def __init__(self, operation: VideoOperation, video_bytes: bytes):
        self.operation = operation
        self.video_bytes = video_bytes


class VideoGeneratorAgent(Agent):
    """Agent responsible for turning a scene into a video

    Failure modes (all AgentExecutionError):
    - the job finishes with an error: VIDEO_GENERATION_FAILED
    - the job finishes without a video: NO_VIDEO_PRODUCED
    - polling runs out of attempts or time: VIDEO_POLL_TIMEOUT
    - the download fails: VIDEO_FETCH_FAILED
    """

    def __init__(self, services: GenerativeServices, poll_policy: Optional[PollPolicy] = None):
        self.services = services
        self.poll_loop = VideoPollLoop(services, poll_policy)

    def validate_input(self, input_data: AgentInput) -> bool:
        return (
            isinstance(input_data, VideoGenerationInput)
            and bool(input_data.prompt.strip())
            and isinstance(input_data.start_image, DataURL)
        )

    async def execute(self, input_data: AgentInput) -> AgentOutput:
        if not self.validate_input(input_data):
            raise AgentExecutionError(
                error_code="INVALID_INPUT",
                message="Input must be a VideoGenerationInput with a prompt and a start image",
                context={"input_type": type(input_data).__name__}
            )

        operation = await self.services.start_video_generation(
            input_data.prompt,
            input_data.start_image
        )
        logger.info(f"Started video operation {operation.name}")
        if input_data.on_started is not None:
            input_data.on_started(operation)

        finished = await self.poll_loop.run(operation, input_data.cancel_event)

        if finished.error:
            raise AgentExecutionError(
                "VIDEO_GENERATION_FAILED",
                finished.error,
                {"operation": finished.name}
            )
        if not finished.video_uri:
            raise AgentExecutionError(
                "NO_VIDEO_PRODUCED",
                message("no_video_produced", input_data.language),
                {"operation": finished.name}
            )

        try:
            video_bytes = await self.services.fetch_video(finished.video_uri)
        except AgentExecutionError:
            raise
        except Exception as e:
            raise AgentExecutionError(
                "VIDEO_FETCH_FAILED",
                f"Failed to download generated video: {str(e)}",
                {"operation": finished.name, "error_type": type(e).__name__}
            ) from e

        if not video_bytes:
            raise AgentExecutionError(
                "NO_VIDEO_PRODUCED",
                message("no_video_produced", input_data.language),
                {"operation": finished.name}
            )

        logger.info(f"Downloaded {len(video_bytes)} bytes for video operation {finished.name}")
        return VideoGenerationOutput(operation=finished, video_bytes=video_bytes)
