"""Frame Renderer Agent for generating start/end frame images."""

import logging
from typing import Optional, Sequence

from storyboard_studio.agents.base import Agent, AgentExecutionError, AgentInput, AgentOutput
from storyboard_studio.messages import message
from storyboard_studio.schemas.data_url import DataURL
from storyboard_studio.schemas.storyboard import (
    CrossRefSource,
    InlineSource,
    OutputLanguage,
    ReferenceSource,
    Scene,
)
from storyboard_studio.services.base import GenerativeServices


logger = logging.getLogger(__name__)


def resolve_image_source(
    source: object,
    scenes: Sequence[Scene],
    reference_images: Sequence[str]
) -> Optional[DataURL]:
    """Resolve a frame's image source against the current draft state.

    - reference: the first reference image, if any
    - inline: the payload itself
    - cross reference: the referenced frame's finished image; a missing
      scene, missing image or unfinished frame resolves to no image

    Args:
        source: ReferenceSource, InlineSource or CrossRefSource
        scenes: Live scene list
        reference_images: Draft reference images (data URLs)
    """
    if isinstance(source, ReferenceSource):
        return DataURL.parse(reference_images[0]) if reference_images else None

    if isinstance(source, InlineSource):
        return DataURL.parse(source.payload)

    if isinstance(source, CrossRefSource):
        if source.scene_index >= len(scenes):
            logger.info(f"Cross reference to missing scene index {source.scene_index}; no source image")
            return None
        frame = scenes[source.scene_index].frame(source.side)
        if not frame.has_image or not DataURL.is_data_url(frame.image_url):
            logger.info(f"Cross reference {source.to_legacy()} has no image yet; no source image")
            return None
        return DataURL.parse(frame.image_url)

    raise TypeError(f"Unknown image source type: {type(source).__name__}")


def build_frame_prompt(description: str, style: str = "") -> str:
    """Frame description with an optional trailing style qualifier."""
    prompt = description.strip()
    if style and style.strip():
        prompt = f"{prompt}, {style.strip()} style"
    return prompt


class FrameRenderInput(AgentInput):
    """Input for Frame Renderer Agent

    Attributes:
        description: Frame description
        style: Draft style tag (may be empty)
        aspect_ratio: Output aspect ratio, e.g. "16:9"
        source_image: Resolved source image, if any
        language: Language of fallback messages
    """

    def __init__(
        self,
        description: str,
        aspect_ratio: str,
        style: str = "",
        source_image: Optional[DataURL] = None,
        language: OutputLanguage = OutputLanguage.VI
    ):
        self.description = description
        self.aspect_ratio = aspect_ratio
        self.style = style
        self.source_image = source_image
        self.language = language


class FrameRenderOutput(AgentOutput):
    """Output of Frame Renderer Agent"""

    def __init__(self, image_url: str, prompt: str):
        self.image_url = image_url
        self.prompt = prompt


class FrameRendererAgent(Agent):
    """Agent responsible for generating a single frame image

    Requests exactly one image with watermark removal disabled and returns
    the first result. An empty result list is a failure.
    """

    IMAGE_COUNT = 1

    def __init__(self, services: GenerativeServices):
        self.services = services

    def validate_input(self, input_data: AgentInput) -> bool:
        return isinstance(input_data, FrameRenderInput) and bool(input_data.aspect_ratio)

    async def execute(self, input_data: AgentInput) -> AgentOutput:
        if not self.validate_input(input_data):
            raise AgentExecutionError(
                error_code="INVALID_INPUT",
                message="Input must be a FrameRenderInput with an aspect ratio",
                context={"input_type": type(input_data).__name__}
            )

        prompt = build_frame_prompt(input_data.description, input_data.style)
        images = await self.services.generate_images(
            prompt,
            self.IMAGE_COUNT,
            input_data.aspect_ratio,
            input_data.source_image,
            remove_watermark=False
        )

        if not images:
            raise AgentExecutionError(
                "NO_IMAGE_PRODUCED",
                message("no_image_produced", input_data.language),
                {"prompt": prompt[:200]}
            )

        return FrameRenderOutput(image_url=images[0], prompt=prompt)
