"""Script Writer Agent for turning draft inputs into scenes

This module implements the Script Writer Agent which runs the two-step
script pipeline:

1. Summarize the active input (idea prompt, script text or audio) into a
   ScriptSummary, guided by the draft's reference images and generation
   parameters.
2. Develop the summary into ordered scene descriptors and map them into
   fresh Scene objects (both frames idle, sourcing the reference image).
"""

import logging
from typing import List, Optional, Tuple

from storyboard_studio.agents.base import Agent, AgentExecutionError, AgentInput, AgentOutput
from storyboard_studio.schemas.data_url import DataURL
from storyboard_studio.schemas.storyboard import (
    Frame,
    InputMethod,
    Scene,
    SceneOutline,
    ScriptSummary,
    StoryboardDraft,
    renumber,
)
from storyboard_studio.services.base import GenerativeServices


logger = logging.getLogger(__name__)


class ScriptWriterInput(AgentInput):
    """Input for Script Writer Agent"""

    def __init__(self, draft: StoryboardDraft):
        """Initialize input

        Args:
            draft: Snapshot of the draft taken when the run started
        """
        self.draft = draft


class ScriptWriterOutput(AgentOutput):
    """Output of Script Writer Agent

    Attributes:
        summary: Generated script summary
        scenes: Mapped, renumbered scenes
    """

    def __init__(self, summary: ScriptSummary, scenes: Tuple[Scene, ...]):
        self.summary = summary
        self.scenes = scenes


def map_outline_to_scene(outline: SceneOutline) -> Scene:
    """Build a fresh scene from a raw scene descriptor."""
    return Scene(
        scene_number=outline.scene,
        start_frame=Frame(description=outline.start_frame_description),
        end_frame=Frame(description=outline.end_frame_description),
        animation_description=outline.animation_description
    )


class ScriptWriterAgent(Agent):
    """Agent responsible for generating the scene list from the draft inputs

    The ScriptWriterAgent performs the following operations:
    1. Check the active input method has content
    2. Decode the reference images
    3. Call the summary service matching the input method
    4. Call the scene-development service with the summary
    5. Map the descriptors into Scenes numbered 1..N
    """

    def __init__(self, services: GenerativeServices):
        self.services = services

    def validate_draft(self, draft: StoryboardDraft) -> None:
        """Check the active input has content.

        Raises:
            AgentExecutionError: MISSING_IDEA, MISSING_SCRIPT_TEXT or
                MISSING_AUDIO naming the missing input
        """
        if draft.active_input == InputMethod.PROMPT and not draft.idea.strip():
            raise AgentExecutionError(
                "MISSING_IDEA",
                "Please enter an idea first (no idea provided).",
                {"active_input": draft.active_input.value}
            )
        if draft.active_input == InputMethod.TEXT and not draft.script_text.strip():
            raise AgentExecutionError(
                "MISSING_SCRIPT_TEXT",
                "Please enter or upload a script first (no script text provided).",
                {"active_input": draft.active_input.value}
            )
        if draft.active_input == InputMethod.AUDIO and draft.audio_data is None:
            raise AgentExecutionError(
                "MISSING_AUDIO",
                "Please upload an audio file first (no audio provided).",
                {"active_input": draft.active_input.value}
            )

    def validate_input(self, input_data: AgentInput) -> bool:
        if not isinstance(input_data, ScriptWriterInput):
            return False
        try:
            self.validate_draft(input_data.draft)
        except AgentExecutionError:
            return False
        return True

    async def execute(self, input_data: AgentInput) -> AgentOutput:
        """Execute the script pipeline

        Args:
            input_data: ScriptWriterInput with the draft snapshot

        Returns:
            ScriptWriterOutput with the summary and mapped scenes

        Raises:
            AgentExecutionError: For invalid input or service failures
        """
        if not isinstance(input_data, ScriptWriterInput):
            raise AgentExecutionError(
                error_code="INVALID_INPUT",
                message="Input must be a ScriptWriterInput object",
                context={"input_type": type(input_data).__name__}
            )

        draft = input_data.draft
        self.validate_draft(draft)

        reference_images = self._resolve_reference_images(draft.reference_images)
        logger.info(
            f"Summarizing {draft.active_input.value} input with "
            f"{len(reference_images)} reference image(s)"
        )

        summary = await self._summarize(draft, reference_images)
        logger.info(f"Script summary ready: '{summary.title}'")

        development = await self.services.develop_scenes(
            summary,
            draft.storyboard_language,
            draft.script_type
        )
        scenes = renumber([map_outline_to_scene(outline) for outline in development.scenes])
        logger.info(f"Developed {len(scenes)} scenes")

        return ScriptWriterOutput(summary=summary, scenes=scenes)

    def _resolve_reference_images(self, images: List[str]) -> List[DataURL]:
        resolved = []
        for index, image in enumerate(images):
            try:
                resolved.append(DataURL.parse(image))
            except ValueError as e:
                raise AgentExecutionError(
                    "INVALID_REFERENCE_IMAGE",
                    f"Reference image {index + 1} is not a valid image: {e}",
                    {"index": index}
                ) from e
        return resolved

    async def _summarize(
        self,
        draft: StoryboardDraft,
        reference_images: List[DataURL]
    ) -> ScriptSummary:
        params = draft.parameters
        language = draft.storyboard_language
        script_type = draft.script_type

        if draft.active_input == InputMethod.PROMPT:
            return await self.services.summarize_idea(
                draft.idea, reference_images, params, language, script_type
            )
        if draft.active_input == InputMethod.TEXT:
            return await self.services.summarize_text(
                draft.script_text, reference_images, params, language, script_type
            )

        audio: Optional[DataURL] = draft.audio_data.to_data_url()
        return await self.services.summarize_audio(
            audio, reference_images, params, language, script_type
        )
