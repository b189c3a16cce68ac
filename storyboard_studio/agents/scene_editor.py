"""Scene Editor Agent for model-assisted text edits of a scene.

Covers the three text assists of the editor:
- writing a video prompt from a scene's frames and motion
- rewriting a frame description from a modification request
- rewriting the animation (transition) description from a modification request
"""

import logging
from enum import Enum
from typing import Optional

from storyboard_studio.agents.base import Agent, AgentExecutionError, AgentInput, AgentOutput
from storyboard_studio.schemas.storyboard import (
    FrameType,
    OutputLanguage,
    Scene,
    ScriptType,
    VideoPromptMode,
)
from storyboard_studio.services.base import GenerativeServices


logger = logging.getLogger(__name__)


class SceneEdit(str, Enum):
    VIDEO_PROMPT = "video_prompt"
    REFINE_DESCRIPTION = "refine_description"
    REFINE_TRANSITION = "refine_transition"


class SceneEditInput(AgentInput):
    """Input for Scene Editor Agent

    Attributes:
        edit: Which assist to run
        scene: Scene snapshot the edit is based on
        language: Output language
        side: Frame to refine (REFINE_DESCRIPTION only)
        modification: Requested change (refinements only)
        mode: Video prompt mode (VIDEO_PROMPT only)
        script_type: Script type of the draft
    """

    def __init__(
        self,
        edit: SceneEdit,
        scene: Scene,
        language: OutputLanguage = OutputLanguage.VI,
        side: Optional[FrameType] = None,
        modification: str = "",
        mode: VideoPromptMode = VideoPromptMode.START_END,
        script_type: ScriptType = ScriptType.AUTO
    ):
        self.edit = SceneEdit(edit)
        self.scene = scene
        self.language = language
        self.side = FrameType(side) if side is not None else None
        self.modification = modification
        self.mode = VideoPromptMode(mode)
        self.script_type = script_type


class SceneEditOutput(AgentOutput):
    """Output of Scene Editor Agent"""

    def __init__(self, text: str):
        self.text = text


class SceneEditorAgent(Agent):
    """Agent responsible for text assists on a single scene"""

    def __init__(self, services: GenerativeServices):
        self.services = services

    def validate_input(self, input_data: AgentInput) -> bool:
        if not isinstance(input_data, SceneEditInput):
            return False
        if input_data.edit == SceneEdit.VIDEO_PROMPT:
            return True
        if not input_data.modification.strip():
            return False
        if input_data.edit == SceneEdit.REFINE_DESCRIPTION:
            return input_data.side is not None
        return True

    async def execute(self, input_data: AgentInput) -> AgentOutput:
        if not self.validate_input(input_data):
            raise AgentExecutionError(
                error_code="INVALID_INPUT",
                message="Scene edit input is missing its modification or frame",
                context={"input_type": type(input_data).__name__}
            )

        scene = input_data.scene

        if input_data.edit == SceneEdit.VIDEO_PROMPT:
            text = await self.services.generate_video_prompt(
                scene.start_frame.description,
                scene.animation_description,
                scene.end_frame.description,
                input_data.language,
                input_data.mode,
                input_data.script_type
            )
        elif input_data.edit == SceneEdit.REFINE_DESCRIPTION:
            text = await self.services.refine_scene_description(
                scene.frame(input_data.side).description,
                input_data.modification,
                input_data.language
            )
        else:
            text = await self.services.refine_scene_transition(
                scene.animation_description,
                input_data.modification,
                input_data.language
            )

        logger.info(f"Scene {scene.scene_number} {input_data.edit.value}: {len(text)} chars")
        return SceneEditOutput(text=text)
