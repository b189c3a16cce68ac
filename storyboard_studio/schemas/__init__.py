"""Pydantic schemas for the storyboard draft and service contracts."""

from storyboard_studio.schemas.data_url import AudioAttachment, DataURL
from storyboard_studio.schemas.storyboard import (
    MAX_REFERENCE_IMAGES,
    CrossRefSource,
    Frame,
    FrameType,
    GenerationParameters,
    GenerationStatus,
    ImageSource,
    InlineSource,
    InputMethod,
    InvalidTransitionError,
    OutputLanguage,
    ReferenceSource,
    Scene,
    SceneDevelopment,
    SceneOutline,
    ScriptSummary,
    ScriptType,
    StoryboardDraft,
    VideoPromptMode,
    renumber,
)

__all__ = [
    # Payloads
    "DataURL",
    "AudioAttachment",
    # Enumerations
    "InputMethod",
    "GenerationStatus",
    "FrameType",
    "OutputLanguage",
    "ScriptType",
    "VideoPromptMode",
    # Image sources
    "ImageSource",
    "ReferenceSource",
    "InlineSource",
    "CrossRefSource",
    # Scenes
    "Frame",
    "Scene",
    "renumber",
    "InvalidTransitionError",
    # Script generation
    "ScriptSummary",
    "SceneOutline",
    "SceneDevelopment",
    "GenerationParameters",
    # Draft
    "StoryboardDraft",
    "MAX_REFERENCE_IMAGES",
]
