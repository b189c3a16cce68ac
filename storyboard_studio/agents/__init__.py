"""Agent implementations for the storyboard generation pipelines"""

from .base import Agent, AgentExecutionError, AgentInput, AgentOutput, PollPolicy
from .frame_renderer import FrameRendererAgent, FrameRenderInput, FrameRenderOutput
from .persistence import (
    DraftStore,
    ExportResult,
    FileDraftStore,
    MemoryDraftStore,
    PersistenceAgent,
    PersistenceInput,
)
from .scene_editor import SceneEdit, SceneEditInput, SceneEditorAgent
from .script_writer import ScriptWriterAgent, ScriptWriterInput, ScriptWriterOutput
from .video_generator import VideoGenerationInput, VideoGenerationOutput, VideoGeneratorAgent

__all__ = [
    "Agent",
    "AgentExecutionError",
    "AgentInput",
    "AgentOutput",
    "PollPolicy",
    "FrameRendererAgent",
    "FrameRenderInput",
    "FrameRenderOutput",
    "DraftStore",
    "ExportResult",
    "FileDraftStore",
    "MemoryDraftStore",
    "PersistenceAgent",
    "PersistenceInput",
    "SceneEdit",
    "SceneEditInput",
    "SceneEditorAgent",
    "ScriptWriterAgent",
    "ScriptWriterInput",
    "ScriptWriterOutput",
    "VideoGenerationInput",
    "VideoGenerationOutput",
    "VideoGeneratorAgent",
]
