"""Session orchestration components.

This package intentionally avoids importing
``storyboard_studio.orchestrator.pipeline`` at module import time: the
pipeline imports the agents, and the video agent imports the poll loop
from this package.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from storyboard_studio.orchestrator.pipeline import (
        PipelineAbortError,
        StoryboardOrchestrator,
        StudioConfig,
    )

__all__ = ["StoryboardOrchestrator", "PipelineAbortError", "StudioConfig"]


def __getattr__(name: str):
    """Lazily expose orchestrator symbols without eager pipeline imports."""
    if name in __all__:
        from storyboard_studio.orchestrator.pipeline import (
            PipelineAbortError,
            StoryboardOrchestrator,
            StudioConfig,
        )

        mapping = {
            "StoryboardOrchestrator": StoryboardOrchestrator,
            "PipelineAbortError": PipelineAbortError,
            "StudioConfig": StudioConfig,
        }
        return mapping[name]
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
