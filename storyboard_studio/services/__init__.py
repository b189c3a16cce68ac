"""Remote generative-model services."""

from storyboard_studio.services.base import GenerativeServices, VideoOperation

__all__ = ["GenerativeServices", "VideoOperation", "OpenAIServices"]


def __getattr__(name: str):
    """Expose the OpenAI adapter without importing the SDK up front."""
    if name == "OpenAIServices":
        from storyboard_studio.services.openai_services import OpenAIServices

        return OpenAIServices
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
