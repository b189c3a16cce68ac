"""OpenAI-backed implementation of the generative services.

Text (summaries, scene development, prompts, refinements) goes through chat
completions, audio is transcribed first, frames use the image API and scene
videos use the video API. Finished videos are downloaded over HTTP with the
API key as bearer credential.
"""

import io
import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import httpx
import openai
from PIL import Image
from pydantic import ValidationError

from storyboard_studio.agents.base import AgentExecutionError
from storyboard_studio.schemas.data_url import DataURL
from storyboard_studio.schemas.storyboard import (
    GenerationParameters,
    OutputLanguage,
    SceneDevelopment,
    ScriptSummary,
    ScriptType,
    VideoPromptMode,
)
from storyboard_studio.services.base import GenerativeServices, VideoOperation


logger = logging.getLogger(__name__)


LANGUAGE_NAMES = {
    OutputLanguage.VI: "Vietnamese",
    OutputLanguage.EN: "English",
    OutputLanguage.ZH: "Simplified Chinese",
}

SCRIPT_TYPE_HINTS = {
    ScriptType.AUTO: "Choose whatever mix of dialogue and action suits the story.",
    ScriptType.DIALOGUE: "Drive the story mainly through characters talking to each other.",
    ScriptType.ACTION: "Drive the story mainly through visible action, with little or no dialogue.",
}

# gpt-image-1 output sizes by orientation
IMAGE_SIZES = {
    "landscape": "1536x1024",
    "portrait": "1024x1536",
    "square": "1024x1024",
}

VIDEO_SIZES = {
    "landscape": (1280, 720),
    "portrait": (720, 1280),
    "square": (720, 720),
}

SUMMARY_INSTRUCTIONS = """You are a storyboard writer for short videos.
Summarize the material into a script summary. Reply with a JSON object with
the keys "title", "premise", "characters" (list of strings), "setting",
"tone" and "style". Write every value in {language}. {script_type}
Target scene count: {scene_count}. Visual style: {style}.
Aspect ratio: {aspect_ratio}.{keep}
Extra notes from the user: {notes}"""

SCENES_INSTRUCTIONS = """You are a storyboard artist. Break the script summary
into consecutive scenes. Each scene is a short shot that starts on one still
image and moves to another. Reply with a JSON object {{"scenes": [...]}} where
each scene has "scene" (1-based number), "startFrameDescription",
"animationDescription" and "endFrameDescription". Frame descriptions must be
self-contained image prompts (characters, setting and framing spelled out).
Write every description in {language}. {script_type}"""

VIDEO_PROMPT_INSTRUCTIONS = {
    VideoPromptMode.START_END: (
        "Write one prompt for an image-to-video model. The video starts on the "
        "start frame and must end on the end frame; describe camera and subject "
        "motion that bridges them."
    ),
    VideoPromptMode.START_ONLY: (
        "Write one prompt for an image-to-video model. The video starts on the "
        "start frame; describe camera and subject motion that follows from it. "
        "The end frame is only a hint of where the shot is heading."
    ),
}

REFINE_INSTRUCTIONS = (
    "Rewrite the {subject} according to the requested modification. Keep "
    "everything the modification does not touch. Reply with the rewritten "
    "text only, in {language}."
)


def orientation(aspect_ratio: str) -> str:
    """'landscape', 'portrait' or 'square' for a "W:H" ratio string."""
    try:
        width, height = (float(part) for part in aspect_ratio.split(':', 1))
    except ValueError:
        return "landscape"
    if width > height:
        return "landscape"
    if width < height:
        return "portrait"
    return "square"


def to_png(image: DataURL, size: Optional[Tuple[int, int]] = None) -> bytes:
    """Re-encode an image payload as PNG, optionally cropped and resized to ``size``."""
    with Image.open(io.BytesIO(image.decode())) as source:
        converted = source.convert("RGBA" if source.mode in ("RGBA", "LA", "P") else "RGB")
        if size is not None:
            converted = _cover(converted, size)
        buffered = io.BytesIO()
        converted.save(buffered, format="PNG")
        return buffered.getvalue()


def _cover(img: Image.Image, size: Tuple[int, int]) -> Image.Image:
    target_w, target_h = size
    scale = max(target_w / img.width, target_h / img.height)
    resized = img.resize((round(img.width * scale), round(img.height * scale)))
    left = (resized.width - target_w) // 2
    top = (resized.height - target_h) // 2
    return resized.crop((left, top, left + target_w, top + target_h))


class OpenAIServices(GenerativeServices):
    """GenerativeServices on top of the OpenAI API.

    Args:
        api_key: API key; defaults to OPENAI_API_KEY
        client: Preconfigured AsyncOpenAI client (tests inject a mock)
        http_client: httpx.AsyncClient used for video downloads
        text_model: Chat model for text tasks
        image_model: Image generation / edit model
        video_model: Video generation model
        transcription_model: Speech-to-text model for audio input
        video_seconds: Clip length requested from the video model
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        client: Optional[Any] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        text_model: str = "gpt-4o",
        image_model: str = "gpt-image-1",
        video_model: str = "sora-2",
        transcription_model: str = "gpt-4o-transcribe",
        video_seconds: str = "8"
    ):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if client is not None:
            self.client = client
        elif self.api_key:
            self.client = openai.AsyncOpenAI(api_key=self.api_key)
        else:
            self.client = None
            logger.warning("OPENAI_API_KEY not found. Generation calls will fail.")

        self.http_client = http_client
        self.text_model = text_model
        self.image_model = image_model
        self.video_model = video_model
        self.transcription_model = transcription_model
        self.video_seconds = video_seconds

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _require_client(self) -> Any:
        if self.client is None:
            raise AgentExecutionError(
                "MISSING_API_KEY",
                "OpenAI API key is not configured (set OPENAI_API_KEY)."
            )
        return self.client

    @staticmethod
    def _map_error(e: Exception, operation: str) -> AgentExecutionError:
        """Translate an OpenAI SDK exception into an AgentExecutionError."""
        context = {"operation": operation, "error_type": type(e).__name__}
        if isinstance(e, openai.APITimeoutError):
            return AgentExecutionError("API_TIMEOUT", f"Request timed out: {str(e)}", context)
        if isinstance(e, openai.RateLimitError):
            return AgentExecutionError("API_RATE_LIMIT", f"Rate limit exceeded: {str(e)}", context)
        if isinstance(e, openai.APIConnectionError):
            return AgentExecutionError("NETWORK_ERROR", f"Connection failed: {str(e)}", context)
        if isinstance(e, openai.InternalServerError):
            return AgentExecutionError("API_UNAVAILABLE", f"Service unavailable: {str(e)}", context)
        if isinstance(e, openai.APIStatusError):
            detail = getattr(e, "message", None) or str(e)
            return AgentExecutionError("SERVICE_ERROR", detail, {**context, "status_code": e.status_code})
        return AgentExecutionError("SERVICE_ERROR", str(e), context)

    async def _chat(
        self,
        operation: str,
        system: str,
        user_content: Any,
        json_mode: bool = False
    ) -> str:
        client = self._require_client()
        kwargs: Dict[str, Any] = {
            "model": self.text_model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user_content},
            ],
            "temperature": 0.7,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await client.chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            raise self._map_error(e, operation) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AgentExecutionError("SERVICE_ERROR", f"Empty response for {operation}", {"operation": operation})
        return content.strip()

    async def _chat_json(self, operation: str, system: str, user_content: Any) -> Dict[str, Any]:
        content = await self._chat(operation, system, user_content, json_mode=True)
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise AgentExecutionError(
                "INVALID_JSON",
                f"Model returned invalid JSON for {operation}: {str(e)}",
                {"operation": operation, "content": content[:500]}
            ) from e
        if not isinstance(data, dict):
            raise AgentExecutionError(
                "INVALID_JSON",
                f"Model returned a JSON {type(data).__name__} for {operation}, expected an object",
                {"operation": operation}
            )
        return data

    @staticmethod
    def _with_images(text: str, images: List[DataURL]) -> List[Dict[str, Any]]:
        parts: List[Dict[str, Any]] = [{"type": "text", "text": text}]
        for image in images:
            parts.append({"type": "image_url", "image_url": {"url": image.to_string()}})
        return parts

    # ------------------------------------------------------------------
    # Script
    # ------------------------------------------------------------------

    def _summary_system(
        self,
        params: GenerationParameters,
        language: OutputLanguage,
        script_type: ScriptType
    ) -> str:
        keep = []
        if params.keep_clothing:
            keep.append("Keep the characters' clothing from the reference images.")
        if params.keep_background:
            keep.append("Keep the background from the reference images.")
        return SUMMARY_INSTRUCTIONS.format(
            language=LANGUAGE_NAMES[OutputLanguage(language)],
            script_type=SCRIPT_TYPE_HINTS[ScriptType(script_type)],
            scene_count=params.number_of_scenes or "choose what fits",
            style=params.style or "choose what fits",
            aspect_ratio=params.aspect_ratio,
            keep=(" " + " ".join(keep)) if keep else "",
            notes=params.notes or "none"
        )

    async def _summarize(
        self,
        operation: str,
        material: str,
        reference_images: List[DataURL],
        params: GenerationParameters,
        language: OutputLanguage,
        script_type: ScriptType
    ) -> ScriptSummary:
        data = await self._chat_json(
            operation,
            self._summary_system(params, language, script_type),
            self._with_images(material, reference_images)
        )
        try:
            return ScriptSummary.model_validate(data)
        except ValidationError as e:
            raise AgentExecutionError(
                "INVALID_JSON",
                f"Script summary has the wrong shape: {e.error_count()} error(s)",
                {"operation": operation}
            ) from e

    async def summarize_idea(self, idea, reference_images, params, language, script_type) -> ScriptSummary:
        return await self._summarize(
            "summarize_idea", f"Story idea:\n{idea}", reference_images, params, language, script_type
        )

    async def summarize_text(self, script_text, reference_images, params, language, script_type) -> ScriptSummary:
        return await self._summarize(
            "summarize_text", f"Full script:\n{script_text}", reference_images, params, language, script_type
        )

    async def summarize_audio(self, audio, reference_images, params, language, script_type) -> ScriptSummary:
        transcript = await self.transcribe(audio)
        return await self._summarize(
            "summarize_audio",
            f"Transcript of an audio recording:\n{transcript}",
            reference_images,
            params,
            language,
            script_type
        )

    async def transcribe(self, audio: DataURL) -> str:
        client = self._require_client()
        try:
            result = await client.audio.transcriptions.create(
                model=self.transcription_model,
                file=(f"audio.{audio.extension}", audio.decode(), audio.mime_type)
            )
        except openai.OpenAIError as e:
            raise self._map_error(e, "transcribe") from e
        text = getattr(result, "text", "") or ""
        logger.info(f"Transcribed audio input ({len(text)} chars)")
        return text

    async def develop_scenes(self, summary, language, script_type) -> SceneDevelopment:
        system = SCENES_INSTRUCTIONS.format(
            language=LANGUAGE_NAMES[OutputLanguage(language)],
            script_type=SCRIPT_TYPE_HINTS[ScriptType(script_type)]
        )
        data = await self._chat_json(
            "develop_scenes",
            system,
            summary.model_dump_json(by_alias=True)
        )
        try:
            return SceneDevelopment.model_validate(data)
        except ValidationError as e:
            raise AgentExecutionError(
                "INVALID_JSON",
                f"Scene list has the wrong shape: {e.error_count()} error(s)",
                {"operation": "develop_scenes"}
            ) from e

    # ------------------------------------------------------------------
    # Text assists
    # ------------------------------------------------------------------

    async def generate_video_prompt(
        self,
        start_description,
        animation_description,
        end_description,
        language,
        mode,
        script_type
    ) -> str:
        system = " ".join([
            VIDEO_PROMPT_INSTRUCTIONS[VideoPromptMode(mode)],
            SCRIPT_TYPE_HINTS[ScriptType(script_type)],
            f"Reply with the prompt only, in {LANGUAGE_NAMES[OutputLanguage(language)]}."
        ])
        user = (
            f"Start frame: {start_description}\n"
            f"Motion: {animation_description}\n"
            f"End frame: {end_description}"
        )
        return await self._chat("generate_video_prompt", system, user)

    async def refine_scene_description(self, original, modification, language) -> str:
        system = REFINE_INSTRUCTIONS.format(
            subject="frame description",
            language=LANGUAGE_NAMES[OutputLanguage(language)]
        )
        user = f"Description:\n{original}\n\nModification:\n{modification}"
        return await self._chat("refine_scene_description", system, user)

    async def refine_scene_transition(self, original, modification, language) -> str:
        system = REFINE_INSTRUCTIONS.format(
            subject="scene transition (the motion between two frames)",
            language=LANGUAGE_NAMES[OutputLanguage(language)]
        )
        user = f"Transition:\n{original}\n\nModification:\n{modification}"
        return await self._chat("refine_scene_transition", system, user)

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    async def generate_images(
        self,
        prompt: str,
        count: int,
        aspect_ratio: str,
        source_image: Optional[DataURL] = None,
        remove_watermark: bool = False
    ) -> List[str]:
        client = self._require_client()
        size = IMAGE_SIZES[orientation(aspect_ratio)]
        if remove_watermark:
            prompt = f"{prompt}. No watermark, logo or text overlay."

        try:
            if source_image is None:
                response = await client.images.generate(
                    model=self.image_model,
                    prompt=prompt,
                    n=count,
                    size=size
                )
            else:
                response = await client.images.edit(
                    model=self.image_model,
                    image=("source.png", to_png(source_image), "image/png"),
                    prompt=prompt,
                    n=count,
                    size=size
                )
        except openai.OpenAIError as e:
            raise self._map_error(e, "generate_images") from e

        images = [
            DataURL(mime_type="image/png", data=item.b64_json).to_string()
            for item in (response.data or [])
            if getattr(item, "b64_json", None)
        ]
        logger.info(f"Image model returned {len(images)} image(s) at {size}")
        return images

    # ------------------------------------------------------------------
    # Videos
    # ------------------------------------------------------------------

    def _to_operation(self, video: Any) -> VideoOperation:
        status = getattr(video, "status", None)
        if status == "failed":
            error = getattr(video, "error", None)
            detail = getattr(error, "message", None) or "Video generation failed"
            return VideoOperation(name=video.id, done=True, error=detail)
        if status == "completed":
            return VideoOperation(name=video.id, done=True, video_uri=self.content_url(video.id))
        return VideoOperation(name=video.id, done=False)

    def content_url(self, video_id: str) -> str:
        base_url = str(getattr(self.client, "base_url", "https://api.openai.com/v1/"))
        if not base_url.endswith("/"):
            base_url += "/"
        return f"{base_url}videos/{video_id}/content"

    async def start_video_generation(self, prompt: str, image: DataURL) -> VideoOperation:
        client = self._require_client()
        with Image.open(io.BytesIO(image.decode())) as start:
            width, height = VIDEO_SIZES[orientation(f"{start.width}:{start.height}")]

        try:
            video = await client.videos.create(
                model=self.video_model,
                prompt=prompt,
                input_reference=("start.png", to_png(image, (width, height)), "image/png"),
                size=f"{width}x{height}",
                seconds=self.video_seconds
            )
        except openai.OpenAIError as e:
            raise self._map_error(e, "start_video_generation") from e

        return self._to_operation(video)

    async def poll_video_operation(self, operation: VideoOperation) -> VideoOperation:
        client = self._require_client()
        try:
            video = await client.videos.retrieve(operation.name)
        except openai.OpenAIError as e:
            raise self._map_error(e, "poll_video_operation") from e
        return self._to_operation(video)

    async def fetch_video(self, uri: str) -> bytes:
        if not self.api_key:
            raise AgentExecutionError(
                "MISSING_API_KEY",
                "OpenAI API key is not configured (set OPENAI_API_KEY)."
            )
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            if self.http_client is not None:
                response = await self.http_client.get(uri, headers=headers, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=120.0) as http:
                    response = await http.get(uri, headers=headers, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise AgentExecutionError(
                "VIDEO_FETCH_FAILED",
                f"Video download failed with HTTP {e.response.status_code}",
                {"uri": uri}
            ) from e
        except httpx.HTTPError as e:
            raise AgentExecutionError(
                "NETWORK_ERROR",
                f"Video download failed: {str(e)}",
                {"uri": uri}
            ) from e
        return response.content
