"""Storyboard draft, scene and frame schemas.

Scenes and frames are frozen pydantic models: a tuple of scenes is a
history snapshot, and every state change goes through a named transition
that returns a new object. Persisted JSON uses camelCase keys.
"""

import re
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

from storyboard_studio.schemas.data_url import AudioAttachment, DataURL


MAX_REFERENCE_IMAGES = 4

CROSS_REF_PATTERN = re.compile(r'^(\d+)-(start|end)$')


class InvalidTransitionError(ValueError):
    """Raised when a frame or video status change is not allowed."""


class InputMethod(str, Enum):
    PROMPT = "prompt"
    TEXT = "text"
    AUDIO = "audio"


class GenerationStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    DONE = "done"
    ERROR = "error"


class FrameType(str, Enum):
    START = "start"
    END = "end"


class OutputLanguage(str, Enum):
    VI = "vi"
    EN = "en"
    ZH = "zh"


class ScriptType(str, Enum):
    AUTO = "auto"
    DIALOGUE = "dialogue"
    ACTION = "action"


class VideoPromptMode(str, Enum):
    """How the video prompt relates the two frames of a scene."""
    START_END = "start-end"
    START_ONLY = "start-only"


_CAMEL = dict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Image sources
# ---------------------------------------------------------------------------

class ReferenceSource(BaseModel):
    """Use the draft's first reference image (if any)."""

    kind: Literal["reference"] = "reference"

    model_config = ConfigDict(frozen=True)

    def to_legacy(self) -> str:
        return "reference"


class InlineSource(BaseModel):
    """Use an image payload supplied directly for this frame."""

    kind: Literal["inline"] = "inline"
    payload: str = Field(..., description="data: URL of the source image")

    model_config = ConfigDict(frozen=True)

    @field_validator('payload')
    @classmethod
    def validate_payload(cls, v: str) -> str:
        """Ensure payload is a data URL."""
        DataURL.parse(v)
        return v

    def to_legacy(self) -> str:
        return self.payload


class CrossRefSource(BaseModel):
    """Use the resolved image of another scene's frame."""

    kind: Literal["cross_ref"] = "cross_ref"
    scene_index: int = Field(..., ge=0, description="0-based index of the referenced scene")
    side: FrameType = Field(..., description="Which frame of the referenced scene")

    model_config = ConfigDict(frozen=True)

    def to_legacy(self) -> str:
        return f"{self.scene_index}-{self.side.value}"


ImageSource = Annotated[
    Union[ReferenceSource, InlineSource, CrossRefSource],
    Field(discriminator="kind")
]


def coerce_image_source(value: Any) -> Any:
    """Turn the legacy string selector into the tagged form.

    Accepts ``"reference"``, a data URL, or ``"<sceneIndex>-<start|end>"``.
    Model instances and dicts are passed through as dicts.
    """
    if isinstance(value, BaseModel):
        return value.model_dump()
    if value is None or value == "" or value == "reference":
        return {"kind": "reference"}
    if isinstance(value, str):
        if DataURL.is_data_url(value):
            return {"kind": "inline", "payload": value}
        match = CROSS_REF_PATTERN.match(value)
        if match:
            return {"kind": "cross_ref", "scene_index": int(match.group(1)), "side": match.group(2)}
        raise ValueError(f"Unrecognized image source '{value[:40]}'")
    return value


# ---------------------------------------------------------------------------
# Frames and scenes
# ---------------------------------------------------------------------------

class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, **_CAMEL)

    def _evolve(self, **changes: Any):
        """Return a validated copy with ``changes`` applied."""
        data = self.model_dump()
        data.update(changes)
        return type(self).model_validate(data)


class Frame(_Frozen):
    """Start or end still of a scene."""

    description: str = Field("", description="Text description of the still")
    status: GenerationStatus = Field(GenerationStatus.IDLE, description="Image generation status")
    image_source: ImageSource = Field(
        default_factory=ReferenceSource,
        description="Where the generation takes its source image from"
    )
    image_url: Optional[str] = Field(None, description="Resolved image, only when status is done")
    error: Optional[str] = Field(None, description="Last generation error message")

    @field_validator('image_source', mode='before')
    @classmethod
    def parse_image_source(cls, v: Any) -> Any:
        return coerce_image_source(v)

    @field_serializer('image_source', when_used='json')
    def serialize_image_source(self, v: Union[ReferenceSource, InlineSource, CrossRefSource]) -> str:
        return v.to_legacy()

    @model_validator(mode='after')
    def validate_image_matches_status(self) -> "Frame":
        """A resolved image exists only for finished frames."""
        if self.image_url is not None and self.status != GenerationStatus.DONE:
            raise ValueError(
                f"image_url is only defined when status is 'done', got '{self.status.value}'"
            )
        return self

    @property
    def has_image(self) -> bool:
        return self.status == GenerationStatus.DONE and bool(self.image_url)

    def mark_pending(self) -> "Frame":
        """Start a generation; a finished frame is implicitly cleared first."""
        if self.status == GenerationStatus.PENDING:
            raise InvalidTransitionError("frame generation already pending")
        return self._evolve(status=GenerationStatus.PENDING, image_url=None, error=None)

    def mark_done(self, image_url: str) -> "Frame":
        if self.status != GenerationStatus.PENDING:
            raise InvalidTransitionError(f"cannot finish a frame in status '{self.status.value}'")
        return self._evolve(status=GenerationStatus.DONE, image_url=image_url, error=None)

    def mark_failed(self, message: str) -> "Frame":
        if self.status != GenerationStatus.PENDING:
            raise InvalidTransitionError(f"cannot fail a frame in status '{self.status.value}'")
        return self._evolve(status=GenerationStatus.ERROR, image_url=None, error=message)

    def cleared(self) -> "Frame":
        return self._evolve(status=GenerationStatus.IDLE, image_url=None, error=None)

    def with_description(self, description: str) -> "Frame":
        return self._evolve(description=description)

    def with_image_source(self, source: Any) -> "Frame":
        return self._evolve(image_source=coerce_image_source(source))

    def with_custom_image(self, data_url: str) -> "Frame":
        """Use an uploaded or gallery-picked image as this frame's result."""
        return self._evolve(
            image_source={"kind": "inline", "payload": data_url},
            status=GenerationStatus.DONE,
            image_url=data_url,
            error=None
        )


class Scene(_Frozen):
    """One storyboard beat: two frames, the motion between them, and a video."""

    scene_number: int = Field(..., ge=1, alias="scene", description="1-based position")
    start_frame: Frame = Field(default_factory=Frame)
    end_frame: Frame = Field(default_factory=Frame)
    animation_description: str = Field("", description="Motion bridging start to end")
    video_prompt: str = Field("", description="Prompt for the video model")
    video_status: GenerationStatus = Field(GenerationStatus.IDLE)
    video_url: Optional[str] = Field(None, description="Playable handle of the generated video")
    video_error: Optional[str] = Field(None)
    video_operation: Optional[str] = Field(None, description="In-flight video job handle")

    @model_validator(mode='after')
    def validate_video_matches_status(self) -> "Scene":
        """A video handle exists only for finished videos."""
        if self.video_url is not None and self.video_status != GenerationStatus.DONE:
            raise ValueError(
                f"video_url is only defined when video_status is 'done', got '{self.video_status.value}'"
            )
        return self

    def frame(self, side: FrameType) -> Frame:
        return self.start_frame if FrameType(side) == FrameType.START else self.end_frame

    def with_frame(self, side: FrameType, frame: Frame) -> "Scene":
        key = "start_frame" if FrameType(side) == FrameType.START else "end_frame"
        return self._evolve(**{key: frame.model_dump()})

    def with_animation_description(self, text: str) -> "Scene":
        return self._evolve(animation_description=text)

    def with_video_prompt(self, text: str) -> "Scene":
        return self._evolve(video_prompt=text)

    def renumbered(self, scene_number: int) -> "Scene":
        if scene_number == self.scene_number:
            return self
        return self._evolve(scene_number=scene_number)

    def video_pending(self) -> "Scene":
        if self.video_status == GenerationStatus.PENDING:
            raise InvalidTransitionError("video generation already pending")
        return self._evolve(
            video_status=GenerationStatus.PENDING,
            video_url=None,
            video_error=None,
            video_operation=None
        )

    def video_started(self, operation: str) -> "Scene":
        if self.video_status != GenerationStatus.PENDING:
            raise InvalidTransitionError("video operation can only be stored while pending")
        return self._evolve(video_operation=operation)

    def video_done(self, video_url: str) -> "Scene":
        if self.video_status != GenerationStatus.PENDING:
            raise InvalidTransitionError(f"cannot finish a video in status '{self.video_status.value}'")
        return self._evolve(video_status=GenerationStatus.DONE, video_url=video_url, video_error=None)

    def video_failed(self, message: str) -> "Scene":
        if self.video_status != GenerationStatus.PENDING:
            raise InvalidTransitionError(f"cannot fail a video in status '{self.video_status.value}'")
        return self._evolve(video_status=GenerationStatus.ERROR, video_url=None, video_error=message)

    def video_cleared(self) -> "Scene":
        return self._evolve(
            video_status=GenerationStatus.IDLE,
            video_url=None,
            video_error=None,
            video_operation=None
        )

    def interrupted(self, message: str) -> "Scene":
        """Fail every pending generation; used when a saved draft is reloaded."""
        scene = self
        for side in FrameType:
            if scene.frame(side).status == GenerationStatus.PENDING:
                scene = scene.with_frame(side, scene.frame(side).mark_failed(message))
        if scene.video_status == GenerationStatus.PENDING:
            scene = scene.video_failed(message)
        return scene


def renumber(scenes: Sequence[Scene]) -> Tuple[Scene, ...]:
    """Renumber scenes 1..N to match their positions."""
    return tuple(scene.renumbered(i + 1) for i, scene in enumerate(scenes))


# ---------------------------------------------------------------------------
# Script generation contracts
# ---------------------------------------------------------------------------

class ScriptSummary(BaseModel):
    """Narrative-level summary produced before scenes are developed.

    Unknown fields are kept so summaries survive import/export unchanged.
    """

    title: str = Field("", description="Working title")
    premise: str = Field("", description="One-paragraph premise")
    characters: List[str] = Field(default_factory=list, description="Main characters")
    setting: str = Field("", description="Where and when the story takes place")
    tone: str = Field("", description="Mood of the piece")
    style: str = Field("", description="Visual style of the piece")

    model_config = ConfigDict(extra="allow", **_CAMEL)


class SceneOutline(BaseModel):
    """Raw scene descriptor returned by the scene-development service."""

    scene: int = Field(..., ge=1)
    start_frame_description: str = Field("")
    animation_description: str = Field("")
    end_frame_description: str = Field("")

    model_config = ConfigDict(**_CAMEL)


class SceneDevelopment(BaseModel):
    scenes: List[SceneOutline] = Field(default_factory=list)


class GenerationParameters(BaseModel):
    """Parameters struct passed to the summary services."""

    style: str = Field("", description="Style tag; empty means automatic")
    number_of_scenes: int = Field(0, ge=0, description="Target scene count; 0 means automatic")
    aspect_ratio: str = Field("16:9")
    notes: str = Field("")
    keep_clothing: bool = Field(False)
    keep_background: bool = Field(False)

    model_config = ConfigDict(**_CAMEL)


# ---------------------------------------------------------------------------
# Draft
# ---------------------------------------------------------------------------

class StoryboardDraft(BaseModel):
    """
    Complete in-progress storyboard, in the shape it is persisted and exported.
    """

    active_input: InputMethod = Field(InputMethod.PROMPT)
    idea: str = Field("")
    script_text: str = Field("")
    audio_data: Optional[AudioAttachment] = Field(None)
    reference_images: List[str] = Field(default_factory=list)
    script_summary: Optional[ScriptSummary] = Field(None)
    scenes: Tuple[Scene, ...] = Field(default_factory=tuple)
    style: str = Field("")
    number_of_scenes: int = Field(0, ge=0)
    aspect_ratio: str = Field("16:9")
    notes: str = Field("")
    storyboard_language: OutputLanguage = Field(OutputLanguage.VI)
    script_type: ScriptType = Field(ScriptType.AUTO)
    keep_clothing: bool = Field(False)
    keep_background: bool = Field(False)

    model_config = ConfigDict(**_CAMEL)

    @field_validator('reference_images')
    @classmethod
    def validate_reference_images(cls, v: List[str]) -> List[str]:
        """At most four reference images, each a data URL."""
        if len(v) > MAX_REFERENCE_IMAGES:
            raise ValueError(
                f"at most {MAX_REFERENCE_IMAGES} reference images allowed, got {len(v)}"
            )
        for image in v:
            DataURL.parse(image)
        return v

    @field_validator('scenes')
    @classmethod
    def validate_scene_numbers(cls, v: Tuple[Scene, ...]) -> Tuple[Scene, ...]:
        """Scene numbers must be 1..N in order."""
        numbers = [scene.scene_number for scene in v]
        if numbers != list(range(1, len(v) + 1)):
            raise ValueError(f"scene numbers must be contiguous from 1, got {numbers}")
        return v

    @property
    def parameters(self) -> GenerationParameters:
        return GenerationParameters(
            style=self.style,
            number_of_scenes=self.number_of_scenes,
            aspect_ratio=self.aspect_ratio,
            notes=self.notes,
            keep_clothing=self.keep_clothing,
            keep_background=self.keep_background
        )
