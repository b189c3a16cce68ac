"""Data URL payloads for images and audio crossing the service boundary."""

import base64
import binascii
import io
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


DATA_URL_PATTERN = re.compile(r'^data:([\w.+-]+/[\w.+-]+);base64,(.*)$', re.DOTALL)


class DataURL(BaseModel):
    """
    Parsed ``data:<mimeType>;base64,<payload>`` value.

    Images and audio travel between the editor and the generative services
    in this encoding. The payload is kept base64-encoded; ``decode()`` gives
    the raw bytes.
    """

    mime_type: str = Field(..., description="MIME type, e.g. image/png")
    data: str = Field(..., description="Base64-encoded payload")

    model_config = ConfigDict(frozen=True)

    @field_validator('mime_type')
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        """Ensure the MIME type has a type/subtype shape."""
        if not v or '/' not in v:
            raise ValueError(f"mime_type must look like 'type/subtype', got '{v}'")
        return v

    @classmethod
    def parse(cls, value: str) -> "DataURL":
        """Parse a data URL string.

        Raises:
            ValueError: If the string is not a base64 data URL
        """
        match = DATA_URL_PATTERN.match(value or '')
        if not match:
            raise ValueError("Invalid data URL format.")
        mime_type, data = match.groups()
        return cls(mime_type=mime_type, data=data)

    @classmethod
    def is_data_url(cls, value: object) -> bool:
        return isinstance(value, str) and DATA_URL_PATTERN.match(value) is not None

    @classmethod
    def from_bytes(cls, payload: bytes, mime_type: str) -> "DataURL":
        return cls(mime_type=mime_type, data=base64.b64encode(payload).decode('ascii'))

    def decode(self) -> bytes:
        """Return the raw payload bytes.

        Raises:
            ValueError: If the payload is not valid base64
        """
        try:
            return base64.b64decode(self.data, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 payload: {e}") from e

    @property
    def extension(self) -> str:
        subtype = self.mime_type.split('/', 1)[1]
        return {'jpeg': 'jpg', 'svg+xml': 'svg', 'mpeg': 'mp3'}.get(subtype, subtype)

    def to_string(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"

    def __str__(self) -> str:
        return self.to_string()


class AudioAttachment(BaseModel):
    """
    Audio file embedded in a saved draft.

    Stored as name + MIME type + data URL so that a reloaded draft can hand
    the host a file-like object again.
    """

    name: str = Field(..., description="Original file name")
    type: str = Field(..., description="MIME type of the audio file")
    data_url: str = Field(..., description="data: URL carrying the file contents")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator('data_url')
    @classmethod
    def validate_data_url(cls, v: str) -> str:
        """Ensure the stored payload is a data URL."""
        DataURL.parse(v)
        return v

    @classmethod
    def from_bytes(cls, name: str, mime_type: str, payload: bytes) -> "AudioAttachment":
        return cls(
            name=name,
            type=mime_type,
            data_url=DataURL.from_bytes(payload, mime_type).to_string()
        )

    def to_data_url(self) -> DataURL:
        return DataURL.parse(self.data_url)

    def open(self, name: Optional[str] = None) -> io.BytesIO:
        """Reconstitute the attachment as a named in-memory file."""
        handle = io.BytesIO(self.to_data_url().decode())
        handle.name = name or self.name
        return handle
