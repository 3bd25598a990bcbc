import os
import uuid
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

QUALITY_LABELS = {"low": 0.0, "medium": 1.0, "high": 2.0}


class MediaMode(str, Enum):
    STREAM_VIDEO = "stream_video"
    EXTRACT_AUDIO = "extract_audio"
    LINK_DETECTED = "link_detected"

    @property
    def command(self) -> Optional[str]:
        return {
            MediaMode.STREAM_VIDEO: "youtube",
            MediaMode.EXTRACT_AUDIO: "audio",
        }.get(self)


class MediaKind(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"


class InboundCommand(BaseModel):
    """Raw inbound message (separated from transport concerns)"""
    mode: MediaMode
    text: str
    conversation_id: Union[int, str]
    locale: str = "en"
    request_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])


class Request(BaseModel):
    """A validated media command"""
    mode: MediaMode
    source_url: str
    conversation_id: Union[int, str]
    locale: str = "en"
    request_id: str


class FormatDescriptor(BaseModel):
    """One downloadable format as reported by the media source"""
    format_id: Optional[str] = None
    ext: Optional[str] = None
    vcodec: Optional[str] = None
    acodec: Optional[str] = None
    height: Optional[int] = None
    tbr: Optional[float] = None
    abr: Optional[float] = None
    filesize: Optional[int] = None
    quality: Optional[float] = None

    @field_validator('quality', mode='before')
    def map_quality_label(cls, v):
        if isinstance(v, str) and v.lower() in QUALITY_LABELS:
            return QUALITY_LABELS[v.lower()]
        return v

    # An absent codec means the source did not say; treat it as present.
    @property
    def has_video(self) -> bool:
        return self.vcodec != "none"

    @property
    def has_audio(self) -> bool:
        return self.acodec != "none"

    @property
    def is_audio_only(self) -> bool:
        return self.vcodec == "none" and self.has_audio


class MediaMetadata(BaseModel):
    """Resolved video metadata"""
    title: str
    formats: List[FormatDescriptor] = []
    id: Optional[str] = None
    duration: Optional[float] = None
    uploader: Optional[str] = None
    webpage_url: Optional[str] = None


class SelectedFormat(BaseModel):
    """Format decision handed to the media source"""
    selector: str
    ext: str
    format: Optional[FormatDescriptor] = None


class StagedFile(BaseModel):
    """A local temporary file owned by exactly one request"""
    path: Path
    kind: MediaKind

    @property
    def ext(self) -> str:
        return self.path.suffix.lstrip(".").lower()

    def exists(self) -> bool:
        return self.path.exists()

    def size(self) -> int:
        return os.path.getsize(self.path)
