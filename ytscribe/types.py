from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

from ytscribe.utils.formatting import format_duration


TranscriptStatus = Literal["queued", "processing", "completed", "error"]


class TranscribeRequest(BaseModel):
    url: Optional[str] = None


class VideoInfo(BaseModel):
    title: str
    duration_seconds: int = Field(ge=0)
    channel: str
    thumbnail: Optional[str] = None

    @property
    def duration_minutes(self) -> int:
        return self.duration_seconds // 60

    def to_public(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "duration": format_duration(self.duration_seconds),
            "duration_seconds": self.duration_seconds,
            "channel": self.channel,
            "thumbnail": self.thumbnail,
        }


class TranscriptionResult(BaseModel):
    id: Optional[str] = None
    status: TranscriptStatus
    text: str = ""
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    audio_duration: Optional[float] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in ("completed", "error")


class TranscribeResponse(BaseModel):
    success: bool = True
    videoInfo: Dict[str, Any]
    transcription: str
    confidence: Optional[float] = None
    audio_duration: Optional[float] = None
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error: Optional[str] = None
