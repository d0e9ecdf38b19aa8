"""
Data models for moment selection and clip resolution.
"""
import math
from dataclasses import dataclass
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_HASHTAGS = ("#viral", "#shorts", "#trending")


class MomentCandidate(BaseModel):
    """A proposed highlight window inside a video."""
    start: float  # seconds
    end: float  # seconds
    text: str = ""
    reason: str = ""
    source: Literal["model", "repair", "fallback"] = "model"

    @field_validator("start", "end")
    @classmethod
    def _finite_non_negative(cls, value: float) -> float:
        if not math.isfinite(value) or value < 0:
            raise ValueError("timestamps must be finite, non-negative seconds")
        return value

    @model_validator(mode="after")
    def _end_after_start(self) -> "MomentCandidate":
        if self.end <= self.start:
            raise ValueError("end must be greater than start")
        return self

    @property
    def duration(self) -> float:
        return self.end - self.start


class ClipAnalysis(BaseModel):
    """LLM-written presentation copy for the top video."""
    title: str = ""
    subtitle: str = ""
    hashtags: list[str] = Field(default_factory=list)
    reason: str = ""


@dataclass(frozen=True)
class ClipDescriptor:
    """Final clip window plus presentation metadata."""
    video_id: str
    video_url: str
    start_time: float
    end_time: float
    duration: float  # within [15, 60]
    text: str
    caption: str
    subtitle: str
    reason: str
    title: str
    hashtags: tuple[str, ...] = DEFAULT_HASHTAGS

    def to_dict(self) -> dict:
        return {
            "video_id": self.video_id,
            "video_url": self.video_url,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "text": self.text,
            "caption": self.caption,
            "subtitle": self.subtitle,
            "reason": self.reason,
            "title": self.title,
            "hashtags": list(self.hashtags),
        }


@dataclass
class OverlayOptions:
    """Text and branding drawn on a rendered short."""
    title: str = ""
    subtitle: str = ""
    watermark_path: Optional[str] = None
    title_font_size: int = 56
    subtitle_font_size: int = 34


@dataclass
class UploadResult:
    """Where an uploaded clip ended up."""
    platform_video_id: str
    url: str
