"""
Data models for the trending discovery pipeline.
"""
from dataclasses import dataclass
from typing import Optional


def video_url(video_id: str) -> str:
    """Canonical watch URL for a YouTube video id."""
    return f"https://www.youtube.com/watch?v={video_id}"


@dataclass(frozen=True)
class VideoCandidate:
    """A YouTube video considered for ranking."""
    video_id: str
    title: str
    channel_title: str
    url: str
    published_at: str
    views: int = 0
    likes: int = 0
    duration_seconds: int = 0
    description: str = ""
    thumbnail_url: str = ""


@dataclass(frozen=True)
class VideoMetadata:
    """Fresh metadata for a single video from the videos endpoint."""
    video_id: str
    title: str
    description: str
    views: int
    likes: int
    published_at: str
    channel_title: str
    duration_seconds: int
    url: str
    thumbnail_url: str = ""
    is_fallback: bool = False  # True for the minimal stand-in record


@dataclass(frozen=True)
class TrendMetrics:
    """Signals behind a trend score. Derived, never stored on their own."""
    views_per_hour: float
    like_ratio: float  # 0.0-1.0
    recency_bonus: float  # 0.0-1.0
    channel_bonus: float  # 1.0 or 1.5
    hours_since_published: float
    matched_creator: Optional[str] = None


@dataclass(frozen=True)
class TrendScore:
    """Composite trend score with its metrics and selection reason."""
    score: float
    metrics: TrendMetrics
    reason: str


@dataclass(frozen=True)
class RankedCandidate:
    """A candidate after enrichment and scoring."""
    candidate: VideoCandidate
    trend: TrendScore
    channel_name: str

    @property
    def video_id(self) -> str:
        return self.candidate.video_id

    @property
    def title(self) -> str:
        return self.candidate.title

    @property
    def url(self) -> str:
        return self.candidate.url

    @property
    def score(self) -> float:
        return self.trend.score

    @property
    def reason(self) -> str:
        return self.trend.reason


@dataclass(frozen=True)
class TranscriptSegment:
    """One timestamped caption line."""
    start: float
    duration: float
    text: str
