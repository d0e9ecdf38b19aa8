"""
Clip resolver: turns the top ranked video and its moment into a clip.

Pure assembly. Download, transcode and upload happen elsewhere.
"""
from typing import Optional

from ..discovery.models import RankedCandidate
from .models import DEFAULT_HASHTAGS, ClipAnalysis, ClipDescriptor, MomentCandidate

MIN_CLIP_SECONDS = 15.0
MAX_CLIP_SECONDS = 60.0
CAPTION_MAX_CHARS = 100  # YouTube title limit
DEFAULT_CAPTION = "Viral Moment"


def clamp_duration(duration: float) -> float:
    return max(MIN_CLIP_SECONDS, min(MAX_CLIP_SECONDS, duration))


def _truncate(text: str, limit: int = CAPTION_MAX_CHARS) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def choose_caption(
    ranked: RankedCandidate,
    moment: MomentCandidate,
    analysis: Optional[ClipAnalysis] = None,
) -> str:
    """Analysis title, then moment text, then video title, then a default."""
    if analysis and analysis.title.strip():
        return analysis.title.strip()
    if moment.text.strip():
        return _truncate(moment.text)
    if ranked.title.strip():
        return ranked.title.strip()
    return DEFAULT_CAPTION


def resolve_clip(
    ranked: RankedCandidate,
    moment: MomentCandidate,
    analysis: Optional[ClipAnalysis] = None,
) -> ClipDescriptor:
    """Build the final clip descriptor.

    The duration is clamped to [15, 60] seconds. The start time is never
    moved; the end time is recomputed from start + duration.
    """
    start = moment.start
    duration = clamp_duration(moment.end - moment.start)
    caption = choose_caption(ranked, moment, analysis)

    hashtags = DEFAULT_HASHTAGS
    if analysis and analysis.hashtags:
        hashtags = tuple(analysis.hashtags)

    return ClipDescriptor(
        video_id=ranked.video_id,
        video_url=ranked.url,
        start_time=start,
        end_time=start + duration,
        duration=duration,
        text=moment.text,
        caption=caption,
        subtitle=analysis.subtitle if analysis else "",
        reason=moment.reason,
        title=caption,
        hashtags=hashtags,
    )
