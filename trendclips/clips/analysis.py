"""
LLM-written title, subtitle and hashtags for the top video.
"""
import logging
from typing import Optional, Sequence

from pydantic import ValidationError

from ..discovery.models import TranscriptSegment, VideoCandidate
from .models import ClipAnalysis
from .moment_selector import render_transcript
from .responses import as_model_response, decode_response

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert social media content analyst. You analyze viral videos "
    "and create engaging short-form content."
)

ANALYSIS_PROMPT_TEMPLATE = """\
Analyze this video and provide the best content for a viral short.

Video Title: {title}
Views: {views:,}
Likes: {likes:,}
Channel: {channel}

Transcript:
{transcript}

Your task:
1. Explain why this video is trending (1-2 sentences)
2. Create a catchy top title (one line, 80-120 characters) with emojis
3. Create a short subtitle line with a strong hook
4. Suggest 3-5 relevant hashtags

Return ONLY valid JSON in this exact format:
{{
  "reason": "<why this video is trending>",
  "title": "<top title>",
  "subtitle": "<subtitle>",
  "hashtags": ["#viral", "#shorts", "#trending"]
}}"""

MAX_HASHTAGS = 5


def _normalize_hashtags(tags: Sequence[str]) -> list[str]:
    seen = []
    for tag in tags:
        tag = str(tag).strip().replace(" ", "")
        if not tag:
            continue
        if not tag.startswith("#"):
            tag = f"#{tag}"
        if tag.lower() not in (t.lower() for t in seen):
            seen.append(tag)
    return seen[:MAX_HASHTAGS]


class ClipAnalyzer:
    """Generates presentation copy; failures degrade to None."""

    def __init__(self, llm, prompt_segments: int = 50):
        self.llm = llm
        self.prompt_segments = prompt_segments

    def analyze(
        self,
        metadata: VideoCandidate,
        transcript: Sequence[TranscriptSegment],
        channel_name: str = "",
    ) -> Optional[ClipAnalysis]:
        prompt = ANALYSIS_PROMPT_TEMPLATE.format(
            title=metadata.title or "Unknown",
            views=metadata.views,
            likes=metadata.likes,
            channel=channel_name or metadata.channel_title or "Unknown",
            transcript=render_transcript(transcript, self.prompt_segments),
        )

        try:
            raw = self.llm.complete(prompt, system=SYSTEM_PROMPT)
        except Exception as e:
            logger.error("Clip analysis failed for '%s': %s", metadata.title[:50], e)
            return None

        payload = decode_response(as_model_response(raw), envelope_fields=("caption",))
        if not payload:
            logger.warning("Unparseable clip analysis for %s", metadata.video_id)
            return None

        try:
            analysis = ClipAnalysis.model_validate(payload)
        except ValidationError as e:
            logger.warning("Invalid clip analysis for %s: %s", metadata.video_id, e)
            return None

        analysis.hashtags = _normalize_hashtags(analysis.hashtags)
        return analysis
