"""
Moment selection: ask an LLM for the best highlight window in a transcript.

Flow:
    BUILD_PROMPT -> CALL_MODEL -> PARSE_RESPONSE -> VALIDATE
        -> ACCEPT   model output is valid
        -> REPAIR   reply arrived but could not be parsed or validated
        -> FALLBACK model call failed (transport, auth, rate limit, timeout)

Every path returns a MomentCandidate with end > start. Duration limits are
applied later by the clip resolver.
"""
import logging
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from ..discovery.models import TranscriptSegment, VideoCandidate
from .models import MomentCandidate
from .responses import as_model_response, decode_response

logger = logging.getLogger(__name__)

PROMPT_SEGMENTS = 50
SYNTHETIC_WINDOW_SECONDS = 30.0

REPAIR_REASON = "AI-selected engaging moment"
FALLBACK_REASON = "Fallback: first 30 seconds"
DEFAULT_MODEL_REASON = "Engaging moment"

SYSTEM_PROMPT = (
    "You analyze video transcripts and find the single most viral-worthy moment "
    "for short-form content. Reply with strict JSON only: "
    '{"start": <seconds>, "end": <seconds>, "text": "<transcript text>", '
    '"reason": "<why it will perform>"}. start and end are numbers of seconds.'
)

MOMENT_PROMPT_TEMPLATE = """\
Analyze this video transcript and find the most engaging/viral moment (15-60 seconds).

Video Title: {title}
Views: {views:,}
Likes: {likes:,}

Transcript:
{transcript}

Find the single best moment that would make a viral short. Consider:
- Emotional peaks (surprise, excitement, shock)
- Humor or funny moments
- Unexpected reactions
- High energy moments
- Catchy phrases or quotes

Return ONLY valid JSON in this exact format:
{{
  "start": <start_time_in_seconds>,
  "end": <end_time_in_seconds>,
  "text": "<transcript_text_for_this_moment>",
  "reason": "<why_this_moment_is_viral>"
}}"""


def format_timestamp(seconds: float) -> str:
    """Format seconds as mm:ss."""
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"


def render_transcript(transcript: Sequence[TranscriptSegment], limit: int = PROMPT_SEGMENTS) -> str:
    """Render the first ``limit`` segments as ``[mm:ss] text`` lines.

    Moments after the prefix can never be proposed by the model.
    """
    return "\n".join(
        f"[{format_timestamp(seg.start)}] {seg.text}" for seg in transcript[:limit]
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _segment_text_at(transcript: Sequence[TranscriptSegment], time: float) -> str:
    for seg in transcript:
        if seg.start <= time <= seg.start + seg.duration:
            return seg.text
    return ""


def synthesize_window(segment: Optional[TranscriptSegment], reason: str, source: str) -> MomentCandidate:
    """Fixed 30 second window starting at a segment (or at 0)."""
    start = max(0.0, float(segment.start)) if segment else 0.0
    return MomentCandidate(
        start=start,
        end=start + SYNTHETIC_WINDOW_SECONDS,
        text=segment.text if segment else "",
        reason=reason,
        source=source,
    )


def repair_moment(transcript: Sequence[TranscriptSegment]) -> MomentCandidate:
    """Midpoint segment window, used when the model reply is unusable."""
    segment = transcript[len(transcript) // 2] if transcript else None
    return synthesize_window(segment, REPAIR_REASON, "repair")


def fallback_moment(transcript: Sequence[TranscriptSegment]) -> MomentCandidate:
    """First segment window, used when the model call itself failed."""
    segment = transcript[0] if transcript else None
    return synthesize_window(segment, FALLBACK_REASON, "fallback")


def validate_moment(
    payload: Optional[dict],
    transcript: Sequence[TranscriptSegment] = (),
) -> Optional[MomentCandidate]:
    """Check a decoded reply for numeric bounds with end > start.

    Returns:
        MomentCandidate, or None if the payload is not a valid window.
    """
    if not payload:
        return None
    start, end = payload.get("start"), payload.get("end")
    if not (_is_number(start) and _is_number(end)):
        return None
    try:
        start, end = float(start), float(end)
    except (OverflowError, ValueError):
        return None

    text = payload.get("text")
    if not isinstance(text, str) or not text:
        text = _segment_text_at(transcript, start)
    reason = payload.get("reason")
    if not isinstance(reason, str) or not reason:
        reason = DEFAULT_MODEL_REASON

    try:
        return MomentCandidate(
            start=start, end=end, text=text, reason=reason, source="model"
        )
    except ValidationError:
        return None


class MomentSelector:
    """Picks a highlight window with an LLM and a deterministic fallback chain."""

    def __init__(self, llm, prompt_segments: int = PROMPT_SEGMENTS):
        """
        Args:
            llm: Object with ``complete(prompt, system=...)`` returning the
                reply as text or an already-parsed dict.
            prompt_segments: Transcript prefix length sent to the model.
        """
        self.llm = llm
        self.prompt_segments = prompt_segments

    def build_prompt(self, transcript: Sequence[TranscriptSegment], metadata: VideoCandidate) -> str:
        return MOMENT_PROMPT_TEMPLATE.format(
            title=metadata.title,
            views=metadata.views,
            likes=metadata.likes,
            transcript=render_transcript(transcript, self.prompt_segments),
        )

    def select_moment(
        self,
        transcript: Sequence[TranscriptSegment],
        metadata: VideoCandidate,
    ) -> MomentCandidate:
        """Select the best moment for a video.

        Never raises. With no transcript there is nothing for the model to
        read, so the fallback window is returned without a model call.
        """
        if not transcript:
            logger.warning("No transcript for %s, using fallback window", metadata.video_id)
            return fallback_moment(transcript)

        prompt = self.build_prompt(transcript, metadata)

        try:
            raw = self.llm.complete(prompt, system=SYSTEM_PROMPT)
        except Exception as e:
            logger.error(
                "Moment model call failed for '%s': %s", metadata.title[:50], e
            )
            return fallback_moment(transcript)

        payload = decode_response(as_model_response(raw))
        moment = validate_moment(payload, transcript)
        if moment is None:
            logger.warning(
                "Unusable moment reply for %s, repairing with midpoint segment",
                metadata.video_id,
            )
            return repair_moment(transcript)

        logger.info(
            "Model selected %.1fs-%.1fs for %s", moment.start, moment.end, metadata.video_id
        )
        return moment
