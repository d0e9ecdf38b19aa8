"""
Transcript gateway backed by YouTube captions.
"""
import logging
from typing import Optional, Sequence

from youtube_transcript_api import YouTubeTranscriptApi
from youtube_transcript_api._errors import TranscriptsDisabled, VideoUnavailable

from .models import TranscriptSegment

logger = logging.getLogger(__name__)


def fetch_transcript(
    video_id: str,
    languages: Sequence[str] = ("en",),
    api: Optional[YouTubeTranscriptApi] = None,
) -> list[TranscriptSegment]:
    """Fetch timestamped caption segments for a video.

    Segments are returned in the order YouTube provides them; gaps and
    overlaps are left alone.

    Returns:
        List of TranscriptSegment, or an empty list when captions are
        disabled, the video is unavailable, or the request fails.
    """
    api = api or YouTubeTranscriptApi()
    try:
        fetched = api.fetch(video_id, languages=tuple(languages))
        raw = fetched.to_raw_data()
    except (TranscriptsDisabled, VideoUnavailable) as e:
        logger.warning("No transcript for %s: %s", video_id, type(e).__name__)
        return []
    except Exception as e:
        logger.warning("Transcript fetch failed for %s: %s", video_id, e)
        return []

    segments = []
    for entry in raw:
        try:
            segments.append(
                TranscriptSegment(
                    start=float(entry["start"]),
                    duration=float(entry.get("duration", 0.0)),
                    text=str(entry.get("text", "")).strip(),
                )
            )
        except (KeyError, TypeError, ValueError):
            logger.debug("Skipping malformed transcript entry for %s: %r", video_id, entry)

    logger.info("Got %d transcript segments for %s", len(segments), video_id)
    return segments
