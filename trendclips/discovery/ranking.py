"""
Ranking engine: enrich candidates with fresh stats, score, and order them.
"""
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, Sequence

from ..config import POPULAR_CREATORS
from .models import RankedCandidate, VideoCandidate, VideoMetadata
from .trend_scorer import score_video
from .youtube_api import fetch_video_metadata

logger = logging.getLogger(__name__)

MetadataFn = Callable[[str], VideoMetadata]


def merge_metadata(candidate: VideoCandidate, metadata: VideoMetadata) -> VideoCandidate:
    """Overlay fresh metadata onto a search candidate.

    A minimal stand-in record carries no real data, so the candidate is
    kept as-is in that case.
    """
    if metadata.is_fallback:
        return candidate
    return replace(
        candidate,
        title=metadata.title or candidate.title,
        channel_title=metadata.channel_title or candidate.channel_title,
        url=metadata.url or candidate.url,
        published_at=metadata.published_at or candidate.published_at,
        views=metadata.views,
        likes=metadata.likes,
        duration_seconds=metadata.duration_seconds or candidate.duration_seconds,
        description=metadata.description or candidate.description,
        thumbnail_url=metadata.thumbnail_url or candidate.thumbnail_url,
    )


def rank(
    candidates: Sequence[VideoCandidate],
    fetch_metadata: Optional[MetadataFn] = None,
    now: Optional[datetime] = None,
    popular_creators: Optional[Iterable[str]] = None,
) -> list[RankedCandidate]:
    """Score every candidate and sort by trend score, highest first.

    Candidates whose enrichment raises are dropped; the rest are still
    ranked. Equal scores keep their input order.

    Args:
        candidates: Aggregated search candidates.
        fetch_metadata: Metadata lookup, defaults to the YouTube Data API.
        now: Reference time for scoring; one value is used for the whole
            batch so scores are comparable.
        popular_creators: Creator names earning the channel bonus.

    Returns:
        Ranked candidates in descending score order.
    """
    fetch_metadata = fetch_metadata or fetch_video_metadata
    now = now or datetime.now(timezone.utc)
    creators = list(POPULAR_CREATORS if popular_creators is None else popular_creators)

    ranked: list[RankedCandidate] = []
    for candidate in candidates:
        try:
            metadata = fetch_metadata(candidate.video_id)
        except Exception as e:
            logger.warning("Dropping %s: enrichment failed: %s", candidate.video_id, e)
            continue

        enriched = merge_metadata(candidate, metadata)
        trend = score_video(enriched, now, creators)
        channel_name = (
            (metadata.channel_title if not metadata.is_fallback else "")
            or candidate.channel_title
            or "Unknown"
        )
        ranked.append(
            RankedCandidate(candidate=enriched, trend=trend, channel_name=channel_name)
        )

    # sorted() is stable, so ties stay in input order
    ranked = sorted(ranked, key=lambda r: r.trend.score, reverse=True)

    logger.info("Ranked %d of %d videos", len(ranked), len(candidates))
    return ranked
