"""
Trend Scorer

Computes a deterministic trend score for a video from its engagement
signals. Pure: no I/O, no clock reads; the caller supplies ``now``.
"""
from datetime import datetime, timezone
from typing import Iterable, Optional

from .models import TrendMetrics, TrendScore, VideoCandidate

RECENCY_WINDOW_HOURS = 168  # 7 days
POPULAR_CREATOR_BONUS = 1.5

# Weighted sum, then multiplied by the channel bonus
SCORE_WEIGHTS = {
    "views_per_hour": 0.4,
    "like_ratio": 0.3,  # applied to like_ratio * 1000
    "recency": 0.2,  # applied to recency_bonus * 100
    "views": 0.1,  # applied to views / 10000
}

# Reason thresholds, checked in this order
SPIKE_VIEWS_PER_HOUR = 1000
HIGH_ENGAGEMENT_LIKE_RATIO = 0.05  # 5%
RECENT_UPLOAD_HOURS = 24


def parse_published_at(value: str) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC.

    Returns:
        Aware datetime, or None if the value is empty or malformed.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def hours_since(published_at: str, now: datetime) -> float:
    """Hours between publish time and now. Malformed input counts as now."""
    published = parse_published_at(published_at)
    if published is None:
        return 0.0
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (now - published).total_seconds() / 3600


def match_popular_creator(channel_title: str, popular_creators: Iterable[str]) -> Optional[str]:
    """Return the first creator whose name appears in the channel title."""
    title = (channel_title or "").lower()
    if not title:
        return None
    for creator in popular_creators:
        if creator and creator.lower() in title:
            return creator
    return None


def compute_metrics(
    candidate: VideoCandidate,
    now: datetime,
    popular_creators: Iterable[str],
) -> TrendMetrics:
    """Derive the trend metrics for a candidate."""
    views = max(0, candidate.views)
    likes = max(0, candidate.likes)
    hours = hours_since(candidate.published_at, now)

    views_per_hour = views / hours if hours > 0 else 0.0
    like_ratio = likes / views if views > 0 else 0.0

    elapsed = max(0.0, hours)
    recency_bonus = max(0.0, RECENCY_WINDOW_HOURS - elapsed) / RECENCY_WINDOW_HOURS

    creator = match_popular_creator(candidate.channel_title, popular_creators)
    channel_bonus = POPULAR_CREATOR_BONUS if creator else 1.0

    return TrendMetrics(
        views_per_hour=views_per_hour,
        like_ratio=like_ratio,
        recency_bonus=recency_bonus,
        channel_bonus=channel_bonus,
        hours_since_published=hours,
        matched_creator=creator,
    )


def selection_reason(metrics: TrendMetrics, views: int) -> str:
    """Pick exactly one human-readable reason; first matching rule wins."""
    if metrics.views_per_hour > SPIKE_VIEWS_PER_HOUR:
        return f"Spike in views: {round(metrics.views_per_hour)} views/hour"
    elif metrics.like_ratio > HIGH_ENGAGEMENT_LIKE_RATIO:
        return f"High engagement: {metrics.like_ratio * 100:.2f}% like ratio"
    elif metrics.hours_since_published < RECENT_UPLOAD_HOURS:
        return f"Recent upload: {round(max(0.0, metrics.hours_since_published))} hours ago"
    elif metrics.channel_bonus > 1:
        return "Popular creator content"
    else:
        return f"Trending content with {views:,} views"


def score_video(
    candidate: VideoCandidate,
    now: datetime,
    popular_creators: Iterable[str],
) -> TrendScore:
    """
    Compute the trend score for a candidate.

    Formula:
        (views_per_hour * 0.4
         + like_ratio * 1000 * 0.3
         + recency_bonus * 100 * 0.2
         + views / 10000 * 0.1) * channel_bonus

    rounded to 2 decimals.

    Args:
        candidate: Video with fresh view/like counts.
        now: Reference time for recency and velocity.
        popular_creators: Creator names that earn the channel bonus.

    Returns:
        TrendScore with score, metrics and selection reason.
    """
    creators = list(popular_creators)
    metrics = compute_metrics(candidate, now, creators)
    views = max(0, candidate.views)

    raw = (
        metrics.views_per_hour * SCORE_WEIGHTS["views_per_hour"]
        + metrics.like_ratio * 1000 * SCORE_WEIGHTS["like_ratio"]
        + metrics.recency_bonus * 100 * SCORE_WEIGHTS["recency"]
        + views / 10000 * SCORE_WEIGHTS["views"]
    ) * metrics.channel_bonus

    return TrendScore(
        score=round(raw, 2),
        metrics=metrics,
        reason=selection_reason(metrics, views),
    )
