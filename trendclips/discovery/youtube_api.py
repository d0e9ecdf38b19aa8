"""
YouTube Data API gateway: keyword search and per-video metadata.

Search failures propagate so the aggregator can skip a single query.
Metadata lookups never raise; they degrade to a minimal stand-in record.
"""
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx

from ..config import get_settings
from .models import VideoCandidate, VideoMetadata, video_url

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
VIDEOS_URL = "https://www.googleapis.com/youtube/v3/videos"

# Searches only look at uploads from the last week
SEARCH_WINDOW = timedelta(days=7)


def _parse_duration(duration_str: str) -> int:
    """Parse ISO 8601 duration (PT1H2M3S) to seconds."""
    match = re.match(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?", duration_str or "")
    if not match:
        return 0
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    seconds = int(match.group(3) or 0)
    return hours * 3600 + minutes * 60 + seconds


def _resolve_api_key(api_key: Optional[str]) -> Optional[str]:
    if api_key:
        return api_key
    secret = get_settings().youtube_api_key
    return secret.get_secret_value() if secret else None


def _best_thumbnail(snippet: dict) -> str:
    thumbnails = snippet.get("thumbnails", {})
    return (
        thumbnails.get("high", {}).get("url")
        or thumbnails.get("medium", {}).get("url")
        or thumbnails.get("default", {}).get("url", "")
    )


def minimal_metadata(video_id: str, now: Optional[datetime] = None) -> VideoMetadata:
    """Stand-in record used whenever the videos endpoint is unusable."""
    now = now or datetime.now(timezone.utc)
    return VideoMetadata(
        video_id=video_id,
        title="Video",
        description="",
        views=0,
        likes=0,
        published_at=now.isoformat(),
        channel_title="",
        duration_seconds=0,
        url=video_url(video_id),
        is_fallback=True,
    )


def search_candidates(
    query: str,
    limit: int = 10,
    api_key: Optional[str] = None,
    timeout: Optional[float] = None,
    now: Optional[datetime] = None,
) -> list[VideoCandidate]:
    """Search recent YouTube uploads for a query, most viewed first.

    Uses search.list (100 quota units per call). Statistics are not part of
    the search response, so view and like counts are left at zero for the
    ranking stage to fill in.

    Args:
        query: Search query string.
        limit: Max number of results (1-50).
        api_key: YouTube Data API key; defaults to settings.
        timeout: Request timeout in seconds; defaults to settings.
        now: Reference time for the publishedAfter window.

    Returns:
        List of VideoCandidate in API order.

    Raises:
        RuntimeError: If no API key is configured.
        httpx.HTTPError: On transport or HTTP status failures.
    """
    key = _resolve_api_key(api_key)
    if not key:
        raise RuntimeError("YOUTUBE_API_KEY is not configured")

    now = now or datetime.now(timezone.utc)
    timeout = timeout or get_settings().search_timeout_seconds
    published_after = (now - SEARCH_WINDOW).strftime("%Y-%m-%dT%H:%M:%SZ")

    client = httpx.Client()
    try:
        resp = client.get(
            SEARCH_URL,
            params={
                "part": "snippet",
                "q": query,
                "type": "video",
                "maxResults": max(1, min(limit, 50)),
                "order": "viewCount",
                "publishedAfter": published_after,
                "key": key,
            },
            timeout=timeout,
        )
        resp.raise_for_status()
        items = resp.json().get("items", [])
    except httpx.HTTPStatusError as e:
        if e.response.status_code == 403:
            logger.error("YouTube API quota exceeded while searching '%s'", query)
        raise
    finally:
        client.close()

    candidates = []
    for item in items:
        video_id = item.get("id", {}).get("videoId")
        if not video_id:
            continue
        snippet = item.get("snippet", {})
        candidates.append(
            VideoCandidate(
                video_id=video_id,
                title=snippet.get("title", ""),
                channel_title=snippet.get("channelTitle", ""),
                url=video_url(video_id),
                published_at=snippet.get("publishedAt", ""),
                description=snippet.get("description", ""),
                thumbnail_url=_best_thumbnail(snippet),
            )
        )

    logger.info("Found %d YouTube videos for query: %s", len(candidates), query)
    return candidates


def fetch_video_metadata(
    video_id: str,
    api_key: Optional[str] = None,
    timeout: Optional[float] = None,
    now: Optional[datetime] = None,
) -> VideoMetadata:
    """Fetch snippet, statistics and duration for one video.

    Always returns a record. Missing credentials, timeouts, quota errors,
    unknown ids and malformed payloads all yield ``minimal_metadata``.
    """
    key = _resolve_api_key(api_key)
    if not key:
        logger.warning("YOUTUBE_API_KEY not set, using minimal details for %s", video_id)
        return minimal_metadata(video_id, now)

    timeout = timeout or get_settings().metadata_timeout_seconds
    client = httpx.Client()
    try:
        resp = client.get(
            VIDEOS_URL,
            params={
                "part": "snippet,statistics,contentDetails",
                "id": video_id,
                "key": key,
            },
            timeout=timeout,
        )
        resp.raise_for_status()
        items = resp.json().get("items", [])
        if not items:
            logger.warning("Video %s not found in API response, using minimal details", video_id)
            return minimal_metadata(video_id, now)

        item = items[0]
        snippet = item.get("snippet", {})
        stats = item.get("statistics", {})
        content = item.get("contentDetails", {})
        return VideoMetadata(
            video_id=item.get("id", video_id),
            title=snippet.get("title", ""),
            description=snippet.get("description", ""),
            views=int(stats.get("viewCount", 0)),
            likes=int(stats.get("likeCount", 0)),
            published_at=snippet.get("publishedAt", ""),
            channel_title=snippet.get("channelTitle", ""),
            duration_seconds=_parse_duration(content.get("duration", "")),
            url=video_url(item.get("id", video_id)),
            thumbnail_url=_best_thumbnail(snippet),
        )

    except httpx.TimeoutException:
        logger.warning("YouTube API timeout for %s, using minimal details", video_id)
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        if status == 403:
            logger.warning("YouTube API 403 (quota/access) for %s, using minimal details", video_id)
        elif status == 404:
            logger.warning("YouTube API 404 for %s, using minimal details", video_id)
        else:
            logger.warning("YouTube API error for %s, using minimal details: %s", video_id, e)
    except Exception as e:
        logger.warning("Metadata fetch failed for %s, using minimal details: %s", video_id, e)
    finally:
        client.close()

    return minimal_metadata(video_id, now)
