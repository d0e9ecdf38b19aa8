"""
Candidate aggregation across several YouTube search queries.
"""
import logging
import math
from typing import Callable, Iterable, Optional, Sequence

from ..config import POPULAR_CREATORS
from .models import VideoCandidate
from .youtube_api import search_candidates

logger = logging.getLogger(__name__)

TOPIC_QUERIES = [
    "gaming highlights",
    "viral moments",
    "funny reactions",
    "irl stream",
    "reacting to",
    "challenge",
]

# Only the first N queries are issued per run to stay inside the API quota
DEFAULT_MAX_QUERIES = 5

SearchFn = Callable[[str, int], list[VideoCandidate]]


def build_search_queries(popular_creators: Optional[Iterable[str]] = None) -> list[str]:
    """Creator stream queries first, then generic trending topics."""
    creators = POPULAR_CREATORS if popular_creators is None else popular_creators
    return [f"{creator} stream" for creator in creators] + list(TOPIC_QUERIES)


def aggregate(
    queries: Sequence[str],
    total_cap: int,
    search: Optional[SearchFn] = None,
    max_queries: int = DEFAULT_MAX_QUERIES,
) -> list[VideoCandidate]:
    """Run search queries sequentially and merge their results.

    Each query asks for ``ceil(total_cap / len(queries))`` results. Results
    are de-duplicated by video id: a video seen under several queries keeps
    its first position but the attributes from the last query that returned
    it. A query that raises is logged and skipped.

    Args:
        queries: Search queries; only the first ``max_queries`` are issued.
        total_cap: Maximum number of candidates returned.
        search: Search function, defaults to the YouTube Data API.
        max_queries: How many queries to issue.

    Returns:
        De-duplicated candidates, at most ``total_cap`` of them. Empty only
        if every query failed or returned nothing.
    """
    search = search or search_candidates

    if not queries or total_cap <= 0:
        return []

    per_query = max(1, math.ceil(total_cap / len(queries)))
    issued = list(queries)[:max_queries]

    unique: dict[str, VideoCandidate] = {}
    failed = 0
    for query in issued:
        try:
            results = search(query, per_query)
        except Exception as e:
            failed += 1
            logger.error("Error searching '%s': %s", query, e)
            continue

        for candidate in results:
            # Re-assigning an existing key keeps its insertion position
            unique[candidate.video_id] = candidate

    if failed == len(issued):
        logger.warning("All %d search queries failed", failed)

    candidates = list(unique.values())[:total_cap]
    logger.info(
        "Found %d unique trending videos from %d queries (%d failed)",
        len(candidates),
        len(issued),
        failed,
    )
    return candidates
