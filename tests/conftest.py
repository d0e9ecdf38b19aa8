"""
Pytest configuration and fixtures.
"""
import pytest
import sys
import os
from datetime import datetime, timezone

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from trendclips.discovery.models import (
    RankedCandidate,
    TranscriptSegment,
    VideoCandidate,
    VideoMetadata,
    video_url,
)
from trendclips.discovery.trend_scorer import score_video


NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_candidate(video_id="abc123", **kwargs):
    defaults = dict(
        video_id=video_id,
        title=f"Video {video_id}",
        channel_title="SomeChannel",
        url=video_url(video_id),
        published_at="2025-06-01T02:00:00Z",  # 10 hours before NOW
        views=10000,
        likes=100,
        duration_seconds=600,
    )
    defaults.update(kwargs)
    return VideoCandidate(**defaults)


def make_metadata(video_id="abc123", **kwargs):
    defaults = dict(
        video_id=video_id,
        title=f"Video {video_id}",
        description="",
        views=10000,
        likes=100,
        published_at="2025-06-01T02:00:00Z",
        channel_title="SomeChannel",
        duration_seconds=600,
        url=video_url(video_id),
    )
    defaults.update(kwargs)
    return VideoMetadata(**defaults)


def make_ranked(candidate=None, channel_name="SomeChannel"):
    candidate = candidate or make_candidate()
    return RankedCandidate(
        candidate=candidate,
        trend=score_video(candidate, NOW, []),
        channel_name=channel_name,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def transcript():
    """Three 30 second segments starting at 0, 30 and 60."""
    return [
        TranscriptSegment(start=0.0, duration=30.0, text="intro talk"),
        TranscriptSegment(start=30.0, duration=30.0, text="the big moment"),
        TranscriptSegment(start=60.0, duration=30.0, text="outro"),
    ]
