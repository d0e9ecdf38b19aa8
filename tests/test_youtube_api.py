"""
Tests for the YouTube Data API and transcript gateways.
"""
import os
import sys
from unittest.mock import MagicMock, patch

import httpx
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from trendclips.discovery.transcripts import fetch_transcript
from trendclips.discovery.youtube_api import (
    _parse_duration,
    fetch_video_metadata,
    minimal_metadata,
    search_candidates,
)

from conftest import NOW


def _status_error(status):
    request = httpx.Request("GET", "https://www.googleapis.com/youtube/v3/videos")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"{status}", request=request, response=response)


# ── Helpers ───────────────────────────────────────────────────────────


class TestHelpers:
    def test_parse_duration(self):
        assert _parse_duration("PT1H2M3S") == 3723
        assert _parse_duration("PT5M30S") == 330
        assert _parse_duration("PT45S") == 45
        assert _parse_duration("") == 0
        assert _parse_duration(None) == 0

    def test_minimal_metadata(self):
        record = minimal_metadata("abc", NOW)
        assert record.title == "Video"
        assert record.views == 0
        assert record.likes == 0
        assert record.published_at == NOW.isoformat()
        assert record.url == "https://www.youtube.com/watch?v=abc"
        assert record.is_fallback


# ── Search ────────────────────────────────────────────────────────────


class TestSearchCandidates:
    @patch("trendclips.discovery.youtube_api.httpx.Client")
    def test_search(self, MockClient):
        mock_client = MockClient.return_value
        resp = MagicMock()
        resp.json.return_value = {
            "items": [
                {
                    "id": {"videoId": "vid1"},
                    "snippet": {
                        "title": "Crazy Stream",
                        "channelTitle": "IShowSpeed",
                        "publishedAt": "2025-05-31T00:00:00Z",
                        "thumbnails": {"high": {"url": "https://example.com/t.jpg"}},
                    },
                },
                {"id": {"channelId": "not-a-video"}, "snippet": {}},
            ]
        }
        resp.raise_for_status = MagicMock()
        mock_client.get.return_value = resp

        results = search_candidates("IShowSpeed stream", limit=5, api_key="key", now=NOW)

        assert len(results) == 1
        assert results[0].video_id == "vid1"
        assert results[0].channel_title == "IShowSpeed"
        assert results[0].thumbnail_url == "https://example.com/t.jpg"
        params = mock_client.get.call_args.kwargs["params"]
        assert params["order"] == "viewCount"
        assert params["maxResults"] == 5
        assert params["publishedAfter"] == "2025-05-25T12:00:00Z"
        mock_client.close.assert_called_once()

    @patch("trendclips.discovery.youtube_api.httpx.Client")
    def test_search_raises_on_http_error(self, MockClient):
        mock_client = MockClient.return_value
        mock_client.get.side_effect = _status_error(403)

        with pytest.raises(httpx.HTTPStatusError):
            search_candidates("q", api_key="key", now=NOW)
        mock_client.close.assert_called_once()

    @patch("trendclips.discovery.youtube_api._resolve_api_key", return_value=None)
    def test_search_requires_key(self, _):
        with pytest.raises(RuntimeError):
            search_candidates("q")


# ── Metadata ──────────────────────────────────────────────────────────


class TestFetchVideoMetadata:
    @patch("trendclips.discovery.youtube_api.httpx.Client")
    def test_fetch(self, MockClient):
        mock_client = MockClient.return_value
        resp = MagicMock()
        resp.json.return_value = {
            "items": [{
                "id": "vid1",
                "snippet": {
                    "title": "Crazy Stream",
                    "description": "desc",
                    "channelTitle": "IShowSpeed",
                    "publishedAt": "2025-05-31T00:00:00Z",
                },
                "statistics": {"viewCount": "150000", "likeCount": "9000"},
                "contentDetails": {"duration": "PT10M30S"},
            }]
        }
        resp.raise_for_status = MagicMock()
        mock_client.get.return_value = resp

        record = fetch_video_metadata("vid1", api_key="key", now=NOW)

        assert not record.is_fallback
        assert record.views == 150000
        assert record.likes == 9000
        assert record.duration_seconds == 630
        assert record.channel_title == "IShowSpeed"
        assert mock_client.get.call_args.kwargs["timeout"] > 0

    @pytest.mark.parametrize("error", [
        httpx.ReadTimeout("slow"),
        _status_error(403),
        _status_error(404),
        _status_error(500),
        ValueError("bad json"),
    ])
    @patch("trendclips.discovery.youtube_api.httpx.Client")
    def test_errors_yield_minimal_record(self, MockClient, error):
        mock_client = MockClient.return_value
        mock_client.get.side_effect = error

        record = fetch_video_metadata("vid1", api_key="key", now=NOW)

        assert record == minimal_metadata("vid1", NOW)
        mock_client.close.assert_called_once()

    @patch("trendclips.discovery.youtube_api.httpx.Client")
    def test_unknown_id_yields_minimal_record(self, MockClient):
        resp = MagicMock()
        resp.json.return_value = {"items": []}
        resp.raise_for_status = MagicMock()
        MockClient.return_value.get.return_value = resp

        assert fetch_video_metadata("nope", api_key="key", now=NOW).is_fallback

    @patch("trendclips.discovery.youtube_api._resolve_api_key", return_value=None)
    def test_missing_key_yields_minimal_record(self, _):
        assert fetch_video_metadata("vid1", now=NOW).title == "Video"


# ── Transcripts ───────────────────────────────────────────────────────


class TestFetchTranscript:
    def test_fetch(self):
        api = MagicMock()
        api.fetch.return_value.to_raw_data.return_value = [
            {"text": " hello ", "start": 0.0, "duration": 2.5},
            {"text": "world", "start": 2.5, "duration": 3.0},
            {"text": "broken"},
        ]

        segments = fetch_transcript("vid1", api=api)

        assert [(s.start, s.text) for s in segments] == [(0.0, "hello"), (2.5, "world")]
        api.fetch.assert_called_once_with("vid1", languages=("en",))

    def test_failure_returns_empty(self):
        api = MagicMock()
        api.fetch.side_effect = RuntimeError("blocked")
        assert fetch_transcript("vid1", api=api) == []
