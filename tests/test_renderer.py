"""
Tests for the short renderer and the YouTube uploader.
"""
import os
import sys
import tempfile
from unittest.mock import MagicMock, patch

import httpx
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from trendclips.clips.models import OverlayOptions
from trendclips.clips.renderer import (
    RenderError,
    ShortRenderer,
    build_filter_graph,
    escape_drawtext,
)
from trendclips.clips.uploader import UploadError, YouTubeUploader, build_description


def _completed(returncode=0, stderr=""):
    result = MagicMock()
    result.returncode = returncode
    result.stderr = stderr
    return result


# ── Filter Graph ──────────────────────────────────────────────────────


class TestFilterGraph:
    def test_escape_drawtext(self):
        assert escape_drawtext("It's 10:30, [live]") == "It\\'s 10\\:30\\, \\[live\\]"

    def test_minimal_graph(self):
        graph, label = build_filter_graph(OverlayOptions(), has_watermark=False)
        assert label == "boxed"
        assert "pad=1080:1920" in graph
        assert "drawtext" not in graph

    def test_full_graph(self):
        overlay = OverlayOptions(title="Big Play", subtitle="wait for it")
        graph, label = build_filter_graph(overlay, has_watermark=True)
        assert label == "watermarked"
        assert "text='Big Play'" in graph
        assert "text='wait for it'" in graph
        assert "[1:v]overlay" in graph


# ── Renderer ──────────────────────────────────────────────────────────


class TestShortRenderer:
    def test_build_command(self):
        renderer = ShortRenderer(output_dir="out")
        cmd = renderer.build_command("in.mp4", 45.0, 30.0, OverlayOptions(title="T"), "out/x.mp4")
        assert cmd[0] == "ffmpeg"
        assert cmd[cmd.index("-ss") + 1] == "45.000"
        assert cmd[cmd.index("-t") + 1] == "30.000"
        assert cmd[cmd.index("-i") + 1] == "in.mp4"
        assert cmd[-1] == "out/x.mp4"

    def test_missing_watermark_is_ignored(self):
        renderer = ShortRenderer()
        overlay = OverlayOptions(watermark_path="/does/not/exist.png")
        cmd = renderer.build_command("in.mp4", 0, 15, overlay, "o.mp4")
        assert cmd.count("-i") == 1

    @patch("trendclips.clips.renderer.subprocess.run")
    def test_transcode_local_file(self, mock_run):
        mock_run.return_value = _completed()
        with tempfile.TemporaryDirectory() as tmp:
            renderer = ShortRenderer(output_dir=tmp)
            output = renderer.transcode("/videos/match.mp4", 10, 30, OverlayOptions())
            assert output == os.path.join(tmp, "match_10-40_short.mp4")
        mock_run.assert_called_once()

    @patch("trendclips.clips.renderer.subprocess.run")
    def test_transcode_url_downloads_first(self, mock_run):
        mock_run.return_value = _completed()
        with tempfile.TemporaryDirectory() as tmp:
            renderer = ShortRenderer(output_dir=tmp)
            renderer.transcode("https://www.youtube.com/watch?v=abc", 0, 20, OverlayOptions())
        assert mock_run.call_count == 2
        assert mock_run.call_args_list[0].args[0][0] == "yt-dlp"
        assert mock_run.call_args_list[1].args[0][0] == "ffmpeg"

    @patch("trendclips.clips.renderer.subprocess.run")
    def test_ffmpeg_failure_raises(self, mock_run):
        mock_run.return_value = _completed(returncode=1, stderr="Invalid data found")
        with tempfile.TemporaryDirectory() as tmp:
            with pytest.raises(RenderError, match="Invalid data"):
                ShortRenderer(output_dir=tmp).transcode("in.mp4", 0, 20, OverlayOptions())

    @patch("trendclips.clips.renderer.subprocess.run", side_effect=FileNotFoundError())
    def test_missing_binary_raises(self, _):
        with tempfile.TemporaryDirectory() as tmp:
            with pytest.raises(RenderError, match="not found"):
                ShortRenderer(output_dir=tmp).transcode("in.mp4", 0, 20, OverlayOptions())


# ── Uploader ──────────────────────────────────────────────────────────


@pytest.fixture
def video_file():
    with tempfile.NamedTemporaryFile(suffix=".mp4", delete=False) as f:
        f.write(b"\x00" * 1024)
        path = f.name
    yield path
    os.unlink(path)


class TestYouTubeUploader:
    def test_build_description(self):
        assert build_description("Epic", ["#a", "#b"]) == "Epic\n\n#a #b"

    @patch("trendclips.clips.uploader.httpx.Client")
    def test_resumable_upload(self, MockClient, video_file):
        mock_client = MockClient.return_value
        init = MagicMock()
        init.headers = {"Location": "https://upload.example/session"}
        done = MagicMock()
        done.json.return_value = {"id": "yt123"}
        mock_client.post.return_value = init
        mock_client.put.return_value = done

        uploader = YouTubeUploader(lambda: "token")
        result = uploader.upload_clip(video_file, "T" * 150, "desc", ["viral"])

        assert result.platform_video_id == "yt123"
        assert result.url == "https://www.youtube.com/shorts/yt123"
        metadata = mock_client.post.call_args.kwargs["json"]
        assert len(metadata["snippet"]["title"]) == 100
        assert metadata["snippet"]["tags"] == ["viral"]
        assert mock_client.post.call_args.kwargs["headers"]["Authorization"] == "Bearer token"
        assert mock_client.put.call_args.args[0] == "https://upload.example/session"
        put_kwargs = mock_client.put.call_args.kwargs
        assert hasattr(put_kwargs["content"], "read")
        assert put_kwargs["headers"]["Content-Length"] == "1024"

    def test_missing_file(self):
        with pytest.raises(UploadError):
            YouTubeUploader(lambda: "token").upload_clip("/nope.mp4", "t", "d")

    @patch("trendclips.clips.uploader.httpx.Client")
    def test_http_error_wrapped(self, MockClient, video_file):
        request = httpx.Request("POST", "https://www.googleapis.com/upload/youtube/v3/videos")
        response = httpx.Response(401, request=request)
        MockClient.return_value.post.return_value.raise_for_status.side_effect = (
            httpx.HTTPStatusError("401", request=request, response=response)
        )

        with pytest.raises(UploadError, match="401"):
            YouTubeUploader(lambda: "token").upload_clip(video_file, "t", "d")
        MockClient.return_value.close.assert_called_once()
