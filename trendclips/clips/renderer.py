"""
Short renderer: download, cut, and lay out a 9:16 short with ffmpeg.

Output frame is 1080x1920 with a white title box at the top, an optional
subtitle line beneath it and an optional watermark in the bottom-right
corner.
"""
import logging
import os
import shutil
import subprocess
from typing import Optional

from .models import OverlayOptions

logger = logging.getLogger(__name__)

TARGET_WIDTH = 1080
TARGET_HEIGHT = 1920

TITLE_BOX_Y = 48
TITLE_BOX_HEIGHT = 160
TITLE_BOX_PADDING = 24

YTDLP_FORMAT = "bestvideo[ext=mp4]+bestaudio[ext=m4a]/best[ext=mp4]/best"


class RenderError(RuntimeError):
    """Raised when a download or ffmpeg step fails."""


def escape_drawtext(text: str) -> str:
    """Escape text for an ffmpeg drawtext filter value."""
    return (
        text.replace("\\", "\\\\")
        .replace(":", "\\:")
        .replace("'", "\\'")
        .replace('"', '\\"')
        .replace("[", "\\[")
        .replace("]", "\\]")
        .replace(",", "\\,")
    )


def build_filter_graph(overlay: OverlayOptions, has_watermark: bool) -> tuple[str, str]:
    """Build the filter_complex chain.

    Returns:
        (filter graph, label of the final video stream)
    """
    filters = [
        f"[0:v]scale='if(gt(a,9/16),{TARGET_WIDTH},-2)':'if(gt(a,9/16),-2,{TARGET_HEIGHT})'[scaled]",
        f"[scaled]pad={TARGET_WIDTH}:{TARGET_HEIGHT}:(ow-iw)/2:(oh-ih)/2:color=black[padded]",
        f"[padded]drawbox=x={TITLE_BOX_PADDING}:y={TITLE_BOX_Y}"
        f":w={TARGET_WIDTH - TITLE_BOX_PADDING * 2}:h={TITLE_BOX_HEIGHT}:color=white@1:t=fill[boxed]",
    ]
    label = "boxed"

    if overlay.title:
        filters.append(
            f"[{label}]drawtext=text='{escape_drawtext(overlay.title)}':fontcolor=black"
            f":fontsize={overlay.title_font_size}:x=(w-text_w)/2:y={TITLE_BOX_Y + 40}[titled]"
        )
        label = "titled"

    if overlay.subtitle:
        subtitle_y = TITLE_BOX_Y + TITLE_BOX_HEIGHT + 20
        filters.append(
            f"[{label}]drawtext=text='{escape_drawtext(overlay.subtitle)}':fontcolor=white"
            f":fontsize={overlay.subtitle_font_size}:x=(w-text_w)/2:y={subtitle_y}"
            f":box=1:boxcolor=black@0.5:boxborderw=8[subtitled]"
        )
        label = "subtitled"

    if has_watermark:
        filters.append(f"[{label}][1:v]overlay=W-w-24:H-h-24[watermarked]")
        label = "watermarked"

    return ";".join(filters), label


class ShortRenderer:
    """Runs yt-dlp and ffmpeg as subprocesses."""

    def __init__(
        self,
        output_dir: str = "clips",
        ffmpeg: str = "ffmpeg",
        ytdlp: str = "yt-dlp",
        keep_source: bool = False,
    ):
        self.output_dir = output_dir
        self.ffmpeg = ffmpeg
        self.ytdlp = ytdlp
        self.keep_source = keep_source

    def _run(self, cmd: list[str], step: str) -> None:
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise RenderError(f"{step} failed: {cmd[0]} not found") from e
        if result.returncode != 0:
            raise RenderError(f"{step} failed: {(result.stderr or '')[-300:]}")

    def download(self, video_url: str, output_path: str) -> str:
        logger.info("Downloading video: %s", video_url)
        self._run(
            [self.ytdlp, "-f", YTDLP_FORMAT, "--merge-output-format", "mp4",
             "--no-playlist", "-o", output_path, video_url],
            "Download",
        )
        return output_path

    def build_command(
        self,
        input_path: str,
        start_time: float,
        duration: float,
        overlay: OverlayOptions,
        output_path: str,
    ) -> list[str]:
        has_watermark = bool(overlay.watermark_path and os.path.exists(overlay.watermark_path))
        graph, label = build_filter_graph(overlay, has_watermark)

        cmd = [self.ffmpeg, "-y", "-ss", f"{start_time:.3f}", "-t", f"{duration:.3f}", "-i", input_path]
        if has_watermark:
            cmd += ["-i", overlay.watermark_path]
        cmd += [
            "-filter_complex", graph,
            "-map", f"[{label}]", "-map", "0:a?",
            "-c:v", "libx264", "-crf", "18", "-preset", "veryfast",
            "-c:a", "aac", "-b:a", "128k",
            output_path,
        ]
        return cmd

    def transcode(
        self,
        input_ref: str,
        start_time: float,
        duration: float,
        overlay: OverlayOptions,
        output_path: Optional[str] = None,
    ) -> str:
        """Cut ``duration`` seconds from ``start_time`` and render the short.

        Args:
            input_ref: Local file path or a video URL (downloaded first).
            start_time: Clip start in seconds.
            duration: Clip length in seconds.
            overlay: Title, subtitle and watermark options.
            output_path: Destination file; derived from the input if omitted.

        Returns:
            Path to the rendered short.

        Raises:
            RenderError: If any download or ffmpeg step fails.
        """
        os.makedirs(self.output_dir, exist_ok=True)
        stem = _stem_for(input_ref)
        window = f"{int(start_time)}-{int(start_time + duration)}"
        output_path = output_path or os.path.join(self.output_dir, f"{stem}_{window}_short.mp4")

        downloaded = None
        input_path = input_ref
        if input_ref.startswith(("http://", "https://")):
            downloaded = os.path.join(self.output_dir, f"{stem}_full.mp4")
            input_path = self.download(input_ref, downloaded)

        try:
            logger.info("Rendering %.1fs-%.1fs to %s", start_time, start_time + duration, output_path)
            self._run(
                self.build_command(input_path, start_time, duration, overlay, output_path),
                "Render",
            )
        finally:
            if downloaded and not self.keep_source and os.path.exists(downloaded):
                os.remove(downloaded)

        return output_path


def _stem_for(input_ref: str) -> str:
    if "v=" in input_ref:
        return input_ref.split("v=")[1].split("&")[0] or "video"
    base = os.path.splitext(os.path.basename(input_ref))[0]
    return base or "video"


def ffmpeg_available(binary: str = "ffmpeg") -> bool:
    return shutil.which(binary) is not None
