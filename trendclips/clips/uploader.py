"""
YouTube Shorts upload via the resumable upload endpoint.

Access tokens come from an injected provider; issuing and refreshing them
is handled outside this module.
"""
import logging
import os
from typing import Callable, Optional, Sequence

import httpx

from .models import UploadResult

logger = logging.getLogger(__name__)

UPLOAD_URL = "https://www.googleapis.com/upload/youtube/v3/videos"

TITLE_LIMIT = 100
DESCRIPTION_LIMIT = 5000
DEFAULT_TAGS = ["shorts", "viral", "trending", "highlights"]
CATEGORY_PEOPLE_AND_BLOGS = "22"

TokenProvider = Callable[[], str]


class UploadError(RuntimeError):
    """Raised when an upload cannot be completed."""


def build_description(reason: str, hashtags: Sequence[str]) -> str:
    tags = " ".join(hashtags)
    return f"{reason}\n\n{tags}".strip()


class YouTubeUploader:
    """Uploads a rendered clip to YouTube."""

    def __init__(
        self,
        token_provider: TokenProvider,
        privacy_status: str = "public",
        timeout: float = 300.0,
    ):
        self.token_provider = token_provider
        self.privacy_status = privacy_status
        self.timeout = timeout

    def _metadata(self, title: str, description: str, tags: Optional[Sequence[str]]) -> dict:
        return {
            "snippet": {
                "title": title[:TITLE_LIMIT],
                "description": description[:DESCRIPTION_LIMIT],
                "tags": list(tags) if tags else list(DEFAULT_TAGS),
                "categoryId": CATEGORY_PEOPLE_AND_BLOGS,
            },
            "status": {
                "privacyStatus": self.privacy_status,
                "selfDeclaredMadeForKids": False,
            },
        }

    def upload_clip(
        self,
        output_ref: str,
        title: str,
        description: str,
        tags: Optional[Sequence[str]] = None,
    ) -> UploadResult:
        """Upload a video file.

        Returns:
            UploadResult with the new video id and watch URL.

        Raises:
            UploadError: If the file is missing or any request fails.
        """
        if not os.path.exists(output_ref):
            raise UploadError(f"Video file not found: {output_ref}")

        token = self.token_provider()
        headers = {"Authorization": f"Bearer {token}"}
        size = os.path.getsize(output_ref)

        client = httpx.Client()
        try:
            init = client.post(
                UPLOAD_URL,
                params={"uploadType": "resumable", "part": "snippet,status"},
                headers={
                    **headers,
                    "X-Upload-Content-Type": "video/mp4",
                    "X-Upload-Content-Length": str(size),
                },
                json=self._metadata(title, description, tags),
                timeout=30,
            )
            init.raise_for_status()
            session_url = init.headers.get("Location")
            if not session_url:
                raise UploadError("Upload session URL missing from response")

            logger.info("Uploading %s (%.1f MB)", output_ref, size / 1024 / 1024)
            with open(output_ref, "rb") as f:
                resp = client.put(
                    session_url,
                    headers={**headers, "Content-Type": "video/mp4", "Content-Length": str(size)},
                    content=f,
                    timeout=self.timeout,
                )
            resp.raise_for_status()
            video_id = resp.json().get("id")
            if not video_id:
                raise UploadError("Upload response did not include a video id")

        except httpx.HTTPStatusError as e:
            raise UploadError(f"YouTube upload failed with {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise UploadError(f"YouTube upload failed: {e}") from e
        finally:
            client.close()

        url = f"https://www.youtube.com/shorts/{video_id}"
        logger.info("Uploaded short: %s", url)
        return UploadResult(platform_video_id=video_id, url=url)
