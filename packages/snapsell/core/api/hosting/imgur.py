"""Anonymous image host client.

Uploads a local photo to a public image host so it can be used as a
reference-image URL by the generation service.
"""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import Any

import aiofiles

from snapsell.core.api.http.client import AsyncApiClient
from snapsell.core.api.http.errors import ApiError
from snapsell.core.api.http.utils import parse_error_details

logger = logging.getLogger(__name__)


class ImageHostError(RuntimeError):
    """Image host rejected the upload or could not be reached."""

    pass


class ImgurClient:
    """Imgur anonymous upload client (async).

    Args:
        http_client: AsyncApiClient configured with the host's Client-ID auth

    Example:
        >>> client = ImgurClient(http_client=http)
        >>> url = await client.upload(Path("mug.jpg"))
    """

    UPLOAD_PATH = "/3/image"

    def __init__(self, http_client: AsyncApiClient):
        self.http_client = http_client

    async def upload(self, path: Path) -> str:
        """Upload an image file and return its direct HTTPS link.

        Args:
            path: Local image file

        Returns:
            Direct https:// link to the hosted image

        Raises:
            FileNotFoundError: If path does not exist
            ImageHostError: If the host rejects the upload or is unreachable
        """
        if not path.is_file():
            raise FileNotFoundError(f"Image file does not exist: {path}")

        content_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
        async with aiofiles.open(path, "rb") as fh:
            content = await fh.read()
        files = {"image": (path.name or "image.jpg", content, content_type)}

        try:
            logger.debug("Uploading %s (%s) to image host", path.name, content_type)
            response = await self.http_client.post(
                self.UPLOAD_PATH, files=files, raise_for_status=False
            )
        except ApiError as e:
            raise ImageHostError(f"Image host unreachable: {e}") from e

        payload = parse_error_details(response.text)
        if response.status_code >= 400 or not _is_success(payload):
            raise ImageHostError(_error_message(payload, response.status_code))

        link = payload["data"]["link"]
        secure = to_https(link)
        logger.info("Uploaded %s -> %s", path.name, secure)
        return secure


def to_https(url: str) -> str:
    """Rewrite an http:// link to https://."""
    if url.startswith("http://"):
        return "https://" + url[len("http://") :]
    return url


def _is_success(payload: Any) -> bool:
    if not isinstance(payload, dict) or not payload.get("success"):
        return False
    data = payload.get("data")
    return isinstance(data, dict) and bool(data.get("link"))


def _error_message(payload: Any, status_code: int) -> str:
    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
            if isinstance(error, dict):
                error = error.get("message", error)
            return f"Upload failed: {error}"
    return f"Upload failed: {status_code}"
