"""Locally materialized image handles.

Rendered images are spooled to disk with aiofiles and handed out as
RenderedImage handles. A handle is released exactly once by whoever owns it
(the studio state for displayed results, the orchestrator for nothing it
keeps). Releasing deletes the spooled file.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import shutil
import tempfile
import uuid
from io import BytesIO
from pathlib import Path

import aiofiles  # type: ignore[import-untyped]
from PIL import Image

logger = logging.getLogger(__name__)

_FORMAT_SUFFIXES = {"JPEG": ".jpg", "PNG": ".png", "WEBP": ".webp", "GIF": ".gif"}


class ImageDecodeError(ValueError):
    """Bytes could not be decoded as an image."""

    pass


class ImageReleasedError(RuntimeError):
    """Access to a handle after release."""

    pass


def probe_image(content: bytes) -> tuple[str, int, int]:
    """Identify image bytes.

    Args:
        content: Raw response body

    Returns:
        (format, width, height), e.g. ("PNG", 1024, 1024)

    Raises:
        ImageDecodeError: Pillow cannot identify or verify the bytes
    """
    try:
        img = Image.open(BytesIO(content))
        image_format, (width, height) = img.format or "PNG", img.size
        img.verify()
    except (OSError, SyntaxError, ValueError) as e:
        raise ImageDecodeError(f"Response is not a decodable image: {e}") from e
    return image_format, width, height


class RenderedImage:
    """Handle to one spooled image file.

    Attributes:
        path: Spool file location
        image_format: Pillow format name ("PNG", "JPEG", ...)
        width: Pixel width
        height: Pixel height
        content_type: Content-Type reported by the server
        source_url: URL the image was fetched from
        content_hash: SHA-256 of the bytes
    """

    def __init__(
        self,
        path: Path,
        *,
        image_format: str,
        width: int,
        height: int,
        content_type: str = "",
        source_url: str = "",
        content_hash: str = "",
    ) -> None:
        self.path = path
        self.image_format = image_format
        self.width = width
        self.height = height
        self.content_type = content_type
        self.source_url = source_url
        self.content_hash = content_hash
        self._released = False

    def __repr__(self) -> str:
        state = "released" if self._released else "live"
        return (
            f"RenderedImage({self.path.name}, {self.image_format} "
            f"{self.width}x{self.height}, {state})"
        )

    @property
    def released(self) -> bool:
        return self._released

    @property
    def suffix(self) -> str:
        return _FORMAT_SUFFIXES.get(self.image_format.upper(), ".img")

    def _check_live(self) -> None:
        if self._released:
            raise ImageReleasedError(f"Image handle already released: {self.path.name}")

    def read_bytes(self) -> bytes:
        self._check_live()
        return self.path.read_bytes()

    def save_to(self, destination: Path) -> Path:
        """Copy the image to ``destination``, adding the format suffix when missing.

        Returns:
            Path written
        """
        self._check_live()
        if not destination.suffix:
            destination = destination.with_suffix(self.suffix)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(self.path, destination)
        return destination

    def release(self) -> None:
        """Delete the spool file. Safe to call more than once."""
        if self._released:
            return
        self._released = True
        self.path.unlink(missing_ok=True)
        logger.debug("Released image handle %s", self.path.name)


class ImageSpool:
    """Writes fetched image bytes to a spool directory.

    Args:
        directory: Spool directory. A private temp directory is created
            (and removed by cleanup()) when omitted.
    """

    def __init__(self, directory: Path | None = None) -> None:
        self._owns_directory = directory is None
        self.directory = directory or Path(tempfile.mkdtemp(prefix="snapsell-"))
        self.directory.mkdir(parents=True, exist_ok=True)

    async def materialize(
        self, content: bytes, *, content_type: str = "", source_url: str = ""
    ) -> RenderedImage:
        """Validate ``content`` as an image and spool it.

        Raises:
            ImageDecodeError: Bytes are not an image (nothing is written)
            OSError: Write failed (the partial file is removed)
        """
        image_format, width, height = await asyncio.to_thread(probe_image, content)
        image = RenderedImage(
            self.directory / f"{uuid.uuid4().hex}{_FORMAT_SUFFIXES.get(image_format, '.img')}",
            image_format=image_format,
            width=width,
            height=height,
            content_type=content_type,
            source_url=source_url,
            content_hash=hashlib.sha256(content).hexdigest(),
        )
        try:
            async with aiofiles.open(image.path, "wb") as f:
                await f.write(content)
        except OSError:
            image.path.unlink(missing_ok=True)
            raise
        return image

    def cleanup(self) -> None:
        """Remove the spool directory if this spool created it."""
        if self._owns_directory:
            shutil.rmtree(self.directory, ignore_errors=True)


class ImageHandleRegistry:
    """Tracks live handles so they can all be released at once."""

    def __init__(self) -> None:
        self._handles: set[RenderedImage] = set()

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, image: object) -> bool:
        return image in self._handles

    def track(self, image: RenderedImage) -> None:
        self._handles.add(image)

    def release(self, image: RenderedImage) -> None:
        self._handles.discard(image)
        image.release()

    def release_all(self) -> int:
        """Release every tracked handle.

        Returns:
            Number of handles released
        """
        count = len(self._handles)
        for image in list(self._handles):
            image.release()
        self._handles.clear()
        return count
