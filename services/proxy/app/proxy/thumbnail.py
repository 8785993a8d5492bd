"""
Thumbnail transformer — turns fetched media bytes into a bounded preview.

  image/gif  → every frame fit into the box, stays image/gif
  image/*    → fit into the box; JPEG (q≈85) if opaque, PNG if it has alpha
  video/*    → ffmpeg extracts one frame, then the still-image path
  otherwise  → UnsupportedMediaError

Pillow work is offloaded to the default executor; video bodies are streamed
into scoped temp files that are always removed.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from PIL import Image

from app import imaging, video
from app.proxy.constants import (
    JPEG_OUTPUT,
    PNG_OUTPUT,
    VIDEO_FRAME_SUFFIX,
    VIDEO_SOURCE_SUFFIX,
    MediaCategory,
)
from app.proxy.exceptions import TransformError, UnsupportedMediaError
from app.proxy.schemas import ThumbnailResult
from app.proxy.service import classify_media
from app.tempfiles import temp_artifacts

if TYPE_CHECKING:
    from app.config import Settings

logger = logging.getLogger(__name__)

# Errors Pillow raises on undecodable or hostile input
_IMAGE_ERRORS = (OSError, ValueError, SyntaxError, Image.DecompressionBombError)


def still_thumbnail(data: bytes, max_width: int, max_height: int, quality: int) -> ThumbnailResult:
    """Resize a still image and encode it per its opacity. Synchronous."""
    try:
        image = imaging.open_image(data)
        if imaging.is_opaque(image):
            codec, content_type = JPEG_OUTPUT
            resized = imaging.fit_within(image.convert("RGB"), max_width, max_height)
            encoded = imaging.encode(resized, codec, quality)
        else:
            codec, content_type = PNG_OUTPUT
            resized = imaging.fit_within(image.convert("RGBA"), max_width, max_height)
            encoded = imaging.encode(resized, codec)
    except _IMAGE_ERRORS as exc:
        raise TransformError(f"Could not thumbnail image: {exc}") from exc
    return ThumbnailResult(data=encoded, content_type=content_type)


def animated_thumbnail(data: bytes, content_type: str, max_width: int, max_height: int) -> ThumbnailResult:
    try:
        encoded = imaging.resize_animated(data, max_width, max_height)
    except _IMAGE_ERRORS as exc:
        raise TransformError(f"Could not thumbnail animated image: {exc}") from exc
    return ThumbnailResult(data=encoded, content_type=content_type)


async def _single_chunk(data: bytes) -> AsyncIterator[bytes]:
    yield data


async def video_thumbnail(chunks: AsyncIterator[bytes], settings: Settings) -> ThumbnailResult:
    """Stage the video body on disk as it arrives, extract one frame, thumbnail it.

    Errors raised by `chunks` itself propagate unchanged.
    """
    async with temp_artifacts(
        VIDEO_SOURCE_SUFFIX,
        VIDEO_FRAME_SUFFIX,
        directory=settings.temp_directory,
    ) as (source, frame):
        try:
            await source.write_stream(chunks)
            await video.extract_frame(
                source.path,
                frame.path,
                ffmpeg_path=settings.ffmpeg_path,
                timeout=settings.ffmpeg_timeout_seconds,
            )
            frame_data = await frame.read()
        except (OSError, video.FrameExtractionError) as exc:
            logger.warning("Video frame extraction failed: %s", exc)
            raise TransformError(f"Could not extract a video frame: {exc}") from exc

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            lambda: still_thumbnail(
                frame_data,
                settings.thumbnail_max_width,
                settings.thumbnail_max_height,
                settings.jpeg_quality,
            ),
        )


async def make_thumbnail(body: bytes, content_type: str | None, settings: Settings) -> ThumbnailResult:
    """Produce a thumbnail for the given media.

    Raises UnsupportedMediaError when the content type has no thumbnail
    strategy, TransformError when decoding/encoding/extraction fails.
    """
    category = classify_media(content_type)
    loop = asyncio.get_running_loop()

    if category is MediaCategory.ANIMATED_IMAGE:
        return await loop.run_in_executor(
            None,
            lambda: animated_thumbnail(
                body,
                content_type,
                settings.thumbnail_max_width,
                settings.thumbnail_max_height,
            ),
        )
    if category is MediaCategory.STILL_IMAGE:
        return await loop.run_in_executor(
            None,
            lambda: still_thumbnail(
                body,
                settings.thumbnail_max_width,
                settings.thumbnail_max_height,
                settings.jpeg_quality,
            ),
        )
    if category is MediaCategory.VIDEO:
        return await video_thumbnail(_single_chunk(body), settings)

    raise UnsupportedMediaError(content_type)
