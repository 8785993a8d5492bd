"""
Image engine — Pillow decode, opacity detection, resize and encode.

Everything here is synchronous and CPU-bound; async callers run it in the
default executor. Pillow errors propagate unchanged.

Geometry is always "fit inside, never enlarge": aspect ratio is kept and an
image already within the box keeps its dimensions.
"""
from __future__ import annotations

import io
import logging

from PIL import Image, ImageSequence

logger = logging.getLogger(__name__)

_ALPHA_MODES = {"RGBA", "LA", "PA", "RGBa", "La"}

# Frame delay used when a GIF frame carries none (ms)
_DEFAULT_FRAME_DURATION = 100


def open_image(data: bytes) -> Image.Image:
    """Decode image bytes eagerly so corrupt input fails here, not at save time."""
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


def is_opaque(image: Image.Image) -> bool:
    """True when every pixel is fully opaque (no alpha, or alpha all 255)."""
    if image.mode not in _ALPHA_MODES and "transparency" not in image.info:
        return True
    alpha = image.convert("RGBA").getchannel("A")
    return alpha.getextrema()[0] == 255


def fit_size(size: tuple[int, int], max_width: int, max_height: int) -> tuple[int, int]:
    width, height = size
    if width <= max_width and height <= max_height:
        return width, height
    scale = min(max_width / width, max_height / height)
    return max(1, round(width * scale)), max(1, round(height * scale))


def fit_within(image: Image.Image, max_width: int, max_height: int) -> Image.Image:
    """Resize to fit within max dimensions, maintaining aspect ratio."""
    img = image.copy()
    img.thumbnail((max_width, max_height), Image.Resampling.LANCZOS)
    return img


def encode(image: Image.Image, codec: str, quality: int | None = None) -> bytes:
    buf = io.BytesIO()
    if quality is None:
        image.save(buf, format=codec)
    else:
        image.save(buf, format=codec, quality=quality)
    return buf.getvalue()


def resize_animated(data: bytes, max_width: int, max_height: int) -> bytes:
    """Resize every frame of a GIF to fit the box and re-encode as GIF.

    Per-frame durations and the loop count of the source are carried over.
    """
    with Image.open(io.BytesIO(data)) as source:
        target = fit_size(source.size, max_width, max_height)
        frames: list[Image.Image] = []
        durations: list[int] = []
        for frame in ImageSequence.Iterator(source):
            durations.append(frame.info.get("duration", _DEFAULT_FRAME_DURATION))
            mode = "RGBA" if frame.mode in _ALPHA_MODES or "transparency" in frame.info else "RGB"
            frames.append(frame.convert(mode).resize(target, Image.Resampling.LANCZOS))
        loop = source.info.get("loop")

    logger.debug("Resizing %d GIF frame(s) to %dx%d", len(frames), *target)

    save_kwargs = {
        "format": "GIF",
        "save_all": True,
        "append_images": frames[1:],
        "duration": durations,
        "disposal": 2,
    }
    if loop is not None:
        save_kwargs["loop"] = loop

    buf = io.BytesIO()
    frames[0].save(buf, **save_kwargs)
    return buf.getvalue()
