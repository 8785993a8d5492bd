"""
Media proxy — pure business logic.

Zero FastAPI or httpx imports. Content-type gatekeeping, media
classification and header projection, all fully testable in isolation.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from app.proxy.constants import (
    ALLOWED_CONTENT_TYPE_PREFIXES,
    ANIMATED_CONTENT_TYPE,
    MediaCategory,
)


def is_allowed(content_type: str | None) -> bool:
    """True when the origin content type may be proxied.

    Case-sensitive prefix match on the value exactly as the origin sent it.
    A missing or empty content type is never allowed.
    """
    if not content_type:
        return False
    return content_type.startswith(ALLOWED_CONTENT_TYPE_PREFIXES)


def classify_media(content_type: str | None) -> MediaCategory:
    """Map a content type onto the thumbnail strategy that handles it."""
    if not content_type:
        return MediaCategory.UNSUPPORTED
    if content_type == ANIMATED_CONTENT_TYPE:
        return MediaCategory.ANIMATED_IMAGE
    if content_type.startswith("image/"):
        return MediaCategory.STILL_IMAGE
    if content_type.startswith("video/"):
        return MediaCategory.VIDEO
    return MediaCategory.UNSUPPORTED


def project_headers(
    origin: Mapping[str, str],
    allow_list: Iterable[str],
) -> Mapping[str, str]:
    """Copy the allow-listed headers that are present and non-empty on the origin."""
    return MappingProxyType(
        {name: origin[name] for name in allow_list if origin.get(name)}
    )
