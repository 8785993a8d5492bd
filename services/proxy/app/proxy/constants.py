"""
Media proxy — static constants and enum types.
"""
import enum


class MediaCategory(str, enum.Enum):
    """What the thumbnail transformer does with a given content type."""
    ANIMATED_IMAGE = "ANIMATED_IMAGE"
    STILL_IMAGE = "STILL_IMAGE"
    VIDEO = "VIDEO"
    UNSUPPORTED = "UNSUPPORTED"


# Content types the proxy serves at all; anything else is redirected back to the origin
ALLOWED_CONTENT_TYPE_PREFIXES: tuple[str, ...] = ("image/", "video/", "audio/")

# Statuses the fetcher follows via the Location header
REDIRECT_STATUSES: frozenset[int] = frozenset({300, 301, 302, 303, 307, 308})

ANIMATED_CONTENT_TYPE = "image/gif"

# Thumbnail output codecs: (Pillow format, content type)
JPEG_OUTPUT = ("JPEG", "image/jpeg")
PNG_OUTPUT = ("PNG", "image/png")

# Suffixes of the two temp files staged for a video thumbnail
VIDEO_SOURCE_SUFFIX = "-org"
VIDEO_FRAME_SUFFIX = ".jpg"

THUMBNAIL_QUERY_ENABLED = "1"
