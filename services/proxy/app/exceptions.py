"""
Media proxy — HTTP exceptions.

All exceptions use preset status codes and detail messages so that callers
never need to specify these at the call site. The shared error envelope
handler wraps them in the standard JSON error shape.
"""
from fastapi import HTTPException, status


# ── Request ──────────────────────────────────────────────────────────────────

class MissingTargetUrl(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Query parameter 'url' is required.",
        )


# ── Upstream ─────────────────────────────────────────────────────────────────

class UpstreamFetchFailed(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Could not fetch the requested media from its origin.",
        )


class RedirectLimitExceeded(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="The origin redirected too many times.",
        )


# ── Thumbnails ───────────────────────────────────────────────────────────────

class ThumbnailFailed(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Thumbnail generation failed.",
        )
