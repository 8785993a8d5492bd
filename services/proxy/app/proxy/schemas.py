"""
Media proxy — per-request data carriers.

Plain dataclasses rather than Pydantic models: none of these cross the
HTTP boundary as JSON.
"""
from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass

import httpx

from app.proxy.constants import THUMBNAIL_QUERY_ENABLED
from app.proxy.exceptions import ClientInputError, UpstreamError


@dataclass(frozen=True, slots=True)
class FetchRequest:
    target_url: str
    want_thumbnail: bool = False

    @classmethod
    def from_query(cls, url: str | None, thumbnail: str | None) -> FetchRequest:
        """Build from the raw query parameters. Raises ClientInputError without a url."""
        if not url:
            raise ClientInputError("url is required")
        return cls(target_url=url, want_thumbnail=thumbnail == THUMBNAIL_QUERY_ENABLED)


@dataclass(frozen=True, slots=True)
class OriginResponse:
    """Final (non-redirect) origin response with its body still unread."""

    status_code: int
    headers: Mapping[str, str]
    url: str
    stream: httpx.Response

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    async def read(self) -> bytes:
        """Buffer the whole body. Raises UpstreamError if the transfer breaks."""
        try:
            return await self.stream.aread()
        except httpx.HTTPError as exc:
            raise UpstreamError(self.url, str(exc) or type(exc).__name__) from exc

    async def iter_raw(self) -> AsyncIterator[bytes]:
        """Yield the body as received, without content decoding."""
        try:
            async for chunk in self.stream.aiter_raw():
                yield chunk
        except httpx.HTTPError as exc:
            raise UpstreamError(self.url, str(exc) or type(exc).__name__) from exc

    async def aclose(self) -> None:
        await self.stream.aclose()


@dataclass(frozen=True, slots=True)
class ThumbnailResult:
    data: bytes
    content_type: str
