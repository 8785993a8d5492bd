"""
Media proxy — controller layer.

Runs one request through fetch → gatekeeping → pass-through or thumbnail,
and converts domain exceptions into HTTP responses:

  missing url                   → 400
  network failure / non-200     → 502
  body transfer broken while thumbnailing → 502
  redirect limit reached        → 500
  disallowed type / no thumbnail strategy → 301 back to the target URL
  transform failure             → 500
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import Response, status
from fastapi.responses import RedirectResponse, StreamingResponse
from starlette.background import BackgroundTask

from app.exceptions import (
    MissingTargetUrl,
    RedirectLimitExceeded,
    ThumbnailFailed,
    UpstreamFetchFailed,
)
from app.proxy import fetcher, service
from app.proxy.constants import MediaCategory
from app.proxy.exceptions import (
    ClientInputError,
    TooManyRedirectsError,
    TransformError,
    UpstreamError,
)
from app.proxy.schemas import FetchRequest, OriginResponse
from app.proxy.thumbnail import make_thumbnail, video_thumbnail

if TYPE_CHECKING:
    import httpx

    from app.config import Settings

logger = logging.getLogger(__name__)


def _redirect_to_origin(target_url: str) -> RedirectResponse:
    return RedirectResponse(url=target_url, status_code=status.HTTP_301_MOVED_PERMANENTLY)


async def proxy_media(
    url: str | None,
    thumbnail: str | None,
    client: httpx.AsyncClient,
    settings: Settings,
) -> Response:
    """Serve the media at `url`, or a thumbnail of it when thumbnail == "1"."""
    try:
        fetch_request = FetchRequest.from_query(url, thumbnail)
    except ClientInputError:
        raise MissingTargetUrl()

    try:
        origin = await fetcher.fetch(client, fetch_request.target_url, settings)
    except TooManyRedirectsError as exc:
        logger.warning("%s", exc)
        raise RedirectLimitExceeded()
    except UpstreamError as exc:
        logger.warning("%s", exc)
        raise UpstreamFetchFailed()

    streaming = False
    try:
        if origin.status_code != status.HTTP_200_OK:
            logger.warning(
                "Origin %s answered %d for %s",
                origin.url, origin.status_code, fetch_request.target_url,
            )
            raise UpstreamFetchFailed()

        content_type = origin.content_type
        if not service.is_allowed(content_type):
            logger.info(
                "Redirecting %s: content type %r not allowed",
                fetch_request.target_url, content_type,
            )
            return _redirect_to_origin(fetch_request.target_url)

        if not fetch_request.want_thumbnail:
            streaming = True
            return _pass_through(origin, settings)

        return await _thumbnail(origin, fetch_request.target_url, settings)
    finally:
        if not streaming:
            await origin.aclose()


async def _thumbnail(origin: OriginResponse, target_url: str, settings: Settings) -> Response:
    """Classify before reading: unsupported media is redirected with its body untouched."""
    content_type = origin.content_type
    category = service.classify_media(content_type)
    if category is MediaCategory.UNSUPPORTED:
        logger.info("Redirecting %s: no thumbnail for content type %r", target_url, content_type)
        return _redirect_to_origin(target_url)

    try:
        if category is MediaCategory.VIDEO:
            result = await video_thumbnail(origin.iter_raw(), settings)
        else:
            result = await make_thumbnail(await origin.read(), content_type, settings)
    except UpstreamError as exc:
        logger.warning("%s", exc)
        raise UpstreamFetchFailed()
    except TransformError:
        logger.warning("Thumbnail failed for %s", target_url, exc_info=True)
        raise ThumbnailFailed()

    return Response(content=result.data, media_type=result.content_type)


def _pass_through(origin: OriginResponse, settings: Settings) -> StreamingResponse:
    """Stream the origin body verbatim; the origin response closes once sent."""
    headers = service.project_headers(origin.headers, settings.forwarded_headers)
    return StreamingResponse(
        origin.iter_raw(),
        status_code=status.HTTP_200_OK,
        headers=headers,
        background=BackgroundTask(origin.aclose),
    )
