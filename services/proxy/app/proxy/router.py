"""
Media proxy — HTTP routes.

Public endpoint (no auth). Rate limited per client IP.
"""

import httpx
from fastapi import APIRouter, Depends, Query, Request, Response

from app.config import Settings
from app.proxy import controller
from app.proxy.dependencies import get_http_client, get_settings
from app.rate_limit import PROXY_RATE_LIMIT, limiter

router = APIRouter(tags=["proxy"])


@router.get(
    "/",
    summary="Fetch remote media or a thumbnail of it",
    description=(
        "Fetches the media at `url` (following up to 5 redirects) and streams "
        "it back with a fixed set of origin headers. With `thumbnail=1`, "
        "returns a preview bounded to 280x280 instead: JPEG or PNG for images "
        "and video frames, GIF for animated GIFs. Content types outside "
        "image/, video/ and audio/, and media that cannot be thumbnailed, "
        "get a 301 back to `url`."
    ),
    responses={
        301: {"description": "Redirect to the original URL"},
        400: {"description": "Missing url parameter"},
        429: {"description": "Per-client rate limit exceeded"},
        500: {"description": "Redirect limit reached or thumbnail could not be produced"},
        502: {"description": "Origin failed or returned a non-200 status"},
    },
)
@limiter.limit(PROXY_RATE_LIMIT)
async def proxy_media(
    request: Request,
    url: str | None = Query(default=None, description="Absolute URL of the media to fetch"),
    thumbnail: str | None = Query(default=None, description='"1" to return a thumbnail'),
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> Response:
    return await controller.proxy_media(url, thumbnail, client, settings)
