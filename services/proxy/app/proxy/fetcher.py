"""
Outbound fetch with bounded redirect resolution — async httpx.

Redirects are followed here rather than by httpx so the hop limit and the
identifying User-Agent apply to every hop. The final response is returned
unread (streamed); the caller owns closing it.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from app.proxy.constants import REDIRECT_STATUSES
from app.proxy.exceptions import TooManyRedirectsError, UpstreamError
from app.proxy.schemas import OriginResponse

if TYPE_CHECKING:
    from app.config import Settings

logger = logging.getLogger(__name__)

_FETCHABLE_SCHEMES = ("http", "https")


def _request_headers(settings: Settings) -> dict[str, str]:
    # identity encoding keeps the forwarded content-length equal to the streamed bytes
    return {"User-Agent": settings.user_agent, "Accept-Encoding": "identity"}


async def fetch(
    client: httpx.AsyncClient,
    url: str,
    settings: Settings,
) -> OriginResponse:
    """GET url, following up to settings.max_redirects redirects.

    Any non-redirect status (including 4xx/5xx) is returned to the caller.
    Raises UpstreamError on network failure or a redirect without Location,
    TooManyRedirectsError once the hop limit is reached.
    """
    current = url
    hops = 0
    while True:
        try:
            request = client.build_request("GET", current, headers=_request_headers(settings))
        except httpx.InvalidURL as exc:
            raise UpstreamError(current, str(exc)) from exc
        if request.url.scheme not in _FETCHABLE_SCHEMES:
            raise UpstreamError(current, "not an absolute http(s) URL")

        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise UpstreamError(current, str(exc) or type(exc).__name__) from exc

        if response.status_code not in REDIRECT_STATUSES:
            return OriginResponse(
                status_code=response.status_code,
                headers=response.headers,
                url=str(response.url),
                stream=response,
            )

        location = response.headers.get("location")
        await response.aclose()

        hops += 1
        if hops >= settings.max_redirects:
            raise TooManyRedirectsError(url, hops)
        if not location:
            raise UpstreamError(current, f"redirect {response.status_code} without Location")

        next_url = str(response.url.join(location))
        logger.debug("Redirect %d: %s -> %s", hops, current, next_url)
        current = next_url
