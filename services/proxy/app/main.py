import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

# Configure application logging so request-scoped logs are visible
logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s: %(message)s")
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.proxy.dependencies import get_settings
from app.proxy.router import router as proxy_router
from app.rate_limit import limiter
from shared.middleware.request_id import request_id_middleware
from shared.middleware.error_handler import (
    error_envelope_middleware,
    http_exception_envelope_handler,
)


# ── OpenAPI metadata ──────────────────────────────────────────────────────────

_DESCRIPTION = """
## Media Proxy

Fetches third-party media on behalf of front-end clients.

* **Redirects**: followed server-side, at most 5 hops.
* **Gatekeeping**: only `image/*`, `video/*` and `audio/*` are proxied;
  anything else is answered with a 301 back to the original URL.
* **Thumbnails** (`thumbnail=1`): bounded to 280x280, never upscaled.
  Opaque images and video frames become JPEG, images with transparency PNG,
  animated GIFs stay GIF.

### Error shape
All errors return a consistent JSON envelope:
```json
{ "error": { "code": "bad_gateway", "message": "..." }, "request_id": "..." }
```
"""

_TAGS_METADATA = [
    {
        "name": "proxy",
        "description": "Fetch remote media or a thumbnail of it.",
    },
]


# ── Health schema ─────────────────────────────────────────────────────────────

class HealthResponse(BaseModel):
    status: str
    service: str


# ── App factory ───────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    # Redirects are followed by app.proxy.fetcher, never by httpx itself
    app.state.http_client = httpx.AsyncClient(
        follow_redirects=False,
        timeout=settings.fetch_timeout_seconds,
    )
    yield
    await app.state.http_client.aclose()


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Media Proxy",
        version="1.0.0",
        description=_DESCRIPTION,
        openapi_tags=_TAGS_METADATA,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Attach rate limiter state before middleware
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_envelope_handler)

    # Middleware (applied in reverse-registration order: last added = outermost)
    app.add_middleware(SlowAPIMiddleware)
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(error_envelope_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=["GET"],
        allow_headers=["*"],
        max_age=600,
    )

    @app.get("/health", response_model=HealthResponse, tags=["health"], include_in_schema=True)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", service="media-proxy")

    app.include_router(proxy_router)

    return app


app = create_app()
