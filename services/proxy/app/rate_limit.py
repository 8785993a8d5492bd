"""
Global slowapi rate limiter.

Configured from Settings, so ENV_NAME, PROXY_RATE_LIMIT and
RATE_LIMIT_STORAGE_URI are honoured from the environment and from .env alike.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import Settings


def build_limiter(settings: Settings) -> Limiter:
    return Limiter(
        key_func=get_remote_address,
        storage_uri=settings.rate_limit_storage_uri,
        enabled=settings.rate_limit_enabled,
    )


_settings = Settings()

PROXY_RATE_LIMIT = _settings.proxy_rate_limit

limiter = build_limiter(_settings)
