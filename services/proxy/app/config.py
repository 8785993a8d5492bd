import tempfile
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_files() -> list[str]:
    """Load .env from the repository root (when running from services/proxy) then local .env."""
    base = Path(__file__).resolve().parent.parent.parent.parent  # repository root
    return [str(base / ".env"), ".env"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_env_files(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Outbound fetch ────────────────────────────────────────────────────────
    user_agent: str = "media-proxy/1.0"
    max_redirects: int = 5
    fetch_timeout_seconds: float = 30.0

    # Origin headers copied onto pass-through responses
    forwarded_headers: list[str] = [
        "content-type",
        "content-disposition",
        "content-length",
        "etag",
        "last-modified",
        "x-amz-request-id",
    ]

    # ── Thumbnails ────────────────────────────────────────────────────────────
    thumbnail_max_width: int = 280
    thumbnail_max_height: int = 280
    jpeg_quality: int = 85

    # ffmpeg is only needed for video thumbnails
    ffmpeg_path: str = "ffmpeg"
    ffmpeg_timeout_seconds: float = 60.0

    # Empty = system temp directory
    temp_dir: str = ""

    # ── Rate limiting ─────────────────────────────────────────────────────────
    # "development" switches the limiter off
    env_name: str = "production"
    proxy_rate_limit: str = "120/minute"
    # In-memory (per process) by default; point at a shared backend for several workers
    rate_limit_storage_uri: str = "memory://"

    # ── CORS ─────────────────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:3000"

    @property
    def rate_limit_enabled(self) -> bool:
        return self.env_name != "development"

    @property
    def cors_origins_list(self) -> list[str]:
        return [x.strip() for x in self.cors_origins.split(",") if x.strip()]

    @property
    def temp_directory(self) -> Path:
        return Path(self.temp_dir or tempfile.gettempdir())
