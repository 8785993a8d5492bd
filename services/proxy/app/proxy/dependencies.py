"""
Media proxy — request dependencies.

The outbound httpx client is created once in the app lifespan and shared by
all requests; tests override get_http_client with a mock transport.
"""
import httpx
from fastapi import Request

from app.config import Settings


def get_settings() -> Settings:
    return Settings()


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client
