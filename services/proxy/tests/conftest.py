import os
from collections.abc import Generator

# Must be set before app.rate_limit is imported: disables the limiter in tests
os.environ.setdefault("ENV_NAME", "development")

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import app
from app.proxy.dependencies import get_http_client, get_settings
from factories import FakeOrigin


@pytest.fixture
def origin() -> FakeOrigin:
    return FakeOrigin()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(temp_dir=str(tmp_path))


@pytest.fixture
def client(origin: FakeOrigin, settings: Settings) -> Generator[TestClient, None, None]:
    http_client = origin.client()
    app.dependency_overrides[get_http_client] = lambda: http_client
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app, follow_redirects=False) as c:
        yield c
    app.dependency_overrides.clear()
