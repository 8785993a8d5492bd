from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from app import video
from app.main import app
from app.proxy.dependencies import get_http_client
from factories import FakeOrigin, make_gif, make_image, open_image

PIC = "https://example.com/pic.png"


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "media-proxy"}


# ── Request validation ───────────────────────────────────────────────────────

@pytest.mark.parametrize("query", ["", "?url=", "?thumbnail=1", "?url=&thumbnail=1"])
def test_missing_url_is_400(client: TestClient, origin: FakeOrigin, query: str) -> None:
    response = client.get(f"/{query}")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "bad_request"
    assert origin.requests == []


# ── Pass-through ─────────────────────────────────────────────────────────────

def test_pass_through_returns_origin_bytes(client: TestClient, origin: FakeOrigin) -> None:
    body = make_image((500, 500))
    origin.add(
        PIC,
        headers={
            "content-type": "image/png",
            "etag": '"v1"',
            "last-modified": "Wed, 21 Oct 2015 07:28:00 GMT",
            "x-amz-request-id": "req-42",
            "set-cookie": "tracking=1",
            "cache-control": "private",
        },
        content=body,
    )

    response = client.get("/", params={"url": PIC})

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.headers["etag"] == '"v1"'
    assert response.headers["last-modified"] == "Wed, 21 Oct 2015 07:28:00 GMT"
    assert response.headers["x-amz-request-id"] == "req-42"
    assert response.headers["content-length"] == str(len(body))
    assert "set-cookie" not in response.headers
    assert "cache-control" not in response.headers
    assert "content-disposition" not in response.headers
    assert response.content == body


def test_pass_through_follows_redirects(client: TestClient, origin: FakeOrigin) -> None:
    origin.redirect_chain("https://short.example/x", 3, PIC)
    origin.add(PIC, headers={"content-type": "audio/mpeg"}, content=b"ID3 audio")

    response = client.get("/", params={"url": "https://short.example/x"})

    assert response.status_code == 200
    assert response.content == b"ID3 audio"


def test_pass_through_sends_user_agent(client: TestClient, origin: FakeOrigin) -> None:
    origin.add(PIC, headers={"content-type": "image/png"}, content=b"x")
    client.get("/", params={"url": PIC})
    assert origin.requests[0].headers["user-agent"] == "media-proxy/1.0"


# ── Gatekeeping ──────────────────────────────────────────────────────────────

@pytest.mark.parametrize("thumbnail", [None, "1"])
@pytest.mark.parametrize("content_type", ["application/pdf", "text/html; charset=utf-8", None, "IMAGE/PNG"])
def test_disallowed_type_redirects_to_target(
    client: TestClient,
    origin: FakeOrigin,
    content_type: str | None,
    thumbnail: str | None,
) -> None:
    target = "https://example.com/doc.pdf"
    headers = {"content-type": content_type} if content_type is not None else {}
    origin.add(target, headers=headers, content=b"%PDF-1.7")
    params = {"url": target}
    if thumbnail:
        params["thumbnail"] = thumbnail

    response = client.get("/", params=params)

    assert response.status_code == 301
    assert response.headers["location"] == target
    assert response.content == b""


# ── Upstream failures ────────────────────────────────────────────────────────

@pytest.mark.parametrize("status_code", [404, 403, 500, 204])
def test_non_200_origin_is_502(client: TestClient, origin: FakeOrigin, status_code: int) -> None:
    origin.add(PIC, status_code, headers={"content-type": "image/png"})
    response = client.get("/", params={"url": PIC})
    assert response.status_code == 502
    assert response.json()["error"]["code"] == "bad_gateway"


def test_network_failure_is_502(client: TestClient) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    failing = httpx.AsyncClient(transport=httpx.MockTransport(refuse))
    app.dependency_overrides[get_http_client] = lambda: failing

    response = client.get("/", params={"url": PIC})
    assert response.status_code == 502


@pytest.mark.parametrize("length", [5, 7])
def test_too_many_redirects_fails(client: TestClient, origin: FakeOrigin, length: int) -> None:
    origin.redirect_chain("https://loop.example/a", length, PIC)
    origin.add(PIC, headers={"content-type": "image/png"}, content=b"x")
    response = client.get("/", params={"url": "https://loop.example/a"})
    assert response.status_code == 500
    assert len(origin.requests) == 5


def test_four_redirects_still_succeed(client: TestClient, origin: FakeOrigin) -> None:
    origin.redirect_chain("https://hop.example/a", 4, PIC)
    origin.add(PIC, headers={"content-type": "image/png"}, content=b"x")
    response = client.get("/", params={"url": "https://hop.example/a"})
    assert response.status_code == 200


# ── Thumbnails ───────────────────────────────────────────────────────────────

def test_opaque_png_thumbnail_is_jpeg(client: TestClient, origin: FakeOrigin) -> None:
    origin.add(PIC, headers={"content-type": "image/png", "etag": '"v1"'}, content=make_image((500, 500)))

    response = client.get("/", params={"url": PIC, "thumbnail": "1"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/jpeg"
    assert "etag" not in response.headers
    img = open_image(response.content)
    assert img.format == "JPEG"
    assert img.width <= 280 and img.height <= 280


def test_thumbnail_flag_must_be_one(client: TestClient, origin: FakeOrigin) -> None:
    body = make_image((500, 500))
    origin.add(PIC, headers={"content-type": "image/png"}, content=body)
    response = client.get("/", params={"url": PIC, "thumbnail": "true"})
    assert response.status_code == 200
    assert response.content == body


def test_transparent_thumbnail_is_png(client: TestClient, origin: FakeOrigin) -> None:
    origin.add(
        PIC,
        headers={"content-type": "image/png"},
        content=make_image((64, 32), mode="RGBA", color=(0, 0, 0, 0)),
    )
    response = client.get("/", params={"url": PIC, "thumbnail": "1"})
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert open_image(response.content).size == (64, 32)


def test_gif_thumbnail_stays_gif(client: TestClient, origin: FakeOrigin) -> None:
    url = "https://example.com/anim.gif"
    origin.add(url, headers={"content-type": "image/gif"}, content=make_gif((560, 560)))
    response = client.get("/", params={"url": url, "thumbnail": "1"})
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/gif"
    assert open_image(response.content).size == (280, 280)


def test_audio_thumbnail_redirects(client: TestClient, origin: FakeOrigin) -> None:
    url = "https://example.com/song.mp3"
    origin.add(url, headers={"content-type": "audio/mpeg"}, content=b"ID3")
    response = client.get("/", params={"url": url, "thumbnail": "1"})
    assert response.status_code == 301
    assert response.headers["location"] == url


def test_audio_thumbnail_redirects_without_reading_body(client: TestClient, origin: FakeOrigin) -> None:
    url = "https://example.com/song.mp3"
    origin.add(
        url,
        headers={"content-type": "audio/mpeg"},
        content=b"ID3",
        error=httpx.ReadError("connection reset"),
    )
    response = client.get("/", params={"url": url, "thumbnail": "1"})
    assert response.status_code == 301
    assert response.headers["location"] == url


def test_broken_image_body_is_502(client: TestClient, origin: FakeOrigin) -> None:
    origin.add(
        PIC,
        headers={"content-type": "image/png"},
        content=make_image((50, 50)),
        error=httpx.ReadError("connection reset"),
    )
    response = client.get("/", params={"url": PIC, "thumbnail": "1"})
    assert response.status_code == 502
    assert response.json()["error"]["code"] == "bad_gateway"


def test_corrupt_image_thumbnail_is_500(client: TestClient, origin: FakeOrigin) -> None:
    origin.add(PIC, headers={"content-type": "image/png"}, content=b"\x89PNG truncated")
    response = client.get("/", params={"url": PIC, "thumbnail": "1"})
    assert response.status_code == 500
    assert response.headers["content-type"] == "application/json"


def test_video_thumbnail_leaves_temp_dir_unchanged(
    client: TestClient,
    origin: FakeOrigin,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def fake_extract(source: Path, output: Path, **kwargs: object) -> None:
        Image.new("RGBA", (800, 600), (0, 0, 0, 255)).save(output, format="PNG")

    monkeypatch.setattr(video, "extract_frame", fake_extract)
    url = "https://example.com/clip.mp4"
    origin.add(url, headers={"content-type": "video/mp4"}, content=b"\x00\x00\x00\x18ftypmp42")
    before = sorted(tmp_path.iterdir())

    response = client.get("/", params={"url": url, "thumbnail": "1"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/jpeg"
    assert open_image(response.content).size == (280, 210)
    assert sorted(tmp_path.iterdir()) == before


def test_video_body_is_streamed_to_disk(
    client: TestClient,
    origin: FakeOrigin,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    body = bytes(range(256)) * 64
    staged: list[bytes] = []

    async def fake_extract(source: Path, output: Path, **kwargs: object) -> None:
        staged.append(source.read_bytes())
        Image.new("RGB", (640, 360)).save(output, format="JPEG")

    monkeypatch.setattr(video, "extract_frame", fake_extract)
    url = "https://example.com/long.webm"
    origin.add(url, headers={"content-type": "video/webm"}, content=body)

    response = client.get("/", params={"url": url, "thumbnail": "1"})

    assert response.status_code == 200
    assert staged == [body]


def test_broken_video_body_is_502_and_cleans_up(
    client: TestClient,
    origin: FakeOrigin,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def fake_extract(source: Path, output: Path, **kwargs: object) -> None:
        raise AssertionError("extraction must not run on a truncated body")

    monkeypatch.setattr(video, "extract_frame", fake_extract)
    url = "https://example.com/clip.mp4"
    origin.add(
        url,
        headers={"content-type": "video/mp4"},
        content=b"\x00" * 10_000,
        error=httpx.ReadError("connection reset"),
    )
    before = sorted(tmp_path.iterdir())

    response = client.get("/", params={"url": url, "thumbnail": "1"})

    assert response.status_code == 502
    assert sorted(tmp_path.iterdir()) == before


# ── Ambient ──────────────────────────────────────────────────────────────────

def test_request_id_is_echoed(client: TestClient, origin: FakeOrigin) -> None:
    origin.add(PIC, headers={"content-type": "image/png"}, content=b"x")
    response = client.get("/", params={"url": PIC}, headers={"X-Request-ID": "abc-123"})
    assert response.headers["x-request-id"] == "abc-123"


def test_error_envelope_carries_request_id(client: TestClient) -> None:
    response = client.get("/", headers={"X-Request-ID": "req-400"})
    assert response.status_code == 400
    assert response.json()["request_id"] == "req-400"
