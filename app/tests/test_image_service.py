# tests/test_image_service.py
import base64

import httpx
import pytest
from google.api_core.exceptions import ServiceUnavailable

from app.services.errors import SuggestionServiceError
from app.services.image_service import ImageService, sniff_mime

PNG = b"\x89PNG\r\n\x1a\nfakeimagecontent"


def test_sniff_mime():
    assert sniff_mime(PNG) == "image/png"
    assert sniff_mime(b"\xff\xd8\xff\xe0") == "image/jpeg"
    assert sniff_mime(b"unknown") == "image/jpeg"


def test_decode_base64_accepts_data_urls(fake_vision):
    svc = ImageService(client=fake_vision)
    encoded = base64.b64encode(PNG).decode()

    assert svc.decode_base64(encoded) == (PNG, "image/png")
    assert svc.decode_base64(f"data:image/webp;base64,{encoded}") == (PNG, "image/webp")


def test_decode_base64_rejects_empty(fake_vision):
    svc = ImageService(client=fake_vision)
    with pytest.raises(SuggestionServiceError):
        svc.decode_base64("")


@pytest.mark.asyncio
async def test_describe_image_collects_text_and_confident_labels(fake_vision):
    svc = ImageService(client=fake_vision)

    ctx = await svc.describe_image(PNG)

    assert "MJOLK" in ctx["text"]
    assert ctx["labels"] == ["receipt"]
    assert ctx["diagnostics"]["labels_count"] == 1


@pytest.mark.asyncio
async def test_describe_image_without_client_is_empty():
    svc = ImageService()
    assert svc.client is None

    ctx = await svc.describe_image(PNG)

    assert ctx["text"] == ""
    assert ctx["labels"] == []


@pytest.mark.asyncio
async def test_vision_api_error_degrades_to_empty_context(fake_vision):
    fake_vision.error = ServiceUnavailable("vision down")
    svc = ImageService(client=fake_vision)

    ctx = await svc.describe_image(PNG)

    assert ctx["text"] == ""
    assert "vision_api_error" in ctx["diagnostics"]


@pytest.mark.asyncio
async def test_download_uses_content_type(monkeypatch, fake_vision):
    real_client = httpx.AsyncClient

    def handler(request):
        return httpx.Response(200, content=PNG, headers={"content-type": "image/png; charset=binary"})

    monkeypatch.setattr(
        "app.services.image_service.httpx.AsyncClient",
        lambda **kw: real_client(transport=httpx.MockTransport(handler), **kw),
    )
    svc = ImageService(client=fake_vision)

    assert await svc.download("https://img.test/receipt.png") == (PNG, "image/png")


@pytest.mark.asyncio
async def test_download_failure_raises(monkeypatch, fake_vision):
    real_client = httpx.AsyncClient

    def handler(request):
        return httpx.Response(404)

    monkeypatch.setattr(
        "app.services.image_service.httpx.AsyncClient",
        lambda **kw: real_client(transport=httpx.MockTransport(handler), **kw),
    )
    svc = ImageService(client=fake_vision)

    with pytest.raises(SuggestionServiceError):
        await svc.download("https://img.test/missing.png")
