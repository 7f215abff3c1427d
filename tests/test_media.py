import hashlib
from urllib.parse import parse_qs

import httpx
import pytest

from admin_api.errors import (
    MediaTransientError,
    PayloadTooLarge,
    UnsupportedFormat,
    UpstreamAuthFailure,
    UpstreamRejected,
)
from admin_api.media import MAX_IMAGE_BYTES, CloudinaryGateway, check_image_payload
from conftest import AUTH, FakeGateway

PNG = "data:image/png;base64,iVBORw0KGgo="


def gateway_with(handler):
    return CloudinaryGateway(
        "demo", "key123", "secret456", folder="fabian-products",
        transport=httpx.MockTransport(handler), clock=lambda: 1700000000,
    )


def test_payload_checks():
    with pytest.raises(UnsupportedFormat):
        check_image_payload(None)
    with pytest.raises(UnsupportedFormat):
        check_image_payload("data:text/plain;base64,aGk=")
    too_big = "data:image/png;base64," + "A" * (MAX_IMAGE_BYTES * 4 // 3 + 8)
    with pytest.raises(PayloadTooLarge):
        check_image_payload(too_big)
    assert check_image_payload(PNG) > 0


def test_signature_follows_cloudinary_rules():
    gw = gateway_with(lambda r: httpx.Response(500))
    expected = hashlib.sha1(b"folder=f&timestamp=1secret456").hexdigest()
    assert gw.sign({"timestamp": "1", "folder": "f", "empty": ""}) == expected


@pytest.mark.asyncio
async def test_upload_posts_signed_form_and_returns_url():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["form"] = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        return httpx.Response(200, json={
            "secure_url": "https://res.cloudinary.com/demo/image/upload/v1/fabian-products/a.webp",
            "public_id": "fabian-products/a",
        })

    gw = gateway_with(handler)
    media = await gw.upload_image(PNG, "a.png")

    assert media.url.endswith("a.webp")
    assert media.public_id == "fabian-products/a"
    assert seen["url"] == "https://api.cloudinary.com/v1_1/demo/image/upload"
    form = seen["form"]
    assert form["format"] == "webp"
    assert form["transformation"] == "q_auto:good/f_webp"
    assert form["api_key"] == "key123"
    assert form["timestamp"] == "1700000000"
    assert form["file"] == PNG
    signed = {k: form[k] for k in ("folder", "format", "timestamp", "transformation")}
    assert form["signature"] == gw.sign(signed)


@pytest.mark.asyncio
@pytest.mark.parametrize("status,message,exc", [
    (401, "Invalid Signature", UpstreamAuthFailure),
    (400, "Invalid image file", UpstreamRejected),
    (500, "Internal", MediaTransientError),
])
async def test_upstream_errors(status, message, exc):
    gw = gateway_with(lambda r: httpx.Response(status, json={"error": {"message": message}}))
    with pytest.raises(exc):
        await gw.upload_image(PNG, "a.png")


@pytest.mark.asyncio
async def test_precondition_failure_never_reaches_upstream():
    calls = []
    gw = gateway_with(lambda r: calls.append(r) or httpx.Response(200, json={}))
    with pytest.raises(UnsupportedFormat):
        await gw.upload_image("https://example.com/a.png")
    assert calls == []


# ---------------------------
# HTTP surface
# ---------------------------
def test_upload_endpoint(client, gateway):
    r = client.post("/upload-image", json={"image": PNG, "filename": "zaino.png"}, headers=AUTH)
    assert r.status_code == 200
    assert r.json() == {
        "url": "https://res.cloudinary.com/demo/image/upload/v1/p1.webp",
        "publicId": "fabian-products/p1",
    }
    assert gateway.uploads == ["zaino.png"]


def test_upload_endpoint_requires_auth(client, gateway):
    r = client.post("/upload-image", json={"image": PNG})
    assert r.status_code == 401
    assert gateway.uploads == []


def test_upload_endpoint_rejects_non_images(client):
    r = client.post("/upload-image", json={"image": "hello"}, headers=AUTH)
    assert r.status_code == 400
    assert r.json()["kind"] == "UnsupportedFormat"


def test_upload_endpoint_maps_upstream_failures(client):
    from admin_api.main import app, get_media_gateway

    app.dependency_overrides[get_media_gateway] = lambda: FakeGateway(UpstreamAuthFailure("Cloudinary authentication failed - check API credentials"))
    r = client.post("/upload-image", json={"image": PNG}, headers=AUTH)
    assert r.status_code == 500
    assert r.json()["kind"] == "ServerMisconfigured"

    app.dependency_overrides[get_media_gateway] = lambda: FakeGateway(UpstreamRejected("Invalid image file format"))
    r = client.post("/upload-image", json={"image": PNG}, headers=AUTH)
    assert r.status_code == 400

    app.dependency_overrides[get_media_gateway] = lambda: FakeGateway(MediaTransientError("Failed to upload image to Cloudinary", detail="timeout"))
    r = client.post("/upload-image", json={"image": PNG}, headers=AUTH)
    assert r.status_code == 500
    assert r.json()["error"] == "timeout"


def test_upload_without_cloudinary_config_is_misconfigured(client):
    from admin_api.main import app, get_media_gateway

    del app.dependency_overrides[get_media_gateway]
    r = client.post("/upload-image", json={"image": PNG}, headers=AUTH)
    assert r.status_code == 500
    assert r.json()["message"] == "Server misconfigured: missing CLOUDINARY_CLOUD_NAME"
