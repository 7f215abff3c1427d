"""Shared fixtures: the API wired to an in-memory catalog and a fake media gateway."""
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from admin_api.catalog_store import InMemoryCatalogStore
from admin_api.config import Settings, get_settings
from admin_api.errors import MediaError
from admin_api.main import app, get_catalog_store, get_media_gateway
from admin_api.media import MediaGateway, check_image_payload
from admin_api.models import UploadedMedia

API_KEY = "s3cret-Key"
AUTH = {"X-API-Key": API_KEY}


def make_product(product_id: str = "1", **overrides: Any) -> Dict[str, Any]:
    product = {
        "id": product_id,
        "name": "Zaino Blu",
        "price": "25.00",
        "description": "Uno zaino comodo e resistente",
        "categories": ["bimbo"],
        "featured": False,
        "images": [f"https://x/{product_id}.jpg"],
    }
    product.update(overrides)
    return product


class FakeGateway(MediaGateway):
    def __init__(self, fail_with: Optional[MediaError] = None):
        self.fail_with = fail_with
        self.uploads: List[Optional[str]] = []

    async def upload_image(self, image, filename=None):
        check_image_payload(image)
        if self.fail_with:
            raise self.fail_with
        self.uploads.append(filename)
        n = len(self.uploads)
        return UploadedMedia(url=f"https://res.cloudinary.com/demo/image/upload/v1/p{n}.webp", public_id=f"fabian-products/p{n}")


@pytest.fixture
def settings():
    return Settings(admin_api_key=API_KEY, catalog_backend="memory")


@pytest.fixture
def store():
    return InMemoryCatalogStore()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(settings, store, gateway):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_catalog_store] = lambda: store
    app.dependency_overrides[get_media_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()
