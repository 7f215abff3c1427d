import logging
import random
from typing import Any, Dict, Optional

from .catalog_store import CatalogStore
from .core import (
    append_product,
    change_description,
    remove_product,
    replace_product,
    validate_product,
    validate_product_ref,
)
from .errors import (
    AdminAPIError,
    Conflict,
    MediaError,
    PayloadTooLarge,
    ProductNotFound,
    ServerMisconfigured,
    StoreAuthFailure,
    StoreError,
    StoreUnavailable,
    UnsupportedFormat,
    UploadRejected,
    UpstreamAuthFailure,
    UpstreamFailure,
    UpstreamRejected,
    VersionConflict,
)
from .media import MediaGateway
from .models import Catalog, CatalogSnapshot
from .related import related_products

logger = logging.getLogger(__name__)

# Every mutation runs the same steps against fresh state:
# validate -> fetch catalog + version -> compute -> conditional commit.
# Authentication happens before any of this, in the route dependency.
# Nothing is retried here; a conflict goes back to the caller.


def store_failure(exc: StoreError) -> AdminAPIError:
    if isinstance(exc, VersionConflict):
        return Conflict(exc.message)
    if isinstance(exc, StoreAuthFailure):
        # the store rejected *our* credential, not the caller's
        return ServerMisconfigured(exc.message)
    return StoreUnavailable(exc.message, error=exc.detail)


def media_failure(exc: MediaError) -> AdminAPIError:
    if isinstance(exc, (PayloadTooLarge, UnsupportedFormat, UpstreamRejected)):
        return UploadRejected(exc.message, kind=exc.kind)
    if isinstance(exc, UpstreamAuthFailure):
        return ServerMisconfigured(exc.message)
    return UpstreamFailure(exc.message, error=exc.detail)


async def _fetch(store: CatalogStore, request_id: str) -> CatalogSnapshot:
    try:
        snapshot = await store.fetch_catalog()
    except StoreError as exc:
        logger.error("[%s] Catalog fetch failed: %s (status=%s)", request_id, exc.message, exc.status)
        raise store_failure(exc)
    logger.info(
        "[%s] Retrieved catalog: sha=%s, products=%d",
        request_id, snapshot.short_version, len(snapshot.catalog.products),
    )
    return snapshot


async def _commit(store: CatalogStore, snapshot: CatalogSnapshot, catalog: Catalog, message: str, request_id: str) -> None:
    try:
        await store.commit_catalog(catalog, snapshot.version, message)
    except StoreError as exc:
        logger.error("[%s] Catalog commit failed: %s (status=%s)", request_id, exc.message, exc.status)
        raise store_failure(exc)


# ---------------------------
# Mutations
# ---------------------------
async def create_product_logic(payload: Dict[str, Any], store: CatalogStore, request_id: str = "-") -> Dict[str, Any]:
    try:
        product = validate_product(payload)
    except AdminAPIError as exc:
        logger.error("[%s] Validation failed: %s", request_id, exc.message)
        raise
    logger.info("[%s] Product validation passed: id=%s, name=%s", request_id, product.id, product.name)

    snapshot = await _fetch(store, request_id)
    try:
        catalog = append_product(snapshot.catalog, product)
    except AdminAPIError as exc:
        logger.error("[%s] %s", request_id, exc.message)
        raise

    await _commit(store, snapshot, catalog, change_description("Add", product.name, product.id), request_id)
    logger.info("[%s] Commit successful: productId=%s", request_id, product.id)
    return {"message": "Product added successfully", "productId": product.id}


async def update_product_logic(payload: Dict[str, Any], store: CatalogStore, request_id: str = "-") -> Dict[str, Any]:
    try:
        product = validate_product(payload)
    except AdminAPIError as exc:
        logger.error("[%s] Validation failed: %s", request_id, exc.message)
        raise
    logger.info("[%s] Product validation passed: id=%s, name=%s", request_id, product.id, product.name)

    snapshot = await _fetch(store, request_id)
    try:
        catalog = replace_product(snapshot.catalog, product)
    except AdminAPIError as exc:
        logger.error("[%s] %s", request_id, exc.message)
        raise

    await _commit(store, snapshot, catalog, change_description("Update", product.name, product.id), request_id)
    logger.info("[%s] Commit successful: updated productId=%s", request_id, product.id)
    return {"message": "Product updated successfully", "productId": product.id}


async def delete_product_logic(payload: Dict[str, Any], store: CatalogStore, request_id: str = "-") -> Dict[str, Any]:
    try:
        product_id = validate_product_ref(payload)
    except AdminAPIError:
        logger.error("[%s] Invalid product ID: %s", request_id, payload.get("id"))
        raise
    logger.info("[%s] Deleting product: id=%s", request_id, product_id)

    snapshot = await _fetch(store, request_id)
    try:
        catalog, removed = remove_product(snapshot.catalog, product_id)
    except AdminAPIError as exc:
        logger.error("[%s] %s", request_id, exc.message)
        raise

    product_name = removed.get("name") or product_id
    logger.info("[%s] Products count after deletion: %d", request_id, len(catalog.products))
    await _commit(store, snapshot, catalog, change_description("Delete", product_name, product_id), request_id)
    logger.info("[%s] Commit successful: deleted productId=%s", request_id, product_id)
    return {"message": "Product deleted successfully", "productId": product_id, "productName": product_name}


# ---------------------------
# Media
# ---------------------------
async def upload_image_logic(payload: Dict[str, Any], gateway: MediaGateway, request_id: str = "-") -> Dict[str, Any]:
    filename = payload.get("filename")
    if not isinstance(filename, str):
        filename = None
    try:
        media = await gateway.upload_image(payload.get("image"), filename)
    except MediaError as exc:
        logger.error("[%s] Image upload failed: %s (%s)", request_id, exc.message, exc.kind)
        raise media_failure(exc)
    logger.info("[%s] Upload successful: publicId=%s", request_id, media.public_id)
    return {"url": media.url, "publicId": media.public_id}


# ---------------------------
# Reads
# ---------------------------
async def get_catalog_logic(store: CatalogStore, request_id: str = "-") -> Dict[str, Any]:
    snapshot = await _fetch(store, request_id)
    return snapshot.catalog.model_dump()


async def related_products_logic(
    product_id: str,
    store: CatalogStore,
    count: int,
    seed: Optional[int] = None,
    request_id: str = "-",
) -> Dict[str, Any]:
    snapshot = await _fetch(store, request_id)
    product = snapshot.catalog.find(product_id)
    if product is None:
        raise ProductNotFound(f"Product with ID {product_id} not found")
    rng = random.Random(seed) if seed is not None else None
    picks = related_products(product, snapshot.catalog.products, count=count, rng=rng)
    return {"productId": product_id, "products": picks}
