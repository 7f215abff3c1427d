# admin_api/core.py
import json
from typing import Any, Dict, Tuple

from pydantic import ValidationError

from .errors import DuplicateId, InvalidPayload, ProductNotFound, ValidationFailed
from .models import Catalog, Category, Product, ProductRef

# Field -> (failure kind, message). Keys are the wire names.
FIELD_ERRORS: Dict[str, Tuple[str, str]] = {
    "id": ("InvalidId", "Product ID is required and must be a non-empty string"),
    "name": ("InvalidName", "Product name is required and must be at least 3 characters"),
    "price": ("InvalidPrice", "Price must be in format: 18.00"),
    "description": ("InvalidDescription", "Description is required and must be at least 10 characters"),
    "categories": ("InvalidCategory", "At least one category is required"),
    "images": ("InvalidImages", "At least one image is required"),
    "featured": ("InvalidFeatured", "Featured must be a boolean"),
    "specs": ("InvalidSpecs", "Specs must map names to string values"),
    "relatedProducts": ("InvalidRelatedProducts", "Related products must be a list of product IDs"),
}


def parse_json_body(raw: bytes) -> Dict[str, Any]:
    try:
        payload = json.loads(raw or b"")
    except ValueError:
        raise InvalidPayload("Invalid JSON payload")
    if not isinstance(payload, dict):
        raise InvalidPayload("Invalid JSON payload")
    return payload


def _first_failure(exc: ValidationError) -> ValidationFailed:
    # pydantic reports fields in declaration order; only the first one counts
    err = exc.errors()[0]
    loc = err.get("loc") or ("id",)
    field = str(loc[0])
    kind, message = FIELD_ERRORS.get(field, ("InvalidPayload", "Invalid product payload"))
    if field == "categories" and len(loc) > 1:
        message = f"Invalid category: {err.get('input')}. Valid: {', '.join(Category.values())}"
    elif field == "images" and (len(loc) > 1 or err.get("type") == "value_error"):
        message = "All image URLs must be non-empty strings"
    return ValidationFailed(message, kind=kind)


def validate_product(payload: Dict[str, Any]) -> Product:
    try:
        return Product.model_validate(payload)
    except ValidationError as exc:
        raise _first_failure(exc)


def validate_product_ref(payload: Dict[str, Any]) -> str:
    try:
        return ProductRef.model_validate(payload).id
    except ValidationError as exc:
        raise _first_failure(exc)


# ---------------------------
# Catalog transforms (pure; the input catalog is never modified)
# ---------------------------
def append_product(catalog: Catalog, product: Product) -> Catalog:
    if product.id in catalog.ids():
        raise DuplicateId(f"Product with ID {product.id} already exists")
    updated = catalog.model_copy(deep=True)
    updated.products.append(product.to_document())
    return updated


def replace_product(catalog: Catalog, product: Product) -> Catalog:
    updated = catalog.model_copy(deep=True)
    for i, existing in enumerate(updated.products):
        if existing.get("id") == product.id:
            updated.products[i] = product.to_document()
            return updated
    raise ProductNotFound(f"Product with ID {product.id} not found")


def remove_product(catalog: Catalog, product_id: str) -> Tuple[Catalog, Dict[str, Any]]:
    removed = catalog.find(product_id)
    if removed is None:
        raise ProductNotFound(f"Product with ID {product_id} not found")
    updated = catalog.model_copy(deep=True)
    updated.products = [p for p in updated.products if p.get("id") != product_id]
    return updated, removed


def change_description(action: str, product_name: str, product_id: str) -> str:
    """Commit message recorded with each catalog version, e.g. action="Add"."""
    past = {"Add": "Added", "Update": "Updated", "Delete": "Deleted"}[action]
    return f"{action} product: {product_name} (via admin panel)\n\n{past} by: admin\nProduct ID: {product_id}"
