"""Recommendation cards shown under a product page."""
import random
from typing import Any, Dict, List, Optional

DEFAULT_RELATED_COUNT = 6


def has_images(product: Dict[str, Any]) -> bool:
    images = product.get("images")
    return isinstance(images, list) and len(images) > 0


def pick_random_products(
    products: List[Dict[str, Any]],
    exclude_id: Optional[str],
    count: int = DEFAULT_RELATED_COUNT,
    rng: Optional[random.Random] = None,
) -> List[Dict[str, Any]]:
    """Up to ``count`` distinct products with images, never ``exclude_id``."""
    rng = rng or random.Random()
    pool = [p for p in products if p.get("id") != exclude_id and has_images(p)]
    return rng.sample(pool, min(max(count, 0), len(pool)))


def related_products(
    product: Dict[str, Any],
    products: List[Dict[str, Any]],
    count: int = DEFAULT_RELATED_COUNT,
    rng: Optional[random.Random] = None,
) -> List[Dict[str, Any]]:
    related_ids = product.get("relatedProducts") or []
    if related_ids:
        by_id = {p.get("id"): p for p in products}
        return [by_id[pid] for pid in related_ids if pid in by_id and has_images(by_id[pid])]
    return pick_random_products(products, product.get("id"), count, rng)
