import random

from admin_api.related import pick_random_products, related_products
from conftest import make_product

PRODUCTS = [make_product(str(i)) for i in range(1, 9)] + [make_product("no-img", images=[])]


def test_random_pick_excludes_current_and_imageless():
    picks = pick_random_products(PRODUCTS, "3", count=20, rng=random.Random(1))
    ids = [p["id"] for p in picks]
    assert "3" not in ids and "no-img" not in ids
    assert len(ids) == len(set(ids)) == 7


def test_random_pick_is_seedable():
    a = pick_random_products(PRODUCTS, "1", count=4, rng=random.Random(42))
    b = pick_random_products(PRODUCTS, "1", count=4, rng=random.Random(42))
    assert a == b
    assert len(a) == 4


def test_explicit_related_ids_keep_their_order():
    product = make_product("1", relatedProducts=["5", "missing", "no-img", "2"])
    assert [p["id"] for p in related_products(product, PRODUCTS)] == ["5", "2"]


def test_empty_related_list_falls_back_to_random():
    product = make_product("1", relatedProducts=[])
    picks = related_products(product, PRODUCTS, count=6, rng=random.Random(0))
    assert len(picks) == 6
    assert all(p["id"] != "1" for p in picks)


def test_zero_count():
    assert pick_random_products(PRODUCTS, None, count=0) == []
