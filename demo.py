#!/usr/bin/env python
# Walks through create -> read -> delete against a running API, e.g.
#   CATALOG_BACKEND=memory ADMIN_API_KEY=secret uvicorn admin_api.main:app --port 8085
#   ADMIN_API_KEY=secret python demo.py
import os

from sdk.fabian_client import AdminClient, build_product


def main():
    c = AdminClient(base_url="http://127.0.0.1:8085", api_key=os.getenv("ADMIN_API_KEY"))

    # -----------------------------
    # Current catalog
    # -----------------------------
    print("Reading catalog...")
    print(c.fetch_catalog())

    # -----------------------------
    # Create a product
    # -----------------------------
    product_id = c.next_product_id()
    product = build_product(
        product_id,
        name="Zaino Blu",
        price="25.00",
        description="Uno zaino comodo e resistente",
        categories=["bimbo"],
        images=["https://x/1.jpg"],
    )
    print(f"\nCreating product {product_id}...")
    print(c.save_product(product))
    print(c.fetch_catalog())

    # -----------------------------
    # Update it
    # -----------------------------
    product["price"] = "22.50"
    product["featured"] = True
    print("\nUpdating product...")
    print(c.update_product(product))
    print(c.get_product(product_id))

    # -----------------------------
    # Categories and related products
    # -----------------------------
    print("\nCategories:", c.categories())
    print("Related:", c.related_products(product_id, count=3, seed=42))

    # -----------------------------
    # Delete it
    # -----------------------------
    print("\nDeleting product...")
    print(c.delete_product(product_id))
    print(c.fetch_catalog())


if __name__ == "__main__":
    main()
