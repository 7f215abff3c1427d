import asyncio
import os

from sdk.fabian_client import AdminClient, AdminClientError, ConflictError, build_product


async def simulate_edit(client, product, label):
    try:
        await client.update_product_async(product)
        print(f"✅ {label}: update committed (price {product['price']})")
    except ConflictError as e:
        print(f"⚠️  {label}: {e.message} -> reload and redo")
    except AdminClientError as e:
        print(f"❌ {label} failed: {e.message}")


async def main():
    c = AdminClient(base_url="http://127.0.0.1:8085", api_key=os.getenv("ADMIN_API_KEY"))

    product_id = c.next_product_id()
    base = build_product(
        product_id, "Grembiule Rosso", "18.00", "Grembiule da cucina in cotone",
        ["grembiuli", "cucina"], ["https://x/grembiule.jpg"],
    )
    c.save_product(base)
    print(f"\n🧵 Created product {product_id}")

    first = dict(base, price="19.00")
    second = dict(base, price="21.00")

    # Two admins saving at once: the server never merges, at most one
    # commit lands per catalog version and the other gets 409.
    print("\n⚡ Simulating concurrent edits...")
    await asyncio.gather(
        simulate_edit(c, first, "admin A"),
        simulate_edit(c, second, "admin B"),
    )

    print("\n📦 Final product state:", c.get_product(product_id))
    c.delete_product(product_id)

if __name__ == "__main__":
    asyncio.run(main())
