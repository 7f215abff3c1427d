# sdk/fabian_client.py
import base64
import mimetypes
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

import httpx
import requests
from rich import print

ProgressCallback = Callable[[int, int, str], None]


# ---------------------------
# Errors, one per recovery action
# ---------------------------
class AdminClientError(Exception):
    """Any failed admin call; ``message`` is the server's own text."""

    def __init__(self, message: str, status_code: Optional[int] = None, kind: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.kind = kind


class ConflictError(AdminClientError):
    """The catalog changed underneath us: reload and redo the change."""


class UnauthorizedError(AdminClientError):
    """The API key was rejected: authenticate again."""


class ProductNotFoundError(AdminClientError):
    pass


def raise_for_admin_status(status_code: int, data: Any) -> None:
    if status_code < 400:
        return
    message = data.get("message") if isinstance(data, dict) else None
    kind = data.get("kind") if isinstance(data, dict) else None
    if status_code == 409:
        raise ConflictError(
            message or "Conflict: products.json was modified. Reload and try again.", status_code, kind
        )
    if status_code == 401:
        raise UnauthorizedError(message or "Session expired. Please log in again.", status_code, kind)
    if status_code == 404:
        raise ProductNotFoundError(message or "Product not found.", status_code, kind)
    raise AdminClientError(message or f"HTTP error {status_code}", status_code, kind)


def image_to_data_uri(path: str) -> str:
    mime, _ = mimetypes.guess_type(path)
    if not mime or not mime.startswith("image/"):
        mime = "image/jpeg"
    with open(path, "rb") as f:
        encoded = base64.b64encode(f.read()).decode("ascii")
    return f"data:{mime};base64,{encoded}"


def build_product(
    product_id: str,
    name: str,
    price: str,
    description: str,
    categories: List[str],
    images: List[str],
    featured: bool = False,
    height: Optional[str] = None,
    width: Optional[str] = None,
) -> Dict[str, Any]:
    product: Dict[str, Any] = {
        "id": str(product_id).strip(),
        "name": name.strip(),
        "price": price.strip(),
        "images": list(images),
        "categories": list(categories),
        "featured": featured,
        "description": description.strip(),
        "specs": {},
    }
    # absent specs are left out, never null
    if height and height.strip():
        product["specs"]["altezza"] = height.strip()
    if width and width.strip():
        product["specs"]["larghezza"] = width.strip()
    return product


def next_id_for(products: Iterable[Dict[str, Any]]) -> int:
    ids = []
    for p in products:
        try:
            ids.append(int(p.get("id")))
        except (TypeError, ValueError):
            continue
    return max(ids) + 1 if ids else 1


@dataclass
class UploadedImage:
    path: str
    url: str
    public_id: str


class AdminClient:
    def __init__(self, base_url: str = "http://localhost:8085", api_key: Optional[str] = None, timeout: int = 30):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.session = requests.Session()
        self.timeout = timeout
        if api_key:
            self.session.headers.update({"X-API-Key": api_key})

    def _decode(self, r) -> Any:
        try:
            data = r.json()
        except ValueError:
            raise AdminClientError("Server returned an invalid response", r.status_code)
        raise_for_admin_status(r.status_code, data)
        return data

    # ---------------------------
    # Catalog reads
    # ---------------------------
    def fetch_catalog(self) -> Dict[str, Any]:
        r = self.session.get(f"{self.base_url}/products", timeout=self.timeout)
        data = self._decode(r)
        if not isinstance(data.get("products"), list):
            raise AdminClientError("products.json format is not valid", r.status_code)
        return data

    def list_products(self, category: Optional[str] = None, featured_only: bool = False) -> List[Dict[str, Any]]:
        out = []
        for p in self.fetch_catalog()["products"]:
            if category and category not in (p.get("categories") or []):
                continue
            if featured_only and not p.get("featured"):
                continue
            out.append(p)
        return out

    def get_product(self, product_id: str) -> Dict[str, Any]:
        for p in self.fetch_catalog()["products"]:
            if p.get("id") == product_id:
                return p
        raise ProductNotFoundError(f"Product with ID {product_id} not found", 404, "NotFoundId")

    def next_product_id(self) -> str:
        return str(next_id_for(self.fetch_catalog()["products"]))

    def categories(self) -> List[str]:
        r = self.session.get(f"{self.base_url}/categories", timeout=self.timeout)
        return self._decode(r)["categories"]

    def related_products(self, product_id: str, count: int = 6, seed: Optional[int] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"count": count}
        if seed is not None:
            params["seed"] = seed
        r = self.session.get(f"{self.base_url}/products/{product_id}/related", params=params, timeout=self.timeout)
        return self._decode(r)["products"]

    # ---------------------------
    # Images
    # ---------------------------
    def upload_image(self, path: str) -> UploadedImage:
        payload = {"image": image_to_data_uri(path), "filename": os.path.basename(path)}
        r = self.session.post(f"{self.base_url}/upload-image", json=payload, timeout=self.timeout)
        data = self._decode(r)
        if not data.get("url") or not isinstance(data["url"], str):
            raise AdminClientError("Server did not return a valid URL", r.status_code)
        return UploadedImage(path=path, url=data["url"], public_id=data.get("publicId", ""))

    def upload_images(self, paths: List[str], on_progress: Optional[ProgressCallback] = None) -> Iterator[UploadedImage]:
        """Upload one file at a time, yielding results in the order of ``paths``."""
        total = len(paths)
        for i, path in enumerate(paths):
            if on_progress:
                on_progress(i + 1, total, path)
            try:
                uploaded = self.upload_image(path)
            except requests.RequestException as e:
                raise AdminClientError(f"Network error while uploading {os.path.basename(path)}: {e}") from e
            except AdminClientError as e:
                raise type(e)(f"Upload failed for {os.path.basename(path)}: {e.message}", e.status_code, e.kind) from e
            yield uploaded

    # ---------------------------
    # Mutations
    # ---------------------------
    def save_product(self, product: Dict[str, Any]) -> Dict[str, Any]:
        r = self.session.post(f"{self.base_url}/save-product", json=product, timeout=self.timeout)
        return self._decode(r)

    def update_product(self, product: Dict[str, Any]) -> Dict[str, Any]:
        r = self.session.put(f"{self.base_url}/update-product", json=product, timeout=self.timeout)
        return self._decode(r)

    def delete_product(self, product_id: str) -> Dict[str, Any]:
        r = self.session.delete(f"{self.base_url}/delete-product", json={"id": product_id}, timeout=self.timeout)
        return self._decode(r)

    def add_product(
        self,
        name: str,
        price: str,
        description: str,
        categories: List[str],
        image_paths: List[str],
        featured: bool = False,
        height: Optional[str] = None,
        width: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Dict[str, Any]:
        """Upload the images, pick the next free id and save the product."""
        if not image_paths:
            raise AdminClientError("At least one image is required")
        urls = [img.url for img in self.upload_images(image_paths, on_progress)]
        product = build_product(
            self.next_product_id(), name, price, description, categories, urls, featured, height, width
        )
        return self.save_product(product)

    def edit_product(
        self,
        product_id: str,
        name: str,
        price: str,
        description: str,
        categories: List[str],
        featured: bool = False,
        image_paths: Optional[List[str]] = None,
        height: Optional[str] = None,
        width: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Dict[str, Any]:
        """Replace a product; its current images are kept unless new files are given."""
        if image_paths:
            urls = [img.url for img in self.upload_images(image_paths, on_progress)]
        else:
            urls = self.get_product(product_id).get("images", [])
        product = build_product(product_id, name, price, description, categories, urls, featured, height, width)
        return self.update_product(product)

    # ---------------------------
    # Async variants
    # ---------------------------
    async def _request_async(self, method: str, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {"X-API-Key": self.api_key} if self.api_key else {}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.request(method, f"{self.base_url}{path}", json=payload, headers=headers)
        try:
            data = r.json()
        except ValueError:
            raise AdminClientError("Server returned an invalid response", r.status_code)
        raise_for_admin_status(r.status_code, data)
        return data

    async def save_product_async(self, product: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request_async("POST", "/save-product", product)

    async def update_product_async(self, product: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request_async("PUT", "/update-product", product)

    async def delete_product_async(self, product_id: str) -> Dict[str, Any]:
        return await self._request_async("DELETE", "/delete-product", {"id": product_id})


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Fabian catalog admin client")
    parser.add_argument("--base-url", default=os.getenv("ADMIN_API_URL", "http://127.0.0.1:8085"))
    parser.add_argument("--api-key", default=os.getenv("ADMIN_API_KEY"))
    subparsers = parser.add_subparsers(dest="command", required=True)

    lp = subparsers.add_parser("list-products", help="List all products")
    lp.add_argument("--category", help="Filter products by category")
    lp.add_argument("--featured-only", action="store_true", help="Show only featured products")

    gp = subparsers.add_parser("get-product", help="Get a product by its ID")
    gp.add_argument("--product-id", required=True, help="ID of the product")

    rp = subparsers.add_parser("related", help="Show related products for a product")
    rp.add_argument("--product-id", required=True)
    rp.add_argument("--count", type=int, default=6)

    subparsers.add_parser("categories", help="List the category vocabulary")

    up = subparsers.add_parser("upload-image", help="Upload images and print their URLs")
    up.add_argument("paths", nargs="+")

    dp = subparsers.add_parser("delete-product", help="Delete a product")
    dp.add_argument("--product-id", required=True)

    args = parser.parse_args()
    c = AdminClient(base_url=args.base_url, api_key=args.api_key)

    try:
        if args.command == "list-products":
            print(c.list_products(args.category, args.featured_only))
        elif args.command == "get-product":
            print(c.get_product(args.product_id))
        elif args.command == "related":
            print(c.related_products(args.product_id, args.count))
        elif args.command == "categories":
            print(c.categories())
        elif args.command == "upload-image":
            for img in c.upload_images(args.paths, lambda i, n, p: print(f"[cyan]Uploading {i} of {n}: {p}[/cyan]")):
                print(img.url)
        elif args.command == "delete-product":
            print(c.delete_product(args.product_id))
    except ConflictError as e:
        print(f"[yellow]{e.message}[/yellow]")
    except UnauthorizedError as e:
        print(f"[red]{e.message} Check ADMIN_API_KEY.[/red]")
    except AdminClientError as e:
        print(f"[red]Error: {e.message}[/red]")
