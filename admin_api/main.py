# admin_api/main.py
import logging
import uuid
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import require_admin_key
from .catalog_store import CatalogStore, GitHubCatalogStore, InMemoryCatalogStore
from .config import Settings, get_settings
from .core import parse_json_body
from .errors import AdminAPIError
from .logic import (
    create_product_logic,
    delete_product_logic,
    get_catalog_logic,
    related_products_logic,
    update_product_logic,
    upload_image_logic,
)
from .media import CloudinaryGateway, MediaGateway
from .models import Category
from .related import DEFAULT_RELATED_COUNT

logging.basicConfig(level=get_settings().log_level.upper())
logger = logging.getLogger(__name__)

app = FastAPI(title="Fabian catalog admin API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # admin panel is served from the storefront origin
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def assign_request_id(request: Request, call_next):
    request.state.request_id = uuid.uuid4().hex[:7]
    logger.info("[%s] %s %s", request.state.request_id, request.method, request.url.path)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    return response


@app.exception_handler(AdminAPIError)
async def admin_error_handler(request: Request, exc: AdminAPIError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"message": message}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    where = ".".join(str(p) for p in first.get("loc", ()))
    return JSONResponse(status_code=400, content={"message": f"Invalid request: {where} {first.get('msg', '')}".strip()})


# ---------------------------
# Dependencies
# ---------------------------
@lru_cache()
def _local_store() -> InMemoryCatalogStore:
    return InMemoryCatalogStore()


def get_catalog_store(settings: Settings = Depends(get_settings)) -> CatalogStore:
    if settings.catalog_backend == "memory":
        return _local_store()
    return GitHubCatalogStore.from_settings(settings)


def get_media_gateway(settings: Settings = Depends(get_settings)) -> MediaGateway:
    return CloudinaryGateway.from_settings(settings)


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "-")


# ---------------------------
# Public reads
# ---------------------------
@app.get("/")
async def root():
    return {"message": "Fabian catalog admin API running"}


@app.get("/categories")
async def list_categories():
    return {"categories": Category.values()}


@app.get("/products")
async def get_catalog(store: CatalogStore = Depends(get_catalog_store), request_id: str = Depends(get_request_id)):
    return await get_catalog_logic(store, request_id)


@app.get("/products/{product_id}/related")
async def get_related_products(
    product_id: str,
    count: int = Query(DEFAULT_RELATED_COUNT, ge=0, le=50),
    seed: Optional[int] = None,
    store: CatalogStore = Depends(get_catalog_store),
    request_id: str = Depends(get_request_id),
):
    return await related_products_logic(product_id, store, count, seed, request_id)


# ---------------------------
# Admin mutations (auth is resolved before the store or the body)
# ---------------------------
@app.post("/save-product", dependencies=[Depends(require_admin_key)])
async def save_product(
    request: Request,
    store: CatalogStore = Depends(get_catalog_store),
    request_id: str = Depends(get_request_id),
):
    payload = parse_json_body(await request.body())
    return await create_product_logic(payload, store, request_id)


@app.put("/update-product", dependencies=[Depends(require_admin_key)])
async def update_product(
    request: Request,
    store: CatalogStore = Depends(get_catalog_store),
    request_id: str = Depends(get_request_id),
):
    payload = parse_json_body(await request.body())
    return await update_product_logic(payload, store, request_id)


@app.delete("/delete-product", dependencies=[Depends(require_admin_key)])
async def delete_product(
    request: Request,
    store: CatalogStore = Depends(get_catalog_store),
    request_id: str = Depends(get_request_id),
):
    payload = parse_json_body(await request.body())
    return await delete_product_logic(payload, store, request_id)


@app.post("/upload-image", dependencies=[Depends(require_admin_key)])
async def upload_image(
    request: Request,
    gateway: MediaGateway = Depends(get_media_gateway),
    request_id: str = Depends(get_request_id),
):
    payload = parse_json_body(await request.body())
    return await upload_image_logic(payload, gateway, request_id)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("admin_api.main:app", host="0.0.0.0", port=8085)
