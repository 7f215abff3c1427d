import base64
import json

import httpx
import pytest

from admin_api.catalog_store import GitHubCatalogStore, content_version, serialize_catalog
from admin_api.config import Settings
from admin_api.errors import (
    CatalogMalformed,
    CatalogNotFound,
    ServerMisconfigured,
    StoreAuthFailure,
    StoreTransientError,
    VersionConflict,
)
from admin_api.models import Catalog
from conftest import make_product


class FakeGitHub:
    """Just enough of the contents API to exercise the accessor."""

    def __init__(self, text, fail_get=None, fail_put=None):
        self.text = text
        self.fail_get = fail_get
        self.fail_put = fail_put
        self.requests = []

    @property
    def sha(self):
        return content_version(self.text)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET":
            if self.fail_get:
                return httpx.Response(self.fail_get, json={"message": "nope"})
            return httpx.Response(200, json={
                "type": "file",
                "encoding": "base64",
                "sha": self.sha,
                # GitHub wraps base64 at 60 columns
                "content": "\n".join(_chunks(base64.b64encode(self.text.encode()).decode(), 60)),
            })
        if self.fail_put:
            return httpx.Response(self.fail_put, json={"message": "Bad credentials"})
        body = json.loads(request.content)
        if body["sha"] != self.sha:
            return httpx.Response(409, json={"message": f"products.json does not match {body['sha']}"})
        self.text = base64.b64decode(body["content"]).decode()
        return httpx.Response(200, json={"content": {"sha": self.sha}})


def _chunks(s, n):
    return [s[i:i + n] for i in range(0, len(s), n)]


def make_store(fake):
    return GitHubCatalogStore("fabian", "shop", "tok", branch="live", transport=httpx.MockTransport(fake))


@pytest.mark.asyncio
async def test_fetch_decodes_catalog_and_version():
    fake = FakeGitHub(json.dumps({"products": [make_product("1")]}))
    snapshot = await make_store(fake).fetch_catalog()

    assert snapshot.catalog.ids() == ["1"]
    assert snapshot.version == fake.sha
    req = fake.requests[0]
    assert req.url.path == "/repos/fabian/shop/contents/products.json"
    assert req.url.params["ref"] == "live"
    assert req.headers["Authorization"] == "Bearer tok"


@pytest.mark.asyncio
async def test_commit_sends_sha_branch_and_indented_json():
    fake = FakeGitHub(json.dumps({"products": []}))
    store = make_store(fake)
    snapshot = await store.fetch_catalog()

    catalog = Catalog(products=[make_product("1")])
    await store.commit_catalog(catalog, snapshot.version, "Add product: Zaino Blu")

    put = json.loads(fake.requests[-1].content)
    assert put["sha"] == snapshot.version
    assert put["branch"] == "live"
    assert put["message"] == "Add product: Zaino Blu"
    assert fake.text == serialize_catalog(catalog)
    assert '\n  "products": [' in fake.text


@pytest.mark.asyncio
async def test_stale_sha_is_a_version_conflict():
    fake = FakeGitHub(json.dumps({"products": []}))
    store = make_store(fake)
    snapshot = await store.fetch_catalog()
    fake.text = json.dumps({"products": [make_product("9")]})  # someone else wrote

    with pytest.raises(VersionConflict):
        await store.commit_catalog(Catalog(products=[]), snapshot.version, "Delete")


@pytest.mark.asyncio
@pytest.mark.parametrize("status,exc", [
    (401, StoreAuthFailure),
    (403, StoreAuthFailure),
    (404, CatalogNotFound),
    (502, StoreTransientError),
])
async def test_fetch_error_mapping(status, exc):
    with pytest.raises(exc):
        await make_store(FakeGitHub("{}", fail_get=status)).fetch_catalog()


@pytest.mark.asyncio
@pytest.mark.parametrize("status,exc", [
    (401, StoreAuthFailure),
    (403, StoreAuthFailure),
    (500, StoreTransientError),
])
async def test_commit_error_mapping(status, exc):
    fake = FakeGitHub(json.dumps({"products": []}), fail_put=status)
    store = make_store(fake)
    snapshot = await store.fetch_catalog()
    with pytest.raises(exc):
        await store.commit_catalog(Catalog(products=[]), snapshot.version, "x")


@pytest.mark.asyncio
async def test_invalid_json_document():
    with pytest.raises(CatalogMalformed):
        await make_store(FakeGitHub("not json")).fetch_catalog()
    with pytest.raises(CatalogMalformed):
        await make_store(FakeGitHub('{"products": {}}')).fetch_catalog()


@pytest.mark.asyncio
async def test_network_error_is_transient():
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    store = GitHubCatalogStore("o", "r", "t", transport=httpx.MockTransport(boom))
    with pytest.raises(StoreTransientError):
        await store.fetch_catalog()


def test_from_settings_checks_configuration():
    with pytest.raises(ServerMisconfigured, match="missing GITHUB_TOKEN"):
        GitHubCatalogStore.from_settings(Settings(github_repo="o/r"))
    with pytest.raises(ServerMisconfigured, match="owner/repo"):
        GitHubCatalogStore.from_settings(Settings(github_token="t", github_repo="just-a-name"))

    store = GitHubCatalogStore.from_settings(Settings(github_token="t", github_repo="o/r", catalog_path="data/p.json"))
    assert store.contents_url == "https://api.github.com/repos/o/r/contents/data/p.json"
    assert store.branch == "main"
