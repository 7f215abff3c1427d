# admin_api/catalog_store.py
"""
Catalog store accessors.

The product catalog is one JSON document; its content hash is the version
token. fetch_catalog() returns the parsed catalog with that token and
commit_catalog() writes a new document only if the stored one still has the
token the caller read. No lock is held between the two calls.
"""
import base64
import hashlib
import json
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from .config import STORE_ENV_VARS, Settings
from .errors import (
    CatalogMalformed,
    CatalogNotFound,
    StoreAuthFailure,
    StoreTransientError,
    VersionConflict,
)
from .models import Catalog, CatalogSnapshot

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "Conflict: products.json was modified by someone else. Please refresh and try again."


def serialize_catalog(catalog: Catalog) -> str:
    # 2-space indentation keeps commit diffs small
    return json.dumps(catalog.model_dump(), indent=2, ensure_ascii=False)


def parse_catalog(text: str, path: str = "products.json") -> Catalog:
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise CatalogMalformed(f"{path} is not valid JSON", detail=str(exc))
    if not isinstance(data, dict) or not isinstance(data.get("products"), list):
        raise CatalogMalformed(f"{path} does not contain a valid products array")
    try:
        return Catalog.model_validate(data)
    except ValidationError as exc:
        raise CatalogMalformed(f"{path} does not contain a valid products array", detail=str(exc))


def content_version(text: str) -> str:
    """Git blob hash of the serialized document."""
    data = text.encode("utf-8")
    return hashlib.sha1(b"blob %d\0" % len(data) + data).hexdigest()


class CatalogStore(ABC):
    @abstractmethod
    async def fetch_catalog(self) -> CatalogSnapshot:
        ...

    @abstractmethod
    async def commit_catalog(self, catalog: Catalog, expected_version: str, change_description: str) -> None:
        ...


class InMemoryCatalogStore(CatalogStore):
    """Process-local store with the same compare-and-swap semantics as the remote one."""

    def __init__(self, products: Optional[List[Dict[str, Any]]] = None, raw: Optional[str] = None, absent: bool = False):
        self._lock = threading.Lock()
        self._text: Optional[str]
        if absent:
            self._text = None
        elif raw is not None:
            self._text = raw
        else:
            self._text = serialize_catalog(Catalog(products=list(products or [])))
        self.commits: List[str] = []

    def document(self) -> Dict[str, Any]:
        with self._lock:
            if self._text is None:
                raise CatalogNotFound("products.json not found in repository")
            return json.loads(self._text)

    async def fetch_catalog(self) -> CatalogSnapshot:
        with self._lock:
            text = self._text
        if text is None:
            raise CatalogNotFound("products.json not found in repository")
        return CatalogSnapshot(catalog=parse_catalog(text), version=content_version(text))

    async def commit_catalog(self, catalog: Catalog, expected_version: str, change_description: str) -> None:
        new_text = serialize_catalog(catalog)
        with self._lock:
            current = content_version(self._text) if self._text is not None else None
            if current != expected_version:
                raise VersionConflict(CONFLICT_MESSAGE, status=409)
            self._text = new_text
            self.commits.append(change_description)


class GitHubCatalogStore(CatalogStore):
    """products.json in a GitHub repository, through the contents API."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        branch: str = "main",
        path: str = "products.json",
        api_url: str = "https://api.github.com",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.owner = owner
        self.repo = repo
        self.token = token
        self.branch = branch
        self.path = path
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "GitHubCatalogStore":
        settings.require(STORE_ENV_VARS)
        owner, repo = settings.repo_owner_and_name()
        return cls(
            owner=owner,
            repo=repo,
            token=settings.github_token,
            branch=settings.github_branch,
            path=settings.catalog_path,
            api_url=settings.github_api_url,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    @property
    def contents_url(self) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}/contents/{self.path}"

    def _client(self) -> httpx.AsyncClient:
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        return httpx.AsyncClient(timeout=self.timeout, headers=headers, transport=self.transport)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            return str(response.json().get("message") or response.text)
        except ValueError:
            return response.text

    async def fetch_catalog(self) -> CatalogSnapshot:
        try:
            async with self._client() as client:
                response = await client.get(self.contents_url, params={"ref": self.branch})
                if response.status_code < 400:
                    data = response.json()
                    text = await self._decode_content(client, data)
        except httpx.HTTPError as exc:
            logger.error("GitHub getContent failed: %s", exc)
            raise StoreTransientError(f"Failed to retrieve {self.path} from GitHub", detail=str(exc))
        except ValueError as exc:
            raise StoreTransientError(f"Failed to retrieve {self.path} from GitHub", detail=str(exc))

        status = response.status_code
        if status >= 400:
            detail = self._error_message(response)
            logger.error("GitHub getContent failed: status=%s message=%s", status, detail)
            if status in (401, 403):
                raise StoreAuthFailure("GitHub authentication failed - check GITHUB_TOKEN permissions", status, detail)
            if status == 404:
                raise CatalogNotFound(f"{self.path} not found in repository", status, detail)
            raise StoreTransientError(f"Failed to retrieve {self.path} from GitHub", status, detail)

        return CatalogSnapshot(catalog=parse_catalog(text, self.path), version=data["sha"])

    async def _decode_content(self, client: httpx.AsyncClient, data: Any) -> str:
        if not isinstance(data, dict) or data.get("type", "file") != "file" or "sha" not in data:
            raise CatalogMalformed(f"{self.path} is not a file")
        if data.get("encoding") == "base64":
            try:
                return base64.b64decode(data.get("content") or "").decode("utf-8")
            except (ValueError, UnicodeDecodeError) as exc:
                raise CatalogMalformed(f"{self.path} is not valid JSON", detail=str(exc))
        # files over 1 MB come back without inline content
        raw = await client.get(
            self.contents_url,
            params={"ref": self.branch},
            headers={"Accept": "application/vnd.github.raw+json"},
        )
        raw.raise_for_status()
        return raw.text

    async def commit_catalog(self, catalog: Catalog, expected_version: str, change_description: str) -> None:
        content = base64.b64encode(serialize_catalog(catalog).encode("utf-8")).decode("ascii")
        body = {
            "message": change_description,
            "content": content,
            "sha": expected_version,
            "branch": self.branch,
        }
        try:
            async with self._client() as client:
                response = await client.put(self.contents_url, json=body)
        except httpx.RequestError as exc:
            logger.error("GitHub commit failed: %s", exc)
            raise StoreTransientError("Failed to commit to GitHub", detail=str(exc))

        status = response.status_code
        if status < 400:
            return
        detail = self._error_message(response)
        logger.error("GitHub commit failed: status=%s message=%s", status, detail)
        if status == 409 or (status == 422 and "sha" in detail.lower()):
            raise VersionConflict(CONFLICT_MESSAGE, status, detail)
        if status in (401, 403):
            raise StoreAuthFailure("GitHub authentication failed - check GITHUB_TOKEN has write permissions", status, detail)
        raise StoreTransientError("Failed to commit to GitHub", status, detail)
