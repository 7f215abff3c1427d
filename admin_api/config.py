"""
Settings for the catalog admin API, read from the environment (and .env).
"""
import os
from functools import lru_cache
from typing import List, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .errors import ServerMisconfigured

load_dotenv()

STORE_ENV_VARS = ("GITHUB_TOKEN", "GITHUB_REPO")
MEDIA_ENV_VARS = ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET")


class Settings(BaseModel):
    admin_api_key: str = ""

    catalog_backend: str = "github"  # "github" or "memory"
    github_token: str = ""
    github_repo: str = ""
    github_branch: str = "main"
    github_api_url: str = "https://api.github.com"
    catalog_path: str = "products.json"

    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    cloudinary_folder: str = "fabian-products"

    http_timeout_seconds: float = Field(default=15.0, gt=0)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(name.upper())
            # empty variables count as unset
            if raw:
                values[name] = raw
        return cls(**values)

    def missing(self, env_vars: Tuple[str, ...]) -> List[str]:
        return [v for v in env_vars if not getattr(self, v.lower())]

    def require(self, env_vars: Tuple[str, ...]) -> None:
        missing = self.missing(env_vars)
        if missing:
            raise ServerMisconfigured(f"Server misconfigured: missing {missing[0]}")

    def repo_owner_and_name(self) -> Tuple[str, str]:
        parts = self.github_repo.split("/")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ServerMisconfigured("Server misconfigured: GITHUB_REPO must be owner/repo")
        return parts[0], parts[1]


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()
