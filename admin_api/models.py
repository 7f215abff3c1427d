# admin_api/models.py
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, field_validator


class Category(str, Enum):
    ASILO = "asilo"
    BIMBO = "bimbo"
    BIMBA = "bimba"
    CUCINA = "cucina"
    TOVAGLIETTE = "tovagliette"
    GREMBIULI = "grembiuli"
    REGALO = "regalo"
    BORSE = "borse"
    DECORAZIONI = "decorazioni"

    @classmethod
    def values(cls) -> List[str]:
        return [c.value for c in cls]


# JS-style \d: ASCII digits only, no trailing newline allowed
PRICE_RE = re.compile(r"[0-9]+\.[0-9]{2}")


# Field order is validation order: the first failing field is the one reported.
class Product(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: StrictStr
    name: StrictStr
    price: StrictStr
    description: StrictStr
    categories: List[Category] = Field(min_length=1)
    images: List[StrictStr] = Field(min_length=1)
    featured: StrictBool
    specs: Optional[Dict[StrictStr, StrictStr]] = None
    related_products: Optional[List[StrictStr]] = Field(default=None, alias="relatedProducts")

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("id must not be blank")
        return v

    @field_validator("name")
    @classmethod
    def _name_length(cls, v: str) -> str:
        if len(v.strip()) < 3:
            raise ValueError("name too short")
        return v

    @field_validator("price")
    @classmethod
    def _price_format(cls, v: str) -> str:
        if not PRICE_RE.fullmatch(v):
            raise ValueError("price must look like 18.00")
        return v

    @field_validator("description")
    @classmethod
    def _description_length(cls, v: str) -> str:
        if len(v.strip()) < 10:
            raise ValueError("description too short")
        return v

    @field_validator("images")
    @classmethod
    def _images_not_blank(cls, v: List[str]) -> List[str]:
        if any(not img.strip() for img in v):
            raise ValueError("image URLs must be non-empty")
        return v

    def to_document(self) -> Dict[str, Any]:
        """Shape stored in the catalog: aliases, plain strings, absent optionals omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ProductRef(BaseModel):
    id: StrictStr

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("id must not be blank")
        return v


class Catalog(BaseModel):
    # unknown top-level keys survive a read-modify-write cycle
    model_config = ConfigDict(extra="allow")

    products: List[Dict[str, Any]]

    def find(self, product_id: str) -> Optional[Dict[str, Any]]:
        for p in self.products:
            if p.get("id") == product_id:
                return p
        return None

    def ids(self) -> List[Any]:
        return [p.get("id") for p in self.products]


@dataclass(frozen=True)
class CatalogSnapshot:
    """A fetched catalog together with the version token it was read at."""

    catalog: Catalog
    version: str

    @property
    def short_version(self) -> str:
        return self.version[:7]


@dataclass(frozen=True)
class UploadedMedia:
    url: str
    public_id: str
