"""Catalog products, search responses and resolved artifacts."""

from __future__ import annotations

from enum import Enum
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field

from clusterforge.models.versioning import Version


class Product(BaseModel):
    """A downloadable product as the catalog knows it.

    ``sub_product`` is set for plugins: the catalog is then queried by the
    plugin moniker instead of the product name.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    sub_product: str | None = None
    platform_dependent: bool = False
    # Archive names carry an os-arch suffix for versions after this one
    platform_suffix_after: Version | None = None

    @property
    def query_name(self) -> str:
        return self.sub_product or self.name


ELASTICSEARCH = Product(
    name="elasticsearch",
    platform_dependent=True,
    platform_suffix_after=Version(major=7, minor=0, patch=0, prerelease="alpha1"),
)


def plugin_product(moniker: str) -> Product:
    """Product used to look up a plugin archive in the catalog."""
    return Product(name="elasticsearch-plugins", sub_product=moniker)


class SearchPackage(BaseModel):
    """One entry of the catalog's ``packages`` map."""

    model_config = ConfigDict(frozen=True)

    url: str
    sha_url: str | None = None
    asc_url: str | None = None
    type: str | None = None
    architecture: str | None = None
    os: list[str] | str | None = None
    classifier: str | None = None


class SearchResultKind(str, Enum):
    PACKAGES = "packages"
    EMPTY = "empty"


class CatalogSearchResult(BaseModel):
    """Decoded catalog search response.

    The catalog answers ``{"packages": {...}}`` when it found something and a
    bare ``[]`` otherwise; both shapes decode into this variant.
    """

    model_config = ConfigDict(frozen=True)

    kind: SearchResultKind
    packages: dict[str, SearchPackage] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.kind == SearchResultKind.EMPTY

    @classmethod
    def empty(cls) -> CatalogSearchResult:
        return cls(kind=SearchResultKind.EMPTY)

    @classmethod
    def from_payload(cls, payload: Any) -> CatalogSearchResult:
        """Decode a raw JSON payload; unknown shapes decode as empty."""
        if isinstance(payload, dict):
            packages = payload.get("packages")
            if isinstance(packages, dict) and packages:
                return cls(
                    kind=SearchResultKind.PACKAGES,
                    packages={
                        key: SearchPackage.model_validate(value)
                        for key, value in packages.items()
                    },
                )
        return cls.empty()


class Artifact(BaseModel):
    """A concrete downloadable build.  Constructed only by the resolver."""

    model_config = ConfigDict(frozen=True)

    product: Product
    version: Version
    package_key: str
    download_url: str
    platform: str | None = None
    build_hash: str | None = None
    sha_url: str | None = None
    asc_url: str | None = None

    @property
    def archive_name(self) -> str:
        """File name of the archive, taken from the download URL."""
        return urlparse(self.download_url).path.rsplit("/", 1)[-1] or self.package_key
