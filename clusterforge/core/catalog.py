"""Artifact Catalog Resolver — turns a product + version into a download.

Talks to the remote build catalog:

* ``GET {base}/versions`` -> ``{"versions": ["7.4.0", "7.5.0-SNAPSHOT", ...]}``
* ``GET {base}/search/{version}/{query}`` -> ``{"packages": {...}}`` or ``[]``

The version list is fetched once per resolver and kept for its lifetime.
Artifacts are never cached: snapshot builds are overwritten remotely, so
every ``resolve`` call asks the catalog again.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Any
from urllib.parse import quote, urljoin

import requests

from clusterforge.config import DEFAULT_CATALOG_URL
from clusterforge.core import feature_gates
from clusterforge.core.platform import Platform, current_platform
from clusterforge.core.versions import Range, in_range, parse_version
from clusterforge.errors import (
    ArtifactNotFoundError,
    CatalogRequestError,
    MalformedVersionError,
    NoMatchingVersionError,
)
from clusterforge.models.artifacts import (
    Artifact,
    CatalogSearchResult,
    Product,
    SearchPackage,
)
from clusterforge.models.versioning import Version

logger = logging.getLogger(__name__)

# "analysis-icu-7.4.0-SNAPSHOT.zip" -> ("analysis-icu", "7.4.0-SNAPSHOT")
_PACKAGE_KEY_RE = re.compile(
    r"(.*?)-(\d+\.\d+\.\d+(?:-(?:SNAPSHOT|alpha\d+|beta\d+|rc\d+))?)"
)
# https://snapshots.elastic.co/7.4.0-677857dd/downloads/... -> "677857dd"
_BUILD_HASH_RE = re.compile(r"https://snapshots\.elastic\.co/(\d+\.\d+\.\d+-([^/]+)?)")


def split_package_key(key: str) -> tuple[str, str] | None:
    """Split a catalog package key into ``(product, version)`` tokens."""
    match = _PACKAGE_KEY_RE.match(key)
    if not match:
        return None
    return match.group(1), match.group(2)


def extract_build_hash(url: str | None) -> str | None:
    """Build hash embedded in a snapshot download URL, if any."""
    if not url:
        return None
    match = _BUILD_HASH_RE.search(url)
    if not match:
        return None
    return match.group(2)


class ArtifactCatalogResolver:
    """Client for the remote build catalog.

    Parameters
    ----------
    base_url:
        Catalog root, e.g. ``https://artifacts-api.elastic.co/v1/``.
    session:
        Optional ``requests.Session``; one is created when omitted.
    platform:
        Platform to resolve platform-dependent products for.  Defaults to the
        running interpreter's platform.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_CATALOG_URL,
        session: requests.Session | None = None,
        platform: Platform | None = None,
    ) -> None:
        self._base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._session = session if session is not None else requests.Session()
        self._platform = platform if platform is not None else current_platform()
        self._versions: list[Version] | None = None
        self._versions_lock = threading.Lock()

    @property
    def platform(self) -> Platform:
        return self._platform

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _fetch_json(self, path: str) -> Any:
        url = urljoin(self._base_url, path)
        logger.debug("GET %s", url)
        try:
            response = self._session.get(url)
        except requests.RequestException as exc:
            raise CatalogRequestError(f"Catalog request to {url} failed: {exc}") from exc
        if response.status_code >= 400:
            raise CatalogRequestError(
                f"Catalog request to {url} returned HTTP {response.status_code}"
            )
        try:
            return response.json()
        except ValueError as exc:
            raise CatalogRequestError(f"Catalog response from {url} is not JSON") from exc

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def list_available_versions(self) -> list[Version]:
        """All versions the catalog knows, ascending.  Fetched once."""
        if self._versions is not None:
            return list(self._versions)
        with self._versions_lock:
            if self._versions is None:
                self._versions = self._load_versions()
        return list(self._versions)

    def _load_versions(self) -> list[Version]:
        payload = self._fetch_json("versions")
        raw = payload.get("versions", []) if isinstance(payload, dict) else []
        parsed: dict[str, Version] = {}
        for entry in raw:
            try:
                version = parse_version(entry)
            except MalformedVersionError:
                logger.debug("Ignoring unparseable catalog version %r", entry)
                continue
            if version.is_alias:
                continue
            parsed.setdefault(str(version), version)
        versions = sorted(parsed.values(), key=Version.sort_key)
        logger.info("Catalog lists %d versions", len(versions))
        return versions

    def latest(self) -> Version:
        """Newest release or snapshot in the catalog."""
        versions = self.list_available_versions()
        if not versions:
            raise NoMatchingVersionError("Catalog returned no versions")
        return versions[-1]

    def latest_satisfying(self, constraint: Range | str | int) -> Version:
        """Maximum catalog version matching *constraint*.

        An ``int`` pins the major version; pre-releases of that major count.
        Raises ``NoMatchingVersionError`` when nothing matches.
        """
        versions = self.list_available_versions()
        if isinstance(constraint, int) and not isinstance(constraint, bool):
            matches = [v for v in versions if v.major == constraint]
        else:
            range_ = Range.parse(constraint)
            matches = [v for v in versions if in_range(v, range_)]
        if not matches:
            raise NoMatchingVersionError(f"No catalog version satisfies {constraint!r}")
        return matches[-1]

    def latest_snapshot_for_major(self, major: int) -> Version:
        matches = [
            v for v in self.list_available_versions() if v.is_snapshot and v.major == major
        ]
        if not matches:
            raise NoMatchingVersionError(f"No SNAPSHOT build for major {major}")
        return matches[-1]

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    def build_query(
        self,
        product: Product,
        version: Version,
        platform: Platform | None = None,
        extra_filters: str | None = None,
    ) -> str:
        """Comma-joined search query: ``product[,platform][,filters]``."""
        platform = platform or self._platform
        parts = [product.query_name]
        if product.platform_dependent:
            if feature_gates.uses_platform_suffix(product, version):
                parts.append(platform.os_moniker)
            else:
                parts.append(platform.search_filter)
        if extra_filters and extra_filters.strip():
            parts.append(extra_filters.strip())
        return ",".join(parts)

    def search(self, version: Version, query: str) -> CatalogSearchResult:
        version.require_concrete()
        payload = self._fetch_json(f"search/{version}/{quote(query, safe=',')}")
        return CatalogSearchResult.from_payload(payload)

    def expected_suffix(
        self, product: Product, version: Version, platform: Platform | None = None
    ) -> str:
        """Suffix a platform-dependent package key must end with."""
        platform = platform or self._platform
        ext = platform.archive_extension
        if feature_gates.uses_platform_suffix(product, version):
            return f"{version}-{platform.package_suffix}.{ext}"
        return f"{version}.{ext}"

    def resolve(
        self,
        product: Product,
        version: Version,
        platform: Platform | None = None,
        extra_filters: str | None = None,
    ) -> Artifact | None:
        """Best-matching artifact, or ``None`` when the catalog has none.

        Candidates without a classifier are tried first; the first candidate
        that survives every filter wins.  A pinned build hash on *version*
        rejects candidates built from a different commit.
        """
        version.require_concrete()
        platform = platform or self._platform
        query = self.build_query(product, version, platform, extra_filters)
        result = self.search(version, query)
        if result.is_empty:
            logger.info("Catalog has no packages for %s %s", product.query_name, version)
            return None

        # sorted() is stable: catalog order is kept within each group
        candidates = sorted(
            result.packages.items(), key=lambda kv: kv[1].classifier is not None
        )
        suffix = self.expected_suffix(product, version, platform)
        for key, package in candidates:
            artifact = self._match_candidate(product, version, platform, suffix, key, package)
            if artifact is not None:
                logger.info("Resolved %s %s to %s", product.query_name, version, artifact.download_url)
                return artifact

        logger.info(
            "No catalog package for %s %s matched (%d candidates)",
            product.query_name,
            version,
            len(candidates),
        )
        return None

    def _match_candidate(
        self,
        product: Product,
        version: Version,
        platform: Platform,
        suffix: str,
        key: str,
        package: SearchPackage,
    ) -> Artifact | None:
        if product.platform_dependent and not key.endswith(suffix):
            return None
        tokens = split_package_key(key)
        if tokens is None:
            return None
        product_token, version_token = tokens
        if product_token.lower() != product.query_name.lower():
            return None
        if version_token.lower() != str(version).lower():
            return None
        build_hash = extract_build_hash(package.url)
        if version.build_hash and build_hash and build_hash != version.build_hash:
            logger.debug("Skipping %s: build %s != pinned %s", key, build_hash, version.build_hash)
            return None
        return Artifact(
            product=product,
            version=version,
            package_key=key,
            download_url=package.url,
            platform=platform.package_suffix if product.platform_dependent else None,
            build_hash=build_hash,
            sha_url=package.sha_url,
            asc_url=package.asc_url,
        )

    def resolve_or_raise(
        self,
        product: Product,
        version: Version,
        platform: Platform | None = None,
        extra_filters: str | None = None,
    ) -> Artifact:
        artifact = self.resolve(product, version, platform, extra_filters)
        if artifact is None:
            raise ArtifactNotFoundError(
                f"No downloadable {product.query_name} artifact for version {version}"
            )
        return artifact
