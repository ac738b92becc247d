"""Version parsing, comparison and range matching.

Range matching follows npm semantics via ``semantic_version.NpmSpec``: a
pre-release only satisfies a comparator set that names a pre-release of the
same numeric triple.  ``in_range`` layers the product convention on top, so
that a snapshot of 7.4.0 counts as 7.4.0 when checking version gates.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

import semantic_version

from clusterforge.errors import MalformedRangeError, MalformedVersionError
from clusterforge.models.versioning import LATEST, Version

if TYPE_CHECKING:
    from clusterforge.core.catalog import ArtifactCatalogResolver

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(
    r"^(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)"
    r"(?:-(?P<prerelease>[0-9A-Za-z]+(?:\.[0-9A-Za-z]+)*))?$"
)
_ALIAS_RE = re.compile(r"^latest(?:-(?P<major>\d+))?$", re.IGNORECASE)
_BUILD_HASH_RE = re.compile(r"^[0-9A-Za-z]+$")


def parse_version(spec: str | Version) -> Version:
    """Parse a version specifier.

    Accepted forms::

        7.4.0                  7.4.0-SNAPSHOT          7.2.0-alpha2
        7.4.0-SNAPSHOT:677857dd                677857dd:7.4.0-SNAPSHOT
        latest                 latest-7

    Raises ``MalformedVersionError`` for anything else.
    """
    if isinstance(spec, Version):
        return spec
    if not isinstance(spec, str):
        raise MalformedVersionError(f"Version specifier must be a string, got {spec!r}")

    text = spec.strip()
    alias = _ALIAS_RE.match(text)
    if alias:
        major = alias.group("major")
        return Version(
            major=int(major) if major else 0,
            alias=f"{LATEST}-{int(major)}" if major else LATEST,
        )

    build_hash: str | None = None
    if ":" in text:
        left, _, right = text.partition(":")
        if _VERSION_RE.match(left) and _BUILD_HASH_RE.match(right):
            text, build_hash = left, right
        elif _VERSION_RE.match(right) and _BUILD_HASH_RE.match(left):
            text, build_hash = right, left
        else:
            raise MalformedVersionError(f"Malformed build-qualified version: {spec!r}")

    match = _VERSION_RE.match(text)
    if not match:
        raise MalformedVersionError(f"Malformed version: {spec!r}")

    try:
        semantic_version.Version(text)
    except ValueError as exc:
        raise MalformedVersionError(f"Malformed version: {spec!r}: {exc}") from exc

    return Version(
        major=int(match.group("major")),
        minor=int(match.group("minor")),
        patch=int(match.group("patch")),
        prerelease=match.group("prerelease"),
        build_hash=build_hash,
    )


def compare_versions(a: Version | str, b: Version | str) -> int:
    """Return -1, 0 or 1 as *a* sorts before, equal to, or after *b*."""
    ka = parse_version(a).sort_key()
    kb = parse_version(b).sort_key()
    return (ka > kb) - (ka < kb)


def _to_semver(version: Version) -> semantic_version.Version:
    return semantic_version.Version(str(version.require_concrete()))


class Range:
    """An immutable predicate over versions.

    Comparators separated by whitespace or ``,`` are AND-ed; ``||`` separates
    alternatives.  Supports ``>=``, ``>``, ``<``, ``<=``, ``=``, ``~``, ``^``,
    x-ranges and hyphen ranges.
    """

    __slots__ = ("_expression", "_spec")

    def __init__(self, expression: str) -> None:
        normalized = self._normalize(expression)
        try:
            spec = semantic_version.NpmSpec(normalized)
        except ValueError as exc:
            raise MalformedRangeError(
                f"Malformed range expression {expression!r}: {exc}"
            ) from exc
        object.__setattr__(self, "_expression", expression)
        object.__setattr__(self, "_spec", spec)

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("Range is immutable")

    @classmethod
    def parse(cls, expression: str | Range) -> Range:
        if isinstance(expression, Range):
            return expression
        return cls(expression)

    @staticmethod
    def _normalize(expression: str) -> str:
        if not isinstance(expression, str) or not expression.strip():
            raise MalformedRangeError(f"Empty range expression: {expression!r}")
        # "a, b" is an AND like "a b"; "|| " stays an OR
        text = expression.replace(",", " ")
        # ">= 7.2.0" -> ">=7.2.0"
        text = re.sub(r"([<>=~^]+)\s+", r"\1", text)
        return " ".join(text.split())

    @property
    def expression(self) -> str:
        return self._expression

    def satisfies(self, version: Version) -> bool:
        """Strict semver match.  Pure; never raises for a parsed range.

        Alias versions never satisfy a range.
        """
        if version.is_alias:
            return False
        return bool(self._spec.match(_to_semver(version)))

    def __contains__(self, version: Version) -> bool:
        return self.satisfies(version)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Range):
            return NotImplemented
        return self._expression == other._expression

    def __hash__(self) -> int:
        return hash(self._expression)

    def __repr__(self) -> str:
        return f"Range({self._expression!r})"

    def __str__(self) -> str:
        return self._expression


def in_range(version: Version | str, range_: Range | str) -> bool:
    """Product convention for version gates.

    A strict match first; failing that, a pre-release is checked as the
    release it is a build of (``7.4.0-SNAPSHOT`` as ``7.4.0``).
    """
    v = parse_version(version)
    r = Range.parse(range_)
    if r.satisfies(v):
        return True
    return v.is_prerelease and r.satisfies(v.release)


def resolve_version(
    spec: str | Version, catalog: ArtifactCatalogResolver
) -> Version:
    """Turn a specifier into a concrete version.

    Concrete versions are returned as-is without touching the network.
    Aliases are resolved against the catalog's version list.
    """
    version = parse_version(spec)
    if not version.is_alias:
        return version

    major = version.alias_major
    resolved = catalog.latest() if major is None else catalog.latest_satisfying(major)
    logger.info("Resolved version alias %s to %s", version, resolved)
    return resolved
