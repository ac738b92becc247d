"""Version model — concrete builds and floating aliases.

Parsing lives in ``clusterforge.core.versions``; this module only holds the
immutable value and its total order.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clusterforge.errors import UnresolvedAliasError

LATEST = "latest"
SNAPSHOT = "SNAPSHOT"

# Dot-separated alphanumeric identifiers; numeric ones without leading zeros
_PRERELEASE_IDENTIFIER_RE = re.compile(r"^(?:0|[1-9]\d*|\d*[A-Za-z][0-9A-Za-z]*)$")


class Version(BaseModel):
    """An immutable product version.

    Ordering: numeric triple first; at an equal triple a release sorts after
    any pre-release; pre-release tags compare lexically.  The build hash does
    not take part in ordering.

    Alias versions (``latest``, ``latest-7``) carry no numeric identity and
    refuse to be ordered until resolved against the catalog.
    """

    model_config = ConfigDict(frozen=True)

    major: int = Field(default=0, ge=0)
    minor: int = Field(default=0, ge=0)
    patch: int = Field(default=0, ge=0)
    prerelease: str | None = None
    build_hash: str | None = None
    alias: str | None = None  # "latest" or "latest-<major>"

    @field_validator("prerelease")
    @classmethod
    def _validate_prerelease(cls, value: str | None) -> str | None:
        if value is None:
            return value
        if not all(_PRERELEASE_IDENTIFIER_RE.match(part) for part in value.split(".")):
            raise ValueError(f"invalid pre-release tag: {value!r}")
        return value

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_alias(self) -> bool:
        return self.alias is not None

    @property
    def is_prerelease(self) -> bool:
        return self.prerelease is not None

    @property
    def is_snapshot(self) -> bool:
        return self.prerelease == SNAPSHOT

    @property
    def alias_major(self) -> int | None:
        """Major pinned by a ``latest-N`` alias, ``None`` for plain ``latest``."""
        if self.alias is None or self.alias == LATEST:
            return None
        return int(self.alias.split("-", 1)[1])

    @property
    def release(self) -> Version:
        """The numeric triple of this version, without pre-release or hash."""
        self.require_concrete()
        return Version(major=self.major, minor=self.minor, patch=self.patch)

    def require_concrete(self) -> Version:
        """Return self, or raise ``UnresolvedAliasError`` for alias versions."""
        if self.alias is not None:
            raise UnresolvedAliasError(
                f"Version alias {self.alias!r} must be resolved before use"
            )
        return self

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def sort_key(self) -> tuple[int, int, int, int, str]:
        self.require_concrete()
        return (
            self.major,
            self.minor,
            self.patch,
            0 if self.prerelease is not None else 1,
            self.prerelease or "",
        )

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.sort_key() <= other.sort_key()

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.sort_key() > other.sort_key()

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.sort_key() >= other.sort_key()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        if self.alias is not None:
            return self.alias
        base = f"{self.major}.{self.minor}.{self.patch}"
        return f"{base}-{self.prerelease}" if self.prerelease else base

    @property
    def qualified(self) -> str:
        """``7.4.0-SNAPSHOT:677857dd`` when a build hash is pinned."""
        return f"{self}:{self.build_hash}" if self.build_hash else str(self)
