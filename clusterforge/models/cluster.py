"""Cluster configuration — the caller-owned description of a test fixture."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clusterforge.models.plugins import Plugin, get_plugin
from clusterforge.models.versioning import Version


class ClusterFeatures(BaseModel):
    """Optional product features enabled on every node."""

    model_config = ConfigDict(frozen=True)

    xpack: bool = False
    security: bool = False
    ssl: bool = False

    @property
    def xpack_installed(self) -> bool:
        """Security and TLS both ride on the X-Pack distribution."""
        return self.xpack or self.security or self.ssl


class TrialMode(str, Enum):
    NONE = "none"
    TRIAL = "trial"


class ClusterConfiguration(BaseModel):
    """Full description of a desired ephemeral cluster.

    Read-only once handed to ``EphemeralCluster``.  ``version`` may be an
    alias string (``latest-7``); it is resolved when the cluster starts.
    """

    model_config = ConfigDict(frozen=True)

    version: str | Version
    number_of_nodes: int = Field(default=1, ge=1)
    features: ClusterFeatures = ClusterFeatures()
    plugins: tuple[Plugin, ...] = ()

    cluster_name: str | None = None
    node_prefix: str = "ephemeral"
    starting_port: int = 9200

    cache_installation: bool = True
    no_cleanup_after_stop: bool = False
    validate_plugins_to_install: bool = True
    print_yaml_files: bool = False
    show_output_after_started: bool = False
    start_timeout_seconds: float | None = None  # falls back to ForgeSettings

    # Explicit runtime home threaded into the process environment
    java_home: Path | None = None
    node_settings: dict[str, str] = Field(default_factory=dict)
    trial_mode: TrialMode = TrialMode.NONE

    admin_username: str = "admin"
    admin_password: str = "admin-password"

    @field_validator("plugins", mode="before")
    @classmethod
    def _coerce_plugins(cls, value: object) -> object:
        if value is None:
            return ()
        if isinstance(value, (list, tuple)):
            return tuple(get_plugin(p) if isinstance(p, str) else p for p in value)
        return value

    @field_validator("plugins")
    @classmethod
    def _unique_monikers(cls, value: tuple[Plugin, ...]) -> tuple[Plugin, ...]:
        seen: set[str] = set()
        for plugin in value:
            key = plugin.moniker.lower()
            if key in seen:
                raise ValueError(f"duplicate plugin moniker: {plugin.moniker!r}")
            seen.add(key)
        return value

    @property
    def plugin_monikers(self) -> list[str]:
        return [p.moniker for p in self.plugins]

    def create_node_name(self, index: int) -> str:
        return f"{self.node_prefix}-node-{index}"
