"""On-disk layout of one node.

Two roots are involved:

* ``local_folder`` — persistent, per version, under the cache root.  Holds
  downloaded archives, the extracted distribution and cached homes.
* ``node_root`` — ephemeral, per cluster and node.  Holds the copied home,
  data, logs and the node's task log.  Removed on cleanup.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict

from clusterforge.models.versioning import Version


class NodeFileSystem(BaseModel):
    """Resolved paths for one node of an ephemeral cluster."""

    model_config = ConfigDict(frozen=True)

    local_folder: Path
    installation_home: Path
    cluster_root: Path
    node_root: Path
    home: Path
    data_path: Path
    logs_path: Path
    repository_path: Path
    task_log_path: Path
    lock_path: Path
    binary_suffix: str = ""

    @classmethod
    def create(
        cls,
        *,
        cache_root: Path,
        ephemeral_root: Path,
        version: Version,
        cluster_name: str,
        node_name: str,
        windows: bool = False,
    ) -> NodeFileSystem:
        version.require_concrete()
        local_folder = Path(cache_root) / str(version)
        cluster_root = Path(ephemeral_root) / cluster_name
        node_root = cluster_root / node_name
        return cls(
            local_folder=local_folder,
            installation_home=local_folder / f"elasticsearch-{version}",
            cluster_root=cluster_root,
            node_root=node_root,
            home=node_root / "home",
            data_path=node_root / "data",
            logs_path=node_root / "logs",
            repository_path=cluster_root / "repository",
            task_log_path=node_root / "tasks.log",
            lock_path=Path(cache_root) / "locks" / f"{cluster_name}-{node_name}.lock",
            binary_suffix=".bat" if windows else "",
        )

    @property
    def config_path(self) -> Path:
        return self.home / "config"

    @property
    def binary(self) -> Path:
        return self.home / "bin" / f"elasticsearch{self.binary_suffix}"

    def plugin_binary(self, version: Version) -> Path:
        """Plugin tool inside the node home; renamed in 5.0."""
        name = "elasticsearch-plugin" if version.major >= 5 else "plugin"
        return self.home / "bin" / f"{name}{self.binary_suffix}"

    def users_binary(self, version: Version) -> Path:
        """File-realm user tool inside the node home; moved out of x-pack in 6.3."""
        if version >= Version(major=6, minor=3, patch=0):
            return self.home / "bin" / f"elasticsearch-users{self.binary_suffix}"
        return self.home / "bin" / "x-pack" / f"users{self.binary_suffix}"
