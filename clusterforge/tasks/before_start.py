"""Before-start phase.  Runs on every start and is never logged."""

from __future__ import annotations

from typing import TYPE_CHECKING

from clusterforge.core.cache_keyer import publish_installation
from clusterforge.errors import TaskExecutionError
from clusterforge.tasks.base import BaseTask

if TYPE_CHECKING:
    from clusterforge.core.node_machine import NodeHandle
    from clusterforge.core.orchestrator import EphemeralCluster


class CreateEphemeralDirectories(BaseTask):
    def run(self, cluster: EphemeralCluster, node: NodeHandle) -> None:
        fs = node.fs
        for path in (fs.data_path, fs.logs_path, fs.repository_path, fs.config_path):
            path.mkdir(parents=True, exist_ok=True)


class EnsureSecurityUsers(BaseTask):
    """Add the admin user to the file realm when security is enabled."""

    def run(self, cluster: EphemeralCluster, node: NodeHandle) -> None:
        config = cluster.config
        if not config.features.security:
            return
        version = cluster.version
        username = config.admin_username
        for users_file in (node.fs.config_path / "users", node.fs.config_path / "x-pack" / "users"):
            if users_file.is_file() and any(
                line.startswith(f"{username}:")
                for line in users_file.read_text(encoding="utf-8").splitlines()
            ):
                self.diagnostic("user [%s] already exists", username)
                return

        self.diagnostic("adding user [%s]", username)
        exit_code = cluster.launcher.run(
            node.fs.users_binary(version),
            ["useradd", username, "-p", config.admin_password, "-r", "superuser"],
            cluster.process_env(node),
        )
        if exit_code != 0:
            raise TaskExecutionError(f"Adding user {username} exited with {exit_code}")


class CacheInstallation(BaseTask):
    """Publish the fully prepared node home as the cached home."""

    def run(self, cluster: EphemeralCluster, node: NodeHandle) -> bool:
        if not cluster.config.cache_installation:
            return False
        if cluster.cached_home_exists:
            self.diagnostic("cached home already exists [%s]", cluster.cached_home)
            return False
        self.diagnostic("caching {%s} to [%s]", node.fs.home, cluster.cached_home)
        return publish_installation(node.fs.home, cluster.local_folder, cluster.cache_key)


class PrintYamlContents(BaseTask):
    def run(self, cluster: EphemeralCluster, node: NodeHandle) -> None:
        if not cluster.config.print_yaml_files:
            return
        for path in sorted(node.fs.config_path.glob("*.yml")):
            self.diagnostic("contents of [%s]:\n%s", path, path.read_text(encoding="utf-8"))
