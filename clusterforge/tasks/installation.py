"""Install phase — download, extract and prepare a node home.

Install tasks are recorded in the node's task log and skipped once done.
Each one also checks the disk before acting, so it is safe to re-run after
the log was lost.  When a cached home for the configuration exists, the
download, extraction and plugin work is skipped entirely.
"""

from __future__ import annotations

import shutil
from typing import TYPE_CHECKING

from clusterforge.core import feature_gates
from clusterforge.core.runtime import select_runtime_home
from clusterforge.errors import RequiredEnvironmentMissingError, TaskExecutionError
from clusterforge.models.artifacts import plugin_product
from clusterforge.models.phases import OutcomeKind, TaskOutcome
from clusterforge.models.plugins import Plugin
from clusterforge.tasks.base import BaseTask

if TYPE_CHECKING:
    from clusterforge.core.node_machine import NodeHandle
    from clusterforge.core.orchestrator import EphemeralCluster


class CreateLocalApplicationDirectory(BaseTask):
    """Create the persistent per-version folder under the cache root."""

    def run(self, cluster: EphemeralCluster, node: NodeHandle) -> None:
        local_folder = node.fs.local_folder
        if local_folder.is_dir():
            return
        self.diagnostic("creating local application directory [%s]", local_folder)
        local_folder.mkdir(parents=True, exist_ok=True)


class EnsureRuntimeHome(BaseTask):
    """Fail early when a version without a bundled JDK has no runtime home."""

    def run(self, cluster: EphemeralCluster, node: NodeHandle) -> None:
        version = cluster.version
        if not feature_gates.requires_runtime_home(version):
            self.diagnostic("[%s] bundles its own runtime", version)
            return
        home = select_runtime_home(
            version,
            node.fs.installation_home,
            cluster.java_home,
            cluster.settings.java8_home,
        )
        if home is None:
            raise RequiredEnvironmentMissingError(
                f"Version {version} does not bundle a runtime: set "
                "CLUSTERFORGE_JAVA_HOME or JAVA_HOME, or pass java_home "
                "in the cluster configuration"
            )
        self.diagnostic("using runtime home [%s] for [%s]", home, version)


class DownloadDistribution(BaseTask):
    """Download the distribution archive into the local folder."""

    def run(self, cluster: EphemeralCluster, node: NodeHandle) -> None:
        if node.cached_home_exists:
            return
        artifact = cluster.artifact
        target = node.fs.local_folder / artifact.archive_name
        if target.is_file():
            self.diagnostic("archive already downloaded [%s]", target)
            return
        self.diagnostic("downloading [%s] from {%s} {%s}", cluster.version, artifact.download_url, target)
        cluster.transport.download(artifact.download_url, target)
        self.diagnostic("downloaded [%s] to {%s}", cluster.version, target)


class ExtractDistribution(BaseTask):
    """Unpack the archive into the pristine per-version installation home."""

    def run(self, cluster: EphemeralCluster, node: NodeHandle) -> None:
        if node.cached_home_exists:
            return
        fs = node.fs
        if fs.installation_home.is_dir():
            self.diagnostic("already extracted [%s]", fs.installation_home)
            return
        archive = fs.local_folder / cluster.artifact.archive_name
        self.diagnostic("extracting [%s] to [%s]", archive, fs.local_folder)
        cluster.transport.extract(archive, fs.local_folder)
        if not fs.installation_home.is_dir():
            raise TaskExecutionError(
                f"Extracting {archive} did not produce {fs.installation_home}"
            )


class CopyHomeToNodeDirectory(BaseTask):
    """Give the node its own home: from the cache if possible, else the
    freshly extracted installation."""

    def run(self, cluster: EphemeralCluster, node: NodeHandle) -> None:
        fs = node.fs
        if fs.home.is_dir():
            return
        source = cluster.cached_home if node.cached_home_exists else fs.installation_home
        self.diagnostic("copying home [%s] to [%s]", source, fs.home)
        fs.home.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(source, fs.home, symlinks=True)


class InstallPlugins(BaseTask):
    """Install every requested plugin that the version does not ship.

    Returns one ``TaskOutcome`` per plugin.  Skips are outcomes, not errors;
    any failed install raises ``TaskExecutionError`` once every plugin has
    been attempted.
    """

    def run(self, cluster: EphemeralCluster, node: NodeHandle) -> list[TaskOutcome]:
        version = cluster.version
        plugins = cluster.required_plugins

        if node.cached_home_exists:
            return [TaskOutcome.skipped(p.moniker, "present in cached home") for p in plugins]

        reason = feature_gates.plugin_installation_skip_reason(version)
        if reason is not None:
            self.diagnostic("skipping install plugins: %s", reason)
            return [TaskOutcome.skipped(p.moniker, reason) for p in plugins]

        if cluster.config.validate_plugins_to_install:
            invalid = [p.moniker for p in plugins if not feature_gates.is_installable(p, version)]
            if invalid:
                raise TaskExecutionError(
                    f"Can not install the following plugins for version {version}: "
                    + ", ".join(invalid)
                )

        outcomes = [self._install(cluster, node, plugin) for plugin in plugins]
        failed = [o for o in outcomes if o.kind == OutcomeKind.FAILED]
        if failed:
            raise TaskExecutionError(
                "Plugin installation failed: "
                + "; ".join(f"{o.subject}: {o.reason}" for o in failed)
            )
        return outcomes

    def _install(self, cluster: EphemeralCluster, node: NodeHandle, plugin: Plugin) -> TaskOutcome:
        version = cluster.version
        moniker = plugin.moniker
        if feature_gates.is_bundled_by_default(plugin, version):
            self.diagnostic(
                "SKIP plugin [%s] shipped OOTB as of: {%s}", moniker, plugin.shipped_by_default_as_of
            )
            return TaskOutcome.skipped(moniker, f"shipped by default as of {plugin.shipped_by_default_as_of}")
        if not feature_gates.is_installable(plugin, version):
            self.diagnostic("SKIP plugin [%s] not valid for version: {%s}", moniker, version)
            return TaskOutcome.skipped(moniker, f"not valid for version {version}")
        if (node.fs.home / "plugins" / moniker).is_dir():
            self.diagnostic("SKIP plugin [%s] already installed", moniker)
            return TaskOutcome.skipped(moniker, "already installed")

        archive = node.fs.local_folder / f"{moniker}-{version}.zip"
        if not archive.is_file():
            artifact = cluster.catalog.resolve(plugin_product(moniker), version)
            if artifact is None:
                return TaskOutcome.failed(moniker, f"no downloadable artifact for {version}")
            self.diagnostic("downloading [%s] from {%s}", moniker, artifact.download_url)
            cluster.transport.download(artifact.download_url, archive)

        self.diagnostic("attempting install [%s]", moniker)
        node.fs.config_path.mkdir(parents=True, exist_ok=True)
        exit_code = cluster.launcher.run(
            node.fs.plugin_binary(version),
            ["install", "--batch", archive.resolve().as_uri()],
            cluster.process_env(node),
        )
        if exit_code != 0:
            return TaskOutcome.failed(moniker, f"plugin tool exited with {exit_code}")
        return TaskOutcome.installed(moniker)
