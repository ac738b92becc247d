"""Cluster lifecycle controller — the central coordinator for one cluster.

``EphemeralCluster`` wires together the catalog resolver, the phase runner,
the node state machines and the three I/O collaborators (transport, process
launcher, validation client) into a single lifecycle:

    resolve version -> resolve artifact -> install -> before start
        -> spawn -> validate -> (caller) -> stop -> after stop

Every collaborator is injected; the defaults talk to the real catalog, the
network and the local process table.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from clusterforge.config import ForgeSettings
from clusterforge.config import settings as global_settings
from clusterforge.core import feature_gates
from clusterforge.core.cache_keyer import cached_home_path, derive_cache_key, installation_exists
from clusterforge.core.catalog import ArtifactCatalogResolver
from clusterforge.core.node_machine import NodeHandle
from clusterforge.core.runtime import (
    build_node_settings,
    runtime_env,
    select_runtime_home,
    settings_arguments,
)
from clusterforge.core.task_runner import PhaseDefinition, PhaseRunner
from clusterforge.core.versions import resolve_version
from clusterforge.errors import (
    ClusterForgeError,
    ProcessStartError,
    RequiredEnvironmentMissingError,
    ValidationFailedError,
)
from clusterforge.io.client import HttpValidationClient, ValidationClient
from clusterforge.io.process import ProcessLauncher, SubprocessLauncher
from clusterforge.io.transport import HttpTransport, Transport
from clusterforge.models.artifacts import ELASTICSEARCH, Artifact
from clusterforge.models.cluster import ClusterConfiguration
from clusterforge.models.filesystem import NodeFileSystem
from clusterforge.models.nodes import NodeState
from clusterforge.models.phases import Phase, PhaseResult
from clusterforge.models.plugins import XPACK, Plugin
from clusterforge.models.versioning import Version
from clusterforge.tasks import default_phases

logger = logging.getLogger(__name__)

ClientFactory = Callable[["EphemeralCluster", NodeHandle], ValidationClient]


def default_client_factory(cluster: EphemeralCluster, node: NodeHandle) -> ValidationClient:
    """HTTP client for *node*, authenticating as the admin user under security."""
    config = cluster.config
    auth = (config.admin_username, config.admin_password) if config.features.security else None
    return HttpValidationClient(
        cluster.node_uri(node),
        auth=auth,
        verify=not config.features.ssl,
    )


class EphemeralCluster:
    """Provisions, starts, validates and tears down one ephemeral cluster.

    Use as a context manager so teardown always runs::

        with EphemeralCluster(ClusterConfiguration(version="7.4.0")) as cluster:
            uri = cluster.nodes_uris()[0]

    Parameters
    ----------
    config:
        The desired cluster.  Never mutated.
    settings:
        Process settings; the module singleton when omitted.
    catalog:
        Artifact catalog resolver.
    transport:
        Downloads and extracts archives.
    launcher:
        Starts node processes and runs the plugin and user tools.
    client_factory:
        Builds the validation client for a node.
    phases:
        Task lists per phase; ``default_phases()`` when omitted.
    """

    def __init__(
        self,
        config: ClusterConfiguration,
        *,
        settings: ForgeSettings | None = None,
        catalog: ArtifactCatalogResolver | None = None,
        transport: Transport | None = None,
        launcher: ProcessLauncher | None = None,
        client_factory: ClientFactory | None = None,
        phases: Mapping[Phase, PhaseDefinition] | None = None,
    ) -> None:
        self.config = config
        self.settings = settings or global_settings
        self.catalog = catalog or ArtifactCatalogResolver(self.settings.catalog_url)
        self.transport: Transport = transport or HttpTransport()
        self.launcher: ProcessLauncher = launcher or SubprocessLauncher()
        self._client_factory = client_factory or default_client_factory
        self._runner = PhaseRunner(phases if phases is not None else default_phases())

        self.name = config.cluster_name or f"{config.node_prefix}-{uuid.uuid4().hex[:8]}"
        self._version: Version | None = None
        self._artifact: Artifact | None = None
        self._nodes: list[NodeHandle] = []
        self._clients: dict[str, ValidationClient] = {}
        self._results: list[PhaseResult] = []
        self._started = False
        self._disposed = False

    # ------------------------------------------------------------------
    # Resolved state
    # ------------------------------------------------------------------

    @property
    def version(self) -> Version:
        """The concrete version; aliases are resolved on first access."""
        if self._version is None:
            self._version = resolve_version(self.config.version, self.catalog)
        return self._version

    @property
    def artifact(self) -> Artifact:
        if self._artifact is None:
            self._artifact = self.catalog.resolve_or_raise(ELASTICSEARCH, self.version)
        return self._artifact

    @property
    def nodes(self) -> list[NodeHandle]:
        return list(self._nodes)

    @property
    def started(self) -> bool:
        return self._started

    @property
    def phase_results(self) -> list[PhaseResult]:
        return list(self._results)

    @property
    def local_folder(self) -> Path:
        return Path(self.settings.cache_root) / str(self.version)

    @property
    def install_task_count(self) -> int:
        return len(self._runner.definition(Phase.INSTALL))

    @property
    def cache_key(self) -> str:
        return derive_cache_key(self._resolved_config(), self.install_task_count)

    @property
    def cached_home(self) -> Path:
        return cached_home_path(self.local_folder, self.cache_key)

    @property
    def cached_home_exists(self) -> bool:
        return installation_exists(
            self._resolved_config(), self.local_folder, self.install_task_count
        )

    @property
    def java_home(self) -> Path | None:
        return self.config.java_home or self.settings.java_home

    @property
    def required_plugins(self) -> list[Plugin]:
        """Configured plugins, plus X-Pack where it still ships as a plugin."""
        plugins = list(self.config.plugins)
        monikers = {p.moniker.lower() for p in plugins}
        if (
            self.config.features.xpack_installed
            and feature_gates.xpack_requires_plugin(self.version)
            and XPACK.moniker not in monikers
        ):
            plugins.append(XPACK)
        return plugins

    def _resolved_config(self) -> ClusterConfiguration:
        return self.config.model_copy(update={"version": self.version})

    def node_states(self) -> dict[str, NodeState]:
        return {node.name: node.state for node in self._nodes}

    # ------------------------------------------------------------------
    # Collaborators per node
    # ------------------------------------------------------------------

    def process_env(self, node: NodeHandle) -> dict[str, str]:
        """Environment overrides for every binary run on *node*."""
        version = self.version
        home = select_runtime_home(
            version, node.fs.home, self.java_home, self.settings.java8_home
        )
        if home is None and feature_gates.requires_runtime_home(version):
            raise RequiredEnvironmentMissingError(
                f"Version {version} needs a runtime home; set CLUSTERFORGE_JAVA_HOME or JAVA_HOME"
            )
        return runtime_env(home)

    def client_for(self, node: NodeHandle) -> ValidationClient:
        if node.name not in self._clients:
            self._clients[node.name] = self._client_factory(self, node)
        return self._clients[node.name]

    def node_uri(self, node: NodeHandle, host: str = "localhost") -> str:
        scheme = "https" if self.config.features.ssl else "http"
        return f"{scheme}://{host}:{node.port}"

    def nodes_uris(self, host: str = "localhost") -> list[str]:
        uris: list[str] = []
        for node in self._nodes:
            uri = self.node_uri(node, host)
            if uri not in uris:
                uris.append(uri)
        return uris

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> EphemeralCluster:
        """Bring the cluster up and validate it.

        On any failure every node is faulted, the cluster is disposed and
        the original exception is re-raised.
        """
        if self._disposed:
            raise ClusterForgeError(f"Cluster {self.name} has already been disposed")
        if self._started:
            return self
        try:
            self._provision()
        except BaseException as exc:
            logger.error("Starting cluster %s failed: %s", self.name, exc)
            for node in self._nodes:
                node.machine.fault(f"{type(exc).__name__}: {exc}")
            try:
                self.dispose()
            except Exception:
                logger.exception("Teardown of %s after a failed start also failed", self.name)
            raise
        self._started = True
        logger.info("Cluster %s is up: %s", self.name, ", ".join(self.nodes_uris()))
        return self

    def _provision(self) -> None:
        version = self.version
        logger.info("Cluster %s: version %s, %d node(s)", self.name, version, self.config.number_of_nodes)
        artifact = self.artifact
        logger.info("Cluster %s: distribution %s", self.name, artifact.download_url)

        self._nodes = [self._create_node(i) for i in range(1, self.config.number_of_nodes + 1)]
        cached = self.cached_home_exists

        for node in self._nodes:
            node.cached_home_exists = cached
            node.transition(NodeState.INSTALLING, "cached home" if cached else None)
            self._run(Phase.INSTALL, node)
            node.transition(NodeState.INSTALLED)

        for node in self._nodes:
            node.transition(NodeState.CONFIGURING)
            self._run(Phase.BEFORE_START, node)

        for node in self._nodes:
            node.transition(NodeState.STARTING)
            self._spawn(node)
            node.transition(NodeState.RUNNING)

        for node in self._nodes:
            self._validate(node)

    def _create_node(self, index: int) -> NodeHandle:
        name = self.config.create_node_name(index)
        fs = NodeFileSystem.create(
            cache_root=self.settings.cache_root,
            ephemeral_root=self.settings.ephemeral_root,
            version=self.version,
            cluster_name=self.name,
            node_name=name,
            windows=self.catalog.platform.is_windows,
        )
        return NodeHandle(name=name, port=self.config.starting_port + index - 1, index=index, fs=fs)

    def _run(self, phase: Phase, node: NodeHandle) -> PhaseResult:
        result = self._runner.run(phase, self, node)
        self._results.append(result)
        return result

    def _spawn(self, node: NodeHandle) -> None:
        version = self.version
        settings = build_node_settings(self.config, version, self.name, node, self._nodes)
        node.process = self.launcher.start(
            node.fs.binary,
            settings_arguments(settings, version),
            self.process_env(node),
            name=node.name,
            echo_after_started=self.config.show_output_after_started,
        )
        timeout = self.config.start_timeout_seconds or self.settings.start_timeout_seconds
        if not node.process.wait_for_started(timeout):
            tail = "\n".join(node.process.lines()[-20:])
            raise ProcessStartError(
                f"{node.name} did not report started within {timeout}s. Last output:\n{tail}"
            )

    def _validate(self, node: NodeHandle) -> None:
        node.transition(NodeState.VALIDATING)
        try:
            self._run(Phase.AFTER_START_VALIDATE, node)
        except ValidationFailedError as exc:
            node.transition(NodeState.VALIDATION_FAILED, str(exc))
            raise
        except Exception as exc:
            node.transition(NodeState.VALIDATION_FAILED, str(exc))
            raise ValidationFailedError(f"Validating {node.name} failed: {exc}") from exc
        node.transition(NodeState.VALIDATED)

    def dispose(self) -> None:
        """Stop every node and run the after-stop phase.  Idempotent.

        Every node is torn down even if one fails; the first error is
        re-raised once all nodes were handled.
        """
        if self._disposed:
            return
        self._disposed = True
        first_error: BaseException | None = None
        for node in self._nodes:
            try:
                self._teardown(node)
            except Exception as exc:
                logger.error("Tearing down %s failed: %s", node.name, exc)
                node.machine.fault(f"teardown: {exc}")
                if first_error is None:
                    first_error = exc
        self._started = False
        if first_error is not None:
            raise first_error

    def _teardown(self, node: NodeHandle) -> None:
        machine = node.machine
        if machine.can_transition(NodeState.STOPPING):
            node.transition(NodeState.STOPPING)
        if node.process is not None:
            self.launcher.stop(node.process)
            node.process = None
        if machine.state == NodeState.STOPPING:
            node.transition(NodeState.STOPPED)
        self._run(Phase.AFTER_STOP, node)
        if machine.state == NodeState.STOPPED:
            node.transition(NodeState.CLEANED_UP)

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> EphemeralCluster:
        return self.start()

    def __exit__(self, *exc_info: Any) -> None:
        self.dispose()

    def __repr__(self) -> str:
        return f"<EphemeralCluster {self.name} version={self.config.version} nodes={len(self._nodes)}>"
