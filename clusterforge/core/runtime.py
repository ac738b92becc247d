"""Runtime home selection and node start arguments.

The runtime home is threaded explicitly into the environment of every
spawned binary; nothing here reads or writes ``os.environ``.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from clusterforge.core import feature_gates
from clusterforge.models.cluster import ClusterConfiguration, TrialMode
from clusterforge.models.versioning import Version

if TYPE_CHECKING:
    from clusterforge.core.node_machine import NodeHandle

JAVA_HOME = "JAVA_HOME"
TESTING_ATTRIBUTE = "testingcluster"


def bundled_runtime_home(home: Path) -> Path | None:
    """The JDK shipped inside a distribution, if there is one."""
    for candidate in (home / "jdk", home / "jdk.app" / "Contents" / "Home"):
        if candidate.is_dir():
            return candidate
    return None


def select_runtime_home(
    version: Version,
    home: Path,
    java_home: Path | None,
    java8_home: Path | None = None,
) -> Path | None:
    """Runtime home for *version*, or ``None`` when none is known.

    A bundled JDK wins; versions before 6.0 prefer a Java 8 home when one is
    configured; otherwise the configured runtime home is used.
    """
    if feature_gates.bundles_runtime(version):
        bundled = bundled_runtime_home(home)
        if bundled is not None:
            return bundled
    if feature_gates.prefers_legacy_runtime(version) and java8_home is not None:
        return java8_home
    return java_home


def runtime_env(runtime_home: Path | None) -> dict[str, str]:
    return {JAVA_HOME: str(runtime_home)} if runtime_home is not None else {}


def transport_port(config: ClusterConfiguration, index: int) -> int:
    return config.starting_port + 100 + index - 1


def build_node_settings(
    config: ClusterConfiguration,
    version: Version,
    cluster_name: str,
    node: NodeHandle,
    nodes: list[NodeHandle],
) -> dict[str, str]:
    """Settings passed on the command line when starting *node*."""
    fs = node.fs
    settings: dict[str, str] = {
        "cluster.name": cluster_name,
        "node.name": node.name,
        "http.port": str(node.port),
        "path.data": str(fs.data_path),
        "path.logs": str(fs.logs_path),
        "path.repo": str(fs.repository_path),
    }
    port_key = "transport.port" if version.major >= 7 else "transport.tcp.port"
    settings[port_key] = str(transport_port(config, node.index))

    seed_hosts = ",".join(f"localhost:{transport_port(config, n.index)}" for n in nodes)
    if feature_gates.uses_zen_discovery(version):
        if len(nodes) > 1:
            settings["discovery.zen.minimum_master_nodes"] = str(
                feature_gates.minimum_master_nodes(len(nodes))
            )
            settings["discovery.zen.ping.unicast.hosts"] = seed_hosts
    else:
        settings["cluster.initial_master_nodes"] = ",".join(n.name for n in nodes)
        if len(nodes) > 1:
            settings["discovery.seed_hosts"] = seed_hosts

    features = config.features
    if version.release >= feature_gates.V6_3 or (version.major >= 5 and features.xpack_installed):
        settings["xpack.security.enabled"] = "true" if features.security else "false"
    if features.ssl:
        settings["xpack.security.http.ssl.enabled"] = "true"
    if config.trial_mode == TrialMode.TRIAL and version.release >= feature_gates.V6_3:
        settings["xpack.license.self_generated.type"] = "trial"

    settings[feature_gates.node_attribute_key(TESTING_ATTRIBUTE, version)] = "true"
    settings.update(config.node_settings)
    return settings


def settings_arguments(settings: dict[str, str], version: Version) -> list[str]:
    """``-E key=value`` pairs; 2.x used ``-Des.key=value``."""
    args: list[str] = []
    for key, value in settings.items():
        if version.major >= 5:
            args.extend(["-E", f"{key}={value}"])
        else:
            args.append(f"-Des.{key}={value}")
    return args
