"""After-start validation.  Asserts current truth, so it runs every time.

Each task raises ``ValidationFailedError`` when the running node does not
match the configuration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from clusterforge.core import feature_gates
from clusterforge.errors import ValidationFailedError
from clusterforge.models.cluster import TrialMode
from clusterforge.tasks.base import BaseTask

if TYPE_CHECKING:
    from clusterforge.core.node_machine import NodeHandle
    from clusterforge.core.orchestrator import EphemeralCluster


class ValidateRunningVersion(BaseTask):
    def run(self, cluster: EphemeralCluster, node: NodeHandle) -> str:
        reported = cluster.client_for(node).root().get("version", {}).get("number", "")
        expected = str(cluster.version)
        if reported.lower() != expected.lower():
            raise ValidationFailedError(
                f"{node.name} reports version {reported!r}, expected {expected!r}"
            )
        return reported


class ValidateLicense(BaseTask):
    def run(self, cluster: EphemeralCluster, node: NodeHandle) -> str | None:
        config = cluster.config
        if not config.features.xpack_installed:
            return None
        version = cluster.version
        payload = cluster.client_for(node).license(feature_gates.license_path(version))
        license_info = payload.get("license", {})
        status = license_info.get("status")
        if status != "active":
            raise ValidationFailedError(f"{node.name} license status is {status!r}, expected 'active'")
        license_type = license_info.get("type")
        if config.trial_mode == TrialMode.TRIAL and license_type != "trial":
            raise ValidationFailedError(f"{node.name} license type is {license_type!r}, expected 'trial'")
        return license_type


class ValidatePlugins(BaseTask):
    """Every plugin that had to be installed must show up on the node."""

    def run(self, cluster: EphemeralCluster, node: NodeHandle) -> list[str]:
        version = cluster.version
        if feature_gates.plugin_installation_skip_reason(version) is not None:
            return []
        expected = [
            p.moniker
            for p in cluster.required_plugins
            if not feature_gates.is_bundled_by_default(p, version)
            and feature_gates.is_installable(p, version)
        ]
        if not expected:
            return []

        rows = cluster.client_for(node).cat_plugins()
        if any("name" in row for row in rows):
            rows = [row for row in rows if row.get("name") == node.name]
        installed = {str(row.get("component", "")).lower() for row in rows}
        missing = [m for m in expected if m.lower() not in installed]
        if missing:
            raise ValidationFailedError(
                f"{node.name} is missing plugins: {', '.join(missing)}"
            )
        return expected


class ValidateClusterState(BaseTask):
    def run(self, cluster: EphemeralCluster, node: NodeHandle) -> str:
        expected_nodes = cluster.config.number_of_nodes
        health = cluster.client_for(node).cluster_health(wait_for_nodes=expected_nodes)
        status = health.get("status")
        if health.get("timed_out") or status not in ("green", "yellow"):
            raise ValidationFailedError(
                f"Cluster health on {node.name} is {status!r} "
                f"(timed_out={health.get('timed_out')})"
            )
        if health.get("number_of_nodes", expected_nodes) != expected_nodes:
            raise ValidationFailedError(
                f"Cluster has {health.get('number_of_nodes')} nodes, expected {expected_nodes}"
            )
        return status
