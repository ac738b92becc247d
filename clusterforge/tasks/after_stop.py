"""After-stop phase."""

from __future__ import annotations

import shutil
from typing import TYPE_CHECKING

from clusterforge.tasks.base import BaseTask

if TYPE_CHECKING:
    from clusterforge.core.node_machine import NodeHandle
    from clusterforge.core.orchestrator import EphemeralCluster


class CleanUpDirectories(BaseTask):
    """Remove the node's ephemeral directory, and the cluster directory once
    no node directory is left in it."""

    def run(self, cluster: EphemeralCluster, node: NodeHandle) -> bool:
        if cluster.config.no_cleanup_after_stop or cluster.settings.keep_ephemeral:
            self.diagnostic("keeping [%s] for debugging", node.fs.node_root)
            return False
        fs = node.fs
        if fs.node_root.exists():
            self.diagnostic("removing [%s]", fs.node_root)
            shutil.rmtree(fs.node_root)
        cluster_root = fs.cluster_root
        if cluster_root.is_dir():
            remaining = [p for p in cluster_root.iterdir() if p != fs.repository_path]
            if not remaining:
                shutil.rmtree(cluster_root)
        return True
