"""clusterforge data models — Pydantic v2, frozen (immutable)."""

from clusterforge.models.artifacts import (
    ELASTICSEARCH,
    Artifact,
    CatalogSearchResult,
    Product,
    SearchPackage,
    SearchResultKind,
    plugin_product,
)
from clusterforge.models.cluster import ClusterConfiguration, ClusterFeatures, TrialMode
from clusterforge.models.filesystem import NodeFileSystem
from clusterforge.models.nodes import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    NodeState,
    NodeTransition,
)
from clusterforge.models.phases import OutcomeKind, Phase, PhaseResult, TaskOutcome
from clusterforge.models.plugins import KNOWN_PLUGINS, XPACK, Plugin, get_plugin
from clusterforge.models.versioning import LATEST, SNAPSHOT, Version

__all__ = [
    # versioning
    "LATEST",
    "SNAPSHOT",
    "Version",
    # artifacts
    "ELASTICSEARCH",
    "Artifact",
    "CatalogSearchResult",
    "Product",
    "SearchPackage",
    "SearchResultKind",
    "plugin_product",
    # plugins
    "KNOWN_PLUGINS",
    "XPACK",
    "Plugin",
    "get_plugin",
    # cluster
    "ClusterConfiguration",
    "ClusterFeatures",
    "TrialMode",
    # nodes
    "NodeFileSystem",
    "NodeState",
    "NodeTransition",
    "TERMINAL_STATES",
    "VALID_TRANSITIONS",
    # phases
    "OutcomeKind",
    "Phase",
    "PhaseResult",
    "TaskOutcome",
]
