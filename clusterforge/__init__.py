"""clusterforge: ephemeral Elasticsearch clusters as test fixtures.

  - Version parsing, npm-style ranges and ``latest``/``latest-N`` aliases
  - Artifact catalog resolution (release and snapshot builds)
  - Version-gated plugin and runtime rules
  - Cached, resumable installs keyed by configuration
  - Lifecycle controller: install, configure, start, validate, tear down
"""

__version__ = "0.1.0"
__description__ = "Provision, validate and tear down ephemeral Elasticsearch clusters"

from clusterforge.core.catalog import ArtifactCatalogResolver
from clusterforge.core.orchestrator import EphemeralCluster
from clusterforge.core.versions import Range, parse_version, resolve_version
from clusterforge.models.cluster import ClusterConfiguration, ClusterFeatures

__all__ = [
    "ArtifactCatalogResolver",
    "ClusterConfiguration",
    "ClusterFeatures",
    "EphemeralCluster",
    "Range",
    "parse_version",
    "resolve_version",
    "__version__",
]
