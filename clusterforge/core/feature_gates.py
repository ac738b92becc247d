"""Feature Gate Matrix — pure version-gating rules.

No I/O happens here.  Every function answers a question about a version (and
optionally a plugin or product) so the rules can be tested against a literal
table.
"""

from __future__ import annotations

from clusterforge.core.versions import in_range, parse_version
from clusterforge.models.artifacts import Product
from clusterforge.models.plugins import Plugin
from clusterforge.models.versioning import Version

V5 = Version(major=5)
V6 = Version(major=6)
V6_3 = Version(major=6, minor=3)
V7 = Version(major=7)


def is_bundled_by_default(plugin: Plugin, version: Version) -> bool:
    """True once *version* ships the plugin as a module out of the box."""
    if plugin.shipped_by_default_as_of is None:
        return False
    return version >= parse_version(plugin.shipped_by_default_as_of)


def is_installable(plugin: Plugin, version: Version) -> bool:
    """True if *version* falls within the plugin's supported range."""
    return in_range(version, plugin.supported_range)


def requires_snapshot_qualified_url(version: Version) -> bool:
    """Pre-7 snapshot builds are only downloadable from build-hash paths."""
    return version.is_snapshot and version.major < 7


def plugin_installation_skip_reason(version: Version) -> str | None:
    """Why plugins cannot be installed for *version*, or ``None`` if they can.

    2.x plugins cannot be installed reliably, and pre-7 snapshot plugins are
    not published per build.  Both are product limitations, not failures.
    """
    if version.major == 2:
        return f"plugin installation is not supported on 2.x versions [{version}]"
    if requires_snapshot_qualified_url(version):
        return f"SNAPSHOT plugins are not published for < 7.x versions [{version}]"
    return None


def bundles_runtime(version: Version) -> bool:
    """7.0.0 and later ship their own JDK."""
    return version.release >= V7


def requires_runtime_home(version: Version) -> bool:
    return not bundles_runtime(version)


def prefers_legacy_runtime(version: Version) -> bool:
    """Versions before 6.0.0 want a Java 8 runtime when one is available."""
    return version < V6


def uses_platform_suffix(product: Product, version: Version) -> bool:
    """Archive names carry an ``os-arch`` suffix after the product's cut-over."""
    if not product.platform_dependent or product.platform_suffix_after is None:
        return False
    return version > product.platform_suffix_after


def xpack_requires_plugin(version: Version) -> bool:
    """X-Pack is a separately installed plugin from 5.0 until 6.3."""
    return V5 <= version.release < V6_3


def node_attribute_key(attribute: str, version: Version) -> str:
    """Custom node attributes moved under ``node.attr.`` in 5.0."""
    prefix = "attr." if version.major >= 5 else ""
    return f"node.{prefix}{attribute}"


def minimum_master_nodes(number_of_nodes: int) -> int:
    """Quorum of master-eligible nodes."""
    return max(1, number_of_nodes // 2 + 1)


def uses_zen_discovery(version: Version) -> bool:
    """7.0 replaced minimum_master_nodes with cluster bootstrapping."""
    return version.major < 7


def license_path(version: Version) -> str:
    """License endpoint moved out of ``_xpack`` in 6.x."""
    return "/_license" if version.major >= 6 else "/_xpack/license"
