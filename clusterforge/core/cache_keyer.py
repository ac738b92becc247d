"""Installation Cache Keyer.

A fully installed home (distribution + plugins + security users) is copied
into ``<local_folder>/<cache key>`` so later runs with the same configuration
start from it instead of reinstalling.  The key encodes everything that
changes the installed tree:

    ``{install task count}-{x}{sec}{ssl}[-{sorted lowercase monikers}]``

The task count acts as a schema version: changing the install pipeline
invalidates every existing cache.
"""

from __future__ import annotations

import logging
import os
import shutil
import uuid
from pathlib import Path

from clusterforge.core.versions import parse_version
from clusterforge.errors import CacheKeyError
from clusterforge.models.cluster import ClusterConfiguration

logger = logging.getLogger(__name__)

MARKER_FILE = Path("config") / "elasticsearch.yml"


def derive_cache_key(config: ClusterConfiguration, install_task_count: int) -> str:
    """Deterministic cache folder name for *config*.

    Plugin order does not matter; every feature flag and every plugin does.
    Raises ``CacheKeyError`` for alias versions, which must be resolved
    before anything is persisted under their name.
    """
    if install_task_count < 0:
        raise CacheKeyError(f"install task count must be >= 0, got {install_task_count}")
    if parse_version(config.version).is_alias:
        raise CacheKeyError(
            f"Cannot derive a cache key for unresolved version alias {config.version}"
        )

    features = config.features
    key = f"{install_task_count}-"
    if features.xpack_installed:
        key += "x"
    if features.security:
        key += "sec"
    if features.ssl:
        key += "ssl"
    if config.plugins:
        key += "-" + "".join(sorted(m.lower() for m in config.plugin_monikers))
    return key


def cached_home_path(local_folder: Path, key: str) -> Path:
    return Path(local_folder) / key


def installation_exists(
    config: ClusterConfiguration, local_folder: Path, install_task_count: int
) -> bool:
    """True when caching is on and a complete cached home is present."""
    if not config.cache_installation:
        return False
    home = cached_home_path(local_folder, derive_cache_key(config, install_task_count))
    return home.is_dir() and (home / MARKER_FILE).is_file()


def publish_installation(source_home: Path, local_folder: Path, key: str) -> bool:
    """Atomically publish *source_home* as the cached home for *key*.

    The tree is copied into a private sibling directory and renamed into
    place, so readers never observe a half-written cache.  Returns ``False``
    when another writer already published the key; the existing cache is
    left untouched in that case.
    """
    target = cached_home_path(local_folder, key)
    if target.exists():
        logger.debug("Cached home %s already exists", target)
        return False

    target.parent.mkdir(parents=True, exist_ok=True)
    staging = target.parent / f".{key}.{uuid.uuid4().hex}.tmp"
    shutil.copytree(source_home, staging, symlinks=True)
    try:
        os.rename(staging, target)
    except OSError:
        shutil.rmtree(staging, ignore_errors=True)
        if target.exists():
            logger.info("Cached home %s was published concurrently", target)
            return False
        raise
    logger.info("Published cached home %s", target)
    return True
