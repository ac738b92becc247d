"""Runtime settings — env-driven via pydantic-settings.

Reads from a ``.env`` file and ``CLUSTERFORGE_*`` environment variables.  The
runtime home used for versions that do not bundle their own JDK is the one
exception to the prefix: ``JAVA_HOME`` is honoured when
``CLUSTERFORGE_JAVA_HOME`` is absent.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CATALOG_URL = "https://artifacts-api.elastic.co/v1/"


class ForgeSettings(BaseSettings):
    """Process-wide settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export CLUSTERFORGE_LOG_LEVEL=DEBUG
        export CLUSTERFORGE_CACHE_ROOT=/var/cache/clusterforge
        export CLUSTERFORGE_JAVA_HOME=/usr/lib/jvm/java-8

    Or via .env file::

        CLUSTERFORGE_CATALOG_URL=https://artifacts-api.internal/v1/
        CLUSTERFORGE_KEEP_EPHEMERAL=true
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CLUSTERFORGE_",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Persistent downloads, extracted distributions and cached homes
    cache_root: Path = Path.home() / ".clusterforge"
    # Per-run node directories (home copy, data, logs, task logs)
    ephemeral_root: Path = Path(tempfile.gettempdir()) / "clusterforge"

    catalog_url: str = DEFAULT_CATALOG_URL

    java_home: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("CLUSTERFORGE_JAVA_HOME", "JAVA_HOME"),
    )
    java8_home: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("CLUSTERFORGE_JAVA8_HOME", "JAVA8_HOME"),
    )

    start_timeout_seconds: float = 120.0
    # Keep ephemeral node directories after stop, for post-mortem debugging
    keep_ephemeral: bool = False


# Module-level singleton: import as `from clusterforge.config import settings`
settings = ForgeSettings()
