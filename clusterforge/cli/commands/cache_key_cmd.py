"""``clusterforge cache-key`` — print the cache folder name for a configuration."""

from __future__ import annotations

from typing import List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from clusterforge.core.cache_keyer import derive_cache_key
from clusterforge.errors import ClusterForgeError
from clusterforge.models.cluster import ClusterConfiguration, ClusterFeatures
from clusterforge.tasks import INSTALLATION_TASKS

console = Console()


def cache_key_cmd(
    version: str = typer.Argument(..., help="A concrete version."),
    xpack: bool = typer.Option(False, "--xpack", help="X-Pack installed."),
    security: bool = typer.Option(False, "--security", help="Security enabled."),
    ssl: bool = typer.Option(False, "--ssl", help="TLS enabled."),
    plugin: Optional[List[str]] = typer.Option(None, "--plugin", "-p", help="Plugin moniker; repeatable."),
) -> None:
    """Print the installation cache key for VERSION and the given features."""
    try:
        config = ClusterConfiguration(
            version=version,
            features=ClusterFeatures(xpack=xpack, security=security, ssl=ssl),
            plugins=plugin or [],
        )
        key = derive_cache_key(config, len(INSTALLATION_TASKS))
    except (ClusterForgeError, ValidationError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from None
    console.print(key, highlight=False)
