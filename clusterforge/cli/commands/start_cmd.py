"""``clusterforge start`` — run a cluster until interrupted."""

from __future__ import annotations

import time
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel

from clusterforge.core.orchestrator import EphemeralCluster
from clusterforge.errors import ClusterForgeError
from clusterforge.models.cluster import ClusterConfiguration, ClusterFeatures

console = Console()


def start_cmd(
    version: str = typer.Argument(..., help="Version or alias, e.g. 7.4.0 or latest-7."),
    nodes: int = typer.Option(1, "--nodes", "-n", min=1, help="Number of nodes."),
    plugin: Optional[List[str]] = typer.Option(None, "--plugin", "-p", help="Plugin moniker; repeatable."),
    xpack: bool = typer.Option(False, "--xpack", help="Install X-Pack."),
    security: bool = typer.Option(False, "--security", help="Enable security."),
    ssl: bool = typer.Option(False, "--ssl", help="Enable TLS on HTTP."),
    no_cache: bool = typer.Option(False, "--no-cache", help="Do not use or populate the home cache."),
    no_cleanup: bool = typer.Option(False, "--no-cleanup", help="Keep node directories after stop."),
    port: int = typer.Option(9200, "--port", help="HTTP port of the first node."),
) -> None:
    """Start a cluster for VERSION and keep it up until Ctrl+C."""
    config = ClusterConfiguration(
        version=version,
        number_of_nodes=nodes,
        plugins=plugin or [],
        features=ClusterFeatures(xpack=xpack, security=security, ssl=ssl),
        cache_installation=not no_cache,
        no_cleanup_after_stop=no_cleanup,
        starting_port=port,
        show_output_after_started=True,
    )
    cluster = EphemeralCluster(config)
    try:
        cluster.start()
    except ClusterForgeError as exc:
        console.print(f"[red]Cluster failed to start:[/red] {exc}")
        raise typer.Exit(code=1) from None

    try:
        console.print(
            Panel(
                "\n".join(cluster.nodes_uris()),
                title=f"{cluster.name} ({cluster.version})",
                subtitle="Ctrl+C to stop",
                border_style="green",
            )
        )
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("[yellow]Stopping...[/yellow]")
    finally:
        cluster.dispose()
