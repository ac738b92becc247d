"""``clusterforge gates`` — show what a version supports."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from clusterforge.core import feature_gates
from clusterforge.core.versions import parse_version
from clusterforge.errors import ClusterForgeError
from clusterforge.models.artifacts import ELASTICSEARCH
from clusterforge.models.plugins import KNOWN_PLUGINS

console = Console()


def _yes_no(value: bool) -> str:
    return "[green]Yes[/green]" if value else "[dim]No[/dim]"


def gates_cmd(
    version: str = typer.Argument(..., help="A concrete version, e.g. 6.5.0."),
) -> None:
    """Show runtime and plugin gates for VERSION."""
    try:
        v = parse_version(version).require_concrete()
    except ClusterForgeError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from None

    skip = feature_gates.plugin_installation_skip_reason(v)
    console.print(
        Panel(
            f"bundles runtime: {_yes_no(feature_gates.bundles_runtime(v))}\n"
            f"prefers Java 8 runtime: {_yes_no(feature_gates.prefers_legacy_runtime(v))}\n"
            f"platform-suffixed archive: {_yes_no(feature_gates.uses_platform_suffix(ELASTICSEARCH, v))}\n"
            f"snapshot needs build hash URL: {_yes_no(feature_gates.requires_snapshot_qualified_url(v))}\n"
            f"X-Pack is a plugin: {_yes_no(feature_gates.xpack_requires_plugin(v))}\n"
            f"node attribute key: {feature_gates.node_attribute_key('name', v)}\n"
            f"plugin installation: {skip or '[green]supported[/green]'}",
            title=f"Version {v}",
            border_style="cyan",
        )
    )

    table = Table(title="Plugins")
    table.add_column("Plugin", style="cyan")
    table.add_column("Bundled", justify="center")
    table.add_column("Installable", justify="center")
    table.add_column("Range")
    for moniker in sorted(KNOWN_PLUGINS):
        plugin = KNOWN_PLUGINS[moniker]
        table.add_row(
            moniker,
            _yes_no(feature_gates.is_bundled_by_default(plugin, v)),
            _yes_no(feature_gates.is_installable(plugin, v)),
            plugin.supported_range,
        )
    console.print(table)
