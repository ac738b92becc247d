"""``clusterforge resolve`` — resolve a version and its download.

Aliases (``latest``, ``latest-7``) are resolved against the catalog's
version list first; the artifact is then looked up for the current
platform.
"""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from clusterforge.config import settings
from clusterforge.core.catalog import ArtifactCatalogResolver
from clusterforge.core.versions import resolve_version
from clusterforge.errors import ClusterForgeError
from clusterforge.models.artifacts import ELASTICSEARCH, plugin_product

console = Console()


def resolve_cmd(
    version: str = typer.Argument(..., help="Version, e.g. 7.4.0, 7.4.0-SNAPSHOT or latest-7."),
    plugin: str = typer.Option(None, "--plugin", "-p", help="Resolve this plugin instead of the server."),
    filters: str = typer.Option(None, "--filters", help="Extra comma-separated catalog filters."),
    catalog_url: str = typer.Option(None, "--catalog-url", help="Catalog root URL."),
) -> None:
    """Resolve VERSION against the artifact catalog."""
    catalog = ArtifactCatalogResolver(catalog_url or settings.catalog_url)
    product = plugin_product(plugin) if plugin else ELASTICSEARCH
    try:
        resolved = resolve_version(version, catalog)
        artifact = catalog.resolve(product, resolved, extra_filters=filters)
    except ClusterForgeError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from None

    if artifact is None:
        console.print(f"[yellow]No {product.query_name} artifact for {resolved}[/yellow]")
        raise typer.Exit(code=1)

    table = Table(title=f"{product.query_name} {resolved}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("version", str(resolved))
    table.add_row("package", artifact.package_key)
    table.add_row("url", artifact.download_url)
    table.add_row("build hash", artifact.build_hash or "-")
    table.add_row("platform", artifact.platform or "-")
    table.add_row("sha", artifact.sha_url or "-")
    console.print(table)
