"""Main Typer application — imports and registers all CLI commands.

Entry point: ``clusterforge`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from clusterforge.cli.commands.cache_key_cmd import cache_key_cmd
from clusterforge.cli.commands.gates_cmd import gates_cmd
from clusterforge.cli.commands.resolve_cmd import resolve_cmd
from clusterforge.cli.commands.start_cmd import start_cmd
from clusterforge.config import settings

app = typer.Typer(
    name="clusterforge",
    help="clusterforge: ephemeral Elasticsearch clusters for tests.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="resolve", help="Resolve a version and its downloadable artifact.")(resolve_cmd)
app.command(name="gates", help="Show version gates for a version.")(gates_cmd)
app.command(name="cache-key", help="Print the installation cache key for a configuration.")(cache_key_cmd)
app.command(name="start", help="Start a cluster and keep it running until Ctrl+C.")(start_cmd)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None, "--log-level", "-l", help="Logging level (defaults to CLUSTERFORGE_LOG_LEVEL)."
    ),
) -> None:
    """Configure logging for every subcommand."""
    level = (log_level or settings.log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=settings.debug, show_path=False)],
        force=True,
    )


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
