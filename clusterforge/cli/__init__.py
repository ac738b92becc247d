"""clusterforge CLI — Typer-based command-line interface.

Provides the ``clusterforge`` command with subcommands for resolving
versions against the catalog, inspecting version gates and cache keys,
and running a cluster interactively.

All output uses Rich for formatted terminal display.
"""
