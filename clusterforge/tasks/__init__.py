"""Lifecycle tasks — ordered registries per phase.

Usage::

    from clusterforge.tasks import default_phases

    phases = default_phases()
    runner = PhaseRunner(phases)
    runner.run(Phase.INSTALL, cluster, node)

The install list's length is part of every cache key: adding or removing an
install task invalidates existing cached homes.
"""

from __future__ import annotations

from clusterforge.core.task_runner import PhaseDefinition
from clusterforge.models.phases import Phase
from clusterforge.tasks.after_stop import CleanUpDirectories
from clusterforge.tasks.base import BaseTask
from clusterforge.tasks.before_start import (
    CacheInstallation,
    CreateEphemeralDirectories,
    EnsureSecurityUsers,
    PrintYamlContents,
)
from clusterforge.tasks.installation import (
    CopyHomeToNodeDirectory,
    CreateLocalApplicationDirectory,
    DownloadDistribution,
    EnsureRuntimeHome,
    ExtractDistribution,
    InstallPlugins,
)
from clusterforge.tasks.validation import (
    ValidateClusterState,
    ValidateLicense,
    ValidatePlugins,
    ValidateRunningVersion,
)

# ---------------------------------------------------------------------------
# Task registries, in execution order
# ---------------------------------------------------------------------------

INSTALLATION_TASKS: list[type[BaseTask]] = [
    CreateLocalApplicationDirectory,
    EnsureRuntimeHome,
    DownloadDistribution,
    ExtractDistribution,
    CopyHomeToNodeDirectory,
    InstallPlugins,
]

BEFORE_START_TASKS: list[type[BaseTask]] = [
    CreateEphemeralDirectories,
    EnsureSecurityUsers,
    CacheInstallation,
    PrintYamlContents,
]

VALIDATION_TASKS: list[type[BaseTask]] = [
    ValidateRunningVersion,
    ValidateLicense,
    ValidatePlugins,
    ValidateClusterState,
]

AFTER_STOP_TASKS: list[type[BaseTask]] = [
    CleanUpDirectories,
]

# Only the install phase is recorded in the task log.
DEDUPLICATED_PHASES: frozenset[Phase] = frozenset({Phase.INSTALL})


def default_phases() -> dict[Phase, PhaseDefinition]:
    """Fresh task instances for every phase."""
    registry = {
        Phase.INSTALL: INSTALLATION_TASKS,
        Phase.BEFORE_START: BEFORE_START_TASKS,
        Phase.AFTER_START_VALIDATE: VALIDATION_TASKS,
        Phase.AFTER_STOP: AFTER_STOP_TASKS,
    }
    return {
        phase: PhaseDefinition(
            phase,
            [cls() for cls in classes],
            deduplicate=phase in DEDUPLICATED_PHASES,
        )
        for phase, classes in registry.items()
    }


__all__ = [
    "AFTER_STOP_TASKS",
    "BEFORE_START_TASKS",
    "DEDUPLICATED_PHASES",
    "INSTALLATION_TASKS",
    "VALIDATION_TASKS",
    "BaseTask",
    "default_phases",
]
