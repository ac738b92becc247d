"""Abstract base task.

Every concrete task inherits from BaseTask and implements only ``run()``.
A task's name is its class name; that name is what the install phase
records in a node's task log, so renaming a task class invalidates the
logs (and, through the task count, nothing else).
"""

from __future__ import annotations

import abc
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from clusterforge.core.node_machine import NodeHandle
    from clusterforge.core.orchestrator import EphemeralCluster

logger = logging.getLogger("clusterforge.tasks")


class BaseTask(abc.ABC):
    """Abstract base for all lifecycle tasks.

    Subclasses **must** implement ``run(cluster, node)``.  Installation
    tasks must be idempotent: running one twice has the same net effect as
    running it once.
    """

    @property
    def name(self) -> str:
        return type(self).__name__

    @abc.abstractmethod
    def run(self, cluster: EphemeralCluster, node: NodeHandle) -> Any:
        """Execute the task against *node*.

        Returns
        -------
        Any:
            Optional output reported in the phase result; ``None`` for
            tasks with nothing to report.
        """
        ...

    def diagnostic(self, message: str, *args: Any) -> None:
        """Log *message* prefixed with ``{TaskName}``."""
        logger.info("{%s} " + message, self.name, *args)

    def __repr__(self) -> str:
        return f"<{self.name}>"
