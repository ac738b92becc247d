"""Phase runner — executes ordered task lists against one node.

Running a phase:

1. acquire the node's lock (in-process ``RLock`` + cross-process ``FileLock``)
2. load the node's task log
3. for each task: skip it if already logged and the phase deduplicates,
   otherwise run it and, for deduplicated phases, persist the log
4. release the lock

Task exceptions are never caught: they abort the phase with the log already
holding every task that completed before the failure, so re-invoking the
phase resumes at the failed task.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from filelock import FileLock

from clusterforge.core.task_log import TaskLog
from clusterforge.models.phases import Phase, PhaseResult

if TYPE_CHECKING:
    from clusterforge.core.node_machine import NodeHandle
    from clusterforge.tasks.base import BaseTask

logger = logging.getLogger(__name__)

# Suppress per-acquire messages from filelock
logging.getLogger("filelock").setLevel(logging.WARNING)


class PhaseDefinition:
    """An ordered list of named tasks.

    Parameters
    ----------
    phase:
        The lifecycle phase this list implements.
    tasks:
        Task instances, executed in order.
    deduplicate:
        When ``True`` completed task names are recorded in the node's task
        log and skipped on later runs.
    """

    def __init__(self, phase: Phase, tasks: Sequence[BaseTask], deduplicate: bool) -> None:
        names = [t.name for t in tasks]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate task names in {phase.value}: {duplicates}")
        self.phase = phase
        self.tasks: tuple[BaseTask, ...] = tuple(tasks)
        self.deduplicate = deduplicate

    @property
    def task_names(self) -> list[str]:
        return [t.name for t in self.tasks]

    def __len__(self) -> int:
        return len(self.tasks)

    def __repr__(self) -> str:
        return (
            f"PhaseDefinition({self.phase.value}, tasks={self.task_names}, "
            f"deduplicate={self.deduplicate})"
        )


class PhaseRunner:
    """Runs phases for the nodes of one lifecycle.

    Owns its task lists and its locks; nothing is shared between runners
    except the on-disk task logs and lock files.

    Parameters
    ----------
    phases:
        Mapping of phase to its definition.
    """

    def __init__(self, phases: Mapping[Phase, PhaseDefinition]) -> None:
        self._phases = dict(phases)
        self._locks: dict[str, threading.RLock] = {}
        self._file_locks: dict[str, FileLock] = {}
        self._guard = threading.Lock()

    @property
    def phases(self) -> dict[Phase, PhaseDefinition]:
        return dict(self._phases)

    def definition(self, phase: Phase) -> PhaseDefinition:
        try:
            return self._phases[phase]
        except KeyError:
            raise KeyError(f"No tasks registered for phase {phase.value!r}") from None

    def _locks_for(self, node: NodeHandle) -> tuple[threading.RLock, FileLock]:
        with self._guard:
            if node.name not in self._locks:
                node.fs.lock_path.parent.mkdir(parents=True, exist_ok=True)
                self._locks[node.name] = threading.RLock()
                self._file_locks[node.name] = FileLock(str(node.fs.lock_path))
            return self._locks[node.name], self._file_locks[node.name]

    def run(self, phase: Phase, cluster: Any, node: NodeHandle) -> PhaseResult:
        """Run every task of *phase* against *node*.

        Returns what was executed and skipped.  Exceptions from tasks
        propagate unchanged.
        """
        definition = self.definition(phase)
        thread_lock, file_lock = self._locks_for(node)
        executed: list[str] = []
        skipped: list[str] = []
        outputs: dict[str, Any] = {}

        with thread_lock, file_lock:
            task_log = TaskLog(node.fs.task_log_path)
            completed = task_log.load() if definition.deduplicate else []
            logger.debug(
                "Phase %s on %s: %d tasks, %d already completed",
                phase.value,
                node.name,
                len(definition),
                len(completed),
            )
            for task in definition.tasks:
                if definition.deduplicate and task.name in completed:
                    logger.debug("{%s} already completed on %s, skipping", task.name, node.name)
                    skipped.append(task.name)
                    continue

                output = task.run(cluster, node)
                executed.append(task.name)
                if output is not None:
                    outputs[task.name] = output

                if definition.deduplicate:
                    completed.append(task.name)
                    task_log.save(completed)

        logger.info(
            "Phase %s on %s: executed=%s skipped=%s",
            phase.value,
            node.name,
            executed,
            skipped,
        )
        return PhaseResult(phase=phase, executed=executed, skipped=skipped, outputs=outputs)
