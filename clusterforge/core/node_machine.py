"""Node lifecycle state machine.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- FAULTED reachable from every non-terminal state
- Every transition recorded as a NodeTransition and logged
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from clusterforge.errors import InvalidTransitionError
from clusterforge.models.filesystem import NodeFileSystem
from clusterforge.models.nodes import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    NodeState,
    NodeTransition,
)

if TYPE_CHECKING:
    from clusterforge.io.process import ProcessHandle

logger = logging.getLogger(__name__)


class NodeStateMachine:
    """Tracks the lifecycle state of a single node.

    Parameters
    ----------
    node_name:
        Name used in transition records and log lines.
    """

    def __init__(self, node_name: str) -> None:
        self._node_name = node_name
        self._state = NodeState.UNINSTALLED
        self._history: list[NodeTransition] = []

    @property
    def state(self) -> NodeState:
        return self._state

    @property
    def history(self) -> list[NodeTransition]:
        return list(self._history)

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    def can_transition(self, target: NodeState) -> bool:
        return target in VALID_TRANSITIONS.get(self._state, set())

    def transition(self, target: NodeState, reason: str | None = None) -> NodeTransition:
        """Move to *target*, raising ``InvalidTransitionError`` if not allowed."""
        if not self.can_transition(target):
            allowed = sorted(s.value for s in VALID_TRANSITIONS.get(self._state, set()))
            raise InvalidTransitionError(
                f"Cannot transition {self._node_name} from {self._state.value} "
                f"to {target.value}. Allowed: {allowed}"
            )
        record = NodeTransition(
            node_name=self._node_name,
            from_state=self._state,
            to_state=target,
            reason=reason,
        )
        self._history.append(record)
        self._state = target
        log = logger.warning if target == NodeState.FAULTED else logger.info
        log(
            "Node %s: %s -> %s%s",
            self._node_name,
            record.from_state.value,
            target.value,
            f" ({reason})" if reason else "",
        )
        return record

    def fault(self, reason: str) -> NodeTransition | None:
        """Move to FAULTED; a no-op for nodes already in a terminal state."""
        if self.is_terminal:
            return None
        return self.transition(NodeState.FAULTED, reason)


class NodeHandle:
    """Runtime representation of one node of an ephemeral cluster.

    Parameters
    ----------
    name:
        Node name, also the name of its ephemeral directory.
    port:
        HTTP port the node listens on.
    index:
        Position of the node in the cluster, starting at 1.
    fs:
        Resolved paths for this node.
    """

    def __init__(self, name: str, port: int, index: int, fs: NodeFileSystem) -> None:
        self.name = name
        self.port = port
        self.index = index
        self.fs = fs
        self.machine = NodeStateMachine(name)
        self.process: ProcessHandle | None = None
        # Set before install; tasks skip work already present in the cached home
        self.cached_home_exists = False

    @property
    def state(self) -> NodeState:
        return self.machine.state

    @property
    def history(self) -> list[NodeTransition]:
        return self.machine.history

    def transition(self, target: NodeState, reason: str | None = None) -> NodeTransition:
        return self.machine.transition(target, reason)

    def __repr__(self) -> str:
        return f"<NodeHandle {self.name} port={self.port} state={self.state.value}>"
