"""Node lifecycle state models — strictly ordered transitions."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class NodeState(str, Enum):
    """Lifecycle states of one ephemeral node."""

    UNINSTALLED = "uninstalled"
    INSTALLING = "installing"
    INSTALLED = "installed"
    CONFIGURING = "configuring"
    STARTING = "starting"
    RUNNING = "running"
    VALIDATING = "validating"
    VALIDATED = "validated"
    VALIDATION_FAILED = "validation_failed"
    STOPPING = "stopping"
    STOPPED = "stopped"
    CLEANED_UP = "cleaned_up"
    FAULTED = "faulted"


TERMINAL_STATES: frozenset[NodeState] = frozenset(
    {NodeState.CLEANED_UP, NodeState.FAULTED}
)

# FAULTED is reachable from every non-terminal state; added below.
VALID_TRANSITIONS: dict[NodeState, set[NodeState]] = {
    NodeState.UNINSTALLED: {NodeState.INSTALLING},
    NodeState.INSTALLING: {NodeState.INSTALLED},
    NodeState.INSTALLED: {NodeState.CONFIGURING},
    NodeState.CONFIGURING: {NodeState.STARTING},
    NodeState.STARTING: {NodeState.RUNNING},
    NodeState.RUNNING: {NodeState.VALIDATING, NodeState.STOPPING},
    NodeState.VALIDATING: {NodeState.VALIDATED, NodeState.VALIDATION_FAILED},
    NodeState.VALIDATED: {NodeState.STOPPING},
    NodeState.VALIDATION_FAILED: {NodeState.STOPPING},
    NodeState.STOPPING: {NodeState.STOPPED},
    NodeState.STOPPED: {NodeState.CLEANED_UP},
    NodeState.CLEANED_UP: set(),
    NodeState.FAULTED: set(),
}
for _state, _targets in VALID_TRANSITIONS.items():
    if _state not in TERMINAL_STATES:
        _targets.add(NodeState.FAULTED)


class NodeTransition(BaseModel):
    """Records a single node state transition."""

    model_config = ConfigDict(frozen=True)

    node_name: str
    from_state: NodeState
    to_state: NodeState
    reason: str | None = None
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
