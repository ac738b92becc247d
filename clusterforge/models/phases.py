"""Phase and task outcome models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Phase(str, Enum):
    """Ordered lifecycle phases, each a fixed list of named tasks."""

    INSTALL = "install"
    BEFORE_START = "before_start"
    AFTER_START_VALIDATE = "after_start_validate"
    AFTER_STOP = "after_stop"


class OutcomeKind(str, Enum):
    INSTALLED = "installed"
    SKIPPED = "skipped"
    FAILED = "failed"


class TaskOutcome(BaseModel):
    """Tagged result for work that may legitimately be skipped.

    Skipping is an expected outcome (plugin shipped by default, not valid for
    the version, unsupported major) and is reported here rather than raised.
    """

    model_config = ConfigDict(frozen=True)

    subject: str
    kind: OutcomeKind
    reason: str = ""

    @classmethod
    def installed(cls, subject: str) -> TaskOutcome:
        return cls(subject=subject, kind=OutcomeKind.INSTALLED)

    @classmethod
    def skipped(cls, subject: str, reason: str) -> TaskOutcome:
        return cls(subject=subject, kind=OutcomeKind.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, subject: str, error: str) -> TaskOutcome:
        return cls(subject=subject, kind=OutcomeKind.FAILED, reason=error)


class PhaseResult(BaseModel):
    """What a single phase run did for one node."""

    model_config = ConfigDict(frozen=True)

    phase: Phase
    executed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    outputs: dict[str, Any] = Field(default_factory=dict)
