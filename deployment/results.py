"""Typed results returned by the deployment core.

These are the only channel through which the core reports to a presentation
layer; no exception crosses the core boundary.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .exceptions import DataDAOError
from .record import DeploymentRecord


@dataclass
class ExecutionResult:
    """Outcome of executing a single stage.

    Attributes:
        stage: Id of the executed stage.
        record: Record to persist (a new object; the input is never mutated).
        success: Whether the stage is complete after this call.
        skipped: True if the stage was already complete and nothing ran.
        error: Error describing the refusal or failure.
        produced: Fields reported by the operation (only on success).
        invoked: Whether the external operation was called.
        duration_seconds: Time spent in the external operation.
    """

    stage: str
    record: DeploymentRecord
    success: bool
    skipped: bool = False
    error: DataDAOError | None = None
    produced: dict[str, Any] = field(default_factory=dict)
    invoked: bool = False
    duration_seconds: float = 0.0


@dataclass(frozen=True)
class Blocked:
    """The next stage cannot run because a required field is unmet.

    Attributes:
        stage: Id of the stage that is blocked.
        field: The unmet field path.
        reason: User-facing explanation including what to run first.
    """

    stage: str
    field: str
    reason: str


@dataclass(frozen=True)
class AllComplete:
    """Every required stage is completed. Terminal state."""


class RunStatus(Enum):
    """Outcome kind of an orchestrator invocation."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"
    BLOCKED = "blocked"
    READY = "ready"
    ALL_COMPLETE = "all_complete"
    ERROR = "error"


@dataclass
class RunOutcome:
    """Outcome of one orchestrator invocation.

    Attributes:
        status: Outcome kind.
        record: Record after the invocation (None if it could not be loaded).
        stage: Id of the stage that was considered, if any.
        error: Error for FAILED and ERROR outcomes, and explicit-stage refusals.
        blocked: Blocking reason for BLOCKED outcomes.
        execution: Stage execution details, if a stage was executed.
    """

    status: RunStatus
    record: DeploymentRecord | None = None
    stage: str | None = None
    error: DataDAOError | None = None
    blocked: Blocked | None = None
    execution: ExecutionResult | None = None

    @property
    def advanced(self) -> bool:
        """Whether a stage was newly completed by this invocation."""
        return self.status == RunStatus.COMPLETED
