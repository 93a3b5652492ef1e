"""Deployment workflow for DataDAO projects.

Provides the table-driven stage state machine: deployment record, stage
table, stage executor and orchestrator.
"""

from .exceptions import (
    ConfigurationError,
    CorruptRecordError,
    DataDAOError,
    ExternalCommandError,
    IncompleteResultError,
    MissingInputError,
    OperationCancelledError,
    OperationError,
    OperationTimeoutError,
    OutOfOrderError,
    RecordLockedError,
    RecordNotFoundError,
    RecordWriteError,
    UnknownStageError,
    get_error_description,
    get_error_suggestion,
)
from .executor import ExternalOperation, StageExecutor, execute
from .orchestrator import OperationRegistry, Workflow, next_stage
from .record import DeploymentRecord, LastError
from .results import AllComplete, Blocked, ExecutionResult, RunOutcome, RunStatus
from .stages import STAGE_TABLE, StageDefinition, StageStatus, StageTable
from .store import RecordStore, atomic_write, validate_record

__all__ = [
    # Core classes
    "Workflow",
    "StageExecutor",
    "OperationRegistry",
    "ExternalOperation",
    "execute",
    "next_stage",
    # Record
    "DeploymentRecord",
    "LastError",
    "RecordStore",
    "atomic_write",
    "validate_record",
    # Stage models
    "STAGE_TABLE",
    "StageDefinition",
    "StageStatus",
    "StageTable",
    # Results
    "AllComplete",
    "Blocked",
    "ExecutionResult",
    "RunOutcome",
    "RunStatus",
    # Errors
    "DataDAOError",
    "RecordNotFoundError",
    "CorruptRecordError",
    "RecordWriteError",
    "RecordLockedError",
    "UnknownStageError",
    "OutOfOrderError",
    "MissingInputError",
    "IncompleteResultError",
    "OperationError",
    "OperationTimeoutError",
    "OperationCancelledError",
    "ConfigurationError",
    "ExternalCommandError",
    "get_error_description",
    "get_error_suggestion",
]
