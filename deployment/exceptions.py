"""Exception hierarchy for DataDAO deployment.

Provides specific exception types for every way a deployment step can be
refused or fail. The core never lets these escape its entry points: they are
carried inside result objects so the presentation layer can render them.
"""


class DataDAOError(Exception):
    """Base exception for all DataDAO deployment errors.

    Attributes:
        message: Human-readable error description.
        details: Additional error context (optional).
        kind: Short error kind used by presentation layers.
    """

    kind = "Error"

    def __init__(self, message: str, details: str | None = None):
        """Initialize DataDAO error.

        Args:
            message: Human-readable error description.
            details: Additional error context.
        """
        self.message = message
        self.details = details
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with details."""
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class RecordNotFoundError(DataDAOError):
    """The deployment record does not exist at the given locator."""

    kind = "NotFound"

    def __init__(self, locator: str, details: str | None = None):
        self.locator = str(locator)
        super().__init__(f"Deployment record not found: {self.locator}", details)


class CorruptRecordError(DataDAOError):
    """The deployment record exists but fails structural validation.

    Examples:
        - Invalid JSON
        - Missing name or ownerAddress
        - A completed stage whose produced fields are absent
        - A completed stage whose predecessor is not completed
    """

    kind = "Corrupt"

    def __init__(self, locator: str, details: str | None = None):
        self.locator = str(locator)
        super().__init__(f"Deployment record is corrupt: {self.locator}", details)


class RecordWriteError(DataDAOError):
    """The deployment record could not be written."""

    kind = "WriteError"

    def __init__(self, locator: str, details: str | None = None):
        self.locator = str(locator)
        super().__init__(f"Failed to write deployment record: {self.locator}", details)


class RecordLockedError(DataDAOError):
    """Another process holds the lock on the deployment record."""

    kind = "Locked"

    def __init__(self, locator: str, details: str | None = None):
        self.locator = str(locator)
        super().__init__(f"Deployment record is locked by another process: {self.locator}", details)


class UnknownStageError(DataDAOError):
    """A stage id that is not in the stage table was requested."""

    kind = "UnknownStage"

    def __init__(self, stage: str):
        self.stage = stage
        super().__init__(f"Unknown stage '{stage}'")


class StageError(DataDAOError):
    """Base class for errors attributed to a single stage.

    Attributes:
        stage: Id of the stage the error belongs to.
    """

    def __init__(self, stage: str, message: str, details: str | None = None):
        self.stage = stage
        super().__init__(message, details)


class OutOfOrderError(StageError):
    """A stage was requested before one of its predecessors completed."""

    kind = "OutOfOrder"

    def __init__(self, stage: str, missing_predecessor: str):
        self.missing_predecessor = missing_predecessor
        super().__init__(
            stage, f"Stage '{stage}' requires '{missing_predecessor}' to be completed first"
        )


class MissingInputError(StageError):
    """A field required by a stage is absent from the record."""

    kind = "MissingInput"

    def __init__(self, stage: str, field: str):
        self.field = field
        super().__init__(stage, f"Stage '{stage}' is missing required input '{field}'")


class IncompleteResultError(StageError):
    """An external operation did not report every field its stage produces."""

    kind = "IncompleteResult"

    def __init__(self, stage: str, missing_field: str):
        self.field = missing_field
        super().__init__(
            stage, f"Operation for stage '{stage}' did not report '{missing_field}'"
        )


class OperationError(StageError):
    """The external operation itself failed.

    Examples:
        - Contract deployment tool crashed
        - On-chain transaction reverted
        - Network error while publishing
    """

    kind = "OperationError"


class OperationTimeoutError(OperationError):
    """The external operation did not finish within its timeout.

    The remote side may or may not have completed; the stage is not marked
    complete and stays retryable.
    """

    kind = "Timeout"

    def __init__(self, stage: str, timeout: float):
        self.timeout = timeout
        super().__init__(stage, f"Operation for stage '{stage}' timed out after {timeout}s")


class OperationCancelledError(OperationError):
    """The external operation was cancelled before it reported a result."""

    kind = "Cancelled"

    def __init__(self, stage: str):
        super().__init__(stage, f"Operation for stage '{stage}' was cancelled")


class ConfigurationError(DataDAOError):
    """Invalid project configuration or settings file."""

    kind = "Configuration"


class ExternalCommandError(DataDAOError):
    """Raised by operation adapters when a wrapped tool fails.

    Attributes:
        command: Command line that was executed (if any).
        exit_code: Process exit code (if any).
    """

    kind = "ExternalCommand"

    def __init__(
        self,
        message: str,
        details: str | None = None,
        command: str | None = None,
        exit_code: int | None = None,
    ):
        self.command = command
        self.exit_code = exit_code
        super().__init__(message, details)


# Map error kinds to user-friendly descriptions
ERROR_DESCRIPTIONS = {
    "NotFound": "No deployment record in this directory",
    "Corrupt": "Deployment record failed validation",
    "WriteError": "Deployment record could not be saved",
    "Locked": "Another deployment command is running",
    "UnknownStage": "Requested stage does not exist",
    "OutOfOrder": "Stage requested before its predecessors completed",
    "MissingInput": "Stage input missing from the deployment record",
    "IncompleteResult": "Operation under-reported its outputs",
    "OperationError": "Deployment operation failed",
    "Timeout": "Deployment operation timed out",
    "Cancelled": "Deployment operation was cancelled",
    "Configuration": "Project configuration error",
    "ExternalCommand": "External tool failed",
}


def get_error_description(error: Exception) -> str:
    """Get user-friendly description for an error.

    Args:
        error: Exception instance.

    Returns:
        User-friendly error description.
    """
    kind = getattr(error, "kind", None)
    return ERROR_DESCRIPTIONS.get(kind, "Unknown error type")


def get_error_suggestion(error: Exception) -> str | None:
    """Get actionable suggestion for resolving an error.

    Args:
        error: Exception instance.

    Returns:
        Actionable suggestion or None if no specific suggestion available.
    """
    if isinstance(error, RecordNotFoundError):
        return "Create a project first: create-datadao create <dir> --config <file>"

    if isinstance(error, CorruptRecordError):
        return "Fix or re-create deployment.json; corrupt records are never repaired automatically"

    if isinstance(error, RecordWriteError):
        return "Check disk space and file permissions, then re-run the command"

    if isinstance(error, RecordLockedError):
        return "Wait for the other deployment command to finish and try again"

    if isinstance(error, UnknownStageError):
        from .stages import STAGE_TABLE

        return "Available stages: " + ", ".join(STAGE_TABLE.stage_ids())

    if isinstance(error, OutOfOrderError):
        return f"Run first: {_command_for(error.missing_predecessor)}"

    if isinstance(error, MissingInputError):
        from .stages import STAGE_TABLE

        producer = STAGE_TABLE.producer_of(error.field)
        if producer is not None:
            return f"Run first: {producer.command}"
        return f"Add '{error.field}' to deployment.json"

    if isinstance(error, IncompleteResultError):
        return "The operation adapter is defective; the record was left unchanged"

    # Timeout and cancellation come before the generic OperationError
    if isinstance(error, OperationTimeoutError):
        return (
            "Check whether the operation finished remotely before retrying: "
            f"{_command_for(error.stage)}"
        )

    if isinstance(error, OperationCancelledError):
        return f"Retry when ready: {_command_for(error.stage)}"

    if isinstance(error, OperationError):
        return f"Fix the problem and retry: {_command_for(error.stage)}"

    if isinstance(error, ConfigurationError):
        return "Check the project configuration file"

    return None


def _command_for(stage_id: str) -> str:
    """Return the user-facing command that runs a stage."""
    from .stages import STAGE_TABLE

    stage = STAGE_TABLE.find(stage_id)
    if stage is None:
        return f"create-datadao deploy {stage_id}"
    return stage.command
