"""Stage executor for DataDAO deployment.

Runs one stage: validates preconditions against the record, invokes the
external operation at most once, and produces the record to persist. The
input record is never mutated.
"""

import asyncio
import inspect
import subprocess
import threading
import time
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from .exceptions import (
    DataDAOError,
    IncompleteResultError,
    MissingInputError,
    OperationCancelledError,
    OperationError,
    OperationTimeoutError,
    OutOfOrderError,
)
from .record import IMMUTABLE_FIELDS, DeploymentRecord, LastError
from .results import ExecutionResult
from .stages import StageDefinition


@runtime_checkable
class ExternalOperation(Protocol):
    """Work performed outside the core for one stage.

    ``run`` receives the stage's required field values and returns a mapping
    of the stage's produced field paths to values. It may be a plain method or
    a coroutine function. Failure is signalled by raising.
    """

    def run(self, inputs: dict[str, Any]) -> Mapping[str, Any]: ...


class StageExecutor:
    """Executes single stages against a deployment record.

    Attributes:
        logger: Optional DeployLogger for stage transitions.
    """

    def __init__(self, logger: Any = None):
        """Initialize stage executor.

        Args:
            logger: Optional DeployLogger instance.
        """
        self.logger = logger

    def check_preconditions(
        self, stage: StageDefinition, record: DeploymentRecord
    ) -> DataDAOError | None:
        """Check predecessor and input preconditions, in that order.

        Args:
            stage: Stage to check.
            record: Current record.

        Returns:
            The first violated precondition, or None.
        """
        missing = stage.missing_predecessor(record.completed_stages)
        if missing is not None:
            return OutOfOrderError(stage.id, missing)

        for field_path in stage.required_fields:
            if not record.has_field(field_path):
                return MissingInputError(stage.id, field_path)

        return None

    def execute(
        self,
        stage: StageDefinition,
        record: DeploymentRecord,
        operation: ExternalOperation,
        timeout: float | None = None,
    ) -> ExecutionResult:
        """Execute one stage.

        Args:
            stage: Stage to execute.
            record: Current record (not modified).
            operation: External operation performing the stage's work.
            timeout: Seconds allowed for the operation (None waits forever).

        Returns:
            ExecutionResult carrying the record to persist.
        """
        error = self.check_preconditions(stage, record)
        if error is not None:
            self._log(stage.id, "pending", "refused", error=str(error), kind=error.kind)
            return ExecutionResult(stage=stage.id, record=record, success=False, error=error)

        if record.is_completed(stage.id):
            self._log(stage.id, "completed", "completed", skipped=True)
            return ExecutionResult(stage=stage.id, record=record, success=True, skipped=True)

        inputs = {path: record.get_field(path) for path in stage.required_fields}

        self._log(stage.id, "pending", "in_progress")
        start_time = time.time()
        try:
            produced = self._invoke(stage, operation, inputs, timeout)
            error = self._verify(stage, record, produced)
        except OperationError as e:
            error = e
            produced = {}
        duration = time.time() - start_time

        if error is not None:
            failed = record.copy()
            failed.last_error = LastError.now(stage.id, str(error))
            self._log(
                stage.id, "in_progress", "failed", error=str(error), kind=error.kind, duration=duration
            )
            return ExecutionResult(
                stage=stage.id,
                record=failed,
                success=False,
                error=error,
                invoked=True,
                duration_seconds=duration,
            )

        values = {path: produced[path] for path in stage.produced_fields}
        updated = record.with_fields(values)
        updated.completed_stages = set(record.completed_stages) | {stage.produced_flag}
        updated.last_error = None

        self._log(stage.id, "in_progress", "completed", duration=duration)
        return ExecutionResult(
            stage=stage.id,
            record=updated,
            success=True,
            produced=values,
            invoked=True,
            duration_seconds=duration,
        )

    def _invoke(
        self,
        stage: StageDefinition,
        operation: ExternalOperation,
        inputs: dict[str, Any],
        timeout: float | None,
    ) -> Mapping[str, Any]:
        """Call the operation exactly once, mapping every failure to OperationError."""
        try:
            if inspect.iscoroutinefunction(operation.run):
                return asyncio.run(self._await(operation, inputs, timeout))
            if timeout is None:
                return operation.run(inputs)
            return self._run_in_thread(stage, operation, inputs, timeout)
        except (asyncio.TimeoutError, TimeoutError) as e:
            raise OperationTimeoutError(stage.id, timeout or 0) from e
        except subprocess.TimeoutExpired as e:
            raise OperationTimeoutError(stage.id, e.timeout) from e
        except (asyncio.CancelledError, KeyboardInterrupt) as e:
            raise OperationCancelledError(stage.id) from e
        except Exception as e:
            raise OperationError(stage.id, f"Operation for stage '{stage.id}' failed", str(e)) from e

    @staticmethod
    def _run_in_thread(
        stage: StageDefinition,
        operation: ExternalOperation,
        inputs: dict[str, Any],
        timeout: float,
    ) -> Mapping[str, Any]:
        """Run a synchronous operation in a worker thread bounded by timeout.

        A blocking call cannot be interrupted, so on timeout the daemon worker
        is abandoned and its eventual result discarded.
        """
        outcome: dict[str, Any] = {}

        def target() -> None:
            try:
                outcome["result"] = operation.run(inputs)
            except BaseException as e:
                outcome["error"] = e

        worker = threading.Thread(target=target, name=f"stage-{stage.id}", daemon=True)
        worker.start()
        worker.join(timeout)
        if worker.is_alive():
            raise TimeoutError(f"Stage '{stage.id}' exceeded {timeout}s")
        if "error" in outcome:
            raise outcome["error"]
        return outcome.get("result")

    @staticmethod
    async def _await(
        operation: ExternalOperation, inputs: dict[str, Any], timeout: float | None
    ) -> Mapping[str, Any]:
        return await asyncio.wait_for(operation.run(inputs), timeout=timeout)

    def _verify(
        self, stage: StageDefinition, record: DeploymentRecord, produced: Any
    ) -> DataDAOError | None:
        """Check the operation result covers every produced field."""
        if not isinstance(produced, Mapping):
            return OperationError(
                stage.id,
                f"Operation for stage '{stage.id}' returned no result mapping",
                type(produced).__name__,
            )

        for field_path in stage.produced_fields:
            if produced.get(field_path) is None:
                return IncompleteResultError(stage.id, field_path)

        for field_path in IMMUTABLE_FIELDS:
            current = record.get_field(field_path)
            reported = produced.get(field_path)
            if current is not None and reported is not None and reported != current:
                return OperationError(
                    stage.id,
                    f"Operation for stage '{stage.id}' tried to change immutable '{field_path}'",
                    f"{current!r} -> {reported!r}",
                )

        return None

    def _log(self, stage: str, from_status: str, to_status: str, **metadata: Any) -> None:
        if self.logger:
            self.logger.log_stage_transition(
                stage=stage, from_status=from_status, to_status=to_status, metadata=metadata
            )


_default_executor = StageExecutor()


def execute(
    stage: StageDefinition,
    record: DeploymentRecord,
    operation: ExternalOperation,
    timeout: float | None = None,
) -> ExecutionResult:
    """Execute one stage with a logger-less executor.

    See StageExecutor.execute.
    """
    return _default_executor.execute(stage, record, operation, timeout)
