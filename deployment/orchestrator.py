"""Workflow orchestrator for DataDAO deployment.

Decides which stage runs next from the persisted record alone, runs it through
the stage executor and persists the outcome. Deciding what's next is a pure
function of the stage table and the record, so resuming days later or on
another machine gives the same answer as resuming immediately.
"""

from pathlib import Path
from typing import Any

from .exceptions import ConfigurationError, DataDAOError, UnknownStageError
from .executor import ExternalOperation, StageExecutor
from .record import DeploymentRecord
from .results import AllComplete, Blocked, ExecutionResult, RunOutcome, RunStatus
from .stages import STAGE_TABLE, StageDefinition, StageStatus, StageTable
from .store import RecordStore


def next_stage(
    record: DeploymentRecord, table: StageTable = STAGE_TABLE
) -> StageDefinition | Blocked | AllComplete:
    """Determine the next runnable stage.

    Walks the table in order and returns the first non-optional stage that is
    not completed. If that stage's required inputs are not all present, the
    result is Blocked naming the first unmet field.

    Args:
        record: Deployment record.
        table: Stage table.

    Returns:
        The next stage, Blocked, or AllComplete.
    """
    for stage in table.required_stages():
        if record.is_completed(stage.id):
            continue

        for field_path in stage.required_fields:
            if not record.has_field(field_path):
                producer = table.producer_of(field_path)
                if producer is not None and producer.id != stage.id:
                    reason = f"'{field_path}' is not set. Run first: {producer.command}"
                else:
                    reason = f"'{field_path}' is not set in the deployment record"
                return Blocked(stage=stage.id, field=field_path, reason=reason)

        return stage

    return AllComplete()


class OperationRegistry:
    """Maps stage ids to the external operations that perform them."""

    def __init__(self, operations: dict[str, ExternalOperation] | None = None):
        self._operations: dict[str, ExternalOperation] = dict(operations or {})

    def register(self, stage_id: str, operation: ExternalOperation) -> "OperationRegistry":
        """Register an operation for a stage.

        Returns:
            Self for chaining.
        """
        self._operations[stage_id] = operation
        return self

    def get(self, stage_id: str) -> ExternalOperation | None:
        """Get the operation for a stage, or None."""
        return self._operations.get(stage_id)

    def __contains__(self, stage_id: object) -> bool:
        return stage_id in self._operations


class Workflow:
    """Table-driven deployment workflow bound to one record locator.

    Every public method returns a typed result; errors are carried in the
    result, never raised.
    """

    def __init__(
        self,
        store: RecordStore,
        operations: OperationRegistry | None = None,
        table: StageTable = STAGE_TABLE,
        timeouts: Any = None,
        logger: Any = None,
    ):
        """Initialize workflow.

        Args:
            store: Record store for the project's deployment record.
            operations: Registry of stage operations.
            table: Stage table (the default pipeline if omitted).
            timeouts: Optional StageTimeouts providing get_timeout(stage_id).
            logger: Optional DeployLogger instance.
        """
        self.store = store
        self.operations = operations or OperationRegistry()
        self.table = table
        self.timeouts = timeouts
        self.logger = logger
        self.executor = StageExecutor(logger=logger)

    @classmethod
    def for_project(cls, project_root: Path, filename: str = "deployment.json", **kwargs):
        """Create a workflow for the record file in a project directory."""
        lock_timeout = kwargs.pop("lock_timeout", 0.0)
        table = kwargs.get("table", STAGE_TABLE)
        store = RecordStore(Path(project_root) / filename, table=table, lock_timeout=lock_timeout)
        return cls(store, **kwargs)

    def next_stage(self, record: DeploymentRecord) -> StageDefinition | Blocked | AllComplete:
        """Determine the next runnable stage for a record."""
        return next_stage(record, self.table)

    def next_command(self, record: DeploymentRecord) -> str | None:
        """Return the single command the user should run next.

        Returns:
            The command, or None when every required stage is completed.
        """
        stage_id = self._next_stage_id(record)
        if stage_id is None:
            return None
        return self.table.get(stage_id).command

    def load(self) -> RunOutcome:
        """Load the record without running anything."""
        try:
            record = self.store.load()
        except DataDAOError as e:
            return RunOutcome(status=RunStatus.ERROR, error=e)
        return self._decision_outcome(record)

    def run_one(self, stage_id: str | None = None) -> RunOutcome:
        """Run the next stage (or an explicitly requested one) and persist.

        Args:
            stage_id: Stage to run instead of the next one. Bypasses next_stage,
                so an out-of-order request is reported as OutOfOrder.

        Returns:
            RunOutcome describing what happened.
        """
        try:
            with self.store.lock():
                return self._run_locked(stage_id)
        except DataDAOError as e:
            if self.logger:
                self.logger.error(f"Deployment invocation failed: {e}", kind=e.kind)
            return RunOutcome(status=RunStatus.ERROR, stage=stage_id, error=e)

    def run_all(self, include_optional: bool = False) -> list[RunOutcome]:
        """Run stages until the workflow stops advancing.

        Args:
            include_optional: Also run optional stages (configureUI, testAll) at the end.

        Returns:
            Outcomes in execution order. The last one explains why it stopped.
        """
        outcomes: list[RunOutcome] = []
        while True:
            outcome = self.run_one()
            outcomes.append(outcome)
            if not outcome.advanced:
                break

        if include_optional and outcomes[-1].status == RunStatus.ALL_COMPLETE:
            for stage in self.table:
                if not stage.optional:
                    continue
                outcome = self.run_one(stage.id)
                outcomes.append(outcome)
                if outcome.status not in (RunStatus.COMPLETED, RunStatus.SKIPPED):
                    break

        return outcomes

    def create(
        self,
        name: str,
        owner_address: str,
        credentials: dict[str, str] | None = None,
        operation: ExternalOperation | None = None,
    ) -> RunOutcome:
        """Create the deployment record and complete the create stage.

        Idempotent: if the record already exists with the create stage
        completed, nothing runs and the stored record is returned.

        Args:
            name: Project/DAO name.
            owner_address: Controlling chain address.
            credentials: Already-validated third-party credentials.
            operation: Project scaffolding operation; by default the stage
                only confirms name and owner address.

        Returns:
            RunOutcome for the create stage.
        """
        stage = self.table.get("create")
        try:
            with self.store.lock():
                if self.store.exists():
                    record = self.store.load()
                else:
                    record = DeploymentRecord.new(name, owner_address, credentials)

                if operation is None:
                    operation = _ConfirmIdentity(name, owner_address)

                result = self.executor.execute(stage, record, operation, self._timeout(stage.id))
                return self._persist(result)
        except DataDAOError as e:
            return RunOutcome(status=RunStatus.ERROR, stage=stage.id, error=e)

    def get_progress(self, record: DeploymentRecord) -> dict:
        """Get workflow progress summary.

        Args:
            record: Deployment record.

        Returns:
            Dictionary with progress information.
        """
        required = self.table.required_stages()
        completed = [s for s in required if record.is_completed(s.id)]
        decision = self.next_stage(record)

        stages = []
        for stage in self.table:
            stages.append(
                {
                    "name": stage.id,
                    "description": stage.description,
                    "status": self.stage_status(stage, record).value,
                    "optional": stage.optional,
                }
            )

        return {
            "project": record.name,
            "total_stages": len(required),
            "completed": len(completed),
            "progress_percent": (len(completed) / len(required) * 100) if required else 0,
            "stages": stages,
            "last_error": record.last_error.to_dict() if record.last_error else None,
            "next_stage": self._next_stage_id(record),
            "blocked": decision.reason if isinstance(decision, Blocked) else None,
            "next_command": self.next_command(record),
            "all_complete": isinstance(decision, AllComplete),
        }

    def _next_stage_id(self, record: DeploymentRecord) -> str | None:
        decision = self.next_stage(record)
        if isinstance(decision, AllComplete):
            return None
        if isinstance(decision, Blocked):
            return decision.stage
        return decision.id

    @staticmethod
    def stage_status(stage: StageDefinition, record: DeploymentRecord) -> StageStatus:
        """Derive a stage's status from the record."""
        if record.is_completed(stage.id):
            return StageStatus.COMPLETED
        if record.last_error and record.last_error.stage == stage.id:
            return StageStatus.FAILED
        return StageStatus.PENDING

    def _run_locked(self, stage_id: str | None) -> RunOutcome:
        record = self.store.load()

        if stage_id is None:
            decision = self.next_stage(record)
            if not isinstance(decision, StageDefinition):
                return self._decision_outcome(record, decision)
            stage = decision
        else:
            stage = self.table.find(stage_id)
            if stage is None:
                return RunOutcome(
                    status=RunStatus.ERROR,
                    record=record,
                    stage=stage_id,
                    error=UnknownStageError(stage_id),
                )

        operation = self.operations.get(stage.id)
        if operation is None:
            return RunOutcome(
                status=RunStatus.ERROR,
                record=record,
                stage=stage.id,
                error=ConfigurationError(f"No operation registered for stage '{stage.id}'"),
            )

        result = self.executor.execute(stage, record, operation, self._timeout(stage.id))
        return self._persist(result)

    def _persist(self, result: ExecutionResult) -> RunOutcome:
        """Save the record after an execution and build the outcome."""
        if result.skipped:
            return RunOutcome(
                status=RunStatus.SKIPPED, record=result.record, stage=result.stage, execution=result
            )

        if not result.invoked:
            # Refused before anything ran; nothing to persist
            return RunOutcome(
                status=RunStatus.BLOCKED,
                record=result.record,
                stage=result.stage,
                error=result.error,
                execution=result,
            )

        self.store.save(result.record)

        if self.logger:
            self.logger.log_operation_call(
                stage=result.stage,
                duration=result.duration_seconds,
                success=result.success,
                error=str(result.error) if result.error else None,
            )

        status = RunStatus.COMPLETED if result.success else RunStatus.FAILED
        return RunOutcome(
            status=status,
            record=result.record,
            stage=result.stage,
            error=result.error,
            execution=result,
        )

    def _decision_outcome(
        self, record: DeploymentRecord, decision: Blocked | AllComplete | None = None
    ) -> RunOutcome:
        if decision is None:
            decision = self.next_stage(record)
        if isinstance(decision, AllComplete):
            return RunOutcome(status=RunStatus.ALL_COMPLETE, record=record)
        if isinstance(decision, Blocked):
            return RunOutcome(
                status=RunStatus.BLOCKED, record=record, stage=decision.stage, blocked=decision
            )
        return RunOutcome(status=RunStatus.READY, record=record, stage=decision.id)

    def _timeout(self, stage_id: str) -> float | None:
        if self.timeouts is None:
            return None
        return self.timeouts.get_timeout(stage_id)


class _ConfirmIdentity:
    """Default create-stage operation: reports the identity the record was created with."""

    def __init__(self, name: str, owner_address: str):
        self.name = name
        self.owner_address = owner_address

    def run(self, inputs: dict[str, Any]) -> dict[str, Any]:
        return {"name": self.name, "ownerAddress": self.owner_address}
