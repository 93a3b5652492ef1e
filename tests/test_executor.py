"""Unit tests for the stage executor."""

import asyncio
import subprocess
import threading

from deployment import (
    STAGE_TABLE,
    IncompleteResultError,
    MissingInputError,
    OperationCancelledError,
    OperationError,
    OperationTimeoutError,
    OutOfOrderError,
    StageExecutor,
    execute,
)
from deployment.exceptions import ExternalCommandError
from operations import FunctionOperation
from test_helpers import (
    PROXY,
    REFINEMENT_KEY,
    STAGE_OUTPUTS,
    RecordingOperation,
    SlowAsyncOperation,
    make_record,
)

REGISTER = STAGE_TABLE.get("register")
DEPLOY_CONTRACTS = STAGE_TABLE.get("deployContracts")


class FakeLogger:
    """Collects stage transitions."""

    def __init__(self):
        self.transitions = []

    def log_stage_transition(self, stage, from_status, to_status, metadata=None):
        self.transitions.append((stage, from_status, to_status, metadata or {}))


# ============================================================================
# Test Preconditions
# ============================================================================


class TestPreconditions:
    """Test the checks run before an operation is invoked"""

    def test_out_of_order(self):
        """Test a missing predecessor refuses the stage"""
        record = make_record("create")
        op = RecordingOperation(STAGE_OUTPUTS["register"])

        result = execute(REGISTER, record, op)

        assert not result.success
        assert isinstance(result.error, OutOfOrderError)
        assert result.error.missing_predecessor == "deployContracts"
        assert op.call_count == 0
        assert result.record is record
        assert result.record.last_error is None

    def test_missing_input(self):
        """Test a missing required field refuses the stage"""
        record = make_record("create", "deployContracts")
        record.contract_addresses.pop("proxy")
        op = RecordingOperation(STAGE_OUTPUTS["register"])

        result = execute(REGISTER, record, op)

        assert not result.success
        assert isinstance(result.error, MissingInputError)
        assert result.error.stage == "register"
        assert result.error.field == "contractAddresses.proxy"
        assert op.call_count == 0
        assert not result.invoked

    def test_out_of_order_checked_before_missing_input(self):
        """Test predecessor checks come first"""
        record = make_record("create")
        result = execute(REGISTER, record, RecordingOperation())
        assert isinstance(result.error, OutOfOrderError)

    def test_already_completed_is_skipped(self):
        """Test re-executing a completed stage never invokes the operation"""
        record = make_record("create", "deployContracts", "register")
        op = RecordingOperation({"onChainId": 99, "keys.refinementKey": "0xother"})

        result = execute(REGISTER, record, op)

        assert result.success
        assert result.skipped
        assert op.call_count == 0
        assert result.record.on_chain_id == 42


# ============================================================================
# Test Execution
# ============================================================================


class TestExecution:
    """Test invoking operations and merging their results"""

    def test_success_merges_fields(self):
        """Test a successful stage merges outputs and adds its flag"""
        record = make_record("create", "deployContracts")
        op = RecordingOperation(STAGE_OUTPUTS["register"])

        result = execute(REGISTER, record, op)

        assert result.success
        assert not result.skipped
        assert result.record.on_chain_id == 42
        assert result.record.keys["refinementKey"] == REFINEMENT_KEY
        assert result.record.is_completed("register")
        assert result.produced == STAGE_OUTPUTS["register"]

    def test_inputs_are_required_field_values(self):
        """Test the operation receives exactly its required fields"""
        record = make_record("create", "deployContracts")
        op = RecordingOperation(STAGE_OUTPUTS["register"])

        execute(REGISTER, record, op)

        assert op.calls == [
            {
                "name": "MyDataDAO",
                "ownerAddress": record.owner_address,
                "contractAddresses.proxy": PROXY,
            }
        ]

    def test_input_record_not_mutated(self):
        """Test the caller's record is left unchanged"""
        record = make_record("create", "deployContracts")
        before = record.copy()

        execute(REGISTER, record, RecordingOperation(STAGE_OUTPUTS["register"]))

        assert record == before

    def test_success_clears_last_error(self):
        """Test a success clears a previous failure"""
        record = make_record("create", "deployContracts")
        failed = execute(REGISTER, record, RecordingOperation(error=RuntimeError("boom"))).record
        assert failed.last_error is not None

        result = execute(REGISTER, failed, RecordingOperation(STAGE_OUTPUTS["register"]))

        assert result.success
        assert result.record.last_error is None

    def test_extra_output_fields_are_ignored(self):
        """Test only declared produced fields are merged"""
        record = make_record("create")
        output = dict(STAGE_OUTPUTS["deployContracts"], onChainId=5)

        result = execute(DEPLOY_CONTRACTS, record, RecordingOperation(output))

        assert result.success
        assert result.record.on_chain_id is None

    def test_idempotent_reentry(self):
        """Test executing twice invokes the operation once"""
        record = make_record("create", "deployContracts")
        op = RecordingOperation(STAGE_OUTPUTS["register"])

        first = execute(REGISTER, record, op)
        second = execute(REGISTER, first.record, op)

        assert op.call_count == 1
        assert second.skipped
        assert second.record == first.record


# ============================================================================
# Test Failures
# ============================================================================


class TestFailures:
    """Test failure handling: no partial merge, lastError only"""

    def test_operation_exception(self):
        """Test an exception becomes OperationError with lastError set"""
        record = make_record("create", "deployContracts")
        op = RecordingOperation(error=ExternalCommandError("transaction reverted"))

        result = execute(REGISTER, record, op)

        assert not result.success
        assert isinstance(result.error, OperationError)
        assert "transaction reverted" in str(result.error)
        assert result.record.last_error.stage == "register"
        assert result.record.completed_stages == record.completed_stages
        assert result.record.on_chain_id is None
        assert op.call_count == 1

    def test_incomplete_result_no_partial_merge(self):
        """Test a partial result merges nothing"""
        record = make_record("create", "deployContracts")
        op = RecordingOperation({"onChainId": 42})

        result = execute(REGISTER, record, op)

        assert not result.success
        assert isinstance(result.error, IncompleteResultError)
        assert result.error.field == "keys.refinementKey"
        assert result.record.on_chain_id is None
        assert not result.record.is_completed("register")

    def test_null_output_is_incomplete(self):
        """Test a null produced value counts as missing"""
        record = make_record("create", "deployContracts")
        op = RecordingOperation({"onChainId": None, "keys.refinementKey": REFINEMENT_KEY})

        result = execute(REGISTER, record, op)

        assert isinstance(result.error, IncompleteResultError)
        assert result.error.field == "onChainId"

    def test_non_mapping_result(self):
        """Test a non-mapping result fails the stage"""
        record = make_record("create", "deployContracts")

        class ReturnsList:
            def run(self, inputs):
                return [42]

        result = execute(REGISTER, record, ReturnsList())

        assert isinstance(result.error, OperationError)
        assert not result.record.is_completed("register")

    def test_immutable_identity(self):
        """Test an operation cannot change name or ownerAddress"""
        record = make_record()
        op = RecordingOperation({"name": "Renamed", "ownerAddress": record.owner_address})

        result = execute(STAGE_TABLE.get("create"), record, op)

        assert not result.success
        assert isinstance(result.error, OperationError)
        assert result.record.name == "MyDataDAO"

    def test_async_timeout(self):
        """Test a coroutine operation is bounded by the timeout"""
        record = make_record("create", "deployContracts")
        op = SlowAsyncOperation(delay=5.0)

        result = execute(REGISTER, record, op, timeout=0.05)

        assert isinstance(result.error, OperationTimeoutError)
        assert result.error.kind == "Timeout"
        assert op.calls == 1
        assert result.record.last_error.stage == "register"
        assert not result.record.is_completed("register")

    def test_async_success(self):
        """Test a coroutine operation completes within its timeout"""
        record = make_record("create", "deployContracts")

        class AsyncRegister:
            async def run(self, inputs):
                return STAGE_OUTPUTS["register"]

        result = execute(REGISTER, record, AsyncRegister(), timeout=5)

        assert result.success
        assert result.record.on_chain_id == 42

    def test_subprocess_timeout(self):
        """Test a subprocess timeout inside a sync operation is a timeout"""
        record = make_record("create", "deployContracts")
        op = RecordingOperation(error=subprocess.TimeoutExpired(["npx"], 600))

        result = execute(REGISTER, record, op)

        assert isinstance(result.error, OperationTimeoutError)

    def test_sync_timeout(self):
        """Test a blocking sync operation is bounded by the timeout"""
        record = make_record("create", "deployContracts")
        release = threading.Event()
        op = FunctionOperation(lambda inputs: release.wait(5) and STAGE_OUTPUTS["register"])

        try:
            result = execute(REGISTER, record, op, timeout=0.05)
        finally:
            release.set()

        assert isinstance(result.error, OperationTimeoutError)
        assert result.duration_seconds < 5
        assert result.record.last_error.stage == "register"
        assert not result.record.is_completed("register")
        assert result.record.on_chain_id is None

    def test_sync_within_timeout(self):
        """Test a sync operation finishing in time succeeds"""
        record = make_record("create", "deployContracts")
        op = RecordingOperation(STAGE_OUTPUTS["register"])

        result = execute(REGISTER, record, op, timeout=5)

        assert result.success
        assert op.call_count == 1
        assert result.record.on_chain_id == 42

    def test_sync_error_with_timeout(self):
        """Test an error raised in a bounded sync operation is reported"""
        record = make_record("create", "deployContracts")
        op = RecordingOperation(error=RuntimeError("transaction reverted"))

        result = execute(REGISTER, record, op, timeout=5)

        assert isinstance(result.error, OperationError)
        assert not isinstance(result.error, OperationTimeoutError)
        assert "transaction reverted" in str(result.error)

    def test_async_cancellation(self):
        """Test a cancelled coroutine operation fails without merging"""
        record = make_record("create", "deployContracts")

        class CancelledRegister:
            async def run(self, inputs):
                raise asyncio.CancelledError()

        result = execute(REGISTER, record, CancelledRegister(), timeout=5)

        assert isinstance(result.error, OperationCancelledError)
        assert result.error.kind == "Cancelled"
        assert result.record.last_error.stage == "register"
        assert not result.record.is_completed("register")
        assert result.record.keys.get("refinementKey") is None

    def test_keyboard_interrupt_is_cancellation(self):
        """Test an interrupt is reported as cancellation with no merge"""
        record = make_record("create", "deployContracts")
        op = RecordingOperation(error=KeyboardInterrupt())

        result = execute(REGISTER, record, op)

        assert isinstance(result.error, OperationCancelledError)
        assert result.record.last_error.stage == "register"
        assert not result.record.is_completed("register")


# ============================================================================
# Test Logging
# ============================================================================


class TestExecutorLogging:
    """Test stage transitions are reported to the logger"""

    def test_success_transitions(self):
        """Test pending -> in_progress -> completed"""
        logger = FakeLogger()
        executor = StageExecutor(logger=logger)

        executor.execute(
            REGISTER,
            make_record("create", "deployContracts"),
            RecordingOperation(STAGE_OUTPUTS["register"]),
        )

        assert [(t[1], t[2]) for t in logger.transitions] == [
            ("pending", "in_progress"),
            ("in_progress", "completed"),
        ]

    def test_refusal_transition(self):
        """Test a refused stage is logged with its error kind"""
        logger = FakeLogger()
        executor = StageExecutor(logger=logger)

        executor.execute(REGISTER, make_record("create"), RecordingOperation())

        stage, _, to_status, metadata = logger.transitions[-1]
        assert stage == "register"
        assert to_status == "refused"
        assert metadata["kind"] == "OutOfOrder"
