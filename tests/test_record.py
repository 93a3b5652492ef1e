"""Unit tests for the deployment record and stage table."""

import pytest

from deployment import (
    STAGE_TABLE,
    DeploymentRecord,
    LastError,
    StageDefinition,
    UnknownStageError,
)
from deployment.record import assign_field, resolve_field
from test_helpers import OWNER, PROXY, make_record

# ============================================================================
# Test Field Paths
# ============================================================================


class TestFieldPaths:
    """Test dotted field path helpers"""

    def test_resolve_nested(self):
        """Test resolving a nested path"""
        data = {"contractAddresses": {"proxy": PROXY}}
        assert resolve_field(data, "contractAddresses.proxy") == PROXY

    def test_resolve_missing_segment(self):
        """Test missing segments resolve to None"""
        assert resolve_field({"keys": {}}, "keys.refinementKey") is None
        assert resolve_field({}, "contractAddresses.proxy") is None

    def test_resolve_through_non_mapping(self):
        """Test a scalar in the middle of a path resolves to None"""
        assert resolve_field({"onChainId": 5}, "onChainId.value") is None

    def test_assign_creates_intermediate(self):
        """Test assigning creates intermediate mappings"""
        data = {}
        assign_field(data, "artifacts.proofUrl", "https://x/p.tar.gz")
        assert data == {"artifacts": {"proofUrl": "https://x/p.tar.gz"}}


# ============================================================================
# Test DeploymentRecord
# ============================================================================


class TestDeploymentRecord:
    """Test DeploymentRecord data model"""

    def test_new_record(self):
        """Test creating a fresh record"""
        record = DeploymentRecord.new("MyDataDAO", OWNER, {"pinataApiKey": "pk"})

        assert record.name == "MyDataDAO"
        assert record.owner_address == OWNER
        assert record.credentials == {"pinataApiKey": "pk"}
        assert record.completed_stages == set()
        assert record.last_error is None

    def test_get_field_uses_persisted_keys(self):
        """Test field paths use the persisted camelCase keys"""
        record = make_record("create", "deployContracts")

        assert record.get_field("ownerAddress") == OWNER
        assert record.get_field("contractAddresses.proxy") == PROXY
        assert record.has_field("contractAddresses.token")
        assert not record.has_field("onChainId")

    def test_with_fields_does_not_mutate(self):
        """Test with_fields returns a new record"""
        record = make_record("create")
        updated = record.with_fields({"onChainId": 42})

        assert updated.on_chain_id == 42
        assert record.on_chain_id is None

    def test_copy_is_deep(self):
        """Test copies do not share nested state"""
        record = make_record("create", "deployContracts")
        clone = record.copy()
        clone.contract_addresses["proxy"] = None
        clone.completed_stages.add("register")

        assert record.contract_addresses["proxy"] == PROXY
        assert "register" not in record.completed_stages

    def test_to_dict_orders_completed_stages(self):
        """Test completedStages follows the given stage order"""
        record = make_record("create", "deployContracts", "register")
        data = record.to_dict(STAGE_TABLE.stage_ids())

        assert data["completedStages"] == ["create", "deployContracts", "register"]

    def test_dict_round_trip_with_last_error(self):
        """Test the persisted form preserves lastError"""
        record = make_record("create")
        record.last_error = LastError("deployContracts", "boom", "2026-01-01T00:00:00+00:00")

        restored = DeploymentRecord.from_dict(record.to_dict())

        assert restored == record
        assert restored.to_dict()["lastError"]["stage"] == "deployContracts"

    def test_last_error_now_is_utc(self):
        """Test LastError.now stamps an ISO UTC timestamp"""
        error = LastError.now("register", "failed")
        assert error.timestamp.endswith("+00:00")


# ============================================================================
# Test Stage Table
# ============================================================================


class TestStageTable:
    """Test the deployment stage table"""

    def test_stage_order(self):
        """Test stages are in pipeline order"""
        assert STAGE_TABLE.stage_ids() == [
            "create",
            "deployContracts",
            "register",
            "deployProof",
            "deployRefiner",
            "configureUI",
            "testAll",
        ]

    def test_optional_stages(self):
        """Test configureUI and testAll are the optional stages"""
        optional = [s.id for s in STAGE_TABLE if s.optional]
        assert optional == ["configureUI", "testAll"]
        assert len(STAGE_TABLE.required_stages()) == 5

    def test_register_definition(self):
        """Test register's preconditions and outputs"""
        register = STAGE_TABLE.get("register")

        assert register.required_predecessors == ("deployContracts",)
        assert "contractAddresses.proxy" in register.required_fields
        assert register.produced_fields == ("onChainId", "keys.refinementKey")
        assert register.produced_flag == "register"

    def test_get_unknown_stage(self):
        """Test unknown ids raise UnknownStageError"""
        with pytest.raises(UnknownStageError):
            STAGE_TABLE.get("deployUI")
        assert STAGE_TABLE.find("deployUI") is None
        assert "deployUI" not in STAGE_TABLE

    def test_producer_of(self):
        """Test finding the stage that produces a field"""
        assert STAGE_TABLE.producer_of("contractAddresses.proxy").id == "deployContracts"
        assert STAGE_TABLE.producer_of("contractAddresses").id == "deployContracts"
        assert STAGE_TABLE.producer_of("keys.refinementKey").id == "register"
        assert STAGE_TABLE.producer_of("credentials.pinataApiKey") is None

    def test_every_required_field_has_producer(self):
        """Test every required field is produced by an earlier stage"""
        ids = STAGE_TABLE.stage_ids()
        for stage in STAGE_TABLE:
            for field_path in stage.required_fields:
                producer = STAGE_TABLE.producer_of(field_path)
                assert producer is not None
                assert ids.index(producer.id) < ids.index(stage.id)

    def test_missing_predecessor(self):
        """Test reporting the first missing predecessor"""
        stage = StageDefinition(
            id="x", description="", command="", required_predecessors=("a", "b")
        )
        assert stage.missing_predecessor({"b"}) == "a"
        assert stage.missing_predecessor({"a", "b"}) is None
        assert stage.is_ready({"a", "b"})
