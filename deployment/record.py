"""Deployment record data model.

The record is the single persisted document describing one DataDAO project's
configuration and deployment progress. Field paths used by the stage table
are dotted paths over the persisted JSON keys, e.g. ``contractAddresses.proxy``.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

IMMUTABLE_FIELDS = ("name", "ownerAddress")


@dataclass
class LastError:
    """Most recent stage failure.

    Attributes:
        stage: Id of the stage that failed.
        message: Failure message.
        timestamp: ISO 8601 timestamp of the failure (UTC).
    """

    stage: str
    message: str
    timestamp: str

    @classmethod
    def now(cls, stage: str, message: str) -> "LastError":
        """Create a LastError stamped with the current UTC time."""
        return cls(stage=stage, message=message, timestamp=datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"stage": self.stage, "message": self.message, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict) -> "LastError":
        """Create from dictionary."""
        return cls(
            stage=data.get("stage", ""),
            message=data.get("message", ""),
            timestamp=data.get("timestamp", ""),
        )


@dataclass
class DeploymentRecord:
    """Persisted state of one DataDAO deployment.

    Attributes:
        name: Project/DAO name, immutable once created.
        owner_address: Chain address controlling the deployment, immutable.
        credentials: Third-party API keys; stored and forwarded, never interpreted.
        contract_addresses: Deployed contract addresses (token, proxy).
        on_chain_id: DataDAO id assigned by the on-chain registry.
        keys: Derived secrets obtained from on-chain calls.
        artifacts: Published outputs (proof URL, refiner id, test results).
        completed_stages: Ids of stages whose outputs are durably stored.
        last_error: Most recent failure, cleared on the next success.
    """

    name: str | None = None
    owner_address: str | None = None
    credentials: dict[str, str] = field(default_factory=dict)
    contract_addresses: dict[str, str | None] = field(default_factory=dict)
    on_chain_id: int | None = None
    keys: dict[str, str] = field(default_factory=dict)
    artifacts: dict[str, Any] = field(default_factory=dict)
    completed_stages: set[str] = field(default_factory=set)
    last_error: LastError | None = None

    @classmethod
    def new(
        cls, name: str, owner_address: str, credentials: dict[str, str] | None = None
    ) -> "DeploymentRecord":
        """Create a fresh record as produced by the project-creation step."""
        return cls(name=name, owner_address=owner_address, credentials=dict(credentials or {}))

    def is_completed(self, stage_id: str) -> bool:
        """Check whether a stage id is recorded as completed."""
        return stage_id in self.completed_stages

    def copy(self) -> "DeploymentRecord":
        """Return a deep copy of the record."""
        return copy.deepcopy(self)

    def get_field(self, path: str) -> Any:
        """Resolve a dotted field path against the record.

        Args:
            path: Dotted path over the persisted keys, e.g. "keys.refinementKey".

        Returns:
            The value, or None if any path segment is absent.
        """
        return resolve_field(self.to_dict(), path)

    def has_field(self, path: str) -> bool:
        """Check whether a dotted field path resolves to a non-null value."""
        return self.get_field(path) is not None

    def with_fields(self, values: dict[str, Any]) -> "DeploymentRecord":
        """Return a copy of the record with dotted field paths assigned."""
        data = self.to_dict()
        for path, value in values.items():
            assign_field(data, path, value)
        return DeploymentRecord.from_dict(data)

    def to_dict(self, stage_order: list[str] | None = None) -> dict:
        """Convert to the persisted dictionary form.

        Args:
            stage_order: Ordering for completedStages (sorted by name if None).

        Returns:
            JSON-serializable dictionary.
        """
        if stage_order is not None:
            ordered = [s for s in stage_order if s in self.completed_stages]
            ordered += sorted(self.completed_stages - set(stage_order))
        else:
            ordered = sorted(self.completed_stages)

        return {
            "name": self.name,
            "ownerAddress": self.owner_address,
            "credentials": dict(self.credentials),
            "contractAddresses": dict(self.contract_addresses),
            "onChainId": self.on_chain_id,
            "keys": dict(self.keys),
            "artifacts": copy.deepcopy(self.artifacts),
            "completedStages": ordered,
            "lastError": self.last_error.to_dict() if self.last_error else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DeploymentRecord":
        """Create from the persisted dictionary form."""
        last_error = data.get("lastError")
        return cls(
            name=data.get("name"),
            owner_address=data.get("ownerAddress"),
            credentials=dict(data.get("credentials") or {}),
            contract_addresses=dict(data.get("contractAddresses") or {}),
            on_chain_id=data.get("onChainId"),
            keys=dict(data.get("keys") or {}),
            artifacts=copy.deepcopy(data.get("artifacts") or {}),
            completed_stages=set(data.get("completedStages") or []),
            last_error=LastError.from_dict(last_error) if last_error else None,
        )


def resolve_field(data: dict, path: str) -> Any:
    """Resolve a dotted path in nested dictionaries.

    Args:
        data: Nested dictionary.
        path: Dotted path, e.g. "contractAddresses.proxy".

    Returns:
        The value, or None if any segment is absent or not a mapping.
    """
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def assign_field(data: dict, path: str, value: Any) -> None:
    """Assign a value at a dotted path, creating intermediate mappings.

    Args:
        data: Nested dictionary to modify in place.
        path: Dotted path, e.g. "keys.refinementKey".
        value: Value to store.
    """
    parts = path.split(".")
    current = data
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[parts[-1]] = value
