"""Stage definitions for DataDAO deployment.

Defines the static, ordered table of deployment stages. The table is the only
place that encodes pipeline topology: which stages exist, in which order, what
each needs from the record and what it must produce.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

from .exceptions import UnknownStageError


class StageStatus(Enum):
    """Status of a stage as derived from a deployment record."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class StageDefinition:
    """A deployment stage with its preconditions and postconditions.

    Attributes:
        id: Unique stage identifier, also the flag added to completedStages.
        description: Human-readable description.
        command: User-facing command that runs this stage.
        required_predecessors: Stage ids that must be completed first.
        required_fields: Field paths that must be non-null on the record.
        produced_fields: Field paths the stage's operation must report.
        optional: Optional stages never block AllComplete.
    """

    id: str
    description: str
    command: str
    required_predecessors: tuple[str, ...] = ()
    required_fields: tuple[str, ...] = ()
    produced_fields: tuple[str, ...] = ()
    optional: bool = False

    @property
    def produced_flag(self) -> str:
        """Flag added to completedStages on success."""
        return self.id

    def is_ready(self, completed_stages: set[str]) -> bool:
        """Check if all required predecessors are completed.

        Args:
            completed_stages: Set of completed stage ids.

        Returns:
            True if all dependencies are satisfied.
        """
        return all(dep in completed_stages for dep in self.required_predecessors)

    def missing_predecessor(self, completed_stages: set[str]) -> str | None:
        """Return the first required predecessor not yet completed."""
        for dep in self.required_predecessors:
            if dep not in completed_stages:
                return dep
        return None


@dataclass(frozen=True)
class StageTable:
    """Ordered, immutable catalog of deployment stages."""

    stages: tuple[StageDefinition, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[StageDefinition]:
        return iter(self.stages)

    def __len__(self) -> int:
        return len(self.stages)

    def __contains__(self, stage_id: object) -> bool:
        return any(s.id == stage_id for s in self.stages)

    def find(self, stage_id: str) -> StageDefinition | None:
        """Get stage by id, or None if unknown."""
        for stage in self.stages:
            if stage.id == stage_id:
                return stage
        return None

    def get(self, stage_id: str) -> StageDefinition:
        """Get stage by id.

        Raises:
            UnknownStageError: If the id is not in the table.
        """
        stage = self.find(stage_id)
        if stage is None:
            raise UnknownStageError(stage_id)
        return stage

    def stage_ids(self) -> list[str]:
        """List stage ids in pipeline order."""
        return [s.id for s in self.stages]

    def required_stages(self) -> list[StageDefinition]:
        """List non-optional stages in pipeline order."""
        return [s for s in self.stages if not s.optional]

    def producer_of(self, field_path: str) -> StageDefinition | None:
        """Find the stage that produces a field path.

        A produced field also covers its nested paths, so the producer of
        "contractAddresses" is the stage producing "contractAddresses.proxy".
        """
        for stage in self.stages:
            for produced in stage.produced_fields:
                if produced == field_path or produced.startswith(field_path + "."):
                    return stage
        return None


STAGE_TABLE = StageTable(
    stages=(
        StageDefinition(
            id="create",
            description="Create project and deployment record",
            command="create-datadao create <dir> --config <file>",
            produced_fields=("name", "ownerAddress"),
        ),
        StageDefinition(
            id="deployContracts",
            description="Deploy DataDAO token and DLP proxy contracts",
            command="create-datadao deploy deployContracts",
            required_predecessors=("create",),
            required_fields=("name", "ownerAddress"),
            produced_fields=("contractAddresses.token", "contractAddresses.proxy"),
        ),
        StageDefinition(
            id="register",
            description="Register DataDAO on-chain and obtain the refinement key",
            command="create-datadao deploy register",
            required_predecessors=("deployContracts",),
            required_fields=("name", "ownerAddress", "contractAddresses.proxy"),
            produced_fields=("onChainId", "keys.refinementKey"),
        ),
        StageDefinition(
            id="deployProof",
            description="Publish the Proof of Contribution image",
            command="create-datadao deploy deployProof",
            required_predecessors=("register",),
            required_fields=("onChainId",),
            produced_fields=("artifacts.proofUrl",),
        ),
        StageDefinition(
            id="deployRefiner",
            description="Publish the data refiner and register it on-chain",
            command="create-datadao deploy deployRefiner",
            required_predecessors=("deployProof",),
            required_fields=("onChainId", "keys.refinementKey"),
            produced_fields=("artifacts.schemaUrl", "artifacts.refinerUrl", "artifacts.refinerId"),
        ),
        StageDefinition(
            id="configureUI",
            description="Write the UI environment configuration",
            command="create-datadao deploy configureUI",
            required_predecessors=("deployRefiner",),
            required_fields=("artifacts.proofUrl", "artifacts.refinerId", "credentials"),
            produced_fields=("artifacts.uiEnv",),
            optional=True,
        ),
        StageDefinition(
            id="testAll",
            description="Run component test suites",
            command="create-datadao deploy testAll",
            required_predecessors=("deployRefiner",),
            produced_fields=("artifacts.testResults",),
            optional=True,
        ),
    )
)
