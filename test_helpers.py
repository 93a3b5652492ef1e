"""Test helpers for DataDAO deployment tests: fake operations and record builders."""

import asyncio
from typing import Any

from deployment import DeploymentRecord
from deployment.orchestrator import OperationRegistry

OWNER = "0x" + "a1" * 20
TOKEN = "0x" + "b2" * 20
PROXY = "0x" + "c3" * 20
REFINEMENT_KEY = "0x" + "d4" * 32

# Values each stage's fake operation reports by default
STAGE_OUTPUTS = {
    "deployContracts": {
        "contractAddresses.token": TOKEN,
        "contractAddresses.proxy": PROXY,
    },
    "register": {"onChainId": 42, "keys.refinementKey": REFINEMENT_KEY},
    "deployProof": {"artifacts.proofUrl": "https://github.com/u/proof/releases/v1.tar.gz"},
    "deployRefiner": {
        "artifacts.schemaUrl": "https://gateway.pinata.cloud/ipfs/Qm123",
        "artifacts.refinerUrl": "https://github.com/u/refiner/releases/v1.tar.gz",
        "artifacts.refinerId": 7,
    },
    "configureUI": {"artifacts.uiEnv": ["NEXT_PUBLIC_PROOF_URL", "REFINER_ID"]},
    "testAll": {"artifacts.testResults": {"contracts": "passed"}},
}


class RecordingOperation:
    """Operation that records its calls and returns fixed output."""

    def __init__(self, output: dict[str, Any] | None = None, error: BaseException | None = None):
        self.output = output if output is not None else {}
        self.error = error
        self.calls: list[dict[str, Any]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def run(self, inputs: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(dict(inputs))
        if self.error is not None:
            raise self.error
        return dict(self.output)


class SlowAsyncOperation:
    """Coroutine operation that sleeps longer than any test timeout."""

    def __init__(self, delay: float = 5.0):
        self.delay = delay
        self.calls = 0

    async def run(self, inputs: dict[str, Any]) -> dict[str, Any]:
        self.calls += 1
        await asyncio.sleep(self.delay)
        return {}


def make_registry(**overrides: RecordingOperation) -> OperationRegistry:
    """Registry with a RecordingOperation for every stage after create."""
    registry = OperationRegistry()
    for stage_id, output in STAGE_OUTPUTS.items():
        registry.register(stage_id, overrides.get(stage_id) or RecordingOperation(output))
    return registry


def make_record(*completed: str) -> DeploymentRecord:
    """Build a valid record with the given stages completed."""
    record = DeploymentRecord.new("MyDataDAO", OWNER, {"pinataApiKey": "pk"})
    values: dict[str, Any] = {}
    for stage_id in completed:
        values.update(STAGE_OUTPUTS.get(stage_id, {}))
    record = record.with_fields(values)
    record.completed_stages = set(completed)
    return record


def project_config_data(**overrides: Any) -> dict[str, Any]:
    """Build a valid project config dictionary."""
    data = {
        "dlpName": "MyDataDAO",
        "ownerAddress": OWNER,
        "tokenName": "MyDataToken",
        "tokenSymbol": "MDT",
        "privateKey": "ab" * 32,
        "pinataApiKey": "pk",
        "pinataApiSecret": "ps",
        "googleClientId": "gid",
        "googleClientSecret": "gsecret",
        "githubUsername": "octocat",
    }
    data.update(overrides)
    return data
