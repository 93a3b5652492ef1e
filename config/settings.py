"""Deployment settings for DataDAO projects.

Defines per-stage timeouts, file locations and network constants. Settings
can be overridden by a JSON file in the project's state directory.
"""

import json
from dataclasses import dataclass, field, fields
from pathlib import Path

from deployment.exceptions import ConfigurationError


@dataclass
class StageTimeouts:
    """Timeout configuration for each stage's external operation.

    Stages that wait on the operator (registration, publishing) get long
    timeouts; contract deployment waits on the chain.

    Attributes:
        create: Timeout for project creation (1 minute)
        deployContracts: Timeout for contract deployment (10 minutes)
        register: Timeout for on-chain registration (30 minutes)
        deployProof: Timeout for proof publishing (30 minutes)
        deployRefiner: Timeout for refiner publishing (30 minutes)
        configureUI: Timeout for UI configuration (1 minute)
        testAll: Timeout for component tests (15 minutes)
        default: Default timeout for unspecified stages (5 minutes)
    """

    create: int = 60
    deployContracts: int = 600
    register: int = 1800
    deployProof: int = 1800
    deployRefiner: int = 1800
    configureUI: int = 60
    testAll: int = 900
    default: int = 300

    def get_timeout(self, stage_id: str) -> int:
        """Get timeout for a specific stage.

        Args:
            stage_id: Stage id (e.g., "deployContracts")

        Returns:
            Timeout in seconds
        """
        return getattr(self, stage_id, self.default)


@dataclass
class NetworkConfig:
    """Chain network used by the deployment tools.

    Attributes:
        name: Hardhat network name.
        rpc_url: JSON-RPC endpoint.
        chain_id: Chain id.
        explorer_url: Block explorer base URL.
        dlp_registry_address: DLP registry proxy contract.
        query_engine_address: Query engine contract holding DLP public keys.
    """

    name: str = "moksha"
    rpc_url: str = "https://rpc.moksha.vana.org"
    chain_id: int = 14800
    explorer_url: str = "https://moksha.vanascan.io"
    dlp_registry_address: str = "0xA6dFc0ef21D91F166Ca51c731D1a115a5b715a3F"
    query_engine_address: str = "0xd25Eb66EA2452cf3238A2eC6C1FD1B7F5B320490"


@dataclass
class DeploySettings:
    """Settings for the deployment workflow.

    Attributes:
        record_filename: Name of the deployment record file.
        state_dirname: Directory for logs and settings.
        lock_timeout: Seconds to wait for the record lock (0 fails fast).
        timeouts: Per-stage timeouts.
        network: Chain network constants.
    """

    record_filename: str = "deployment.json"
    state_dirname: str = ".datadao"
    lock_timeout: float = 0.0
    timeouts: StageTimeouts = field(default_factory=StageTimeouts)
    network: NetworkConfig = field(default_factory=NetworkConfig)

    def record_path(self, project_root: Path) -> Path:
        """Path of the deployment record in a project."""
        return Path(project_root) / self.record_filename

    def log_dir(self, project_root: Path) -> Path:
        """Directory for log files in a project."""
        return Path(project_root) / self.state_dirname / "logs"

    @classmethod
    def from_dict(cls, data: dict) -> "DeploySettings":
        """Create settings from a dictionary, rejecting unknown keys."""
        top = _known(cls, data, exclude={"timeouts", "network"})
        return cls(
            timeouts=StageTimeouts(**_known(StageTimeouts, data.get("timeouts", {}))),
            network=NetworkConfig(**_known(NetworkConfig, data.get("network", {}))),
            **top,
        )


def _known(cls: type, data: dict, exclude: set[str] | None = None) -> dict:
    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings section for {cls.__name__} must be an object")
    allowed = {f.name for f in fields(cls)} - (exclude or set())
    unknown = set(data) - allowed - (exclude or set())
    if unknown:
        raise ConfigurationError(
            f"Unknown settings for {cls.__name__}", ", ".join(sorted(unknown))
        )
    return {k: v for k, v in data.items() if k in allowed}


def load_config_from_file(config_path: Path) -> DeploySettings:
    """Load deployment settings from a JSON file.

    Args:
        config_path: Path to the settings file.

    Returns:
        DeploySettings instance (defaults if the file does not exist).

    Raises:
        ConfigurationError: If the file is not valid JSON or has unknown keys.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        return DeploySettings()

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read settings file {config_path}", str(e)) from e

    try:
        return DeploySettings.from_dict(data)
    except TypeError as e:
        raise ConfigurationError(f"Invalid settings file {config_path}", str(e)) from e


def load_project_settings(project_root: Path) -> DeploySettings:
    """Load settings from <project>/.datadao/settings.json, or defaults."""
    defaults = DeploySettings()
    return load_config_from_file(Path(project_root) / defaults.state_dirname / "settings.json")
