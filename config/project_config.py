"""Project configuration loading and validation.

The project config is the credential source for record creation: it is read
from a JSON file (headless mode) and validated here, so the deployment core
only ever receives an already-validated credential map.
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path

from deployment.exceptions import ConfigurationError

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
PRIVATE_KEY_PATTERN = re.compile(r"^0x[a-fA-F0-9]{64}$")
TOKEN_SYMBOL_PATTERN = re.compile(r"^[A-Z]+$")

# Config keys that are forwarded to the record as opaque credentials
CREDENTIAL_KEYS = (
    "privateKey",
    "pinataApiKey",
    "pinataApiSecret",
    "googleClientId",
    "googleClientSecret",
    "githubUsername",
)

REQUIRED_CREDENTIAL_KEYS = (
    "pinataApiKey",
    "pinataApiSecret",
    "googleClientId",
    "googleClientSecret",
    "githubUsername",
)


@dataclass
class ProjectConfig:
    """Validated inputs for creating a DataDAO project.

    Attributes:
        dlp_name: DataDAO name (3-50 characters).
        owner_address: Owner wallet address (0x + 40 hex digits).
        token_name: Token name (3-50 characters).
        token_symbol: Token symbol (3-10 uppercase letters).
        credentials: Third-party credentials.
    """

    dlp_name: str
    owner_address: str
    token_name: str = "MyDataToken"
    token_symbol: str = "MDT"
    credentials: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectConfig":
        """Create and validate from a config dictionary.

        Raises:
            ConfigurationError: If any value is invalid.
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Project config must be a JSON object")

        config = cls(
            dlp_name=str(data.get("dlpName", "")).strip(),
            owner_address=str(data.get("ownerAddress") or data.get("address") or "").strip(),
            token_name=str(data.get("tokenName", "MyDataToken")).strip(),
            token_symbol=str(data.get("tokenSymbol", "MDT")).strip(),
            credentials={k: data[k] for k in CREDENTIAL_KEYS if k in data},
        )
        errors = validate_project_config(config)
        if errors:
            raise ConfigurationError("Invalid project config", "; ".join(errors))
        return config


def validate_project_config(config: ProjectConfig) -> list[str]:
    """Validate a project config and return any errors.

    Args:
        config: Project config to validate.

    Returns:
        List of validation error messages. Empty list means valid.
    """
    errors = []

    if not 3 <= len(config.dlp_name) <= 50:
        errors.append("dlpName must be 3-50 characters")

    if not ADDRESS_PATTERN.match(config.owner_address):
        errors.append("ownerAddress must be a 0x-prefixed 40-character hex string")

    if not 3 <= len(config.token_name) <= 50:
        errors.append("tokenName must be 3-50 characters")

    if not (3 <= len(config.token_symbol) <= 10 and TOKEN_SYMBOL_PATTERN.match(config.token_symbol)):
        errors.append("tokenSymbol must be 3-10 uppercase letters")

    for key in REQUIRED_CREDENTIAL_KEYS:
        value = config.credentials.get(key)
        if not isinstance(value, str) or not value.strip():
            errors.append(f"{key} is required")

    private_key = config.credentials.get("privateKey")
    if private_key is not None and not isinstance(private_key, str):
        errors.append("privateKey must be a string")
    elif private_key is not None:
        normalized = private_key if private_key.startswith("0x") else f"0x{private_key}"
        if not PRIVATE_KEY_PATTERN.match(normalized):
            errors.append("privateKey must be 64 hex characters")
        else:
            config.credentials["privateKey"] = normalized

    return errors


def load_project_config(config_path: Path) -> ProjectConfig:
    """Load and validate a project config file.

    Args:
        config_path: Path to the JSON config file.

    Returns:
        Validated ProjectConfig.

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read config file {config_path}", str(e)) from e

    return ProjectConfig.from_dict(data)
