"""Configuration module for DataDAO deployment.

This module provides deployment settings and project config validation.
"""

from .project_config import (
    ProjectConfig,
    load_project_config,
    validate_project_config,
)
from .settings import (
    DeploySettings,
    NetworkConfig,
    StageTimeouts,
    load_config_from_file,
    load_project_settings,
)

__all__ = [
    # Settings
    "DeploySettings",
    "NetworkConfig",
    "StageTimeouts",
    "load_config_from_file",
    "load_project_settings",
    # Project config
    "ProjectConfig",
    "load_project_config",
    "validate_project_config",
]
