"""Default stage-to-operation wiring for a DataDAO project."""

from collections.abc import Callable
from pathlib import Path
from typing import Any

from config.settings import DeploySettings
from deployment.orchestrator import OperationRegistry

from .contracts import DeployContractsOperation
from .publish import PublishProofOperation, PublishRefinerOperation
from .registration import RegisterDataDAOOperation
from .test_all import TestAllOperation
from .ui import ConfigureUIOperation


def default_registry(
    project_root: Path,
    settings: DeploySettings | None = None,
    prompt: Callable[[str], str] = input,
    notify: Callable[[str], Any] = print,
) -> OperationRegistry:
    """Build the registry of real operations for a project.

    The create stage is not registered: it runs through Workflow.create().

    Args:
        project_root: DataDAO project directory.
        settings: Deployment settings (defaults if omitted).
        prompt: Operator input callable.
        notify: Operator output callable.

    Returns:
        OperationRegistry for deployContracts through the optional stages.
    """
    settings = settings or DeploySettings()
    timeouts = settings.timeouts
    common = {"prompt": prompt, "notify": notify}

    return (
        OperationRegistry()
        .register(
            "deployContracts",
            DeployContractsOperation(
                project_root,
                timeout=timeouts.get_timeout("deployContracts"),
                network=settings.network.name,
                **common,
            ),
        )
        .register(
            "register",
            RegisterDataDAOOperation(
                project_root,
                timeout=timeouts.get_timeout("register"),
                network=settings.network,
                **common,
            ),
        )
        .register(
            "deployProof",
            PublishProofOperation(
                project_root, timeout=timeouts.get_timeout("deployProof"), **common
            ),
        )
        .register(
            "deployRefiner",
            PublishRefinerOperation(
                project_root, timeout=timeouts.get_timeout("deployRefiner"), **common
            ),
        )
        .register(
            "configureUI",
            ConfigureUIOperation(
                project_root, timeout=timeouts.get_timeout("configureUI"), **common
            ),
        )
        .register(
            "testAll",
            TestAllOperation(project_root, timeout=timeouts.get_timeout("testAll"), **common),
        )
    )
