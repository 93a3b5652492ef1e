"""DataDAO deployment observability.

Provides logging and output formatting for the deployment workflow.

Example:
    from observability import get_logger

    logger = get_logger("datadao", log_dir, console_enabled=False)
    logger.info("Deployment started", project="MyDataDAO")
"""

from functools import cache
from pathlib import Path


@cache
def get_logger(
    name: str,
    log_dir: Path | None = None,
    console_enabled: bool = True,
    json_enabled: bool = True,
) -> "DeployLogger":
    """Get or create logger instance.

    The same parameters always return the same instance.

    Args:
        name: Logger name (e.g., "datadao").
        log_dir: Directory for log files. Defaults to .datadao/logs/.
        console_enabled: Enable colored console output.
        json_enabled: Enable JSON structured logging.

    Returns:
        DeployLogger instance.
    """
    from .logger import DeployLogger

    if log_dir is None:
        log_dir = Path.cwd() / ".datadao" / "logs"

    return DeployLogger(
        name=name,
        log_dir=log_dir,
        console_enabled=console_enabled,
        json_enabled=json_enabled,
    )


def reset() -> None:
    """Reset all singleton instances.

    Used primarily for testing to ensure clean state.
    """
    get_logger.cache_clear()


__all__ = [
    "get_logger",
    "reset",
]
