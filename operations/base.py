"""Base classes for deployment operations.

Operations perform a stage's real work (contract deployment, registration,
publishing). Each takes the stage's required field values and returns the
values of the fields it produced, keyed by dotted field path.

Provides:
- FunctionOperation: wraps a plain callable
- BaseOperation: subprocess execution and operator prompts for adapters
"""

import subprocess
from collections.abc import Callable
from pathlib import Path
from typing import Any

from deployment.exceptions import ExternalCommandError
from deployment.executor import ExternalOperation

# Maximum characters of command output carried into error details
MAX_OUTPUT_CHARS = 2000


class FunctionOperation:
    """Operation backed by a plain callable.

    Example:
        op = FunctionOperation(lambda inputs: {"onChainId": 42, "keys.refinementKey": "0xabc"})
    """

    def __init__(self, func: Callable[[dict[str, Any]], dict[str, Any]], name: str | None = None):
        self.func = func
        self.name = name or getattr(func, "__name__", "operation")

    def run(self, inputs: dict[str, Any]) -> dict[str, Any]:
        return self.func(inputs)

    def __repr__(self) -> str:
        return f"FunctionOperation({self.name})"


class BaseOperation:
    """Base class for operations that drive external tools.

    Provides common functionality for adapters:
    - Running commands inside a project component directory
    - Prompting the operator with validation and a bounded number of attempts
    - Printing instructions

    Attributes:
        project_root: DataDAO project directory.
        timeout: Subprocess timeout in seconds.
        prompt: Callable reading one line of operator input.
        notify: Callable printing one line to the operator.
    """

    # Attempts before an invalid answer fails the operation
    max_attempts = 3

    def __init__(
        self,
        project_root: Path,
        timeout: float | None = None,
        prompt: Callable[[str], str] = input,
        notify: Callable[[str], Any] = print,
    ):
        self.project_root = Path(project_root)
        self.timeout = timeout
        self.prompt = prompt
        self.notify = notify

    def run(self, inputs: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    def _run_command(
        self,
        cmd: list[str],
        component: str | None = None,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Run a command and fail on a nonzero exit code.

        Args:
            cmd: Command and arguments to execute.
            component: Project subdirectory to run in (e.g., "contracts").
            timeout: Timeout in seconds; defaults to the operation timeout.

        Returns:
            Completed process result.

        Raises:
            ExternalCommandError: If the tool is missing or exits nonzero.
            subprocess.TimeoutExpired: If the command exceeds its timeout.
        """
        cwd = self.project_root / component if component else self.project_root
        if not cwd.is_dir():
            raise ExternalCommandError(
                f"Component directory not found: {cwd}", command=" ".join(cmd)
            )

        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except FileNotFoundError as e:
            raise ExternalCommandError(
                f"Command not found: {cmd[0]}", str(e), command=" ".join(cmd)
            ) from e

        if result.returncode != 0:
            output = (result.stderr or result.stdout or "").strip()
            raise ExternalCommandError(
                f"Command failed: {' '.join(cmd)}",
                output[-MAX_OUTPUT_CHARS:] or None,
                command=" ".join(cmd),
                exit_code=result.returncode,
            )

        return result

    def _ask(self, message: str, validate: Callable[[str], str | None]) -> str:
        """Prompt until the answer validates.

        Args:
            message: Prompt text.
            validate: Returns an error message for an invalid answer, else None.

        Returns:
            The stripped, valid answer.

        Raises:
            ExternalCommandError: After max_attempts invalid answers.
        """
        problem = None
        for _ in range(self.max_attempts):
            answer = self.prompt(f"{message} ").strip()
            problem = validate(answer)
            if problem is None:
                return answer
            self.notify(problem)

        raise ExternalCommandError(f"No valid answer for: {message}", problem)

    def _instructions(self, title: str, steps: list[str]) -> None:
        """Print a numbered list of manual steps."""
        self.notify("")
        self.notify(title)
        for i, step in enumerate(steps, 1):
            self.notify(f"{i}. {step}")
        self.notify("")


# Answer validators


def require_int(label: str) -> Callable[[str], str | None]:
    """Validator for a non-negative integer answer."""

    def validate(answer: str) -> str | None:
        if not answer:
            return f"{label} is required"
        if not answer.isdigit():
            return f"{label} must be a non-negative integer"
        return None

    return validate


def require_prefix(label: str, prefix: str) -> Callable[[str], str | None]:
    """Validator for a non-empty answer starting with a prefix."""

    def validate(answer: str) -> str | None:
        if not answer:
            return f"{label} is required"
        if not answer.startswith(prefix):
            return f"{label} must start with {prefix}"
        return None

    return validate


def require_tarball_url(label: str) -> Callable[[str], str | None]:
    """Validator for a release URL pointing at a .tar.gz file."""

    def validate(answer: str) -> str | None:
        if not answer:
            return f"{label} is required"
        if not answer.startswith(("http://", "https://")):
            return f"{label} must be an http(s) URL"
        if ".tar.gz" not in answer:
            return "URL must point to a .tar.gz file"
        return None

    return validate


__all__ = [
    "ExternalOperation",
    "FunctionOperation",
    "BaseOperation",
    "require_int",
    "require_prefix",
    "require_tarball_url",
]
