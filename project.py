"""DataDAO Project Detection Module.

Provides detection and validation of DataDAO project directories.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path

# Component directories a generated DataDAO project contains
COMPONENTS = ("contracts", "proof", "refiner", "ui")


@dataclass
class DataDAOProject:
    """DataDAO project information.

    Attributes:
        root: Project root directory path.
        record_path: Path to deployment.json.
        is_valid: Whether the project has a deployment record.
    """

    root: Path
    record_path: Path
    is_valid: bool = False

    @classmethod
    def detect(cls, cwd: Path | None = None, record_filename: str = "deployment.json") -> "DataDAOProject":
        """Detect if a directory is a DataDAO project.

        Args:
            cwd: Working directory, defaults to current directory.
            record_filename: Name of the deployment record file.

        Returns:
            DataDAOProject instance.
        """
        work_dir = Path(cwd or os.getcwd()).resolve()
        record_path = work_dir / record_filename
        return cls(root=work_dir, record_path=record_path, is_valid=record_path.exists())

    @property
    def missing_components(self) -> list[str]:
        """Component directories that are not present."""
        return [name for name in COMPONENTS if not (self.root / name).is_dir()]

    def validate(self) -> tuple[bool, str]:
        """Validate project, returns (is_valid, message).

        Only checks that the record exists and is a JSON object; full record
        validation happens when the workflow loads it.
        """
        if not self.record_path.exists():
            return (
                False,
                f"{self.record_path.name} not found, confirm this is a DataDAO project directory: "
                f"{self.root}",
            )

        try:
            data = json.loads(self.record_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            return False, f"Cannot read {self.record_path.name}: {e}"

        if not isinstance(data, dict):
            return False, f"{self.record_path.name} is not a JSON object"

        return True, "Project validation passed"

    def get_error_suggestions(self) -> list[str]:
        """Provide suggestions based on error state.

        Returns:
            List of suggestion strings.
        """
        suggestions = []

        if not self.record_path.exists():
            suggestions.append("Check if you are in the DataDAO project root directory")
            suggestions.append("Create a project with: create-datadao create <dir> --config <file>")

            parent_record = self.root.parent / self.record_path.name
            if parent_record.exists():
                suggestions.append(
                    f"Found {self.record_path.name} in parent directory, try: cd {self.root.parent}"
                )
        else:
            suggestions.append(f"Fix or re-create {self.record_path.name}")

        missing = self.missing_components
        if missing and len(missing) < len(COMPONENTS):
            suggestions.append(f"Missing component directories: {', '.join(missing)}")

        return suggestions
