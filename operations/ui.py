"""UI configuration operation.

Writes the deployed proof and refiner into the UI component's .env file,
along with the Pinata and Google OAuth credentials from the record.
"""

from typing import Any

from deployment.exceptions import ExternalCommandError

from .base import BaseOperation

# Environment variables filled from a credential pair, written only together
CREDENTIAL_PAIRS = (
    ("Pinata", (("PINATA_API_KEY", "pinataApiKey"), ("PINATA_API_SECRET", "pinataApiSecret"))),
    (
        "Google OAuth",
        (("GOOGLE_CLIENT_ID", "googleClientId"), ("GOOGLE_CLIENT_SECRET", "googleClientSecret")),
    ),
)


def update_env_var(lines: list[str], key: str, value: Any) -> list[str]:
    """Replace the line assigning key, or append one.

    Args:
        lines: Lines of an .env file.
        key: Variable name.
        value: New value.

    Returns:
        Updated lines.
    """
    assignment = f"{key}={value}"
    updated = [assignment if line.startswith(f"{key}=") else line for line in lines]
    if assignment not in updated:
        updated.append(assignment)
    return updated


class ConfigureUIOperation(BaseOperation):
    """Update ui/.env from the deployment record."""

    def run(self, inputs: dict[str, Any]) -> dict[str, Any]:
        env_path = self.project_root / "ui" / ".env"
        if not env_path.parent.is_dir():
            raise ExternalCommandError(f"Component directory not found: {env_path.parent}")

        credentials = inputs.get("credentials") or {}
        values = {
            "REFINER_ID": inputs["artifacts.refinerId"],
            "NEXT_PUBLIC_PROOF_URL": inputs["artifacts.proofUrl"],
        }
        for label, pair in CREDENTIAL_PAIRS:
            if all(credentials.get(source) for _, source in pair):
                values.update({key: credentials[source] for key, source in pair})
            else:
                self.notify(f"Warning: {label} credentials not found in the deployment record")
                self.notify("  You may need to add them manually to ui/.env")

        lines = []
        if env_path.exists():
            lines = env_path.read_text(encoding="utf-8").strip().splitlines()
        for key, value in values.items():
            lines = update_env_var(lines, key, value)
        env_path.write_text("\n".join(lines).strip() + "\n", encoding="utf-8")

        self._instructions(
            "UI configured. Start it locally with:",
            ["cd ui", "npm install", "npm run dev", "Visit http://localhost:3000"],
        )
        # Only variable names are recorded; secret values stay in ui/.env
        return {"artifacts.uiEnv": sorted(values)}
