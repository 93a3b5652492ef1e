"""Proof and refiner publishing operations.

Both components are published by pushing their repository, which triggers a
GitHub Actions release build; the operator then reports the release URLs.
"""

import re
from typing import Any

from .base import BaseOperation, require_int, require_tarball_url

GIT_PUSH = ["git", "push", "-u", "origin", "main"]

DLP_ID_PATTERN = re.compile(r'"dlp_id":\s*\d+')


class PublishProofOperation(BaseOperation):
    """Publish the proof-of-contribution component."""

    component = "proof"

    def run(self, inputs: dict[str, Any]) -> dict[str, Any]:
        dlp_id = inputs["onChainId"]
        if self._update_proof_config(dlp_id):
            self._run_command(["git", "add", "."], component=self.component)
            status = self._run_command(["git", "status", "--porcelain"], component=self.component)
            if status.stdout.strip():
                self._run_command(
                    ["git", "commit", "-m", f"Update dlpId to {dlp_id}"], component=self.component
                )

        self.notify("Pushing proof repository...")
        self._run_command(GIT_PUSH, component=self.component)

        self._instructions(
            "Wait for the proof release build:",
            [
                "Open the Actions tab of your proof repository and wait for the build",
                "Find the latest release and copy the .tar.gz URL",
            ],
        )
        proof_url = self._ask(
            "Enter the .tar.gz URL from GitHub Releases:", require_tarball_url("Proof URL")
        )
        return {"artifacts.proofUrl": proof_url}

    def _update_proof_config(self, dlp_id: int) -> bool:
        """Set dlp_id in proof/my_proof/__main__.py.

        Returns:
            True if the file exists and was updated.
        """
        config_path = self.project_root / self.component / "my_proof" / "__main__.py"
        if not config_path.exists():
            self.notify("Proof config file not found, continuing without updating dlp_id")
            return False

        content = config_path.read_text(encoding="utf-8")
        config_path.write_text(
            DLP_ID_PATTERN.sub(f'"dlp_id": {dlp_id}', content), encoding="utf-8"
        )
        return True


class PublishRefinerOperation(BaseOperation):
    """Publish the data refiner and record its registration."""

    component = "refiner"

    def run(self, inputs: dict[str, Any]) -> dict[str, Any]:
        dlp_id = inputs["onChainId"]

        self.notify("Pushing refiner repository...")
        self._run_command(GIT_PUSH, component=self.component)

        self._instructions(
            "Wait for the refiner release build:",
            [
                "Open the Actions tab of your refiner repository and wait for the build",
                "Upload schema.json to IPFS and copy its gateway URL",
                "Copy the .tar.gz download URL of the latest release",
            ],
        )
        schema_url = self._ask("Enter the schema URL:", _require_url("Schema URL"))
        refiner_url = self._ask(
            "Enter the .tar.gz URL from GitHub Releases:", require_tarball_url("Refiner URL")
        )

        self._instructions(
            "Register the refiner on the data refiner registry:",
            [
                "Call addRefiner with:",
                f"   dlpId: {dlp_id}",
                "   name: your refiner name",
                f"   schemaDefinitionUrl: {schema_url}",
                f"   refinementInstructionUrl: {refiner_url}",
                "Copy the refinerId from the RefinerAdded event",
            ],
        )
        refiner_id = int(
            self._ask("Enter the refinerId from the transaction logs:", require_int("refinerId"))
        )

        return {
            "artifacts.schemaUrl": schema_url,
            "artifacts.refinerUrl": refiner_url,
            "artifacts.refinerId": refiner_id,
        }


def _require_url(label: str):
    def validate(answer: str) -> str | None:
        if not answer:
            return f"{label} is required"
        if not answer.startswith(("http://", "https://", "ipfs://")):
            return f"{label} must be an http(s) or ipfs URL"
        return None

    return validate
