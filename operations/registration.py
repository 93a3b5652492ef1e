"""DataDAO registration operation.

Registration is a manual on-chain transaction: the operator submits it through
the block explorer and reports back the assigned dlpId and the refinement
encryption key published by the query engine.
"""

from typing import Any

from config.settings import NetworkConfig

from .base import BaseOperation, require_int, require_prefix

REFINER_ENV_KEY = "REFINEMENT_ENCRYPTION_KEY"


class RegisterDataDAOOperation(BaseOperation):
    """Guide the operator through registering the DataDAO on chain."""

    def __init__(self, *args, network: NetworkConfig | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.network = network or NetworkConfig()

    def run(self, inputs: dict[str, Any]) -> dict[str, Any]:
        name = inputs["name"]
        owner = inputs["ownerAddress"]
        proxy = inputs["contractAddresses.proxy"]
        registry_url = (
            f"{self.network.explorer_url}/address/"
            f"{self.network.dlp_registry_address}?tab=write_proxy"
        )

        self._instructions(
            "Register your DataDAO on the DLP registry:",
            [
                f"Open {registry_url}",
                "Connect your wallet and call registerDlp with:",
                f"   dlpAddress: {proxy}",
                f"   ownerAddress: {owner}",
                f"   treasuryAddress: {owner}",
                f"   name: {name}",
                "   value: 1 VANA (registration deposit)",
                "After the transaction confirms, find the dlpId in the transaction logs",
            ],
        )
        dlp_id = int(self._ask("Enter the dlpId from the transaction logs:", require_int("dlpId")))

        query_engine_url = (
            f"{self.network.explorer_url}/address/"
            f"{self.network.query_engine_address}?tab=read_proxy"
        )
        self._instructions(
            "Fetch the refinement encryption key:",
            [
                f"Open {query_engine_url}",
                f"Call dlpPubKeys with dlpId: {dlp_id}",
            ],
        )
        refinement_key = self._ask(
            "Enter the encryption key returned by the function:",
            require_prefix("Encryption key", "0x"),
        )

        self._update_refiner_env(refinement_key)
        return {"onChainId": dlp_id, "keys.refinementKey": refinement_key}

    def _update_refiner_env(self, refinement_key: str) -> None:
        """Write the key into refiner/.env when the refiner component exists."""
        env_path = self.project_root / "refiner" / ".env"
        if not env_path.parent.is_dir():
            return

        lines = []
        if env_path.exists():
            lines = [
                line
                for line in env_path.read_text(encoding="utf-8").splitlines()
                if not line.startswith(f"{REFINER_ENV_KEY}=")
            ]
        lines.insert(0, f"{REFINER_ENV_KEY}={refinement_key}")
        env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
