"""Smart contract deployment operation.

Runs the Hardhat deploy task in the project's contracts/ directory and reads
the token and DLP proxy addresses from its output.
"""

import re
from typing import Any

from deployment.exceptions import ExternalCommandError

from .base import BaseOperation

TOKEN_ADDRESS_PATTERN = re.compile(r"deployed at (0x[a-fA-F0-9]{40})")
PROXY_ADDRESS_PATTERN = re.compile(r"DLP deployed to: (0x[a-fA-F0-9]{40})")


def parse_contract_addresses(output: str) -> dict[str, str]:
    """Extract deployed contract addresses from Hardhat output.

    Args:
        output: Hardhat deploy stdout.

    Returns:
        Mapping with "token" and/or "proxy" for the addresses found.
    """
    addresses = {}
    token = TOKEN_ADDRESS_PATTERN.search(output)
    if token:
        addresses["token"] = token.group(1)
    proxy = PROXY_ADDRESS_PATTERN.search(output)
    if proxy:
        addresses["proxy"] = proxy.group(1)
    return addresses


class DeployContractsOperation(BaseOperation):
    """Deploy the DataDAO token and DLP proxy contracts."""

    component = "contracts"

    def __init__(self, *args, network: str = "moksha", **kwargs):
        super().__init__(*args, **kwargs)
        self.network = network

    @property
    def command(self) -> list[str]:
        return [
            "npx",
            "hardhat",
            "deploy",
            "--reset",
            "--network",
            self.network,
            "--tags",
            "DLPDeploy",
        ]

    def run(self, inputs: dict[str, Any]) -> dict[str, Any]:
        self.notify(f"Deploying contracts for {inputs.get('name')} to {self.network}...")
        result = self._run_command(self.command, component=self.component)

        addresses = parse_contract_addresses(result.stdout)
        missing = [key for key in ("token", "proxy") if key not in addresses]
        if missing:
            raise ExternalCommandError(
                "Failed to extract contract addresses from deployment output",
                f"missing: {', '.join(missing)}",
                command=" ".join(self.command),
            )

        self.notify(f"Token Address: {addresses['token']}")
        self.notify(f"Proxy Address: {addresses['proxy']}")
        return {
            "contractAddresses.token": addresses["token"],
            "contractAddresses.proxy": addresses["proxy"],
        }
