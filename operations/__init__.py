"""External operations performing DataDAO deployment stages."""

from .base import BaseOperation, ExternalOperation, FunctionOperation
from .contracts import DeployContractsOperation, parse_contract_addresses
from .publish import PublishProofOperation, PublishRefinerOperation
from .registration import RegisterDataDAOOperation
from .registry import default_registry
from .test_all import TestAllOperation
from .ui import ConfigureUIOperation, update_env_var

__all__ = [
    "ExternalOperation",
    "FunctionOperation",
    "BaseOperation",
    "DeployContractsOperation",
    "RegisterDataDAOOperation",
    "PublishProofOperation",
    "PublishRefinerOperation",
    "TestAllOperation",
    "ConfigureUIOperation",
    "default_registry",
    "parse_contract_addresses",
    "update_env_var",
]
