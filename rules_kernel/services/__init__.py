"""Administrative services for contract types, contracts, base rules and overrides."""

from rules_kernel.services.base import BaseService
from rules_kernel.services.base_rule_service import BaseRuleService
from rules_kernel.services.contract_service import ContractService
from rules_kernel.services.override_service import OverrideService

__all__ = [
    "BaseService",
    "BaseRuleService",
    "ContractService",
    "OverrideService",
]
