"""Read-only selectors: contract lookup, Base Rule Store, Override Store."""

from rules_kernel.selectors.base import BaseSelector
from rules_kernel.selectors.contract_selector import ContractSelector
from rules_kernel.selectors.rule_selector import BaseRuleSelector, OverrideSelector

__all__ = [
    "BaseSelector",
    "ContractSelector",
    "BaseRuleSelector",
    "OverrideSelector",
]
