"""ORM models for the rules kernel."""

from rules_kernel.domain.rules import RuleCategory
from rules_kernel.models.audit import RuleAuditModel
from rules_kernel.models.base_rules import (
    PricingStepModel,
    RateAdjustmentModel,
    ValidationRuleModel,
)
from rules_kernel.models.contract import Contract, ContractTypeDefinition
from rules_kernel.models.overrides import (
    PricingStepOverrideModel,
    RateAdjustmentOverrideModel,
    ValidationOverrideModel,
)

BASE_RULE_MODELS = {
    RuleCategory.VALIDATION: ValidationRuleModel,
    RuleCategory.RATE_ADJUSTMENT: RateAdjustmentModel,
    RuleCategory.PRICING_STEP: PricingStepModel,
}

OVERRIDE_MODELS = {
    RuleCategory.VALIDATION: ValidationOverrideModel,
    RuleCategory.RATE_ADJUSTMENT: RateAdjustmentOverrideModel,
    RuleCategory.PRICING_STEP: PricingStepOverrideModel,
}

__all__ = [
    "Contract",
    "ContractTypeDefinition",
    "ValidationRuleModel",
    "RateAdjustmentModel",
    "PricingStepModel",
    "ValidationOverrideModel",
    "RateAdjustmentOverrideModel",
    "PricingStepOverrideModel",
    "RuleAuditModel",
    "BASE_RULE_MODELS",
    "OVERRIDE_MODELS",
]
