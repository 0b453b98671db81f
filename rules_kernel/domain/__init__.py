"""
Pure domain layer.

This module contains pure data transfer objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (except the injectable Clock itself)
- I/O

All domain objects are immutable and deterministic.
"""

from rules_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from rules_kernel.domain.feature_gate import FeatureConfig, FeatureGate, rollout_bucket
from rules_kernel.domain.rule_set import ContractRuleSet, EffectiveRule
from rules_kernel.domain.rules import (
    OVERRIDE_TYPES,
    RULE_TYPES,
    AdjustmentFrequency,
    AdjustmentType,
    AuditOperation,
    BaseRule,
    ContractInfo,
    ContractTypeInfo,
    OverrideType,
    PricingStepOverride,
    PricingStepRule,
    RateAdjustmentOverride,
    RateAdjustmentRule,
    RuleAuditEntry,
    RuleCategory,
    RuleOverride,
    RuleSource,
    RuleStepType,
    StepBase,
    ValidationOverride,
    ValidationRule,
    ValidationType,
    window_contains,
)

__all__ = [
    # Clock
    "Clock",
    "DeterministicClock",
    "SystemClock",
    # Feature gate
    "FeatureConfig",
    "FeatureGate",
    "rollout_bucket",
    # Rule set
    "ContractRuleSet",
    "EffectiveRule",
    # Enums
    "AdjustmentFrequency",
    "AdjustmentType",
    "AuditOperation",
    "OverrideType",
    "RuleCategory",
    "RuleSource",
    "RuleStepType",
    "StepBase",
    "ValidationType",
    # Rules and overrides
    "BaseRule",
    "RuleOverride",
    "ValidationRule",
    "RateAdjustmentRule",
    "PricingStepRule",
    "ValidationOverride",
    "RateAdjustmentOverride",
    "PricingStepOverride",
    "RULE_TYPES",
    "OVERRIDE_TYPES",
    "window_contains",
    # Reference data
    "ContractInfo",
    "ContractTypeInfo",
    "RuleAuditEntry",
]
