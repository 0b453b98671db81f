"""
Rule set -- The resolved, per-contract, per-date effective rule set.

Responsibility:
    Carries the merge engine's output for all three categories together with
    the raw base rules and overrides it was built from, plus provenance for
    every effective entry.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Produced by ``rules_services.rule_resolution_service``; stored as-is in
    the rule set cache; consumed by downstream pricing/validation code.

Invariants enforced:
    - Each effective tuple is sorted ascending by priority.
    - ``from_cache`` is the only field that differs between a freshly
      computed rule set and the same rule set served from the cache.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Any
from uuid import UUID

from rules_kernel.domain.rules import (
    BaseRule,
    OverrideType,
    RuleCategory,
    RuleOverride,
    RuleSource,
)


@dataclass(frozen=True)
class EffectiveRule:
    """
    One entry of an effective rule list.

    Contract:
        ``source`` is OVERRIDE whenever an override produced or changed the
        entry; ``override_type`` and ``override_id`` then identify it.
        Untouched base rules have ``override_type=None``.
    """

    rule: BaseRule
    source: RuleSource = RuleSource.BASE
    override_type: OverrideType | None = None
    override_id: UUID | None = None

    @property
    def rule_id(self) -> str:
        return self.rule.rule_id

    @property
    def priority(self) -> int:
        return self.rule.priority

    @property
    def category(self) -> RuleCategory:
        return self.rule.CATEGORY

    @property
    def is_overridden(self) -> bool:
        return self.source == RuleSource.OVERRIDE

    def to_dict(self) -> dict[str, Any]:
        data = self.rule.audit_values()
        data["source"] = self.source.value
        data["override_type"] = self.override_type.value if self.override_type else None
        data["override_id"] = self.override_id
        return data


@dataclass(frozen=True)
class ContractRuleSet:
    """
    Effective rules for one contract on one evaluation date.

    Contract:
        Immutable.  Safe to hand to many readers and to keep in a cache.
    """

    contract_id: UUID
    evaluation_date: date
    validation_rules: tuple[EffectiveRule, ...] = ()
    rate_adjustments: tuple[EffectiveRule, ...] = ()
    pricing_steps: tuple[EffectiveRule, ...] = ()
    base_rules: tuple[BaseRule, ...] = ()
    overrides: tuple[RuleOverride, ...] = ()
    overrides_enabled: bool = False
    contract_type_code: str | None = None
    from_cache: bool = False

    def effective(self, category: RuleCategory) -> tuple[EffectiveRule, ...]:
        if category == RuleCategory.VALIDATION:
            return self.validation_rules
        if category == RuleCategory.RATE_ADJUSTMENT:
            return self.rate_adjustments
        return self.pricing_steps

    def base_rules_for(self, category: RuleCategory) -> tuple[BaseRule, ...]:
        return tuple(r for r in self.base_rules if r.CATEGORY == category)

    def overrides_for(self, category: RuleCategory) -> tuple[RuleOverride, ...]:
        return tuple(o for o in self.overrides if o.CATEGORY == category)

    def override_count(self, category: RuleCategory) -> int:
        return len(self.overrides_for(category))

    @property
    def total_override_count(self) -> int:
        return len(self.overrides)

    @property
    def has_overrides(self) -> bool:
        return bool(self.overrides)

    def find_override(self, category: RuleCategory, rule_id: str) -> RuleOverride | None:
        for override in self.overrides_for(category):
            if override.rule_id == rule_id:
                return override
        return None

    def find_effective(self, category: RuleCategory, rule_id: str) -> EffectiveRule | None:
        for entry in self.effective(category):
            if entry.rule_id == rule_id:
                return entry
        return None

    def as_cached(self) -> ContractRuleSet:
        return replace(self, from_cache=True)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready view with effective lists and override counts."""
        return {
            "contract_id": self.contract_id,
            "contract_type_code": self.contract_type_code,
            "evaluation_date": self.evaluation_date,
            "overrides_enabled": self.overrides_enabled,
            "from_cache": self.from_cache,
            "validation_rules": [e.to_dict() for e in self.validation_rules],
            "rate_adjustments": [e.to_dict() for e in self.rate_adjustments],
            "pricing_steps": [e.to_dict() for e in self.pricing_steps],
            "override_counts": {
                c.value: self.override_count(c) for c in RuleCategory
            },
            "total_override_count": self.total_override_count,
        }
