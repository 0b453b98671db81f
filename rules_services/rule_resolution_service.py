"""
rules_services.rule_resolution_service -- ``resolve(contract_id, date)``.

Responsibility:
    Produces the effective rule set of one contract on one date: cache
    lookup, contract lookup, feature gate decision, then one merge pass per
    rule category over the Base Rule Store and the Override Store.

Architecture position:
    Services -- imperative shell over the pure merge engine.
    Reads through kernel selectors only; issues no writes.

Invariants enforced:
    - Overrides disabled for the contract => each category is exactly the
      active, date-applicable base rules sorted by priority.  The Override
      Store is not queried.
    - Identical inputs with no intervening mutation resolve to identical
      ordered output, whether computed or served from the cache.
    - Rule sets of unknown contracts are returned but never cached.

Failure modes:
    - Raises nothing for data anomalies.  An unknown contract or a blank
      contract type code resolves to an empty base and is logged at WARNING.
    - Database errors from the selectors propagate.
    - Cache failures are misses (see ``RuleSetCache``).
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from rules_engines.merge import merge_category
from rules_kernel.domain.clock import Clock, SystemClock
from rules_kernel.domain.feature_gate import FeatureGate
from rules_kernel.domain.rule_set import ContractRuleSet, EffectiveRule
from rules_kernel.domain.rules import BaseRule, RuleCategory, RuleOverride
from rules_kernel.logging_config import LogContext, get_logger
from rules_kernel.selectors import BaseRuleSelector, ContractSelector, OverrideSelector
from rules_services.rule_set_cache import RuleSetCache

logger = get_logger("services.resolution")


class RuleResolutionService:
    """
    Effective rule sets for contracts.

    Contract:
        Receives a Session, a FeatureGate, an optional RuleSetCache and an
        optional Clock.  Never commits, never writes.

    Guarantees:
        - Every returned ``ContractRuleSet`` is immutable and sorted.
        - ``from_cache`` tells whether the result came from the cache.
    """

    def __init__(
        self,
        session: Session,
        gate: FeatureGate,
        cache: RuleSetCache | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._gate = gate
        self._cache = cache if cache is not None else RuleSetCache(None)
        self._clock = clock or SystemClock()
        self._contracts = ContractSelector(session)
        self._base_rules = BaseRuleSelector(session)
        self._overrides = OverrideSelector(session)

    @property
    def cache(self) -> RuleSetCache:
        return self._cache

    def resolve(self, contract_id: UUID, evaluation_date: date | None = None) -> ContractRuleSet:
        """
        Resolve the effective rule set.

        Args:
            contract_id: Contract to resolve.
            evaluation_date: Date the rules must be applicable on.  Defaults
                to the clock's current UTC date.

        Returns:
            ContractRuleSet with the three effective lists sorted ascending
            by priority.
        """
        on = evaluation_date or self._clock.today()

        cached = self._cache.get(contract_id, on)
        if cached is not None:
            logger.debug(
                "rule_set_cache_hit",
                extra={"contract_id": str(contract_id), "evaluation_date": on},
            )
            return cached

        token = self._cache.begin(contract_id)
        contract = self._contracts.find_contract(contract_id)
        contract_type_code = contract.contract_type_code if contract is not None else None

        with LogContext.bind(contract_id=str(contract_id), contract_type_code=contract_type_code):
            if contract is None:
                logger.warning("contract_not_found", extra={"evaluation_date": on})
            elif not contract_type_code or not contract_type_code.strip():
                logger.warning("contract_type_missing", extra={"evaluation_date": on})

            overrides_enabled = self._gate.is_enabled_for_contract(contract_id)

            effective: dict[RuleCategory, tuple[EffectiveRule, ...]] = {}
            base_rules: list[BaseRule] = []
            overrides: list[RuleOverride] = []
            for category in RuleCategory:
                category_base = self._base_rules.find_active_base_rules(contract_type_code, category)
                category_overrides = (
                    self._overrides.find_overrides(contract_id, category)
                    if overrides_enabled
                    else []
                )
                effective[category] = merge_category(
                    base_rules=category_base,
                    overrides=category_overrides,
                    evaluation_date=on,
                    overrides_enabled=overrides_enabled,
                    contract_id=contract_id,
                    category=category,
                )
                base_rules.extend(category_base)
                overrides.extend(category_overrides)

            rule_set = ContractRuleSet(
                contract_id=contract_id,
                evaluation_date=on,
                validation_rules=effective[RuleCategory.VALIDATION],
                rate_adjustments=effective[RuleCategory.RATE_ADJUSTMENT],
                pricing_steps=effective[RuleCategory.PRICING_STEP],
                base_rules=tuple(base_rules),
                overrides=tuple(overrides),
                overrides_enabled=overrides_enabled,
                contract_type_code=contract_type_code,
            )

            if contract is not None:
                self._cache.put(contract_id, on, rule_set, token)

            logger.info(
                "rule_set_resolved",
                extra={
                    "evaluation_date": on,
                    "overrides_enabled": overrides_enabled,
                    "validation_rules": len(rule_set.validation_rules),
                    "rate_adjustments": len(rule_set.rate_adjustments),
                    "pricing_steps": len(rule_set.pricing_steps),
                    "override_count": rule_set.total_override_count,
                },
            )
        return rule_set

    def invalidate_contract(self, contract_id: UUID) -> int:
        return self._cache.invalidate_contract(contract_id)

    def invalidate_all(self) -> int:
        return self._cache.invalidate_all()
