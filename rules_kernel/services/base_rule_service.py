"""
BaseRuleService -- administration of contract-type-wide base rules.

Responsibility:
    Create, update, soft-delete and reactivate validation rules, rate
    adjustments and pricing steps for a contract type.  Pricing steps can
    be given the next free priority automatically and created in bulk.

Architecture position:
    Kernel > Services -- imperative shell.
    Writes go through the ORM models; reads of the result go back out as
    domain DTOs.  Cache invalidation is delegated to an ``on_change``
    callback supplied by the composition layer, so the kernel never
    imports the rule set cache.

Invariants enforced:
    - rule_id is unique within (contract_type_code, category), counting
      inactive rules, so a soft-deleted rule can only be reactivated.
    - Payloads pass ``validate_base_rule`` before anything is written.
    - Flush-only: never commits or rolls back the session.
    - Every successful mutation calls ``on_change()``.  A base rule affects
      every contract of its type, so the whole rule set cache is cleared.

Failure modes:
    - ContractTypeNotFoundError: unknown contract type on create.
    - DuplicateBaseRuleError: rule_id already used for the type/category.
    - BaseRuleNotFoundError: update/delete/reactivate of an unknown rule.
    - RuleValidationError subclasses: malformed payload.
    - ValueError: ``update_base_rule`` given an immutable or unknown field.
"""

from __future__ import annotations

from dataclasses import fields, replace
from typing import Any, Callable, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from rules_kernel.domain.rule_validation import validate_base_rule
from rules_kernel.domain.rules import (
    BaseRule,
    PricingStepRule,
    RuleCategory,
)
from rules_kernel.exceptions import (
    BaseRuleNotFoundError,
    ContractTypeNotFoundError,
    DuplicateBaseRuleError,
)
from rules_kernel.logging_config import get_logger
from rules_kernel.models import BASE_RULE_MODELS
from rules_kernel.models.contract import ContractTypeDefinition
from rules_kernel.selectors.rule_selector import BaseRuleSelector
from rules_kernel.services.base import BaseService

logger = get_logger("services.base_rule")

PRIORITY_INCREMENT = 10

_IMMUTABLE_FIELDS = frozenset({"id", "rule_id", "contract_type_code", "active"})


class BaseRuleService(BaseService):
    """
    Service for base rules of all three categories.

    Guarantees:
        - Returns frozen rule DTOs, never ORM entities.
        - Session is flushed but never committed.
    """

    def __init__(
        self,
        session: Session,
        on_change: Callable[[], None] | None = None,
    ):
        super().__init__(session)
        self._on_change = on_change
        self._selector = BaseRuleSelector(session)

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

    def _require_contract_type(self, code: str | None) -> None:
        found = self.session.execute(
            select(ContractTypeDefinition.id).where(ContractTypeDefinition.code == code)
        ).scalar_one_or_none()
        if found is None:
            raise ContractTypeNotFoundError(code or "")

    def _get_model(self, category: RuleCategory, contract_type_code: str, rule_id: str):
        model = BASE_RULE_MODELS[category]
        row = self.session.execute(
            select(model).where(
                model.contract_type_code == contract_type_code,
                model.rule_id == rule_id,
            )
        ).scalar_one_or_none()
        if row is None:
            raise BaseRuleNotFoundError(contract_type_code, category.value, rule_id)
        return row

    def next_priority(self, contract_type_code: str, category: RuleCategory) -> int:
        """Current highest priority for the type plus PRIORITY_INCREMENT."""
        return (self._selector.max_priority(contract_type_code, category) or 0) + PRIORITY_INCREMENT

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def create_base_rule(
        self,
        rule: BaseRule,
        actor_id: UUID,
        auto_priority: bool = False,
    ) -> BaseRule:
        """
        Create a base rule.

        Preconditions:
            - ``rule.contract_type_code`` names an existing contract type.

        Args:
            rule: The rule to create; ``id`` is ignored.
            actor_id: UUID of the administrator.
            auto_priority: Ignore ``rule.priority`` and assign the next free
                priority for the contract type and category.

        Returns:
            The stored rule, with its id.
        """
        category = rule.CATEGORY
        self._require_contract_type(rule.contract_type_code)
        if auto_priority:
            rule = replace(rule, priority=self.next_priority(rule.contract_type_code, category))
        rule = replace(rule, id=None, active=True)
        validate_base_rule(rule)

        if self._selector.get_base_rule(rule.contract_type_code, category, rule.rule_id) is not None:
            raise DuplicateBaseRuleError(rule.contract_type_code, category.value, rule.rule_id)

        row = BASE_RULE_MODELS[category].from_dto(rule, created_by_id=actor_id)
        self.session.add(row)
        self.session.flush()
        logger.info(
            "base_rule_created",
            extra={
                "contract_type_code": rule.contract_type_code,
                "category": category.value,
                "rule_id": rule.rule_id,
                "priority": row.priority,
            },
        )
        self._changed()
        return row.to_dto()

    def create_pricing_steps(
        self,
        steps: Sequence[PricingStepRule],
        actor_id: UUID,
        auto_priority: bool = False,
    ) -> list[PricingStepRule]:
        """
        Create several pricing steps in one transaction.

        With ``auto_priority`` each step gets the next free priority in the
        order given, so the steps keep their relative order.
        """
        return [self.create_base_rule(step, actor_id, auto_priority) for step in steps]

    # -------------------------------------------------------------------------
    # Update / lifecycle
    # -------------------------------------------------------------------------

    def update_base_rule(
        self,
        category: RuleCategory,
        contract_type_code: str,
        rule_id: str,
        actor_id: UUID,
        **changes: Any,
    ) -> BaseRule:
        """
        Change payload fields of a base rule.

        Args:
            category: Rule category.
            contract_type_code: Owning contract type.
            rule_id: Rule to change.
            actor_id: UUID of the administrator.
            **changes: New values for payload fields, label or priority.

        Raises:
            ValueError: A change names an immutable or unknown field.
        """
        row = self._get_model(category, contract_type_code, rule_id)
        current = row.to_dto()

        allowed = {f.name for f in fields(current)} - _IMMUTABLE_FIELDS
        rejected = sorted(set(changes) - allowed)
        if rejected:
            raise ValueError(f"Cannot update base rule fields: {', '.join(rejected)}")

        updated = replace(current, **changes)
        validate_base_rule(updated)

        row.apply_dto(updated)
        row.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "base_rule_updated",
            extra={
                "contract_type_code": contract_type_code,
                "category": category.value,
                "rule_id": rule_id,
                "fields": sorted(changes),
            },
        )
        self._changed()
        return row.to_dto()

    def deactivate_base_rule(
        self,
        category: RuleCategory,
        contract_type_code: str,
        rule_id: str,
        actor_id: UUID,
    ) -> BaseRule:
        """Soft-delete: the rule stops taking part in resolution."""
        return self._set_active(category, contract_type_code, rule_id, actor_id, False)

    def reactivate_base_rule(
        self,
        category: RuleCategory,
        contract_type_code: str,
        rule_id: str,
        actor_id: UUID,
    ) -> BaseRule:
        return self._set_active(category, contract_type_code, rule_id, actor_id, True)

    def _set_active(
        self,
        category: RuleCategory,
        contract_type_code: str,
        rule_id: str,
        actor_id: UUID,
        active: bool,
    ) -> BaseRule:
        row = self._get_model(category, contract_type_code, rule_id)
        row.active = active
        row.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "base_rule_reactivated" if active else "base_rule_deactivated",
            extra={
                "contract_type_code": contract_type_code,
                "category": category.value,
                "rule_id": rule_id,
            },
        )
        self._changed()
        return row.to_dto()

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    def get_base_rule(
        self,
        category: RuleCategory,
        contract_type_code: str,
        rule_id: str,
    ) -> BaseRule:
        rule = self._selector.get_base_rule(contract_type_code, category, rule_id)
        if rule is None:
            raise BaseRuleNotFoundError(contract_type_code, category.value, rule_id)
        return rule

    def list_base_rules(
        self,
        category: RuleCategory,
        contract_type_code: str,
        include_inactive: bool = False,
    ) -> list[BaseRule]:
        return self._selector.list_base_rules(contract_type_code, category, include_inactive)
