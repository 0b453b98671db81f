"""
Module: rules_kernel.selectors.rule_selector
Responsibility: The Base Rule Store and the Override Store.  Read-only queries
    returning frozen DTOs for one rule category at a time.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Store order is deterministic: base rules by (priority, created_at,
      rule_id); overrides by (priority with NULLs last, created_at, rule_id).
      The merge engine applies overrides in exactly this order.
    - A blank contract type code has no base rules; no query is issued.
    - ``get_override`` only returns an override owned by the given contract.

Failure modes:
    - None of their own; missing rows yield None or an empty list.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from rules_kernel.domain.rules import (
    BaseRule,
    RuleAuditEntry,
    RuleCategory,
    RuleOverride,
)
from rules_kernel.models import BASE_RULE_MODELS, OVERRIDE_MODELS
from rules_kernel.models.audit import RuleAuditModel
from rules_kernel.selectors.base import BaseSelector


class BaseRuleSelector(BaseSelector):
    """Base Rule Store: contract-type-wide rules per category."""

    def __init__(self, session: Session):
        super().__init__(session)

    def find_active_base_rules(
        self,
        contract_type_code: str | None,
        category: RuleCategory,
    ) -> list[BaseRule]:
        """Active base rules for a contract type, in store order."""
        return self.list_base_rules(contract_type_code, category)

    def list_base_rules(
        self,
        contract_type_code: str | None,
        category: RuleCategory,
        include_inactive: bool = False,
    ) -> list[BaseRule]:
        if not contract_type_code or not contract_type_code.strip():
            return []

        model = BASE_RULE_MODELS[category]
        query = (
            select(model)
            .where(model.contract_type_code == contract_type_code)
            .order_by(model.priority, model.created_at, model.rule_id)
        )
        if not include_inactive:
            query = query.where(model.active.is_(True))
        return [row.to_dto() for row in self.session.execute(query).scalars().all()]

    def get_base_rule(
        self,
        contract_type_code: str,
        category: RuleCategory,
        rule_id: str,
    ) -> BaseRule | None:
        """Base rule by rule id, active or not."""
        model = BASE_RULE_MODELS[category]
        row = self.session.execute(
            select(model).where(
                model.contract_type_code == contract_type_code,
                model.rule_id == rule_id,
            )
        ).scalar_one_or_none()
        return row.to_dto() if row is not None else None

    def max_priority(self, contract_type_code: str, category: RuleCategory) -> int | None:
        """Highest priority in use for the contract type, active or not."""
        model = BASE_RULE_MODELS[category]
        return self.session.execute(
            select(func.max(model.priority)).where(
                model.contract_type_code == contract_type_code
            )
        ).scalar()


class OverrideSelector(BaseSelector):
    """Override Store: contract-specific overrides per category."""

    def __init__(self, session: Session):
        super().__init__(session)

    def find_overrides(
        self,
        contract_id: UUID,
        category: RuleCategory,
        include_inactive: bool = False,
    ) -> list[RuleOverride]:
        """Overrides for a contract in the order the merge engine applies them."""
        model = OVERRIDE_MODELS[category]
        query = (
            select(model)
            .where(model.contract_id == contract_id)
            .order_by(
                model.priority.is_(None),
                model.priority,
                model.created_at,
                model.rule_id,
            )
        )
        if not include_inactive:
            query = query.where(model.active.is_(True))
        return [row.to_dto() for row in self.session.execute(query).scalars().all()]

    def get_override(
        self,
        contract_id: UUID,
        category: RuleCategory,
        override_id: UUID,
    ) -> RuleOverride | None:
        model = OVERRIDE_MODELS[category]
        row = self.session.get(model, override_id)
        if row is None or row.contract_id != contract_id:
            return None
        return row.to_dto()

    def find_active_by_rule_id(
        self,
        contract_id: UUID,
        category: RuleCategory,
        rule_id: str,
    ) -> RuleOverride | None:
        model = OVERRIDE_MODELS[category]
        row = self.session.execute(
            select(model).where(
                model.contract_id == contract_id,
                model.rule_id == rule_id,
                model.active.is_(True),
            )
        ).scalar_one_or_none()
        return row.to_dto() if row is not None else None

    def audit_history(self, contract_id: UUID) -> list[RuleAuditEntry]:
        """Audit entries for a contract, oldest first."""
        rows = self.session.execute(
            select(RuleAuditModel)
            .where(RuleAuditModel.contract_id == contract_id)
            .order_by(RuleAuditModel.modified_at)
        ).scalars().all()
        return [row.to_dto() for row in rows]
