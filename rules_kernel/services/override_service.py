"""
OverrideService -- administration of contract-specific rule overrides.

Responsibility:
    Create, update and soft-delete validation, rate adjustment and pricing
    step overrides for one contract, writing an audit entry for every
    mutation and invalidating the contract's cached rule sets.

Architecture position:
    Kernel > Services -- imperative shell.
    Receives the ``FeatureGate``, a ``Clock`` and an ``on_change`` callback
    by injection.  The composition layer (``rules_services``) wires
    ``on_change`` to the rule set cache's ``invalidate_contract``.

Invariants enforced:
    - Overrides can only be created for contracts the feature gate has
      enabled, and only while the override API accepts writes.
    - At most one active override per (contract, category, rule_id).
    - REPLACE overrides are complete; MODIFY overrides change something;
      date windows are ordered (see ``validate_override``).
    - Update/delete only touch overrides owned by the given contract.
    - Each successful mutation writes exactly one RuleAuditModel row in the
      same flush as the override row, then calls ``on_change(contract_id)``.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - OverridesNotEnabledError / OverrideApiReadOnlyError: feature flags.
    - ContractNotFoundError: unknown contract.
    - DuplicateOverrideError: active override for rule_id already exists.
    - OverrideNotFoundError: unknown override, or owned by another contract.
    - RuleValidationError subclasses: malformed payload.
    - ValueError: ``update_override`` given an immutable or unknown field.

Audit relevance:
    The audit trail records old and new values as canonical JSON, the
    acting user and the clock time of the change.  ``on_change`` runs after
    the flush, before the caller commits; the orchestrator's binding
    repeats the invalidation once the session commits.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable
from uuid import UUID

from sqlalchemy.orm import Session

from rules_kernel.domain.clock import Clock, SystemClock
from rules_kernel.domain.feature_gate import FeatureGate
from rules_kernel.domain.rule_validation import validate_override
from rules_kernel.domain.rules import (
    AuditOperation,
    RuleAuditEntry,
    RuleCategory,
    RuleOverride,
)
from rules_kernel.exceptions import (
    ContractNotFoundError,
    DuplicateOverrideError,
    OverrideApiReadOnlyError,
    OverrideNotFoundError,
    OverridesNotEnabledError,
)
from rules_kernel.logging_config import LogContext, get_logger
from rules_kernel.models import OVERRIDE_MODELS
from rules_kernel.models.audit import RuleAuditModel
from rules_kernel.models.contract import Contract
from rules_kernel.selectors.rule_selector import OverrideSelector
from rules_kernel.services.base import BaseService
from rules_kernel.utils.hashing import canonicalize_json

logger = get_logger("services.override")

_UPDATABLE_FIELDS = ("override_type",)


class OverrideService(BaseService):
    """
    Service for overrides of all three categories.

    Contract:
        Accepts override DTOs and returns the stored override DTOs.

    Guarantees:
        - Returns frozen override DTOs, never ORM entities.
        - Session is flushed but never committed.
    """

    def __init__(
        self,
        session: Session,
        gate: FeatureGate,
        clock: Clock | None = None,
        on_change: Callable[[UUID], None] | None = None,
    ):
        super().__init__(session)
        self._gate = gate
        self._clock = clock or SystemClock()
        self._on_change = on_change
        self._selector = OverrideSelector(session)

    # -------------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------------

    def _require_writable(self, operation: str) -> None:
        if not self._gate.is_api_enabled() or self._gate.is_api_read_only():
            raise OverrideApiReadOnlyError(operation)

    def _require_contract(self, contract_id: UUID) -> Contract:
        contract = self.session.get(Contract, contract_id)
        if contract is None:
            raise ContractNotFoundError(str(contract_id))
        return contract

    def _get_model(self, contract_id: UUID, category: RuleCategory, override_id: UUID):
        row = self.session.get(OVERRIDE_MODELS[category], override_id)
        if row is None or row.contract_id != contract_id:
            raise OverrideNotFoundError(str(contract_id), category.value, str(override_id))
        return row

    # -------------------------------------------------------------------------
    # Audit / invalidation
    # -------------------------------------------------------------------------

    def _audit(
        self,
        override: RuleOverride,
        operation: AuditOperation,
        old: RuleOverride | None,
        new: RuleOverride | None,
        actor_id: UUID,
    ) -> None:
        self.session.add(
            RuleAuditModel(
                contract_id=override.contract_id,
                category=override.CATEGORY.value,
                rule_id=override.rule_id,
                operation=operation.value,
                old_values=canonicalize_json(old.audit_values()) if old else None,
                new_values=canonicalize_json(new.audit_values()) if new else None,
                modified_by=actor_id,
                modified_at=self._clock.now_utc(),
            )
        )

    def _changed(self, contract_id: UUID) -> None:
        if self._on_change is not None:
            self._on_change(contract_id)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def create_override(self, override: RuleOverride, actor_id: UUID) -> RuleOverride:
        """
        Create an override for ``override.contract_id``.

        Preconditions:
            - The feature gate enables overrides for the contract.
            - No active override exists for (contract, category, rule_id).

        Args:
            override: The override to create; ``id``, ``active``,
                ``created_by`` and ``created_at`` are ignored.
            actor_id: UUID of the administrator.

        Returns:
            The stored override, with its id.
        """
        contract_id = override.contract_id
        category = override.CATEGORY

        if not self._gate.is_enabled_for_contract(contract_id):
            raise OverridesNotEnabledError(str(contract_id))
        self._require_writable("create")
        self._require_contract(contract_id)

        override = replace(override, id=None, active=True, created_by=None, created_at=None)
        validate_override(override)

        if self._selector.find_active_by_rule_id(contract_id, category, override.rule_id):
            raise DuplicateOverrideError(str(contract_id), category.value, override.rule_id)

        row = OVERRIDE_MODELS[category].from_dto(override, created_by_id=actor_id)
        self.session.add(row)
        self.session.flush()
        stored = row.to_dto()
        self._audit(stored, AuditOperation.CREATE, None, stored, actor_id)
        self.session.flush()

        with LogContext.bind(contract_id=str(contract_id), actor_id=str(actor_id)):
            logger.info(
                "override_created",
                extra={
                    "category": category.value,
                    "rule_id": override.rule_id,
                    "override_type": override.override_type.value,
                },
            )
        self._changed(contract_id)
        return stored

    def update_override(
        self,
        contract_id: UUID,
        category: RuleCategory,
        override_id: UUID,
        actor_id: UUID,
        **changes: Any,
    ) -> RuleOverride:
        """
        Change an override's type, label, priority or payload fields.

        Passing ``None`` for a payload field clears it (under MODIFY: inherit
        from base again).

        Raises:
            ValueError: A change names an immutable or unknown field.
        """
        self._require_writable("update")
        row = self._get_model(contract_id, category, override_id)
        current = row.to_dto()

        allowed = set(current.OVERLAY_FIELDS) | set(_UPDATABLE_FIELDS)
        rejected = sorted(set(changes) - allowed)
        if rejected:
            raise ValueError(f"Cannot update override fields: {', '.join(rejected)}")

        updated = replace(current, **changes)
        validate_override(updated)

        row.apply_dto(updated)
        row.updated_by_id = actor_id
        self.session.flush()
        stored = row.to_dto()
        self._audit(stored, AuditOperation.UPDATE, current, stored, actor_id)
        self.session.flush()

        with LogContext.bind(contract_id=str(contract_id), actor_id=str(actor_id)):
            logger.info(
                "override_updated",
                extra={
                    "category": category.value,
                    "rule_id": stored.rule_id,
                    "fields": sorted(changes),
                },
            )
        self._changed(contract_id)
        return stored

    def delete_override(
        self,
        contract_id: UUID,
        category: RuleCategory,
        override_id: UUID,
        actor_id: UUID,
    ) -> RuleOverride:
        """Soft-delete an override; its rule_id becomes free again."""
        self._require_writable("delete")
        row = self._get_model(contract_id, category, override_id)
        current = row.to_dto()

        row.active = False
        row.updated_by_id = actor_id
        self.session.flush()
        stored = row.to_dto()
        self._audit(stored, AuditOperation.DELETE, current, None, actor_id)
        self.session.flush()

        with LogContext.bind(contract_id=str(contract_id), actor_id=str(actor_id)):
            logger.info(
                "override_deleted",
                extra={"category": category.value, "rule_id": stored.rule_id},
            )
        self._changed(contract_id)
        return stored

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    def get_override(
        self,
        contract_id: UUID,
        category: RuleCategory,
        override_id: UUID,
    ) -> RuleOverride:
        override = self._selector.get_override(contract_id, category, override_id)
        if override is None:
            raise OverrideNotFoundError(str(contract_id), category.value, str(override_id))
        return override

    def list_overrides(
        self,
        contract_id: UUID,
        category: RuleCategory,
        include_inactive: bool = False,
    ) -> list[RuleOverride]:
        return self._selector.find_overrides(contract_id, category, include_inactive)

    def audit_history(self, contract_id: UUID) -> list[RuleAuditEntry]:
        return self._selector.audit_history(contract_id)
