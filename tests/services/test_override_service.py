"""Tests for OverrideService: the Override Store's write side and its audit trail."""

import json
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from rules_kernel.domain.rules import (
    AuditOperation,
    OverrideType,
    RuleCategory,
    RuleStepType,
    StepBase,
    ValidationType,
)
from rules_kernel.exceptions import (
    ContractNotFoundError,
    DuplicateOverrideError,
    EmptyModifyOverrideError,
    MissingPayloadFieldError,
    OverrideApiReadOnlyError,
    OverrideNotFoundError,
    OverridesNotEnabledError,
)
from rules_kernel.services import OverrideService
from tests.factories import pricing_override, validation_override


@pytest.fixture
def changed():
    return []


@pytest.fixture
def service(session, orchestrator, deterministic_clock, changed):
    return OverrideService(
        session,
        orchestrator.gate,
        clock=deterministic_clock,
        on_change=changed.append,
    )


def _fee_modify(contract_id, **changes):
    values = {"percent": Decimal("3")}
    values.update(changes)
    return pricing_override(contract_id, "admin-fee", OverrideType.MODIFY, **values)


class TestCreate:
    def test_create_returns_stored_override(self, service, contract, test_actor_id):
        stored = service.create_override(_fee_modify(contract.id), test_actor_id)
        assert stored.id is not None
        assert stored.contract_id == contract.id
        assert stored.override_type == OverrideType.MODIFY
        assert stored.percent == Decimal("3")
        assert stored.created_by == test_actor_id
        assert stored.active is True

    def test_create_invalidates_contract(self, service, contract, changed, test_actor_id):
        service.create_override(_fee_modify(contract.id), test_actor_id)
        assert changed == [contract.id]

    def test_create_writes_audit_entry(self, service, contract, deterministic_clock, test_actor_id):
        stored = service.create_override(_fee_modify(contract.id), test_actor_id)
        (entry,) = service.audit_history(contract.id)
        assert entry.operation == AuditOperation.CREATE
        assert entry.category == RuleCategory.PRICING_STEP
        assert entry.rule_id == "admin-fee"
        assert entry.modified_by == test_actor_id
        assert entry.old_values is None
        new_values = json.loads(entry.new_values)
        assert new_values["override_type"] == "MODIFY"
        assert new_values["id"] == str(stored.id)
        assert entry.modified_at.replace(tzinfo=None) == deterministic_clock.now_utc().replace(tzinfo=None)

    def test_ignores_caller_supplied_state(self, service, contract, test_actor_id):
        stored = service.create_override(_fee_modify(contract.id, active=False, id=uuid4()), test_actor_id)
        assert stored.active is True
        assert service.get_override(contract.id, RuleCategory.PRICING_STEP, stored.id) == stored

    def test_overrides_not_enabled(self, make_orchestrator, contract, test_actor_id):
        orchestrator = make_orchestrator(enabled=False)
        with pytest.raises(OverridesNotEnabledError) as exc_info:
            orchestrator.overrides.create_override(_fee_modify(contract.id), test_actor_id)
        assert exc_info.value.code == "OVERRIDES_NOT_ENABLED"

    def test_contract_outside_rollout(self, make_orchestrator, contract, test_actor_id):
        orchestrator = make_orchestrator(rollout_percentage=0)
        with pytest.raises(OverridesNotEnabledError):
            orchestrator.overrides.create_override(_fee_modify(contract.id), test_actor_id)

    def test_whitelisted_contract_outside_rollout(self, make_orchestrator, contract, test_actor_id):
        orchestrator = make_orchestrator(rollout_percentage=0, whitelist=frozenset({str(contract.id)}))
        stored = orchestrator.overrides.create_override(_fee_modify(contract.id), test_actor_id)
        assert stored.id is not None

    @pytest.mark.parametrize("flags", [{"api_read_only": True}, {"api_enabled": False}])
    def test_api_not_writable(self, make_orchestrator, contract, test_actor_id, flags):
        orchestrator = make_orchestrator(**flags)
        with pytest.raises(OverrideApiReadOnlyError):
            orchestrator.overrides.create_override(_fee_modify(contract.id), test_actor_id)

    def test_unknown_contract(self, service, contract_type, test_actor_id):
        with pytest.raises(ContractNotFoundError):
            service.create_override(_fee_modify(uuid4()), test_actor_id)

    def test_duplicate_active_override(self, service, contract, changed, test_actor_id):
        service.create_override(_fee_modify(contract.id), test_actor_id)
        with pytest.raises(DuplicateOverrideError) as exc_info:
            service.create_override(
                pricing_override(contract.id, "admin-fee", OverrideType.DISABLE), test_actor_id
            )
        assert exc_info.value.code == "DUPLICATE_OVERRIDE"
        assert changed == [contract.id]

    def test_same_rule_id_in_other_category(self, service, contract, test_actor_id):
        service.create_override(_fee_modify(contract.id), test_actor_id)
        service.create_override(
            validation_override(contract.id, "admin-fee", OverrideType.DISABLE), test_actor_id
        )
        assert len(service.list_overrides(contract.id, RuleCategory.VALIDATION)) == 1

    def test_empty_modify_rejected(self, service, contract, test_actor_id):
        with pytest.raises(EmptyModifyOverrideError):
            service.create_override(
                pricing_override(contract.id, "admin-fee", OverrideType.MODIFY), test_actor_id
            )
        assert service.list_overrides(contract.id, RuleCategory.PRICING_STEP) == []

    def test_incomplete_replace_rejected(self, service, contract, test_actor_id):
        with pytest.raises(MissingPayloadFieldError):
            service.create_override(
                validation_override(contract.id, "notes", OverrideType.REPLACE, label="Notes"),
                test_actor_id,
            )

    def test_complete_replace_accepted(self, service, contract, test_actor_id):
        stored = service.create_override(
            pricing_override(
                contract.id,
                "rounding",
                OverrideType.REPLACE,
                label="Round to whole units",
                rule_step_type=RuleStepType.ROUNDING,
                step_base=StepBase.CURRENT_SUM,
                valid_from=date(2024, 1, 1),
            ),
            test_actor_id,
        )
        assert stored.rule_step_type == RuleStepType.ROUNDING


class TestUpdate:
    def test_update_fields(self, service, contract, deterministic_clock, changed, test_actor_id):
        stored = service.create_override(_fee_modify(contract.id), test_actor_id)
        deterministic_clock.advance(60)
        updated = service.update_override(
            contract.id,
            RuleCategory.PRICING_STEP,
            stored.id,
            test_actor_id,
            percent=Decimal("4"),
            priority=15,
        )
        assert updated.percent == Decimal("4")
        assert updated.priority == 15
        assert changed == [contract.id, contract.id]

        history = service.audit_history(contract.id)
        assert [e.operation for e in history] == [AuditOperation.CREATE, AuditOperation.UPDATE]
        assert json.loads(history[1].old_values)["percent"] == "3"
        assert json.loads(history[1].new_values)["priority"] == 15

    def test_change_override_type(self, service, contract, test_actor_id):
        stored = service.create_override(_fee_modify(contract.id), test_actor_id)
        updated = service.update_override(
            contract.id,
            RuleCategory.PRICING_STEP,
            stored.id,
            test_actor_id,
            override_type=OverrideType.DISABLE,
        )
        assert updated.override_type == OverrideType.DISABLE

    @pytest.mark.parametrize("field_name", ["rule_id", "contract_id", "active", "created_by"])
    def test_immutable_fields(self, service, contract, test_actor_id, field_name):
        stored = service.create_override(_fee_modify(contract.id), test_actor_id)
        with pytest.raises(ValueError, match=field_name):
            service.update_override(
                contract.id, RuleCategory.PRICING_STEP, stored.id, test_actor_id, **{field_name: None}
            )

    def test_clearing_every_field_of_modify_rejected(self, service, contract, test_actor_id):
        stored = service.create_override(_fee_modify(contract.id), test_actor_id)
        with pytest.raises(EmptyModifyOverrideError):
            service.update_override(
                contract.id, RuleCategory.PRICING_STEP, stored.id, test_actor_id, percent=None
            )

    def test_other_contracts_override_not_found(self, service, contract, create_contract, test_actor_id):
        stored = service.create_override(_fee_modify(contract.id), test_actor_id)
        other = create_contract("Other customer")
        with pytest.raises(OverrideNotFoundError):
            service.update_override(
                other.id, RuleCategory.PRICING_STEP, stored.id, test_actor_id, percent=Decimal("1")
            )

    def test_wrong_category_not_found(self, service, contract, test_actor_id):
        stored = service.create_override(_fee_modify(contract.id), test_actor_id)
        with pytest.raises(OverrideNotFoundError):
            service.get_override(contract.id, RuleCategory.RATE_ADJUSTMENT, stored.id)

    def test_read_only_api_blocks_update(self, make_orchestrator, contract, test_actor_id):
        stored = make_orchestrator().overrides.create_override(_fee_modify(contract.id), test_actor_id)
        read_only = make_orchestrator(api_read_only=True)
        with pytest.raises(OverrideApiReadOnlyError):
            read_only.overrides.update_override(
                contract.id, RuleCategory.PRICING_STEP, stored.id, test_actor_id, percent=Decimal("1")
            )


class TestDelete:
    def test_delete_is_soft(self, service, contract, deterministic_clock, changed, test_actor_id):
        stored = service.create_override(_fee_modify(contract.id), test_actor_id)
        deterministic_clock.advance(60)
        deleted = service.delete_override(contract.id, RuleCategory.PRICING_STEP, stored.id, test_actor_id)

        assert deleted.active is False
        assert service.list_overrides(contract.id, RuleCategory.PRICING_STEP) == []
        assert len(service.list_overrides(contract.id, RuleCategory.PRICING_STEP, include_inactive=True)) == 1
        assert changed == [contract.id, contract.id]

        last = service.audit_history(contract.id)[-1]
        assert last.operation == AuditOperation.DELETE
        assert last.new_values is None
        assert json.loads(last.old_values)["active"] is True

    def test_rule_id_reusable_after_delete(self, service, contract, test_actor_id):
        stored = service.create_override(_fee_modify(contract.id), test_actor_id)
        service.delete_override(contract.id, RuleCategory.PRICING_STEP, stored.id, test_actor_id)
        again = service.create_override(
            pricing_override(contract.id, "admin-fee", OverrideType.DISABLE), test_actor_id
        )
        assert again.id != stored.id

    def test_delete_unknown(self, service, contract, test_actor_id):
        with pytest.raises(OverrideNotFoundError):
            service.delete_override(contract.id, RuleCategory.VALIDATION, uuid4(), test_actor_id)


class TestList:
    def test_store_order_is_priority_then_unprioritized(self, service, contract, test_actor_id):
        for rule_id, priority in (("late", None), ("second", 20), ("first", 10)):
            service.create_override(
                validation_override(
                    contract.id,
                    rule_id,
                    OverrideType.MODIFY,
                    validation_type=ValidationType.NOTES_REQUIRED,
                    priority=priority,
                ),
                test_actor_id,
            )
        listed = service.list_overrides(contract.id, RuleCategory.VALIDATION)
        assert [o.rule_id for o in listed] == ["first", "second", "late"]

    def test_scoped_to_contract(self, service, contract, create_contract, test_actor_id):
        other = create_contract("Other customer")
        service.create_override(_fee_modify(other.id), test_actor_id)
        assert service.list_overrides(contract.id, RuleCategory.PRICING_STEP) == []
