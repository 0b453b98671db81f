"""Tests for payload validation (rules_kernel/domain/rule_validation.py)."""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from rules_kernel.domain.rule_validation import (
    validate_base_rule,
    validate_contract_type_code,
    validate_date_range,
    validate_override,
    validate_rule_id,
)
from rules_kernel.domain.rules import (
    AdjustmentType,
    OverrideType,
    PricingStepOverride,
    RateAdjustmentOverride,
    RuleStepType,
    StepBase,
    ValidationOverride,
    ValidationType,
)
from rules_kernel.exceptions import (
    EmptyModifyOverrideError,
    InvalidContractTypeCodeError,
    InvalidDateRangeError,
    InvalidRuleIdError,
    MissingPayloadFieldError,
    PayloadRangeError,
    RuleValidationError,
)
from tests.factories import pricing_rule, rate_rule, validation_rule

CONTRACT_ID = uuid4()


class TestIdentifiers:
    @pytest.mark.parametrize("rule_id", ["notes", "min-hours-2", "a", "x" * 64])
    def test_valid_rule_ids(self, rule_id):
        validate_rule_id(rule_id)

    @pytest.mark.parametrize("rule_id", ["", "Notes", "under_score", "white space", "x" * 65])
    def test_invalid_rule_ids(self, rule_id):
        with pytest.raises(InvalidRuleIdError) as exc_info:
            validate_rule_id(rule_id)
        assert exc_info.value.code == "INVALID_RULE_ID"

    @pytest.mark.parametrize("code", ["STD", "HOURLY_2024", "A" * 50])
    def test_valid_contract_type_codes(self, code):
        validate_contract_type_code(code)

    @pytest.mark.parametrize("code", ["", "AB", "lower", "HAS-DASH", "A" * 51])
    def test_invalid_contract_type_codes(self, code):
        with pytest.raises(InvalidContractTypeCodeError):
            validate_contract_type_code(code)


class TestDateRange:
    def test_open_bounds_pass(self):
        validate_date_range(None, None, ("a", "b"))
        validate_date_range(date(2024, 1, 1), None, ("a", "b"))
        validate_date_range(None, date(2024, 1, 1), ("a", "b"))

    def test_end_must_be_after_start(self):
        with pytest.raises(InvalidDateRangeError) as exc_info:
            validate_date_range(date(2024, 1, 1), date(2024, 1, 1), ("valid_from", "valid_to"))
        assert exc_info.value.field_names == ("valid_from", "valid_to")


class TestBaseRules:
    def test_valid_rules_pass(self):
        validate_base_rule(validation_rule())
        validate_base_rule(rate_rule())
        validate_base_rule(pricing_rule())

    def test_label_required(self):
        with pytest.raises(MissingPayloadFieldError) as exc_info:
            validate_base_rule(validation_rule(label=" "))
        assert exc_info.value.field_name == "label"

    def test_label_length(self):
        with pytest.raises(PayloadRangeError):
            validate_base_rule(validation_rule(label="x" * 256))

    def test_priority_positive(self):
        with pytest.raises(PayloadRangeError) as exc_info:
            validate_base_rule(pricing_rule(priority=0))
        assert exc_info.value.field_name == "priority"

    def test_validation_type_required(self):
        with pytest.raises(MissingPayloadFieldError):
            validate_base_rule(validation_rule(validation_type=None))

    def test_threshold_not_negative(self):
        with pytest.raises(PayloadRangeError):
            validate_base_rule(validation_rule(threshold_value=Decimal("-0.5")))
        validate_base_rule(validation_rule(threshold_value=Decimal("40")))

    def test_rate_bounds(self):
        validate_base_rule(rate_rule(adjustment_percent=Decimal("1000")))
        with pytest.raises(PayloadRangeError):
            validate_base_rule(rate_rule(adjustment_percent=Decimal("1000.01")))
        with pytest.raises(PayloadRangeError):
            validate_base_rule(rate_rule(adjustment_percent=Decimal("-100.01")))

    def test_rate_needs_effective_date(self):
        with pytest.raises(MissingPayloadFieldError) as exc_info:
            validate_base_rule(rate_rule(effective_date=None))
        assert exc_info.value.field_name == "effective_date"

    def test_rate_window_order(self):
        with pytest.raises(InvalidDateRangeError):
            validate_base_rule(rate_rule(effective_date=date(2024, 5, 1), end_date=date(2024, 4, 1)))

    def test_pricing_percent_bounds(self):
        with pytest.raises(PayloadRangeError):
            validate_base_rule(pricing_rule(percent=Decimal("101")))

    def test_pricing_step_base_required(self):
        with pytest.raises(MissingPayloadFieldError):
            validate_base_rule(pricing_rule(step_base=None))

    def test_admin_fee_needs_percent(self):
        with pytest.raises(MissingPayloadFieldError) as exc_info:
            validate_base_rule(pricing_rule(percent=None))
        assert exc_info.value.field_name == "percent"

    def test_fixed_deduction_needs_amount(self):
        rule = pricing_rule(rule_step_type=RuleStepType.FIXED_DEDUCTION, percent=None)
        with pytest.raises(MissingPayloadFieldError) as exc_info:
            validate_base_rule(rule)
        assert exc_info.value.field_name == "amount"
        validate_base_rule(replace(rule, amount=Decimal("50")))

    def test_percent_discount_accepts_param_key(self):
        rule = pricing_rule(
            rule_step_type=RuleStepType.PERCENT_DISCOUNT_ON_SUM,
            percent=None,
            param_key="volume_discount",
        )
        validate_base_rule(rule)
        with pytest.raises(MissingPayloadFieldError):
            validate_base_rule(replace(rule, param_key=None))

    def test_rounding_needs_no_companion(self):
        validate_base_rule(pricing_rule(rule_step_type=RuleStepType.ROUNDING, percent=None))

    def test_contract_type_required(self):
        with pytest.raises(MissingPayloadFieldError):
            validate_base_rule(validation_rule(contract_type_code=None))

    def test_unknown_type_rejected(self):
        with pytest.raises(TypeError):
            validate_base_rule(object())


class TestOverrides:
    def test_disable_needs_only_rule_id(self):
        validate_override(ValidationOverride(CONTRACT_ID, "notes", OverrideType.DISABLE))
        with pytest.raises(InvalidRuleIdError):
            validate_override(ValidationOverride(CONTRACT_ID, "Bad Id", OverrideType.DISABLE))

    def test_modify_must_change_something(self):
        with pytest.raises(EmptyModifyOverrideError) as exc_info:
            validate_override(PricingStepOverride(CONTRACT_ID, "admin-fee", OverrideType.MODIFY))
        assert exc_info.value.code == "EMPTY_MODIFY_OVERRIDE"
        validate_override(
            PricingStepOverride(CONTRACT_ID, "admin-fee", OverrideType.MODIFY, percent=Decimal("3"))
        )

    def test_modify_priority_only_counts(self):
        validate_override(ValidationOverride(CONTRACT_ID, "notes", OverrideType.MODIFY, priority=5))

    def test_replace_validation_complete(self):
        override = ValidationOverride(CONTRACT_ID, "notes", OverrideType.REPLACE, label="Notes")
        with pytest.raises(MissingPayloadFieldError) as exc_info:
            validate_override(override)
        assert exc_info.value.field_name == "validation_type"
        validate_override(replace(override, validation_type=ValidationType.NOTES_REQUIRED))

    def test_replace_needs_label(self):
        override = ValidationOverride(
            CONTRACT_ID, "notes", OverrideType.REPLACE, validation_type=ValidationType.NOTES_REQUIRED
        )
        with pytest.raises(MissingPayloadFieldError) as exc_info:
            validate_override(override)
        assert exc_info.value.field_name == "label"

    def test_replace_rate_complete(self):
        override = RateAdjustmentOverride(
            CONTRACT_ID,
            "annual",
            OverrideType.REPLACE,
            label="Annual",
            adjustment_type=AdjustmentType.ANNUAL_INCREASE,
            adjustment_percent=Decimal("4"),
        )
        with pytest.raises(MissingPayloadFieldError) as exc_info:
            validate_override(override)
        assert exc_info.value.field_name == "effective_date"
        validate_override(replace(override, effective_date=date(2024, 1, 1)))

    def test_replace_pricing_complete(self):
        override = PricingStepOverride(
            CONTRACT_ID,
            "admin-fee",
            OverrideType.REPLACE,
            label="Admin fee",
            rule_step_type=RuleStepType.ADMIN_FEE_PERCENT,
            step_base=StepBase.CURRENT_SUM,
            valid_from=date(2024, 1, 1),
        )
        with pytest.raises(MissingPayloadFieldError) as exc_info:
            validate_override(override)
        assert exc_info.value.field_name == "percent"
        validate_override(replace(override, percent=Decimal("3")))

    def test_override_ranges(self):
        with pytest.raises(PayloadRangeError):
            validate_override(
                ValidationOverride(CONTRACT_ID, "x", OverrideType.MODIFY, threshold_value=Decimal("25"))
            )
        with pytest.raises(PayloadRangeError):
            validate_override(
                RateAdjustmentOverride(CONTRACT_ID, "x", OverrideType.MODIFY, adjustment_percent=Decimal("101"))
            )
        with pytest.raises(PayloadRangeError):
            validate_override(
                PricingStepOverride(CONTRACT_ID, "x", OverrideType.MODIFY, amount=Decimal("1000000"))
            )
        with pytest.raises(PayloadRangeError):
            validate_override(
                PricingStepOverride(CONTRACT_ID, "x", OverrideType.MODIFY, param_key="k" * 65)
            )
        # overrides may carry negative pricing percentages
        validate_override(
            PricingStepOverride(CONTRACT_ID, "x", OverrideType.MODIFY, percent=Decimal("-50"))
        )

    def test_override_window_order(self):
        with pytest.raises(InvalidDateRangeError):
            validate_override(
                PricingStepOverride(
                    CONTRACT_ID,
                    "x",
                    OverrideType.MODIFY,
                    valid_from=date(2024, 3, 1),
                    valid_to=date(2024, 2, 1),
                )
            )

    def test_all_errors_share_base(self):
        with pytest.raises(RuleValidationError):
            validate_override(ValidationOverride(CONTRACT_ID, "", OverrideType.DISABLE))
