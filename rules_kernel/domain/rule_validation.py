"""
Rule validation -- Payload checks for base rules and overrides.

Responsibility:
    Enforces identifier patterns, category-required payload fields, numeric
    bounds and date window ordering on the administrative create/update path.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Called by the administrative services before anything is written.  The
    merge engine never calls this module: it assumes stored payloads are
    already valid.

Invariants enforced:
    - Rule ids match ``^[a-z0-9-]+$`` and are at most 64 characters.
    - Contract type codes match ``^[A-Z0-9_]+$`` and are 3-50 characters.
    - A window's end, when present, is strictly after its start.
    - Pricing steps carry the companion field their step type needs:
        PERCENT_DISCOUNT_ON_SUM  -> percent or param_key
        ADMIN_FEE_PERCENT        -> percent
        FIXED_DEDUCTION          -> amount
    - REPLACE overrides carry label and sub-type (and the category's
      mandatory companions); MODIFY overrides set at least one field.

Failure modes:
    - Subclasses of RuleValidationError, each carrying the offending field.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal

from rules_kernel.domain.rules import (
    BaseRule,
    OverrideType,
    PricingStepOverride,
    PricingStepRule,
    RateAdjustmentOverride,
    RateAdjustmentRule,
    RuleOverride,
    RuleStepType,
    ValidationOverride,
    ValidationRule,
)
from rules_kernel.exceptions import (
    EmptyModifyOverrideError,
    InvalidContractTypeCodeError,
    InvalidDateRangeError,
    InvalidRuleIdError,
    MissingPayloadFieldError,
    PayloadRangeError,
)

RULE_ID_PATTERN = re.compile(r"^[a-z0-9-]+$")
RULE_ID_MAX_LENGTH = 64
CONTRACT_TYPE_CODE_PATTERN = re.compile(r"^[A-Z0-9_]+$")
LABEL_MAX_LENGTH = 255
PARAM_KEY_MAX_LENGTH = 64

_HUNDRED = Decimal("100")


# ---------------------------------------------------------------------------
# Field-level checks
# ---------------------------------------------------------------------------


def validate_rule_id(rule_id: str) -> None:
    if (
        not rule_id
        or len(rule_id) > RULE_ID_MAX_LENGTH
        or not RULE_ID_PATTERN.match(rule_id)
    ):
        raise InvalidRuleIdError(rule_id)


def validate_contract_type_code(code: str) -> None:
    if not code or not 3 <= len(code) <= 50 or not CONTRACT_TYPE_CODE_PATTERN.match(code):
        raise InvalidContractTypeCodeError(code)


def validate_date_range(
    start: date | None,
    end: date | None,
    field_names: tuple[str, str],
) -> None:
    """End must be strictly after start when both are present."""
    if start is not None and end is not None and end <= start:
        raise InvalidDateRangeError(start, end, field_names)


def _require(value: object, field_name: str, reason: str) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MissingPayloadFieldError(field_name, reason)


def _check_range(
    value: Decimal | int | None,
    field_name: str,
    minimum: Decimal | int,
    maximum: Decimal | int | None = None,
) -> None:
    if value is None:
        return
    if value < minimum or (maximum is not None and value > maximum):
        raise PayloadRangeError(
            field_name,
            str(value),
            str(minimum),
            None if maximum is None else str(maximum),
        )


def _check_label(label: str | None) -> None:
    if label is not None and len(label) > LABEL_MAX_LENGTH:
        raise PayloadRangeError("label", f"{len(label)} characters", "1", str(LABEL_MAX_LENGTH))


def validate_pricing_integrity(
    rule_step_type: RuleStepType | None,
    percent: Decimal | None,
    amount: Decimal | None,
    param_key: str | None,
) -> None:
    """Step-type specific companion fields for pricing steps."""
    if rule_step_type == RuleStepType.PERCENT_DISCOUNT_ON_SUM:
        if percent is None and not param_key:
            raise MissingPayloadFieldError(
                "percent",
                "PERCENT_DISCOUNT_ON_SUM requires either percent or param_key",
            )
    elif rule_step_type == RuleStepType.ADMIN_FEE_PERCENT:
        _require(percent, "percent", "ADMIN_FEE_PERCENT requires percent")
    elif rule_step_type == RuleStepType.FIXED_DEDUCTION:
        _require(amount, "amount", "FIXED_DEDUCTION requires amount")


# ---------------------------------------------------------------------------
# Base rules
# ---------------------------------------------------------------------------


def validate_base_rule(rule: BaseRule) -> None:
    """
    Check a base rule before it is created or updated.

    Raises:
        RuleValidationError subclass describing the first problem found.
    """
    validate_rule_id(rule.rule_id)
    _require(rule.contract_type_code, "contract_type_code", "base rules belong to a contract type")
    _require(rule.label, "label", "base rules need a label")
    _check_label(rule.label)
    _check_range(rule.priority, "priority", 1)

    if isinstance(rule, ValidationRule):
        _require(rule.validation_type, "validation_type", "validation rules need a type")
        _check_range(rule.threshold_value, "threshold_value", Decimal("0"))
    elif isinstance(rule, RateAdjustmentRule):
        _require(rule.adjustment_type, "adjustment_type", "rate adjustments need a type")
        _require(rule.effective_date, "effective_date", "rate adjustments need a start date")
        _check_range(rule.adjustment_percent, "adjustment_percent", Decimal("-100"), Decimal("1000"))
        validate_date_range(rule.effective_date, rule.end_date, ("effective_date", "end_date"))
    elif isinstance(rule, PricingStepRule):
        _require(rule.rule_step_type, "rule_step_type", "pricing steps need a step type")
        _require(rule.step_base, "step_base", "pricing steps need a step base")
        _check_range(rule.percent, "percent", Decimal("0"), _HUNDRED)
        validate_date_range(rule.valid_from, rule.valid_to, ("valid_from", "valid_to"))
        validate_pricing_integrity(rule.rule_step_type, rule.percent, rule.amount, rule.param_key)
    else:
        raise TypeError(f"Unsupported rule type: {type(rule).__name__}")


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------


def validate_override(override: RuleOverride) -> None:
    """
    Check an override before it is created or updated.

    DISABLE overrides only need a valid rule id.  REPLACE overrides must be
    self-contained.  MODIFY overrides must change something.

    Raises:
        RuleValidationError subclass describing the first problem found.
    """
    validate_rule_id(override.rule_id)
    _check_label(override.label)
    _check_range(override.priority, "priority", 1)

    if isinstance(override, ValidationOverride):
        _check_range(override.threshold_value, "threshold_value", Decimal("0"), Decimal("24"))
    elif isinstance(override, RateAdjustmentOverride):
        _check_range(override.adjustment_percent, "adjustment_percent", Decimal("-100"), _HUNDRED)
        validate_date_range(override.effective_date, override.end_date, ("effective_date", "end_date"))
    elif isinstance(override, PricingStepOverride):
        _check_range(override.percent, "percent", Decimal("-100"), Decimal("1000"))
        _check_range(override.amount, "amount", Decimal("-999999.99"), Decimal("999999.99"))
        if override.param_key is not None and len(override.param_key) > PARAM_KEY_MAX_LENGTH:
            raise PayloadRangeError(
                "param_key",
                f"{len(override.param_key)} characters",
                "0",
                str(PARAM_KEY_MAX_LENGTH),
            )
        validate_date_range(override.valid_from, override.valid_to, ("valid_from", "valid_to"))
    else:
        raise TypeError(f"Unsupported override type: {type(override).__name__}")

    if override.override_type == OverrideType.REPLACE:
        _validate_replace(override)
    elif override.override_type == OverrideType.MODIFY:
        _validate_modify(override)


def _validate_replace(override: RuleOverride) -> None:
    reason = "REPLACE overrides must be complete"
    _require(override.label, "label", reason)

    if isinstance(override, ValidationOverride):
        _require(override.validation_type, "validation_type", reason)
    elif isinstance(override, RateAdjustmentOverride):
        _require(override.adjustment_type, "adjustment_type", reason)
        _require(override.adjustment_percent, "adjustment_percent", reason)
        _require(override.effective_date, "effective_date", reason)
    elif isinstance(override, PricingStepOverride):
        _require(override.rule_step_type, "rule_step_type", reason)
        _require(override.step_base, "step_base", reason)
        _require(override.valid_from, "valid_from", reason)
        validate_pricing_integrity(
            override.rule_step_type, override.percent, override.amount, override.param_key
        )


def _validate_modify(override: RuleOverride) -> None:
    if all(getattr(override, name) is None for name in override.OVERLAY_FIELDS):
        raise EmptyModifyOverrideError(override.rule_id)
