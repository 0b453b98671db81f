"""
Rules -- Pure domain value objects for base rules and overrides.

Responsibility:
    Defines the immutable data structures that flow through rule resolution:
    the three base rule families (validation, rate adjustment, pricing step),
    the matching override families, and the enums that classify them.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Free of ORM dependencies.  ORM models convert to these via ``to_dto()``;
    the merge engine and the resolution service only ever see these types.

Invariants enforced:
    - Every dated window is inclusive-start / exclusive-end; a missing bound
      is open.  ``is_applicable(on)`` is the single place this is decided.
    - Base validation rules carry no window: they apply whenever active.
    - Override payload fields are all optional.  ``None`` means "inherit from
      base" under MODIFY and "unset" under REPLACE.
    - Override field names that overlay onto a rule are listed in
      ``OVERLAY_FIELDS`` and match the rule dataclass field names exactly.

Failure modes:
    (none -- payload rules are enforced in ``rule_validation``)

Audit relevance:
    ``audit_values()`` gives the JSON-ready snapshot written to the rule
    audit trail before and after each override mutation.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Union
from uuid import UUID


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RuleCategory(str, Enum):
    """The three rule families resolved independently of each other."""

    VALIDATION = "validation"
    RATE_ADJUSTMENT = "rate_adjustment"
    PRICING_STEP = "pricing_step"


class OverrideType(str, Enum):
    """
    How an override combines with the base rule it targets.

    REPLACE: the override fully determines the rule; the base is ignored.
    DISABLE: the rule is removed from the effective set.
    MODIFY:  non-null override fields are laid over the base rule.
    """

    REPLACE = "REPLACE"
    DISABLE = "DISABLE"
    MODIFY = "MODIFY"


class ValidationType(str, Enum):
    NOTES_REQUIRED = "NOTES_REQUIRED"
    MIN_HOURS_PER_ENTRY = "MIN_HOURS_PER_ENTRY"
    MAX_HOURS_PER_DAY = "MAX_HOURS_PER_DAY"
    REQUIRE_TASK_SELECTION = "REQUIRE_TASK_SELECTION"


class AdjustmentType(str, Enum):
    ANNUAL_INCREASE = "ANNUAL_INCREASE"
    INFLATION_LINKED = "INFLATION_LINKED"
    STEP_BASED = "STEP_BASED"
    FIXED_ADJUSTMENT = "FIXED_ADJUSTMENT"


class AdjustmentFrequency(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"
    ONE_TIME = "ONE_TIME"


class RuleStepType(str, Enum):
    PERCENT_DISCOUNT_ON_SUM = "PERCENT_DISCOUNT_ON_SUM"
    ADMIN_FEE_PERCENT = "ADMIN_FEE_PERCENT"
    FIXED_DEDUCTION = "FIXED_DEDUCTION"
    GENERAL_DISCOUNT_PERCENT = "GENERAL_DISCOUNT_PERCENT"
    ROUNDING = "ROUNDING"


class StepBase(str, Enum):
    """Which running sum a pricing step is computed against."""

    SUM_BEFORE_DISCOUNTS = "SUM_BEFORE_DISCOUNTS"
    CURRENT_SUM = "CURRENT_SUM"


class RuleSource(str, Enum):
    """Where an effective rule came from."""

    BASE = "BASE"
    OVERRIDE = "OVERRIDE"


class AuditOperation(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


def window_contains(start: date | None, end: date | None, on: date) -> bool:
    """True if ``on`` lies in [start, end); missing bounds are open."""
    if start is not None and on < start:
        return False
    if end is not None and on >= end:
        return False
    return True


def _value(v: Any) -> Any:
    return v.value if isinstance(v, Enum) else v


class _AuditMixin:
    """Shared JSON-ready snapshot for audit entries and inspection output."""

    def audit_values(self) -> dict[str, Any]:
        return {f.name: _value(getattr(self, f.name)) for f in fields(self)}


# ---------------------------------------------------------------------------
# Base rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ValidationRule(_AuditMixin):
    """
    Validation constraint applied to time registrations.

    Contract:
        Owned by a contract type.  Has no validity window: an active
        validation rule applies on every date.

    Guarantees:
        - ``semantic_type`` is the ``validation_type`` used for REPLACE
          suppression.
    """

    CATEGORY: ClassVar[RuleCategory] = RuleCategory.VALIDATION

    rule_id: str
    label: str | None
    validation_type: ValidationType | None
    required: bool | None = None
    threshold_value: Decimal | None = None
    config_json: str | None = None
    priority: int = 100
    active: bool = True
    contract_type_code: str | None = None
    id: UUID | None = None

    @property
    def semantic_type(self) -> ValidationType | None:
        return self.validation_type

    def is_applicable(self, on: date) -> bool:
        return self.active


@dataclass(frozen=True)
class RateAdjustmentRule(_AuditMixin):
    """
    Hourly rate adjustment (annual increase, inflation link, ...).

    Contract:
        Applies from ``effective_date`` (inclusive) to ``end_date``
        (exclusive, open when None).
    """

    CATEGORY: ClassVar[RuleCategory] = RuleCategory.RATE_ADJUSTMENT

    rule_id: str
    label: str | None
    adjustment_type: AdjustmentType | None
    adjustment_percent: Decimal | None = None
    frequency: AdjustmentFrequency | None = None
    effective_date: date | None = None
    end_date: date | None = None
    priority: int = 100
    active: bool = True
    contract_type_code: str | None = None
    id: UUID | None = None

    @property
    def semantic_type(self) -> AdjustmentType | None:
        return self.adjustment_type

    def is_applicable(self, on: date) -> bool:
        return self.active and window_contains(self.effective_date, self.end_date, on)


@dataclass(frozen=True)
class PricingStepRule(_AuditMixin):
    """
    One step of the invoice pricing pipeline.

    Contract:
        Applies from ``valid_from`` (inclusive) to ``valid_to`` (exclusive);
        either bound may be open.
    """

    CATEGORY: ClassVar[RuleCategory] = RuleCategory.PRICING_STEP

    rule_id: str
    label: str | None
    rule_step_type: RuleStepType | None
    step_base: StepBase | None = None
    percent: Decimal | None = None
    amount: Decimal | None = None
    param_key: str | None = None
    valid_from: date | None = None
    valid_to: date | None = None
    priority: int = 100
    active: bool = True
    contract_type_code: str | None = None
    id: UUID | None = None

    @property
    def semantic_type(self) -> RuleStepType | None:
        return self.rule_step_type

    def is_applicable(self, on: date) -> bool:
        return self.active and window_contains(self.valid_from, self.valid_to, on)


BaseRule = Union[ValidationRule, RateAdjustmentRule, PricingStepRule]


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ValidationOverride(_AuditMixin):
    """
    Contract-specific change to a validation rule.

    Contract:
        Applicable whenever active.  All payload fields optional.
    """

    CATEGORY: ClassVar[RuleCategory] = RuleCategory.VALIDATION
    RULE_TYPE: ClassVar[type] = ValidationRule
    OVERLAY_FIELDS: ClassVar[tuple[str, ...]] = (
        "label",
        "validation_type",
        "required",
        "threshold_value",
        "config_json",
        "priority",
    )

    contract_id: UUID
    rule_id: str
    override_type: OverrideType
    label: str | None = None
    validation_type: ValidationType | None = None
    required: bool | None = None
    threshold_value: Decimal | None = None
    config_json: str | None = None
    priority: int | None = None
    active: bool = True
    created_by: UUID | None = None
    created_at: datetime | None = None
    id: UUID | None = None

    @property
    def semantic_type(self) -> ValidationType | None:
        return self.validation_type

    def is_applicable(self, on: date) -> bool:
        return self.active


@dataclass(frozen=True)
class RateAdjustmentOverride(_AuditMixin):
    """Contract-specific change to a rate adjustment."""

    CATEGORY: ClassVar[RuleCategory] = RuleCategory.RATE_ADJUSTMENT
    RULE_TYPE: ClassVar[type] = RateAdjustmentRule
    OVERLAY_FIELDS: ClassVar[tuple[str, ...]] = (
        "label",
        "adjustment_type",
        "adjustment_percent",
        "frequency",
        "effective_date",
        "end_date",
        "priority",
    )

    contract_id: UUID
    rule_id: str
    override_type: OverrideType
    label: str | None = None
    adjustment_type: AdjustmentType | None = None
    adjustment_percent: Decimal | None = None
    frequency: AdjustmentFrequency | None = None
    effective_date: date | None = None
    end_date: date | None = None
    priority: int | None = None
    active: bool = True
    created_by: UUID | None = None
    created_at: datetime | None = None
    id: UUID | None = None

    @property
    def semantic_type(self) -> AdjustmentType | None:
        return self.adjustment_type

    def is_applicable(self, on: date) -> bool:
        return self.active and window_contains(self.effective_date, self.end_date, on)


@dataclass(frozen=True)
class PricingStepOverride(_AuditMixin):
    """Contract-specific change to a pricing step."""

    CATEGORY: ClassVar[RuleCategory] = RuleCategory.PRICING_STEP
    RULE_TYPE: ClassVar[type] = PricingStepRule
    OVERLAY_FIELDS: ClassVar[tuple[str, ...]] = (
        "label",
        "rule_step_type",
        "step_base",
        "percent",
        "amount",
        "param_key",
        "valid_from",
        "valid_to",
        "priority",
    )

    contract_id: UUID
    rule_id: str
    override_type: OverrideType
    label: str | None = None
    rule_step_type: RuleStepType | None = None
    step_base: StepBase | None = None
    percent: Decimal | None = None
    amount: Decimal | None = None
    param_key: str | None = None
    valid_from: date | None = None
    valid_to: date | None = None
    priority: int | None = None
    active: bool = True
    created_by: UUID | None = None
    created_at: datetime | None = None
    id: UUID | None = None

    @property
    def semantic_type(self) -> RuleStepType | None:
        return self.rule_step_type

    def is_applicable(self, on: date) -> bool:
        return self.active and window_contains(self.valid_from, self.valid_to, on)


RuleOverride = Union[ValidationOverride, RateAdjustmentOverride, PricingStepOverride]

RULE_TYPES: dict[RuleCategory, type] = {
    RuleCategory.VALIDATION: ValidationRule,
    RuleCategory.RATE_ADJUSTMENT: RateAdjustmentRule,
    RuleCategory.PRICING_STEP: PricingStepRule,
}

OVERRIDE_TYPES: dict[RuleCategory, type] = {
    RuleCategory.VALIDATION: ValidationOverride,
    RuleCategory.RATE_ADJUSTMENT: RateAdjustmentOverride,
    RuleCategory.PRICING_STEP: PricingStepOverride,
}


# ---------------------------------------------------------------------------
# Contract reference data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ContractTypeInfo:
    """A contract type definition; base rules hang off its ``code``."""

    code: str
    name: str
    description: str | None = None
    active: bool = True
    id: UUID | None = None


@dataclass(frozen=True)
class ContractInfo:
    """The slice of a contract rule resolution needs."""

    id: UUID
    name: str
    contract_type_code: str | None = None


@dataclass(frozen=True)
class RuleAuditEntry:
    """One recorded override mutation."""

    contract_id: UUID
    category: RuleCategory
    rule_id: str
    operation: AuditOperation
    old_values: str | None
    new_values: str | None
    modified_by: UUID
    modified_at: datetime
    id: UUID | None = None
