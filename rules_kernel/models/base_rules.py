"""
Module: rules_kernel.models.base_rules
Responsibility: ORM persistence for contract-type-wide base rules: validation
    rules, rate adjustments and pricing steps.  Each ORM class mirrors a
    domain DTO and provides ``to_dto()`` / ``from_dto()`` / ``apply_dto()``
    conversion.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ DTOs only.

Invariants enforced:
    - Enum payloads are stored as their string value and converted back in
      ``to_dto()``.
    - Percentages, thresholds and amounts use Decimal (Numeric(38,9)).
    - Base rules are soft-deleted (active=False); the row stays so a rule can
      be reactivated and its rule_id stays taken.
    - Uniqueness of rule_id within (contract_type_code, category) is enforced
      by the base rule service, since it spans active and inactive rows.

Failure modes:
    - ValueError from ``to_dto()`` if a stored enum string is unknown.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import BigInteger, Boolean, Date, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rules_kernel.db.base import TrackedBase
from rules_kernel.domain.rules import (
    AdjustmentFrequency,
    AdjustmentType,
    PricingStepRule,
    RateAdjustmentRule,
    RuleStepType,
    StepBase,
    ValidationRule,
    ValidationType,
)


def enum_value(value: Enum | None) -> str | None:
    return value.value if value is not None else None


def enum_or_none(enum_cls: type[Enum], value: str | None) -> Any:
    return enum_cls(value) if value is not None else None


# ---------------------------------------------------------------------------
# ValidationRuleModel
# ---------------------------------------------------------------------------


class ValidationRuleModel(TrackedBase):
    """ORM model for ``ValidationRule``."""

    __tablename__ = "contract_validation_rules"

    __table_args__ = (
        Index("idx_validation_rule_type_code", "contract_type_code", "rule_id"),
    )

    contract_type_code: Mapped[str] = mapped_column(String(50), nullable=False)
    rule_id: Mapped[str] = mapped_column(String(64), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    validation_type: Mapped[str] = mapped_column(String(50), nullable=False)
    required: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    threshold_value: Mapped[Decimal | None] = mapped_column(nullable=True)
    config_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[int] = mapped_column(BigInteger, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> ValidationRule:
        return ValidationRule(
            id=self.id,
            contract_type_code=self.contract_type_code,
            rule_id=self.rule_id,
            label=self.label,
            validation_type=ValidationType(self.validation_type),
            required=self.required,
            threshold_value=self.threshold_value,
            config_json=self.config_json,
            priority=self.priority,
            active=self.active,
        )

    @classmethod
    def from_dto(cls, dto: ValidationRule, created_by_id: UUID) -> "ValidationRuleModel":
        model = cls(
            contract_type_code=dto.contract_type_code,
            rule_id=dto.rule_id,
            created_by_id=created_by_id,
        )
        model.apply_dto(dto)
        return model

    def apply_dto(self, dto: ValidationRule) -> None:
        self.label = dto.label
        self.validation_type = enum_value(dto.validation_type)
        self.required = dto.required
        self.threshold_value = dto.threshold_value
        self.config_json = dto.config_json
        self.priority = dto.priority
        self.active = dto.active


# ---------------------------------------------------------------------------
# RateAdjustmentModel
# ---------------------------------------------------------------------------


class RateAdjustmentModel(TrackedBase):
    """ORM model for ``RateAdjustmentRule``."""

    __tablename__ = "contract_rate_adjustments"

    __table_args__ = (
        Index("idx_rate_adjustment_type_code", "contract_type_code", "rule_id"),
        Index("idx_rate_adjustment_window", "effective_date", "end_date"),
    )

    contract_type_code: Mapped[str] = mapped_column(String(50), nullable=False)
    rule_id: Mapped[str] = mapped_column(String(64), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    adjustment_type: Mapped[str] = mapped_column(String(50), nullable=False)
    adjustment_percent: Mapped[Decimal | None] = mapped_column(nullable=True)
    frequency: Mapped[str | None] = mapped_column(String(20), nullable=True)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    priority: Mapped[int] = mapped_column(BigInteger, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> RateAdjustmentRule:
        return RateAdjustmentRule(
            id=self.id,
            contract_type_code=self.contract_type_code,
            rule_id=self.rule_id,
            label=self.label,
            adjustment_type=AdjustmentType(self.adjustment_type),
            adjustment_percent=self.adjustment_percent,
            frequency=enum_or_none(AdjustmentFrequency, self.frequency),
            effective_date=self.effective_date,
            end_date=self.end_date,
            priority=self.priority,
            active=self.active,
        )

    @classmethod
    def from_dto(cls, dto: RateAdjustmentRule, created_by_id: UUID) -> "RateAdjustmentModel":
        model = cls(
            contract_type_code=dto.contract_type_code,
            rule_id=dto.rule_id,
            created_by_id=created_by_id,
        )
        model.apply_dto(dto)
        return model

    def apply_dto(self, dto: RateAdjustmentRule) -> None:
        self.label = dto.label
        self.adjustment_type = enum_value(dto.adjustment_type)
        self.adjustment_percent = dto.adjustment_percent
        self.frequency = enum_value(dto.frequency)
        self.effective_date = dto.effective_date
        self.end_date = dto.end_date
        self.priority = dto.priority
        self.active = dto.active


# ---------------------------------------------------------------------------
# PricingStepModel
# ---------------------------------------------------------------------------


class PricingStepModel(TrackedBase):
    """ORM model for ``PricingStepRule``."""

    __tablename__ = "pricing_rule_steps"

    __table_args__ = (
        Index("idx_pricing_step_type_code", "contract_type_code", "rule_id"),
        Index("idx_pricing_step_window", "valid_from", "valid_to"),
    )

    contract_type_code: Mapped[str] = mapped_column(String(50), nullable=False)
    rule_id: Mapped[str] = mapped_column(String(64), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    rule_step_type: Mapped[str] = mapped_column(String(50), nullable=False)
    step_base: Mapped[str] = mapped_column(String(50), nullable=False)
    percent: Mapped[Decimal | None] = mapped_column(nullable=True)
    amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    param_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    valid_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    valid_to: Mapped[date | None] = mapped_column(Date, nullable=True)
    priority: Mapped[int] = mapped_column(BigInteger, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> PricingStepRule:
        return PricingStepRule(
            id=self.id,
            contract_type_code=self.contract_type_code,
            rule_id=self.rule_id,
            label=self.label,
            rule_step_type=RuleStepType(self.rule_step_type),
            step_base=StepBase(self.step_base),
            percent=self.percent,
            amount=self.amount,
            param_key=self.param_key,
            valid_from=self.valid_from,
            valid_to=self.valid_to,
            priority=self.priority,
            active=self.active,
        )

    @classmethod
    def from_dto(cls, dto: PricingStepRule, created_by_id: UUID) -> "PricingStepModel":
        model = cls(
            contract_type_code=dto.contract_type_code,
            rule_id=dto.rule_id,
            created_by_id=created_by_id,
        )
        model.apply_dto(dto)
        return model

    def apply_dto(self, dto: PricingStepRule) -> None:
        self.label = dto.label
        self.rule_step_type = enum_value(dto.rule_step_type)
        self.step_base = enum_value(dto.step_base)
        self.percent = dto.percent
        self.amount = dto.amount
        self.param_key = dto.param_key
        self.valid_from = dto.valid_from
        self.valid_to = dto.valid_to
        self.priority = dto.priority
        self.active = dto.active
