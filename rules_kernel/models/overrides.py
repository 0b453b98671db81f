"""
Module: rules_kernel.models.overrides
Responsibility: ORM persistence for contract-specific overrides of validation
    rules, rate adjustments and pricing steps.
Architecture position: Kernel > Models.  May import from db/base.py,
    models/base_rules.py helpers and domain/ DTOs only.

Invariants enforced:
    - Every override belongs to exactly one contract (FK contracts.id).
    - Payload columns are all nullable: NULL means "inherit" under MODIFY.
    - Overrides are soft-deleted (active=False).  At most one ACTIVE override
      per (contract_id, rule_id) per table; enforced by the override service.

Failure modes:
    - IntegrityError if contract_id does not reference an existing contract.
    - ValueError from ``to_dto()`` if a stored enum string is unknown.

Audit relevance:
    Every create/update/delete of a row here is paired with a
    RuleAuditModel row written in the same transaction.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import BigInteger, Boolean, Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rules_kernel.db.base import TrackedBase, UUIDString
from rules_kernel.domain.rules import (
    AdjustmentFrequency,
    AdjustmentType,
    OverrideType,
    PricingStepOverride,
    RateAdjustmentOverride,
    RuleStepType,
    StepBase,
    ValidationOverride,
    ValidationType,
)
from rules_kernel.models.base_rules import enum_or_none, enum_value


class _OverrideColumns:
    """Columns common to every override table."""

    contract_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("contracts.id"),
        nullable=False,
    )
    rule_id: Mapped[str] = mapped_column(String(64), nullable=False)
    override_type: Mapped[str] = mapped_column(String(20), nullable=False)
    label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    priority: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


# ---------------------------------------------------------------------------
# ValidationOverrideModel
# ---------------------------------------------------------------------------


class ValidationOverrideModel(_OverrideColumns, TrackedBase):
    """ORM model for ``ValidationOverride``."""

    __tablename__ = "contract_validation_overrides"

    __table_args__ = (
        Index("idx_validation_override_contract", "contract_id", "rule_id"),
    )

    validation_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    required: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    threshold_value: Mapped[Decimal | None] = mapped_column(nullable=True)
    config_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> ValidationOverride:
        return ValidationOverride(
            id=self.id,
            contract_id=self.contract_id,
            rule_id=self.rule_id,
            override_type=OverrideType(self.override_type),
            label=self.label,
            validation_type=enum_or_none(ValidationType, self.validation_type),
            required=self.required,
            threshold_value=self.threshold_value,
            config_json=self.config_json,
            priority=self.priority,
            active=self.active,
            created_by=self.created_by_id,
            created_at=self.created_at,
        )

    @classmethod
    def from_dto(cls, dto: ValidationOverride, created_by_id: UUID) -> "ValidationOverrideModel":
        model = cls(
            contract_id=dto.contract_id,
            rule_id=dto.rule_id,
            created_by_id=created_by_id,
        )
        model.apply_dto(dto)
        return model

    def apply_dto(self, dto: ValidationOverride) -> None:
        self.override_type = dto.override_type.value
        self.label = dto.label
        self.validation_type = enum_value(dto.validation_type)
        self.required = dto.required
        self.threshold_value = dto.threshold_value
        self.config_json = dto.config_json
        self.priority = dto.priority
        self.active = dto.active


# ---------------------------------------------------------------------------
# RateAdjustmentOverrideModel
# ---------------------------------------------------------------------------


class RateAdjustmentOverrideModel(_OverrideColumns, TrackedBase):
    """ORM model for ``RateAdjustmentOverride``."""

    __tablename__ = "contract_rate_adjustment_overrides"

    __table_args__ = (
        Index("idx_rate_override_contract", "contract_id", "rule_id"),
    )

    adjustment_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    adjustment_percent: Mapped[Decimal | None] = mapped_column(nullable=True)
    frequency: Mapped[str | None] = mapped_column(String(20), nullable=True)
    effective_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    def to_dto(self) -> RateAdjustmentOverride:
        return RateAdjustmentOverride(
            id=self.id,
            contract_id=self.contract_id,
            rule_id=self.rule_id,
            override_type=OverrideType(self.override_type),
            label=self.label,
            adjustment_type=enum_or_none(AdjustmentType, self.adjustment_type),
            adjustment_percent=self.adjustment_percent,
            frequency=enum_or_none(AdjustmentFrequency, self.frequency),
            effective_date=self.effective_date,
            end_date=self.end_date,
            priority=self.priority,
            active=self.active,
            created_by=self.created_by_id,
            created_at=self.created_at,
        )

    @classmethod
    def from_dto(
        cls, dto: RateAdjustmentOverride, created_by_id: UUID
    ) -> "RateAdjustmentOverrideModel":
        model = cls(
            contract_id=dto.contract_id,
            rule_id=dto.rule_id,
            created_by_id=created_by_id,
        )
        model.apply_dto(dto)
        return model

    def apply_dto(self, dto: RateAdjustmentOverride) -> None:
        self.override_type = dto.override_type.value
        self.label = dto.label
        self.adjustment_type = enum_value(dto.adjustment_type)
        self.adjustment_percent = dto.adjustment_percent
        self.frequency = enum_value(dto.frequency)
        self.effective_date = dto.effective_date
        self.end_date = dto.end_date
        self.priority = dto.priority
        self.active = dto.active


# ---------------------------------------------------------------------------
# PricingStepOverrideModel
# ---------------------------------------------------------------------------


class PricingStepOverrideModel(_OverrideColumns, TrackedBase):
    """ORM model for ``PricingStepOverride``."""

    __tablename__ = "pricing_rule_overrides"

    __table_args__ = (
        Index("idx_pricing_override_contract", "contract_id", "rule_id"),
    )

    rule_step_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    step_base: Mapped[str | None] = mapped_column(String(50), nullable=True)
    percent: Mapped[Decimal | None] = mapped_column(nullable=True)
    amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    param_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    valid_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    valid_to: Mapped[date | None] = mapped_column(Date, nullable=True)

    def to_dto(self) -> PricingStepOverride:
        return PricingStepOverride(
            id=self.id,
            contract_id=self.contract_id,
            rule_id=self.rule_id,
            override_type=OverrideType(self.override_type),
            label=self.label,
            rule_step_type=enum_or_none(RuleStepType, self.rule_step_type),
            step_base=enum_or_none(StepBase, self.step_base),
            percent=self.percent,
            amount=self.amount,
            param_key=self.param_key,
            valid_from=self.valid_from,
            valid_to=self.valid_to,
            priority=self.priority,
            active=self.active,
            created_by=self.created_by_id,
            created_at=self.created_at,
        )

    @classmethod
    def from_dto(
        cls, dto: PricingStepOverride, created_by_id: UUID
    ) -> "PricingStepOverrideModel":
        model = cls(
            contract_id=dto.contract_id,
            rule_id=dto.rule_id,
            created_by_id=created_by_id,
        )
        model.apply_dto(dto)
        return model

    def apply_dto(self, dto: PricingStepOverride) -> None:
        self.override_type = dto.override_type.value
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
