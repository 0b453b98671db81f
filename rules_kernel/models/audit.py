"""
Module: rules_kernel.models.audit
Responsibility: ORM persistence for the override audit trail.  One row per
    successful override create, update or soft-delete.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ DTOs only.

Invariants enforced:
    - Append-only: the override service inserts rows and never updates them.
    - old_values / new_values hold canonical JSON snapshots of the override
      (NULL old_values on CREATE).

Audit relevance:
    Lets an operator answer "who changed this contract's pricing, and from
    what to what" without reconstructing history from the override tables.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rules_kernel.db.base import Base, UUIDString
from rules_kernel.domain.rules import AuditOperation, RuleAuditEntry, RuleCategory


class RuleAuditModel(Base):
    """ORM model for ``RuleAuditEntry``."""

    __tablename__ = "contract_rule_audit"

    __table_args__ = (
        Index("idx_rule_audit_contract", "contract_id", "modified_at"),
    )

    contract_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    rule_id: Mapped[str] = mapped_column(String(64), nullable=False)
    operation: Mapped[str] = mapped_column(String(10), nullable=False)
    old_values: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_values: Mapped[str | None] = mapped_column(Text, nullable=True)
    modified_by: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    modified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def to_dto(self) -> RuleAuditEntry:
        return RuleAuditEntry(
            id=self.id,
            contract_id=self.contract_id,
            category=RuleCategory(self.category),
            rule_id=self.rule_id,
            operation=AuditOperation(self.operation),
            old_values=self.old_values,
            new_values=self.new_values,
            modified_by=self.modified_by,
            modified_at=self.modified_at,
        )
