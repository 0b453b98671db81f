"""
Module: rules_kernel.models.contract
Responsibility: ORM persistence for contract type definitions and the slice of
    a contract that rule resolution needs (its contract type code).
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ DTOs only.  MUST NOT import from services/, selectors/, or outer
    layers.

Invariants enforced:
    - ContractTypeDefinition.code is unique (uq_contract_type_code).
    - Contract types are soft-deleted (active=False), never removed, so base
      rules never reference a vanished code.
    - Contract.contract_type_code is nullable; a contract without a type
      resolves with zero base rules.

Failure modes:
    - IntegrityError on duplicate contract type code.

Audit relevance:
    The contract type code decides which base rules every contract of that
    type inherits.
"""

from sqlalchemy import Boolean, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from rules_kernel.db.base import TrackedBase
from rules_kernel.domain.rules import ContractInfo, ContractTypeInfo


class ContractTypeDefinition(TrackedBase):
    """A named contract type; base rules are keyed by its ``code``."""

    __tablename__ = "contract_type_definitions"

    __table_args__ = (
        UniqueConstraint("code", name="uq_contract_type_code"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<ContractTypeDefinition {self.code}>"

    def to_dto(self) -> ContractTypeInfo:
        return ContractTypeInfo(
            id=self.id,
            code=self.code,
            name=self.name,
            description=self.description,
            active=self.active,
        )


class Contract(TrackedBase):
    """A customer contract.  Overrides are owned by a contract."""

    __tablename__ = "contracts"

    __table_args__ = (
        Index("idx_contract_type_code", "contract_type_code"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contract_type_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    def __repr__(self) -> str:
        return f"<Contract {self.id} type={self.contract_type_code}>"

    def to_dto(self) -> ContractInfo:
        return ContractInfo(
            id=self.id,
            name=self.name,
            contract_type_code=self.contract_type_code,
        )
