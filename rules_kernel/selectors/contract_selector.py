"""
Module: rules_kernel.selectors.contract_selector
Responsibility: Contract and contract type lookup.  ``find_contract`` is the
    contract lookup collaborator of rule resolution: it yields the contract's
    type code, or None when the contract is unknown.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from rules_kernel.domain.rules import ContractInfo, ContractTypeInfo
from rules_kernel.models.contract import Contract, ContractTypeDefinition
from rules_kernel.selectors.base import BaseSelector


class ContractSelector(BaseSelector[Contract]):
    """Read-only access to contracts and contract type definitions."""

    def __init__(self, session: Session):
        super().__init__(session)

    def find_contract(self, contract_id: UUID) -> ContractInfo | None:
        contract = self.session.get(Contract, contract_id)
        return contract.to_dto() if contract is not None else None

    def find_contract_type(self, code: str) -> ContractTypeInfo | None:
        definition = self.session.execute(
            select(ContractTypeDefinition).where(ContractTypeDefinition.code == code)
        ).scalar_one_or_none()
        return definition.to_dto() if definition is not None else None

    def list_contract_types(self, include_inactive: bool = False) -> list[ContractTypeInfo]:
        query = select(ContractTypeDefinition).order_by(ContractTypeDefinition.code)
        if not include_inactive:
            query = query.where(ContractTypeDefinition.active.is_(True))
        return [d.to_dto() for d in self.session.execute(query).scalars().all()]
