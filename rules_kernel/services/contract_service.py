"""
ContractService -- contract type definitions and contracts.

Responsibility:
    Creates and retires contract types (the owners of base rules) and
    registers contracts against a contract type (the owners of overrides).

Architecture position:
    Kernel > Services -- imperative shell.
    Used by administration flows and by test/setup tooling.  Rule
    resolution itself only reads contracts through ``ContractSelector``.

Invariants enforced:
    - Returns frozen ``ContractTypeInfo`` / ``ContractInfo`` DTOs, never
      ORM entities.
    - Flush-only: never commits or rolls back the session.
    - Contract type codes match ``^[A-Z0-9_]+$`` (3-50 chars) and are unique.
    - Contract types are deactivated, never deleted.

Failure modes:
    - InvalidContractTypeCodeError: malformed code.
    - DuplicateContractTypeError: code already defined.
    - ContractTypeNotFoundError: unknown code on lookup, deactivation or
      contract creation.
    - ContractNotFoundError: unknown contract id.
"""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import select

from rules_kernel.domain.rule_validation import validate_contract_type_code
from rules_kernel.domain.rules import ContractInfo, ContractTypeInfo
from rules_kernel.exceptions import (
    ContractNotFoundError,
    ContractTypeNotFoundError,
    DuplicateContractTypeError,
)
from rules_kernel.logging_config import get_logger
from rules_kernel.models.contract import Contract, ContractTypeDefinition
from rules_kernel.services.base import BaseService

logger = get_logger("services.contract")


class ContractService(BaseService[Contract]):
    """
    Service for contract types and contracts.

    Guarantees:
        - All public methods return immutable DTOs, not ORM entities.
        - Session is flushed but never committed.
    """

    def _get_type(self, code: str) -> ContractTypeDefinition:
        definition = self.session.execute(
            select(ContractTypeDefinition).where(ContractTypeDefinition.code == code)
        ).scalar_one_or_none()
        if definition is None:
            raise ContractTypeNotFoundError(code)
        return definition

    # -------------------------------------------------------------------------
    # Contract types
    # -------------------------------------------------------------------------

    def create_contract_type(
        self,
        code: str,
        name: str,
        actor_id: UUID,
        description: str | None = None,
    ) -> ContractTypeInfo:
        """
        Define a new contract type.

        Raises:
            InvalidContractTypeCodeError: Code fails the pattern.
            DuplicateContractTypeError: Code already exists (active or not).
        """
        validate_contract_type_code(code)
        existing = self.session.execute(
            select(ContractTypeDefinition.id).where(ContractTypeDefinition.code == code)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateContractTypeError(code)

        definition = ContractTypeDefinition(
            code=code,
            name=name,
            description=description,
            active=True,
            created_by_id=actor_id,
        )
        self.session.add(definition)
        self.session.flush()
        logger.info("contract_type_created", extra={"contract_type_code": code})
        return definition.to_dto()

    def get_contract_type(self, code: str) -> ContractTypeInfo:
        return self._get_type(code).to_dto()

    def list_contract_types(self, include_inactive: bool = False) -> list[ContractTypeInfo]:
        query = select(ContractTypeDefinition).order_by(ContractTypeDefinition.code)
        if not include_inactive:
            query = query.where(ContractTypeDefinition.active.is_(True))
        return [d.to_dto() for d in self.session.execute(query).scalars().all()]

    def deactivate_contract_type(self, code: str, actor_id: UUID) -> ContractTypeInfo:
        """Soft-delete a contract type.  Its base rules stay in place."""
        definition = self._get_type(code)
        definition.active = False
        definition.updated_by_id = actor_id
        self.session.flush()
        logger.warning("contract_type_deactivated", extra={"contract_type_code": code})
        return definition.to_dto()

    def activate_contract_type(self, code: str, actor_id: UUID) -> ContractTypeInfo:
        definition = self._get_type(code)
        definition.active = True
        definition.updated_by_id = actor_id
        self.session.flush()
        logger.info("contract_type_activated", extra={"contract_type_code": code})
        return definition.to_dto()

    # -------------------------------------------------------------------------
    # Contracts
    # -------------------------------------------------------------------------

    def create_contract(
        self,
        name: str,
        actor_id: UUID,
        contract_type_code: str | None = None,
        contract_id: UUID | None = None,
    ) -> ContractInfo:
        """
        Register a contract.

        Args:
            name: Descriptive name.
            actor_id: UUID of the user creating the contract.
            contract_type_code: Optional contract type; must exist if given.
            contract_id: Optional identifier, e.g. one issued upstream.

        Raises:
            ContractTypeNotFoundError: ``contract_type_code`` is unknown.
        """
        if contract_type_code:
            self._get_type(contract_type_code)

        contract = Contract(
            id=contract_id or uuid4(),
            name=name,
            contract_type_code=contract_type_code,
            created_by_id=actor_id,
        )
        self.session.add(contract)
        self.session.flush()
        logger.info(
            "contract_created",
            extra={
                "contract_id": str(contract.id),
                "contract_type_code": contract_type_code,
            },
        )
        return contract.to_dto()

    def get_contract(self, contract_id: UUID) -> ContractInfo:
        contract = self.session.get(Contract, contract_id)
        if contract is None:
            raise ContractNotFoundError(str(contract_id))
        return contract.to_dto()
