"""
Typed exception hierarchy for contract rule administration.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the administrative path (REST layer, scripts, tests) need to tell
"the contract does not exist" apart from "that rule id is already taken"
without parsing message strings.  Every error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example:
    try:
        override_service.create_override(override, actor_id)
    except DuplicateOverrideError as e:
        api_response(409, code=e.code, rule_id=e.rule_id)
    except OverridesNotEnabledError as e:
        api_response(403, code=e.code, contract_id=e.contract_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    RulesKernelError (base)
    |
    +-- NotFoundError
    |   +-- ContractNotFoundError
    |   +-- ContractTypeNotFoundError
    |   +-- BaseRuleNotFoundError
    |   +-- OverrideNotFoundError
    |
    +-- ConflictError
    |   +-- DuplicateContractTypeError
    |   +-- DuplicateBaseRuleError
    |   +-- DuplicateOverrideError
    |
    +-- RuleValidationError
    |   +-- InvalidDateRangeError
    |   +-- MissingPayloadFieldError
    |   +-- PayloadRangeError
    |   +-- InvalidRuleIdError
    |   +-- InvalidContractTypeCodeError
    |   +-- EmptyModifyOverrideError
    |
    +-- FeatureDisabledError
        +-- OverridesNotEnabledError
        +-- OverrideApiReadOnlyError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                       | When Raised
-----------|----------------------------|------------------------------------------
Not found  | CONTRACT_NOT_FOUND         | Contract id doesn't exist
           | CONTRACT_TYPE_NOT_FOUND    | Contract type code doesn't exist
           | BASE_RULE_NOT_FOUND        | No base rule for (type, category, rule id)
           | OVERRIDE_NOT_FOUND         | Override id unknown or owned by another contract
-----------|----------------------------|------------------------------------------
Conflict   | DUPLICATE_CONTRACT_TYPE    | Contract type code already defined
           | DUPLICATE_BASE_RULE        | Rule id taken within (type, category)
           | DUPLICATE_OVERRIDE         | Rule id taken within (contract, category)
-----------|----------------------------|------------------------------------------
Validation | INVALID_DATE_RANGE         | End is not after start
           | MISSING_PAYLOAD_FIELD      | Category-required field absent
           | PAYLOAD_OUT_OF_RANGE       | Numeric payload outside allowed bounds
           | INVALID_RULE_ID            | Rule id not lowercase/digits/hyphens
           | INVALID_CONTRACT_TYPE_CODE | Code not uppercase/digits/underscores
           | EMPTY_MODIFY_OVERRIDE      | MODIFY override sets no field
-----------|----------------------------|------------------------------------------
Feature    | OVERRIDES_NOT_ENABLED      | Gate says no for this contract
           | OVERRIDE_API_READ_ONLY     | Override API switched to read-only

Merge-time code raises none of these.  Resolution always produces an answer;
anomalies are logged instead.
"""

from datetime import date


class RulesKernelError(Exception):
    """
    Base exception for all contract rule errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "RULES_KERNEL_ERROR"


# Not-found errors


class NotFoundError(RulesKernelError):
    """Base exception for references to records that do not exist."""

    code: str = "NOT_FOUND"


class ContractNotFoundError(NotFoundError):
    """Contract with given id was not found."""

    code: str = "CONTRACT_NOT_FOUND"

    def __init__(self, contract_id: str):
        self.contract_id = contract_id
        super().__init__(f"Contract not found: {contract_id}")


class ContractTypeNotFoundError(NotFoundError):
    """Contract type with given code was not found."""

    code: str = "CONTRACT_TYPE_NOT_FOUND"

    def __init__(self, contract_type_code: str):
        self.contract_type_code = contract_type_code
        super().__init__(f"Contract type not found: {contract_type_code}")


class BaseRuleNotFoundError(NotFoundError):
    """No base rule with the rule id exists for the contract type and category."""

    code: str = "BASE_RULE_NOT_FOUND"

    def __init__(self, contract_type_code: str, category: str, rule_id: str):
        self.contract_type_code = contract_type_code
        self.category = category
        self.rule_id = rule_id
        super().__init__(
            f"{category} rule '{rule_id}' not found for contract type "
            f"'{contract_type_code}'"
        )


class OverrideNotFoundError(NotFoundError):
    """Override does not exist or belongs to a different contract."""

    code: str = "OVERRIDE_NOT_FOUND"

    def __init__(self, contract_id: str, category: str, override_id: str):
        self.contract_id = contract_id
        self.category = category
        self.override_id = override_id
        super().__init__(
            f"{category} override {override_id} not found for contract {contract_id}"
        )


# Conflict errors


class ConflictError(RulesKernelError):
    """Base exception for uniqueness violations."""

    code: str = "CONFLICT"


class DuplicateContractTypeError(ConflictError):
    """Contract type code is already defined."""

    code: str = "DUPLICATE_CONTRACT_TYPE"

    def __init__(self, contract_type_code: str):
        self.contract_type_code = contract_type_code
        super().__init__(f"Contract type already exists: {contract_type_code}")


class DuplicateBaseRuleError(ConflictError):
    """Rule id already used within (contract type, category)."""

    code: str = "DUPLICATE_BASE_RULE"

    def __init__(self, contract_type_code: str, category: str, rule_id: str):
        self.contract_type_code = contract_type_code
        self.category = category
        self.rule_id = rule_id
        super().__init__(
            f"{category} rule '{rule_id}' already exists for contract type "
            f"'{contract_type_code}'"
        )


class DuplicateOverrideError(ConflictError):
    """Rule id already overridden within (contract, category)."""

    code: str = "DUPLICATE_OVERRIDE"

    def __init__(self, contract_id: str, category: str, rule_id: str):
        self.contract_id = contract_id
        self.category = category
        self.rule_id = rule_id
        super().__init__(
            f"{category} override already exists for rule '{rule_id}' "
            f"on contract {contract_id}"
        )


# Validation errors


class RuleValidationError(RulesKernelError):
    """Base exception for malformed rule or override payloads."""

    code: str = "RULE_VALIDATION_ERROR"


class InvalidDateRangeError(RuleValidationError):
    """Window end is not strictly after its start."""

    code: str = "INVALID_DATE_RANGE"

    def __init__(self, start: date, end: date, field_names: tuple[str, str]):
        self.start = start
        self.end = end
        self.field_names = field_names
        super().__init__(
            f"{field_names[1]} ({end}) must be after {field_names[0]} ({start})"
        )


class MissingPayloadFieldError(RuleValidationError):
    """A field required for this category, sub-type or override kind is absent."""

    code: str = "MISSING_PAYLOAD_FIELD"

    def __init__(self, field_name: str, reason: str):
        self.field_name = field_name
        self.reason = reason
        super().__init__(f"'{field_name}' is required: {reason}")


class PayloadRangeError(RuleValidationError):
    """A numeric payload field lies outside its allowed bounds."""

    code: str = "PAYLOAD_OUT_OF_RANGE"

    def __init__(self, field_name: str, value: str, minimum: str, maximum: str | None):
        self.field_name = field_name
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        bounds = f">= {minimum}" if maximum is None else f"between {minimum} and {maximum}"
        super().__init__(f"'{field_name}' must be {bounds}, got {value}")


class InvalidRuleIdError(RuleValidationError):
    """Rule id does not match the allowed pattern."""

    code: str = "INVALID_RULE_ID"

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(
            f"Rule ID '{rule_id}' must contain only lowercase letters, "
            f"numbers, and hyphens (max 64 characters)"
        )


class InvalidContractTypeCodeError(RuleValidationError):
    """Contract type code does not match the allowed pattern."""

    code: str = "INVALID_CONTRACT_TYPE_CODE"

    def __init__(self, contract_type_code: str):
        self.contract_type_code = contract_type_code
        super().__init__(
            f"Contract type code '{contract_type_code}' must be 3-50 uppercase "
            f"letters, numbers, or underscores"
        )


class EmptyModifyOverrideError(RuleValidationError):
    """A MODIFY override must change at least one field."""

    code: str = "EMPTY_MODIFY_OVERRIDE"

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(
            f"MODIFY override for rule '{rule_id}' must specify at least one field"
        )


# Feature-gate errors


class FeatureDisabledError(RulesKernelError):
    """Base exception for operations refused by the override feature flags."""

    code: str = "FEATURE_DISABLED"


class OverridesNotEnabledError(FeatureDisabledError):
    """Override system is off globally or for this contract."""

    code: str = "OVERRIDES_NOT_ENABLED"

    def __init__(self, contract_id: str):
        self.contract_id = contract_id
        super().__init__(f"Contract overrides are not enabled for contract {contract_id}")


class OverrideApiReadOnlyError(FeatureDisabledError):
    """Override API is disabled or switched to read-only."""

    code: str = "OVERRIDE_API_READ_ONLY"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Override API does not accept writes ({operation})")
