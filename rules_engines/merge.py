"""
Rule Merge Engine (``rules_engines.merge``).

Responsibility
--------------
Combine a contract type's base rules with a contract's overrides into the
ordered, date-scoped effective rule list for one rule category.

* REPLACE -- the override alone determines the rule; other entries of the
  same semantic sub-type are suppressed.
* DISABLE -- the entry is removed.
* MODIFY  -- non-null override fields are laid over the existing entry; with
  no existing entry the override's fields are inserted as a partial rule.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO database,
ZERO clock reads.  Imports only kernel domain value objects.

Invariants enforced
-------------------
* Only active base rules whose window contains the evaluation date seed
  the result; only applicable overrides are applied.
* With overrides disabled the result is exactly the applicable base rules
  sorted by priority; overrides are not looked at.
* Entries keep first-insertion order (base rules in store order, then new
  rule ids in override order) and the final sort by priority is stable.
* A DISABLE for rule id X leaves no entry X.
* After a REPLACE with sub-type T, it is the only entry with sub-type T.

Failure modes
-------------
* Raises nothing for dangling overrides.  DISABLE or MODIFY of a rule id
  with no entry is logged at DEBUG and degrades to a no-op or a partial
  insert respectively.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace
from datetime import date
from uuid import UUID

from rules_kernel.domain.rule_set import EffectiveRule
from rules_kernel.domain.rules import (
    BaseRule,
    OverrideType,
    RuleCategory,
    RuleOverride,
    RuleSource,
)
from rules_kernel.logging_config import get_logger
from rules_engines.tracer import traced_engine

logger = get_logger("engines.merge")

REPLACE_DEFAULT_PRIORITY = 100

# Fields a REPLACE leaves empty that still need a concrete value.
_REPLACE_FIELD_DEFAULTS = {"required": False}


# ---------------------------------------------------------------------------
# Per-variant merge functions
# ---------------------------------------------------------------------------


def overlay_non_null(base: BaseRule, override: RuleOverride) -> BaseRule:
    """Copy of ``base`` with every non-null overlay field of ``override``."""
    changes = {}
    for name in override.OVERLAY_FIELDS:
        value = getattr(override, name)
        if value is not None:
            changes[name] = value
    return replace(base, **changes)


def merge_replace(base: BaseRule | None, override: RuleOverride) -> BaseRule:
    """Build the rule from the override alone; ``base`` is ignored.

    Empty label becomes ``"Override for <rule_id>"``, empty priority becomes
    ``REPLACE_DEFAULT_PRIORITY`` and an empty ``required`` flag is False.
    """
    values = {}
    for name in override.OVERLAY_FIELDS:
        value = getattr(override, name)
        if value is None:
            value = _REPLACE_FIELD_DEFAULTS.get(name)
        values[name] = value
    if not values.get("label"):
        values["label"] = f"Override for {override.rule_id}"
    if values.get("priority") is None:
        values["priority"] = REPLACE_DEFAULT_PRIORITY
    return override.RULE_TYPE(rule_id=override.rule_id, active=override.active, **values)


def merge_disable(base: BaseRule | None, override: RuleOverride) -> None:
    return None


def merge_modify(base: BaseRule | None, override: RuleOverride) -> BaseRule:
    """Overlay onto ``base``; without a base, insert the override's fields."""
    if base is None:
        return merge_replace(None, override)
    return overlay_non_null(base, override)


MERGE_FUNCTIONS: dict[OverrideType, Callable[[BaseRule | None, RuleOverride], BaseRule | None]] = {
    OverrideType.REPLACE: merge_replace,
    OverrideType.DISABLE: merge_disable,
    OverrideType.MODIFY: merge_modify,
}


# ---------------------------------------------------------------------------
# Category merge
# ---------------------------------------------------------------------------


def applicable_base_rules(base_rules: Iterable[BaseRule], evaluation_date: date) -> list[BaseRule]:
    """Active base rules whose window contains ``evaluation_date``, in input order."""
    return [rule for rule in base_rules if rule.is_applicable(evaluation_date)]


def sort_by_priority(entries: Iterable[EffectiveRule]) -> tuple[EffectiveRule, ...]:
    """Ascending priority; ties keep their relative order."""
    return tuple(sorted(entries, key=lambda entry: entry.priority))


@traced_engine(
    "rule_merge",
    "1.0",
    fingerprint_fields=("contract_id", "category", "evaluation_date", "overrides_enabled"),
)
def merge_category(
    *,
    base_rules: Sequence[BaseRule],
    overrides: Sequence[RuleOverride],
    evaluation_date: date,
    overrides_enabled: bool,
    contract_id: UUID | None = None,
    category: RuleCategory | None = None,
) -> tuple[EffectiveRule, ...]:
    """Effective rule list for one category.

    Args:
        base_rules: The contract type's active base rules, in store order.
        overrides: The contract's overrides, in the order to apply them.
        evaluation_date: Date the rule set is resolved for.
        overrides_enabled: Feature gate decision for the contract.
        contract_id: Only used for tracing and diagnostics.
        category: Only used for tracing and diagnostics.

    Returns:
        Effective rules sorted ascending by priority.
    """
    applicable = applicable_base_rules(base_rules, evaluation_date)
    if not overrides_enabled:
        return sort_by_priority(EffectiveRule(rule) for rule in applicable)

    entries: dict[str, EffectiveRule] = {}
    for rule in applicable:
        entries[rule.rule_id] = EffectiveRule(rule)

    for override in overrides:
        if not override.is_applicable(evaluation_date):
            continue
        apply_override(entries, override, contract_id=contract_id)

    return sort_by_priority(entries.values())


def apply_override(
    entries: dict[str, EffectiveRule],
    override: RuleOverride,
    contract_id: UUID | None = None,
) -> None:
    """Apply one override to the ordered entry map in place."""
    existing = entries.get(override.rule_id)
    base = existing.rule if existing is not None else None
    merged = MERGE_FUNCTIONS[override.override_type](base, override)

    if merged is None:
        if existing is None:
            logger.debug(
                "override_target_missing",
                extra={
                    "contract_id": contract_id,
                    "rule_id": override.rule_id,
                    "override_type": override.override_type.value,
                },
            )
        entries.pop(override.rule_id, None)
        return

    if existing is None and override.override_type == OverrideType.MODIFY:
        logger.debug(
            "override_target_missing",
            extra={
                "contract_id": contract_id,
                "rule_id": override.rule_id,
                "override_type": override.override_type.value,
            },
        )

    entries[override.rule_id] = EffectiveRule(
        rule=merged,
        source=RuleSource.OVERRIDE,
        override_type=override.override_type,
        override_id=override.id,
    )

    if override.override_type == OverrideType.REPLACE and merged.semantic_type is not None:
        suppressed = [
            rule_id
            for rule_id, entry in entries.items()
            if rule_id != override.rule_id
            and entry.rule.semantic_type == merged.semantic_type
        ]
        for rule_id in suppressed:
            del entries[rule_id]
        if suppressed:
            logger.debug(
                "replace_suppressed_same_type",
                extra={
                    "contract_id": contract_id,
                    "rule_id": override.rule_id,
                    "semantic_type": merged.semantic_type.value,
                    "suppressed": suppressed,
                },
            )
