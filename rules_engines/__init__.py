"""
Module: rules_engines
Responsibility:
    Package entrypoint that re-exports the pure rule merge engine.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import rules_kernel domain value objects and logging.
    MUST NOT import rules_services or rules_config.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Evaluation dates are passed in as explicit parameters.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every category merge is traced via ``@traced_engine`` (see
    ``rules_engines.tracer``), emitting RULES_ENGINE_TRACE log records.
"""

from rules_engines.merge import (
    MERGE_FUNCTIONS,
    REPLACE_DEFAULT_PRIORITY,
    applicable_base_rules,
    apply_override,
    merge_category,
    merge_disable,
    merge_modify,
    merge_replace,
    overlay_non_null,
    sort_by_priority,
)
from rules_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "MERGE_FUNCTIONS",
    "REPLACE_DEFAULT_PRIORITY",
    "applicable_base_rules",
    "apply_override",
    "merge_category",
    "merge_disable",
    "merge_modify",
    "merge_replace",
    "overlay_non_null",
    "sort_by_priority",
    "compute_input_fingerprint",
    "traced_engine",
]
