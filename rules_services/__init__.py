"""
rules_services -- Rule set resolution and service wiring.

Responsibility:
    Composes the kernel stores, the merge engine and the rule set cache into
    ``RuleResolutionService.resolve`` and wires cache invalidation into the
    administrative services.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

        rules_services/ -> rules_engines/, rules_kernel/, rules_config/  (allowed)
        rules_engines/  -> rules_services/                               (FORBIDDEN)
        rules_kernel/   -> rules_services/                               (FORBIDDEN)
"""

from rules_services.commit_invalidation import CommitInvalidator
from rules_services.rule_resolution_service import RuleResolutionService
from rules_services.rule_set_cache import (
    InMemoryRuleSetCacheStore,
    RuleSetCache,
    RuleSetCacheStore,
    cache_key,
)
from rules_services.rules_orchestrator import RulesOrchestrator, build_rules_orchestrator

__all__ = [
    "CommitInvalidator",
    "InMemoryRuleSetCacheStore",
    "RuleResolutionService",
    "RuleSetCache",
    "RuleSetCacheStore",
    "RulesOrchestrator",
    "build_rules_orchestrator",
    "cache_key",
]
