"""
rules_services.rules_orchestrator -- Central wiring of rule services.

Responsibility:
    Creates the feature gate, the rule set cache and every kernel service
    exactly once and wires cache invalidation into the administrative
    services.  The single point of dependency injection for rule
    administration and resolution.

Architecture position:
    Services -- top of the service layer.  The only place where
    ``OverrideService.on_change`` and ``BaseRuleService.on_change`` are
    bound to the rule set cache.

Invariants enforced:
    - Override mutations invalidate the owning contract's cached rule sets,
      once when flushed and again when the session commits.
    - Base rule mutations invalidate the whole cache, on flush and on commit.
    - All services share one Session, one Clock and one RuleSetCache.

Usage:
    orchestrator = build_rules_orchestrator(session)
    orchestrator.overrides.create_override(override, actor_id)
    rule_set = orchestrator.resolution.resolve(contract_id)
"""

from __future__ import annotations

from pathlib import Path

from sqlalchemy.orm import Session

from rules_kernel.domain.clock import Clock, SystemClock
from rules_kernel.domain.feature_gate import FeatureConfig, FeatureGate
from rules_kernel.services import BaseRuleService, ContractService, OverrideService
from rules_services.commit_invalidation import CommitInvalidator
from rules_services.rule_resolution_service import RuleResolutionService
from rules_services.rule_set_cache import RuleSetCache


class RulesOrchestrator:
    """Central factory for rule services.

    Contract:
        Receives a Session and a FeatureConfig, optionally a Clock and a
        pre-built RuleSetCache (to share one cache across sessions).

    Non-goals:
        - Does NOT manage transaction boundaries (caller's responsibility).
        - Does NOT own the Session lifecycle (no commit/rollback).
    """

    def __init__(
        self,
        session: Session,
        config: FeatureConfig,
        clock: Clock | None = None,
        cache: RuleSetCache | None = None,
    ) -> None:
        self._session = session
        self._clock = clock or SystemClock()
        self.gate = FeatureGate(config)
        self.cache = cache if cache is not None else RuleSetCache.from_config(config, self._clock)

        self.invalidator = CommitInvalidator(session, self.cache)

        self.contracts = ContractService(session)
        self.base_rules = BaseRuleService(session, on_change=self.invalidator.all_changed)
        self.overrides = OverrideService(
            session,
            self.gate,
            clock=self._clock,
            on_change=self.invalidator.contract_changed,
        )
        self.resolution = RuleResolutionService(
            session,
            self.gate,
            cache=self.cache,
            clock=self._clock,
        )

    @property
    def session(self) -> Session:
        return self._session

    @property
    def clock(self) -> Clock:
        return self._clock


def build_rules_orchestrator(
    session: Session,
    config_path: Path | str | None = None,
    clock: Clock | None = None,
    cache: RuleSetCache | None = None,
) -> RulesOrchestrator:
    """Build a RulesOrchestrator from the YAML feature configuration.

    Args:
        session: SQLAlchemy session.
        config_path: Optional feature configuration file; defaults to the
            packaged ``contract_overrides.yaml``.
        clock: Optional clock; default SystemClock.
        cache: Optional shared rule set cache.
    """
    from rules_config import get_feature_config

    return RulesOrchestrator(
        session=session,
        config=get_feature_config(config_path),
        clock=clock,
        cache=cache,
    )
