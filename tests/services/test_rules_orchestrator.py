"""Tests for RulesOrchestrator wiring."""

from decimal import Decimal

from rules_kernel.domain.clock import SystemClock
from rules_kernel.domain.rules import OverrideType
from rules_services import RulesOrchestrator, RuleSetCache, build_rules_orchestrator
from rules_services.commit_invalidation import PENDING_INVALIDATIONS_KEY
from tests.factories import EVALUATION_DATE, pricing_override


class TestRulesOrchestrator:
    def test_services_share_session_and_clock(self, orchestrator, session, deterministic_clock):
        assert orchestrator.session is session
        assert orchestrator.clock is deterministic_clock
        assert orchestrator.resolution.cache is orchestrator.cache

    def test_default_clock(self, session, make_feature_config):
        assert isinstance(RulesOrchestrator(session, make_feature_config()).clock, SystemClock)

    def test_cache_built_from_config(self, make_orchestrator):
        orchestrator = make_orchestrator(cache_ttl_seconds=45, cache_max_size=5)
        assert orchestrator.cache.store.ttl_seconds == 45
        assert orchestrator.cache.store.max_size == 5

    def test_shared_cache_across_orchestrators(
        self, session, make_feature_config, deterministic_clock, contract, test_actor_id
    ):
        shared = RuleSetCache.from_config(make_feature_config(), deterministic_clock)
        reader = RulesOrchestrator(session, make_feature_config(), deterministic_clock, cache=shared)
        writer = RulesOrchestrator(session, make_feature_config(), deterministic_clock, cache=shared)

        reader.resolution.resolve(contract.id, EVALUATION_DATE)
        assert len(shared) == 1
        writer.overrides.create_override(
            pricing_override(contract.id, "admin-fee", OverrideType.MODIFY, percent=Decimal("3")),
            test_actor_id,
        )
        assert len(shared) == 0

    def test_override_mutation_pending_until_commit(self, orchestrator, session, contract, test_actor_id):
        orchestrator.overrides.create_override(
            pricing_override(contract.id, "admin-fee", OverrideType.DISABLE), test_actor_id
        )
        (pending,) = session.info[PENDING_INVALIDATIONS_KEY].values()
        assert pending.cache is orchestrator.cache
        assert pending.contract_ids == {str(contract.id)}
        assert pending.everything is False

    def test_disabled_cache_records_nothing(self, make_orchestrator, session, contract, test_actor_id):
        uncached = make_orchestrator(cache_ttl_seconds=0)
        uncached.overrides.create_override(
            pricing_override(contract.id, "admin-fee", OverrideType.DISABLE), test_actor_id
        )
        assert PENDING_INVALIDATIONS_KEY not in session.info

    def test_gate_reflects_config(self, make_orchestrator, contract):
        assert make_orchestrator().gate.is_enabled_for_contract(contract.id) is True
        assert make_orchestrator(enabled=False).gate.is_enabled_for_contract(contract.id) is False


class TestBuildRulesOrchestrator:
    def test_from_packaged_config(self, session, deterministic_clock):
        orchestrator = build_rules_orchestrator(session, clock=deterministic_clock)
        assert orchestrator.gate.config.enabled is True
        assert orchestrator.gate.config.rollout_percentage == 0
        assert orchestrator.cache.store.ttl_seconds == 3600

    def test_from_config_file(self, session, tmp_path):
        path = tmp_path / "overrides.yaml"
        path.write_text(
            "contract_overrides:\n"
            "  enabled: false\n"
            "  cache:\n"
            "    ttl_seconds: 0\n"
        )
        orchestrator = build_rules_orchestrator(session, config_path=path)
        assert orchestrator.gate.config.enabled is False
        assert orchestrator.cache.enabled is False
