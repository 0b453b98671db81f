"""
Pytest fixtures for the contract rules test suite.

Provides:
- SQLite in-memory database sessions (one shared connection, per-test rollback)
- Deterministic clock and feature configuration factories
- Contract type / contract / rule factories wired through the real services
- Structured log capture

Services only flush, so every row written in a test disappears when the
outer transaction is rolled back at teardown.
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from rules_kernel.db.engine import create_tables, drop_tables, init_engine_from_url, reset_engine
from rules_kernel.domain.clock import DeterministicClock
from rules_kernel.domain.feature_gate import FeatureConfig
from rules_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from rules_services import RulesOrchestrator
from tests.factories import CONTRACT_TYPE_CODE

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture rules_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, orchestrator):
            orchestrator.resolution.resolve(contract_id)
            logs = captured_logs()
            assert any(r["message"] == "rule_set_resolved" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("rules_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single in-memory SQLite engine for the whole test session."""
    eng = init_engine_from_url("sqlite://", echo=False)
    create_tables()
    yield eng
    drop_tables()
    reset_engine()


@pytest.fixture(scope="function")
def session(db_engine) -> Generator[Session, None, None]:
    """Database session joined to an outer transaction rolled back at teardown."""
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


# =============================================================================
# Clock / configuration
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 6, 15, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def test_actor_id() -> UUID:
    """Provide a consistent test actor ID."""
    return TEST_ACTOR_ID


@pytest.fixture
def make_feature_config():
    """Factory for FeatureConfig; overrides enabled for every contract by default."""

    def _make(**changes) -> FeatureConfig:
        values = {
            "enabled": True,
            "rollout_percentage": 100,
            "cache_ttl_seconds": 300,
            "cache_max_size": 100,
        }
        values.update(changes)
        return FeatureConfig(**values)

    return _make


@pytest.fixture
def make_orchestrator(session, deterministic_clock, make_feature_config):
    """Factory for a RulesOrchestrator over the test session."""

    def _make(config: FeatureConfig | None = None, **config_changes) -> RulesOrchestrator:
        return RulesOrchestrator(
            session,
            config or make_feature_config(**config_changes),
            clock=deterministic_clock,
        )

    return _make


@pytest.fixture
def orchestrator(make_orchestrator) -> RulesOrchestrator:
    """Orchestrator with overrides enabled for every contract."""
    return make_orchestrator()


# =============================================================================
# Reference data
# =============================================================================


@pytest.fixture
def contract_type(orchestrator, test_actor_id):
    return orchestrator.contracts.create_contract_type(
        CONTRACT_TYPE_CODE, "Standard hourly contract", test_actor_id
    )


@pytest.fixture
def create_contract(orchestrator, contract_type, test_actor_id):
    """Factory fixture to create contracts of the standard type."""

    def _create(name: str = "Acme support", contract_type_code: str | None = CONTRACT_TYPE_CODE):
        return orchestrator.contracts.create_contract(
            name, test_actor_id, contract_type_code=contract_type_code
        )

    return _create


@pytest.fixture
def contract(create_contract):
    return create_contract()

