"""
rules_services.commit_invalidation -- Rule set cache invalidation bound to commits.

Responsibility:
    Evicts cached rule sets when a rule mutation happens and again when the
    session that made it commits.  Administrative services only flush, so
    the first eviction runs while the new rows are still invisible to other
    sessions; the second one drops anything a concurrent resolver cached
    from the pre-mutation rows in between.

Architecture position:
    Services -- bound into ``OverrideService.on_change`` and
    ``BaseRuleService.on_change`` by the orchestrator.  Pending work is kept
    in ``Session.info`` and drained by session-level SQLAlchemy events.

Invariants enforced:
    - After a mutating session commits, no rule set computed before the
      commit is served for the affected contracts (or for every contract
      after a base rule mutation).
    - A rolled-back session discards its pending invalidations.

Failure modes:
    - Cache failures during either eviction propagate.  On the commit path
      the transaction is already durable; the caller sees the error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import event
from sqlalchemy.orm import Session

from rules_kernel.logging_config import get_logger
from rules_services.rule_set_cache import RuleSetCache

logger = get_logger("services.commit_invalidation")

PENDING_INVALIDATIONS_KEY = "rules_pending_cache_invalidations"


@dataclass
class _PendingInvalidation:
    cache: RuleSetCache
    contract_ids: set[str] = field(default_factory=set)
    everything: bool = False


class CommitInvalidator:
    """
    ``on_change`` callbacks for one session and one cache.

    Each callback evicts immediately and records the eviction so it is
    repeated after the session commits.
    """

    def __init__(self, session: Session, cache: RuleSetCache):
        self._session = session
        self._cache = cache
        register_commit_invalidation_listeners()

    def _pending(self) -> _PendingInvalidation:
        pending = self._session.info.setdefault(PENDING_INVALIDATIONS_KEY, {})
        entry = pending.get(id(self._cache))
        if entry is None:
            entry = pending[id(self._cache)] = _PendingInvalidation(self._cache)
        return entry

    def contract_changed(self, contract_id: UUID) -> None:
        if not self._cache.enabled:
            return
        self._pending().contract_ids.add(str(contract_id))
        self._cache.invalidate_contract(contract_id)

    def all_changed(self) -> None:
        if not self._cache.enabled:
            return
        self._pending().everything = True
        self._cache.invalidate_all()


def _invalidate_after_commit(session: Session) -> None:
    pending = session.info.pop(PENDING_INVALIDATIONS_KEY, None)
    if not pending:
        return
    for entry in pending.values():
        if entry.everything:
            entry.cache.invalidate_all()
        else:
            for contract_id in sorted(entry.contract_ids):
                entry.cache.invalidate_contract(contract_id)
    logger.debug("commit_invalidation_applied", extra={"caches": len(pending)})


def _discard_after_rollback(session: Session) -> None:
    session.info.pop(PENDING_INVALIDATIONS_KEY, None)


def register_commit_invalidation_listeners() -> None:
    """Register the session-level commit/rollback listeners (idempotent)."""
    if not event.contains(Session, "after_commit", _invalidate_after_commit):
        event.listen(Session, "after_commit", _invalidate_after_commit)
    if not event.contains(Session, "after_rollback", _discard_after_rollback):
        event.listen(Session, "after_rollback", _discard_after_rollback)

