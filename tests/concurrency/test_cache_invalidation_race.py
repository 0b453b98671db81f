"""
Rule set cache under concurrent resolution and invalidation.

A resolver that read the stores before an override mutation must never
store its (stale) rule set after the mutation's invalidation ran.  The
generation token taken before the store reads makes the late put a no-op.

Expected Behavior:
- A put racing an invalidation of the same contract is discarded
- A put racing a global invalidation is discarded
- Concurrent get/put/invalidate never raises and never exceeds max_size
"""

import random
from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta
from threading import Barrier, Event
from uuid import uuid4

import pytest

from rules_kernel.domain.rule_set import ContractRuleSet
from rules_services.rule_set_cache import InMemoryRuleSetCacheStore, RuleSetCache

pytestmark = pytest.mark.slow

EVALUATION_DATE = date(2024, 6, 15)


def _stale_put_race(invalidate):
    """Resolver takes a token, waits for the mutation, then tries to store."""
    cache = RuleSetCache(InMemoryRuleSetCacheStore(ttl_seconds=300, max_size=100))
    contract_id = uuid4()
    stale = ContractRuleSet(contract_id=contract_id, evaluation_date=EVALUATION_DATE)
    token_taken = Event()
    invalidated = Event()

    def resolver():
        token = cache.begin(contract_id)
        token_taken.set()
        invalidated.wait(timeout=5)
        return cache.put(contract_id, EVALUATION_DATE, stale, token)

    def mutator():
        token_taken.wait(timeout=5)
        invalidate(cache, contract_id)
        invalidated.set()

    with ThreadPoolExecutor(max_workers=2) as pool:
        stored = pool.submit(resolver)
        pool.submit(mutator).result()
        return cache, contract_id, stored.result()


def test_put_after_contract_invalidation_discarded():
    cache, contract_id, stored = _stale_put_race(lambda c, cid: c.invalidate_contract(cid))
    assert stored is False
    assert cache.get(contract_id, EVALUATION_DATE) is None


def test_put_after_global_invalidation_discarded():
    cache, contract_id, stored = _stale_put_race(lambda c, cid: c.invalidate_all())
    assert stored is False
    assert cache.get(contract_id, EVALUATION_DATE) is None


def test_fresh_token_after_invalidation_stored():
    cache = RuleSetCache(InMemoryRuleSetCacheStore(ttl_seconds=300, max_size=100))
    contract_id = uuid4()
    cache.invalidate_contract(contract_id)
    rule_set = ContractRuleSet(contract_id=contract_id, evaluation_date=EVALUATION_DATE)
    assert cache.put(contract_id, EVALUATION_DATE, rule_set, cache.begin(contract_id)) is True


def test_concurrent_operations_keep_store_consistent():
    store = InMemoryRuleSetCacheStore(ttl_seconds=300, max_size=20)
    cache = RuleSetCache(store)
    contract_ids = [uuid4() for _ in range(10)]
    dates = [EVALUATION_DATE + timedelta(days=d) for d in range(5)]
    workers = 8
    barrier = Barrier(workers)

    def worker(seed):
        rng = random.Random(seed)
        barrier.wait(timeout=5)
        for _ in range(500):
            contract_id = rng.choice(contract_ids)
            on = rng.choice(dates)
            action = rng.random()
            if action < 0.5:
                cached = cache.get(contract_id, on)
                if cached is not None:
                    assert cached.contract_id == contract_id
                    assert cached.evaluation_date == on
            elif action < 0.9:
                token = cache.begin(contract_id)
                rule_set = ContractRuleSet(contract_id=contract_id, evaluation_date=on)
                cache.put(contract_id, on, rule_set, token)
            elif action < 0.99:
                cache.invalidate_contract(contract_id)
            else:
                cache.invalidate_all()
            assert len(store) <= store.max_size

    with ThreadPoolExecutor(max_workers=workers) as pool:
        for future in [pool.submit(worker, seed) for seed in range(workers)]:
            future.result()

    stats = store.stats()
    assert stats["size"] <= 20
    assert stats["hits"] + stats["misses"] > 0
