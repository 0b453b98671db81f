"""
rules_services.rule_set_cache -- Rule Set Cache.

Responsibility:
    Memoizes resolved ``ContractRuleSet`` values keyed by
    ``(contract_id, evaluation_date)`` and evicts every entry of a contract
    when one of its overrides changes.

Architecture position:
    Services -- the only shared mutable resource of rule resolution.
    ``RuleSetCacheStore`` is the key-value store abstraction;
    ``InMemoryRuleSetCacheStore`` is the bundled TTL + LRU implementation.
    ``RuleSetCache`` wraps a store for the resolution service and turns
    store failures into cache misses.

Invariants enforced:
    - Invalidation is coarse: ``invalidate_contract`` drops all dates of a
      contract, ``invalidate_all`` drops everything.
    - Generation tokens: a resolver takes ``begin(contract_id)`` before it
      reads the stores and hands the token to ``put``.  If the contract was
      invalidated in between, the put is discarded, so a rule set computed
      from pre-mutation data is never stored after the invalidation.
    - Entry expiry is read from the injected ``Clock``.
    - ``ttl_seconds == 0`` or ``max_size == 0`` disables caching.

Failure modes:
    - ``get``/``put``/``begin`` store failures are logged and treated as a
      miss or a skipped put; resolution never fails because of the cache.
    - ``invalidate_contract``/``invalidate_all`` store failures are logged
      and re-raised so the mutating caller rolls back instead of leaving a
      stale entry behind.

Audit relevance:
    No lock or transaction spans the store and the cache.  Invalidation is
    repeated when the mutating session commits
    (``rules_services.commit_invalidation``); a reader racing between the
    commit and that invalidation may still be served the previous rule set.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any
from uuid import UUID

from rules_kernel.domain.clock import Clock, SystemClock
from rules_kernel.domain.feature_gate import FeatureConfig
from rules_kernel.domain.rule_set import ContractRuleSet
from rules_kernel.logging_config import get_logger

logger = get_logger("services.rule_set_cache")

CacheKey = tuple[str, date]
GenerationToken = tuple[int, int]


def cache_key(contract_id: UUID | str, evaluation_date: date) -> CacheKey:
    return (str(contract_id), evaluation_date)


@dataclass(frozen=True)
class _CacheEntry:
    value: ContractRuleSet
    expires_at: datetime


class RuleSetCacheStore(ABC):
    """
    Key-value store for resolved rule sets.

    Contract:
        Thread-safe.  ``put`` with a stale generation token is a no-op.
    """

    @abstractmethod
    def get(self, key: CacheKey) -> ContractRuleSet | None:
        ...

    @abstractmethod
    def put(self, key: CacheKey, value: ContractRuleSet, token: GenerationToken) -> bool:
        """Store ``value``; returns False if ``token`` is stale."""
        ...

    @abstractmethod
    def generation(self, contract_id: str) -> GenerationToken:
        ...

    @abstractmethod
    def invalidate_contract(self, contract_id: str) -> int:
        """Drop every entry of ``contract_id``; returns how many were dropped."""
        ...

    @abstractmethod
    def invalidate_all(self) -> int:
        ...

    @abstractmethod
    def __len__(self) -> int:
        ...


class InMemoryRuleSetCacheStore(RuleSetCacheStore):
    """
    Process-local TTL + LRU store.

    Entries expire ``ttl_seconds`` after they were stored.  When full, the
    least recently used entry is evicted.
    """

    def __init__(self, ttl_seconds: int, max_size: int, clock: Clock | None = None):
        if ttl_seconds <= 0 or max_size <= 0:
            raise ValueError(
                f"ttl_seconds and max_size must be positive, got {ttl_seconds} and {max_size}"
            )
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock or SystemClock()
        self._entries: OrderedDict[CacheKey, _CacheEntry] = OrderedDict()
        self._epoch = 0
        self._generations: dict[str, int] = {}
        self._lock = threading.Lock()

        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.expirations = 0

    def get(self, key: CacheKey) -> ContractRuleSet | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            if self._clock.now_utc() >= entry.expires_at:
                del self._entries[key]
                self.expirations += 1
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return entry.value

    def put(self, key: CacheKey, value: ContractRuleSet, token: GenerationToken) -> bool:
        with self._lock:
            if token != self._token(key[0]):
                return False
            if key not in self._entries and len(self._entries) >= self.max_size:
                self._entries.popitem(last=False)
                self.evictions += 1
            self._entries[key] = _CacheEntry(
                value=value,
                expires_at=self._clock.now_utc() + timedelta(seconds=self.ttl_seconds),
            )
            self._entries.move_to_end(key)
            return True

    def generation(self, contract_id: str) -> GenerationToken:
        with self._lock:
            return self._token(contract_id)

    def _token(self, contract_id: str) -> GenerationToken:
        return (self._epoch, self._generations.get(contract_id, 0))

    def invalidate_contract(self, contract_id: str) -> int:
        with self._lock:
            self._generations[contract_id] = self._generations.get(contract_id, 0) + 1
            keys = [key for key in self._entries if key[0] == contract_id]
            for key in keys:
                del self._entries[key]
            return len(keys)

    def invalidate_all(self) -> int:
        with self._lock:
            self._epoch += 1
            self._generations.clear()
            count = len(self._entries)
            self._entries.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "size": len(self._entries),
                "max_size": self.max_size,
                "ttl_seconds": self.ttl_seconds,
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions,
                "expirations": self.expirations,
            }


class RuleSetCache:
    """
    Fail-open front of a ``RuleSetCacheStore``.

    Contract:
        ``store=None`` is a disabled cache: every ``get`` misses, every
        ``put`` is skipped and invalidation is a no-op.
    """

    def __init__(self, store: RuleSetCacheStore | None):
        self._store = store

    @classmethod
    def from_config(cls, config: FeatureConfig, clock: Clock | None = None) -> RuleSetCache:
        """In-memory cache sized by ``config``; disabled when TTL or size is 0."""
        if config.cache_ttl_seconds == 0 or config.cache_max_size == 0:
            logger.info("rule_set_cache_disabled")
            return cls(None)
        return cls(
            InMemoryRuleSetCacheStore(
                ttl_seconds=config.cache_ttl_seconds,
                max_size=config.cache_max_size,
                clock=clock,
            )
        )

    @property
    def enabled(self) -> bool:
        return self._store is not None

    @property
    def store(self) -> RuleSetCacheStore | None:
        return self._store

    def begin(self, contract_id: UUID | str) -> GenerationToken | None:
        """Generation token to pass to ``put`` for a rule set about to be computed."""
        if self._store is None:
            return None
        try:
            return self._store.generation(str(contract_id))
        except Exception as exc:
            logger.error(
                "rule_set_cache_error",
                extra={"operation": "generation", "contract_id": str(contract_id), "error": str(exc)},
            )
            return None

    def get(self, contract_id: UUID | str, evaluation_date: date) -> ContractRuleSet | None:
        if self._store is None:
            return None
        try:
            value = self._store.get(cache_key(contract_id, evaluation_date))
        except Exception as exc:
            logger.error(
                "rule_set_cache_error",
                extra={"operation": "get", "contract_id": str(contract_id), "error": str(exc)},
            )
            return None
        return value.as_cached() if value is not None else None

    def put(
        self,
        contract_id: UUID | str,
        evaluation_date: date,
        rule_set: ContractRuleSet,
        token: GenerationToken | None,
    ) -> bool:
        if self._store is None or token is None:
            return False
        try:
            stored = self._store.put(cache_key(contract_id, evaluation_date), rule_set, token)
        except Exception as exc:
            logger.error(
                "rule_set_cache_error",
                extra={"operation": "put", "contract_id": str(contract_id), "error": str(exc)},
            )
            return False
        if not stored:
            logger.debug(
                "rule_set_cache_put_discarded",
                extra={"contract_id": str(contract_id), "evaluation_date": evaluation_date},
            )
        return stored

    def invalidate_contract(self, contract_id: UUID | str) -> int:
        if self._store is None:
            return 0
        try:
            count = self._store.invalidate_contract(str(contract_id))
        except Exception as exc:
            logger.error(
                "rule_set_cache_error",
                extra={"operation": "invalidate_contract", "contract_id": str(contract_id), "error": str(exc)},
            )
            raise
        logger.info(
            "cache_invalidated",
            extra={"scope": "contract", "contract_id": str(contract_id), "entries": count},
        )
        return count

    def invalidate_all(self) -> int:
        if self._store is None:
            return 0
        try:
            count = self._store.invalidate_all()
        except Exception as exc:
            logger.error(
                "rule_set_cache_error",
                extra={"operation": "invalidate_all", "error": str(exc)},
            )
            raise
        logger.info("cache_invalidated", extra={"scope": "all", "entries": count})
        return count

    def __len__(self) -> int:
        return len(self._store) if self._store is not None else 0

    def __bool__(self) -> bool:
        return True
