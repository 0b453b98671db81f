"""
FeatureGate -- Deterministic rollout switch for contract overrides.

Responsibility:
    Answers "is the override system enabled globally / for this contract?"
    from an explicit ``FeatureConfig`` value: a global switch, a whitelist of
    pilot contracts, and a percentage rollout bucketed by a stable string hash.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Receives configuration by value; never reads files, environment or
    module-level state.  ``rules_config`` builds the ``FeatureConfig``.

Invariants enforced:
    - System disabled => every contract disabled, whitelist included.
    - Whitelisted contract => enabled (whitelist wins over percentage).
    - Percentage 0 => never enabled; 100 => always enabled.
    - Otherwise enabled iff ``|stable_string_hash(id)| mod 100 < percentage``.
      The bucket of an identifier never changes between processes.

Failure modes:
    - ValueError from FeatureConfig on out-of-range percentage, TTL or size.

Audit relevance:
    ``rollout_bucket`` lets an operator explain why a given contract is in
    or out of a partial rollout.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from rules_kernel.logging_config import get_logger
from rules_kernel.utils.hashing import stable_string_hash

logger = get_logger("domain.feature_gate")


@dataclass(frozen=True)
class FeatureConfig:
    """
    Override feature flags and rule set cache sizing.

    Contract:
        Immutable.  Whitelist entries are stored as lowercased contract
        identifier strings.

    Guarantees:
        - 0 <= rollout_percentage <= 100
        - cache_ttl_seconds >= 0 (0 disables caching)
        - cache_max_size >= 0 (0 disables caching)
    """

    enabled: bool = False
    rollout_percentage: int = 0
    whitelist: frozenset[str] = frozenset()
    cache_ttl_seconds: int = 3600
    cache_max_size: int = 1000
    api_enabled: bool = True
    api_read_only: bool = False
    ui_enabled: bool = True

    def __post_init__(self) -> None:
        if not 0 <= self.rollout_percentage <= 100:
            raise ValueError(
                f"rollout_percentage must be between 0 and 100, got {self.rollout_percentage}"
            )
        if self.cache_ttl_seconds < 0:
            raise ValueError(f"cache_ttl_seconds must be >= 0, got {self.cache_ttl_seconds}")
        if self.cache_max_size < 0:
            raise ValueError(f"cache_max_size must be >= 0, got {self.cache_max_size}")
        object.__setattr__(self, "whitelist", frozenset(str(c).lower() for c in self.whitelist))


def rollout_bucket(contract_id: str | UUID) -> int:
    """Stable bucket in [0, 100) for a contract identifier."""
    return abs(stable_string_hash(str(contract_id))) % 100


class FeatureGate:
    """
    Pure function of ``FeatureConfig`` and a contract identifier.

    Contract:
        Holds no mutable state.  Safe to share between threads.
    """

    def __init__(self, config: FeatureConfig):
        self._config = config

    @property
    def config(self) -> FeatureConfig:
        return self._config

    def is_system_enabled(self) -> bool:
        return self._config.enabled

    def is_enabled_for_contract(self, contract_id: str | UUID) -> bool:
        """
        Decide whether overrides apply to this contract.

        Args:
            contract_id: Contract identifier; compared and hashed as its
                lowercased string form.

        Returns:
            True if the contract's overrides take part in resolution.
        """
        if not self._config.enabled:
            return False

        key = str(contract_id).lower()
        if key in self._config.whitelist:
            logger.debug("contract_whitelisted", extra={"contract_id": key})
            return True

        percentage = self._config.rollout_percentage
        if percentage == 0:
            return False
        if percentage == 100:
            return True

        bucket = rollout_bucket(key)
        enabled = bucket < percentage
        if enabled:
            logger.debug(
                "contract_in_rollout",
                extra={"contract_id": key, "percentage": percentage, "bucket": bucket},
            )
        return enabled

    def is_api_enabled(self) -> bool:
        return self._config.enabled and self._config.api_enabled

    def is_api_read_only(self) -> bool:
        return self._config.api_read_only

    def is_ui_enabled(self) -> bool:
        return self._config.enabled and self._config.ui_enabled

    def cache_ttl_seconds(self) -> int:
        return self._config.cache_ttl_seconds

    def cache_max_size(self) -> int:
        return self._config.cache_max_size
