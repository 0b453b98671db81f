"""
Configuration Loader (``rules_config.loader``).

Responsibility
--------------
Loads the override feature-flag YAML file and parses it into the kernel's
frozen ``FeatureConfig`` value object.  The single public entry point for
runtime config is ``rules_config.get_feature_config()``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends on the kernel's
domain value objects only; the kernel never imports this package.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; the ``contract_overrides`` section and its ``enabled`` switch
  have no silent default.
* Booleans must be YAML booleans and numbers must be integers; a quoted
  ``"false"`` is rejected rather than read as truthy.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrong types or out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from rules_kernel.domain.feature_gate import FeatureConfig

SECTION = "contract_overrides"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _bool(section: dict[str, Any], key: str, default: bool, where: str) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{where}.{key} must be a boolean, got {value!r}")
    return value


def _int(section: dict[str, Any], key: str, default: int, where: str) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{where}.{key} must be an integer, got {value!r}")
    return value


def _mapping(data: dict[str, Any], key: str, where: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"{where}.{key} must be a mapping, got {value!r}")
    return value


def parse_feature_config(data: dict[str, Any]) -> FeatureConfig:
    """
    Parse a ``FeatureConfig`` from the loaded YAML document.

    Preconditions:
        - ``data`` contains a ``contract_overrides`` mapping with at least
          an ``enabled`` key.

    Raises:
        KeyError: if the section or its ``enabled`` key is missing.
        ValueError: on wrong types or out-of-range values.
    """
    section = data[SECTION]
    if not isinstance(section, dict):
        raise ValueError(f"{SECTION} must be a mapping, got {section!r}")
    if "enabled" not in section:
        raise KeyError(f"{SECTION}.enabled")

    rollout = _mapping(section, "rollout", SECTION)
    cache = _mapping(section, "cache", SECTION)
    api = _mapping(section, "api", SECTION)
    ui = _mapping(section, "ui", SECTION)

    whitelist_raw = rollout.get("whitelist") or []
    if not isinstance(whitelist_raw, list):
        raise ValueError(f"{SECTION}.rollout.whitelist must be a list, got {whitelist_raw!r}")

    return FeatureConfig(
        enabled=_bool(section, "enabled", False, SECTION),
        rollout_percentage=_int(rollout, "percentage", 0, f"{SECTION}.rollout"),
        whitelist=frozenset(str(item).strip().lower() for item in whitelist_raw),
        cache_ttl_seconds=_int(cache, "ttl_seconds", 3600, f"{SECTION}.cache"),
        cache_max_size=_int(cache, "max_size", 1000, f"{SECTION}.cache"),
        api_enabled=_bool(api, "enabled", True, f"{SECTION}.api"),
        api_read_only=_bool(api, "read_only", False, f"{SECTION}.api"),
        ui_enabled=_bool(ui, "enabled", True, f"{SECTION}.ui"),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
