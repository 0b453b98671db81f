"""
rules_config -- single public entrypoint for override feature configuration.

Responsibility:
    Provides the ONLY way to obtain the override feature flags at runtime
    through ``get_feature_config()``.  No other component reads
    configuration files or environment variables.  Returns the kernel's
    frozen ``FeatureConfig``.

Architecture position:
    Configuration -- YAML-driven.  Sits above ``rules_kernel`` and below
    ``rules_services``.  The kernel MUST NEVER import from ``rules_config``.

Failure modes:
    - ``FileNotFoundError`` -- configuration file missing.
    - ``KeyError`` / ``ValueError`` -- schema violations (see ``loader``).

Audit relevance:
    Every successful ``get_feature_config()`` call emits a
    ``RULES_CONFIG_TRACE`` log entry containing the source path, checksum
    and the effective flag values.  This ties a resolution run back to the
    exact rollout settings that governed it.
"""

from __future__ import annotations

from pathlib import Path

from rules_config.loader import compute_checksum, load_yaml_file, parse_feature_config
from rules_kernel.domain.feature_gate import FeatureConfig
from rules_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "contract_overrides.yaml"


def get_feature_config(path: Path | str | None = None) -> FeatureConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: YAML file to load.  Defaults to
            ``rules_config/sets/contract_overrides.yaml``.

    Returns:
        Validated, frozen ``FeatureConfig``.

    Raises:
        FileNotFoundError: If the file does not exist.
        KeyError: If required keys are missing.
        ValueError: On wrong types or out-of-range values.
    """
    source = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    data = load_yaml_file(source)
    config = parse_feature_config(data)

    _logger.info(
        "RULES_CONFIG_TRACE",
        extra={
            "trace_type": "RULES_CONFIG_TRACE",
            "source": str(source),
            "checksum": compute_checksum(data),
            "enabled": config.enabled,
            "rollout_percentage": config.rollout_percentage,
            "whitelist_size": len(config.whitelist),
            "cache_ttl_seconds": config.cache_ttl_seconds,
            "cache_max_size": config.cache_max_size,
            "api_read_only": config.api_read_only,
        },
    )
    return config


__all__ = ["DEFAULT_CONFIG_PATH", "get_feature_config"]
