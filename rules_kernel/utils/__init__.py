"""Utility functions for the rules kernel."""

from rules_kernel.utils.hashing import canonicalize_json, stable_string_hash

__all__ = [
    "canonicalize_json",
    "stable_string_hash",
]
