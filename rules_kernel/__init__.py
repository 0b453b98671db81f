"""
Rules Kernel

Persistence, domain values and administration for contract rules:
- Base rules per contract type (validation, rate adjustment, pricing step)
- Contract-specific overrides (REPLACE / DISABLE / MODIFY)
- Feature-gated, deterministic override rollout
- Audit trail for every override mutation
"""

__version__ = "0.1.0"
