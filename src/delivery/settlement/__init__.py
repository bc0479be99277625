"""Settlement policy factory.

Provides get_settlement_policy() / set_settlement_policy() to choose how the
courier's collateral is treated on completion:
- TRANSFER_COLLATERAL (default): collateral pays the store for the product
- RETURN_COLLATERAL: collateral is refunded to the courier

The default can be overridden with the DELIVERY_SETTLEMENT_POLICY environment
variable.
"""

import os

from delivery.settlement.policy import Payout, SettlementPolicy

__all__ = [
    "Payout",
    "SettlementPolicy",
    "get_settlement_policy",
    "reset_settlement_policy",
    "set_settlement_policy",
]

_current_policy: SettlementPolicy | None = None


def get_settlement_policy() -> SettlementPolicy:
    """Return the active settlement policy."""
    global _current_policy
    if _current_policy is None:
        configured = os.environ.get("DELIVERY_SETTLEMENT_POLICY", SettlementPolicy.TRANSFER_COLLATERAL.value)
        _current_policy = SettlementPolicy(configured.strip().lower())
    return _current_policy


def set_settlement_policy(policy: SettlementPolicy) -> None:
    """Override the active settlement policy (useful for tests)."""
    global _current_policy
    _current_policy = SettlementPolicy(policy)


def reset_settlement_policy() -> None:
    """Reset to the configured default."""
    global _current_policy
    _current_policy = None
