"""Delivery bounded context: Orders, Bids, Dual Escrow, and Wallets.

Handles the order lifecycle from competitive bidding through mutual escrow
deposit and fulfillment, the settlement that pays both parties out on
completion, and the wallet ledger that records every money movement.
"""

from protean.domain import Domain

from delivery.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

delivery = Domain(name="delivery")
