"""Self-healing passes over orders and wallets.

Designed to be triggered on every full data refresh, or periodically by an
external scheduler, via the maintenance API endpoints.

ReconcileEscrowStatus
    Two deposits processed concurrently can each read "other side not yet
    paid" and leave the order in Awaiting_Escrow with both flags set. The
    sweep advances those orders to Ready_For_Pickup. It never touches a
    wallet and never settles.

RetryPendingSettlements
    Completed orders whose settlement skipped a side (missing wallet, escrow
    shortfall) get that side retried. Sides already settled are left alone.

audit_wallet_ledgers
    Replays every wallet's ledger and reports the ones whose stored
    balance or escrow disagrees with it.
"""

from datetime import UTC, datetime

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.order import Order, OrderStatus
from delivery.settlement.engine import settle_order
from delivery.utils.logging import get_logger
from delivery.wallet.wallet import Wallet

logger = get_logger(__name__)


@delivery.command(part_of="Order")
class ReconcileEscrowStatus:
    """Advance orders whose status lags both escrow flags."""

    requested_by = Identifier()


@delivery.command(part_of="Order")
class RetryPendingSettlements:
    """Retry the unsettled side of completed orders."""

    order_id = Identifier()  # Optional: restrict to one order


@delivery.command_handler(part_of=Order)
class ReconciliationHandler:
    @handle(ReconcileEscrowStatus)
    def reconcile_escrow_status(self, command):
        repo = current_domain.repository_for(Order)
        awaiting = repo._dao.query.filter(status=OrderStatus.AWAITING_ESCROW.value).all().items

        stuck = [o for o in awaiting if o.store_escrow_paid and o.courier_escrow_paid]
        if not stuck:
            logger.info("No orders need escrow reconciliation")
            return 0

        reconciled = 0
        for order in stuck:
            if order.reconcile_escrow_status():
                repo.add(order)
                reconciled += 1
                logger.info(
                    "Order advanced by reconciliation",
                    order_id=str(order.id),
                    requested_by=str(command.requested_by) if command.requested_by else None,
                )

        logger.info("Escrow reconciliation complete", reconciled_count=reconciled)
        return reconciled

    @handle(RetryPendingSettlements)
    def retry_pending_settlements(self, command):
        repo = current_domain.repository_for(Order)
        if command.order_id:
            candidates = [repo.get(command.order_id)]
        else:
            candidates = repo._dao.query.filter(status=OrderStatus.COMPLETED.value).all().items

        pending = [o for o in candidates if o.needs_settlement]
        if not pending:
            logger.info("No partially settled orders found")
            return 0

        repaired = 0
        for order in pending:
            result = settle_order(order)
            repo.add(order)
            if result.complete:
                repaired += 1

        logger.info("Settlement retry complete", pending_count=len(pending), repaired_count=repaired)
        return repaired


def audit_wallet_ledgers(tolerance=0.01):
    """Report wallets whose stored sub-balances drift from their ledger."""
    wallets = current_domain.repository_for(Wallet)._dao.query.all().items
    drift_items = []
    for wallet in sorted(wallets, key=lambda w: str(w.user_id)):
        balance_drift, escrow_drift = wallet.drift()
        if abs(balance_drift) > tolerance or abs(escrow_drift) > tolerance:
            replayed_balance, replayed_escrow = wallet.replay()
            drift_items.append(
                {
                    "user_id": str(wallet.user_id),
                    "stored_balance": wallet.balance,
                    "replayed_balance": replayed_balance,
                    "stored_escrow": wallet.escrow,
                    "replayed_escrow": replayed_escrow,
                }
            )

    if drift_items:
        logger.warning("Wallet ledger drift detected", drift_count=len(drift_items))

    return {
        "wallet_count": len(wallets),
        "drift_count": len(drift_items),
        "drift_items": drift_items,
        "generated_at": datetime.now(UTC).isoformat(),
    }
