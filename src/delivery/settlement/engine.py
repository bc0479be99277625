"""Settlement engine: pays both parties out when an order completes.

Runs inside the unit of work of the status change that completed the order,
and again from RetryPendingSettlements for orders left partially settled.
The two sides are released independently: a missing wallet or an escrow
shortfall on one side is logged and leaves that side flagged unsettled on
the order, while the other side still settles. A side already flagged
settled is never paid again.
"""

from dataclasses import dataclass

from protean.utils.globals import current_domain

from delivery.errors import InsufficientFunds
from delivery.settlement import get_settlement_policy
from delivery.utils.logging import get_logger
from delivery.wallet.funding import find_wallet
from delivery.wallet.wallet import Wallet

logger = get_logger(__name__)


@dataclass(frozen=True)
class SettlementResult:
    order_id: str
    policy: str
    fee: float
    store_settled: bool
    courier_settled: bool

    @property
    def complete(self):
        return self.store_settled and self.courier_settled


def _release(order, user_id, side, escrow_amount, credit, description):
    """Release one side's escrow. Returns True when the wallet was updated."""
    if not user_id:
        logger.warning("Settlement side skipped: no party assigned", order_id=str(order.id), side=side)
        return False

    wallet = find_wallet(user_id)
    if wallet is None:
        logger.warning(
            "Settlement side skipped: wallet missing",
            order_id=str(order.id),
            side=side,
            user_id=str(user_id),
        )
        return False

    try:
        wallet.release_escrow_to_balance(escrow_amount, credit, description=description, order_id=order.id)
    except InsufficientFunds as exc:
        logger.warning(
            "Settlement side skipped: escrow shortfall",
            order_id=str(order.id),
            side=side,
            user_id=str(user_id),
            held=wallet.escrow,
            required=escrow_amount,
            error=str(exc),
        )
        return False

    current_domain.repository_for(Wallet).add(wallet)
    logger.info(
        "Settlement side released",
        order_id=str(order.id),
        side=side,
        user_id=str(user_id),
        escrow_released=escrow_amount,
        credited=credit,
    )
    return True


def settle_order(order, policy=None):
    """Apply the settlement ledger entries for a completed order.

    Marks the settled sides on ``order``; the caller persists the order.
    """
    policy = policy or get_settlement_policy()
    fee = order.delivery_fee()
    payout = policy.payout(fee, order.product_price)

    store_settled = bool(order.store_settled)
    if not store_settled:
        store_settled = _release(
            order,
            order.store_id,
            "store",
            payout.store_escrow_release,
            payout.store_credit,
            f"Settlement for order {order.id}: product price received",
        )

    courier_settled = bool(order.courier_settled)
    if not courier_settled:
        courier_settled = _release(
            order,
            order.courier_id,
            "courier",
            payout.courier_escrow_release,
            payout.courier_credit,
            f"Settlement for order {order.id}: delivery fee earned",
        )

    order.record_settlement(policy.value, store_settled, courier_settled)

    result = SettlementResult(
        order_id=str(order.id),
        policy=policy.value,
        fee=fee,
        store_settled=order.store_settled,
        courier_settled=order.courier_settled,
    )
    if result.complete:
        logger.info("Order settled", order_id=result.order_id, policy=result.policy, fee=fee)
    else:
        logger.warning(
            "Order partially settled; pending repair",
            order_id=result.order_id,
            store_settled=result.store_settled,
            courier_settled=result.courier_settled,
        )
    return result
