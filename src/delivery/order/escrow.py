"""Dual escrow deposits: DepositStoreEscrow and DepositCourierEscrow.

Each side deposits independently: the store escrows the delivery fee, the
selected courier escrows the product price as collateral. The order advances
to Ready_For_Pickup on whichever deposit completes the pair.

Both handlers read the order and the depositor's wallet fresh from their
repositories and validate everything (status, actor, funds) before either
record is touched. The wallet debit and the order flag are then written in
the same unit of work.
"""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.order import Order
from delivery.utils.logging import get_logger
from delivery.wallet.funding import get_or_create_wallet
from delivery.wallet.wallet import Wallet

logger = get_logger(__name__)


@delivery.command(part_of="Order")
class DepositStoreEscrow:
    """The store deposits the delivery fee."""

    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)


@delivery.command(part_of="Order")
class DepositCourierEscrow:
    """The selected courier deposits the product price as collateral."""

    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)


@delivery.command_handler(part_of=Order)
class EscrowDepositHandler:
    @handle(DepositStoreEscrow)
    def deposit_store_escrow(self, command):
        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(command.order_id)
        order.assert_can_deposit_store_escrow(command.actor_id)

        fee = order.delivery_fee()
        wallet = get_or_create_wallet(command.actor_id)
        wallet.debit(fee, description=f"Delivery fee escrow for order {order.id}", order_id=order.id)
        order.record_store_escrow(command.actor_id)

        current_domain.repository_for(Wallet).add(wallet)
        order_repo.add(order)
        logger.info(
            "Store escrow deposited",
            order_id=str(order.id),
            store_id=str(command.actor_id),
            amount=fee,
            status=order.status,
        )
        return order.status

    @handle(DepositCourierEscrow)
    def deposit_courier_escrow(self, command):
        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(command.order_id)
        order.assert_can_deposit_courier_escrow(command.actor_id)

        collateral = order.product_price
        wallet = get_or_create_wallet(command.actor_id)
        wallet.debit(collateral, description=f"Collateral escrow for order {order.id}", order_id=order.id)
        order.record_courier_escrow(command.actor_id)

        current_domain.repository_for(Wallet).add(wallet)
        order_repo.add(order)
        logger.info(
            "Courier escrow deposited",
            order_id=str(order.id),
            courier_id=str(command.actor_id),
            amount=collateral,
            status=order.status,
        )
        return order.status
