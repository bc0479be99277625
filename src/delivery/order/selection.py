"""SelectBid: the store accepts a courier's bid."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.order import Order
from delivery.utils.logging import get_logger

logger = get_logger(__name__)


@delivery.command(part_of="Order")
class SelectBid:
    order_id = Identifier(required=True)
    bid_id = Identifier(required=True)
    actor_id = Identifier(required=True)


@delivery.command_handler(part_of=Order)
class SelectBidHandler:
    @handle(SelectBid)
    def select_bid(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.select_bid(command.bid_id, actor_id=command.actor_id)
        repo.add(order)
        logger.info(
            "Bid selected",
            order_id=str(order.id),
            bid_id=str(command.bid_id),
            courier_id=str(order.courier_id),
            fee=order.delivery_fee(),
        )
