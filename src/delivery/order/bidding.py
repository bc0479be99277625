"""SubmitBid: a courier bids on an order, or revises their bid.

A courier holds at most one bid per order: a second submission overwrites the
amount and timestamp of the first. Bids are frozen once the store selects one.
"""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.order import Order
from delivery.utils.logging import get_logger

logger = get_logger(__name__)


@delivery.command(part_of="Order")
class SubmitBid:
    order_id = Identifier(required=True)
    courier_id = Identifier(required=True)
    courier_name = String(max_length=100)
    amount = Float(required=True)


@delivery.command_handler(part_of=Order)
class SubmitBidHandler:
    @handle(SubmitBid)
    def submit_bid(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        bid = order.place_bid(
            courier_id=command.courier_id,
            courier_name=command.courier_name,
            amount=command.amount,
        )
        repo.add(order)
        logger.info(
            "Bid recorded",
            order_id=str(order.id),
            bid_id=str(bid.id),
            courier_id=str(command.courier_id),
            amount=bid.amount,
        )
        return str(bid.id)
