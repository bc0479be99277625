"""UpdateOrderStatus: a party moves the order through fulfillment.

Setting the current status again is a no-op, so a retried request never
re-runs side effects. The move into Completed runs the settlement engine in
the same unit of work, exactly once per order.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.order import Order, OrderStatus
from delivery.settlement.engine import settle_order
from delivery.utils.logging import get_logger

logger = get_logger(__name__)


@delivery.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    actor_id = Identifier(required=True)


@delivery.command_handler(part_of=Order)
class UpdateOrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        if not order.advance_status(command.status, actor_id=command.actor_id):
            logger.info(
                "Status unchanged; ignoring repeated update",
                order_id=str(order.id),
                status=order.status,
            )
            return order.status

        logger.info(
            "Order status advanced",
            order_id=str(order.id),
            status=order.status,
            actor_id=str(command.actor_id),
        )
        if order.is_in(OrderStatus.COMPLETED):
            settle_order(order)

        repo.add(order)
        return order.status
