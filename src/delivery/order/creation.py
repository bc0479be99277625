"""CreateOrder: a store publishes a delivery order for bidding."""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.order import Order
from delivery.utils.logging import get_logger

logger = get_logger(__name__)


@delivery.command(part_of="Order")
class CreateOrder:
    store_id = Identifier(required=True)
    store_name = String(max_length=100)
    product_name = String(required=True, max_length=255)
    product_price = Float(required=True)
    suggested_fee = Float(required=True)
    destination = String(required=True, max_length=500)
    client_name = String(max_length=100)
    client_phone = String(max_length=30)


@delivery.command_handler(part_of=Order)
class CreateOrderHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        order = Order.create(
            store_id=command.store_id,
            store_name=command.store_name,
            product_name=command.product_name,
            product_price=command.product_price,
            suggested_fee=command.suggested_fee,
            destination=command.destination,
            client_name=command.client_name,
            client_phone=command.client_phone,
        )
        current_domain.repository_for(Order).add(order)
        logger.info(
            "Order created",
            order_id=str(order.id),
            store_id=str(order.store_id),
            product_price=order.product_price,
            suggested_fee=order.suggested_fee,
        )
        return str(order.id)
