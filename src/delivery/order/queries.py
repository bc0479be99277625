"""Read-side helpers for orders. Always read from the repository."""

from protean.utils.globals import current_domain

from delivery.order.order import Order, OrderStatus


def get_order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def list_orders(store_id=None, courier_id=None, status=None):
    """Orders newest first, optionally narrowed by party or status."""
    criteria = {}
    if store_id:
        criteria["store_id"] = str(store_id)
    if courier_id:
        criteria["courier_id"] = str(courier_id)
    if status:
        criteria["status"] = OrderStatus(status).value

    dao = current_domain.repository_for(Order)._dao
    orders = dao.query.filter(**criteria).all().items if criteria else dao.query.all().items
    return sorted(orders, key=lambda o: o.created_at, reverse=True)


def open_for_bidding():
    """Orders couriers can still bid on."""
    return list_orders(status=OrderStatus.BIDDING.value)
