"""Domain events for the Order aggregate.

All events are versioned, immutable facts representing state changes of an
order: bidding, selection, escrow deposits, fulfillment, and settlement.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, String

from delivery.domain import delivery


@delivery.event(part_of="Order")
class OrderCreated:
    """A store published a new delivery order for bidding."""

    __version__ = 1

    order_id = Identifier(required=True)
    store_id = Identifier(required=True)
    store_name = String()
    product_name = String(required=True)
    product_price = Float(required=True)
    suggested_fee = Float(required=True)
    destination = String(required=True)
    created_at = DateTime(required=True)


@delivery.event(part_of="Order")
class BidPlaced:
    """A courier placed a first bid on an order."""

    __version__ = 1

    order_id = Identifier(required=True)
    bid_id = Identifier(required=True)
    courier_id = Identifier(required=True)
    courier_name = String()
    amount = Float(required=True)
    placed_at = DateTime(required=True)


@delivery.event(part_of="Order")
class BidUpdated:
    """A courier changed the fee on their existing bid."""

    __version__ = 1

    order_id = Identifier(required=True)
    bid_id = Identifier(required=True)
    courier_id = Identifier(required=True)
    previous_amount = Float(required=True)
    amount = Float(required=True)
    updated_at = DateTime(required=True)


@delivery.event(part_of="Order")
class BidSelected:
    """The store chose a courier; both parties now owe escrow."""

    __version__ = 1

    order_id = Identifier(required=True)
    bid_id = Identifier(required=True)
    courier_id = Identifier(required=True)
    fee = Float(required=True)
    selected_at = DateTime(required=True)


@delivery.event(part_of="Order")
class StoreEscrowDeposited:
    """The store deposited the delivery fee into escrow."""

    __version__ = 1

    order_id = Identifier(required=True)
    store_id = Identifier(required=True)
    amount = Float(required=True)
    deposited_at = DateTime(required=True)


@delivery.event(part_of="Order")
class CourierEscrowDeposited:
    """The courier deposited the product price as collateral."""

    __version__ = 1

    order_id = Identifier(required=True)
    courier_id = Identifier(required=True)
    amount = Float(required=True)
    deposited_at = DateTime(required=True)


@delivery.event(part_of="Order")
class OrderReadyForPickup:
    """Both escrow deposits are in; the courier may collect the product."""

    __version__ = 1

    order_id = Identifier(required=True)
    ready_at = DateTime(required=True)


@delivery.event(part_of="Order")
class EscrowStatusReconciled:
    """The reconciliation sweep advanced an order whose status lagged its escrow flags."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reconciled_at = DateTime(required=True)


@delivery.event(part_of="Order")
class FulfillmentStatusChanged:
    """The order moved forward through pickup, transit, or delivery."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_by = Identifier(required=True)
    changed_at = DateTime(required=True)


@delivery.event(part_of="Order")
class OrderCompleted:
    """The order reached its terminal state; settlement is due."""

    __version__ = 1

    order_id = Identifier(required=True)
    store_id = Identifier(required=True)
    courier_id = Identifier()
    fee = Float(required=True)
    product_price = Float(required=True)
    completed_by = Identifier(required=True)
    completed_at = DateTime(required=True)


@delivery.event(part_of="Order")
class SettlementRecorded:
    """Settlement paid out one or both parties of a completed order."""

    __version__ = 1

    order_id = Identifier(required=True)
    policy = String(required=True)
    fee = Float(required=True)
    product_price = Float(required=True)
    store_settled = Boolean(required=True)
    courier_settled = Boolean(required=True)
    recorded_at = DateTime(required=True)


@delivery.event(part_of="Order")
class PartyReviewed:
    """A party to the order submitted their review of the other party."""

    __version__ = 1

    order_id = Identifier(required=True)
    reviewer_id = Identifier(required=True)
    role = String(required=True)
    reviewed_at = DateTime(required=True)
