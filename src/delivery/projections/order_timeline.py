"""Order timeline: append-only audit trail of all order events."""

import json
import uuid

from protean.core.projector import on
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.events import (
    BidPlaced,
    BidSelected,
    BidUpdated,
    CourierEscrowDeposited,
    EscrowStatusReconciled,
    FulfillmentStatusChanged,
    OrderCompleted,
    OrderCreated,
    OrderReadyForPickup,
    PartyReviewed,
    SettlementRecorded,
    StoreEscrowDeposited,
)
from delivery.order.order import Order


@delivery.projection
class OrderTimeline:
    entry_id = Identifier(identifier=True, required=True)
    order_id = Identifier(required=True)
    event_type = String(required=True)
    description = String(required=True)
    occurred_at = DateTime(required=True)
    event_metadata = Text()  # JSON: extra event data


def _add_entry(order_id, event_type, description, occurred_at, event_metadata=None):
    current_domain.repository_for(OrderTimeline).add(
        OrderTimeline(
            entry_id=str(uuid.uuid4()),
            order_id=order_id,
            event_type=event_type,
            description=description,
            occurred_at=occurred_at,
            event_metadata=json.dumps(event_metadata) if event_metadata else None,
        )
    )


def timeline_for(order_id):
    """Timeline entries for an order, oldest first."""
    entries = current_domain.repository_for(OrderTimeline)._dao.query.filter(order_id=str(order_id)).all().items
    return sorted(entries, key=lambda e: e.occurred_at)


@delivery.projector(projector_for=OrderTimeline, aggregates=[Order])
class OrderTimelineProjector:
    @on(OrderCreated)
    def on_order_created(self, event):
        _add_entry(event.order_id, "OrderCreated", "Order was published for bidding", event.created_at)

    @on(BidPlaced)
    def on_bid_placed(self, event):
        _add_entry(
            event.order_id,
            "BidPlaced",
            f"{event.courier_name or event.courier_id} bid {event.amount:.2f}",
            event.placed_at,
            {"bid_id": event.bid_id, "courier_id": event.courier_id},
        )

    @on(BidUpdated)
    def on_bid_updated(self, event):
        _add_entry(
            event.order_id,
            "BidUpdated",
            f"Bid changed from {event.previous_amount:.2f} to {event.amount:.2f}",
            event.updated_at,
            {"bid_id": event.bid_id, "courier_id": event.courier_id},
        )

    @on(BidSelected)
    def on_bid_selected(self, event):
        _add_entry(
            event.order_id,
            "BidSelected",
            f"Courier selected at a fee of {event.fee:.2f}",
            event.selected_at,
            {"bid_id": event.bid_id, "courier_id": event.courier_id},
        )

    @on(StoreEscrowDeposited)
    def on_store_escrow_deposited(self, event):
        _add_entry(
            event.order_id,
            "StoreEscrowDeposited",
            f"Store deposited {event.amount:.2f} into escrow",
            event.deposited_at,
        )

    @on(CourierEscrowDeposited)
    def on_courier_escrow_deposited(self, event):
        _add_entry(
            event.order_id,
            "CourierEscrowDeposited",
            f"Courier deposited {event.amount:.2f} collateral into escrow",
            event.deposited_at,
        )

    @on(OrderReadyForPickup)
    def on_order_ready_for_pickup(self, event):
        _add_entry(event.order_id, "OrderReadyForPickup", "Both deposits in; ready for pickup", event.ready_at)

    @on(EscrowStatusReconciled)
    def on_escrow_status_reconciled(self, event):
        _add_entry(
            event.order_id,
            "EscrowStatusReconciled",
            f"Reconciliation moved order from {event.previous_status} to Ready_For_Pickup",
            event.reconciled_at,
        )

    @on(FulfillmentStatusChanged)
    def on_fulfillment_status_changed(self, event):
        _add_entry(
            event.order_id,
            "FulfillmentStatusChanged",
            f"Status changed from {event.previous_status} to {event.new_status}",
            event.changed_at,
            {"changed_by": event.changed_by},
        )

    @on(OrderCompleted)
    def on_order_completed(self, event):
        _add_entry(event.order_id, "OrderCompleted", "Order completed", event.completed_at)

    @on(SettlementRecorded)
    def on_settlement_recorded(self, event):
        if event.store_settled and event.courier_settled:
            description = f"Settled under {event.policy}"
        else:
            description = "Settlement pending for one party"
        _add_entry(
            event.order_id,
            "SettlementRecorded",
            description,
            event.recorded_at,
            {"store_settled": event.store_settled, "courier_settled": event.courier_settled},
        )

    @on(PartyReviewed)
    def on_party_reviewed(self, event):
        _add_entry(event.order_id, "PartyReviewed", f"{event.role} left a review", event.reviewed_at)
