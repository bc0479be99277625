"""Order aggregate (CQRS): the core of the delivery domain.

An order is published by a store, bid on by couriers, and then secured by a
dual escrow: the store deposits the delivery fee and the selected courier
deposits the product price as collateral. The order only becomes ready for
pickup once both deposits are in, whichever arrives first.

State Machine (7 states):
    BIDDING → AWAITING_ESCROW → READY_FOR_PICKUP →
    PICKED_UP → IN_TRANSIT → DELIVERED → COMPLETED

Fulfillment moves forward only; any fulfillment state may jump straight to
COMPLETED. There is no reversal and no cancellation path.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    String,
)

from delivery.domain import delivery
from delivery.errors import StateConflict
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
from delivery.utils.money import money


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    BIDDING = "Bidding"
    AWAITING_ESCROW = "Awaiting_Escrow"
    READY_FOR_PICKUP = "Ready_For_Pickup"
    PICKED_UP = "Picked_Up"
    IN_TRANSIT = "In_Transit"
    DELIVERED = "Delivered"
    COMPLETED = "Completed"


class PartyRole(Enum):
    STORE = "Store"
    COURIER = "Courier"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.BIDDING: {OrderStatus.AWAITING_ESCROW},
    OrderStatus.AWAITING_ESCROW: {OrderStatus.READY_FOR_PICKUP},
    OrderStatus.READY_FOR_PICKUP: {
        OrderStatus.PICKED_UP,
        OrderStatus.IN_TRANSIT,
        OrderStatus.DELIVERED,
        OrderStatus.COMPLETED,
    },
    OrderStatus.PICKED_UP: {OrderStatus.IN_TRANSIT, OrderStatus.DELIVERED, OrderStatus.COMPLETED},
    OrderStatus.IN_TRANSIT: {OrderStatus.DELIVERED, OrderStatus.COMPLETED},
    OrderStatus.DELIVERED: {OrderStatus.COMPLETED},
    OrderStatus.COMPLETED: set(),  # Terminal
}

# Statuses a party may set directly; earlier ones only move via selection/escrow
FULFILLMENT_STATUSES = {
    OrderStatus.READY_FOR_PICKUP,
    OrderStatus.PICKED_UP,
    OrderStatus.IN_TRANSIT,
    OrderStatus.DELIVERED,
    OrderStatus.COMPLETED,
}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@delivery.entity(part_of="Order")
class Bid:
    """A courier's proposed delivery fee. One per courier per order."""

    courier_id = Identifier(required=True)
    courier_name = String(max_length=100)
    amount = Float(required=True)
    placed_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@delivery.aggregate
class Order:
    # Parties
    store_id = Identifier(required=True)
    store_name = String(max_length=100)
    courier_id = Identifier()

    # What is delivered, and where
    product_name = String(required=True, max_length=255)
    product_price = Float(required=True)
    suggested_fee = Float(required=True)
    destination = String(required=True, max_length=500)
    client_name = String(max_length=100)
    client_phone = String(max_length=30)

    # Lifecycle
    status = String(choices=OrderStatus, default=OrderStatus.BIDDING.value)
    bids = HasMany(Bid)
    selected_bid_id = Identifier()

    # Dual escrow
    store_escrow_paid = Boolean(default=False)
    courier_escrow_paid = Boolean(default=False)

    # Settlement bookkeeping
    store_settled = Boolean(default=False)
    courier_settled = Boolean(default=False)
    settled_at = DateTime()

    # Reviews
    store_reviewed = Boolean(default=False)
    courier_reviewed = Boolean(default=False)

    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def one_bid_per_courier(self):
        couriers = [str(b.courier_id) for b in self.bids or []]
        if len(couriers) != len(set(couriers)):
            raise ValidationError({"bids": ["A courier can hold only one bid per order"]})

    @invariant.post
    def ready_only_when_both_deposits_are_in(self):
        if self.status is None or OrderStatus(self.status) in (OrderStatus.BIDDING, OrderStatus.AWAITING_ESCROW):
            return
        if not (self.store_escrow_paid and self.courier_escrow_paid):
            raise ValidationError({"status": [f"Order cannot be {self.status} before both escrow deposits"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        store_id,
        product_name,
        product_price,
        suggested_fee,
        destination,
        store_name=None,
        client_name=None,
        client_phone=None,
    ):
        """Publish a new order open for bidding."""
        if money(product_price) <= 0:
            raise ValidationError({"product_price": ["Product price must be positive"]})
        if money(suggested_fee) <= 0:
            raise ValidationError({"suggested_fee": ["Suggested delivery fee must be positive"]})

        now = datetime.now(UTC)
        order = cls(
            store_id=str(store_id),
            store_name=store_name,
            product_name=product_name,
            product_price=money(product_price),
            suggested_fee=money(suggested_fee),
            destination=destination,
            client_name=client_name,
            client_phone=client_phone,
            status=OrderStatus.BIDDING.value,
            store_escrow_paid=False,
            courier_escrow_paid=False,
            store_settled=False,
            courier_settled=False,
            store_reviewed=False,
            courier_reviewed=False,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                store_id=str(store_id),
                store_name=store_name,
                product_name=product_name,
                product_price=order.product_price,
                suggested_fee=order.suggested_fee,
                destination=destination,
                created_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def is_in(self, *statuses):
        return OrderStatus(self.status) in statuses

    def find_bid(self, bid_id):
        return next((b for b in self.bids or [] if str(b.id) == str(bid_id)), None)

    def bid_by(self, courier_id):
        return next((b for b in self.bids or [] if str(b.courier_id) == str(courier_id)), None)

    def delivery_fee(self):
        """Fee the store owes and the courier earns.

        The selected bid's amount, falling back to the suggested fee for orders
        that never went through selection. Used both when the store deposits
        escrow and at settlement, so the two always agree.
        """
        bid = self.find_bid(self.selected_bid_id) if self.selected_bid_id else None
        return money(bid.amount if bid else self.suggested_fee)

    def role_of(self, actor_id):
        """The party ``actor_id`` plays on this order, or None."""
        if str(actor_id) == str(self.store_id):
            return PartyRole.STORE
        if self.courier_id and str(actor_id) == str(self.courier_id):
            return PartyRole.COURIER
        return None

    def counterparty_of(self, actor_id):
        role = self.role_of(actor_id)
        if role == PartyRole.STORE:
            return str(self.courier_id) if self.courier_id else None
        if role == PartyRole.COURIER:
            return str(self.store_id)
        return None

    @property
    def needs_settlement(self):
        return self.is_in(OrderStatus.COMPLETED) and not (self.store_settled and self.courier_settled)

    # -------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------
    def _assert_status(self, expected, action):
        current = OrderStatus(self.status)
        if current != expected:
            raise StateConflict({"status": [f"Cannot {action} while order is {current.value}"]})

    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise StateConflict({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def assert_can_deposit_store_escrow(self, actor_id):
        self._assert_status(OrderStatus.AWAITING_ESCROW, "deposit store escrow")
        if self.role_of(actor_id) != PartyRole.STORE:
            raise ValidationError({"actor_id": ["Only the order's store can deposit the delivery fee"]})
        if self.store_escrow_paid:
            raise StateConflict({"store_escrow_paid": ["Store escrow has already been deposited"]})

    def assert_can_deposit_courier_escrow(self, actor_id):
        self._assert_status(OrderStatus.AWAITING_ESCROW, "deposit courier escrow")
        if self.role_of(actor_id) != PartyRole.COURIER:
            raise ValidationError({"actor_id": ["Only the selected courier can deposit collateral"]})
        if self.courier_escrow_paid:
            raise StateConflict({"courier_escrow_paid": ["Courier escrow has already been deposited"]})

    # -------------------------------------------------------------------
    # Bidding
    # -------------------------------------------------------------------
    def place_bid(self, courier_id, courier_name, amount):
        """Create the courier's bid, or overwrite the amount of their existing one."""
        self._assert_status(OrderStatus.BIDDING, "bid")
        if str(courier_id) == str(self.store_id):
            raise ValidationError({"courier_id": ["A store cannot bid on its own order"]})
        value = money(amount)
        if value <= 0:
            raise ValidationError({"amount": ["Bid amount must be positive"]})

        now = datetime.now(UTC)
        existing = self.bid_by(courier_id)
        if existing is not None:
            previous = existing.amount
            with atomic_change(self):
                existing.amount = value
                existing.placed_at = now
                if courier_name:
                    existing.courier_name = courier_name
                self.updated_at = now
            self.raise_(
                BidUpdated(
                    order_id=str(self.id),
                    bid_id=str(existing.id),
                    courier_id=str(courier_id),
                    previous_amount=previous,
                    amount=value,
                    updated_at=now,
                )
            )
            return existing

        bid = Bid(courier_id=str(courier_id), courier_name=courier_name, amount=value, placed_at=now)
        self.add_bids(bid)
        self.updated_at = now
        self.raise_(
            BidPlaced(
                order_id=str(self.id),
                bid_id=str(bid.id),
                courier_id=str(courier_id),
                courier_name=courier_name,
                amount=value,
                placed_at=now,
            )
        )
        return bid

    def select_bid(self, bid_id, actor_id):
        """Accept a bid: assign its courier and wait for both deposits."""
        self._assert_status(OrderStatus.BIDDING, "select a bid")
        if self.role_of(actor_id) != PartyRole.STORE:
            raise ValidationError({"actor_id": ["Only the order's store can select a bid"]})
        bid = self.find_bid(bid_id)
        if bid is None:
            raise ValidationError({"bid_id": ["Bid not found on this order"]})

        now = datetime.now(UTC)
        with atomic_change(self):
            self.selected_bid_id = str(bid.id)
            self.courier_id = str(bid.courier_id)
            self.status = OrderStatus.AWAITING_ESCROW.value
            self.updated_at = now
        self.raise_(
            BidSelected(
                order_id=str(self.id),
                bid_id=str(bid.id),
                courier_id=str(bid.courier_id),
                fee=money(bid.amount),
                selected_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Dual escrow
    # -------------------------------------------------------------------
    def _advance_if_funded(self, now):
        if self.store_escrow_paid and self.courier_escrow_paid and self.is_in(OrderStatus.AWAITING_ESCROW):
            self.status = OrderStatus.READY_FOR_PICKUP.value
            self.raise_(OrderReadyForPickup(order_id=str(self.id), ready_at=now))

    def record_store_escrow(self, actor_id):
        """Mark the store's fee deposit as paid. Returns the amount deposited."""
        self.assert_can_deposit_store_escrow(actor_id)
        fee = self.delivery_fee()
        now = datetime.now(UTC)
        with atomic_change(self):
            self.store_escrow_paid = True
            self.updated_at = now
            self._advance_if_funded(now)
        self.raise_(
            StoreEscrowDeposited(
                order_id=str(self.id),
                store_id=str(self.store_id),
                amount=fee,
                deposited_at=now,
            )
        )
        return fee

    def record_courier_escrow(self, actor_id):
        """Mark the courier's collateral as paid. Returns the amount deposited."""
        self.assert_can_deposit_courier_escrow(actor_id)
        collateral = money(self.product_price)
        now = datetime.now(UTC)
        with atomic_change(self):
            self.courier_escrow_paid = True
            self.updated_at = now
            self._advance_if_funded(now)
        self.raise_(
            CourierEscrowDeposited(
                order_id=str(self.id),
                courier_id=str(self.courier_id),
                amount=collateral,
                deposited_at=now,
            )
        )
        return collateral

    def reconcile_escrow_status(self):
        """Advance an order whose status lags its escrow flags.

        Returns True when the order was corrected. Never touches wallets.
        """
        if not (self.is_in(OrderStatus.AWAITING_ESCROW) and self.store_escrow_paid and self.courier_escrow_paid):
            return False

        now = datetime.now(UTC)
        previous = self.status
        self.status = OrderStatus.READY_FOR_PICKUP.value
        self.updated_at = now
        self.raise_(
            EscrowStatusReconciled(
                order_id=str(self.id),
                previous_status=previous,
                reconciled_at=now,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Fulfillment
    # -------------------------------------------------------------------
    def advance_status(self, target_status, actor_id):
        """Move the order forward through fulfillment.

        Returns False without side effects when ``target_status`` is already
        the current status, True when the order moved.
        """
        target = OrderStatus(target_status)
        # Selection, deposits and the sweep own the pre-fulfillment states
        if self.is_in(OrderStatus.BIDDING, OrderStatus.AWAITING_ESCROW):
            raise StateConflict({"status": [f"Cannot update status while order is {self.status}"]})
        if self.role_of(actor_id) is None:
            raise ValidationError({"actor_id": ["Only the store or the assigned courier can update the order"]})
        if target not in FULFILLMENT_STATUSES:
            raise StateConflict({"status": [f"{target.value} cannot be set directly"]})
        if OrderStatus(self.status) == target:
            return False
        self._assert_can_transition(target)

        now = datetime.now(UTC)
        previous = self.status
        self.status = target.value
        self.updated_at = now
        self.raise_(
            FulfillmentStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                new_status=target.value,
                changed_by=str(actor_id),
                changed_at=now,
            )
        )
        if target == OrderStatus.COMPLETED:
            self.raise_(
                OrderCompleted(
                    order_id=str(self.id),
                    store_id=str(self.store_id),
                    courier_id=str(self.courier_id) if self.courier_id else None,
                    fee=self.delivery_fee(),
                    product_price=money(self.product_price),
                    completed_by=str(actor_id),
                    completed_at=now,
                )
            )
        return True

    # -------------------------------------------------------------------
    # Settlement bookkeeping
    # -------------------------------------------------------------------
    def record_settlement(self, policy, store_settled, courier_settled):
        """Flag the sides settlement has paid. A settled side never reverts."""
        if not self.is_in(OrderStatus.COMPLETED):
            raise StateConflict({"status": ["Only completed orders can be settled"]})

        now = datetime.now(UTC)
        with atomic_change(self):
            self.store_settled = bool(self.store_settled or store_settled)
            self.courier_settled = bool(self.courier_settled or courier_settled)
            if self.store_settled and self.courier_settled:
                self.settled_at = now
            self.updated_at = now
        self.raise_(
            SettlementRecorded(
                order_id=str(self.id),
                policy=policy,
                fee=self.delivery_fee(),
                product_price=money(self.product_price),
                store_settled=self.store_settled,
                courier_settled=self.courier_settled,
                recorded_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Reviews
    # -------------------------------------------------------------------
    def assert_can_review(self, reviewer_id):
        if not self.is_in(OrderStatus.COMPLETED):
            raise StateConflict({"status": ["Only completed orders can be reviewed"]})
        role = self.role_of(reviewer_id)
        if role is None:
            raise ValidationError({"reviewer_id": ["Only parties to the order can review it"]})

        already = self.store_reviewed if role == PartyRole.STORE else self.courier_reviewed
        if already:
            raise StateConflict({"review": ["This party has already reviewed the order"]})
        return role

    def mark_reviewed(self, reviewer_id):
        """Set the reviewer's ``reviewed`` flag. Returns their role."""
        role = self.assert_can_review(reviewer_id)

        now = datetime.now(UTC)
        if role == PartyRole.STORE:
            self.store_reviewed = True
        else:
            self.courier_reviewed = True
        self.updated_at = now
        self.raise_(
            PartyReviewed(
                order_id=str(self.id),
                reviewer_id=str(reviewer_id),
                role=role.value,
                reviewed_at=now,
            )
        )
        return role
