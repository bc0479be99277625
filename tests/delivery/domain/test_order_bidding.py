"""Tests for Order creation and the bid registry."""

import pytest
from protean.exceptions import ValidationError

from delivery.errors import StateConflict
from delivery.order.events import BidPlaced, BidSelected, BidUpdated, OrderCreated
from delivery.order.order import Order, OrderStatus


def _make_order(**overrides):
    defaults = {
        "store_id": "store-001",
        "store_name": "Corner Shop",
        "product_name": "Headphones",
        "product_price": 50.0,
        "suggested_fee": 10.0,
        "destination": "12 Harbour Road",
    }
    defaults.update(overrides)
    order = Order.create(**defaults)
    order._events.clear()
    return order


class TestOrderCreation:
    def test_new_order_is_open_for_bidding(self):
        order = _make_order()
        assert order.status == OrderStatus.BIDDING.value
        assert order.courier_id is None
        assert order.store_escrow_paid is False
        assert order.courier_escrow_paid is False
        assert len(order.bids) == 0

    def test_create_raises_order_created(self):
        order = Order.create(
            store_id="store-001",
            product_name="Headphones",
            product_price=50.0,
            suggested_fee=10.0,
            destination="12 Harbour Road",
        )
        assert isinstance(order._events[0], OrderCreated)
        assert order._events[0].suggested_fee == 10.0

    @pytest.mark.parametrize("field", ["product_price", "suggested_fee"])
    def test_non_positive_amounts_rejected(self, field):
        with pytest.raises(ValidationError) as exc:
            _make_order(**{field: 0})
        assert field in exc.value.messages

    def test_delivery_fee_defaults_to_suggested_fee(self):
        order = _make_order()
        assert order.delivery_fee() == 10.0


class TestPlacingBids:
    def test_courier_places_bid(self):
        order = _make_order()
        bid = order.place_bid("courier-001", "Ada", 8.0)
        assert len(order.bids) == 1
        assert bid.amount == 8.0
        assert bid.courier_id == "courier-001"
        assert isinstance(order._events[0], BidPlaced)

    def test_second_bid_from_same_courier_overwrites(self):
        order = _make_order()
        first = order.place_bid("courier-001", "Ada", 8.0)
        order._events.clear()

        second = order.place_bid("courier-001", "Ada", 7.0)

        assert len(order.bids) == 1
        assert second.id == first.id
        assert order.bids[0].amount == 7.0
        assert isinstance(order._events[0], BidUpdated)
        assert order._events[0].previous_amount == 8.0

    def test_bids_from_different_couriers_coexist(self):
        order = _make_order()
        order.place_bid("courier-001", "Ada", 8.0)
        order.place_bid("courier-002", "Grace", 9.5)
        assert len(order.bids) == 2
        assert order.bid_by("courier-002").amount == 9.5

    def test_store_cannot_bid_on_own_order(self):
        order = _make_order()
        with pytest.raises(ValidationError) as exc:
            order.place_bid("store-001", "Corner Shop", 8.0)
        assert "courier_id" in exc.value.messages

    @pytest.mark.parametrize("amount", [0, -3.0])
    def test_non_positive_bid_rejected(self, amount):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.place_bid("courier-001", "Ada", amount)
        assert len(order.bids) == 0


class TestSelectingBids:
    def test_store_selects_bid(self):
        order = _make_order()
        bid = order.place_bid("courier-001", "Ada", 7.0)
        order._events.clear()

        order.select_bid(bid.id, actor_id="store-001")

        assert order.status == OrderStatus.AWAITING_ESCROW.value
        assert order.courier_id == "courier-001"
        assert order.selected_bid_id == bid.id
        assert order.delivery_fee() == 7.0
        assert isinstance(order._events[0], BidSelected)
        assert order._events[0].fee == 7.0

    def test_only_store_can_select(self):
        order = _make_order()
        bid = order.place_bid("courier-001", "Ada", 7.0)
        with pytest.raises(ValidationError) as exc:
            order.select_bid(bid.id, actor_id="courier-001")
        assert "actor_id" in exc.value.messages
        assert order.status == OrderStatus.BIDDING.value

    def test_unknown_bid_rejected(self):
        order = _make_order()
        order.place_bid("courier-001", "Ada", 7.0)
        with pytest.raises(ValidationError) as exc:
            order.select_bid("no-such-bid", actor_id="store-001")
        assert "bid_id" in exc.value.messages

    def test_bidding_closes_after_selection(self):
        order = _make_order()
        bid = order.place_bid("courier-001", "Ada", 7.0)
        order.select_bid(bid.id, actor_id="store-001")
        with pytest.raises(StateConflict):
            order.place_bid("courier-002", "Grace", 6.0)

    def test_cannot_select_twice(self):
        order = _make_order()
        bid = order.place_bid("courier-001", "Ada", 7.0)
        order.select_bid(bid.id, actor_id="store-001")
        with pytest.raises(StateConflict):
            order.select_bid(bid.id, actor_id="store-001")
