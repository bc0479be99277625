"""Shared BDD fixtures and step definitions for the delivery domain."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then

from delivery.order.bidding import SubmitBid
from delivery.order.creation import CreateOrder
from delivery.order.escrow import DepositCourierEscrow, DepositStoreEscrow
from delivery.order.order import Order
from delivery.order.selection import SelectBid
from delivery.wallet.funding import TopUpWallet, find_wallet


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


@pytest.fixture()
def parties():
    """The store and selected courier of the order under test."""
    return {"store": None, "courier": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('store "{user_id}" has {amount:f} in their wallet'))
@given(parsers.cfparse('courier "{user_id}" has {amount:f} in their wallet'))
def funded_wallet(user_id, amount):
    current_domain.process(TopUpWallet(user_id=user_id, amount=amount), asynchronous=False)


@given(
    parsers.cfparse('store "{store_id}" publishes an order priced {price:f} with a suggested fee of {fee:f}'),
    target_fixture="order_id",
)
def published_order(store_id, price, fee, parties):
    parties["store"] = store_id
    return current_domain.process(
        CreateOrder(
            store_id=store_id,
            product_name="BDD parcel",
            product_price=price,
            suggested_fee=fee,
            destination="1 Feature Street",
        ),
        asynchronous=False,
    )


@given(parsers.cfparse('the store selected the bid of courier "{courier_id}" for {amount:f}'))
def selected_bid(order_id, courier_id, amount, parties):
    bid_id = current_domain.process(
        SubmitBid(order_id=order_id, courier_id=courier_id, amount=amount),
        asynchronous=False,
    )
    current_domain.process(
        SelectBid(order_id=order_id, bid_id=bid_id, actor_id=parties["store"]),
        asynchronous=False,
    )
    parties["courier"] = courier_id


@given("both parties have deposited escrow")
def both_deposited(order_id, parties):
    current_domain.process(DepositStoreEscrow(order_id=order_id, actor_id=parties["store"]), asynchronous=False)
    current_domain.process(DepositCourierEscrow(order_id=order_id, actor_id=parties["courier"]), asynchronous=False)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order_id, status):
    assert current_domain.repository_for(Order).get(order_id).status == status


@then(parsers.cfparse('"{user_id}" has balance {balance:f} and escrow {escrow:f}'))
def wallet_balances(user_id, balance, escrow):
    wallet = find_wallet(user_id)
    assert wallet.balance == pytest.approx(balance)
    assert wallet.escrow == pytest.approx(escrow)
