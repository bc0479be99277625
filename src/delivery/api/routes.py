"""FastAPI routes for the delivery marketplace.

Each route translates between Pydantic schemas (external contract) and
Protean commands (internal domain concepts). The acting user comes from the
``X-Actor-Id`` header; every route except the reads of public data needs one.
"""

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from delivery.api.errors import current_actor
from delivery.api.schemas import (
    BidIdResponse,
    CountResponse,
    CreateOrderRequest,
    LedgerAuditResponse,
    OrderIdResponse,
    OrderResponse,
    OrderStatusResponse,
    RetrySettlementsRequest,
    ReviewIdResponse,
    ReviewResponse,
    SelectBidRequest,
    SubmitBidRequest,
    SubmitReviewRequest,
    TimelineEntryResponse,
    TopUpRequest,
    TransactionResponse,
    UpdateStatusRequest,
    UserReviewsResponse,
    WalletResponse,
)
from delivery.order.bidding import SubmitBid
from delivery.order.creation import CreateOrder
from delivery.order.escrow import DepositCourierEscrow, DepositStoreEscrow
from delivery.order.fulfillment import UpdateOrderStatus
from delivery.order.queries import get_order, list_orders
from delivery.order.reconciliation import ReconcileEscrowStatus, RetryPendingSettlements, audit_wallet_ledgers
from delivery.order.selection import SelectBid
from delivery.projections.order_timeline import timeline_for
from delivery.review.submission import SubmitReview, average_rating, reviews_for_user
from delivery.wallet.funding import TopUpWallet, find_wallet, transaction_history

order_router = APIRouter(prefix="/orders", tags=["orders"])
wallet_router = APIRouter(prefix="/wallets", tags=["wallets"])
user_router = APIRouter(prefix="/users", tags=["users"])
maintenance_router = APIRouter(prefix="/maintenance", tags=["maintenance"])


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def create_order(body: CreateOrderRequest, actor_id: str = Depends(current_actor)) -> OrderIdResponse:
    """Publish a new order; the acting user is the store."""
    command = CreateOrder(
        store_id=actor_id,
        store_name=body.store_name,
        product_name=body.product_name,
        product_price=body.product_price,
        suggested_fee=body.suggested_fee,
        destination=body.destination,
        client_name=body.client_name,
        client_phone=body.client_phone,
    )
    order_id = current_domain.process(command, asynchronous=False)
    return OrderIdResponse(order_id=order_id)


@order_router.get("", response_model=list[OrderResponse])
async def browse_orders(
    store_id: str | None = None,
    courier_id: str | None = None,
    status: str | None = None,
) -> list[OrderResponse]:
    """List orders, newest first."""
    return [OrderResponse.from_order(o) for o in list_orders(store_id, courier_id, status)]


@order_router.get("/{order_id}", response_model=OrderResponse)
async def order_details(order_id: str) -> OrderResponse:
    return OrderResponse.from_order(get_order(order_id))


@order_router.get("/{order_id}/timeline", response_model=list[TimelineEntryResponse])
async def order_timeline(order_id: str) -> list[TimelineEntryResponse]:
    return [
        TimelineEntryResponse(
            event_type=entry.event_type,
            description=entry.description,
            occurred_at=entry.occurred_at.isoformat() if entry.occurred_at else None,
        )
        for entry in timeline_for(order_id)
    ]


@order_router.post("/{order_id}/bids", status_code=201, response_model=BidIdResponse)
async def submit_bid(order_id: str, body: SubmitBidRequest, actor_id: str = Depends(current_actor)) -> BidIdResponse:
    """Bid on an order, or revise your existing bid."""
    command = SubmitBid(
        order_id=order_id,
        courier_id=actor_id,
        courier_name=body.courier_name,
        amount=body.amount,
    )
    bid_id = current_domain.process(command, asynchronous=False)
    return BidIdResponse(bid_id=bid_id)


@order_router.put("/{order_id}/selection", response_model=OrderStatusResponse)
async def select_bid(
    order_id: str, body: SelectBidRequest, actor_id: str = Depends(current_actor)
) -> OrderStatusResponse:
    """Accept a courier's bid."""
    current_domain.process(SelectBid(order_id=order_id, bid_id=body.bid_id, actor_id=actor_id), asynchronous=False)
    return OrderStatusResponse(order_id=order_id, status=get_order(order_id).status)


@order_router.post("/{order_id}/escrow/store", response_model=OrderStatusResponse)
async def deposit_store_escrow(order_id: str, actor_id: str = Depends(current_actor)) -> OrderStatusResponse:
    """The store deposits the delivery fee."""
    status = current_domain.process(DepositStoreEscrow(order_id=order_id, actor_id=actor_id), asynchronous=False)
    return OrderStatusResponse(order_id=order_id, status=status)


@order_router.post("/{order_id}/escrow/courier", response_model=OrderStatusResponse)
async def deposit_courier_escrow(order_id: str, actor_id: str = Depends(current_actor)) -> OrderStatusResponse:
    """The selected courier deposits the product price as collateral."""
    status = current_domain.process(DepositCourierEscrow(order_id=order_id, actor_id=actor_id), asynchronous=False)
    return OrderStatusResponse(order_id=order_id, status=status)


@order_router.put("/{order_id}/status", response_model=OrderStatusResponse)
async def update_status(
    order_id: str, body: UpdateStatusRequest, actor_id: str = Depends(current_actor)
) -> OrderStatusResponse:
    """Move the order through fulfillment. Completing it settles both wallets."""
    command = UpdateOrderStatus(order_id=order_id, status=body.status, actor_id=actor_id)
    status = current_domain.process(command, asynchronous=False)
    return OrderStatusResponse(order_id=order_id, status=status)


@order_router.post("/{order_id}/reviews", status_code=201, response_model=ReviewIdResponse)
async def submit_review(
    order_id: str, body: SubmitReviewRequest, actor_id: str = Depends(current_actor)
) -> ReviewIdResponse:
    """Review the other party of a completed order."""
    command = SubmitReview(
        order_id=order_id,
        reviewer_id=actor_id,
        reviewer_name=body.reviewer_name,
        rating=body.rating,
        comment=body.comment,
    )
    review_id = current_domain.process(command, asynchronous=False)
    return ReviewIdResponse(review_id=review_id)


# ---------------------------------------------------------------------------
# Wallets
# ---------------------------------------------------------------------------
@wallet_router.post("/me/top-ups", response_model=WalletResponse)
async def top_up(body: TopUpRequest, actor_id: str = Depends(current_actor)) -> WalletResponse:
    current_domain.process(
        TopUpWallet(user_id=actor_id, amount=body.amount, description=body.description),
        asynchronous=False,
    )
    wallet = find_wallet(actor_id)
    return WalletResponse(user_id=actor_id, balance=wallet.balance, escrow=wallet.escrow)


@wallet_router.get("/me", response_model=WalletResponse)
async def my_wallet(actor_id: str = Depends(current_actor)) -> WalletResponse:
    """Current balances. A user with no wallet yet sees zeros."""
    wallet = find_wallet(actor_id)
    if wallet is None:
        return WalletResponse(user_id=actor_id, balance=0.0, escrow=0.0)
    return WalletResponse(user_id=actor_id, balance=wallet.balance, escrow=wallet.escrow)


@wallet_router.get("/me/transactions", response_model=list[TransactionResponse])
async def my_transactions(actor_id: str = Depends(current_actor)) -> list[TransactionResponse]:
    """Ledger entries, newest first."""
    return [
        TransactionResponse(
            transaction_id=str(entry.id),
            direction=entry.direction,
            amount=entry.amount,
            balance_delta=entry.balance_delta,
            escrow_delta=entry.escrow_delta,
            description=entry.description,
            order_id=str(entry.order_id) if entry.order_id else None,
            recorded_at=entry.recorded_at.isoformat() if entry.recorded_at else None,
        )
        for entry in transaction_history(actor_id)
    ]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
@user_router.get("/{user_id}/reviews", response_model=UserReviewsResponse)
async def user_reviews(user_id: str) -> UserReviewsResponse:
    """Reviews a user has received, with their average rating."""
    return UserReviewsResponse(
        user_id=user_id,
        average_rating=average_rating(user_id),
        reviews=[
            ReviewResponse(
                review_id=str(r.id),
                order_id=str(r.order_id),
                reviewer_id=str(r.reviewer_id),
                reviewer_name=r.reviewer_name,
                rating=r.rating,
                comment=r.comment,
                submitted_at=r.submitted_at.isoformat() if r.submitted_at else None,
            )
            for r in reviews_for_user(user_id)
        ],
    )


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------
@maintenance_router.post("/reconcile-escrow", response_model=CountResponse)
async def reconcile_escrow(actor_id: str = Depends(current_actor)) -> CountResponse:
    """Advance orders left in Awaiting_Escrow with both deposits in."""
    count = current_domain.process(ReconcileEscrowStatus(requested_by=actor_id), asynchronous=False)
    return CountResponse(count=count)


@maintenance_router.post("/retry-settlements", response_model=CountResponse)
async def retry_settlements(
    body: RetrySettlementsRequest | None = None, actor_id: str = Depends(current_actor)
) -> CountResponse:
    """Retry the unsettled side of partially settled orders."""
    order_id = body.order_id if body else None
    count = current_domain.process(RetryPendingSettlements(order_id=order_id), asynchronous=False)
    return CountResponse(count=count)


@maintenance_router.get("/ledger-audit", response_model=LedgerAuditResponse)
async def ledger_audit(actor_id: str = Depends(current_actor)) -> LedgerAuditResponse:
    """Compare every wallet's stored balances with its replayed ledger."""
    return LedgerAuditResponse(**audit_wallet_ledgers())
