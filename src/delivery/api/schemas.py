"""Pydantic request/response schemas for the Delivery API.

These are separate from Protean commands (anti-corruption pattern).
The API layer is the external contract; commands are internal domain concepts.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    store_name: str | None = Field(default=None, max_length=100)
    product_name: str = Field(max_length=255)
    product_price: float = Field(gt=0)
    suggested_fee: float = Field(gt=0)
    destination: str = Field(max_length=500)
    client_name: str | None = Field(default=None, max_length=100)
    client_phone: str | None = Field(default=None, max_length=30)


class SubmitBidRequest(BaseModel):
    amount: float = Field(gt=0)
    courier_name: str | None = Field(default=None, max_length=100)


class SelectBidRequest(BaseModel):
    bid_id: str


class UpdateStatusRequest(BaseModel):
    status: str  # "Picked_Up", "In_Transit", "Delivered", "Completed"


class SubmitReviewRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str | None = None
    reviewer_name: str | None = Field(default=None, max_length=100)


class TopUpRequest(BaseModel):
    amount: float = Field(gt=0)
    description: str | None = Field(default=None, max_length=255)


class RetrySettlementsRequest(BaseModel):
    order_id: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderIdResponse(BaseModel):
    order_id: str


class BidIdResponse(BaseModel):
    bid_id: str


class ReviewIdResponse(BaseModel):
    review_id: str


class OrderStatusResponse(BaseModel):
    order_id: str
    status: str


class BidResponse(BaseModel):
    bid_id: str
    courier_id: str
    courier_name: str | None = None
    amount: float
    placed_at: str | None = None


class OrderResponse(BaseModel):
    order_id: str
    store_id: str
    store_name: str | None = None
    product_name: str
    product_price: float
    suggested_fee: float
    delivery_fee: float
    destination: str
    client_name: str | None = None
    client_phone: str | None = None
    status: str
    bids: list[BidResponse] = []
    selected_bid_id: str | None = None
    courier_id: str | None = None
    store_escrow_paid: bool
    courier_escrow_paid: bool
    store_settled: bool
    courier_settled: bool
    store_reviewed: bool
    courier_reviewed: bool
    created_at: str | None = None

    @classmethod
    def from_order(cls, order) -> OrderResponse:
        return cls(
            order_id=str(order.id),
            store_id=str(order.store_id),
            store_name=order.store_name,
            product_name=order.product_name,
            product_price=order.product_price,
            suggested_fee=order.suggested_fee,
            delivery_fee=order.delivery_fee(),
            destination=order.destination,
            client_name=order.client_name,
            client_phone=order.client_phone,
            status=order.status,
            bids=[
                BidResponse(
                    bid_id=str(b.id),
                    courier_id=str(b.courier_id),
                    courier_name=b.courier_name,
                    amount=b.amount,
                    placed_at=b.placed_at.isoformat() if b.placed_at else None,
                )
                for b in sorted(order.bids or [], key=lambda b: b.amount)
            ],
            selected_bid_id=str(order.selected_bid_id) if order.selected_bid_id else None,
            courier_id=str(order.courier_id) if order.courier_id else None,
            store_escrow_paid=bool(order.store_escrow_paid),
            courier_escrow_paid=bool(order.courier_escrow_paid),
            store_settled=bool(order.store_settled),
            courier_settled=bool(order.courier_settled),
            store_reviewed=bool(order.store_reviewed),
            courier_reviewed=bool(order.courier_reviewed),
            created_at=order.created_at.isoformat() if order.created_at else None,
        )


class WalletResponse(BaseModel):
    user_id: str
    balance: float
    escrow: float


class TransactionResponse(BaseModel):
    transaction_id: str
    direction: str
    amount: float
    balance_delta: float
    escrow_delta: float
    description: str | None = None
    order_id: str | None = None
    recorded_at: str | None = None


class ReviewResponse(BaseModel):
    review_id: str
    order_id: str
    reviewer_id: str
    reviewer_name: str | None = None
    rating: int
    comment: str | None = None
    submitted_at: str | None = None


class UserReviewsResponse(BaseModel):
    user_id: str
    average_rating: float | None = None
    reviews: list[ReviewResponse] = []


class TimelineEntryResponse(BaseModel):
    event_type: str
    description: str
    occurred_at: str | None = None


class CountResponse(BaseModel):
    count: int


class LedgerDriftItem(BaseModel):
    user_id: str
    stored_balance: float
    replayed_balance: float
    stored_escrow: float
    replayed_escrow: float


class LedgerAuditResponse(BaseModel):
    wallet_count: int
    drift_count: int
    drift_items: list[LedgerDriftItem] = []
    generated_at: str
