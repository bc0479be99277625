"""SubmitReview: a party reviews the other party of a completed order.

Enforces one review per (order, reviewer) both through the order's
``reviewed`` flags and with a repository check, then flips the reviewer's
flag on the order in the same unit of work.
"""

from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.errors import StateConflict
from delivery.order.order import Order
from delivery.review.review import Review
from delivery.utils.logging import get_logger

logger = get_logger(__name__)


@delivery.command(part_of="Review")
class SubmitReview:
    order_id = Identifier(required=True)
    reviewer_id = Identifier(required=True)
    reviewer_name = String(max_length=100)
    rating = Integer(required=True)
    comment = Text()


def reviews_for_user(user_id):
    """Reviews a user has received, newest first."""
    reviews = current_domain.repository_for(Review)._dao.query.filter(target_user_id=str(user_id)).all().items
    return sorted(reviews, key=lambda r: r.submitted_at, reverse=True)


def average_rating(user_id):
    reviews = reviews_for_user(user_id)
    if not reviews:
        return None
    return round(sum(r.rating for r in reviews) / len(reviews), 2)


@delivery.command_handler(part_of=Review)
class SubmitReviewHandler:
    @handle(SubmitReview)
    def submit_review(self, command):
        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(command.order_id)
        order.assert_can_review(command.reviewer_id)

        repo = current_domain.repository_for(Review)
        existing = repo._dao.query.filter(
            order_id=str(command.order_id),
            reviewer_id=str(command.reviewer_id),
        ).all()
        if existing.items:
            raise StateConflict({"review": ["This party has already reviewed the order"]})

        review = Review.submit(
            order_id=command.order_id,
            reviewer_id=command.reviewer_id,
            reviewer_name=command.reviewer_name,
            target_user_id=order.counterparty_of(command.reviewer_id),
            rating=command.rating,
            comment=command.comment,
        )
        role = order.mark_reviewed(command.reviewer_id)

        repo.add(review)
        order_repo.add(order)
        logger.info(
            "Review submitted",
            order_id=str(order.id),
            review_id=str(review.id),
            reviewer_role=role.value,
            rating=review.rating,
        )
        return str(review.id)
