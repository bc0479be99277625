"""Review aggregate (CQRS): one party's rating of the other after delivery.

Each completed order can carry at most two reviews: one written by the store
about the courier, one by the courier about the store. Reviews are
write-once; there is no editing or moderation.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text

from delivery.domain import delivery
from delivery.review.events import ReviewSubmitted

MIN_RATING = 1
MAX_RATING = 5


@delivery.aggregate
class Review:
    order_id = Identifier(required=True)
    reviewer_id = Identifier(required=True)
    reviewer_name = String(max_length=100)
    target_user_id = Identifier(required=True)
    rating = Integer(required=True)
    comment = Text()
    submitted_at = DateTime()

    @invariant.post
    def rating_must_be_in_range(self):
        if self.rating is not None and not (MIN_RATING <= self.rating <= MAX_RATING):
            raise ValidationError({"rating": [f"Rating must be between {MIN_RATING} and {MAX_RATING}"]})

    @invariant.post
    def cannot_review_yourself(self):
        if self.reviewer_id and str(self.reviewer_id) == str(self.target_user_id):
            raise ValidationError({"target_user_id": ["A user cannot review themselves"]})

    @classmethod
    def submit(cls, order_id, reviewer_id, target_user_id, rating, comment=None, reviewer_name=None):
        now = datetime.now(UTC)
        review = cls(
            order_id=str(order_id),
            reviewer_id=str(reviewer_id),
            reviewer_name=reviewer_name,
            target_user_id=str(target_user_id),
            rating=rating,
            comment=comment,
            submitted_at=now,
        )
        review.raise_(
            ReviewSubmitted(
                review_id=str(review.id),
                order_id=str(order_id),
                reviewer_id=str(reviewer_id),
                reviewer_name=reviewer_name,
                target_user_id=str(target_user_id),
                rating=rating,
                comment=comment,
                submitted_at=now,
            )
        )
        return review
