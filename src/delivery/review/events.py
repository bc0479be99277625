"""Domain events for the Review aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from delivery.domain import delivery


@delivery.event(part_of="Review")
class ReviewSubmitted:
    """A party to a completed order reviewed the other party."""

    __version__ = 1

    review_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reviewer_id = Identifier(required=True)
    reviewer_name = String()
    target_user_id = Identifier(required=True)
    rating = Integer(required=True)
    comment = Text()
    submitted_at = DateTime(required=True)
