"""
Review ledger.

A review is written once per (shift, reviewer) and never edited. The
reviewer must be the shift's employer or its hired worker. The reviewee is
taken from the request as given and is not checked against the
counterparty.
"""

from typing import Any, Dict, List, Optional

from ..models.review import Review
from ..models.shift import Shift
from ..models.user import User
from ..utils.common import generate_id, utc_now_iso
from ..utils.exceptions import (
    AlreadyReviewed,
    Forbidden,
    InvalidRating,
    MissingFields,
    NotInvolved,
    ShiftNotFound,
)
from ..utils.logger import get_logger
from .record_store import REVIEWS, SHIFTS, RecordStore

logger = get_logger(__name__)


def _coerce_rating(rating: Any) -> int:
    if isinstance(rating, bool):
        raise InvalidRating("Rating must be an integer from 1 to 5")
    if isinstance(rating, float) and rating.is_integer():
        rating = int(rating)
    if not isinstance(rating, int) or not 1 <= rating <= 5:
        raise InvalidRating("Rating must be an integer from 1 to 5")
    return rating


def _is_party(shift: Shift, user: User) -> bool:
    if user.is_employer:
        return shift.employer_id == user.id
    if user.is_worker:
        return shift.hired_worker_id == user.id
    return False


class ReviewService:
    def __init__(self, store: RecordStore):
        self.store = store

    def submit(
        self,
        shift_id: Any,
        reviewer: Optional[User],
        reviewee_id: Any,
        rating: Any,
        comment: Any = None,
    ) -> Review:
        if reviewer is None:
            raise Forbidden("Login required to review")
        if not shift_id or not reviewee_id or not rating:
            raise MissingFields("shiftId, revieweeId and rating are required")
        rating = _coerce_rating(rating)

        shift_record = next((r for r in self.store.load(SHIFTS) if r.get("id") == shift_id), None)
        if shift_record is None:
            raise ShiftNotFound(f"Shift {shift_id} not found")
        if not _is_party(Shift.model_validate(shift_record), reviewer):
            raise NotInvolved("Reviewer is not a party to this shift")

        with self.store.mutate(REVIEWS) as records:
            if any(r.get("shiftId") == shift_id and r.get("reviewerId") == reviewer.id for r in records):
                raise AlreadyReviewed("Shift already reviewed by this user")
            review = Review(
                id=generate_id("rev"),
                shift_id=str(shift_id),
                reviewer_id=reviewer.id,
                reviewer_role=reviewer.role,
                reviewee_id=str(reviewee_id),
                rating=rating,
                comment=str(comment or "").strip(),
                created_at=utc_now_iso(),
            )
            records.append(review.to_record())

        logger.info(
            "Review submitted",
            review_id=review.id,
            shift_id=review.shift_id,
            reviewer_id=reviewer.id,
            reviewee_id=review.reviewee_id,
            rating=rating,
        )
        return review

    def for_shift(self, shift_id: str) -> List[Review]:
        return [Review.model_validate(r) for r in self.store.load(REVIEWS) if r.get("shiftId") == shift_id]

    def for_user(self, user_id: str) -> Dict[str, Any]:
        """Reviews received by user_id with their mean rating (0 when none)"""
        reviews = [Review.model_validate(r) for r in self.store.load(REVIEWS) if r.get("revieweeId") == user_id]
        average = sum(r.rating for r in reviews) / len(reviews) if reviews else 0
        return {"reviews": reviews, "averageRating": average, "count": len(reviews)}
