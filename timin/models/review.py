"""Review records; immutable once written"""

from pydantic import Field

from .base import RecordModel


class Review(RecordModel):
    id: str
    shift_id: str
    reviewer_id: str
    reviewer_role: str
    reviewee_id: str
    rating: int = Field(ge=1, le=5)
    comment: str = ""
    created_at: str
