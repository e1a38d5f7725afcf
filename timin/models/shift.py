"""Shift records and their check-in history"""

from typing import List, Optional

from pydantic import Field

from .base import RecordModel


class Location(RecordModel):
    state: str = "NSW"
    postcode: str = ""
    suburb: str = ""


class Checkin(RecordModel):
    user_id: str
    checkin_at: str
    checkout_at: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return not self.checkout_at


class Shift(RecordModel):
    id: str
    employer_id: str
    title: str
    description: str = ""
    hourly_rate_cents: int = Field(ge=1)
    category: str = "general"
    required_skills: List[str] = Field(default_factory=list)
    dresscode: str = ""
    requirements: str = ""
    location: Location = Field(default_factory=Location)
    start: str
    end: str
    applicants: List[str] = Field(default_factory=list)
    hired_worker_id: Optional[str] = None
    checkins: List[Checkin] = Field(default_factory=list)

    def open_checkin(self, user_id: str) -> Optional[Checkin]:
        """Most recent check-in for user_id that has no checkout yet"""
        for record in reversed(self.checkins):
            if record.user_id == user_id and record.is_open:
                return record
        return None
