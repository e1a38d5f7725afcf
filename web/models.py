"""API request models.

Fields are deliberately loose (Any, all optional) so that missing or
ill-typed input reaches the services and comes back as the specific error
code instead of a generic validation failure.
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    email: Any = None
    password: Any = None
    role: Any = None
    abn: Any = None


class LoginRequest(BaseModel):
    email: Any = None
    password: Any = None


class CreateShiftRequest(BaseModel):
    """Shift spec as posted by an employer"""
    model_config = ConfigDict(populate_by_name=True)

    title: Any = None
    description: Any = None
    hourly_rate_aud: Any = Field(default=None, alias="hourlyRateAUD")
    location: Any = None
    start: Any = None
    end: Any = None
    category: Any = None
    required_skills: Any = Field(default=None, alias="requiredSkills")
    dresscode: Any = None
    requirements: Any = None

    def to_spec(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class HireRequest(BaseModel):
    worker_id: Any = Field(default=None, alias="workerId")


class ReviewRequest(BaseModel):
    shift_id: Any = Field(default=None, alias="shiftId")
    reviewee_id: Any = Field(default=None, alias="revieweeId")
    rating: Any = None
    comment: Any = None
