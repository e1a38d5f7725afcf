"""User data models for authentication and profiles"""

from typing import Any, Dict, List, Literal, Optional

from .base import RecordModel

WORKER = "worker"
EMPLOYER = "employer"
ROLES = (WORKER, EMPLOYER)

Role = Literal["worker", "employer"]


class Profile(RecordModel):
    """Role-shaped optional bag; unset fields are omitted when stored"""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    bio: Optional[str] = None
    # employer
    company_name: Optional[str] = None
    business_type: Optional[str] = None
    # worker
    english_level: Optional[str] = None
    skills: Optional[List[str]] = None

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class User(RecordModel):
    """Persisted user record"""
    id: str
    email: str
    role: Role
    password_hash: str
    abn: Optional[str] = None
    profile: Optional[Profile] = None

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def public(self) -> Dict[str, Any]:
        return {"id": self.id, "email": self.email, "role": self.role}

    def profile_record(self) -> Dict[str, Any]:
        return self.profile.to_record() if self.profile else {}

    @property
    def is_worker(self) -> bool:
        return self.role == WORKER

    @property
    def is_employer(self) -> bool:
        return self.role == EMPLOYER
