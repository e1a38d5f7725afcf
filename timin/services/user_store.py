"""
Credential store: registration, login and profile updates over the users
collection.
"""

from typing import Any, Dict, List, Mapping, Optional

from ..auth.user_auth import abn_is_valid, hash_password, verify_password
from ..models.user import EMPLOYER, ROLES, WORKER, Profile, User
from ..utils.common import generate_id
from ..utils.exceptions import (
    DuplicateEmail,
    InvalidBusinessNumber,
    InvalidCredentials,
    InvalidRole,
    MissingFields,
    UserNotFound,
)
from ..utils.logger import get_logger
from .record_store import USERS, RecordStore

logger = get_logger(__name__)

# Profile fields a caller may set, per role. Anything else in the request
# is dropped without error.
COMMON_PROFILE_FIELDS = ("firstName", "lastName", "phoneNumber", "bio")
PROFILE_FIELDS = {
    WORKER: COMMON_PROFILE_FIELDS + ("englishLevel", "skills"),
    EMPLOYER: COMMON_PROFILE_FIELDS + ("companyName", "businessType"),
}
LIST_PROFILE_FIELDS = {"skills"}


def _clean_profile_value(field: str, value: Any) -> Optional[Any]:
    if field in LIST_PROFILE_FIELDS:
        if not isinstance(value, list):
            return None
        return [s for s in (str(item).strip() for item in value) if s]
    return str(value).strip()


class UserStore:
    """Users collection access"""

    def __init__(self, store: RecordStore):
        self.store = store

    def load_users(self) -> List[User]:
        return [User.model_validate(item) for item in self.store.load(USERS)]

    def find_by_id(self, user_id: str) -> Optional[User]:
        for item in self.store.load(USERS):
            if item.get("id") == user_id:
                return User.model_validate(item)
        return None

    def find_by_email(self, email: str) -> Optional[User]:
        """Exact, case-sensitive match"""
        for item in self.store.load(USERS):
            if item.get("email") == email:
                return User.model_validate(item)
        return None

    def register(self, email: Any, password: Any, role: Any, abn: Any = None) -> User:
        if not email or not password or not role:
            raise MissingFields("email, password and role are required")
        if role not in ROLES:
            raise InvalidRole(f"Unknown role {role!r}")
        if role == EMPLOYER and (not abn or not abn_is_valid(abn)):
            raise InvalidBusinessNumber("Employer ABN failed validation")

        email = str(email)
        with self.store.mutate(USERS) as records:
            if any(r.get("email") == email for r in records):
                raise DuplicateEmail(f"Email {email} is already registered")
            user = User(
                id=generate_id("usr"),
                email=email,
                role=role,
                password_hash=hash_password(str(password)),
                abn=str(abn) if role == EMPLOYER else None,
            )
            records.append(user.to_record())

        logger.info("User registered", user_id=user.id, role=user.role)
        return user

    def authenticate(self, email: Any, password: Any) -> User:
        if not email or not password:
            raise MissingFields("email and password are required")
        user = self.find_by_email(str(email))
        if not user or not verify_password(str(password), user.password_hash):
            logger.info("Login rejected", reason="invalid_credentials")
            raise InvalidCredentials("Invalid email or password")
        return user

    def update_profile(self, user_id: str, role: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Merge the allow-listed fields for ``role`` into the stored profile.

        Returns the profile as stored (camelCase keys).
        """
        allowed = PROFILE_FIELDS.get(role, ())
        with self.store.mutate(USERS) as records:
            idx = next((i for i, r in enumerate(records) if r.get("id") == user_id), None)
            if idx is None:
                raise UserNotFound(f"User {user_id} not found")
            profile = dict(records[idx].get("profile") or {})
            for field in allowed:
                if fields.get(field) is None:
                    continue
                value = _clean_profile_value(field, fields[field])
                if value is not None:
                    profile[field] = value
            stored = Profile.model_validate(profile).to_record()
            records[idx]["profile"] = stored

        logger.info("Profile updated", user_id=user_id, fields=sorted(k for k in fields if k in allowed))
        return stored
