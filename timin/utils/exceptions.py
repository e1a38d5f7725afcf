"""Custom exceptions for the Timin marketplace"""

from typing import Optional


class TiminError(Exception):
    """Base exception for Timin. `code` is what the client sees."""

    code = "server_error"
    status_code = 500

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.code)


class ValidationError(TiminError):
    """Missing or malformed input"""
    code = "validation_error"
    status_code = 400


class MissingFields(ValidationError):
    code = "missing_fields"


class InvalidRole(ValidationError):
    code = "invalid_role"


class InvalidBusinessNumber(ValidationError):
    code = "invalid_abn"


class InvalidTime(ValidationError):
    code = "invalid_time"


class InvalidRate(ValidationError):
    code = "invalid_rate"


class InvalidRating(ValidationError):
    code = "invalid_rating"


class NotApplied(ValidationError):
    """Hire target is not in the shift's applicant set"""
    code = "not_applied"


class NotCheckedIn(ValidationError):
    """Checkout without an open check-in"""
    code = "not_checked_in"


class AuthError(TiminError):
    """Session or permission problem"""
    code = "unauthorized"
    status_code = 401


class Unauthorized(AuthError):
    pass


class InvalidCredentials(AuthError):
    code = "invalid_credentials"


class Forbidden(AuthError):
    code = "forbidden"
    status_code = 403


class NotInvolved(Forbidden):
    """Reviewer is neither the shift's employer nor its hired worker"""
    code = "not_involved"


class NotFoundError(TiminError):
    code = "not_found"
    status_code = 404


class ShiftNotFound(NotFoundError):
    code = "shift_not_found"


class UserNotFound(NotFoundError):
    code = "user_not_found"


class ConflictError(TiminError):
    code = "conflict"
    status_code = 409


class DuplicateEmail(ConflictError):
    code = "email_exists"


class AlreadyReviewed(ConflictError):
    code = "already_reviewed"


class AlreadyHired(ConflictError):
    """A different worker is already hired for the shift"""
    code = "already_hired"


class AlreadyCheckedIn(ConflictError):
    code = "already_checked_in"
    status_code = 400


class ServerError(TiminError):
    """Unexpected failure; details stay in the logs"""
    pass


class StorageError(ServerError):
    """Record store read/write or lock failure"""
    pass


class ConfigError(ServerError):
    """Configuration error"""
    pass
