"""
Exceptions raised by the fit-daily core and storage layers.

The HTTP layer maps these onto status codes; everything below
FitTrackError is safe to show to the user.
"""


class FitTrackError(Exception):
    """Base exception for fit-daily errors."""

    pass


class NotFoundError(FitTrackError):
    """Raised when a referenced entity does not exist."""

    pass


class UserNotFoundError(NotFoundError):
    """Raised when a user id does not match any user."""

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class CheckInNotFoundError(NotFoundError):
    """Raised when cancelling a check-in that was never made."""

    def __init__(self, user_id: int, check_date: str, check_type: str):
        self.user_id = user_id
        self.check_date = check_date
        self.check_type = check_type
        super().__init__(f"No {check_type} check-in on {check_date}")


class ConflictError(FitTrackError):
    """Raised when a write would violate a uniqueness rule."""

    pass


class DuplicateCheckInError(ConflictError):
    """Raised when the (user, date, type) check-in already exists."""

    def __init__(self, user_id: int, check_date: str, check_type: str):
        self.user_id = user_id
        self.check_date = check_date
        self.check_type = check_type
        super().__init__(f"Already checked in for {check_type} on {check_date}")


class DuplicateUserError(ConflictError):
    """Raised when a username is already taken."""

    pass


class ValidationError(FitTrackError):
    """Raised when input is well-formed but not acceptable."""

    pass


class InvalidCheckInTypeError(ValidationError):
    """Raised for a check-in type outside CHECKIN_TYPES."""

    pass


class InvalidDateError(ValidationError):
    """Raised for a date string that is not a real calendar date."""

    pass


class StorageError(FitTrackError):
    """Raised when the database read or write fails."""

    pass
