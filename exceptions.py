"""Fit-Track exceptions."""


class FitTrackError(Exception):
    """Base exception for Fit-Track errors."""
    pass


class StoreUnavailable(FitTrackError):
    """Raised when the record store cannot be reached or a query fails."""
    pass


class MalformedRecord(FitTrackError):
    """Raised for a stored routine with an unparsable date or bad duration."""

    def __init__(self, message: str, record_id: int | None = None):
        super().__init__(message)
        self.record_id = record_id


class InvalidCategoryName(FitTrackError, ValueError):
    """Raised when a workout category name is empty or already taken."""
    pass
