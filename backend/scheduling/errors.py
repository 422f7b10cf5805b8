from fastapi import status


class BookingError(Exception):
    """Base class for failures surfaced to booking callers."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidSlot(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST


class SlotConflict(BookingError):
    status_code = status.HTTP_409_CONFLICT


class PersistenceFailure(BookingError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
