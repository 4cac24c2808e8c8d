"""Domain errors raised by the scheduling core and mapped to HTTP responses."""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse


class BookingError(Exception):
    """Base class for errors that carry their own HTTP status."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidServiceError(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidDateError(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(BookingError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(BookingError):
    status_code = status.HTTP_404_NOT_FOUND


class SlotConflictError(BookingError):
    status_code = status.HTTP_409_CONFLICT


class InvalidStatusTransitionError(BookingError):
    status_code = status.HTTP_409_CONFLICT


class LeadTimeViolationError(BookingError):
    status_code = 422


async def booking_error_handler(_request: Request, exc: BookingError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={'detail': exc.message})


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail='Database unavailable. Verify DATABASE_URL and database credentials.',
    )
