from fastapi import HTTPException, status

from slot_booking.domain.exceptions import (
    InvalidStateTransitionError,
    OrderAlreadyCancelledError,
    OrderNotFoundError,
    OrderOwnershipError,
    OtpCooldownError,
    OtpError,
    SlotBookingError,
    SlotUnavailableError,
    ValidationError,
)

_STATUS_BY_ERROR: list[tuple[type[SlotBookingError], int]] = [
    (OrderNotFoundError, status.HTTP_404_NOT_FOUND),
    (OrderOwnershipError, status.HTTP_403_FORBIDDEN),
    (SlotUnavailableError, status.HTTP_400_BAD_REQUEST),
    (OrderAlreadyCancelledError, status.HTTP_400_BAD_REQUEST),
    (InvalidStateTransitionError, status.HTTP_409_CONFLICT),
    (OtpCooldownError, status.HTTP_429_TOO_MANY_REQUESTS),
    (OtpError, status.HTTP_400_BAD_REQUEST),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
]


def to_http_exception(exc: SlotBookingError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal Server Error",
    )
