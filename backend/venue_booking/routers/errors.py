from fastapi import HTTPException, status

from ..domain.errors import (
    BookingEngineError,
    InvalidGuestCountError,
    InvalidMenuSelectionError,
    InvalidRangeError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ShiftNotEligibleError,
    SlotUnavailableError,
    VenueInactiveError,
    VenueInUseError,
)

_STATUS_BY_ERROR: tuple[tuple[type[BookingEngineError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (InvalidRangeError, status.HTTP_400_BAD_REQUEST),
    (InvalidGuestCountError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidMenuSelectionError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (SlotUnavailableError, status.HTTP_409_CONFLICT),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (VenueInactiveError, status.HTTP_409_CONFLICT),
    (VenueInUseError, status.HTTP_409_CONFLICT),
    (ShiftNotEligibleError, status.HTTP_409_CONFLICT),
)


def to_http_exception(exc: BookingEngineError) -> HTTPException:
    """Typed domain failure -> HTTP error carrying the error name for client-side handling."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            break
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=status_code, detail={"error": type(exc).__name__, "message": str(exc)})


def audit_failure() -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="failed to record audit log")
