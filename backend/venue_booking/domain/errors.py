class BookingEngineError(Exception):
    """Base class for errors raised by the booking engine."""


class NotFoundError(BookingEngineError):
    pass


class VenueNotFoundError(NotFoundError):
    pass


class BookingNotFoundError(NotFoundError):
    pass


class PackageNotFoundError(NotFoundError):
    pass


class ShiftTemplateNotFoundError(NotFoundError):
    pass


class MenuNotFoundError(NotFoundError):
    pass


class EventTypeNotFoundError(NotFoundError):
    pass


class VenueInactiveError(BookingEngineError):
    pass


class VenueInUseError(BookingEngineError):
    """A breaking venue change was requested while a confirmed booking references it."""


class ShiftNotEligibleError(BookingEngineError):
    pass


class InvalidRangeError(BookingEngineError):
    pass


class InvalidGuestCountError(BookingEngineError):
    pass


class InvalidMenuSelectionError(BookingEngineError):
    pass


class SlotUnavailableError(BookingEngineError):
    """The shift instance is held by another active booking (or can no longer be booked)."""


class InvalidTransitionError(BookingEngineError):
    """Illegal booking status change.

    Expected when the expiry sweep and a confirmation race for the same
    booking: whichever commits first wins and the other sees this error.
    """


class PermissionDeniedError(BookingEngineError):
    pass
