from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import StrEnum
from typing import Iterable, Protocol

from ..models import BookingStatus
from .errors import (
    InvalidGuestCountError,
    InvalidRangeError,
    InvalidTransitionError,
    PermissionDeniedError,
    ShiftNotEligibleError,
    SlotUnavailableError,
    VenueInactiveError,
)

EXPIRED_REASON = "EXPIRED"


class AvailabilityStatus(StrEnum):
    FREE = "free"
    HELD = "held"
    BOOKED = "booked"


class Role(StrEnum):
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as supplied by the identity provider."""

    user_id: int
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class ShiftLike(Protocol):
    id: int
    label: str
    starts_at: time
    ends_at: time


class ActiveBookingLike(Protocol):
    shift_date: date
    shift_template_id: int
    status: BookingStatus


@dataclass(frozen=True, order=True)
class ShiftInstanceKey:
    venue_id: int
    shift_date: date
    shift_template_id: int

    @property
    def slot_key(self) -> str:
        return f"{self.venue_id}:{self.shift_date.isoformat()}:{self.shift_template_id}"


@dataclass(frozen=True)
class ShiftInstance:
    venue_id: int
    shift_date: date
    shift_template_id: int
    label: str
    starts_at: datetime
    ends_at: datetime

    @property
    def key(self) -> ShiftInstanceKey:
        return ShiftInstanceKey(self.venue_id, self.shift_date, self.shift_template_id)


def shift_bounds(shift_date: date, starts_at: time, ends_at: time) -> tuple[datetime, datetime]:
    """Concrete start/end of a shift on a date. A shift ending at or before its start runs overnight."""
    start = datetime.combine(shift_date, starts_at)
    end = datetime.combine(shift_date, ends_at)
    if end <= start:
        end += timedelta(days=1)
    return start, end


def validate_date_range(start: date, end: date, *, max_days: int) -> int:
    """Returns the number of calendar days in the inclusive range."""
    if end < start:
        raise InvalidRangeError("end must not be earlier than start")
    days = (end - start).days + 1
    if days > max_days:
        raise InvalidRangeError(f"range must not exceed {max_days} days")
    return days


def expand_shift_instances(
    venue_id: int,
    templates: Iterable[ShiftLike],
    start: date,
    end: date,
    *,
    max_days: int,
) -> list[ShiftInstance]:
    days = validate_date_range(start, end, max_days=max_days)
    ordered = sorted(templates, key=lambda t: (t.starts_at, t.id))
    instances: list[ShiftInstance] = []
    for offset in range(days):
        shift_date = start + timedelta(days=offset)
        for template in ordered:
            starts_at, ends_at = shift_bounds(shift_date, template.starts_at, template.ends_at)
            instances.append(
                ShiftInstance(
                    venue_id=venue_id,
                    shift_date=shift_date,
                    shift_template_id=template.id,
                    label=template.label,
                    starts_at=starts_at,
                    ends_at=ends_at,
                )
            )
    return instances


def classify_instances(
    instances: Iterable[ShiftInstance],
    active_bookings: Iterable[ActiveBookingLike],
) -> dict[ShiftInstance, AvailabilityStatus]:
    taken: dict[tuple[date, int], AvailabilityStatus] = {}
    for booking in active_bookings:
        slot = (booking.shift_date, booking.shift_template_id)
        if booking.status == BookingStatus.CONFIRMED:
            taken[slot] = AvailabilityStatus.BOOKED
        elif booking.status == BookingStatus.PENDING:
            taken.setdefault(slot, AvailabilityStatus.HELD)
    return {
        instance: taken.get((instance.shift_date, instance.shift_template_id), AvailabilityStatus.FREE)
        for instance in instances
    }


@dataclass(frozen=True)
class SlotSnapshot:
    venue_active: bool
    capacity: int
    eligible: bool
    slot_taken: bool
    shift_starts_at: datetime


def validate_booking_request(snapshot: SlotSnapshot, *, guest_count: int, now: datetime) -> int:
    """
    Pure validation of a booking request against the slot it targets.
    Returns the venue capacity left unused by the party. Raises domain errors otherwise.
    """
    if not snapshot.venue_active:
        raise VenueInactiveError("venue is not active")
    if not snapshot.eligible:
        raise ShiftNotEligibleError("shift template is not offered at this venue")
    if guest_count <= 0:
        raise InvalidGuestCountError("guest_count must be positive")
    if guest_count > snapshot.capacity:
        raise InvalidGuestCountError("guest_count exceeds venue capacity")
    if snapshot.shift_starts_at <= now:
        raise SlotUnavailableError("shift instance has already started")
    if snapshot.slot_taken:
        raise SlotUnavailableError("shift instance is already booked")
    return snapshot.capacity - guest_count


ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}


def ensure_transition(current: BookingStatus, target: BookingStatus) -> None:
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(f"cannot move booking from {current.value} to {target.value}")


def ensure_shift_finished(shift_date: date, shift_ends_at: datetime, *, now: datetime) -> None:
    """The shift date must be over and, for overnight shifts, the instance must have ended too."""
    if now.date() <= shift_date:
        raise InvalidTransitionError("shift date has not passed yet")
    if now < shift_ends_at:
        raise InvalidTransitionError("shift instance has not ended yet")


def ensure_admin(principal: Principal) -> None:
    if not principal.is_admin:
        raise PermissionDeniedError("admin role required")


def ensure_owner_or_admin(principal: Principal, customer_id: int) -> None:
    if not principal.is_admin and principal.user_id != customer_id:
        raise PermissionDeniedError("booking belongs to another customer")


def resolve_customer_id(principal: Principal, customer_id: int | None) -> int:
    """Customers book for themselves; admins may book on behalf of a customer."""
    if customer_id is None or customer_id == principal.user_id:
        return principal.user_id
    ensure_admin(principal)
    return customer_id
