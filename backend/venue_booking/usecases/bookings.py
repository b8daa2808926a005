from datetime import datetime
from typing import Mapping, Sequence

from ..domain.errors import (
    BookingNotFoundError,
    InvalidTransitionError,
    PackageNotFoundError,
    ShiftTemplateNotFoundError,
)
from ..domain.pricing import calculate_fare, normalize_selections, selections_to_json
from ..domain.repositories import (
    BookingRepository,
    EventTypeRepository,
    PackageRepository,
    ShiftTemplateRepository,
    VenueRepository,
)
from ..domain.services import (
    EXPIRED_REASON,
    Principal,
    ShiftInstanceKey,
    ensure_admin,
    ensure_owner_or_admin,
    ensure_shift_finished,
    ensure_transition,
    shift_bounds,
    validate_booking_request,
)
from ..models import Booking, BookingStatus
from .availability import ensure_event_type, load_priced_menus, load_slot_snapshot


async def create_booking(
    venue_repo: VenueRepository,
    shift_repo: ShiftTemplateRepository,
    package_repo: PackageRepository,
    booking_repo: BookingRepository,
    event_type_repo: EventTypeRepository,
    *,
    key: ShiftInstanceKey,
    customer_id: int,
    package_id: int,
    guest_count: int,
    menu_selections: Mapping[int, Sequence[int]] | None,
    now: datetime,
    event_type_id: int | None = None,
) -> Booking:
    """
    Validate the request against the slot and insert a PENDING booking.
    Callers must serialize calls per `key.slot_key`; the repository insert is
    the storage-level backstop and raises SlotUnavailableError on conflict.
    """
    snapshot, _ = await load_slot_snapshot(venue_repo, shift_repo, booking_repo, key=key)
    validate_booking_request(snapshot, guest_count=guest_count, now=now)
    await ensure_event_type(event_type_repo, event_type_id)

    package = await package_repo.get(package_id)
    if package is None or not package.is_active:
        raise PackageNotFoundError(f"package {package_id} not found")
    selections = normalize_selections(menu_selections)
    menus = await load_priced_menus(package_repo, package_id)
    fare = calculate_fare(package, menus, selections, guest_count=guest_count)

    return await booking_repo.create(
        venue_id=key.venue_id,
        shift_template_id=key.shift_template_id,
        shift_date=key.shift_date,
        slot_key=key.slot_key,
        customer_id=customer_id,
        package_id=package.id,
        event_type_id=event_type_id,
        menu_selections=selections_to_json(selections),
        guest_count=guest_count,
        base_fare=fare.base_fare,
        extra_charges=fare.extra_charges,
        total_fare=fare.total_fare,
        now=now,
    )


async def _load_for_update(booking_repo: BookingRepository, booking_id: int) -> Booking:
    booking = await booking_repo.get_for_update(booking_id)
    if booking is None:
        raise BookingNotFoundError(f"booking {booking_id} not found")
    return booking


async def get_booking(booking_repo: BookingRepository, *, principal: Principal, booking_id: int) -> Booking:
    booking = await booking_repo.get(booking_id)
    if booking is None:
        raise BookingNotFoundError(f"booking {booking_id} not found")
    ensure_owner_or_admin(principal, booking.customer_id)
    return booking


async def list_bookings(
    booking_repo: BookingRepository,
    *,
    principal: Principal,
    customer_id: int | None = None,
    venue_id: int | None = None,
    status: BookingStatus | None = None,
) -> list[Booking]:
    if customer_id is None or customer_id != principal.user_id:
        ensure_admin(principal)
    return await booking_repo.search(customer_id=customer_id, venue_id=venue_id, status=status)


async def confirm_booking(
    booking_repo: BookingRepository,
    *,
    principal: Principal,
    booking_id: int,
    now: datetime,
) -> tuple[Booking, BookingStatus]:
    booking = await _load_for_update(booking_repo, booking_id)
    ensure_owner_or_admin(principal, booking.customer_id)
    previous = booking.status
    ensure_transition(previous, BookingStatus.CONFIRMED)
    booking.status = BookingStatus.CONFIRMED
    booking.confirmed_at = now
    booking.updated_at = now
    return await booking_repo.save(booking), previous


async def cancel_booking(
    booking_repo: BookingRepository,
    *,
    principal: Principal,
    booking_id: int,
    reason: str | None,
    now: datetime,
) -> tuple[Booking, BookingStatus]:
    booking = await _load_for_update(booking_repo, booking_id)
    ensure_owner_or_admin(principal, booking.customer_id)
    return await _cancel(booking_repo, booking, reason=reason, now=now)


async def expire_booking(booking_repo: BookingRepository, *, booking_id: int, now: datetime) -> Booking:
    """Release a lapsed hold. Raises InvalidTransitionError if the booking left PENDING meanwhile."""
    booking = await _load_for_update(booking_repo, booking_id)
    if booking.status != BookingStatus.PENDING:
        raise InvalidTransitionError(f"booking {booking_id} is {booking.status.value}, not pending")
    updated, _ = await _cancel(booking_repo, booking, reason=EXPIRED_REASON, now=now)
    return updated


async def _cancel(
    booking_repo: BookingRepository,
    booking: Booking,
    *,
    reason: str | None,
    now: datetime,
) -> tuple[Booking, BookingStatus]:
    previous = booking.status
    ensure_transition(previous, BookingStatus.CANCELLED)
    booking.status = BookingStatus.CANCELLED
    booking.active_slot_key = None
    booking.cancel_reason = reason
    booking.cancelled_at = now
    booking.updated_at = now
    return await booking_repo.save(booking), previous


async def complete_booking(
    booking_repo: BookingRepository,
    shift_repo: ShiftTemplateRepository,
    *,
    principal: Principal | None,
    booking_id: int,
    now: datetime,
) -> tuple[Booking, BookingStatus]:
    """CONFIRMED -> COMPLETED once the shift date has passed and the instance has ended.

    A completed booking is returned unchanged. `principal=None` is the system sweep.
    """
    if principal is not None:
        ensure_admin(principal)
    booking = await _load_for_update(booking_repo, booking_id)
    previous = booking.status
    if previous == BookingStatus.COMPLETED:
        return booking, previous
    ensure_transition(previous, BookingStatus.COMPLETED)
    template = await shift_repo.get(booking.shift_template_id)
    if template is None:
        raise ShiftTemplateNotFoundError(f"shift template {booking.shift_template_id} not found")
    _, ends_at = shift_bounds(booking.shift_date, template.starts_at, template.ends_at)
    ensure_shift_finished(booking.shift_date, ends_at, now=now)
    booking.status = BookingStatus.COMPLETED
    booking.active_slot_key = None
    booking.completed_at = now
    booking.updated_at = now
    return await booking_repo.save(booking), previous
