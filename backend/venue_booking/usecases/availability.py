from dataclasses import dataclass
from datetime import date, datetime
from typing import Mapping, Sequence

from ..domain.errors import (
    BookingEngineError,
    EventTypeNotFoundError,
    PackageNotFoundError,
    ShiftTemplateNotFoundError,
    VenueNotFoundError,
)
from ..domain.pricing import FareQuote, PricedMenu, calculate_fare, normalize_selections
from ..domain.repositories import (
    BookingRepository,
    EventTypeRepository,
    PackageRepository,
    ShiftTemplateRepository,
    VenueRepository,
)
from ..domain.services import (
    AvailabilityStatus,
    ShiftInstance,
    ShiftInstanceKey,
    SlotSnapshot,
    classify_instances,
    shift_bounds,
    validate_booking_request,
)
from ..models import BookingStatus
from . import shifts


async def query_availability(
    venue_repo: VenueRepository,
    shift_repo: ShiftTemplateRepository,
    booking_repo: BookingRepository,
    *,
    venue_id: int,
    start: date,
    end: date,
    max_days: int,
) -> dict[ShiftInstance, AvailabilityStatus]:
    """Point-in-time classification of every shift instance in the window."""
    instances = await shifts.list_instances(
        venue_repo, shift_repo, venue_id=venue_id, start=start, end=end, max_days=max_days
    )
    if not instances:
        return {}
    active = await booking_repo.list_active_for_venue(venue_id, start, end)
    return classify_instances(instances, active)


@dataclass(frozen=True)
class SlotCheck:
    key: ShiftInstanceKey
    available: bool
    status: AvailabilityStatus | None
    reason: str | None = None
    error: str | None = None


async def load_slot_snapshot(
    venue_repo: VenueRepository,
    shift_repo: ShiftTemplateRepository,
    booking_repo: BookingRepository,
    *,
    key: ShiftInstanceKey,
) -> tuple[SlotSnapshot, BookingStatus | None]:
    venue = await venue_repo.get(key.venue_id)
    if venue is None:
        raise VenueNotFoundError(f"venue {key.venue_id} not found")
    template = await shift_repo.get(key.shift_template_id)
    if template is None:
        raise ShiftTemplateNotFoundError(f"shift template {key.shift_template_id} not found")
    eligible = await shift_repo.is_eligible(venue.id, template.id)
    holder = await booking_repo.get_active_for_slot(key.slot_key)
    starts_at, _ = shift_bounds(key.shift_date, template.starts_at, template.ends_at)
    snapshot = SlotSnapshot(
        venue_active=venue.is_active,
        capacity=venue.capacity,
        eligible=eligible,
        slot_taken=holder is not None,
        shift_starts_at=starts_at,
    )
    return snapshot, (holder.status if holder is not None else None)


async def ensure_event_type(event_type_repo: EventTypeRepository, event_type_id: int | None) -> None:
    """An event type is optional on a booking; when given it must exist and be offered."""
    if event_type_id is None:
        return
    event_type = await event_type_repo.get(event_type_id)
    if event_type is None or not event_type.is_active:
        raise EventTypeNotFoundError(f"event type {event_type_id} not found")


async def check_availability(
    venue_repo: VenueRepository,
    shift_repo: ShiftTemplateRepository,
    booking_repo: BookingRepository,
    event_type_repo: EventTypeRepository,
    *,
    key: ShiftInstanceKey,
    guest_count: int,
    now: datetime,
    event_type_id: int | None = None,
) -> SlotCheck:
    """Would a booking for this slot be accepted right now? Unknown ids still raise."""
    await ensure_event_type(event_type_repo, event_type_id)
    snapshot, holder_status = await load_slot_snapshot(venue_repo, shift_repo, booking_repo, key=key)
    status = AvailabilityStatus.FREE
    if holder_status == BookingStatus.CONFIRMED:
        status = AvailabilityStatus.BOOKED
    elif holder_status == BookingStatus.PENDING:
        status = AvailabilityStatus.HELD
    try:
        validate_booking_request(snapshot, guest_count=guest_count, now=now)
    except BookingEngineError as exc:
        return SlotCheck(key=key, available=False, status=status, reason=str(exc), error=type(exc).__name__)
    return SlotCheck(key=key, available=True, status=status)


async def load_priced_menus(package_repo: PackageRepository, package_id: int) -> dict[int, PricedMenu]:
    return {menu.id: PricedMenu(menu=menu, items=items) for menu, items in await package_repo.list_menus(package_id)}


async def quote_fare(
    package_repo: PackageRepository,
    *,
    package_id: int,
    guest_count: int,
    menu_selections: Mapping[int, Sequence[int]] | None = None,
) -> FareQuote:
    package = await package_repo.get(package_id)
    if package is None:
        raise PackageNotFoundError(f"package {package_id} not found")
    menus = await load_priced_menus(package_repo, package_id)
    return calculate_fare(package, menus, normalize_selections(menu_selections), guest_count=guest_count)
