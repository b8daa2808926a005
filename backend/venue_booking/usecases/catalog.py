from datetime import time
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence

from ..domain.errors import (
    EventTypeNotFoundError,
    InvalidRangeError,
    MenuNotFoundError,
    PackageNotFoundError,
    ShiftTemplateNotFoundError,
    VenueInUseError,
    VenueNotFoundError,
)
from ..domain.repositories import (
    BookingRepository,
    EventTypeRepository,
    PackageRepository,
    ShiftTemplateRepository,
    VenueRepository,
)
from ..domain.services import Principal, ensure_admin
from ..models import EventType, Menu, MenuItem, Package, ShiftTemplate, Venue

VENUE_METADATA_FIELDS = frozenset({"name", "description"})
PACKAGE_FIELDS = frozenset({"name", "description", "base_price", "per_person_price", "is_active"})
EVENT_TYPE_FIELDS = frozenset({"name", "description", "is_active"})


async def list_venues(
    venue_repo: VenueRepository,
    *,
    include_inactive: bool = False,
    min_capacity: int | None = None,
) -> list[Venue]:
    """`min_capacity` narrows the list to venues that can seat a party of that size."""
    return await venue_repo.list_all(include_inactive=include_inactive, min_capacity=min_capacity)


async def get_venue(venue_repo: VenueRepository, *, venue_id: int) -> Venue:
    venue = await venue_repo.get(venue_id)
    if venue is None:
        raise VenueNotFoundError(f"venue {venue_id} not found")
    return venue


async def create_venue(
    venue_repo: VenueRepository,
    *,
    principal: Principal,
    name: str,
    description: str | None,
    location: str | None,
    capacity: int,
    is_active: bool = True,
) -> Venue:
    ensure_admin(principal)
    if capacity < 1:
        raise ValueError("capacity must be >= 1")
    return await venue_repo.create(
        name=name,
        description=description,
        location=location,
        capacity=capacity,
        is_active=is_active,
    )


async def update_venue(
    venue_repo: VenueRepository,
    booking_repo: BookingRepository,
    *,
    principal: Principal,
    venue_id: int,
    changes: Mapping[str, Any],
) -> Venue:
    """
    Apply a partial update. Name and description may always change; moving
    the venue, shrinking capacity or deactivating is refused while a
    confirmed booking references it.
    """
    ensure_admin(principal)
    venue = await get_venue(venue_repo, venue_id=venue_id)

    capacity = changes.get("capacity")
    if capacity is not None and capacity < 1:
        raise ValueError("capacity must be >= 1")
    breaking = (
        (capacity is not None and capacity < venue.capacity)
        or (changes.get("is_active") is False and venue.is_active)
        or ("location" in changes and changes["location"] != venue.location)
    )
    if breaking and await booking_repo.has_confirmed_for_venue(venue.id):
        raise VenueInUseError("venue has confirmed bookings; only name and description can change")

    for field in VENUE_METADATA_FIELDS:
        if field in changes:
            setattr(venue, field, changes[field])
    if "location" in changes:
        venue.location = changes["location"]
    if capacity is not None:
        venue.capacity = capacity
    if changes.get("is_active") is not None:
        venue.is_active = bool(changes["is_active"])
    return await venue_repo.save(venue)


async def list_shift_templates(shift_repo: ShiftTemplateRepository) -> list[tuple[ShiftTemplate, list[int]]]:
    templates = await shift_repo.list_all()
    return [(template, await shift_repo.venue_ids_for(template.id)) for template in templates]


async def _ensure_venues_exist(venue_repo: VenueRepository, venue_ids: Iterable[int]) -> list[int]:
    unique_ids = sorted(set(venue_ids))
    for venue_id in unique_ids:
        if await venue_repo.get(venue_id) is None:
            raise VenueNotFoundError(f"venue {venue_id} not found")
    return unique_ids


async def create_shift_template(
    shift_repo: ShiftTemplateRepository,
    venue_repo: VenueRepository,
    *,
    principal: Principal,
    label: str,
    description: str | None,
    starts_at: time,
    ends_at: time,
    venue_ids: Sequence[int],
) -> tuple[ShiftTemplate, list[int]]:
    ensure_admin(principal)
    if starts_at == ends_at:
        raise InvalidRangeError("shift must not start and end at the same time")
    eligible = await _ensure_venues_exist(venue_repo, venue_ids)
    template = await shift_repo.create(label=label, description=description, starts_at=starts_at, ends_at=ends_at)
    await shift_repo.set_venues(template.id, eligible)
    return template, eligible


async def update_shift_template(
    shift_repo: ShiftTemplateRepository,
    venue_repo: VenueRepository,
    *,
    principal: Principal,
    shift_template_id: int,
    label: str | None = None,
    description: str | None = None,
    venue_ids: Sequence[int] | None = None,
) -> tuple[ShiftTemplate, list[int]]:
    """Times are fixed once created; eligibility changes never touch existing bookings."""
    ensure_admin(principal)
    template = await shift_repo.get(shift_template_id)
    if template is None:
        raise ShiftTemplateNotFoundError(f"shift template {shift_template_id} not found")
    if label is not None:
        template.label = label
    if description is not None:
        template.description = description
    template = await shift_repo.save(template)
    if venue_ids is not None:
        await shift_repo.set_venues(template.id, await _ensure_venues_exist(venue_repo, venue_ids))
    return template, await shift_repo.venue_ids_for(template.id)


async def list_packages(package_repo: PackageRepository, *, include_inactive: bool = False) -> list[Package]:
    return await package_repo.list_all(include_inactive=include_inactive)


async def create_package(
    package_repo: PackageRepository,
    *,
    principal: Principal,
    name: str,
    description: str | None,
    base_price: Decimal,
    per_person_price: Decimal | None = None,
    is_active: bool = True,
) -> Package:
    ensure_admin(principal)
    if base_price < 0 or (per_person_price is not None and per_person_price < 0):
        raise ValueError("prices must not be negative")
    return await package_repo.create(
        name=name,
        description=description,
        base_price=base_price,
        per_person_price=per_person_price,
        is_active=is_active,
    )


async def list_menus(package_repo: PackageRepository, *, package_id: int) -> list[tuple[Menu, list[MenuItem]]]:
    await get_package(package_repo, package_id=package_id)
    return await package_repo.list_menus(package_id)


async def create_menu(
    package_repo: PackageRepository,
    *,
    principal: Principal,
    package_id: int,
    name: str,
    free_limit: int,
    items: Sequence[tuple[str, Decimal, bool]],
) -> tuple[Menu, list[MenuItem]]:
    ensure_admin(principal)
    await get_package(package_repo, package_id=package_id)
    if free_limit < 0:
        raise ValueError("free_limit must not be negative")
    return await package_repo.create_menu(package_id=package_id, name=name, free_limit=free_limit, items=items)


async def get_package(package_repo: PackageRepository, *, package_id: int) -> Package:
    package = await package_repo.get(package_id)
    if package is None:
        raise PackageNotFoundError(f"package {package_id} not found")
    return package


async def update_package(
    package_repo: PackageRepository,
    *,
    principal: Principal,
    package_id: int,
    changes: Mapping[str, Any],
) -> Package:
    """
    Partial update; `is_active=False` withdraws the package from new bookings.
    Existing bookings keep the fare computed when they were created.
    """
    ensure_admin(principal)
    package = await get_package(package_repo, package_id=package_id)
    for field in ("base_price", "per_person_price"):
        value = changes.get(field)
        if value is not None and value < 0:
            raise ValueError("prices must not be negative")
    if "base_price" in changes and changes["base_price"] is None:
        raise ValueError("base_price must not be empty")
    for field in PACKAGE_FIELDS:
        if field in changes:
            setattr(package, field, changes[field])
    return await package_repo.save(package)


async def update_menu(
    package_repo: PackageRepository,
    *,
    principal: Principal,
    menu_id: int,
    name: str | None = None,
    free_limit: int | None = None,
    items: Sequence[tuple[str, Decimal, bool]] | None = None,
) -> tuple[Menu, list[MenuItem]]:
    """`items`, when given, replaces the whole item list of the menu."""
    ensure_admin(principal)
    found = await package_repo.get_menu(menu_id)
    if found is None:
        raise MenuNotFoundError(f"menu {menu_id} not found")
    menu, _ = found
    if free_limit is not None and free_limit < 0:
        raise ValueError("free_limit must not be negative")
    if name is not None:
        menu.name = name
    if free_limit is not None:
        menu.free_limit = free_limit
    return await package_repo.save_menu(menu, items=items)


async def list_event_types(
    event_type_repo: EventTypeRepository, *, include_inactive: bool = False
) -> list[EventType]:
    return await event_type_repo.list_all(include_inactive=include_inactive)


async def create_event_type(
    event_type_repo: EventTypeRepository,
    *,
    principal: Principal,
    name: str,
    description: str | None,
    is_active: bool = True,
) -> EventType:
    ensure_admin(principal)
    return await event_type_repo.create(name=name, description=description, is_active=is_active)


async def update_event_type(
    event_type_repo: EventTypeRepository,
    *,
    principal: Principal,
    event_type_id: int,
    changes: Mapping[str, Any],
) -> EventType:
    ensure_admin(principal)
    event_type = await event_type_repo.get(event_type_id)
    if event_type is None:
        raise EventTypeNotFoundError(f"event type {event_type_id} not found")
    for field in EVENT_TYPE_FIELDS:
        if field in changes and changes[field] is not None:
            setattr(event_type, field, changes[field])
    return await event_type_repo.save(event_type)
