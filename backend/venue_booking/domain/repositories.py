from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Iterable, Protocol, Sequence

from ..models import Booking, BookingStatus, EventType, Menu, MenuItem, Package, ShiftTemplate, Venue


class VenueRepository(Protocol):
    async def get(self, venue_id: int) -> Venue | None: ...

    async def list_all(self, *, include_inactive: bool = False, min_capacity: int | None = None) -> list[Venue]: ...

    async def create(
        self,
        *,
        name: str,
        description: str | None,
        location: str | None,
        capacity: int,
        is_active: bool,
    ) -> Venue: ...

    async def save(self, venue: Venue) -> Venue: ...


class ShiftTemplateRepository(Protocol):
    async def get(self, shift_template_id: int) -> ShiftTemplate | None: ...

    async def list_all(self) -> list[ShiftTemplate]: ...

    async def list_for_venue(self, venue_id: int) -> list[ShiftTemplate]: ...

    async def is_eligible(self, venue_id: int, shift_template_id: int) -> bool: ...

    async def venue_ids_for(self, shift_template_id: int) -> list[int]: ...

    async def create(
        self,
        *,
        label: str,
        description: str | None,
        starts_at: time,
        ends_at: time,
    ) -> ShiftTemplate: ...

    async def save(self, template: ShiftTemplate) -> ShiftTemplate: ...

    async def set_venues(self, shift_template_id: int, venue_ids: Iterable[int]) -> None: ...


class PackageRepository(Protocol):
    async def get(self, package_id: int) -> Package | None: ...

    async def list_all(self, *, include_inactive: bool = False) -> list[Package]: ...

    async def create(
        self,
        *,
        name: str,
        description: str | None,
        base_price: Decimal,
        per_person_price: Decimal | None,
        is_active: bool,
    ) -> Package: ...

    async def save(self, package: Package) -> Package: ...

    async def list_menus(self, package_id: int) -> list[tuple[Menu, list[MenuItem]]]: ...

    async def get_menu(self, menu_id: int) -> tuple[Menu, list[MenuItem]] | None: ...

    async def create_menu(
        self,
        *,
        package_id: int,
        name: str,
        free_limit: int,
        items: Sequence[tuple[str, Decimal, bool]],
    ) -> tuple[Menu, list[MenuItem]]: ...

    async def save_menu(
        self,
        menu: Menu,
        *,
        items: Sequence[tuple[str, Decimal, bool]] | None = None,
    ) -> tuple[Menu, list[MenuItem]]: ...


class EventTypeRepository(Protocol):
    async def get(self, event_type_id: int) -> EventType | None: ...

    async def list_all(self, *, include_inactive: bool = False) -> list[EventType]: ...

    async def create(self, *, name: str, description: str | None, is_active: bool) -> EventType: ...

    async def save(self, event_type: EventType) -> EventType: ...


class BookingRepository(Protocol):
    async def get(self, booking_id: int) -> Booking | None: ...

    async def get_for_update(self, booking_id: int) -> Booking | None: ...

    async def get_active_for_slot(self, slot_key: str) -> Booking | None: ...

    async def list_active_for_venue(self, venue_id: int, start: date, end: date) -> list[Booking]: ...

    async def has_confirmed_for_venue(self, venue_id: int) -> bool: ...

    async def search(
        self,
        *,
        customer_id: int | None = None,
        venue_id: int | None = None,
        status: BookingStatus | None = None,
    ) -> list[Booking]: ...

    async def list_ids(
        self,
        *,
        status: BookingStatus,
        created_before: datetime | None = None,
        shift_date_before: date | None = None,
    ) -> list[int]: ...

    async def create(
        self,
        *,
        venue_id: int,
        shift_template_id: int,
        shift_date: date,
        slot_key: str,
        customer_id: int,
        package_id: int,
        event_type_id: int | None,
        menu_selections: list[dict[str, Any]],
        guest_count: int,
        base_fare: Decimal,
        extra_charges: Decimal,
        total_fare: Decimal,
        now: datetime,
    ) -> Booking: ...

    async def save(self, booking: Booking) -> Booking: ...
