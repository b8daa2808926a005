from datetime import date, datetime, time
from decimal import Decimal
from types import SimpleNamespace
from typing import Any, Iterable

import pytest
from venue_booking.models import (
    ACTIVE_BOOKING_STATUSES,
    Booking,
    BookingStatus,
    EventType,
    Menu,
    MenuItem,
    Package,
    ShiftTemplate,
    Venue,
)

CREATED = datetime(2030, 1, 1, 0, 0)


class FakeVenueRepo:
    def __init__(self) -> None:
        self.rows: dict[int, Venue] = {}

    def add(self, venue_id: int, *, capacity: int = 50, is_active: bool = True) -> Venue:
        venue = Venue(
            id=venue_id,
            name=f"Hall {venue_id}",
            description=None,
            location=None,
            capacity=capacity,
            is_active=is_active,
            created_at=CREATED,
            updated_at=CREATED,
        )
        self.rows[venue_id] = venue
        return venue

    async def get(self, venue_id: int) -> Venue | None:
        return self.rows.get(venue_id)

    async def list_all(self, *, include_inactive: bool = False, min_capacity: int | None = None) -> list[Venue]:
        return [
            v
            for v in self.rows.values()
            if (include_inactive or v.is_active) and (min_capacity is None or v.capacity >= min_capacity)
        ]

    async def create(self, **kwargs: Any) -> Venue:
        venue = Venue(id=len(self.rows) + 1, created_at=CREATED, updated_at=CREATED, **kwargs)
        self.rows[venue.id] = venue
        return venue

    async def save(self, venue: Venue) -> Venue:
        return venue


class FakeShiftRepo:
    def __init__(self) -> None:
        self.rows: dict[int, ShiftTemplate] = {}
        self.eligibility: set[tuple[int, int]] = set()

    def add(self, template_id: int, label: str, starts: time, ends: time, venue_ids: Iterable[int]) -> ShiftTemplate:
        template = ShiftTemplate(
            id=template_id,
            label=label,
            description=None,
            starts_at=starts,
            ends_at=ends,
            created_at=CREATED,
            updated_at=CREATED,
        )
        self.rows[template_id] = template
        self.eligibility.update((venue_id, template_id) for venue_id in venue_ids)
        return template

    async def get(self, shift_template_id: int) -> ShiftTemplate | None:
        return self.rows.get(shift_template_id)

    async def list_all(self) -> list[ShiftTemplate]:
        return list(self.rows.values())

    async def list_for_venue(self, venue_id: int) -> list[ShiftTemplate]:
        return [t for t in self.rows.values() if (venue_id, t.id) in self.eligibility]

    async def is_eligible(self, venue_id: int, shift_template_id: int) -> bool:
        return (venue_id, shift_template_id) in self.eligibility

    async def venue_ids_for(self, shift_template_id: int) -> list[int]:
        return sorted(v for v, t in self.eligibility if t == shift_template_id)

    async def create(self, **kwargs: Any) -> ShiftTemplate:
        template = ShiftTemplate(id=len(self.rows) + 1, created_at=CREATED, updated_at=CREATED, **kwargs)
        self.rows[template.id] = template
        return template

    async def save(self, template: ShiftTemplate) -> ShiftTemplate:
        return template

    async def set_venues(self, shift_template_id: int, venue_ids: Iterable[int]) -> None:
        self.eligibility = {(v, t) for v, t in self.eligibility if t != shift_template_id}
        self.eligibility.update((venue_id, shift_template_id) for venue_id in venue_ids)


class FakePackageRepo:
    def __init__(self) -> None:
        self.rows: dict[int, Package] = {}
        self.menus: dict[int, list[tuple[Menu, list[MenuItem]]]] = {}

    def add(self, package_id: int, *, base_price: str, per_person: str | None = None, is_active: bool = True) -> Package:
        package = Package(
            id=package_id,
            name=f"Package {package_id}",
            description=None,
            base_price=Decimal(base_price),
            per_person_price=Decimal(per_person) if per_person is not None else None,
            is_active=is_active,
            created_at=CREATED,
            updated_at=CREATED,
        )
        self.rows[package_id] = package
        self.menus.setdefault(package_id, [])
        return package

    def add_menu(self, package_id: int, menu_id: int, free_limit: int, items: list[tuple[int, str, bool]]) -> Menu:
        menu = Menu(id=menu_id, package_id=package_id, name=f"Menu {menu_id}", free_limit=free_limit)
        menu_items = [
            MenuItem(id=item_id, menu_id=menu_id, name=f"Item {item_id}", price=Decimal(price), priced_per_person=pp)
            for item_id, price, pp in items
        ]
        self.menus.setdefault(package_id, []).append((menu, menu_items))
        return menu

    async def get(self, package_id: int) -> Package | None:
        return self.rows.get(package_id)

    async def list_all(self, *, include_inactive: bool = False) -> list[Package]:
        return [p for p in self.rows.values() if include_inactive or p.is_active]

    async def create(self, **kwargs: Any) -> Package:
        package = Package(id=len(self.rows) + 1, created_at=CREATED, updated_at=CREATED, **kwargs)
        self.rows[package.id] = package
        return package

    async def save(self, package: Package) -> Package:
        return package

    async def list_menus(self, package_id: int) -> list[tuple[Menu, list[MenuItem]]]:
        return list(self.menus.get(package_id, []))

    async def get_menu(self, menu_id: int) -> tuple[Menu, list[MenuItem]] | None:
        return next((row for rows in self.menus.values() for row in rows if row[0].id == menu_id), None)

    async def create_menu(self, *, package_id: int, name: str, free_limit: int, items: Any) -> tuple[Menu, list[MenuItem]]:
        menu_id = sum(len(m) for m in self.menus.values()) + 1
        menu = Menu(id=menu_id, package_id=package_id, name=name, free_limit=free_limit)
        menu_items = [
            MenuItem(id=index, menu_id=menu_id, name=item_name, price=price, priced_per_person=pp)
            for index, (item_name, price, pp) in enumerate(items, start=1)
        ]
        self.menus.setdefault(package_id, []).append((menu, menu_items))
        return menu, menu_items

    async def save_menu(self, menu: Menu, *, items: Any = None) -> tuple[Menu, list[MenuItem]]:
        rows = self.menus[menu.package_id]
        index = next(i for i, (m, _) in enumerate(rows) if m.id == menu.id)
        if items is not None:
            rows[index] = (
                menu,
                [
                    MenuItem(id=1000 + n, menu_id=menu.id, name=item_name, price=price, priced_per_person=pp)
                    for n, (item_name, price, pp) in enumerate(items)
                ],
            )
        return rows[index]


class FakeEventTypeRepo:
    def __init__(self) -> None:
        self.rows: dict[int, EventType] = {}

    def add(self, event_type_id: int, name: str, *, is_active: bool = True) -> EventType:
        event_type = EventType(
            id=event_type_id,
            name=name,
            description=None,
            is_active=is_active,
            created_at=CREATED,
            updated_at=CREATED,
        )
        self.rows[event_type_id] = event_type
        return event_type

    async def get(self, event_type_id: int) -> EventType | None:
        return self.rows.get(event_type_id)

    async def list_all(self, *, include_inactive: bool = False) -> list[EventType]:
        return [e for e in self.rows.values() if include_inactive or e.is_active]

    async def create(self, **kwargs: Any) -> EventType:
        event_type = EventType(id=len(self.rows) + 1, created_at=CREATED, updated_at=CREATED, **kwargs)
        self.rows[event_type.id] = event_type
        return event_type

    async def save(self, event_type: EventType) -> EventType:
        return event_type


class FakeBookingRepo:
    def __init__(self) -> None:
        self.rows: dict[int, Booking] = {}

    def add(self, booking_id: int, *, status: BookingStatus, shift_date: date, customer_id: int = 7) -> Booking:
        slot_key = f"1:{shift_date.isoformat()}:1" if status in ACTIVE_BOOKING_STATUSES else None
        booking = Booking(
            id=booking_id,
            venue_id=1,
            shift_template_id=1,
            shift_date=shift_date,
            customer_id=customer_id,
            package_id=1,
            menu_selections=[],
            guest_count=10,
            status=status,
            active_slot_key=slot_key,
            base_fare=Decimal("500.00"),
            extra_charges=Decimal("0.00"),
            total_fare=Decimal("500.00"),
            created_at=CREATED,
            updated_at=CREATED,
        )
        self.rows[booking_id] = booking
        return booking

    async def get(self, booking_id: int) -> Booking | None:
        return self.rows.get(booking_id)

    async def get_for_update(self, booking_id: int) -> Booking | None:
        return self.rows.get(booking_id)

    async def get_active_for_slot(self, slot_key: str) -> Booking | None:
        return next((b for b in self.rows.values() if b.active_slot_key == slot_key), None)

    async def list_active_for_venue(self, venue_id: int, start: date, end: date) -> list[Booking]:
        return [
            b
            for b in self.rows.values()
            if b.venue_id == venue_id and start <= b.shift_date <= end and b.status in ACTIVE_BOOKING_STATUSES
        ]

    async def has_confirmed_for_venue(self, venue_id: int) -> bool:
        return any(b.venue_id == venue_id and b.status == BookingStatus.CONFIRMED for b in self.rows.values())

    async def search(
        self,
        *,
        customer_id: int | None = None,
        venue_id: int | None = None,
        status: BookingStatus | None = None,
    ) -> list[Booking]:
        return [
            b
            for b in self.rows.values()
            if (customer_id is None or b.customer_id == customer_id)
            and (venue_id is None or b.venue_id == venue_id)
            and (status is None or b.status == status)
        ]

    async def list_ids(self, **kwargs: Any) -> list[int]:  # pragma: no cover
        return []

    async def create(self, *, slot_key: str, now: datetime, **kwargs: Any) -> Booking:
        booking = Booking(
            id=len(self.rows) + 1,
            active_slot_key=slot_key,
            status=BookingStatus.PENDING,
            created_at=now,
            updated_at=now,
            **kwargs,
        )
        self.rows[booking.id] = booking
        return booking

    async def save(self, booking: Booking) -> Booking:
        return booking


@pytest.fixture
def repos() -> SimpleNamespace:
    """Venue 1 (capacity 50) offering a day and an overnight shift; package 1 with one menu; two event types."""
    venues = FakeVenueRepo()
    venues.add(1, capacity=50)
    venues.add(2, capacity=80, is_active=False)
    shifts = FakeShiftRepo()
    shifts.add(1, "Day", time(10, 0), time(16, 0), venue_ids=[1, 2])
    shifts.add(2, "Late", time(22, 0), time(2, 0), venue_ids=[1])
    shifts.add(3, "Brunch", time(9, 0), time(12, 0), venue_ids=[])
    packages = FakePackageRepo()
    packages.add(1, base_price="500.00", per_person="20.00")
    packages.add_menu(1, 10, free_limit=1, items=[(100, "15.00", True), (101, "5.00", True)])
    packages.add(2, base_price="100.00", is_active=False)
    event_types = FakeEventTypeRepo()
    event_types.add(1, "Wedding")
    event_types.add(2, "Retired", is_active=False)
    return SimpleNamespace(
        venues=venues,
        shifts=shifts,
        packages=packages,
        bookings=FakeBookingRepo(),
        event_types=event_types,
    )
