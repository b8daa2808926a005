from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Iterable, List, Sequence

from sqlalchemy import delete, exists, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.errors import SlotUnavailableError
from ..domain.repositories import (
    BookingRepository,
    EventTypeRepository,
    PackageRepository,
    ShiftTemplateRepository,
    VenueRepository,
)
from ..models import (
    ACTIVE_BOOKING_STATUSES,
    Booking,
    BookingStatus,
    EventType,
    Menu,
    MenuItem,
    Package,
    ShiftTemplate,
    Venue,
    venue_shift_templates,
)
from ..utils.time import utc_now_naive


class SqlAlchemyVenueRepository(VenueRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, venue_id: int) -> Venue | None:
        return await self.session.get(Venue, venue_id)

    async def list_all(self, *, include_inactive: bool = False, min_capacity: int | None = None) -> List[Venue]:
        stmt = select(Venue).order_by(Venue.id)
        if not include_inactive:
            stmt = stmt.where(Venue.is_active.is_(True))
        if min_capacity is not None:
            stmt = stmt.where(Venue.capacity >= min_capacity)
        return list((await self.session.scalars(stmt)).all())

    async def create(
        self,
        *,
        name: str,
        description: str | None,
        location: str | None,
        capacity: int,
        is_active: bool,
    ) -> Venue:
        now = utc_now_naive()
        venue = Venue(
            name=name,
            description=description,
            location=location,
            capacity=capacity,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        self.session.add(venue)
        await self.session.flush()
        return venue

    async def save(self, venue: Venue) -> Venue:
        venue.updated_at = utc_now_naive()
        self.session.add(venue)
        await self.session.flush()
        return venue


class SqlAlchemyShiftTemplateRepository(ShiftTemplateRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, shift_template_id: int) -> ShiftTemplate | None:
        return await self.session.get(ShiftTemplate, shift_template_id)

    async def list_all(self) -> List[ShiftTemplate]:
        stmt = select(ShiftTemplate).order_by(ShiftTemplate.starts_at, ShiftTemplate.id)
        return list((await self.session.scalars(stmt)).all())

    async def list_for_venue(self, venue_id: int) -> List[ShiftTemplate]:
        stmt = (
            select(ShiftTemplate)
            .join(venue_shift_templates, venue_shift_templates.c.shift_template_id == ShiftTemplate.id)
            .where(venue_shift_templates.c.venue_id == venue_id)
            .order_by(ShiftTemplate.starts_at, ShiftTemplate.id)
        )
        return list((await self.session.scalars(stmt)).all())

    async def is_eligible(self, venue_id: int, shift_template_id: int) -> bool:
        stmt = select(
            exists().where(
                venue_shift_templates.c.venue_id == venue_id,
                venue_shift_templates.c.shift_template_id == shift_template_id,
            )
        )
        return bool(await self.session.scalar(stmt))

    async def venue_ids_for(self, shift_template_id: int) -> List[int]:
        stmt = (
            select(venue_shift_templates.c.venue_id)
            .where(venue_shift_templates.c.shift_template_id == shift_template_id)
            .order_by(venue_shift_templates.c.venue_id)
        )
        return [int(venue_id) for venue_id in (await self.session.scalars(stmt)).all()]

    async def create(
        self,
        *,
        label: str,
        description: str | None,
        starts_at: time,
        ends_at: time,
    ) -> ShiftTemplate:
        now = utc_now_naive()
        template = ShiftTemplate(
            label=label,
            description=description,
            starts_at=starts_at,
            ends_at=ends_at,
            created_at=now,
            updated_at=now,
        )
        self.session.add(template)
        await self.session.flush()
        return template

    async def save(self, template: ShiftTemplate) -> ShiftTemplate:
        template.updated_at = utc_now_naive()
        self.session.add(template)
        await self.session.flush()
        return template

    async def set_venues(self, shift_template_id: int, venue_ids: Iterable[int]) -> None:
        await self.session.execute(
            delete(venue_shift_templates).where(venue_shift_templates.c.shift_template_id == shift_template_id)
        )
        rows = [{"venue_id": venue_id, "shift_template_id": shift_template_id} for venue_id in sorted(set(venue_ids))]
        if rows:
            await self.session.execute(insert(venue_shift_templates), rows)


class SqlAlchemyPackageRepository(PackageRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, package_id: int) -> Package | None:
        return await self.session.get(Package, package_id)

    async def list_all(self, *, include_inactive: bool = False) -> List[Package]:
        stmt = select(Package).order_by(Package.id)
        if not include_inactive:
            stmt = stmt.where(Package.is_active.is_(True))
        return list((await self.session.scalars(stmt)).all())

    async def create(
        self,
        *,
        name: str,
        description: str | None,
        base_price: Decimal,
        per_person_price: Decimal | None,
        is_active: bool,
    ) -> Package:
        now = utc_now_naive()
        package = Package(
            name=name,
            description=description,
            base_price=base_price,
            per_person_price=per_person_price,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        self.session.add(package)
        await self.session.flush()
        return package

    async def save(self, package: Package) -> Package:
        package.updated_at = utc_now_naive()
        self.session.add(package)
        await self.session.flush()
        return package

    async def list_menus(self, package_id: int) -> List[tuple[Menu, List[MenuItem]]]:
        menus = list(
            (await self.session.scalars(select(Menu).where(Menu.package_id == package_id).order_by(Menu.id))).all()
        )
        if not menus:
            return []
        items_stmt = (
            select(MenuItem).where(MenuItem.menu_id.in_([menu.id for menu in menus])).order_by(MenuItem.id)
        )
        items_by_menu: dict[int, List[MenuItem]] = {menu.id: [] for menu in menus}
        for item in (await self.session.scalars(items_stmt)).all():
            items_by_menu[item.menu_id].append(item)
        return [(menu, items_by_menu[menu.id]) for menu in menus]

    async def _menu_items(self, menu_id: int) -> List[MenuItem]:
        stmt = select(MenuItem).where(MenuItem.menu_id == menu_id).order_by(MenuItem.id)
        return list((await self.session.scalars(stmt)).all())

    async def get_menu(self, menu_id: int) -> tuple[Menu, List[MenuItem]] | None:
        menu = await self.session.get(Menu, menu_id)
        if menu is None:
            return None
        return menu, await self._menu_items(menu.id)

    async def _add_items(self, menu_id: int, items: Sequence[tuple[str, Decimal, bool]]) -> List[MenuItem]:
        menu_items = [
            MenuItem(menu_id=menu_id, name=item_name, price=price, priced_per_person=per_person)
            for item_name, price, per_person in items
        ]
        self.session.add_all(menu_items)
        await self.session.flush()
        return menu_items

    async def create_menu(
        self,
        *,
        package_id: int,
        name: str,
        free_limit: int,
        items: Sequence[tuple[str, Decimal, bool]],
    ) -> tuple[Menu, List[MenuItem]]:
        now = utc_now_naive()
        menu = Menu(package_id=package_id, name=name, free_limit=free_limit, created_at=now, updated_at=now)
        self.session.add(menu)
        await self.session.flush()
        return menu, await self._add_items(menu.id, items)

    async def save_menu(
        self,
        menu: Menu,
        *,
        items: Sequence[tuple[str, Decimal, bool]] | None = None,
    ) -> tuple[Menu, List[MenuItem]]:
        menu.updated_at = utc_now_naive()
        self.session.add(menu)
        await self.session.flush()
        if items is None:
            return menu, await self._menu_items(menu.id)
        await self.session.execute(delete(MenuItem).where(MenuItem.menu_id == menu.id))
        return menu, await self._add_items(menu.id, items)


class SqlAlchemyEventTypeRepository(EventTypeRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, event_type_id: int) -> EventType | None:
        return await self.session.get(EventType, event_type_id)

    async def list_all(self, *, include_inactive: bool = False) -> List[EventType]:
        stmt = select(EventType).order_by(EventType.name, EventType.id)
        if not include_inactive:
            stmt = stmt.where(EventType.is_active.is_(True))
        return list((await self.session.scalars(stmt)).all())

    async def create(self, *, name: str, description: str | None, is_active: bool) -> EventType:
        now = utc_now_naive()
        event_type = EventType(name=name, description=description, is_active=is_active, created_at=now, updated_at=now)
        self.session.add(event_type)
        await self.session.flush()
        return event_type

    async def save(self, event_type: EventType) -> EventType:
        event_type.updated_at = utc_now_naive()
        self.session.add(event_type)
        await self.session.flush()
        return event_type


class SqlAlchemyBookingRepository(BookingRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, booking_id: int) -> Booking | None:
        return await self.session.get(Booking, booking_id)

    async def get_for_update(self, booking_id: int) -> Booking | None:
        result = await self.session.scalar(select(Booking).where(Booking.id == booking_id).with_for_update())
        return result if isinstance(result, Booking) else None

    async def get_active_for_slot(self, slot_key: str) -> Booking | None:
        return await self.session.scalar(select(Booking).where(Booking.active_slot_key == slot_key))

    async def list_active_for_venue(self, venue_id: int, start: date, end: date) -> List[Booking]:
        stmt = select(Booking).where(
            Booking.venue_id == venue_id,
            Booking.shift_date >= start,
            Booking.shift_date <= end,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        )
        return list((await self.session.scalars(stmt)).all())

    async def has_confirmed_for_venue(self, venue_id: int) -> bool:
        stmt = select(
            exists().where(Booking.venue_id == venue_id, Booking.status == BookingStatus.CONFIRMED)
        )
        return bool(await self.session.scalar(stmt))

    async def search(
        self,
        *,
        customer_id: int | None = None,
        venue_id: int | None = None,
        status: BookingStatus | None = None,
    ) -> List[Booking]:
        stmt = select(Booking).order_by(Booking.shift_date, Booking.id)
        if customer_id is not None:
            stmt = stmt.where(Booking.customer_id == customer_id)
        if venue_id is not None:
            stmt = stmt.where(Booking.venue_id == venue_id)
        if status is not None:
            stmt = stmt.where(Booking.status == status)
        return list((await self.session.scalars(stmt)).all())

    async def list_ids(
        self,
        *,
        status: BookingStatus,
        created_before: datetime | None = None,
        shift_date_before: date | None = None,
    ) -> List[int]:
        stmt = select(Booking.id).where(Booking.status == status).order_by(Booking.id)
        if created_before is not None:
            stmt = stmt.where(Booking.created_at <= created_before)
        if shift_date_before is not None:
            stmt = stmt.where(Booking.shift_date < shift_date_before)
        return [int(booking_id) for booking_id in (await self.session.scalars(stmt)).all()]

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
    ) -> Booking:
        booking = Booking(
            venue_id=venue_id,
            shift_template_id=shift_template_id,
            shift_date=shift_date,
            active_slot_key=slot_key,
            customer_id=customer_id,
            package_id=package_id,
            event_type_id=event_type_id,
            menu_selections=menu_selections,
            guest_count=guest_count,
            status=BookingStatus.PENDING,
            base_fare=base_fare,
            extra_charges=extra_charges,
            total_fare=total_fare,
            created_at=now,
            updated_at=now,
        )
        self.session.add(booking)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            # Another worker committed an active booking for the same shift instance.
            if "active_slot" in str(exc.orig):
                raise SlotUnavailableError("shift instance is already booked") from exc
            raise
        return booking

    async def save(self, booking: Booking) -> Booking:
        self.session.add(booking)
        await self.session.flush()
        return booking

