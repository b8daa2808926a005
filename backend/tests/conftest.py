from datetime import datetime, time, timedelta
from decimal import Decimal
from types import SimpleNamespace
from typing import Any, AsyncIterator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from venue_booking import ledger as ledger_module
from venue_booking.infrastructure.repositories import (
    SqlAlchemyEventTypeRepository,
    SqlAlchemyPackageRepository,
    SqlAlchemyShiftTemplateRepository,
    SqlAlchemyVenueRepository,
)
from venue_booking.ledger import BookingLedger
from venue_booking.models import Base
from venue_booking.utils.locks import KeyedLock


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest_asyncio.fixture
async def session_factory(tmp_path: Any) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'bookings.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    await engine.dispose()


@pytest_asyncio.fixture
async def catalog(session_factory: async_sessionmaker[AsyncSession]) -> SimpleNamespace:
    """Hall (capacity 50) offering Day 10:00-16:00 and Late 22:00-02:00; one package with a menu; a Wedding event."""
    async with session_factory() as session:
        async with session.begin():
            venues = SqlAlchemyVenueRepository(session)
            shifts = SqlAlchemyShiftTemplateRepository(session)
            packages = SqlAlchemyPackageRepository(session)
            hall = await venues.create(name="Hall", description=None, location="Main St", capacity=50, is_active=True)
            day = await shifts.create(label="Day", description=None, starts_at=time(10, 0), ends_at=time(16, 0))
            late = await shifts.create(label="Late", description=None, starts_at=time(22, 0), ends_at=time(2, 0))
            await shifts.set_venues(day.id, [hall.id])
            await shifts.set_venues(late.id, [hall.id])
            package = await packages.create(
                name="Classic",
                description=None,
                base_price=Decimal("500.00"),
                per_person_price=Decimal("20.00"),
                is_active=True,
            )
            menu, items = await packages.create_menu(
                package_id=package.id,
                name="Starters",
                free_limit=1,
                items=[("Samosa", Decimal("15.00"), True), ("Soup", Decimal("5.00"), True)],
            )
            wedding = await SqlAlchemyEventTypeRepository(session).create(
                name="Wedding", description=None, is_active=True
            )
    return SimpleNamespace(
        venue_id=hall.id,
        day_id=day.id,
        late_id=late.id,
        package_id=package.id,
        menu_id=menu.id,
        item_ids=[item.id for item in items],
        event_type_id=wedding.id,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2030, 6, 1, 9, 0))


@pytest.fixture
def ledger(session_factory: async_sessionmaker[AsyncSession], clock: FakeClock) -> BookingLedger:
    return BookingLedger(session_factory, locks=KeyedLock(), hold_duration=timedelta(minutes=15), clock=clock)


@pytest.fixture
def audit_records(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []

    def fake_emit(**kwargs: Any) -> None:
        records.append(kwargs)

    monkeypatch.setattr(ledger_module, "emit_audit_log", fake_emit)
    return records
