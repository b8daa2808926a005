from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from enum import StrEnum
from typing import Any, Optional

from sqlalchemy import JSON, CheckConstraint, Column, Enum, ForeignKey, Index, Table, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql.sqltypes import BigInteger, Boolean, Date, DateTime, Integer, Numeric, String, Text, Time

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
ID_TYPE = BigInteger().with_variant(Integer, "sqlite")
MONEY = Numeric(12, 2, asdecimal=True)


class Base(DeclarativeBase):
    pass


class BookingStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


venue_shift_templates = Table(
    "venue_shift_templates",
    Base.metadata,
    Column("venue_id", ID_TYPE, ForeignKey("venues.id"), primary_key=True),
    Column("shift_template_id", ID_TYPE, ForeignKey("shift_templates.id"), primary_key=True),
)


class Venue(Base):
    __tablename__ = "venues"
    __table_args__ = (CheckConstraint("capacity >= 1", name="chk_venues_capacity"),)

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)


class ShiftTemplate(Base):
    __tablename__ = "shift_templates"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    label: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    starts_at: Mapped[time] = mapped_column(Time, nullable=False)
    ends_at: Mapped[time] = mapped_column(Time, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)


class EventType(Base):
    __tablename__ = "event_types"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)


class Package(Base):
    __tablename__ = "packages"
    __table_args__ = (CheckConstraint("base_price >= 0", name="chk_packages_price"),)

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    base_price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    per_person_price: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)


class Menu(Base):
    __tablename__ = "menus"
    __table_args__ = (
        CheckConstraint("free_limit >= 0", name="chk_menus_free_limit"),
        Index("idx_menus_package", "package_id"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    package_id: Mapped[int] = mapped_column(ForeignKey("packages.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    free_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)


class MenuItem(Base):
    __tablename__ = "menu_items"
    __table_args__ = (
        CheckConstraint("price >= 0", name="chk_menu_items_price"),
        Index("idx_menu_items_menu", "menu_id"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    menu_id: Mapped[int] = mapped_column(ForeignKey("menus.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    priced_per_person: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("guest_count >= 1", name="chk_bookings_guest_count"),
        # Non-NULL only while PENDING or CONFIRMED: at most one active booking per shift instance.
        UniqueConstraint("active_slot_key", name="uq_bookings_active_slot"),
        Index("idx_bookings_venue_date", "venue_id", "shift_date"),
        Index("idx_bookings_customer", "customer_id"),
        Index("idx_bookings_status_created", "status", "created_at"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    venue_id: Mapped[int] = mapped_column(ForeignKey("venues.id"), nullable=False)
    shift_template_id: Mapped[int] = mapped_column(ForeignKey("shift_templates.id"), nullable=False)
    shift_date: Mapped[date] = mapped_column(Date, nullable=False)
    customer_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    package_id: Mapped[int] = mapped_column(ForeignKey("packages.id"), nullable=False)
    event_type_id: Mapped[Optional[int]] = mapped_column(ForeignKey("event_types.id"), nullable=True)
    menu_selections: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    guest_count: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        Enum(
            BookingStatus,
            values_callable=lambda enum_cls: [e.value for e in enum_cls],
            native_enum=False,
        ),
        nullable=False,
        default=BookingStatus.PENDING,
    )
    active_slot_key: Mapped[Optional[str]] = mapped_column(String(96), nullable=True)
    base_fare: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    extra_charges: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    total_fare: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    cancel_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
