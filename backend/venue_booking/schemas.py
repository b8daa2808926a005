from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_serializer

from .domain.pricing import FareQuote, selections_from_json
from .domain.services import AvailabilityStatus, ShiftInstance
from .models import Booking, BookingStatus, EventType, Menu, MenuItem, Package, ShiftTemplate, Venue
from .usecases.availability import SlotCheck


class VenueCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=255)
    capacity: int = Field(ge=1)
    is_active: bool = True


class VenueUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=255)
    capacity: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None


class VenueRead(BaseModel):
    venue_id: int
    name: str
    description: Optional[str]
    location: Optional[str]
    capacity: int
    is_active: bool

    @classmethod
    def from_db(cls, *, venue: Venue) -> "VenueRead":
        return cls(
            venue_id=venue.id,
            name=venue.name,
            description=venue.description,
            location=venue.location,
            capacity=venue.capacity,
            is_active=venue.is_active,
        )


class ShiftTemplateCreate(BaseModel):
    label: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    starts_at: time
    ends_at: time
    venue_ids: list[int] = Field(default_factory=list)


class ShiftTemplateUpdate(BaseModel):
    label: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    venue_ids: Optional[list[int]] = None


class ShiftTemplateRead(BaseModel):
    shift_template_id: int
    label: str
    description: Optional[str]
    starts_at: time
    ends_at: time
    venue_ids: list[int]

    @classmethod
    def from_db(cls, *, template: ShiftTemplate, venue_ids: list[int]) -> "ShiftTemplateRead":
        return cls(
            shift_template_id=template.id,
            label=template.label,
            description=template.description,
            starts_at=template.starts_at,
            ends_at=template.ends_at,
            venue_ids=venue_ids,
        )


class PackageCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    base_price: Decimal = Field(ge=0, decimal_places=2)
    per_person_price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    is_active: bool = True


class PackageUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    base_price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    per_person_price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    is_active: Optional[bool] = None


class PackageRead(BaseModel):
    package_id: int
    name: str
    description: Optional[str]
    base_price: Decimal
    per_person_price: Optional[Decimal]
    is_active: bool

    @classmethod
    def from_db(cls, *, package: Package) -> "PackageRead":
        return cls(
            package_id=package.id,
            name=package.name,
            description=package.description,
            base_price=package.base_price,
            per_person_price=package.per_person_price,
            is_active=package.is_active,
        )


class MenuItemCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    price: Decimal = Field(ge=0, decimal_places=2)
    priced_per_person: bool = True


class MenuCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    free_limit: int = Field(default=0, ge=0)
    items: list[MenuItemCreate] = Field(default_factory=list)


class MenuUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    free_limit: Optional[int] = Field(default=None, ge=0)
    # Replaces every item of the menu when given.
    items: Optional[list[MenuItemCreate]] = None


class MenuItemRead(BaseModel):
    item_id: int
    name: str
    price: Decimal
    priced_per_person: bool


class MenuRead(BaseModel):
    menu_id: int
    package_id: int
    name: str
    free_limit: int
    items: list[MenuItemRead]

    @classmethod
    def from_db(cls, *, menu: Menu, items: list[MenuItem]) -> "MenuRead":
        return cls(
            menu_id=menu.id,
            package_id=menu.package_id,
            name=menu.name,
            free_limit=menu.free_limit,
            items=[
                MenuItemRead(item_id=item.id, name=item.name, price=item.price, priced_per_person=item.priced_per_person)
                for item in items
            ],
        )


class EventTypeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: bool = True


class EventTypeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class EventTypeRead(BaseModel):
    event_type_id: int
    name: str
    description: Optional[str]
    is_active: bool

    @classmethod
    def from_db(cls, *, event_type: EventType) -> "EventTypeRead":
        return cls(
            event_type_id=event_type.id,
            name=event_type.name,
            description=event_type.description,
            is_active=event_type.is_active,
        )


class ShiftInstanceRead(BaseModel):
    venue_id: int
    shift_date: date
    shift_template_id: int
    label: str
    starts_at: datetime
    ends_at: datetime

    @classmethod
    def from_domain(cls, instance: ShiftInstance) -> "ShiftInstanceRead":
        return cls(
            venue_id=instance.venue_id,
            shift_date=instance.shift_date,
            shift_template_id=instance.shift_template_id,
            label=instance.label,
            starts_at=instance.starts_at,
            ends_at=instance.ends_at,
        )


class SlotAvailability(ShiftInstanceRead):
    status: AvailabilityStatus

    @classmethod
    def from_entry(cls, instance: ShiftInstance, status: AvailabilityStatus) -> "SlotAvailability":
        return cls(**ShiftInstanceRead.from_domain(instance).model_dump(), status=status)


class SlotQuery(BaseModel):
    venue_id: int
    shift_template_id: int
    shift_date: date
    guest_count: int
    event_type_id: Optional[int] = None


class SlotCheckRead(BaseModel):
    venue_id: int
    shift_template_id: int
    shift_date: date
    available: bool
    status: Optional[AvailabilityStatus]
    reason: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_domain(cls, check: SlotCheck) -> "SlotCheckRead":
        return cls(
            venue_id=check.key.venue_id,
            shift_template_id=check.key.shift_template_id,
            shift_date=check.key.shift_date,
            available=check.available,
            status=check.status,
            reason=check.reason,
            error=check.error,
        )


class FareQuoteRequest(BaseModel):
    package_id: int
    guest_count: int = Field(ge=1)
    menu_selections: dict[int, list[int]] = Field(default_factory=dict)


class FareQuoteRead(BaseModel):
    base_fare: Decimal
    extra_charges: Decimal
    total_fare: Decimal

    @field_serializer("base_fare", "extra_charges", "total_fare")
    def _ser_money(self, value: Decimal) -> str:
        return f"{value:.2f}"

    @classmethod
    def from_domain(cls, quote: FareQuote) -> "FareQuoteRead":
        return cls(base_fare=quote.base_fare, extra_charges=quote.extra_charges, total_fare=quote.total_fare)


class BookingCreate(BaseModel):
    venue_id: int
    shift_template_id: int
    shift_date: date
    package_id: int
    # Range is checked against venue capacity by the ledger.
    guest_count: int
    menu_selections: dict[int, list[int]] = Field(default_factory=dict)
    customer_id: Optional[int] = None
    event_type_id: Optional[int] = None


class BookingCancel(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=255)


class BookingRead(BaseModel):
    booking_id: int
    venue_id: int
    shift_template_id: int
    shift_date: date
    customer_id: int
    package_id: int
    event_type_id: Optional[int]
    menu_selections: dict[int, list[int]]
    guest_count: int
    status: BookingStatus
    base_fare: Decimal
    extra_charges: Decimal
    total_fare: Decimal
    cancel_reason: Optional[str]
    created_at: datetime
    confirmed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    completed_at: Optional[datetime]

    @field_serializer("base_fare", "extra_charges", "total_fare")
    def _ser_money(self, value: Decimal) -> str:
        return f"{value:.2f}"

    @classmethod
    def from_db(cls, *, booking: Booking) -> "BookingRead":
        return cls(
            booking_id=booking.id,
            venue_id=booking.venue_id,
            shift_template_id=booking.shift_template_id,
            shift_date=booking.shift_date,
            customer_id=booking.customer_id,
            package_id=booking.package_id,
            event_type_id=booking.event_type_id,
            menu_selections=selections_from_json(booking.menu_selections),
            guest_count=booking.guest_count,
            status=booking.status,
            base_fare=booking.base_fare,
            extra_charges=booking.extra_charges,
            total_fare=booking.total_fare,
            cancel_reason=booking.cancel_reason,
            created_at=booking.created_at,
            confirmed_at=booking.confirmed_at,
            cancelled_at=booking.cancelled_at,
            completed_at=booking.completed_at,
        )


class SweepResult(BaseModel):
    expired_booking_ids: list[int]
