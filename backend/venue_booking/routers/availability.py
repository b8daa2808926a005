from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..deps import get_principal, get_session
from ..domain.errors import BookingEngineError
from ..domain.services import ShiftInstanceKey
from ..infrastructure.repositories import (
    SqlAlchemyBookingRepository,
    SqlAlchemyEventTypeRepository,
    SqlAlchemyPackageRepository,
    SqlAlchemyShiftTemplateRepository,
    SqlAlchemyVenueRepository,
)
from ..schemas import (
    FareQuoteRead,
    FareQuoteRequest,
    ShiftInstanceRead,
    SlotAvailability,
    SlotCheckRead,
    SlotQuery,
)
from ..usecases import availability as availability_usecase
from ..usecases import shifts as shift_usecase
from ..utils.time import utc_now_naive
from .errors import to_http_exception

router = APIRouter(prefix="", tags=["availability"], dependencies=[Depends(get_principal)])


@router.get("/venues/{venue_id}/shift-instances", response_model=List[ShiftInstanceRead])
async def list_shift_instances(
    venue_id: int = Path(..., ge=1),
    start: date = Query(..., description="First calendar date (inclusive)"),
    end: date = Query(..., description="Last calendar date (inclusive)"),
    session: AsyncSession = Depends(get_session),
) -> list[ShiftInstanceRead]:
    try:
        instances = await shift_usecase.list_instances(
            SqlAlchemyVenueRepository(session),
            SqlAlchemyShiftTemplateRepository(session),
            venue_id=venue_id,
            start=start,
            end=end,
            max_days=get_settings().max_range_days,
        )
    except BookingEngineError as exc:
        raise to_http_exception(exc) from exc
    return [ShiftInstanceRead.from_domain(instance) for instance in instances]


@router.get("/venues/{venue_id}/availability", response_model=List[SlotAvailability])
async def query_availability(
    venue_id: int = Path(..., ge=1),
    start: date = Query(..., description="First calendar date (inclusive)"),
    end: date = Query(..., description="Last calendar date (inclusive)"),
    session: AsyncSession = Depends(get_session),
) -> list[SlotAvailability]:
    try:
        entries = await availability_usecase.query_availability(
            SqlAlchemyVenueRepository(session),
            SqlAlchemyShiftTemplateRepository(session),
            SqlAlchemyBookingRepository(session),
            venue_id=venue_id,
            start=start,
            end=end,
            max_days=get_settings().max_range_days,
        )
    except BookingEngineError as exc:
        raise to_http_exception(exc) from exc
    return [SlotAvailability.from_entry(instance, status_value) for instance, status_value in entries.items()]


@router.post("/bookings/check-availability", response_model=SlotCheckRead)
async def check_availability(
    payload: SlotQuery,
    session: AsyncSession = Depends(get_session),
) -> SlotCheckRead:
    key = ShiftInstanceKey(
        venue_id=payload.venue_id,
        shift_date=payload.shift_date,
        shift_template_id=payload.shift_template_id,
    )
    try:
        check = await availability_usecase.check_availability(
            SqlAlchemyVenueRepository(session),
            SqlAlchemyShiftTemplateRepository(session),
            SqlAlchemyBookingRepository(session),
            SqlAlchemyEventTypeRepository(session),
            key=key,
            guest_count=payload.guest_count,
            now=utc_now_naive(),
            event_type_id=payload.event_type_id,
        )
    except BookingEngineError as exc:
        raise to_http_exception(exc) from exc
    return SlotCheckRead.from_domain(check)


@router.post("/bookings/quote", response_model=FareQuoteRead)
async def quote_fare(
    payload: FareQuoteRequest,
    session: AsyncSession = Depends(get_session),
) -> FareQuoteRead:
    try:
        quote = await availability_usecase.quote_fare(
            SqlAlchemyPackageRepository(session),
            package_id=payload.package_id,
            guest_count=payload.guest_count,
            menu_selections=payload.menu_selections,
        )
    except BookingEngineError as exc:
        raise to_http_exception(exc) from exc
    return FareQuoteRead.from_domain(quote)
