from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_ledger, get_principal, get_session, require_admin
from ..domain.errors import BookingEngineError
from ..domain.services import Principal
from ..infrastructure.repositories import SqlAlchemyBookingRepository
from ..ledger import BookingLedger
from ..models import BookingStatus
from ..schemas import BookingCancel, BookingCreate, BookingRead, SweepResult
from ..usecases import bookings as booking_usecase
from .errors import audit_failure, to_http_exception

router = APIRouter(prefix="", tags=["bookings"])


@router.post("/bookings", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    ledger: BookingLedger = Depends(get_ledger),
    principal: Principal = Depends(get_principal),
) -> BookingRead:
    try:
        booking = await ledger.create_booking(
            principal,
            venue_id=payload.venue_id,
            shift_date=payload.shift_date,
            shift_template_id=payload.shift_template_id,
            package_id=payload.package_id,
            guest_count=payload.guest_count,
            menu_selections=payload.menu_selections,
            customer_id=payload.customer_id,
            event_type_id=payload.event_type_id,
        )
    except BookingEngineError as exc:
        raise to_http_exception(exc) from exc
    except RuntimeError as exc:
        raise audit_failure() from exc
    return BookingRead.from_db(booking=booking)


@router.get("/me/bookings", response_model=List[BookingRead])
async def list_my_bookings(
    status_filter: Optional[BookingStatus] = Query(default=None, alias="status"),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(get_principal),
) -> list[BookingRead]:
    rows = await booking_usecase.list_bookings(
        SqlAlchemyBookingRepository(session),
        principal=principal,
        customer_id=principal.user_id,
        status=status_filter,
    )
    return [BookingRead.from_db(booking=booking) for booking in rows]


@router.get("/bookings/{booking_id}", response_model=BookingRead)
async def get_booking(
    booking_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(get_principal),
) -> BookingRead:
    try:
        booking = await booking_usecase.get_booking(
            SqlAlchemyBookingRepository(session), principal=principal, booking_id=booking_id
        )
    except BookingEngineError as exc:
        raise to_http_exception(exc) from exc
    return BookingRead.from_db(booking=booking)


@router.post("/bookings/{booking_id}/confirm", response_model=BookingRead)
async def confirm_booking(
    booking_id: int = Path(..., ge=1),
    ledger: BookingLedger = Depends(get_ledger),
    principal: Principal = Depends(get_principal),
) -> BookingRead:
    try:
        booking = await ledger.confirm_booking(principal, booking_id)
    except BookingEngineError as exc:
        raise to_http_exception(exc) from exc
    except RuntimeError as exc:
        raise audit_failure() from exc
    return BookingRead.from_db(booking=booking)


@router.post("/bookings/{booking_id}/cancel", response_model=BookingRead)
async def cancel_booking(
    booking_id: int = Path(..., ge=1),
    payload: Optional[BookingCancel] = Body(default=None),
    ledger: BookingLedger = Depends(get_ledger),
    principal: Principal = Depends(get_principal),
) -> BookingRead:
    reason = payload.reason if payload is not None else None
    try:
        booking = await ledger.cancel_booking(principal, booking_id, reason)
    except BookingEngineError as exc:
        raise to_http_exception(exc) from exc
    except RuntimeError as exc:
        raise audit_failure() from exc
    return BookingRead.from_db(booking=booking)


@router.post("/bookings/{booking_id}/complete", response_model=BookingRead)
async def complete_booking(
    booking_id: int = Path(..., ge=1),
    ledger: BookingLedger = Depends(get_ledger),
    principal: Principal = Depends(require_admin),
) -> BookingRead:
    try:
        booking = await ledger.complete_booking(principal, booking_id)
    except BookingEngineError as exc:
        raise to_http_exception(exc) from exc
    except RuntimeError as exc:
        raise audit_failure() from exc
    return BookingRead.from_db(booking=booking)


@router.get("/admin/bookings", response_model=List[BookingRead])
async def list_bookings(
    status_filter: Optional[BookingStatus] = Query(default=None, alias="status"),
    venue_id: Optional[int] = Query(default=None, ge=1),
    customer_id: Optional[int] = Query(default=None, ge=1),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_admin),
) -> list[BookingRead]:
    rows = await booking_usecase.list_bookings(
        SqlAlchemyBookingRepository(session),
        principal=principal,
        customer_id=customer_id,
        venue_id=venue_id,
        status=status_filter,
    )
    return [BookingRead.from_db(booking=booking) for booking in rows]


@router.post("/admin/bookings/expire", response_model=SweepResult)
async def expire_pending_bookings(
    ledger: BookingLedger = Depends(get_ledger),
    principal: Principal = Depends(require_admin),
) -> SweepResult:
    try:
        expired = await ledger.expire_pending_bookings(principal=principal)
    except BookingEngineError as exc:
        raise to_http_exception(exc) from exc
    return SweepResult(expired_booking_ids=expired)
