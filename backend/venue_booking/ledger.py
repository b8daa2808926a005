"""Booking Ledger: the only writer of booking state.

Every operation runs in its own transaction. Creation additionally holds a
per-slot lock across check, insert and commit so that concurrent requests for
the same (venue, date, shift template) are decided one at a time; the unique
``active_slot_key`` column backs this up across processes.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import AsyncIterator, Callable, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .domain.errors import InvalidTransitionError
from .domain.services import Principal, ShiftInstanceKey, ensure_admin, resolve_customer_id
from .infrastructure.repositories import (
    SqlAlchemyBookingRepository,
    SqlAlchemyEventTypeRepository,
    SqlAlchemyPackageRepository,
    SqlAlchemyShiftTemplateRepository,
    SqlAlchemyVenueRepository,
)
from .models import Booking, BookingStatus
from .usecases import bookings as booking_usecase
from .utils.audit_log import AuditAction, AuditInitiator, emit_audit_log
from .utils.locks import KeyedLock
from .utils.time import utc_now_naive

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Repos:
    venues: SqlAlchemyVenueRepository
    shifts: SqlAlchemyShiftTemplateRepository
    packages: SqlAlchemyPackageRepository
    bookings: SqlAlchemyBookingRepository
    event_types: SqlAlchemyEventTypeRepository


def _initiator(principal: Optional[Principal]) -> AuditInitiator:
    if principal is None:
        return "system"
    return "admin" if principal.is_admin else "user"


class BookingLedger:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        locks: KeyedLock,
        hold_duration: timedelta,
        clock: Callable[[], datetime] = utc_now_naive,
    ) -> None:
        self._session_factory = session_factory
        self._locks = locks
        self._hold_duration = hold_duration
        self._clock = clock

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[_Repos]:
        async with self._session_factory() as session:
            async with session.begin():
                yield _Repos(
                    venues=SqlAlchemyVenueRepository(session),
                    shifts=SqlAlchemyShiftTemplateRepository(session),
                    packages=SqlAlchemyPackageRepository(session),
                    bookings=SqlAlchemyBookingRepository(session),
                    event_types=SqlAlchemyEventTypeRepository(session),
                )

    def _audit(
        self,
        action: AuditAction,
        principal: Optional[Principal],
        booking: Booking,
        status_from: Optional[BookingStatus],
    ) -> None:
        emit_audit_log(
            action=action,
            initiator=_initiator(principal),
            booking_id=booking.id,
            venue_id=booking.venue_id,
            shift_template_id=booking.shift_template_id,
            shift_date=booking.shift_date.isoformat(),
            customer_id=booking.customer_id,
            actor_id=principal.user_id if principal is not None else None,
            guest_count=booking.guest_count,
            status_from=status_from,
            status_to=booking.status,
            reason=booking.cancel_reason,
        )

    async def create_booking(
        self,
        principal: Principal,
        *,
        venue_id: int,
        shift_date: date,
        shift_template_id: int,
        package_id: int,
        guest_count: int,
        menu_selections: Mapping[int, Sequence[int]] | None = None,
        customer_id: int | None = None,
        event_type_id: int | None = None,
    ) -> Booking:
        """The creation audit line is written before commit; if it fails the insert is rolled back."""
        customer = resolve_customer_id(principal, customer_id)
        key = ShiftInstanceKey(venue_id=venue_id, shift_date=shift_date, shift_template_id=shift_template_id)
        async with self._locks.hold(key.slot_key):
            async with self._transaction() as repos:
                booking = await booking_usecase.create_booking(
                    repos.venues,
                    repos.shifts,
                    repos.packages,
                    repos.bookings,
                    repos.event_types,
                    key=key,
                    customer_id=customer,
                    package_id=package_id,
                    guest_count=guest_count,
                    menu_selections=menu_selections,
                    now=self._clock(),
                    event_type_id=event_type_id,
                )
                self._audit("booking.created", principal, booking, None)
        return booking

    async def confirm_booking(self, principal: Principal, booking_id: int) -> Booking:
        async with self._transaction() as repos:
            booking, previous = await booking_usecase.confirm_booking(
                repos.bookings, principal=principal, booking_id=booking_id, now=self._clock()
            )
        self._audit("booking.confirmed", principal, booking, previous)
        return booking

    async def cancel_booking(self, principal: Principal, booking_id: int, reason: str | None = None) -> Booking:
        async with self._transaction() as repos:
            booking, previous = await booking_usecase.cancel_booking(
                repos.bookings, principal=principal, booking_id=booking_id, reason=reason, now=self._clock()
            )
        self._audit("booking.cancelled", principal, booking, previous)
        return booking

    async def complete_booking(self, principal: Optional[Principal], booking_id: int) -> Booking:
        async with self._transaction() as repos:
            booking, previous = await booking_usecase.complete_booking(
                repos.bookings, repos.shifts, principal=principal, booking_id=booking_id, now=self._clock()
            )
        if previous != BookingStatus.COMPLETED:
            self._audit("booking.completed", principal, booking, previous)
        return booking

    async def expire_pending_bookings(
        self,
        older_than: timedelta | None = None,
        *,
        principal: Optional[Principal] = None,
    ) -> list[int]:
        """Cancel PENDING bookings created more than `older_than` (default: hold duration) ago.

        Failures are logged per booking and never stop the sweep. Returns the expired ids.
        `principal=None` is the periodic sweep; a manual trigger must come from an admin.
        """
        if principal is not None:
            ensure_admin(principal)
        cutoff = self._clock() - (older_than if older_than is not None else self._hold_duration)
        async with self._session_factory() as session:
            candidates = await SqlAlchemyBookingRepository(session).list_ids(
                status=BookingStatus.PENDING, created_before=cutoff
            )

        expired: list[int] = []
        for booking_id in candidates:
            try:
                async with self._transaction() as repos:
                    booking = await booking_usecase.expire_booking(
                        repos.bookings, booking_id=booking_id, now=self._clock()
                    )
            except InvalidTransitionError as exc:
                logger.info("skipping expiry of booking %s: %s", booking_id, exc)
                continue
            except Exception:
                logger.exception("failed to expire booking %s", booking_id)
                continue
            expired.append(booking_id)
            try:
                self._audit("booking.expired", None, booking, BookingStatus.PENDING)
            except RuntimeError:
                logger.exception("audit failed for expired booking %s", booking_id)
        if expired:
            logger.info("expired %d pending bookings", len(expired))
        return expired

    async def complete_elapsed_bookings(self) -> list[int]:
        """Complete CONFIRMED bookings whose shift date has passed."""
        today = self._clock().date()
        async with self._session_factory() as session:
            candidates = await SqlAlchemyBookingRepository(session).list_ids(
                status=BookingStatus.CONFIRMED, shift_date_before=today
            )

        completed: list[int] = []
        for booking_id in candidates:
            try:
                await self.complete_booking(None, booking_id)
            except InvalidTransitionError as exc:
                logger.info("skipping completion of booking %s: %s", booking_id, exc)
                continue
            except RuntimeError:
                # Committed; only the audit line was lost.
                logger.exception("audit failed for completed booking %s", booking_id)
            except Exception:
                logger.exception("failed to complete booking %s", booking_id)
                continue
            completed.append(booking_id)
        if completed:
            logger.info("completed %d bookings", len(completed))
        return completed
