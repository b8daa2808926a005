from datetime import date, datetime
from decimal import Decimal
from typing import Any, cast

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from venue_booking.deps import get_ledger, get_principal
from venue_booking.domain.errors import InvalidGuestCountError, InvalidTransitionError, SlotUnavailableError
from venue_booking.domain.services import Principal, Role
from venue_booking.ledger import BookingLedger
from venue_booking.models import Booking, BookingStatus
from venue_booking.routers import bookings as router
from venue_booking.schemas import BookingCreate

CUSTOMER = Principal(user_id=7)
ADMIN = Principal(user_id=1, role=Role.ADMIN)


def _booking(status: BookingStatus = BookingStatus.PENDING, booking_id: int = 5) -> Booking:
    now = datetime(2030, 6, 1, 9, 0)
    return Booking(
        id=booking_id,
        venue_id=1,
        shift_template_id=2,
        shift_date=date(2030, 6, 10),
        customer_id=CUSTOMER.user_id,
        package_id=3,
        event_type_id=None,
        menu_selections=[{"menu_id": 10, "item_ids": [100, 101]}],
        guest_count=20,
        status=status,
        active_slot_key="1:2030-06-10:2",
        base_fare=Decimal("900.00"),
        extra_charges=Decimal("100.00"),
        total_fare=Decimal("1000.00"),
        cancel_reason=None,
        created_at=now,
        updated_at=now,
        confirmed_at=None,
        cancelled_at=None,
        completed_at=None,
    )


class FakeLedger:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[tuple[str, Any]] = []

    def _result(self, name: str, args: Any, status: BookingStatus) -> Booking:
        self.calls.append((name, args))
        if self.error is not None:
            raise self.error
        return _booking(status)

    async def create_booking(self, principal: Principal, **kwargs: Any) -> Booking:
        return self._result("create", (principal, kwargs), BookingStatus.PENDING)

    async def confirm_booking(self, principal: Principal, booking_id: int) -> Booking:
        return self._result("confirm", (principal, booking_id), BookingStatus.CONFIRMED)

    async def cancel_booking(self, principal: Principal, booking_id: int, reason: str | None = None) -> Booking:
        return self._result("cancel", (principal, booking_id, reason), BookingStatus.CANCELLED)

    async def complete_booking(self, principal: Principal, booking_id: int) -> Booking:
        return self._result("complete", (principal, booking_id), BookingStatus.COMPLETED)

    async def expire_pending_bookings(self, older_than: Any = None, *, principal: Principal | None = None) -> list[int]:
        self.calls.append(("expire", principal))
        return [4, 6]


def _client(ledger: FakeLedger, principal: Principal = CUSTOMER) -> TestClient:
    app = FastAPI()
    app.include_router(router.router)
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_principal] = lambda: principal
    return TestClient(app)


_PAYLOAD = {
    "venue_id": 1,
    "shift_template_id": 2,
    "shift_date": "2030-06-10",
    "package_id": 3,
    "guest_count": 20,
    "menu_selections": {"10": [100, 101]},
}


def test_create_booking_returns_pending_with_fare() -> None:
    ledger = FakeLedger()
    resp = _client(ledger).post("/bookings", json=_PAYLOAD)

    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "pending"
    assert body["total_fare"] == "1000.00"
    assert body["menu_selections"] == {"10": [100, 101]}
    principal, kwargs = ledger.calls[0][1]
    assert principal == CUSTOMER
    assert kwargs["menu_selections"] == {10: [100, 101]}
    assert kwargs["customer_id"] is None


@pytest.mark.parametrize(
    ("error", "status_code", "name"),
    [
        (SlotUnavailableError("shift instance is already booked"), 409, "SlotUnavailableError"),
        (InvalidGuestCountError("guest_count exceeds venue capacity"), 422, "InvalidGuestCountError"),
    ],
)
def test_create_booking_maps_domain_errors(error: Exception, status_code: int, name: str) -> None:
    resp = _client(FakeLedger(error=error)).post("/bookings", json=_PAYLOAD)
    assert resp.status_code == status_code
    assert resp.json()["detail"]["error"] == name


def test_confirm_of_cancelled_booking_conflicts() -> None:
    resp = _client(FakeLedger(error=InvalidTransitionError("cannot move"))).post("/bookings/5/confirm")
    assert resp.status_code == 409


def test_cancel_passes_reason() -> None:
    ledger = FakeLedger()
    resp = _client(ledger).post("/bookings/5/cancel", json={"reason": "weather"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"
    assert ledger.calls[0] == ("cancel", (CUSTOMER, 5, "weather"))


def test_cancel_without_body() -> None:
    ledger = FakeLedger()
    resp = _client(ledger).post("/bookings/5/cancel")
    assert resp.status_code == 200
    assert ledger.calls[0] == ("cancel", (CUSTOMER, 5, None))


def test_complete_and_expire_are_admin_only() -> None:
    ledger = FakeLedger()
    assert _client(ledger).post("/bookings/5/complete").status_code == 403
    assert _client(ledger).post("/admin/bookings/expire").status_code == 403
    assert ledger.calls == []

    admin_client = _client(ledger, ADMIN)
    assert admin_client.post("/bookings/5/complete").json()["status"] == "completed"
    resp = admin_client.post("/admin/bookings/expire")
    assert resp.json() == {"expired_booking_ids": [4, 6]}
    assert ledger.calls[-1] == ("expire", ADMIN)


@pytest.mark.asyncio
async def test_confirm_audit_failure_returns_500() -> None:
    ledger = FakeLedger(error=RuntimeError("failed to emit audit log"))
    with pytest.raises(HTTPException) as excinfo:
        await router.confirm_booking(booking_id=5, ledger=cast(BookingLedger, ledger), principal=CUSTOMER)
    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_create_forwards_customer_for_admin() -> None:
    ledger = FakeLedger()
    payload = BookingCreate(**{**_PAYLOAD, "customer_id": 7, "event_type_id": 4})
    result = await router.create_booking(payload=payload, ledger=cast(BookingLedger, ledger), principal=ADMIN)
    assert result.booking_id == 5
    assert ledger.calls[0][1][1]["customer_id"] == 7
    assert ledger.calls[0][1][1]["event_type_id"] == 4
