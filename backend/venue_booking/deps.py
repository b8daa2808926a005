from typing import AsyncIterator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .database import async_session
from .domain.services import Principal
from .ledger import BookingLedger
from .utils.auth import decode_access_token
from .utils.locks import slot_locks

_BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session


async def get_principal(authorization: str | None = Header(default=None)) -> Principal:
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers=_BEARER_CHALLENGE,
        )
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Bearer token required",
            headers=_BEARER_CHALLENGE,
        )
    settings = get_settings()
    try:
        return decode_access_token(token.strip(), secret=settings.auth_secret, algorithms=[settings.auth_algorithm])
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers=_BEARER_CHALLENGE,
        ) from exc


async def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="admin role required")
    return principal


def get_ledger() -> BookingLedger:
    return BookingLedger(async_session, locks=slot_locks, hold_duration=get_settings().hold_duration)
