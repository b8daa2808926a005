"""Periodic maintenance of the booking ledger."""

from __future__ import annotations

import asyncio
import logging

from .ledger import BookingLedger

logger = logging.getLogger(__name__)


async def run_sweep(ledger: BookingLedger) -> dict[str, int]:
    """Release lapsed holds, then complete bookings whose shift date has passed."""
    expired = await ledger.expire_pending_bookings()
    completed = await ledger.complete_elapsed_bookings()
    return {"expired": len(expired), "completed": len(completed)}


async def sweep_forever(ledger: BookingLedger, *, interval_seconds: float, stop: asyncio.Event) -> None:
    logger.info("booking sweeper started (interval=%ss)", interval_seconds)
    while not stop.is_set():
        try:
            await run_sweep(ledger)
        except Exception:
            # A failed round (e.g. database unavailable) is retried on the next tick.
            logger.exception("booking sweep failed")
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            pass
    logger.info("booking sweeper stopped")
