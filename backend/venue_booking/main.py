import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response

from .config import get_settings
from .deps import get_ledger
from .routers import availability, bookings, catalog
from .tasks import sweep_forever
from .utils.request_id import REQUEST_ID_HEADER, resolve_request_id, set_request_id

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    if not settings.sweep_enabled:
        yield
        return

    stop = asyncio.Event()
    sweeper = asyncio.create_task(
        sweep_forever(get_ledger(), interval_seconds=settings.sweep_interval_seconds, stop=stop)
    )
    try:
        yield
    finally:
        stop.set()
        await sweeper


app = FastAPI(title="Venue Booking API", lifespan=lifespan)


async def request_id_middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
    set_request_id(request_id)
    try:
        response = await call_next(request)
    finally:
        set_request_id(None)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


app.middleware("http")(request_id_middleware)
app.include_router(catalog.router)
app.include_router(availability.router)
app.include_router(bookings.router)
