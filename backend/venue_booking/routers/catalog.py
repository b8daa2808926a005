from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_principal, get_session, require_admin
from ..domain.errors import BookingEngineError
from ..domain.services import Principal
from ..infrastructure.repositories import (
    SqlAlchemyBookingRepository,
    SqlAlchemyEventTypeRepository,
    SqlAlchemyPackageRepository,
    SqlAlchemyShiftTemplateRepository,
    SqlAlchemyVenueRepository,
)
from ..schemas import (
    EventTypeCreate,
    EventTypeRead,
    EventTypeUpdate,
    MenuCreate,
    MenuRead,
    MenuUpdate,
    PackageCreate,
    PackageRead,
    PackageUpdate,
    ShiftTemplateCreate,
    ShiftTemplateRead,
    ShiftTemplateUpdate,
    VenueCreate,
    VenueRead,
    VenueUpdate,
)
from ..usecases import catalog as catalog_usecase
from .errors import to_http_exception

router = APIRouter(prefix="", tags=["catalog"], dependencies=[Depends(get_principal)])


@router.get("/venues", response_model=List[VenueRead])
async def list_venues(
    include_inactive: bool = Query(default=False),
    guest_count: Optional[int] = Query(default=None, ge=1, description="Only venues seating at least this many"),
    session: AsyncSession = Depends(get_session),
) -> list[VenueRead]:
    venues = await catalog_usecase.list_venues(
        SqlAlchemyVenueRepository(session), include_inactive=include_inactive, min_capacity=guest_count
    )
    return [VenueRead.from_db(venue=venue) for venue in venues]


@router.get("/venues/{venue_id}", response_model=VenueRead)
async def get_venue(
    venue_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> VenueRead:
    try:
        venue = await catalog_usecase.get_venue(SqlAlchemyVenueRepository(session), venue_id=venue_id)
    except BookingEngineError as exc:
        raise to_http_exception(exc) from exc
    return VenueRead.from_db(venue=venue)


@router.post("/admin/venues", response_model=VenueRead, status_code=status.HTTP_201_CREATED)
async def create_venue(
    payload: VenueCreate,
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_admin),
) -> VenueRead:
    async with session.begin():
        venue = await catalog_usecase.create_venue(
            SqlAlchemyVenueRepository(session),
            principal=principal,
            name=payload.name,
            description=payload.description,
            location=payload.location,
            capacity=payload.capacity,
            is_active=payload.is_active,
        )
    return VenueRead.from_db(venue=venue)


@router.patch("/admin/venues/{venue_id}", response_model=VenueRead)
async def update_venue(
    payload: VenueUpdate,
    venue_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_admin),
) -> VenueRead:
    async with session.begin():
        try:
            venue = await catalog_usecase.update_venue(
                SqlAlchemyVenueRepository(session),
                SqlAlchemyBookingRepository(session),
                principal=principal,
                venue_id=venue_id,
                changes=payload.model_dump(exclude_unset=True),
            )
        except BookingEngineError as exc:
            raise to_http_exception(exc) from exc
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return VenueRead.from_db(venue=venue)


@router.get("/shift-templates", response_model=List[ShiftTemplateRead])
async def list_shift_templates(session: AsyncSession = Depends(get_session)) -> list[ShiftTemplateRead]:
    rows = await catalog_usecase.list_shift_templates(SqlAlchemyShiftTemplateRepository(session))
    return [ShiftTemplateRead.from_db(template=template, venue_ids=venue_ids) for template, venue_ids in rows]


@router.post("/admin/shift-templates", response_model=ShiftTemplateRead, status_code=status.HTTP_201_CREATED)
async def create_shift_template(
    payload: ShiftTemplateCreate,
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_admin),
) -> ShiftTemplateRead:
    async with session.begin():
        try:
            template, venue_ids = await catalog_usecase.create_shift_template(
                SqlAlchemyShiftTemplateRepository(session),
                SqlAlchemyVenueRepository(session),
                principal=principal,
                label=payload.label,
                description=payload.description,
                starts_at=payload.starts_at,
                ends_at=payload.ends_at,
                venue_ids=payload.venue_ids,
            )
        except BookingEngineError as exc:
            raise to_http_exception(exc) from exc
    return ShiftTemplateRead.from_db(template=template, venue_ids=venue_ids)


@router.patch("/admin/shift-templates/{shift_template_id}", response_model=ShiftTemplateRead)
async def update_shift_template(
    payload: ShiftTemplateUpdate,
    shift_template_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_admin),
) -> ShiftTemplateRead:
    async with session.begin():
        try:
            template, venue_ids = await catalog_usecase.update_shift_template(
                SqlAlchemyShiftTemplateRepository(session),
                SqlAlchemyVenueRepository(session),
                principal=principal,
                shift_template_id=shift_template_id,
                label=payload.label,
                description=payload.description,
                venue_ids=payload.venue_ids,
            )
        except BookingEngineError as exc:
            raise to_http_exception(exc) from exc
    return ShiftTemplateRead.from_db(template=template, venue_ids=venue_ids)


@router.get("/packages", response_model=List[PackageRead])
async def list_packages(
    include_inactive: bool = Query(default=False),
    session: AsyncSession = Depends(get_session),
) -> list[PackageRead]:
    packages = await catalog_usecase.list_packages(
        SqlAlchemyPackageRepository(session), include_inactive=include_inactive
    )
    return [PackageRead.from_db(package=package) for package in packages]


@router.post("/admin/packages", response_model=PackageRead, status_code=status.HTTP_201_CREATED)
async def create_package(
    payload: PackageCreate,
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_admin),
) -> PackageRead:
    async with session.begin():
        package = await catalog_usecase.create_package(
            SqlAlchemyPackageRepository(session),
            principal=principal,
            name=payload.name,
            description=payload.description,
            base_price=payload.base_price,
            per_person_price=payload.per_person_price,
            is_active=payload.is_active,
        )
    return PackageRead.from_db(package=package)


@router.get("/packages/{package_id}/menus", response_model=List[MenuRead])
async def list_menus(
    package_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> list[MenuRead]:
    try:
        rows = await catalog_usecase.list_menus(SqlAlchemyPackageRepository(session), package_id=package_id)
    except BookingEngineError as exc:
        raise to_http_exception(exc) from exc
    return [MenuRead.from_db(menu=menu, items=items) for menu, items in rows]


@router.post("/admin/packages/{package_id}/menus", response_model=MenuRead, status_code=status.HTTP_201_CREATED)
async def create_menu(
    payload: MenuCreate,
    package_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_admin),
) -> MenuRead:
    async with session.begin():
        try:
            menu, items = await catalog_usecase.create_menu(
                SqlAlchemyPackageRepository(session),
                principal=principal,
                package_id=package_id,
                name=payload.name,
                free_limit=payload.free_limit,
                items=[(item.name, item.price, item.priced_per_person) for item in payload.items],
            )
        except BookingEngineError as exc:
            raise to_http_exception(exc) from exc
    return MenuRead.from_db(menu=menu, items=items)


@router.patch("/admin/packages/{package_id}", response_model=PackageRead)
async def update_package(
    payload: PackageUpdate,
    package_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_admin),
) -> PackageRead:
    async with session.begin():
        try:
            package = await catalog_usecase.update_package(
                SqlAlchemyPackageRepository(session),
                principal=principal,
                package_id=package_id,
                changes=payload.model_dump(exclude_unset=True),
            )
        except BookingEngineError as exc:
            raise to_http_exception(exc) from exc
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return PackageRead.from_db(package=package)


@router.patch("/admin/menus/{menu_id}", response_model=MenuRead)
async def update_menu(
    payload: MenuUpdate,
    menu_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_admin),
) -> MenuRead:
    items = None
    if payload.items is not None:
        items = [(item.name, item.price, item.priced_per_person) for item in payload.items]
    async with session.begin():
        try:
            menu, menu_items = await catalog_usecase.update_menu(
                SqlAlchemyPackageRepository(session),
                principal=principal,
                menu_id=menu_id,
                name=payload.name,
                free_limit=payload.free_limit,
                items=items,
            )
        except BookingEngineError as exc:
            raise to_http_exception(exc) from exc
    return MenuRead.from_db(menu=menu, items=menu_items)


@router.get("/event-types", response_model=List[EventTypeRead])
async def list_event_types(
    include_inactive: bool = Query(default=False),
    session: AsyncSession = Depends(get_session),
) -> list[EventTypeRead]:
    rows = await catalog_usecase.list_event_types(
        SqlAlchemyEventTypeRepository(session), include_inactive=include_inactive
    )
    return [EventTypeRead.from_db(event_type=event_type) for event_type in rows]


@router.post("/admin/event-types", response_model=EventTypeRead, status_code=status.HTTP_201_CREATED)
async def create_event_type(
    payload: EventTypeCreate,
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_admin),
) -> EventTypeRead:
    async with session.begin():
        event_type = await catalog_usecase.create_event_type(
            SqlAlchemyEventTypeRepository(session),
            principal=principal,
            name=payload.name,
            description=payload.description,
            is_active=payload.is_active,
        )
    return EventTypeRead.from_db(event_type=event_type)


@router.patch("/admin/event-types/{event_type_id}", response_model=EventTypeRead)
async def update_event_type(
    payload: EventTypeUpdate,
    event_type_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_admin),
) -> EventTypeRead:
    async with session.begin():
        try:
            event_type = await catalog_usecase.update_event_type(
                SqlAlchemyEventTypeRepository(session),
                principal=principal,
                event_type_id=event_type_id,
                changes=payload.model_dump(exclude_unset=True),
            )
        except BookingEngineError as exc:
            raise to_http_exception(exc) from exc
    return EventTypeRead.from_db(event_type=event_type)
