from datetime import date

from ..domain.errors import VenueNotFoundError
from ..domain.repositories import ShiftTemplateRepository, VenueRepository
from ..domain.services import ShiftInstance, expand_shift_instances, validate_date_range


async def list_instances(
    venue_repo: VenueRepository,
    shift_repo: ShiftTemplateRepository,
    *,
    venue_id: int,
    start: date,
    end: date,
    max_days: int,
) -> list[ShiftInstance]:
    """Bookable shift instances of a venue for every date in [start, end]."""
    validate_date_range(start, end, max_days=max_days)
    venue = await venue_repo.get(venue_id)
    if venue is None:
        raise VenueNotFoundError(f"venue {venue_id} not found")
    if not venue.is_active:
        return []
    templates = await shift_repo.list_for_venue(venue_id)
    return expand_shift_instances(venue_id, templates, start, end, max_days=max_days)
