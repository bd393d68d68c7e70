"""
Branch service - venue listing, detail and admin CRUD.

Branches are never hard-deleted; deactivation hides them from booking.
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database.models import Branch
from backend.services.booking_validation import OperatingHours, parse_time, validate_operating_hours
from backend.services.exceptions import BranchNotFound
from backend.utils.datetime_utils import format_time, format_timestamp
from backend.utils.query_utils import LIKE_ESCAPE, contains_pattern, page_envelope, paginate

logger = logging.getLogger(__name__)

# Fields a partial update may touch, besides the operating hours
_UPDATABLE_FIELDS = (
    "name",
    "address",
    "google_maps_url",
    "contact_phone",
    "contact_email",
    "latitude",
    "longitude",
    "is_active",
)


def branch_to_dict(branch: Optional[Branch]) -> Optional[Dict]:
    """Serialize a branch for API responses."""
    if branch is None:
        return None
    return {
        "id": branch.id,
        "name": branch.name,
        "address": branch.address,
        "google_maps_url": branch.google_maps_url,
        "operating_hours_start": format_time(branch.operating_hours_start),
        "operating_hours_end": format_time(branch.operating_hours_end),
        "contact_phone": branch.contact_phone,
        "contact_email": branch.contact_email,
        "latitude": branch.latitude,
        "longitude": branch.longitude,
        "is_active": branch.is_active,
        "created_at": format_timestamp(branch.created_at),
        "updated_at": format_timestamp(branch.updated_at),
    }


def operating_hours(branch: Branch) -> OperatingHours:
    """Opening window of ``branch``."""
    return OperatingHours(branch.operating_hours_start, branch.operating_hours_end)


async def get_active_branch(session: AsyncSession, branch_id: int) -> Branch:
    """
    Load an active branch.

    Raises:
        BranchNotFound: If the branch is missing or deactivated
    """
    result = await session.execute(
        select(Branch).where(Branch.id == branch_id, Branch.is_active == True)  # noqa: E712
    )
    branch = result.scalar_one_or_none()
    if branch is None:
        raise BranchNotFound()
    return branch


async def get_branches_by_ids(session: AsyncSession, branch_ids: Iterable[int]) -> Dict[int, Branch]:
    """Batch-load branches keyed by ID (active or not)."""
    branch_ids = set(branch_ids)
    if not branch_ids:
        return {}
    result = await session.execute(select(Branch).where(Branch.id.in_(branch_ids)))
    return {b.id: b for b in result.scalars().all()}


async def get_all_branches(
    session: AsyncSession, name: Optional[str] = None, page: int = 1, page_size: int = 20
) -> Dict:
    """
    List active branches, optionally filtered by a name substring.

    Returns:
        Dict with ``items``, ``total_count``, ``page``, ``page_size``.
    """
    query = select(Branch).where(Branch.is_active == True)  # noqa: E712
    if name and name.strip():
        query = query.where(Branch.name.ilike(contains_pattern(name), escape=LIKE_ESCAPE))
    query = query.order_by(Branch.name, Branch.id)

    branches, total_count = await paginate(session, query, page, page_size)
    return page_envelope([branch_to_dict(b) for b in branches], total_count, page, page_size)


async def get_all_active_branches(session: AsyncSession) -> List[Dict]:
    """Return every active branch ordered by name (for pickers)."""
    result = await session.execute(
        select(Branch).where(Branch.is_active == True).order_by(Branch.name)  # noqa: E712
    )
    return [branch_to_dict(b) for b in result.scalars().all()]


async def search_branches(session: AsyncSession, query: str, limit: int = 10) -> List[Dict]:
    """Active branches whose name or address contains ``query``."""
    pattern = contains_pattern(query)
    result = await session.execute(
        select(Branch)
        .where(
            Branch.is_active == True,  # noqa: E712
            or_(
                Branch.name.ilike(pattern, escape=LIKE_ESCAPE),
                Branch.address.ilike(pattern, escape=LIKE_ESCAPE),
            ),
        )
        .order_by(Branch.name)
        .limit(limit)
    )
    return [branch_to_dict(b) for b in result.scalars().all()]


async def get_branch_by_id(session: AsyncSession, branch_id: int) -> Dict:
    """
    Fetch an active branch.

    Raises:
        BranchNotFound: If missing or deactivated
    """
    result = await session.execute(
        select(Branch).where(Branch.id == branch_id, Branch.is_active == True)  # noqa: E712
    )
    branch = result.scalar_one_or_none()
    if branch is None:
        raise BranchNotFound(f"Branch not found with ID: {branch_id}")
    return branch_to_dict(branch)


async def create_branch(
    session: AsyncSession,
    name: str,
    address: str,
    operating_hours_start: str,
    operating_hours_end: str,
    google_maps_url: Optional[str] = None,
    contact_phone: Optional[str] = None,
    contact_email: Optional[str] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
) -> Dict:
    """
    Create an active branch.

    Args:
        operating_hours_start: Opening time, HH:MM
        operating_hours_end: Closing time, HH:MM (must be after opening)

    Raises:
        InvalidInputError: On malformed times or inverted hours
    """
    hours = OperatingHours(
        parse_time(operating_hours_start, "Operating hours start"),
        parse_time(operating_hours_end, "Operating hours end"),
    )
    validate_operating_hours(hours)

    branch = Branch(
        name=name,
        address=address,
        google_maps_url=google_maps_url,
        operating_hours_start=hours.start,
        operating_hours_end=hours.end,
        contact_phone=contact_phone,
        contact_email=contact_email,
        latitude=latitude,
        longitude=longitude,
        is_active=True,
    )
    session.add(branch)
    await session.flush()

    logger.info(f"Created new branch: {branch.name} with ID: {branch.id}")
    return branch_to_dict(branch)


async def update_branch(session: AsyncSession, branch_id: int, **changes) -> Dict:
    """
    Partially update a branch (active or not).

    Only keys with non-None values are applied. Operating hours are given
    as HH:MM strings; the resulting window must stay valid.

    Raises:
        BranchNotFound: If the branch does not exist
        InvalidInputError: On malformed times or inverted hours
    """
    branch = await session.get(Branch, branch_id)
    if branch is None:
        raise BranchNotFound(f"Branch not found with ID: {branch_id}")

    start = branch.operating_hours_start
    end = branch.operating_hours_end
    if changes.get("operating_hours_start") is not None:
        start = parse_time(changes["operating_hours_start"], "Operating hours start")
    if changes.get("operating_hours_end") is not None:
        end = parse_time(changes["operating_hours_end"], "Operating hours end")
    validate_operating_hours(OperatingHours(start, end))

    branch.operating_hours_start = start
    branch.operating_hours_end = end
    for field in _UPDATABLE_FIELDS:
        if changes.get(field) is not None:
            setattr(branch, field, changes[field])

    await session.flush()
    await session.refresh(branch)

    logger.info(f"Updated branch: {branch.name} with ID: {branch.id}")
    return branch_to_dict(branch)


async def delete_branch(session: AsyncSession, branch_id: int) -> None:
    """
    Soft-delete a branch by deactivating it.

    Raises:
        BranchNotFound: If the branch does not exist
    """
    branch = await session.get(Branch, branch_id)
    if branch is None:
        raise BranchNotFound(f"Branch not found with ID: {branch_id}")

    branch.is_active = False
    await session.flush()
    logger.info(f"Soft deleted branch with ID: {branch_id}")
