"""
Cross-entity search over branches, rooms and teams.
"""

from typing import Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from backend.services import branch_service, individual_room_service, team_room_service, team_service
from backend.services.exceptions import InvalidInputError
import logging

logger = logging.getLogger(__name__)

RESULTS_PER_CATEGORY = 10

SEARCH_TYPES = ("branches", "rooms", "individual_rooms", "team_rooms", "teams")


def _empty_result() -> Dict:
    return {
        "branches": [],
        "individual_rooms": [],
        "team_rooms": [],
        "teams": [],
        "total_results": 0,
    }


async def search(session: AsyncSession, query: Optional[str], type: Optional[str] = None) -> Dict:
    """
    Search every category, or just one, for a case-insensitive substring.

    Args:
        session: Database session
        query: Text to look for; blank returns an empty result
        type: One of branches, rooms (both room kinds), individual_rooms,
            team_rooms, teams; None or blank searches everything

    Returns:
        Dict with a list per category (at most 10 each) and ``total_results``

    Raises:
        InvalidInputError: If ``type`` is not a known category
    """
    result = _empty_result()
    if query is None or not query.strip():
        return result

    kind = (type or "").strip().lower()
    if kind and kind not in SEARCH_TYPES:
        raise InvalidInputError(
            "Invalid search type. Must be branches, rooms, individual_rooms, team_rooms, or teams"
        )
    everything = not kind

    if everything or kind == "branches":
        result["branches"] = await branch_service.search_branches(
            session, query, limit=RESULTS_PER_CATEGORY
        )
    if everything or kind in ("rooms", "individual_rooms"):
        result["individual_rooms"] = await individual_room_service.search_rooms(
            session, query, limit=RESULTS_PER_CATEGORY
        )
    if everything or kind in ("rooms", "team_rooms"):
        result["team_rooms"] = await team_room_service.search_rooms(
            session, query, limit=RESULTS_PER_CATEGORY
        )
    if everything or kind == "teams":
        result["teams"] = await team_service.search_teams(session, query, limit=RESULTS_PER_CATEGORY)

    result["total_results"] = sum(
        len(result[key]) for key in ("branches", "individual_rooms", "team_rooms", "teams")
    )
    logger.debug(f"Search '{query.strip()}' (type={kind or 'all'}) -> {result['total_results']} results")
    return result
