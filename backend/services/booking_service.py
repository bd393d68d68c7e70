"""
Booking aggregator: a user's individual and team bookings in one list.

Individual bookings are the rooms the user holds a seat in (owned or
joined). Team bookings are the team rooms of every team the user belongs
to, on either side of the match.
"""

import enum
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database.models import (
    IndividualRoom,
    IndividualRoomParticipant,
    RoomStatus,
    TeamRoom,
    TeamRoomStatus,
)
from backend.services import branch_service, individual_room_service, team_service, user_service
from backend.services.exceptions import InvalidInputError
from backend.utils.datetime_utils import format_date, format_time, format_timestamp, local_now

logger = logging.getLogger(__name__)

WAITING_FOR_OPPONENT = "Waiting for opponent"


class BookingScope(str, enum.Enum):
    """Which slice of a user's bookings to return."""

    ALL = "ALL"
    UPCOMING = "UPCOMING"
    PAST = "PAST"


class BookingType(str, enum.Enum):
    INDIVIDUAL = "INDIVIDUAL"
    TEAM = "TEAM"


def parse_scope(scope) -> BookingScope:
    """Accept a BookingScope or its name in any case."""
    if isinstance(scope, BookingScope):
        return scope
    try:
        return BookingScope(str(scope).strip().upper())
    except ValueError:
        raise InvalidInputError("Invalid scope value. Must be ALL, UPCOMING, or PAST")


def _time_clause(model, scope: BookingScope, now: datetime):
    """
    SQL filter for the upcoming/past split.

    Upcoming: date > today, or today with start >= now.
    Past: the strict complement.
    """
    today = now.date()
    current_time = now.time()
    if scope == BookingScope.UPCOMING:
        return or_(
            model.scheduled_date > today,
            and_(model.scheduled_date == today, model.start_time >= current_time),
        )
    return or_(
        model.scheduled_date < today,
        and_(model.scheduled_date == today, model.start_time < current_time),
    )


async def _individual_rooms(
    session: AsyncSession, user_id: int, scope: BookingScope, now: datetime
) -> List[IndividualRoom]:
    query = (
        select(IndividualRoom)
        .join(IndividualRoomParticipant, IndividualRoomParticipant.room_id == IndividualRoom.id)
        .where(IndividualRoomParticipant.user_id == user_id)
    )
    if scope != BookingScope.ALL:
        query = query.where(
            IndividualRoom.status != RoomStatus.CANCELLED.value,
            _time_clause(IndividualRoom, scope, now),
        )
    result = await session.execute(query)
    return list(result.scalars().unique().all())


async def _team_rooms(
    session: AsyncSession, user_id: int, scope: BookingScope, now: datetime
) -> List[TeamRoom]:
    team_ids = await team_service.get_user_team_ids(session, user_id)
    if not team_ids:
        return []

    query = select(TeamRoom).where(
        or_(TeamRoom.creator_team_id.in_(team_ids), TeamRoom.opponent_team_id.in_(team_ids))
    )
    if scope != BookingScope.ALL:
        query = query.where(
            TeamRoom.status != TeamRoomStatus.CANCELLED.value,
            _time_clause(TeamRoom, scope, now),
        )
    result = await session.execute(query)
    return list(result.scalars().unique().all())


async def _individual_records(session: AsyncSession, rooms: List[IndividualRoom]) -> List[Dict]:
    if not rooms:
        return []
    branches = await branch_service.get_branches_by_ids(session, {r.branch_id for r in rooms})
    owners = await user_service.get_users_by_ids(session, {r.owner_id for r in rooms})
    counts = await individual_room_service.participant_counts(session, [r.id for r in rooms])

    records = []
    for room in rooms:
        owner = owners.get(room.owner_id)
        records.append({
            "id": room.id,
            "booking_type": BookingType.INDIVIDUAL.value,
            "branch": branch_service.branch_to_dict(branches.get(room.branch_id)),
            "scheduled_date": format_date(room.scheduled_date),
            "start_time": format_time(room.start_time),
            "end_time": format_time(room.end_time),
            "details": {
                "total_slots": room.total_slots,
                "filled_slots": counts.get(room.id, 0),
                "owner_name": owner.full_name if owner else None,
                "creator_team_name": None,
                "opponent_team_name": None,
                "required_team_size": None,
            },
            "status": room.status,
            "created_at": format_timestamp(room.created_at),
        })
    return records


async def _team_records(session: AsyncSession, rooms: List[TeamRoom]) -> List[Dict]:
    if not rooms:
        return []
    branches = await branch_service.get_branches_by_ids(session, {r.branch_id for r in rooms})
    team_ids = {r.creator_team_id for r in rooms} | {
        r.opponent_team_id for r in rooms if r.opponent_team_id is not None
    }
    teams = await team_service.get_teams_by_ids(session, team_ids)

    records = []
    for room in rooms:
        creator = teams.get(room.creator_team_id)
        opponent = teams.get(room.opponent_team_id) if room.opponent_team_id is not None else None
        records.append({
            "id": room.id,
            "booking_type": BookingType.TEAM.value,
            "branch": branch_service.branch_to_dict(branches.get(room.branch_id)),
            "scheduled_date": format_date(room.scheduled_date),
            "start_time": format_time(room.start_time),
            "end_time": format_time(room.end_time),
            "details": {
                "total_slots": None,
                "filled_slots": None,
                "owner_name": None,
                "creator_team_name": creator.name if creator else None,
                "opponent_team_name": opponent.name if opponent else WAITING_FOR_OPPONENT,
                "required_team_size": room.required_team_size,
            },
            "status": room.status,
            "created_at": format_timestamp(room.created_at),
        })
    return records


async def get_bookings(
    session: AsyncSession,
    user_id: int,
    scope=BookingScope.ALL,
    now: Optional[datetime] = None,
) -> List[Dict]:
    """
    Merge a user's individual and team bookings into one sorted list.

    Args:
        session: Database session
        user_id: User whose bookings to collect
        scope: ALL (every booking, cancelled included), UPCOMING or PAST
            (both exclude cancelled bookings)
        now: Current local time (defaults to wall clock in BOOKING_TIMEZONE)

    Returns:
        Booking records tagged INDIVIDUAL or TEAM. ALL and PAST are newest
        first by (date, start time); UPCOMING is soonest first.

    Raises:
        InvalidInputError: If ``scope`` is not a known scope
    """
    scope = parse_scope(scope)
    now = now or local_now()

    records = await _individual_records(session, await _individual_rooms(session, user_id, scope, now))
    records += await _team_records(session, await _team_rooms(session, user_id, scope, now))

    # HH:MM and YYYY-MM-DD sort correctly as strings
    records.sort(
        key=lambda r: (r["scheduled_date"], r["start_time"]),
        reverse=scope != BookingScope.UPCOMING,
    )
    return records
