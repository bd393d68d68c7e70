"""
Scheduling conflict detection across individual and team bookings.

Two windows on the same date conflict iff NOT (end1 <= start2 OR start1 >= end2):
half-open intervals, so back-to-back bookings are allowed. Cancelled rooms
never conflict.
"""

from datetime import date, time
from typing import Iterable, Optional

from sqlalchemy import and_, not_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database.models import (
    IndividualRoom,
    IndividualRoomParticipant,
    RoomStatus,
    TeamRoom,
    TeamRoomStatus,
)


def _overlaps(model, start_time: time, end_time: time):
    """SQL form of the half-open overlap test against ``model``'s window."""
    return not_(or_(model.end_time <= start_time, model.start_time >= end_time))


def _individual_conflict_query(
    user_ids: Iterable[int],
    scheduled_date: date,
    start_time: time,
    end_time: time,
    exclude_room_id: Optional[int] = None,
):
    conditions = [
        IndividualRoomParticipant.user_id.in_(list(user_ids)),
        IndividualRoom.scheduled_date == scheduled_date,
        IndividualRoom.status != RoomStatus.CANCELLED.value,
        _overlaps(IndividualRoom, start_time, end_time),
    ]
    if exclude_room_id is not None:
        conditions.append(IndividualRoom.id != exclude_room_id)

    return (
        select(IndividualRoom.id)
        .join(IndividualRoomParticipant, IndividualRoomParticipant.room_id == IndividualRoom.id)
        .where(and_(*conditions))
        .limit(1)
    )


async def user_has_individual_conflict(
    session: AsyncSession,
    user_id: int,
    scheduled_date: date,
    start_time: time,
    end_time: time,
    exclude_room_id: Optional[int] = None,
) -> bool:
    """
    Check whether a user already sits in an overlapping individual room.

    Owners always hold a participant row, so this covers both owned and
    joined rooms.

    Args:
        session: Database session
        user_id: User to check
        scheduled_date: Day of the candidate booking
        start_time: Candidate start
        end_time: Candidate end
        exclude_room_id: Optional room to ignore (re-checking an existing room)

    Returns:
        True if a non-cancelled overlapping individual room exists
    """
    result = await session.execute(
        _individual_conflict_query([user_id], scheduled_date, start_time, end_time, exclude_room_id)
    )
    return result.first() is not None


async def team_has_team_conflict(
    session: AsyncSession,
    team_id: int,
    scheduled_date: date,
    start_time: time,
    end_time: time,
) -> bool:
    """
    Check whether a team (as creator or opponent) has an overlapping team room.

    Returns:
        True if a non-cancelled overlapping team room exists
    """
    result = await session.execute(
        select(TeamRoom.id)
        .where(
            and_(
                or_(TeamRoom.creator_team_id == team_id, TeamRoom.opponent_team_id == team_id),
                TeamRoom.scheduled_date == scheduled_date,
                TeamRoom.status != TeamRoomStatus.CANCELLED.value,
                _overlaps(TeamRoom, start_time, end_time),
            )
        )
        .limit(1)
    )
    return result.first() is not None


async def team_members_have_individual_conflict(
    session: AsyncSession,
    user_ids: Iterable[int],
    scheduled_date: date,
    start_time: time,
    end_time: time,
) -> bool:
    """
    Check whether ANY of the given users has an overlapping individual room.

    Runs as a single batched query rather than one query per member.

    Returns:
        True if at least one user conflicts; False for an empty user list
    """
    user_ids = list(user_ids)
    if not user_ids:
        return False

    result = await session.execute(
        _individual_conflict_query(user_ids, scheduled_date, start_time, end_time)
    )
    return result.first() is not None
