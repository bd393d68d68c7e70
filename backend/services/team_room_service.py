"""
Team room engine: head-to-head match slots between two full-roster teams.

Room lifecycle:
    OPEN -> MATCHED   one-shot, when an opponent team joins
    OPEN/MATCHED -> CANCELLED   terminal, creator team's captain only

``opponent_team_id`` is NULL exactly while the room is OPEN. Joins take the
per-room lock before checking status, so at most one opponent is ever
accepted for a room.
"""

import logging
from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlalchemy.orm.attributes import set_committed_value

from backend.database.models import (
    Branch,
    NotificationType,
    Team,
    TeamRoom,
    TeamRoomStatus,
)
from backend.services import branch_service, conflict_service, notification_service, team_service
from backend.services.booking_validation import parse_date, parse_time, validate_booking_window
from backend.services.exceptions import (
    CannotJoinOwnRoom,
    InvalidStatus,
    NotCaptain,
    NotCreatorCaptain,
    RoomAlreadyMatched,
    RoomNotFound,
    TeamConflict,
    TeamMembersConflict,
    TeamNotFound,
    TeamNotFullRoster,
    TeamSizeMismatch,
)
from backend.utils.datetime_utils import format_date, format_time, format_timestamp, local_now, utcnow
from backend.utils.query_utils import LIKE_ESCAPE, contains_pattern, page_envelope, paginate

logger = logging.getLogger(__name__)


def parse_status(status: Optional[str]) -> Optional[str]:
    """Validate an optional team room status filter (case-insensitive)."""
    if status is None or not status.strip():
        return None
    try:
        return TeamRoomStatus(status.strip().upper()).value
    except ValueError:
        raise InvalidStatus("Invalid status value. Must be OPEN, MATCHED, or CANCELLED")


async def _lock_room(session: AsyncSession, room_id: int) -> Optional[TeamRoom]:
    """Take the per-room write lock and load a fresh snapshot of the team room."""
    await session.execute(
        update(TeamRoom)
        .where(TeamRoom.id == room_id)
        .values(lock_version=TeamRoom.lock_version + 1)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(
        select(TeamRoom).where(TeamRoom.id == room_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _write_room(session: AsyncSession, room: TeamRoom, **values) -> None:
    """Persist new column values and mirror them onto the loaded snapshot."""
    values["updated_at"] = utcnow()
    await session.execute(
        update(TeamRoom)
        .where(TeamRoom.id == room.id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    for key, value in values.items():
        set_committed_value(room, key, value)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def _team_summary(team: Optional[Team], member_count: int) -> Optional[Dict]:
    if team is None:
        return None
    return {
        "id": team.id,
        "name": team.name,
        "logo_url": team.logo_url,
        "roster_size": team.roster_size,
        "member_count": member_count,
    }


def room_to_dict(
    room: TeamRoom,
    branch: Optional[Branch],
    creator_team: Optional[Team],
    opponent_team: Optional[Team],
    creator_count: int,
    opponent_count: int,
) -> Dict:
    """Serialize a team room summary for API responses."""
    return {
        "id": room.id,
        "branch": branch_service.branch_to_dict(branch),
        "creator_team": _team_summary(creator_team, creator_count),
        "opponent_team": _team_summary(opponent_team, opponent_count),
        "scheduled_date": format_date(room.scheduled_date),
        "start_time": format_time(room.start_time),
        "end_time": format_time(room.end_time),
        "required_team_size": room.required_team_size,
        "status": room.status,
        "created_at": format_timestamp(room.created_at),
        "updated_at": format_timestamp(room.updated_at),
    }


async def rooms_to_dicts(session: AsyncSession, rooms: List[TeamRoom]) -> List[Dict]:
    """Serialize team rooms, batch-loading branches, teams and member counts."""
    if not rooms:
        return []
    branches = await branch_service.get_branches_by_ids(session, {r.branch_id for r in rooms})
    team_ids = {r.creator_team_id for r in rooms} | {
        r.opponent_team_id for r in rooms if r.opponent_team_id is not None
    }
    teams = await team_service.get_teams_by_ids(session, team_ids)
    counts = await team_service.member_counts(session, team_ids)

    return [
        room_to_dict(
            r,
            branches.get(r.branch_id),
            teams.get(r.creator_team_id),
            teams.get(r.opponent_team_id) if r.opponent_team_id is not None else None,
            counts.get(r.creator_team_id, 0),
            counts.get(r.opponent_team_id, 0) if r.opponent_team_id is not None else 0,
        )
        for r in rooms
    ]


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


async def create_room(
    session: AsyncSession,
    captain_id: int,
    branch_id: int,
    team_id: int,
    scheduled_date: str,
    start_time: str,
    end_time: str,
    now: Optional[datetime] = None,
) -> Dict:
    """
    Open a team room on behalf of a full-roster team.

    The room's required_team_size is a snapshot of the team's roster size.

    Args:
        session: Database session
        captain_id: Caller; must captain ``team_id``
        branch_id: Venue (must be active)
        team_id: Creator team
        scheduled_date: YYYY-MM-DD
        start_time: HH:MM
        end_time: HH:MM
        now: Current local time (defaults to wall clock in BOOKING_TIMEZONE)

    Returns:
        Team room summary dict (status OPEN, no opponent)

    Raises:
        BranchNotFound, TeamNotFound, NotCaptain, TeamNotFullRoster,
        InvalidInputError, InvalidTimeRange, BookingInPast,
        OutsideOperatingHours, TeamConflict, TeamMembersConflict
    """
    branch = await branch_service.get_active_branch(session, branch_id)

    team = await team_service.lock_active_team(session, team_id)

    if team.captain_id != captain_id:
        raise NotCaptain("Only the team captain can create team rooms")

    member_count = await team_service.count_members(session, team_id)
    if member_count < team.roster_size:
        raise TeamNotFullRoster(
            f"Team must have full roster ({team.roster_size} members) to create a team room"
        )

    day = parse_date(scheduled_date)
    start = parse_time(start_time, "Start time")
    end = parse_time(end_time, "End time")
    validate_booking_window(day, start, end, branch_service.operating_hours(branch), now or local_now())

    if await conflict_service.team_has_team_conflict(session, team_id, day, start, end):
        raise TeamConflict()

    member_ids = await team_service.get_member_user_ids(session, team_id)
    if await conflict_service.team_members_have_individual_conflict(session, member_ids, day, start, end):
        raise TeamMembersConflict()

    room = TeamRoom(
        branch_id=branch.id,
        creator_team_id=team_id,
        opponent_team_id=None,
        scheduled_date=day,
        start_time=start,
        end_time=end,
        required_team_size=team.roster_size,
        status=TeamRoomStatus.OPEN.value,
    )
    session.add(room)
    await session.flush()

    logger.info(f"Created team room {room.id} by team {team_id} (captain: {captain_id})")

    return room_to_dict(room, branch, team, None, member_count, 0)


async def join_room(session: AsyncSession, captain_id: int, room_id: int, opponent_team_id: int) -> Dict:
    """
    Match an OPEN team room with an opponent team.

    Raises:
        RoomNotFound: Missing or cancelled room
        RoomAlreadyMatched: Another team already joined
        TeamNotFound: Opponent team missing or disbanded
        NotCaptain: Caller does not captain the opponent team
        CannotJoinOwnRoom: Opponent is the creator team
        TeamSizeMismatch: Opponent roster size differs from the room's requirement
        TeamNotFullRoster: Opponent roster incomplete
        TeamConflict, TeamMembersConflict: Opponent schedule overlaps
    """
    room = await _lock_room(session, room_id)
    if room is None or room.status == TeamRoomStatus.CANCELLED.value:
        raise RoomNotFound("Room not found or cancelled")

    if room.status == TeamRoomStatus.MATCHED.value:
        raise RoomAlreadyMatched()

    opponent = await team_service.lock_active_team(session, opponent_team_id)

    if opponent.captain_id != captain_id:
        raise NotCaptain("Only the team captain can join team rooms")

    if room.creator_team_id == opponent_team_id:
        raise CannotJoinOwnRoom()

    if opponent.roster_size != room.required_team_size:
        raise TeamSizeMismatch(
            f"Team size mismatch. This room requires teams of {room.required_team_size} players"
        )

    opponent_count = await team_service.count_members(session, opponent_team_id)
    if opponent_count < opponent.roster_size:
        raise TeamNotFullRoster(
            f"Team must have full roster ({opponent.roster_size} members) to join"
        )

    if await conflict_service.team_has_team_conflict(
        session, opponent_team_id, room.scheduled_date, room.start_time, room.end_time
    ):
        raise TeamConflict()

    opponent_member_ids = await team_service.get_member_user_ids(session, opponent_team_id)
    if await conflict_service.team_members_have_individual_conflict(
        session, opponent_member_ids, room.scheduled_date, room.start_time, room.end_time
    ):
        raise TeamMembersConflict(
            "One or more of your team members have conflicting individual room bookings at this time"
        )

    await _write_room(
        session, room, opponent_team_id=opponent_team_id, status=TeamRoomStatus.MATCHED.value
    )
    logger.info(f"Team {opponent_team_id} joined room {room_id} (opponent)")

    creator = await session.get(Team, room.creator_team_id)
    creator_member_ids = await team_service.get_member_user_ids(session, room.creator_team_id)
    await notification_service.notify_safely(
        session,
        creator_member_ids + opponent_member_ids,
        NotificationType.BOOKING_CONFIRMATION,
        title="Match confirmed",
        message=(
            f"{creator.name} vs {opponent.name} on {format_date(room.scheduled_date)} "
            f"at {format_time(room.start_time)}"
        ),
        related_entity_type="TEAM_ROOM",
        related_entity_id=room_id,
    )

    branch = await session.get(Branch, room.branch_id)
    return room_to_dict(
        room,
        branch,
        creator,
        opponent,
        len(creator_member_ids),
        opponent_count,
    )


async def cancel_room(session: AsyncSession, captain_id: int, room_id: int) -> None:
    """
    Cancel a team room, OPEN or MATCHED.

    Raises:
        RoomNotFound: Missing room
        NotCreatorCaptain: Caller is not the creator team's current captain
    """
    room = await _lock_room(session, room_id)
    if room is None:
        raise RoomNotFound()

    creator = await session.get(Team, room.creator_team_id)
    if creator is None:
        raise TeamNotFound("Creator team not found")

    if creator.captain_id != captain_id:
        raise NotCreatorCaptain()

    was_matched = room.status == TeamRoomStatus.MATCHED.value
    await _write_room(session, room, status=TeamRoomStatus.CANCELLED.value)
    logger.info(f"Team room {room_id} cancelled by creator captain {captain_id}")

    if was_matched and room.opponent_team_id is not None:
        opponent = await session.get(Team, room.opponent_team_id)
        if opponent is not None:
            await notification_service.notify_safely(
                session,
                [opponent.captain_id],
                NotificationType.TEAM_UPDATE,
                title="Match cancelled",
                message=(
                    f"{creator.name} cancelled the match on "
                    f"{format_date(room.scheduled_date)} at {format_time(room.start_time)}"
                ),
                related_entity_type="TEAM_ROOM",
                related_entity_id=room_id,
            )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_all_rooms(
    session: AsyncSession,
    branch_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    team_size: Optional[int] = None,
    status: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
) -> Dict:
    """
    List non-cancelled team rooms with optional filters, soonest first.

    Raises:
        InvalidStatus: If ``status`` is not a known team room status
    """
    status_value = parse_status(status)

    query = select(TeamRoom).where(TeamRoom.status != TeamRoomStatus.CANCELLED.value)
    if branch_id is not None:
        query = query.where(TeamRoom.branch_id == branch_id)
    if start_date is not None:
        query = query.where(TeamRoom.scheduled_date >= start_date)
    if end_date is not None:
        query = query.where(TeamRoom.scheduled_date <= end_date)
    if team_size is not None:
        query = query.where(TeamRoom.required_team_size == team_size)
    if status_value is not None:
        query = query.where(TeamRoom.status == status_value)
    query = query.order_by(TeamRoom.scheduled_date, TeamRoom.start_time, TeamRoom.id)

    rooms, total_count = await paginate(session, query, page, page_size)
    return page_envelope(await rooms_to_dicts(session, rooms), total_count, page, page_size)


async def get_room_by_id(session: AsyncSession, room_id: int) -> Dict:
    """
    Team room detail with both teams' rosters.

    Raises:
        RoomNotFound: If the room does not exist
    """
    room = await session.get(TeamRoom, room_id)
    if room is None:
        raise RoomNotFound(f"Room not found with ID: {room_id}")

    branch = await session.get(Branch, room.branch_id)
    creator = await session.get(Team, room.creator_team_id)
    opponent = (
        await session.get(Team, room.opponent_team_id) if room.opponent_team_id is not None else None
    )

    return {
        "id": room.id,
        "branch": branch_service.branch_to_dict(branch),
        "creator_team": await team_service.team_detail(session, creator) if creator else None,
        "opponent_team": await team_service.team_detail(session, opponent) if opponent else None,
        "scheduled_date": format_date(room.scheduled_date),
        "start_time": format_time(room.start_time),
        "end_time": format_time(room.end_time),
        "required_team_size": room.required_team_size,
        "status": room.status,
        "created_at": format_timestamp(room.created_at),
        "updated_at": format_timestamp(room.updated_at),
    }


async def search_rooms(session: AsyncSession, query: str, limit: int = 10) -> List[Dict]:
    """Non-cancelled team rooms matching ``query`` on branch or either team's name."""
    pattern = contains_pattern(query)
    creator = aliased(Team)
    opponent = aliased(Team)
    result = await session.execute(
        select(TeamRoom)
        .join(Branch, Branch.id == TeamRoom.branch_id)
        .join(creator, creator.id == TeamRoom.creator_team_id)
        .outerjoin(opponent, opponent.id == TeamRoom.opponent_team_id)
        .where(
            and_(
                TeamRoom.status != TeamRoomStatus.CANCELLED.value,
                or_(
                    Branch.name.ilike(pattern, escape=LIKE_ESCAPE),
                    creator.name.ilike(pattern, escape=LIKE_ESCAPE),
                    opponent.name.ilike(pattern, escape=LIKE_ESCAPE),
                ),
            )
        )
        .order_by(TeamRoom.scheduled_date, TeamRoom.start_time)
        .limit(limit)
    )
    return await rooms_to_dicts(session, list(result.scalars().all()))
