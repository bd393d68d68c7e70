"""
Individual room engine: create, join, leave, cancel and listing.

Room lifecycle:
    OPEN <-> FULL   driven by capacity, recomputed after every membership change
    OPEN/FULL -> CANCELLED   terminal, owner only

Every membership change first takes the per-room write lock (see
``_lock_room``), then re-reads the room and its participant count, so two
late joiners can never both take the last slot.
"""

import logging
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from backend.database.models import (
    Branch,
    IndividualRoom,
    IndividualRoomParticipant,
    NotificationType,
    RoomStatus,
    User,
)
from backend.services import branch_service, conflict_service, notification_service, user_service
from backend.services.booking_validation import parse_date, parse_time, validate_booking_window
from backend.services.exceptions import (
    AlreadyJoined,
    InvalidInputError,
    InvalidStatus,
    NotOwner,
    NotParticipant,
    OwnerCannotLeave,
    RoomFull,
    RoomNotFound,
    TimeConflict,
)
from backend.utils.datetime_utils import format_date, format_time, format_timestamp, local_now, utcnow
from backend.utils.query_utils import LIKE_ESCAPE, contains_pattern, page_envelope, paginate

logger = logging.getLogger(__name__)

MIN_TOTAL_SLOTS = 2


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


def recompute_status(status: str, filled_slots: int, total_slots: int) -> str:
    """
    Capacity-driven status for a room.

    CANCELLED is terminal. Otherwise a room is FULL exactly when every
    slot is taken and OPEN as soon as one frees up.
    """
    if status == RoomStatus.CANCELLED.value:
        return status
    if filled_slots >= total_slots:
        return RoomStatus.FULL.value
    return RoomStatus.OPEN.value


def parse_status(status: Optional[str]) -> Optional[str]:
    """Validate an optional status filter value (case-insensitive)."""
    if status is None or not status.strip():
        return None
    try:
        return RoomStatus(status.strip().upper()).value
    except ValueError:
        raise InvalidStatus("Invalid status value. Must be OPEN, FULL, or CANCELLED")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


async def _lock_room(session: AsyncSession, room_id: int) -> Optional[IndividualRoom]:
    """
    Take the per-room write lock and load a fresh snapshot of the room.

    Bumping ``lock_version`` row-locks the room on PostgreSQL and takes the
    database write lock on SQLite; concurrent writers on the same room wait
    here until the holder commits.
    """
    await session.execute(
        update(IndividualRoom)
        .where(IndividualRoom.id == room_id)
        .values(lock_version=IndividualRoom.lock_version + 1)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(
        select(IndividualRoom)
        .where(IndividualRoom.id == room_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def count_participants(session: AsyncSession, room_id: int) -> int:
    """Number of participant rows (owner included) in a room."""
    result = await session.execute(
        select(func.count(IndividualRoomParticipant.id)).where(
            IndividualRoomParticipant.room_id == room_id
        )
    )
    return result.scalar() or 0


async def _is_participant(session: AsyncSession, room_id: int, user_id: int) -> bool:
    result = await session.execute(
        select(IndividualRoomParticipant.id).where(
            IndividualRoomParticipant.room_id == room_id,
            IndividualRoomParticipant.user_id == user_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def participant_counts(session: AsyncSession, room_ids: Iterable[int]) -> Dict[int, int]:
    """Batch participant counts keyed by room ID."""
    room_ids = list(room_ids)
    if not room_ids:
        return {}
    result = await session.execute(
        select(IndividualRoomParticipant.room_id, func.count(IndividualRoomParticipant.id))
        .where(IndividualRoomParticipant.room_id.in_(room_ids))
        .group_by(IndividualRoomParticipant.room_id)
    )
    return {room_id: count for room_id, count in result.all()}


async def _participant_user_ids(session: AsyncSession, room_id: int) -> List[int]:
    result = await session.execute(
        select(IndividualRoomParticipant.user_id).where(
            IndividualRoomParticipant.room_id == room_id
        )
    )
    return list(result.scalars().all())


async def _apply_capacity(session: AsyncSession, room: IndividualRoom) -> int:
    """
    Recompute and persist the room's status after a membership change.

    Reads the current participant count, derives the new status and writes
    it back only when it changed. Returns the filled slot count.
    """
    filled = await count_participants(session, room.id)
    new_status = recompute_status(room.status, filled, room.total_slots)
    if new_status != room.status:
        await session.execute(
            update(IndividualRoom)
            .where(IndividualRoom.id == room.id)
            .values(status=new_status, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        previous = room.status
        set_committed_value(room, "status", new_status)
        if new_status == RoomStatus.FULL.value:
            logger.info(f"Room {room.id} auto-closed (full capacity)")
        elif previous == RoomStatus.FULL.value:
            logger.info(f"Room {room.id} reopened after participant left")
    return filled


async def _set_status(session: AsyncSession, room: IndividualRoom, status: RoomStatus) -> None:
    await session.execute(
        update(IndividualRoom)
        .where(IndividualRoom.id == room.id)
        .values(status=status.value, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    set_committed_value(room, "status", status.value)


def room_to_dict(
    room: IndividualRoom, branch: Optional[Branch], owner: Optional[User], filled_slots: int
) -> Dict:
    """Serialize a room summary for API responses."""
    return {
        "id": room.id,
        "branch": branch_service.branch_to_dict(branch),
        "owner": user_service.user_summary(owner),
        "scheduled_date": format_date(room.scheduled_date),
        "start_time": format_time(room.start_time),
        "end_time": format_time(room.end_time),
        "total_slots": room.total_slots,
        "filled_slots": filled_slots,
        "available_slots": room.total_slots - filled_slots,
        "notes": room.notes,
        "status": room.status,
        "created_at": format_timestamp(room.created_at),
        "updated_at": format_timestamp(room.updated_at),
    }


async def rooms_to_dicts(session: AsyncSession, rooms: List[IndividualRoom]) -> List[Dict]:
    """Serialize rooms, batch-loading branches, owners and counts."""
    if not rooms:
        return []
    branches = await branch_service.get_branches_by_ids(session, {r.branch_id for r in rooms})
    owners = await user_service.get_users_by_ids(session, {r.owner_id for r in rooms})
    counts = await participant_counts(session, [r.id for r in rooms])
    return [
        room_to_dict(r, branches.get(r.branch_id), owners.get(r.owner_id), counts.get(r.id, 0))
        for r in rooms
    ]


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


async def create_room(
    session: AsyncSession,
    owner_id: int,
    branch_id: int,
    scheduled_date: str,
    start_time: str,
    end_time: str,
    total_slots: int,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict:
    """
    Create an individual room and seat its owner.

    Args:
        session: Database session
        owner_id: Caller creating the room
        branch_id: Venue (must be active)
        scheduled_date: YYYY-MM-DD
        start_time: HH:MM
        end_time: HH:MM, after start_time
        total_slots: Capacity including the owner (>= 2)
        notes: Optional free text
        now: Current local time (defaults to wall clock in BOOKING_TIMEZONE)

    Returns:
        Room summary dict with filled_slots == 1

    Raises:
        BranchNotFound, InvalidInputError, InvalidTimeRange, BookingInPast,
        OutsideOperatingHours, TimeConflict
    """
    branch = await branch_service.get_active_branch(session, branch_id)

    day = parse_date(scheduled_date)
    start = parse_time(start_time, "Start time")
    end = parse_time(end_time, "End time")
    if total_slots is None or total_slots < MIN_TOTAL_SLOTS:
        raise InvalidInputError(f"Total slots must be at least {MIN_TOTAL_SLOTS}")

    validate_booking_window(day, start, end, branch_service.operating_hours(branch), now or local_now())

    await user_service.lock_user(session, owner_id)
    if await conflict_service.user_has_individual_conflict(session, owner_id, day, start, end):
        raise TimeConflict()

    room = IndividualRoom(
        branch_id=branch.id,
        owner_id=owner_id,
        scheduled_date=day,
        start_time=start,
        end_time=end,
        total_slots=total_slots,
        notes=notes,
        status=RoomStatus.OPEN.value,
    )
    session.add(room)
    await session.flush()

    session.add(IndividualRoomParticipant(room_id=room.id, user_id=owner_id, joined_at=utcnow()))
    await session.flush()

    logger.info(f"Created individual room {room.id} by user {owner_id}")

    filled = await _apply_capacity(session, room)

    owner = await session.get(User, owner_id)
    return room_to_dict(room, branch, owner, filled)


async def join_room(session: AsyncSession, user_id: int, room_id: int) -> Dict:
    """
    Take a slot in an individual room.

    The capacity check and the insert run under the room lock, so the last
    slot is handed out at most once. Reaching capacity flips the room to FULL.

    Returns:
        Updated room summary dict

    Raises:
        RoomNotFound: Missing or cancelled room
        RoomFull: Room is FULL or has no free slot
        AlreadyJoined: Caller already holds a slot
        TimeConflict: Caller has an overlapping individual booking
    """
    room = await _lock_room(session, room_id)
    if room is None or room.status == RoomStatus.CANCELLED.value:
        raise RoomNotFound("Room not found or cancelled")

    filled = await count_participants(session, room_id)
    if room.status == RoomStatus.FULL.value or filled >= room.total_slots:
        raise RoomFull()

    if await _is_participant(session, room_id, user_id):
        raise AlreadyJoined()

    # Room lock first, then user lock
    await user_service.lock_user(session, user_id)
    if await conflict_service.user_has_individual_conflict(
        session, user_id, room.scheduled_date, room.start_time, room.end_time
    ):
        raise TimeConflict()

    session.add(IndividualRoomParticipant(room_id=room_id, user_id=user_id, joined_at=utcnow()))
    await session.flush()
    logger.info(f"User {user_id} joined room {room_id}")

    filled = await _apply_capacity(session, room)

    users = await user_service.get_users_by_ids(session, [user_id, room.owner_id])
    joiner = users.get(user_id)
    joiner_name = joiner.full_name if joiner else "Someone"
    if room.owner_id != user_id:
        await notification_service.notify_safely(
            session,
            [room.owner_id],
            NotificationType.ROOM_JOINED,
            title="New participant",
            message=f"{joiner_name} joined your room on {format_date(room.scheduled_date)}",
            related_entity_type="INDIVIDUAL_ROOM",
            related_entity_id=room_id,
        )
    if room.status == RoomStatus.FULL.value:
        await notification_service.notify_safely(
            session,
            await _participant_user_ids(session, room_id),
            NotificationType.ROOM_FULL,
            title="Room is full",
            message=(
                f"The room on {format_date(room.scheduled_date)} at "
                f"{format_time(room.start_time)} is now full"
            ),
            related_entity_type="INDIVIDUAL_ROOM",
            related_entity_id=room_id,
        )

    branch = await session.get(Branch, room.branch_id)
    return room_to_dict(room, branch, users.get(room.owner_id), filled)


async def leave_room(session: AsyncSession, user_id: int, room_id: int) -> None:
    """
    Give up a slot. A FULL room reopens once a slot frees up.

    Leaving a CANCELLED room drops the participant row; the room stays CANCELLED.

    Raises:
        RoomNotFound: Missing room
        OwnerCannotLeave: Caller owns the room (cancel instead)
        NotParticipant: Caller holds no slot
    """
    room = await _lock_room(session, room_id)
    if room is None:
        raise RoomNotFound()

    if room.owner_id == user_id:
        raise OwnerCannotLeave()

    if not await _is_participant(session, room_id, user_id):
        raise NotParticipant()

    await session.execute(
        delete(IndividualRoomParticipant).where(
            IndividualRoomParticipant.room_id == room_id,
            IndividualRoomParticipant.user_id == user_id,
        )
    )
    logger.info(f"User {user_id} left room {room_id}")

    await _apply_capacity(session, room)


async def cancel_room(session: AsyncSession, owner_id: int, room_id: int) -> None:
    """
    Cancel a room. Participant rows are kept as history.

    Raises:
        RoomNotFound: Missing room
        NotOwner: Caller is not the owner
    """
    room = await _lock_room(session, room_id)
    if room is None:
        raise RoomNotFound()

    if room.owner_id != owner_id:
        raise NotOwner()

    await _set_status(session, room, RoomStatus.CANCELLED)
    logger.info(f"Room {room_id} cancelled by owner {owner_id}")


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_all_rooms(
    session: AsyncSession,
    branch_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
) -> Dict:
    """
    List non-cancelled rooms with optional filters, soonest first.

    Returns:
        Dict with ``items``, ``total_count``, ``page``, ``page_size``.

    Raises:
        InvalidStatus: If ``status`` is not a known room status
    """
    status_value = parse_status(status)

    query = select(IndividualRoom).where(IndividualRoom.status != RoomStatus.CANCELLED.value)
    if branch_id is not None:
        query = query.where(IndividualRoom.branch_id == branch_id)
    if start_date is not None:
        query = query.where(IndividualRoom.scheduled_date >= start_date)
    if end_date is not None:
        query = query.where(IndividualRoom.scheduled_date <= end_date)
    if status_value is not None:
        query = query.where(IndividualRoom.status == status_value)
    query = query.order_by(
        IndividualRoom.scheduled_date, IndividualRoom.start_time, IndividualRoom.id
    )

    rooms, total_count = await paginate(session, query, page, page_size)
    return page_envelope(await rooms_to_dicts(session, rooms), total_count, page, page_size)


async def get_room_by_id(session: AsyncSession, room_id: int) -> Dict:
    """
    Room detail with the participant list in join order.

    Raises:
        RoomNotFound: If the room does not exist
    """
    room = await session.get(IndividualRoom, room_id)
    if room is None:
        raise RoomNotFound(f"Room not found with ID: {room_id}")

    branch = await session.get(Branch, room.branch_id)

    result = await session.execute(
        select(IndividualRoomParticipant)
        .where(IndividualRoomParticipant.room_id == room_id)
        .order_by(IndividualRoomParticipant.joined_at, IndividualRoomParticipant.id)
    )
    participants = list(result.scalars().all())
    users = await user_service.get_users_by_ids(
        session, {p.user_id for p in participants} | {room.owner_id}
    )

    detail = room_to_dict(room, branch, users.get(room.owner_id), len(participants))
    detail["participants"] = [
        {**(user_service.user_summary(users.get(p.user_id)) or {"id": p.user_id}),
         "joined_at": format_timestamp(p.joined_at)}
        for p in participants
    ]
    return detail


async def search_rooms(session: AsyncSession, query: str, limit: int = 10) -> List[Dict]:
    """Non-cancelled rooms matching ``query`` on branch name, owner name or notes."""
    pattern = contains_pattern(query)
    result = await session.execute(
        select(IndividualRoom)
        .join(Branch, Branch.id == IndividualRoom.branch_id)
        .join(User, User.id == IndividualRoom.owner_id)
        .where(
            and_(
                IndividualRoom.status != RoomStatus.CANCELLED.value,
                or_(
                    Branch.name.ilike(pattern, escape=LIKE_ESCAPE),
                    (User.first_name + " " + User.last_name).ilike(pattern, escape=LIKE_ESCAPE),
                    IndividualRoom.notes.ilike(pattern, escape=LIKE_ESCAPE),
                ),
            )
        )
        .order_by(IndividualRoom.scheduled_date, IndividualRoom.start_time)
        .limit(limit)
    )
    return await rooms_to_dicts(session, list(result.scalars().all()))
