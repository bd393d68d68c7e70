"""
Tests for conflict detection across individual and team bookings.
"""

from datetime import date, time

import pytest
import pytest_asyncio

from backend.database.models import (
    IndividualRoom,
    IndividualRoomParticipant,
    RoomStatus,
    TeamRoom,
    TeamRoomStatus,
)
from backend.services import conflict_service
from backend.utils.datetime_utils import utcnow

DAY = date(2025, 6, 1)


async def _seat(db_session, branch, owner_id, start, end, status=RoomStatus.OPEN, extra_users=()):
    room = IndividualRoom(
        branch_id=branch.id,
        owner_id=owner_id,
        scheduled_date=DAY,
        start_time=start,
        end_time=end,
        total_slots=4,
        status=status.value,
    )
    db_session.add(room)
    await db_session.flush()
    for uid in (owner_id, *extra_users):
        db_session.add(IndividualRoomParticipant(room_id=room.id, user_id=uid, joined_at=utcnow()))
    await db_session.flush()
    return room


@pytest_asyncio.fixture
async def user_id(make_user):
    return await make_user()


# ============================================================================
# Individual conflicts
# ============================================================================


@pytest.mark.asyncio
async def test_overlapping_room_conflicts(db_session, branch, user_id):
    await _seat(db_session, branch, user_id, time(10, 0), time(11, 0))

    assert await conflict_service.user_has_individual_conflict(
        db_session, user_id, DAY, time(10, 30), time(11, 30)
    )


@pytest.mark.asyncio
async def test_touching_windows_do_not_conflict(db_session, branch, user_id):
    await _seat(db_session, branch, user_id, time(10, 0), time(11, 0))

    assert not await conflict_service.user_has_individual_conflict(
        db_session, user_id, DAY, time(11, 0), time(12, 0)
    )
    assert not await conflict_service.user_has_individual_conflict(
        db_session, user_id, DAY, time(9, 0), time(10, 0)
    )


@pytest.mark.asyncio
async def test_other_day_does_not_conflict(db_session, branch, user_id):
    await _seat(db_session, branch, user_id, time(10, 0), time(11, 0))

    assert not await conflict_service.user_has_individual_conflict(
        db_session, user_id, date(2025, 6, 2), time(10, 0), time(11, 0)
    )


@pytest.mark.asyncio
async def test_cancelled_room_never_conflicts(db_session, branch, user_id):
    await _seat(db_session, branch, user_id, time(10, 0), time(11, 0), status=RoomStatus.CANCELLED)

    assert not await conflict_service.user_has_individual_conflict(
        db_session, user_id, DAY, time(10, 0), time(11, 0)
    )


@pytest.mark.asyncio
async def test_joined_room_counts_as_conflict(db_session, branch, make_user, user_id):
    owner = await make_user()
    await _seat(db_session, branch, owner, time(10, 0), time(11, 0), extra_users=(user_id,))

    assert await conflict_service.user_has_individual_conflict(
        db_session, user_id, DAY, time(10, 15), time(10, 45)
    )


@pytest.mark.asyncio
async def test_excluded_room_is_ignored(db_session, branch, user_id):
    room = await _seat(db_session, branch, user_id, time(10, 0), time(11, 0))

    assert not await conflict_service.user_has_individual_conflict(
        db_session, user_id, DAY, time(10, 0), time(11, 0), exclude_room_id=room.id
    )


@pytest.mark.asyncio
async def test_members_conflict_when_any_member_is_busy(db_session, branch, make_user):
    busy = await make_user()
    free = await make_user()
    await _seat(db_session, branch, busy, time(18, 0), time(19, 0))

    assert await conflict_service.team_members_have_individual_conflict(
        db_session, [free, busy], DAY, time(18, 30), time(19, 30)
    )
    assert not await conflict_service.team_members_have_individual_conflict(
        db_session, [free], DAY, time(18, 30), time(19, 30)
    )


@pytest.mark.asyncio
async def test_members_conflict_empty_list_is_false(db_session):
    assert not await conflict_service.team_members_have_individual_conflict(
        db_session, [], DAY, time(10, 0), time(11, 0)
    )


# ============================================================================
# Team conflicts
# ============================================================================


async def _team_room(db_session, branch, creator_id, opponent_id=None, status=TeamRoomStatus.OPEN):
    room = TeamRoom(
        branch_id=branch.id,
        creator_team_id=creator_id,
        opponent_team_id=opponent_id,
        scheduled_date=DAY,
        start_time=time(20, 0),
        end_time=time(21, 0),
        required_team_size=5,
        status=status.value,
    )
    db_session.add(room)
    await db_session.flush()
    return room


@pytest.mark.asyncio
async def test_team_conflict_as_creator_or_opponent(db_session, branch, make_team):
    creator_id, _, _ = await make_team(name="Creators")
    opponent_id, _, _ = await make_team(name="Opponents")
    await _team_room(db_session, branch, creator_id, opponent_id, status=TeamRoomStatus.MATCHED)

    for team_id in (creator_id, opponent_id):
        assert await conflict_service.team_has_team_conflict(
            db_session, team_id, DAY, time(20, 30), time(21, 30)
        )
        assert not await conflict_service.team_has_team_conflict(
            db_session, team_id, DAY, time(21, 0), time(22, 0)
        )


@pytest.mark.asyncio
async def test_cancelled_team_room_never_conflicts(db_session, branch, make_team):
    team_id, _, _ = await make_team()
    await _team_room(db_session, branch, team_id, status=TeamRoomStatus.CANCELLED)

    assert not await conflict_service.team_has_team_conflict(
        db_session, team_id, DAY, time(20, 0), time(21, 0)
    )
