"""
Concurrency tests: simultaneous callers racing for the same room.

Each caller runs in its own session (and its own connection), the way
concurrent API requests do, and commits or rolls back independently.
"""

import asyncio
from datetime import datetime

import pytest
from sqlalchemy import func, select

from backend.database import db
from backend.database.models import (
    IndividualRoomParticipant,
    RoomStatus,
    TeamMember,
    TeamRoomStatus,
)
from backend.services import individual_room_service, team_room_service, team_service
from backend.services.exceptions import RoomAlreadyMatched, RoomFull, TeamFull, TimeConflict

NOW = datetime(2025, 1, 1, 8, 0)
BOOKING_DATE = "2025-06-01"


async def _in_own_session(operation):
    """Run ``operation(session)`` in a fresh session; return the result or the domain error."""
    async with db.AsyncSessionLocal() as session:
        try:
            result = await operation(session)
            await session.commit()
            return result
        except ValueError as e:
            await session.rollback()
            return e


@pytest.mark.asyncio
async def test_last_slot_is_taken_exactly_once(db_session, branch, make_user):
    owner = await make_user()
    room = await individual_room_service.create_room(
        db_session, owner, branch.id, BOOKING_DATE, "10:00", "11:00", total_slots=2, now=NOW
    )
    await db_session.commit()
    joiners = [await make_user() for _ in range(5)]

    outcomes = await asyncio.gather(
        *[
            _in_own_session(
                lambda s, uid=uid: individual_room_service.join_room(s, uid, room["id"])
            )
            for uid in joiners
        ]
    )

    successes = [o for o in outcomes if isinstance(o, dict)]
    failures = [o for o in outcomes if not isinstance(o, dict)]
    assert len(successes) == 1
    assert len(failures) == 4
    assert all(isinstance(f, RoomFull) for f in failures)

    async with db.AsyncSessionLocal() as session:
        detail = await individual_room_service.get_room_by_id(session, room["id"])
        count = (
            await session.execute(
                select(func.count(IndividualRoomParticipant.id)).where(
                    IndividualRoomParticipant.room_id == room["id"]
                )
            )
        ).scalar()
    assert count == 2
    assert detail["status"] == RoomStatus.FULL.value


@pytest.mark.asyncio
async def test_user_joins_only_one_of_two_overlapping_rooms(db_session, branch, make_user):
    first = await individual_room_service.create_room(
        db_session, await make_user(), branch.id, BOOKING_DATE, "10:00", "11:00", 4, now=NOW
    )
    second = await individual_room_service.create_room(
        db_session, await make_user(), branch.id, BOOKING_DATE, "10:30", "11:30", 4, now=NOW
    )
    await db_session.commit()
    player = await make_user()

    outcomes = await asyncio.gather(
        *[
            _in_own_session(
                lambda s, rid=rid: individual_room_service.join_room(s, player, rid)
            )
            for rid in (first["id"], second["id"])
        ]
    )

    assert len([o for o in outcomes if isinstance(o, dict)]) == 1
    assert len([o for o in outcomes if isinstance(o, TimeConflict)]) == 1

    async with db.AsyncSessionLocal() as session:
        count = (
            await session.execute(
                select(func.count(IndividualRoomParticipant.id)).where(
                    IndividualRoomParticipant.user_id == player
                )
            )
        ).scalar()
    assert count == 1


@pytest.mark.asyncio
async def test_open_team_room_is_matched_exactly_once(db_session, branch, make_team):
    creator_id, creator_captain, _ = await make_team(roster_size=3, name="Hosts")
    room = await team_room_service.create_room(
        db_session, creator_captain, branch.id, creator_id, BOOKING_DATE, "20:00", "21:00", now=NOW
    )
    await db_session.commit()
    challengers = [await make_team(roster_size=3, name=f"Challengers{i}") for i in range(3)]

    outcomes = await asyncio.gather(
        *[
            _in_own_session(
                lambda s, team_id=team_id, captain=captain: team_room_service.join_room(
                    s, captain, room["id"], team_id
                )
            )
            for team_id, captain, _ in challengers
        ]
    )

    successes = [o for o in outcomes if isinstance(o, dict)]
    failures = [o for o in outcomes if not isinstance(o, dict)]
    assert len(successes) == 1
    assert all(isinstance(f, RoomAlreadyMatched) for f in failures)

    async with db.AsyncSessionLocal() as session:
        detail = await team_room_service.get_room_by_id(session, room["id"])
    assert detail["status"] == TeamRoomStatus.MATCHED.value
    assert detail["opponent_team"]["id"] == successes[0]["opponent_team"]["id"]


@pytest.mark.asyncio
async def test_concurrent_adds_never_exceed_roster(db_session, make_team, make_user):
    team_id, captain_id, _ = await make_team(roster_size=3, members=1)
    candidates = [await make_user() for _ in range(4)]

    outcomes = await asyncio.gather(
        *[
            _in_own_session(
                lambda s, uid=uid: team_service.add_member(s, captain_id, team_id, uid)
            )
            for uid in candidates
        ]
    )

    failures = [o for o in outcomes if isinstance(o, Exception)]
    assert len(failures) == 2
    assert all(isinstance(f, TeamFull) for f in failures)

    async with db.AsyncSessionLocal() as session:
        count = (
            await session.execute(
                select(func.count(TeamMember.id)).where(TeamMember.team_id == team_id)
            )
        ).scalar()
    assert count == 3
