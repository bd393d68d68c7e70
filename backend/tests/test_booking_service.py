"""
Tests for the booking aggregator (a user's individual and team bookings).
"""

from datetime import datetime

import pytest

from backend.services import booking_service, individual_room_service, team_room_service
from backend.services.booking_service import BookingScope, BookingType
from backend.services.exceptions import InvalidInputError

CREATED_AT = datetime(2025, 1, 1, 8, 0)
# Mid-morning on the booking day: 09:00 has started, 10:00 has not
MID_MORNING = datetime(2025, 6, 1, 9, 30)


async def _individual(db_session, branch, owner_id, day, start, end, total_slots=4):
    return await individual_room_service.create_room(
        db_session, owner_id, branch.id, day, start, end, total_slots, now=CREATED_AT
    )


async def _team_room(db_session, branch, team_id, captain_id, day, start, end):
    return await team_room_service.create_room(
        db_session, captain_id, branch.id, team_id, day, start, end, now=CREATED_AT
    )


def test_parse_scope():
    assert booking_service.parse_scope("upcoming") is BookingScope.UPCOMING
    assert booking_service.parse_scope(BookingScope.PAST) is BookingScope.PAST
    with pytest.raises(InvalidInputError, match="Invalid scope value"):
        booking_service.parse_scope("SOON")


@pytest.mark.asyncio
async def test_empty_bookings(db_session, make_user):
    user = await make_user()
    assert await booking_service.get_bookings(db_session, user, now=MID_MORNING) == []


@pytest.mark.asyncio
async def test_scopes_split_on_current_time(db_session, branch, make_user):
    user = await make_user()
    started = await _individual(db_session, branch, user, "2025-06-01", "09:00", "09:45")
    later_today = await _individual(db_session, branch, user, "2025-06-01", "10:00", "11:00")
    yesterday = await _individual(db_session, branch, user, "2025-05-31", "18:00", "19:00")
    tomorrow = await _individual(db_session, branch, user, "2025-06-02", "08:00", "09:00")

    upcoming = await booking_service.get_bookings(db_session, user, "UPCOMING", now=MID_MORNING)
    past = await booking_service.get_bookings(db_session, user, BookingScope.PAST, now=MID_MORNING)
    everything = await booking_service.get_bookings(db_session, user, now=MID_MORNING)

    assert [b["id"] for b in upcoming] == [later_today["id"], tomorrow["id"]]
    assert [b["id"] for b in past] == [started["id"], yesterday["id"]]
    assert [b["id"] for b in everything] == [
        tomorrow["id"],
        later_today["id"],
        started["id"],
        yesterday["id"],
    ]


@pytest.mark.asyncio
async def test_start_exactly_now_is_upcoming(db_session, branch, make_user):
    user = await make_user()
    room = await _individual(db_session, branch, user, "2025-06-01", "09:30", "10:30")

    upcoming = await booking_service.get_bookings(db_session, user, "UPCOMING", now=MID_MORNING)
    past = await booking_service.get_bookings(db_session, user, "PAST", now=MID_MORNING)

    assert [b["id"] for b in upcoming] == [room["id"]]
    assert past == []


@pytest.mark.asyncio
async def test_start_just_before_now_is_past(db_session, branch, make_user):
    user = await make_user()
    room = await _individual(db_session, branch, user, "2025-06-01", "10:00", "11:00")
    half_second_in = datetime(2025, 6, 1, 10, 0, 0, 500000)

    upcoming = await booking_service.get_bookings(db_session, user, "UPCOMING", now=half_second_in)
    past = await booking_service.get_bookings(db_session, user, "PAST", now=half_second_in)

    assert upcoming == []
    assert [b["id"] for b in past] == [room["id"]]


@pytest.mark.asyncio
async def test_cancelled_bookings_only_in_all(db_session, branch, make_user):
    user = await make_user()
    room = await _individual(db_session, branch, user, "2025-06-02", "10:00", "11:00")
    await individual_room_service.cancel_room(db_session, user, room["id"])

    assert await booking_service.get_bookings(db_session, user, "UPCOMING", now=MID_MORNING) == []
    everything = await booking_service.get_bookings(db_session, user, "ALL", now=MID_MORNING)
    assert [b["status"] for b in everything] == ["CANCELLED"]


@pytest.mark.asyncio
async def test_joined_rooms_are_individual_bookings(db_session, branch, make_user):
    owner = await make_user(first_name="Olga", last_name="Owner")
    joiner = await make_user()
    room = await _individual(db_session, branch, owner, "2025-06-02", "10:00", "11:00")
    await individual_room_service.join_room(db_session, joiner, room["id"])

    [booking] = await booking_service.get_bookings(db_session, joiner, "UPCOMING", now=MID_MORNING)

    assert booking["booking_type"] == BookingType.INDIVIDUAL.value
    assert booking["branch"]["name"] == branch.name
    assert booking["details"]["owner_name"] == "Olga Owner"
    assert booking["details"]["filled_slots"] == 2
    assert booking["details"]["total_slots"] == 4
    assert booking["details"]["creator_team_name"] is None


@pytest.mark.asyncio
async def test_team_bookings_for_every_member(db_session, branch, make_team):
    creator_id, creator_captain, creator_members = await make_team(roster_size=3, name="Hosts")
    opponent_id, opponent_captain, opponent_members = await make_team(roster_size=3, name="Guests")
    open_room = await _team_room(
        db_session, branch, creator_id, creator_captain, "2025-06-02", "10:00", "11:00"
    )
    matched = await _team_room(
        db_session, branch, creator_id, creator_captain, "2025-06-03", "10:00", "11:00"
    )
    await team_room_service.join_room(db_session, opponent_captain, matched["id"], opponent_id)

    creator_view = await booking_service.get_bookings(
        db_session, creator_members[2], "UPCOMING", now=MID_MORNING
    )
    opponent_view = await booking_service.get_bookings(
        db_session, opponent_members[1], "UPCOMING", now=MID_MORNING
    )

    assert [b["id"] for b in creator_view] == [open_room["id"], matched["id"]]
    assert all(b["booking_type"] == BookingType.TEAM.value for b in creator_view)
    assert creator_view[0]["details"]["opponent_team_name"] == "Waiting for opponent"
    assert creator_view[1]["details"]["opponent_team_name"] == "Guests"
    assert creator_view[1]["details"]["required_team_size"] == 3
    assert creator_view[1]["details"]["owner_name"] is None

    assert [b["id"] for b in opponent_view] == [matched["id"]]
    assert opponent_view[0]["details"]["creator_team_name"] == "Hosts"


@pytest.mark.asyncio
async def test_individual_and_team_bookings_merge(db_session, branch, make_team):
    team_id, captain, _ = await make_team(roster_size=2, name="Pair")
    team_room = await _team_room(db_session, branch, team_id, captain, "2025-06-02", "12:00", "13:00")
    individual = await _individual(db_session, branch, captain, "2025-06-02", "09:00", "10:00")

    bookings = await booking_service.get_bookings(db_session, captain, "UPCOMING", now=MID_MORNING)

    assert [(b["booking_type"], b["id"]) for b in bookings] == [
        ("INDIVIDUAL", individual["id"]),
        ("TEAM", team_room["id"]),
    ]
