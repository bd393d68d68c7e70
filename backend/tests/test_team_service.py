"""
Tests for team rosters: creation, membership, captaincy and disbanding.
"""

import pytest
from sqlalchemy import select

from backend.database.models import Notification, NotificationType, TeamStatus
from backend.services import team_service
from backend.services.exceptions import (
    AlreadyCaptain,
    AlreadyMember,
    CannotRemoveCaptain,
    InvalidInputError,
    NewCaptainNotMember,
    NotCaptain,
    NotTeamMember,
    TeamFull,
    TeamNotFound,
    UserNotFound,
)


# ============================================================================
# create_team / update_team
# ============================================================================


@pytest.mark.asyncio
async def test_create_team_makes_captain_first_member(db_session, make_user):
    captain = await make_user()

    team = await team_service.create_team(
        db_session, captain_id=captain, name="  Red Lions ", roster_size=5, description="Sunday league"
    )

    assert team["name"] == "Red Lions"
    assert team["captain"]["id"] == captain
    assert team["member_count"] == 1
    assert team["available_spots"] == 4
    assert team["status"] == TeamStatus.ACTIVE.value
    assert await team_service.is_member(db_session, team["id"], captain)


@pytest.mark.asyncio
async def test_create_team_validation(db_session, make_user):
    captain = await make_user()

    with pytest.raises(InvalidInputError, match="name is required"):
        await team_service.create_team(db_session, captain_id=captain, name="   ", roster_size=5)
    with pytest.raises(InvalidInputError, match="at least 2"):
        await team_service.create_team(db_session, captain_id=captain, name="Solo", roster_size=1)


@pytest.mark.asyncio
async def test_update_team_partial(db_session, make_team):
    team_id, captain, _ = await make_team(members=1, name="Old Name")

    updated = await team_service.update_team(db_session, captain, team_id, description="New kit")
    assert updated["name"] == "Old Name"
    assert updated["description"] == "New kit"

    updated = await team_service.update_team(db_session, captain, team_id, name="New Name")
    assert updated["name"] == "New Name"
    assert updated["description"] == "New kit"


@pytest.mark.asyncio
async def test_update_team_requires_captain(db_session, make_team):
    team_id, _, members = await make_team(roster_size=3)

    with pytest.raises(NotCaptain):
        await team_service.update_team(db_session, members[1], team_id, name="Hijacked")


# ============================================================================
# add_member / remove_member
# ============================================================================


@pytest.mark.asyncio
async def test_add_member_until_full(db_session, make_team, make_user):
    team_id, captain, _ = await make_team(roster_size=3, members=1)
    first, second, third = [await make_user() for _ in range(3)]

    await team_service.add_member(db_session, captain, team_id, first)
    await team_service.add_member(db_session, captain, team_id, second)

    with pytest.raises(TeamFull):
        await team_service.add_member(db_session, captain, team_id, third)

    assert await team_service.count_members(db_session, team_id) == 3


@pytest.mark.asyncio
async def test_add_member_notifies_new_member(db_session, make_team, make_user):
    team_id, captain, _ = await make_team(roster_size=3, members=1, name="Blue Hawks")
    newcomer = await make_user()

    await team_service.add_member(db_session, captain, team_id, newcomer)

    result = await db_session.execute(select(Notification).where(Notification.user_id == newcomer))
    notifications = list(result.scalars().all())
    assert len(notifications) == 1
    assert notifications[0].type == NotificationType.TEAM_INVITATION.value
    assert "Blue Hawks" in notifications[0].message


@pytest.mark.asyncio
async def test_add_member_error_order(db_session, make_team, make_user):
    team_id, captain, members = await make_team(roster_size=2)

    with pytest.raises(TeamNotFound):
        await team_service.add_member(db_session, captain, 9999, members[1])
    with pytest.raises(NotCaptain):
        await team_service.add_member(db_session, members[1], team_id, await make_user())
    # Already a member wins over a full roster
    with pytest.raises(AlreadyMember):
        await team_service.add_member(db_session, captain, team_id, members[1])
    with pytest.raises(TeamFull):
        await team_service.add_member(db_session, captain, team_id, 9999)


@pytest.mark.asyncio
async def test_add_unknown_user(db_session, make_team):
    team_id, captain, _ = await make_team(roster_size=3, members=1)

    with pytest.raises(UserNotFound):
        await team_service.add_member(db_session, captain, team_id, 9999)


@pytest.mark.asyncio
async def test_remove_member(db_session, make_team):
    team_id, captain, members = await make_team(roster_size=3)

    await team_service.remove_member(db_session, captain, team_id, members[2])

    assert not await team_service.is_member(db_session, team_id, members[2])
    assert await team_service.count_members(db_session, team_id) == 2

    with pytest.raises(NotTeamMember):
        await team_service.remove_member(db_session, captain, team_id, members[2])


@pytest.mark.asyncio
async def test_remove_member_guards(db_session, make_team):
    team_id, captain, members = await make_team(roster_size=3)

    with pytest.raises(CannotRemoveCaptain):
        await team_service.remove_member(db_session, captain, team_id, captain)
    with pytest.raises(NotCaptain):
        await team_service.remove_member(db_session, members[1], team_id, members[2])


# ============================================================================
# transfer_captain
# ============================================================================


@pytest.mark.asyncio
async def test_transfer_captain(db_session, make_team):
    team_id, captain, members = await make_team(roster_size=3)
    new_captain = members[1]

    await team_service.transfer_captain(db_session, captain, team_id, new_captain)

    team = await team_service.get_team_by_id(db_session, team_id)
    assert team["captain"]["id"] == new_captain
    # The old captain stays on the roster
    assert captain in [m["id"] for m in team["members"]]

    with pytest.raises(NotCaptain):
        await team_service.transfer_captain(db_session, captain, team_id, members[2])


@pytest.mark.asyncio
async def test_transfer_captain_guards(db_session, make_team, make_user):
    team_id, captain, _ = await make_team(roster_size=3, members=1)
    outsider = await make_user()

    with pytest.raises(AlreadyCaptain):
        await team_service.transfer_captain(db_session, captain, team_id, captain)
    with pytest.raises(NewCaptainNotMember):
        await team_service.transfer_captain(db_session, captain, team_id, outsider)


# ============================================================================
# disband_team and reads
# ============================================================================


@pytest.mark.asyncio
async def test_disband_team_is_terminal(db_session, make_team):
    team_id, captain, members = await make_team(roster_size=3)

    await team_service.disband_team(db_session, captain, team_id)

    with pytest.raises(TeamNotFound):
        await team_service.get_team_by_id(db_session, team_id)
    with pytest.raises(TeamNotFound):
        await team_service.disband_team(db_session, captain, team_id)
    with pytest.raises(TeamNotFound):
        await team_service.add_member(db_session, captain, team_id, members[1])

    listing = await team_service.get_all_teams(db_session)
    assert listing["items"] == []


@pytest.mark.asyncio
async def test_disband_requires_captain(db_session, make_team):
    team_id, _, members = await make_team(roster_size=2)

    with pytest.raises(NotCaptain):
        await team_service.disband_team(db_session, members[1], team_id)


@pytest.mark.asyncio
async def test_get_team_by_id_lists_members(db_session, make_team):
    team_id, captain, members = await make_team(roster_size=3, name="Greens")

    team = await team_service.get_team_by_id(db_session, team_id)

    assert team["name"] == "Greens"
    assert team["member_count"] == 3
    assert team["available_spots"] == 0
    assert [m["id"] for m in team["members"]] == members


@pytest.mark.asyncio
async def test_my_teams(db_session, make_team):
    captained_id, captain, _ = await make_team(roster_size=2, name="Mine")
    other_id, other_captain, _ = await make_team(roster_size=3, members=1, name="Theirs")
    await team_service.add_member(db_session, other_captain, other_id, captain)

    as_captain = await team_service.get_my_teams_as_captain(db_session, captain)
    as_member = await team_service.get_my_teams_as_member(db_session, captain)

    assert [t["id"] for t in as_captain] == [captained_id]
    assert {t["id"] for t in as_member} == {captained_id, other_id}


@pytest.mark.asyncio
async def test_get_all_teams_name_filter(db_session, make_team):
    await make_team(members=1, name="Alpha United")
    await make_team(members=1, name="Beta City")
    await make_team(members=1, name="Alphaville")

    listing = await team_service.get_all_teams(db_session, name="alpha")

    assert listing["total_count"] == 2
    assert [t["name"] for t in listing["items"]] == ["Alpha United", "Alphaville"]


@pytest.mark.asyncio
async def test_search_teams_matches_description(db_session, make_user):
    captain = await make_user()
    team = await team_service.create_team(
        db_session, captain, "Night Owls", 5, description="Late evening five-a-side"
    )

    results = await team_service.search_teams(db_session, "EVENING")

    assert [t["id"] for t in results] == [team["id"]]
