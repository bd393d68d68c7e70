"""
Team roster engine: team creation, membership and captaincy.

The captain is always a member. Roster size is fixed at creation and caps
membership. All roster mutations take the per-team write lock first (see
``lock_team``) so concurrent adds can never push a team past its roster size.
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from backend.database.models import NotificationType, Team, TeamMember, TeamStatus, User
from backend.services import notification_service, user_service
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
from backend.utils.datetime_utils import format_timestamp, utcnow
from backend.utils.query_utils import LIKE_ESCAPE, contains_pattern, page_envelope, paginate

logger = logging.getLogger(__name__)

MIN_ROSTER_SIZE = 2


# ---------------------------------------------------------------------------
# Locking and lookups (shared with the team room engine)
# ---------------------------------------------------------------------------


async def lock_team(session: AsyncSession, team_id: int) -> Optional[Team]:
    """
    Take the per-team write lock and load a fresh snapshot of the team.

    Same technique as the room lock: bump ``lock_version`` first, then read.
    """
    await session.execute(
        update(Team)
        .where(Team.id == team_id)
        .values(lock_version=Team.lock_version + 1)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(
        select(Team).where(Team.id == team_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def lock_active_team(session: AsyncSession, team_id: int) -> Team:
    """Lock a team and require it to be ACTIVE. Raises TeamNotFound otherwise."""
    team = await lock_team(session, team_id)
    if team is None or team.status != TeamStatus.ACTIVE.value:
        raise TeamNotFound()
    return team


async def count_members(session: AsyncSession, team_id: int) -> int:
    result = await session.execute(
        select(func.count(TeamMember.id)).where(TeamMember.team_id == team_id)
    )
    return result.scalar() or 0


async def member_counts(session: AsyncSession, team_ids: Iterable[int]) -> Dict[int, int]:
    """Batch member counts keyed by team ID."""
    team_ids = list(team_ids)
    if not team_ids:
        return {}
    result = await session.execute(
        select(TeamMember.team_id, func.count(TeamMember.id))
        .where(TeamMember.team_id.in_(team_ids))
        .group_by(TeamMember.team_id)
    )
    return {team_id: count for team_id, count in result.all()}


async def get_member_user_ids(session: AsyncSession, team_id: int) -> List[int]:
    """User IDs of every current member (captain included)."""
    result = await session.execute(
        select(TeamMember.user_id).where(TeamMember.team_id == team_id)
    )
    return list(result.scalars().all())


async def is_member(session: AsyncSession, team_id: int, user_id: int) -> bool:
    result = await session.execute(
        select(TeamMember.id).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
    )
    return result.scalar_one_or_none() is not None


async def get_user_team_ids(session: AsyncSession, user_id: int) -> List[int]:
    """IDs of every team the user belongs to, disbanded teams included."""
    result = await session.execute(select(TeamMember.team_id).where(TeamMember.user_id == user_id))
    return list(result.scalars().all())


async def get_teams_by_ids(session: AsyncSession, team_ids: Iterable[int]) -> Dict[int, Team]:
    team_ids = set(team_ids)
    if not team_ids:
        return {}
    result = await session.execute(select(Team).where(Team.id.in_(team_ids)))
    return {t.id: t for t in result.scalars().all()}


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def team_to_dict(team: Team, captain: Optional[User], member_count: int) -> Dict:
    """Serialize a team summary for API responses."""
    return {
        "id": team.id,
        "name": team.name,
        "description": team.description,
        "logo_url": team.logo_url,
        "captain": user_service.user_summary(captain),
        "roster_size": team.roster_size,
        "member_count": member_count,
        "available_spots": team.roster_size - member_count,
        "status": team.status,
        "created_at": format_timestamp(team.created_at),
        "updated_at": format_timestamp(team.updated_at),
    }


async def teams_to_dicts(session: AsyncSession, teams: List[Team]) -> List[Dict]:
    """Serialize teams, batch-loading captains and member counts."""
    if not teams:
        return []
    captains = await user_service.get_users_by_ids(session, {t.captain_id for t in teams})
    counts = await member_counts(session, [t.id for t in teams])
    return [team_to_dict(t, captains.get(t.captain_id), counts.get(t.id, 0)) for t in teams]


async def team_detail(session: AsyncSession, team: Team) -> Dict:
    """Team summary plus the member list in join order."""
    result = await session.execute(
        select(TeamMember)
        .where(TeamMember.team_id == team.id)
        .order_by(TeamMember.joined_at, TeamMember.id)
    )
    members = list(result.scalars().all())
    users = await user_service.get_users_by_ids(
        session, {m.user_id for m in members} | {team.captain_id}
    )

    detail = team_to_dict(team, users.get(team.captain_id), len(members))
    detail["members"] = [
        {**(user_service.user_summary(users.get(m.user_id)) or {"id": m.user_id}),
         "joined_at": format_timestamp(m.joined_at)}
        for m in members
    ]
    return detail


# ---------------------------------------------------------------------------
# Roster operations
# ---------------------------------------------------------------------------


async def create_team(
    session: AsyncSession,
    captain_id: int,
    name: str,
    roster_size: int,
    description: Optional[str] = None,
    logo_url: Optional[str] = None,
) -> Dict:
    """
    Create an ACTIVE team with the caller as captain and first member.

    Returns:
        Team summary dict with member_count == 1

    Raises:
        InvalidInputError: Blank name or roster_size below 2
    """
    if not name or not name.strip():
        raise InvalidInputError("Team name is required")
    if roster_size is None or roster_size < MIN_ROSTER_SIZE:
        raise InvalidInputError(f"Roster size must be at least {MIN_ROSTER_SIZE}")

    team = Team(
        name=name.strip(),
        description=description,
        logo_url=logo_url,
        captain_id=captain_id,
        roster_size=roster_size,
        status=TeamStatus.ACTIVE.value,
    )
    session.add(team)
    await session.flush()

    session.add(TeamMember(team_id=team.id, user_id=captain_id, joined_at=utcnow()))
    await session.flush()

    logger.info(f"Created team {team.id} with captain {captain_id}")

    captain = await session.get(User, captain_id)
    return team_to_dict(team, captain, 1)


async def update_team(
    session: AsyncSession,
    captain_id: int,
    team_id: int,
    name: Optional[str] = None,
    description: Optional[str] = None,
    logo_url: Optional[str] = None,
) -> Dict:
    """
    Partially update a team's profile. Captain only.

    Raises:
        TeamNotFound, NotCaptain, InvalidInputError
    """
    team = await lock_active_team(session, team_id)
    if team.captain_id != captain_id:
        raise NotCaptain()

    values = {}
    if name is not None:
        if not name.strip():
            raise InvalidInputError("Team name is required")
        values["name"] = name.strip()
    if description is not None:
        values["description"] = description
    if logo_url is not None:
        values["logo_url"] = logo_url

    if values:
        values["updated_at"] = utcnow()
        await session.execute(
            update(Team)
            .where(Team.id == team_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        for key, value in values.items():
            set_committed_value(team, key, value)
        logger.info(f"Updated team {team_id} by captain {captain_id}")

    captain = await session.get(User, captain_id)
    return team_to_dict(team, captain, await count_members(session, team_id))


async def add_member(session: AsyncSession, captain_id: int, team_id: int, user_id: int) -> None:
    """
    Add a user to the roster.

    Raises:
        TeamNotFound: Missing or disbanded team
        NotCaptain: Caller is not the captain
        AlreadyMember: User already on the roster
        TeamFull: Roster already at roster_size
        UserNotFound: No such user
    """
    team = await lock_active_team(session, team_id)

    if team.captain_id != captain_id:
        raise NotCaptain()

    if await is_member(session, team_id, user_id):
        raise AlreadyMember()

    if await count_members(session, team_id) >= team.roster_size:
        raise TeamFull()

    if not await user_service.user_exists(session, user_id):
        raise UserNotFound(f"User not found with ID: {user_id}")

    session.add(TeamMember(team_id=team_id, user_id=user_id, joined_at=utcnow()))
    await session.flush()
    logger.info(f"Added user {user_id} to team {team_id} by captain {captain_id}")

    await notification_service.notify_safely(
        session,
        [user_id],
        NotificationType.TEAM_INVITATION,
        title="Added to team",
        message=f"You were added to team {team.name}",
        related_entity_type="TEAM",
        related_entity_id=team_id,
    )


async def remove_member(session: AsyncSession, captain_id: int, team_id: int, user_id: int) -> None:
    """
    Remove a non-captain member from the roster.

    Raises:
        TeamNotFound, NotCaptain, CannotRemoveCaptain, NotTeamMember
    """
    team = await lock_active_team(session, team_id)

    if team.captain_id != captain_id:
        raise NotCaptain()

    if team.captain_id == user_id:
        raise CannotRemoveCaptain()

    if not await is_member(session, team_id, user_id):
        raise NotTeamMember()

    await session.execute(
        delete(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
    )
    logger.info(f"Removed user {user_id} from team {team_id} by captain {captain_id}")

    await notification_service.notify_safely(
        session,
        [user_id],
        NotificationType.TEAM_UPDATE,
        title="Removed from team",
        message=f"You were removed from team {team.name}",
        related_entity_type="TEAM",
        related_entity_id=team_id,
    )


async def transfer_captain(
    session: AsyncSession, captain_id: int, team_id: int, new_captain_id: int
) -> None:
    """
    Hand captaincy to another current member.

    Raises:
        TeamNotFound, NotCaptain, AlreadyCaptain, NewCaptainNotMember, UserNotFound
    """
    team = await lock_active_team(session, team_id)

    if team.captain_id != captain_id:
        raise NotCaptain()

    if new_captain_id == captain_id:
        raise AlreadyCaptain()

    if not await is_member(session, team_id, new_captain_id):
        raise NewCaptainNotMember()

    if not await user_service.user_exists(session, new_captain_id):
        raise UserNotFound(f"User not found with ID: {new_captain_id}")

    await session.execute(
        update(Team)
        .where(Team.id == team_id)
        .values(captain_id=new_captain_id, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    set_committed_value(team, "captain_id", new_captain_id)
    logger.info(f"Transferred captain role in team {team_id} from {captain_id} to {new_captain_id}")

    await notification_service.notify_safely(
        session,
        [new_captain_id],
        NotificationType.TEAM_UPDATE,
        title="You are now captain",
        message=f"You are now the captain of {team.name}",
        related_entity_type="TEAM",
        related_entity_id=team_id,
    )


async def disband_team(session: AsyncSession, captain_id: int, team_id: int) -> None:
    """
    Disband a team. Terminal; membership rows stay as history.

    Raises:
        TeamNotFound, NotCaptain
    """
    team = await lock_active_team(session, team_id)

    if team.captain_id != captain_id:
        raise NotCaptain()

    await session.execute(
        update(Team)
        .where(Team.id == team_id)
        .values(status=TeamStatus.DISBANDED.value, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    set_committed_value(team, "status", TeamStatus.DISBANDED.value)
    logger.info(f"Team {team_id} disbanded by captain {captain_id}")

    members = [uid for uid in await get_member_user_ids(session, team_id) if uid != captain_id]
    await notification_service.notify_safely(
        session,
        members,
        NotificationType.TEAM_UPDATE,
        title="Team disbanded",
        message=f"Team {team.name} has been disbanded",
        related_entity_type="TEAM",
        related_entity_id=team_id,
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_all_teams(
    session: AsyncSession, name: Optional[str] = None, page: int = 1, page_size: int = 20
) -> Dict:
    """List ACTIVE teams, optionally filtered by a name substring."""
    query = select(Team).where(Team.status == TeamStatus.ACTIVE.value)
    if name and name.strip():
        query = query.where(Team.name.ilike(contains_pattern(name), escape=LIKE_ESCAPE))
    query = query.order_by(Team.name, Team.id)

    teams, total_count = await paginate(session, query, page, page_size)
    return page_envelope(await teams_to_dicts(session, teams), total_count, page, page_size)


async def get_team_by_id(session: AsyncSession, team_id: int) -> Dict:
    """
    Active team detail with members.

    Raises:
        TeamNotFound: Missing or disbanded
    """
    result = await session.execute(
        select(Team).where(Team.id == team_id, Team.status == TeamStatus.ACTIVE.value)
    )
    team = result.scalar_one_or_none()
    if team is None:
        raise TeamNotFound(f"Team not found or disbanded with ID: {team_id}")
    return await team_detail(session, team)


async def get_my_teams_as_captain(session: AsyncSession, user_id: int) -> List[Dict]:
    """Active teams the user captains, newest first."""
    result = await session.execute(
        select(Team)
        .where(Team.captain_id == user_id, Team.status == TeamStatus.ACTIVE.value)
        .order_by(Team.created_at.desc(), Team.id.desc())
    )
    return await teams_to_dicts(session, list(result.scalars().all()))


async def get_my_teams_as_member(session: AsyncSession, user_id: int) -> List[Dict]:
    """Active teams the user belongs to (captained ones included), newest first."""
    result = await session.execute(
        select(Team)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .where(TeamMember.user_id == user_id, Team.status == TeamStatus.ACTIVE.value)
        .order_by(Team.created_at.desc(), Team.id.desc())
    )
    return await teams_to_dicts(session, list(result.scalars().all()))


async def search_teams(session: AsyncSession, query: str, limit: int = 10) -> List[Dict]:
    """Active teams whose name or description contains ``query``."""
    pattern = contains_pattern(query)
    result = await session.execute(
        select(Team)
        .where(
            Team.status == TeamStatus.ACTIVE.value,
            or_(
                Team.name.ilike(pattern, escape=LIKE_ESCAPE),
                Team.description.ilike(pattern, escape=LIKE_ESCAPE),
            ),
        )
        .order_by(Team.name)
        .limit(limit)
    )
    return await teams_to_dicts(session, list(result.scalars().all()))
