"""Team roster route handlers."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database.db import get_db_session
from backend.services import team_service
from backend.services.exceptions import NotFoundError
from backend.api.auth_dependencies import get_current_user_id
from backend.models.schemas import (
    AddMemberRequest,
    CreateTeamRequest,
    MessageResponse,
    TeamDetailResponse,
    TeamListResponse,
    TeamResponse,
    TransferCaptainRequest,
    UpdateTeamRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/teams", response_model=TeamResponse, status_code=201)
async def create_team(
    payload: CreateTeamRequest,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a team with the caller as captain."""
    try:
        return await team_service.create_team(
            session,
            captain_id=user_id,
            name=payload.name,
            roster_size=payload.roster_size,
            description=payload.description,
            logo_url=payload.logo_url,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating team: {e}")
        raise HTTPException(status_code=500, detail="Error creating team")


@router.get("/api/teams", response_model=TeamListResponse)
async def list_teams(
    name: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_db_session),
):
    """List active teams."""
    try:
        return await team_service.get_all_teams(session, name=name, page=page, page_size=page_size)
    except Exception as e:
        logger.error(f"Error listing teams: {e}")
        raise HTTPException(status_code=500, detail="Error listing teams")


@router.get("/api/teams/my/captain", response_model=List[TeamResponse])
async def my_teams_as_captain(
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Active teams the caller captains."""
    try:
        return await team_service.get_my_teams_as_captain(session, user_id)
    except Exception as e:
        logger.error(f"Error getting captained teams for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Error getting teams")


@router.get("/api/teams/my/member", response_model=List[TeamResponse])
async def my_teams_as_member(
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Active teams the caller belongs to."""
    try:
        return await team_service.get_my_teams_as_member(session, user_id)
    except Exception as e:
        logger.error(f"Error getting teams for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Error getting teams")


@router.get("/api/teams/{team_id}", response_model=TeamDetailResponse)
async def get_team(team_id: int, session: AsyncSession = Depends(get_db_session)):
    """Team detail with members."""
    try:
        return await team_service.get_team_by_id(session, team_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error getting team {team_id}: {e}")
        raise HTTPException(status_code=500, detail="Error getting team")


@router.put("/api/teams/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: int,
    payload: UpdateTeamRequest,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Update the team profile (captain only)."""
    try:
        return await team_service.update_team(
            session,
            captain_id=user_id,
            team_id=team_id,
            name=payload.name,
            description=payload.description,
            logo_url=payload.logo_url,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating team {team_id}: {e}")
        raise HTTPException(status_code=500, detail="Error updating team")


@router.post("/api/teams/{team_id}/members", response_model=MessageResponse)
async def add_team_member(
    team_id: int,
    payload: AddMemberRequest,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Add a member to the roster (captain only)."""
    try:
        await team_service.add_member(session, user_id, team_id, payload.user_id)
        return {"status": "ok", "message": "Member added"}
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error adding member to team {team_id}: {e}")
        raise HTTPException(status_code=500, detail="Error adding member")


@router.delete("/api/teams/{team_id}/members/{member_user_id}", response_model=MessageResponse)
async def remove_team_member(
    team_id: int,
    member_user_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Remove a member from the roster (captain only)."""
    try:
        await team_service.remove_member(session, user_id, team_id, member_user_id)
        return {"status": "ok", "message": "Member removed"}
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error removing member from team {team_id}: {e}")
        raise HTTPException(status_code=500, detail="Error removing member")


@router.post("/api/teams/{team_id}/transfer-captain", response_model=MessageResponse)
async def transfer_team_captain(
    team_id: int,
    payload: TransferCaptainRequest,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Hand captaincy to another member."""
    try:
        await team_service.transfer_captain(session, user_id, team_id, payload.new_captain_id)
        return {"status": "ok", "message": "Captain transferred"}
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error transferring captain of team {team_id}: {e}")
        raise HTTPException(status_code=500, detail="Error transferring captain")


@router.delete("/api/teams/{team_id}", response_model=MessageResponse)
async def disband_team(
    team_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Disband a team (captain only)."""
    try:
        await team_service.disband_team(session, user_id, team_id)
        return {"status": "ok", "message": "Team disbanded"}
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error disbanding team {team_id}: {e}")
        raise HTTPException(status_code=500, detail="Error disbanding team")
