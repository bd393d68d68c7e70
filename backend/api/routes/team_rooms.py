"""Team room route handlers."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database.db import get_db_session
from backend.services import team_room_service
from backend.services.exceptions import NotFoundError
from backend.api.auth_dependencies import get_current_user_id
from backend.api.routes import limiter
from backend.models.schemas import (
    CreateTeamRoomRequest,
    JoinTeamRoomRequest,
    MessageResponse,
    TeamRoomDetailResponse,
    TeamRoomListResponse,
    TeamRoomResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/team-rooms", response_model=TeamRoomResponse, status_code=201)
@limiter.limit("30/minute")
async def create_team_room(
    request: Request,
    payload: CreateTeamRoomRequest,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Open a team room for a full-roster team (captain only)."""
    try:
        return await team_room_service.create_room(
            session,
            captain_id=user_id,
            branch_id=payload.branch_id,
            team_id=payload.team_id,
            scheduled_date=payload.scheduled_date,
            start_time=payload.start_time,
            end_time=payload.end_time,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating team room: {e}")
        raise HTTPException(status_code=500, detail="Error creating team room")


@router.get("/api/team-rooms", response_model=TeamRoomListResponse)
async def list_team_rooms(
    branch_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    team_size: Optional[int] = Query(None, ge=2),
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_db_session),
):
    """List open and matched team rooms, soonest first."""
    try:
        return await team_room_service.get_all_rooms(
            session,
            branch_id=branch_id,
            start_date=start_date,
            end_date=end_date,
            team_size=team_size,
            status=status,
            page=page,
            page_size=page_size,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error listing team rooms: {e}")
        raise HTTPException(status_code=500, detail="Error listing team rooms")


@router.get("/api/team-rooms/{room_id}", response_model=TeamRoomDetailResponse)
async def get_team_room(room_id: int, session: AsyncSession = Depends(get_db_session)):
    """Team room detail with both rosters."""
    try:
        return await team_room_service.get_room_by_id(session, room_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error getting team room {room_id}: {e}")
        raise HTTPException(status_code=500, detail="Error getting team room")


@router.post("/api/team-rooms/{room_id}/join", response_model=TeamRoomResponse)
@limiter.limit("30/minute")
async def join_team_room(
    request: Request,
    room_id: int,
    payload: JoinTeamRoomRequest,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Join an open team room as the opponent (opponent captain only)."""
    try:
        return await team_room_service.join_room(session, user_id, room_id, payload.team_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error joining team room {room_id}: {e}")
        raise HTTPException(status_code=500, detail="Error joining team room")


@router.delete("/api/team-rooms/{room_id}", response_model=MessageResponse)
async def cancel_team_room(
    room_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Cancel a team room (creator team's captain only)."""
    try:
        await team_room_service.cancel_room(session, user_id, room_id)
        return {"status": "ok", "message": "Team room cancelled"}
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error cancelling team room {room_id}: {e}")
        raise HTTPException(status_code=500, detail="Error cancelling team room")
