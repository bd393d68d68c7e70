"""Individual room route handlers."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database.db import get_db_session
from backend.services import individual_room_service
from backend.services.exceptions import NotFoundError
from backend.api.auth_dependencies import get_current_user_id
from backend.api.routes import limiter
from backend.models.schemas import (
    CreateIndividualRoomRequest,
    IndividualRoomDetailResponse,
    IndividualRoomListResponse,
    IndividualRoomResponse,
    MessageResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/individual-rooms", response_model=IndividualRoomResponse, status_code=201)
@limiter.limit("30/minute")
async def create_individual_room(
    request: Request,
    payload: CreateIndividualRoomRequest,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Book an individual room. The caller becomes owner and first participant.
    """
    try:
        return await individual_room_service.create_room(
            session,
            owner_id=user_id,
            branch_id=payload.branch_id,
            scheduled_date=payload.scheduled_date,
            start_time=payload.start_time,
            end_time=payload.end_time,
            total_slots=payload.total_slots,
            notes=payload.notes,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating individual room: {e}")
        raise HTTPException(status_code=500, detail="Error creating room")


@router.get("/api/individual-rooms", response_model=IndividualRoomListResponse)
async def list_individual_rooms(
    branch_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_db_session),
):
    """List open and full rooms, soonest first."""
    try:
        return await individual_room_service.get_all_rooms(
            session,
            branch_id=branch_id,
            start_date=start_date,
            end_date=end_date,
            status=status,
            page=page,
            page_size=page_size,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error listing individual rooms: {e}")
        raise HTTPException(status_code=500, detail="Error listing rooms")


@router.get("/api/individual-rooms/{room_id}", response_model=IndividualRoomDetailResponse)
async def get_individual_room(room_id: int, session: AsyncSession = Depends(get_db_session)):
    """Room detail with participants."""
    try:
        return await individual_room_service.get_room_by_id(session, room_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error getting individual room {room_id}: {e}")
        raise HTTPException(status_code=500, detail="Error getting room")


@router.post("/api/individual-rooms/{room_id}/join", response_model=IndividualRoomResponse)
@limiter.limit("30/minute")
async def join_individual_room(
    request: Request,
    room_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Take a slot in a room."""
    try:
        return await individual_room_service.join_room(session, user_id, room_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error joining individual room {room_id}: {e}")
        raise HTTPException(status_code=500, detail="Error joining room")


@router.post("/api/individual-rooms/{room_id}/leave", response_model=MessageResponse)
async def leave_individual_room(
    room_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Give up a slot. Owners cancel instead."""
    try:
        await individual_room_service.leave_room(session, user_id, room_id)
        return {"status": "ok", "message": "Left room"}
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error leaving individual room {room_id}: {e}")
        raise HTTPException(status_code=500, detail="Error leaving room")


@router.delete("/api/individual-rooms/{room_id}", response_model=MessageResponse)
async def cancel_individual_room(
    room_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Cancel a room (owner only)."""
    try:
        await individual_room_service.cancel_room(session, user_id, room_id)
        return {"status": "ok", "message": "Room cancelled"}
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error cancelling individual room {room_id}: {e}")
        raise HTTPException(status_code=500, detail="Error cancelling room")
