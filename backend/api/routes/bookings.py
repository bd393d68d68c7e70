"""Booking overview route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database.db import get_db_session
from backend.services import booking_service
from backend.services.booking_service import BookingScope
from backend.api.auth_dependencies import get_current_user_id
from backend.models.schemas import BookingResponse

logger = logging.getLogger(__name__)
router = APIRouter()


async def _bookings(session: AsyncSession, user_id: int, scope) -> List[dict]:
    try:
        return await booking_service.get_bookings(session, user_id, scope)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error getting bookings for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Error getting bookings")


@router.get("/api/bookings", response_model=List[BookingResponse])
async def get_my_bookings(
    scope: str = BookingScope.ALL.value,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """The caller's individual and team bookings (scope: ALL, UPCOMING or PAST)."""
    return await _bookings(session, user_id, scope)


@router.get("/api/bookings/upcoming", response_model=List[BookingResponse])
async def get_my_upcoming_bookings(
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Upcoming bookings, soonest first."""
    return await _bookings(session, user_id, BookingScope.UPCOMING)


@router.get("/api/bookings/past", response_model=List[BookingResponse])
async def get_my_past_bookings(
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Past bookings, most recent first."""
    return await _bookings(session, user_id, BookingScope.PAST)
