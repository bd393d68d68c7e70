"""Search route handlers."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database.db import get_db_session
from backend.services import search_service
from backend.models.schemas import SearchResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/search", response_model=SearchResponse)
async def search(
    q: Optional[str] = Query(None, max_length=100),
    type: Optional[str] = None,
    session: AsyncSession = Depends(get_db_session),
):
    """Search branches, rooms and teams."""
    try:
        return await search_service.search(session, q, type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error searching for '{q}': {e}")
        raise HTTPException(status_code=500, detail="Error performing search")
