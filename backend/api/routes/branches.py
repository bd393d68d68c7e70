"""Branch (venue) route handlers."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database.db import get_db_session
from backend.services import branch_service
from backend.services.exceptions import NotFoundError
from backend.api.auth_dependencies import get_current_user_id
from backend.models.schemas import (
    BranchListResponse,
    BranchResponse,
    CreateBranchRequest,
    MessageResponse,
    UpdateBranchRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/branches", response_model=BranchListResponse)
async def list_branches(
    name: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_db_session),
):
    """List active branches, optionally filtered by name."""
    try:
        return await branch_service.get_all_branches(session, name=name, page=page, page_size=page_size)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error listing branches: {e}")
        raise HTTPException(status_code=500, detail="Error listing branches")


@router.get("/api/branches/active", response_model=List[BranchResponse])
async def list_active_branches(session: AsyncSession = Depends(get_db_session)):
    """All active branches sorted by name."""
    try:
        return await branch_service.get_all_active_branches(session)
    except Exception as e:
        logger.error(f"Error listing active branches: {e}")
        raise HTTPException(status_code=500, detail="Error listing branches")


@router.get("/api/branches/{branch_id}", response_model=BranchResponse)
async def get_branch(branch_id: int, session: AsyncSession = Depends(get_db_session)):
    """Get an active branch."""
    try:
        return await branch_service.get_branch_by_id(session, branch_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error getting branch {branch_id}: {e}")
        raise HTTPException(status_code=500, detail="Error getting branch")


@router.post("/api/branches", response_model=BranchResponse, status_code=201)
async def create_branch(
    payload: CreateBranchRequest,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a branch."""
    try:
        return await branch_service.create_branch(session, **payload.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating branch: {e}")
        raise HTTPException(status_code=500, detail="Error creating branch")


@router.put("/api/branches/{branch_id}", response_model=BranchResponse)
async def update_branch(
    branch_id: int,
    payload: UpdateBranchRequest,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Partially update a branch."""
    try:
        return await branch_service.update_branch(
            session, branch_id, **payload.model_dump(exclude_none=True)
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating branch {branch_id}: {e}")
        raise HTTPException(status_code=500, detail="Error updating branch")


@router.delete("/api/branches/{branch_id}", response_model=MessageResponse)
async def delete_branch(
    branch_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Deactivate a branch."""
    try:
        await branch_service.delete_branch(session, branch_id)
        return {"status": "ok", "message": "Branch deactivated"}
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error deleting branch {branch_id}: {e}")
        raise HTTPException(status_code=500, detail="Error deleting branch")
