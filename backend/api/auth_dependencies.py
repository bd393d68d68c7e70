"""
Caller identity dependencies for FastAPI routes.

Authentication happens at the gateway in front of this service; it forwards
the authenticated user's ID in the ``X-User-Id`` header. Routes receive the
caller as an explicit integer and pass it into the service layer.
"""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database.db import get_db_session
from backend.services import user_service

USER_ID_HEADER = "X-User-Id"

user_id_header = APIKeyHeader(name=USER_ID_HEADER, auto_error=False)


def _parse_user_id(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        user_id = int(raw.strip())
    except ValueError:
        return None
    return user_id if user_id > 0 else None


async def get_current_user_id(
    session: AsyncSession = Depends(get_db_session),
    raw_user_id: Optional[str] = Depends(user_id_header),
) -> int:
    """
    Dependency resolving the authenticated caller's user ID.

    Returns:
        The caller's user ID

    Raises:
        HTTPException: 401 if the header is missing, malformed, or names an unknown user
    """
    user_id = _parse_user_id(raw_user_id)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    if not await user_service.user_exists(session, user_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return user_id
