"""
User service layer for the read-side user lookups the booking engines need.

Account management (registration, credentials, profiles) lives in the
identity service; this module only creates users for seeding and tests.
"""

from typing import Dict, Iterable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from backend.database.models import User
import logging

logger = logging.getLogger(__name__)


async def create_user(
    session: AsyncSession,
    email: str,
    first_name: str,
    last_name: str,
    profile_picture_url: Optional[str] = None,
) -> int:
    """
    Create a new user account.

    Args:
        session: Database session
        email: Unique email address
        first_name: Given name
        last_name: Family name
        profile_picture_url: Optional avatar URL

    Returns:
        User ID of the created user

    Raises:
        ValueError: If a user with this email already exists
    """
    result = await session.execute(select(User.id).where(User.email == email))
    if result.scalar_one_or_none():
        raise ValueError(f"Email {email} is already registered")

    new_user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        profile_picture_url=profile_picture_url,
    )
    session.add(new_user)
    await session.flush()
    user_id = new_user.id
    await session.commit()

    return user_id


async def lock_user(session: AsyncSession, user_id: int) -> None:
    """
    Row-lock a user until the transaction ends.

    Serializes a user's own bookings, so the time-conflict check and the
    booking insert cannot interleave with another booking by the same user.
    """
    await session.execute(select(User.id).where(User.id == user_id).with_for_update())


async def get_user_by_id(session: AsyncSession, user_id: int) -> Optional[Dict]:
    """
    Get user by ID.

    Args:
        session: Database session
        user_id: User ID

    Returns:
        User dictionary or None if not found
    """
    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    return _user_to_dict(user) if user else None


async def user_exists(session: AsyncSession, user_id: int) -> bool:
    """Check whether a user record exists."""
    result = await session.execute(select(User.id).where(User.id == user_id))
    return result.scalar_one_or_none() is not None


async def get_users_by_ids(session: AsyncSession, user_ids: Iterable[int]) -> Dict[int, User]:
    """Batch-load users keyed by ID. Missing IDs are simply absent."""
    user_ids = set(user_ids)
    if not user_ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(user_ids)))
    return {user.id: user for user in result.scalars().all()}


def user_summary(user: Optional[User]) -> Optional[Dict]:
    """Compact user representation embedded in room and team responses."""
    if user is None:
        return None
    return {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "profile_picture_url": user.profile_picture_url,
    }


def _user_to_dict(user: User) -> Dict:
    """
    Convert a User ORM instance to a dictionary.

    Args:
        user: User ORM instance

    Returns:
        User dictionary
    """
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "profile_picture_url": user.profile_picture_url,
        "created_at": user.created_at.isoformat() if user.created_at else None,
        "updated_at": user.updated_at.isoformat() if user.updated_at else None,
    }
