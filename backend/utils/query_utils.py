"""
Small helpers shared by the list/search queries.
"""

from typing import Any, List, Tuple

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
LIKE_ESCAPE = "\\"


def escape_like(value: str) -> str:
    """Escape LIKE-special characters (%, _) so they match literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains_pattern(value: str) -> str:
    """Build a case-insensitive substring pattern for ``ilike``."""
    return f"%{escape_like(value.strip())}%"


async def paginate(
    session: AsyncSession, query: Select, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE
) -> Tuple[List[Any], int]:
    """
    Run ``query`` for one page and count the full result set.

    Args:
        session: Database session
        query: Ordered select over a single ORM entity
        page: Page number (1-indexed)
        page_size: Items per page

    Returns:
        Tuple of (entities on this page, total count)
    """
    page = max(page, 1)
    page_size = max(1, min(page_size, MAX_PAGE_SIZE))

    count_q = select(func.count()).select_from(query.order_by(None).subquery())
    total_count = (await session.execute(count_q)).scalar() or 0

    result = await session.execute(query.offset((page - 1) * page_size).limit(page_size))
    return list(result.scalars().all()), total_count


def page_envelope(items: List[Any], total_count: int, page: int, page_size: int) -> dict:
    """Wrap a page of items in the standard list response shape."""
    return {
        "items": items,
        "total_count": total_count,
        "page": page,
        "page_size": page_size,
    }
