"""
API routes - combined router from all domain modules.

Shared infrastructure (limiter) lives here; every sub-router imports what
it needs from this package.
"""

import os

from fastapi import APIRouter
from slowapi import Limiter
from slowapi.util import get_remote_address

# ---------------------------------------------------------------------------
# Shared rate limiter
# ---------------------------------------------------------------------------
IS_TEST_ENV = os.getenv("ENV", "").lower() == "test"
if IS_TEST_ENV:
    limiter = Limiter(key_func=get_remote_address)

    def no_op_limit(*args, **kwargs):
        """No-op decorator for test mode - doesn't apply any rate limiting."""
        def decorator(func):
            return func
        return decorator

    limiter.limit = lambda *args, **kwargs: no_op_limit()
else:
    limiter = Limiter(key_func=get_remote_address)

# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from backend.api.routes.branches import router as branches_router  # noqa: E402
from backend.api.routes.individual_rooms import router as individual_rooms_router  # noqa: E402
from backend.api.routes.teams import router as teams_router  # noqa: E402
from backend.api.routes.team_rooms import router as team_rooms_router  # noqa: E402
from backend.api.routes.bookings import router as bookings_router  # noqa: E402
from backend.api.routes.search import router as search_router  # noqa: E402

router = APIRouter()
router.include_router(branches_router)
router.include_router(individual_rooms_router)
router.include_router(teams_router)
router.include_router(team_rooms_router)
router.include_router(bookings_router)
router.include_router(search_router)
