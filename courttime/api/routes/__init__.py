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
limiter = Limiter(key_func=get_remote_address)
if IS_TEST_ENV:

    def no_op_limit(*args, **kwargs):
        """No-op decorator for test mode - doesn't apply any rate limiting."""
        def decorator(func):
            return func
        return decorator

    limiter.limit = no_op_limit

# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from courttime.api.routes.bookings import router as bookings_router
from courttime.api.routes.auth import router as auth_router
from courttime.api.routes.address_whitelist import router as address_whitelist_router
from courttime.api.routes.members import router as members_router
from courttime.api.routes.admin import router as admin_router
from courttime.api.routes.facilities import router as facilities_router
from courttime.api.routes.notifications import router as notifications_router
from courttime.api.routes.player_profile import router as player_profile_router
from courttime.api.routes.messages import router as messages_router

router = APIRouter()
router.include_router(bookings_router)
router.include_router(auth_router)
router.include_router(address_whitelist_router)
router.include_router(members_router)
router.include_router(admin_router)
router.include_router(facilities_router)
router.include_router(notifications_router)
router.include_router(player_profile_router)
router.include_router(messages_router)
