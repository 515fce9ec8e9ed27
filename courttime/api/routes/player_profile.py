"""Player profile route handlers."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from courttime.api.responses import error_response, server_error
from courttime.database.db import get_db_session
from courttime.models.schemas import RequestMembershipRequest, UpdateProfileRequest
from courttime.services import booking_service, membership_service, user_service
from courttime.services.results import ErrorKind

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/player-profile/{user_id}")
async def get_player_profile(user_id: int, session: AsyncSession = Depends(get_db_session)):
    """Player profile with active and pending memberships."""
    try:
        profile = await user_service.get_player_profile(session, user_id)
        if profile is None:
            return error_response(404, "Player profile not found", ErrorKind.NOT_FOUND)
        return {"success": True, "profile": profile}
    except Exception as e:
        logger.error(f"Error fetching profile for user {user_id}: {str(e)}")
        return server_error("Failed to fetch player profile")


@router.patch("/api/player-profile/{user_id}")
async def update_player_profile(
    user_id: int, payload: UpdateProfileRequest, session: AsyncSession = Depends(get_db_session)
):
    """Update profile fields and return the refreshed profile."""
    try:
        if await user_service.get_user_by_id(session, user_id) is None:
            return error_response(404, "Player profile not found", ErrorKind.NOT_FOUND)

        updated = await user_service.update_user_profile(
            session,
            user_id,
            full_name=payload.full_name,
            phone=payload.phone,
            street_address=payload.street_address,
            city=payload.city,
            state=payload.state,
            zip_code=payload.zip_code,
        )
        if not updated:
            return error_response(400, "No valid updates provided", ErrorKind.VALIDATION_ERROR)

        profile = await user_service.get_player_profile(session, user_id)
        return {"success": True, "profile": profile, "message": "Profile updated successfully"}
    except Exception as e:
        logger.error(f"Error updating profile for user {user_id}: {str(e)}")
        return server_error("Failed to update player profile")


@router.post("/api/player-profile/{user_id}/request-membership")
async def request_membership(
    user_id: int, payload: RequestMembershipRequest, session: AsyncSession = Depends(get_db_session)
):
    """Ask to join a facility; the membership waits as pending."""
    try:
        await membership_service.request_facility_membership(
            session, user_id, payload.facility_id, payload.membership_type
        )
        return {"success": True, "message": "Membership request submitted successfully"}
    except ValueError as e:
        return error_response(400, str(e), ErrorKind.VALIDATION_ERROR)
    except Exception as e:
        logger.error(f"Error requesting membership for user {user_id}: {str(e)}")
        return server_error("Failed to request membership")


@router.get("/api/player-profile/{user_id}/bookings")
async def get_player_bookings(
    user_id: int, upcoming: bool = True, session: AsyncSession = Depends(get_db_session)
):
    """A player's upcoming (default) or past bookings."""
    try:
        bookings = await booking_service.get_bookings_by_user(session, user_id, upcoming=upcoming)
        return {"success": True, "bookings": bookings}
    except Exception as e:
        logger.error(f"Error fetching bookings for user {user_id}: {str(e)}")
        return server_error("Failed to fetch bookings")
