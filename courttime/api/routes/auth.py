"""Authentication route handlers."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from courttime.api.routes import limiter
from courttime.api.responses import error_response, server_error
from courttime.api.auth_dependencies import get_current_user
from courttime.database.db import get_db_session
from courttime.models.schemas import AddFacilityRequest, LoginRequest, RegisterRequest
from courttime.services import auth_service, membership_service, user_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/auth/register", status_code=201)
@limiter.limit("10/minute")
async def register(
    request: Request, payload: RegisterRequest, session: AsyncSession = Depends(get_db_session)
):
    """
    Create an account, then run membership admission for each selected facility.
    """
    if not payload.email or not payload.password or not payload.full_name:
        return error_response(400, "Email, password, and full name are required")
    try:
        user = await user_service.register_user(
            session,
            email=payload.email,
            password=payload.password,
            full_name=payload.full_name,
            user_type=payload.user_type or "player",
            phone=payload.phone,
            street_address=payload.street_address,
            city=payload.city,
            state=payload.state,
            zip_code=payload.zip_code,
        )
        for facility_id in payload.selected_facilities:
            # A facility that cannot be joined is skipped; the account stays
            try:
                async with session.begin_nested():
                    await membership_service.add_user_to_facility(session, user["id"], facility_id)
            except ValueError as e:
                logger.warning(
                    f"Skipping facility {facility_id} for new user {user['id']}: {str(e)}"
                )

        user_with_memberships = await user_service.get_user_with_memberships(session, user["id"])
        return {
            "success": True,
            "user": user_with_memberships,
            "message": "User registered successfully",
        }
    except ValueError as e:
        await session.rollback()
        return error_response(400, str(e))
    except Exception as e:
        await session.rollback()
        logger.error(f"Error registering user: {str(e)}")
        return server_error("Registration failed")


@router.post("/api/auth/login")
@limiter.limit("10/minute")
async def login(
    request: Request, payload: LoginRequest, session: AsyncSession = Depends(get_db_session)
):
    """Log in with email and password; returns the user and an access token."""
    if not payload.email or not payload.password:
        return error_response(400, "Email and password are required")
    try:
        user = await user_service.login_user(session, payload.email, payload.password)
        if user is None:
            return error_response(401, "Invalid email or password")

        access_token = auth_service.create_access_token(data={"user_id": user["id"]})
        return {"success": True, "user": user, "accessToken": access_token}
    except Exception as e:
        logger.error(f"Error logging in: {str(e)}")
        return server_error("Login failed")


@router.get("/api/auth/me")
async def get_me(
    user: dict = Depends(get_current_user), session: AsyncSession = Depends(get_db_session)
):
    """Current user (from the bearer token) with memberships."""
    try:
        user_with_memberships = await user_service.get_user_with_memberships(session, user["id"])
        return {"success": True, "user": user_with_memberships}
    except Exception as e:
        logger.error(f"Error fetching current user: {str(e)}")
        return server_error("Failed to fetch user")


@router.get("/api/auth/me/{user_id}")
async def get_user_with_memberships(user_id: int, session: AsyncSession = Depends(get_db_session)):
    """User with memberships, for session refresh."""
    try:
        user = await user_service.get_user_with_memberships(session, user_id)
        if user is None:
            return error_response(404, "User not found")
        return {"success": True, "user": user}
    except Exception as e:
        logger.error(f"Error fetching user {user_id}: {str(e)}")
        return server_error("Failed to fetch user")


@router.post("/api/auth/add-facility")
async def add_facility(payload: AddFacilityRequest, session: AsyncSession = Depends(get_db_session)):
    """Join a facility; membership admission decides active vs pending."""
    if not payload.user_id or not payload.facility_id:
        return error_response(400, "User ID and facility ID are required")
    try:
        status = await membership_service.add_user_to_facility(
            session, payload.user_id, payload.facility_id, payload.membership_type
        )
        user = await user_service.get_user_with_memberships(session, payload.user_id)
        return {
            "success": True,
            "status": status,
            "user": user,
            "message": "User added to facility successfully",
        }
    except ValueError as e:
        return error_response(400, str(e))
    except Exception as e:
        logger.error(f"Error adding user to facility: {str(e)}")
        return server_error("Failed to add user to facility")
