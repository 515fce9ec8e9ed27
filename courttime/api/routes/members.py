"""Facility member management route handlers."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from courttime.api.auth_dependencies import require_facility_admin
from courttime.api.responses import error_response, server_error
from courttime.database.db import get_db_session
from courttime.models.schemas import AddMemberRequest, SetAdminRequest
from courttime.services import member_service
from courttime.services.results import ErrorKind
from courttime.utils.constants import MEMBER_UPDATABLE_FIELDS

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/members/{facility_id}")
async def list_members(
    facility_id: str,
    search: Optional[str] = None,
    admin: dict = Depends(require_facility_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Members of a facility, optionally filtered by a search term."""
    try:
        members = await member_service.get_facility_members(session, facility_id, search)
        return {"success": True, "members": members}
    except Exception as e:
        logger.error(f"Error fetching facility members: {str(e)}")
        return server_error("Failed to fetch facility members")


@router.post("/api/members/{facility_id}", status_code=201)
async def add_member(
    facility_id: str,
    payload: AddMemberRequest,
    admin: dict = Depends(require_facility_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Add a user as an active member, bypassing whitelist admission."""
    if not payload.user_id:
        return error_response(400, "User ID is required", ErrorKind.VALIDATION_ERROR)
    try:
        await member_service.add_member_to_facility(
            session,
            facility_id,
            payload.user_id,
            payload.membership_type,
            payload.is_facility_admin,
        )
        member = await member_service.get_member_details(session, facility_id, payload.user_id)
        return {
            "success": True,
            "member": member,
            "message": "Member added to facility successfully",
        }
    except ValueError as e:
        return error_response(400, str(e), ErrorKind.VALIDATION_ERROR)
    except Exception as e:
        logger.error(f"Error adding member to facility: {str(e)}")
        return server_error("Failed to add member to facility")


@router.get("/api/members/{facility_id}/{user_id}/is-admin")
async def check_is_admin(
    facility_id: str, user_id: int, session: AsyncSession = Depends(get_db_session)
):
    """Whether a user is an admin of the facility."""
    try:
        is_admin = await member_service.is_facility_admin(session, facility_id, user_id)
        return {"success": True, "isAdmin": is_admin}
    except Exception as e:
        logger.error(f"Error checking facility admin: {str(e)}")
        return server_error("Failed to check admin status")


@router.get("/api/members/{facility_id}/{user_id}")
async def get_member(
    facility_id: str,
    user_id: int,
    admin: dict = Depends(require_facility_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """One member's details."""
    try:
        member = await member_service.get_member_details(session, facility_id, user_id)
        if member is None:
            return error_response(404, "Member not found", ErrorKind.NOT_FOUND)
        return {"success": True, "member": member}
    except Exception as e:
        logger.error(f"Error fetching member details: {str(e)}")
        return server_error("Failed to fetch member details")


@router.patch("/api/members/{facility_id}/{user_id}")
async def update_member(
    facility_id: str,
    user_id: int,
    updates: Dict[str, Any] = Body(...),
    admin: dict = Depends(require_facility_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Partially update a membership."""
    unknown = sorted(set(updates) - set(MEMBER_UPDATABLE_FIELDS))
    if unknown:
        return error_response(
            400, f"Unknown fields: {', '.join(unknown)}", ErrorKind.VALIDATION_ERROR
        )
    if not updates:
        return error_response(400, "No valid fields to update", ErrorKind.VALIDATION_ERROR)
    try:
        updated = await member_service.update_member_membership(
            session, facility_id, user_id, updates
        )
        if not updated:
            return error_response(404, "Member not found", ErrorKind.NOT_FOUND)
        member = await member_service.get_member_details(session, facility_id, user_id)
        return {"success": True, "member": member, "message": "Member updated successfully"}
    except ValueError as e:
        return error_response(400, str(e), ErrorKind.VALIDATION_ERROR)
    except Exception as e:
        logger.error(f"Error updating member: {str(e)}")
        return server_error("Failed to update member")


@router.delete("/api/members/{facility_id}/{user_id}")
async def remove_member(
    facility_id: str,
    user_id: int,
    admin: dict = Depends(require_facility_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Remove a member from the facility; the account is kept."""
    try:
        removed = await member_service.remove_member_from_facility(session, facility_id, user_id)
        if not removed:
            return error_response(404, "Member not found", ErrorKind.NOT_FOUND)
        return {"success": True, "message": "Member removed from facility successfully"}
    except Exception as e:
        logger.error(f"Error removing member: {str(e)}")
        return server_error("Failed to remove member")


@router.put("/api/members/{facility_id}/{user_id}/admin")
async def set_admin(
    facility_id: str,
    user_id: int,
    payload: SetAdminRequest,
    admin: dict = Depends(require_facility_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Grant or revoke facility admin."""
    if payload.is_admin is None:
        return error_response(400, "isAdmin must be a boolean", ErrorKind.VALIDATION_ERROR)
    try:
        updated = await member_service.set_member_as_admin(
            session, facility_id, user_id, payload.is_admin
        )
        if not updated:
            return error_response(404, "Member not found", ErrorKind.NOT_FOUND)
        return {
            "success": True,
            "message": f"Member {'promoted to' if payload.is_admin else 'removed from'} admin",
        }
    except Exception as e:
        logger.error(f"Error updating admin status: {str(e)}")
        return server_error("Failed to update admin status")
