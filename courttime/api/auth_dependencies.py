"""
Authentication dependencies for FastAPI routes.
"""

import os

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from dotenv import load_dotenv
from courttime.services import auth_service, user_service, member_service
from courttime.database.db import get_db_session

load_dotenv()

security = HTTPBearer()


async def get_current_user(
    session: AsyncSession = Depends(get_db_session),
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """
    Dependency to get the current authenticated user from JWT token.

    Args:
        session: Database session
        credentials: HTTP Bearer token credentials

    Returns:
        User dictionary

    Raises:
        HTTPException: If token is invalid or user not found
    """
    token = credentials.credentials

    payload = auth_service.verify_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("user_id")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await user_service.get_user_by_id(session, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


def is_system_admin(user: dict) -> bool:
    """
    Determine if the user is a system admin.

    System admins are listed by email in SYSTEM_ADMIN_EMAILS (comma-separated).
    """
    email_setting = os.getenv("SYSTEM_ADMIN_EMAILS", "")
    if not email_setting or not user.get("email"):
        return False
    emails = {e.strip().lower() for e in email_setting.split(",") if e.strip()}
    return user["email"].strip().lower() in emails


async def ensure_facility_admin(session: AsyncSession, facility_id: str, user: dict) -> dict:
    """
    Verify the user administers the facility (or is a system admin).

    Raises:
        HTTPException 403 if not authorized.
    """
    if is_system_admin(user):
        return user
    if not await member_service.is_facility_admin(session, facility_id, user["id"]):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Facility admin access required"
        )
    return user


def make_require_facility_admin():
    """Require facility admin for the ``facility_id`` path parameter."""

    async def _dep(
        facility_id: str,
        user: dict = Depends(get_current_user),
        session: AsyncSession = Depends(get_db_session),
    ) -> dict:
        return await ensure_facility_admin(session, facility_id, user)

    return _dep


require_facility_admin = make_require_facility_admin()
