"""
Member management for facility admins: listing, editing, and removing
facility memberships. Removing a member never deletes the user account.
"""

from typing import Dict, List, Optional
import logging

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from courttime.database.models import FacilityMembership, MembershipStatus, User
from courttime.services.membership_service import upsert_membership
from courttime.utils.constants import DEFAULT_MEMBERSHIP_TYPE
from courttime.utils.datetime_utils import parse_booking_date

logger = logging.getLogger(__name__)


def _member_to_dict(user: User, membership: FacilityMembership) -> Dict:
    return {
        "userId": user.id,
        "email": user.email,
        "fullName": user.full_name,
        "phone": user.phone,
        "streetAddress": user.street_address,
        "membershipId": membership.id,
        "membershipType": membership.membership_type,
        "status": membership.status,
        "isFacilityAdmin": membership.is_facility_admin,
        "startDate": membership.start_date.isoformat() if membership.start_date else None,
        "endDate": membership.end_date.isoformat() if membership.end_date else None,
        "createdAt": membership.created_at.isoformat() if membership.created_at else None,
    }


async def get_facility_members(
    session: AsyncSession, facility_id: str, search: Optional[str] = None
) -> List[Dict]:
    """
    Members of a facility with their profiles, newest membership first.

    Args:
        session: Database session
        facility_id: Facility ID
        search: Optional case-insensitive substring matched against name,
            email, and street address
    """
    query = (
        select(User, FacilityMembership)
        .join(FacilityMembership, FacilityMembership.user_id == User.id)
        .where(FacilityMembership.facility_id == facility_id)
    )
    if search:
        pattern = f"%{search.lower()}%"
        query = query.where(
            or_(
                func.lower(User.full_name).like(pattern),
                func.lower(User.email).like(pattern),
                func.lower(User.street_address).like(pattern),
            )
        )
    result = await session.execute(
        query.order_by(FacilityMembership.created_at.desc(), FacilityMembership.id.desc())
    )
    return [_member_to_dict(user, membership) for user, membership in result.all()]


async def get_member_details(session: AsyncSession, facility_id: str, user_id: int) -> Optional[Dict]:
    """One member's profile and membership at a facility, or None."""
    result = await session.execute(
        select(User, FacilityMembership)
        .join(FacilityMembership, FacilityMembership.user_id == User.id)
        .where(FacilityMembership.facility_id == facility_id, User.id == user_id)
    )
    row = result.first()
    if row is None:
        return None
    return _member_to_dict(*row)


async def update_member_membership(
    session: AsyncSession, facility_id: str, user_id: int, updates: Dict
) -> bool:
    """
    Apply a partial update to a membership.

    Args:
        updates: Any of membershipType, status, isFacilityAdmin, endDate.
            Unknown keys are ignored.

    Returns:
        True if a membership row was updated, False if nothing to update
        or no membership exists

    Raises:
        ValueError: If status or endDate is invalid
    """
    values = {}
    if "membershipType" in updates:
        values["membership_type"] = updates["membershipType"]
    if "status" in updates:
        status = updates["status"]
        if status not in {s.value for s in MembershipStatus}:
            raise ValueError(f"Invalid membership status: {status}")
        values["status"] = status
    if "isFacilityAdmin" in updates:
        values["is_facility_admin"] = bool(updates["isFacilityAdmin"])
    if "endDate" in updates:
        end_date = updates["endDate"]
        values["end_date"] = parse_booking_date(end_date) if end_date else None

    if not values:
        return False

    values["updated_at"] = func.now()
    result = await session.execute(
        update(FacilityMembership)
        .where(
            FacilityMembership.facility_id == facility_id,
            FacilityMembership.user_id == user_id,
        )
        .values(**values)
    )
    return result.rowcount > 0


async def remove_member_from_facility(session: AsyncSession, facility_id: str, user_id: int) -> bool:
    """Delete the membership row. Returns True if one existed."""
    result = await session.execute(
        delete(FacilityMembership).where(
            FacilityMembership.facility_id == facility_id,
            FacilityMembership.user_id == user_id,
        )
    )
    if result.rowcount > 0:
        logger.info(f"Removed user {user_id} from facility {facility_id}")
    return result.rowcount > 0


async def add_member_to_facility(
    session: AsyncSession,
    facility_id: str,
    user_id: int,
    membership_type: Optional[str] = None,
    is_facility_admin: bool = False,
) -> bool:
    """
    Admin add: upsert an active membership, bypassing the address whitelist.

    Raises:
        ValueError: If the user does not exist
    """
    result = await session.execute(select(User.id).where(User.id == user_id))
    if result.scalar_one_or_none() is None:
        raise ValueError("User not found")

    await upsert_membership(
        session,
        user_id,
        facility_id,
        MembershipStatus.ACTIVE.value,
        membership_type or DEFAULT_MEMBERSHIP_TYPE,
        is_facility_admin=is_facility_admin,
    )
    return True


async def set_member_as_admin(
    session: AsyncSession, facility_id: str, user_id: int, is_admin: bool
) -> bool:
    """Grant or revoke facility admin. Returns False if the user is not a member."""
    result = await session.execute(
        update(FacilityMembership)
        .where(
            FacilityMembership.facility_id == facility_id,
            FacilityMembership.user_id == user_id,
        )
        .values(is_facility_admin=is_admin, updated_at=func.now())
    )
    return result.rowcount > 0


async def is_facility_admin(session: AsyncSession, facility_id: str, user_id: int) -> bool:
    """True only for an active membership flagged as facility admin."""
    result = await session.execute(
        select(FacilityMembership.is_facility_admin).where(
            FacilityMembership.facility_id == facility_id,
            FacilityMembership.user_id == user_id,
            FacilityMembership.status == MembershipStatus.ACTIVE.value,
        )
    )
    return bool(result.scalar_one_or_none())
