"""
Membership admission: decides whether a user joining a facility is
auto-approved (active) or held for review (pending).

A facility can pre-approve resident addresses through its address
whitelist, each with a cap on how many member accounts may share that
address. Address comparisons here are case-insensitive.
"""

from datetime import date
from typing import Optional
import logging

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from courttime.database.models import (
    AddressWhitelistEntry,
    Facility,
    FacilityMembership,
    MembershipStatus,
    User,
)
from courttime.utils.constants import DEFAULT_MEMBERSHIP_TYPE

logger = logging.getLogger(__name__)

# Memberships that occupy a slot under an address cap
COUNTED_STATUSES = (MembershipStatus.ACTIVE.value, MembershipStatus.PENDING.value)


def decide_membership_status(
    street_address: Optional[str],
    accounts_limit: Optional[int],
    current_count: int,
) -> str:
    """
    Pure admission decision.

    Args:
        street_address: The user's stored street address, if any
        accounts_limit: Cap from the matching whitelist entry, or None if no entry matched
        current_count: Distinct users already counted at the address

    Returns:
        "active" if the address is whitelisted and under its cap, else "pending"
    """
    if not street_address or not street_address.strip():
        return MembershipStatus.PENDING.value
    if accounts_limit is None:
        return MembershipStatus.PENDING.value
    if current_count < accounts_limit:
        return MembershipStatus.ACTIVE.value
    return MembershipStatus.PENDING.value


async def find_whitelist_entry(
    session: AsyncSession, facility_id: str, address: str, lock: bool = False
) -> Optional[AddressWhitelistEntry]:
    """Whitelist entry for the facility whose address matches, ignoring case."""
    query = (
        select(AddressWhitelistEntry)
        .where(
            AddressWhitelistEntry.facility_id == facility_id,
            func.lower(AddressWhitelistEntry.address) == func.lower(address),
        )
        .order_by(AddressWhitelistEntry.id)
        .limit(1)
    )
    if lock:
        query = query.with_for_update()
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def count_accounts_at_address(session: AsyncSession, facility_id: str, address: str) -> int:
    """
    Count distinct users holding an active or pending membership at the
    facility whose street address matches, ignoring case.
    """
    result = await session.execute(
        select(func.count(func.distinct(User.id)))
        .select_from(User)
        .join(FacilityMembership, FacilityMembership.user_id == User.id)
        .where(
            FacilityMembership.facility_id == facility_id,
            FacilityMembership.status.in_(COUNTED_STATUSES),
            func.lower(User.street_address) == func.lower(address),
        )
    )
    return result.scalar_one() or 0


def _insert_for(session: AsyncSession):
    """Dialect-specific INSERT construct supporting ON CONFLICT."""
    if session.get_bind().dialect.name == "sqlite":
        return sqlite.insert
    return postgresql.insert


async def upsert_membership(
    session: AsyncSession,
    user_id: int,
    facility_id: str,
    status: str,
    membership_type: str = DEFAULT_MEMBERSHIP_TYPE,
    start_date: Optional[date] = None,
    is_facility_admin: Optional[bool] = None,
) -> None:
    """
    Insert or overwrite the membership row for (user_id, facility_id).

    On conflict the status and membership type are replaced, not merged.
    ``is_facility_admin`` is only written when given.
    """
    insert = _insert_for(session)
    values = {
        "user_id": user_id,
        "facility_id": facility_id,
        "membership_type": membership_type,
        "status": status,
        "start_date": start_date or date.today(),
    }
    update_set = {
        "status": status,
        "membership_type": membership_type,
        "updated_at": func.now(),
    }
    if is_facility_admin is not None:
        values["is_facility_admin"] = is_facility_admin
        update_set["is_facility_admin"] = is_facility_admin
    else:
        values["is_facility_admin"] = False

    stmt = insert(FacilityMembership).values(**values)
    stmt = stmt.on_conflict_do_update(index_elements=["user_id", "facility_id"], set_=update_set)
    await session.execute(stmt)


async def add_user_to_facility(
    session: AsyncSession,
    user_id: int,
    facility_id: str,
    membership_type: Optional[str] = None,
) -> str:
    """
    Add (or re-add) a user to a facility, deciding active vs pending.

    The matching whitelist row is locked while the cap is counted and the
    membership is written, so concurrent joins at one address cannot both
    take the last slot.

    Args:
        session: Database session
        user_id: Joining user
        facility_id: Facility to join
        membership_type: Defaults to "Full"

    Returns:
        The status written ("active" or "pending")

    Raises:
        ValueError: If the user or facility does not exist
    """
    membership_type = membership_type or DEFAULT_MEMBERSHIP_TYPE

    result = await session.execute(select(User.street_address).where(User.id == user_id))
    row = result.first()
    if row is None:
        raise ValueError("User not found")
    street_address = row[0]

    facility = await session.execute(select(Facility.id).where(Facility.id == facility_id))
    if facility.scalar_one_or_none() is None:
        raise ValueError("Facility not found")

    accounts_limit = None
    current_count = 0
    if street_address and street_address.strip():
        entry = await find_whitelist_entry(session, facility_id, street_address, lock=True)
        if entry is not None:
            accounts_limit = entry.accounts_limit
            current_count = await count_accounts_at_address(session, facility_id, entry.address)

    status = decide_membership_status(street_address, accounts_limit, current_count)

    existing = await session.execute(
        select(FacilityMembership.status).where(
            FacilityMembership.user_id == user_id,
            FacilityMembership.facility_id == facility_id,
        )
    )
    previous_status = existing.scalar_one_or_none()
    if previous_status is not None:
        logger.info(
            f"Overwriting membership of user {user_id} at {facility_id}: "
            f"{previous_status} -> {status}"
        )

    await upsert_membership(session, user_id, facility_id, status, membership_type)
    logger.info(
        f"User {user_id} joined {facility_id} as {status} "
        f"(limit={accounts_limit}, counted={current_count})"
    )
    return status


async def request_facility_membership(
    session: AsyncSession,
    user_id: int,
    facility_id: Optional[str],
    membership_type: Optional[str] = None,
) -> None:
    """
    Ask to join a facility; the membership is written as pending for an admin to review.

    An existing membership at the facility is set back to pending.

    Raises:
        ValueError: If facility_id is missing or the user or facility does not exist
    """
    if not facility_id:
        raise ValueError("facilityId is required")

    user = await session.execute(select(User.id).where(User.id == user_id))
    if user.scalar_one_or_none() is None:
        raise ValueError("User not found")
    facility = await session.execute(select(Facility.id).where(Facility.id == facility_id))
    if facility.scalar_one_or_none() is None:
        raise ValueError("Facility not found")

    await upsert_membership(
        session,
        user_id,
        facility_id,
        MembershipStatus.PENDING.value,
        membership_type or DEFAULT_MEMBERSHIP_TYPE,
    )
    logger.info(f"User {user_id} requested membership at {facility_id}")
