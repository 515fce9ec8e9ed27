"""
Address whitelist management for facility admins.

Entries are the data membership admission reads; nothing here creates
memberships. Lookups in this module compare addresses exactly, unlike
admission, which ignores case.
"""

from typing import Dict, List, Optional
import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from courttime.database.models import AddressWhitelistEntry, FacilityMembership, MembershipStatus, User
from courttime.utils.constants import DEFAULT_ACCOUNTS_LIMIT

logger = logging.getLogger(__name__)


def _entry_to_dict(entry: AddressWhitelistEntry) -> Dict:
    return {
        "id": entry.id,
        "facilityId": entry.facility_id,
        "address": entry.address,
        "accountsLimit": entry.accounts_limit,
        "createdAt": entry.created_at.isoformat() if entry.created_at else None,
        "updatedAt": entry.updated_at.isoformat() if entry.updated_at else None,
    }


def _validate_accounts_limit(accounts_limit) -> int:
    try:
        value = int(accounts_limit)
    except (TypeError, ValueError):
        raise ValueError("Accounts limit must be a number")
    if value < 1:
        raise ValueError("Accounts limit must be at least 1")
    return value


async def get_whitelisted_addresses(session: AsyncSession, facility_id: str) -> List[Dict]:
    """All whitelist entries for a facility, ordered by address."""
    result = await session.execute(
        select(AddressWhitelistEntry)
        .where(AddressWhitelistEntry.facility_id == facility_id)
        .order_by(AddressWhitelistEntry.address)
    )
    return [_entry_to_dict(e) for e in result.scalars().all()]


async def add_whitelisted_address(
    session: AsyncSession,
    facility_id: str,
    address: str,
    accounts_limit: Optional[int] = None,
) -> Dict:
    """
    Add an address to a facility's whitelist.

    Args:
        session: Database session
        facility_id: Facility ID
        address: Street address as residents will enter it
        accounts_limit: Maximum member accounts at the address (default 4)

    Returns:
        The created entry

    Raises:
        ValueError: If the address is empty, the limit is invalid, or the
            address is already whitelisted for the facility
    """
    address = (address or "").strip()
    if not address:
        raise ValueError("Address is required")
    limit = _validate_accounts_limit(
        DEFAULT_ACCOUNTS_LIMIT if accounts_limit is None else accounts_limit
    )

    existing = await session.execute(
        select(AddressWhitelistEntry.id).where(
            AddressWhitelistEntry.facility_id == facility_id,
            AddressWhitelistEntry.address == address,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise ValueError("Address already whitelisted")

    entry = AddressWhitelistEntry(facility_id=facility_id, address=address, accounts_limit=limit)
    session.add(entry)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise ValueError("Address already whitelisted")
    await session.refresh(entry)

    logger.info(f"Whitelisted address for {facility_id} with limit {limit}")
    return _entry_to_dict(entry)


async def remove_whitelisted_address(session: AsyncSession, facility_id: str, address_id: int) -> bool:
    """
    Delete a whitelist entry.

    Returns:
        True if removed, False if no such entry belongs to the facility
    """
    result = await session.execute(
        delete(AddressWhitelistEntry).where(
            AddressWhitelistEntry.id == address_id,
            AddressWhitelistEntry.facility_id == facility_id,
        )
    )
    return result.rowcount > 0


async def update_accounts_limit(
    session: AsyncSession, facility_id: str, address_id: int, accounts_limit: int
) -> bool:
    """
    Change the account cap of a whitelist entry.

    Raises:
        ValueError: If the limit is not a whole number >= 1
    """
    limit = _validate_accounts_limit(accounts_limit)
    result = await session.execute(
        update(AddressWhitelistEntry)
        .where(
            AddressWhitelistEntry.id == address_id,
            AddressWhitelistEntry.facility_id == facility_id,
        )
        .values(accounts_limit=limit, updated_at=func.now())
    )
    return result.rowcount > 0


async def is_address_whitelisted(session: AsyncSession, facility_id: str, address: str) -> Dict:
    """Exact-match whitelist check: {"isWhitelisted": bool, "accountsLimit": int?}."""
    result = await session.execute(
        select(AddressWhitelistEntry.accounts_limit).where(
            AddressWhitelistEntry.facility_id == facility_id,
            AddressWhitelistEntry.address == address,
        )
    )
    limit = result.scalar_one_or_none()
    if limit is None:
        return {"isWhitelisted": False}
    return {"isWhitelisted": True, "accountsLimit": limit}


async def get_account_count_at_address(session: AsyncSession, facility_id: str, address: str) -> int:
    """Distinct users at an exact address with a non-expired membership at the facility."""
    result = await session.execute(
        select(func.count(func.distinct(User.id)))
        .select_from(User)
        .join(FacilityMembership, FacilityMembership.user_id == User.id)
        .where(
            FacilityMembership.facility_id == facility_id,
            User.street_address == address,
            FacilityMembership.status != MembershipStatus.EXPIRED.value,
        )
    )
    return result.scalar_one() or 0
