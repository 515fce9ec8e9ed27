"""
Facility and court lookups, and admin edits of their details.
"""

from typing import Dict, List, Optional
import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from courttime.database.models import Court, CourtStatus, Facility, FacilityMembership, MembershipStatus

logger = logging.getLogger(__name__)


def _facility_to_dict(facility: Facility) -> Dict:
    return {
        "id": facility.id,
        "name": facility.name,
        "type": facility.type,
        "address": facility.address,
        "phone": facility.phone,
        "email": facility.email,
        "description": facility.description,
        "createdAt": facility.created_at.isoformat() if facility.created_at else None,
        "updatedAt": facility.updated_at.isoformat() if facility.updated_at else None,
    }


def _court_to_dict(court: Court) -> Dict:
    return {
        "id": court.id,
        "facilityId": court.facility_id,
        "name": court.name,
        "courtNumber": court.court_number,
        "surfaceType": court.surface_type,
        "courtType": court.court_type,
        "isIndoor": court.is_indoor,
        "hasLights": court.has_lights,
        "status": court.status,
    }


async def list_facilities(session: AsyncSession) -> List[Dict]:
    """All facilities ordered by name."""
    result = await session.execute(select(Facility).order_by(Facility.name))
    return [_facility_to_dict(f) for f in result.scalars().all()]


async def search_facilities(session: AsyncSession, search_query: str) -> List[Dict]:
    """
    Case-insensitive substring search over name, type, and address.

    Returns:
        Facility summaries with court and active member counts
    """
    pattern = f"%{(search_query or '').strip().lower()}%"

    court_counts = (
        select(Court.facility_id, func.count(Court.id).label("courts"))
        .group_by(Court.facility_id)
        .subquery()
    )
    member_counts = (
        select(
            FacilityMembership.facility_id,
            func.count(func.distinct(FacilityMembership.user_id)).label("members"),
        )
        .where(FacilityMembership.status == MembershipStatus.ACTIVE.value)
        .group_by(FacilityMembership.facility_id)
        .subquery()
    )

    result = await session.execute(
        select(Facility, court_counts.c.courts, member_counts.c.members)
        .outerjoin(court_counts, court_counts.c.facility_id == Facility.id)
        .outerjoin(member_counts, member_counts.c.facility_id == Facility.id)
        .where(
            or_(
                func.lower(Facility.name).like(pattern),
                func.lower(Facility.type).like(pattern),
                func.lower(Facility.address).like(pattern),
            )
        )
        .order_by(Facility.name)
    )
    return [
        {
            "id": facility.id,
            "name": facility.name,
            "type": facility.type or "Facility",
            "location": facility.address or "Location not specified",
            "description": facility.description or "",
            "courts": courts or 0,
            "members": members or 0,
        }
        for facility, courts, members in result.all()
    ]


async def get_facility(session: AsyncSession, facility_id: str) -> Optional[Dict]:
    """Facility by ID, or None."""
    result = await session.execute(select(Facility).where(Facility.id == facility_id))
    facility = result.scalar_one_or_none()
    return _facility_to_dict(facility) if facility else None


async def get_facility_courts(session: AsyncSession, facility_id: str) -> List[Dict]:
    """Courts of a facility ordered by court number."""
    result = await session.execute(
        select(Court)
        .where(Court.facility_id == facility_id)
        .order_by(Court.court_number, Court.id)
    )
    return [_court_to_dict(c) for c in result.scalars().all()]


# Request keys an admin may change, mapped to columns
FACILITY_UPDATABLE_FIELDS = {
    "name": "name",
    "type": "type",
    "address": "address",
    "phone": "phone",
    "email": "email",
    "description": "description",
}
COURT_UPDATABLE_FIELDS = {
    "name": "name",
    "courtNumber": "court_number",
    "surfaceType": "surface_type",
    "courtType": "court_type",
    "isIndoor": "is_indoor",
    "hasLights": "has_lights",
    "status": "status",
}


def _pick_updates(updates: Dict, allowed: Dict) -> Dict:
    """Column values for the allowed keys that are present and not None."""
    return {
        column: updates[key]
        for key, column in allowed.items()
        if key in updates and updates[key] is not None
    }


async def update_facility(session: AsyncSession, facility_id: str, updates: Dict) -> Optional[Dict]:
    """
    Update a facility's details. Omitted or null fields are left unchanged.

    Returns:
        The updated facility, or None if it does not exist

    Raises:
        ValueError: If the name is set to blank
    """
    result = await session.execute(select(Facility).where(Facility.id == facility_id))
    facility = result.scalar_one_or_none()
    if facility is None:
        return None

    values = _pick_updates(updates, FACILITY_UPDATABLE_FIELDS)
    if "name" in values and not str(values["name"]).strip():
        raise ValueError("Facility name cannot be empty")

    for column, value in values.items():
        setattr(facility, column, value)
    if values:
        facility.updated_at = func.now()
    await session.flush()
    await session.refresh(facility)
    logger.info(f"Updated facility {facility_id}: {sorted(values)}")
    return _facility_to_dict(facility)


async def update_court(session: AsyncSession, court_id: int, updates: Dict) -> Optional[Dict]:
    """
    Update a court's details. Omitted or null fields are left unchanged.

    Returns:
        The updated court, or None if it does not exist

    Raises:
        ValueError: On a blank name or an unknown status
    """
    result = await session.execute(select(Court).where(Court.id == court_id))
    court = result.scalar_one_or_none()
    if court is None:
        return None

    values = _pick_updates(updates, COURT_UPDATABLE_FIELDS)
    if "name" in values and not str(values["name"]).strip():
        raise ValueError("Court name cannot be empty")
    if "status" in values and values["status"] not in [s.value for s in CourtStatus]:
        raise ValueError(f"Invalid court status: {values['status']}")

    for column, value in values.items():
        setattr(court, column, value)
    if values:
        court.updated_at = func.now()
    await session.flush()
    await session.refresh(court)
    logger.info(f"Updated court {court_id}: {sorted(values)}")
    return _court_to_dict(court)


async def get_court_facility_id(session: AsyncSession, court_id: int) -> Optional[str]:
    """Facility that owns a court, or None if the court does not exist."""
    result = await session.execute(select(Court.facility_id).where(Court.id == court_id))
    return result.scalar_one_or_none()
