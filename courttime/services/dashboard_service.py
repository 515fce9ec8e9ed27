"""
Facility admin dashboard: this month's booking and membership figures.
"""

from datetime import date
from typing import Dict, Optional
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from courttime.database.models import (
    Booking,
    BookingStatus,
    Court,
    CourtStatus,
    FacilityMembership,
    MembershipStatus,
    User,
)
from courttime.utils.constants import (
    DASHBOARD_RECENT_ACTIVITY_LIMIT,
    UTILIZATION_DAYS_PER_MONTH,
    UTILIZATION_HOURS_PER_DAY,
)
from courttime.utils.datetime_utils import (
    format_date,
    format_time,
    month_start,
    next_month_start,
    utcnow,
)

logger = logging.getLogger(__name__)


async def _count_bookings(session: AsyncSession, facility_id: str, start: date, end: date) -> int:
    result = await session.execute(
        select(func.count(Booking.id)).where(
            Booking.facility_id == facility_id,
            Booking.booking_date >= start,
            Booking.booking_date < end,
            Booking.status != BookingStatus.CANCELLED.value,
        )
    )
    return result.scalar_one()


async def _count_active_members(
    session: AsyncSession, facility_id: str, started_before: Optional[date] = None
) -> int:
    query = select(func.count(FacilityMembership.id)).where(
        FacilityMembership.facility_id == facility_id,
        FacilityMembership.status == MembershipStatus.ACTIVE.value,
    )
    if started_before is not None:
        query = query.where(FacilityMembership.start_date < started_before)
    result = await session.execute(query)
    return result.scalar_one()


async def _court_utilization(
    session: AsyncSession, facility_id: str, start: date, end: date
) -> int:
    """Percent of available court hours booked this month; 0 with no available courts."""
    courts = await session.execute(
        select(func.count(Court.id)).where(
            Court.facility_id == facility_id,
            Court.status == CourtStatus.AVAILABLE.value,
        )
    )
    total_courts = courts.scalar_one()
    if not total_courts:
        return 0

    booked = await session.execute(
        select(func.count(Booking.id))
        .join(Court, Booking.court_id == Court.id)
        .where(
            Court.facility_id == facility_id,
            Court.status == CourtStatus.AVAILABLE.value,
            Booking.booking_date >= start,
            Booking.booking_date < end,
            Booking.status != BookingStatus.CANCELLED.value,
        )
    )
    total_slots = total_courts * UTILIZATION_DAYS_PER_MONTH * UTILIZATION_HOURS_PER_DAY
    return round(booked.scalar_one() / total_slots * 100)


async def get_dashboard_stats(
    session: AsyncSession, facility_id: str, today: Optional[date] = None
) -> Dict:
    """
    Dashboard figures for a facility.

    Args:
        session: Database session
        facility_id: Facility to report on
        today: Reference day for "this month"; defaults to the current UTC date

    Returns:
        Dict with ``stats`` (totalBookings, bookingsChange, activeMembers,
        newMembers, courtUtilization) and ``recentActivity`` (the most
        recently created bookings, any status)
    """
    today = today or utcnow().date()
    this_month = month_start(today)
    last_month = month_start(today, months_back=1)
    following_month = next_month_start(today)

    total_bookings = await _count_bookings(session, facility_id, this_month, following_month)
    last_month_bookings = await _count_bookings(session, facility_id, last_month, this_month)
    bookings_change = (
        round((total_bookings - last_month_bookings) / last_month_bookings * 100)
        if last_month_bookings > 0
        else 0
    )

    active_members = await _count_active_members(session, facility_id)
    members_before_month = await _count_active_members(session, facility_id, started_before=this_month)

    utilization = await _court_utilization(session, facility_id, this_month, following_month)

    recent = await session.execute(
        select(Booking, User.full_name, Court.name)
        .join(User, Booking.user_id == User.id)
        .join(Court, Booking.court_id == Court.id)
        .where(Booking.facility_id == facility_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .limit(DASHBOARD_RECENT_ACTIVITY_LIMIT)
    )
    recent_activity = [
        {
            "id": booking.id,
            "bookingDate": format_date(booking.booking_date),
            "startTime": format_time(booking.start_time),
            "endTime": format_time(booking.end_time),
            "userName": user_name,
            "courtName": court_name,
            "status": booking.status,
            "createdAt": booking.created_at.isoformat() if booking.created_at else None,
        }
        for booking, user_name, court_name in recent.all()
    ]

    stats = {
        "totalBookings": total_bookings,
        "bookingsChange": bookings_change,
        "activeMembers": active_members,
        "newMembers": max(0, active_members - members_before_month),
        "courtUtilization": utilization,
    }
    logger.debug(f"Dashboard stats for {facility_id} ({this_month}): {stats}")
    return {"stats": stats, "recentActivity": recent_activity}
