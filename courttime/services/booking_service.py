"""
Booking service: court reservation admission, cancellation, and listings.

Admission holds a row lock on the court while it checks for overlapping
reservations and inserts, so concurrent requests for the same court are
serialized by the database. Intervals are half-open: a booking ending at
10:00 does not conflict with one starting at 10:00.
"""

from datetime import date, time
from typing import Dict, List, Optional, Union
import logging

from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from courttime.database.models import Booking, BookingStatus, Court, Facility, User
from courttime.services.results import AdmissionResult, ErrorKind
from courttime.utils.constants import (
    ADMIN_BOOKING_STATUSES,
    MSG_BOOKING_NOT_FOUND_OR_UNAUTHORIZED,
    MSG_CANCEL_BOOKING_FAILED,
    MSG_CREATE_BOOKING_FAILED,
    MSG_MISSING_FIELDS,
    MSG_SLOT_UNAVAILABLE,
)
from courttime.utils.datetime_utils import (
    format_date,
    format_time,
    minutes_between,
    parse_booking_date,
    parse_time_of_day,
)

logger = logging.getLogger(__name__)

# Name of the PostgreSQL exclusion constraint added by migration 002
OVERLAP_CONSTRAINT_NAME = "ex_bookings_no_overlap"


def intervals_overlap(start: time, end: time, other_start: time, other_end: time) -> bool:
    """True if [start, end) and [other_start, other_end) share any instant."""
    return not (end <= other_start or start >= other_end)


def _overlap_clause(start: time, end: time):
    """SQL form of intervals_overlap against the Booking row being scanned."""
    return and_(Booking.start_time < end, Booking.end_time > start)


def _booking_to_dict(booking: Booking, **extra) -> Dict:
    data = {
        "id": booking.id,
        "courtId": booking.court_id,
        "userId": booking.user_id,
        "facilityId": booking.facility_id,
        "bookingDate": format_date(booking.booking_date),
        "startTime": format_time(booking.start_time),
        "endTime": format_time(booking.end_time),
        "durationMinutes": booking.duration_minutes,
        "status": booking.status,
        "bookingType": booking.booking_type,
        "notes": booking.notes,
        "createdAt": booking.created_at.isoformat() if booking.created_at else None,
        "updatedAt": booking.updated_at.isoformat() if booking.updated_at else None,
    }
    data.update(extra)
    return data


def _is_overlap_violation(error: IntegrityError) -> bool:
    return OVERLAP_CONSTRAINT_NAME in str(error.orig)


def validate_booking_fields(
    court_id, user_id, facility_id, booking_date, start_time, end_time, duration_minutes
):
    """
    Check presence and format of the booking request fields.

    Returns:
        Tuple of (booking_date, start_time, end_time, duration_minutes) parsed

    Raises:
        ValueError: If a field is missing or malformed
    """
    required = (court_id, user_id, facility_id, booking_date, start_time, end_time, duration_minutes)
    if any(value is None or value == "" for value in required):
        raise ValueError(MSG_MISSING_FIELDS)

    booking_day = parse_booking_date(booking_date)
    start = parse_time_of_day(start_time)
    end = parse_time_of_day(end_time)
    if end <= start:
        raise ValueError("End time must be after start time")

    try:
        duration = int(duration_minutes)
    except (TypeError, ValueError):
        raise ValueError("durationMinutes must be a whole number of minutes")
    if duration <= 0:
        raise ValueError("durationMinutes must be positive")

    return booking_day, start, end, duration


async def find_conflicting_booking(
    session: AsyncSession,
    court_id: int,
    booking_date: date,
    start_time: time,
    end_time: time,
    exclude_booking_id: Optional[int] = None,
) -> Optional[int]:
    """
    Find a non-cancelled booking on the court and date that overlaps [start, end).

    Returns:
        ID of one conflicting booking, or None
    """
    query = select(Booking.id).where(
        Booking.court_id == court_id,
        Booking.booking_date == booking_date,
        Booking.status != BookingStatus.CANCELLED.value,
        _overlap_clause(start_time, end_time),
    )
    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)
    result = await session.execute(query.limit(1))
    return result.scalar_one_or_none()


async def _lock_court(session: AsyncSession, court_id: int) -> Optional[Court]:
    result = await session.execute(select(Court).where(Court.id == court_id).with_for_update())
    return result.scalar_one_or_none()


async def create_booking(
    session: AsyncSession,
    court_id: int,
    user_id: int,
    facility_id: str,
    booking_date: Union[str, date],
    start_time: Union[str, time],
    end_time: Union[str, time],
    duration_minutes: int,
    booking_type: Optional[str] = None,
    notes: Optional[str] = None,
) -> AdmissionResult:
    """
    Create a confirmed booking if the court is free for the requested interval.

    Args:
        session: Database session
        court_id: Court to reserve
        user_id: Owning user
        facility_id: Facility the court belongs to
        booking_date: Date (YYYY-MM-DD)
        start_time: Local start time (HH:MM or HH:MM:SS)
        end_time: Local end time
        duration_minutes: Stored as supplied
        booking_type: Optional type (singles, doubles, lesson, ...)
        notes: Optional free-text notes

    Returns:
        AdmissionResult with the booking dict on success, otherwise a
        VALIDATION_ERROR, SLOT_UNAVAILABLE or PERSISTENCE_ERROR failure
    """
    try:
        booking_day, start, end, duration = validate_booking_fields(
            court_id, user_id, facility_id, booking_date, start_time, end_time, duration_minutes
        )
    except ValueError as e:
        return AdmissionResult.fail(ErrorKind.VALIDATION_ERROR, str(e))

    try:
        court = await _lock_court(session, court_id)
        if court is None or court.facility_id != facility_id:
            return AdmissionResult.fail(
                ErrorKind.VALIDATION_ERROR, "Court not found at this facility"
            )

        user_exists = await session.execute(select(User.id).where(User.id == user_id))
        if user_exists.scalar_one_or_none() is None:
            return AdmissionResult.fail(ErrorKind.VALIDATION_ERROR, "User not found")

        conflict_id = await find_conflicting_booking(session, court_id, booking_day, start, end)
        if conflict_id is not None:
            logger.info(
                f"Booking rejected: court {court_id} on {booking_day} {start}-{end} "
                f"overlaps booking {conflict_id}"
            )
            return AdmissionResult.fail(ErrorKind.SLOT_UNAVAILABLE, MSG_SLOT_UNAVAILABLE)

        if minutes_between(start, end) != duration:
            logger.warning(
                f"durationMinutes={duration} disagrees with {start}-{end} "
                f"for court {court_id} on {booking_day}; storing caller value"
            )

        booking = Booking(
            court_id=court_id,
            user_id=user_id,
            facility_id=facility_id,
            booking_date=booking_day,
            start_time=start,
            end_time=end,
            duration_minutes=duration,
            status=BookingStatus.CONFIRMED.value,
            booking_type=booking_type or None,
            notes=notes or None,
        )
        session.add(booking)
        await session.flush()
        await session.refresh(booking)
        court_name = court.name
    except IntegrityError as e:
        await session.rollback()
        if _is_overlap_violation(e):
            return AdmissionResult.fail(ErrorKind.SLOT_UNAVAILABLE, MSG_SLOT_UNAVAILABLE)
        logger.error(f"Error creating booking: {e}")
        return AdmissionResult.fail(ErrorKind.PERSISTENCE_ERROR, MSG_CREATE_BOOKING_FAILED)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Error creating booking: {e}")
        return AdmissionResult.fail(ErrorKind.PERSISTENCE_ERROR, MSG_CREATE_BOOKING_FAILED)

    return AdmissionResult.ok(_booking_to_dict(booking, courtName=court_name))


async def cancel_booking(session: AsyncSession, booking_id: int, user_id: int) -> AdmissionResult:
    """
    Cancel a booking owned by user_id.

    The row is kept with status 'cancelled'. Cancelling an already-cancelled
    booking as its owner succeeds without change in meaning.

    Returns:
        AdmissionResult; NOT_FOUND_OR_UNAUTHORIZED if no booking with this id
        belongs to the user
    """
    try:
        result = await session.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.user_id == user_id)
            .values(status=BookingStatus.CANCELLED.value, updated_at=func.now())
        )
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Error cancelling booking {booking_id}: {e}")
        return AdmissionResult.fail(ErrorKind.PERSISTENCE_ERROR, MSG_CANCEL_BOOKING_FAILED)

    if result.rowcount == 0:
        return AdmissionResult.fail(
            ErrorKind.NOT_FOUND_OR_UNAUTHORIZED, MSG_BOOKING_NOT_FOUND_OR_UNAUTHORIZED
        )
    return AdmissionResult.ok({"id": booking_id})


async def get_booking_by_id(session: AsyncSession, booking_id: int) -> Optional[Dict]:
    """Get a booking with its court name and owner details, any status."""
    result = await session.execute(
        select(Booking, Court.name, User.full_name, User.email)
        .join(Court, Booking.court_id == Court.id)
        .join(User, Booking.user_id == User.id)
        .where(Booking.id == booking_id)
    )
    row = result.first()
    if row is None:
        return None
    booking, court_name, user_name, user_email = row
    return _booking_to_dict(booking, courtName=court_name, userName=user_name, userEmail=user_email)


async def _list_with_court_and_user(session: AsyncSession, *conditions) -> List[Dict]:
    result = await session.execute(
        select(Booking, Court.name, User.full_name, User.email)
        .join(Court, Booking.court_id == Court.id)
        .join(User, Booking.user_id == User.id)
        .where(Booking.status != BookingStatus.CANCELLED.value, *conditions)
        .order_by(Booking.start_time, Booking.id)
    )
    return [
        _booking_to_dict(b, courtName=court_name, userName=user_name, userEmail=user_email)
        for b, court_name, user_name, user_email in result.all()
    ]


async def get_bookings_by_facility_and_date(
    session: AsyncSession, facility_id: str, booking_date: Union[str, date]
) -> List[Dict]:
    """Non-cancelled bookings at a facility on a date, ordered by start time."""
    booking_day = parse_booking_date(booking_date)
    return await _list_with_court_and_user(
        session, Booking.facility_id == facility_id, Booking.booking_date == booking_day
    )


async def get_bookings_by_court_and_date(
    session: AsyncSession, court_id: int, booking_date: Union[str, date]
) -> List[Dict]:
    """Non-cancelled bookings on a court on a date, ordered by start time."""
    booking_day = parse_booking_date(booking_date)
    return await _list_with_court_and_user(
        session, Booking.court_id == court_id, Booking.booking_date == booking_day
    )


async def get_bookings_by_user(
    session: AsyncSession, user_id: int, upcoming: bool = True
) -> List[Dict]:
    """
    A user's non-cancelled bookings, partitioned by the current date.

    Upcoming bookings (today or later) come soonest first; past bookings
    come most recent first.
    """
    query = (
        select(Booking, Court.name, Facility.name)
        .join(Court, Booking.court_id == Court.id)
        .join(Facility, Booking.facility_id == Facility.id)
        .where(
            Booking.user_id == user_id,
            Booking.status != BookingStatus.CANCELLED.value,
        )
    )
    if upcoming:
        query = query.where(Booking.booking_date >= func.current_date()).order_by(
            Booking.booking_date, Booking.start_time
        )
    else:
        query = query.where(Booking.booking_date < func.current_date()).order_by(
            Booking.booking_date.desc(), Booking.start_time.desc()
        )

    result = await session.execute(query)
    return [
        _booking_to_dict(b, courtName=court_name, facilityName=facility_name)
        for b, court_name, facility_name in result.all()
    ]


async def get_court_availability(
    session: AsyncSession,
    court_id: int,
    start_date: Union[str, date],
    end_date: Union[str, date],
) -> List[Dict]:
    """Occupied slots on a court across a date range (inclusive)."""
    first_day = parse_booking_date(start_date)
    last_day = parse_booking_date(end_date)
    if last_day < first_day:
        raise ValueError("endDate must not be before startDate")

    result = await session.execute(
        select(Booking, User.full_name)
        .join(User, Booking.user_id == User.id)
        .where(
            Booking.court_id == court_id,
            Booking.booking_date >= first_day,
            Booking.booking_date <= last_day,
            Booking.status != BookingStatus.CANCELLED.value,
        )
        .order_by(Booking.booking_date, Booking.start_time)
    )
    return [
        {
            "bookingDate": format_date(b.booking_date),
            "startTime": format_time(b.start_time),
            "endTime": format_time(b.end_time),
            "status": b.status,
            "bookedBy": booked_by,
        }
        for b, booked_by in result.all()
    ]


async def get_facility_bookings(
    session: AsyncSession,
    facility_id: str,
    status: Optional[str] = None,
    start_date: Optional[Union[str, date]] = None,
    end_date: Optional[Union[str, date]] = None,
    court_id: Optional[int] = None,
) -> List[Dict]:
    """
    Admin listing of a facility's bookings, any status unless filtered.

    ``status="all"`` is the same as no status filter. Newest first.
    """
    query = (
        select(Booking, Court.name, Court.court_number, User.full_name, User.email)
        .join(Court, Booking.court_id == Court.id)
        .join(User, Booking.user_id == User.id)
        .where(Booking.facility_id == facility_id)
    )
    if status and status != "all":
        query = query.where(Booking.status == status)
    if start_date:
        query = query.where(Booking.booking_date >= parse_booking_date(start_date))
    if end_date:
        query = query.where(Booking.booking_date <= parse_booking_date(end_date))
    if court_id is not None:
        query = query.where(Booking.court_id == court_id)

    result = await session.execute(
        query.order_by(Booking.booking_date.desc(), Booking.start_time.desc())
    )
    return [
        _booking_to_dict(
            b,
            courtName=court_name,
            courtNumber=court_number,
            userName=user_name,
            userEmail=user_email,
        )
        for b, court_name, court_number, user_name, user_email in result.all()
    ]


async def update_booking_status(
    session: AsyncSession, booking_id: int, status: str
) -> AdmissionResult:
    """
    Admin-driven status transition to confirmed, cancelled or completed.

    Re-confirming a cancelled booking re-runs the overlap check, since the
    slot may have been taken in the meantime.
    """
    if status not in ADMIN_BOOKING_STATUSES:
        return AdmissionResult.fail(
            ErrorKind.VALIDATION_ERROR,
            "Invalid status. Must be: confirmed, cancelled, or completed",
        )

    result = await session.execute(select(Booking).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()
    if booking is None:
        return AdmissionResult.fail(ErrorKind.NOT_FOUND, "Booking not found")

    if status == BookingStatus.CONFIRMED.value and booking.status == BookingStatus.CANCELLED.value:
        await _lock_court(session, booking.court_id)
        conflict_id = await find_conflicting_booking(
            session,
            booking.court_id,
            booking.booking_date,
            booking.start_time,
            booking.end_time,
            exclude_booking_id=booking.id,
        )
        if conflict_id is not None:
            return AdmissionResult.fail(ErrorKind.SLOT_UNAVAILABLE, MSG_SLOT_UNAVAILABLE)

    booking.status = status
    try:
        await session.flush()
    except IntegrityError as e:
        await session.rollback()
        if _is_overlap_violation(e):
            return AdmissionResult.fail(ErrorKind.SLOT_UNAVAILABLE, MSG_SLOT_UNAVAILABLE)
        logger.error(f"Error updating booking {booking_id} status: {e}")
        return AdmissionResult.fail(ErrorKind.PERSISTENCE_ERROR, "Failed to update booking status")
    await session.refresh(booking)

    logger.info(f"Booking {booking_id} status set to {status}")
    return AdmissionResult.ok(_booking_to_dict(booking))
