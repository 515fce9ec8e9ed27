"""Booking route handlers."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from courttime.api.responses import error_response, failure_response, server_error
from courttime.database.db import get_db_session
from courttime.database.models import BookingStatus
from courttime.models.schemas import CreateBookingRequest
from courttime.services import booking_service, facility_service, notification_service
from courttime.utils.datetime_utils import parse_booking_date, parse_time_of_day

logger = logging.getLogger(__name__)
router = APIRouter()


async def _notify_confirmed(session: AsyncSession, booking: dict) -> None:
    """Best-effort confirmation notice; failures are logged only."""
    try:
        # Savepoint so a failed insert does not roll back the booking
        async with session.begin_nested():
            facility = await facility_service.get_facility(session, booking["facilityId"])
            await notification_service.notify_booking_confirmed(
                session,
                user_id=booking["userId"],
                facility_name=facility["name"] if facility else "Your facility",
                court_name=booking.get("courtName") or "Court",
                booking_date=parse_booking_date(booking["bookingDate"]),
                start_time=parse_time_of_day(booking["startTime"]),
                end_time=parse_time_of_day(booking["endTime"]),
            )
    except Exception as e:
        logger.error(f"Error creating booking notification: {str(e)}")


async def _notify_cancelled(session: AsyncSession, booking: dict, reason: str) -> None:
    """Best-effort cancellation notice; failures are logged only."""
    try:
        async with session.begin_nested():
            facility = await facility_service.get_facility(session, booking["facilityId"])
            await notification_service.notify_booking_cancelled(
                session,
                user_id=booking["userId"],
                facility_name=facility["name"] if facility else "Your facility",
                court_name=booking.get("courtName") or "Court",
                booking_date=parse_booking_date(booking["bookingDate"]),
                reason=reason,
            )
    except Exception as e:
        logger.error(f"Error creating cancellation notification: {str(e)}")


@router.post("/api/bookings", status_code=201)
async def create_booking(
    payload: CreateBookingRequest, session: AsyncSession = Depends(get_db_session)
):
    """Reserve a court if the requested slot is free."""
    try:
        result = await booking_service.create_booking(
            session,
            court_id=payload.court_id,
            user_id=payload.user_id,
            facility_id=payload.facility_id,
            booking_date=payload.booking_date,
            start_time=payload.start_time,
            end_time=payload.end_time,
            duration_minutes=payload.duration_minutes,
            booking_type=payload.booking_type,
            notes=payload.notes,
        )
        if not result.success:
            return failure_response(result)

        await _notify_confirmed(session, result.data)
        return {"success": True, "booking": result.data}
    except Exception as e:
        logger.error(f"Error creating booking: {str(e)}")
        return server_error("Failed to create booking")


@router.delete("/api/bookings/{booking_id}")
async def cancel_booking(
    booking_id: int,
    userId: Optional[int] = None,
    session: AsyncSession = Depends(get_db_session),
):
    """Cancel one of the caller's bookings."""
    if userId is None:
        return error_response(400, "User ID is required")
    try:
        booking = await booking_service.get_booking_by_id(session, booking_id)
        result = await booking_service.cancel_booking(session, booking_id, userId)
        if not result.success:
            return failure_response(result)

        # Re-cancelling is a no-op and sends no second notice
        if booking is not None and booking["status"] != BookingStatus.CANCELLED.value:
            await _notify_cancelled(session, booking, "Cancelled by user")
        return {"success": True}
    except Exception as e:
        logger.error(f"Error cancelling booking {booking_id}: {str(e)}")
        return server_error("Failed to cancel booking")


@router.get("/api/bookings/facility/{facility_id}")
async def get_facility_bookings_for_date(
    facility_id: str,
    date: Optional[str] = None,
    session: AsyncSession = Depends(get_db_session),
):
    """Bookings at a facility on a date."""
    if not date:
        return error_response(400, "Date parameter is required")
    try:
        bookings = await booking_service.get_bookings_by_facility_and_date(session, facility_id, date)
        return {"success": True, "bookings": bookings}
    except ValueError as e:
        return error_response(400, str(e))
    except Exception as e:
        logger.error(f"Error fetching facility bookings: {str(e)}")
        return server_error("Failed to fetch bookings")


@router.get("/api/bookings/court/{court_id}")
async def get_court_bookings_for_date(
    court_id: int,
    date: Optional[str] = None,
    session: AsyncSession = Depends(get_db_session),
):
    """Bookings on a court on a date."""
    if not date:
        return error_response(400, "Date parameter is required")
    try:
        bookings = await booking_service.get_bookings_by_court_and_date(session, court_id, date)
        return {"success": True, "bookings": bookings}
    except ValueError as e:
        return error_response(400, str(e))
    except Exception as e:
        logger.error(f"Error fetching court bookings: {str(e)}")
        return server_error("Failed to fetch bookings")


@router.get("/api/bookings/user/{user_id}")
async def get_user_bookings(
    user_id: int,
    upcoming: bool = True,
    session: AsyncSession = Depends(get_db_session),
):
    """A user's upcoming (default) or past bookings."""
    try:
        bookings = await booking_service.get_bookings_by_user(session, user_id, upcoming=upcoming)
        return {"success": True, "bookings": bookings}
    except Exception as e:
        logger.error(f"Error fetching user bookings: {str(e)}")
        return server_error("Failed to fetch bookings")


@router.get("/api/bookings/{booking_id}")
async def get_booking(booking_id: int, session: AsyncSession = Depends(get_db_session)):
    """Get a booking by ID."""
    try:
        booking = await booking_service.get_booking_by_id(session, booking_id)
        if booking is None:
            return error_response(404, "Booking not found")
        return {"success": True, "booking": booking}
    except Exception as e:
        logger.error(f"Error fetching booking {booking_id}: {str(e)}")
        return server_error("Failed to fetch booking")


@router.get("/api/courts/{court_id}/availability")
async def get_court_availability(
    court_id: int,
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    session: AsyncSession = Depends(get_db_session),
):
    """Occupied slots on a court between two dates."""
    if not startDate or not endDate:
        return error_response(400, "startDate and endDate are required")
    try:
        slots = await booking_service.get_court_availability(session, court_id, startDate, endDate)
        return {"success": True, "slots": slots}
    except ValueError as e:
        return error_response(400, str(e))
    except Exception as e:
        logger.error(f"Error fetching court availability: {str(e)}")
        return server_error("Failed to fetch availability")
