"""Facility admin route handlers: bookings, dashboard, facility and court details."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from courttime.api.auth_dependencies import ensure_facility_admin, get_current_user, require_facility_admin
from courttime.api.responses import error_response, failure_response, server_error
from courttime.database.db import get_db_session
from courttime.models.schemas import UpdateBookingStatusRequest, UpdateCourtRequest, UpdateFacilityRequest
from courttime.services import booking_service, dashboard_service, facility_service
from courttime.services.results import ErrorKind

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/admin/bookings/{facility_id}")
async def list_facility_bookings(
    facility_id: str,
    status: Optional[str] = None,
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    courtId: Optional[int] = None,
    admin: dict = Depends(require_facility_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """All of a facility's bookings, filtered by status, date range, and court."""
    try:
        bookings = await booking_service.get_facility_bookings(
            session,
            facility_id,
            status=status,
            start_date=startDate,
            end_date=endDate,
            court_id=courtId,
        )
        return {"success": True, "bookings": bookings}
    except ValueError as e:
        return error_response(400, str(e), ErrorKind.VALIDATION_ERROR)
    except Exception as e:
        logger.error(f"Error fetching facility bookings: {str(e)}")
        return server_error("Failed to fetch bookings")


@router.patch("/api/admin/bookings/{booking_id}/status")
async def update_booking_status(
    booking_id: int,
    payload: UpdateBookingStatusRequest,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Set a booking's status as an admin of its facility."""
    if not payload.status:
        return error_response(400, "Status is required", ErrorKind.VALIDATION_ERROR)
    try:
        booking = await booking_service.get_booking_by_id(session, booking_id)
        if booking is None:
            return error_response(404, "Booking not found", ErrorKind.NOT_FOUND)
        await ensure_facility_admin(session, booking["facilityId"], user)

        result = await booking_service.update_booking_status(session, booking_id, payload.status)
        if not result.success:
            return failure_response(result)
        return {"success": True, "booking": result.data}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating booking status: {str(e)}")
        return server_error("Failed to update booking status")


@router.get("/api/admin/dashboard/{facility_id}")
async def get_dashboard(
    facility_id: str,
    admin: dict = Depends(require_facility_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """This month's booking, membership, and utilization figures."""
    try:
        dashboard = await dashboard_service.get_dashboard_stats(session, facility_id)
        return {"success": True, **dashboard}
    except Exception as e:
        logger.error(f"Error fetching dashboard stats: {str(e)}")
        return server_error("Failed to fetch dashboard stats")


@router.patch("/api/admin/facilities/{facility_id}")
async def update_facility(
    facility_id: str,
    payload: UpdateFacilityRequest,
    admin: dict = Depends(require_facility_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Edit a facility's details; omitted fields are unchanged."""
    try:
        facility = await facility_service.update_facility(
            session, facility_id, payload.model_dump(by_alias=True, exclude_none=True)
        )
        if facility is None:
            return error_response(404, "Facility not found", ErrorKind.NOT_FOUND)
        return {"success": True, "facility": facility}
    except ValueError as e:
        return error_response(400, str(e), ErrorKind.VALIDATION_ERROR)
    except Exception as e:
        logger.error(f"Error updating facility {facility_id}: {str(e)}")
        return server_error("Failed to update facility")


@router.patch("/api/admin/courts/{court_id}")
async def update_court(
    court_id: int,
    payload: UpdateCourtRequest,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Edit a court's details as an admin of its facility."""
    try:
        facility_id = await facility_service.get_court_facility_id(session, court_id)
        if facility_id is None:
            return error_response(404, "Court not found", ErrorKind.NOT_FOUND)
        await ensure_facility_admin(session, facility_id, user)

        court = await facility_service.update_court(
            session, court_id, payload.model_dump(by_alias=True, exclude_none=True)
        )
        return {"success": True, "court": court}
    except HTTPException:
        raise
    except ValueError as e:
        return error_response(400, str(e), ErrorKind.VALIDATION_ERROR)
    except Exception as e:
        logger.error(f"Error updating court {court_id}: {str(e)}")
        return server_error("Failed to update court")
