"""Facility and court route handlers."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from courttime.api.responses import error_response, server_error
from courttime.database.db import get_db_session
from courttime.services import facility_service
from courttime.services.results import ErrorKind

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/facilities")
async def list_facilities(session: AsyncSession = Depends(get_db_session)):
    """All facilities."""
    try:
        facilities = await facility_service.list_facilities(session)
        return {"success": True, "facilities": facilities}
    except Exception as e:
        logger.error(f"Error fetching facilities: {str(e)}")
        return server_error("Failed to fetch facilities")


@router.get("/api/facilities/search")
async def search_facilities(q: str = "", session: AsyncSession = Depends(get_db_session)):
    """Search facilities by name, type, or address."""
    try:
        facilities = await facility_service.search_facilities(session, q)
        return {"success": True, "facilities": facilities}
    except Exception as e:
        logger.error(f"Error searching facilities: {str(e)}")
        return server_error("Failed to search facilities")


@router.get("/api/facilities/{facility_id}")
async def get_facility(facility_id: str, session: AsyncSession = Depends(get_db_session)):
    """Get a facility by ID."""
    try:
        facility = await facility_service.get_facility(session, facility_id)
        if facility is None:
            return error_response(404, "Facility not found", ErrorKind.NOT_FOUND)
        return {"success": True, "facility": facility}
    except Exception as e:
        logger.error(f"Error fetching facility {facility_id}: {str(e)}")
        return server_error("Failed to fetch facility")


@router.get("/api/facilities/{facility_id}/courts")
async def get_facility_courts(facility_id: str, session: AsyncSession = Depends(get_db_session)):
    """Courts of a facility."""
    try:
        courts = await facility_service.get_facility_courts(session, facility_id)
        return {"success": True, "courts": courts}
    except Exception as e:
        logger.error(f"Error fetching courts for {facility_id}: {str(e)}")
        return server_error("Failed to fetch courts")


@router.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "message": "API is running"}
