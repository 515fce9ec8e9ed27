"""Address whitelist route handlers (facility admins)."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from courttime.api.auth_dependencies import require_facility_admin
from courttime.api.responses import error_response, server_error
from courttime.database.db import get_db_session
from courttime.models.schemas import AddWhitelistAddressRequest, UpdateAccountsLimitRequest
from courttime.services import address_whitelist_service
from courttime.services.results import ErrorKind

logger = logging.getLogger(__name__)
router = APIRouter()

ADDRESS_NOT_FOUND = "Address not found or unauthorized"


@router.get("/api/address-whitelist/{facility_id}")
async def list_whitelisted_addresses(
    facility_id: str,
    admin: dict = Depends(require_facility_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """All whitelisted addresses for a facility."""
    try:
        addresses = await address_whitelist_service.get_whitelisted_addresses(session, facility_id)
        return {"success": True, "addresses": addresses}
    except Exception as e:
        logger.error(f"Error fetching whitelisted addresses: {str(e)}")
        return server_error("Failed to fetch whitelisted addresses")


@router.post("/api/address-whitelist/{facility_id}", status_code=201)
async def add_whitelisted_address(
    facility_id: str,
    payload: AddWhitelistAddressRequest,
    admin: dict = Depends(require_facility_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Whitelist an address."""
    if not payload.address:
        return error_response(400, "Address is required", ErrorKind.VALIDATION_ERROR)
    try:
        entry = await address_whitelist_service.add_whitelisted_address(
            session, facility_id, payload.address, payload.accounts_limit
        )
        return {"success": True, "address": entry}
    except ValueError as e:
        return error_response(400, str(e), ErrorKind.VALIDATION_ERROR)
    except Exception as e:
        logger.error(f"Error adding whitelisted address: {str(e)}")
        return server_error("Failed to add address to whitelist")


@router.delete("/api/address-whitelist/{facility_id}/{address_id}")
async def remove_whitelisted_address(
    facility_id: str,
    address_id: int,
    admin: dict = Depends(require_facility_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Remove an address from the whitelist."""
    try:
        removed = await address_whitelist_service.remove_whitelisted_address(
            session, facility_id, address_id
        )
        if not removed:
            return error_response(400, ADDRESS_NOT_FOUND, ErrorKind.NOT_FOUND_OR_UNAUTHORIZED)
        return {"success": True}
    except Exception as e:
        logger.error(f"Error removing whitelisted address: {str(e)}")
        return server_error("Failed to remove address from whitelist")


@router.patch("/api/address-whitelist/{facility_id}/{address_id}")
async def update_accounts_limit(
    facility_id: str,
    address_id: int,
    payload: UpdateAccountsLimitRequest,
    admin: dict = Depends(require_facility_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Change the account cap of a whitelisted address."""
    if payload.accounts_limit is None or payload.accounts_limit < 1:
        return error_response(400, "Valid accounts limit is required", ErrorKind.VALIDATION_ERROR)
    try:
        updated = await address_whitelist_service.update_accounts_limit(
            session, facility_id, address_id, payload.accounts_limit
        )
        if not updated:
            return error_response(400, ADDRESS_NOT_FOUND, ErrorKind.NOT_FOUND_OR_UNAUTHORIZED)
        return {"success": True}
    except ValueError as e:
        return error_response(400, str(e), ErrorKind.VALIDATION_ERROR)
    except Exception as e:
        logger.error(f"Error updating accounts limit: {str(e)}")
        return server_error("Failed to update accounts limit")


@router.get("/api/address-whitelist/{facility_id}/check/{address}")
async def check_address(
    facility_id: str,
    address: str,
    admin: dict = Depends(require_facility_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Exact-match whitelist check."""
    try:
        result = await address_whitelist_service.is_address_whitelisted(session, facility_id, address)
        return {"success": True, **result}
    except Exception as e:
        logger.error(f"Error checking whitelisted address: {str(e)}")
        return server_error("Failed to check address")


@router.get("/api/address-whitelist/{facility_id}/count/{address}")
async def count_accounts_at_address(
    facility_id: str,
    address: str,
    admin: dict = Depends(require_facility_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Accounts at an address with a non-expired membership."""
    try:
        count = await address_whitelist_service.get_account_count_at_address(
            session, facility_id, address
        )
        return {"success": True, "count": count}
    except Exception as e:
        logger.error(f"Error counting accounts at address: {str(e)}")
        return server_error("Failed to count accounts")
