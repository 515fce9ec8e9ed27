"""
Pydantic models for API request validation.

Request bodies use camelCase keys; snake_case field names are accepted too.
Fields the handlers must report as "missing" with a 400 are Optional here
and checked by the service layer.
"""

from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for request bodies with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Booking schemas


class CreateBookingRequest(CamelModel):
    """Request to reserve a court."""

    court_id: Optional[int] = None
    user_id: Optional[int] = None
    facility_id: Optional[str] = None
    booking_date: Optional[str] = None  # YYYY-MM-DD
    start_time: Optional[str] = None  # HH:MM or HH:MM:SS
    end_time: Optional[str] = None
    duration_minutes: Optional[int] = None
    booking_type: Optional[str] = None
    notes: Optional[str] = None


class UpdateBookingStatusRequest(CamelModel):
    """Admin request to change a booking's status."""

    status: Optional[str] = None


# Authentication schemas


class RegisterRequest(CamelModel):
    """Request to create an account, optionally joining facilities."""

    email: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = None
    user_type: Optional[str] = None
    selected_facilities: List[str] = Field(default_factory=list)
    phone: Optional[str] = None
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None


class LoginRequest(CamelModel):
    """Request to log in with email and password."""

    email: Optional[str] = None
    password: Optional[str] = None


class AddFacilityRequest(CamelModel):
    """Request to join a facility."""

    user_id: Optional[int] = None
    facility_id: Optional[str] = None
    membership_type: Optional[str] = None


# Address whitelist schemas


class AddWhitelistAddressRequest(CamelModel):
    """Request to whitelist an address for a facility."""

    address: Optional[str] = None
    accounts_limit: Optional[int] = None


class UpdateAccountsLimitRequest(CamelModel):
    """Request to change the account cap of a whitelisted address."""

    accounts_limit: Optional[int] = None


# Member management schemas


class AddMemberRequest(CamelModel):
    """Admin request to add a user to a facility as an active member."""

    user_id: Optional[int] = None
    membership_type: Optional[str] = None
    is_facility_admin: bool = False


class SetAdminRequest(CamelModel):
    """Request to grant or revoke facility admin."""

    is_admin: Optional[bool] = None


# Player profile schemas


class UpdateProfileRequest(CamelModel):
    """Player's own profile edits; omitted fields are unchanged."""

    full_name: Optional[str] = None
    phone: Optional[str] = None
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None


class RequestMembershipRequest(CamelModel):
    """Request to join a facility pending admin review."""

    facility_id: Optional[str] = None
    membership_type: Optional[str] = None


# Facility admin schemas


class UpdateFacilityRequest(CamelModel):
    """Admin edits to a facility's details."""

    name: Optional[str] = None
    type: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    description: Optional[str] = None


class UpdateCourtRequest(CamelModel):
    """Admin edits to a court's details."""

    name: Optional[str] = None
    court_number: Optional[int] = None
    surface_type: Optional[str] = None
    court_type: Optional[str] = None
    is_indoor: Optional[bool] = None
    has_lights: Optional[bool] = None
    status: Optional[str] = None


# Messaging schemas


class SendMessageRequest(CamelModel):
    """Message from one facility member to another."""

    sender_id: Optional[int] = None
    recipient_id: Optional[int] = None
    facility_id: Optional[str] = None
    message_text: Optional[str] = None


class MarkConversationReadRequest(CamelModel):
    """Reader whose incoming messages are marked read."""

    user_id: Optional[int] = None


# Notification schemas


class CreateNotificationRequest(CamelModel):
    """Request to create a notification directly."""

    user_id: Optional[int] = None
    title: Optional[str] = None
    message: Optional[str] = None
    type: Optional[str] = None
    action_url: Optional[str] = None
    priority: Optional[str] = None
