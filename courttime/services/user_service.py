"""
User service layer for account database operations.
"""

from typing import Optional, Dict, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from courttime.database.models import Facility, User, FacilityMembership, MembershipStatus, UserType
from courttime.services import auth_service
import logging

logger = logging.getLogger(__name__)


async def create_user(
    session: AsyncSession,
    email: str,
    password_hash: str,
    full_name: str,
    user_type: str = UserType.PLAYER.value,
    phone: Optional[str] = None,
    street_address: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    zip_code: Optional[str] = None,
) -> int:
    """
    Create a new user account.

    Args:
        session: Database session
        email: Email address (normalized to lowercase)
        password_hash: Hashed password
        full_name: Display name; split into first/last name
        user_type: "player" or "admin"
        phone, street_address, city, state, zip_code: Optional contact details

    Returns:
        User ID of the created user

    Raises:
        ValueError: If a user with this email already exists or user_type is invalid
    """
    email = email.strip().lower()
    if user_type not in {t.value for t in UserType}:
        raise ValueError(f"Invalid user type: {user_type}")

    result = await session.execute(select(User.id).where(User.email == email))
    if result.scalar_one_or_none():
        raise ValueError("User with this email already exists")

    first_name, last_name = auth_service.split_full_name(full_name)
    new_user = User(
        email=email,
        password_hash=password_hash,
        full_name=full_name.strip(),
        first_name=first_name,
        last_name=last_name,
        user_type=user_type,
        phone=phone or None,
        street_address=street_address or None,
        city=city or None,
        state=state or None,
        zip_code=zip_code or None,
    )
    session.add(new_user)
    await session.flush()
    return new_user.id


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[Dict]:
    """
    Get user by email address, including the password hash.

    Args:
        session: Database session
        email: Email address (will be normalized to lowercase)

    Returns:
        User dictionary or None if not found
    """
    email = email.strip().lower() if email else None
    if not email:
        return None

    result = await session.execute(select(User).where(func.lower(User.email) == email).limit(1))
    user = result.scalar_one_or_none()
    return _user_to_dict(user, include_password_hash=True) if user else None


async def get_user_by_id(session: AsyncSession, user_id: int) -> Optional[Dict]:
    """
    Get user by ID.

    Args:
        session: Database session
        user_id: User ID

    Returns:
        User dictionary or None if not found
    """
    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    return _user_to_dict(user) if user else None


async def get_user_memberships(session: AsyncSession, user_id: int) -> List[Dict]:
    """All facility memberships of a user, any status."""
    result = await session.execute(
        select(FacilityMembership)
        .where(FacilityMembership.user_id == user_id)
        .order_by(FacilityMembership.facility_id)
    )
    return [
        {
            "facilityId": m.facility_id,
            "membershipType": m.membership_type,
            "status": m.status,
            "isFacilityAdmin": m.is_facility_admin,
            "startDate": m.start_date.isoformat() if m.start_date else None,
            "endDate": m.end_date.isoformat() if m.end_date else None,
        }
        for m in result.scalars().all()
    ]


async def get_user_with_memberships(session: AsyncSession, user_id: int) -> Optional[Dict]:
    """
    Get a user with their memberships.

    ``memberFacilities`` lists only facilities where the membership is active;
    ``memberships`` carries every membership with its status.
    """
    user = await get_user_by_id(session, user_id)
    if user is None:
        return None

    memberships = await get_user_memberships(session, user_id)
    user["memberFacilities"] = [
        m["facilityId"] for m in memberships if m["status"] == MembershipStatus.ACTIVE.value
    ]
    user["memberships"] = memberships
    return user


async def register_user(
    session: AsyncSession,
    email: str,
    password: str,
    full_name: str,
    user_type: str = UserType.PLAYER.value,
    **contact,
) -> Dict:
    """
    Register a new account.

    Args:
        session: Database session
        email: Email address; validated and lower-cased
        password: Plain-text password; stored as a bcrypt hash
        full_name: Display name
        user_type: "player" or "admin"
        **contact: phone, street_address, city, state, zip_code

    Returns:
        The created user dict

    Raises:
        ValueError: On a missing field, invalid email, or duplicate account
    """
    if not email or not password or not full_name or not full_name.strip():
        raise ValueError("Email, password, and full name are required")

    normalized_email = auth_service.normalize_email(email)
    user_id = await create_user(
        session,
        email=normalized_email,
        password_hash=auth_service.hash_password(password),
        full_name=full_name,
        user_type=user_type or UserType.PLAYER.value,
        **contact,
    )
    logger.info(f"Registered user {user_id}")
    return await get_user_by_id(session, user_id)


async def login_user(session: AsyncSession, email: str, password: str) -> Optional[Dict]:
    """
    Verify credentials.

    Returns:
        The user with ``memberFacilities`` and ``memberships``, or None if the
        email is unknown or the password does not match
    """
    user = await get_user_by_email(session, email)
    if user is None or not auth_service.verify_password(password, user["passwordHash"]):
        return None
    return await get_user_with_memberships(session, user["id"])


async def update_user_profile(
    session: AsyncSession,
    user_id: int,
    full_name: Optional[str] = None,
    phone: Optional[str] = None,
    street_address: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    zip_code: Optional[str] = None,
) -> bool:
    """
    Update a user's profile fields.

    A contact field given as an empty string is cleared; one left as None is
    unchanged.

    Returns:
        True if a row was updated, False if there was nothing to update or no such user
    """
    update_values = {}
    if full_name:
        first_name, last_name = auth_service.split_full_name(full_name)
        update_values.update(full_name=full_name.strip(), first_name=first_name, last_name=last_name)
    contact = {
        "phone": phone,
        "street_address": street_address,
        "city": city,
        "state": state,
        "zip_code": zip_code,
    }
    for field, value in contact.items():
        if value is not None:
            update_values[field] = value or None

    if not update_values:
        return False

    update_values["updated_at"] = func.now()
    result = await session.execute(update(User).where(User.id == user_id).values(**update_values))
    return result.rowcount > 0


async def get_player_profile(session: AsyncSession, user_id: int) -> Optional[Dict]:
    """
    A user's profile with their active and pending facility memberships.

    Returns:
        The user dict plus ``memberFacilities`` (facility id, name, membership
        type, status, admin flag; newest first), or None if no such user
    """
    profile = await get_user_by_id(session, user_id)
    if profile is None:
        return None

    result = await session.execute(
        select(FacilityMembership, Facility.name)
        .join(Facility, FacilityMembership.facility_id == Facility.id)
        .where(
            FacilityMembership.user_id == user_id,
            FacilityMembership.status.in_(
                [MembershipStatus.ACTIVE.value, MembershipStatus.PENDING.value]
            ),
        )
        .order_by(FacilityMembership.created_at.desc(), FacilityMembership.id.desc())
    )
    profile["memberFacilities"] = [
        {
            "facilityId": membership.facility_id,
            "facilityName": facility_name,
            "membershipType": membership.membership_type,
            "status": membership.status,
            "isFacilityAdmin": membership.is_facility_admin,
        }
        for membership, facility_name in result.all()
    ]
    return profile


def _user_to_dict(user: User, include_password_hash: bool = False) -> Dict:
    """
    Convert a User ORM instance to a dictionary.

    Args:
        user: User ORM instance
        include_password_hash: Only set for login verification

    Returns:
        User dictionary
    """
    data = {
        "id": user.id,
        "email": user.email,
        "fullName": user.full_name,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "userType": user.user_type,
        "phone": user.phone,
        "streetAddress": user.street_address,
        "city": user.city,
        "state": user.state,
        "zipCode": user.zip_code,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
        "updatedAt": user.updated_at.isoformat() if user.updated_at else None,
    }
    if include_password_hash:
        data["passwordHash"] = user.password_hash
    return data
