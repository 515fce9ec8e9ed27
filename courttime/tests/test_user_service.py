"""
Tests for account registration, login, and lookups.
"""

from datetime import date

import pytest

from courttime.database.models import Facility, FacilityMembership
from courttime.services import auth_service, membership_service, user_service


@pytest.mark.asyncio
async def test_register_user(db_session):
    user = await user_service.register_user(
        db_session,
        email="  Pat@Example.com ",
        password="s3cret-pass",
        full_name="Pat Q Player",
        street_address="12 Oak Ln",
        phone="555-0100",
    )

    assert user["email"] == "pat@example.com"
    assert user["firstName"] == "Pat"
    assert user["lastName"] == "Q Player"
    assert user["userType"] == "player"
    assert user["streetAddress"] == "12 Oak Ln"
    assert "passwordHash" not in user

    stored = await user_service.get_user_by_email(db_session, "PAT@example.com")
    assert stored["passwordHash"] != "s3cret-pass"
    assert auth_service.verify_password("s3cret-pass", stored["passwordHash"])


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "email, password, full_name",
    [("", "pw", "Pat"), ("pat@example.com", "", "Pat"), ("pat@example.com", "pw", "  ")],
)
async def test_register_user_requires_fields(db_session, email, password, full_name):
    with pytest.raises(ValueError, match="Email, password, and full name are required"):
        await user_service.register_user(db_session, email, password, full_name)


@pytest.mark.asyncio
async def test_register_user_rejects_duplicates_and_bad_type(db_session, player):
    with pytest.raises(ValueError, match="already exists"):
        await user_service.register_user(db_session, "PLAYER@example.com", "pw", "Pat Again")
    with pytest.raises(ValueError, match="Invalid user type"):
        await user_service.register_user(db_session, "new@example.com", "pw", "New", user_type="owner")


@pytest.mark.asyncio
async def test_login_user(db_session, facility):
    user = await user_service.register_user(db_session, "pat@example.com", "right-pass", "Pat Player")
    db_session.add(
        FacilityMembership(
            user_id=user["id"],
            facility_id=facility.id,
            membership_type="Full",
            status="active",
            start_date=date.today(),
        )
    )
    await db_session.flush()

    logged_in = await user_service.login_user(db_session, "Pat@Example.com", "right-pass")

    assert logged_in["id"] == user["id"]
    assert logged_in["memberFacilities"] == [facility.id]
    assert logged_in["memberships"][0]["status"] == "active"
    assert await user_service.login_user(db_session, "pat@example.com", "wrong-pass") is None
    assert await user_service.login_user(db_session, "nobody@example.com", "right-pass") is None


@pytest.mark.asyncio
async def test_member_facilities_lists_only_active(db_session, facility, player):
    db_session.add(
        FacilityMembership(
            user_id=player,
            facility_id=facility.id,
            membership_type="Full",
            status="pending",
            start_date=date.today(),
        )
    )
    await db_session.flush()

    user = await user_service.get_user_with_memberships(db_session, player)

    assert user["memberFacilities"] == []
    assert [m["status"] for m in user["memberships"]] == ["pending"]
    assert await user_service.get_user_with_memberships(db_session, 9999) is None


@pytest.mark.asyncio
async def test_update_user_profile(db_session, player):
    assert await user_service.update_user_profile(db_session, player) is False
    assert await user_service.update_user_profile(
        db_session, player, full_name="Patricia Player", street_address="7 Birch Rd"
    ) is True

    user = await user_service.get_user_by_id(db_session, player)
    assert user["firstName"] == "Patricia"
    assert user["streetAddress"] == "7 Birch Rd"


@pytest.mark.asyncio
async def test_update_user_profile_address_fields(db_session, player):
    await user_service.update_user_profile(db_session, player, phone="555-0100", city="Tucson")
    assert await user_service.update_user_profile(db_session, player, phone="", zip_code="85701") is True

    user = await user_service.get_user_by_id(db_session, player)
    assert user["phone"] is None
    assert user["city"] == "Tucson"
    assert user["zipCode"] == "85701"


@pytest.mark.asyncio
async def test_get_player_profile_lists_active_and_pending(db_session, facility, player):
    db_session.add(Facility(id="lakeside-club", name="Lakeside Club"))
    db_session.add(Facility(id="hilltop-club", name="Hilltop Club"))
    await db_session.flush()
    await membership_service.upsert_membership(db_session, player, facility.id, "active", is_facility_admin=True)
    await membership_service.upsert_membership(db_session, player, "lakeside-club", "pending")
    await membership_service.upsert_membership(db_session, player, "hilltop-club", "expired")

    profile = await user_service.get_player_profile(db_session, player)

    assert profile["fullName"] == "Pat Player"
    by_facility = {m["facilityId"]: m for m in profile["memberFacilities"]}
    assert set(by_facility) == {"sunrise-valley", "lakeside-club"}
    assert by_facility["sunrise-valley"]["facilityName"] == "Sunrise Valley HOA"
    assert by_facility["sunrise-valley"]["isFacilityAdmin"] is True
    assert by_facility["lakeside-club"]["status"] == "pending"
    assert await user_service.get_player_profile(db_session, 9999) is None
