"""
Tests for facility and court lookups.
"""

import pytest

from courttime.database.models import Facility
from courttime.services import facility_service, member_service


@pytest.mark.asyncio
async def test_list_and_get_facility(db_session, facility):
    db_session.add(Facility(id="lakeside-club", name="Lakeside Club"))
    await db_session.flush()

    facilities = await facility_service.list_facilities(db_session)

    assert [f["id"] for f in facilities] == ["lakeside-club", "sunrise-valley"]
    detail = await facility_service.get_facility(db_session, facility.id)
    assert detail["name"] == "Sunrise Valley HOA"
    assert await facility_service.get_facility(db_session, "missing") is None


@pytest.mark.asyncio
async def test_get_facility_courts_ordered(db_session, facility, second_court, court):
    courts = await facility_service.get_facility_courts(db_session, facility.id)

    assert [c["name"] for c in courts] == ["Court 1", "Court 2"]
    assert courts[1]["courtType"] == "Pickleball"


@pytest.mark.asyncio
async def test_search_facilities_counts(db_session, facility, court, second_court, player, other_player):
    await member_service.add_member_to_facility(db_session, facility.id, player)
    await member_service.add_member_to_facility(db_session, facility.id, other_player)
    await member_service.update_member_membership(db_session, facility.id, other_player, {"status": "pending"})
    db_session.add(Facility(id="lakeside-club", name="Lakeside Club"))
    await db_session.flush()

    results = await facility_service.search_facilities(db_session, "valley")

    assert results == [
        {
            "id": "sunrise-valley",
            "name": "Sunrise Valley HOA",
            "type": "HOA Tennis & Pickleball Courts",
            "location": "100 Valley Rd",
            "description": "",
            "courts": 2,
            "members": 1,
        }
    ]


@pytest.mark.asyncio
async def test_search_facilities_defaults(db_session):
    db_session.add(Facility(id="lakeside-club", name="Lakeside Club"))
    await db_session.flush()

    results = await facility_service.search_facilities(db_session, "LAKE")

    assert results[0]["type"] == "Facility"
    assert results[0]["location"] == "Location not specified"
    assert results[0]["courts"] == 0
    assert results[0]["members"] == 0


@pytest.mark.asyncio
async def test_update_facility_changes_only_given_fields(db_session, facility):
    updated = await facility_service.update_facility(
        db_session, facility.id, {"phone": "555-0199", "description": "Six lit courts", "address": None}
    )

    assert updated["phone"] == "555-0199"
    assert updated["description"] == "Six lit courts"
    assert updated["address"] == "100 Valley Rd"
    assert updated["name"] == "Sunrise Valley HOA"
    assert await facility_service.update_facility(db_session, "missing", {"name": "X"}) is None
    with pytest.raises(ValueError, match="name cannot be empty"):
        await facility_service.update_facility(db_session, facility.id, {"name": "  "})


@pytest.mark.asyncio
async def test_update_court(db_session, court):
    updated = await facility_service.update_court(
        db_session, court.id, {"status": "maintenance", "hasLights": True, "surfaceType": "Clay"}
    )

    assert updated["status"] == "maintenance"
    assert updated["hasLights"] is True
    assert updated["surfaceType"] == "Clay"
    assert updated["name"] == "Court 1"
    assert await facility_service.get_court_facility_id(db_session, court.id) == "sunrise-valley"
    assert await facility_service.get_court_facility_id(db_session, 9999) is None
    assert await facility_service.update_court(db_session, 9999, {"name": "X"}) is None


@pytest.mark.asyncio
async def test_update_court_rejects_unknown_status(db_session, court):
    with pytest.raises(ValueError, match="Invalid court status"):
        await facility_service.update_court(db_session, court.id, {"status": "flooded"})
