"""
Tests for booking admission: conflict detection, cancellation, and listings.
"""

from datetime import date, time, timedelta

import pytest
from sqlalchemy import func, select

from courttime.database.models import Booking, BookingStatus
from courttime.services import booking_service
from courttime.services.results import ErrorKind


async def _book(session, court, user_id, day, start, end, duration=60, **kwargs):
    return await booking_service.create_booking(
        session,
        court_id=court.id,
        user_id=user_id,
        facility_id=court.facility_id,
        booking_date=day,
        start_time=start,
        end_time=end,
        duration_minutes=duration,
        **kwargs,
    )


async def _count_bookings(session) -> int:
    result = await session.execute(select(func.count()).select_from(Booking))
    return result.scalar_one()


async def _status_of(session, booking_id) -> str:
    result = await session.execute(select(Booking.status).where(Booking.id == booking_id))
    return result.scalar_one()


def test_intervals_overlap_is_half_open():
    nine, ten, eleven = time(9), time(10), time(11)
    assert booking_service.intervals_overlap(ten, eleven, nine, ten) is False
    assert booking_service.intervals_overlap(nine, ten, ten, eleven) is False
    assert booking_service.intervals_overlap(time(9, 30), time(10, 30), nine, ten) is True
    assert booking_service.intervals_overlap(time(9, 15), time(9, 45), nine, eleven) is True
    assert booking_service.intervals_overlap(nine, eleven, time(9, 15), time(9, 45)) is True


@pytest.mark.asyncio
async def test_create_booking_success(db_session, court, player, booking_day):
    """A free slot is booked as confirmed with the caller's fields."""
    result = await _book(
        db_session, court, player, booking_day, "09:00", "10:00",
        booking_type="doubles", notes="Bring balls",
    )

    assert result.success is True
    booking = result.data
    assert booking["id"] > 0
    assert booking["status"] == BookingStatus.CONFIRMED.value
    assert booking["courtId"] == court.id
    assert booking["userId"] == player
    assert booking["facilityId"] == court.facility_id
    assert booking["bookingDate"] == booking_day
    assert booking["startTime"] == "09:00:00"
    assert booking["endTime"] == "10:00:00"
    assert booking["durationMinutes"] == 60
    assert booking["bookingType"] == "doubles"
    assert booking["notes"] == "Bring balls"
    assert booking["courtName"] == "Court 1"


@pytest.mark.asyncio
async def test_back_to_back_bookings_do_not_conflict(db_session, court, player, other_player, booking_day):
    """Existing [09:00,10:00) and candidate [10:00,11:00) are both accepted."""
    first = await _book(db_session, court, player, booking_day, "09:00", "10:00")
    second = await _book(db_session, court, other_player, booking_day, "10:00", "11:00")
    earlier = await _book(db_session, court, other_player, booking_day, "08:00", "09:00")

    assert first.success and second.success and earlier.success
    assert await _count_bookings(db_session) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "existing, candidate",
    [
        (("09:00", "10:00"), ("09:30", "10:30")),  # overlaps the end
        (("09:00", "10:00"), ("08:30", "09:30")),  # overlaps the start
        (("09:00", "11:00"), ("09:15", "09:45")),  # inside existing
        (("09:15", "09:45"), ("09:00", "11:00")),  # contains existing
        (("09:00", "10:00"), ("09:00", "10:00")),  # identical
    ],
)
async def test_overlapping_booking_rejected(
    db_session, court, player, other_player, booking_day, existing, candidate
):
    """Any overlap on the same court and date fails with slot_unavailable."""
    first = await _book(db_session, court, player, booking_day, *existing)
    assert first.success

    result = await _book(db_session, court, other_player, booking_day, *candidate)

    assert result.success is False
    assert result.kind == ErrorKind.SLOT_UNAVAILABLE
    assert result.error == "Time slot is already booked"
    assert await _count_bookings(db_session) == 1


@pytest.mark.asyncio
async def test_same_time_on_other_court_or_day_is_free(
    db_session, court, second_court, player, other_player, booking_day
):
    assert (await _book(db_session, court, player, booking_day, "09:00", "10:00")).success

    other_court = await _book(db_session, second_court, other_player, booking_day, "09:00", "10:00")
    next_day = (date.fromisoformat(booking_day) + timedelta(days=1)).isoformat()
    other_day = await _book(db_session, court, other_player, next_day, "09:00", "10:00")

    assert other_court.success
    assert other_day.success


@pytest.mark.asyncio
async def test_cancelled_booking_does_not_block(db_session, court, player, other_player, booking_day):
    """A cancelled booking on the same slot is ignored by conflict detection."""
    db_session.add(
        Booking(
            court_id=court.id,
            user_id=player,
            facility_id=court.facility_id,
            booking_date=date.fromisoformat(booking_day),
            start_time=time(9),
            end_time=time(10),
            duration_minutes=60,
            status=BookingStatus.CANCELLED.value,
        )
    )
    await db_session.flush()

    result = await _book(db_session, court, other_player, booking_day, "09:00", "10:00")

    assert result.success is True
    assert await _count_bookings(db_session) == 2


@pytest.mark.asyncio
async def test_cancelling_frees_the_slot(db_session, court, player, other_player, booking_day):
    first = await _book(db_session, court, player, booking_day, "09:00", "10:00")
    assert (await booking_service.cancel_booking(db_session, first.data["id"], player)).success

    retry = await _book(db_session, court, other_player, booking_day, "09:30", "10:30")
    assert retry.success is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "field",
    ["court_id", "user_id", "facility_id", "booking_date", "start_time", "end_time", "duration_minutes"],
)
async def test_missing_required_field(db_session, court, player, booking_day, field):
    kwargs = dict(
        court_id=court.id,
        user_id=player,
        facility_id=court.facility_id,
        booking_date=booking_day,
        start_time="09:00",
        end_time="10:00",
        duration_minutes=60,
    )
    kwargs[field] = None

    result = await booking_service.create_booking(db_session, **kwargs)

    assert result.success is False
    assert result.kind == ErrorKind.VALIDATION_ERROR
    assert result.error == "Missing required fields"
    assert await _count_bookings(db_session) == 0


@pytest.mark.asyncio
async def test_malformed_fields_rejected(db_session, court, player, booking_day):
    bad_date = await _book(db_session, court, player, "2026/01/01", "09:00", "10:00")
    bad_time = await _book(db_session, court, player, booking_day, "9am", "10:00")
    reversed_times = await _book(db_session, court, player, booking_day, "10:00", "09:00")
    zero_duration = await _book(db_session, court, player, booking_day, "09:00", "10:00", duration=0)

    for result in (bad_date, bad_time, reversed_times, zero_duration):
        assert result.success is False
        assert result.kind == ErrorKind.VALIDATION_ERROR
    assert await _count_bookings(db_session) == 0


@pytest.mark.asyncio
async def test_booking_cannot_end_at_midnight(db_session, court, player, booking_day):
    """Bookings stay within one day; 00:00 is the start of the day, never its end."""
    result = await _book(db_session, court, player, booking_day, "23:00", "00:00")

    assert result.success is False
    assert result.kind == ErrorKind.VALIDATION_ERROR
    assert result.error == "End time must be after start time"

    last_slot = await _book(db_session, court, player, booking_day, "23:00", "23:59")
    assert last_slot.success is True


@pytest.mark.asyncio
async def test_court_must_belong_to_facility(db_session, court, player, booking_day):
    result = await booking_service.create_booking(
        db_session,
        court_id=court.id,
        user_id=player,
        facility_id="some-other-club",
        booking_date=booking_day,
        start_time="09:00",
        end_time="10:00",
        duration_minutes=60,
    )
    assert result.success is False
    assert result.kind == ErrorKind.VALIDATION_ERROR


@pytest.mark.asyncio
async def test_unknown_user_rejected(db_session, court, booking_day):
    result = await _book(db_session, court, 9999, booking_day, "09:00", "10:00")
    assert result.success is False
    assert result.kind == ErrorKind.VALIDATION_ERROR
    assert result.error == "User not found"


@pytest.mark.asyncio
async def test_duration_stored_as_supplied(db_session, court, player, booking_day, caplog):
    """durationMinutes is not recomputed from the interval."""
    result = await _book(db_session, court, player, booking_day, "09:00", "10:00", duration=90)

    assert result.success is True
    assert result.data["durationMinutes"] == 90
    assert "disagrees" in caplog.text


@pytest.mark.asyncio
async def test_cancel_booking_by_owner(db_session, court, player, booking_day):
    created = await _book(db_session, court, player, booking_day, "09:00", "10:00")
    booking_id = created.data["id"]

    result = await booking_service.cancel_booking(db_session, booking_id, player)

    assert result.success is True
    assert await _status_of(db_session, booking_id) == BookingStatus.CANCELLED.value
    # Row is kept for history
    assert await _count_bookings(db_session) == 1


@pytest.mark.asyncio
async def test_cancel_booking_by_other_user_fails(db_session, court, player, other_player, booking_day):
    """Ownership is enforced and the row is left untouched."""
    created = await _book(db_session, court, player, booking_day, "09:00", "10:00")
    booking_id = created.data["id"]

    result = await booking_service.cancel_booking(db_session, booking_id, other_player)

    assert result.success is False
    assert result.kind == ErrorKind.NOT_FOUND_OR_UNAUTHORIZED
    assert result.error == "Booking not found or unauthorized"
    assert await _status_of(db_session, booking_id) == BookingStatus.CONFIRMED.value


@pytest.mark.asyncio
async def test_cancel_nonexistent_booking_fails(db_session, player):
    result = await booking_service.cancel_booking(db_session, 424242, player)
    assert result.success is False
    assert result.kind == ErrorKind.NOT_FOUND_OR_UNAUTHORIZED


@pytest.mark.asyncio
async def test_recancel_is_noop_success(db_session, court, player, booking_day):
    created = await _book(db_session, court, player, booking_day, "09:00", "10:00")
    booking_id = created.data["id"]

    first = await booking_service.cancel_booking(db_session, booking_id, player)
    second = await booking_service.cancel_booking(db_session, booking_id, player)

    assert first.success is True
    assert second.success is True
    assert await _status_of(db_session, booking_id) == BookingStatus.CANCELLED.value


@pytest.mark.asyncio
async def test_facility_and_court_listings_exclude_cancelled(
    db_session, court, second_court, player, other_player, booking_day
):
    late = await _book(db_session, court, player, booking_day, "11:00", "12:00")
    early = await _book(db_session, second_court, other_player, booking_day, "08:00", "09:00")
    dropped = await _book(db_session, court, player, booking_day, "09:00", "10:00")
    await booking_service.cancel_booking(db_session, dropped.data["id"], player)

    by_facility = await booking_service.get_bookings_by_facility_and_date(
        db_session, court.facility_id, booking_day
    )
    by_court = await booking_service.get_bookings_by_court_and_date(db_session, court.id, booking_day)

    assert [b["id"] for b in by_facility] == [early.data["id"], late.data["id"]]
    assert [b["id"] for b in by_court] == [late.data["id"]]
    assert by_facility[0]["userName"] == "Olive Other"
    assert by_facility[0]["courtName"] == "Court 2"


@pytest.mark.asyncio
async def test_user_bookings_upcoming_and_past(db_session, court, player):
    future = date.today() + timedelta(days=30)
    past = date.today() - timedelta(days=30)
    for day, status in (
        (future, BookingStatus.CONFIRMED.value),
        (future + timedelta(days=1), BookingStatus.CONFIRMED.value),
        (future + timedelta(days=2), BookingStatus.CANCELLED.value),
        (past, BookingStatus.COMPLETED.value),
    ):
        db_session.add(
            Booking(
                court_id=court.id,
                user_id=player,
                facility_id=court.facility_id,
                booking_date=day,
                start_time=time(9),
                end_time=time(10),
                duration_minutes=60,
                status=status,
            )
        )
    await db_session.flush()

    upcoming = await booking_service.get_bookings_by_user(db_session, player, upcoming=True)
    history = await booking_service.get_bookings_by_user(db_session, player, upcoming=False)

    assert [b["bookingDate"] for b in upcoming] == [
        future.isoformat(),
        (future + timedelta(days=1)).isoformat(),
    ]
    assert upcoming[0]["facilityName"] == "Sunrise Valley HOA"
    assert [b["bookingDate"] for b in history] == [past.isoformat()]


@pytest.mark.asyncio
async def test_get_booking_by_id_includes_cancelled(db_session, court, player, booking_day):
    created = await _book(db_session, court, player, booking_day, "09:00", "10:00")
    await booking_service.cancel_booking(db_session, created.data["id"], player)

    booking = await booking_service.get_booking_by_id(db_session, created.data["id"])

    assert booking["status"] == BookingStatus.CANCELLED.value
    assert booking["userEmail"] == "player@example.com"
    assert await booking_service.get_booking_by_id(db_session, 987654) is None


@pytest.mark.asyncio
async def test_court_availability(db_session, court, player, booking_day):
    await _book(db_session, court, player, booking_day, "09:00", "10:00")
    await _book(db_session, court, player, booking_day, "14:00", "15:30", duration=90)

    slots = await booking_service.get_court_availability(db_session, court.id, booking_day, booking_day)

    assert [(s["startTime"], s["endTime"]) for s in slots] == [
        ("09:00:00", "10:00:00"),
        ("14:00:00", "15:30:00"),
    ]
    assert slots[0]["bookedBy"] == "Pat Player"

    with pytest.raises(ValueError):
        await booking_service.get_court_availability(db_session, court.id, booking_day, "2000-01-01")


@pytest.mark.asyncio
async def test_facility_bookings_filters(db_session, court, second_court, player, booking_day):
    kept = await _book(db_session, court, player, booking_day, "09:00", "10:00")
    dropped = await _book(db_session, second_court, player, booking_day, "09:00", "10:00")
    await booking_service.cancel_booking(db_session, dropped.data["id"], player)

    everything = await booking_service.get_facility_bookings(db_session, court.facility_id)
    cancelled = await booking_service.get_facility_bookings(
        db_session, court.facility_id, status="cancelled"
    )
    on_court = await booking_service.get_facility_bookings(
        db_session, court.facility_id, status="all", court_id=court.id
    )

    assert len(everything) == 2
    assert [b["id"] for b in cancelled] == [dropped.data["id"]]
    assert [b["id"] for b in on_court] == [kept.data["id"]]
    assert on_court[0]["courtNumber"] == 1


@pytest.mark.asyncio
async def test_update_booking_status(db_session, court, player, booking_day):
    created = await _book(db_session, court, player, booking_day, "09:00", "10:00")

    result = await booking_service.update_booking_status(db_session, created.data["id"], "completed")

    assert result.success is True
    assert result.data["status"] == "completed"


@pytest.mark.asyncio
async def test_update_booking_status_rejects_invalid_and_missing(db_session, court, player, booking_day):
    created = await _book(db_session, court, player, booking_day, "09:00", "10:00")

    invalid = await booking_service.update_booking_status(db_session, created.data["id"], "pending")
    missing = await booking_service.update_booking_status(db_session, 123456, "cancelled")

    assert invalid.kind == ErrorKind.VALIDATION_ERROR
    assert missing.kind == ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_reconfirm_cancelled_booking_checks_conflicts(
    db_session, court, player, other_player, booking_day
):
    original = await _book(db_session, court, player, booking_day, "09:00", "10:00")
    await booking_service.cancel_booking(db_session, original.data["id"], player)
    await _book(db_session, court, other_player, booking_day, "09:30", "10:30")

    result = await booking_service.update_booking_status(db_session, original.data["id"], "confirmed")

    assert result.success is False
    assert result.kind == ErrorKind.SLOT_UNAVAILABLE
    assert await _status_of(db_session, original.data["id"]) == BookingStatus.CANCELLED.value
