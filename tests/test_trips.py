"""Tests for the rider trip request steps."""

import pytest
from sqlalchemy import select

from vayaride.models.trip_request import TripRequest
from vayaride.services.exceptions import NotFoundError, ValidationError
from vayaride.services.trips import (
    create_trip,
    get_accepted_trip,
    save_contact,
    save_dropoff,
    save_pickup,
)


@pytest.mark.asyncio
async def test_full_request_flow(session):
    trip = await create_trip(session, 200, "  Naledi ")
    assert trip.rider_name == "Naledi"
    assert trip.status == "pending"

    await save_contact(session, 200, "+27831112222")
    await save_dropoff(session, 200, "Sandton City")
    trip = await save_pickup(session, 200, -26.1076, 28.0567)

    assert trip.rider_contact == "+27831112222"
    assert trip.dropoff == "Sandton City"
    assert (trip.pickup_lat, trip.pickup_lon) == (-26.1076, 28.0567)
    assert trip.driver_chat_id is None


@pytest.mark.asyncio
async def test_empty_name_rejected(session):
    with pytest.raises(ValidationError):
        await create_trip(session, 200, "   ")
    rows = (await session.execute(select(TripRequest))).scalars().all()
    assert rows == []


@pytest.mark.asyncio
async def test_contact_without_request_is_not_found(session):
    with pytest.raises(NotFoundError, match="/ride"):
        await save_contact(session, 200, "+27831112222")


@pytest.mark.asyncio
async def test_steps_update_most_recent_pending_request(session):
    old = await create_trip(session, 200, "First")
    new = await create_trip(session, 200, "Second")

    await save_contact(session, 200, "0831112222")
    await session.refresh(old)
    assert new.rider_contact == "0831112222"
    assert old.rider_contact is None


@pytest.mark.asyncio
async def test_other_riders_requests_untouched(session):
    mine = await create_trip(session, 200, "Naledi")
    await create_trip(session, 201, "Sipho")
    await save_contact(session, 201, "0830000000")
    await session.refresh(mine)
    assert mine.rider_contact is None


@pytest.mark.asyncio
async def test_pickup_requires_dropoff_first(session):
    await create_trip(session, 200, "Naledi")
    await save_contact(session, 200, "0831112222")
    with pytest.raises(NotFoundError):
        await save_pickup(session, 200, 1.0, 2.0)


@pytest.mark.asyncio
async def test_pickup_is_set_once(session):
    await create_trip(session, 200, "Naledi")
    await save_contact(session, 200, "0831112222")
    await save_dropoff(session, 200, "Rosebank")
    await save_pickup(session, 200, 1.0, 2.0)
    with pytest.raises(NotFoundError):
        await save_pickup(session, 200, 3.0, 4.0)


@pytest.mark.asyncio
async def test_get_accepted_trip(session):
    trip = await create_trip(session, 200, "Naledi")
    assert await get_accepted_trip(session, 200) is None

    trip.status = "accepted"
    trip.driver_chat_id = "100"
    await session.commit()
    found = await get_accepted_trip(session, 200)
    assert found.id == trip.id
