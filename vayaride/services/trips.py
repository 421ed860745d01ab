"""
Trip requests — name → contact → drop-off → pickup location.

Later steps do not carry a record id in the session. They update the rider's
most recent *pending* request that still lacks the field being collected, so
a rebuilt session reattaches to the request in progress. One open request
per rider is assumed.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vayaride.models.trip_request import TripRequest
from vayaride.services.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _clean_text(text: str | None, what: str) -> str:
    value = (text or "").strip()
    if not value:
        raise ValidationError(f"⚠️ Please send your {what} as a text message.")
    return value


async def _latest_pending(session: AsyncSession, rider_chat_id: str, *conditions) -> TripRequest:
    result = await session.execute(
        select(TripRequest)
        .where(
            TripRequest.rider_chat_id == rider_chat_id,
            TripRequest.status == "pending",
            *conditions,
        )
        .order_by(TripRequest.created_at.desc())
        .limit(1)
    )
    trip = result.scalar_one_or_none()
    if trip is None:
        raise NotFoundError("❌ Couldn’t find your ride request. Send /ride to start again.")
    return trip


async def create_trip(session: AsyncSession, rider_chat_id: int | str, text: str | None) -> TripRequest:
    name = _clean_text(text, "name")
    trip = TripRequest(rider_chat_id=str(rider_chat_id), rider_name=name, status="pending")
    session.add(trip)
    await session.commit()
    logger.info("Trip request created: id=%s, rider=%s", trip.id, rider_chat_id)
    return trip


async def save_contact(session: AsyncSession, rider_chat_id: int | str, text: str | None) -> TripRequest:
    contact = _clean_text(text, "contact number")
    trip = await _latest_pending(
        session, str(rider_chat_id), TripRequest.rider_contact.is_(None),
    )
    trip.rider_contact = contact
    await session.commit()
    return trip


async def save_dropoff(session: AsyncSession, rider_chat_id: int | str, text: str | None) -> TripRequest:
    dropoff = _clean_text(text, "destination")
    trip = await _latest_pending(
        session, str(rider_chat_id), TripRequest.dropoff.is_(None),
    )
    trip.dropoff = dropoff
    await session.commit()
    return trip


async def save_pickup(
    session: AsyncSession,
    rider_chat_id: int | str,
    lat: float,
    lon: float,
) -> TripRequest:
    trip = await _latest_pending(
        session,
        str(rider_chat_id),
        TripRequest.dropoff.is_not(None),
        TripRequest.pickup_lat.is_(None),
    )
    trip.pickup_lat = lat
    trip.pickup_lon = lon
    await session.commit()
    logger.info("Trip pickup captured: id=%s, lat=%s, lon=%s", trip.id, lat, lon)
    return trip


async def get_accepted_trip(session: AsyncSession, rider_chat_id: int | str) -> TripRequest | None:
    result = await session.execute(
        select(TripRequest)
        .where(
            TripRequest.rider_chat_id == str(rider_chat_id),
            TripRequest.status == "accepted",
        )
        .order_by(TripRequest.updated_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()
