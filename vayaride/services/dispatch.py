"""
Ride dispatch — broadcast a captured trip, arbitrate the accept race, and
relay the rider's live location to the assigned driver.

Arbitration is a single conditional UPDATE (status must still be pending).
The database guarantees exactly one accept wins per trip, whatever order the
callbacks arrive in and however many bot processes are running.
"""

import logging
import uuid
from dataclasses import dataclass

from aiogram import Bot, html
from aiogram.exceptions import TelegramAPIError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vayaride.db.database import utcnow
from vayaride.keyboards.driver_kb import ACCEPT_PREFIX, trip_offer_keyboard
from vayaride.models.driver import Driver
from vayaride.models.trip_request import TripRequest
from vayaride.services.exceptions import NotFoundError, RaceLossError
from vayaride.services.onboarding import get_driver
from vayaride.services.trips import get_accepted_trip

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bots:
    """The two Telegram identities: drivers talk to one, riders to the other."""
    driver: Bot
    rider: Bot


def parse_accept_data(data: str | None) -> uuid.UUID | None:
    prefix, _, raw = (data or "").partition(":")
    if prefix != ACCEPT_PREFIX or not raw:
        return None
    try:
        return uuid.UUID(raw)
    except ValueError:
        return None


def trip_summary(trip: TripRequest) -> str:
    return (
        "🚨 <b>New ride request</b>\n"
        f"👤 {html.quote(trip.rider_name)}\n"
        f"📞 {html.quote(trip.rider_contact or '—')}\n"
        f"📍 {html.quote(trip.dropoff or '—')}"
    )


# ── Broadcast ──────────────────────────────────────────────

async def broadcast_trip(session: AsyncSession, bot: Bot, trip: TripRequest) -> int:
    """
    Send the pickup point and an Accept button to every approved driver.

    Delivery is best effort per driver: a failed send is logged and skipped.

    Returns:
        Number of drivers the offer reached.
    """
    result = await session.execute(select(Driver.chat_id).where(Driver.status == "approved"))
    chat_ids = result.scalars().all()
    # Release the connection before the fan-out
    await session.commit()

    text = trip_summary(trip)
    markup = trip_offer_keyboard(trip.id)
    delivered = 0
    for chat_id in chat_ids:
        try:
            await bot.send_location(chat_id, trip.pickup_lat, trip.pickup_lon)
            await bot.send_message(chat_id, text, reply_markup=markup)
            delivered += 1
        except TelegramAPIError as e:
            logger.warning(
                "Trip offer not delivered: trip=%s, driver_chat=%s, error=%s",
                trip.id, chat_id, e,
            )

    logger.info(
        "Trip broadcast: id=%s, approved_drivers=%d, delivered=%d",
        trip.id, len(chat_ids), delivered,
    )
    return delivered


# ── Arbitration ────────────────────────────────────────────

async def accept_trip(
    session: AsyncSession,
    trip_id: uuid.UUID | None,
    driver_chat_id: int | str,
) -> TripRequest:
    """
    Award the trip to ``driver_chat_id`` if nobody has taken it yet.

    Raises:
        NotFoundError: no trip with this id.
        RaceLossError: the trip was already accepted.
    """
    if trip_id is None:
        raise NotFoundError("❌ Trip not found")

    result = await session.execute(
        update(TripRequest)
        .where(TripRequest.id == trip_id, TripRequest.status == "pending")
        .values(status="accepted", driver_chat_id=str(driver_chat_id), updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    won = result.rowcount == 1
    trip = await session.get(TripRequest, trip_id, populate_existing=True)
    await session.commit()

    if not won:
        if trip is None:
            raise NotFoundError("❌ Trip not found")
        raise RaceLossError("⚠️ Sorry, this trip is no longer available.")

    logger.info("Trip accepted: id=%s, driver_chat=%s", trip_id, driver_chat_id)
    return trip


async def notify_acceptance(session: AsyncSession, bots: Bots, trip: TripRequest) -> None:
    """Tell the winning driver to go, and tell the rider who is coming."""
    driver = await get_driver(session, trip.driver_chat_id)
    if driver:
        info = f"👤 {html.quote(driver.full_name or '—')}\n📞 {html.quote(driver.phone or '—')}"
    else:
        info = "👤 Details unavailable"
    await session.commit()

    try:
        await bots.driver.send_message(
            trip.driver_chat_id,
            f"👍 Heading to pick up <b>{html.quote(trip.rider_name)}</b>!",
        )
    except TelegramAPIError as e:
        logger.warning("Driver acceptance notice failed: trip=%s, error=%s", trip.id, e)

    try:
        await bots.rider.send_message(trip.rider_chat_id, f"🚗 <b>Driver is coming!</b>\n{info}")
    except TelegramAPIError as e:
        logger.warning("Rider acceptance notice failed: trip=%s, error=%s", trip.id, e)


# ── Live-location relay ───────────────────────────────────

async def relay_location(
    session: AsyncSession,
    bot: Bot,
    rider_chat_id: int | str,
    lat: float,
    lon: float,
    live_period: int | None = None,
) -> bool:
    """Forward a rider's location to the driver of their accepted trip."""
    trip = await get_accepted_trip(session, rider_chat_id)
    await session.commit()
    if trip is None or not trip.driver_chat_id:
        return False

    try:
        await bot.send_location(trip.driver_chat_id, lat, lon, live_period=live_period)
    except TelegramAPIError as e:
        logger.warning(
            "Location relay failed: trip=%s, driver_chat=%s, error=%s",
            trip.id, trip.driver_chat_id, e,
        )
        return False
    logger.debug("Location relayed: trip=%s, lat=%s, lon=%s", trip.id, lat, lon)
    return True
