"""
Rider bot — /ride booking flow and live-location relay.

Flow:
  /ride → name → contact → drop-off → pickup location → broadcast to drivers

Once a driver has accepted, any location the rider shares (including live
location updates, which arrive as edited messages) is forwarded to them.
"""

import logging

from aiogram import Router, F
from aiogram.filters import Command, CommandStart, StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from vayaride.keyboards.rider_kb import (
    BTN_SEND_LOCATION,
    location_request_keyboard,
    remove_keyboard,
)
from vayaride.services.dispatch import Bots, broadcast_trip, relay_location
from vayaride.services.exceptions import NotFoundError, ValidationError
from vayaride.services.trips import create_trip, save_contact, save_dropoff, save_pickup
from vayaride.states.ride_request import RideRequest

router = Router()
logger = logging.getLogger(__name__)

NO_ARGS = F.args.is_(None)

STEP_TEXT = F.text & ~F.text.startswith("/")

HELP_TEXT = (
    "❓ <b>VayaRide Rider Help</b>\n\n"
    "/ride — book a trip\n"
    "/help — this message\n\n"
    "Once a driver accepts, share your live location so they can find you."
)


# ── Commands ──────────────────────────────────────────────

@router.message(CommandStart(magic=NO_ARGS))
async def cmd_start(message: Message, state: FSMContext):
    await state.clear()
    await message.answer(
        "👋 Welcome to VayaRide Rider Bot!\nSend /ride to book a trip.",
        reply_markup=remove_keyboard(),
    )


@router.message(Command("help", magic=NO_ARGS))
async def cmd_help(message: Message):
    await message.answer(HELP_TEXT)


@router.message(Command("ride", magic=NO_ARGS))
async def cmd_ride(message: Message, state: FSMContext):
    await state.set_state(RideRequest.ask_name)
    await message.answer("🙋 What’s your <b>name</b>?", reply_markup=remove_keyboard())


# ── Booking steps ─────────────────────────────────────────

@router.message(RideRequest.ask_name, STEP_TEXT)
async def process_name(message: Message, state: FSMContext, session: AsyncSession):
    try:
        await create_trip(session, message.chat.id, message.text)
    except ValidationError as e:
        await message.answer(str(e))
        return
    await state.set_state(RideRequest.ask_contact)
    await message.answer("📞 Your <b>contact number</b>?")


@router.message(RideRequest.ask_contact, STEP_TEXT)
async def process_contact(message: Message, state: FSMContext, session: AsyncSession):
    try:
        await save_contact(session, message.chat.id, message.text)
    except ValidationError as e:
        await message.answer(str(e))
        return
    except NotFoundError as e:
        await state.clear()
        await message.answer(str(e))
        return
    await state.set_state(RideRequest.ask_dropoff)
    await message.answer("📍 Where are you going? Send the <b>drop-off</b> address.")


@router.message(RideRequest.ask_dropoff, STEP_TEXT)
async def process_dropoff(message: Message, state: FSMContext, session: AsyncSession):
    try:
        await save_dropoff(session, message.chat.id, message.text)
    except ValidationError as e:
        await message.answer(str(e))
        return
    except NotFoundError as e:
        await state.clear()
        await message.answer(str(e))
        return
    await state.set_state(RideRequest.ask_location)
    await message.answer(
        f"📌 Now share your <b>pickup location</b> with the “{BTN_SEND_LOCATION}” button.",
        reply_markup=location_request_keyboard(),
    )


@router.message(StateFilter(RideRequest.ask_name, RideRequest.ask_contact, RideRequest.ask_dropoff))
async def step_not_text(message: Message):
    await message.answer("✏️ Please reply with a text message.")


@router.message(RideRequest.ask_location, F.location)
async def process_pickup(
    message: Message,
    state: FSMContext,
    session: AsyncSession,
    bots: Bots,
):
    """Store the pickup point and offer the trip to every approved driver."""
    loc = message.location
    try:
        trip = await save_pickup(session, message.chat.id, loc.latitude, loc.longitude)
    except NotFoundError as e:
        await state.clear()
        await message.answer(str(e), reply_markup=remove_keyboard())
        return

    await state.clear()
    await message.answer("⏳ Looking for drivers… please wait.", reply_markup=remove_keyboard())

    delivered = await broadcast_trip(session, bots.driver, trip)
    if delivered == 0:
        logger.warning("No driver reached for trip %s", trip.id)
        await message.answer("😕 No drivers are available right now. We’ll keep your request open.")


@router.message(RideRequest.ask_location)
async def pickup_not_location(message: Message):
    await message.answer(f"❌ Tap “{BTN_SEND_LOCATION}”", reply_markup=location_request_keyboard())


# ── Live-location relay ───────────────────────────────────

@router.message(F.location)
@router.edited_message(F.location)
async def relay_rider_location(message: Message, session: AsyncSession, bots: Bots):
    loc = message.location
    await relay_location(
        session,
        bots.driver,
        message.chat.id,
        loc.latitude,
        loc.longitude,
        live_period=loc.live_period,
    )
