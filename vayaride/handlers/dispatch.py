"""Driver bot — the Accept button on broadcast trip offers."""

import logging

from aiogram import Router, F
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import CallbackQuery, Message
from sqlalchemy.ext.asyncio import AsyncSession

from vayaride.keyboards.driver_kb import ACCEPT_PREFIX
from vayaride.services.dispatch import (
    Bots,
    accept_trip,
    notify_acceptance,
    parse_accept_data,
)
from vayaride.services.exceptions import NotFoundError, RaceLossError

router = Router()
logger = logging.getLogger(__name__)


@router.callback_query(F.data.startswith(f"{ACCEPT_PREFIX}:"))
async def accept_ride(callback: CallbackQuery, session: AsyncSession, bots: Bots):
    """First accept wins; everyone else is told the trip is gone."""
    trip_id = parse_accept_data(callback.data)
    try:
        trip = await accept_trip(session, trip_id, callback.from_user.id)
    except (NotFoundError, RaceLossError) as e:
        await callback.answer(str(e), show_alert=True)
        return

    await callback.answer("✅ You accepted!")
    if isinstance(callback.message, Message):
        try:
            await callback.message.edit_reply_markup(reply_markup=None)
        except TelegramBadRequest as e:
            logger.debug("Offer keyboard not removed: trip=%s, error=%s", trip.id, e)

    await notify_acceptance(session, bots, trip)
