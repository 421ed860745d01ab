"""Keyboard builders for the driver bot."""

import uuid

from aiogram.types import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
)

BTN_DASHBOARD = "🚗 Dashboard"
BTN_STATUS = "📊 Status"
BTN_RESET = "🔄 Reset"
BTN_HELP = "❓ Help"

ACCEPT_PREFIX = "accept"


def driver_main_menu(status: str | None = None) -> ReplyKeyboardMarkup:
    """Driver main menu — Dashboard only once approved."""
    rows = [
        [KeyboardButton(text=BTN_STATUS), KeyboardButton(text=BTN_RESET)],
        [KeyboardButton(text=BTN_HELP)],
    ]
    if status == "approved":
        rows.insert(0, [KeyboardButton(text=BTN_DASHBOARD)])
    return ReplyKeyboardMarkup(keyboard=rows, resize_keyboard=True)


def trip_offer_keyboard(trip_id: uuid.UUID | str) -> InlineKeyboardMarkup:
    """Single Accept button carrying the trip id."""
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="Accept ✅", callback_data=f"{ACCEPT_PREFIX}:{trip_id}")],
    ])
