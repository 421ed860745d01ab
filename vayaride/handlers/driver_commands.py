"""
Driver bot — commands and main-menu buttons.

/start resumes registration at the persisted step; the other commands work
from any state.
"""

import logging

from aiogram import Router, F
from aiogram.filters import Command, CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.types import LinkPreviewOptions, Message, ReplyKeyboardRemove
from sqlalchemy.ext.asyncio import AsyncSession

from vayaride.keyboards.driver_kb import (
    BTN_DASHBOARD,
    BTN_HELP,
    BTN_RESET,
    BTN_STATUS,
    driver_main_menu,
)
from vayaride.models.driver import DOCUMENT_LABELS, DOCUMENT_SLOTS, Driver
from vayaride.services.exceptions import NotFoundError
from vayaride.services.onboarding import (
    clear_pin,
    get_driver,
    require_driver,
    reset_registration,
    start_registration,
)
from vayaride.services.review import dashboard_login_url
from vayaride.states.driver_onboarding import DriverOnboarding, RESUME_STATES

router = Router()
logger = logging.getLogger(__name__)

# Commands count only when they are the whole message
NO_ARGS = F.args.is_(None)

HELP_TEXT = (
    "❓ <b>VayaRide Driver Help</b>\n\n"
    "/start — register or continue registration\n"
    "/status — show your registration status\n"
    "/newpin — create a new dashboard PIN\n"
    "/reset — delete your registration and start over\n"
    "/help — this message\n\n"
    "💡 To replace a document, send it with its number or name as the caption."
)


def docs_prompt(driver: Driver) -> str:
    """Checklist of every slot, ✅ for stored ones, plus the next slot to send."""
    lines = []
    for i, slot in enumerate(DOCUMENT_SLOTS, start=1):
        mark = "✅" if driver.has_document(slot) else "▫️"
        lines.append(f"{mark} {i}. {DOCUMENT_LABELS[slot]}")
    checklist = "\n".join(lines)
    nxt = driver.next_missing_slot()
    tail = f"\n\nPlease send <b>{DOCUMENT_LABELS[nxt]}</b> next." if nxt else ""
    return (
        "📄 <b>Upload your documents</b> one at a time (photo or PDF):\n\n"
        f"{checklist}{tail}"
    )


def status_text(driver: Driver) -> str:
    stored = driver.documents_filled
    return (
        "📊 <b>Your Status</b>\n\n"
        f"👤 Name: {driver.full_name or '—'}\n"
        f"📞 Phone: {driver.phone or '—'}\n"
        f"📄 Documents: {stored}/{len(DOCUMENT_SLOTS)}\n"
        f"📝 Registration: {driver.registration_step}\n"
        f"✅ Status: <b>{driver.status.upper()}</b>"
    )


# ── /start ────────────────────────────────────────────────

@router.message(CommandStart(magic=NO_ARGS))
async def cmd_start(message: Message, state: FSMContext, session: AsyncSession):
    """Create or resume the driver's registration."""
    username = message.from_user.username if message.from_user else None
    driver, created = await start_registration(session, message.chat.id, username)

    if driver.registration_step == "completed":
        await state.clear()
        await message.answer(
            "🚦 You’re already registered!",
            reply_markup=driver_main_menu(driver.status),
        )
        return

    step = driver.registration_step
    await state.set_state(RESUME_STATES[step])
    logger.info("Registration resumed: chat_id=%s, step=%s, new=%s", driver.chat_id, step, created)

    if step == "name":
        await message.answer(
            "👋 <b>Welcome to VayaRide!</b>\n\nPlease enter your <b>full name</b>:",
            reply_markup=ReplyKeyboardRemove(),
        )
    elif step == "phone":
        await message.answer(
            "📞 Welcome back! Send your <b>phone number</b> with country code "
            "(e.g. +27821234567):",
            reply_markup=ReplyKeyboardRemove(),
        )
    else:
        await message.answer(docs_prompt(driver), reply_markup=ReplyKeyboardRemove())


# ── /status ───────────────────────────────────────────────

@router.message(Command("status", magic=NO_ARGS))
@router.message(F.text == BTN_STATUS)
async def cmd_status(message: Message, session: AsyncSession):
    driver = await get_driver(session, message.chat.id)
    if not driver:
        await message.answer("❌ Not registered. Use /start.")
        return
    await message.answer(status_text(driver), reply_markup=driver_main_menu(driver.status))


# ── /newpin ───────────────────────────────────────────────

@router.message(Command("newpin", magic=NO_ARGS))
async def cmd_newpin(message: Message, state: FSMContext, session: AsyncSession):
    """Drop the current PIN and wait for a new one."""
    try:
        driver = await require_driver(session, message.chat.id)
    except NotFoundError as e:
        await message.answer(str(e))
        return

    await clear_pin(session, driver)
    await state.set_state(DriverOnboarding.set_pin)
    await message.answer("🔄 Send a new 4-digit PIN (example <code>2468</code>)")


# ── /reset ────────────────────────────────────────────────

@router.message(Command("reset", magic=NO_ARGS))
@router.message(F.text == BTN_RESET)
async def cmd_reset(message: Message, state: FSMContext, session: AsyncSession):
    await reset_registration(session, message.chat.id)
    await state.clear()
    await message.answer(
        "🔄 Registration data cleared. Send /start to begin again.",
        reply_markup=ReplyKeyboardRemove(),
    )


# ── /help ─────────────────────────────────────────────────

@router.message(Command("help", magic=NO_ARGS))
@router.message(F.text == BTN_HELP)
async def cmd_help(message: Message):
    await message.answer(HELP_TEXT)


# ── Dashboard button ──────────────────────────────────────

@router.message(F.text == BTN_DASHBOARD)
async def open_dashboard(message: Message, session: AsyncSession):
    driver = await get_driver(session, message.chat.id)
    if not driver or driver.status != "approved":
        await message.answer("⏳ The dashboard opens once your application is approved.")
        return
    await message.answer(
        f"🚗 Your dashboard:\n{dashboard_login_url(driver.chat_id)}",
        link_preview_options=LinkPreviewOptions(is_disabled=True),
    )
