"""
Driver bot — registration steps (name → phone → docs) and the PIN step.

Only plain text that is not a command is taken as step input; commands are
handled by driver_commands, which is included ahead of this router.
"""

import logging

from aiogram import Bot, Router, F
from aiogram.fsm.context import FSMContext
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from vayaride.handlers.driver_commands import docs_prompt
from vayaride.keyboards.driver_kb import driver_main_menu
from vayaride.models.driver import DOCUMENT_LABELS
from vayaride.services.documents import IncomingFile, ingest_document, slot_from_caption
from vayaride.services.exceptions import (
    DuplicateConstraintError,
    ExternalIOError,
    ValidationError,
)
from vayaride.services.media_store import S3MediaStore
from vayaride.services.onboarding import get_driver, save_name, save_phone, set_pin
from vayaride.states.driver_onboarding import DriverOnboarding

router = Router()
logger = logging.getLogger(__name__)

STEP_TEXT = F.text & ~F.text.startswith("/")


async def _current_driver(message: Message, state: FSMContext, session: AsyncSession):
    """The driver behind this chat, or None after telling them to /start."""
    driver = await get_driver(session, message.chat.id)
    if driver is None:
        await state.clear()
        await message.answer("⚠️ You’re not registered. Use /start.")
    return driver


async def _leave_docs_step(state: FSMContext) -> None:
    """Clear the docs step unless an approval already moved the chat on."""
    if await state.get_state() == DriverOnboarding.docs.state:
        await state.clear()


# ── Step 1: Name ──────────────────────────────────────────

@router.message(DriverOnboarding.name, STEP_TEXT)
async def process_name(message: Message, state: FSMContext, session: AsyncSession):
    driver = await _current_driver(message, state, session)
    if not driver:
        return
    try:
        await save_name(session, driver, message.text)
    except ValidationError as e:
        await message.answer(str(e))
        return

    await state.set_state(DriverOnboarding.phone)
    await message.answer(
        "📞 Great! Now send your <b>phone number</b> with country code "
        "(e.g. +27821234567):"
    )


@router.message(DriverOnboarding.name)
async def name_not_text(message: Message):
    await message.answer("✏️ Please type your full name.")


# ── Step 2: Phone ─────────────────────────────────────────

@router.message(DriverOnboarding.phone, STEP_TEXT)
async def process_phone(message: Message, state: FSMContext, session: AsyncSession):
    driver = await _current_driver(message, state, session)
    if not driver:
        return
    try:
        await save_phone(session, driver, message.text)
    except (ValidationError, DuplicateConstraintError) as e:
        await message.answer(str(e))
        return

    await state.set_state(DriverOnboarding.docs)
    await message.answer(docs_prompt(driver))


@router.message(DriverOnboarding.phone)
async def phone_not_text(message: Message):
    await message.answer("✏️ Please type your phone number.")


# ── Step 3: Documents ─────────────────────────────────────

@router.message(DriverOnboarding.docs, F.photo | F.document)
async def process_document(
    message: Message,
    state: FSMContext,
    session: AsyncSession,
    bot: Bot,
    media_store: S3MediaStore,
):
    """One file per message; the caption may name the slot to (re)fill."""
    driver = await _current_driver(message, state, session)
    if not driver:
        return

    incoming = IncomingFile.from_message(message)
    try:
        result = await ingest_document(
            session, bot, driver, incoming, media_store,
            slot=slot_from_caption(message.caption),
        )
    except (ValidationError, ExternalIOError) as e:
        await message.answer(str(e))
        return

    if result is None:
        await _leave_docs_step(state)
        await message.answer(
            "📁 All documents are already uploaded. Add a slot number as the caption to replace one.",
            reply_markup=driver_main_menu(driver.status),
        )
        return

    if result.completed:
        await _leave_docs_step(state)
        await message.answer(
            "🎉 All documents uploaded! We’ll review and notify you here.",
            reply_markup=driver_main_menu(driver.status),
        )
        return

    await message.answer(
        f"✅ <b>{DOCUMENT_LABELS[result.slot]}</b> received.\n"
        f"Please send <b>{DOCUMENT_LABELS[result.next_slot]}</b> next."
    )


@router.message(DriverOnboarding.docs)
async def document_not_file(message: Message):
    await message.answer("📎 Please send the document as a photo or a PDF file.")


# ── PIN step (after approval or /newpin) ──────────────────

@router.message(DriverOnboarding.set_pin, STEP_TEXT)
async def process_pin(message: Message, state: FSMContext, session: AsyncSession):
    driver = await _current_driver(message, state, session)
    if not driver:
        return
    try:
        await set_pin(session, driver, message.text.strip())
    except ValidationError as e:
        await message.answer(str(e))
        return

    await state.clear()
    await message.answer(
        "✅ PIN saved! You can now log in to the dashboard.",
        reply_markup=driver_main_menu(driver.status),
    )
