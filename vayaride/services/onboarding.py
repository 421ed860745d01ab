"""
Driver registration — name → phone → docs → completed, plus the PIN step.

Each function validates first and only then mutates and commits, so a
rejected input leaves the driver record exactly as it was.
"""

import logging
import re

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vayaride.models.driver import Driver
from vayaride.services.credentials import hash_pin
from vayaride.services.exceptions import (
    DuplicateConstraintError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

NAME_MIN_LEN = 2
NAME_MAX_LEN = 50
PHONE_RE = re.compile(r"^\+?[1-9]\d{7,14}$")


def normalize_name(text: str | None) -> str:
    name = (text or "").strip()
    if not NAME_MIN_LEN <= len(name) <= NAME_MAX_LEN:
        raise ValidationError(f"❌ Name must be {NAME_MIN_LEN}–{NAME_MAX_LEN} chars.")
    return name


def normalize_phone(text: str | None) -> str:
    phone = re.sub(r"\s+", "", text or "")
    if not PHONE_RE.match(phone):
        raise ValidationError("❌ Invalid phone format. Include the country code, e.g. +27821234567")
    return phone


async def get_driver(session: AsyncSession, chat_id: int | str) -> Driver | None:
    result = await session.execute(select(Driver).where(Driver.chat_id == str(chat_id)))
    return result.scalar_one_or_none()


async def require_driver(session: AsyncSession, chat_id: int | str) -> Driver:
    driver = await get_driver(session, chat_id)
    if driver is None:
        raise NotFoundError("⚠️ You’re not registered. Use /start.")
    return driver


async def start_registration(
    session: AsyncSession,
    chat_id: int | str,
    username: str | None = None,
) -> tuple[Driver, bool]:
    """Find the driver for this chat or create a fresh record at step ``name``."""
    driver = await get_driver(session, chat_id)
    if driver:
        return driver, False

    driver = Driver(
        chat_id=str(chat_id),
        telegram_username=username,
        registration_step="name",
        status="pending",
        documents={},
    )
    session.add(driver)
    await session.commit()
    logger.info("Driver record created: chat_id=%s", chat_id)
    return driver, True


async def save_name(session: AsyncSession, driver: Driver, text: str | None) -> Driver:
    name = normalize_name(text)
    driver.full_name = name
    driver.registration_step = "phone"
    await session.commit()
    return driver


async def save_phone(session: AsyncSession, driver: Driver, text: str | None) -> Driver:
    phone = normalize_phone(text)

    dup = await session.execute(
        select(Driver.id).where(Driver.phone == phone, Driver.id != driver.id)
    )
    if dup.first():
        raise DuplicateConstraintError("🚫 Phone already in use.")

    driver.phone = phone
    driver.registration_step = "docs"
    try:
        await session.commit()
    except IntegrityError:
        # Lost a race with another registration using the same number
        await session.rollback()
        await session.refresh(driver)
        raise DuplicateConstraintError("🚫 Phone already in use.")
    return driver


async def complete_registration(session: AsyncSession, driver: Driver) -> Driver:
    """Mark the documents step done and queue the driver for review.

    A driver approved while still uploading stays approved.
    """
    # Approval may have been committed by another session meanwhile
    await session.refresh(driver, ["status"])
    driver.registration_step = "completed"
    if driver.status != "approved":
        driver.status = "pending"
    await session.commit()
    logger.info(
        "Driver registration completed: chat_id=%s, name=%s",
        driver.chat_id, driver.full_name,
    )
    return driver


async def clear_pin(session: AsyncSession, driver: Driver) -> Driver:
    driver.pin_hash = None
    driver.pin_expires_at = None
    await session.commit()
    return driver


async def set_pin(session: AsyncSession, driver: Driver, text: str | None) -> Driver:
    pin_hash, expires_at = hash_pin(text or "")
    driver.pin_hash = pin_hash
    driver.pin_expires_at = expires_at
    await session.commit()
    logger.info("PIN set: chat_id=%s, expires_at=%s", driver.chat_id, expires_at.isoformat())
    return driver


async def reset_registration(session: AsyncSession, chat_id: int | str) -> bool:
    """Delete the driver record and its documents. False if there was none."""
    driver = await get_driver(session, chat_id)
    if driver is None:
        return False
    await session.delete(driver)
    await session.commit()
    logger.info("Driver registration reset: chat_id=%s", chat_id)
    return True
