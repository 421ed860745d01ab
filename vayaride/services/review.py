"""
Driver review — the out-of-band approve/reject action.

Approval hands the driver's conversation over to the PIN step, so the next
text they send to the driver bot is taken as their dashboard PIN.
"""

import logging
import uuid

from aiogram import Bot, html
from aiogram.exceptions import TelegramAPIError
from aiogram.types import LinkPreviewOptions
from sqlalchemy.ext.asyncio import AsyncSession

from vayaride.config import settings
from vayaride.keyboards.driver_kb import driver_main_menu
from vayaride.models.driver import Driver
from vayaride.services.exceptions import NotFoundError, ValidationError
from vayaride.services.sessions import SessionStore
from vayaride.states.driver_onboarding import DriverOnboarding

logger = logging.getLogger(__name__)


def dashboard_login_url(chat_id: int | str) -> str:
    return f"{settings.APP_BASE_URL.rstrip('/')}/driver/login?chat={chat_id}"


async def send_approval_link(bot: Bot, sessions: SessionStore, driver: Driver) -> bool:
    """Congratulate the driver, open the PIN step, and send the dashboard link."""
    body = (
        f"🎉 <b>Congratulations {html.quote(driver.full_name or '')}!</b>\n\n"
        "Your application is <b>APPROVED</b>.\n\n"
        "🔑 Before you can log in, create a 4-digit PIN you’ll use to open the dashboard.\n"
        "Example: <code>2468</code>"
    )
    try:
        await bot.send_message(driver.chat_id, body, reply_markup=driver_main_menu(driver.status))
        await sessions.set(driver.chat_id, DriverOnboarding.set_pin)
        await bot.send_message(
            driver.chat_id,
            f"👉 Tap here after you’ve set your PIN:\n{dashboard_login_url(driver.chat_id)}",
            link_preview_options=LinkPreviewOptions(is_disabled=True),
        )
    except TelegramAPIError as e:
        logger.error("Approval notification failed: chat_id=%s, error=%s", driver.chat_id, e)
        return False
    return True


async def send_rejection(bot: Bot, driver: Driver, admin_note: str | None = None) -> bool:
    reason = html.quote(admin_note) if admin_note else "No specific reason provided."
    text = (
        "❌ <b>Application Not Approved</b>\n\n"
        "We could not approve your driver application.\n"
        f"Reason: {reason}\n\n"
        "Send /reset to start over, or contact support for help."
    )
    try:
        await bot.send_message(driver.chat_id, text)
    except TelegramAPIError as e:
        logger.error("Rejection notification failed: chat_id=%s, error=%s", driver.chat_id, e)
        return False
    return True


async def review_driver(
    session: AsyncSession,
    driver_id: uuid.UUID,
    action: str,
    bot: Bot,
    sessions: SessionStore,
    admin_note: str | None = None,
) -> Driver:
    """
    Approve or reject a driver and notify them.

    Raises:
        NotFoundError: unknown driver id.
        ValidationError: action is neither APPROVE nor REJECT.
    """
    driver = await session.get(Driver, driver_id)
    if driver is None:
        raise NotFoundError("Driver not found")

    if action == "APPROVE":
        driver.status = "approved"
        await session.commit()
        logger.info("Driver APPROVED: id=%s, chat_id=%s", driver.id, driver.chat_id)
        await send_approval_link(bot, sessions, driver)
    elif action == "REJECT":
        driver.status = "rejected"
        await session.commit()
        logger.info("Driver REJECTED: id=%s, chat_id=%s, note=%s", driver.id, driver.chat_id, admin_note)
        await send_rejection(bot, driver, admin_note)
    else:
        raise ValidationError(f"Unknown review action: {action}")
    return driver
