"""
VayaRide — driver bot, rider bot and admin API in one process.

Run with ``python -m vayaride.main`` (or the ``vayaride`` console script).
"""

import asyncio
import logging

import uvicorn
from aiogram import Bot
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.types import BotCommand

from vayaride.api import create_app
from vayaride.config import settings
from vayaride.db.database import async_session, engine, init_db
from vayaride.dispatchers import build_driver_dispatcher, build_rider_dispatcher
from vayaride.services.dispatch import Bots
from vayaride.services.media_store import S3MediaStore
from vayaride.services.sessions import SessionStore

logger = logging.getLogger(__name__)

DRIVER_COMMANDS = [
    BotCommand(command="start", description="Register or continue registration"),
    BotCommand(command="status", description="Show registration status"),
    BotCommand(command="newpin", description="Create a new dashboard PIN"),
    BotCommand(command="reset", description="Delete registration and start over"),
    BotCommand(command="help", description="Help"),
]
RIDER_COMMANDS = [
    BotCommand(command="ride", description="Book a trip"),
    BotCommand(command="help", description="Help"),
]


async def run() -> None:
    if not settings.TELEGRAM_BOT_TOKEN:
        raise RuntimeError("TELEGRAM_BOT_TOKEN is not set")
    if not settings.RIDER_BOT_TOKEN:
        raise RuntimeError("RIDER_BOT_TOKEN is not set")

    defaults = DefaultBotProperties(parse_mode=ParseMode.HTML)
    bots = Bots(
        driver=Bot(token=settings.TELEGRAM_BOT_TOKEN, default=defaults),
        rider=Bot(token=settings.RIDER_BOT_TOKEN, default=defaults),
    )
    media_store = S3MediaStore()

    await init_db()
    logger.info("🚀 VayaRide starting...")

    driver_dp = build_driver_dispatcher(bots, media_store, async_session)
    rider_dp = build_rider_dispatcher(bots, async_session)
    await bots.driver.set_my_commands(DRIVER_COMMANDS)
    await bots.rider.set_my_commands(RIDER_COMMANDS)

    tasks = [
        driver_dp.start_polling(bots.driver, handle_signals=False),
        rider_dp.start_polling(bots.rider, handle_signals=False),
    ]
    if settings.ADMIN_API_ENABLED:
        app = create_app(bots.driver, SessionStore(driver_dp.fsm.storage, bots.driver.id))
        server = uvicorn.Server(uvicorn.Config(
            app,
            host=settings.ADMIN_API_HOST,
            port=settings.ADMIN_API_PORT,
            log_level=settings.LOG_LEVEL.lower(),
        ))
        tasks.append(server.serve())

    try:
        await asyncio.gather(*tasks)
    finally:
        await engine.dispose()
        logger.info("🛑 VayaRide shut down.")


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(run())


if __name__ == "__main__":
    main()
