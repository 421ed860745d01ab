"""Dispatcher wiring for the driver bot and the rider bot."""

from aiogram import Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vayaride.handlers import dispatch, driver_commands, driver_onboarding, rider
from vayaride.middlewares import ChatSerializationMiddleware, DbSessionMiddleware
from vayaride.services.dispatch import Bots
from vayaride.services.media_store import S3MediaStore


def _install_middlewares(dp: Dispatcher, session_factory: async_sessionmaker[AsyncSession]) -> None:
    # Outer: runs after aiogram resolves event_chat, before any filter
    dp.update.outer_middleware(ChatSerializationMiddleware())
    dp.update.middleware(DbSessionMiddleware(session_factory))


def build_driver_dispatcher(
    bots: Bots,
    media_store: S3MediaStore,
    session_factory: async_sessionmaker[AsyncSession],
) -> Dispatcher:
    dp = Dispatcher(storage=MemoryStorage(), bots=bots, media_store=media_store)
    _install_middlewares(dp, session_factory)
    # Commands first so they win over step handlers
    dp.include_routers(driver_commands.router, driver_onboarding.router, dispatch.router)
    return dp


def build_rider_dispatcher(
    bots: Bots,
    session_factory: async_sessionmaker[AsyncSession],
) -> Dispatcher:
    dp = Dispatcher(storage=MemoryStorage(), bots=bots)
    _install_middlewares(dp, session_factory)
    dp.include_router(rider.router)
    return dp
