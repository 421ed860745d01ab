"""Shared fixtures: a throwaway SQLite database and Telegram message doubles."""

import os

# Must be set before vayaride.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["APP_BASE_URL"] = "https://app.vayaride.test"

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import StorageKey
from aiogram.fsm.storage.memory import MemoryStorage
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

import vayaride.models  # noqa: F401
from vayaride.db.database import Base
from vayaride.models.driver import Driver

BOT_ID = 42


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """File-backed so several sessions can hit the same database concurrently."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'vayaride.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def single_connection_factory(tmp_path):
    """One pooled connection and a short checkout timeout: holding it starves everyone else."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'single.db'}",
        pool_size=1,
        max_overflow=0,
        pool_timeout=0.5,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def make_driver(session):
    async def _make(
        chat_id: int = 100,
        *,
        status: str = "pending",
        step: str = "completed",
        full_name: str | None = "Thabo Nkosi",
        phone: str | None = None,
    ) -> Driver:
        driver = Driver(
            chat_id=str(chat_id),
            full_name=full_name,
            phone=phone or f"+2782{chat_id:07d}",
            registration_step=step,
            status=status,
            documents={},
        )
        session.add(driver)
        await session.commit()
        return driver
    return _make


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def make_state(storage):
    def _make(chat_id: int = 100) -> FSMContext:
        return FSMContext(
            storage=storage,
            key=StorageKey(bot_id=BOT_ID, chat_id=chat_id, user_id=chat_id),
        )
    return _make


def fake_message(text=None, chat_id=100, **extra):
    """A Message double carrying only what the handlers read."""
    msg = MagicMock()
    msg.text = text
    msg.caption = None
    msg.photo = None
    msg.document = None
    msg.location = None
    msg.chat.id = chat_id
    msg.from_user.id = chat_id
    msg.from_user.username = "tester"
    for key, value in extra.items():
        setattr(msg, key, value)
    msg.answer = AsyncMock()
    return msg


@pytest.fixture
def message():
    return fake_message
