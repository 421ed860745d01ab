"""aiogram middlewares — per-chat serialization and DB session injection."""

import asyncio
from typing import Any, Awaitable, Callable

from aiogram import BaseMiddleware
from aiogram.types import Chat, TelegramObject
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


class ChatSerializationMiddleware(BaseMiddleware):
    """
    At most one update per chat is handled at a time.

    Handlers suspend on downloads, uploads and DB calls; without this a
    second update from the same chat could run against the same workflow
    step (e.g. two files racing for one document slot). Updates from
    different chats are not ordered against each other.

    Same idea as aiogram's ``SimpleEventIsolation``, which keeps one lock per
    chat forever; here a lock is dropped once no update for its chat is
    running or waiting.
    """

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}
        self._holders: dict[int, int] = {}

    def active_chats(self) -> int:
        return len(self._locks)

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        chat: Chat | None = data.get("event_chat")
        if chat is None:
            return await handler(event, data)

        key = chat.id
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                return await handler(event, data)
        finally:
            self._holders[key] -= 1
            if not self._holders[key]:
                del self._holders[key]
                del self._locks[key]


class DbSessionMiddleware(BaseMiddleware):
    """Open one AsyncSession per update and pass it to handlers as ``session``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        async with self.session_factory() as session:
            data["session"] = session
            return await handler(event, data)
