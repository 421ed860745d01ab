"""
Conversation session store — which workflow step a chat is currently in.

A thin view over the aiogram FSM storage of one bot, addressed by chat id
alone. Handlers use their ``FSMContext`` directly; this store is for code
that acts on a conversation from outside an update (approval hand-off,
registration reset). State lives in memory and is lost on restart.
"""

from aiogram.fsm.state import State
from aiogram.fsm.storage.base import BaseStorage, StorageKey


class SessionStore:
    def __init__(self, storage: BaseStorage, bot_id: int):
        self.storage = storage
        self.bot_id = bot_id

    def _key(self, chat_id: int | str) -> StorageKey:
        # Private chats: chat id == user id
        chat = int(chat_id)
        return StorageKey(bot_id=self.bot_id, chat_id=chat, user_id=chat)

    async def get(self, chat_id: int | str) -> str | None:
        return await self.storage.get_state(self._key(chat_id))

    async def set(self, chat_id: int | str, step: State | str) -> None:
        await self.storage.set_state(self._key(chat_id), step)

    async def clear(self, chat_id: int | str) -> None:
        key = self._key(chat_id)
        await self.storage.set_state(key, None)
        await self.storage.set_data(key, {})
