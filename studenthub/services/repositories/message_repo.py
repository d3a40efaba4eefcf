"""Message Repository - Chat messages."""
from typing import Optional

from studenthub.db import Collections
from studenthub.services.models import Message

from .base import BaseRepository


class MessageRepository(BaseRepository):
    """Message database operations."""

    collection_name = Collections.MESSAGES

    async def create(
        self, chat_id: str, sender_id: str, content: str, attachments: Optional[list[str]] = None
    ) -> Message:
        doc = await self._insert({
            "chat": chat_id,
            "sender": sender_id,
            "content": content,
            "attachments": attachments or [],
            "is_read": False,
        })
        return Message(**doc)

    async def find_by_chat(self, chat_id: str) -> list[Message]:
        """Messages of a chat, oldest first."""
        docs = await self._find_many({"chat": chat_id}, sort=[("created_at", 1)])
        return [Message(**d) for d in docs]

    async def mark_read(self, chat_id: str, reader_id: str) -> int:
        result = await self.collection.update_many(
            {"chat": chat_id, "sender": {"$ne": reader_id}, "is_read": False},
            {"$set": {"is_read": True}},
        )
        return result.modified_count

    async def delete_by_chat(self, chat_id: str) -> int:
        result = await self.collection.delete_many({"chat": chat_id})
        return result.deleted_count
