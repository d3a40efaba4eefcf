"""Chat Repository - Conversations and unread counters."""
from typing import Any, Optional

from studenthub.db import Collections
from studenthub.services.models import Chat

from .base import BaseRepository, serialize_doc


class ChatRepository(BaseRepository):
    """Chat database operations."""

    collection_name = Collections.CHATS

    async def get_by_id(self, chat_id: str) -> Optional[Chat]:
        doc = await self._find_by_id(chat_id)
        return Chat(**doc) if doc else None

    async def find_for_user(self, user_id: str) -> list[Chat]:
        docs = await self._find_many({"participants": user_id}, sort=[("updated_at", -1)])
        return [Chat(**d) for d in docs]

    async def find_between(
        self, participants: list[str], product_id: Optional[str] = None
    ) -> Optional[Chat]:
        """Existing chat with exactly these participants about the same product."""
        query: dict[str, Any] = {
            "participants": {"$all": participants, "$size": len(participants)},
            "product": product_id,
        }
        doc = await self.collection.find_one(query)
        return Chat(**serialize_doc(doc)) if doc else None

    async def create(self, participants: list[str], product_id: Optional[str] = None) -> Chat:
        doc = await self._insert({
            "participants": participants,
            "product": product_id,
            "last_message": None,
            "unread_count": {p: 0 for p in participants},
        })
        return Chat(**doc)

    async def record_message(self, chat: Chat, message_id: str, sender_id: str) -> Optional[Chat]:
        """Set last message and bump unread counters of everyone but the sender."""
        update: dict[str, Any] = {"$set": {"last_message": message_id}}
        increments = {f"unread_count.{p}": 1 for p in chat.participants if p != sender_id}
        if increments:
            update["$inc"] = increments
        doc = await self._update_by_id(chat.id, update)
        return Chat(**doc) if doc else None

    async def reset_unread(self, chat_id: str, user_id: str) -> Optional[Chat]:
        doc = await self._update_by_id(chat_id, {"$set": {f"unread_count.{user_id}": 0}})
        return Chat(**doc) if doc else None

    async def delete(self, chat_id: str) -> bool:
        return await self._delete_by_id(chat_id)
