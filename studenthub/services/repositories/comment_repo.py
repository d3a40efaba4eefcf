"""Comment Repository - Product comments, replies, likes."""
from typing import Optional

from pymongo import ReturnDocument

from studenthub.db import Collections
from studenthub.services.models import Comment

from .base import BaseRepository, serialize_doc, to_object_id, utcnow


class CommentRepository(BaseRepository):
    """Comment database operations."""

    collection_name = Collections.COMMENTS

    async def get_by_id(self, comment_id: str) -> Optional[Comment]:
        doc = await self._find_by_id(comment_id)
        return Comment(**doc) if doc else None

    async def create(
        self, product_id: str, user_id: str, content: str, parent_id: Optional[str] = None
    ) -> Comment:
        doc = await self._insert({
            "product": product_id,
            "user": user_id,
            "content": content,
            "parent": parent_id,
            "likes": [],
        })
        return Comment(**doc)

    async def update_content(self, comment_id: str, content: str) -> Optional[Comment]:
        doc = await self._update_by_id(comment_id, {"$set": {"content": content}})
        return Comment(**doc) if doc else None

    async def delete_with_replies(self, comment_id: str) -> bool:
        await self.collection.delete_many({"parent": comment_id})
        return await self._delete_by_id(comment_id)

    async def find_top_level(self, product_id: str) -> list[Comment]:
        """Comments without a parent, newest first."""
        docs = await self._find_many(
            {"product": product_id, "parent": None}, sort=[("created_at", -1)]
        )
        return [Comment(**d) for d in docs]

    async def find_replies(self, parent_id: str) -> list[Comment]:
        """Replies to a comment, oldest first."""
        docs = await self._find_many({"parent": parent_id}, sort=[("created_at", 1)])
        return [Comment(**d) for d in docs]

    async def add_like(self, comment_id: str, user_id: str) -> Optional[Comment]:
        """Like once; None when the user already liked it."""
        return await self._change_likes(
            comment_id, {"likes": {"$ne": user_id}}, {"$push": {"likes": user_id}}
        )

    async def remove_like(self, comment_id: str, user_id: str) -> Optional[Comment]:
        """Unlike; None when the user had not liked it."""
        return await self._change_likes(
            comment_id, {"likes": user_id}, {"$pull": {"likes": user_id}}
        )

    async def _change_likes(self, comment_id: str, condition: dict, update: dict) -> Optional[Comment]:
        oid = to_object_id(comment_id)
        if oid is None:
            return None
        doc = await self.collection.find_one_and_update(
            {"_id": oid, **condition},
            {**update, "$set": {"updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return Comment(**serialize_doc(doc)) if doc else None
