"""Base repository with shared Motor database handle."""
from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id string; None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def serialize_doc(doc: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """Replace Mongo's `_id` with a string `id`."""
    if doc is None:
        return None
    data = dict(doc)
    if "_id" in data:
        data["id"] = str(data.pop("_id"))
    return data


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseRepository:
    """Base class for all repositories.

    Each subclass names its collection; timestamps are maintained here.
    """

    collection_name: str = ""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self.db = db
        self.collection = db[self.collection_name]

    async def _insert(self, data: dict[str, Any]) -> dict[str, Any]:
        now = utcnow()
        doc = {**data, "created_at": now, "updated_at": now}
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize_doc(doc)

    async def _find_by_id(
        self, doc_id: str, projection: Optional[dict[str, int]] = None
    ) -> Optional[dict[str, Any]]:
        oid = to_object_id(doc_id)
        if oid is None:
            return None
        return serialize_doc(await self.collection.find_one({"_id": oid}, projection))

    async def _find_many(
        self,
        query: dict[str, Any],
        sort: Optional[list[tuple[str, int]]] = None,
        skip: int = 0,
        limit: int = 0,
        projection: Optional[dict[str, int]] = None,
    ) -> list[dict[str, Any]]:
        cursor = self.collection.find(query, projection)
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return [serialize_doc(doc) async for doc in cursor]

    async def _update_by_id(
        self, doc_id: str, update: dict[str, Any]
    ) -> Optional[dict[str, Any]]:
        """Apply a raw update document and return the updated record."""
        oid = to_object_id(doc_id)
        if oid is None:
            return None
        update = dict(update)
        update["$set"] = {**update.get("$set", {}), "updated_at": utcnow()}
        doc = await self.collection.find_one_and_update(
            {"_id": oid}, update, return_document=ReturnDocument.AFTER
        )
        return serialize_doc(doc)

    async def _delete_by_id(self, doc_id: str) -> bool:
        oid = to_object_id(doc_id)
        if oid is None:
            return False
        result = await self.collection.delete_one({"_id": oid})
        return result.deleted_count > 0

    async def count(self, query: Optional[dict[str, Any]] = None) -> int:
        return await self.collection.count_documents(query or {})
