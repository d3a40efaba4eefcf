"""Product Repository - Listings, search, counters."""
import re
from typing import Any, Optional

from pymongo import ReturnDocument

from studenthub.db import Collections
from studenthub.services.models import Product

from .base import BaseRepository, serialize_doc, to_object_id, utcnow


class ProductRepository(BaseRepository):
    """Product database operations."""

    collection_name = Collections.PRODUCTS

    async def get_by_id(self, product_id: str) -> Optional[Product]:
        doc = await self._find_by_id(product_id)
        return Product(**doc) if doc else None

    async def get_many(self, product_ids: list[str]) -> dict[str, Product]:
        """Map product id -> Product for the ids that exist."""
        oids = [oid for oid in (to_object_id(p) for p in set(product_ids) if p) if oid]
        if not oids:
            return {}
        docs = await self._find_many({"_id": {"$in": oids}})
        return {d["id"]: Product(**d) for d in docs}

    async def create(self, data: dict[str, Any]) -> Product:
        doc = await self._insert({
            "images": [],
            "status": "available",
            "buyer": None,
            "location": "",
            "views": 0,
            "favorites": 0,
            **data,
        })
        return Product(**doc)

    async def update(
        self, product_id: str, data: dict[str, Any], new_images: Optional[list[str]] = None
    ) -> Optional[Product]:
        """Partial update; uploaded images are appended to the existing ones."""
        update: dict[str, Any] = {"$set": dict(data)}
        if new_images:
            update["$push"] = {"images": {"$each": new_images}}
        doc = await self._update_by_id(product_id, update)
        return Product(**doc) if doc else None

    async def delete(self, product_id: str) -> bool:
        return await self._delete_by_id(product_id)

    async def find_all(
        self,
        query: Optional[dict[str, Any]] = None,
        sort: Optional[list[tuple[str, int]]] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[Product]:
        docs = await self._find_many(
            query or {}, sort=sort or [("created_at", -1)], skip=skip, limit=limit
        )
        return [Product(**d) for d in docs]

    async def search(self, text: str) -> list[Product]:
        """Case-insensitive match on title or description."""
        pattern = {"$regex": re.escape(text), "$options": "i"}
        return await self.find_all({"$or": [{"title": pattern}, {"description": pattern}]})

    async def increment_views(self, product_id: str) -> Optional[Product]:
        oid = to_object_id(product_id)
        if oid is None:
            return None
        doc = await self.collection.find_one_and_update(
            {"_id": oid},
            {"$inc": {"views": 1}},
            return_document=ReturnDocument.AFTER,
        )
        return Product(**serialize_doc(doc)) if doc else None

    async def adjust_favorites(self, product_id: str, delta: int) -> None:
        """Add delta to the favorites counter, never going below zero."""
        oid = to_object_id(product_id)
        if oid is None:
            return
        await self.collection.update_one(
            {"_id": oid},
            [{"$set": {
                "favorites": {"$max": [0, {"$add": [{"$ifNull": ["$favorites", 0]}, delta]}]},
                "updated_at": utcnow(),
            }}],
        )

    async def mark_sold(self, product_id: str, buyer_id: str) -> None:
        await self._update_by_id(product_id, {"$set": {"status": "sold", "buyer": buyer_id}})

    # ==================== ADMIN ====================

    async def ids_by_seller(self, seller_id: str) -> list[str]:
        docs = await self._find_many({"seller": seller_id}, projection={"_id": 1})
        return [d["id"] for d in docs]

    async def delete_by_seller(self, seller_id: str) -> int:
        result = await self.collection.delete_many({"seller": seller_id})
        return result.deleted_count

    async def category_counts(self) -> list[dict[str, Any]]:
        """[{category, count}] ordered by count desc."""
        pipeline = [
            {"$group": {"_id": "$category", "count": {"$sum": 1}}},
            {"$sort": {"count": -1}},
        ]
        return [
            {"category": row["_id"], "count": row["count"]}
            async for row in self.collection.aggregate(pipeline)
        ]
