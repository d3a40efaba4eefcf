"""Rating Repository - User ratings (one per rater and rated user)."""
from pymongo import ReturnDocument

from studenthub.db import Collections
from studenthub.services.models import Rating

from .base import BaseRepository, serialize_doc, utcnow


class RatingRepository(BaseRepository):
    """Rating database operations."""

    collection_name = Collections.RATINGS

    async def upsert(self, rater_id: str, rated_id: str, rating: int, comment: str = "") -> Rating:
        """Create or replace the rater's rating of a user."""
        now = utcnow()
        doc = await self.collection.find_one_and_update(
            {"rater": rater_id, "rated": rated_id},
            {
                "$set": {"rating": rating, "comment": comment, "updated_at": now},
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return Rating(**serialize_doc(doc))

    async def find_for_user(self, rated_id: str) -> list[Rating]:
        docs = await self._find_many({"rated": rated_id}, sort=[("created_at", -1)])
        return [Rating(**d) for d in docs]

    async def summary_for(self, rated_id: str) -> tuple[float, int]:
        """(average, count) of the ratings a user received."""
        pipeline = [
            {"$match": {"rated": rated_id}},
            {"$group": {"_id": None, "average": {"$avg": "$rating"}, "count": {"$sum": 1}}},
        ]
        async for row in self.collection.aggregate(pipeline):
            return float(row["average"] or 0), int(row["count"])
        return 0.0, 0

    async def delete_for_user(self, user_id: str) -> int:
        result = await self.collection.delete_many(
            {"$or": [{"rater": user_id}, {"rated": user_id}]}
        )
        return result.deleted_count
