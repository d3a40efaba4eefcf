"""User Repository - Accounts, profiles, favorites."""
from typing import Any, Optional

from studenthub.db import Collections
from studenthub.security import hash_password
from studenthub.services.models import User

from .base import BaseRepository, serialize_doc, to_object_id

# Never load the hash unless a login needs it
_NO_PASSWORD = {"password": 0}


class UserRepository(BaseRepository):
    """User database operations."""

    collection_name = Collections.USERS

    async def get_by_id(self, user_id: str) -> Optional[User]:
        doc = await self._find_by_id(user_id, _NO_PASSWORD)
        return User(**doc) if doc else None

    async def get_by_email(self, email: str, with_password: bool = False) -> Optional[User]:
        doc = await self.collection.find_one(
            {"email": email.strip().lower()},
            None if with_password else _NO_PASSWORD,
        )
        return User(**serialize_doc(doc)) if doc else None

    async def create(
        self, name: str, email: str, password: str, role: str = "user"
    ) -> User:
        """Create user; the password is hashed before it is stored."""
        doc = await self._insert({
            "name": name.strip(),
            "email": email.strip().lower(),
            "password": hash_password(password),
            "role": role,
            "avatar": "",
            "bio": "",
            "location": "",
            "rating": 0.0,
            "rating_count": 0,
            "favorites": [],
        })
        return User(**doc)

    async def update(self, user_id: str, data: dict[str, Any]) -> Optional[User]:
        data = dict(data)
        if "password" in data:
            data["password"] = hash_password(data["password"])
        if "email" in data:
            data["email"] = data["email"].strip().lower()
        if "name" in data:
            data["name"] = data["name"].strip()
        doc = await self._update_by_id(user_id, {"$set": data})
        if not doc:
            return None
        doc.pop("password", None)
        return User(**doc)

    async def delete(self, user_id: str) -> bool:
        return await self._delete_by_id(user_id)

    async def find_all(
        self,
        query: Optional[dict[str, Any]] = None,
        sort: Optional[list[tuple[str, int]]] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[User]:
        docs = await self._find_many(
            query or {}, sort=sort or [("created_at", -1)], skip=skip, limit=limit,
            projection=_NO_PASSWORD,
        )
        return [User(**d) for d in docs]

    async def get_summaries(
        self, user_ids: list[str], fields: tuple[str, ...] = ("name", "avatar")
    ) -> dict[str, dict[str, Any]]:
        """Map user id -> {id, <fields>} for populating references."""
        oids = [oid for oid in (to_object_id(u) for u in set(user_ids) if u) if oid]
        if not oids:
            return {}
        projection = {f: 1 for f in fields}
        docs = await self._find_many({"_id": {"$in": oids}}, projection=projection)
        return {d["id"]: d for d in docs}

    # ==================== FAVORITES ====================

    async def add_favorite(self, user_id: str, product_id: str) -> None:
        await self._update_by_id(user_id, {"$addToSet": {"favorites": product_id}})

    async def remove_favorite(self, user_id: str, product_id: str) -> None:
        await self._update_by_id(user_id, {"$pull": {"favorites": product_id}})

    async def pull_favorites(self, ids: list[str]) -> int:
        """Remove the given ids from every user's favorites."""
        if not ids:
            return 0
        result = await self.collection.update_many(
            {"favorites": {"$in": ids}},
            {"$pull": {"favorites": {"$in": ids}}},
        )
        return result.modified_count

    # ==================== RATINGS ====================

    async def set_rating(self, user_id: str, average: float, count: int) -> None:
        await self._update_by_id(
            user_id, {"$set": {"rating": average, "rating_count": count}}
        )
