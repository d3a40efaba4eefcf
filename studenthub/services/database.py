"""
MongoDB Database Service

Provides the Database facade over the per-collection repositories.

Usage:
    from studenthub.services.database import get_database

    # In async context (after init_database() called at startup):
    db = get_database()
    user = await db.users.get_by_id(user_id)

    # At FastAPI startup (lifespan):
    await init_database()
"""

from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from studenthub.db import Collections, close_mongo_client, get_mongo_database
from studenthub.logging import get_logger
from studenthub.services.repositories import (
    ChatRepository,
    CommentRepository,
    MessageRepository,
    PaymentRepository,
    ProductRepository,
    RatingRepository,
    ReportRepository,
    UserRepository,
)

logger = get_logger(__name__)


class Database:
    """
    MongoDB database facade.

    Repositories are exposed as attributes (`db.users`, `db.products`, ...).
    Create via `Database.create()` or `init_database()`.
    """

    def __init__(self, client: AsyncIOMotorDatabase):
        self.client = client

        self.users = UserRepository(client)
        self.products = ProductRepository(client)
        self.payments = PaymentRepository(client)
        self.chats = ChatRepository(client)
        self.messages = MessageRepository(client)
        self.comments = CommentRepository(client)
        self.ratings = RatingRepository(client)
        self.reports = ReportRepository(client)

    @classmethod
    async def create(cls) -> "Database":
        """Async factory: bind to the configured database and ensure indexes."""
        db = cls(get_mongo_database())
        await db.ensure_indexes()
        return db

    async def ensure_indexes(self) -> None:
        """Unique keys the application relies on, plus the hot lookups."""
        try:
            await self.client[Collections.USERS].create_index("email", unique=True)
            await self.client[Collections.PAYMENTS].create_index("order_id", unique=True)
            await self.client[Collections.RATINGS].create_index(
                [("rater", ASCENDING), ("rated", ASCENDING)], unique=True
            )
            await self.client[Collections.PRODUCTS].create_index(
                [("seller", ASCENDING), ("created_at", DESCENDING)]
            )
            await self.client[Collections.MESSAGES].create_index(
                [("chat", ASCENDING), ("created_at", ASCENDING)]
            )
            await self.client[Collections.COMMENTS].create_index(
                [("product", ASCENDING), ("parent", ASCENDING)]
            )
        except PyMongoError as e:
            logger.warning(f"Failed to ensure MongoDB indexes: {e}")


# Singleton instance
_db: Optional[Database] = None


async def init_database() -> Database:
    """Initialize database singleton.

    Should be called at FastAPI startup (lifespan).
    """
    global _db
    if _db is None:
        _db = await Database.create()
        logger.info("MongoDB database initialized")
    return _db


async def close_database() -> None:
    """Close database connections.

    Should be called at FastAPI shutdown (lifespan).
    """
    global _db
    if _db is not None:
        close_mongo_client()
        _db = None
        logger.info("MongoDB client closed")


async def get_database_async() -> Database:
    """Get database instance with lazy async initialization.

    Use in cron endpoints where lifespan may not have run.
    """
    if _db is None:
        return await init_database()
    return _db


def get_database() -> Database:
    """Get database instance (sync accessor).

    Raises:
        RuntimeError: If database not initialized

    Returns:
        Database instance
    """
    if _db is None:
        raise RuntimeError(
            "Database not initialized. Use 'await get_database_async()' for lazy init, "
            "or call 'await init_database()' at startup."
        )
    return _db


def is_database_initialized() -> bool:
    """Check if database singleton is initialized."""
    return _db is not None
