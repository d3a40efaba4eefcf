"""
Database Module - MongoDB Client

Provides the singleton async Motor client and the application database handle.
"""

from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from studenthub import config

# Singleton instance
_mongo_client: Optional[AsyncIOMotorClient] = None


def get_mongo_client() -> AsyncIOMotorClient:
    """
    Get async Motor client (singleton).

    Motor connects lazily, so creating the client does not touch the network.
    """
    global _mongo_client

    if _mongo_client is None:
        if not config.MONGO_URI:
            raise ValueError("MONGO_URI must be set")
        _mongo_client = AsyncIOMotorClient(config.MONGO_URI, tz_aware=True)

    return _mongo_client


def get_mongo_database() -> AsyncIOMotorDatabase:
    """Get the application database from the shared client."""
    return get_mongo_client()[config.get_mongo_db_name()]


def close_mongo_client() -> None:
    """Close the shared client (no-op when never opened)."""
    global _mongo_client
    if _mongo_client is not None:
        _mongo_client.close()
        _mongo_client = None


# Collection names
class Collections:
    """MongoDB collection names."""

    USERS = "users"
    PRODUCTS = "products"
    PAYMENTS = "payments"
    CHATS = "chats"
    MESSAGES = "messages"
    COMMENTS = "comments"
    RATINGS = "ratings"
    REPORTS = "reports"
