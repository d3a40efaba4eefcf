"""
StudentHub Core Package

Infrastructure and domain code for the student marketplace backend:
- db: MongoDB client (motor)
- services: models, repositories, database facade, payment gateways
- auth: JWT bearer auth, admin and cron checks
- routers: REST endpoints
- realtime: Socket.IO server

Note: Imports are lazy so that importing a submodule does not open
connections or pull in the web stack.
"""

__all__ = [
    "get_mongo_client",
    "get_database",
    "sio",
]


def __getattr__(name):
    """Lazy attribute access."""
    if name == "get_mongo_client":
        from studenthub.db import get_mongo_client
        return get_mongo_client
    elif name == "get_database":
        from studenthub.services.database import get_database
        return get_database
    elif name == "sio":
        from studenthub.realtime import sio
        return sio
    raise AttributeError(f"module 'studenthub' has no attribute '{name}'")
