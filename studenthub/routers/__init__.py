"""
FastAPI Routers Package

One router per resource; all are included in api/index.py.
"""

from studenthub.routers.admin import router as admin_router
from studenthub.routers.chats import router as chats_router
from studenthub.routers.comments import router as comments_router
from studenthub.routers.cron import router as cron_router
from studenthub.routers.payments import router as payments_router
from studenthub.routers.products import router as products_router
from studenthub.routers.users import router as users_router

__all__ = [
    "admin_router",
    "chats_router",
    "comments_router",
    "cron_router",
    "payments_router",
    "products_router",
    "users_router",
]
