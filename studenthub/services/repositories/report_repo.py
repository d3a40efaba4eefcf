"""Report Repository - User and product reports."""
from typing import Any, Optional

from studenthub.db import Collections
from studenthub.services.models import Report

from .base import BaseRepository


class ReportRepository(BaseRepository):
    """Report database operations."""

    collection_name = Collections.REPORTS

    async def create(self, data: dict[str, Any]) -> Report:
        doc = await self._insert({
            "description": "",
            "status": "pending",
            "admin_notes": "",
            "reviewed_by": None,
            "reviewed_at": None,
            **data,
        })
        return Report(**doc)

    async def find_all(
        self, query: Optional[dict[str, Any]] = None, skip: int = 0, limit: int = 0
    ) -> list[Report]:
        docs = await self._find_many(
            query or {}, sort=[("created_at", -1)], skip=skip, limit=limit
        )
        return [Report(**d) for d in docs]
