"""Payment Repository - Orders, gateway state, receipt confirmation.

Commission fields are derived on every write that touches `amount` or
`admin_commission_rate`; callers never set them directly.
"""
from datetime import datetime
from typing import Any, Optional

from pymongo import ReturnDocument

from studenthub import config
from studenthub.db import Collections
from studenthub.services.models import Payment, compute_commission

from .base import BaseRepository, serialize_doc, utcnow


def _apply_commission(data: dict[str, Any]) -> dict[str, Any]:
    commission, seller_amount = compute_commission(
        float(data["amount"]), float(data["admin_commission_rate"])
    )
    data["admin_commission"] = commission
    data["seller_amount"] = seller_amount
    return data


class PaymentRepository(BaseRepository):
    """Payment database operations."""

    collection_name = Collections.PAYMENTS

    async def create(self, data: dict[str, Any]) -> Payment:
        doc = {
            "payment_method": "momo",
            "payment_status": "pending",
            "admin_commission_rate": config.ADMIN_COMMISSION_RATE,
            "received_successfully": False,
            **data,
        }
        doc = await self._insert(_apply_commission(doc))
        return Payment(**doc)

    async def get_by_order_id(self, order_id: str) -> Optional[Payment]:
        doc = await self.collection.find_one({"order_id": order_id})
        return Payment(**serialize_doc(doc)) if doc else None

    async def get_for_buyer(self, order_id: str, buyer_id: str) -> Optional[Payment]:
        doc = await self.collection.find_one({"order_id": order_id, "buyer_id": buyer_id})
        return Payment(**serialize_doc(doc)) if doc else None

    async def update(self, order_id: str, data: dict[str, Any]) -> Optional[Payment]:
        """Set fields by order id, recomputing the split when amount or rate change."""
        data = dict(data)
        data.pop("admin_commission", None)
        data.pop("seller_amount", None)

        if "amount" in data or "admin_commission_rate" in data:
            if "amount" not in data or "admin_commission_rate" not in data:
                current = await self.collection.find_one(
                    {"order_id": order_id}, {"amount": 1, "admin_commission_rate": 1}
                )
                if current is None:
                    return None
                data.setdefault("amount", current["amount"])
                data.setdefault(
                    "admin_commission_rate",
                    current.get("admin_commission_rate", config.ADMIN_COMMISSION_RATE),
                )
            _apply_commission(data)

        data["updated_at"] = utcnow()
        doc = await self.collection.find_one_and_update(
            {"order_id": order_id},
            {"$set": data},
            return_document=ReturnDocument.AFTER,
        )
        return Payment(**serialize_doc(doc)) if doc else None

    async def find_for_user(self, user_id: str) -> list[Payment]:
        """Payments where the user is buyer or seller, newest first."""
        docs = await self._find_many(
            {"$or": [{"buyer_id": user_id}, {"seller_id": user_id}]},
            sort=[("created_at", -1)],
        )
        return [Payment(**d) for d in docs]

    async def find_completed(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Payment]:
        query: dict[str, Any] = {"payment_status": "completed"}
        created: dict[str, Any] = {}
        if start:
            created["$gte"] = start
        if end:
            created["$lte"] = end
        if created:
            query["created_at"] = created
        docs = await self._find_many(query, sort=[("created_at", 1)])
        return [Payment(**d) for d in docs]

    # ==================== RECEIPTS ====================

    async def confirm_overdue_receipts(self, now: datetime) -> int:
        """Mark completed, unconfirmed payments past their deadline as received."""
        result = await self.collection.update_many(
            {
                "payment_status": "completed",
                "received_successfully": False,
                "received_successfully_deadline": {"$lte": now},
            },
            {"$set": {
                "received_successfully": True,
                "received_confirmed_at": now,
                "updated_at": now,
            }},
        )
        return result.modified_count
