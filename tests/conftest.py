"""Pytest configuration and fixtures"""
import os
import tempfile
from collections import defaultdict
from contextlib import ExitStack
from types import SimpleNamespace
from typing import Any, Dict, List
from unittest.mock import AsyncMock, Mock, patch

import pytest
from bson import ObjectId

# Set test environment variables (before any studenthub import reads config)
os.environ.setdefault("JWT_SECRET", "test_jwt_secret")
os.environ.setdefault("CRON_SECRET", "test_cron_secret")
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017/studenthub_test")
os.environ.setdefault("FRONTEND_URL", "http://localhost:3000")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="studenthub-uploads-"))
os.environ.setdefault("MOMO_PARTNER_CODE", "MOMOTEST")
os.environ.setdefault("MOMO_ACCESS_KEY", "test_access_key")
os.environ.setdefault("MOMO_SECRET_KEY", "test_momo_secret")
os.environ.setdefault("MOMO_IPN_URL", "http://localhost:3000/api/payments/momo/ipn")
os.environ.setdefault("VNP_TMNCODE", "TESTTMN1")
os.environ.setdefault("VNP_HASHSECRET", "TESTVNPAYSECRET")

from studenthub.security import create_access_token  # noqa: E402
from studenthub.services.models import Payment, Product, User  # noqa: E402


USER_ID = "65a000000000000000000001"
SELLER_ID = "65a000000000000000000002"
ADMIN_ID = "65a000000000000000000003"
PRODUCT_ID = "65a0000000000000000000b1"

# Every module that resolves the database through get_database()
DB_PATCH_TARGETS = (
    "studenthub.auth.dependencies.get_database",
    "studenthub.routers.users.get_database",
    "studenthub.routers.products.get_database",
    "studenthub.routers.chats.get_database",
    "studenthub.routers.comments.get_database",
    "studenthub.routers.payments.get_database",
    "studenthub.routers.admin.get_database",
)


# ==================== FAKE MONGO ====================

def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, expected in query.items():
        value = doc.get(key)
        if isinstance(expected, dict):
            for op, operand in expected.items():
                if op == "$lte" and not (value is not None and value <= operand):
                    return False
                if op == "$gte" and not (value is not None and value >= operand):
                    return False
        elif value != expected:
            return False
    return True


class FakeCollection:
    """In-memory stand-in for the Motor collection calls repositories make."""

    def __init__(self):
        self.docs: List[Dict[str, Any]] = []

    async def insert_one(self, doc):
        doc = dict(doc)
        doc.setdefault("_id", ObjectId())
        self.docs.append(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    async def find_one(self, query, projection=None):
        for doc in self.docs:
            if _matches(doc, query):
                return dict(doc)
        return None

    async def find_one_and_update(self, query, update, return_document=None, upsert=False):
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(update.get("$set", {}))
                return dict(doc)
        return None

    async def update_many(self, query, update):
        modified = 0
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(update.get("$set", {}))
                modified += 1
        return SimpleNamespace(modified_count=modified)

    async def count_documents(self, query):
        return sum(1 for doc in self.docs if _matches(doc, query))


@pytest.fixture
def fake_mongo():
    """Database handle whose collections are FakeCollection instances."""
    return defaultdict(FakeCollection)


# ==================== MODELS ====================

@pytest.fixture
def sample_user():
    """Sample buyer"""
    return User(
        id=USER_ID,
        name="Test Buyer",
        email="buyer@example.com",
        role="user",
        favorites=[],
    )


@pytest.fixture
def sample_seller():
    return User(id=SELLER_ID, name="Test Seller", email="seller@example.com")


@pytest.fixture
def admin_user():
    return User(id=ADMIN_ID, name="Admin", email="admin@example.com", role="admin")


@pytest.fixture
def sample_product():
    """Sample available product"""
    return Product(
        id=PRODUCT_ID,
        title="Calculus textbook",
        description="Barely used, 8th edition",
        price=150000,
        category="books",
        condition="like new",
        seller=SELLER_ID,
    )


@pytest.fixture
def sample_payment():
    """Sample pending MoMo payment"""
    return Payment(
        id="65a0000000000000000000c1",
        order_id="MOMOTEST1700000000000",
        request_id="MOMOTEST1700000000000",
        amount=150000,
        product_id=PRODUCT_ID,
        buyer_id=USER_ID,
        seller_id=SELLER_ID,
        payment_method="momo",
        admin_commission=15000,
        seller_amount=135000,
    )


# ==================== HTTP ====================

@pytest.fixture
def auth_headers():
    """Build an Authorization header for a user id."""
    def _headers(user_id: str = USER_ID) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}
    return _headers


@pytest.fixture
def mock_db(sample_user, sample_seller, admin_user):
    """
    Mock database patched into auth and every router.

    `users.get_by_id` resolves the three sample users; other repository
    methods are set per test.
    """
    known = {u.id: u for u in (sample_user, sample_seller, admin_user)}

    db = Mock()
    db.users.get_by_id = AsyncMock(side_effect=lambda user_id: known.get(user_id))
    db.users.get_summaries = AsyncMock(return_value={})

    with ExitStack() as stack:
        for target in DB_PATCH_TARGETS:
            stack.enter_context(patch(target, return_value=db))
        yield db
