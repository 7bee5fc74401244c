import os

# Settings are read at import time, so they must be in place before the app is imported
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-with-enough-length"
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["STORE_BACKEND"] = "memory"
os.environ.pop("DATABASE_URL", None)

import asyncio
import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from httpx import AsyncClient, ASGITransport
import jwt

from dependencies.store import get_store, get_change_feed
from main import app
from store.memory_store import MemoryStore
from utils.change_feed import ChangeFeed
from utils.session import SessionContext

VENDOR_ID = "11111111-1111-1111-1111-111111111111"
OTHER_VENDOR_ID = "22222222-2222-2222-2222-222222222222"
SUPPLIER_ID = "33333333-3333-3333-3333-333333333333"
OTHER_SUPPLIER_ID = "44444444-4444-4444-4444-444444444444"


def make_token(user_id: str, role: str = None, email: str = None, expires_in: int = 3600) -> str:
    """Sign an access token shaped like the ones Supabase issues"""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email or f"{user_id[:8]}@example.com",
        "aud": "authenticated",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
        "user_metadata": {"user_role": role} if role else {},
    }
    return jwt.encode(payload, os.environ["JWT_SECRET_KEY"], algorithm="HS256")


def auth_headers(user_id: str, role: str = None) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


class YieldingStore(MemoryStore):
    """Hands control back to the event loop after every read, so concurrent requests interleave"""

    async def get_product(self, product_id):
        product = await super().get_product(product_id)
        await asyncio.sleep(0)
        return product

    async def get_order(self, order_id):
        order = await super().get_order(order_id)
        await asyncio.sleep(0)
        return order


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
async def store(feed):
    store = MemoryStore(feed)
    await store.insert_profile({
        "user_id": VENDOR_ID,
        "full_name": "Ravi Chaatwala",
        "location": "Dadar, Mumbai",
        "contact_number": "9800000001",
        "preferred_languages": ["Hindi", "Marathi"],
        "user_role": "vendor",
    })
    await store.insert_profile({
        "user_id": OTHER_VENDOR_ID,
        "full_name": "Meena Dosa Corner",
        "location": None,
        "user_role": "vendor",
    })
    await store.insert_profile({
        "user_id": SUPPLIER_ID,
        "full_name": "Fresh Farms",
        "location": "Pune",
        "contact_number": "9800000002",
        "preferred_languages": ["English", "Marathi"],
        "user_role": "supplier",
    })
    await store.insert_profile({
        "user_id": OTHER_SUPPLIER_ID,
        "full_name": "Grain House",
        "location": "Nashik",
        "contact_number": "9800000003",
        "preferred_languages": ["Hindi"],
        "user_role": "supplier",
    })
    return store


@pytest.fixture
def yielding_store(feed):
    return YieldingStore(feed)


async def add_product(target_store, **overrides):
    values = {
        "supplier_id": SUPPLIER_ID,
        "name": "Tomato",
        "category": "Vegetables",
        "price": Decimal("40.00"),
        "unit": "kg",
        "quantity": 10,
        "freshness": 90,
        "is_available": True,
    }
    values.update(overrides)
    return await target_store.insert_product(values)


@pytest.fixture
def make_product(store):
    async def _make_product(**overrides):
        return await add_product(store, **overrides)
    return _make_product


@pytest.fixture
def vendor_session():
    return SessionContext(user_id=VENDOR_ID, email="ravi@example.com", role="vendor")


@pytest.fixture
def supplier_session():
    return SessionContext(user_id=SUPPLIER_ID, email="farms@example.com", role="supplier")


@pytest.fixture
def vendor_headers():
    return auth_headers(VENDOR_ID, "vendor")


@pytest.fixture
def supplier_headers():
    return auth_headers(SUPPLIER_ID, "supplier")


@pytest.fixture
async def client(store, feed):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_change_feed] = lambda: feed

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
