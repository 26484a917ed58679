"""Shared test fixtures: async DB, FastAPI test client, users and menu.

Every test gets a fresh in-memory SQLite database. The ``get_db`` and
``get_payment_provider`` dependencies are overridden so routes use the
test database and a mock payment gateway.
"""

import os
import tempfile

# Configure the app before anything imports its settings
_tmp_root = tempfile.mkdtemp(prefix="flame-kitchen-tests-")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["DATA_DIRECTORY"] = os.path.join(_tmp_root, "data")
os.environ["UPLOAD_DIRECTORY"] = os.path.join(_tmp_root, "uploads")
os.environ["CELERY_ALWAYS_EAGER"] = "true"
os.environ["ENV_MODE"] = "development"
for _key in ("PAYSTACK_SECRET_KEY", "PAYSTACK_PUBLIC_KEY", "PAYSTACK_WEBHOOK_SECRET"):
    os.environ.pop(_key, None)

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from flame_kitchen.api.deps import get_payment_provider
from flame_kitchen.core.security import create_access_token, hash_password
from flame_kitchen.database import Base, get_db
from flame_kitchen.main import app
from flame_kitchen.models import Addon, Category, MenuItem, PriceVariant, User, UserRole
from flame_kitchen.services.payment import MockPaymentService, reset_payment_service

WEBHOOK_SECRET = "whsec_test_secret"
PASSWORD = "secret123"


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def payment_service():
    """Gateway used by the routes; replace it per test to change behavior."""
    return MockPaymentService(webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
async def client(session_factory, payment_service):
    """FastAPI test client with DB and payment dependencies overridden."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_provider] = lambda: payment_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
    reset_payment_service()


@pytest.fixture
def make_user(db):
    """Factory creating a committed user with the given role."""
    counter = {"n": 0}

    async def _make_user(role: UserRole = UserRole.CUSTOMER, **fields) -> User:
        counter["n"] += 1
        n = counter["n"]
        data = {
            "email": f"{role.value.lower()}{n}@example.com",
            "phone": f"05500000{n:02d}",
            "first_name": role.value.title(),
            "last_name": f"User{n}",
            "password": hash_password(PASSWORD),
            "role": role,
        }
        data.update(fields)
        user = User(**data)
        db.add(user)
        await db.commit()
        return user

    return _make_user


def auth(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def headers():
    """Bearer auth headers for a user."""
    return auth


@pytest.fixture
async def admin(make_user):
    return await make_user(UserRole.ADMIN)


@pytest.fixture
async def customer(make_user):
    return await make_user(UserRole.CUSTOMER)


@pytest.fixture
async def cashier(make_user):
    return await make_user(UserRole.CASHIER)


@pytest.fixture
async def kitchen_staff(make_user):
    return await make_user(UserRole.KITCHEN_STAFF)


@pytest.fixture
async def menu(db):
    """One category holding a sized dish with an add-on, plus an unavailable item."""
    category = Category(name="Mains", display_order=1)
    jollof = MenuItem(
        name="Jollof Rice",
        base_price=25.0,
        variants=[PriceVariant(name="Large", price=30.0)],
        addons=[Addon(name="Extra Chicken", price=8.0)],
    )
    soup = MenuItem(name="Light Soup", base_price=20.0, is_available=False)
    category.items = [jollof, soup]
    db.add(category)
    await db.commit()
    return {
        "category": category,
        "jollof": jollof,
        "variant": jollof.variants[0],
        "addon": jollof.addons[0],
        "soup": soup,
    }


@pytest.fixture
def place_order(client, menu):
    """Create an order through the API and return its JSON."""
    async def _place_order(user: User, order_type: str = "TAKEAWAY", quantity: int = 2, **fields) -> dict:
        payload = {
            "order_type": order_type,
            "items": [{"menu_item_id": menu["jollof"].id, "quantity": quantity}],
            **fields,
        }
        if order_type == "ONLINE":
            payload.setdefault("delivery_address", "12 Oxford St, Accra")
            payload.setdefault("contact_phone", "0551234567")
        if order_type == "DINE_IN":
            payload.setdefault("table_number", "T4")
        res = await client.post("/api/orders", json=payload, headers=auth(user))
        assert res.status_code == 201, res.text
        return res.json()["order"]

    return _place_order
