"""
Shared fixtures: an in-memory SQLite database per test, master record
factories, and an in-process HTTP client for the FastAPI app.

The ledger reads Numeric columns back through SQLite's REAL storage; tests use
quantities that are exact in binary (halves, quarters) where that matters.
"""

import os

# Must be set before anything imports core.config / db.database.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from db.customer import Customer
from db.database import Base, get_async_session, import_models
from db.item import Item
from db.location import Location
from db.supplier import Supplier


@pytest.fixture
async def engine():
    import_models()
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def make_item(db):
    """Create an item and return its id.

    Ids rather than ORM objects: a failed operation rolls the session back,
    which expires every loaded instance.
    """
    counter = {"n": 0}

    async def _make(name=None, *, manufactured=False, reorder_level="0", unit="pcs"):
        counter["n"] += 1
        name = name or f"Item {counter['n']}"
        item = Item(
            name=name,
            sku=f"SKU-{counter['n']:04d}",
            unit_of_measure=unit,
            is_manufactured=manufactured,
            reorder_level=Decimal(reorder_level),
        )
        db.add(item)
        await db.commit()
        return item.id

    return _make


@pytest.fixture
def make_location(db):
    async def _make(name):
        loc = Location(name=name)
        db.add(loc)
        await db.commit()
        return loc.id

    return _make


@pytest.fixture
def make_supplier(db):
    async def _make(name):
        supplier = Supplier(name=name)
        db.add(supplier)
        await db.commit()
        return supplier.id

    return _make


@pytest.fixture
def make_customer(db):
    async def _make(name):
        customer = Customer(name=name)
        db.add(customer)
        await db.commit()
        return customer.id

    return _make


@pytest.fixture
async def client(session_maker):
    from main import app

    async def override_get_async_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_async_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
