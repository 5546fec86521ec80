from contextlib import asynccontextmanager

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from workshop.main import app
from workshop.database import Base, get_db, instrument_engine
from workshop.api.deps import get_notifier
from workshop.models import Customer, InventoryItem, Job, Vehicle
from workshop.services.email_service import MockEmailService, get_email_service
from workshop.services.notifications import NotificationDispatcher


@pytest_asyncio.fixture
async def test_db(tmp_path):
    """Fresh SQLite file database per test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    instrument_engine(engine.sync_engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def notifier(test_db: AsyncSession) -> NotificationDispatcher:
    """Dispatcher that delivers into the test session. Tests call drain()."""

    @asynccontextmanager
    async def shared_session():
        yield test_db

    return NotificationDispatcher(session_factory=shared_session)


@pytest.fixture
def mailer() -> MockEmailService:
    return MockEmailService()


@pytest_asyncio.fixture
async def client(test_db: AsyncSession, notifier: NotificationDispatcher, mailer: MockEmailService):
    """Create test client with overridden database, notifier and mailer."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_email_service] = lambda: mailer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def customer(test_db: AsyncSession) -> Customer:
    customer = Customer(name="Nimal Perera", phone="0771234567", email="nimal@example.com", address="12 Galle Rd")
    test_db.add(customer)
    await test_db.commit()
    await test_db.refresh(customer)
    return customer


@pytest_asyncio.fixture
async def vehicle(test_db: AsyncSession, customer: Customer) -> Vehicle:
    vehicle = Vehicle(customer_id=customer.id, make="Toyota", model="Axio", year="2016", license_plate="CAB-1234")
    test_db.add(vehicle)
    await test_db.commit()
    await test_db.refresh(vehicle)
    return vehicle


@pytest.fixture
def make_job(test_db: AsyncSession, customer: Customer):
    """Factory fixture for jobs in any status."""

    async def _make_job(job_status="Completed", initial_amount=None, advance_amount=None, **fields) -> Job:
        job = Job(
            customer_id=customer.id,
            description=fields.pop("description", "Full service"),
            job_status=job_status,
            initial_amount=initial_amount,
            advance_amount=advance_amount,
            **fields,
        )
        test_db.add(job)
        await test_db.commit()
        await test_db.refresh(job)
        return job

    return _make_job


@pytest.fixture
def make_item(test_db: AsyncSession):
    """Factory fixture for inventory items."""

    async def _make_item(name="Engine Oil 5W-30", type="consumable", quantity=10, reorder_level=0, **fields) -> InventoryItem:
        item = InventoryItem(name=name, type=type, quantity=quantity, reorder_level=reorder_level, **fields)
        test_db.add(item)
        await test_db.commit()
        await test_db.refresh(item)
        return item

    return _make_item


@pytest.fixture
def reload(test_db: AsyncSession):
    """Re-read a row from the database, bypassing the identity map."""

    async def _reload(model, pk):
        return await test_db.get(model, pk, populate_existing=True)

    return _reload
