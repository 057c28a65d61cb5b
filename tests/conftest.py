import pytest
from datetime import date, timedelta
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

from pharmacy.main import app
from pharmacy.infrastructure.database import get_db, build_engine, build_session_factory, init_db
from pharmacy.domain.inventory.service import InventoryService, CategoryService, SupplierService
from pharmacy.domain.prescriptions.service import PrescriptionService


@pytest.fixture(scope="function")
async def engine(tmp_path):
    """A file-backed SQLite database per test, so separate sessions use separate connections."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'pharmacy_test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database dependency override."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def reload(session_factory):
    """Read a row back through a brand new session."""

    async def _reload(model, ident):
        async with session_factory() as session:
            return await session.get(model, ident)

    return _reload


@pytest.fixture(scope="function")
async def category(db_session: AsyncSession):
    return await CategoryService(db_session).create_category(
        {"name": "Analgesics", "description": "Pain relief"}
    )


@pytest.fixture(scope="function")
async def supplier(db_session: AsyncSession):
    return await SupplierService(db_session).create_supplier({
        "name": "MedSupply Co",
        "contact": "+919876543210",
        "email": "orders@medsupply.example.com",
        "city": "Chennai",
    })


@pytest.fixture(scope="function")
def make_medicine(db_session: AsyncSession, category, supplier):
    """Factory for medicine batches; keyword arguments override the defaults.

    ``today`` backdates creation, leaving a stored status that is stale now.
    """
    counter = {"n": 0}
    # Captured up front; a failed operation later in the test expires the instances
    category_id, supplier_id = category.id, supplier.id

    async def _make(today=None, **overrides):
        counter["n"] += 1
        data = {
            "name": f"Paracetamol 500mg #{counter['n']}",
            "category_id": category_id,
            "batch": f"PCM-{counter['n']:03d}",
            "expiry_date": date.today() + timedelta(days=365),
            "quantity": 100,
            "price": 2.5,
            "mrp": 3.0,
            "supplier_id": supplier_id,
            "par_level": 10,
        }
        data.update(overrides)
        return await InventoryService(db_session).create_medicine(data, today=today)

    return _make


@pytest.fixture(scope="function")
def make_prescription(db_session: AsyncSession):
    """Factory for prescriptions over ``(medicine_id, quantity)`` lines."""

    async def _make(lines, **overrides):
        data = {
            "customer": {"name": "Asha Kumar", "phone": "+919812345678"},
            "doctor": {"name": "Dr. Rao", "license": "tn-12345"},
            "medicines": [
                {
                    "medicine": medicine_id,
                    "dosage": "500mg",
                    "quantity": quantity,
                    "instructions": "After food",
                    "frequency": "twice daily",
                    "duration": "5 days",
                }
                for medicine_id, quantity in lines
            ],
            "diagnosis": "Fever",
            "valid_until": date.today() + timedelta(days=30),
        }
        data.update(overrides)
        return await PrescriptionService(db_session).create_prescription(data)

    return _make


@pytest.fixture(scope="function")
def sale_payload():
    """Checkout input for ``(medicine_id, quantity, price)`` lines."""

    def _payload(*lines, **overrides) -> dict:
        data = {
            "items": [{"medicine": m, "quantity": q, "price": p} for m, q, p in lines],
            "customer": {"name": "Ravi", "phone": "+919800000001"},
        }
        data.update(overrides)
        return data

    return _payload


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "concurrency: mark test as exercising concurrent stock updates"
    )
