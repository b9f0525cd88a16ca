"""
Fixtures compartidas

Cada test recibe un store en memoria propio (sqlite+aiosqlite con StaticPool):
nada se comparte entre tests ni con la base de la aplicación.
"""

import pytest
from decimal import Decimal
from uuid import UUID, uuid4

import httpx

from app.database.database import create_tables
from app.database.unit_of_work import LedgerStore
from app.dependencies.dbDependecies import get_ledger_store
from app.main import app
from app.modules.auth.schemas import Actor
from app.modules.contacts.schemas import ContactCreate
from app.modules.contacts.service import ContactService
from app.modules.items.schemas import ItemCreate
from app.modules.items.service import ItemService
from app.modules.ledger.service import LedgerService


TEST_TENANT_ID = UUID("11111111-1111-1111-1111-111111111111")


# ===== FIXTURES =====

@pytest.fixture
async def store():
    test_store = LedgerStore.from_url("sqlite+aiosqlite://")
    await create_tables(test_store.engine)
    yield test_store
    await test_store.dispose()


@pytest.fixture
def tenant_id():
    return TEST_TENANT_ID


@pytest.fixture
def actor():
    return Actor(user_id=uuid4(), user_name="Test User")


@pytest.fixture
def ledger(store, tenant_id, actor):
    return LedgerService(store, tenant_id, actor)


@pytest.fixture
async def customer(store, tenant_id):
    return await ContactService(store, tenant_id).create_contact(
        ContactCreate(name="Cliente de Prueba", type="customer")
    )


@pytest.fixture
async def supplier(store, tenant_id):
    return await ContactService(store, tenant_id).create_contact(
        ContactCreate(name="Proveedor de Prueba", type="supplier")
    )


@pytest.fixture
async def item(store, tenant_id, actor):
    return await ItemService(store, tenant_id, actor).create_item(
        ItemCreate(
            name="Widget",
            sku="W-001",
            sale_price=Decimal("10.00"),
            purchase_price=Decimal("5.00"),
            stock_quantity=Decimal("50"),
            low_stock_alert=Decimal("5")
        )
    )


@pytest.fixture
async def client(store):
    """Cliente HTTP contra la app con el store del test inyectado."""
    app.dependency_overrides[get_ledger_store] = lambda: store
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()


@pytest.fixture
def tenant_headers(tenant_id):
    return {"X-Company-ID": str(tenant_id)}
