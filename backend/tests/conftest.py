"""
Pytest configuration and fixtures per i test della fatturazione.

- mock_db: AsyncSession mockata
- InvoiceService su store in memoria con collaboratori fake
- Sessione SQLite in memoria (aiosqlite) per i test dello store reale
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.models import Base
from app.models.catalog import Fault, Item, PaymentMethod
from app.models.company import Branch, Company
from app.models.customer import Customer
from app.models.service import Service, ServiceFault, ServicePart, ServicePaymentEntry
from app.services.invoice_service import InvoiceService
from tests.factories import FakeInvoiceStore, FakeNumbering, FakeRenderer


# ============================================================
# Fixtures per AsyncSession Mock
# ============================================================


@pytest.fixture
def mock_db():
    """Crea un mock di AsyncSession."""
    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.get = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    return db


# ============================================================
# Fixtures per InvoiceService
# ============================================================


@pytest.fixture
def company_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def store(company_id) -> FakeInvoiceStore:
    fake = FakeInvoiceStore()
    fake.add_company(company_id)
    return fake


@pytest.fixture
def numbering() -> FakeNumbering:
    return FakeNumbering()


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def dispatcher() -> MagicMock:
    return MagicMock(name="warranty_dispatcher")


@pytest.fixture
def invoice_service(store, numbering, renderer, dispatcher) -> InvoiceService:
    return InvoiceService(
        store=store,
        numbering=numbering,
        renderer=renderer,
        warranty_dispatcher=dispatcher,
    )


# ============================================================
# Fixtures SQLite (aiosqlite)
# ============================================================


@pytest.fixture
async def sqlite_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def sqlite_session(sqlite_engine):
    factory = async_sessionmaker(
        bind=sqlite_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with factory() as session:
        yield session


@pytest.fixture
async def seeded(sqlite_session):
    """
    Dati di base su SQLite: azienda, filiale, cliente, metodo di pagamento,
    articolo con garanzia e un intervento in garanzia completo.
    """
    company = Company(name="Repair Lab Srl")
    sqlite_session.add(company)
    await sqlite_session.flush()

    branch = Branch(company_id=company.id, name="Milano Centro", code="MI01")
    customer = Customer(company_id=company.id, name="Mario Rossi", phone="3331234567")
    cash = PaymentMethod(company_id=company.id, name="Contanti")
    item = Item(company_id=company.id, item_name="Caricatore USB-C", warranty_days=90)
    no_warranty_item = Item(company_id=company.id, item_name="Pellicola", warranty_days=0)
    covered_fault = Fault(company_id=company.id, name="Display", default_price=Decimal("100.00"))
    new_fault = Fault(company_id=company.id, name="Batteria", default_price=Decimal("50.00"))
    sqlite_session.add_all([branch, customer, cash, item, no_warranty_item, covered_fault, new_fault])
    await sqlite_session.flush()

    service = Service(
        company_id=company.id,
        branch_id=branch.id,
        customer_id=customer.id,
        ticket_number="SRV-MI01-2025-0001",
        device_model="iPhone 12",
        estimated_cost=Decimal("150.00"),
        advance_payment=Decimal("50.00"),
        is_warranty_repair=True,
        matching_fault_ids=[str(covered_fault.id)],
    )
    sqlite_session.add(service)
    await sqlite_session.flush()

    sqlite_session.add_all(
        [
            ServiceFault(service_id=service.id, fault_id=covered_fault.id),
            ServiceFault(service_id=service.id, fault_id=new_fault.id),
            ServicePart(
                service_id=service.id,
                part_name="Cover posteriore",
                quantity=Decimal("1"),
                unit_price=Decimal("30.00"),
                total_price=Decimal("30.00"),
                is_extra_spare=True,
                is_approved=True,
            ),
            ServicePart(
                service_id=service.id,
                part_name="Flat display",
                quantity=Decimal("1"),
                unit_price=Decimal("20.00"),
                total_price=Decimal("20.00"),
            ),
            ServicePaymentEntry(
                service_id=service.id,
                amount=Decimal("30.00"),
                payment_method_id=cash.id,
                transaction_id="TX-001",
                payment_date=datetime(2025, 1, 10, 9, 30, tzinfo=timezone.utc),
            ),
        ]
    )
    await sqlite_session.commit()

    return {
        "company": company,
        "branch": branch,
        "customer": customer,
        "cash": cash,
        "item": item,
        "no_warranty_item": no_warranty_item,
        "covered_fault": covered_fault,
        "new_fault": new_fault,
        "service": service,
    }
