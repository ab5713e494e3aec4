"""
Store di fatturazione su SQLAlchemy async
Progetto: Repair Desk (Gestionale Centro Assistenza)

Implementa IInvoiceStore su una AsyncSession per richiesta. Il ciclo di vita
dell'engine (verifica connessione, dispose) resta al lifespan di app.main.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, AsyncIterator, Optional

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError
from app.models.catalog import PaymentMethod
from app.models.company import Branch, Company
from app.models.customer import Customer
from app.models.invoice import Invoice, InvoiceItem, Payment
from app.models.service import Service, ServiceFault, ServicePart
from app.repositories.invoice_store import IInvoiceStore
from app.schemas.service import (
    ServiceFaultSnapshot,
    ServicePartSnapshot,
    ServicePaymentEntrySnapshot,
    ServiceSnapshot,
)

logger = logging.getLogger(__name__)


def _parse_fault_ids(raw: Optional[list]) -> frozenset[uuid.UUID]:
    """Converte la colonna JSON matching_fault_ids in un insieme di UUID."""
    if not raw:
        return frozenset()
    return frozenset(uuid.UUID(str(value)) for value in raw)


def project_service_snapshot(service: Service) -> ServiceSnapshot:
    """
    Proietta un Service ORM (relazioni già caricate) nello snapshot.

    Args:
        service: Intervento con faults, parts, payment_entries, customer, branch

    Returns:
        ServiceSnapshot: Vista immutabile usata dal calcolo importi
    """
    faults = tuple(
        ServiceFaultSnapshot(
            fault_id=sf.fault_id,
            name=sf.fault.name if sf.fault else "",
            default_price=sf.fault.default_price if sf.fault else Decimal("0.00"),
        )
        for sf in service.faults
    )
    parts = tuple(
        ServicePartSnapshot(
            part_name=p.part_name,
            item_id=p.item_id,
            quantity=p.quantity,
            unit_price=p.unit_price,
            total_price=p.total_price,
            is_extra_spare=p.is_extra_spare,
            is_approved=p.is_approved,
        )
        for p in service.parts
    )
    entries = tuple(
        ServicePaymentEntrySnapshot(
            amount=e.amount,
            payment_method_id=e.payment_method_id,
            payment_date=e.payment_date,
            transaction_id=e.transaction_id,
            notes=e.notes,
        )
        for e in service.payment_entries
    )

    return ServiceSnapshot(
        id=service.id,
        company_id=service.company_id,
        branch_id=service.branch_id,
        customer_id=service.customer_id,
        ticket_number=service.ticket_number,
        estimated_cost=service.estimated_cost,
        actual_cost=service.actual_cost,
        advance_payment=service.advance_payment,
        is_warranty_repair=service.is_warranty_repair,
        matching_fault_ids=_parse_fault_ids(service.matching_fault_ids),
        faults=faults,
        parts=parts,
        payment_entries=entries,
        customer_name=service.customer.name if service.customer else "",
        customer_phone=service.customer.phone if service.customer else None,
        branch_code=service.branch.code if service.branch else "",
        branch_name=service.branch.name if service.branch else "",
        device_model=service.device_model,
    )


class SqlAlchemyInvoiceStore(IInvoiceStore):
    """
    Persistenza fatture su PostgreSQL (asyncpg) o SQLite (aiosqlite, test).

    Le scritture non fanno commit: il commit avviene solo all'uscita
    di atomic(), così più scritture formano un'unica transazione.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator["SqlAlchemyInvoiceStore"]:
        try:
            yield self
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(f"Errore di integrità durante il salvataggio: {e.orig}")
            raise ConflictError(
                "Operazione in conflitto con dati esistenti (numero o intervento duplicato)"
            ) from e
        except Exception:
            await self.db.rollback()
            raise

    # ------------------------------------------------------------
    # Letture
    # ------------------------------------------------------------
    async def get_service_snapshot(
        self, service_id: uuid.UUID, company_id: uuid.UUID
    ) -> Optional[ServiceSnapshot]:
        stmt = (
            select(Service)
            .where(Service.id == service_id, Service.company_id == company_id)
            .options(
                selectinload(Service.faults).selectinload(ServiceFault.fault),
                selectinload(Service.parts).selectinload(ServicePart.item),
                selectinload(Service.payment_entries),
                selectinload(Service.customer),
                selectinload(Service.branch),
            )
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        service = result.scalar_one_or_none()
        if service is None:
            return None
        return project_service_snapshot(service)

    def _invoice_query(self):
        return select(Invoice).options(
            selectinload(Invoice.items),
            selectinload(Invoice.payments),
            selectinload(Invoice.customer),
            selectinload(Invoice.branch),
        )

    async def get_invoice(
        self, invoice_id: uuid.UUID, company_id: uuid.UUID
    ) -> Optional[Invoice]:
        stmt = (
            self._invoice_query()
            .where(Invoice.id == invoice_id, Invoice.company_id == company_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_invoice_for_update(
        self, invoice_id: uuid.UUID, company_id: uuid.UUID
    ) -> Optional[Invoice]:
        # Lock solo sulla riga fattura: le relazioni non servono qui
        stmt = (
            select(Invoice)
            .where(Invoice.id == invoice_id, Invoice.company_id == company_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_invoice_by_service_id(self, service_id: uuid.UUID) -> Optional[Invoice]:
        stmt = self._invoice_query().where(Invoice.service_id == service_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def sum_payments(self, invoice_id: uuid.UUID) -> Decimal:
        stmt = select(func.coalesce(func.sum(Payment.amount), 0)).where(
            Payment.invoice_id == invoice_id
        )
        result = await self.db.execute(stmt)
        return Decimal(str(result.scalar_one()))

    async def get_company(self, company_id: uuid.UUID) -> Optional[Company]:
        return await self.db.get(Company, company_id)

    async def get_customer(
        self, customer_id: uuid.UUID, company_id: uuid.UUID
    ) -> Optional[Customer]:
        stmt = select(Customer).where(
            Customer.id == customer_id, Customer.company_id == company_id
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_branch(self, branch_id: uuid.UUID, company_id: uuid.UUID) -> Optional[Branch]:
        stmt = select(Branch).where(Branch.id == branch_id, Branch.company_id == company_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_payment_method(
        self, payment_method_id: uuid.UUID, company_id: uuid.UUID
    ) -> Optional[PaymentMethod]:
        stmt = select(PaymentMethod).where(
            PaymentMethod.id == payment_method_id,
            PaymentMethod.company_id == company_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_invoices(
        self,
        company_id: uuid.UUID,
        *,
        branch_id: Optional[uuid.UUID] = None,
        payment_status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Invoice], int]:
        conditions = [Invoice.company_id == company_id]

        if branch_id:
            conditions.append(Invoice.branch_id == branch_id)

        if payment_status:
            conditions.append(Invoice.payment_status == payment_status)

        if start_date:
            start = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
            conditions.append(Invoice.created_at >= start)

        if end_date:
            end = datetime.combine(end_date, time.max, tzinfo=timezone.utc)
            conditions.append(Invoice.created_at <= end)

        if search:
            pattern = f"%{search.strip()}%"
            conditions.append(
                or_(
                    Invoice.invoice_number.ilike(pattern),
                    Service.ticket_number.ilike(pattern),
                    Customer.name.ilike(pattern),
                )
            )

        base = (
            select(Invoice.id)
            .outerjoin(Service, Service.id == Invoice.service_id)
            .outerjoin(Customer, Customer.id == Invoice.customer_id)
            .where(and_(*conditions))
        )

        count_stmt = select(func.count()).select_from(base.subquery())
        total = (await self.db.execute(count_stmt)).scalar_one()

        stmt = (
            self._invoice_query()
            .where(Invoice.id.in_(base))
            .order_by(Invoice.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    # ------------------------------------------------------------
    # Scritture
    # ------------------------------------------------------------
    async def create_invoice(self, fields: dict[str, Any]) -> Invoice:
        # Collezioni inizializzate: nessun lazy load implicito sulla nuova istanza
        invoice = Invoice(**fields, items=[], payments=[])
        self.db.add(invoice)
        await self.db.flush()
        return invoice

    async def create_invoice_items(
        self, invoice_id: uuid.UUID, items: list[dict[str, Any]]
    ) -> list[InvoiceItem]:
        rows = [InvoiceItem(invoice_id=invoice_id, **item) for item in items]
        self.db.add_all(rows)
        await self.db.flush()
        return rows

    async def create_payment(self, fields: dict[str, Any]) -> Payment:
        payment = Payment(**fields)
        self.db.add(payment)
        await self.db.flush()
        return payment

    async def update_invoice(self, invoice_id: uuid.UUID, fields: dict[str, Any]) -> Invoice:
        invoice = await self.db.get(Invoice, invoice_id)
        for key, value in fields.items():
            setattr(invoice, key, value)
        await self.db.flush()
        return invoice

    async def delete_payments(self, invoice_id: uuid.UUID) -> int:
        result = await self.db.execute(delete(Payment).where(Payment.invoice_id == invoice_id))
        return result.rowcount or 0

    async def delete_invoice(self, invoice_id: uuid.UUID) -> None:
        await self.db.execute(delete(InvoiceItem).where(InvoiceItem.invoice_id == invoice_id))
        await self.db.execute(delete(Invoice).where(Invoice.id == invoice_id))
