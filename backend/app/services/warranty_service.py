"""
Service per l'emissione delle garanzie di vendita
Progetto: Repair Desk (Gestionale Centro Assistenza)

Dopo una vendita al banco, ogni riga collegata a un articolo con
warranty_days > 0 riceve un WarrantyRecord.

L'emissione è lanciata in background da dispatch_sale_warranty: il
chiamante non attende il risultato e un errore viene solo registrato
nel log, senza toccare la fattura già creata.
"""

import asyncio
import logging
import uuid
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import session_scope
from app.core.exceptions import NotFoundError
from app.models.company import Branch
from app.models.invoice import Invoice, InvoiceItem
from app.models.warranty import WarrantyRecord

logger = logging.getLogger(__name__)

# Riferimenti forti ai task in corso (asyncio conserva solo riferimenti deboli)
_background_tasks: set[asyncio.Task] = set()


def calculate_end_date(start_date: date, warranty_days: int) -> date:
    """Data di scadenza: inizio + giorni di garanzia."""
    return start_date + timedelta(days=warranty_days)


class WarrantyService:
    """Creazione dei record di garanzia per le fatture di vendita."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def generate_warranty_number(self, branch_id: uuid.UUID, today: date) -> str:
        """
        Genera il numero garanzia: WRT-{codice filiale}-{YYYYMMDD}-{NNN}.

        Il progressivo conta le garanzie create oggi per la filiale.

        Raises:
            NotFoundError: Filiale non trovata
        """
        branch = await self.db.get(Branch, branch_id)
        if branch is None:
            raise NotFoundError(f"Filiale {branch_id} non trovata")

        start_of_day = datetime.combine(today, time.min, tzinfo=timezone.utc)
        end_of_day = datetime.combine(today, time.max, tzinfo=timezone.utc)

        stmt = select(func.count(WarrantyRecord.id)).where(
            WarrantyRecord.branch_id == branch_id,
            WarrantyRecord.created_at >= start_of_day,
            WarrantyRecord.created_at <= end_of_day,
        )
        count = (await self.db.execute(stmt)).scalar_one()

        return f"WRT-{branch.code}-{today:%Y%m%d}-{count + 1:03d}"

    async def create_sale_warranty_records(self, invoice_id: uuid.UUID) -> list[WarrantyRecord]:
        """
        Crea le garanzie per le righe di una fattura di vendita.

        Le fatture da intervento vengono saltate. Le righe che hanno già
        una garanzia non vengono duplicate.

        Args:
            invoice_id: UUID della fattura

        Returns:
            list[WarrantyRecord]: Record creati in questa esecuzione

        Raises:
            NotFoundError: Fattura non trovata
        """
        stmt = (
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .options(selectinload(Invoice.items).selectinload(InvoiceItem.item))
        )
        invoice = (await self.db.execute(stmt)).scalar_one_or_none()
        if invoice is None:
            raise NotFoundError(f"Fattura {invoice_id} non trovata")

        if invoice.service_id is not None:
            logger.info(f"Fattura {invoice.invoice_number} collegata a intervento: nessuna garanzia di vendita")
            return []

        existing_stmt = select(WarrantyRecord.invoice_item_id).where(
            WarrantyRecord.invoice_id == invoice.id
        )
        covered = set((await self.db.execute(existing_stmt)).scalars().all())

        start_date = invoice.created_at.date()
        created: list[WarrantyRecord] = []

        for invoice_item in invoice.items:
            item = invoice_item.item
            if item is None or not item.warranty_days or item.warranty_days <= 0:
                continue
            if invoice_item.id in covered:
                continue

            record = WarrantyRecord(
                warranty_number=await self.generate_warranty_number(
                    invoice.branch_id, datetime.now(timezone.utc).date()
                ),
                source_type="SALE",
                invoice_id=invoice.id,
                invoice_item_id=invoice_item.id,
                item_id=item.id,
                customer_id=invoice.customer_id,
                company_id=invoice.company_id,
                branch_id=invoice.branch_id,
                warranty_days=item.warranty_days,
                start_date=start_date,
                end_date=calculate_end_date(start_date, item.warranty_days),
            )
            self.db.add(record)
            # Flush per riga: il conteggio del numero successivo include questa
            await self.db.flush()
            created.append(record)

        await self.db.commit()
        logger.info(
            f"Create {len(created)} garanzie per la fattura {invoice.invoice_number}"
        )
        return created


# ------------------------------------------------------------
# Dispatch in background
# ------------------------------------------------------------
async def _issue_sale_warranty(invoice_id: uuid.UUID) -> None:
    async with session_scope() as db:
        await WarrantyService(db).create_sale_warranty_records(invoice_id)


def _log_task_outcome(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        logger.warning(f"Emissione garanzia annullata ({task.get_name()})")
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            f"Errore emissione garanzia ({task.get_name()}): {exc}",
            exc_info=exc,
        )


def dispatch_sale_warranty(invoice_id: uuid.UUID) -> asyncio.Task:
    """
    Avvia l'emissione delle garanzie senza attenderla.

    Il task usa una sessione propria: quella della richiesta viene chiusa
    a fine endpoint. Nessuna garanzia di ordine rispetto alle letture
    successive della fattura.
    """
    task = asyncio.create_task(
        _issue_sale_warranty(invoice_id),
        name=f"sale-warranty-{invoice_id}",
    )
    _background_tasks.add(task)
    task.add_done_callback(_log_task_outcome)
    return task
