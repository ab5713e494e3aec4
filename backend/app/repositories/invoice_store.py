"""
Interfaccia di persistenza per la fatturazione
Progetto: Repair Desk (Gestionale Centro Assistenza)

InvoiceService dipende solo da questa interfaccia: l'implementazione
SQLAlchemy vive in sqlalchemy_invoice_store, i test usano un fake in memoria.
"""

import uuid
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from app.models.catalog import PaymentMethod
from app.models.company import Branch, Company
from app.models.customer import Customer
from app.models.invoice import Invoice, InvoiceItem, Payment
from app.schemas.service import ServiceSnapshot


class IInvoiceStore(ABC):
    """Persistenza di fatture, righe e pagamenti."""

    @abstractmethod
    def atomic(self) -> AbstractAsyncContextManager["IInvoiceStore"]:
        """
        Unità atomica di scrittura.

        Commit all'uscita regolare, rollback su qualunque eccezione
        (che viene poi rilanciata).
        """

    # ------------------------------------------------------------
    # Letture
    # ------------------------------------------------------------
    @abstractmethod
    async def get_service_snapshot(
        self, service_id: uuid.UUID, company_id: uuid.UUID
    ) -> Optional[ServiceSnapshot]:
        """Intervento completo di guasti, ricambi, acconti, cliente e filiale."""

    @abstractmethod
    async def get_invoice(
        self, invoice_id: uuid.UUID, company_id: uuid.UUID
    ) -> Optional[Invoice]:
        """Fattura con righe e pagamenti."""

    @abstractmethod
    async def get_invoice_for_update(
        self, invoice_id: uuid.UUID, company_id: uuid.UUID
    ) -> Optional[Invoice]:
        """Fattura con lock di riga fino alla fine della transazione."""

    @abstractmethod
    async def get_invoice_by_service_id(self, service_id: uuid.UUID) -> Optional[Invoice]:
        """Fattura già emessa per l'intervento, se esiste."""

    @abstractmethod
    async def sum_payments(self, invoice_id: uuid.UUID) -> Decimal:
        """Somma dei pagamenti registrati sulla fattura (0 se nessuno)."""

    @abstractmethod
    async def get_company(self, company_id: uuid.UUID) -> Optional[Company]:
        pass

    @abstractmethod
    async def get_customer(
        self, customer_id: uuid.UUID, company_id: uuid.UUID
    ) -> Optional[Customer]:
        pass

    @abstractmethod
    async def get_branch(self, branch_id: uuid.UUID, company_id: uuid.UUID) -> Optional[Branch]:
        pass

    @abstractmethod
    async def get_payment_method(
        self, payment_method_id: uuid.UUID, company_id: uuid.UUID
    ) -> Optional[PaymentMethod]:
        pass

    @abstractmethod
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
        """Pagina di fatture (più recenti prima) e conteggio totale."""

    # ------------------------------------------------------------
    # Scritture
    # ------------------------------------------------------------
    @abstractmethod
    async def create_invoice(self, fields: dict[str, Any]) -> Invoice:
        pass

    @abstractmethod
    async def create_invoice_items(
        self, invoice_id: uuid.UUID, items: list[dict[str, Any]]
    ) -> list[InvoiceItem]:
        """Crea tutte le righe in un unico batch."""

    @abstractmethod
    async def create_payment(self, fields: dict[str, Any]) -> Payment:
        pass

    @abstractmethod
    async def update_invoice(self, invoice_id: uuid.UUID, fields: dict[str, Any]) -> Invoice:
        pass

    @abstractmethod
    async def delete_payments(self, invoice_id: uuid.UUID) -> int:
        """Elimina i pagamenti della fattura e restituisce quanti erano."""

    @abstractmethod
    async def delete_invoice(self, invoice_id: uuid.UUID) -> None:
        pass
