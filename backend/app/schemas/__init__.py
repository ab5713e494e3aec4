"""
Schemas Pydantic per il progetto Repair Desk

Questo modulo contiene tutti gli schemi Pydantic utilizzati per la validazione
e serializzazione delle richieste e risposte API.
"""

# Import degli schemi per renderli disponibili tramite import diretto
# es: from app.schemas import InvoiceRead, ServiceSnapshot, etc.

from app.schemas.service import (
    ServiceFaultSnapshot,
    ServicePartSnapshot,
    ServicePaymentEntrySnapshot,
    ServiceSnapshot,
)
from app.schemas.invoice import (
    DocumentFormat,
    DocumentLine,
    InvoiceAmounts,
    InvoiceAmountsUpdate,
    InvoiceCreate,
    InvoiceDocument,
    InvoiceItemCreate,
    InvoiceItemRead,
    InvoiceList,
    InvoicePdfRead,
    InvoiceRead,
    PaymentCreate,
    PaymentRead,
    PaymentRecorded,
    PaymentStatus,
)

__all__ = [
    # Service snapshot
    "ServiceFaultSnapshot",
    "ServicePartSnapshot",
    "ServicePaymentEntrySnapshot",
    "ServiceSnapshot",
    # Invoice schemas
    "DocumentFormat",
    "DocumentLine",
    "InvoiceAmounts",
    "InvoiceAmountsUpdate",
    "InvoiceCreate",
    "InvoiceDocument",
    "InvoiceItemCreate",
    "InvoiceItemRead",
    "InvoiceList",
    "InvoicePdfRead",
    "InvoiceRead",
    "PaymentCreate",
    "PaymentRead",
    "PaymentRecorded",
    "PaymentStatus",
]
