"""
Schemas Pydantic per la Fatturazione
Progetto: Repair Desk (Gestionale Centro Assistenza)

Contiene:
- Enums: PaymentStatus, DocumentFormat
- InvoiceAmounts: i quattro campi monetari derivati
- Schemas per InvoiceItem, Payment, Invoice
- InvoiceDocument: struttura prezzi finalizzata passata al renderer PDF
"""

import uuid
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from app.core.exceptions import BusinessValidationError


# -------------------------------------------------------------------
# Enum
# -------------------------------------------------------------------

class PaymentStatus(str, Enum):
    """Stato di pagamento, derivato sempre da (totale, pagato)."""
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"


class DocumentFormat(str, Enum):
    """Formati di stampa supportati. A4 è il formato canonico."""
    A4 = "A4"
    A5 = "A5"
    THERMAL = "THERMAL"


# -------------------------------------------------------------------
# Importi derivati
# -------------------------------------------------------------------

class InvoiceAmounts(BaseModel):
    """Totale, pagato, residuo e stato: sempre coerenti tra loro."""

    total_amount: Decimal
    paid_amount: Decimal
    balance_amount: Decimal
    payment_status: PaymentStatus

    model_config = ConfigDict(frozen=True)


# -------------------------------------------------------------------
# Schemas per InvoiceItem
# -------------------------------------------------------------------

class InvoiceItemCreate(BaseModel):
    """Riga di una fattura di vendita."""

    item_id: Optional[uuid.UUID] = Field(
        None,
        description="Articolo di catalogo (usato per l'emissione della garanzia)",
    )
    description: str = Field(
        ...,
        min_length=2,
        max_length=500,
        description="Descrizione della riga",
    )
    quantity: Decimal = Field(..., ge=Decimal("0.01"), description="Quantità")
    unit_price: Decimal = Field(..., ge=0, description="Prezzo unitario")
    amount: Optional[Decimal] = Field(
        None,
        ge=0,
        description="Importo riga (default: quantità x prezzo unitario)",
    )

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("La descrizione deve contenere almeno 2 caratteri")
        return v

    @model_validator(mode="after")
    def default_amount(self) -> "InvoiceItemCreate":
        """Calcola l'importo riga quando non fornito."""
        if self.amount is None:
            self.amount = (self.quantity * self.unit_price).quantize(
                Decimal("0.01"), rounding=ROUND_HALF_UP
            )
        return self


class InvoiceItemRead(BaseModel):
    """Schema per la lettura di una riga fattura."""

    id: uuid.UUID
    item_id: Optional[uuid.UUID] = Field(None, serialization_alias="itemId")
    description: str
    quantity: Decimal
    unit_price: Decimal = Field(..., serialization_alias="unitPrice")
    amount: Decimal

    model_config = ConfigDict(from_attributes=True)


# -------------------------------------------------------------------
# Schemas per Payment
# -------------------------------------------------------------------

class PaymentCreate(BaseModel):
    """Schema per registrare un pagamento su una fattura."""

    amount: Decimal = Field(..., gt=0, description="Importo pagamento")
    payment_method_id: uuid.UUID = Field(..., description="Metodo di pagamento")
    transaction_id: Optional[str] = Field(
        None,
        max_length=100,
        description="Riferimento transazione esterno (es. ID POS, CRO)",
    )
    notes: Optional[str] = Field(None, max_length=500)


class PaymentRead(BaseModel):
    """Schema per leggere un pagamento esistente."""

    id: uuid.UUID
    invoice_id: uuid.UUID = Field(..., serialization_alias="invoiceId")
    amount: Decimal
    payment_method_id: Optional[uuid.UUID] = Field(None, serialization_alias="paymentMethodId")
    transaction_id: Optional[str] = Field(None, serialization_alias="transactionId")
    notes: Optional[str] = None
    created_at: datetime = Field(..., serialization_alias="createdAt")

    model_config = ConfigDict(from_attributes=True)


# -------------------------------------------------------------------
# Schemas per Invoice
# -------------------------------------------------------------------

class InvoiceCreate(BaseModel):
    """
    Richiesta di creazione fattura.

    Due modalità mutuamente esclusive (verificate dal service layer):
    1. service_id: fattura da intervento
    2. customer_id + branch_id + items + total_amount: vendita al banco
    """

    service_id: Optional[uuid.UUID] = None
    customer_id: Optional[uuid.UUID] = None
    branch_id: Optional[uuid.UUID] = None
    items: list[InvoiceItemCreate] = Field(default_factory=list)
    total_amount: Optional[Decimal] = Field(None, ge=0)
    paid_amount: Decimal = Field(Decimal("0.00"), ge=0)
    notes: Optional[str] = Field(None, max_length=2000)


class InvoiceAmountsUpdate(BaseModel):
    """Correzione manuale degli importi (campi omessi = valore attuale)."""

    total_amount: Optional[Decimal] = Field(None, ge=0)
    paid_amount: Optional[Decimal] = Field(None, ge=0)

    @model_validator(mode="after")
    def at_least_one_field(self) -> "InvoiceAmountsUpdate":
        if self.total_amount is None and self.paid_amount is None:
            raise BusinessValidationError("È necessario modificare almeno un campo")
        return self


class InvoiceRead(BaseModel):
    """Schema per la lettura di una fattura con righe e pagamenti."""

    id: uuid.UUID
    invoice_number: str = Field(..., serialization_alias="invoiceNumber")
    company_id: uuid.UUID = Field(..., serialization_alias="companyId")
    branch_id: Optional[uuid.UUID] = Field(None, serialization_alias="branchId")
    service_id: Optional[uuid.UUID] = Field(None, serialization_alias="serviceId")
    customer_id: Optional[uuid.UUID] = Field(None, serialization_alias="customerId")

    total_amount: Decimal = Field(..., serialization_alias="totalAmount")
    paid_amount: Decimal = Field(..., serialization_alias="paidAmount")
    balance_amount: Decimal = Field(..., serialization_alias="balanceAmount")
    payment_status: PaymentStatus = Field(..., serialization_alias="paymentStatus")

    is_warranty_invoice: bool = Field(False, serialization_alias="isWarrantyInvoice")
    notes: Optional[str] = None
    pdf_url: Optional[str] = Field(None, serialization_alias="pdfUrl")

    items: list[InvoiceItemRead] = Field(default_factory=list)
    payments: list[PaymentRead] = Field(default_factory=list)

    created_at: datetime = Field(..., serialization_alias="createdAt")
    updated_at: datetime = Field(..., serialization_alias="updatedAt")

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def is_standalone(self) -> bool:
        """True per le vendite al banco (nessun intervento collegato)."""
        return self.service_id is None


class InvoiceList(BaseModel):
    """Schema per la lista paginata delle fatture."""

    items: list[InvoiceRead] = Field(default_factory=list)
    total: int = Field(..., serialization_alias="totalItems")
    page: int = Field(..., serialization_alias="currentPage")
    per_page: int = Field(..., serialization_alias="itemsPerPage")
    total_pages: int = Field(..., serialization_alias="totalPages")


class PaymentRecorded(BaseModel):
    """Risposta alla registrazione di un pagamento."""

    payment: PaymentRead
    invoice: InvoiceRead


class InvoicePdfRead(BaseModel):
    """Percorso del documento generato."""

    pdf_url: str = Field(..., serialization_alias="pdfUrl")
    format: DocumentFormat


# -------------------------------------------------------------------
# Documento per il renderer
# -------------------------------------------------------------------

class DocumentLine(BaseModel):
    """Riga di prezzo finalizzata (is_free = coperta da garanzia)."""

    description: str
    quantity: Decimal = Decimal("1")
    unit_price: Decimal = Decimal("0.00")
    amount: Decimal = Decimal("0.00")
    is_free: bool = False


class InvoiceDocument(BaseModel):
    """Snapshot prezzi + metadati che il renderer trasforma in documento."""

    invoice_id: uuid.UUID
    invoice_number: str
    issued_at: datetime
    company_name: str = ""
    branch_name: str = ""
    customer_name: str = ""
    customer_phone: Optional[str] = None
    ticket_number: Optional[str] = None
    device_model: Optional[str] = None
    is_warranty_invoice: bool = False
    lines: list[DocumentLine] = Field(default_factory=list)
    total_amount: Decimal
    paid_amount: Decimal
    balance_amount: Decimal
    payment_status: PaymentStatus
    notes: Optional[str] = None
