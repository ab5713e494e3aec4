"""
Schemas Pydantic per lo snapshot dell'intervento
Progetto: Repair Desk (Gestionale Centro Assistenza)

ServiceSnapshot contiene esattamente i dati dell'intervento che servono alla
fatturazione. Lo store lo proietta dalle tabelle ORM; il calcolo degli
importi lavora solo su questo tipo, mai sui modelli SQLAlchemy.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ServiceFaultSnapshot(BaseModel):
    """Guasto associato all'intervento con il suo prezzo di listino."""

    fault_id: uuid.UUID
    name: str = ""
    default_price: Decimal = Decimal("0.00")

    model_config = ConfigDict(frozen=True)


class ServicePartSnapshot(BaseModel):
    """Ricambio utilizzato nell'intervento."""

    part_name: str = ""
    item_id: Optional[uuid.UUID] = None
    quantity: Decimal = Decimal("1")
    unit_price: Decimal = Decimal("0.00")
    total_price: Decimal = Decimal("0.00")
    is_extra_spare: bool = False
    is_approved: bool = False

    model_config = ConfigDict(frozen=True)


class ServicePaymentEntrySnapshot(BaseModel):
    """Acconto dettagliato incassato prima della fattura."""

    amount: Decimal
    payment_method_id: uuid.UUID
    payment_date: datetime
    transaction_id: Optional[str] = None
    notes: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class ServiceSnapshot(BaseModel):
    """
    Vista di sola lettura di un intervento completo.

    Attributes:
        actual_cost: Se valorizzato prevale su estimated_cost
        matching_fault_ids: Guasti già coperti dalla garanzia precedente
        faults / parts / payment_entries: In ordine di inserimento
    """

    id: uuid.UUID
    company_id: uuid.UUID
    branch_id: uuid.UUID
    customer_id: uuid.UUID
    ticket_number: str = ""

    estimated_cost: Decimal = Decimal("0.00")
    actual_cost: Optional[Decimal] = None
    advance_payment: Decimal = Decimal("0.00")

    is_warranty_repair: bool = False
    matching_fault_ids: frozenset[uuid.UUID] = Field(default_factory=frozenset)

    faults: tuple[ServiceFaultSnapshot, ...] = ()
    parts: tuple[ServicePartSnapshot, ...] = ()
    payment_entries: tuple[ServicePaymentEntrySnapshot, ...] = ()

    # Dati di intestazione per il documento
    customer_name: str = ""
    customer_phone: Optional[str] = None
    branch_code: str = ""
    branch_name: str = ""
    device_model: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def effective_cost(self) -> Decimal:
        """Costo senza logica di garanzia: consuntivo se presente, altrimenti preventivo."""
        return self.actual_cost if self.actual_cost is not None else self.estimated_cost
