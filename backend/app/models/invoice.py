"""
Modelli SQLAlchemy per la Fatturazione
Progetto: Repair Desk (Gestionale Centro Assistenza)

Contiene:
- Invoice: Fattura (da intervento o di vendita al banco)
- InvoiceItem: Righe della fattura di vendita
- Payment: Pagamenti registrati sulla fattura
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import CompanyScopedMixin, TimestampMixin, UUIDMixin

# Import per type hinting relazioni (evita circular import)
if TYPE_CHECKING:
    from app.models.catalog import Item, PaymentMethod
    from app.models.company import Branch
    from app.models.customer import Customer


class Invoice(Base, UUIDMixin, TimestampMixin, CompanyScopedMixin):
    """
    Modello per le fatture.

    Una fattura nasce da un intervento (al massimo una per intervento)
    oppure come vendita al banco per cliente + filiale con righe esplicite.

    Attributes:
        invoice_number: Numero fattura univoco fornito dalla numerazione
        branch_id: Filiale emittente
        service_id: Intervento di origine (None per le vendite)
        customer_id: Cliente intestatario
        total_amount: Totale dovuto
        paid_amount: Totale incassato
        balance_amount: Residuo (total_amount - paid_amount)
        payment_status: PENDING / PARTIAL / PAID, derivato dagli importi
        is_warranty_invoice: Fattura di un intervento in garanzia
        pdf_url: Percorso del documento A4

    Relationships:
        items: Righe (solo vendite)
        payments: Pagamenti registrati
    """

    __tablename__ = "invoices"

    # ------------------------------------------------------------
    # Colonne Relazioni
    # ------------------------------------------------------------
    branch_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("branches.id", ondelete="RESTRICT"),
        nullable=True,
    )

    service_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("services.id", ondelete="RESTRICT"),
        nullable=True,
        unique=True,
        doc="UUID dell'intervento (al massimo una fattura per intervento)",
    )

    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=True,
    )

    # ------------------------------------------------------------
    # Colonne Identificazione
    # ------------------------------------------------------------
    invoice_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    # ------------------------------------------------------------
    # Colonne Importi
    # ------------------------------------------------------------
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
    )
    balance_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="PENDING",
    )

    is_warranty_invoice: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    pdf_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    customer: Mapped[Optional["Customer"]] = relationship("Customer", lazy="selectin")
    branch: Mapped[Optional["Branch"]] = relationship("Branch", lazy="selectin")

    items: Mapped[List["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        order_by="InvoiceItem.created_at",
        lazy="selectin",
    )

    payments: Mapped[List["Payment"]] = relationship(
        "Payment",
        back_populates="invoice",
        order_by="Payment.created_at",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_invoices_total_amount_positive"),
        CheckConstraint(
            "payment_status IN ('PENDING', 'PARTIAL', 'PAID')",
            name="ck_invoices_payment_status",
        ),
        Index("ix_invoices_company_branch", "company_id", "branch_id"),
        Index("ix_invoices_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"Invoice(number={self.invoice_number!r}, total={self.total_amount}, "
            f"status={self.payment_status!r})"
        )


class InvoiceItem(Base, UUIDMixin, TimestampMixin):
    """
    Riga di fattura di vendita.

    Creata una sola volta insieme alla fattura; item_id collega la riga
    all'articolo di catalogo per l'emissione della garanzia.
    """

    __tablename__ = "invoice_items"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("items.id", ondelete="SET NULL"),
        nullable=True,
    )
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")
    item: Mapped[Optional["Item"]] = relationship("Item", lazy="selectin")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_invoice_items_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_invoice_items_unit_price_positive"),
    )


class Payment(Base, UUIDMixin, TimestampMixin):
    """
    Pagamento registrato su una fattura.

    payment_method_id è nullo solo per il residuo di acconto non dettagliato
    importato dall'intervento.
    """

    __tablename__ = "payments"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_method_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("payment_methods.id", ondelete="RESTRICT"),
        nullable=True,
    )
    transaction_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="payments")
    payment_method: Mapped[Optional["PaymentMethod"]] = relationship(
        "PaymentMethod",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )

    def __repr__(self) -> str:
        return f"Payment(invoice_id={self.invoice_id}, amount={self.amount})"
