"""
Modelli SQLAlchemy per gli Interventi di riparazione
Progetto: Repair Desk (Gestionale Centro Assistenza)

Contiene:
- Service: Scheda intervento (ticket di riparazione)
- ServiceFault: Guasti associati all'intervento
- ServicePart: Ricambi utilizzati
- ServicePaymentEntry: Acconti registrati prima della fatturazione

Il sottosistema interventi è proprietario di queste tabelle; la fatturazione
le legge soltanto, tramite lo snapshot proiettato dallo store.
"""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
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

if TYPE_CHECKING:
    from app.models.catalog import Fault, Item, PaymentMethod
    from app.models.company import Branch
    from app.models.customer import Customer


class Service(Base, UUIDMixin, TimestampMixin, CompanyScopedMixin):
    """
    Scheda intervento.

    Attributes:
        ticket_number: Numero ticket leggibile (es. SRV-MI01-2025-0042)
        estimated_cost: Preventivo
        actual_cost: Costo consuntivo (se valorizzato prevale sul preventivo)
        advance_payment: Acconto incassato prima della fattura
        is_warranty_repair: Intervento in garanzia di un intervento precedente
        matching_fault_ids: Guasti già coperti dalla garanzia (lista di UUID)

    Relationships:
        faults: Guasti associati, in ordine di inserimento
        parts: Ricambi utilizzati
        payment_entries: Acconti dettagliati
    """

    __tablename__ = "services"

    branch_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("branches.id", ondelete="RESTRICT"),
        nullable=False,
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
    )
    ticket_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    device_model: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    damage_condition: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    diagnosis: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ------------------------------------------------------------
    # Importi
    # ------------------------------------------------------------
    estimated_cost: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
    )
    actual_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    labour_charge: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
    )
    advance_payment: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
    )

    # ------------------------------------------------------------
    # Garanzia
    # ------------------------------------------------------------
    is_warranty_repair: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    warranty_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    matching_fault_ids: Mapped[Optional[list]] = mapped_column(
        JSON,
        nullable=True,
        doc="UUID (stringa) dei guasti coperti dalla garanzia precedente",
    )
    previous_service_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("services.id", ondelete="SET NULL"),
        nullable=True,
    )

    completed_at: Mapped[Optional[datetime.datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    customer: Mapped["Customer"] = relationship("Customer", lazy="selectin")
    branch: Mapped["Branch"] = relationship("Branch", lazy="selectin")

    faults: Mapped[List["ServiceFault"]] = relationship(
        "ServiceFault",
        back_populates="service",
        cascade="all, delete-orphan",
        order_by="ServiceFault.created_at",
        lazy="selectin",
    )
    parts: Mapped[List["ServicePart"]] = relationship(
        "ServicePart",
        back_populates="service",
        cascade="all, delete-orphan",
        order_by="ServicePart.created_at",
        lazy="selectin",
    )
    payment_entries: Mapped[List["ServicePaymentEntry"]] = relationship(
        "ServicePaymentEntry",
        back_populates="service",
        cascade="all, delete-orphan",
        order_by="ServicePaymentEntry.payment_date",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("estimated_cost >= 0", name="ck_services_estimated_cost_positive"),
        CheckConstraint("advance_payment >= 0", name="ck_services_advance_payment_positive"),
        Index("ix_services_company_branch", "company_id", "branch_id"),
    )

    def __repr__(self) -> str:
        return f"Service(ticket={self.ticket_number!r}, warranty={self.is_warranty_repair})"


class ServiceFault(Base, UUIDMixin, TimestampMixin):
    """Associazione intervento-guasto."""

    __tablename__ = "service_faults"

    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    fault_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("faults.id", ondelete="RESTRICT"),
        nullable=False,
    )

    service: Mapped["Service"] = relationship("Service", back_populates="faults")
    fault: Mapped["Fault"] = relationship("Fault", lazy="selectin")


class ServicePart(Base, UUIDMixin, TimestampMixin):
    """
    Ricambio utilizzato nell'intervento.

    is_extra_spare: ricambio fuori copertura, addebitabile anche in garanzia
    is_approved: approvato dal cliente
    """

    __tablename__ = "service_parts"

    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("items.id", ondelete="SET NULL"),
        nullable=True,
    )
    part_name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("1"))
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    is_extra_spare: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    service: Mapped["Service"] = relationship("Service", back_populates="parts")
    item: Mapped[Optional["Item"]] = relationship("Item", lazy="selectin")


class ServicePaymentEntry(Base, UUIDMixin, TimestampMixin):
    """Acconto dettagliato incassato sull'intervento prima della fattura."""

    __tablename__ = "service_payment_entries"

    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_method_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("payment_methods.id", ondelete="RESTRICT"),
        nullable=False,
    )
    transaction_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    payment_date: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    service: Mapped["Service"] = relationship("Service", back_populates="payment_entries")
    payment_method: Mapped["PaymentMethod"] = relationship("PaymentMethod", lazy="selectin")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_service_payment_entries_amount_positive"),
    )
