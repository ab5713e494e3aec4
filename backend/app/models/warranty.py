"""
Modello SQLAlchemy per i Record di Garanzia
Progetto: Repair Desk (Gestionale Centro Assistenza)
"""

from __future__ import annotations

import datetime
import uuid
from typing import Optional

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models import Base
from app.models.mixins import CompanyScopedMixin, TimestampMixin, UUIDMixin


class WarrantyRecord(Base, UUIDMixin, TimestampMixin, CompanyScopedMixin):
    """
    Garanzia emessa su un articolo venduto.

    Una sola garanzia per riga di fattura (vincolo univoco su
    invoice_item_id): la rielaborazione della stessa fattura non duplica.
    """

    __tablename__ = "warranty_records"

    warranty_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    source_type: Mapped[str] = mapped_column(String(20), nullable=False, default="SALE")

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    invoice_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoice_items.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("items.id", ondelete="RESTRICT"),
        nullable=False,
    )
    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
    )
    branch_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("branches.id", ondelete="RESTRICT"),
        nullable=False,
    )

    warranty_days: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    end_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        CheckConstraint("warranty_days > 0", name="ck_warranty_records_days_positive"),
        CheckConstraint("source_type IN ('SALE', 'SERVICE')", name="ck_warranty_records_source"),
        Index("ix_warranty_records_branch_created", "branch_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"WarrantyRecord(number={self.warranty_number!r}, end={self.end_date})"
