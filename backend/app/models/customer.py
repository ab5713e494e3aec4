"""
Modello SQLAlchemy per i Clienti
Progetto: Repair Desk (Gestionale Centro Assistenza)
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models import Base
from app.models.mixins import CompanyScopedMixin, TimestampMixin, UUIDMixin


class Customer(Base, UUIDMixin, TimestampMixin, CompanyScopedMixin):
    """Cliente del centro assistenza (privato o azienda)."""

    __tablename__ = "customers"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_customers_company_phone", "company_id", "phone"),
    )

    def __repr__(self) -> str:
        return f"Customer(name={self.name!r}, phone={self.phone!r})"
