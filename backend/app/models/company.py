"""
Modelli SQLAlchemy per Aziende e Filiali
Progetto: Repair Desk (Gestionale Centro Assistenza)

Anagrafiche di base: il loro CRUD è gestito altrove, qui servono come
destinazione delle foreign key e come dati di intestazione dei documenti.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import CompanyScopedMixin, SoftDeleteMixin, TimestampMixin, UUIDMixin


class Company(Base, UUIDMixin, TimestampMixin):
    """Azienda (tenant). Tutti i dati operativi sono partizionati per azienda."""

    __tablename__ = "companies"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    logo: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"Company(name={self.name!r})"


class Branch(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin, CompanyScopedMixin):
    """
    Filiale dell'azienda.

    Il campo code compare nei numeri fattura e nei numeri di garanzia
    (es. WRT-MI01-20250118-001).
    """

    __tablename__ = "branches"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    company: Mapped["Company"] = relationship("Company", lazy="raise")

    __table_args__ = (
        Index("ix_branches_company_code", "company_id", "code", unique=True),
    )

    def __repr__(self) -> str:
        return f"Branch(code={self.code!r}, name={self.name!r})"
