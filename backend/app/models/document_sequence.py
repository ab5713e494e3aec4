"""
Modello SQLAlchemy per le sequenze di numerazione documenti
Progetto: Repair Desk (Gestionale Centro Assistenza)
"""

from __future__ import annotations

from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models import Base
from app.models.mixins import CompanyScopedMixin, TimestampMixin, UUIDMixin


class DocumentSequence(Base, UUIDMixin, TimestampMixin, CompanyScopedMixin):
    """
    Contatore progressivo per tipo documento.

    scope_key vale l'UUID della filiale quando la numerazione è per filiale,
    "*" quando è aziendale (un NULL non parteciperebbe al vincolo univoco).
    period_key identifica il periodo di azzeramento ("ALL", "2025", "2025-01").
    """

    __tablename__ = "document_sequences"

    scope_key: Mapped[str] = mapped_column(String(40), nullable=False)
    document_type: Mapped[str] = mapped_column(String(30), nullable=False)
    period_key: Mapped[str] = mapped_column(String(10), nullable=False)
    current_sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint(
            "company_id",
            "scope_key",
            "document_type",
            "period_key",
            name="uq_document_sequences_scope",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"DocumentSequence(type={self.document_type!r}, period={self.period_key!r}, "
            f"current={self.current_sequence})"
        )
