"""
Modelli SQLAlchemy per il Catalogo
Progetto: Repair Desk (Gestionale Centro Assistenza)

Contiene:
- Item: Articolo di catalogo (ricambi e prodotti venduti al banco)
- Fault: Guasto a listino con prezzo predefinito
- PaymentMethod: Metodo di pagamento configurato dall'azienda
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models import Base
from app.models.mixins import CompanyScopedMixin, SoftDeleteMixin, TimestampMixin, UUIDMixin


class Item(Base, UUIDMixin, TimestampMixin, CompanyScopedMixin):
    """
    Articolo di catalogo.

    Attributes:
        item_name: Nome commerciale
        item_code: Codice interno (SKU)
        warranty_days: Giorni di garanzia concessi alla vendita (0 = nessuna)
    """

    __tablename__ = "items"

    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    item_code: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    warranty_days: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Giorni di garanzia concessi alla vendita",
    )

    __table_args__ = (
        CheckConstraint("warranty_days >= 0", name="ck_items_warranty_days_positive"),
    )

    def __repr__(self) -> str:
        return f"Item(name={self.item_name!r}, warranty_days={self.warranty_days})"


class Fault(Base, UUIDMixin, TimestampMixin, CompanyScopedMixin):
    """Guasto a listino (es. "Sostituzione display") con prezzo predefinito."""

    __tablename__ = "faults"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    default_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
    )

    def __repr__(self) -> str:
        return f"Fault(name={self.name!r}, default_price={self.default_price})"


class PaymentMethod(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin, CompanyScopedMixin):
    """Metodo di pagamento (contanti, carta, UPI, bonifico...)."""

    __tablename__ = "payment_methods"

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    def __repr__(self) -> str:
        return f"PaymentMethod(name={self.name!r})"
