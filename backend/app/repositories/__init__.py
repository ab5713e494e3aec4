"""
Repository / porte di persistenza
Progetto: Repair Desk (Gestionale Centro Assistenza)
"""

from app.repositories.invoice_store import IInvoiceStore
from app.repositories.sqlalchemy_invoice_store import SqlAlchemyInvoiceStore

__all__ = [
    "IInvoiceStore",
    "SqlAlchemyInvoiceStore",
]
