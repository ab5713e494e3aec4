"""
Modelli Database SQLAlchemy
Progetto: Repair Desk (Gestionale Centro Assistenza)

Import centralizzato di tutti i modelli per create_all e usage generico.

Modelli:
- Company, Branch: Azienda e filiali
- Customer: Anagrafica clienti
- Item, Fault, PaymentMethod: Catalogo
- Service, ServiceFault, ServicePart, ServicePaymentEntry: Interventi
- Invoice, InvoiceItem, Payment: Fatturazione
- WarrantyRecord: Garanzie sugli articoli venduti
- DocumentSequence: Contatori di numerazione
"""

# SQLAlchemy 2.0 Base declarativa
# Importato qui per essere disponibile per tutti i modelli
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class per tutti i modelli SQLAlchemy."""
    pass


from app.models.company import Branch, Company
from app.models.customer import Customer
from app.models.catalog import Fault, Item, PaymentMethod
from app.models.service import Service, ServiceFault, ServicePart, ServicePaymentEntry
from app.models.invoice import Invoice, InvoiceItem, Payment
from app.models.warranty import WarrantyRecord
from app.models.document_sequence import DocumentSequence

__all__ = [
    "Base",
    "Company",
    "Branch",
    "Customer",
    "Item",
    "Fault",
    "PaymentMethod",
    "Service",
    "ServiceFault",
    "ServicePart",
    "ServicePaymentEntry",
    "Invoice",
    "InvoiceItem",
    "Payment",
    "WarrantyRecord",
    "DocumentSequence",
]
