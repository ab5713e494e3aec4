"""
Dependency Injection per il perimetro aziendale e i service
Progetto: Repair Desk (Gestionale Centro Assistenza)

Funzioni di dependency injection usate dai router: identificazione
dell'azienda dalla richiesta e composizione di InvoiceService con i
suoi collaboratori sulla sessione della richiesta.
"""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.repositories.sqlalchemy_invoice_store import SqlAlchemyInvoiceStore
from app.schemas.invoice import DocumentFormat
from app.services.document_number_service import DocumentNumberService
from app.services.invoice_service import InvoiceService
from app.services.pdf_service import PdfService
from app.services.warranty_service import dispatch_sale_warranty


async def get_company_id(
    x_company_id: Optional[str] = Header(
        None,
        alias="X-Company-ID",
        description="UUID dell'azienda su cui operare",
    ),
) -> UUID:
    """
    Dependency per ottenere l'azienda della richiesta.

    Raises:
        HTTPException 400: Header mancante o non è un UUID valido
    """
    if not x_company_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Header X-Company-ID obbligatorio",
        )

    try:
        return UUID(x_company_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Header X-Company-ID non valido",
        )


def get_invoice_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> InvoiceService:
    """Compone InvoiceService sulla sessione della richiesta."""
    return InvoiceService(
        store=SqlAlchemyInvoiceStore(db),
        numbering=DocumentNumberService(db, settings),
        renderer=PdfService(settings),
        warranty_dispatcher=dispatch_sale_warranty if settings.warranty_dispatch_enabled else None,
        canonical_format=DocumentFormat(settings.default_document_format),
    )


# Type alias per le dipendenze comuni
CompanyId = Annotated[UUID, Depends(get_company_id)]
InvoiceServiceDep = Annotated[InvoiceService, Depends(get_invoice_service)]
