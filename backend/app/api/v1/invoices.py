"""
Router FastAPI per la Fatturazione
Progetto: Repair Desk (Gestionale Centro Assistenza)

Definisce gli endpoint API per la gestione delle fatture: creazione da
intervento o vendita al banco, pagamenti, correzioni, risincronizzazione
con l'intervento e rigenerazione dei documenti.

Tutti gli endpoint operano nel perimetro dell'azienda indicata
dall'header X-Company-ID.
"""

import logging
import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Path, Query, Response, status

from app.core.deps import CompanyId, InvoiceServiceDep
from app.schemas.invoice import (
    DocumentFormat,
    InvoiceAmountsUpdate,
    InvoiceCreate,
    InvoiceList,
    InvoicePdfRead,
    InvoiceRead,
    PaymentCreate,
    PaymentRead,
    PaymentRecorded,
    PaymentStatus,
)

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/invoices",
    tags=["Fatturazione"],
)


# -------------------------------------------------------------------
# Endpoints per Fatture
# -------------------------------------------------------------------

@router.get(
    "/",
    name="fatture_lista",
    summary="Lista fatture",
    description="Recupera la lista paginata delle fatture con eventuali filtri.",
    response_model=InvoiceList,
    status_code=status.HTTP_200_OK,
)
async def list_invoices(
    company_id: CompanyId,
    service: InvoiceServiceDep,
    branch_id: Optional[uuid.UUID] = Query(None, description="Filtro per filiale"),
    payment_status: Optional[PaymentStatus] = Query(
        None,
        description="Filtro per stato (PENDING, PARTIAL, PAID)",
    ),
    start_date: Optional[date] = Query(None, description="Data inizio (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="Data fine (YYYY-MM-DD)"),
    search: Optional[str] = Query(
        None,
        max_length=100,
        description="Ricerca su numero fattura, ticket o cliente",
    ),
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
) -> InvoiceList:
    return await service.list_invoices(
        company_id,
        branch_id=branch_id,
        payment_status=payment_status.value if payment_status else None,
        start_date=start_date,
        end_date=end_date,
        search=search,
        page=page,
        per_page=per_page,
    )


@router.post(
    "/",
    name="fattura_crea",
    summary="Crea fattura",
    description=(
        "Crea una fattura da intervento (service_id) oppure una vendita al banco "
        "(customer_id + branch_id + items + total_amount)."
    ),
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_invoice(
    data: InvoiceCreate,
    company_id: CompanyId,
    service: InvoiceServiceDep,
):
    return await service.create_invoice(data, company_id)


@router.post(
    "/from-service/{service_id}",
    name="fattura_da_intervento",
    summary="Genera fattura da intervento",
    description=(
        "Genera la fattura di un intervento applicando la ripartizione garanzia "
        "e riportando gli acconti nel registro pagamenti."
    ),
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_invoice_from_service(
    company_id: CompanyId,
    service: InvoiceServiceDep,
    service_id: uuid.UUID = Path(..., description="UUID dell'intervento"),
):
    return await service.create_invoice_from_service(service_id, company_id)


@router.get(
    "/service/{service_id}",
    name="fattura_per_intervento",
    summary="Fattura dell'intervento",
    description="Restituisce la fattura dell'intervento oppure null se non ancora emessa.",
    response_model=Optional[InvoiceRead],
)
async def get_invoice_by_service(
    company_id: CompanyId,
    service: InvoiceServiceDep,
    service_id: uuid.UUID = Path(..., description="UUID dell'intervento"),
):
    return await service.get_invoice_by_service(service_id, company_id)


@router.get(
    "/{invoice_id}",
    name="fattura_dettaglio",
    summary="Dettaglio fattura",
    response_model=InvoiceRead,
)
async def get_invoice(
    company_id: CompanyId,
    service: InvoiceServiceDep,
    invoice_id: uuid.UUID = Path(..., description="UUID della fattura"),
):
    return await service.get_invoice(invoice_id, company_id)


@router.put(
    "/{invoice_id}/amounts",
    name="fattura_importi",
    summary="Correggi importi",
    description="Correzione manuale di totale e/o pagato; residuo e stato vengono ricalcolati.",
    response_model=InvoiceRead,
)
async def update_invoice_amounts(
    data: InvoiceAmountsUpdate,
    company_id: CompanyId,
    service: InvoiceServiceDep,
    invoice_id: uuid.UUID = Path(..., description="UUID della fattura"),
):
    return await service.update_invoice_amounts(
        invoice_id,
        company_id,
        total_amount=data.total_amount,
        paid_amount=data.paid_amount,
    )


@router.post(
    "/{invoice_id}/sync",
    name="fattura_sincronizza",
    summary="Sincronizza con l'intervento",
    description=(
        "Ricalcola il totale dal costo attuale dell'intervento e il pagato "
        "dalla somma dei pagamenti registrati."
    ),
    response_model=InvoiceRead,
)
async def sync_invoice_from_service(
    company_id: CompanyId,
    service: InvoiceServiceDep,
    invoice_id: uuid.UUID = Path(..., description="UUID della fattura"),
):
    return await service.sync_from_service(invoice_id, company_id)


@router.delete(
    "/{invoice_id}",
    name="fattura_elimina",
    summary="Elimina fattura",
    description="Elimina la fattura e tutti i suoi pagamenti.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_invoice(
    company_id: CompanyId,
    service: InvoiceServiceDep,
    invoice_id: uuid.UUID = Path(..., description="UUID della fattura"),
) -> Response:
    await service.delete_invoice(invoice_id, company_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -------------------------------------------------------------------
# Endpoints per Pagamenti
# -------------------------------------------------------------------

@router.post(
    "/{invoice_id}/payments",
    name="fattura_pagamento",
    summary="Registra pagamento",
    description="Registra un pagamento; l'importo non può superare il residuo.",
    response_model=PaymentRecorded,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    data: PaymentCreate,
    company_id: CompanyId,
    service: InvoiceServiceDep,
    invoice_id: uuid.UUID = Path(..., description="UUID della fattura"),
) -> PaymentRecorded:
    payment, invoice = await service.record_payment(
        invoice_id,
        amount=data.amount,
        payment_method_id=data.payment_method_id,
        company_id=company_id,
        transaction_id=data.transaction_id,
        notes=data.notes,
    )
    return PaymentRecorded(
        payment=PaymentRead.model_validate(payment),
        invoice=InvoiceRead.model_validate(invoice),
    )


# -------------------------------------------------------------------
# Endpoints per Documenti
# -------------------------------------------------------------------

@router.post(
    "/{invoice_id}/pdf",
    name="fattura_pdf",
    summary="Rigenera PDF",
    description="Rigenera il documento; solo il formato canonico aggiorna il pdf_url salvato.",
    response_model=InvoicePdfRead,
)
async def regenerate_invoice_pdf(
    company_id: CompanyId,
    service: InvoiceServiceDep,
    invoice_id: uuid.UUID = Path(..., description="UUID della fattura"),
    document_format: DocumentFormat = Query(
        DocumentFormat.A4,
        alias="format",
        description="Formato documento (A4, A5, THERMAL)",
    ),
) -> InvoicePdfRead:
    url = await service.regenerate_pdf(invoice_id, company_id, document_format)
    return InvoicePdfRead(pdf_url=url, format=document_format)
