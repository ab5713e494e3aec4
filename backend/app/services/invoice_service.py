"""
Service per la gestione delle Fatture
Progetto: Repair Desk (Gestionale Centro Assistenza)

Orchestrazione delle operazioni sulle fatture. Gli importi (totale,
pagato, residuo, stato) sono sempre ricavati da invoice_calculations;
qui si verificano le precondizioni e si coordinano i collaboratori:

- store: persistenza (IInvoiceStore), con unità atomiche di scrittura
- numbering: numerazione documenti
- renderer: generazione PDF
- warranty_dispatcher: emissione garanzie di vendita in background

Le violazioni di precondizione sollevano NotFoundError, ConflictError o
BusinessValidationError e annullano l'intera operazione. Gli effetti
accessori (PDF alla creazione, garanzie) falliscono solo nel log.
"""

import logging
import math
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Optional, Protocol

from app.core.exceptions import BusinessValidationError, ConflictError, NotFoundError
from app.models.invoice import Invoice, Payment
from app.repositories.invoice_store import IInvoiceStore
from app.schemas.invoice import (
    DocumentFormat,
    DocumentLine,
    InvoiceAmounts,
    InvoiceCreate,
    InvoiceDocument,
    InvoiceItemCreate,
    InvoiceList,
    InvoiceRead,
)
from app.schemas.service import ServiceSnapshot
from app.services.invoice_calculations import (
    ZERO,
    build_pricing_lines,
    compute_amounts,
    derive_service_invoice_totals,
    to_money,
)

logger = logging.getLogger(__name__)

INVOICE_DOCUMENT_TYPE = "INVOICE"
ADVANCE_REMAINDER_NOTE = "Acconto registrato prima della fatturazione"


class NumberingAuthority(Protocol):
    async def generate_number(
        self, company_id: uuid.UUID, branch_id: Optional[uuid.UUID], document_type: str
    ) -> str: ...


class DocumentRenderer(Protocol):
    async def render_invoice(
        self, document: InvoiceDocument, document_format: DocumentFormat
    ) -> str: ...


def _amount_fields(amounts: InvoiceAmounts) -> dict[str, Any]:
    return {
        "total_amount": amounts.total_amount,
        "paid_amount": amounts.paid_amount,
        "balance_amount": amounts.balance_amount,
        "payment_status": amounts.payment_status.value,
    }


class InvoiceService:
    """
    Service layer per le fatture.

    Args:
        store: Porta di persistenza
        numbering: Autorità di numerazione (generate_number)
        renderer: Generatore documenti (render_invoice)
        warranty_dispatcher: Callable(invoice_id) che avvia l'emissione
            delle garanzie senza attenderla; None la disabilita
        canonical_format: Formato il cui percorso viene salvato in pdf_url
    """

    def __init__(
        self,
        store: IInvoiceStore,
        numbering: NumberingAuthority,
        renderer: DocumentRenderer,
        warranty_dispatcher: Optional[Callable[[uuid.UUID], Any]] = None,
        canonical_format: DocumentFormat = DocumentFormat.A4,
    ):
        self.store = store
        self.numbering = numbering
        self.renderer = renderer
        self.warranty_dispatcher = warranty_dispatcher
        self.canonical_format = canonical_format

    # ------------------------------------------------------------
    # Letture
    # ------------------------------------------------------------
    async def get_invoice(self, invoice_id: uuid.UUID, company_id: uuid.UUID) -> Invoice:
        """
        Recupera una fattura con righe e pagamenti.

        Raises:
            NotFoundError: Fattura non trovata nell'azienda
        """
        invoice = await self.store.get_invoice(invoice_id, company_id)
        if invoice is None:
            raise NotFoundError(f"Fattura {invoice_id} non trovata")
        return invoice

    async def get_invoice_by_service(
        self, service_id: uuid.UUID, company_id: uuid.UUID
    ) -> Optional[Invoice]:
        """Fattura dell'intervento, None se non ancora emessa."""
        invoice = await self.store.get_invoice_by_service_id(service_id)
        if invoice is None or invoice.company_id != company_id:
            return None
        return invoice

    async def list_invoices(
        self,
        company_id: uuid.UUID,
        branch_id: Optional[uuid.UUID] = None,
        payment_status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> InvoiceList:
        """
        Lista paginata delle fatture, più recenti prima.

        search cerca su numero fattura, numero ticket e nome cliente.
        """
        invoices, total = await self.store.list_invoices(
            company_id,
            branch_id=branch_id,
            payment_status=payment_status,
            start_date=start_date,
            end_date=end_date,
            search=search,
            offset=(page - 1) * per_page,
            limit=per_page,
        )
        return InvoiceList(
            items=[InvoiceRead.model_validate(invoice) for invoice in invoices],
            total=total,
            page=page,
            per_page=per_page,
            total_pages=max(1, math.ceil(total / per_page)),
        )

    # ------------------------------------------------------------
    # Creazione
    # ------------------------------------------------------------
    async def create_invoice(self, data: InvoiceCreate, company_id: uuid.UUID) -> Invoice:
        """
        Punto di ingresso unico per la creazione.

        Esattamente una modalità: service_id, oppure customer_id + branch_id.

        Raises:
            BusinessValidationError: Modalità mista o incompleta
        """
        if data.service_id is not None:
            if data.customer_id is not None or data.branch_id is not None or data.items:
                raise BusinessValidationError(
                    "Indicare service_id oppure customer_id e branch_id, non entrambi"
                )
            return await self.create_invoice_from_service(data.service_id, company_id)

        if data.customer_id is None or data.branch_id is None:
            raise BusinessValidationError(
                "Indicare service_id oppure customer_id e branch_id"
            )

        return await self.create_standalone_invoice(
            customer_id=data.customer_id,
            branch_id=data.branch_id,
            items=data.items,
            total_amount=data.total_amount,
            paid_amount=data.paid_amount,
            notes=data.notes,
            company_id=company_id,
        )

    async def create_invoice_from_service(
        self, service_id: uuid.UUID, company_id: uuid.UUID
    ) -> Invoice:
        """
        Genera la fattura di un intervento.

        Step:
        1. Carica lo snapshot dell'intervento e verifica che non sia già fatturato
        2. Calcola gli importi (ripartizione garanzia se intervento in garanzia)
        3. In un'unica transazione: numero fattura, fattura, un pagamento per
           ogni acconto dettagliato (data originale) ed eventuale residuo
           di acconto non dettagliato
        4. Genera il PDF nel formato canonico; un errore lascia pdf_url vuoto

        Raises:
            NotFoundError: Intervento non trovato
            ConflictError: Fattura già esistente per l'intervento
        """
        snapshot = await self.store.get_service_snapshot(service_id, company_id)
        if snapshot is None:
            raise NotFoundError(f"Intervento {service_id} non trovato")

        if await self.store.get_invoice_by_service_id(service_id) is not None:
            raise ConflictError("Esiste già una fattura per questo intervento")

        amounts = derive_service_invoice_totals(snapshot)

        async with self.store.atomic():
            invoice_number = await self.numbering.generate_number(
                company_id, snapshot.branch_id, INVOICE_DOCUMENT_TYPE
            )
            invoice = await self.store.create_invoice(
                {
                    "invoice_number": invoice_number,
                    "company_id": company_id,
                    "branch_id": snapshot.branch_id,
                    "service_id": snapshot.id,
                    "customer_id": snapshot.customer_id,
                    "is_warranty_invoice": snapshot.is_warranty_repair,
                    **_amount_fields(amounts),
                }
            )
            await self._materialise_advance(invoice.id, snapshot, amounts.paid_amount)

        invoice_id = invoice.id
        logger.info(
            f"Fattura {invoice_number} generata per l'intervento {snapshot.ticket_number} "
            f"(totale {amounts.total_amount}, pagato {amounts.paid_amount}, "
            f"stato {amounts.payment_status.value})"
        )

        await self._render_canonical_document(invoice_id, company_id, snapshot)
        return await self.get_invoice(invoice_id, company_id)

    async def _materialise_advance(
        self, invoice_id: uuid.UUID, snapshot: ServiceSnapshot, paid_amount: Decimal
    ) -> None:
        """Riporta gli acconti dell'intervento nel registro pagamenti."""
        entries_total = ZERO
        for entry in snapshot.payment_entries:
            await self.store.create_payment(
                {
                    "invoice_id": invoice_id,
                    "amount": to_money(entry.amount),
                    "payment_method_id": entry.payment_method_id,
                    "transaction_id": entry.transaction_id,
                    "notes": entry.notes,
                    "created_at": entry.payment_date,
                }
            )
            entries_total += to_money(entry.amount)

        remainder = paid_amount - entries_total
        if remainder > 0:
            await self.store.create_payment(
                {
                    "invoice_id": invoice_id,
                    "amount": remainder,
                    "payment_method_id": None,
                    "notes": ADVANCE_REMAINDER_NOTE,
                }
            )
        elif remainder < 0:
            logger.warning(
                f"Acconti dettagliati ({entries_total}) superiori all'acconto "
                f"dell'intervento {snapshot.ticket_number} ({paid_amount})"
            )

    async def create_standalone_invoice(
        self,
        *,
        customer_id: uuid.UUID,
        branch_id: uuid.UUID,
        items: list[InvoiceItemCreate],
        total_amount: Optional[Decimal],
        company_id: uuid.UUID,
        paid_amount: Decimal = ZERO,
        notes: Optional[str] = None,
    ) -> Invoice:
        """
        Crea una fattura di vendita al banco.

        Fattura e righe sono scritte nella stessa transazione: se una riga
        fallisce non resta nessuna fattura. A commit avvenuto viene avviata
        l'emissione delle garanzie, senza attenderla.

        Raises:
            NotFoundError: Cliente o filiale non trovati
            BusinessValidationError: Filiale disattivata, totale mancante o nessuna riga
        """
        if await self.store.get_customer(customer_id, company_id) is None:
            raise NotFoundError(f"Cliente {customer_id} non trovato")

        branch = await self.store.get_branch(branch_id, company_id)
        if branch is None:
            raise NotFoundError(f"Filiale {branch_id} non trovata")
        if not branch.is_active:
            raise BusinessValidationError(f"La filiale {branch.code} è disattivata")

        if total_amount is None:
            raise BusinessValidationError(
                "Il totale è obbligatorio per le fatture di vendita"
            )

        if not items:
            raise BusinessValidationError(
                "Almeno una riga è obbligatoria per le fatture di vendita"
            )

        amounts = compute_amounts(total_amount, paid_amount)

        async with self.store.atomic():
            invoice_number = await self.numbering.generate_number(
                company_id, branch_id, INVOICE_DOCUMENT_TYPE
            )
            invoice = await self.store.create_invoice(
                {
                    "invoice_number": invoice_number,
                    "company_id": company_id,
                    "branch_id": branch_id,
                    "customer_id": customer_id,
                    "notes": notes,
                    **_amount_fields(amounts),
                }
            )
            await self.store.create_invoice_items(
                invoice.id,
                [
                    {
                        "item_id": item.item_id,
                        "description": item.description,
                        "quantity": item.quantity,
                        "unit_price": to_money(item.unit_price),
                        "amount": to_money(item.amount),
                    }
                    for item in items
                ],
            )

        invoice_id = invoice.id
        logger.info(
            f"Fattura di vendita {invoice_number} creata "
            f"(totale {amounts.total_amount}, righe {len(items)})"
        )

        self._dispatch_warranty(invoice_id)
        return await self.get_invoice(invoice_id, company_id)

    def _dispatch_warranty(self, invoice_id: uuid.UUID) -> None:
        if self.warranty_dispatcher is None:
            return
        try:
            self.warranty_dispatcher(invoice_id)
        except Exception:
            logger.exception(f"Impossibile avviare l'emissione garanzie per la fattura {invoice_id}")

    # ------------------------------------------------------------
    # Pagamenti e correzioni
    # ------------------------------------------------------------
    async def record_payment(
        self,
        invoice_id: uuid.UUID,
        amount: Decimal,
        payment_method_id: uuid.UUID,
        company_id: uuid.UUID,
        transaction_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> tuple[Payment, Invoice]:
        """
        Registra un pagamento e aggiorna gli importi.

        La fattura è letta con lock di riga: pagamenti concorrenti sulla
        stessa fattura vengono serializzati e il residuo non scende mai
        sotto zero.

        Raises:
            NotFoundError: Fattura o metodo di pagamento non trovati
            BusinessValidationError: Importo non positivo o superiore al residuo,
                metodo di pagamento disattivato
        """
        amount = to_money(amount)

        async with self.store.atomic():
            invoice = await self.store.get_invoice_for_update(invoice_id, company_id)
            if invoice is None:
                raise NotFoundError(f"Fattura {invoice_id} non trovata")

            if amount <= 0:
                raise BusinessValidationError("L'importo del pagamento deve essere maggiore di zero")

            if amount > invoice.balance_amount:
                raise BusinessValidationError(
                    f"L'importo del pagamento ({amount}) supera il saldo residuo "
                    f"({invoice.balance_amount})"
                )

            method = await self.store.get_payment_method(payment_method_id, company_id)
            if method is None:
                raise NotFoundError(f"Metodo di pagamento {payment_method_id} non trovato")
            if not method.is_active:
                raise BusinessValidationError(f"Il metodo di pagamento {method.name} è disattivato")

            payment = await self.store.create_payment(
                {
                    "invoice_id": invoice.id,
                    "amount": amount,
                    "payment_method_id": payment_method_id,
                    "transaction_id": transaction_id,
                    "notes": notes,
                }
            )
            amounts = compute_amounts(invoice.total_amount, invoice.paid_amount + amount)
            await self.store.update_invoice(invoice.id, _amount_fields(amounts))
            invoice_number = invoice.invoice_number

        logger.info(
            f"Pagamento di {amount} registrato sulla fattura {invoice_number} "
            f"(residuo {amounts.balance_amount}, stato {amounts.payment_status.value})"
        )
        return payment, await self.get_invoice(invoice_id, company_id)

    async def update_invoice_amounts(
        self,
        invoice_id: uuid.UUID,
        company_id: uuid.UUID,
        total_amount: Optional[Decimal] = None,
        paid_amount: Optional[Decimal] = None,
    ) -> Invoice:
        """
        Correzione manuale di totale e/o pagato.

        I valori omessi restano quelli attuali. Un pagato superiore al
        totale è ammesso: lo stato risulta PAID.

        Raises:
            NotFoundError: Fattura non trovata
        """
        async with self.store.atomic():
            invoice = await self.store.get_invoice_for_update(invoice_id, company_id)
            if invoice is None:
                raise NotFoundError(f"Fattura {invoice_id} non trovata")

            amounts = compute_amounts(
                total_amount if total_amount is not None else invoice.total_amount,
                paid_amount if paid_amount is not None else invoice.paid_amount,
            )
            await self.store.update_invoice(invoice.id, _amount_fields(amounts))
            invoice_number = invoice.invoice_number

        logger.info(
            f"Importi della fattura {invoice_number} aggiornati manualmente "
            f"(totale {amounts.total_amount}, pagato {amounts.paid_amount})"
        )
        return await self.get_invoice(invoice_id, company_id)

    async def sync_from_service(self, invoice_id: uuid.UUID, company_id: uuid.UUID) -> Invoice:
        """
        Riallinea la fattura all'intervento collegato.

        Totale = costo effettivo attuale dell'intervento (senza ripartizione
        garanzia); pagato = somma dei pagamenti registrati, ignorando il
        valore memorizzato.

        Raises:
            NotFoundError: Fattura o intervento non trovati
            BusinessValidationError: Fattura non collegata a un intervento
        """
        async with self.store.atomic():
            invoice = await self.store.get_invoice_for_update(invoice_id, company_id)
            if invoice is None:
                raise NotFoundError(f"Fattura {invoice_id} non trovata")

            if invoice.service_id is None:
                raise BusinessValidationError("Nessun intervento collegato a questa fattura")

            snapshot = await self.store.get_service_snapshot(invoice.service_id, company_id)
            if snapshot is None:
                raise NotFoundError(f"Intervento {invoice.service_id} non trovato")

            ledger_total = await self.store.sum_payments(invoice.id)
            amounts = compute_amounts(snapshot.effective_cost, ledger_total)

            if to_money(invoice.paid_amount) != amounts.paid_amount:
                logger.warning(
                    f"Fattura {invoice.invoice_number}: pagato memorizzato "
                    f"{invoice.paid_amount} diverso dal registro pagamenti "
                    f"{amounts.paid_amount}, riallineato"
                )

            await self.store.update_invoice(invoice.id, _amount_fields(amounts))
            invoice_number = invoice.invoice_number

        logger.info(
            f"Fattura {invoice_number} sincronizzata con l'intervento "
            f"(totale {amounts.total_amount}, pagato {amounts.paid_amount})"
        )
        return await self.get_invoice(invoice_id, company_id)

    async def delete_invoice(self, invoice_id: uuid.UUID, company_id: uuid.UUID) -> None:
        """
        Elimina la fattura e i suoi pagamenti in un'unica transazione.

        Raises:
            NotFoundError: Fattura non trovata
        """
        async with self.store.atomic():
            invoice = await self.store.get_invoice_for_update(invoice_id, company_id)
            if invoice is None:
                raise NotFoundError(f"Fattura {invoice_id} non trovata")

            removed = await self.store.delete_payments(invoice.id)
            await self.store.delete_invoice(invoice.id)
            invoice_number = invoice.invoice_number

        logger.info(f"Fattura {invoice_number} eliminata con {removed} pagamenti")

    # ------------------------------------------------------------
    # Documenti
    # ------------------------------------------------------------
    async def regenerate_pdf(
        self,
        invoice_id: uuid.UUID,
        company_id: uuid.UUID,
        document_format: DocumentFormat = DocumentFormat.A4,
    ) -> str:
        """
        Rigenera il documento nel formato richiesto.

        Solo il formato canonico aggiorna pdf_url; gli altri formati
        restituiscono il percorso senza modificare la fattura. Gli errori
        di rendering vengono propagati.

        Raises:
            NotFoundError: Fattura non trovata
        """
        invoice = await self.get_invoice(invoice_id, company_id)
        document = await self._build_document(invoice)
        url = await self.renderer.render_invoice(document, document_format)

        if document_format == self.canonical_format:
            async with self.store.atomic():
                await self.store.update_invoice(invoice.id, {"pdf_url": url})

        return url

    async def _render_canonical_document(
        self,
        invoice_id: uuid.UUID,
        company_id: uuid.UUID,
        snapshot: ServiceSnapshot,
    ) -> None:
        """PDF alla creazione: un errore non annulla la fattura già salvata."""
        try:
            invoice = await self.get_invoice(invoice_id, company_id)
            document = await self._build_document(invoice, snapshot)
            url = await self.renderer.render_invoice(document, self.canonical_format)
            async with self.store.atomic():
                await self.store.update_invoice(invoice_id, {"pdf_url": url})
        except Exception:
            logger.exception(
                f"Generazione PDF fallita per la fattura {invoice_id}: pdf_url non impostato"
            )

    async def _build_document(
        self, invoice: Invoice, snapshot: Optional[ServiceSnapshot] = None
    ) -> InvoiceDocument:
        """Compone lo snapshot prezzi + intestazioni per il renderer."""
        company = await self.store.get_company(invoice.company_id)

        if snapshot is None and invoice.service_id is not None:
            snapshot = await self.store.get_service_snapshot(invoice.service_id, invoice.company_id)

        if snapshot is not None:
            lines = build_pricing_lines(snapshot)
            customer_name = snapshot.customer_name
            customer_phone = snapshot.customer_phone
            branch_name = snapshot.branch_name
        else:
            lines = [
                DocumentLine(
                    description=item.description,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    amount=item.amount,
                )
                for item in invoice.items
            ]
            customer = (
                await self.store.get_customer(invoice.customer_id, invoice.company_id)
                if invoice.customer_id
                else None
            )
            branch = (
                await self.store.get_branch(invoice.branch_id, invoice.company_id)
                if invoice.branch_id
                else None
            )
            customer_name = customer.name if customer else ""
            customer_phone = customer.phone if customer else None
            branch_name = branch.name if branch else ""

        return InvoiceDocument(
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            issued_at=invoice.created_at or datetime.now(timezone.utc),
            company_name=company.name if company else "",
            branch_name=branch_name,
            customer_name=customer_name,
            customer_phone=customer_phone,
            ticket_number=snapshot.ticket_number if snapshot else None,
            device_model=snapshot.device_model if snapshot else None,
            is_warranty_invoice=invoice.is_warranty_invoice,
            lines=lines,
            total_amount=invoice.total_amount,
            paid_amount=invoice.paid_amount,
            balance_amount=invoice.balance_amount,
            payment_status=invoice.payment_status,
            notes=invoice.notes,
        )
