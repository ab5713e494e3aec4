"""
Unit tests for InvoiceService.

Il service lavora su FakeInvoiceStore (in memoria, con rollback reale di
atomic()) e su numerazione/renderer fake: i test verificano importi,
registro pagamenti, atomicità ed effetti accessori senza database.
"""

import logging
import uuid
from decimal import Decimal

import pytest

from app.core.exceptions import BusinessValidationError, ConflictError, NotFoundError
from app.schemas.invoice import DocumentFormat, InvoiceCreate, InvoiceItemCreate, PaymentStatus
from app.services.invoice_service import ADVANCE_REMAINDER_NOTE, InvoiceService
from tests.factories import (
    FakeRenderer,
    SimulatedStoreError,
    make_snapshot,
    payment_entry,
    warranty_snapshot,
)


def _items(*amounts: str) -> list[InvoiceItemCreate]:
    return [
        InvoiceItemCreate(
            description=f"Articolo {index}",
            quantity=Decimal("1"),
            unit_price=Decimal(amount),
        )
        for index, amount in enumerate(amounts, start=1)
    ]


@pytest.fixture
def sale(store, company_id):
    """Cliente, filiale e metodo di pagamento per le vendite al banco."""
    return {
        "customer": store.add_customer(company_id),
        "branch": store.add_branch(company_id),
        "cash": store.add_payment_method(company_id),
    }


async def _standalone(invoice_service, sale, company_id, total="100.00", paid="0.00"):
    return await invoice_service.create_standalone_invoice(
        customer_id=sale["customer"].id,
        branch_id=sale["branch"].id,
        items=_items(total),
        total_amount=Decimal(total),
        paid_amount=Decimal(paid),
        company_id=company_id,
    )


# ============================================================
# Tests for create_invoice_from_service
# ============================================================


@pytest.mark.asyncio
class TestCreateInvoiceFromService:
    """Test per la fattura generata da intervento."""

    async def test_creates_invoice_with_derived_totals(self, invoice_service, store, numbering, company_id):
        """Test totale, pagato, residuo e stato dall'intervento."""
        snapshot = store.add_snapshot(
            make_snapshot(company_id, actual_cost=Decimal("180.00"), advance_payment=Decimal("50.00"))
        )

        invoice = await invoice_service.create_invoice_from_service(snapshot.id, company_id)

        assert invoice.invoice_number == "INV-TEST-0001"
        assert invoice.service_id == snapshot.id
        assert invoice.customer_id == snapshot.customer_id
        assert invoice.branch_id == snapshot.branch_id
        assert invoice.total_amount == Decimal("180.00")
        assert invoice.paid_amount == Decimal("50.00")
        assert invoice.balance_amount == Decimal("130.00")
        assert invoice.payment_status == PaymentStatus.PARTIAL.value
        assert numbering.calls == [(company_id, snapshot.branch_id, "INVOICE")]

    async def test_warranty_invoice_charges_only_uncovered_work(self, invoice_service, store, company_id):
        """Test fattura in garanzia: guasto nuovo + ricambio extra."""
        snapshot = store.add_snapshot(warranty_snapshot(company_id))

        invoice = await invoice_service.create_invoice_from_service(snapshot.id, company_id)

        assert invoice.is_warranty_invoice is True
        assert invoice.total_amount == Decimal("80.00")
        assert invoice.payment_status == PaymentStatus.PENDING.value

    async def test_renders_canonical_document(self, invoice_service, store, renderer, company_id):
        """Test PDF A4 generato alla creazione con righe gratuite marcate."""
        snapshot = store.add_snapshot(warranty_snapshot(company_id))

        invoice = await invoice_service.create_invoice_from_service(snapshot.id, company_id)

        assert invoice.pdf_url == "/static/invoices/INV-TEST-0001_A4.pdf"
        document, document_format = renderer.calls[0]
        assert document_format == DocumentFormat.A4
        assert document.ticket_number == snapshot.ticket_number
        assert any(line.is_free for line in document.lines)
        assert document.company_name == "Repair Lab Srl"

    async def test_service_not_found(self, invoice_service, company_id):
        """Test intervento inesistente."""
        with pytest.raises(NotFoundError):
            await invoice_service.create_invoice_from_service(uuid.uuid4(), company_id)

    async def test_service_of_other_company_not_found(self, invoice_service, store, company_id):
        """Test intervento di un'altra azienda trattato come inesistente."""
        snapshot = store.add_snapshot(make_snapshot(uuid.uuid4()))

        with pytest.raises(NotFoundError):
            await invoice_service.create_invoice_from_service(snapshot.id, company_id)

    async def test_second_invoice_for_service_conflicts(self, invoice_service, store, numbering, company_id):
        """Test al massimo una fattura per intervento."""
        snapshot = store.add_snapshot(make_snapshot(company_id))
        await invoice_service.create_invoice_from_service(snapshot.id, company_id)

        with pytest.raises(ConflictError):
            await invoice_service.create_invoice_from_service(snapshot.id, company_id)

        assert len(store.invoices) == 1
        assert len(numbering.calls) == 1

    async def test_advance_entries_become_payments(self, invoice_service, store, company_id):
        """Test ogni acconto dettagliato diventa un pagamento con la data originale."""
        method = store.add_payment_method(company_id)
        entry = payment_entry("30.00", method.id, days_ago=5)
        snapshot = store.add_snapshot(
            make_snapshot(
                company_id,
                advance_payment=Decimal("30.00"),
                payment_entries=(entry,),
            )
        )

        invoice = await invoice_service.create_invoice_from_service(snapshot.id, company_id)

        assert len(invoice.payments) == 1
        payment = invoice.payments[0]
        assert payment.amount == Decimal("30.00")
        assert payment.payment_method_id == method.id
        assert payment.transaction_id == "TX-30.00"
        assert payment.created_at == entry.payment_date

    async def test_undetailed_advance_remainder_is_recorded(self, invoice_service, store, company_id):
        """Test acconto non dettagliato: pagamento residuo senza metodo."""
        method = store.add_payment_method(company_id)
        snapshot = store.add_snapshot(
            make_snapshot(
                company_id,
                advance_payment=Decimal("50.00"),
                payment_entries=(payment_entry("30.00", method.id),),
            )
        )

        invoice = await invoice_service.create_invoice_from_service(snapshot.id, company_id)

        amounts = sorted(p.amount for p in invoice.payments)
        assert amounts == [Decimal("20.00"), Decimal("30.00")]
        remainder = next(p for p in invoice.payments if p.payment_method_id is None)
        assert remainder.notes == ADVANCE_REMAINDER_NOTE
        assert await store.sum_payments(invoice.id) == invoice.paid_amount

    async def test_advance_without_entries(self, invoice_service, store, company_id):
        """Test acconto senza dettaglio: un solo pagamento pari all'acconto."""
        snapshot = store.add_snapshot(make_snapshot(company_id, advance_payment=Decimal("40.00")))

        invoice = await invoice_service.create_invoice_from_service(snapshot.id, company_id)

        assert [p.amount for p in invoice.payments] == [Decimal("40.00")]

    async def test_entries_above_advance_are_logged(self, invoice_service, store, company_id, caplog):
        """Test acconti dettagliati superiori all'acconto: warning nel log."""
        method = store.add_payment_method(company_id)
        snapshot = store.add_snapshot(
            make_snapshot(
                company_id,
                advance_payment=Decimal("50.00"),
                payment_entries=(payment_entry("60.00", method.id),),
            )
        )

        with caplog.at_level(logging.WARNING):
            invoice = await invoice_service.create_invoice_from_service(snapshot.id, company_id)

        assert invoice.paid_amount == Decimal("50.00")
        assert "superiori all'acconto" in caplog.text

    async def test_render_failure_keeps_invoice(self, store, numbering, company_id, caplog):
        """Test errore PDF: fattura creata con pdf_url vuoto."""
        service = InvoiceService(store=store, numbering=numbering, renderer=FakeRenderer(fail=True))
        snapshot = store.add_snapshot(make_snapshot(company_id))

        with caplog.at_level(logging.ERROR):
            invoice = await service.create_invoice_from_service(snapshot.id, company_id)

        assert invoice.pdf_url is None
        assert invoice.id in store.invoices
        assert "Generazione PDF fallita" in caplog.text

    async def test_service_invoice_does_not_dispatch_warranty(self, invoice_service, store, dispatcher, company_id):
        """Test nessuna garanzia di vendita per le fatture da intervento."""
        snapshot = store.add_snapshot(make_snapshot(company_id))

        await invoice_service.create_invoice_from_service(snapshot.id, company_id)

        dispatcher.assert_not_called()


# ============================================================
# Tests for create_standalone_invoice
# ============================================================


@pytest.mark.asyncio
class TestCreateStandaloneInvoice:
    """Test per le fatture di vendita al banco."""

    async def test_creates_invoice_with_items(self, invoice_service, store, sale, company_id):
        """Test fattura e righe salvate insieme."""
        invoice = await invoice_service.create_standalone_invoice(
            customer_id=sale["customer"].id,
            branch_id=sale["branch"].id,
            items=_items("60.00", "40.00"),
            total_amount=Decimal("100.00"),
            company_id=company_id,
            notes="Vendita accessori",
        )

        assert invoice.service_id is None
        assert invoice.customer_id == sale["customer"].id
        assert invoice.total_amount == Decimal("100.00")
        assert invoice.balance_amount == Decimal("100.00")
        assert invoice.payment_status == PaymentStatus.PENDING.value
        assert invoice.notes == "Vendita accessori"
        assert sorted(i.amount for i in invoice.items) == [Decimal("40.00"), Decimal("60.00")]

    async def test_initial_paid_amount(self, invoice_service, sale, company_id):
        """Test pagato iniziale: stato PARTIAL."""
        invoice = await _standalone(invoice_service, sale, company_id, total="100.00", paid="30.00")

        assert invoice.paid_amount == Decimal("30.00")
        assert invoice.balance_amount == Decimal("70.00")
        assert invoice.payment_status == PaymentStatus.PARTIAL.value

    async def test_dispatches_warranty_after_commit(self, invoice_service, store, dispatcher, sale, company_id):
        """Test emissione garanzie avviata una volta, a transazione chiusa."""
        invoice = await _standalone(invoice_service, sale, company_id)

        dispatcher.assert_called_once_with(invoice.id)
        assert store.commits >= 1

    async def test_no_pdf_at_creation(self, invoice_service, renderer, sale, company_id):
        """Test nessun documento generato alla creazione della vendita."""
        invoice = await _standalone(invoice_service, sale, company_id)

        assert invoice.pdf_url is None
        assert renderer.calls == []

    async def test_dispatcher_failure_does_not_fail_creation(
        self, invoice_service, store, dispatcher, sale, company_id, caplog
    ):
        """Test errore nell'avvio delle garanzie solo nel log."""
        dispatcher.side_effect = RuntimeError("loop non disponibile")

        with caplog.at_level(logging.ERROR):
            invoice = await _standalone(invoice_service, sale, company_id)

        assert invoice.id in store.invoices
        assert "emissione garanzie" in caplog.text

    async def test_item_failure_rolls_back_invoice(self, invoice_service, store, dispatcher, sale, company_id):
        """Test errore su una riga: nessuna fattura e nessuna riga restano."""
        store.fail_on_items = True

        with pytest.raises(SimulatedStoreError):
            await invoice_service.create_standalone_invoice(
                customer_id=sale["customer"].id,
                branch_id=sale["branch"].id,
                items=_items("60.00", "40.00"),
                total_amount=Decimal("100.00"),
                company_id=company_id,
            )

        assert store.invoices == {}
        assert store.invoice_items == []
        assert store.rollbacks == 1
        dispatcher.assert_not_called()

    async def test_customer_not_found(self, invoice_service, sale, company_id):
        """Test cliente inesistente."""
        with pytest.raises(NotFoundError):
            await invoice_service.create_standalone_invoice(
                customer_id=uuid.uuid4(),
                branch_id=sale["branch"].id,
                items=_items("10.00"),
                total_amount=Decimal("10.00"),
                company_id=company_id,
            )

    async def test_branch_of_other_company_not_found(self, invoice_service, store, sale, company_id):
        """Test filiale di un'altra azienda."""
        foreign_branch = store.add_branch(uuid.uuid4(), code="RM01")

        with pytest.raises(NotFoundError):
            await invoice_service.create_standalone_invoice(
                customer_id=sale["customer"].id,
                branch_id=foreign_branch.id,
                items=_items("10.00"),
                total_amount=Decimal("10.00"),
                company_id=company_id,
            )

    async def test_inactive_branch_rejected(self, invoice_service, store, sale, company_id):
        """Test filiale disattivata: nessuna fattura creata."""
        sale["branch"].is_active = False

        with pytest.raises(BusinessValidationError):
            await _standalone(invoice_service, sale, company_id)
        assert store.invoices == {}

    async def test_total_required(self, invoice_service, store, sale, company_id):
        """Test totale obbligatorio."""
        with pytest.raises(BusinessValidationError):
            await invoice_service.create_standalone_invoice(
                customer_id=sale["customer"].id,
                branch_id=sale["branch"].id,
                items=_items("10.00"),
                total_amount=None,
                company_id=company_id,
            )
        assert store.invoices == {}

    async def test_items_required(self, invoice_service, sale, company_id):
        """Test almeno una riga."""
        with pytest.raises(BusinessValidationError):
            await invoice_service.create_standalone_invoice(
                customer_id=sale["customer"].id,
                branch_id=sale["branch"].id,
                items=[],
                total_amount=Decimal("10.00"),
                company_id=company_id,
            )


# ============================================================
# Tests for create_invoice (mode selection)
# ============================================================


@pytest.mark.asyncio
class TestCreateInvoiceModes:
    """Test per la scelta della modalità di creazione."""

    async def test_service_mode(self, invoice_service, store, company_id):
        """Test solo service_id: fattura da intervento."""
        snapshot = store.add_snapshot(make_snapshot(company_id))

        invoice = await invoice_service.create_invoice(InvoiceCreate(service_id=snapshot.id), company_id)

        assert invoice.service_id == snapshot.id

    async def test_standalone_mode(self, invoice_service, sale, company_id):
        """Test cliente + filiale: vendita al banco."""
        data = InvoiceCreate(
            customer_id=sale["customer"].id,
            branch_id=sale["branch"].id,
            items=_items("25.00"),
            total_amount=Decimal("25.00"),
        )

        invoice = await invoice_service.create_invoice(data, company_id)

        assert invoice.service_id is None
        assert invoice.total_amount == Decimal("25.00")

    async def test_mixed_mode_rejected(self, invoice_service, store, sale, company_id):
        """Test service_id insieme a customer_id rifiutato."""
        snapshot = store.add_snapshot(make_snapshot(company_id))
        data = InvoiceCreate(service_id=snapshot.id, customer_id=sale["customer"].id)

        with pytest.raises(BusinessValidationError):
            await invoice_service.create_invoice(data, company_id)
        assert store.invoices == {}

    async def test_incomplete_mode_rejected(self, invoice_service, sale, company_id):
        """Test cliente senza filiale rifiutato."""
        data = InvoiceCreate(customer_id=sale["customer"].id, total_amount=Decimal("10.00"))

        with pytest.raises(BusinessValidationError):
            await invoice_service.create_invoice(data, company_id)

    async def test_empty_request_rejected(self, invoice_service, company_id):
        """Test richiesta senza nessuna modalità."""
        with pytest.raises(BusinessValidationError):
            await invoice_service.create_invoice(InvoiceCreate(), company_id)


# ============================================================
# Tests for record_payment
# ============================================================


@pytest.mark.asyncio
class TestRecordPayment:
    """Test per la registrazione dei pagamenti."""

    async def test_payments_move_status_to_paid(self, invoice_service, store, sale, company_id):
        """Test sequenza di pagamenti: residuo coerente a ogni passo."""
        invoice = await _standalone(invoice_service, sale, company_id, total="100.00")

        expected = [
            ("30.00", "70.00", PaymentStatus.PARTIAL),
            ("45.50", "24.50", PaymentStatus.PARTIAL),
            ("24.50", "0.00", PaymentStatus.PAID),
        ]
        for amount, balance, status in expected:
            payment, invoice = await invoice_service.record_payment(
                invoice.id, Decimal(amount), sale["cash"].id, company_id
            )
            assert payment.amount == Decimal(amount)
            assert invoice.balance_amount == Decimal(balance)
            assert invoice.balance_amount == invoice.total_amount - invoice.paid_amount
            assert invoice.payment_status == status.value

        assert await store.sum_payments(invoice.id) == Decimal("100.00")

    async def test_payment_locks_invoice_row(self, invoice_service, store, sale, company_id):
        """Test lettura della fattura con lock di riga."""
        invoice = await _standalone(invoice_service, sale, company_id)

        await invoice_service.record_payment(invoice.id, Decimal("10.00"), sale["cash"].id, company_id)

        assert invoice.id in store.locked

    async def test_overpayment_rejected_without_changes(self, invoice_service, store, sale, company_id):
        """Test importo superiore al residuo: nessuna modifica."""
        invoice = await _standalone(invoice_service, sale, company_id, total="50.00")

        with pytest.raises(BusinessValidationError):
            await invoice_service.record_payment(invoice.id, Decimal("50.01"), sale["cash"].id, company_id)

        stored = await invoice_service.get_invoice(invoice.id, company_id)
        assert stored.paid_amount == Decimal("0.00")
        assert stored.payment_status == PaymentStatus.PENDING.value
        assert store.payments_for(invoice.id) == []

    async def test_paid_invoice_rejects_further_payments(self, invoice_service, sale, company_id):
        """Test fattura saldata: nessun ulteriore pagamento."""
        invoice = await _standalone(invoice_service, sale, company_id, total="20.00", paid="20.00")

        with pytest.raises(BusinessValidationError):
            await invoice_service.record_payment(invoice.id, Decimal("0.01"), sale["cash"].id, company_id)

    async def test_non_positive_amount_rejected(self, invoice_service, sale, company_id):
        """Test importo zero rifiutato."""
        invoice = await _standalone(invoice_service, sale, company_id)

        with pytest.raises(BusinessValidationError):
            await invoice_service.record_payment(invoice.id, Decimal("0"), sale["cash"].id, company_id)

    async def test_unknown_payment_method(self, invoice_service, store, sale, company_id):
        """Test metodo di pagamento inesistente: nessun pagamento salvato."""
        invoice = await _standalone(invoice_service, sale, company_id)

        with pytest.raises(NotFoundError):
            await invoice_service.record_payment(invoice.id, Decimal("10.00"), uuid.uuid4(), company_id)

        assert store.payments_for(invoice.id) == []

    async def test_inactive_payment_method_rejected(self, invoice_service, store, sale, company_id):
        """Test metodo di pagamento disattivato: fattura invariata."""
        invoice = await _standalone(invoice_service, sale, company_id)
        sale["cash"].is_active = False

        with pytest.raises(BusinessValidationError):
            await invoice_service.record_payment(invoice.id, Decimal("10.00"), sale["cash"].id, company_id)

        stored = await invoice_service.get_invoice(invoice.id, company_id)
        assert stored.paid_amount == Decimal("0.00")
        assert store.payments_for(invoice.id) == []

    async def test_invoice_not_found(self, invoice_service, sale, company_id):
        """Test fattura inesistente."""
        with pytest.raises(NotFoundError):
            await invoice_service.record_payment(uuid.uuid4(), Decimal("10.00"), sale["cash"].id, company_id)

    async def test_invoice_of_other_company_not_found(self, invoice_service, sale, company_id):
        """Test fattura di un'altra azienda."""
        invoice = await _standalone(invoice_service, sale, company_id)

        with pytest.raises(NotFoundError):
            await invoice_service.record_payment(invoice.id, Decimal("10.00"), sale["cash"].id, uuid.uuid4())


# ============================================================
# Tests for update_invoice_amounts / sync_from_service
# ============================================================


@pytest.mark.asyncio
class TestManualCorrections:
    """Test per correzione manuale e risincronizzazione."""

    async def test_update_total_only(self, invoice_service, sale, company_id):
        """Test correzione del solo totale: pagato invariato."""
        invoice = await _standalone(invoice_service, sale, company_id, total="100.00", paid="40.00")

        updated = await invoice_service.update_invoice_amounts(
            invoice.id, company_id, total_amount=Decimal("120.00")
        )

        assert updated.total_amount == Decimal("120.00")
        assert updated.paid_amount == Decimal("40.00")
        assert updated.balance_amount == Decimal("80.00")
        assert updated.payment_status == PaymentStatus.PARTIAL.value

    async def test_update_allows_paid_above_total(self, invoice_service, sale, company_id):
        """Test pagato superiore al totale ammesso: residuo negativo, PAID."""
        invoice = await _standalone(invoice_service, sale, company_id, total="100.00")

        updated = await invoice_service.update_invoice_amounts(
            invoice.id, company_id, paid_amount=Decimal("110.00")
        )

        assert updated.balance_amount == Decimal("-10.00")
        assert updated.payment_status == PaymentStatus.PAID.value

    async def test_update_not_found(self, invoice_service, company_id):
        """Test correzione su fattura inesistente."""
        with pytest.raises(NotFoundError):
            await invoice_service.update_invoice_amounts(uuid.uuid4(), company_id, total_amount=Decimal("1"))

    async def test_sync_uses_payment_ledger(self, invoice_service, store, company_id, caplog):
        """Test pagato ricalcolato dal registro, non dal valore memorizzato."""
        method = store.add_payment_method(company_id)
        snapshot = store.add_snapshot(make_snapshot(company_id, estimated_cost=Decimal("200.00")))
        invoice = await invoice_service.create_invoice_from_service(snapshot.id, company_id)
        await invoice_service.record_payment(invoice.id, Decimal("30.00"), method.id, company_id)
        await invoice_service.record_payment(invoice.id, Decimal("20.00"), method.id, company_id)
        store.invoices[invoice.id]["paid_amount"] = Decimal("999.00")

        with caplog.at_level(logging.WARNING):
            synced = await invoice_service.sync_from_service(invoice.id, company_id)

        assert synced.paid_amount == Decimal("50.00")
        assert synced.balance_amount == Decimal("150.00")
        assert synced.payment_status == PaymentStatus.PARTIAL.value
        assert "riallineato" in caplog.text

    async def test_sync_follows_current_service_cost(self, invoice_service, store, company_id):
        """Test totale aggiornato al consuntivo attuale dell'intervento."""
        snapshot = store.add_snapshot(make_snapshot(company_id, estimated_cost=Decimal("200.00")))
        invoice = await invoice_service.create_invoice_from_service(snapshot.id, company_id)
        store.add_snapshot(snapshot.model_copy(update={"actual_cost": Decimal("240.00")}))

        synced = await invoice_service.sync_from_service(invoice.id, company_id)

        assert synced.total_amount == Decimal("240.00")
        assert synced.balance_amount == Decimal("240.00")

    async def test_sync_ignores_warranty_split(self, invoice_service, store, company_id):
        """Test risincronizzazione col costo effettivo anche in garanzia."""
        snapshot = store.add_snapshot(warranty_snapshot(company_id, estimated_cost=Decimal("150.00")))
        invoice = await invoice_service.create_invoice_from_service(snapshot.id, company_id)
        assert invoice.total_amount == Decimal("80.00")

        synced = await invoice_service.sync_from_service(invoice.id, company_id)

        assert synced.total_amount == Decimal("150.00")

    async def test_sync_rejects_standalone_invoice(self, invoice_service, sale, company_id):
        """Test vendita al banco senza intervento collegato."""
        invoice = await _standalone(invoice_service, sale, company_id)

        with pytest.raises(BusinessValidationError):
            await invoice_service.sync_from_service(invoice.id, company_id)


# ============================================================
# Tests for delete_invoice
# ============================================================


@pytest.mark.asyncio
class TestDeleteInvoice:
    """Test per l'eliminazione."""

    async def test_deletes_invoice_and_payments(self, invoice_service, store, sale, company_id):
        """Test fattura e pagamenti eliminati insieme."""
        invoice = await _standalone(invoice_service, sale, company_id)
        await invoice_service.record_payment(invoice.id, Decimal("10.00"), sale["cash"].id, company_id)

        await invoice_service.delete_invoice(invoice.id, company_id)

        assert invoice.id not in store.invoices
        assert store.payments_for(invoice.id) == []
        assert store.invoice_items == []

    async def test_delete_frees_service(self, invoice_service, store, company_id):
        """Test dopo l'eliminazione l'intervento può essere rifatturato."""
        snapshot = store.add_snapshot(make_snapshot(company_id, advance_payment=Decimal("10.00")))
        invoice = await invoice_service.create_invoice_from_service(snapshot.id, company_id)

        await invoice_service.delete_invoice(invoice.id, company_id)
        again = await invoice_service.create_invoice_from_service(snapshot.id, company_id)

        assert again.id != invoice.id
        assert await invoice_service.get_invoice_by_service(snapshot.id, company_id) is not None

    async def test_delete_not_found(self, invoice_service, company_id):
        """Test eliminazione di fattura inesistente."""
        with pytest.raises(NotFoundError):
            await invoice_service.delete_invoice(uuid.uuid4(), company_id)


# ============================================================
# Tests for regenerate_pdf
# ============================================================


@pytest.mark.asyncio
class TestRegeneratePdf:
    """Test per la rigenerazione dei documenti."""

    async def test_canonical_format_updates_pdf_url(self, invoice_service, sale, company_id):
        """Test A4: pdf_url aggiornato."""
        invoice = await _standalone(invoice_service, sale, company_id)

        url = await invoice_service.regenerate_pdf(invoice.id, company_id, DocumentFormat.A4)

        stored = await invoice_service.get_invoice(invoice.id, company_id)
        assert url.endswith("_A4.pdf")
        assert stored.pdf_url == url

    async def test_other_format_leaves_invoice_unchanged(self, invoice_service, store, company_id):
        """Test A5: percorso restituito, pdf_url invariato."""
        snapshot = store.add_snapshot(make_snapshot(company_id))
        invoice = await invoice_service.create_invoice_from_service(snapshot.id, company_id)
        original = invoice.pdf_url

        url = await invoice_service.regenerate_pdf(invoice.id, company_id, DocumentFormat.A5)

        stored = await invoice_service.get_invoice(invoice.id, company_id)
        assert url.endswith("_A5.pdf")
        assert stored.pdf_url == original

    async def test_standalone_document_uses_items(self, invoice_service, renderer, sale, company_id):
        """Test documento di vendita costruito dalle righe salvate."""
        invoice = await _standalone(invoice_service, sale, company_id, total="35.00")

        await invoice_service.regenerate_pdf(invoice.id, company_id, DocumentFormat.THERMAL)

        document, document_format = renderer.calls[-1]
        assert document_format == DocumentFormat.THERMAL
        assert document.customer_name == "Mario Rossi"
        assert document.branch_name == "Milano Centro"
        assert [line.amount for line in document.lines] == [Decimal("35.00")]

    async def test_render_errors_propagate(self, store, numbering, sale, company_id):
        """Test errore del renderer propagato al chiamante."""
        service = InvoiceService(store=store, numbering=numbering, renderer=FakeRenderer(fail=True))
        invoice = await _standalone(service, sale, company_id)

        with pytest.raises(RuntimeError):
            await service.regenerate_pdf(invoice.id, company_id)

    async def test_not_found(self, invoice_service, company_id):
        """Test fattura inesistente."""
        with pytest.raises(NotFoundError):
            await invoice_service.regenerate_pdf(uuid.uuid4(), company_id)


# ============================================================
# Tests for reads
# ============================================================


@pytest.mark.asyncio
class TestReads:
    """Test per lettura e lista."""

    async def test_get_invoice_by_service_absent(self, invoice_service, company_id):
        """Test intervento non fatturato: None."""
        assert await invoice_service.get_invoice_by_service(uuid.uuid4(), company_id) is None

    async def test_get_invoice_by_service_other_company(self, invoice_service, store, company_id):
        """Test fattura di un'altra azienda non visibile."""
        snapshot = store.add_snapshot(make_snapshot(company_id))
        await invoice_service.create_invoice_from_service(snapshot.id, company_id)

        assert await invoice_service.get_invoice_by_service(snapshot.id, uuid.uuid4()) is None

    async def test_list_paginates(self, invoice_service, sale, company_id):
        """Test paginazione e conteggi."""
        for _ in range(3):
            await _standalone(invoice_service, sale, company_id)

        page = await invoice_service.list_invoices(company_id, page=2, per_page=2)

        assert page.total == 3
        assert page.total_pages == 2
        assert page.page == 2
        assert len(page.items) == 1

    async def test_list_filters_by_status(self, invoice_service, sale, company_id):
        """Test filtro per stato di pagamento."""
        await _standalone(invoice_service, sale, company_id, total="10.00", paid="10.00")
        await _standalone(invoice_service, sale, company_id, total="10.00")

        page = await invoice_service.list_invoices(company_id, payment_status="PAID")

        assert page.total == 1
        assert page.items[0].payment_status == PaymentStatus.PAID

    async def test_empty_list_has_one_page(self, invoice_service, company_id):
        """Test lista vuota."""
        page = await invoice_service.list_invoices(company_id)

        assert page.total == 0
        assert page.total_pages == 1
        assert page.items == []
