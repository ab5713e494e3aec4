"""
Calcoli finanziari della fattura
Progetto: Repair Desk (Gestionale Centro Assistenza)

Funzioni pure, senza I/O: ogni operazione che modifica una fattura
(creazione, pagamento, correzione manuale, risincronizzazione) ricava
saldo e stato da qui, così la regola a tre stati è applicata ovunque
allo stesso modo.

Regola di stato:
- PAID    se balance_amount <= 0
- PARTIAL se paid_amount > 0
- PENDING altrimenti
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from app.schemas.invoice import DocumentLine, InvoiceAmounts, PaymentStatus
from app.schemas.service import ServiceSnapshot

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Optional[Decimal]) -> Decimal:
    """Arrotonda al centesimo (ROUND_HALF_UP). None vale zero."""
    if value is None:
        return ZERO
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def payment_status_for(balance_amount: Decimal, paid_amount: Decimal) -> PaymentStatus:
    """
    Stato di pagamento dagli importi.

    Con saldo esattamente zero la fattura è PAID, non PARTIAL.
    """
    if balance_amount <= 0:
        return PaymentStatus.PAID
    if paid_amount > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PENDING


def compute_amounts(total_amount: Decimal, paid_amount: Decimal) -> InvoiceAmounts:
    """
    Calcola residuo e stato a partire da totale e pagato.

    Args:
        total_amount: Totale dovuto
        paid_amount: Totale incassato

    Returns:
        InvoiceAmounts: I quattro campi monetari coerenti
    """
    total = to_money(total_amount)
    paid = to_money(paid_amount)
    balance = total - paid
    return InvoiceAmounts(
        total_amount=total,
        paid_amount=paid,
        balance_amount=balance,
        payment_status=payment_status_for(balance, paid),
    )


def _is_chargeable_part(part) -> bool:
    return part.is_extra_spare and part.is_approved


def warranty_chargeable_total(snapshot: ServiceSnapshot) -> Decimal:
    """
    Totale addebitabile di un intervento in garanzia.

    Guasti non coperti (fuori da matching_fault_ids) al prezzo di listino
    più i ricambi extra approvati; tutto il resto è gratuito.
    """
    faults_total = sum(
        (f.default_price for f in snapshot.faults if f.fault_id not in snapshot.matching_fault_ids),
        ZERO,
    )
    parts_total = sum(
        (p.total_price for p in snapshot.parts if _is_chargeable_part(p)),
        ZERO,
    )
    return to_money(faults_total + parts_total)


def derive_service_invoice_totals(snapshot: ServiceSnapshot) -> InvoiceAmounts:
    """
    Importi iniziali di una fattura generata da intervento.

    Deterministica sullo snapshot: due chiamate con lo stesso input
    restituiscono lo stesso risultato.

    Args:
        snapshot: Intervento completo di guasti, ricambi e acconti

    Returns:
        InvoiceAmounts: total dal prezzo di garanzia o dal costo effettivo,
        paid uguale all'acconto dell'intervento
    """
    if snapshot.is_warranty_repair:
        total = warranty_chargeable_total(snapshot)
    else:
        total = snapshot.effective_cost

    return compute_amounts(total, snapshot.advance_payment)


def build_pricing_lines(snapshot: ServiceSnapshot) -> list[DocumentLine]:
    """
    Righe di prezzo per il documento.

    In garanzia i guasti coperti e i ricambi non extra compaiono a zero
    (is_free). Fuori garanzia le righe sono informative: il totale
    documento resta il costo effettivo dell'intervento.
    """
    lines: list[DocumentLine] = []
    warranty = snapshot.is_warranty_repair

    for fault in snapshot.faults:
        covered = warranty and fault.fault_id in snapshot.matching_fault_ids
        price = to_money(fault.default_price)
        lines.append(
            DocumentLine(
                description=fault.name or "Riparazione",
                quantity=Decimal("1"),
                unit_price=price,
                amount=ZERO if covered else price,
                is_free=covered,
            )
        )

    for part in snapshot.parts:
        free = warranty and not _is_chargeable_part(part)
        lines.append(
            DocumentLine(
                description=part.part_name or "Ricambio",
                quantity=part.quantity,
                unit_price=to_money(part.unit_price),
                amount=ZERO if free else to_money(part.total_price),
                is_free=free,
            )
        )

    if not lines and not warranty:
        cost = to_money(snapshot.effective_cost)
        lines.append(
            DocumentLine(
                description=f"Intervento {snapshot.ticket_number}".strip(),
                quantity=Decimal("1"),
                unit_price=cost,
                amount=cost,
            )
        )

    return lines
