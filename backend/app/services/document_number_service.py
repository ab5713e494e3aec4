"""
Service per la numerazione dei documenti
Progetto: Repair Desk (Gestionale Centro Assistenza)

Genera numeri documento univoci nel formato configurato:
PREFISSO[-FILIALE][-ANNO][-MESE][-GIORNO]-PROGRESSIVO
(es. INV-MI01-2025-0042, oppure INV-MI01-2025-03-0042 con azzeramento mensile).

Il progressivo è un contatore per (azienda, filiale o intera azienda,
tipo documento, periodo) incrementato con lock di riga. Il servizio non
fa commit: l'incremento appartiene alla stessa transazione del documento,
quindi un rollback della fattura non consuma numeri.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.exceptions import BusinessValidationError, NotFoundError
from app.models.company import Branch
from app.models.document_sequence import DocumentSequence

logger = logging.getLogger(__name__)

INVOICE = "INVOICE"
COMPANY_SCOPE = "*"


@dataclass(frozen=True)
class NumberFormat:
    """Formato di numerazione di un tipo documento."""

    prefix: str
    separator: str = "-"
    sequence_length: int = 4
    include_branch: bool = True
    include_year: bool = True
    include_month: bool = False
    include_day: bool = False
    reset: str = "yearly"


def period_key_for(reset: str, now: datetime) -> str:
    """
    Chiave del periodo di azzeramento del progressivo.

    Args:
        reset: never | yearly | monthly | daily
        now: Istante di riferimento

    Returns:
        str: "ALL", "2025", "2025-01" oppure "2025-01-18"
    """
    if reset == "yearly":
        return f"{now.year}"
    if reset == "monthly":
        return f"{now.year}-{now.month:02d}"
    if reset == "daily":
        return f"{now.year}-{now.month:02d}-{now.day:02d}"
    return "ALL"


def format_document_number(
    fmt: NumberFormat,
    sequence: int,
    branch_code: Optional[str],
    now: datetime,
) -> str:
    """Compone il numero documento dai segmenti abilitati nel formato."""
    parts = [fmt.prefix]
    if fmt.include_branch and branch_code:
        parts.append(branch_code)
    if fmt.include_year:
        parts.append(f"{now.year}")
    if fmt.include_month:
        parts.append(f"{now.month:02d}")
    if fmt.include_day:
        parts.append(f"{now.day:02d}")
    parts.append(str(sequence).zfill(fmt.sequence_length))
    return fmt.separator.join(parts)


class DocumentNumberService:
    """Autorità di numerazione documenti basata su DocumentSequence."""

    def __init__(self, db: AsyncSession, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    def _format_for(self, document_type: str) -> NumberFormat:
        if document_type == INVOICE:
            return NumberFormat(
                prefix=self.settings.invoice_number_prefix,
                separator=self.settings.invoice_number_separator,
                sequence_length=self.settings.invoice_number_sequence_length,
                include_branch=self.settings.invoice_number_include_branch,
                include_year=self.settings.invoice_number_include_year,
                include_month=self.settings.invoice_number_include_month,
                include_day=self.settings.invoice_number_include_day,
                reset=self.settings.invoice_number_reset,
            )
        raise BusinessValidationError(f"Tipo documento non supportato: {document_type}")

    async def generate_number(
        self,
        company_id: uuid.UUID,
        branch_id: Optional[uuid.UUID],
        document_type: str = INVOICE,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Restituisce il prossimo numero documento.

        Args:
            company_id: Azienda emittente
            branch_id: Filiale emittente (obbligatoria se il formato include la filiale)
            document_type: Tipo documento (default: INVOICE)
            now: Istante di emissione (default: adesso, UTC)

        Returns:
            str: Numero documento formattato

        Raises:
            NotFoundError: Filiale non trovata
            BusinessValidationError: Tipo documento non configurato
        """
        fmt = self._format_for(document_type)
        now = now or datetime.now(timezone.utc)

        branch_code = None
        scope_key = COMPANY_SCOPE
        if fmt.include_branch and branch_id is not None:
            branch = await self.db.get(Branch, branch_id)
            if branch is None or branch.company_id != company_id:
                raise NotFoundError(f"Filiale {branch_id} non trovata")
            branch_code = branch.code
            scope_key = str(branch_id)

        period_key = period_key_for(fmt.reset, now)
        sequence = await self._next_sequence(company_id, scope_key, document_type, period_key)

        number = format_document_number(fmt, sequence, branch_code, now)
        logger.debug(f"Numero {document_type} generato: {number}")
        return number

    async def _next_sequence(
        self,
        company_id: uuid.UUID,
        scope_key: str,
        document_type: str,
        period_key: str,
    ) -> int:
        stmt = (
            select(DocumentSequence)
            .where(
                DocumentSequence.company_id == company_id,
                DocumentSequence.scope_key == scope_key,
                DocumentSequence.document_type == document_type,
                DocumentSequence.period_key == period_key,
            )
            .with_for_update()
        )
        result = await self.db.execute(stmt)
        sequence = result.scalar_one_or_none()

        if sequence is None:
            # Primo documento del periodo: un inserimento concorrente
            # fallisce sul vincolo univoco al commit (ConflictError)
            sequence = DocumentSequence(
                company_id=company_id,
                scope_key=scope_key,
                document_type=document_type,
                period_key=period_key,
                current_sequence=1,
            )
            self.db.add(sequence)
        else:
            sequence.current_sequence += 1

        await self.db.flush()
        return sequence.current_sequence
