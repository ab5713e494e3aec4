"""
Service per la generazione di PDF con WeasyPrint + Jinja2.
Progetto: Repair Desk (Gestionale Centro Assistenza)
"""

import asyncio
import logging
import os
import re
from datetime import date

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.core.config import Settings, get_settings
from app.schemas.invoice import DocumentFormat, InvoiceDocument

logger = logging.getLogger(__name__)

# Path alle cartelle templates
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
TEMPLATES_DIR = os.path.join(BASE_DIR, "templates")

# Dimensione pagina CSS per formato
PAGE_SIZES = {
    DocumentFormat.A4: "A4",
    DocumentFormat.A5: "A5",
    DocumentFormat.THERMAL: "80mm 297mm",
}


# Lazy import of weasyprint to avoid startup errors if GTK libraries aren't available
def _get_weasyprint():
    """Lazy import of weasyprint to handle missing system libraries gracefully."""
    try:
        from weasyprint import HTML, CSS
        return HTML, CSS
    except OSError as e:
        raise RuntimeError(
            "Dipendenze di sistema di WeasyPrint non trovate (Pango/GTK). "
            "Installare le librerie richieste dal sistema operativo."
        ) from e


def document_filename(invoice_number: str, document_format: DocumentFormat) -> str:
    """Nome file sicuro per il filesystem (es. INV-MI01-2025-0001_A4.pdf)."""
    safe_number = re.sub(r"[^A-Za-z0-9_-]+", "_", invoice_number)
    return f"{safe_number}_{document_format.value}.pdf"


class PdfService:
    """
    Genera PDF da template HTML/CSS usando WeasyPrint + Jinja2.

    Riceve un InvoiceDocument già finalizzato (righe, importi, intestazioni):
    nessun accesso al database da qui.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.env = Environment(
            loader=FileSystemLoader(TEMPLATES_DIR),
            autoescape=select_autoescape(["html"]),
        )

    def render_html(self, document: InvoiceDocument, document_format: DocumentFormat) -> str:
        """Rende l'HTML del documento (separato per poterlo verificare senza WeasyPrint)."""
        template = self.env.get_template("invoice_template.html")
        context = {
            "doc": document,
            "format": document_format.value,
            "page_size": PAGE_SIZES[document_format],
            "is_thermal": document_format == DocumentFormat.THERMAL,
            "oggi": date.today().strftime("%d/%m/%Y"),
        }
        return template.render(context)

    def generate_invoice_pdf(
        self, document: InvoiceDocument, document_format: DocumentFormat
    ) -> bytes:
        """
        Genera il PDF di una fattura.

        Args:
            document: Snapshot prezzi e metadati della fattura
            document_format: A4, A5 o THERMAL

        Returns:
            bytes: PDF binario
        """
        # Lazy import weasyprint
        HTML, CSS = _get_weasyprint()

        html_out = self.render_html(document, document_format)
        css = CSS(filename=os.path.join(TEMPLATES_DIR, "invoice_style.css"))
        return HTML(string=html_out, base_url=TEMPLATES_DIR).write_pdf(stylesheets=[css])

    def _write_pdf(self, document: InvoiceDocument, document_format: DocumentFormat) -> str:
        pdf_bytes = self.generate_invoice_pdf(document, document_format)

        os.makedirs(self.settings.pdf_output_dir, exist_ok=True)
        filename = document_filename(document.invoice_number, document_format)
        with open(os.path.join(self.settings.pdf_output_dir, filename), "wb") as fh:
            fh.write(pdf_bytes)

        return f"{self.settings.pdf_base_url.rstrip('/')}/{filename}"

    async def render_invoice(
        self, document: InvoiceDocument, document_format: DocumentFormat = DocumentFormat.A4
    ) -> str:
        """
        Genera e salva il PDF, restituendo l'URL pubblico.

        WeasyPrint è sincrono: il rendering gira in un thread per non
        bloccare l'event loop.
        """
        url = await asyncio.to_thread(self._write_pdf, document, document_format)
        logger.info(f"PDF {document_format.value} generato per la fattura {document.invoice_number}: {url}")
        return url
