"""
Eccezioni applicative
Progetto: Repair Desk (Gestionale Centro Assistenza)

Ogni eccezione porta con sé lo status HTTP e il codice errore che
l'handler registrato in app.main restituisce come
{"detail": ..., "error_code": ...}:

- NotFoundError            404  RESOURCE_NOT_FOUND
- ConflictError            409  CONFLICT_STATE
- BusinessValidationError  422  BUSINESS_VALIDATION_ERROR

Il service layer le solleva in modo sincrono e non ritenta mai: l'intera
operazione viene annullata.
"""

from typing import Any, Optional

__all__ = [
    "AppException",
    "NotFoundError",
    "ConflictError",
    "BusinessValidationError",
]


class AppException(Exception):
    """
    Base delle eccezioni applicative.

    Attributes:
        detail: Messaggio leggibile (italiano) per l'operatore
        error_code: Codice stabile per il frontend
        extra: Dati aggiuntivi facoltativi (es. residuo attuale)
    """

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"
    default_detail: str = "Errore interno del server"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[dict[str, Any]] = None,
    ) -> None:
        self.detail = detail or self.default_detail
        if error_code is not None:
            self.error_code = error_code
        self.extra = extra
        super().__init__(self.detail)

    def to_payload(self) -> dict[str, Any]:
        """Corpo JSON della risposta di errore."""
        payload: dict[str, Any] = {"detail": self.detail, "error_code": self.error_code}
        if self.extra:
            payload["extra"] = self.extra
        return payload


class NotFoundError(AppException):
    """
    Risorsa inesistente nel perimetro dell'azienda.

    Un id valido che appartiene a un'altra azienda produce lo stesso errore.
    """

    status_code = 404
    error_code = "RESOURCE_NOT_FOUND"
    default_detail = "Risorsa non trovata"


class ConflictError(AppException):
    """Stato incompatibile: fattura già emessa per l'intervento, numero duplicato."""

    status_code = 409
    error_code = "CONFLICT_STATE"
    default_detail = "Conflitto di stato"


class BusinessValidationError(ValueError, AppException):
    """
    Regola di business violata.

    Esempi: importo del pagamento oltre il residuo, modalità di creazione
    mista, risincronizzazione di una vendita al banco.

    È anche un ValueError: sollevata dentro un validatore Pydantic diventa
    un normale errore di validazione della richiesta.
    """

    status_code = 422
    error_code = "BUSINESS_VALIDATION_ERROR"
    default_detail = "Validazione dati fallita"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[dict[str, Any]] = None,
    ) -> None:
        # ValueError precede AppException nell'MRO
        AppException.__init__(self, detail, error_code, extra)
