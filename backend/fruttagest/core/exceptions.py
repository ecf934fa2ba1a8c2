"""
Eccezioni Custom per l'applicazione.
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Definisce le eccezioni del dominio documentale (ordini, DDT, fatture,
liste spesa, ordini fornitore) per una gestione centralizzata degli errori.

NOTA: BusinessValidationError è volutamente distinta da pydantic.ValidationError.
- pydantic.ValidationError: errori di formato/tipo nei dati di input (gestiti da FastAPI → 422)
- BusinessValidationError: violazioni delle regole di business logic (gestiti dal nostro handler → 422)
"""

from typing import Any, Dict, Optional

__all__ = [
    "AppException",
    "NotFoundError",
    "DuplicateError",
    "BusinessValidationError",
    "ValidationError",       # alias di BusinessValidationError
    "ConflictError",
    "InvalidTransitionError",
    "OrderLockedError",
    "OrderNotReadyError",
    "DDTLockedError",
    "DDTAlreadyInvoicedError",
    "ConcurrentModificationError",
    "OverPaymentError",
    "NoOrdersForDateError",
    "NoSupplierAssignedError",
    "InvalidPeriodError",
    "SequenceExhaustedError",
]


class AppException(Exception):
    """
    Base exception per l'applicazione.

    Tutte le eccezioni custom ereditano da questa classe base.

    Attributes:
        status_code: HTTP status code da restituire al client
        error_code: Identificativo univoco dell'errore per il frontend
        default_detail: Messaggio usato quando non ne viene passato uno
        detail: Messaggio di errore leggibile per l'utente
        extra: Dizionario con dati aggiuntivi per il frontend
    """

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"
    default_detail: str = "Errore interno del server"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Inizializza l'eccezione.

        Args:
            detail: Messaggio di errore dettagliato (default: quello di classe)
            error_code: Identificativo univoco (default: quello di classe)
            extra: Dati aggiuntivi da passare al frontend (default: None)
        """
        self.detail = detail if detail is not None else self.default_detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        self.status_code = self.__class__.status_code
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        """Payload JSON restituito dagli exception handler."""
        payload: Dict[str, Any] = {"detail": self.detail, "error_code": self.error_code}
        if self.extra:
            payload.update(self.extra)
        return payload


class NotFoundError(AppException):
    """
    Eccezione sollevata quando una risorsa non viene trovata.

    Utilizzata quando un'entità referenziata non esiste nel database.
    """

    status_code: int = 404
    error_code: str = "RESOURCE_NOT_FOUND"
    default_detail: str = "Risorsa non trovata"


class DuplicateError(AppException):
    """
    Eccezione sollevata quando si tenta di creare una risorsa duplicata.

    Utilizzata per violazioni di vincoli unique (es. lista spesa già esistente per la data).
    """

    status_code: int = 409
    error_code: str = "DUPLICATE_RESOURCE"
    default_detail: str = "Risorsa già esistente"


class BusinessValidationError(ValueError, AppException):
    """
    Eccezione sollevata per violazioni delle regole di business logic.

    Eredita da ValueError per essere catturata dai validatori Pydantic.

    Esempi di utilizzo:
        - "Il DDT appartiene a un altro cliente"
        - "La quantità del movimento deve essere positiva"
    """

    status_code: int = 422
    error_code: str = "BUSINESS_VALIDATION_ERROR"
    default_detail: str = "Validazione dati fallita"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        # Chiama AppException.__init__ direttamente per evitare ValueError
        AppException.__init__(self, detail, error_code, extra)


# Alias per compatibilità
ValidationError = BusinessValidationError


class ConflictError(AppException):
    """
    Eccezione sollevata per conflitti di stato.

    Utilizzata quando un'operazione non può essere eseguita
    a causa dello stato corrente della risorsa.
    """

    status_code: int = 409
    error_code: str = "CONFLICT_STATE"
    default_detail: str = "Conflitto di stato"


# ------------------------------------------------------------
# Macchine a stati e documenti bloccati
# ------------------------------------------------------------

class InvalidTransitionError(ConflictError):
    """Transizione di stato non presente nella tabella consentita."""

    error_code: str = "INVALID_TRANSITION"
    default_detail: str = "Transizione di stato non consentita"


class OrderLockedError(ConflictError):
    """Modifica richiesta su un ordine fatturato o annullato."""

    error_code: str = "ORDER_LOCKED"
    default_detail: str = "Non è possibile modificare un ordine fatturato o annullato"


class OrderNotReadyError(ConflictError):
    """L'ordine non è nello stato richiesto per generare il DDT."""

    error_code: str = "ORDER_NOT_READY"
    default_detail: str = "L'ordine deve essere in preparazione per generare il DDT"


class DDTLockedError(ConflictError):
    """Modifica o eliminazione di un DDT già fatturato o consegnato."""

    error_code: str = "DDT_LOCKED"
    default_detail: str = "Il DDT è collegato a una fattura e non può essere modificato"


class DDTAlreadyInvoicedError(ConflictError):
    """Uno dei DDT richiesti è già collegato a un'altra fattura."""

    error_code: str = "DDT_ALREADY_INVOICED"
    default_detail: str = "Uno o più DDT sono già stati fatturati"


class ConcurrentModificationError(ConflictError):
    """Tentativi esauriti per contesa concorrente sulla stessa risorsa."""

    error_code: str = "CONCURRENT_MODIFICATION"
    default_detail: str = "La risorsa è stata modificata da un'altra operazione, riprovare"


# ------------------------------------------------------------
# Errori di business (422)
# ------------------------------------------------------------

class OverPaymentError(BusinessValidationError):
    """Il pagamento supera il residuo da pagare del documento."""

    error_code: str = "OVER_PAYMENT"
    default_detail: str = "L'importo supera il residuo da pagare"


class NoOrdersForDateError(BusinessValidationError):
    """
    Nessun ordine aperto per la data richiesta.

    Non viene propagata dal servizio lista spesa: è restituita come esito
    strutturato della generazione.
    """

    error_code: str = "NO_ORDERS_FOR_DATE"
    default_detail: str = "Nessun ordine confermato per la data selezionata"


class NoSupplierAssignedError(BusinessValidationError):
    """Nessuna riga della lista spesa ha un fornitore assegnato."""

    error_code: str = "NO_SUPPLIER_ASSIGNED"
    default_detail: str = "Nessun articolo ha un fornitore assegnato"


class InvalidPeriodError(BusinessValidationError):
    """Anno fuori dall'intervallo configurato per la numerazione."""

    error_code: str = "INVALID_PERIOD"
    default_detail: str = "Anno non valido per la numerazione"


class SequenceExhaustedError(ConflictError):
    """Sequenza di numerazione arrivata al limite della colonna."""

    error_code: str = "SEQUENCE_EXHAUSTED"
    default_detail: str = "Numerazione esaurita per l'anno richiesto"
