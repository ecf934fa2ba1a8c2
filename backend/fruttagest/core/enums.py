"""
Enumerazioni di dominio
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Valori ammessi per stati, unità di misura e tipologie.
Usati sia dai CheckConstraint dei modelli sia dagli schemi Pydantic.
"""

from enum import Enum


class Unit(str, Enum):
    """Unità di misura per l'ortofrutta."""
    KG = "KG"
    G = "G"
    PEZZI = "PEZZI"
    CASSETTA = "CASSETTA"
    MAZZO = "MAZZO"
    GRAPPOLO = "GRAPPOLO"
    VASETTO = "VASETTO"
    SACCHETTO = "SACCHETTO"


class OrderChannel(str, Enum):
    """Canale di ricezione dell'ordine."""
    MANUAL = "MANUAL"
    WHATSAPP = "WHATSAPP"
    EMAIL = "EMAIL"
    AUDIO = "AUDIO"
    WEB = "WEB"


class OrderStatus(str, Enum):
    RECEIVED = "RECEIVED"
    CONFIRMED = "CONFIRMED"
    IN_PREPARATION = "IN_PREPARATION"
    DELIVERED = "DELIVERED"
    INVOICED = "INVOICED"
    CANCELLED = "CANCELLED"


class DeliveryNoteStatus(str, Enum):
    DRAFT = "DRAFT"
    ISSUED = "ISSUED"
    DELIVERED = "DELIVERED"


class InvoiceStatus(str, Enum):
    """
    Stati della fattura.

    OVERDUE non viene mai salvato: è lo stato visualizzato quando
    la scadenza è passata e la fattura non è pagata.
    """
    DRAFT = "DRAFT"
    ISSUED = "ISSUED"
    SENT = "SENT"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class SupplierInvoiceStatus(str, Enum):
    ISSUED = "ISSUED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    CONTANTI = "CONTANTI"
    BONIFICO = "BONIFICO"
    ASSEGNO = "ASSEGNO"
    RIBA = "RIBA"
    CARTA = "CARTA"


class PaymentDirection(str, Enum):
    """INCOMING = incasso da cliente, OUTGOING = pagamento a fornitore."""
    INCOMING = "INCOMING"
    OUTGOING = "OUTGOING"


class ShoppingListStatus(str, Enum):
    DRAFT = "DRAFT"
    FINALIZED = "FINALIZED"
    ORDERED = "ORDERED"
    RECEIVED = "RECEIVED"


class PurchaseOrderStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"


class StockMovementType(str, Enum):
    """Tipi di movimento di magazzino (segno in STOCK_SIGNS)."""
    CARICO = "CARICO"
    SCARICO = "SCARICO"
    RETTIFICA_POS = "RETTIFICA_POS"
    RETTIFICA_NEG = "RETTIFICA_NEG"
    SCARTO = "SCARTO"


class StockReferenceType(str, Enum):
    MANUAL = "MANUAL"
    DDT = "DDT"
    PURCHASE_ORDER = "PURCHASE_ORDER"


class DocumentType(str, Enum):
    """Tipi di documento numerati dal servizio di numerazione."""
    ORDER = "ORDER"
    DDT = "DDT"
    INVOICE = "INVOICE"
    CUSTOMER = "CUSTOMER"
    SUPPLIER = "SUPPLIER"
    PURCHASE_ORDER = "PURCHASE_ORDER"
    SUPPLIER_INVOICE = "SUPPLIER_INVOICE"


DOCUMENT_PREFIXES: dict[DocumentType, str] = {
    DocumentType.ORDER: "ORD",
    DocumentType.DDT: "DDT",
    DocumentType.INVOICE: "FT",
    DocumentType.CUSTOMER: "CLI",
    DocumentType.SUPPLIER: "FOR",
    DocumentType.PURCHASE_ORDER: "OA",
    DocumentType.SUPPLIER_INVOICE: "FT-FORN",
}


def sql_in(column: str, enum_cls: type[Enum]) -> str:
    """Espressione SQL `column IN (...)` per i CheckConstraint."""
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return f"{column} IN ({values})"
