"""
Schemas Pydantic per Fatturazione e Pagamenti
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from fruttagest.core.enums import (
    InvoiceStatus,
    PaymentDirection,
    PaymentMethod,
    SupplierInvoiceStatus,
    Unit,
)


# ------------------------------------------------------------
# Macchina a stati fattura
# ------------------------------------------------------------

# OVERDUE non compare: è uno stato derivato dalla scadenza.
INVOICE_TRANSITIONS: dict[InvoiceStatus, list[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: [InvoiceStatus.ISSUED, InvoiceStatus.CANCELLED],
    InvoiceStatus.ISSUED: [InvoiceStatus.SENT, InvoiceStatus.CANCELLED],
    InvoiceStatus.SENT: [InvoiceStatus.PAID, InvoiceStatus.CANCELLED],
    InvoiceStatus.PAID: [],
    InvoiceStatus.CANCELLED: [],
}


# ------------------------------------------------------------
# Fattura
# ------------------------------------------------------------

class InvoiceCreate(BaseModel):
    """Creazione fattura da uno o più DDT dello stesso cliente."""
    customer_id: uuid.UUID
    ddt_ids: list[uuid.UUID] = Field(..., min_length=1, description="DDT da fatturare")
    issue_date: Optional[datetime.date] = Field(None, description="Data fattura (default: oggi)")
    due_date: Optional[datetime.date] = Field(
        None,
        description="Scadenza (default: data fattura + termini di pagamento del cliente)",
    )
    payment_method: Optional[PaymentMethod] = None
    payment_terms: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = None
    internal_notes: Optional[str] = None

    @field_validator("ddt_ids")
    @classmethod
    def unique_ddt_ids(cls, v: list[uuid.UUID]) -> list[uuid.UUID]:
        if len(set(v)) != len(v):
            raise ValueError("Lo stesso DDT è indicato più volte")
        return v

    @model_validator(mode="after")
    def validate_dates(self):
        if self.issue_date and self.due_date and self.due_date < self.issue_date:
            raise ValueError("La scadenza non può precedere la data fattura")
        return self


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus


class InvoiceItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    delivery_note_id: Optional[uuid.UUID] = None
    product_id: Optional[uuid.UUID] = None
    description: str
    quantity: Decimal
    unit: Unit
    unit_price: Decimal
    vat_rate: Decimal
    line_total: Decimal
    cost_price: Optional[Decimal] = None
    supplier_id: Optional[uuid.UUID] = None


class InvoiceDDTLinkRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    delivery_note_id: uuid.UUID


class InvoiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    invoice_number: str
    customer_id: uuid.UUID
    status: InvoiceStatus
    display_status: InvoiceStatus
    issue_date: datetime.date
    due_date: datetime.date
    payment_method: Optional[PaymentMethod] = None
    payment_terms: Optional[str] = None
    subtotal: Decimal
    vat_amount: Decimal
    total: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    items: list[InvoiceItemRead] = Field(default_factory=list)
    ddt_links: list[InvoiceDDTLinkRead] = Field(default_factory=list)
    created_at: datetime.datetime


class InvoiceList(BaseModel):
    items: list[InvoiceRead]
    total: int
    page: int
    per_page: int


# ------------------------------------------------------------
# Fattura fornitore
# ------------------------------------------------------------

class SupplierInvoiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    invoice_number: str
    supplier_id: uuid.UUID
    purchase_order_id: Optional[uuid.UUID] = None
    status: SupplierInvoiceStatus
    issue_date: datetime.date
    due_date: datetime.date
    subtotal: Decimal
    vat_amount: Decimal
    total: Decimal
    paid_amount: Decimal


# ------------------------------------------------------------
# Pagamenti
# ------------------------------------------------------------

class PaymentCreate(BaseModel):
    """
    Registrazione di un pagamento.

    Gli incassi (INCOMING) si collegano a una fattura cliente,
    i pagamenti (OUTGOING) a una fattura fornitore; il collegamento è facoltativo.
    """
    direction: PaymentDirection
    amount: Decimal = Field(..., ge=Decimal("0.01"), description="Importo")
    payment_date: Optional[datetime.date] = Field(None, description="Data pagamento (default: oggi)")
    method: PaymentMethod
    reference: Optional[str] = Field(None, max_length=100, description="Riferimento (CRO, n. assegno)")
    notes: Optional[str] = None
    customer_id: Optional[uuid.UUID] = None
    supplier_id: Optional[uuid.UUID] = None
    invoice_id: Optional[uuid.UUID] = None
    supplier_invoice_id: Optional[uuid.UUID] = None

    @model_validator(mode="after")
    def validate_links(self):
        if self.invoice_id and self.supplier_invoice_id:
            raise ValueError("Un pagamento può riferirsi a una sola fattura")
        if self.invoice_id and self.direction != PaymentDirection.INCOMING:
            raise ValueError("I pagamenti su fattura cliente devono essere in entrata")
        if self.supplier_invoice_id and self.direction != PaymentDirection.OUTGOING:
            raise ValueError("I pagamenti su fattura fornitore devono essere in uscita")
        return self


class PaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    direction: PaymentDirection
    amount: Decimal
    payment_date: datetime.date
    method: PaymentMethod
    reference: Optional[str] = None
    notes: Optional[str] = None
    customer_id: Optional[uuid.UUID] = None
    supplier_id: Optional[uuid.UUID] = None
    invoice_id: Optional[uuid.UUID] = None
    supplier_invoice_id: Optional[uuid.UUID] = None
    created_at: datetime.datetime
