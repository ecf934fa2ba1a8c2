"""
Schemas Pydantic per i Documenti di Trasporto (DDT)
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from fruttagest.core.enums import DeliveryNoteStatus, Unit


# Transizioni consentite: solo in avanti
DDT_TRANSITIONS: dict[DeliveryNoteStatus, list[DeliveryNoteStatus]] = {
    DeliveryNoteStatus.DRAFT: [DeliveryNoteStatus.ISSUED],
    DeliveryNoteStatus.ISSUED: [DeliveryNoteStatus.DELIVERED],
    DeliveryNoteStatus.DELIVERED: [],
}

# Stati dei DDT fatturabili
INVOICEABLE_DDT_STATUSES: tuple[DeliveryNoteStatus, ...] = (
    DeliveryNoteStatus.ISSUED,
    DeliveryNoteStatus.DELIVERED,
)


class TransportData(BaseModel):
    """Dati di trasporto stampati sul DDT."""
    issue_date: Optional[datetime.date] = Field(None, description="Data DDT (default: oggi)")
    transport_reason: str = Field(default="Vendita", max_length=100, description="Causale del trasporto")
    transported_by: str = Field(default="Mittente", max_length=100, description="Trasporto a cura di")
    goods_appearance: Optional[str] = Field(None, max_length=100, description="Aspetto dei beni")
    number_of_packages: Optional[int] = Field(None, ge=0, description="Numero colli")
    weight: Optional[Decimal] = Field(None, ge=0, description="Peso in kg")
    delivery_notes: Optional[str] = Field(None, description="Note di consegna")


class DeliveryNoteCreate(TransportData):
    """
    Creazione DDT da ordine.

    `quantities` permette una consegna parziale: per ogni riga d'ordine
    indicata viene consegnata al massimo la quantità residua.
    """
    quantities: Optional[dict[uuid.UUID, Decimal]] = Field(
        None,
        description="Quantità da consegnare per riga d'ordine (default: tutto il residuo)",
    )


class DeliveryNoteUpdate(BaseModel):
    """Modifica dei soli dati di testata: le righe restano lo snapshot originale."""
    issue_date: Optional[datetime.date] = None
    transport_reason: Optional[str] = Field(None, max_length=100)
    transported_by: Optional[str] = Field(None, max_length=100)
    goods_appearance: Optional[str] = Field(None, max_length=100)
    number_of_packages: Optional[int] = Field(None, ge=0)
    weight: Optional[Decimal] = Field(None, ge=0)
    delivery_notes: Optional[str] = None


class DeliveryNoteStatusUpdate(BaseModel):
    status: DeliveryNoteStatus


class DeliveryNoteItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_item_id: Optional[uuid.UUID] = None
    product_id: Optional[uuid.UUID] = None
    product_name: str
    quantity: Decimal
    unit: Unit
    unit_price: Decimal
    vat_rate: Decimal
    line_total: Decimal


class DeliveryNoteRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    ddt_number: str
    order_id: Optional[uuid.UUID] = None
    customer_id: uuid.UUID
    status: DeliveryNoteStatus
    issue_date: datetime.date
    delivered_at: Optional[datetime.datetime] = None
    transport_reason: str
    transported_by: str
    goods_appearance: Optional[str] = None
    number_of_packages: Optional[int] = None
    weight: Optional[Decimal] = None
    delivery_notes: Optional[str] = None
    subtotal: Decimal
    vat_amount: Decimal
    total: Decimal
    is_invoiced: bool
    items: list[DeliveryNoteItemRead] = Field(default_factory=list)
    created_at: datetime.datetime


class DeliveryNoteList(BaseModel):
    items: list[DeliveryNoteRead]
    total: int
