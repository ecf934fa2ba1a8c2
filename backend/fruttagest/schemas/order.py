"""
Schemas Pydantic per gli Ordini cliente
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Contiene la macchina a stati dell'ordine e gli schemi di input/output.
Le righe d'ordine sono una variante etichettata (campo `kind`):
- "catalog": prodotto a catalogo, identificato da product_id
- "free_text": prodotto non a catalogo, identificato dalla descrizione
"""

import datetime
import uuid
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fruttagest.core.enums import OrderChannel, OrderStatus, Unit


# ------------------------------------------------------------
# Macchina a stati
# ------------------------------------------------------------

# Tabella delle transizioni consentite: unica fonte di verità,
# importata dal service ordini.
ORDER_TRANSITIONS: dict[OrderStatus, list[OrderStatus]] = {
    OrderStatus.RECEIVED: [OrderStatus.CONFIRMED, OrderStatus.CANCELLED],
    OrderStatus.CONFIRMED: [OrderStatus.IN_PREPARATION, OrderStatus.CANCELLED],
    OrderStatus.IN_PREPARATION: [OrderStatus.DELIVERED],
    OrderStatus.DELIVERED: [OrderStatus.INVOICED],
    OrderStatus.INVOICED: [],
    OrderStatus.CANCELLED: [],
}

# Stati raggiunti solo come effetto di DDT consegnato / fatturazione
SYSTEM_ONLY_ORDER_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.INVOICED}
)

# Stati in cui righe, cliente e data di consegna non sono modificabili
LOCKED_ORDER_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.INVOICED, OrderStatus.CANCELLED}
)

# Stati considerati dalla lista spesa
OPEN_ORDER_STATUSES: tuple[OrderStatus, ...] = (OrderStatus.CONFIRMED, OrderStatus.IN_PREPARATION)


# ------------------------------------------------------------
# Righe d'ordine (input)
# ------------------------------------------------------------

class OrderLineBase(BaseModel):
    """Campi comuni alle due varianti di riga."""
    quantity: Decimal = Field(..., ge=Decimal("0.001"), description="Quantità richiesta")
    unit: Optional[Unit] = Field(None, description="Unità di misura (default: quella del prodotto o KG)")
    unit_price: Optional[Decimal] = Field(
        None,
        ge=0,
        description="Prezzo unitario (default: listino del prodotto, 0 per testo libero)",
    )
    vat_rate: Optional[Decimal] = Field(None, ge=0, le=100, description="Aliquota IVA (%)")
    notes: Optional[str] = Field(None, max_length=500)


class CatalogLineCreate(OrderLineBase):
    kind: Literal["catalog"] = "catalog"
    product_id: uuid.UUID = Field(..., description="Prodotto a catalogo")


class FreeTextLineCreate(OrderLineBase):
    kind: Literal["free_text"] = "free_text"
    description: str = Field(..., min_length=1, max_length=200, description="Descrizione prodotto")

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("La descrizione non può essere vuota")
        return v


OrderItemCreate = Annotated[
    Union[CatalogLineCreate, FreeTextLineCreate],
    Field(discriminator="kind"),
]


# ------------------------------------------------------------
# Ordine (input)
# ------------------------------------------------------------

class OrderCreate(BaseModel):
    customer_id: uuid.UUID = Field(..., description="Cliente")
    channel: OrderChannel = Field(default=OrderChannel.MANUAL, description="Canale di ricezione")
    order_date: Optional[datetime.date] = Field(None, description="Data ordine (default: oggi)")
    requested_delivery_date: Optional[datetime.date] = Field(None, description="Data di consegna richiesta")
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    items: list[OrderItemCreate] = Field(..., min_length=1, description="Righe d'ordine")


class OrderUpdate(BaseModel):
    """Aggiornamento parziale: se `items` è presente sostituisce tutte le righe."""
    customer_id: Optional[uuid.UUID] = None
    channel: Optional[OrderChannel] = None
    requested_delivery_date: Optional[datetime.date] = None
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    items: Optional[list[OrderItemCreate]] = Field(None, min_length=1)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus = Field(..., description="Nuovo stato richiesto")


# ------------------------------------------------------------
# Output
# ------------------------------------------------------------

class OrderItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    kind: Literal["catalog", "free_text"]
    product_id: Optional[uuid.UUID] = None
    product_name: str
    quantity: Decimal
    unit: Unit
    unit_price: Decimal
    vat_rate: Decimal
    line_total: Decimal
    notes: Optional[str] = None


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    customer_id: uuid.UUID
    channel: OrderChannel
    status: OrderStatus
    order_date: datetime.date
    requested_delivery_date: Optional[datetime.date] = None
    subtotal: Decimal
    vat_amount: Decimal
    total: Decimal
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    items: list[OrderItemRead] = Field(default_factory=list)
    created_at: datetime.datetime
    updated_at: datetime.datetime


class OrderList(BaseModel):
    items: list[OrderRead]
    total: int
    page: int
    per_page: int
