"""
Schemas Pydantic per gli ordini d'acquisto
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from fruttagest.core.enums import PurchaseOrderStatus, Unit


PURCHASE_ORDER_TRANSITIONS: dict[PurchaseOrderStatus, list[PurchaseOrderStatus]] = {
    PurchaseOrderStatus.DRAFT: [PurchaseOrderStatus.SENT, PurchaseOrderStatus.CANCELLED],
    PurchaseOrderStatus.SENT: [PurchaseOrderStatus.RECEIVED, PurchaseOrderStatus.CANCELLED],
    PurchaseOrderStatus.RECEIVED: [],
    PurchaseOrderStatus.CANCELLED: [],
}


class PurchaseOrderStatusUpdate(BaseModel):
    status: PurchaseOrderStatus


class PurchaseOrderItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    shopping_list_item_id: Optional[uuid.UUID] = None
    product_id: Optional[uuid.UUID] = None
    product_name: str
    quantity: Decimal
    unit: Unit
    unit_price: Optional[Decimal] = None
    line_total: Optional[Decimal] = None


class PurchaseOrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    po_number: str
    supplier_id: uuid.UUID
    shopping_list_id: Optional[uuid.UUID] = None
    status: PurchaseOrderStatus
    order_date: datetime.date
    expected_date: Optional[datetime.date] = None
    received_at: Optional[datetime.datetime] = None
    subtotal: Decimal
    vat_amount: Decimal
    total: Decimal
    notes: Optional[str] = None
    items: list[PurchaseOrderItemRead] = Field(default_factory=list)
    created_at: datetime.datetime
