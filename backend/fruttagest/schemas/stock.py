"""
Schemas Pydantic per il magazzino
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from fruttagest.core.enums import StockMovementType, StockReferenceType, Unit


class StockMovementCreate(BaseModel):
    """Movimento manuale: la quantità è sempre positiva, il segno lo dà il tipo."""
    product_id: uuid.UUID
    movement_type: StockMovementType
    quantity: Decimal = Field(..., gt=0, description="Quantità (positiva)")
    unit: Optional[Unit] = Field(None, description="Unità di misura (default: quella del prodotto)")
    reason: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    reference_type: StockReferenceType = StockReferenceType.MANUAL
    reference_id: Optional[uuid.UUID] = None


class StockMovementRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    movement_type: StockMovementType
    quantity: Decimal
    unit: Unit
    movement_date: datetime.date
    reason: Optional[str] = None
    notes: Optional[str] = None
    reference_type: StockReferenceType
    reference_id: Optional[uuid.UUID] = None
    reference_number: Optional[str] = None
    created_by_id: Optional[uuid.UUID] = None
    created_at: datetime.datetime


class StockMovementList(BaseModel):
    items: list[StockMovementRead]
    total: int
    page: int
    per_page: int


class StockItem(BaseModel):
    """Riga del riepilogo giacenze."""
    product_id: uuid.UUID
    product_name: str
    category: Optional[str] = None
    unit: Unit
    current_stock: Decimal
    cost_price: Optional[Decimal] = None
    default_price: Decimal
    stock_value: Optional[Decimal] = Field(None, description="Giacenza × prezzo di costo")
