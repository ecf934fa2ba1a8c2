"""
Schemas Pydantic per lista spesa e generazione ordini fornitore
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from fruttagest.core.enums import ShoppingListStatus, Unit


# Sequenza rigida: nessun salto, nessun ritorno
SHOPPING_LIST_TRANSITIONS: dict[ShoppingListStatus, list[ShoppingListStatus]] = {
    ShoppingListStatus.DRAFT: [ShoppingListStatus.FINALIZED],
    ShoppingListStatus.FINALIZED: [ShoppingListStatus.ORDERED],
    ShoppingListStatus.ORDERED: [ShoppingListStatus.RECEIVED],
    ShoppingListStatus.RECEIVED: [],
}


class ShoppingListGenerate(BaseModel):
    list_date: datetime.date = Field(..., description="Data di consegna degli ordini da aggregare")


class ShoppingListItemUpdate(BaseModel):
    """Patch di una riga; net_quantity è sempre ricalcolata."""
    is_ordered: Optional[bool] = None
    total_quantity: Optional[Decimal] = Field(None, ge=0)
    supplier_id: Optional[uuid.UUID] = None
    supplier_price: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None


class ShoppingListStatusUpdate(BaseModel):
    status: ShoppingListStatus


class ShoppingListItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    line_key: str
    product_id: Optional[uuid.UUID] = None
    product_name: str
    unit: Unit
    total_quantity: Decimal
    available_stock: Decimal
    net_quantity: Decimal
    supplier_id: Optional[uuid.UUID] = None
    supplier_price: Optional[Decimal] = None
    is_ordered: bool
    notes: Optional[str] = None


class ShoppingListRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    list_date: datetime.date
    status: ShoppingListStatus
    notes: Optional[str] = None
    items: list[ShoppingListItemRead] = Field(default_factory=list)
    created_at: datetime.datetime
    updated_at: datetime.datetime


class GenerationError(BaseModel):
    error_code: str
    detail: str


class ShoppingListGenerationResult(BaseModel):
    """
    Esito della generazione.

    Se non ci sono ordini per la data `shopping_list` è None e `error`
    descrive il motivo: non è un errore dell'operazione.
    """
    shopping_list: Optional[ShoppingListRead] = None
    regenerated: bool = False
    order_count: int = 0
    error: Optional[GenerationError] = None


class PurchaseOrderGenerationResult(BaseModel):
    created_count: int
    po_numbers: list[str]
    skipped_count: int
