"""
Schemas Pydantic per il catalogo prodotti
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import datetime
import logging
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from fruttagest.core.enums import Unit

logger = logging.getLogger(__name__)


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="Nome prodotto")
    category: Optional[str] = Field(None, max_length=100)
    unit: Unit = Field(default=Unit.KG, description="Unità di misura")
    default_price: Decimal = Field(default=Decimal("0"), ge=0, description="Prezzo di vendita")
    cost_price: Optional[Decimal] = Field(None, ge=0, description="Prezzo di costo")
    vat_rate: Decimal = Field(default=Decimal("4.00"), ge=0, le=100, description="Aliquota IVA (%)")
    notes: Optional[str] = None

    @model_validator(mode="after")
    def warn_negative_margin(self):
        """Segnala (senza bloccare) un prezzo di vendita sotto costo."""
        if self.cost_price is not None and self.default_price < self.cost_price:
            logger.warning(
                "Prezzo di vendita inferiore al costo per %s: costo=%s, vendita=%s",
                self.name,
                self.cost_price,
                self.default_price,
            )
        return self


class ProductCreate(ProductBase):
    pass


class ProductRead(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    is_active: bool
    created_at: datetime.datetime
