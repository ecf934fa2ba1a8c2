"""
Schemas Pydantic per fornitori e listini
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from fruttagest.core.enums import PaymentMethod, Unit


class SupplierBase(BaseModel):
    business_name: str = Field(..., min_length=1, max_length=200)
    vat_number: Optional[str] = Field(None, max_length=20)
    fiscal_code: Optional[str] = Field(None, max_length=20)
    sdi_code: Optional[str] = Field(None, max_length=7)
    pec_email: Optional[str] = Field(None, max_length=255)
    iban: Optional[str] = Field(None, max_length=34)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=255)
    payment_terms_days: Optional[int] = Field(None, ge=0)
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None


class SupplierCreate(SupplierBase):
    pass


class SupplierRead(SupplierBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    is_active: bool
    created_at: datetime.datetime


class SupplierProductCreate(BaseModel):
    """Voce di listino; is_preferred=True toglie la preferenza agli altri fornitori del prodotto."""
    product_id: uuid.UUID
    price: Optional[Decimal] = Field(None, ge=0, description="Prezzo di listino")
    unit: Unit = Unit.KG
    is_preferred: bool = False


class SupplierProductRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    supplier_id: uuid.UUID
    product_id: uuid.UUID
    price: Optional[Decimal] = None
    unit: Unit
    is_preferred: bool
