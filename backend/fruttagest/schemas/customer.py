"""
Schemas Pydantic per l'anagrafica clienti
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

I campi SDI/PEC/partita IVA sono salvati come stringhe opache:
nessuna validazione di formato oltre la lunghezza.
"""

import datetime
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fruttagest.core.enums import PaymentMethod


class CustomerBase(BaseModel):
    business_name: str = Field(..., min_length=1, max_length=200, description="Ragione sociale")
    vat_number: Optional[str] = Field(None, max_length=20, description="Partita IVA")
    fiscal_code: Optional[str] = Field(None, max_length=20, description="Codice fiscale")
    sdi_code: Optional[str] = Field(None, max_length=7, description="Codice destinatario SDI")
    pec_email: Optional[str] = Field(None, max_length=255, description="PEC")
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    province: Optional[str] = Field(None, max_length=2)
    postal_code: Optional[str] = Field(None, max_length=10)
    payment_terms_days: Optional[int] = Field(None, ge=0, description="Giorni di scadenza fattura")
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None

    @field_validator("business_name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("province", mode="before")
    @classmethod
    def upper_province(cls, v):
        return v.strip().upper() if isinstance(v, str) and v.strip() else None


class CustomerCreate(CustomerBase):
    pass


class CustomerRead(CustomerBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    is_active: bool
    created_at: datetime.datetime
