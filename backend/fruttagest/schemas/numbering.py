"""
Schemas Pydantic per la numerazione documenti
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

from typing import Optional

from pydantic import BaseModel, Field

from fruttagest.core.enums import DocumentType


class NextNumberRequest(BaseModel):
    document_type: DocumentType
    year: Optional[int] = Field(None, description="Anno (default: anno corrente)")


class NextNumberResponse(BaseModel):
    document_type: DocumentType
    number: str
