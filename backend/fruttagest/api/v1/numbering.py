"""
Router FastAPI per la numerazione documenti
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.database import get_db
from fruttagest.schemas.numbering import NextNumberRequest, NextNumberResponse
from fruttagest.services.numbering_service import NumberingService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/numbering",
    tags=["Numerazione"],
)


def get_numbering_service() -> NumberingService:
    return NumberingService()


@router.post(
    "/next",
    name="numerazione_prossimo",
    summary="Emetti numero documento",
    description=(
        "Emette il prossimo numero per tipo documento e anno (es. ORD-2026-0001). "
        "Il numero è consumato anche se non viene usato."
    ),
    response_model=NextNumberResponse,
    status_code=status.HTTP_200_OK,
)
async def next_number(
    request_data: NextNumberRequest,
    db: AsyncSession = Depends(get_db),
    service: NumberingService = Depends(get_numbering_service),
) -> NextNumberResponse:
    number = await service.next_number(db, request_data.document_type, request_data.year)
    await db.commit()
    return NextNumberResponse(document_type=request_data.document_type, number=number)
