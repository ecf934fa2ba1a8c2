"""
Router FastAPI per i Documenti di Trasporto (DDT)
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

La creazione avviene da ordine: vedi POST /orders/{order_id}/delivery-notes.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.database import get_db
from fruttagest.core.deps import get_actor_id
from fruttagest.core.enums import DeliveryNoteStatus
from fruttagest.schemas.delivery_note import (
    DeliveryNoteList,
    DeliveryNoteRead,
    DeliveryNoteStatusUpdate,
    DeliveryNoteUpdate,
)
from fruttagest.services.delivery_note_service import DeliveryNoteService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/delivery-notes",
    tags=["DDT"],
)


def get_delivery_note_service() -> DeliveryNoteService:
    return DeliveryNoteService()


@router.get(
    "/",
    name="ddt_lista",
    summary="Lista DDT",
    response_model=DeliveryNoteList,
    status_code=status.HTTP_200_OK,
)
async def list_delivery_notes(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    ddt_status: Optional[DeliveryNoteStatus] = Query(None, alias="status"),
    customer_id: Optional[uuid.UUID] = Query(None),
    order_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: DeliveryNoteService = Depends(get_delivery_note_service),
) -> DeliveryNoteList:
    ddts, total = await service.get_all(
        db,
        status=ddt_status,
        customer_id=customer_id,
        order_id=order_id,
        page=page,
        per_page=per_page,
    )
    return DeliveryNoteList(items=[DeliveryNoteRead.model_validate(d) for d in ddts], total=total)


@router.get(
    "/{ddt_id}",
    name="ddt_dettaglio",
    summary="Dettaglio DDT",
    response_model=DeliveryNoteRead,
    status_code=status.HTTP_200_OK,
)
async def get_delivery_note(
    ddt_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: DeliveryNoteService = Depends(get_delivery_note_service),
) -> DeliveryNoteRead:
    ddt = await service.get_by_id(db, ddt_id)
    return DeliveryNoteRead.model_validate(ddt)


@router.put(
    "/{ddt_id}",
    name="ddt_aggiorna",
    summary="Aggiorna dati di trasporto",
    description="Modifica la testata del DDT. Non consentito su DDT fatturati o consegnati.",
    response_model=DeliveryNoteRead,
    status_code=status.HTTP_200_OK,
)
async def update_delivery_note(
    ddt_id: uuid.UUID,
    ddt_data: DeliveryNoteUpdate,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: DeliveryNoteService = Depends(get_delivery_note_service),
) -> DeliveryNoteRead:
    ddt = await service.update(db, ddt_id, ddt_data, actor_id)
    await db.commit()
    return DeliveryNoteRead.model_validate(ddt)


@router.patch(
    "/{ddt_id}/status",
    name="ddt_cambia_stato",
    summary="Cambia stato DDT",
    description="DRAFT→ISSUED→DELIVERED. La consegna dell'ultimo DDT porta l'ordine a DELIVERED.",
    response_model=DeliveryNoteRead,
    status_code=status.HTTP_200_OK,
)
async def change_delivery_note_status(
    ddt_id: uuid.UUID,
    status_data: DeliveryNoteStatusUpdate,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: DeliveryNoteService = Depends(get_delivery_note_service),
) -> DeliveryNoteRead:
    ddt = await service.change_status(db, ddt_id, status_data.status, actor_id)
    await db.commit()
    return DeliveryNoteRead.model_validate(ddt)


@router.delete(
    "/{ddt_id}",
    name="ddt_elimina",
    summary="Elimina DDT",
    description="Elimina un DDT non fatturato e non consegnato, stornando lo scarico di magazzino.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_delivery_note(
    ddt_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: DeliveryNoteService = Depends(get_delivery_note_service),
) -> None:
    await service.delete(db, ddt_id, actor_id)
    await db.commit()
