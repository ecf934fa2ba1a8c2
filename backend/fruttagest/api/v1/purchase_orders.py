"""
Router FastAPI per gli Ordini d'acquisto
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

La generazione avviene dalla lista spesa: vedi POST /shopping-lists/{list_id}/purchase-orders.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.database import get_db
from fruttagest.core.deps import get_actor_id
from fruttagest.core.enums import PurchaseOrderStatus
from fruttagest.schemas.purchase_order import PurchaseOrderRead, PurchaseOrderStatusUpdate
from fruttagest.services.purchase_order_service import PurchaseOrderService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/purchase-orders",
    tags=["Ordini d'acquisto"],
)


def get_purchase_order_service() -> PurchaseOrderService:
    return PurchaseOrderService()


@router.get(
    "/",
    name="ordini_acquisto_lista",
    summary="Lista ordini d'acquisto",
    response_model=list[PurchaseOrderRead],
    status_code=status.HTTP_200_OK,
)
async def list_purchase_orders(
    supplier_id: Optional[uuid.UUID] = Query(None),
    shopping_list_id: Optional[uuid.UUID] = Query(None),
    po_status: Optional[PurchaseOrderStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    service: PurchaseOrderService = Depends(get_purchase_order_service),
) -> list[PurchaseOrderRead]:
    purchase_orders = await service.get_all(
        db,
        supplier_id=supplier_id,
        shopping_list_id=shopping_list_id,
        status=po_status,
    )
    return [PurchaseOrderRead.model_validate(po) for po in purchase_orders]


@router.get(
    "/{po_id}",
    name="ordine_acquisto_dettaglio",
    summary="Dettaglio ordine d'acquisto",
    response_model=PurchaseOrderRead,
    status_code=status.HTTP_200_OK,
)
async def get_purchase_order(
    po_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: PurchaseOrderService = Depends(get_purchase_order_service),
) -> PurchaseOrderRead:
    purchase_order = await service.get_by_id(db, po_id)
    return PurchaseOrderRead.model_validate(purchase_order)


@router.patch(
    "/{po_id}/status",
    name="ordine_acquisto_cambia_stato",
    summary="Cambia stato ordine d'acquisto",
    description=(
        "DRAFT→SENT→RECEIVED, annullamento da DRAFT o SENT. "
        "Il ricevimento carica il magazzino e genera la fattura fornitore."
    ),
    response_model=PurchaseOrderRead,
    status_code=status.HTTP_200_OK,
)
async def change_purchase_order_status(
    po_id: uuid.UUID,
    status_data: PurchaseOrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: PurchaseOrderService = Depends(get_purchase_order_service),
) -> PurchaseOrderRead:
    purchase_order = await service.change_status(db, po_id, status_data.status, actor_id)
    await db.commit()
    return PurchaseOrderRead.model_validate(purchase_order)


@router.delete(
    "/{po_id}",
    name="ordine_acquisto_elimina",
    summary="Elimina ordine d'acquisto",
    description="Se già ricevuto storna il carico e la fattura fornitore (solo se non pagata).",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_purchase_order(
    po_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: PurchaseOrderService = Depends(get_purchase_order_service),
) -> None:
    await service.delete(db, po_id, actor_id)
    await db.commit()
