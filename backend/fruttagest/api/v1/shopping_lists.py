"""
Router FastAPI per la Lista Spesa
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Generazione della lista dagli ordini, modifica delle righe e
generazione degli ordini d'acquisto per fornitore.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.database import get_db
from fruttagest.core.deps import get_actor_id
from fruttagest.core.enums import ShoppingListStatus
from fruttagest.schemas.shopping_list import (
    PurchaseOrderGenerationResult,
    ShoppingListGenerate,
    ShoppingListGenerationResult,
    ShoppingListItemRead,
    ShoppingListItemUpdate,
    ShoppingListRead,
    ShoppingListStatusUpdate,
)
from fruttagest.services.purchase_order_service import PurchaseOrderService
from fruttagest.services.shopping_list_service import ShoppingListService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/shopping-lists",
    tags=["Lista spesa"],
)


def get_shopping_list_service() -> ShoppingListService:
    return ShoppingListService()


def get_purchase_order_service() -> PurchaseOrderService:
    return PurchaseOrderService()


@router.get(
    "/",
    name="liste_spesa_lista",
    summary="Lista delle liste spesa",
    response_model=list[ShoppingListRead],
    status_code=status.HTTP_200_OK,
)
async def list_shopping_lists(
    list_status: Optional[ShoppingListStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    service: ShoppingListService = Depends(get_shopping_list_service),
) -> list[ShoppingListRead]:
    lists = await service.get_all(db, status=list_status)
    return [ShoppingListRead.model_validate(sl) for sl in lists]


@router.get(
    "/{list_id}",
    name="lista_spesa_dettaglio",
    summary="Dettaglio lista spesa",
    response_model=ShoppingListRead,
    status_code=status.HTTP_200_OK,
)
async def get_shopping_list(
    list_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: ShoppingListService = Depends(get_shopping_list_service),
) -> ShoppingListRead:
    shopping_list = await service.get_by_id(db, list_id)
    return ShoppingListRead.model_validate(shopping_list)


@router.post(
    "/generate",
    name="lista_spesa_genera",
    summary="Genera lista spesa",
    description=(
        "Aggrega le righe degli ordini CONFIRMED e IN_PREPARATION con consegna nella data, "
        "le netta rispetto alla giacenza e propone il fornitore preferito. "
        "Rigenerare una lista in bozza conserva fornitore, prezzo, note e flag di ordinato."
    ),
    response_model=ShoppingListGenerationResult,
    status_code=status.HTTP_200_OK,
)
async def generate_shopping_list(
    generate_data: ShoppingListGenerate,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: ShoppingListService = Depends(get_shopping_list_service),
) -> ShoppingListGenerationResult:
    """
    Genera o rigenera la lista spesa della data.

    Senza ordini per la data la risposta ha `error` valorizzato
    (NO_ORDERS_FOR_DATE) e nessuna lista.
    """
    result = await service.generate_from_orders(db, generate_data.list_date, actor_id)
    await db.commit()
    return result


@router.patch(
    "/items/{item_id}",
    name="lista_spesa_riga_aggiorna",
    summary="Aggiorna riga lista spesa",
    response_model=ShoppingListItemRead,
    status_code=status.HTTP_200_OK,
)
async def update_shopping_list_item(
    item_id: uuid.UUID,
    item_data: ShoppingListItemUpdate,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: ShoppingListService = Depends(get_shopping_list_service),
) -> ShoppingListItemRead:
    item = await service.update_item(db, item_id, item_data, actor_id)
    await db.commit()
    return ShoppingListItemRead.model_validate(item)


@router.patch(
    "/{list_id}/status",
    name="lista_spesa_cambia_stato",
    summary="Cambia stato lista spesa",
    description="Sequenza rigida DRAFT→FINALIZED→ORDERED→RECEIVED.",
    response_model=ShoppingListRead,
    status_code=status.HTTP_200_OK,
)
async def change_shopping_list_status(
    list_id: uuid.UUID,
    status_data: ShoppingListStatusUpdate,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: ShoppingListService = Depends(get_shopping_list_service),
) -> ShoppingListRead:
    shopping_list = await service.change_status(db, list_id, status_data.status, actor_id)
    await db.commit()
    return ShoppingListRead.model_validate(shopping_list)


@router.post(
    "/{list_id}/purchase-orders",
    name="lista_spesa_genera_ordini_acquisto",
    summary="Genera ordini d'acquisto",
    description=(
        "Crea un ordine d'acquisto per ogni fornitore con righe da ordinare. "
        "Le righe senza quantità, senza fornitore o già ordinate sono saltate."
    ),
    response_model=PurchaseOrderGenerationResult,
    status_code=status.HTTP_201_CREATED,
)
async def generate_purchase_orders(
    list_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: PurchaseOrderService = Depends(get_purchase_order_service),
) -> PurchaseOrderGenerationResult:
    result = await service.create_from_shopping_list(db, list_id, actor_id)
    await db.commit()
    return result


@router.delete(
    "/{list_id}",
    name="lista_spesa_elimina",
    summary="Elimina lista spesa",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_shopping_list(
    list_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: ShoppingListService = Depends(get_shopping_list_service),
) -> None:
    await service.delete(db, list_id, actor_id)
    await db.commit()
