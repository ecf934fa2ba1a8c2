"""
Router FastAPI per gli Ordini cliente
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Definisce gli endpoint per creazione, modifica, cambio stato ed eliminazione
degli ordini, e per la generazione del DDT da un ordine in preparazione.
"""

import datetime
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.database import get_db
from fruttagest.core.deps import get_actor_id
from fruttagest.core.enums import OrderStatus
from fruttagest.schemas.delivery_note import DeliveryNoteCreate, DeliveryNoteRead
from fruttagest.schemas.order import (
    OrderCreate,
    OrderList,
    OrderRead,
    OrderStatusUpdate,
    OrderUpdate,
)
from fruttagest.services.delivery_note_service import DeliveryNoteService
from fruttagest.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/orders",
    tags=["Ordini"],
)


# -------------------------------------------------------------------
# Dependency Injection
# -------------------------------------------------------------------

def get_order_service() -> OrderService:
    """Dependency per ottenere un'istanza dell'OrderService."""
    return OrderService()


def get_delivery_note_service() -> DeliveryNoteService:
    return DeliveryNoteService()


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@router.get(
    "/",
    name="ordini_lista",
    summary="Lista ordini",
    description="Lista paginata degli ordini con filtri per stato, cliente e data di consegna.",
    response_model=OrderList,
    status_code=status.HTTP_200_OK,
)
async def list_orders(
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    order_status: Optional[OrderStatus] = Query(None, alias="status", description="Filtra per stato"),
    customer_id: Optional[uuid.UUID] = Query(None, description="Filtra per cliente"),
    delivery_date: Optional[datetime.date] = Query(None, description="Filtra per data di consegna"),
    db: AsyncSession = Depends(get_db),
    service: OrderService = Depends(get_order_service),
) -> OrderList:
    orders, total = await service.get_all(
        db,
        status=order_status,
        customer_id=customer_id,
        delivery_date=delivery_date,
        page=page,
        per_page=per_page,
    )
    return OrderList(
        items=[OrderRead.model_validate(o) for o in orders],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/{order_id}",
    name="ordine_dettaglio",
    summary="Dettaglio ordine",
    response_model=OrderRead,
    status_code=status.HTTP_200_OK,
)
async def get_order(
    order_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: OrderService = Depends(get_order_service),
) -> OrderRead:
    order = await service.get_by_id(db, order_id)
    return OrderRead.model_validate(order)


@router.post(
    "/",
    name="ordine_crea",
    summary="Crea ordine",
    description=(
        "Crea un ordine in stato RECEIVED. Le righe possono essere a catalogo "
        "(kind=catalog) o a testo libero (kind=free_text); i totali sono calcolati dal server."
    ),
    response_model=OrderRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_order(
    order_data: OrderCreate,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: OrderService = Depends(get_order_service),
) -> OrderRead:
    """
    Crea un nuovo ordine.

    Args:
        order_data: Testata e righe dell'ordine
        db: Sessione database
        actor_id: Utente che esegue l'operazione (header X-User-Id)
        service: Istanza dell'OrderService (iniettata automaticamente)

    Returns:
        OrderRead: Ordine creato con numero e totali

    Raises:
        NotFoundError: Se cliente o prodotti non esistono
    """
    order = await service.create(db, order_data, actor_id)
    await db.commit()
    return OrderRead.model_validate(order)


@router.put(
    "/{order_id}",
    name="ordine_aggiorna",
    summary="Aggiorna ordine",
    description="Aggiorna testata e, se indicate, sostituisce tutte le righe. Non consentito su ordini fatturati o annullati.",
    response_model=OrderRead,
    status_code=status.HTTP_200_OK,
)
async def update_order(
    order_id: uuid.UUID,
    order_data: OrderUpdate,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: OrderService = Depends(get_order_service),
) -> OrderRead:
    order = await service.update(db, order_id, order_data, actor_id)
    await db.commit()
    return OrderRead.model_validate(order)


@router.patch(
    "/{order_id}/status",
    name="ordine_cambia_stato",
    summary="Cambia stato ordine",
    description=(
        "Transizioni consentite: RECEIVED→CONFIRMED/CANCELLED, CONFIRMED→IN_PREPARATION/CANCELLED. "
        "DELIVERED e INVOICED sono impostati dal sistema."
    ),
    response_model=OrderRead,
    status_code=status.HTTP_200_OK,
)
async def change_order_status(
    order_id: uuid.UUID,
    status_data: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: OrderService = Depends(get_order_service),
) -> OrderRead:
    order = await service.change_status(db, order_id, status_data.status, actor_id)
    await db.commit()
    return OrderRead.model_validate(order)


@router.delete(
    "/{order_id}",
    name="ordine_elimina",
    summary="Elimina ordine",
    description="Elimina un ordine non fatturato. I DDT in bozza sono eliminati, quelli emessi restano scollegati.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_order(
    order_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: OrderService = Depends(get_order_service),
) -> None:
    await service.delete(db, order_id, actor_id)
    await db.commit()


@router.post(
    "/{order_id}/delivery-notes",
    name="ordine_crea_ddt",
    summary="Genera DDT dall'ordine",
    description=(
        "Crea un DDT in bozza con le quantità residue dell'ordine (o quelle indicate "
        "in `quantities` per una consegna parziale). L'ordine deve essere IN_PREPARATION."
    ),
    response_model=DeliveryNoteRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_delivery_note(
    order_id: uuid.UUID,
    ddt_data: Optional[DeliveryNoteCreate] = None,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: DeliveryNoteService = Depends(get_delivery_note_service),
) -> DeliveryNoteRead:
    ddt = await service.create_from_order(db, order_id, ddt_data, actor_id)
    await db.commit()
    return DeliveryNoteRead.model_validate(ddt)
