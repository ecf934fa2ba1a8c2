"""
Router FastAPI per il Magazzino
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import logging
import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.database import get_db
from fruttagest.core.deps import get_actor_id
from fruttagest.core.enums import Unit
from fruttagest.schemas.stock import (
    StockItem,
    StockMovementCreate,
    StockMovementList,
    StockMovementRead,
)
from fruttagest.services.stock_service import StockService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/stock",
    tags=["Magazzino"],
)


def get_stock_service() -> StockService:
    return StockService()


@router.get(
    "/",
    name="magazzino_giacenze",
    summary="Giacenze",
    description="Giacenza calcolata di ogni prodotto attivo, con valore a costo.",
    response_model=list[StockItem],
    status_code=status.HTTP_200_OK,
)
async def get_stock_summary(
    db: AsyncSession = Depends(get_db),
    service: StockService = Depends(get_stock_service),
) -> list[StockItem]:
    return await service.get_stock_summary(db)


@router.get(
    "/products/{product_id}",
    name="magazzino_giacenza_prodotto",
    summary="Giacenza prodotto",
    status_code=status.HTTP_200_OK,
)
async def get_product_stock(
    product_id: uuid.UUID,
    unit: Optional[Unit] = Query(None, description="Solo i movimenti in questa unità"),
    db: AsyncSession = Depends(get_db),
    service: StockService = Depends(get_stock_service),
) -> dict[str, Decimal]:
    current = await service.get_current_stock(db, product_id, unit.value if unit else None)
    return {"current_stock": current}


@router.get(
    "/movements",
    name="magazzino_movimenti",
    summary="Storico movimenti",
    response_model=StockMovementList,
    status_code=status.HTTP_200_OK,
)
async def list_movements(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    product_id: Optional[uuid.UUID] = Query(None),
    reference_id: Optional[uuid.UUID] = Query(None, description="Documento di origine"),
    db: AsyncSession = Depends(get_db),
    service: StockService = Depends(get_stock_service),
) -> StockMovementList:
    movements, total = await service.get_movements(
        db, product_id=product_id, reference_id=reference_id, page=page, per_page=per_page
    )
    return StockMovementList(
        items=[StockMovementRead.model_validate(m) for m in movements],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post(
    "/movements",
    name="magazzino_movimento_crea",
    summary="Registra movimento manuale",
    description="Carichi, scarichi, rettifiche e scarti manuali. La quantità è sempre positiva.",
    response_model=StockMovementRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_movement(
    movement_data: StockMovementCreate,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: StockService = Depends(get_stock_service),
) -> StockMovementRead:
    movement = await service.create_movement(db, movement_data, actor_id)
    await db.commit()
    return StockMovementRead.model_validate(movement)
