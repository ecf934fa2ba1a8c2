"""
Router FastAPI per i Prodotti
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.database import get_db
from fruttagest.schemas.product import ProductCreate, ProductRead
from fruttagest.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/products",
    tags=["Prodotti"],
)


def get_catalog_service() -> CatalogService:
    return CatalogService()


@router.get(
    "/",
    name="prodotti_lista",
    summary="Lista prodotti",
    description="Prodotti attivi a catalogo, con ricerca per nome.",
    response_model=list[ProductRead],
    status_code=status.HTTP_200_OK,
)
async def list_products(
    search: Optional[str] = Query(None, description="Termine di ricerca"),
    db: AsyncSession = Depends(get_db),
    service: CatalogService = Depends(get_catalog_service),
) -> list[ProductRead]:
    products = await service.list_products(db, search=search)
    return [ProductRead.model_validate(p) for p in products]


@router.get(
    "/{product_id}",
    name="prodotto_dettaglio",
    summary="Dettaglio prodotto",
    response_model=ProductRead,
    status_code=status.HTTP_200_OK,
)
async def get_product(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: CatalogService = Depends(get_catalog_service),
) -> ProductRead:
    product = await service.get_product(db, product_id)
    return ProductRead.model_validate(product)


@router.post(
    "/",
    name="prodotto_crea",
    summary="Crea prodotto",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_product(
    product_data: ProductCreate,
    db: AsyncSession = Depends(get_db),
    service: CatalogService = Depends(get_catalog_service),
) -> ProductRead:
    product = await service.create_product(db, product_data)
    await db.commit()
    return ProductRead.model_validate(product)
