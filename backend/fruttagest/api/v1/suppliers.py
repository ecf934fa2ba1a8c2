"""
Router FastAPI per i Fornitori e i loro listini
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import logging
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.database import get_db
from fruttagest.schemas.supplier import (
    SupplierCreate,
    SupplierProductCreate,
    SupplierProductRead,
    SupplierRead,
)
from fruttagest.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/suppliers",
    tags=["Fornitori"],
)


def get_catalog_service() -> CatalogService:
    return CatalogService()


@router.get(
    "/",
    name="fornitori_lista",
    summary="Lista fornitori",
    response_model=list[SupplierRead],
    status_code=status.HTTP_200_OK,
)
async def list_suppliers(
    db: AsyncSession = Depends(get_db),
    service: CatalogService = Depends(get_catalog_service),
) -> list[SupplierRead]:
    suppliers = await service.list_suppliers(db)
    return [SupplierRead.model_validate(s) for s in suppliers]


@router.get(
    "/{supplier_id}",
    name="fornitore_dettaglio",
    summary="Dettaglio fornitore",
    response_model=SupplierRead,
    status_code=status.HTTP_200_OK,
)
async def get_supplier(
    supplier_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: CatalogService = Depends(get_catalog_service),
) -> SupplierRead:
    supplier = await service.get_supplier(db, supplier_id)
    return SupplierRead.model_validate(supplier)


@router.post(
    "/",
    name="fornitore_crea",
    summary="Crea fornitore",
    description="Crea un fornitore assegnando il codice progressivo (FOR-YYYY-NNNN).",
    response_model=SupplierRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_supplier(
    supplier_data: SupplierCreate,
    db: AsyncSession = Depends(get_db),
    service: CatalogService = Depends(get_catalog_service),
) -> SupplierRead:
    supplier = await service.create_supplier(db, supplier_data)
    await db.commit()
    return SupplierRead.model_validate(supplier)


@router.post(
    "/{supplier_id}/products",
    name="fornitore_listino_aggiungi",
    summary="Aggiungi prodotto al listino",
    description=(
        "Aggiunge un prodotto al listino del fornitore. "
        "Con is_preferred=true il fornitore diventa il preferito per quel prodotto."
    ),
    response_model=SupplierProductRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_supplier_product(
    supplier_id: uuid.UUID,
    entry_data: SupplierProductCreate,
    db: AsyncSession = Depends(get_db),
    service: CatalogService = Depends(get_catalog_service),
) -> SupplierProductRead:
    """
    Aggiunge una voce di listino.

    Raises:
        NotFoundError: Se fornitore o prodotto non esistono
        DuplicateError: Se il prodotto è già nel listino
    """
    entry = await service.add_supplier_product(db, supplier_id, entry_data)
    await db.commit()
    return SupplierProductRead.model_validate(entry)
