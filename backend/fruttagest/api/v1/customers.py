"""
Router FastAPI per i Clienti
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Definisce gli endpoint API per l'anagrafica clienti.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.database import get_db
from fruttagest.schemas.customer import CustomerCreate, CustomerRead
from fruttagest.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/customers",
    tags=["Clienti"],
)


def get_catalog_service() -> CatalogService:
    """Dependency per ottenere un'istanza del CatalogService."""
    return CatalogService()


@router.get(
    "/",
    name="clienti_lista",
    summary="Lista clienti",
    description="Clienti attivi, con ricerca per ragione sociale o codice.",
    response_model=list[CustomerRead],
    status_code=status.HTTP_200_OK,
)
async def list_customers(
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    search: Optional[str] = Query(None, description="Termine di ricerca"),
    db: AsyncSession = Depends(get_db),
    service: CatalogService = Depends(get_catalog_service),
) -> list[CustomerRead]:
    customers, _ = await service.list_customers(db, search=search, page=page, per_page=per_page)
    return [CustomerRead.model_validate(c) for c in customers]


@router.get(
    "/{customer_id}",
    name="cliente_dettaglio",
    summary="Dettaglio cliente",
    response_model=CustomerRead,
    status_code=status.HTTP_200_OK,
)
async def get_customer(
    customer_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: CatalogService = Depends(get_catalog_service),
) -> CustomerRead:
    customer = await service.get_customer(db, customer_id)
    return CustomerRead.model_validate(customer)


@router.post(
    "/",
    name="cliente_crea",
    summary="Crea cliente",
    description="Crea un cliente assegnando il codice progressivo (CLI-YYYY-NNNN).",
    response_model=CustomerRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_customer(
    customer_data: CustomerCreate,
    db: AsyncSession = Depends(get_db),
    service: CatalogService = Depends(get_catalog_service),
) -> CustomerRead:
    """
    Crea un nuovo cliente.

    Args:
        customer_data: Dati anagrafici del cliente
        db: Sessione database
        service: Istanza del CatalogService (iniettata automaticamente)

    Returns:
        CustomerRead: Cliente creato
    """
    customer = await service.create_customer(db, customer_data)
    await db.commit()
    return CustomerRead.model_validate(customer)
