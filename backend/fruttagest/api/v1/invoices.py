"""
Router FastAPI per Fatture cliente e Fatture fornitore
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import datetime
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.database import get_db
from fruttagest.core.deps import get_actor_id
from fruttagest.core.enums import InvoiceStatus
from fruttagest.schemas.invoice import (
    InvoiceCreate,
    InvoiceList,
    InvoiceRead,
    InvoiceStatusUpdate,
    SupplierInvoiceRead,
)
from fruttagest.services.invoice_service import InvoiceService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/invoices",
    tags=["Fatture"],
)

supplier_invoices_router = APIRouter(
    prefix="/supplier-invoices",
    tags=["Fatture fornitore"],
)


def get_invoice_service() -> InvoiceService:
    """Dependency per ottenere un'istanza dell'InvoiceService."""
    return InvoiceService()


# -------------------------------------------------------------------
# Fatture cliente
# -------------------------------------------------------------------

@router.get(
    "/",
    name="fatture_lista",
    summary="Lista fatture",
    description="Lista paginata delle fatture. Il filtro status=OVERDUE restituisce le fatture scadute non pagate.",
    response_model=InvoiceList,
    status_code=status.HTTP_200_OK,
)
async def list_invoices(
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    customer_id: Optional[uuid.UUID] = Query(None, description="Filtra per cliente"),
    invoice_status: Optional[InvoiceStatus] = Query(None, alias="status", description="Filtra per stato"),
    date_from: Optional[datetime.date] = Query(None, description="Data fattura da"),
    date_to: Optional[datetime.date] = Query(None, description="Data fattura a"),
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceList:
    invoices, total = await service.get_all(
        db,
        customer_id=customer_id,
        status=invoice_status,
        date_from=date_from,
        date_to=date_to,
        page=page,
        per_page=per_page,
    )
    return InvoiceList(
        items=[InvoiceRead.model_validate(i) for i in invoices],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/{invoice_id}",
    name="fattura_dettaglio",
    summary="Dettaglio fattura",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def get_invoice(
    invoice_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    invoice = await service.get_by_id(db, invoice_id)
    return InvoiceRead.model_validate(invoice)


@router.post(
    "/",
    name="fattura_crea",
    summary="Crea fattura da DDT",
    description=(
        "Crea una fattura in bozza da uno o più DDT emessi o consegnati dello stesso cliente. "
        "Un DDT può comparire in una sola fattura."
    ),
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_invoice(
    invoice_data: InvoiceCreate,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    """
    Crea una fattura dai DDT indicati.

    Raises:
        NotFoundError: Se cliente o DDT non esistono
        DDTAlreadyInvoicedError: Se un DDT è già fatturato
        BusinessValidationError: Se un DDT appartiene a un altro cliente
    """
    invoice = await service.create_invoice(db, invoice_data, actor_id)
    await db.commit()
    return InvoiceRead.model_validate(invoice)


@router.patch(
    "/{invoice_id}/status",
    name="fattura_cambia_stato",
    summary="Cambia stato fattura",
    description="DRAFT→ISSUED→SENT→PAID, annullamento da DRAFT, ISSUED o SENT.",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def change_invoice_status(
    invoice_id: uuid.UUID,
    status_data: InvoiceStatusUpdate,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    invoice = await service.change_status(db, invoice_id, status_data.status, actor_id)
    await db.commit()
    return InvoiceRead.model_validate(invoice)


@router.delete(
    "/{invoice_id}",
    name="fattura_elimina",
    summary="Elimina fattura",
    description="Elimina una fattura senza pagamenti; i DDT tornano fatturabili.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_invoice(
    invoice_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: InvoiceService = Depends(get_invoice_service),
) -> None:
    await service.delete(db, invoice_id, actor_id)
    await db.commit()


# -------------------------------------------------------------------
# Fatture fornitore
# -------------------------------------------------------------------

@supplier_invoices_router.get(
    "/",
    name="fatture_fornitore_lista",
    summary="Lista fatture fornitore",
    response_model=list[SupplierInvoiceRead],
    status_code=status.HTTP_200_OK,
)
async def list_supplier_invoices(
    supplier_id: Optional[uuid.UUID] = Query(None, description="Filtra per fornitore"),
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> list[SupplierInvoiceRead]:
    invoices = await service.list_supplier_invoices(db, supplier_id=supplier_id)
    return [SupplierInvoiceRead.model_validate(i) for i in invoices]


@supplier_invoices_router.get(
    "/{supplier_invoice_id}",
    name="fattura_fornitore_dettaglio",
    summary="Dettaglio fattura fornitore",
    response_model=SupplierInvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def get_supplier_invoice(
    supplier_invoice_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> SupplierInvoiceRead:
    supplier_invoice = await service.get_supplier_invoice(db, supplier_invoice_id)
    return SupplierInvoiceRead.model_validate(supplier_invoice)
