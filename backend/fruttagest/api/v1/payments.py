"""
Router FastAPI per i Pagamenti
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.database import get_db
from fruttagest.core.deps import get_actor_id
from fruttagest.core.enums import PaymentDirection
from fruttagest.schemas.invoice import PaymentCreate, PaymentRead
from fruttagest.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/payments",
    tags=["Pagamenti"],
)


def get_payment_service() -> PaymentService:
    return PaymentService()


@router.get(
    "/",
    name="pagamenti_lista",
    summary="Lista pagamenti",
    response_model=list[PaymentRead],
    status_code=status.HTTP_200_OK,
)
async def list_payments(
    invoice_id: Optional[uuid.UUID] = Query(None, description="Filtra per fattura cliente"),
    supplier_invoice_id: Optional[uuid.UUID] = Query(None, description="Filtra per fattura fornitore"),
    direction: Optional[PaymentDirection] = Query(None, description="INCOMING o OUTGOING"),
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> list[PaymentRead]:
    payments = await service.get_all(
        db,
        invoice_id=invoice_id,
        supplier_invoice_id=supplier_invoice_id,
        direction=direction,
    )
    return [PaymentRead.model_validate(p) for p in payments]


@router.post(
    "/",
    name="pagamento_crea",
    summary="Registra pagamento",
    description=(
        "Registra un incasso o un pagamento. Se collegato a una fattura l'importo "
        "non può superare il residuo; a saldo la fattura passa a PAID."
    ),
    response_model=PaymentRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment(
    payment_data: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentRead:
    """
    Registra un pagamento.

    Raises:
        NotFoundError: Se la fattura non esiste
        OverPaymentError: Se l'importo supera il residuo da pagare
    """
    payment = await service.create_payment(db, payment_data, actor_id)
    await db.commit()
    return PaymentRead.model_validate(payment)


@router.delete(
    "/{payment_id}",
    name="pagamento_elimina",
    summary="Elimina pagamento",
    description="Elimina un pagamento e riallinea l'importo pagato della fattura.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_payment(
    payment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor_id: Optional[uuid.UUID] = Depends(get_actor_id),
    service: PaymentService = Depends(get_payment_service),
) -> None:
    await service.delete_payment(db, payment_id, actor_id)
    await db.commit()
