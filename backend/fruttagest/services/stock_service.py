"""
Service per il magazzino
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Registro movimenti in sola aggiunta. La giacenza è sempre calcolata:
CARICO e RETTIFICA_POS sommano, SCARICO, SCARTO e RETTIFICA_NEG sottraggono.
"""

import logging
import uuid
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.enums import StockMovementType, StockReferenceType
from fruttagest.core.exceptions import BusinessValidationError, NotFoundError
from fruttagest.models.product import Product
from fruttagest.models.stock import StockMovement
from fruttagest.schemas.stock import StockItem, StockMovementCreate

logger = logging.getLogger(__name__)


STOCK_SIGNS: dict[StockMovementType, int] = {
    StockMovementType.CARICO: 1,
    StockMovementType.RETTIFICA_POS: 1,
    StockMovementType.SCARICO: -1,
    StockMovementType.SCARTO: -1,
    StockMovementType.RETTIFICA_NEG: -1,
}


def signed_quantity(movement_type: StockMovementType, quantity: Decimal) -> Decimal:
    """Quantità con il segno del tipo di movimento."""
    return Decimal(quantity) * STOCK_SIGNS[StockMovementType(movement_type)]


def stock_balance(movements: Iterable[StockMovement]) -> Decimal:
    """Giacenza come somma con segno di una serie di movimenti."""
    return sum(
        (signed_quantity(m.movement_type, m.quantity) for m in movements),
        Decimal("0"),
    )


QTY_PLACES = Decimal("0.001")


def to_quantity(value) -> Decimal:
    """Normalizza a Decimal con tre decimali (SQLite può restituire float)."""
    return Decimal(str(value or 0)).quantize(QTY_PLACES)


def _signed_sum():
    positive = [t.value for t, sign in STOCK_SIGNS.items() if sign > 0]
    return func.coalesce(
        func.sum(
            case(
                (StockMovement.movement_type.in_(positive), StockMovement.quantity),
                else_=-StockMovement.quantity,
            )
        ),
        0,
    )


class StockService:
    """
    Service per movimenti e giacenze.

    Gli altri service (DDT, ordini d'acquisto) scrivono i loro movimenti
    tramite record_movement, nella stessa transazione del documento.
    """

    async def record_movement(
        self,
        db: AsyncSession,
        product_id: uuid.UUID,
        movement_type: StockMovementType,
        quantity: Decimal,
        unit: str,
        reference_type: StockReferenceType = StockReferenceType.MANUAL,
        reference_id: Optional[uuid.UUID] = None,
        reference_number: Optional[str] = None,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> StockMovement:
        """Aggiunge un movimento al registro (nessun controllo sull'anagrafica)."""
        if quantity is None or Decimal(quantity) <= 0:
            raise BusinessValidationError("La quantità del movimento deve essere positiva")

        movement = StockMovement(
            product_id=product_id,
            movement_type=StockMovementType(movement_type).value,
            quantity=Decimal(quantity),
            unit=unit,
            reference_type=StockReferenceType(reference_type).value,
            reference_id=reference_id,
            reference_number=reference_number,
            reason=reason,
            notes=notes,
            created_by_id=actor_id,
        )
        db.add(movement)
        return movement

    async def reverse_document_movements(
        self,
        db: AsyncSession,
        reference_type: StockReferenceType,
        reference_id: uuid.UUID,
        reference_number: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> list[StockMovement]:
        """
        Storna l'effetto netto dei movimenti generati da un documento.

        Per ogni (prodotto, unità) scrive una rettifica di segno opposto al saldo:
        chiamarla due volte non produce un secondo storno.
        """
        result = await db.execute(
            select(StockMovement).where(
                StockMovement.reference_type == StockReferenceType(reference_type).value,
                StockMovement.reference_id == reference_id,
            )
        )
        balances: dict[tuple[uuid.UUID, str], Decimal] = {}
        for movement in result.scalars().all():
            key = (movement.product_id, movement.unit)
            balances[key] = balances.get(key, Decimal("0")) + signed_quantity(
                movement.movement_type, movement.quantity
            )

        reversals = []
        for (product_id, unit), balance in balances.items():
            if balance == 0:
                continue
            movement_type = StockMovementType.RETTIFICA_POS if balance < 0 else StockMovementType.RETTIFICA_NEG
            reversals.append(
                await self.record_movement(
                    db,
                    product_id=product_id,
                    movement_type=movement_type,
                    quantity=abs(balance),
                    unit=unit,
                    reference_type=reference_type,
                    reference_id=reference_id,
                    reference_number=reference_number,
                    reason=f"Storno {reference_number or reference_id}",
                    actor_id=actor_id,
                )
            )
        if reversals:
            logger.info(
                "Stornati %s movimenti del documento %s",
                len(reversals),
                reference_number or reference_id,
            )
        return reversals

    async def create_movement(
        self,
        db: AsyncSession,
        data: StockMovementCreate,
        actor_id: Optional[uuid.UUID] = None,
    ) -> StockMovement:
        """
        Registra un movimento manuale.

        Raises:
            NotFoundError: Se il prodotto non esiste
            BusinessValidationError: Se la quantità non è positiva
        """
        product = await db.get(Product, data.product_id)
        if product is None:
            raise NotFoundError(f"Prodotto con ID {data.product_id} non trovato")

        movement = await self.record_movement(
            db,
            product_id=product.id,
            movement_type=data.movement_type,
            quantity=data.quantity,
            unit=(data.unit.value if data.unit else product.unit),
            reference_type=data.reference_type,
            reference_id=data.reference_id,
            reason=data.reason,
            notes=data.notes,
            actor_id=actor_id,
        )
        await db.flush()

        logger.info(
            "Registrato movimento %s per %s: qty=%s",
            movement.movement_type,
            product.name,
            movement.quantity,
        )
        return movement

    async def get_current_stock(
        self,
        db: AsyncSession,
        product_id: uuid.UUID,
        unit: Optional[str] = None,
    ) -> Decimal:
        """Giacenza corrente di un prodotto (opzionalmente per una sola unità di misura)."""
        query = select(_signed_sum()).where(StockMovement.product_id == product_id)
        if unit is not None:
            query = query.where(StockMovement.unit == unit)
        result = await db.execute(query)
        return to_quantity(result.scalar_one())

    async def get_stock_by_product_unit(
        self,
        db: AsyncSession,
        product_ids: Iterable[uuid.UUID],
    ) -> dict[tuple[uuid.UUID, str], Decimal]:
        """Giacenze raggruppate per (prodotto, unità) per un insieme di prodotti."""
        ids = list(set(product_ids))
        if not ids:
            return {}
        result = await db.execute(
            select(StockMovement.product_id, StockMovement.unit, _signed_sum())
            .where(StockMovement.product_id.in_(ids))
            .group_by(StockMovement.product_id, StockMovement.unit)
        )
        return {(row[0], row[1]): to_quantity(row[2]) for row in result.all()}

    async def get_stock_summary(self, db: AsyncSession) -> list[StockItem]:
        """
        Riepilogo giacenze dei prodotti attivi.

        Returns:
            Una voce per prodotto con giacenza, prezzi e valore a costo
        """
        stock = _signed_sum().label("current_stock")
        result = await db.execute(
            select(Product, stock)
            .outerjoin(StockMovement, StockMovement.product_id == Product.id)
            .where(Product.is_active.is_(True))
            .group_by(Product.id)
            .order_by(Product.name)
        )
        summary = []
        for product, current in result.all():
            current = to_quantity(current)
            cost = product.cost_price
            summary.append(
                StockItem(
                    product_id=product.id,
                    product_name=product.name,
                    category=product.category,
                    unit=product.unit,
                    current_stock=current,
                    cost_price=cost,
                    default_price=product.default_price,
                    stock_value=(current * cost).quantize(Decimal("0.01")) if cost is not None else None,
                )
            )
        return summary

    async def get_movements(
        self,
        db: AsyncSession,
        product_id: Optional[uuid.UUID] = None,
        reference_id: Optional[uuid.UUID] = None,
        page: int = 1,
        per_page: int = 50,
    ) -> tuple[list[StockMovement], int]:
        """Storico movimenti, dal più recente."""
        query = select(StockMovement)
        count_query = select(func.count(StockMovement.id))
        if product_id is not None:
            query = query.where(StockMovement.product_id == product_id)
            count_query = count_query.where(StockMovement.product_id == product_id)
        if reference_id is not None:
            query = query.where(StockMovement.reference_id == reference_id)
            count_query = count_query.where(StockMovement.reference_id == reference_id)

        query = query.order_by(StockMovement.created_at.desc()).offset((page - 1) * per_page).limit(per_page)
        items = list((await db.execute(query)).scalars().all())
        total = (await db.execute(count_query)).scalar() or 0
        return items, total


stock_service = StockService()
