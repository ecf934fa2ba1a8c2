"""
Service per la Lista Spesa
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Aggrega le righe degli ordini confermati o in preparazione per una data
di consegna, le netta rispetto alla giacenza e propone il fornitore preferito.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.enums import ShoppingListStatus
from fruttagest.core.exceptions import (
    ConflictError,
    DuplicateError,
    NoOrdersForDateError,
    NotFoundError,
)
from fruttagest.models.order import Order, OrderItem
from fruttagest.models.shopping_list import ShoppingList, ShoppingListItem
from fruttagest.schemas.order import OPEN_ORDER_STATUSES
from fruttagest.schemas.shopping_list import (
    SHOPPING_LIST_TRANSITIONS,
    GenerationError,
    ShoppingListGenerationResult,
    ShoppingListItemUpdate,
    ShoppingListRead,
)
from fruttagest.services.activity_service import activity_service
from fruttagest.services.catalog_service import catalog_service
from fruttagest.services.netting import aggregate_demand, net_quantity
from fruttagest.services.state_machine import compare_and_set_status, ensure_transition
from fruttagest.services.stock_service import stock_service

logger = logging.getLogger(__name__)


class ShoppingListService:
    """Service per generazione e modifica delle liste spesa."""

    async def get_by_id(self, db: AsyncSession, list_id: uuid.UUID) -> ShoppingList:
        result = await db.execute(
            select(ShoppingList)
            .where(ShoppingList.id == list_id)
            .execution_options(populate_existing=True)
        )
        shopping_list = result.scalar_one_or_none()
        if shopping_list is None:
            raise NotFoundError(f"Lista spesa con ID {list_id} non trovata")
        return shopping_list

    async def get_by_date(self, db: AsyncSession, list_date: date) -> Optional[ShoppingList]:
        result = await db.execute(
            select(ShoppingList)
            .where(ShoppingList.list_date == list_date)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_all(self, db: AsyncSession, status: Optional[ShoppingListStatus] = None) -> list[ShoppingList]:
        query = select(ShoppingList)
        if status is not None:
            query = query.where(ShoppingList.status == ShoppingListStatus(status).value)
        result = await db.execute(query.order_by(ShoppingList.list_date.desc()))
        return list(result.scalars().all())

    async def _open_order_items(self, db: AsyncSession, list_date: date) -> tuple[list[OrderItem], int]:
        """Righe degli ordini aperti con consegna nella data, e numero di ordini."""
        result = await db.execute(
            select(OrderItem)
            .join(Order, Order.id == OrderItem.order_id)
            .where(
                Order.requested_delivery_date == list_date,
                Order.status.in_([s.value for s in OPEN_ORDER_STATUSES]),
            )
        )
        items = list(result.unique().scalars().all())
        return items, len({item.order_id for item in items})

    async def generate_from_orders(
        self,
        db: AsyncSession,
        list_date: date,
        actor_id: Optional[uuid.UUID] = None,
    ) -> ShoppingListGenerationResult:
        """
        Genera o rigenera la lista spesa della data.

        Le quantità sono ricalcolate da zero; fornitore, prezzo, note e
        flag di ordinato delle righe già presenti sono conservati per chiave.
        Senza ordini per la data restituisce un esito con `error` valorizzato.

        Raises:
            ConflictError: Se la lista esiste e non è più in bozza
        """
        order_items, order_count = await self._open_order_items(db, list_date)
        if not order_items:
            error = NoOrdersForDateError(f"Nessun ordine confermato per il {list_date.isoformat()}")
            logger.info("Lista spesa del %s non generata: nessun ordine", list_date)
            return ShoppingListGenerationResult(
                error=GenerationError(error_code=error.error_code, detail=error.detail),
            )

        shopping_list = await self.get_by_date(db, list_date)
        if shopping_list is not None and shopping_list.status != ShoppingListStatus.DRAFT.value:
            raise ConflictError(
                f"La lista spesa del {list_date.isoformat()} è in stato {shopping_list.status} "
                "e non può essere rigenerata",
                error_code="SHOPPING_LIST_LOCKED",
                extra={"status": shopping_list.status},
            )

        demand = aggregate_demand(order_items)
        product_ids = [line.product_id for line in demand if line.product_id is not None]
        stock = await stock_service.get_stock_by_product_unit(db, product_ids)
        preferred = await catalog_service.get_preferred_suppliers(db, product_ids)

        regenerated = shopping_list is not None
        if shopping_list is None:
            shopping_list = ShoppingList(list_date=list_date, status=ShoppingListStatus.DRAFT.value)
            shopping_list.items = []
        previous = {item.line_key: item for item in shopping_list.items}

        items = []
        for line in demand:
            available = Decimal("0")
            if line.product_id is not None:
                available = stock.get((line.product_id, line.unit), Decimal("0"))

            item = previous.pop(line.line_key, None)
            if item is None:
                entry = preferred.get(line.product_id) if line.product_id is not None else None
                item = ShoppingListItem(
                    line_key=line.line_key,
                    product_id=line.product_id,
                    supplier_id=entry.supplier_id if entry else None,
                    supplier_price=entry.price if entry else None,
                    is_ordered=False,
                )
            item.product_name = line.product_name
            item.unit = line.unit
            item.total_quantity = line.total_quantity
            item.available_stock = available
            item.net_quantity = net_quantity(line.total_quantity, available)
            items.append(item)

        shopping_list.items = items

        try:
            async with db.begin_nested():
                db.add(shopping_list)
        except IntegrityError:
            raise DuplicateError(f"Lista spesa del {list_date.isoformat()} già creata da un'altra operazione")

        activity_service.record(
            db, "SHOPPING_LIST_GENERATED", "shopping_list", shopping_list.id, actor_id,
            date=list_date, lines=len(items), regenerated=regenerated,
        )
        logger.info(
            "Lista spesa del %s %s: %s righe da %s ordini (%s righe rimosse)",
            list_date,
            "rigenerata" if regenerated else "generata",
            len(items),
            order_count,
            len(previous),
        )
        return ShoppingListGenerationResult(
            shopping_list=ShoppingListRead.model_validate(shopping_list),
            regenerated=regenerated,
            order_count=order_count,
        )

    async def update_item(
        self,
        db: AsyncSession,
        item_id: uuid.UUID,
        data: ShoppingListItemUpdate,
        actor_id: Optional[uuid.UUID] = None,
    ) -> ShoppingListItem:
        """
        Modifica una riga (fornitore, prezzo, quantità, note, ordinato).

        Raises:
            NotFoundError: Se la riga o il fornitore non esistono
            ConflictError: Se la lista è già RECEIVED
        """
        item = await db.get(ShoppingListItem, item_id)
        if item is None:
            raise NotFoundError(f"Riga lista spesa con ID {item_id} non trovata")
        shopping_list = await self.get_by_id(db, item.shopping_list_id)
        if shopping_list.status == ShoppingListStatus.RECEIVED.value:
            raise ConflictError(
                "La lista spesa è già ricevuta e non può essere modificata",
                error_code="SHOPPING_LIST_LOCKED",
            )

        changes = data.model_dump(exclude_unset=True)
        if changes.get("supplier_id") is not None:
            await catalog_service.get_supplier(db, changes["supplier_id"])
        for field, value in changes.items():
            if field in ("is_ordered", "total_quantity") and value is None:
                continue
            setattr(item, field, value)
        item.net_quantity = net_quantity(item.total_quantity, item.available_stock)

        await db.flush()
        activity_service.record(
            db, "SHOPPING_LIST_ITEM_UPDATED", "shopping_list", shopping_list.id, actor_id,
            line=item.line_key,
        )
        logger.info("Aggiornata riga %s della lista del %s", item.line_key, shopping_list.list_date)
        return item

    async def change_status(
        self,
        db: AsyncSession,
        list_id: uuid.UUID,
        new_status: ShoppingListStatus,
        actor_id: Optional[uuid.UUID] = None,
    ) -> ShoppingList:
        """Avanza la lista di un passo (DRAFT -> FINALIZED -> ORDERED -> RECEIVED)."""
        new_status = ShoppingListStatus(new_status)
        shopping_list = await self.get_by_id(db, list_id)
        current = ShoppingListStatus(shopping_list.status)
        ensure_transition(SHOPPING_LIST_TRANSITIONS, current, new_status, "lista spesa")
        await compare_and_set_status(db, ShoppingList, shopping_list.id, current, new_status, "lista spesa")

        activity_service.record(
            db, "SHOPPING_LIST_STATUS_CHANGED", "shopping_list", shopping_list.id, actor_id,
            old_status=current.value, new_status=new_status.value,
        )
        logger.info(
            "Lista spesa del %s: stato %s -> %s",
            shopping_list.list_date,
            current.value,
            new_status.value,
        )
        return await self.get_by_id(db, shopping_list.id)

    async def delete(
        self,
        db: AsyncSession,
        list_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        """
        Elimina una lista senza ordini d'acquisto.

        Raises:
            ConflictError: Se dalla lista sono già stati generati ordini d'acquisto
        """
        shopping_list = await self.get_by_id(db, list_id)
        if shopping_list.purchase_orders:
            raise ConflictError(
                "La lista spesa ha ordini d'acquisto collegati",
                error_code="SHOPPING_LIST_LOCKED",
            )
        activity_service.record(
            db, "SHOPPING_LIST_DELETED", "shopping_list", shopping_list.id, actor_id,
            date=shopping_list.list_date,
        )
        await db.delete(shopping_list)
        await db.flush()
        logger.info("Eliminata lista spesa del %s", shopping_list.list_date)


shopping_list_service = ShoppingListService()
