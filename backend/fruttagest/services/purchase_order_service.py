"""
Service per gli Ordini d'acquisto
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Genera un ordine per fornitore dalla lista spesa e gestisce il ricevimento
merce: carico di magazzino e fattura fornitore nella stessa transazione.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.config import settings
from fruttagest.core.enums import (
    DocumentType,
    PurchaseOrderStatus,
    ShoppingListStatus,
    StockMovementType,
    StockReferenceType,
)
from fruttagest.core.exceptions import ConflictError, NoSupplierAssignedError, NotFoundError
from fruttagest.models.purchase_order import PurchaseOrder, PurchaseOrderItem
from fruttagest.models.shopping_list import ShoppingList, ShoppingListItem
from fruttagest.schemas.purchase_order import PURCHASE_ORDER_TRANSITIONS
from fruttagest.schemas.shopping_list import SHOPPING_LIST_TRANSITIONS, PurchaseOrderGenerationResult
from fruttagest.services.activity_service import activity_service
from fruttagest.services.catalog_service import catalog_service
from fruttagest.services.invoice_service import invoice_service
from fruttagest.services.netting import group_for_purchase
from fruttagest.services.numbering_service import numbering_service
from fruttagest.services.shopping_list_service import shopping_list_service
from fruttagest.services.state_machine import compare_and_set_status, ensure_transition
from fruttagest.services.stock_service import stock_service
from fruttagest.services.totals import HUNDRED, line_total, money

logger = logging.getLogger(__name__)

# Stati della lista da cui si possono generare gli ordini d'acquisto
ORDERABLE_LIST_STATUSES = (ShoppingListStatus.DRAFT, ShoppingListStatus.FINALIZED)


class PurchaseOrderService:
    """Service per generazione, invio e ricevimento degli ordini d'acquisto."""

    async def get_by_id(self, db: AsyncSession, po_id: uuid.UUID) -> PurchaseOrder:
        result = await db.execute(
            select(PurchaseOrder)
            .where(PurchaseOrder.id == po_id)
            .execution_options(populate_existing=True)
        )
        purchase_order = result.unique().scalar_one_or_none()
        if purchase_order is None:
            raise NotFoundError(f"Ordine d'acquisto con ID {po_id} non trovato")
        return purchase_order

    async def get_all(
        self,
        db: AsyncSession,
        supplier_id: Optional[uuid.UUID] = None,
        shopping_list_id: Optional[uuid.UUID] = None,
        status: Optional[PurchaseOrderStatus] = None,
    ) -> list[PurchaseOrder]:
        query = select(PurchaseOrder)
        if supplier_id is not None:
            query = query.where(PurchaseOrder.supplier_id == supplier_id)
        if shopping_list_id is not None:
            query = query.where(PurchaseOrder.shopping_list_id == shopping_list_id)
        if status is not None:
            query = query.where(PurchaseOrder.status == PurchaseOrderStatus(status).value)
        result = await db.execute(query.order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.po_number))
        return list(result.unique().scalars().all())

    # ------------------------------------------------------------
    # Generazione dalla lista spesa
    # ------------------------------------------------------------

    async def create_from_shopping_list(
        self,
        db: AsyncSession,
        list_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PurchaseOrderGenerationResult:
        """
        Crea un ordine d'acquisto in bozza per ogni fornitore della lista.

        Le righe senza quantità netta, senza fornitore o già ordinate sono saltate.
        Il prezzo viene dal listino del fornitore; senza listino resta vuoto
        e la riga non contribuisce ai totali. La lista avanza a ORDERED.

        Raises:
            ConflictError: Se la lista è già ORDERED o RECEIVED
            NoSupplierAssignedError: Se nessuna riga ha un fornitore
        """
        shopping_list = await shopping_list_service.get_by_id(db, list_id)
        if shopping_list.status not in {s.value for s in ORDERABLE_LIST_STATUSES}:
            raise ConflictError(
                f"La lista spesa del {shopping_list.list_date.isoformat()} è già in stato {shopping_list.status}",
                error_code="SHOPPING_LIST_LOCKED",
                extra={"status": shopping_list.status},
            )
        if not any(item.supplier_id is not None for item in shopping_list.items):
            raise NoSupplierAssignedError("Nessuna riga della lista ha un fornitore assegnato")

        groups, skipped = group_for_purchase(shopping_list.items)
        po_numbers = []
        for supplier_id, items in groups.items():
            purchase_order = await self._build_purchase_order(db, shopping_list, supplier_id, items)
            po_numbers.append(purchase_order.po_number)

        if po_numbers:
            await self._advance_list(db, shopping_list, ShoppingListStatus.ORDERED, actor_id)

        activity_service.record(
            db, "PURCHASE_ORDERS_GENERATED", "shopping_list", shopping_list.id, actor_id,
            created=len(po_numbers), skipped=skipped,
        )
        logger.info(
            "Lista del %s: creati %s ordini d'acquisto, %s righe saltate",
            shopping_list.list_date,
            len(po_numbers),
            skipped,
        )
        return PurchaseOrderGenerationResult(
            created_count=len(po_numbers),
            po_numbers=po_numbers,
            skipped_count=skipped,
        )

    async def _build_purchase_order(
        self,
        db: AsyncSession,
        shopping_list: ShoppingList,
        supplier_id: uuid.UUID,
        list_items: list[ShoppingListItem],
    ) -> PurchaseOrder:
        catalog = await catalog_service.get_catalog_prices(
            db, supplier_id, [i.product_id for i in list_items if i.product_id is not None]
        )

        items = []
        for list_item in list_items:
            entry = catalog.get(list_item.product_id) if list_item.product_id is not None else None
            unit_price = entry.price if entry is not None else None
            items.append(
                PurchaseOrderItem(
                    shopping_list_item_id=list_item.id,
                    product_id=list_item.product_id,
                    product_name=list_item.product_name,
                    quantity=list_item.net_quantity,
                    unit=list_item.unit,
                    unit_price=unit_price,
                    line_total=line_total(list_item.net_quantity, unit_price) if unit_price is not None else None,
                )
            )
            list_item.is_ordered = True

        subtotal = money(sum((i.line_total for i in items if i.line_total is not None), Decimal("0")))
        vat_amount = money(subtotal * settings.purchase_order_vat_rate / HUNDRED)

        purchase_order = PurchaseOrder(
            po_number=await numbering_service.next_number(db, DocumentType.PURCHASE_ORDER),
            supplier_id=supplier_id,
            shopping_list_id=shopping_list.id,
            status=PurchaseOrderStatus.DRAFT.value,
            order_date=date.today(),
            expected_date=shopping_list.list_date,
            subtotal=subtotal,
            vat_amount=vat_amount,
            total=subtotal + vat_amount,
            notes=f"Generato da lista spesa del {shopping_list.list_date.isoformat()}",
        )
        purchase_order.items = items
        db.add(purchase_order)
        await db.flush()

        logger.info(
            "Creato ordine d'acquisto %s per fornitore %s: %s righe, totale %s",
            purchase_order.po_number,
            supplier_id,
            len(items),
            purchase_order.total,
        )
        return purchase_order

    async def _advance_list(
        self,
        db: AsyncSession,
        shopping_list: ShoppingList,
        target: ShoppingListStatus,
        actor_id: Optional[uuid.UUID],
    ) -> None:
        """Porta la lista fino a `target` un passo alla volta."""
        await db.flush()
        order = list(SHOPPING_LIST_TRANSITIONS)
        current = ShoppingListStatus(shopping_list.status)
        while order.index(current) < order.index(target):
            step = SHOPPING_LIST_TRANSITIONS[current][0]
            ensure_transition(SHOPPING_LIST_TRANSITIONS, current, step, "lista spesa")
            await compare_and_set_status(db, ShoppingList, shopping_list.id, current, step, "lista spesa")
            activity_service.record(
                db, "SHOPPING_LIST_STATUS_CHANGED", "shopping_list", shopping_list.id, actor_id,
                old_status=current.value, new_status=step.value,
            )
            current = step

    # ------------------------------------------------------------
    # Stato e ricevimento
    # ------------------------------------------------------------

    async def change_status(
        self,
        db: AsyncSession,
        po_id: uuid.UUID,
        new_status: PurchaseOrderStatus,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PurchaseOrder:
        """
        Cambio di stato dell'ordine d'acquisto.

        Il passaggio a RECEIVED carica il magazzino, crea la fattura fornitore
        e, se tutti gli ordini della lista sono ricevuti, chiude la lista.
        """
        new_status = PurchaseOrderStatus(new_status)
        purchase_order = await self.get_by_id(db, po_id)
        current = PurchaseOrderStatus(purchase_order.status)
        ensure_transition(PURCHASE_ORDER_TRANSITIONS, current, new_status, "ordine d'acquisto")

        values = {}
        if new_status == PurchaseOrderStatus.RECEIVED:
            values["received_at"] = datetime.now(timezone.utc)
        await compare_and_set_status(
            db, PurchaseOrder, purchase_order.id, current, new_status, "ordine d'acquisto", **values
        )
        activity_service.record(
            db, "PURCHASE_ORDER_STATUS_CHANGED", "purchase_order", purchase_order.id, actor_id,
            old_status=current.value, new_status=new_status.value,
        )
        logger.info(
            "Ordine d'acquisto %s: stato %s -> %s",
            purchase_order.po_number,
            current.value,
            new_status.value,
        )

        if new_status == PurchaseOrderStatus.RECEIVED:
            await self._receive(db, purchase_order, actor_id)
        elif new_status == PurchaseOrderStatus.CANCELLED:
            await self._release_list_items(db, purchase_order)

        return await self.get_by_id(db, purchase_order.id)

    async def _receive(
        self,
        db: AsyncSession,
        purchase_order: PurchaseOrder,
        actor_id: Optional[uuid.UUID],
    ) -> None:
        for item in purchase_order.items:
            if item.product_id is None:
                continue
            await stock_service.record_movement(
                db,
                product_id=item.product_id,
                movement_type=StockMovementType.CARICO,
                quantity=item.quantity,
                unit=item.unit,
                reference_type=StockReferenceType.PURCHASE_ORDER,
                reference_id=purchase_order.id,
                reference_number=purchase_order.po_number,
                reason=f"Ricevimento {purchase_order.po_number}",
                actor_id=actor_id,
            )

        await invoice_service.create_supplier_invoice(db, purchase_order, actor_id)

        if purchase_order.shopping_list_id is None:
            return
        shopping_list = await shopping_list_service.get_by_id(db, purchase_order.shopping_list_id)
        active = [
            po for po in shopping_list.purchase_orders
            if po.status != PurchaseOrderStatus.CANCELLED.value
        ]
        if (
            shopping_list.status == ShoppingListStatus.ORDERED.value
            and active
            and all(po.status == PurchaseOrderStatus.RECEIVED.value for po in active)
        ):
            await self._advance_list(db, shopping_list, ShoppingListStatus.RECEIVED, actor_id)
            logger.info("Lista spesa del %s ricevuta", shopping_list.list_date)

    async def _release_list_items(self, db: AsyncSession, purchase_order: PurchaseOrder) -> None:
        """Le righe di lista di un ordine annullato o eliminato tornano ordinabili."""
        ids = [item.shopping_list_item_id for item in purchase_order.items if item.shopping_list_item_id]
        if not ids:
            return
        result = await db.execute(select(ShoppingListItem).where(ShoppingListItem.id.in_(ids)))
        for list_item in result.scalars().all():
            list_item.is_ordered = False
        await db.flush()

    async def delete(
        self,
        db: AsyncSession,
        po_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        """
        Elimina un ordine d'acquisto.

        Se già ricevuto storna il carico di magazzino ed elimina la fattura
        fornitore, purché non abbia pagamenti.

        Raises:
            ConflictError: Se la fattura fornitore ha pagamenti registrati
        """
        purchase_order = await self.get_by_id(db, po_id)
        supplier_invoice = purchase_order.supplier_invoice
        if supplier_invoice is not None and supplier_invoice.paid_amount > 0:
            raise ConflictError(
                f"La fattura fornitore {supplier_invoice.invoice_number} ha pagamenti registrati",
                error_code="PURCHASE_ORDER_LOCKED",
            )

        if purchase_order.status == PurchaseOrderStatus.RECEIVED.value:
            await stock_service.reverse_document_movements(
                db,
                StockReferenceType.PURCHASE_ORDER,
                purchase_order.id,
                purchase_order.po_number,
                actor_id,
            )
        if supplier_invoice is not None:
            await db.delete(supplier_invoice)
        await self._release_list_items(db, purchase_order)

        activity_service.record(
            db, "PURCHASE_ORDER_DELETED", "purchase_order", purchase_order.id, actor_id,
            number=purchase_order.po_number,
        )
        await db.delete(purchase_order)
        await db.flush()
        logger.info("Eliminato ordine d'acquisto %s", purchase_order.po_number)


purchase_order_service = PurchaseOrderService()
