"""
Service per gli Ordini cliente
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Gestisce creazione, modifica, macchina a stati ed eliminazione degli ordini.
Contiene anche i gestori degli effetti a cascata chiamati dai service DDT
e fatture nella stessa transazione:
- DDT consegnato -> ordine DELIVERED (se completamente consegnato)
- tutti i DDT fatturati -> ordine INVOICED
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.config import settings
from fruttagest.core.enums import DeliveryNoteStatus, DocumentType, OrderStatus, StockReferenceType, Unit
from fruttagest.core.exceptions import (
    AppException,
    InvalidTransitionError,
    NotFoundError,
    OrderLockedError,
)
from fruttagest.models.delivery_note import DeliveryNote
from fruttagest.models.order import Order, OrderItem
from fruttagest.schemas.order import (
    LOCKED_ORDER_STATUSES,
    ORDER_TRANSITIONS,
    SYSTEM_ONLY_ORDER_STATUSES,
    CatalogLineCreate,
    OrderCreate,
    OrderUpdate,
)
from fruttagest.services.activity_service import activity_service
from fruttagest.services.catalog_service import catalog_service
from fruttagest.services.numbering_service import numbering_service
from fruttagest.services.shopping_list_service import shopping_list_service
from fruttagest.services.state_machine import compare_and_set_status, ensure_transition
from fruttagest.services.stock_service import stock_service
from fruttagest.services.totals import apply_totals, line_total

logger = logging.getLogger(__name__)


def delivered_quantities(order: Order) -> dict[uuid.UUID, Decimal]:
    """Quantità già inserite nei DDT dell'ordine, per riga d'ordine."""
    delivered: dict[uuid.UUID, Decimal] = {}
    for note in order.delivery_notes:
        for item in note.items:
            if item.order_item_id is not None:
                delivered[item.order_item_id] = delivered.get(item.order_item_id, Decimal("0")) + item.quantity
    return delivered


def residual_quantities(order: Order) -> dict[uuid.UUID, Decimal]:
    """Quantità ancora da consegnare, per riga d'ordine (solo righe con residuo)."""
    delivered = delivered_quantities(order)
    residual = {}
    for item in order.items:
        remaining = item.quantity - delivered.get(item.id, Decimal("0"))
        if remaining > 0:
            residual[item.id] = remaining
    return residual


class OrderService:
    """
    Service per la gestione degli ordini cliente.

    I metodi fanno flush e non commit: il commit è dell'endpoint.
    """

    # ------------------------------------------------------------
    # Lettura
    # ------------------------------------------------------------

    async def get_all(
        self,
        db: AsyncSession,
        status: Optional[OrderStatus] = None,
        customer_id: Optional[uuid.UUID] = None,
        delivery_date: Optional[date] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[list[Order], int]:
        query = select(Order)
        count_query = select(func.count(Order.id))

        filters = []
        if status is not None:
            filters.append(Order.status == OrderStatus(status).value)
        if customer_id is not None:
            filters.append(Order.customer_id == customer_id)
        if delivery_date is not None:
            filters.append(Order.requested_delivery_date == delivery_date)
        if filters:
            query = query.where(*filters)
            count_query = count_query.where(*filters)

        query = query.order_by(Order.order_date.desc(), Order.order_number.desc())
        query = query.offset((page - 1) * per_page).limit(per_page)

        result = await db.execute(query)
        items = list(result.unique().scalars().all())
        total = (await db.execute(count_query)).scalar() or 0
        return items, total

    async def get_by_id(self, db: AsyncSession, order_id: uuid.UUID, for_update: bool = False) -> Order:
        """
        Recupera un ordine con righe e DDT ricaricati dal database.

        Raises:
            NotFoundError: Se l'ordine non esiste
        """
        query = (
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update(of=Order)
        result = await db.execute(query)
        order = result.unique().scalar_one_or_none()
        if order is None:
            raise NotFoundError(f"Ordine con ID {order_id} non trovato")
        return order

    # ------------------------------------------------------------
    # Creazione e modifica
    # ------------------------------------------------------------

    async def _build_items(self, db: AsyncSession, lines: list) -> list[OrderItem]:
        """Converte le righe in input in OrderItem, completando prezzi e IVA dal catalogo."""
        product_ids = [line.product_id for line in lines if isinstance(line, CatalogLineCreate)]
        products = await catalog_service.get_products(db, product_ids)

        items = []
        for position, line in enumerate(lines):
            if isinstance(line, CatalogLineCreate):
                product = products[line.product_id]
                product_id = product.id
                name = product.name
                unit = line.unit.value if line.unit else product.unit
                unit_price = line.unit_price if line.unit_price is not None else product.default_price
                vat_rate = line.vat_rate if line.vat_rate is not None else product.vat_rate
            else:
                product_id = None
                name = line.description
                unit = line.unit.value if line.unit else Unit.KG.value
                unit_price = line.unit_price if line.unit_price is not None else Decimal("0")
                vat_rate = line.vat_rate if line.vat_rate is not None else settings.default_vat_rate

            items.append(
                OrderItem(
                    product_id=product_id,
                    product_name=name,
                    quantity=line.quantity,
                    unit=unit,
                    unit_price=unit_price,
                    vat_rate=vat_rate,
                    line_total=line_total(line.quantity, unit_price),
                    notes=line.notes,
                    sort_order=position,
                )
            )
        return items

    async def create(
        self,
        db: AsyncSession,
        data: OrderCreate,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Order:
        """
        Crea un ordine in stato RECEIVED.

        Raises:
            NotFoundError: Se cliente o prodotti non esistono
        """
        await catalog_service.get_customer(db, data.customer_id)
        items = await self._build_items(db, data.items)

        order = Order(
            order_number=await numbering_service.next_number(db, DocumentType.ORDER),
            customer_id=data.customer_id,
            channel=data.channel.value,
            status=OrderStatus.RECEIVED.value,
            order_date=data.order_date or date.today(),
            requested_delivery_date=data.requested_delivery_date,
            notes=data.notes,
            internal_notes=data.internal_notes,
        )
        order.items = items
        apply_totals(order, items)

        db.add(order)
        await db.flush()
        activity_service.record(
            db, "ORDER_CREATED", "order", order.id, actor_id,
            number=order.order_number, total=order.total,
        )

        logger.info(
            "Creato ordine %s per cliente %s: %s righe, totale %s",
            order.order_number,
            order.customer_id,
            len(items),
            order.total,
        )
        return await self.get_by_id(db, order.id)

    async def update(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        data: OrderUpdate,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Order:
        """
        Aggiorna un ordine. Se sono presenti le righe, le sostituisce tutte
        e ricalcola i totali.

        Raises:
            OrderLockedError: Se l'ordine è fatturato o annullato
        """
        order = await self.get_by_id(db, order_id, for_update=True)
        if order.status in LOCKED_ORDER_STATUSES:
            logger.warning("Modifica rifiutata: ordine %s in stato %s", order.order_number, order.status)
            raise OrderLockedError(extra={"status": order.status})

        changes = data.model_dump(exclude_unset=True, exclude={"items"})
        customer_changed = changes.get("customer_id") not in (None, order.customer_id)
        if order.delivery_notes and (data.items is not None or customer_changed):
            logger.warning(
                "Modifica righe/cliente rifiutata: ordine %s ha %s DDT",
                order.order_number,
                len(order.delivery_notes),
            )
            raise OrderLockedError(
                f"L'ordine {order.order_number} ha già DDT: righe e cliente non sono modificabili",
                error_code="ORDER_HAS_DELIVERY_NOTES",
                extra={"ddt_numbers": [note.ddt_number for note in order.delivery_notes]},
            )
        if "customer_id" in changes and changes["customer_id"] is not None:
            await catalog_service.get_customer(db, changes["customer_id"])
        for field, value in changes.items():
            if field == "channel" and value is not None:
                value = value.value
            if field in ("customer_id", "channel") and value is None:
                continue
            setattr(order, field, value)

        if data.items is not None:
            order.items = await self._build_items(db, data.items)

        apply_totals(order, order.items)
        await db.flush()
        activity_service.record(db, "ORDER_UPDATED", "order", order.id, actor_id, total=order.total)

        logger.info("Aggiornato ordine %s, totale %s", order.order_number, order.total)
        return await self.get_by_id(db, order.id)

    # ------------------------------------------------------------
    # Macchina a stati
    # ------------------------------------------------------------

    async def change_status(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        new_status: OrderStatus,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Order:
        """
        Cambio di stato richiesto dall'operatore.

        DELIVERED e INVOICED non sono richiedibili: arrivano dalla consegna
        del DDT e dalla fatturazione.

        Raises:
            InvalidTransitionError: Se la transizione non è consentita
                o se lo stato è cambiato nel frattempo
        """
        new_status = OrderStatus(new_status)
        order = await self.get_by_id(db, order_id)
        current = OrderStatus(order.status)

        if new_status in SYSTEM_ONLY_ORDER_STATUSES:
            logger.warning(
                "Richiesta diretta di stato %s per ordine %s rifiutata",
                new_status.value,
                order.order_number,
            )
            raise InvalidTransitionError(
                f"Lo stato '{new_status.value}' è raggiunto solo tramite DDT o fattura",
                extra={"current_status": current.value, "requested_status": new_status.value},
            )

        await self._transition(db, order, new_status, actor_id)

        if new_status == OrderStatus.CONFIRMED and order.requested_delivery_date is not None:
            await self._refresh_shopping_list(db, order.requested_delivery_date, actor_id)

        return await self.get_by_id(db, order.id)

    async def _transition(
        self,
        db: AsyncSession,
        order: Order,
        target: OrderStatus,
        actor_id: Optional[uuid.UUID],
    ) -> None:
        current = OrderStatus(order.status)
        ensure_transition(ORDER_TRANSITIONS, current, target, "ordine")
        await db.flush()
        await compare_and_set_status(db, Order, order.id, current, target, "ordine")
        activity_service.record(
            db, "ORDER_STATUS_CHANGED", "order", order.id, actor_id,
            old_status=current.value, new_status=target.value,
        )
        logger.info(
            "Ordine %s: stato %s -> %s",
            order.order_number,
            current.value,
            target.value,
        )

    async def _refresh_shopping_list(
        self,
        db: AsyncSession,
        list_date: date,
        actor_id: Optional[uuid.UUID],
    ) -> None:
        """Riallinea la lista spesa in bozza della data; un errore non blocca la conferma."""
        existing = await shopping_list_service.get_by_date(db, list_date)
        if existing is None or existing.status != "DRAFT":
            return
        try:
            async with db.begin_nested():
                await shopping_list_service.generate_from_orders(db, list_date, actor_id)
        except (AppException, SQLAlchemyError) as e:
            logger.warning("Rigenerazione lista spesa del %s non riuscita: %s", list_date, e)

    # ------------------------------------------------------------
    # Effetti a cascata (chiamati da DDT e fatture)
    # ------------------------------------------------------------

    def is_fully_delivered(self, order: Order) -> bool:
        """Nessun residuo da consegnare e tutti i DDT dell'ordine consegnati."""
        if not order.delivery_notes:
            return False
        if residual_quantities(order):
            return False
        return all(note.status == DeliveryNoteStatus.DELIVERED.value for note in order.delivery_notes)

    def is_fully_invoiced(self, order: Order) -> bool:
        return bool(order.delivery_notes) and all(note.invoice_link is not None for note in order.delivery_notes)

    async def on_delivery_note_delivered(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Order:
        """Porta l'ordine a DELIVERED quando l'ultimo DDT è consegnato."""
        await db.flush()
        order = await self.get_by_id(db, order_id)
        if order.status == OrderStatus.IN_PREPARATION.value and self.is_fully_delivered(order):
            await self._transition(db, order, OrderStatus.DELIVERED, actor_id)
            # un DDT può essere stato fatturato prima della consegna
            await self.on_delivery_notes_invoiced(db, [order.id], actor_id)
        return order

    async def on_delivery_notes_invoiced(
        self,
        db: AsyncSession,
        order_ids: Iterable[uuid.UUID],
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        """Porta a INVOICED gli ordini consegnati con tutti i DDT fatturati."""
        await db.flush()
        for order_id in set(order_ids):
            order = await self.get_by_id(db, order_id)
            if order.status == OrderStatus.DELIVERED.value and self.is_fully_invoiced(order):
                await self._transition(db, order, OrderStatus.INVOICED, actor_id)

    async def on_invoice_removed(
        self,
        db: AsyncSession,
        order_ids: Iterable[uuid.UUID],
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        """
        Compensazione dell'eliminazione fattura: gli ordini INVOICED tornano DELIVERED.

        Non passa dalla tabella delle transizioni: annulla un effetto di sistema.
        """
        await db.flush()
        for order_id in set(order_ids):
            order = await self.get_by_id(db, order_id)
            if order.status != OrderStatus.INVOICED.value:
                continue
            await compare_and_set_status(
                db, Order, order.id, OrderStatus.INVOICED, OrderStatus.DELIVERED, "ordine"
            )
            activity_service.record(
                db, "ORDER_STATUS_CHANGED", "order", order.id, actor_id,
                old_status=OrderStatus.INVOICED.value, new_status=OrderStatus.DELIVERED.value,
            )
            logger.info("Ordine %s riportato a DELIVERED dopo eliminazione fattura", order.order_number)

    # ------------------------------------------------------------
    # Eliminazione
    # ------------------------------------------------------------

    async def delete(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        """
        Elimina un ordine.

        - Ordine INVOICED o con un DDT fatturato: rifiutato (OrderLockedError)
        - DDT in bozza: eliminati insieme all'ordine, con storno del magazzino
        - DDT emessi o consegnati: restano come documenti, scollegati dall'ordine
        """
        order = await self.get_by_id(db, order_id, for_update=True)
        if order.status == OrderStatus.INVOICED.value:
            raise OrderLockedError("Non è possibile eliminare un ordine fatturato")
        if any(note.invoice_link is not None for note in order.delivery_notes):
            raise OrderLockedError("L'ordine ha DDT già fatturati e non può essere eliminato")

        for note in list(order.delivery_notes):
            if note.status == DeliveryNoteStatus.DRAFT.value:
                await stock_service.reverse_document_movements(
                    db, StockReferenceType.DDT, note.id, note.ddt_number, actor_id
                )
                order.delivery_notes.remove(note)
                await db.delete(note)
                logger.info("Eliminato DDT in bozza %s con l'ordine %s", note.ddt_number, order.order_number)
            else:
                note.order_id = None

        activity_service.record(
            db, "ORDER_DELETED", "order", order.id, actor_id, number=order.order_number,
        )
        await db.delete(order)
        await db.flush()
        logger.info("Eliminato ordine %s", order.order_number)


order_service = OrderService()
