"""
Service per i Documenti di Trasporto (DDT)
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Un DDT nasce da un ordine in preparazione copiando le righe non ancora
consegnate. La creazione scarica il magazzino, l'eliminazione lo storna.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.enums import (
    DeliveryNoteStatus,
    DocumentType,
    OrderStatus,
    StockMovementType,
    StockReferenceType,
)
from fruttagest.core.exceptions import (
    BusinessValidationError,
    DDTLockedError,
    NotFoundError,
    OrderNotReadyError,
)
from fruttagest.models.delivery_note import DeliveryNote, DeliveryNoteItem
from fruttagest.schemas.delivery_note import DDT_TRANSITIONS, DeliveryNoteCreate, DeliveryNoteUpdate
from fruttagest.services.activity_service import activity_service
from fruttagest.services.numbering_service import numbering_service
from fruttagest.services.order_service import order_service, residual_quantities
from fruttagest.services.state_machine import compare_and_set_status, ensure_transition
from fruttagest.services.stock_service import stock_service
from fruttagest.services.totals import apply_totals, line_total

logger = logging.getLogger(__name__)


class DeliveryNoteService:
    """Service per la gestione dei DDT."""

    async def get_all(
        self,
        db: AsyncSession,
        status: Optional[DeliveryNoteStatus] = None,
        customer_id: Optional[uuid.UUID] = None,
        order_id: Optional[uuid.UUID] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[list[DeliveryNote], int]:
        query = select(DeliveryNote)
        count_query = select(func.count(DeliveryNote.id))

        filters = []
        if status is not None:
            filters.append(DeliveryNote.status == DeliveryNoteStatus(status).value)
        if customer_id is not None:
            filters.append(DeliveryNote.customer_id == customer_id)
        if order_id is not None:
            filters.append(DeliveryNote.order_id == order_id)
        if filters:
            query = query.where(*filters)
            count_query = count_query.where(*filters)

        query = query.order_by(DeliveryNote.issue_date.desc(), DeliveryNote.ddt_number.desc())
        query = query.offset((page - 1) * per_page).limit(per_page)

        items = list((await db.execute(query)).unique().scalars().all())
        total = (await db.execute(count_query)).scalar() or 0
        return items, total

    async def get_by_id(self, db: AsyncSession, ddt_id: uuid.UUID) -> DeliveryNote:
        result = await db.execute(
            select(DeliveryNote)
            .where(DeliveryNote.id == ddt_id)
            .execution_options(populate_existing=True)
        )
        ddt = result.unique().scalar_one_or_none()
        if ddt is None:
            raise NotFoundError(f"DDT con ID {ddt_id} non trovato")
        return ddt

    def _check_editable(self, ddt: DeliveryNote) -> None:
        if ddt.is_invoiced:
            raise DDTLockedError(
                f"Il DDT {ddt.ddt_number} è già fatturato",
                extra={"ddt_number": ddt.ddt_number},
            )
        if ddt.status == DeliveryNoteStatus.DELIVERED.value:
            raise DDTLockedError(
                f"Il DDT {ddt.ddt_number} è già consegnato",
                extra={"ddt_number": ddt.ddt_number},
            )

    async def create_from_order(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        data: Optional[DeliveryNoteCreate] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> DeliveryNote:
        """
        Crea un DDT in bozza dalle quantità residue dell'ordine.

        Senza `quantities` consegna tutto il residuo; altrimenti solo le righe
        indicate, ciascuna al massimo per il suo residuo.

        Raises:
            NotFoundError: Se l'ordine non esiste
            OrderNotReadyError: Se l'ordine non è IN_PREPARATION o non resta nulla da consegnare
            BusinessValidationError: Se una quantità richiesta non è valida
        """
        data = data or DeliveryNoteCreate()
        order = await order_service.get_by_id(db, order_id, for_update=True)

        if order.status != OrderStatus.IN_PREPARATION.value:
            logger.warning(
                "DDT rifiutato: ordine %s in stato %s",
                order.order_number,
                order.status,
            )
            raise OrderNotReadyError(
                f"L'ordine {order.order_number} non è in preparazione",
                extra={"current_status": order.status},
            )

        residual = residual_quantities(order)
        requested = dict(data.quantities) if data.quantities is not None else dict(residual)

        item_ids = {item.id for item in order.items}
        unknown = set(requested) - item_ids
        if unknown:
            raise BusinessValidationError(
                "Righe non appartenenti all'ordine",
                extra={"order_item_ids": sorted(str(u) for u in unknown)},
            )

        items = []
        for order_item in order.items:
            quantity = requested.get(order_item.id)
            if quantity is None or quantity == 0:
                continue
            remaining = residual.get(order_item.id, Decimal("0"))
            if quantity < 0 or quantity > remaining:
                raise BusinessValidationError(
                    f"Quantità non valida per '{order_item.product_name}': residuo {remaining}",
                    extra={"order_item_id": str(order_item.id), "residual": str(remaining)},
                )
            items.append(
                DeliveryNoteItem(
                    order_item_id=order_item.id,
                    product_id=order_item.product_id,
                    product_name=order_item.product_name,
                    quantity=quantity,
                    unit=order_item.unit,
                    unit_price=order_item.unit_price,
                    vat_rate=order_item.vat_rate,
                    line_total=line_total(quantity, order_item.unit_price),
                    notes=order_item.notes,
                    sort_order=len(items),
                )
            )

        if not items:
            raise OrderNotReadyError(f"Nessuna quantità da consegnare per l'ordine {order.order_number}")

        ddt = DeliveryNote(
            ddt_number=await numbering_service.next_number(db, DocumentType.DDT),
            order=order,
            customer_id=order.customer_id,
            status=DeliveryNoteStatus.DRAFT.value,
            issue_date=data.issue_date or date.today(),
            transport_reason=data.transport_reason,
            transported_by=data.transported_by,
            goods_appearance=data.goods_appearance,
            number_of_packages=data.number_of_packages,
            weight=data.weight,
            delivery_notes=data.delivery_notes,
        )
        ddt.items = items
        apply_totals(ddt, items)
        db.add(ddt)
        await db.flush()

        for item in items:
            if item.product_id is None:
                continue
            await stock_service.record_movement(
                db,
                product_id=item.product_id,
                movement_type=StockMovementType.SCARICO,
                quantity=item.quantity,
                unit=item.unit,
                reference_type=StockReferenceType.DDT,
                reference_id=ddt.id,
                reference_number=ddt.ddt_number,
                reason=f"DDT {ddt.ddt_number}",
                actor_id=actor_id,
            )

        activity_service.record(
            db, "DDT_CREATED", "delivery_note", ddt.id, actor_id,
            number=ddt.ddt_number, order=order.order_number,
        )
        await db.flush()

        logger.info(
            "Creato DDT %s dall'ordine %s: %s righe, totale %s",
            ddt.ddt_number,
            order.order_number,
            len(items),
            ddt.total,
        )
        return await self.get_by_id(db, ddt.id)

    async def update(
        self,
        db: AsyncSession,
        ddt_id: uuid.UUID,
        data: DeliveryNoteUpdate,
        actor_id: Optional[uuid.UUID] = None,
    ) -> DeliveryNote:
        """Modifica dei dati di testata (rifiutata se fatturato o consegnato)."""
        ddt = await self.get_by_id(db, ddt_id)
        self._check_editable(ddt)

        for field, value in data.model_dump(exclude_unset=True).items():
            if field in ("issue_date", "transport_reason", "transported_by") and value is None:
                continue
            setattr(ddt, field, value)

        await db.flush()
        activity_service.record(db, "DDT_UPDATED", "delivery_note", ddt.id, actor_id)
        logger.info("Aggiornato DDT %s", ddt.ddt_number)
        return await self.get_by_id(db, ddt.id)

    async def change_status(
        self,
        db: AsyncSession,
        ddt_id: uuid.UUID,
        new_status: DeliveryNoteStatus,
        actor_id: Optional[uuid.UUID] = None,
    ) -> DeliveryNote:
        """
        Avanza lo stato del DDT.

        Il passaggio a DELIVERED è consentito anche su un DDT già fatturato
        e può chiudere l'ordine di origine.

        Raises:
            InvalidTransitionError: Se la transizione non è consentita
        """
        new_status = DeliveryNoteStatus(new_status)
        ddt = await self.get_by_id(db, ddt_id)
        current = DeliveryNoteStatus(ddt.status)
        ensure_transition(DDT_TRANSITIONS, current, new_status, "DDT")

        values = {}
        if new_status == DeliveryNoteStatus.DELIVERED:
            values["delivered_at"] = datetime.now(timezone.utc)
        await compare_and_set_status(db, DeliveryNote, ddt.id, current, new_status, "DDT", **values)

        activity_service.record(
            db, "DDT_STATUS_CHANGED", "delivery_note", ddt.id, actor_id,
            old_status=current.value, new_status=new_status.value,
        )
        logger.info("DDT %s: stato %s -> %s", ddt.ddt_number, current.value, new_status.value)

        if new_status == DeliveryNoteStatus.DELIVERED and ddt.order_id is not None:
            await order_service.on_delivery_note_delivered(db, ddt.order_id, actor_id)

        return await self.get_by_id(db, ddt.id)

    async def delete(
        self,
        db: AsyncSession,
        ddt_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        """
        Elimina un DDT non fatturato e non consegnato, stornando il magazzino.

        Raises:
            DDTLockedError: Se il DDT è fatturato o consegnato
        """
        ddt = await self.get_by_id(db, ddt_id)
        self._check_editable(ddt)

        await stock_service.reverse_document_movements(
            db, StockReferenceType.DDT, ddt.id, ddt.ddt_number, actor_id
        )
        activity_service.record(
            db, "DDT_DELETED", "delivery_note", ddt.id, actor_id, number=ddt.ddt_number,
        )
        if ddt.order is not None and ddt in ddt.order.delivery_notes:
            ddt.order.delivery_notes.remove(ddt)
        await db.delete(ddt)
        await db.flush()
        logger.info("Eliminato DDT %s", ddt.ddt_number)


delivery_note_service = DeliveryNoteService()
