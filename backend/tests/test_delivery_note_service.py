"""
Test per il service DDT (documenti di trasporto)
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import uuid
from decimal import Decimal

import pytest

from fruttagest.core.enums import DeliveryNoteStatus, OrderStatus, StockMovementType
from fruttagest.core.exceptions import (
    BusinessValidationError,
    DDTLockedError,
    InvalidTransitionError,
    OrderNotReadyError,
)
from fruttagest.schemas.delivery_note import DeliveryNoteCreate, DeliveryNoteUpdate
from fruttagest.services.delivery_note_service import delivery_note_service
from fruttagest.services.order_service import order_service
from fruttagest.services.stock_service import stock_service

from factories import catalog_line, free_line


async def deliver(db, ddt_id):
    """Emette e consegna un DDT in bozza."""
    await delivery_note_service.change_status(db, ddt_id, DeliveryNoteStatus.ISSUED)
    return await delivery_note_service.change_status(db, ddt_id, DeliveryNoteStatus.DELIVERED)


# ============================================================
# Creazione
# ============================================================


class TestCreateFromOrder:
    """Test per la generazione del DDT da ordine."""

    @pytest.mark.asyncio
    async def test_requires_order_in_preparation(self, db, make_order, apples):
        """Test DDT da ordine solo confermato"""
        order = await make_order([catalog_line(apples, 5)], status=OrderStatus.CONFIRMED)

        with pytest.raises(OrderNotReadyError) as exc_info:
            await delivery_note_service.create_from_order(db, order.id)
        assert exc_info.value.error_code == "ORDER_NOT_READY"

    @pytest.mark.asyncio
    async def test_full_delivery_snapshots_lines(self, db, make_order, apples, basil):
        order = await make_order(
            [catalog_line(apples, 2), catalog_line(basil, 1)], status=OrderStatus.IN_PREPARATION
        )

        ddt = await delivery_note_service.create_from_order(db, order.id)

        assert ddt.status == DeliveryNoteStatus.DRAFT.value
        assert ddt.ddt_number.startswith("DDT-")
        assert ddt.order_id == order.id
        assert ddt.customer_id == order.customer_id
        assert [item.quantity for item in ddt.items] == [Decimal("2"), Decimal("1")]
        assert ddt.total == Decimal("17.24")
        assert ddt.transport_reason == "Vendita"

    @pytest.mark.asyncio
    async def test_stock_unloaded_for_catalog_lines(self, db, make_order, apples, load_stock):
        """Test scarico di magazzino per le sole righe a catalogo"""
        await load_stock(apples, 10)
        order = await make_order(
            [catalog_line(apples, 4), free_line("Fichi d'India", 2)], status=OrderStatus.IN_PREPARATION
        )

        ddt = await delivery_note_service.create_from_order(db, order.id)

        movements, total = await stock_service.get_movements(db, reference_id=ddt.id)
        assert total == 1
        assert movements[0].movement_type == StockMovementType.SCARICO.value
        assert movements[0].reference_number == ddt.ddt_number
        assert await stock_service.get_current_stock(db, apples.id) == Decimal("6")

    @pytest.mark.asyncio
    async def test_partial_deliveries(self, db, make_order, apples):
        """Test consegna in due DDT: 4 kg poi il residuo di 6 kg"""
        order = await make_order([catalog_line(apples, 10)], status=OrderStatus.IN_PREPARATION)
        item_id = order.items[0].id

        first = await delivery_note_service.create_from_order(
            db, order.id, DeliveryNoteCreate(quantities={item_id: Decimal("4")})
        )
        second = await delivery_note_service.create_from_order(db, order.id)

        assert first.items[0].quantity == Decimal("4")
        assert second.items[0].quantity == Decimal("6")
        assert first.ddt_number != second.ddt_number

        with pytest.raises(OrderNotReadyError):
            await delivery_note_service.create_from_order(db, order.id)

    @pytest.mark.asyncio
    async def test_quantity_over_residual(self, db, make_order, apples):
        order = await make_order([catalog_line(apples, 10)], status=OrderStatus.IN_PREPARATION)

        with pytest.raises(BusinessValidationError) as exc_info:
            await delivery_note_service.create_from_order(
                db, order.id, DeliveryNoteCreate(quantities={order.items[0].id: Decimal("12")})
            )
        assert Decimal(exc_info.value.extra["residual"]) == Decimal("10")

    @pytest.mark.asyncio
    async def test_foreign_order_item(self, db, make_order, apples):
        order = await make_order([catalog_line(apples, 10)], status=OrderStatus.IN_PREPARATION)

        with pytest.raises(BusinessValidationError):
            await delivery_note_service.create_from_order(
                db, order.id, DeliveryNoteCreate(quantities={uuid.uuid4(): Decimal("1")})
            )


# ============================================================
# Consegna e stato ordine
# ============================================================


class TestDelivery:

    @pytest.mark.asyncio
    async def test_order_delivered_when_last_ddt_delivered(self, db, make_order, apples):
        """Test ordine DELIVERED solo quando tutto è consegnato"""
        order = await make_order([catalog_line(apples, 10)], status=OrderStatus.IN_PREPARATION)
        item_id = order.items[0].id
        first = await delivery_note_service.create_from_order(
            db, order.id, DeliveryNoteCreate(quantities={item_id: Decimal("4")})
        )
        second = await delivery_note_service.create_from_order(db, order.id)

        delivered = await deliver(db, first.id)
        assert delivered.delivered_at is not None
        order = await order_service.get_by_id(db, order.id)
        assert order.status == OrderStatus.IN_PREPARATION.value

        await deliver(db, second.id)
        order = await order_service.get_by_id(db, order.id)
        assert order.status == OrderStatus.DELIVERED.value

    @pytest.mark.asyncio
    async def test_residual_keeps_order_open(self, db, make_order, apples):
        """Test DDT parziale consegnato: l'ordine resta in preparazione"""
        order = await make_order([catalog_line(apples, 10)], status=OrderStatus.IN_PREPARATION)
        ddt = await delivery_note_service.create_from_order(
            db, order.id, DeliveryNoteCreate(quantities={order.items[0].id: Decimal("4")})
        )

        await deliver(db, ddt.id)

        order = await order_service.get_by_id(db, order.id)
        assert order.status == OrderStatus.IN_PREPARATION.value

    @pytest.mark.asyncio
    async def test_draft_cannot_jump_to_delivered(self, db, make_order, apples):
        order = await make_order([catalog_line(apples, 1)], status=OrderStatus.IN_PREPARATION)
        ddt = await delivery_note_service.create_from_order(db, order.id)

        with pytest.raises(InvalidTransitionError):
            await delivery_note_service.change_status(db, ddt.id, DeliveryNoteStatus.DELIVERED)


# ============================================================
# Modifica ed eliminazione
# ============================================================


class TestEditAndDelete:

    @pytest.mark.asyncio
    async def test_update_header(self, db, make_order, apples):
        order = await make_order([catalog_line(apples, 1)], status=OrderStatus.IN_PREPARATION)
        ddt = await delivery_note_service.create_from_order(db, order.id)

        updated = await delivery_note_service.update(
            db, ddt.id, DeliveryNoteUpdate(number_of_packages=3, goods_appearance="Cassette")
        )

        assert updated.number_of_packages == 3
        assert updated.goods_appearance == "Cassette"

    @pytest.mark.asyncio
    async def test_delivered_ddt_is_locked(self, db, make_order, apples):
        order = await make_order([catalog_line(apples, 1)], status=OrderStatus.IN_PREPARATION)
        ddt = await delivery_note_service.create_from_order(db, order.id)
        await deliver(db, ddt.id)

        with pytest.raises(DDTLockedError):
            await delivery_note_service.update(db, ddt.id, DeliveryNoteUpdate(number_of_packages=1))
        with pytest.raises(DDTLockedError):
            await delivery_note_service.delete(db, ddt.id)

    @pytest.mark.asyncio
    async def test_delete_reverses_stock_and_frees_residual(self, db, make_order, apples, load_stock):
        """Test eliminazione DDT: magazzino ripristinato e quantità di nuovo consegnabili"""
        await load_stock(apples, 10)
        order = await make_order([catalog_line(apples, 4)], status=OrderStatus.IN_PREPARATION)
        ddt = await delivery_note_service.create_from_order(db, order.id)
        assert await stock_service.get_current_stock(db, apples.id) == Decimal("6")

        await delivery_note_service.delete(db, ddt.id)

        assert await stock_service.get_current_stock(db, apples.id) == Decimal("10")
        refreshed = await order_service.get_by_id(db, order.id)
        assert refreshed.delivery_notes == []
        movements, _ = await stock_service.get_movements(db, reference_id=ddt.id)
        assert {m.movement_type for m in movements} == {
            StockMovementType.SCARICO.value,
            StockMovementType.RETTIFICA_POS.value,
        }

        again = await delivery_note_service.create_from_order(db, order.id)
        assert again.items[0].quantity == Decimal("4")
