"""
Test per il service Ordini cliente
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import uuid
from decimal import Decimal

import pytest

from fruttagest.core.enums import DeliveryNoteStatus, OrderStatus
from fruttagest.core.exceptions import InvalidTransitionError, NotFoundError, OrderLockedError
from fruttagest.models.delivery_note import DeliveryNote
from fruttagest.schemas.delivery_note import DeliveryNoteCreate
from fruttagest.schemas.order import CatalogLineCreate, OrderCreate, OrderUpdate
from fruttagest.services.activity_service import activity_service
from fruttagest.services.delivery_note_service import delivery_note_service
from fruttagest.services.order_service import order_service, residual_quantities
from fruttagest.services.stock_service import stock_service

from factories import catalog_line, free_line


# ============================================================
# Creazione
# ============================================================


class TestCreateOrder:
    """Test per la creazione degli ordini."""

    @pytest.mark.asyncio
    async def test_totals_from_catalog_prices(self, db, make_order, apples, basil):
        """Test 2 kg mele (3.00, 4%) + 1 mazzo basilico (10.00, 10%) = 17.24"""
        order = await make_order([catalog_line(apples, 2), catalog_line(basil, 1)])

        assert order.status == OrderStatus.RECEIVED.value
        assert order.order_number.startswith("ORD-")
        assert order.subtotal == Decimal("16.00")
        assert order.vat_amount == Decimal("1.24")
        assert order.total == Decimal("17.24")

        apples_line = order.items[0]
        assert apples_line.kind == "catalog"
        assert apples_line.product_name == "Mele Golden"
        assert apples_line.unit == "KG"
        assert apples_line.unit_price == Decimal("3.00")

    @pytest.mark.asyncio
    async def test_free_text_defaults(self, db, make_order):
        """Test riga a testo libero: KG, prezzo zero, IVA di default"""
        order = await make_order([free_line("Fichi d'India", 3)])

        item = order.items[0]
        assert item.kind == "free_text"
        assert item.product_id is None
        assert item.product_name == "Fichi d'India"
        assert item.unit == "KG"
        assert item.unit_price == Decimal("0")
        assert item.vat_rate == Decimal("4.00")
        assert order.total == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_price_override(self, db, make_order, apples):
        order = await make_order([catalog_line(apples, 10, unit_price=Decimal("2.50"))])
        assert order.subtotal == Decimal("25.00")

    @pytest.mark.asyncio
    async def test_unknown_product(self, db, make_order):
        """Test prodotto inesistente"""
        with pytest.raises(NotFoundError):
            await make_order([CatalogLineCreate(product_id=uuid.uuid4(), quantity=Decimal("1"))])

    @pytest.mark.asyncio
    async def test_unknown_customer(self, db, apples):
        with pytest.raises(NotFoundError):
            await order_service.create(
                db, OrderCreate(customer_id=uuid.uuid4(), items=[catalog_line(apples, 1)])
            )

    @pytest.mark.asyncio
    async def test_activity_recorded(self, db, make_order, apples):
        order = await make_order([catalog_line(apples, 1)])
        await db.flush()

        logs = await activity_service.get_for_entity(db, "order", order.id)
        actions = [log.action for log in logs]
        assert "ORDER_CREATED" in actions


# ============================================================
# Modifica
# ============================================================


class TestUpdateOrder:

    @pytest.mark.asyncio
    async def test_replace_items_recomputes_totals(self, db, make_order, apples, basil):
        order = await make_order([catalog_line(apples, 2)])

        updated = await order_service.update(
            db, order.id, OrderUpdate(items=[catalog_line(basil, 3)], notes="Consegna entro le 7")
        )

        assert len(updated.items) == 1
        assert updated.items[0].product_name == "Basilico"
        assert updated.subtotal == Decimal("30.00")
        assert updated.total == Decimal("33.00")
        assert updated.notes == "Consegna entro le 7"

    @pytest.mark.asyncio
    async def test_cancelled_order_is_locked(self, db, make_order, apples):
        """Test modifica di un ordine annullato"""
        order = await make_order([catalog_line(apples, 2)])
        await order_service.change_status(db, order.id, OrderStatus.CANCELLED)

        with pytest.raises(OrderLockedError) as exc_info:
            await order_service.update(db, order.id, OrderUpdate(notes="troppo tardi"))
        assert exc_info.value.error_code == "ORDER_LOCKED"

    @pytest.mark.asyncio
    async def test_items_locked_once_ddt_exists(self, db, make_order, apples, load_stock):
        """Test righe non sostituibili dopo il DDT: nessuna seconda consegna"""
        await load_stock(apples, 20)
        order = await make_order([catalog_line(apples, 10)], status=OrderStatus.IN_PREPARATION)
        ddt = await delivery_note_service.create_from_order(db, order.id)

        with pytest.raises(OrderLockedError) as exc_info:
            await order_service.update(db, order.id, OrderUpdate(items=[catalog_line(apples, 10)]))
        assert exc_info.value.error_code == "ORDER_HAS_DELIVERY_NOTES"
        assert exc_info.value.extra["ddt_numbers"] == [ddt.ddt_number]

        refreshed = await order_service.get_by_id(db, order.id)
        assert residual_quantities(refreshed) == {}
        assert await stock_service.get_current_stock(db, apples.id) == Decimal("10")

        updated = await order_service.update(db, order.id, OrderUpdate(notes="Scarico al retro"))
        assert updated.notes == "Scarico al retro"


# ============================================================
# Macchina a stati
# ============================================================


class TestOrderStatus:

    @pytest.mark.asyncio
    async def test_forward_path(self, db, make_order, apples):
        order = await make_order([catalog_line(apples, 2)], status=OrderStatus.IN_PREPARATION)
        assert order.status == OrderStatus.IN_PREPARATION.value

    @pytest.mark.asyncio
    async def test_delivered_cannot_be_requested(self, db, make_order, apples):
        """Test DELIVERED è raggiunto solo tramite DDT"""
        order = await make_order([catalog_line(apples, 2)], status=OrderStatus.IN_PREPARATION)

        with pytest.raises(InvalidTransitionError):
            await order_service.change_status(db, order.id, OrderStatus.DELIVERED)

        order = await order_service.get_by_id(db, order.id)
        assert order.status == OrderStatus.IN_PREPARATION.value

    @pytest.mark.asyncio
    async def test_skipping_a_step_is_rejected(self, db, make_order, apples):
        order = await make_order([catalog_line(apples, 2)])

        with pytest.raises(InvalidTransitionError) as exc_info:
            await order_service.change_status(db, order.id, OrderStatus.IN_PREPARATION)
        assert exc_info.value.extra["current_status"] == "RECEIVED"

    @pytest.mark.asyncio
    async def test_in_preparation_cannot_be_cancelled(self, db, make_order, apples):
        order = await make_order([catalog_line(apples, 2)], status=OrderStatus.IN_PREPARATION)
        with pytest.raises(InvalidTransitionError):
            await order_service.change_status(db, order.id, OrderStatus.CANCELLED)


# ============================================================
# Eliminazione
# ============================================================


class TestDeleteOrder:

    @pytest.mark.asyncio
    async def test_delete_with_draft_ddt_reverses_stock(self, db, make_order, apples, load_stock):
        """Test eliminazione ordine con DDT in bozza: DDT eliminato e magazzino ripristinato"""
        await load_stock(apples, 20)
        order = await make_order([catalog_line(apples, 5)], status=OrderStatus.IN_PREPARATION)
        ddt = await delivery_note_service.create_from_order(db, order.id)
        assert await stock_service.get_current_stock(db, apples.id) == Decimal("15")

        await order_service.delete(db, order.id)

        assert await stock_service.get_current_stock(db, apples.id) == Decimal("20")
        assert await db.get(DeliveryNote, ddt.id) is None
        with pytest.raises(NotFoundError):
            await order_service.get_by_id(db, order.id)

    @pytest.mark.asyncio
    async def test_delete_keeps_issued_ddt(self, db, make_order, apples):
        """Test i DDT emessi restano come documenti scollegati"""
        order = await make_order([catalog_line(apples, 5)], status=OrderStatus.IN_PREPARATION)
        ddt = await delivery_note_service.create_from_order(db, order.id)
        await delivery_note_service.change_status(db, ddt.id, DeliveryNoteStatus.ISSUED)

        await order_service.delete(db, order.id)

        kept = await delivery_note_service.get_by_id(db, ddt.id)
        assert kept.order_id is None
        assert kept.status == DeliveryNoteStatus.ISSUED.value


# ============================================================
# Residui
# ============================================================


class TestResidualQuantities:

    @pytest.mark.asyncio
    async def test_partial_delivery_leaves_residual(self, db, make_order, apples, basil):
        order = await make_order(
            [catalog_line(apples, 10), catalog_line(basil, 2)], status=OrderStatus.IN_PREPARATION
        )
        apples_item = order.items[0]
        await delivery_note_service.create_from_order(
            db, order.id, DeliveryNoteCreate(quantities={apples_item.id: Decimal("4")})
        )

        order = await order_service.get_by_id(db, order.id)
        residual = residual_quantities(order)
        assert residual[apples_item.id] == Decimal("6")
        assert residual[order.items[1].id] == Decimal("2")
