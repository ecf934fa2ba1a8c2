"""
Test per il service Lista spesa
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import datetime
from decimal import Decimal

import pytest

from fruttagest.core.enums import OrderStatus, ShoppingListStatus, StockMovementType
from fruttagest.core.exceptions import ConflictError, InvalidTransitionError
from fruttagest.schemas.shopping_list import ShoppingListItemUpdate
from fruttagest.services.order_service import order_service
from fruttagest.services.shopping_list_service import shopping_list_service
from fruttagest.services.stock_service import stock_service

from factories import DELIVERY_DATE, catalog_line, free_line


def by_name(shopping_list):
    return {item.product_name: item for item in shopping_list.items}


# ============================================================
# Generazione
# ============================================================


class TestGenerate:
    """Test per aggregazione e netting degli ordini del giorno."""

    @pytest.mark.asyncio
    async def test_netting_against_stock(
        self, db, make_order, apples, basil, supplier, preferred_apples, load_stock
    ):
        """Test 20 + 30 kg di mele con 12 kg in magazzino: da acquistare 38"""
        await load_stock(apples, 12)
        await make_order([catalog_line(apples, 20), catalog_line(basil, 2)], status=OrderStatus.CONFIRMED)
        await make_order(
            [catalog_line(apples, 30), free_line("Fichi d'India", 1, unit="CASSETTA")],
            status=OrderStatus.CONFIRMED,
        )

        result = await shopping_list_service.generate_from_orders(db, DELIVERY_DATE)

        assert result.error is None
        assert result.regenerated is False
        assert result.order_count == 2
        shopping_list = result.shopping_list
        assert shopping_list.status == ShoppingListStatus.DRAFT
        assert [item.product_name for item in shopping_list.items] == [
            "Basilico",
            "Fichi d'India",
            "Mele Golden",
        ]

        lines = by_name(shopping_list)
        apples_line = lines["Mele Golden"]
        assert apples_line.total_quantity == Decimal("50")
        assert apples_line.available_stock == Decimal("12")
        assert apples_line.net_quantity == Decimal("38")
        assert apples_line.supplier_id == supplier.id
        assert apples_line.supplier_price == Decimal("1.50")

        figs = lines["Fichi d'India"]
        assert figs.product_id is None
        assert figs.line_key == "custom:fichi d'india:CASSETTA"
        assert figs.net_quantity == Decimal("1")

        assert lines["Basilico"].supplier_id is None

    @pytest.mark.asyncio
    async def test_stock_covers_demand(self, db, make_order, apples, load_stock):
        await load_stock(apples, 60)
        await make_order([catalog_line(apples, 50)], status=OrderStatus.CONFIRMED)

        result = await shopping_list_service.generate_from_orders(db, DELIVERY_DATE)

        assert by_name(result.shopping_list)["Mele Golden"].net_quantity == Decimal("0")

    @pytest.mark.asyncio
    async def test_negative_stock_is_kept_signed(self, db, make_order, apples):
        """Test giacenza -4 kg: resta visibile in lista, si acquista tutto il fabbisogno"""
        await stock_service.record_movement(
            db,
            product_id=apples.id,
            movement_type=StockMovementType.SCARTO,
            quantity=Decimal("4"),
            unit=apples.unit,
        )
        await db.flush()
        await make_order([catalog_line(apples, 10)], status=OrderStatus.CONFIRMED)

        result = await shopping_list_service.generate_from_orders(db, DELIVERY_DATE)

        apples_line = by_name(result.shopping_list)["Mele Golden"]
        assert apples_line.available_stock == Decimal("-4")
        assert apples_line.net_quantity == Decimal("10")

    @pytest.mark.asyncio
    async def test_only_open_orders_count(self, db, make_order, apples):
        """Test ordini ricevuti ma non confermati esclusi"""
        await make_order([catalog_line(apples, 5)], status=OrderStatus.CONFIRMED)
        await make_order([catalog_line(apples, 7)])

        result = await shopping_list_service.generate_from_orders(db, DELIVERY_DATE)

        assert result.order_count == 1
        assert by_name(result.shopping_list)["Mele Golden"].total_quantity == Decimal("5")

    @pytest.mark.asyncio
    async def test_no_orders_for_date(self, db):
        """Test nessun ordine: esito con errore, nessuna lista creata"""
        result = await shopping_list_service.generate_from_orders(db, datetime.date(2026, 8, 15))

        assert result.shopping_list is None
        assert result.error.error_code == "NO_ORDERS_FOR_DATE"
        assert await shopping_list_service.get_by_date(db, datetime.date(2026, 8, 15)) is None


# ============================================================
# Rigenerazione
# ============================================================


class TestRegenerate:

    @pytest.mark.asyncio
    async def test_manual_edits_survive_confirmation(self, db, make_order, basil, supplier):
        """Test conferma di un nuovo ordine: quantità aggiornate, fornitore e note conservati"""
        await make_order([catalog_line(basil, 2)], status=OrderStatus.CONFIRMED)
        result = await shopping_list_service.generate_from_orders(db, DELIVERY_DATE)
        line = result.shopping_list.items[0]
        await shopping_list_service.update_item(
            db,
            line.id,
            ShoppingListItemUpdate(
                supplier_id=supplier.id,
                supplier_price=Decimal("7.00"),
                notes="Mazzi grandi",
            ),
        )

        await make_order([catalog_line(basil, 3)], status=OrderStatus.CONFIRMED)

        shopping_list = await shopping_list_service.get_by_date(db, DELIVERY_DATE)
        item = shopping_list.items[0]
        assert item.id == line.id
        assert item.total_quantity == Decimal("5")
        assert item.net_quantity == Decimal("5")
        assert item.supplier_id == supplier.id
        assert item.supplier_price == Decimal("7.00")
        assert item.notes == "Mazzi grandi"

    @pytest.mark.asyncio
    async def test_vanished_lines_are_removed(self, db, make_order, apples):
        await make_order([catalog_line(apples, 2)], status=OrderStatus.CONFIRMED)
        second = await make_order([free_line("Fichi d'India", 1)], status=OrderStatus.CONFIRMED)
        await shopping_list_service.generate_from_orders(db, DELIVERY_DATE)

        await order_service.change_status(db, second.id, OrderStatus.CANCELLED)
        result = await shopping_list_service.generate_from_orders(db, DELIVERY_DATE)

        assert result.regenerated is True
        assert list(by_name(result.shopping_list)) == ["Mele Golden"]

    @pytest.mark.asyncio
    async def test_finalized_list_is_locked(self, db, make_order, apples):
        """Test una lista non più in bozza non si rigenera"""
        await make_order([catalog_line(apples, 2)], status=OrderStatus.CONFIRMED)
        result = await shopping_list_service.generate_from_orders(db, DELIVERY_DATE)
        await shopping_list_service.change_status(db, result.shopping_list.id, ShoppingListStatus.FINALIZED)

        with pytest.raises(ConflictError) as exc_info:
            await shopping_list_service.generate_from_orders(db, DELIVERY_DATE)
        assert exc_info.value.error_code == "SHOPPING_LIST_LOCKED"

    @pytest.mark.asyncio
    async def test_confirmation_leaves_finalized_list_alone(self, db, make_order, apples):
        await make_order([catalog_line(apples, 2)], status=OrderStatus.CONFIRMED)
        result = await shopping_list_service.generate_from_orders(db, DELIVERY_DATE)
        await shopping_list_service.change_status(db, result.shopping_list.id, ShoppingListStatus.FINALIZED)

        order = await make_order([catalog_line(apples, 4)], status=OrderStatus.CONFIRMED)

        assert order.status == OrderStatus.CONFIRMED.value
        shopping_list = await shopping_list_service.get_by_id(db, result.shopping_list.id)
        assert shopping_list.items[0].total_quantity == Decimal("2")


# ============================================================
# Righe, stato ed eliminazione
# ============================================================


class TestListMaintenance:

    @pytest.mark.asyncio
    async def test_update_item_recomputes_net(self, db, make_order, apples, load_stock):
        await load_stock(apples, 3)
        await make_order([catalog_line(apples, 10)], status=OrderStatus.CONFIRMED)
        result = await shopping_list_service.generate_from_orders(db, DELIVERY_DATE)

        item = await shopping_list_service.update_item(
            db, result.shopping_list.items[0].id, ShoppingListItemUpdate(total_quantity=Decimal("15"))
        )

        assert item.net_quantity == Decimal("12")

    @pytest.mark.asyncio
    async def test_status_is_a_strict_sequence(self, db, make_order, apples):
        await make_order([catalog_line(apples, 1)], status=OrderStatus.CONFIRMED)
        result = await shopping_list_service.generate_from_orders(db, DELIVERY_DATE)

        with pytest.raises(InvalidTransitionError):
            await shopping_list_service.change_status(db, result.shopping_list.id, ShoppingListStatus.ORDERED)

    @pytest.mark.asyncio
    async def test_delete(self, db, make_order, apples):
        await make_order([catalog_line(apples, 1)], status=OrderStatus.CONFIRMED)
        result = await shopping_list_service.generate_from_orders(db, DELIVERY_DATE)

        await shopping_list_service.delete(db, result.shopping_list.id)

        assert await shopping_list_service.get_by_date(db, DELIVERY_DATE) is None
