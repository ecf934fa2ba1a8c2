"""
Test per il service Magazzino
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import uuid
from decimal import Decimal

import pytest
from pydantic import ValidationError

from fruttagest.core.enums import StockMovementType, StockReferenceType, Unit
from fruttagest.core.exceptions import BusinessValidationError, NotFoundError
from fruttagest.schemas.product import ProductCreate
from fruttagest.schemas.stock import StockMovementCreate
from fruttagest.services.catalog_service import catalog_service
from fruttagest.services.stock_service import stock_service


def manual(product, movement_type, quantity, **kwargs) -> StockMovementCreate:
    return StockMovementCreate(
        product_id=product.id,
        movement_type=movement_type,
        quantity=Decimal(quantity),
        **kwargs,
    )


# ============================================================
# Movimenti manuali
# ============================================================


class TestCreateMovement:
    """Test per i movimenti registrati a mano."""

    @pytest.mark.asyncio
    async def test_outgoing_types_subtract(self, db, apples, load_stock):
        """Test 20 kg caricati, 2 scartati, 0.5 di rettifica negativa: 17.5"""
        await load_stock(apples, 20)

        scrap = await stock_service.create_movement(
            db, manual(apples, StockMovementType.SCARTO, "2", reason="Merce ammaccata")
        )
        await stock_service.create_movement(db, manual(apples, StockMovementType.RETTIFICA_NEG, "0.5"))

        assert scrap.quantity == Decimal("2")
        assert scrap.unit == "KG"
        assert scrap.reference_type == StockReferenceType.MANUAL.value
        assert await stock_service.get_current_stock(db, apples.id) == Decimal("17.500")

    @pytest.mark.asyncio
    async def test_positive_adjustment_adds(self, db, basil):
        await stock_service.create_movement(db, manual(basil, StockMovementType.RETTIFICA_POS, "3"))
        assert await stock_service.get_current_stock(db, basil.id) == Decimal("3.000")

    @pytest.mark.asyncio
    async def test_explicit_unit(self, db, apples):
        """Test cassette di mele tenute separate dai kg"""
        await stock_service.create_movement(
            db, manual(apples, StockMovementType.CARICO, "4", unit=Unit.CASSETTA)
        )

        assert await stock_service.get_current_stock(db, apples.id, unit="CASSETTA") == Decimal("4.000")
        assert await stock_service.get_current_stock(db, apples.id, unit="KG") == Decimal("0.000")

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            StockMovementCreate(
                product_id=uuid.uuid4(),
                movement_type=StockMovementType.SCARTO,
                quantity=Decimal("0"),
            )

    @pytest.mark.asyncio
    async def test_record_rejects_non_positive_quantity(self, db, apples):
        with pytest.raises(BusinessValidationError):
            await stock_service.record_movement(
                db,
                product_id=apples.id,
                movement_type=StockMovementType.SCARICO,
                quantity=Decimal("-1"),
                unit=apples.unit,
            )

    @pytest.mark.asyncio
    async def test_unknown_product(self, db):
        with pytest.raises(NotFoundError):
            await stock_service.create_movement(
                db,
                StockMovementCreate(
                    product_id=uuid.uuid4(),
                    movement_type=StockMovementType.CARICO,
                    quantity=Decimal("1"),
                ),
            )

        _, total = await stock_service.get_movements(db)
        assert total == 0


# ============================================================
# Riepilogo giacenze
# ============================================================


class TestStockSummary:

    @pytest.mark.asyncio
    async def test_value_at_cost(self, db, apples, basil, load_stock):
        """Test valore = giacenza × costo (17.5 kg × 1.80 = 31.50)"""
        await load_stock(apples, 20)
        await stock_service.create_movement(db, manual(apples, StockMovementType.SCARTO, "2.5"))

        summary = {item.product_name: item for item in await stock_service.get_stock_summary(db)}

        assert summary["Mele Golden"].current_stock == Decimal("17.500")
        assert summary["Mele Golden"].cost_price == Decimal("1.80")
        assert summary["Mele Golden"].stock_value == Decimal("31.50")
        assert summary["Basilico"].current_stock == Decimal("0.000")
        assert summary["Basilico"].stock_value == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_inactive_products_excluded(self, db, apples, load_stock):
        await load_stock(apples, 5)
        retired = await catalog_service.create_product(db, ProductCreate(name="Nespole", cost_price=Decimal("2")))
        await load_stock(retired, 5)
        retired.is_active = False
        await db.flush()

        names = [item.product_name for item in await stock_service.get_stock_summary(db)]

        assert "Mele Golden" in names
        assert "Nespole" not in names

    @pytest.mark.asyncio
    async def test_no_cost_price_no_value(self, db, load_stock):
        """Test prodotto senza prezzo di costo: valore non calcolabile"""
        product = await catalog_service.create_product(db, ProductCreate(name="Fragole"))
        await load_stock(product, 3)

        item = next(i for i in await stock_service.get_stock_summary(db) if i.product_name == "Fragole")

        assert item.current_stock == Decimal("3.000")
        assert item.cost_price is None
        assert item.stock_value is None
