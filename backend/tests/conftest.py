"""
Pytest configuration and fixtures.

I test dei service girano su un database SQLite (aiosqlite) creato in un file
temporaneo per ogni test: stesso schema dei modelli, nessun server esterno.
"""

import datetime
import uuid
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from fruttagest.core.database import build_engine, build_session_factory
from fruttagest.core.enums import OrderStatus, StockMovementType, Unit
from fruttagest.models import Base
from fruttagest.schemas.customer import CustomerCreate
from fruttagest.schemas.order import OrderCreate
from fruttagest.schemas.product import ProductCreate
from fruttagest.schemas.supplier import SupplierCreate, SupplierProductCreate
from fruttagest.services.catalog_service import catalog_service
from fruttagest.services.order_service import order_service
from fruttagest.services.stock_service import stock_service

from factories import DELIVERY_DATE


# ============================================================
# Database
# ============================================================


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Engine SQLite su file con transazioni e savepoint gestiti da SQLAlchemy."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'fruttagest.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        # serializza le scritture concorrenti come farebbe il lock di riga
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Sessione di test: i service fanno flush, il test legge nella stessa transazione."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# ============================================================
# Anagrafiche
# ============================================================


@pytest_asyncio.fixture
async def customer(db):
    return await catalog_service.create_customer(
        db,
        CustomerCreate(business_name="Trattoria Da Mario", payment_terms_days=30),
    )


@pytest_asyncio.fixture
async def other_customer(db):
    return await catalog_service.create_customer(db, CustomerCreate(business_name="Hotel Bellavista"))


@pytest_asyncio.fixture
async def apples(db):
    """Mele Golden: 3.00 €/kg, IVA 4%."""
    return await catalog_service.create_product(
        db,
        ProductCreate(
            name="Mele Golden",
            category="Frutta",
            unit=Unit.KG,
            default_price=Decimal("3.00"),
            cost_price=Decimal("1.80"),
            vat_rate=Decimal("4.00"),
        ),
    )


@pytest_asyncio.fixture
async def basil(db):
    """Basilico: 10.00 € a mazzo, IVA 10%."""
    return await catalog_service.create_product(
        db,
        ProductCreate(
            name="Basilico",
            category="Aromatiche",
            unit=Unit.MAZZO,
            default_price=Decimal("10.00"),
            cost_price=Decimal("6.00"),
            vat_rate=Decimal("10.00"),
        ),
    )


@pytest_asyncio.fixture
async def supplier(db):
    return await catalog_service.create_supplier(db, SupplierCreate(business_name="Ortomercato Srl"))


@pytest_asyncio.fixture
async def preferred_apples(db, supplier, apples):
    """Listino: Ortomercato è il fornitore preferito delle mele a 1.50 €/kg."""
    return await catalog_service.add_supplier_product(
        db,
        supplier.id,
        SupplierProductCreate(product_id=apples.id, price=Decimal("1.50"), unit=Unit.KG, is_preferred=True),
    )


# ============================================================
# Helper
# ============================================================


@pytest.fixture
def make_order(db, customer):
    """
    Crea un ordine e lo porta allo stato richiesto passando per le transizioni valide.

    Uso: order = await make_order([catalog_line(apples, 2)], status=OrderStatus.IN_PREPARATION)
    """

    async def _make(
        lines,
        status: OrderStatus = OrderStatus.RECEIVED,
        delivery_date: Optional[datetime.date] = DELIVERY_DATE,
        customer_id: Optional[uuid.UUID] = None,
    ):
        order = await order_service.create(
            db,
            OrderCreate(
                customer_id=customer_id or customer.id,
                requested_delivery_date=delivery_date,
                items=lines,
            ),
        )
        path = [OrderStatus.CONFIRMED, OrderStatus.IN_PREPARATION]
        if status in path:
            for step in path[: path.index(status) + 1]:
                order = await order_service.change_status(db, order.id, step)
        return order

    return _make


@pytest.fixture
def load_stock(db):
    """Registra un carico di magazzino."""

    async def _load(product, quantity, unit: Optional[str] = None):
        movement = await stock_service.record_movement(
            db,
            product_id=product.id,
            movement_type=StockMovementType.CARICO,
            quantity=Decimal(str(quantity)),
            unit=unit or product.unit,
            reason="Carico iniziale",
        )
        await db.flush()
        return movement

    return _load
