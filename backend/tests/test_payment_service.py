"""
Test per il service Pagamenti
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import uuid
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import Select
from sqlalchemy.dialects import postgresql

from fruttagest.core.enums import (
    DeliveryNoteStatus,
    InvoiceStatus,
    OrderStatus,
    PaymentDirection,
    PaymentMethod,
    PurchaseOrderStatus,
    SupplierInvoiceStatus,
    Unit,
)
from fruttagest.core.exceptions import BusinessValidationError, OverPaymentError
from fruttagest.schemas.invoice import InvoiceCreate, PaymentCreate
from fruttagest.schemas.product import ProductCreate
from fruttagest.services.catalog_service import catalog_service
from fruttagest.services.delivery_note_service import delivery_note_service
from fruttagest.services.invoice_service import invoice_service
from fruttagest.services.payment_service import payment_service
from fruttagest.services.purchase_order_service import purchase_order_service
from fruttagest.services.shopping_list_service import shopping_list_service

from factories import DELIVERY_DATE, catalog_line


@pytest_asyncio.fixture
async def crate(db):
    """Cassetta di frutta mista a 100.00, esente IVA."""
    return await catalog_service.create_product(
        db,
        ProductCreate(
            name="Cassetta mista",
            unit=Unit.CASSETTA,
            default_price=Decimal("100.00"),
            vat_rate=Decimal("0"),
        ),
    )


@pytest_asyncio.fixture
async def invoice(db, make_order, customer, crate):
    """Fattura emessa di 500.00 (5 cassette)."""
    order = await make_order([catalog_line(crate, 5)], status=OrderStatus.IN_PREPARATION)
    ddt = await delivery_note_service.create_from_order(db, order.id)
    await delivery_note_service.change_status(db, ddt.id, DeliveryNoteStatus.ISSUED)
    invoice = await invoice_service.create_invoice(
        db, InvoiceCreate(customer_id=customer.id, ddt_ids=[ddt.id])
    )
    return await invoice_service.change_status(db, invoice.id, InvoiceStatus.ISSUED)


def incoming(invoice, amount) -> PaymentCreate:
    return PaymentCreate(
        direction=PaymentDirection.INCOMING,
        amount=Decimal(amount),
        method=PaymentMethod.BONIFICO,
        invoice_id=invoice.id,
    )


# ============================================================
# Incassi su fattura cliente
# ============================================================


class TestCustomerPayments:
    """Test per incassi e stato di pagamento della fattura."""

    @pytest.mark.asyncio
    async def test_partial_then_full_payment(self, db, invoice, customer):
        """Test 400 + 100 su 500: la fattura passa a PAID"""
        assert invoice.total == Decimal("500.00")

        payment = await payment_service.create_payment(db, incoming(invoice, "400.00"))
        assert payment.customer_id == customer.id
        invoice = await invoice_service.get_by_id(db, invoice.id)
        assert invoice.paid_amount == Decimal("400.00")
        assert invoice.status == InvoiceStatus.ISSUED.value

        await payment_service.create_payment(db, incoming(invoice, "100.00"))
        invoice = await invoice_service.get_by_id(db, invoice.id)
        assert invoice.paid_amount == Decimal("500.00")
        assert invoice.status == InvoiceStatus.PAID.value

    @pytest.mark.asyncio
    async def test_over_payment_rejected(self, db, invoice):
        """Test 400 già pagati: 150 supera il residuo di 100"""
        await payment_service.create_payment(db, incoming(invoice, "400.00"))

        with pytest.raises(OverPaymentError) as exc_info:
            await payment_service.create_payment(db, incoming(invoice, "150.00"))

        error = exc_info.value
        assert error.status_code == 422
        assert error.error_code == "OVER_PAYMENT"
        assert Decimal(error.extra["remaining_amount"]) == Decimal("100.00")

        invoice = await invoice_service.get_by_id(db, invoice.id)
        assert invoice.paid_amount == Decimal("400.00")

    @pytest.mark.asyncio
    async def test_deleting_payment_reopens_invoice(self, db, invoice):
        """Test eliminazione di un pagamento su fattura saldata: torna ISSUED"""
        await payment_service.create_payment(db, incoming(invoice, "400.00"))
        last = await payment_service.create_payment(db, incoming(invoice, "100.00"))

        await payment_service.delete_payment(db, last.id)

        invoice = await invoice_service.get_by_id(db, invoice.id)
        assert invoice.status == InvoiceStatus.ISSUED.value
        assert invoice.paid_amount == Decimal("400.00")

    @pytest.mark.asyncio
    async def test_cancelled_invoice_rejects_payments(self, db, invoice):
        await invoice_service.change_status(db, invoice.id, InvoiceStatus.CANCELLED)

        with pytest.raises(BusinessValidationError):
            await payment_service.create_payment(db, incoming(invoice, "10.00"))

    @pytest.mark.asyncio
    async def test_list_by_invoice(self, db, invoice):
        await payment_service.create_payment(db, incoming(invoice, "50.00"))
        await payment_service.create_payment(db, incoming(invoice, "25.00"))

        payments = await payment_service.get_all(db, invoice_id=invoice.id)

        assert sorted(p.amount for p in payments) == [Decimal("25.00"), Decimal("50.00")]


# ============================================================
# Pagamenti su fattura fornitore
# ============================================================


@pytest_asyncio.fixture
async def supplier_invoice(db, make_order, apples, preferred_apples):
    """Fattura fornitore di 31.20 (20 kg di mele a 1.50, IVA 4%)."""
    await make_order([catalog_line(apples, 20)], status=OrderStatus.CONFIRMED)
    generated = await shopping_list_service.generate_from_orders(db, DELIVERY_DATE)
    await purchase_order_service.create_from_shopping_list(db, generated.shopping_list.id)
    purchase_order = (await purchase_order_service.get_all(db, shopping_list_id=generated.shopping_list.id))[0]
    await purchase_order_service.change_status(db, purchase_order.id, PurchaseOrderStatus.SENT)
    received = await purchase_order_service.change_status(db, purchase_order.id, PurchaseOrderStatus.RECEIVED)
    return received.supplier_invoice


def outgoing(supplier_invoice, amount) -> PaymentCreate:
    return PaymentCreate(
        direction=PaymentDirection.OUTGOING,
        amount=Decimal(amount),
        method=PaymentMethod.BONIFICO,
        supplier_invoice_id=supplier_invoice.id,
    )


class TestSupplierPayments:

    @pytest.mark.asyncio
    async def test_over_payment_rejected(self, db, supplier_invoice, supplier):
        """Test 30.00 già pagati: 5.00 supera il residuo di 1.20"""
        payment = await payment_service.create_payment(db, outgoing(supplier_invoice, "30.00"))
        assert payment.supplier_id == supplier.id

        with pytest.raises(OverPaymentError) as exc_info:
            await payment_service.create_payment(db, outgoing(supplier_invoice, "5.00"))
        assert Decimal(exc_info.value.extra["remaining_amount"]) == Decimal("1.20")

        refreshed = await invoice_service.get_supplier_invoice(db, supplier_invoice.id)
        assert refreshed.paid_amount == Decimal("30.00")
        assert refreshed.status == SupplierInvoiceStatus.ISSUED.value

    @pytest.mark.asyncio
    async def test_payment_locks_supplier_invoice_row(self, db, supplier_invoice, monkeypatch):
        """Test la lettura della fattura fornitore avviene con SELECT ... FOR UPDATE"""
        statements = []
        execute = db.execute

        async def recording_execute(statement, *args, **kwargs):
            statements.append(statement)
            return await execute(statement, *args, **kwargs)

        monkeypatch.setattr(db, "execute", recording_execute)
        await payment_service.create_payment(db, outgoing(supplier_invoice, "31.20"))
        monkeypatch.undo()

        locking = [
            str(statement.compile(dialect=postgresql.dialect()))
            for statement in statements
            if isinstance(statement, Select)
        ]
        assert any("FROM supplier_invoices" in sql and "FOR UPDATE" in sql for sql in locking)

        refreshed = await invoice_service.get_supplier_invoice(db, supplier_invoice.id)
        assert refreshed.status == SupplierInvoiceStatus.PAID.value

    @pytest.mark.asyncio
    async def test_deleting_payment_reopens_supplier_invoice(self, db, supplier_invoice):
        payment = await payment_service.create_payment(db, outgoing(supplier_invoice, "31.20"))

        await payment_service.delete_payment(db, payment.id)

        refreshed = await invoice_service.get_supplier_invoice(db, supplier_invoice.id)
        assert refreshed.status == SupplierInvoiceStatus.ISSUED.value
        assert refreshed.paid_amount == Decimal("0.00")


# ============================================================
# Validazione input
# ============================================================


class TestPaymentCreateSchema:

    def test_invoice_payment_must_be_incoming(self):
        with pytest.raises(ValueError):
            PaymentCreate(
                direction=PaymentDirection.OUTGOING,
                amount=Decimal("10"),
                method=PaymentMethod.CONTANTI,
                invoice_id=uuid.uuid4(),
            )

    def test_unlinked_payment_allowed(self):
        payment = PaymentCreate(
            direction=PaymentDirection.OUTGOING,
            amount=Decimal("10"),
            method=PaymentMethod.CONTANTI,
        )
        assert payment.invoice_id is None
