"""
Test per il service Fatture
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import datetime
from decimal import Decimal

import pytest

from fruttagest.core.enums import (
    DeliveryNoteStatus,
    InvoiceStatus,
    OrderStatus,
    PaymentDirection,
    PaymentMethod,
)
from fruttagest.core.exceptions import (
    BusinessValidationError,
    ConflictError,
    DDTAlreadyInvoicedError,
    DDTLockedError,
    InvalidTransitionError,
)
from fruttagest.schemas.delivery_note import DeliveryNoteCreate, DeliveryNoteUpdate
from fruttagest.schemas.invoice import InvoiceCreate, PaymentCreate
from fruttagest.services.delivery_note_service import delivery_note_service
from fruttagest.services.invoice_service import invoice_service
from fruttagest.services.order_service import order_service
from fruttagest.services.payment_service import payment_service

from factories import catalog_line


ISSUE_DATE = datetime.date(2026, 3, 12)


async def issued_ddt(db, order_id, quantities=None, deliver=False):
    """DDT emesso (ed eventualmente consegnato) dall'ordine."""
    data = DeliveryNoteCreate(quantities=quantities) if quantities else None
    ddt = await delivery_note_service.create_from_order(db, order_id, data)
    ddt = await delivery_note_service.change_status(db, ddt.id, DeliveryNoteStatus.ISSUED)
    if deliver:
        ddt = await delivery_note_service.change_status(db, ddt.id, DeliveryNoteStatus.DELIVERED)
    return ddt


def invoice_request(customer, ddts, **kwargs) -> InvoiceCreate:
    return InvoiceCreate(
        customer_id=customer.id,
        ddt_ids=[ddt.id for ddt in ddts],
        issue_date=kwargs.pop("issue_date", ISSUE_DATE),
        **kwargs,
    )


# ============================================================
# Creazione da DDT
# ============================================================


class TestCreateInvoice:
    """Test per la fatturazione dei DDT."""

    @pytest.mark.asyncio
    async def test_invoice_from_two_ddts(self, db, make_order, customer, apples, basil):
        """Test fattura da due DDT: righe copiate e totali ricalcolati"""
        order = await make_order(
            [catalog_line(apples, 2), catalog_line(basil, 1)], status=OrderStatus.IN_PREPARATION
        )
        first = await issued_ddt(db, order.id, {order.items[0].id: Decimal("2")})
        second = await issued_ddt(db, order.id)

        invoice = await invoice_service.create_invoice(db, invoice_request(customer, [first, second]))

        assert invoice.status == InvoiceStatus.DRAFT.value
        assert invoice.invoice_number == "FT-2026-0001"
        assert invoice.issue_date == ISSUE_DATE
        assert invoice.due_date == datetime.date(2026, 4, 11)
        assert [item.description for item in invoice.items] == ["Mele Golden", "Basilico"]
        assert {link.delivery_note_id for link in invoice.ddt_links} == {first.id, second.id}
        assert invoice.subtotal == Decimal("16.00")
        assert invoice.vat_amount == Decimal("1.24")
        assert invoice.total == Decimal("17.24")
        assert invoice.paid_amount == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_explicit_due_date(self, db, make_order, customer, apples):
        order = await make_order([catalog_line(apples, 1)], status=OrderStatus.IN_PREPARATION)
        ddt = await issued_ddt(db, order.id)

        invoice = await invoice_service.create_invoice(
            db, invoice_request(customer, [ddt], due_date=datetime.date(2026, 5, 31))
        )
        assert invoice.due_date == datetime.date(2026, 5, 31)

    @pytest.mark.asyncio
    async def test_ddt_cannot_be_invoiced_twice(self, db, make_order, customer, apples):
        """Test un DDT compare al massimo in una fattura"""
        order = await make_order([catalog_line(apples, 1)], status=OrderStatus.IN_PREPARATION)
        ddt = await issued_ddt(db, order.id)
        await invoice_service.create_invoice(db, invoice_request(customer, [ddt]))

        with pytest.raises(DDTAlreadyInvoicedError) as exc_info:
            await invoice_service.create_invoice(db, invoice_request(customer, [ddt]))
        assert exc_info.value.extra["ddt_numbers"] == [ddt.ddt_number]

    @pytest.mark.asyncio
    async def test_customer_mismatch(self, db, make_order, other_customer, apples):
        """Test DDT di un altro cliente"""
        order = await make_order([catalog_line(apples, 1)], status=OrderStatus.IN_PREPARATION)
        ddt = await issued_ddt(db, order.id)

        with pytest.raises(BusinessValidationError) as exc_info:
            await invoice_service.create_invoice(db, invoice_request(other_customer, [ddt]))
        assert exc_info.value.error_code == "DDT_CUSTOMER_MISMATCH"

    @pytest.mark.asyncio
    async def test_draft_ddt_not_invoiceable(self, db, make_order, customer, apples):
        order = await make_order([catalog_line(apples, 1)], status=OrderStatus.IN_PREPARATION)
        ddt = await delivery_note_service.create_from_order(db, order.id)

        with pytest.raises(ConflictError) as exc_info:
            await invoice_service.create_invoice(db, invoice_request(customer, [ddt]))
        assert exc_info.value.error_code == "DDT_NOT_INVOICEABLE"

    @pytest.mark.asyncio
    async def test_cost_lookup(self, db, make_order, customer, apples, basil, preferred_apples, supplier):
        """Test costo da listino preferito, altrimenti dal costo anagrafico"""
        order = await make_order(
            [catalog_line(apples, 2), catalog_line(basil, 1)], status=OrderStatus.IN_PREPARATION
        )
        ddt = await issued_ddt(db, order.id)

        invoice = await invoice_service.create_invoice(db, invoice_request(customer, [ddt]))

        apples_item, basil_item = invoice.items
        assert apples_item.cost_price == Decimal("1.50")
        assert apples_item.supplier_id == supplier.id
        assert basil_item.cost_price == Decimal("6.00")
        assert basil_item.supplier_id is None


# ============================================================
# Effetti sull'ordine
# ============================================================


class TestOrderCascade:

    @pytest.mark.asyncio
    async def test_order_invoiced_when_all_ddts_invoiced(self, db, make_order, customer, apples):
        """Test ordine consegnato passa a INVOICED con la fattura"""
        order = await make_order([catalog_line(apples, 10)], status=OrderStatus.IN_PREPARATION)
        first = await issued_ddt(db, order.id, {order.items[0].id: Decimal("4")}, deliver=True)
        second = await issued_ddt(db, order.id, deliver=True)
        assert (await order_service.get_by_id(db, order.id)).status == OrderStatus.DELIVERED.value

        await invoice_service.create_invoice(db, invoice_request(customer, [first]))
        assert (await order_service.get_by_id(db, order.id)).status == OrderStatus.DELIVERED.value

        await invoice_service.create_invoice(db, invoice_request(customer, [second]))
        assert (await order_service.get_by_id(db, order.id)).status == OrderStatus.INVOICED.value

    @pytest.mark.asyncio
    async def test_invoiced_before_delivery(self, db, make_order, customer, apples):
        """Test DDT fatturato prima della consegna: la consegna chiude l'ordine come INVOICED"""
        order = await make_order([catalog_line(apples, 3)], status=OrderStatus.IN_PREPARATION)
        ddt = await issued_ddt(db, order.id)
        await invoice_service.create_invoice(db, invoice_request(customer, [ddt]))
        assert (await order_service.get_by_id(db, order.id)).status == OrderStatus.IN_PREPARATION.value

        await delivery_note_service.change_status(db, ddt.id, DeliveryNoteStatus.DELIVERED)

        assert (await order_service.get_by_id(db, order.id)).status == OrderStatus.INVOICED.value

    @pytest.mark.asyncio
    async def test_delete_invoice_reverts_order(self, db, make_order, customer, apples):
        """Test eliminazione fattura: ordine di nuovo DELIVERED e DDT di nuovo fatturabile"""
        order = await make_order([catalog_line(apples, 3)], status=OrderStatus.IN_PREPARATION)
        ddt = await issued_ddt(db, order.id, deliver=True)
        invoice = await invoice_service.create_invoice(db, invoice_request(customer, [ddt]))
        assert (await order_service.get_by_id(db, order.id)).status == OrderStatus.INVOICED.value

        await invoice_service.delete(db, invoice.id)

        assert (await order_service.get_by_id(db, order.id)).status == OrderStatus.DELIVERED.value
        again = await invoice_service.create_invoice(db, invoice_request(customer, [ddt]))
        assert again.invoice_number == "FT-2026-0002"


# ============================================================
# Stato ed eliminazione
# ============================================================


class TestInvoiceStatus:

    @pytest.mark.asyncio
    async def test_manual_path_to_paid(self, db, make_order, customer, apples):
        order = await make_order([catalog_line(apples, 1)], status=OrderStatus.IN_PREPARATION)
        invoice = await invoice_service.create_invoice(
            db, invoice_request(customer, [await issued_ddt(db, order.id)])
        )

        for status in (InvoiceStatus.ISSUED, InvoiceStatus.SENT, InvoiceStatus.PAID):
            invoice = await invoice_service.change_status(db, invoice.id, status)
        assert invoice.status == InvoiceStatus.PAID.value

        with pytest.raises(InvalidTransitionError):
            await invoice_service.change_status(db, invoice.id, InvoiceStatus.CANCELLED)

    @pytest.mark.asyncio
    async def test_invoice_with_payments_cannot_be_deleted(self, db, make_order, customer, apples):
        order = await make_order([catalog_line(apples, 10)], status=OrderStatus.IN_PREPARATION)
        invoice = await invoice_service.create_invoice(
            db, invoice_request(customer, [await issued_ddt(db, order.id)])
        )
        await payment_service.create_payment(
            db,
            PaymentCreate(
                direction=PaymentDirection.INCOMING,
                amount=Decimal("10.00"),
                method=PaymentMethod.CONTANTI,
                invoice_id=invoice.id,
            ),
        )

        with pytest.raises(ConflictError) as exc_info:
            await invoice_service.delete(db, invoice.id)
        assert exc_info.value.error_code == "INVOICE_LOCKED"

    @pytest.mark.asyncio
    async def test_overdue_filter(self, db, make_order, customer, apples):
        """Test filtro OVERDUE: scadute e non pagate"""
        order = await make_order([catalog_line(apples, 1)], status=OrderStatus.IN_PREPARATION)
        invoice = await invoice_service.create_invoice(
            db,
            invoice_request(
                customer,
                [await issued_ddt(db, order.id)],
                issue_date=datetime.date(2025, 1, 10),
                due_date=datetime.date(2025, 2, 10),
            ),
        )
        await invoice_service.change_status(db, invoice.id, InvoiceStatus.ISSUED)

        overdue, total = await invoice_service.get_all(db, status=InvoiceStatus.OVERDUE)

        assert total == 1
        assert overdue[0].id == invoice.id
        assert overdue[0].invoice_number == "FT-2025-0001"

    @pytest.mark.asyncio
    async def test_invoiced_ddt_is_locked(self, db, make_order, customer, apples):
        """Test DDT fatturato: né modificabile né eliminabile"""
        order = await make_order([catalog_line(apples, 1)], status=OrderStatus.IN_PREPARATION)
        ddt = await issued_ddt(db, order.id)
        await invoice_service.create_invoice(db, invoice_request(customer, [ddt]))

        with pytest.raises(DDTLockedError):
            await delivery_note_service.update(db, ddt.id, DeliveryNoteUpdate(number_of_packages=2))
        with pytest.raises(DDTLockedError):
            await delivery_note_service.delete(db, ddt.id)
