"""
Service per i Pagamenti
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Registra incassi e pagamenti. L'importo pagato di una fattura è sempre
la somma dei pagamenti collegati e non può superarne il totale.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.enums import InvoiceStatus, PaymentDirection, SupplierInvoiceStatus
from fruttagest.core.exceptions import BusinessValidationError, NotFoundError, OverPaymentError
from fruttagest.models.invoice import Invoice, Payment, SupplierInvoice
from fruttagest.schemas.invoice import PaymentCreate
from fruttagest.services.activity_service import activity_service
from fruttagest.services.invoice_service import invoice_service
from fruttagest.services.state_machine import compare_and_set_status
from fruttagest.services.totals import money

logger = logging.getLogger(__name__)


async def _sum_payments(db: AsyncSession, column, document_id: uuid.UUID) -> Decimal:
    result = await db.execute(select(func.coalesce(func.sum(Payment.amount), 0)).where(column == document_id))
    return money(Decimal(str(result.scalar_one())))


class PaymentService:
    """Service per incassi da clienti e pagamenti a fornitori."""

    async def get_all(
        self,
        db: AsyncSession,
        invoice_id: Optional[uuid.UUID] = None,
        supplier_invoice_id: Optional[uuid.UUID] = None,
        direction: Optional[PaymentDirection] = None,
    ) -> list[Payment]:
        query = select(Payment)
        if invoice_id is not None:
            query = query.where(Payment.invoice_id == invoice_id)
        if supplier_invoice_id is not None:
            query = query.where(Payment.supplier_invoice_id == supplier_invoice_id)
        if direction is not None:
            query = query.where(Payment.direction == PaymentDirection(direction).value)
        result = await db.execute(query.order_by(Payment.payment_date.desc(), Payment.created_at.desc()))
        return list(result.scalars().all())

    async def get_by_id(self, db: AsyncSession, payment_id: uuid.UUID) -> Payment:
        payment = await db.get(Payment, payment_id)
        if payment is None:
            raise NotFoundError(f"Pagamento con ID {payment_id} non trovato")
        return payment

    def _check_amount(
        self,
        document: Union[Invoice, SupplierInvoice],
        number: str,
        already_paid: Decimal,
        amount: Decimal,
    ) -> None:
        if already_paid + amount > document.total:
            remaining = document.total - already_paid
            logger.warning(
                "Pagamento di %s rifiutato su %s: residuo %s",
                amount,
                number,
                remaining,
            )
            raise OverPaymentError(
                f"Importo superiore al residuo da pagare ({remaining})",
                extra={"remaining_amount": str(remaining), "amount": str(amount)},
            )

    async def create_payment(
        self,
        db: AsyncSession,
        data: PaymentCreate,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Payment:
        """
        Registra un pagamento e riallinea l'importo pagato del documento.

        Se il documento risulta saldato passa a PAID.

        Raises:
            NotFoundError: Se la fattura non esiste
            BusinessValidationError: Se la fattura è annullata
            OverPaymentError: Se l'importo supera il residuo
        """
        amount = money(data.amount)
        payment = Payment(
            direction=data.direction.value,
            amount=amount,
            payment_date=data.payment_date or date.today(),
            method=data.method.value,
            reference=data.reference,
            notes=data.notes,
            customer_id=data.customer_id,
            supplier_id=data.supplier_id,
        )

        if data.invoice_id is not None:
            invoice = await invoice_service.get_by_id(db, data.invoice_id, for_update=True)
            if invoice.status == InvoiceStatus.CANCELLED.value:
                raise BusinessValidationError(f"La fattura {invoice.invoice_number} è annullata")
            paid = await _sum_payments(db, Payment.invoice_id, invoice.id)
            self._check_amount(invoice, invoice.invoice_number, paid, amount)

            payment.invoice_id = invoice.id
            payment.customer_id = payment.customer_id or invoice.customer_id
            db.add(payment)
            await db.flush()
            await self._sync_invoice(db, invoice)
            number = invoice.invoice_number

        elif data.supplier_invoice_id is not None:
            supplier_invoice = await invoice_service.get_supplier_invoice(
                db, data.supplier_invoice_id, for_update=True
            )
            if supplier_invoice.status == SupplierInvoiceStatus.CANCELLED.value:
                raise BusinessValidationError(f"La fattura fornitore {supplier_invoice.invoice_number} è annullata")
            paid = await _sum_payments(db, Payment.supplier_invoice_id, supplier_invoice.id)
            self._check_amount(supplier_invoice, supplier_invoice.invoice_number, paid, amount)

            payment.supplier_invoice_id = supplier_invoice.id
            payment.supplier_id = payment.supplier_id or supplier_invoice.supplier_id
            db.add(payment)
            await db.flush()
            await self._sync_supplier_invoice(db, supplier_invoice)
            number = supplier_invoice.invoice_number

        else:
            db.add(payment)
            await db.flush()
            number = None

        activity_service.record(
            db, "PAYMENT_CREATED", "payment", payment.id, actor_id,
            amount=amount, document=number,
        )
        logger.info(
            "Registrato pagamento %s di %s (%s) su %s",
            payment.direction,
            amount,
            payment.method,
            number or "nessun documento",
        )
        return payment

    async def _sync_invoice(self, db: AsyncSession, invoice: Invoice) -> None:
        """Riallinea paid_amount e lo stato PAID della fattura cliente."""
        paid = await _sum_payments(db, Payment.invoice_id, invoice.id)
        invoice.paid_amount = paid
        await db.flush()

        current = InvoiceStatus(invoice.status)
        if paid >= invoice.total and current != InvoiceStatus.PAID:
            await compare_and_set_status(db, Invoice, invoice.id, current, InvoiceStatus.PAID, "fattura")
            logger.info("Fattura %s saldata", invoice.invoice_number)
        elif paid < invoice.total and current == InvoiceStatus.PAID:
            await compare_and_set_status(db, Invoice, invoice.id, current, InvoiceStatus.ISSUED, "fattura")
            logger.info("Fattura %s riaperta: residuo %s", invoice.invoice_number, invoice.total - paid)

    async def _sync_supplier_invoice(self, db: AsyncSession, supplier_invoice: SupplierInvoice) -> None:
        paid = await _sum_payments(db, Payment.supplier_invoice_id, supplier_invoice.id)
        supplier_invoice.paid_amount = paid
        await db.flush()

        current = SupplierInvoiceStatus(supplier_invoice.status)
        if paid >= supplier_invoice.total and current == SupplierInvoiceStatus.ISSUED:
            await compare_and_set_status(
                db, SupplierInvoice, supplier_invoice.id, current, SupplierInvoiceStatus.PAID, "fattura fornitore"
            )
        elif paid < supplier_invoice.total and current == SupplierInvoiceStatus.PAID:
            await compare_and_set_status(
                db, SupplierInvoice, supplier_invoice.id, current, SupplierInvoiceStatus.ISSUED, "fattura fornitore"
            )

    async def delete_payment(
        self,
        db: AsyncSession,
        payment_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        """Elimina un pagamento; una fattura PAID non più coperta torna ISSUED."""
        payment = await self.get_by_id(db, payment_id)
        invoice_id = payment.invoice_id
        supplier_invoice_id = payment.supplier_invoice_id

        activity_service.record(
            db, "PAYMENT_DELETED", "payment", payment.id, actor_id, amount=payment.amount,
        )
        await db.delete(payment)
        await db.flush()

        if invoice_id is not None:
            await self._sync_invoice(db, await invoice_service.get_by_id(db, invoice_id, for_update=True))
        if supplier_invoice_id is not None:
            supplier_invoice = await invoice_service.get_supplier_invoice(db, supplier_invoice_id, for_update=True)
            await self._sync_supplier_invoice(db, supplier_invoice)

        logger.info("Eliminato pagamento %s di %s", payment_id, payment.amount)


payment_service = PaymentService()
