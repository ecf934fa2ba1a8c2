"""
Service per la Fatturazione
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Gestisce:
- Creazione fattura da uno o più DDT dello stesso cliente
- Snapshot di costo e fornitore sulle righe (calcolo margine)
- Macchina a stati ed eliminazione con compensazione degli ordini
- Fatture fornitore generate al ricevimento degli ordini d'acquisto
"""

import logging
import uuid
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.config import settings
from fruttagest.core.enums import (
    DocumentType,
    InvoiceStatus,
    PurchaseOrderStatus,
    SupplierInvoiceStatus,
)
from fruttagest.core.exceptions import (
    BusinessValidationError,
    ConflictError,
    DDTAlreadyInvoicedError,
    NotFoundError,
)
from fruttagest.models.delivery_note import DeliveryNote
from fruttagest.models.invoice import Invoice, InvoiceDDTLink, InvoiceItem, SupplierInvoice
from fruttagest.models.product import Product
from fruttagest.models.purchase_order import PurchaseOrder, PurchaseOrderItem
from fruttagest.schemas.delivery_note import INVOICEABLE_DDT_STATUSES
from fruttagest.schemas.invoice import INVOICE_TRANSITIONS, InvoiceCreate
from fruttagest.services.activity_service import activity_service
from fruttagest.services.catalog_service import catalog_service
from fruttagest.services.numbering_service import numbering_service
from fruttagest.services.order_service import order_service
from fruttagest.services.state_machine import compare_and_set_status, ensure_transition
from fruttagest.services.totals import apply_totals

logger = logging.getLogger(__name__)


class InvoiceService:
    """
    Service per la gestione delle fatture.

    Tutti i controlli e le scritture della creazione avvengono nella
    transazione della richiesta: un errore non lascia fatture parziali.
    """

    # ------------------------------------------------------------
    # Lettura
    # ------------------------------------------------------------

    async def get_all(
        self,
        db: AsyncSession,
        customer_id: Optional[uuid.UUID] = None,
        status: Optional[InvoiceStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[list[Invoice], int]:
        """
        Lista fatture con filtri.

        Il filtro OVERDUE seleziona le fatture scadute non pagate né annullate.
        """
        query = select(Invoice)
        count_query = select(func.count(Invoice.id))

        filters = []
        if customer_id is not None:
            filters.append(Invoice.customer_id == customer_id)
        if status is not None:
            status = InvoiceStatus(status)
            if status == InvoiceStatus.OVERDUE:
                filters.append(Invoice.due_date < date.today())
                filters.append(Invoice.status.not_in([InvoiceStatus.PAID.value, InvoiceStatus.CANCELLED.value]))
            else:
                filters.append(Invoice.status == status.value)
        if date_from is not None:
            filters.append(Invoice.issue_date >= date_from)
        if date_to is not None:
            filters.append(Invoice.issue_date <= date_to)
        if filters:
            query = query.where(*filters)
            count_query = count_query.where(*filters)

        query = query.order_by(Invoice.issue_date.desc(), Invoice.invoice_number.desc())
        query = query.offset((page - 1) * per_page).limit(per_page)

        items = list((await db.execute(query)).unique().scalars().all())
        total = (await db.execute(count_query)).scalar() or 0
        return items, total

    async def get_by_id(self, db: AsyncSession, invoice_id: uuid.UUID, for_update: bool = False) -> Invoice:
        query = (
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update(of=Invoice)
        invoice = (await db.execute(query)).unique().scalar_one_or_none()
        if invoice is None:
            raise NotFoundError(f"Fattura con ID {invoice_id} non trovata")
        return invoice

    # ------------------------------------------------------------
    # Creazione
    # ------------------------------------------------------------

    async def _load_delivery_notes(self, db: AsyncSession, ddt_ids: list[uuid.UUID]) -> list[DeliveryNote]:
        """DDT richiesti, bloccati fino a fine transazione e nell'ordine indicato."""
        result = await db.execute(
            select(DeliveryNote)
            .where(DeliveryNote.id.in_(ddt_ids))
            .with_for_update(of=DeliveryNote)
            .execution_options(populate_existing=True)
        )
        found = {ddt.id: ddt for ddt in result.unique().scalars().all()}
        missing = [str(i) for i in ddt_ids if i not in found]
        if missing:
            raise NotFoundError("DDT non trovati", extra={"ddt_ids": missing})
        return [found[i] for i in ddt_ids]

    def _validate_delivery_notes(self, ddts: list[DeliveryNote], customer_id: uuid.UUID) -> None:
        wrong_customer = [d.ddt_number for d in ddts if d.customer_id != customer_id]
        if wrong_customer:
            raise BusinessValidationError(
                "I DDT devono appartenere al cliente della fattura",
                error_code="DDT_CUSTOMER_MISMATCH",
                extra={"ddt_numbers": wrong_customer},
            )

        allowed = {s.value for s in INVOICEABLE_DDT_STATUSES}
        not_ready = [d.ddt_number for d in ddts if d.status not in allowed]
        if not_ready:
            raise ConflictError(
                "Si possono fatturare solo DDT emessi o consegnati",
                error_code="DDT_NOT_INVOICEABLE",
                extra={"ddt_numbers": not_ready},
            )

        invoiced = [d.ddt_number for d in ddts if d.is_invoiced]
        if invoiced:
            raise DDTAlreadyInvoicedError(
                "Uno o più DDT sono già fatturati",
                extra={"ddt_numbers": invoiced},
            )

    async def _lookup_costs(
        self,
        db: AsyncSession,
        product_ids: set[uuid.UUID],
    ) -> dict[uuid.UUID, Tuple[Optional[Decimal], Optional[uuid.UUID]]]:
        """
        Costo e fornitore per prodotto, in ordine di priorità:
        ultimo acquisto ricevuto, listino del fornitore preferito, costo anagrafico.
        """
        if not product_ids:
            return {}
        costs: dict[uuid.UUID, Tuple[Optional[Decimal], Optional[uuid.UUID]]] = {}

        result = await db.execute(
            select(PurchaseOrderItem.product_id, PurchaseOrderItem.unit_price, PurchaseOrder.supplier_id)
            .join(PurchaseOrder, PurchaseOrder.id == PurchaseOrderItem.purchase_order_id)
            .where(
                PurchaseOrderItem.product_id.in_(product_ids),
                PurchaseOrderItem.unit_price.is_not(None),
                PurchaseOrder.status == PurchaseOrderStatus.RECEIVED.value,
            )
            .order_by(PurchaseOrder.received_at.desc())
        )
        for product_id, unit_price, supplier_id in result.all():
            costs.setdefault(product_id, (unit_price, supplier_id))

        remaining = product_ids - costs.keys()
        preferred = await catalog_service.get_preferred_suppliers(db, list(remaining))
        for product_id, entry in preferred.items():
            if entry.price is not None:
                costs[product_id] = (entry.price, entry.supplier_id)

        remaining = product_ids - costs.keys()
        if remaining:
            result = await db.execute(select(Product.id, Product.cost_price).where(Product.id.in_(remaining)))
            for product_id, cost_price in result.all():
                supplier = preferred.get(product_id)
                costs[product_id] = (cost_price, supplier.supplier_id if supplier else None)
        return costs

    async def create_invoice(
        self,
        db: AsyncSession,
        data: InvoiceCreate,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Invoice:
        """
        Crea una fattura in bozza dai DDT indicati.

        Le righe sono copie delle righe DDT; i totali sono ricalcolati.
        Gli ordini consegnati con tutti i DDT fatturati passano a INVOICED.

        Raises:
            NotFoundError: Se cliente o DDT non esistono
            BusinessValidationError: Se un DDT è di un altro cliente
            ConflictError: Se un DDT non è fatturabile
            DDTAlreadyInvoicedError: Se un DDT è già in un'altra fattura
        """
        customer = await catalog_service.get_customer(db, data.customer_id)
        ddts = await self._load_delivery_notes(db, data.ddt_ids)
        self._validate_delivery_notes(ddts, customer.id)

        product_ids = {item.product_id for ddt in ddts for item in ddt.items if item.product_id is not None}
        costs = await self._lookup_costs(db, product_ids)

        issue_date = data.issue_date or date.today()
        if data.due_date is not None:
            due_date = data.due_date
        else:
            days = customer.payment_terms_days
            if days is None:
                days = settings.invoice_payment_days
            due_date = issue_date + timedelta(days=days)

        items = []
        for ddt in ddts:
            for ddt_item in ddt.items:
                cost_price, supplier_id = costs.get(ddt_item.product_id, (None, None))
                items.append(
                    InvoiceItem(
                        delivery_note_id=ddt.id,
                        product_id=ddt_item.product_id,
                        description=ddt_item.product_name,
                        quantity=ddt_item.quantity,
                        unit=ddt_item.unit,
                        unit_price=ddt_item.unit_price,
                        vat_rate=ddt_item.vat_rate,
                        line_total=ddt_item.line_total,
                        cost_price=cost_price,
                        supplier_id=supplier_id,
                        sort_order=len(items),
                    )
                )

        invoice = Invoice(
            invoice_number=await numbering_service.next_number(db, DocumentType.INVOICE, issue_date.year),
            customer_id=customer.id,
            status=InvoiceStatus.DRAFT.value,
            issue_date=issue_date,
            due_date=due_date,
            payment_method=(data.payment_method.value if data.payment_method else customer.payment_method),
            payment_terms=data.payment_terms,
            notes=data.notes,
            internal_notes=data.internal_notes,
            paid_amount=Decimal("0.00"),
        )
        invoice.items = items
        invoice.ddt_links = [InvoiceDDTLink(delivery_note=ddt) for ddt in ddts]
        apply_totals(invoice, items)

        try:
            async with db.begin_nested():
                db.add(invoice)
        except IntegrityError:
            # un'altra transazione ha collegato gli stessi DDT dopo il nostro controllo
            logger.warning("Collegamento DDT concorrente per la fattura del cliente %s", customer.code)
            raise DDTAlreadyInvoicedError(
                "Uno o più DDT sono stati fatturati da un'altra operazione",
                extra={"ddt_numbers": [d.ddt_number for d in ddts]},
            )

        order_ids = [ddt.order_id for ddt in ddts if ddt.order_id is not None]
        await order_service.on_delivery_notes_invoiced(db, order_ids, actor_id)

        activity_service.record(
            db, "INVOICE_CREATED", "invoice", invoice.id, actor_id,
            number=invoice.invoice_number, total=invoice.total,
        )
        logger.info(
            "Creata fattura %s per cliente %s: %s DDT, totale %s",
            invoice.invoice_number,
            customer.code,
            len(ddts),
            invoice.total,
        )
        return await self.get_by_id(db, invoice.id)

    # ------------------------------------------------------------
    # Stato ed eliminazione
    # ------------------------------------------------------------

    async def change_status(
        self,
        db: AsyncSession,
        invoice_id: uuid.UUID,
        new_status: InvoiceStatus,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Invoice:
        """
        Cambio di stato manuale secondo INVOICE_TRANSITIONS.

        L'annullamento conserva i collegamenti ai DDT: restano fatturati.
        """
        new_status = InvoiceStatus(new_status)
        invoice = await self.get_by_id(db, invoice_id)
        current = InvoiceStatus(invoice.status)
        ensure_transition(INVOICE_TRANSITIONS, current, new_status, "fattura")
        await compare_and_set_status(db, Invoice, invoice.id, current, new_status, "fattura")

        activity_service.record(
            db, "INVOICE_STATUS_CHANGED", "invoice", invoice.id, actor_id,
            old_status=current.value, new_status=new_status.value,
        )
        logger.info("Fattura %s: stato %s -> %s", invoice.invoice_number, current.value, new_status.value)
        return await self.get_by_id(db, invoice.id)

    async def delete(
        self,
        db: AsyncSession,
        invoice_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        """
        Elimina una fattura senza pagamenti: i DDT tornano fatturabili
        e gli ordini INVOICED tornano DELIVERED.

        Raises:
            ConflictError: Se la fattura è pagata o ha pagamenti registrati
        """
        invoice = await self.get_by_id(db, invoice_id, for_update=True)
        if invoice.status == InvoiceStatus.PAID.value or invoice.paid_amount > 0:
            raise ConflictError(
                f"La fattura {invoice.invoice_number} ha pagamenti registrati e non può essere eliminata",
                error_code="INVOICE_LOCKED",
            )

        order_ids = [
            link.delivery_note.order_id
            for link in invoice.ddt_links
            if link.delivery_note is not None and link.delivery_note.order_id is not None
        ]

        activity_service.record(
            db, "INVOICE_DELETED", "invoice", invoice.id, actor_id, number=invoice.invoice_number,
        )
        await db.delete(invoice)
        await db.flush()
        await order_service.on_invoice_removed(db, order_ids, actor_id)
        logger.info("Eliminata fattura %s", invoice.invoice_number)

    # ------------------------------------------------------------
    # Fatture fornitore
    # ------------------------------------------------------------

    async def create_supplier_invoice(
        self,
        db: AsyncSession,
        purchase_order: PurchaseOrder,
        actor_id: Optional[uuid.UUID] = None,
    ) -> SupplierInvoice:
        """Fattura fornitore con i totali dell'ordine d'acquisto ricevuto."""
        issue_date = date.today()
        days = purchase_order.supplier.payment_terms_days if purchase_order.supplier else None
        if days is None:
            days = settings.supplier_invoice_payment_days

        supplier_invoice = SupplierInvoice(
            invoice_number=await numbering_service.next_number(db, DocumentType.SUPPLIER_INVOICE),
            supplier_id=purchase_order.supplier_id,
            purchase_order_id=purchase_order.id,
            status=SupplierInvoiceStatus.ISSUED.value,
            issue_date=issue_date,
            due_date=issue_date + timedelta(days=days),
            subtotal=purchase_order.subtotal,
            vat_amount=purchase_order.vat_amount,
            total=purchase_order.total,
            paid_amount=Decimal("0.00"),
            notes=f"Ordine d'acquisto {purchase_order.po_number}",
        )
        db.add(supplier_invoice)
        await db.flush()
        activity_service.record(
            db, "SUPPLIER_INVOICE_CREATED", "supplier_invoice", supplier_invoice.id, actor_id,
            number=supplier_invoice.invoice_number, purchase_order=purchase_order.po_number,
        )
        logger.info(
            "Creata fattura fornitore %s per %s, totale %s",
            supplier_invoice.invoice_number,
            purchase_order.po_number,
            supplier_invoice.total,
        )
        return supplier_invoice

    async def get_supplier_invoice(
        self, db: AsyncSession, supplier_invoice_id: uuid.UUID, for_update: bool = False
    ) -> SupplierInvoice:
        query = (
            select(SupplierInvoice)
            .where(SupplierInvoice.id == supplier_invoice_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update(of=SupplierInvoice)
        supplier_invoice = (await db.execute(query)).unique().scalar_one_or_none()
        if supplier_invoice is None:
            raise NotFoundError(f"Fattura fornitore con ID {supplier_invoice_id} non trovata")
        return supplier_invoice

    async def list_supplier_invoices(
        self,
        db: AsyncSession,
        supplier_id: Optional[uuid.UUID] = None,
    ) -> list[SupplierInvoice]:
        query = select(SupplierInvoice)
        if supplier_id is not None:
            query = query.where(SupplierInvoice.supplier_id == supplier_id)
        result = await db.execute(query.order_by(SupplierInvoice.issue_date.desc()))
        return list(result.unique().scalars().all())


invoice_service = InvoiceService()
