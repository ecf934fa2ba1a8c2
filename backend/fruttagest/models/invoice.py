"""
Modelli SQLAlchemy per Fatturazione e Pagamenti
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Contiene:
- Invoice: Fattura cliente aggregata da uno o più DDT
- InvoiceItem: Riga fattura (copia di una riga DDT)
- InvoiceDDTLink: Collegamento fattura ↔ DDT (un DDT al massimo in una fattura)
- SupplierInvoice: Fattura fornitore generata al ricevimento di un ordine d'acquisto
- Payment: Incasso o pagamento collegato a una fattura
"""


from __future__ import annotations
import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fruttagest.core.enums import (
    InvoiceStatus,
    PaymentDirection,
    PaymentMethod,
    SupplierInvoiceStatus,
    Unit,
    sql_in,
)
from fruttagest.models import Base
from fruttagest.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from fruttagest.models.customer import Customer
    from fruttagest.models.delivery_note import DeliveryNote
    from fruttagest.models.purchase_order import PurchaseOrder
    from fruttagest.models.supplier import Supplier


# Stati salvabili: OVERDUE è solo derivato
_STORED_INVOICE_STATUSES = [s for s in InvoiceStatus if s != InvoiceStatus.OVERDUE]


class Invoice(Base, UUIDMixin, TimestampMixin):
    """
    Fattura cliente.

    paid_amount è la somma dei pagamenti collegati, riallineata
    dal servizio pagamenti ad ogni inserimento o cancellazione.

    Properties:
        remaining_amount: Residuo da incassare
        is_overdue: Scaduta e non pagata
        display_status: Stato da mostrare (OVERDUE se scaduta)
    """

    __tablename__ = "invoices"

    invoice_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        doc="Numero fattura (FT-YYYY-NNNN)",
    )

    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InvoiceStatus.DRAFT.value,
    )

    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    payment_method: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    payment_terms: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    vat_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    paid_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    internal_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ------------------------------------------------------------
    # Relazioni
    # ------------------------------------------------------------
    customer: Mapped["Customer"] = relationship("Customer", lazy="joined")

    items: Mapped[List["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InvoiceItem.sort_order",
    )

    ddt_links: Mapped[List["InvoiceDDTLink"]] = relationship(
        "InvoiceDDTLink",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    payments: Mapped[List["Payment"]] = relationship(
        "Payment",
        back_populates="invoice",
        lazy="selectin",
    )

    @property
    def remaining_amount(self) -> Decimal:
        """Importo residuo da incassare."""
        return self.total - self.paid_amount

    @property
    def is_overdue(self) -> bool:
        """True se la fattura è scaduta e non pagata."""
        if self.status in (InvoiceStatus.PAID.value, InvoiceStatus.CANCELLED.value):
            return False
        return self.due_date < date.today()

    @property
    def display_status(self) -> str:
        return InvoiceStatus.OVERDUE.value if self.is_overdue else self.status

    __table_args__ = (
        Index("ix_invoices_customer", "customer_id"),
        Index("ix_invoices_issue_date", "issue_date"),
        Index("ix_invoices_due_date", "due_date"),
        CheckConstraint(
            "status IN (" + ", ".join(f"'{s.value}'" for s in _STORED_INVOICE_STATUSES) + ")",
            name="ck_invoices_status",
        ),
        CheckConstraint(
            "payment_method IS NULL OR " + sql_in("payment_method", PaymentMethod),
            name="ck_invoices_payment_method",
        ),
        CheckConstraint("paid_amount >= 0 AND paid_amount <= total", name="ck_invoices_paid_amount"),
        CheckConstraint("subtotal >= 0 AND vat_amount >= 0", name="ck_invoices_amounts"),
    )

    def __repr__(self) -> str:
        return f"<Invoice(number={self.invoice_number}, total={self.total}, status={self.status})>"


class InvoiceItem(Base, UUIDMixin, TimestampMixin):
    """
    Riga fattura: copia di una riga DDT, mai un riferimento.

    cost_price e supplier_id servono al calcolo del margine.
    """

    __tablename__ = "invoice_items"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
    )

    delivery_note_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("delivery_notes.id", ondelete="SET NULL"),
        nullable=True,
        doc="DDT di provenienza",
    )

    product_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
    )

    description: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default=Unit.KG.value)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    vat_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    line_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    cost_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 4), nullable=True)
    supplier_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("suppliers.id", ondelete="SET NULL"),
        nullable=True,
    )

    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")


class InvoiceDDTLink(Base, UUIDMixin, TimestampMixin):
    """
    Collegamento fattura ↔ DDT.

    Il vincolo unique su delivery_note_id impedisce a livello di database
    che lo stesso DDT finisca in due fatture, anche con richieste concorrenti.
    """

    __tablename__ = "invoice_ddt_links"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
    )

    delivery_note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("delivery_notes.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="ddt_links")
    delivery_note: Mapped["DeliveryNote"] = relationship(
        "DeliveryNote",
        back_populates="invoice_link",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_invoice_ddt_links_invoice", "invoice_id"),
    )


class SupplierInvoice(Base, UUIDMixin, TimestampMixin):
    """Fattura fornitore, generata al ricevimento di un ordine d'acquisto."""

    __tablename__ = "supplier_invoices"

    invoice_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)

    supplier_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("suppliers.id", ondelete="RESTRICT"),
        nullable=False,
    )

    purchase_order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("purchase_orders.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SupplierInvoiceStatus.ISSUED.value,
    )

    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    vat_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    paid_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    supplier: Mapped["Supplier"] = relationship("Supplier", lazy="joined")
    purchase_order: Mapped[Optional["PurchaseOrder"]] = relationship(
        "PurchaseOrder",
        back_populates="supplier_invoice",
    )
    payments: Mapped[List["Payment"]] = relationship(
        "Payment",
        back_populates="supplier_invoice",
        lazy="selectin",
    )

    @property
    def remaining_amount(self) -> Decimal:
        return self.total - self.paid_amount

    __table_args__ = (
        CheckConstraint(sql_in("status", SupplierInvoiceStatus), name="ck_supplier_invoices_status"),
        CheckConstraint("paid_amount >= 0 AND paid_amount <= total", name="ck_supplier_invoices_paid_amount"),
    )


class Payment(Base, UUIDMixin, TimestampMixin):
    """
    Pagamento in entrata (da cliente) o in uscita (verso fornitore).

    Può essere collegato a una fattura cliente oppure a una fattura
    fornitore, mai a entrambe.
    """

    __tablename__ = "payments"

    direction: Mapped[str] = mapped_column(String(10), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    method: Mapped[str] = mapped_column(String(20), nullable=False)
    reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
    )
    supplier_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("suppliers.id", ondelete="SET NULL"),
        nullable=True,
    )
    invoice_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="RESTRICT"),
        nullable=True,
    )
    supplier_invoice_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("supplier_invoices.id", ondelete="RESTRICT"),
        nullable=True,
    )

    invoice: Mapped[Optional["Invoice"]] = relationship("Invoice", back_populates="payments")
    supplier_invoice: Mapped[Optional["SupplierInvoice"]] = relationship(
        "SupplierInvoice",
        back_populates="payments",
    )

    __table_args__ = (
        Index("ix_payments_invoice", "invoice_id"),
        Index("ix_payments_supplier_invoice", "supplier_invoice_id"),
        CheckConstraint("amount > 0", name="ck_payments_amount"),
        CheckConstraint(sql_in("direction", PaymentDirection), name="ck_payments_direction"),
        CheckConstraint(sql_in("method", PaymentMethod), name="ck_payments_method"),
        CheckConstraint(
            "invoice_id IS NULL OR supplier_invoice_id IS NULL",
            name="ck_payments_single_document",
        ),
    )

    def __repr__(self) -> str:
        return f"<Payment(direction={self.direction}, amount={self.amount})>"
