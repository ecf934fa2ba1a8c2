"""
Modelli SQLAlchemy per i Documenti di Trasporto (DDT)
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Contiene:
- DeliveryNote: Testata DDT con dati di trasporto
- DeliveryNoteItem: Righe copiate dall'ordine al momento della creazione
"""


from __future__ import annotations
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fruttagest.core.enums import DeliveryNoteStatus, Unit, sql_in
from fruttagest.models import Base
from fruttagest.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from fruttagest.models.customer import Customer
    from fruttagest.models.invoice import InvoiceDDTLink
    from fruttagest.models.order import Order


class DeliveryNote(Base, UUIDMixin, TimestampMixin):
    """
    Documento di trasporto.

    Le righe sono uno snapshot: dopo la creazione non vengono mai
    ricalcolate dall'ordine. order_id viene azzerato se l'ordine
    di origine è eliminato dopo l'emissione.

    Relationships:
        order: Ordine di origine (0 o 1)
        customer: Destinatario
        items: Righe snapshot
        invoice_link: Collegamento alla fattura (0 o 1)
    """

    __tablename__ = "delivery_notes"

    ddt_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)

    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="SET NULL"),
        nullable=True,
    )

    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DeliveryNoteStatus.DRAFT.value,
    )

    issue_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)

    delivered_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Data/ora di consegna effettiva",
    )

    # ------------------------------------------------------------
    # Dati di trasporto
    # ------------------------------------------------------------
    transport_reason: Mapped[str] = mapped_column(String(100), nullable=False, default="Vendita")
    transported_by: Mapped[str] = mapped_column(String(100), nullable=False, default="Mittente")
    goods_appearance: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    number_of_packages: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    weight: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True, doc="Peso in kg")
    delivery_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    vat_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    # ------------------------------------------------------------
    # Relazioni
    # ------------------------------------------------------------
    order: Mapped[Optional["Order"]] = relationship(
        "Order",
        back_populates="delivery_notes",
        lazy="selectin",
    )

    customer: Mapped["Customer"] = relationship("Customer", lazy="joined")

    items: Mapped[List["DeliveryNoteItem"]] = relationship(
        "DeliveryNoteItem",
        back_populates="delivery_note",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="DeliveryNoteItem.sort_order",
    )

    invoice_link: Mapped[Optional["InvoiceDDTLink"]] = relationship(
        "InvoiceDDTLink",
        back_populates="delivery_note",
        uselist=False,
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_delivery_notes_status", "status"),
        Index("ix_delivery_notes_customer", "customer_id"),
        Index("ix_delivery_notes_order", "order_id"),
        CheckConstraint(sql_in("status", DeliveryNoteStatus), name="ck_delivery_notes_status"),
        CheckConstraint(
            "number_of_packages IS NULL OR number_of_packages >= 0",
            name="ck_delivery_notes_packages",
        ),
    )

    @property
    def is_invoiced(self) -> bool:
        return self.invoice_link is not None

    def __repr__(self) -> str:
        return f"<DeliveryNote(number={self.ddt_number}, status={self.status})>"


class DeliveryNoteItem(Base, UUIDMixin, TimestampMixin):
    """Riga DDT: copia di quantità, prezzo e IVA della riga d'ordine."""

    __tablename__ = "delivery_note_items"

    delivery_note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("delivery_notes.id", ondelete="CASCADE"),
        nullable=False,
    )

    order_item_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("order_items.id", ondelete="SET NULL"),
        nullable=True,
        doc="Riga d'ordine di origine (per il calcolo del residuo da consegnare)",
    )

    product_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=True,
    )

    product_name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default=Unit.KG.value)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False, default=Decimal("0"))
    vat_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("4.00"))
    line_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    delivery_note: Mapped["DeliveryNote"] = relationship("DeliveryNote", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_delivery_note_items_quantity"),
        CheckConstraint(sql_in("unit", Unit), name="ck_delivery_note_items_unit"),
    )
