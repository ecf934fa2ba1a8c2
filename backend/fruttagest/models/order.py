"""
Modelli SQLAlchemy per gli Ordini cliente
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Contiene:
- Order: Ordine cliente con macchina a stati
- OrderItem: Riga d'ordine (prodotto a catalogo oppure testo libero)
"""


from __future__ import annotations
import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fruttagest.core.enums import OrderChannel, OrderStatus, Unit, sql_in
from fruttagest.models import Base
from fruttagest.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from fruttagest.models.customer import Customer
    from fruttagest.models.delivery_note import DeliveryNote
    from fruttagest.models.product import Product


# Le transizioni consentite sono in fruttagest.schemas.order.ORDER_TRANSITIONS


class Order(Base, UUIDMixin, TimestampMixin):
    """
    Ordine cliente.

    subtotal/vat_amount/total sono una cache ricalcolata dalle righe
    ad ogni scrittura: la fonte di verità restano le righe.

    Relationships:
        customer: Cliente che ha effettuato l'ordine
        items: Righe d'ordine
        delivery_notes: DDT generati dall'ordine (consegne anche parziali)
    """

    __tablename__ = "orders"

    order_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        doc="Numero ordine (ORD-YYYY-NNNN)",
    )

    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
    )

    channel: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OrderChannel.MANUAL.value,
        doc="Canale di ricezione",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OrderStatus.RECEIVED.value,
        doc="Stato corrente dell'ordine",
    )

    order_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        default=date.today,
    )

    requested_delivery_date: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
        doc="Data di consegna richiesta (chiave della lista spesa)",
    )

    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    vat_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    internal_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ------------------------------------------------------------
    # Relazioni
    # ------------------------------------------------------------
    customer: Mapped["Customer"] = relationship("Customer", lazy="joined")

    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.sort_order",
    )

    delivery_notes: Mapped[List["DeliveryNote"]] = relationship(
        "DeliveryNote",
        back_populates="order",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_orders_status", "status"),
        Index("ix_orders_delivery_date_status", "requested_delivery_date", "status"),
        Index("ix_orders_customer", "customer_id"),
        CheckConstraint(sql_in("status", OrderStatus), name="ck_orders_status"),
        CheckConstraint(sql_in("channel", OrderChannel), name="ck_orders_channel"),
        CheckConstraint("subtotal >= 0 AND vat_amount >= 0 AND total >= 0", name="ck_orders_totals"),
    )

    def __repr__(self) -> str:
        return f"<Order(number={self.order_number}, status={self.status})>"


class OrderItem(Base, UUIDMixin, TimestampMixin):
    """
    Riga d'ordine.

    Variante etichettata: con product_id è una riga a catalogo,
    senza è una riga a testo libero identificata dal solo nome.
    product_name è sempre valorizzato (per le righe a catalogo è lo snapshot del nome).
    """

    __tablename__ = "order_items"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
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

    order: Mapped["Order"] = relationship("Order", back_populates="items")
    product: Mapped[Optional["Product"]] = relationship("Product", lazy="joined")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity"),
        CheckConstraint("unit_price >= 0", name="ck_order_items_unit_price"),
        CheckConstraint(sql_in("unit", Unit), name="ck_order_items_unit"),
    )

    @property
    def kind(self) -> str:
        """'catalog' per le righe a catalogo, 'free_text' per quelle libere."""
        return "catalog" if self.product_id is not None else "free_text"

    def __repr__(self) -> str:
        return f"<OrderItem(product={self.product_name}, qty={self.quantity} {self.unit})>"
