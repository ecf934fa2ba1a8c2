"""
Modelli SQLAlchemy per gli ordini d'acquisto ai fornitori
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Contiene:
- PurchaseOrder: Ordine a un fornitore (uno per fornitore per lista spesa)
- PurchaseOrderItem: Riga derivata 1:1 da una riga della lista spesa
"""


from __future__ import annotations
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fruttagest.core.enums import PurchaseOrderStatus, Unit, sql_in
from fruttagest.models import Base
from fruttagest.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from fruttagest.models.invoice import SupplierInvoice
    from fruttagest.models.shopping_list import ShoppingList
    from fruttagest.models.supplier import Supplier


class PurchaseOrder(Base, UUIDMixin, TimestampMixin):
    """Ordine d'acquisto (numero OA-YYYY-NNNN)."""

    __tablename__ = "purchase_orders"

    po_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)

    supplier_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("suppliers.id", ondelete="RESTRICT"),
        nullable=False,
    )

    shopping_list_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("shopping_lists.id", ondelete="SET NULL"),
        nullable=True,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PurchaseOrderStatus.DRAFT.value,
    )

    order_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    expected_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    received_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    vat_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    supplier: Mapped["Supplier"] = relationship("Supplier", lazy="joined")

    shopping_list: Mapped[Optional["ShoppingList"]] = relationship(
        "ShoppingList",
        back_populates="purchase_orders",
    )

    items: Mapped[List["PurchaseOrderItem"]] = relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    supplier_invoice: Mapped[Optional["SupplierInvoice"]] = relationship(
        "SupplierInvoice",
        back_populates="purchase_order",
        uselist=False,
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_purchase_orders_supplier", "supplier_id"),
        Index("ix_purchase_orders_shopping_list", "shopping_list_id"),
        CheckConstraint(sql_in("status", PurchaseOrderStatus), name="ck_purchase_orders_status"),
    )

    def __repr__(self) -> str:
        return f"<PurchaseOrder(number={self.po_number}, status={self.status})>"


class PurchaseOrderItem(Base, UUIDMixin, TimestampMixin):
    """Riga d'acquisto: unit_price è None se il fornitore non ha listino per il prodotto."""

    __tablename__ = "purchase_order_items"

    purchase_order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("purchase_orders.id", ondelete="CASCADE"),
        nullable=False,
    )

    shopping_list_item_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("shopping_list_items.id", ondelete="SET NULL"),
        nullable=True,
    )

    product_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
    )

    product_name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default=Unit.KG.value)
    unit_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 4), nullable=True)
    line_total: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    purchase_order: Mapped["PurchaseOrder"] = relationship("PurchaseOrder", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_purchase_order_items_quantity"),
        CheckConstraint(sql_in("unit", Unit), name="ck_purchase_order_items_unit"),
    )
