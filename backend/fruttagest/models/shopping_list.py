"""
Modelli SQLAlchemy per la lista spesa giornaliera
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Contiene:
- ShoppingList: Lista di approvvigionamento per una data di consegna
- ShoppingListItem: Riga aggregata e nettata rispetto alla giacenza
"""


from __future__ import annotations
import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Numeric, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fruttagest.core.enums import ShoppingListStatus, Unit, sql_in
from fruttagest.models import Base
from fruttagest.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from fruttagest.models.purchase_order import PurchaseOrder


class ShoppingList(Base, UUIDMixin, TimestampMixin):
    """Lista spesa: una sola per data."""

    __tablename__ = "shopping_lists"

    list_date: Mapped[date] = mapped_column(Date, unique=True, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ShoppingListStatus.DRAFT.value,
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    items: Mapped[List["ShoppingListItem"]] = relationship(
        "ShoppingListItem",
        back_populates="shopping_list",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ShoppingListItem.product_name",
    )

    purchase_orders: Mapped[List["PurchaseOrder"]] = relationship(
        "PurchaseOrder",
        back_populates="shopping_list",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(sql_in("status", ShoppingListStatus), name="ck_shopping_lists_status"),
    )

    def __repr__(self) -> str:
        return f"<ShoppingList(date={self.list_date}, status={self.status})>"


class ShoppingListItem(Base, UUIDMixin, TimestampMixin):
    """
    Riga della lista spesa.

    line_key identifica la riga tra una rigenerazione e l'altra
    (prodotto a catalogo o nome normalizzato, più unità di misura).
    net_quantity = max(0, total_quantity - available_stock).
    """

    __tablename__ = "shopping_list_items"

    shopping_list_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("shopping_lists.id", ondelete="CASCADE"),
        nullable=False,
    )

    line_key: Mapped[str] = mapped_column(String(255), nullable=False)

    product_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
    )

    product_name: Mapped[str] = mapped_column(String(200), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default=Unit.KG.value)

    total_quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False, default=Decimal("0"))
    available_stock: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False, default=Decimal("0"))
    net_quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False, default=Decimal("0"))

    supplier_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("suppliers.id", ondelete="SET NULL"),
        nullable=True,
    )
    supplier_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 4), nullable=True)

    is_ordered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    shopping_list: Mapped["ShoppingList"] = relationship("ShoppingList", back_populates="items")

    __table_args__ = (
        UniqueConstraint("shopping_list_id", "line_key", name="uq_shopping_list_items_key"),
        CheckConstraint("net_quantity >= 0", name="ck_shopping_list_items_net"),
        CheckConstraint(sql_in("unit", Unit), name="ck_shopping_list_items_unit"),
    )

    def __repr__(self) -> str:
        return f"<ShoppingListItem(key={self.line_key}, net={self.net_quantity})>"
