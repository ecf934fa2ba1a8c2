"""
Modello SQLAlchemy per i movimenti di magazzino
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Registro in sola aggiunta: la giacenza di un prodotto è la somma
con segno di tutti i suoi movimenti. Gli storni si fanno con un
movimento di segno opposto, mai cancellando righe.
"""


from __future__ import annotations
import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fruttagest.core.enums import StockMovementType, StockReferenceType, Unit, sql_in
from fruttagest.models import Base
from fruttagest.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from fruttagest.models.product import Product


class StockMovement(Base, UUIDMixin, TimestampMixin):
    """
    Movimento di magazzino.

    quantity è sempre positiva: il segno dipende da movement_type.

    Attributes:
        reference_type / reference_id / reference_number: documento che ha
            originato il movimento (DDT, ordine d'acquisto) oppure MANUAL
        created_by_id: Operatore che ha registrato il movimento
    """

    __tablename__ = "stock_movements"

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
    )

    movement_type: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default=Unit.KG.value)
    movement_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    reference_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=StockReferenceType.MANUAL.value,
    )
    reference_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    reference_number: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    product: Mapped["Product"] = relationship("Product", lazy="joined")

    __table_args__ = (
        Index("ix_stock_movements_product", "product_id"),
        Index("ix_stock_movements_reference", "reference_type", "reference_id"),
        CheckConstraint("quantity > 0", name="ck_stock_movements_quantity"),
        CheckConstraint(sql_in("movement_type", StockMovementType), name="ck_stock_movements_type"),
        CheckConstraint(sql_in("reference_type", StockReferenceType), name="ck_stock_movements_reference_type"),
        CheckConstraint(sql_in("unit", Unit), name="ck_stock_movements_unit"),
    )

    def __repr__(self) -> str:
        return f"<StockMovement(type={self.movement_type}, qty={self.quantity} {self.unit})>"
