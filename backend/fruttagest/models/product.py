"""
Modello SQLAlchemy per il catalogo prodotti
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

La giacenza NON è una colonna del prodotto: si ottiene sempre
come somma con segno dei movimenti di magazzino (vedi StockMovement).
"""


from __future__ import annotations
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fruttagest.core.enums import Unit, sql_in
from fruttagest.models import Base
from fruttagest.models.mixins import ActiveMixin, TimestampMixin, UUIDMixin


class Product(Base, UUIDMixin, TimestampMixin, ActiveMixin):
    """
    Prodotto a catalogo.

    Attributes:
        name: Nome commerciale (es. "Pomodoro ciliegino")
        category: Categoria libera (frutta, verdura, erbe...)
        unit: Unità di misura di vendita
        default_price: Prezzo di vendita di listino
        cost_price: Costo d'acquisto di riferimento
        vat_rate: Aliquota IVA in percentuale
    """

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(200), nullable=False, doc="Nome prodotto")

    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    unit: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=Unit.KG.value,
        doc="Unità di misura",
    )

    default_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 4),
        nullable=False,
        default=Decimal("0"),
        doc="Prezzo di vendita di listino",
    )

    cost_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 4),
        nullable=True,
        doc="Prezzo di costo di riferimento",
    )

    vat_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        default=Decimal("4.00"),
        doc="Aliquota IVA (%)",
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_products_name", "name"),
        CheckConstraint(sql_in("unit", Unit), name="ck_products_unit"),
        CheckConstraint("default_price >= 0", name="ck_products_default_price"),
        CheckConstraint("vat_rate >= 0 AND vat_rate <= 100", name="ck_products_vat_rate"),
    )

    def __repr__(self) -> str:
        return f"<Product(name={self.name}, unit={self.unit})>"
