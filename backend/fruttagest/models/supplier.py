"""
Modelli SQLAlchemy per fornitori e listini fornitore
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Contiene:
- Supplier: Anagrafica fornitore
- SupplierProduct: Voce di listino (prodotto, prezzo, fornitore preferito)
"""


from __future__ import annotations
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fruttagest.core.enums import PaymentMethod, Unit, sql_in
from fruttagest.models import Base
from fruttagest.models.mixins import ActiveMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from fruttagest.models.product import Product


class Supplier(Base, UUIDMixin, TimestampMixin, ActiveMixin):
    """Anagrafica fornitore (codice FOR-YYYY-NNNN)."""

    __tablename__ = "suppliers"

    code: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    business_name: Mapped[str] = mapped_column(String(200), nullable=False)
    vat_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    fiscal_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    sdi_code: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)
    pec_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    iban: Mapped[Optional[str]] = mapped_column(String(34), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    payment_terms_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_suppliers_business_name", "business_name"),
        CheckConstraint(
            "payment_method IS NULL OR " + sql_in("payment_method", PaymentMethod),
            name="ck_suppliers_payment_method",
        ),
    )

    def __repr__(self) -> str:
        return f"<Supplier(code={self.code}, business_name={self.business_name})>"


class SupplierProduct(Base, UUIDMixin, TimestampMixin):
    """
    Voce del listino di un fornitore.

    Per ogni prodotto al massimo una voce può essere `is_preferred`:
    è il fornitore proposto di default nella lista spesa.
    """

    __tablename__ = "supplier_products"

    supplier_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("suppliers.id", ondelete="CASCADE"),
        nullable=False,
    )

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )

    price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 4),
        nullable=True,
        doc="Prezzo di listino del fornitore",
    )

    unit: Mapped[str] = mapped_column(String(20), nullable=False, default=Unit.KG.value)

    is_preferred: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    supplier: Mapped["Supplier"] = relationship("Supplier", lazy="joined")
    product: Mapped["Product"] = relationship("Product", lazy="joined")

    __table_args__ = (
        UniqueConstraint("supplier_id", "product_id", name="uq_supplier_products_supplier_product"),
        Index("ix_supplier_products_product", "product_id"),
        CheckConstraint(sql_in("unit", Unit), name="ck_supplier_products_unit"),
        CheckConstraint("price IS NULL OR price >= 0", name="ck_supplier_products_price"),
    )
