"""
Modello SQLAlchemy per l'anagrafica clienti
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Clienti dell'ingrosso: negozi, ristoranti, mense.
"""


from __future__ import annotations
from typing import Optional

from sqlalchemy import CheckConstraint, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fruttagest.core.enums import PaymentMethod, sql_in
from fruttagest.models import Base
from fruttagest.models.mixins import ActiveMixin, TimestampMixin, UUIDMixin


class Customer(Base, UUIDMixin, TimestampMixin, ActiveMixin):
    """
    Anagrafica cliente.

    Attributes:
        code: Codice progressivo CLI-YYYY-NNNN assegnato dalla numerazione
        business_name: Ragione sociale
        vat_number / fiscal_code: Identificativi fiscali
        sdi_code / pec_email: Recapiti fatturazione elettronica (stringhe opache)
        payment_terms_days: Giorni di scadenza fattura (None = default di configurazione)
        payment_method: Metodo di pagamento abituale
    """

    __tablename__ = "customers"

    code: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        doc="Codice cliente (CLI-YYYY-NNNN)",
    )

    business_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Ragione sociale o nome",
    )

    vat_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    fiscal_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    sdi_code: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)
    pec_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    province: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    postal_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    payment_terms_days: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        doc="Giorni di scadenza delle fatture",
    )

    payment_method: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        doc="Metodo di pagamento abituale",
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_customers_business_name", "business_name"),
        CheckConstraint(
            "payment_method IS NULL OR " + sql_in("payment_method", PaymentMethod),
            name="ck_customers_payment_method",
        ),
        CheckConstraint(
            "payment_terms_days IS NULL OR payment_terms_days >= 0",
            name="ck_customers_payment_terms",
        ),
    )

    def __repr__(self) -> str:
        return f"<Customer(code={self.code}, business_name={self.business_name})>"
