"""
Modello SQLAlchemy per le sequenze di numerazione
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""


from __future__ import annotations

from sqlalchemy import CheckConstraint, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fruttagest.core.enums import DocumentType, sql_in
from fruttagest.models import Base
from fruttagest.models.mixins import TimestampMixin, UUIDMixin


class NumberSequence(Base, UUIDMixin, TimestampMixin):
    """
    Ultimo numero emesso per (tipo documento, anno).

    Il vincolo unique sulla coppia garantisce una sola riga per sequenza
    anche quando due richieste provano a crearla insieme.
    """

    __tablename__ = "number_sequences"

    document_type: Mapped[str] = mapped_column(String(30), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    prefix: Mapped[str] = mapped_column(String(10), nullable=False)
    last_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("document_type", "year", name="uq_number_sequences_type_year"),
        CheckConstraint(sql_in("document_type", DocumentType), name="ck_number_sequences_type"),
        CheckConstraint("last_number >= 0", name="ck_number_sequences_last_number"),
    )

    def __repr__(self) -> str:
        return f"<NumberSequence({self.document_type}/{self.year}: {self.last_number})>"
