"""
Mixin SQLAlchemy per modelli
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Mixin riutilizzabili per aggiungere funzionalità comuni ai modelli.
"""

import datetime
import uuid

from sqlalchemy import Boolean, DateTime, Uuid
from sqlalchemy import event
from sqlalchemy.orm import Mapped, mapped_column, Session
from sqlalchemy.sql import func


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class ActiveMixin:
    """
    Flag di attivazione per le anagrafiche.

    Clienti, fornitori e prodotti non attivi restano nello storico dei documenti
    ma non compaiono nelle liste operative.
    """

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        doc="False = anagrafica disattivata",
    )


class TimestampMixin:
    """
    Mixin per gestione automatica timestamp creazione e aggiornamento.

    - created_at: valorizzato alla creazione (lato Python, con default server di riserva)
    - updated_at: aggiornato dal listener before_flush
    """

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        doc="Data/ora di creazione del record",
    )

    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        doc="Data/ora ultimo aggiornamento del record",
    )


class UUIDMixin:
    """Primary key UUID generata lato applicazione."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        doc="UUID primary key",
    )


# ------------------------------------------------------------
# Event Listeners
# ------------------------------------------------------------
@event.listens_for(Session, "before_flush")
def update_timestamp(session: Session, flush_context, instances) -> None:
    """Aggiorna updated_at degli oggetti modificati prima di ogni flush."""
    now = utcnow()

    for obj in session.dirty:
        if hasattr(obj, "updated_at") and session.is_modified(obj, include_collections=False):
            obj.updated_at = now

    for obj in session.new:
        if hasattr(obj, "updated_at"):
            obj.updated_at = now
