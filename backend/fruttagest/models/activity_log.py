"""
Modello SQLAlchemy per il registro attività
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""


from __future__ import annotations
import uuid
from typing import Any, Optional

from sqlalchemy import JSON, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fruttagest.models import Base
from fruttagest.models.mixins import TimestampMixin, UUIDMixin


class ActivityLog(Base, UUIDMixin, TimestampMixin):
    """Una riga per ogni operazione di dominio (es. ORDER_STATUS_CHANGED)."""

    __tablename__ = "activity_logs"

    actor_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        Index("ix_activity_logs_entity", "entity_type", "entity_id"),
    )
