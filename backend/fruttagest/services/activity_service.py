"""
Service per il registro attività
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import logging
import uuid
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


class ActivityService:
    """Scrive una riga di registro nella stessa transazione dell'operazione."""

    def record(
        self,
        db: AsyncSession,
        action: str,
        entity_type: str,
        entity_id: Optional[uuid.UUID],
        actor_id: Optional[uuid.UUID] = None,
        **details: Any,
    ) -> ActivityLog:
        entry = ActivityLog(
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details={k: str(v) if v is not None else None for k, v in details.items()} or None,
        )
        db.add(entry)
        logger.debug("Attività %s su %s %s", action, entity_type, entity_id)
        return entry

    async def get_for_entity(
        self,
        db: AsyncSession,
        entity_type: str,
        entity_id: uuid.UUID,
    ) -> list[ActivityLog]:
        result = await db.execute(
            select(ActivityLog)
            .where(ActivityLog.entity_type == entity_type, ActivityLog.entity_id == entity_id)
            .order_by(ActivityLog.created_at)
        )
        return list(result.scalars().all())


activity_service = ActivityService()
