"""
Helper comuni alle macchine a stati dei documenti
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Le tabelle delle transizioni vivono negli schemi di ciascun documento;
qui ci sono la verifica e la scrittura con controllo ottimistico.
"""

import logging
import uuid
from enum import Enum
from typing import Any, Mapping, Sequence

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.exceptions import InvalidTransitionError
from fruttagest.models.mixins import utcnow

logger = logging.getLogger(__name__)


def _value(status: Any) -> str:
    return status.value if isinstance(status, Enum) else str(status)


def is_transition_allowed(
    transitions: Mapping[Any, Sequence[Any]],
    current: Any,
    target: Any,
) -> bool:
    # gli enum (str, Enum) hanno lo stesso hash della stringa: lookup con entrambi
    allowed = {_value(s) for s in transitions.get(_value(current), [])}
    return _value(target) in allowed


def ensure_transition(
    transitions: Mapping[Any, Sequence[Any]],
    current: Any,
    target: Any,
    label: str,
) -> None:
    """
    Verifica che current -> target sia nella tabella.

    Raises:
        InvalidTransitionError: Se la transizione non è consentita
    """
    if not is_transition_allowed(transitions, current, target):
        logger.warning(
            "Transizione %s non consentita: %s -> %s",
            label,
            _value(current),
            _value(target),
        )
        raise InvalidTransitionError(
            f"Transizione {label} da '{_value(current)}' a '{_value(target)}' non consentita",
            extra={"current_status": _value(current), "requested_status": _value(target)},
        )


async def compare_and_set_status(
    db: AsyncSession,
    model: Any,
    entity_id: uuid.UUID,
    expected: Any,
    target: Any,
    label: str,
    **values: Any,
) -> None:
    """
    Scrive il nuovo stato solo se quello salvato è ancora `expected`.

    Se un'altra transazione ha cambiato lo stato nel frattempo
    l'UPDATE non tocca righe e la richiesta fallisce invece di sovrascrivere.

    Raises:
        InvalidTransitionError: Se lo stato è cambiato nel frattempo
    """
    stmt = (
        update(model)
        .where(model.id == entity_id, model.status == _value(expected))
        .values(status=_value(target), updated_at=utcnow(), **values)
        .execution_options(synchronize_session="fetch")
    )
    result = await db.execute(stmt)
    if result.rowcount != 1:
        logger.warning(
            "Stato %s %s modificato concorrentemente (atteso %s)",
            label,
            entity_id,
            _value(expected),
        )
        raise InvalidTransitionError(
            f"Lo stato di {label} è stato modificato da un'altra operazione",
            extra={"expected_status": _value(expected), "requested_status": _value(target)},
        )
