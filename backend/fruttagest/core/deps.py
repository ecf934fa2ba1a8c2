"""
Dependency Injection comuni
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

L'autenticazione è esterna al gestionale: l'identità dell'operatore
arriva dal gateway nell'header X-User-Id ed è usata solo per il registro attività.
"""

from typing import Optional
from uuid import UUID

from fastapi import Header

from fruttagest.core.exceptions import BusinessValidationError


async def get_actor_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> Optional[UUID]:
    """
    Restituisce l'UUID dell'operatore che esegue la richiesta, se presente.

    Raises:
        BusinessValidationError: Se l'header non contiene un UUID valido
    """
    if not x_user_id:
        return None
    try:
        return UUID(x_user_id)
    except ValueError:
        raise BusinessValidationError(
            "Header X-User-Id non valido",
            error_code="INVALID_ACTOR",
        )
