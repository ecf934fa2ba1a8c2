"""
Service per la numerazione dei documenti
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Emette numeri nel formato {prefisso}-{anno}-{progressivo}, es. ORD-2026-0001.
Il progressivo è per (tipo documento, anno) e non viene mai riutilizzato.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.config import settings
from fruttagest.core.enums import DOCUMENT_PREFIXES, DocumentType
from fruttagest.core.exceptions import (
    ConcurrentModificationError,
    InvalidPeriodError,
    SequenceExhaustedError,
)
from fruttagest.models.mixins import utcnow
from fruttagest.models.number_sequence import NumberSequence

logger = logging.getLogger(__name__)

# Limite della colonna INTEGER su PostgreSQL
MAX_SEQUENCE_VALUE = 2**31 - 1


def format_number(document_type: DocumentType, year: int, number: int) -> str:
    """Formatta il numero documento con il padding configurato."""
    prefix = DOCUMENT_PREFIXES[document_type]
    return f"{prefix}-{year}-{number:0{settings.numbering_padding}d}"


class NumberingService:
    """
    Service per l'emissione dei numeri documento.

    L'incremento è un UPDATE atomico sulla riga della sequenza; la prima
    emissione dell'anno crea la riga in un savepoint e, se un'altra
    transazione l'ha creata per prima (violazione unique), riprova l'incremento.
    Il numero fa parte della stessa transazione del documento che lo usa.
    """

    async def next_number(
        self,
        db: AsyncSession,
        document_type: DocumentType,
        year: Optional[int] = None,
    ) -> str:
        """
        Restituisce il prossimo numero per (document_type, year).

        Args:
            db: Sessione database
            document_type: Tipo documento
            year: Anno della sequenza (default: anno corrente)

        Raises:
            InvalidPeriodError: Se l'anno è fuori dall'intervallo configurato
            SequenceExhaustedError: Se la sequenza ha raggiunto il limite
            ConcurrentModificationError: Se la contesa non si risolve nei tentativi previsti
        """
        document_type = DocumentType(document_type)
        if year is None:
            year = date.today().year
        if not settings.numbering_min_year <= year <= settings.numbering_max_year:
            raise InvalidPeriodError(
                f"Anno {year} fuori intervallo "
                f"({settings.numbering_min_year}-{settings.numbering_max_year})",
                extra={"year": year},
            )

        for attempt in range(1, settings.numbering_max_retries + 1):
            number = await self._increment(db, document_type, year)
            if number is None:
                number = await self._create_sequence(db, document_type, year)
            if number is not None:
                formatted = format_number(document_type, year, number)
                logger.debug("Emesso numero %s", formatted)
                return formatted
            logger.warning(
                "Contesa sulla sequenza %s/%s, tentativo %s di %s",
                document_type.value,
                year,
                attempt,
                settings.numbering_max_retries,
            )

        logger.error("Tentativi esauriti per la sequenza %s/%s", document_type.value, year)
        raise ConcurrentModificationError(
            f"Impossibile ottenere un numero {document_type.value} per il {year}, riprovare",
        )

    async def _increment(
        self,
        db: AsyncSession,
        document_type: DocumentType,
        year: int,
    ) -> Optional[int]:
        """UPDATE ... SET last_number = last_number + 1 RETURNING; None se la riga non esiste."""
        current = await db.execute(
            select(NumberSequence.last_number).where(
                NumberSequence.document_type == document_type.value,
                NumberSequence.year == year,
            )
        )
        last_number = current.scalar_one_or_none()
        if last_number is None:
            return None
        if last_number >= MAX_SEQUENCE_VALUE:
            raise SequenceExhaustedError(
                f"Numerazione {document_type.value} esaurita per il {year}",
            )

        result = await db.execute(
            update(NumberSequence)
            .where(
                NumberSequence.document_type == document_type.value,
                NumberSequence.year == year,
            )
            .values(last_number=NumberSequence.last_number + 1, updated_at=utcnow())
            .returning(NumberSequence.last_number)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one()

    async def _create_sequence(
        self,
        db: AsyncSession,
        document_type: DocumentType,
        year: int,
    ) -> Optional[int]:
        """Crea la sequenza partendo da 1; None se un'altra transazione l'ha già creata."""
        try:
            async with db.begin_nested():
                db.add(
                    NumberSequence(
                        document_type=document_type.value,
                        year=year,
                        prefix=DOCUMENT_PREFIXES[document_type],
                        last_number=1,
                    )
                )
        except IntegrityError:
            return None
        logger.info("Creata sequenza %s per l'anno %s", document_type.value, year)
        return 1

    async def peek(self, db: AsyncSession, document_type: DocumentType, year: int) -> int:
        """Ultimo numero emesso (0 se la sequenza non esiste)."""
        result = await db.execute(
            select(NumberSequence.last_number).where(
                NumberSequence.document_type == DocumentType(document_type).value,
                NumberSequence.year == year,
            )
        )
        return result.scalar_one_or_none() or 0


numbering_service = NumberingService()
