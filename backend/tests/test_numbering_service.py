"""
Test per la numerazione documenti
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import asyncio

import pytest

from fruttagest.core.enums import DocumentType
from fruttagest.core.exceptions import InvalidPeriodError, SequenceExhaustedError
from fruttagest.models.number_sequence import NumberSequence
from fruttagest.services.numbering_service import (
    MAX_SEQUENCE_VALUE,
    format_number,
    numbering_service,
)


# ============================================================
# Formato
# ============================================================


class TestFormatNumber:

    def test_prefix_year_and_padding(self):
        assert format_number(DocumentType.ORDER, 2026, 1) == "ORD-2026-0001"
        assert format_number(DocumentType.INVOICE, 2026, 42) == "FT-2026-0042"

    def test_padding_is_a_minimum(self):
        """Test progressivo oltre le cifre del padding"""
        assert format_number(DocumentType.DDT, 2026, 12345) == "DDT-2026-12345"


# ============================================================
# Emissione
# ============================================================


class TestNextNumber:

    @pytest.mark.asyncio
    async def test_sequence_starts_at_one(self, db):
        """Test prima emissione dell'anno e progressivo successivo"""
        first = await numbering_service.next_number(db, DocumentType.ORDER, 2026)
        second = await numbering_service.next_number(db, DocumentType.ORDER, 2026)

        assert first == "ORD-2026-0001"
        assert second == "ORD-2026-0002"
        assert await numbering_service.peek(db, DocumentType.ORDER, 2026) == 2

    @pytest.mark.asyncio
    async def test_years_and_types_are_independent(self, db):
        """Test sequenze separate per anno e per tipo documento"""
        await numbering_service.next_number(db, DocumentType.ORDER, 2025)
        await numbering_service.next_number(db, DocumentType.ORDER, 2025)

        assert await numbering_service.next_number(db, DocumentType.ORDER, 2026) == "ORD-2026-0001"
        assert await numbering_service.next_number(db, DocumentType.DDT, 2025) == "DDT-2025-0001"
        assert await numbering_service.peek(db, DocumentType.ORDER, 2025) == 2

    @pytest.mark.asyncio
    async def test_year_out_of_range(self, db):
        """Test anno fuori intervallo"""
        with pytest.raises(InvalidPeriodError) as exc_info:
            await numbering_service.next_number(db, DocumentType.ORDER, 1999)
        assert exc_info.value.status_code == 422
        assert await numbering_service.peek(db, DocumentType.ORDER, 1999) == 0

    @pytest.mark.asyncio
    async def test_exhausted_sequence(self, db):
        """Test sequenza arrivata al limite della colonna"""
        db.add(
            NumberSequence(
                document_type=DocumentType.INVOICE.value,
                year=2026,
                prefix="FT",
                last_number=MAX_SEQUENCE_VALUE,
            )
        )
        await db.flush()

        with pytest.raises(SequenceExhaustedError):
            await numbering_service.next_number(db, DocumentType.INVOICE, 2026)

    @pytest.mark.asyncio
    async def test_concurrent_requests_get_distinct_numbers(self, session_factory):
        """Test richieste concorrenti su sessioni diverse: numeri tutti distinti e contigui"""

        async def issue() -> str:
            async with session_factory() as session:
                number = await numbering_service.next_number(session, DocumentType.ORDER, 2026)
                await session.commit()
                return number

        numbers = await asyncio.gather(*(issue() for _ in range(8)))

        assert len(set(numbers)) == 8
        assert sorted(numbers) == [f"ORD-2026-{n:04d}" for n in range(1, 9)]
