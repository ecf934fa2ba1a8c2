"""
Test per il calcolo dei totali documento
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from fruttagest.services.totals import apply_totals, compute_totals, line_total, money


class Line(BaseModel):
    quantity: Decimal
    unit_price: Optional[Decimal]
    vat_rate: Decimal


def line(quantity, unit_price, vat_rate) -> Line:
    return Line(
        quantity=Decimal(quantity),
        unit_price=Decimal(unit_price) if unit_price is not None else None,
        vat_rate=Decimal(vat_rate),
    )


# ============================================================
# Righe
# ============================================================


class TestLineTotal:
    """Test per l'imponibile di riga."""

    def test_quantity_times_price(self):
        """Test quantità × prezzo arrotondato al centesimo"""
        assert line_total(Decimal("2"), Decimal("3.00")) == Decimal("6.00")
        assert line_total(Decimal("1.255"), Decimal("2.00")) == Decimal("2.51")

    def test_missing_price_counts_as_zero(self):
        """Test riga senza prezzo: imponibile zero"""
        assert line_total(Decimal("5"), None) == Decimal("0.00")

    def test_half_up_rounding(self):
        """Test arrotondamento commerciale: 0.005 va all'unità superiore"""
        assert money(Decimal("0.005")) == Decimal("0.01")
        assert money(Decimal("2.345")) == Decimal("2.35")
        assert money(Decimal("2.344")) == Decimal("2.34")


# ============================================================
# Documento
# ============================================================


class TestComputeTotals:
    """Test per imponibile, IVA e totale."""

    def test_mixed_vat_rates(self):
        """Test 2 kg a 3.00 (4%) + 1 mazzo a 10.00 (10%) = 16.00 + 1.24 = 17.24"""
        totals = compute_totals([line("2", "3.00", "4"), line("1", "10.00", "10")])

        assert totals.subtotal == Decimal("16.00")
        assert totals.vat_amount == Decimal("1.24")
        assert totals.total == Decimal("17.24")

    def test_vat_rounded_once_on_the_sum(self):
        """Test IVA sommata per riga e arrotondata una sola volta"""
        # 0.10 al 4% = 0.004 per riga; arrotondando per riga sarebbe 0.00
        lines = [line("1", "0.10", "4") for _ in range(5)]

        totals = compute_totals(lines)

        assert totals.subtotal == Decimal("0.50")
        assert totals.vat_amount == Decimal("0.02")
        assert totals.total == Decimal("0.52")

    def test_empty_document(self):
        """Test documento senza righe"""
        totals = compute_totals([])
        assert totals.total == Decimal("0.00")

    def test_apply_totals_writes_document(self):
        """Test scrittura dei totali sull'oggetto documento"""

        class Document:
            subtotal = vat_amount = total = None

        document = Document()
        apply_totals(document, [line("3", "1.50", "4"), line("2", None, "4")])

        assert document.subtotal == Decimal("4.50")
        assert document.vat_amount == Decimal("0.18")
        assert document.total == Decimal("4.68")
