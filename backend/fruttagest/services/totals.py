"""
Calcolo totali documento
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Funzioni pure usate da ordini, DDT, fatture e ordini d'acquisto.
I totali salvati sui documenti sono sempre ricalcolati da qui,
mai presi dall'input del client.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict

TWO_PLACES = Decimal("0.01")
HUNDRED = Decimal("100")


class DocumentTotals(BaseModel):
    """Totali di un documento, già arrotondati al centesimo."""

    model_config = ConfigDict(frozen=True)

    subtotal: Decimal
    vat_amount: Decimal
    total: Decimal


def money(value: Decimal) -> Decimal:
    """Arrotonda al centesimo (ROUND_HALF_UP)."""
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def line_total(quantity: Decimal, unit_price: Optional[Decimal]) -> Decimal:
    """Imponibile di riga: quantità × prezzo, al centesimo."""
    if unit_price is None:
        return Decimal("0.00")
    return money(Decimal(quantity) * Decimal(unit_price))


def compute_totals(lines: Iterable[Any]) -> DocumentTotals:
    """
    Calcola imponibile, IVA e totale di un documento.

    subtotal = Σ lineTotal
    vat_amount = Σ lineTotal × vatRate / 100 (arrotondata una volta sola sul totale)
    total = subtotal + vat_amount

    Esempio: [2 × 3.00 al 4%, 1 × 10.00 al 10%] -> 16.00 / 1.24 / 17.24
    """
    subtotal = Decimal("0")
    vat = Decimal("0")
    for line in lines:
        amount = line_total(line.quantity, line.unit_price)
        subtotal += amount
        vat += amount * Decimal(line.vat_rate) / HUNDRED
    subtotal = money(subtotal)
    vat = money(vat)
    return DocumentTotals(subtotal=subtotal, vat_amount=vat, total=subtotal + vat)


def apply_totals(document, lines: Iterable[Any]) -> DocumentTotals:
    """Ricalcola e scrive subtotal/vat_amount/total sul documento."""
    totals = compute_totals(lines)
    document.subtotal = totals.subtotal
    document.vat_amount = totals.vat_amount
    document.total = totals.total
    return totals
