"""
Aggregazione e nettatura del fabbisogno
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Funzioni pure, senza accesso al database:
- raggruppamento delle righe d'ordine per chiave di riga
- quantità netta da acquistare rispetto alla giacenza
- raggruppamento per fornitore delle righe da ordinare
"""

import uuid
from collections import OrderedDict
from decimal import Decimal
from typing import Any, Iterable, Optional

from pydantic import BaseModel

ZERO = Decimal("0")


class DemandLine(BaseModel):
    """Fabbisogno aggregato di una chiave di riga."""

    line_key: str
    product_id: Optional[uuid.UUID] = None
    product_name: str
    unit: str
    total_quantity: Decimal


def normalize_name(name: str) -> str:
    """Nome per il confronto: minuscolo, spazi compattati."""
    return " ".join(name.lower().split())


def line_key(product_id: Optional[uuid.UUID], product_name: str, unit: str) -> str:
    """
    Chiave stabile di una riga della lista spesa.

    Le righe a catalogo si raggruppano per prodotto, quelle a testo libero
    per nome normalizzato; in entrambi i casi unità diverse restano separate.
    """
    if product_id is not None:
        return f"catalog:{product_id}:{unit}"
    return f"custom:{normalize_name(product_name)}:{unit}"


def aggregate_demand(items: Iterable[Any]) -> list[DemandLine]:
    """
    Somma le quantità delle righe d'ordine per chiave.

    Il nome mostrato è quello della prima riga incontrata; il risultato
    è ordinato per nome.
    """
    groups: "OrderedDict[str, DemandLine]" = OrderedDict()
    for item in items:
        key = line_key(item.product_id, item.product_name, item.unit)
        line = groups.get(key)
        if line is None:
            groups[key] = DemandLine(
                line_key=key,
                product_id=item.product_id,
                product_name=item.product_name.strip(),
                unit=item.unit,
                total_quantity=Decimal(item.quantity),
            )
        else:
            line.total_quantity += Decimal(item.quantity)
    return sorted(groups.values(), key=lambda line: normalize_name(line.product_name))


def available_quantity(stock: Optional[Decimal]) -> Decimal:
    """Giacenza utilizzabile: una giacenza negativa conta come zero."""
    if stock is None or stock < 0:
        return ZERO
    return Decimal(stock)


def net_quantity(total: Decimal, available: Decimal) -> Decimal:
    """Quantità da acquistare: max(0, fabbisogno - disponibile)."""
    return max(ZERO, Decimal(total) - available_quantity(available))


def group_for_purchase(items: Iterable[Any]) -> tuple["OrderedDict[uuid.UUID, list[Any]]", int]:
    """
    Raggruppa per fornitore le righe da ordinare.

    Una riga è saltata se non ha quantità netta, non ha fornitore
    o è già stata ordinata.

    Returns:
        (righe per fornitore nell'ordine di apparizione, numero di righe saltate)
    """
    groups: "OrderedDict[uuid.UUID, list[Any]]" = OrderedDict()
    skipped = 0
    for item in items:
        if item.is_ordered or item.supplier_id is None or item.net_quantity <= 0:
            skipped += 1
            continue
        groups.setdefault(item.supplier_id, []).append(item)
    return groups, skipped
