"""
Helper per costruire i dati di input nei test.
"""

import datetime
from decimal import Decimal

from fruttagest.schemas.order import CatalogLineCreate, FreeTextLineCreate


DELIVERY_DATE = datetime.date(2026, 3, 10)


def catalog_line(product, quantity, **kwargs) -> CatalogLineCreate:
    return CatalogLineCreate(product_id=product.id, quantity=Decimal(str(quantity)), **kwargs)


def free_line(description, quantity, **kwargs) -> FreeTextLineCreate:
    return FreeTextLineCreate(description=description, quantity=Decimal(str(quantity)), **kwargs)
