"""
API v1 Routes
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Router versione 1 dell'API.
"""

from fastapi import APIRouter

from fruttagest.api.v1 import (
    customers, suppliers, products, orders, delivery_notes, invoices, payments, shopping_lists, purchase_orders, stock, numbering
)

# Router aggregato per v1
api_v1_router = APIRouter(prefix="/api/v1")

# Includi i router dei moduli
api_v1_router.include_router(customers.router)
api_v1_router.include_router(suppliers.router)
api_v1_router.include_router(products.router)
api_v1_router.include_router(orders.router)
api_v1_router.include_router(delivery_notes.router)
api_v1_router.include_router(invoices.router)
api_v1_router.include_router(invoices.supplier_invoices_router)
api_v1_router.include_router(payments.router)
api_v1_router.include_router(shopping_lists.router)
api_v1_router.include_router(purchase_orders.router)
api_v1_router.include_router(stock.router)
api_v1_router.include_router(numbering.router)

# Esportazione
__all__ = ["api_v1_router"]
