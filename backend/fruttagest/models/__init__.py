"""
Modelli Database SQLAlchemy
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Import centralizzato di tutti i modelli per create_all e usage generico.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class per tutti i modelli SQLAlchemy."""
    pass


from fruttagest.models.customer import Customer
from fruttagest.models.product import Product
from fruttagest.models.supplier import Supplier, SupplierProduct
from fruttagest.models.order import Order, OrderItem
from fruttagest.models.delivery_note import DeliveryNote, DeliveryNoteItem
from fruttagest.models.invoice import Invoice, InvoiceDDTLink, InvoiceItem, Payment, SupplierInvoice
from fruttagest.models.stock import StockMovement
from fruttagest.models.shopping_list import ShoppingList, ShoppingListItem
from fruttagest.models.purchase_order import PurchaseOrder, PurchaseOrderItem
from fruttagest.models.number_sequence import NumberSequence
from fruttagest.models.activity_log import ActivityLog

__all__ = [
    "Base",
    "Customer",
    "Product",
    "Supplier",
    "SupplierProduct",
    "Order",
    "OrderItem",
    "DeliveryNote",
    "DeliveryNoteItem",
    "Invoice",
    "InvoiceItem",
    "InvoiceDDTLink",
    "SupplierInvoice",
    "Payment",
    "StockMovement",
    "ShoppingList",
    "ShoppingListItem",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "NumberSequence",
    "ActivityLog",
]
