"""
Schemas Pydantic per il progetto FruttaGest

Questo modulo contiene gli schemi Pydantic usati per la validazione
delle richieste e la serializzazione delle risposte API.
"""

# es: from fruttagest.schemas import OrderCreate, InvoiceRead

from fruttagest.schemas.customer import CustomerCreate, CustomerRead
from fruttagest.schemas.supplier import (
    SupplierCreate,
    SupplierProductCreate,
    SupplierProductRead,
    SupplierRead,
)
from fruttagest.schemas.product import ProductCreate, ProductRead
from fruttagest.schemas.order import (
    CatalogLineCreate,
    FreeTextLineCreate,
    OrderCreate,
    OrderItemCreate,
    OrderItemRead,
    OrderList,
    OrderRead,
    OrderStatusUpdate,
    OrderUpdate,
)
from fruttagest.schemas.delivery_note import (
    DeliveryNoteCreate,
    DeliveryNoteItemRead,
    DeliveryNoteList,
    DeliveryNoteRead,
    DeliveryNoteStatusUpdate,
    DeliveryNoteUpdate,
)
from fruttagest.schemas.invoice import (
    InvoiceCreate,
    InvoiceItemRead,
    InvoiceList,
    InvoiceRead,
    InvoiceStatusUpdate,
    PaymentCreate,
    PaymentRead,
    SupplierInvoiceRead,
)
from fruttagest.schemas.shopping_list import (
    PurchaseOrderGenerationResult,
    ShoppingListGenerate,
    ShoppingListGenerationResult,
    ShoppingListItemRead,
    ShoppingListItemUpdate,
    ShoppingListRead,
    ShoppingListStatusUpdate,
)
from fruttagest.schemas.purchase_order import (
    PurchaseOrderItemRead,
    PurchaseOrderRead,
    PurchaseOrderStatusUpdate,
)
from fruttagest.schemas.stock import (
    StockItem,
    StockMovementCreate,
    StockMovementList,
    StockMovementRead,
)
from fruttagest.schemas.numbering import NextNumberRequest, NextNumberResponse

__all__ = [
    # Anagrafiche
    "CustomerCreate",
    "CustomerRead",
    "SupplierCreate",
    "SupplierProductCreate",
    "SupplierProductRead",
    "SupplierRead",
    "ProductCreate",
    "ProductRead",
    # Ordini
    "CatalogLineCreate",
    "FreeTextLineCreate",
    "OrderCreate",
    "OrderItemCreate",
    "OrderItemRead",
    "OrderList",
    "OrderRead",
    "OrderStatusUpdate",
    "OrderUpdate",
    # DDT
    "DeliveryNoteCreate",
    "DeliveryNoteItemRead",
    "DeliveryNoteList",
    "DeliveryNoteRead",
    "DeliveryNoteStatusUpdate",
    "DeliveryNoteUpdate",
    # Fatture e pagamenti
    "InvoiceCreate",
    "InvoiceItemRead",
    "InvoiceList",
    "InvoiceRead",
    "InvoiceStatusUpdate",
    "PaymentCreate",
    "PaymentRead",
    "SupplierInvoiceRead",
    # Lista spesa e acquisti
    "PurchaseOrderGenerationResult",
    "ShoppingListGenerate",
    "ShoppingListGenerationResult",
    "ShoppingListItemRead",
    "ShoppingListItemUpdate",
    "ShoppingListRead",
    "ShoppingListStatusUpdate",
    "PurchaseOrderItemRead",
    "PurchaseOrderRead",
    "PurchaseOrderStatusUpdate",
    # Magazzino
    "StockItem",
    "StockMovementCreate",
    "StockMovementList",
    "StockMovementRead",
    # Numerazione
    "NextNumberRequest",
    "NextNumberResponse",
]
