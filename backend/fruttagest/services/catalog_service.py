"""
Service per le anagrafiche: clienti, fornitori, prodotti, listini
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)
"""

import logging
import uuid
from typing import Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.core.enums import DocumentType
from fruttagest.core.exceptions import DuplicateError, NotFoundError
from fruttagest.models.customer import Customer
from fruttagest.models.product import Product
from fruttagest.models.supplier import Supplier, SupplierProduct
from fruttagest.schemas.customer import CustomerCreate
from fruttagest.schemas.product import ProductCreate
from fruttagest.schemas.supplier import SupplierCreate, SupplierProductCreate
from fruttagest.services.numbering_service import numbering_service

logger = logging.getLogger(__name__)


class CatalogService:
    """Creazione e lettura delle anagrafiche usate dai documenti."""

    # ------------------------------------------------------------
    # Clienti
    # ------------------------------------------------------------

    async def create_customer(self, db: AsyncSession, data: CustomerCreate) -> Customer:
        code = await numbering_service.next_number(db, DocumentType.CUSTOMER)
        customer = Customer(code=code, **data.model_dump(mode="json"))
        db.add(customer)
        await db.flush()
        logger.info("Creato cliente %s (%s)", customer.code, customer.business_name)
        return customer

    async def get_customer(self, db: AsyncSession, customer_id: uuid.UUID) -> Customer:
        customer = await db.get(Customer, customer_id)
        if customer is None:
            raise NotFoundError(f"Cliente con ID {customer_id} non trovato")
        return customer

    async def list_customers(
        self,
        db: AsyncSession,
        search: Optional[str] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[list[Customer], int]:
        query = select(Customer).where(Customer.is_active.is_(True))
        count_query = select(func.count(Customer.id)).where(Customer.is_active.is_(True))
        if search:
            condition = Customer.business_name.ilike(f"%{search}%") | Customer.code.ilike(f"%{search}%")
            query = query.where(condition)
            count_query = count_query.where(condition)
        query = query.order_by(Customer.business_name).offset((page - 1) * per_page).limit(per_page)
        items = list((await db.execute(query)).scalars().all())
        total = (await db.execute(count_query)).scalar() or 0
        return items, total

    # ------------------------------------------------------------
    # Fornitori
    # ------------------------------------------------------------

    async def create_supplier(self, db: AsyncSession, data: SupplierCreate) -> Supplier:
        code = await numbering_service.next_number(db, DocumentType.SUPPLIER)
        supplier = Supplier(code=code, **data.model_dump(mode="json"))
        db.add(supplier)
        await db.flush()
        logger.info("Creato fornitore %s (%s)", supplier.code, supplier.business_name)
        return supplier

    async def get_supplier(self, db: AsyncSession, supplier_id: uuid.UUID) -> Supplier:
        supplier = await db.get(Supplier, supplier_id)
        if supplier is None:
            raise NotFoundError(f"Fornitore con ID {supplier_id} non trovato")
        return supplier

    async def list_suppliers(self, db: AsyncSession) -> list[Supplier]:
        result = await db.execute(
            select(Supplier).where(Supplier.is_active.is_(True)).order_by(Supplier.business_name)
        )
        return list(result.scalars().all())

    async def add_supplier_product(
        self,
        db: AsyncSession,
        supplier_id: uuid.UUID,
        data: SupplierProductCreate,
    ) -> SupplierProduct:
        """
        Aggiunge un prodotto al listino del fornitore.

        Raises:
            NotFoundError: Se fornitore o prodotto non esistono
            DuplicateError: Se il prodotto è già nel listino
        """
        await self.get_supplier(db, supplier_id)
        await self.get_product(db, data.product_id)

        if data.is_preferred:
            await self._clear_preferred(db, data.product_id)

        entry = SupplierProduct(
            supplier_id=supplier_id,
            product_id=data.product_id,
            price=data.price,
            unit=data.unit.value,
            is_preferred=data.is_preferred,
        )
        try:
            async with db.begin_nested():
                db.add(entry)
        except IntegrityError:
            raise DuplicateError("Il prodotto è già presente nel listino del fornitore")

        logger.info(
            "Aggiunto prodotto %s al listino del fornitore %s (preferito=%s)",
            data.product_id,
            supplier_id,
            data.is_preferred,
        )
        return entry

    async def _clear_preferred(self, db: AsyncSession, product_id: uuid.UUID) -> None:
        await db.execute(
            update(SupplierProduct)
            .where(SupplierProduct.product_id == product_id, SupplierProduct.is_preferred.is_(True))
            .values(is_preferred=False)
            .execution_options(synchronize_session="fetch")
        )

    async def get_preferred_suppliers(
        self,
        db: AsyncSession,
        product_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, SupplierProduct]:
        """Voce di listino preferita per ciascun prodotto (se esiste)."""
        if not product_ids:
            return {}
        result = await db.execute(
            select(SupplierProduct).where(
                SupplierProduct.product_id.in_(set(product_ids)),
                SupplierProduct.is_preferred.is_(True),
            )
        )
        return {entry.product_id: entry for entry in result.scalars().all()}

    async def get_catalog_prices(
        self,
        db: AsyncSession,
        supplier_id: uuid.UUID,
        product_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, SupplierProduct]:
        """Voci di listino di un fornitore per i prodotti indicati."""
        if not product_ids:
            return {}
        result = await db.execute(
            select(SupplierProduct).where(
                SupplierProduct.supplier_id == supplier_id,
                SupplierProduct.product_id.in_(set(product_ids)),
            )
        )
        return {entry.product_id: entry for entry in result.scalars().all()}

    # ------------------------------------------------------------
    # Prodotti
    # ------------------------------------------------------------

    async def create_product(self, db: AsyncSession, data: ProductCreate) -> Product:
        product = Product(**data.model_dump())
        product.unit = data.unit.value
        db.add(product)
        await db.flush()
        logger.info("Creato prodotto %s", product.name)
        return product

    async def get_product(self, db: AsyncSession, product_id: uuid.UUID) -> Product:
        product = await db.get(Product, product_id)
        if product is None:
            raise NotFoundError(f"Prodotto con ID {product_id} non trovato")
        return product

    async def get_products(self, db: AsyncSession, product_ids: list[uuid.UUID]) -> dict[uuid.UUID, Product]:
        """Prodotti per ID; NotFoundError se qualcuno manca."""
        ids = set(product_ids)
        if not ids:
            return {}
        result = await db.execute(select(Product).where(Product.id.in_(ids)))
        products = {p.id: p for p in result.scalars().all()}
        missing = ids - products.keys()
        if missing:
            raise NotFoundError(
                "Prodotti non trovati",
                extra={"product_ids": sorted(str(m) for m in missing)},
            )
        return products

    async def list_products(self, db: AsyncSession, search: Optional[str] = None) -> list[Product]:
        query = select(Product).where(Product.is_active.is_(True))
        if search:
            query = query.where(Product.name.ilike(f"%{search}%"))
        result = await db.execute(query.order_by(Product.name))
        return list(result.scalars().all())


catalog_service = CatalogService()
