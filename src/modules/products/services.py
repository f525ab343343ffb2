"""Product service layer (Use Cases).

Orchestrates the inventory state machine and catalog rules for the
Product aggregate, delegating persistence to the injected
``IProductRepository`` and category look-ups to ``ICategoryRepository``.

Business rules enforced here:
- RN-PRO-001: SKU must be unique and cannot change after creation.
- RN-PRO-003: Stock can never drop below the reserved quantity.
- RN-PRO-006: Products can only be placed in active categories.

Every write loads the product with ``get_for_update`` inside the
request transaction; the repository then saves with a version check.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Set
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from modules.categories.exceptions import CategoryNotFound
from modules.products.constants import ProductStatus
from modules.products.exceptions import (
    DuplicateSku,
    InactiveCategory,
    InsufficientStock,
    InvalidStockOperation,
    ProductNotFound,
    SkuImmutable,
)
from modules.products.models import Product

if TYPE_CHECKING:
    from modules.categories.models import Category
    from modules.categories.repositories.interfaces import ICategoryRepository
    from modules.products.dtos import CreateProductDTO, UpdateProductDTO
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

_UPDATABLE_FIELDS = (
    "name",
    "description",
    "short_description",
    "base_price",
    "low_stock_threshold",
    "track_inventory",
)


class ProductService:
    """Application service for Product use-cases.

    Receives both repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        repository: IProductRepository,
        category_repository: ICategoryRepository,
    ) -> None:
        self._repo = repository
        self._category_repo = category_repository

    # ------------------------------------------------------------------
    # Catalog commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_product(self, dto: CreateProductDTO) -> Product:
        """Create a new INACTIVE product with nothing reserved.

        Raises:
            DuplicateSku: if SKU is already taken (RN-PRO-001).
            CategoryNotFound: if ``category_id`` does not resolve.
            InactiveCategory: if the category is deactivated.
        """
        log = logger.bind(sku=dto.sku)

        if self._repo.exists_by_sku(dto.sku):
            log.warning("product.duplicate_sku")
            raise DuplicateSku(f"Product with SKU '{dto.sku}' already exists.")

        category = (
            self._active_category(dto.category_id)
            if dto.category_id is not None
            else None
        )
        threshold = dto.low_stock_threshold
        if threshold is None:
            threshold = settings.CATALOG_DEFAULT_LOW_STOCK_THRESHOLD

        product = Product(
            sku=dto.sku,
            name=dto.name,
            description=dto.description,
            short_description=dto.short_description,
            base_price=dto.base_price,
            status=ProductStatus.INACTIVE,
            stock_quantity=dto.stock_quantity,
            reserved_quantity=0,
            low_stock_threshold=threshold,
            track_inventory=dto.track_inventory,
            category=category,
        )
        product = self._repo.save(product)
        log.info("product.created", product_id=str(product.id))
        return product

    @transaction.atomic
    def update_product(self, id: str, dto: UpdateProductDTO) -> Product:
        """Apply the supplied fields of *dto*.

        Raises:
            ProductNotFound: if the product does not exist.
            SkuImmutable: if *dto* carries a different SKU.
            InvalidStockOperation: if the new stock is below the reservation.
            InactiveCategory: if re-assigned to a deactivated category.
        """
        product = self._lock(id)
        log = logger.bind(product_id=str(product.id))

        if dto.sku is not None and dto.sku != product.sku:
            log.warning("product.sku_change_rejected", requested=dto.sku)
            raise SkuImmutable("Product SKU cannot be changed.")

        if dto.stock_quantity is not None:
            if dto.stock_quantity < product.reserved_quantity:
                raise InvalidStockOperation(
                    "Stock quantity cannot be lower than the reserved quantity.",
                    reserved=product.reserved_quantity,
                    requested=dto.stock_quantity,
                )
            product.stock_quantity = dto.stock_quantity

        for field in _UPDATABLE_FIELDS:
            value = getattr(dto, field)
            if value is not None:
                setattr(product, field, value)

        if dto.category_supplied:
            product.category = (
                self._active_category(dto.category_id)
                if dto.category_id is not None
                else None
            )

        product = self._repo.save(product)
        log.info("product.updated", version=product.version)
        return product

    # ------------------------------------------------------------------
    # Inventory commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def reserve_stock(self, id: str, quantity: int) -> Product:
        """Reserve *quantity* units.

        Raises:
            ProductNotFound: if the product does not exist.
            InsufficientStock: if fewer than *quantity* units are available.
            InvalidStatusTransition: if the product is discontinued.
        """
        return self._apply_stock(id, quantity, "reserve", lambda p: p.reserve(quantity))

    @transaction.atomic
    def release_stock(self, id: str, quantity: int) -> Product:
        """Raises ``InvalidStockOperation`` if *quantity* exceeds the reservation."""
        return self._apply_stock(id, quantity, "release", lambda p: p.release(quantity))

    @transaction.atomic
    def confirm_stock(self, id: str, quantity: int) -> Product:
        """Raises ``InvalidStockOperation`` if *quantity* exceeds the reservation."""
        return self._apply_stock(
            id, quantity, "confirm", lambda p: p.confirm(quantity)
        )

    # ------------------------------------------------------------------
    # Publication commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def publish_product(self, id: str) -> Product:
        """Make a product ACTIVE.

        Raises:
            ProductNotFound: if the product does not exist.
            InvalidStatusTransition: if the product is discontinued.
            InactiveCategory: if its category has been deactivated.
        """
        product = self._lock(id)
        if not product.is_terminal and self._inactive_categories([product]):
            logger.warning(
                "product.publish_rejected",
                product_id=str(product.id),
                category_id=str(product.category_id),
            )
            raise InactiveCategory(
                f"Category {product.category_id} is inactive; "
                "its products cannot be published."
            )
        product.publish(timezone.now())
        return self._save_status(product, "product.published")

    @transaction.atomic
    def unpublish_product(self, id: str) -> Product:
        product = self._lock(id)
        product.unpublish()
        return self._save_status(product, "product.unpublished")

    @transaction.atomic
    def discontinue_product(self, id: str) -> Product:
        """Idempotent: discontinuing a discontinued product is a no-op."""
        product = self._lock(id)
        product.discontinue()
        return self._save_status(product, "product.discontinued")

    @transaction.atomic
    def bulk_update_status(self, ids: List[str | UUID], status: str) -> int:
        """Move every listed product to *status* in one batch.

        Unknown ids and disallowed transitions are skipped, and so are
        products of inactive categories when the target is ACTIVE.
        Returns the number of products updated.
        """
        if not ids:
            return 0

        products = self._repo.get_many_for_update([str(i) for i in ids])
        candidates = products
        if status == ProductStatus.ACTIVE:
            blocked = self._inactive_categories(products)
            candidates = [p for p in products if p.category_id not in blocked]
        now = timezone.now()
        changed = [product for product in candidates if product.apply_status(status, now)]
        updated = self._repo.save_all(changed, ["status", "published_at"])

        logger.info(
            "product.bulk_status_updated",
            status=status,
            requested=len(ids),
            found=len(products),
            skipped_inactive_category=len(products) - len(candidates),
            updated=updated,
        )
        return updated

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_product(self, id: str) -> Product:
        """Retrieve a single product by ID.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")
        logger.info("product.retrieved", product_id=str(id))
        return product

    def get_product_by_sku(self, sku: str) -> Product:
        product = self._repo.get_by_sku(sku)
        if not product:
            raise ProductNotFound(f"Product not found with SKU: {sku}")
        return product

    def list_products(self, filters: Optional[Dict[str, Any]] = None):
        """Return products, optionally filtered."""
        return self._repo.list(filters)

    def list_active_products(self):
        return self._repo.list_active()

    def search_active_products(self, term: str) -> List[Product]:
        return self._repo.search_active(term)

    def list_low_stock_products(self, limit: Optional[int] = None) -> List[Product]:
        return self._repo.list_low_stock(limit)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _lock(self, id: str | UUID) -> Product:
        product = self._repo.get_for_update(str(id))
        if not product:
            raise ProductNotFound(f"Product {id} not found.")
        return product

    def _active_category(self, category_id: str | UUID) -> Category:
        category = self._category_repo.get_by_id(str(category_id))
        if not category:
            raise CategoryNotFound(f"Category {category_id} not found.")
        if not category.is_active:
            raise InactiveCategory(
                f"Category {category_id} is inactive and cannot receive products."
            )
        return category

    def _inactive_categories(self, products: List[Product]) -> Set[UUID]:
        """Ids of the deactivated categories among *products*' categories."""
        category_ids = {p.category_id for p in products if p.category_id is not None}
        if not category_ids:
            return set()
        categories = self._category_repo.get_many([str(i) for i in category_ids])
        return {c.id for c in categories if not c.is_active}

    def _apply_stock(
        self,
        id: str,
        quantity: int,
        action: str,
        operation: Callable[[Product], None],
    ) -> Product:
        product = self._lock(id)
        log = logger.bind(product_id=str(product.id), quantity=quantity)
        try:
            operation(product)
        except (InsufficientStock, InvalidStockOperation) as exc:
            log.warning(
                f"product.stock_{action}_rejected",
                reason=type(exc).__name__,
                available=product.available_quantity,
                reserved=product.reserved_quantity,
            )
            raise
        product = self._repo.save(product)
        log.info(
            f"product.stock_{action}_applied",
            stock=product.stock_quantity,
            reserved=product.reserved_quantity,
            available=product.available_quantity,
        )
        return product

    def _save_status(self, product: Product, event: str) -> Product:
        product = self._repo.save(product)
        logger.info(event, product_id=str(product.id), status=product.status)
        return product
