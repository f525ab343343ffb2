"""Product model with SKU uniqueness and inventory state machine.

Business rules implemented:
- RN-PRO-001: SKU must be unique in the system (normalised to uppercase).
- RN-PRO-002: Price must be greater than zero.
- RN-PRO-003: ``0 <= reserved_quantity <= stock_quantity`` at all times.
- RN-PRO-004: Only the transitions in ``VALID_TRANSITIONS`` are allowed;
  DISCONTINUED is terminal.
- RN-PRO-005: A discontinued product cannot take new reservations.

Counter writes are guarded twice: the service locks the row with
``select_for_update()`` and the repository compares ``version`` on save.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.products.constants import TERMINAL_STATES, VALID_TRANSITIONS, ProductStatus
from modules.products.events import (
    LowStockReached,
    ProductStatusChanged,
    StockConfirmed,
    StockReleased,
    StockReserved,
)
from modules.products.exceptions import (
    InsufficientStock,
    InvalidQuantity,
    InvalidStatusTransition,
    InvalidStockOperation,
)
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


def default_low_stock_threshold() -> int:
    return getattr(settings, "CATALOG_DEFAULT_LOW_STOCK_THRESHOLD", 10)


class Product(DomainEventMixin, BaseModel):
    """Product aggregate root.

    ``available_quantity`` is derived (``stock - reserved``) and never
    stored.  New products start INACTIVE with nothing reserved.
    """

    sku = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    short_description = models.CharField(max_length=500, blank=True, default="")
    base_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    status = models.CharField(
        max_length=20,
        choices=ProductStatus.choices,
        default=ProductStatus.INACTIVE,
    )
    stock_quantity = models.PositiveIntegerField(default=0)
    reserved_quantity = models.PositiveIntegerField(default=0)
    low_stock_threshold = models.PositiveIntegerField(
        default=default_low_stock_threshold
    )
    track_inventory = models.BooleanField(default=True)
    published_at = models.DateTimeField(null=True, blank=True, default=None)
    category = models.ForeignKey(
        "categories.Category",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="products",
    )
    version = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["status"], name="products_status_idx"),
            models.Index(
                fields=["category", "status"],
                name="products_category_status_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(base_price__gt=0),
                name="products_price_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(reserved_quantity__lte=models.F("stock_quantity")),
                name="products_reserved_within_stock",
            ),
        ]

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def available_quantity(self) -> int:
        return self.stock_quantity - self.reserved_quantity

    @property
    def is_in_stock(self) -> bool:
        return not self.track_inventory or self.available_quantity > 0

    @property
    def is_low_stock(self) -> bool:
        return (
            self.track_inventory
            and self.available_quantity <= self.low_stock_threshold
        )

    @property
    def is_published(self) -> bool:
        return self.status == ProductStatus.ACTIVE and self.published_at is not None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    def reserve(self, quantity: int) -> None:
        """Hold *quantity* units for a pending sale.

        Raises:
            InvalidQuantity: if *quantity* is not positive.
            InvalidStatusTransition: if the product is discontinued.
            InsufficientStock: if fewer than *quantity* units are available.
        """
        _check_quantity(quantity)
        if self.status == ProductStatus.DISCONTINUED:
            raise InvalidStatusTransition(
                "Cannot reserve stock for a discontinued product."
            )
        if self.available_quantity < quantity:
            raise InsufficientStock(self.available_quantity, quantity)

        was_low = self.is_low_stock
        self.reserved_quantity += quantity
        self.add_domain_event(
            StockReserved(
                aggregate_id=self.id,
                quantity=quantity,
                reserved_quantity=self.reserved_quantity,
                available_quantity=self.available_quantity,
            )
        )
        if self.is_low_stock and not was_low:
            self.add_domain_event(
                LowStockReached(
                    aggregate_id=self.id,
                    sku=self.sku,
                    available_quantity=self.available_quantity,
                    low_stock_threshold=self.low_stock_threshold,
                )
            )

    def release(self, quantity: int) -> None:
        """Return *quantity* reserved units to the available pool."""
        _check_quantity(quantity)
        if self.reserved_quantity < quantity:
            raise InvalidStockOperation(
                "Cannot release more than reserved.",
                reserved=self.reserved_quantity,
                requested=quantity,
            )
        self.reserved_quantity -= quantity
        self.add_domain_event(
            StockReleased(
                aggregate_id=self.id,
                quantity=quantity,
                reserved_quantity=self.reserved_quantity,
                available_quantity=self.available_quantity,
            )
        )

    def confirm(self, quantity: int) -> None:
        """Turn *quantity* reserved units into a sale.

        Both ``stock_quantity`` and ``reserved_quantity`` drop by
        *quantity*, so ``available_quantity`` is unchanged.
        """
        _check_quantity(quantity)
        if self.reserved_quantity < quantity:
            raise InvalidStockOperation(
                "Cannot confirm more than reserved.",
                reserved=self.reserved_quantity,
                requested=quantity,
            )
        self.stock_quantity -= quantity
        self.reserved_quantity -= quantity
        self.add_domain_event(
            StockConfirmed(
                aggregate_id=self.id,
                quantity=quantity,
                stock_quantity=self.stock_quantity,
                reserved_quantity=self.reserved_quantity,
            )
        )

    # ------------------------------------------------------------------
    # Publication lifecycle
    # ------------------------------------------------------------------

    def publish(self, now: Optional[datetime] = None) -> None:
        """Make the product ACTIVE and stamp ``published_at``.

        Re-publishing an ACTIVE product refreshes the timestamp.
        """
        self._transition(ProductStatus.ACTIVE)
        self.published_at = now or timezone.now()

    def unpublish(self) -> None:
        self._transition(ProductStatus.INACTIVE)
        self.published_at = None

    def discontinue(self) -> None:
        self._transition(ProductStatus.DISCONTINUED)

    def apply_status(self, new_status: str, now: Optional[datetime] = None) -> bool:
        """Bulk-update variant: returns ``False`` instead of raising.

        ``published_at`` is stamped only when moving to ACTIVE without one.
        A real status change records ``ProductStatusChanged``.
        """
        if not self.can_transition_to(new_status):
            return False
        self._set_status(new_status)
        if new_status == ProductStatus.ACTIVE and self.published_at is None:
            self.published_at = now or timezone.now()
        return True

    def _transition(self, new_status: str) -> None:
        if not self.can_transition_to(new_status):
            raise InvalidStatusTransition(
                f"Cannot transition product from {self.status} to {new_status}."
            )
        self._set_status(new_status)

    def _set_status(self, new_status: str) -> None:
        old_status = self.status
        self.status = new_status
        if old_status != new_status:
            self.add_domain_event(
                ProductStatusChanged(
                    aggregate_id=self.id,
                    old_status=str(old_status),
                    new_status=str(new_status),
                )
            )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if self.sku:
            self.sku = self.sku.strip().upper()
        if self.base_price is not None and self.base_price <= 0:
            raise ValidationError({"base_price": "Price must be greater than zero."})
        if self.reserved_quantity > self.stock_quantity:
            raise ValidationError(
                {"reserved_quantity": "Reserved quantity cannot exceed stock."}
            )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        if self.sku:
            self.sku = self.sku.strip().upper()
        super().save(*args, **kwargs)
        if is_new:
            logger.info(
                "product_created",
                product_id=str(self.id),
                sku=self.sku,
                name=self.name,
            )

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"


def _check_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantity("Quantity must be a positive integer.")
