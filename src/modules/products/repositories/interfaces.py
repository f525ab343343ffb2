"""Product repository interface.

Extends ``IRepository[Product]`` with look-ups required by
RN-PRO-001 (unique SKU), locked loads for counter writes, and the
category checks used by the hierarchy manager.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[Product]":
        """List products with optional filters."""

    @abstractmethod
    def get_by_sku(self, sku: str) -> Optional[Product]:
        """Retrieve a product by SKU."""

    @abstractmethod
    def exists_by_sku(self, sku: str) -> bool:
        """Return ``True`` if any product already uses *sku*."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional["Product"]:
        """Retrieve a product with a row-level lock (SELECT FOR UPDATE).

        Used for every stock and status write.  Returns ``None`` if the
        product does not exist.
        """

    @abstractmethod
    def get_many_for_update(self, ids: Iterable[str]) -> List[Product]:
        """Lock and fetch every product in *ids*; unknown ids are skipped."""

    @abstractmethod
    def list_active(self) -> "models.QuerySet[Product]":
        """Products with status ACTIVE."""

    @abstractmethod
    def search_active(self, term: str) -> List[Product]:
        """ACTIVE products whose name or SKU contains *term*."""

    @abstractmethod
    def list_low_stock(self, limit: Optional[int] = None) -> List[Product]:
        """Tracked, non-discontinued products at or below their threshold."""

    @abstractmethod
    def exists_active_in_category(self, category_id: str) -> bool:
        """Return ``True`` if an ACTIVE product references *category_id*."""

    @abstractmethod
    def count_active_in_category(self, category_id: str) -> int:
        """Number of ACTIVE products referencing *category_id*."""
