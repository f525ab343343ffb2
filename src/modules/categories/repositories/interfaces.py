"""Category repository interface.

Extends ``IRepository[Category]`` with the look-ups the hierarchy rules
need: slug uniqueness (RN-CAT-001), tree traversal for level cascades
and cycle detection (RN-CAT-002/004).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.categories.models import Category


class ICategoryRepository(IRepository["Category"]):
    """Repository contract for the Category tree."""

    @abstractmethod
    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[Category]":
        """List categories with optional filters."""

    @abstractmethod
    def get_by_slug(self, slug: str) -> Optional[Category]:
        """Retrieve a category by slug."""

    @abstractmethod
    def exists_by_slug(self, slug: str) -> bool:
        """Return ``True`` if any category already uses *slug*."""

    @abstractmethod
    def search_by_name(self, term: str) -> List[Category]:
        """Case-insensitive substring match on ``name``."""

    @abstractmethod
    def list_roots(self) -> List[Category]:
        """Root categories ordered by ``display_order``."""

    @abstractmethod
    def list_children(self, parent_id: str) -> List[Category]:
        """Direct children of *parent_id* ordered by ``display_order``."""

    @abstractmethod
    def get_descendants(self, category: Category) -> List[Category]:
        """Every node below *category*, parents always before their children."""

    @abstractmethod
    def has_children(self, id: str) -> bool:
        """Return ``True`` if at least one category has *id* as parent."""

    @abstractmethod
    def delete(self, id: str) -> bool:
        """Hard-delete a category. Returns ``False`` if it does not exist."""
