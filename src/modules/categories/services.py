"""Category service layer (Use Cases).

Owns the category hierarchy rules, delegating persistence to the
injected ``ICategoryRepository`` and product look-ups to
``IProductRepository``.

Business rules enforced here:
- RN-CAT-001: Slug is unique and cannot change after creation.
- RN-CAT-002: ``level`` follows the parent, for the moved node and for
  every descendant.
- RN-CAT-003: Deactivation / deletion refused while ACTIVE products
  reference the category.
- RN-CAT-004: A move may not place a category under itself or one of
  its descendants.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone

from modules.categories.exceptions import (
    CategoryInUse,
    CategoryNotFound,
    DuplicateSlug,
    InvalidCategoryMove,
    SlugImmutable,
)
from modules.categories.models import Category

if TYPE_CHECKING:
    from modules.categories.dtos import (
        CreateCategoryDTO,
        ReorderCategoriesDTO,
        UpdateCategoryDTO,
    )
    from modules.categories.repositories.interfaces import ICategoryRepository
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class CategoryService:
    """Application service for Category use-cases.

    Receives both repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        repository: ICategoryRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._repo = repository
        self._product_repo = product_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_category(self, dto: CreateCategoryDTO) -> Category:
        """Create a category, deriving ``level`` from its parent.

        Raises:
            DuplicateSlug: if the slug is already taken (RN-CAT-001).
            CategoryNotFound: if ``parent_id`` does not resolve.
        """
        log = logger.bind(slug=dto.slug)

        if self._repo.exists_by_slug(dto.slug):
            log.warning("category.duplicate_slug")
            raise DuplicateSlug(f"Category with slug '{dto.slug}' already exists.")

        parent = None
        if dto.parent_id is not None:
            parent = self._require(dto.parent_id, what="Parent category")

        category = Category(
            name=dto.name,
            slug=dto.slug,
            description=dto.description,
            display_order=dto.display_order,
        )
        category.attach_to(parent)
        category = self._repo.save(category)
        log.info("category.created", category_id=str(category.id), level=category.level)
        return category

    @transaction.atomic
    def update_category(self, id: str, dto: UpdateCategoryDTO) -> Category:
        """Apply the non-null fields of *dto*.

        Raises:
            CategoryNotFound: if the category does not exist.
            SlugImmutable: if *dto* carries a different slug (RN-CAT-001).
        """
        category = self._require(id)
        log = logger.bind(category_id=str(id))

        if dto.slug is not None and dto.slug != category.slug:
            log.warning("category.slug_change_rejected", requested=dto.slug)
            raise SlugImmutable("Category slug cannot be changed.")

        for field in ("name", "description", "display_order"):
            value = getattr(dto, field)
            if value is not None:
                setattr(category, field, value)

        category = self._repo.save(category)
        log.info("category.updated")
        return category

    @transaction.atomic
    def move_category(self, id: str, new_parent_id: Optional[str | UUID]) -> Category:
        """Re-parent a category and recompute levels for its whole subtree.

        ``new_parent_id=None`` turns the category into a root.

        Raises:
            CategoryNotFound: if the category or the new parent is missing.
            InvalidCategoryMove: if the new parent is the category itself
                or one of its descendants (RN-CAT-004).
        """
        category = self._require(id)
        new_parent = (
            self._require(new_parent_id, what="Parent category")
            if new_parent_id is not None
            else None
        )
        log = logger.bind(
            category_id=str(category.id),
            new_parent_id=str(new_parent.id) if new_parent else None,
        )

        descendants = self._repo.get_descendants(category)
        if new_parent is not None:
            if new_parent.pk == category.pk:
                log.warning("category.move_rejected", reason="self_parent")
                raise InvalidCategoryMove("A category cannot be its own parent.")
            if any(node.pk == new_parent.pk for node in descendants):
                log.warning("category.move_rejected", reason="cycle")
                raise InvalidCategoryMove(
                    "Cannot move a category under one of its descendants."
                )

        category.attach_to(new_parent)
        category = self._repo.save(category)

        relevelled = self._relevel(category, descendants)
        log.info("category.moved", level=category.level, relevelled=relevelled)
        return category

    @transaction.atomic
    def deactivate_category(self, id: str) -> Category:
        """Mark a category inactive. Children are left untouched.

        Raises:
            CategoryNotFound: if the category does not exist.
            CategoryInUse: if any ACTIVE product references it (RN-CAT-003).
        """
        category = self._require(id)
        log = logger.bind(category_id=str(id))

        if self._product_repo.exists_active_in_category(str(category.id)):
            log.warning("category.deactivate_rejected", reason="active_products")
            raise CategoryInUse("Cannot deactivate category with active products.")

        category.is_active = False
        category = self._repo.save(category)
        log.info("category.deactivated")
        return category

    @transaction.atomic
    def activate_category(self, id: str) -> Category:
        category = self._require(id)
        category.is_active = True
        category = self._repo.save(category)
        logger.info("category.activated", category_id=str(id))
        return category

    @transaction.atomic
    def reorder_categories(self, dto: ReorderCategoriesDTO) -> int:
        """Set ``display_order`` for every known id; unknown ids are ignored.

        Returns the number of categories updated.
        """
        categories = self._repo.get_many([str(key) for key in dto.orders])
        now = timezone.now()
        for category in categories:
            category.display_order = dto.orders[category.id]
            category.updated_at = now
        updated = self._repo.save_all(categories, ["display_order"])
        logger.info(
            "category.reordered", requested=len(dto.orders), updated=updated
        )
        return updated

    @transaction.atomic
    def delete_category(self, id: str) -> None:
        """Hard-delete a leaf category without active products.

        Products that referenced it keep existing, uncategorised.

        Raises:
            CategoryNotFound: if the category does not exist.
            CategoryInUse: if it has active products or child categories.
        """
        category = self._require(id)
        if self._product_repo.exists_active_in_category(str(category.id)):
            raise CategoryInUse("Cannot delete category with active products.")
        if self._repo.has_children(str(category.id)):
            raise CategoryInUse("Cannot delete category with child categories.")
        self._repo.delete(str(category.id))
        logger.info("category.deleted", category_id=str(id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_category(self, id: str) -> Category:
        """Raises ``CategoryNotFound`` if absent."""
        return self._require(id)

    def get_category_by_slug(self, slug: str) -> Category:
        category = self._repo.get_by_slug(slug)
        if not category:
            raise CategoryNotFound(f"Category not found with slug: {slug}")
        return category

    def list_categories(self, filters: Optional[Dict[str, Any]] = None):
        return self._repo.list(filters)

    def search_categories(self, term: str) -> List[Category]:
        return self._repo.search_by_name(term)

    def get_hierarchy(self) -> List[Category]:
        """Root categories ordered by display order."""
        return self._repo.list_roots()

    def list_children(self, id: str) -> List[Category]:
        category = self._require(id)
        return self._repo.list_children(str(category.id))

    def count_active_products(self, id: str) -> int:
        category = self._require(id)
        return self._product_repo.count_active_in_category(str(category.id))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require(self, id: str | UUID, what: str = "Category") -> Category:
        category = self._repo.get_by_id(str(id))
        if not category:
            raise CategoryNotFound(f"{what} {id} not found.")
        return category

    def _relevel(self, root: Category, descendants: List[Category]) -> int:
        """Recompute levels top-down; *descendants* lists parents first."""
        levels = {root.pk: root.level}
        changed: List[Category] = []
        now = timezone.now()
        for node in descendants:
            expected = levels[node.parent_id] + 1
            levels[node.pk] = expected
            if node.level != expected:
                node.level = expected
                node.updated_at = now
                changed.append(node)
        return self._repo.save_all(changed, ["level"])
