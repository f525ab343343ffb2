"""Django ORM implementation of the Category repository.

Satisfies ``ICategoryRepository`` using Django's QuerySet API.
Look-ups follow the Null Object pattern: they return ``None`` (or an
empty list) instead of raising; the Service Layer decides how a
missing category becomes an API response.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import models, transaction

from modules.categories.models import Category
from modules.categories.repositories.interfaces import ICategoryRepository
from modules.core.repositories.helpers import parse_uuids

logger = structlog.get_logger(__name__)


class CategoryDjangoRepository(ICategoryRepository):
    """Concrete Category repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Category]:
        """Retrieve a category by primary key.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return Category.objects.select_related("parent").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_many(self, ids: Iterable[str]) -> List[Category]:
        return list(Category.objects.filter(id__in=parse_uuids(ids)))

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        """List categories with optional Django ORM look-ups.

        Examples of valid filters::

            {"is_active": True}
            {"parent__isnull": True}
        """
        queryset = Category.objects.select_related("parent")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    @transaction.atomic
    def save(self, entity: Category) -> Category:
        """Persist (create or update) a category."""
        entity.save()
        logger.info(
            "category.saved",
            category_id=str(entity.id),
            slug=entity.slug,
        )
        return entity

    @transaction.atomic
    def save_all(self, entities: List[Category], fields: List[str]) -> int:
        """Write *fields* (plus ``updated_at``) of every entity in one batch."""
        if not entities:
            return 0
        update_fields = list(dict.fromkeys([*fields, "updated_at"]))
        count = Category.objects.bulk_update(entities, update_fields)
        logger.info("category.batch_saved", count=count, fields=update_fields)
        return count

    @transaction.atomic
    def delete(self, id: str) -> bool:
        category = self.get_by_id(id)
        if not category:
            return False
        category.delete()
        logger.info("category.deleted", category_id=str(id))
        return True

    # ------------------------------------------------------------------
    # Category-specific queries
    # ------------------------------------------------------------------

    def get_by_slug(self, slug: str) -> Optional[Category]:
        return Category.objects.select_related("parent").filter(slug=slug).first()

    def exists_by_slug(self, slug: str) -> bool:
        return Category.objects.filter(slug=slug).exists()

    def search_by_name(self, term: str) -> List[Category]:
        return list(
            Category.objects.select_related("parent").filter(name__icontains=term)
        )

    def list_roots(self) -> List[Category]:
        return list(
            Category.objects.filter(parent__isnull=True).order_by("display_order", "name")
        )

    def list_children(self, parent_id: str) -> List[Category]:
        return list(
            Category.objects.filter(parent_id=parent_id).order_by(
                "display_order", "name"
            )
        )

    def get_descendants(self, category: Category) -> List[Category]:
        """Breadth-first walk: one query per tree level below *category*."""
        descendants: List[Category] = []
        frontier = [category.pk]
        while frontier:
            children = list(Category.objects.filter(parent_id__in=frontier))
            descendants.extend(children)
            frontier = [child.pk for child in children]
        return descendants

    def has_children(self, id: str) -> bool:
        return Category.objects.filter(parent_id=id).exists()
