"""Category model: a self-referencing tree stored flat by ``parent_id``.

Business rules implemented:
- RN-CAT-001: Slug must be unique and is immutable after creation
  (immutability enforced at service layer).
- RN-CAT-002: ``level`` is 0 for roots and ``parent.level + 1`` otherwise.
- RN-CAT-003: A category with active products cannot be deactivated
  (enforced at service layer).
- RN-CAT-004: The parent graph is acyclic (enforced at service layer).

Children are never cached on the instance; they are queried through the
``children`` reverse relation or the repository.
"""

from __future__ import annotations

import re
from typing import List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import models

from modules.core.models import BaseModel

logger = structlog.get_logger(__name__)

SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")
PATH_SEPARATOR = " > "


class Category(BaseModel):
    """Node of the catalog category tree."""

    name = models.CharField(max_length=100)
    slug = models.CharField(max_length=150, unique=True)
    description = models.CharField(max_length=500, blank=True, default="")
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="children",
    )
    level = models.PositiveIntegerField(default=0)
    display_order = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "categories"
        ordering = ["display_order", "name"]
        verbose_name_plural = "categories"
        indexes = [
            models.Index(
                fields=["parent", "display_order"],
                name="categories_parent_order_idx",
            ),
            models.Index(fields=["is_active"], name="categories_active_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(parent__isnull=True, level=0)
                    | models.Q(parent__isnull=False, level__gt=0)
                ),
                name="categories_level_matches_parent",
            ),
        ]

    # ------------------------------------------------------------------
    # Hierarchy
    # ------------------------------------------------------------------

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def attach_to(self, parent: Optional[Category]) -> None:
        """Link this node under *parent* (``None`` = root) and fix ``level``."""
        self.parent = parent
        self.level = parent.level + 1 if parent is not None else 0

    def ancestors(self) -> List[Category]:
        """Parents from the root down to the direct parent."""
        chain: List[Category] = []
        node = self.parent
        while node is not None:
            chain.append(node)
            node = node.parent
        chain.reverse()
        return chain

    @property
    def full_path(self) -> str:
        """Root-to-node names, e.g. ``Electronics > Computers > Laptops``."""
        return PATH_SEPARATOR.join([c.name for c in self.ancestors()] + [self.name])

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if self.slug and not SLUG_PATTERN.match(self.slug):
            raise ValidationError(
                {
                    "slug": "Slug must contain only lowercase letters, "
                    "numbers, and hyphens."
                }
            )
        expected = self.parent.level + 1 if self.parent_id else 0
        if self.level != expected:
            raise ValidationError({"level": f"Level must be {expected}."})

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        super().save(*args, **kwargs)
        if is_new:
            logger.info(
                "category_created",
                category_id=str(self.id),
                slug=self.slug,
                level=self.level,
            )

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return self.full_path
