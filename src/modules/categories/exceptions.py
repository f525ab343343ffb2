"""Category domain exceptions.

Raised by the Service Layer when hierarchy rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.
"""

from __future__ import annotations

from modules.core.exceptions import IllegalOperation


class CategoryNotFound(Exception):
    """The requested category (or the referenced parent) does not exist."""


class DuplicateSlug(Exception):
    """A category with the same slug already exists."""


class SlugImmutable(IllegalOperation):
    """The slug of an existing category cannot be changed."""


class InvalidCategoryMove(IllegalOperation):
    """The move would make a category its own ancestor."""


class CategoryInUse(IllegalOperation):
    """The category still has active products (or children) attached."""
