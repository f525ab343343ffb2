"""Category DTOs for the Service Layer.

Pydantic v2 contracts between the API layer (DRF views) and
``CategoryService``.  DTOs are immutable (``frozen=True``).

- ``CreateCategoryDTO``: input for category creation.
- ``UpdateCategoryDTO``: partial update; ``slug`` is accepted only so the
  service can reject an attempt to change it.
- ``MoveCategoryDTO``: new parent (``None`` moves to the root).
- ``ReorderCategoriesDTO``: ``{category_id: display_order}`` batch.
"""

from __future__ import annotations

from typing import Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from modules.categories.models import SLUG_PATTERN


def _clean_name(v: str) -> str:
    v = v.strip()
    if not 2 <= len(v) <= 100:
        raise ValueError("Category name must be between 2 and 100 characters.")
    return v


def _check_description(v: str) -> str:
    if len(v) > 500:
        raise ValueError("Description cannot exceed 500 characters.")
    return v


def _check_display_order(v: int) -> int:
    if v < 0:
        raise ValueError("Display order cannot be negative.")
    return v


class CreateCategoryDTO(BaseModel):
    """Immutable DTO for category creation requests."""

    model_config = ConfigDict(frozen=True)

    name: str
    slug: str
    description: str = ""
    parent_id: Optional[UUID] = None
    display_order: int = 0

    @field_validator("name")
    @classmethod
    def name_length(cls, v: str) -> str:
        return _clean_name(v)

    @field_validator("slug")
    @classmethod
    def slug_format(cls, v: str) -> str:
        v = v.strip()
        if not 2 <= len(v) <= 100:
            raise ValueError("Slug must be between 2 and 100 characters.")
        if not SLUG_PATTERN.match(v):
            raise ValueError(
                "Slug must contain only lowercase letters, numbers, and hyphens."
            )
        return v

    @field_validator("description")
    @classmethod
    def description_length(cls, v: str) -> str:
        return _check_description(v)

    @field_validator("display_order")
    @classmethod
    def display_order_non_negative(cls, v: int) -> int:
        return _check_display_order(v)


class UpdateCategoryDTO(BaseModel):
    """Immutable DTO for partial category updates.

    All fields are optional; only supplied fields will be updated.
    """

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    display_order: Optional[int] = None

    @field_validator("name")
    @classmethod
    def name_length(cls, v: Optional[str]) -> Optional[str]:
        return _clean_name(v) if v is not None else v

    @field_validator("description")
    @classmethod
    def description_length(cls, v: Optional[str]) -> Optional[str]:
        return _check_description(v) if v is not None else v

    @field_validator("display_order")
    @classmethod
    def display_order_non_negative(cls, v: Optional[int]) -> Optional[int]:
        return _check_display_order(v) if v is not None else v


class MoveCategoryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    parent_id: Optional[UUID] = None


class ReorderCategoriesDTO(BaseModel):
    """Batch of new display orders keyed by category id."""

    model_config = ConfigDict(frozen=True)

    orders: Dict[UUID, int]

    @field_validator("orders")
    @classmethod
    def orders_non_negative(cls, v: Dict[UUID, int]) -> Dict[UUID, int]:
        for order in v.values():
            _check_display_order(order)
        return v
