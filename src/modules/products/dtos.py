"""Product DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF views) and the
Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateProductDTO``: input for product creation.
- ``UpdateProductDTO``: input for partial product updates.
- ``StockQuantityDTO``: quantity for reserve / release / confirm.
- ``BulkUpdateStatusDTO``: ids + target status for batch transitions.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from modules.products.constants import ProductStatus

# ---------------------------------------------------------------------------
# Shared validators
# ---------------------------------------------------------------------------


def _clean_sku(v: str) -> str:
    v = v.strip().upper()
    if not v:
        raise ValueError("SKU must not be empty.")
    if len(v) > 50:
        raise ValueError("SKU cannot exceed 50 characters.")
    return v


def _clean_name(v: str) -> str:
    v = v.strip()
    if not 2 <= len(v) <= 255:
        raise ValueError("Product name must be between 2 and 255 characters.")
    return v


def _check_price(v: Decimal) -> Decimal:
    if v <= 0:
        raise ValueError("Price must be greater than zero.")
    if v.as_tuple().exponent < -2:
        raise ValueError("Price cannot have more than 2 decimal places.")
    if v >= Decimal("10000000000"):
        raise ValueError("Price cannot exceed 10 integer digits.")
    return v


def _check_non_negative(v: int, label: str) -> int:
    if v < 0:
        raise ValueError(f"{label} cannot be negative.")
    return v


def _check_short_description(v: str) -> str:
    if len(v) > 500:
        raise ValueError("Short description cannot exceed 500 characters.")
    return v


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateProductDTO(BaseModel):
    """Immutable DTO for product creation requests.

    Validates:
    - ``sku`` is non-empty (normalised to uppercase).
    - ``base_price`` is a Decimal greater than zero with two decimals.
    - ``stock_quantity`` and ``low_stock_threshold`` are non-negative.

    There is deliberately no ``status`` or ``reserved_quantity`` field:
    new products always start INACTIVE with nothing reserved.
    """

    model_config = ConfigDict(frozen=True)

    sku: str
    name: str
    base_price: Decimal
    description: str = ""
    short_description: str = ""
    stock_quantity: int = 0
    low_stock_threshold: Optional[int] = None
    track_inventory: bool = True
    category_id: Optional[UUID] = None

    @field_validator("sku")
    @classmethod
    def sku_must_not_be_empty(cls, v: str) -> str:
        return _clean_sku(v)

    @field_validator("name")
    @classmethod
    def name_length(cls, v: str) -> str:
        return _clean_name(v)

    @field_validator("base_price")
    @classmethod
    def price_must_be_positive(cls, v: Decimal) -> Decimal:
        return _check_price(v)

    @field_validator("short_description")
    @classmethod
    def short_description_length(cls, v: str) -> str:
        return _check_short_description(v)

    @field_validator("stock_quantity")
    @classmethod
    def stock_must_be_non_negative(cls, v: int) -> int:
        return _check_non_negative(v, "Stock quantity")

    @field_validator("low_stock_threshold")
    @classmethod
    def threshold_must_be_non_negative(cls, v: Optional[int]) -> Optional[int]:
        return _check_non_negative(v, "Low stock threshold") if v is not None else v


class UpdateProductDTO(BaseModel):
    """Immutable DTO for product update requests.

    All fields are optional: only supplied fields will be updated.
    ``category_id`` is applied whenever it was supplied, so an explicit
    ``null`` removes the product from its category.
    """

    model_config = ConfigDict(frozen=True)

    sku: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    short_description: Optional[str] = None
    base_price: Optional[Decimal] = None
    stock_quantity: Optional[int] = None
    low_stock_threshold: Optional[int] = None
    track_inventory: Optional[bool] = None
    category_id: Optional[UUID] = None

    @field_validator("sku")
    @classmethod
    def sku_normalised(cls, v: Optional[str]) -> Optional[str]:
        return _clean_sku(v) if v is not None else v

    @field_validator("name")
    @classmethod
    def name_length(cls, v: Optional[str]) -> Optional[str]:
        return _clean_name(v) if v is not None else v

    @field_validator("base_price")
    @classmethod
    def price_must_be_positive(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return _check_price(v) if v is not None else v

    @field_validator("short_description")
    @classmethod
    def short_description_length(cls, v: Optional[str]) -> Optional[str]:
        return _check_short_description(v) if v is not None else v

    @field_validator("stock_quantity")
    @classmethod
    def stock_must_be_non_negative(cls, v: Optional[int]) -> Optional[int]:
        return _check_non_negative(v, "Stock quantity") if v is not None else v

    @field_validator("low_stock_threshold")
    @classmethod
    def threshold_must_be_non_negative(cls, v: Optional[int]) -> Optional[int]:
        return _check_non_negative(v, "Low stock threshold") if v is not None else v

    @property
    def category_supplied(self) -> bool:
        return "category_id" in self.model_fields_set


class StockQuantityDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class BulkUpdateStatusDTO(BaseModel):
    """Target status for a batch of products; unknown ids are skipped."""

    model_config = ConfigDict(frozen=True)

    product_ids: List[UUID]
    status: str

    @field_validator("status")
    @classmethod
    def status_must_be_known(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in ProductStatus.values:
            raise ValueError(
                f"Invalid status '{v}'. Allowed: {', '.join(ProductStatus.values)}."
            )
        return v
