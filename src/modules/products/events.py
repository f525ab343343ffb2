"""Domain events for the Products bounded context.

Recorded on the ``Product`` aggregate by its state-machine methods and
flushed by the repository into the outbox (and onto the in-process bus
after commit).
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class StockReserved(DomainEvent):
    quantity: int = 0
    reserved_quantity: int = 0
    available_quantity: int = 0


@dataclass(frozen=True)
class StockReleased(DomainEvent):
    quantity: int = 0
    reserved_quantity: int = 0
    available_quantity: int = 0


@dataclass(frozen=True)
class StockConfirmed(DomainEvent):
    """A reservation turned into a permanent stock decrement."""

    quantity: int = 0
    stock_quantity: int = 0
    reserved_quantity: int = 0


@dataclass(frozen=True)
class LowStockReached(DomainEvent):
    """Available quantity dropped to or below the low-stock threshold."""

    sku: str = ""
    available_quantity: int = 0
    low_stock_threshold: int = 0


@dataclass(frozen=True)
class ProductStatusChanged(DomainEvent):
    old_status: str = ""
    new_status: str = ""
