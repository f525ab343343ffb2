"""Event handlers for Products domain events.

Run in-process after the writing transaction commits.
"""

from __future__ import annotations

import structlog

from modules.products.events import LowStockReached, ProductStatusChanged
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class LowStockReachedHandler(IEventHandler[LowStockReached]):
    def handle(self, event: LowStockReached) -> None:
        logger.warning(
            "product.low_stock_reached",
            product_id=str(event.aggregate_id),
            sku=event.sku,
            available=event.available_quantity,
            threshold=event.low_stock_threshold,
        )


class ProductStatusChangedHandler(IEventHandler[ProductStatusChanged]):
    def handle(self, event: ProductStatusChanged) -> None:
        logger.info(
            "product.status_changed",
            product_id=str(event.aggregate_id),
            old_status=event.old_status,
            new_status=event.new_status,
        )


low_stock_reached_handler = LowStockReachedHandler()
product_status_changed_handler = ProductStatusChangedHandler()
