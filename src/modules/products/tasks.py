"""Asynchronous tasks for the products module."""

import structlog
from celery import shared_task
from django.conf import settings

from modules.categories.repositories import CategoryDjangoRepository
from modules.products.repositories import ProductDjangoRepository
from modules.products.services import ProductService

logger = structlog.get_logger(__name__)


@shared_task(name="products.report_low_stock")
def report_low_stock(limit=None):
    """Log every product at or below its low-stock threshold.

    Read-only; scheduled hourly by Celery beat.
    """
    service = ProductService(
        repository=ProductDjangoRepository(),
        category_repository=CategoryDjangoRepository(),
    )
    if limit is None:
        limit = settings.CATALOG_LOW_STOCK_REPORT_LIMIT
    products = service.list_low_stock_products(limit=limit)

    for product in products:
        logger.warning(
            "product.low_stock",
            product_id=str(product.id),
            sku=product.sku,
            available=product.available_quantity,
            threshold=product.low_stock_threshold,
        )
    logger.info("low_stock_report.completed", count=len(products))
    return {"count": len(products), "product_ids": [str(p.id) for p in products]}
