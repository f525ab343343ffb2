"""Django ORM implementation of the Product repository.

Satisfies ``IProductRepository`` using Django's QuerySet API.
Error handling follows the Null Object pattern: look-ups return ``None``
instead of raising HTTP-level exceptions, and the Service Layer decides
how to translate a missing entity into an API response.

Updates are optimistic on top of the row lock taken by the service:
``UPDATE ... WHERE id = %s AND version = %s`` must touch exactly one row,
otherwise ``ConcurrentModification`` is raised and the transaction rolls
back.  Recorded domain events go to the outbox in the same transaction
and onto the in-process bus once it commits.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.db.models import F, Q
from django.utils import timezone

from modules.core.exceptions import ConcurrentModification
from modules.core.models import OutboxEvent
from modules.core.repositories.helpers import parse_uuids
from modules.products.constants import OUTBOX_TOPIC, ProductStatus
from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository
from shared.domain.events import DomainEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)

# Columns written by a versioned update; ``sku`` never changes after create.
_MUTABLE_FIELDS = (
    "name",
    "description",
    "short_description",
    "base_price",
    "status",
    "stock_quantity",
    "reserved_quantity",
    "low_stock_threshold",
    "track_inventory",
    "published_at",
    "category_id",
)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        """Retrieve a product by primary key.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return Product.objects.select_related("category").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_many(self, ids: Iterable[str]) -> List[Product]:
        return list(Product.objects.filter(id__in=parse_uuids(ids)))

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        """List products with optional Django ORM look-ups.

        Examples of valid filters::

            {"status": "ACTIVE"}
            {"name__icontains": "widget"}
        """
        queryset = Product.objects.select_related("category")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        """Persist a product and flush its recorded domain events.

        Raises:
            ConcurrentModification: if the stored ``version`` no longer
                matches the one the entity was loaded with.
        """
        if entity._state.adding:
            entity.save()
        else:
            self._update_versioned(entity)

        events = self._flush_events([entity])

        logger.info(
            "product.saved",
            product_id=str(entity.id),
            sku=entity.sku,
            version=entity.version,
            event_count=len(events),
        )
        return entity

    @transaction.atomic
    def save_all(self, entities: List[Product], fields: List[str]) -> int:
        """Write *fields* of every entity in one ``bulk_update``.

        Callers must hold the row locks (``get_many_for_update``), so
        bumping ``version`` in Python is safe here.  Recorded events are
        flushed exactly as in ``save``.
        """
        if not entities:
            return 0
        now = timezone.now()
        for entity in entities:
            entity.version += 1
            entity.updated_at = now
        update_fields = list(dict.fromkeys([*fields, "version", "updated_at"]))
        count = Product.objects.bulk_update(entities, update_fields)
        events = self._flush_events(entities)
        logger.info(
            "product.batch_saved",
            count=count,
            fields=update_fields,
            event_count=len(events),
        )
        return count

    def _flush_events(self, entities: List[Product]) -> List[DomainEvent]:
        """Write recorded events to the outbox; publish them after commit."""
        events = [event for entity in entities for event in entity.domain_events]
        OutboxEvent.objects.bulk_create(
            [
                OutboxEvent(
                    event_type=event.event_name,
                    aggregate_id=str(event.aggregate_id),
                    payload=event.to_payload(),
                    topic=OUTBOX_TOPIC,
                )
                for event in events
            ]
        )
        for entity in entities:
            entity.clear_domain_events()
        if events:
            transaction.on_commit(lambda: event_bus.publish_all(events))
        return events

    def _update_versioned(self, entity: Product) -> None:
        expected = entity.version
        entity.updated_at = timezone.now()
        values = {field: getattr(entity, field) for field in _MUTABLE_FIELDS}
        updated = Product.objects.filter(pk=entity.pk, version=expected).update(
            version=F("version") + 1,
            updated_at=entity.updated_at,
            **values,
        )
        if updated == 0:
            logger.warning(
                "product.version_conflict",
                product_id=str(entity.id),
                expected_version=expected,
            )
            raise ConcurrentModification(
                f"Product {entity.id} was modified concurrently. Retry the operation."
            )
        entity.version = expected + 1

    # ------------------------------------------------------------------
    # Product-specific queries
    # ------------------------------------------------------------------

    def get_by_sku(self, sku: str) -> Optional[Product]:
        """Retrieve a product by SKU (case-insensitive via upper normalisation)."""
        return (
            Product.objects.select_related("category")
            .filter(sku=sku.strip().upper())
            .first()
        )

    def exists_by_sku(self, sku: str) -> bool:
        return Product.objects.filter(sku=sku.strip().upper()).exists()

    def get_for_update(self, id: str) -> Optional[Product]:
        """Retrieve a product with a row-level lock (SELECT FOR UPDATE).

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return Product.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_many_for_update(self, ids: Iterable[str]) -> List[Product]:
        return list(
            Product.objects.select_for_update()
            .filter(id__in=parse_uuids(ids))
            .order_by("id")
        )

    def list_active(self) -> models.QuerySet:
        return self.list({"status": ProductStatus.ACTIVE})

    def search_active(self, term: str) -> List[Product]:
        return list(
            self.list_active().filter(Q(name__icontains=term) | Q(sku__icontains=term))
        )

    def list_low_stock(self, limit: Optional[int] = None) -> List[Product]:
        queryset = (
            Product.objects.select_related("category")
            .annotate(available=F("stock_quantity") - F("reserved_quantity"))
            .filter(track_inventory=True, available__lte=F("low_stock_threshold"))
            .exclude(status=ProductStatus.DISCONTINUED)
            .order_by("available", "sku")
        )
        if limit is not None:
            queryset = queryset[:limit]
        return list(queryset)

    def exists_active_in_category(self, category_id: str) -> bool:
        return Product.objects.filter(
            category_id=category_id, status=ProductStatus.ACTIVE
        ).exists()

    def count_active_in_category(self, category_id: str) -> int:
        return Product.objects.filter(
            category_id=category_id, status=ProductStatus.ACTIVE
        ).count()
