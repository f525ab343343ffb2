"""Asynchronous tasks for the core module."""

import structlog
from celery import current_app, shared_task
from django.conf import settings
from django.db.models import Q
from kombu import Exchange
from kombu.exceptions import KombuError

from modules.core.models import EventStatus, OutboxEvent

logger = structlog.get_logger(__name__)


def publish_event(producer, event: OutboxEvent) -> None:
    """Send one outbox row to the topic exchange named after ``event.topic``."""
    exchange = Exchange(event.topic, type="topic", durable=True)
    producer.publish(
        {
            "event_id": str(event.id),
            "event_type": event.event_type,
            "aggregate_id": event.aggregate_id,
            "occurred_at": event.created_at.isoformat(),
            "payload": event.payload,
        },
        exchange=exchange,
        routing_key=event.event_type,
        declare=[exchange],
        serializer="json",
        retry=True,
        retry_policy={"max_retries": 3},
    )


@shared_task(name="core.relay_outbox")
def relay_outbox(batch_size=None):
    """Forward PENDING (and retryable FAILED) outbox rows to the broker.

    Rows are taken oldest first.  Each row is marked PUBLISHED or FAILED
    on its own, so one broker error does not block the rest of the batch.
    """
    if batch_size is None:
        batch_size = settings.OUTBOX_RELAY_BATCH_SIZE
    events = list(
        OutboxEvent.objects.filter(
            Q(status=EventStatus.PENDING)
            | Q(
                status=EventStatus.FAILED,
                retry_count__lt=settings.OUTBOX_MAX_RETRIES,
            )
        ).order_by("created_at")[:batch_size]
    )

    published = failed = 0
    with current_app.producer_or_acquire() as producer:
        for event in events:
            try:
                publish_event(producer, event)
            except (KombuError, OSError) as exc:
                event.mark_as_failed(str(exc))
                failed += 1
                logger.error(
                    "outbox.publish_failed",
                    event_id=str(event.id),
                    event_type=event.event_type,
                    retry_count=event.retry_count,
                    error=str(exc),
                )
            else:
                event.mark_as_published()
                published += 1

    logger.info("outbox.relay_completed", published=published, failed=failed)
    return {"published": published, "failed": failed}
