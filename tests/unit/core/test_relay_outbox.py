"""Unit tests for the outbox relay task.

The broker is replaced by a mocked producer, so rows go through the
real queryset and ``mark_as_*`` transitions without a running RabbitMQ.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from kombu.exceptions import OperationalError

from modules.core.models import EventStatus, OutboxEvent
from modules.core.tasks import publish_event, relay_outbox

pytestmark = pytest.mark.unit


def _make_event(**overrides) -> OutboxEvent:
    defaults = {
        "event_type": "ProductPublished",
        "payload": {"sku": "SKU-1"},
        "aggregate_id": "abc-123",
        "topic": "catalog.products",
    }
    defaults.update(overrides)
    return OutboxEvent.objects.create(**defaults)


@pytest.fixture()
def mock_app():
    with patch("modules.core.tasks.current_app") as app:
        yield app


@pytest.fixture()
def mock_publish():
    with patch("modules.core.tasks.publish_event") as publish:
        yield publish


class TestRelayOutbox:
    def test_pending_rows_are_published(self, mock_app, mock_publish):
        first = _make_event()
        second = _make_event(event_type="StockReserved")

        result = relay_outbox()

        assert result == {"published": 2, "failed": 0}
        assert mock_publish.call_count == 2
        first.refresh_from_db()
        second.refresh_from_db()
        assert first.status == EventStatus.PUBLISHED
        assert first.processed_at is not None
        assert second.status == EventStatus.PUBLISHED

    def test_broker_error_marks_row_failed(self, mock_app, mock_publish):
        event = _make_event()
        mock_publish.side_effect = OperationalError("connection refused")

        result = relay_outbox()

        assert result == {"published": 0, "failed": 1}
        event.refresh_from_db()
        assert event.status == EventStatus.FAILED
        assert event.retry_count == 1
        assert "connection refused" in event.error_message

    def test_one_failure_does_not_block_the_batch(self, mock_app, mock_publish):
        broken = _make_event(event_type="Broken")
        healthy = _make_event()

        def publish(producer, event):
            if event.event_type == "Broken":
                raise OSError("reset by peer")

        mock_publish.side_effect = publish

        relay_outbox()

        broken.refresh_from_db()
        healthy.refresh_from_db()
        assert broken.status == EventStatus.FAILED
        assert healthy.status == EventStatus.PUBLISHED

    def test_failed_rows_are_retried(self, mock_app, mock_publish, settings):
        settings.OUTBOX_MAX_RETRIES = 3
        event = _make_event(status=EventStatus.FAILED, retry_count=2)

        relay_outbox()

        event.refresh_from_db()
        assert event.status == EventStatus.PUBLISHED

    def test_exhausted_rows_are_skipped(self, mock_app, mock_publish, settings):
        settings.OUTBOX_MAX_RETRIES = 3
        event = _make_event(status=EventStatus.FAILED, retry_count=3)

        result = relay_outbox()

        assert result == {"published": 0, "failed": 0}
        mock_publish.assert_not_called()
        event.refresh_from_db()
        assert event.status == EventStatus.FAILED

    def test_published_rows_are_not_resent(self, mock_app, mock_publish):
        _make_event(status=EventStatus.PUBLISHED)

        assert relay_outbox() == {"published": 0, "failed": 0}
        mock_publish.assert_not_called()

    def test_batch_size_limits_rows(self, mock_app, mock_publish):
        for _ in range(3):
            _make_event()

        result = relay_outbox(batch_size=2)

        assert result["published"] == 2
        assert OutboxEvent.objects.filter(status=EventStatus.PENDING).count() == 1


class TestPublishEvent:
    def test_routes_by_event_type_on_topic_exchange(self):
        event = _make_event()
        producer = MagicMock()

        publish_event(producer, event)

        body = producer.publish.call_args.args[0]
        kwargs = producer.publish.call_args.kwargs
        assert body["event_id"] == str(event.id)
        assert body["event_type"] == "ProductPublished"
        assert body["payload"] == {"sku": "SKU-1"}
        assert kwargs["routing_key"] == "ProductPublished"
        assert kwargs["exchange"].name == "catalog.products"
        assert kwargs["exchange"].type == "topic"
