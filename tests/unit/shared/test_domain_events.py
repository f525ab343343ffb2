"""Unit tests for domain event primitives and the in-memory bus."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from modules.products.events import StockReserved
from modules.products.models import Product
from shared.infrastructure.bus import InMemoryEventBus

pytestmark = pytest.mark.unit


def test_product_registers_and_clears_domain_events():
    product = Product(sku="EVT-1", name="Event", base_price=Decimal("1.00"))

    assert product.domain_events == []

    event = StockReserved(aggregate_id=product.id, quantity=1)
    product.add_domain_event(event)

    assert product.domain_events == [event]
    assert event.event_name == "StockReserved"

    product.clear_domain_events()
    assert product.domain_events == []


def test_event_payload_is_json_safe():
    aggregate_id = uuid4()
    payload = StockReserved(aggregate_id=aggregate_id, quantity=2).to_payload()

    assert payload["aggregate_id"] == str(aggregate_id)
    assert payload["event_name"] == "StockReserved"
    assert payload["quantity"] == 2
    assert isinstance(payload["occurred_on"], str)
    assert isinstance(payload["event_id"], str)


def test_events_are_immutable():
    event = StockReserved(aggregate_id=uuid4())
    with pytest.raises(AttributeError):
        event.quantity = 5


def test_in_memory_event_bus_routes_events():
    bus = InMemoryEventBus()
    handled = []

    class CapturingHandler:
        def handle(self, event) -> None:
            handled.append(event)

    handler = CapturingHandler()
    first = StockReserved(aggregate_id=uuid4())
    second = StockReserved(aggregate_id=uuid4())

    bus.subscribe(StockReserved, handler)
    bus.subscribe(StockReserved, handler)
    bus.publish_all([first, second])

    assert handled == [first, second]
