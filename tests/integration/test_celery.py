"""Integration tests for the Celery configuration and catalog tasks."""

from decimal import Decimal

import pytest

from modules.products.constants import ProductStatus
from modules.products.models import Product

pytestmark = pytest.mark.integration


@pytest.fixture(autouse=True)
def _celery_eager(settings):
    """Run tasks synchronously inside the test process."""
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True


class TestCeleryConfig:
    """Celery loads its configuration through Django settings."""

    def test_celery_app_is_importable(self):
        from config.celery import app

        assert app.main == "catalog"

    def test_celery_app_exported_from_init(self):
        from config import celery_app

        assert celery_app.main == "catalog"

    def test_celery_broker_url_configured(self, settings):
        assert settings.CELERY_BROKER_URL

    def test_celery_result_backend_configured(self, settings):
        assert settings.CELERY_RESULT_BACKEND

    def test_celery_serializer_is_json(self, settings):
        assert settings.CELERY_TASK_SERIALIZER == "json"
        assert settings.CELERY_RESULT_SERIALIZER == "json"
        assert settings.CELERY_ACCEPT_CONTENT == ["json"]

    def test_celery_timezone_matches_django(self, settings):
        assert settings.CELERY_TIMEZONE == settings.TIME_ZONE

    def test_low_stock_report_is_scheduled(self, settings):
        tasks = [entry["task"] for entry in settings.CELERY_BEAT_SCHEDULE.values()]
        assert "products.report_low_stock" in tasks

    def test_outbox_relay_is_scheduled(self, settings):
        tasks = [entry["task"] for entry in settings.CELERY_BEAT_SCHEDULE.values()]
        assert "core.relay_outbox" in tasks


class TestReportLowStock:
    """The low-stock report runs in eager mode against the test database."""

    @pytest.fixture()
    def products(self):
        low = Product.objects.create(
            sku="LOW-1",
            name="Low",
            base_price=Decimal("5.00"),
            stock_quantity=2,
            low_stock_threshold=5,
            status=ProductStatus.ACTIVE,
        )
        Product.objects.create(
            sku="OK-1",
            name="Plenty",
            base_price=Decimal("5.00"),
            stock_quantity=50,
            low_stock_threshold=5,
        )
        return low

    def test_report_via_delay(self, products):
        from modules.products.tasks import report_low_stock

        result = report_low_stock.delay()

        assert result.successful()
        assert result.result == {"count": 1, "product_ids": [str(products.id)]}

    def test_report_direct_call_with_limit(self, products):
        from modules.products.tasks import report_low_stock

        assert report_low_stock(limit=0)["count"] == 0

    def test_report_empty_catalog(self):
        from modules.products.tasks import report_low_stock

        assert report_low_stock() == {"count": 0, "product_ids": []}
