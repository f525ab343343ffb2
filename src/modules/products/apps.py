from django.apps import AppConfig


class ProductsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.products"
    label = "products"

    def ready(self) -> None:
        from modules.products.events import LowStockReached, ProductStatusChanged
        from modules.products.handlers import (
            low_stock_reached_handler,
            product_status_changed_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(LowStockReached, low_stock_reached_handler)
        event_bus.subscribe(ProductStatusChanged, product_status_changed_handler)
