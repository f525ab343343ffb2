"""Product DRF serializers for API output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.products.models import Product


class ProductSerializer(serializers.ModelSerializer):
    """Read serializer for the Product resource, derived stock flags included."""

    category_id = serializers.UUIDField(read_only=True, allow_null=True)
    category_name = serializers.CharField(
        source="category.name", read_only=True, default=None
    )
    available_quantity = serializers.IntegerField(read_only=True)
    is_in_stock = serializers.BooleanField(read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)
    is_published = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "sku",
            "name",
            "description",
            "short_description",
            "base_price",
            "status",
            "stock_quantity",
            "reserved_quantity",
            "available_quantity",
            "low_stock_threshold",
            "track_inventory",
            "is_in_stock",
            "is_low_stock",
            "is_published",
            "published_at",
            "category_id",
            "category_name",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
