"""Category DRF serializers for API output."""

from __future__ import annotations

from rest_framework import serializers

from modules.categories.models import Category


class CategorySerializer(serializers.ModelSerializer):
    parent_id = serializers.UUIDField(read_only=True, allow_null=True)
    full_path = serializers.CharField(read_only=True)

    class Meta:
        model = Category
        fields = [
            "id",
            "name",
            "slug",
            "description",
            "parent_id",
            "level",
            "full_path",
            "display_order",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CategoryTreeSerializer(CategorySerializer):
    """Nested view of the hierarchy; children are resolved recursively."""

    children = serializers.SerializerMethodField()

    class Meta(CategorySerializer.Meta):
        fields = CategorySerializer.Meta.fields + ["children"]
        read_only_fields = fields

    def get_children(self, obj: Category) -> list:
        children = obj.children.order_by("display_order", "name")
        return CategoryTreeSerializer(children, many=True).data
