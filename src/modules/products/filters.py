import django_filters

from modules.products.constants import ProductStatus
from modules.products.models import Product


class ProductFilter(django_filters.FilterSet):
    name = django_filters.CharFilter(field_name="name", lookup_expr="icontains")
    sku = django_filters.CharFilter(field_name="sku", lookup_expr="iexact")
    min_price = django_filters.NumberFilter(field_name="base_price", lookup_expr="gte")
    max_price = django_filters.NumberFilter(field_name="base_price", lookup_expr="lte")
    status = django_filters.ChoiceFilter(choices=ProductStatus.choices)
    category = django_filters.UUIDFilter(field_name="category_id")

    class Meta:
        model = Product
        fields = ["name", "sku", "min_price", "max_price", "status", "category"]
