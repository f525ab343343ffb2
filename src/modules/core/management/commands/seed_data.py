from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from modules.categories.dtos import CreateCategoryDTO
from modules.categories.models import Category
from modules.categories.repositories import CategoryDjangoRepository
from modules.categories.services import CategoryService
from modules.products.dtos import CreateProductDTO
from modules.products.models import Product
from modules.products.repositories import ProductDjangoRepository
from modules.products.services import ProductService

# (slug, name, parent slug)
CATEGORY_TREE = [
    ("electronics", "Electronics", None),
    ("computers", "Computers", "electronics"),
    ("laptops", "Laptops", "computers"),
    ("peripherals", "Peripherals", "computers"),
    ("audio", "Audio", "electronics"),
    ("furniture", "Furniture", None),
    ("office-chairs", "Office Chairs", "furniture"),
    ("stationery", "Stationery", None),
]

# (sku, name, category slug, price, stock, inventory scenario)
CATALOG = [
    ("ELEC-LAP-001", 'Laptop 14"', "laptops", Decimal("3999.00"), 25, "published"),
    ("ELEC-LAP-002", 'Laptop 16" Pro', "laptops", Decimal("7499.00"), 8, "low_stock"),
    ("ELEC-PER-001", "Mechanical Keyboard", "peripherals", Decimal("399.90"), 120, "reserved"),
    ("ELEC-PER-002", "Wireless Mouse", "peripherals", Decimal("149.90"), 200, "published"),
    ("ELEC-PER-003", '27" Monitor', "peripherals", Decimal("1299.90"), 40, "sold"),
    ("ELEC-AUD-001", "Headset", "audio", Decimal("299.90"), 60, "draft"),
    ("ELEC-AUD-002", "Bluetooth Speaker", "audio", Decimal("249.90"), 0, "discontinued"),
    ("FURN-CHR-001", "Ergonomic Chair", "office-chairs", Decimal("1499.00"), 15, "published"),
    ("STAT-001", "A4 Paper (500 sheets)", "stationery", Decimal("29.90"), 500, "published"),
    ("STAT-002", "Blue Pen", "stationery", Decimal("4.90"), 12, "low_stock"),
]


class Command(BaseCommand):
    help = "Seed database with a category tree and products in several inventory states."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        category_service = CategoryService(
            repository=CategoryDjangoRepository(),
            product_repository=ProductDjangoRepository(),
        )
        product_service = ProductService(
            repository=ProductDjangoRepository(),
            category_repository=CategoryDjangoRepository(),
        )

        users_created = self._seed_users()
        categories = self._seed_categories(category_service)
        products = self._seed_products(product_service, categories)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"categories={len(categories)}, "
                f"products={len(products)}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="catalog").exists():
            User.objects.create_user("catalog", password="catalog123", is_staff=True)
            created += 1
        return created

    def _seed_categories(self, service: CategoryService) -> dict[str, Category]:
        self.stdout.write("Creating categories...")
        categories: dict[str, Category] = {}
        for order, (slug, name, parent_slug) in enumerate(CATEGORY_TREE):
            existing = Category.objects.filter(slug=slug).first()
            if existing:
                categories[slug] = existing
                continue
            parent = categories.get(parent_slug) if parent_slug else None
            categories[slug] = service.create_category(
                CreateCategoryDTO(
                    name=name,
                    slug=slug,
                    parent_id=parent.id if parent else None,
                    display_order=order,
                )
            )
        self.stdout.write(self.style.SUCCESS("Creating categories... Done!"))
        return categories

    def _seed_products(
        self, service: ProductService, categories: dict[str, Category]
    ) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        for sku, name, category_slug, price, stock, scenario in CATALOG:
            existing = Product.objects.filter(sku=sku).first()
            if existing:
                products.append(existing)
                continue
            with transaction.atomic():
                product = service.create_product(
                    CreateProductDTO(
                        sku=sku,
                        name=name,
                        base_price=price,
                        stock_quantity=stock,
                        short_description=f"{name} ({categories[category_slug].name})",
                        category_id=categories[category_slug].id,
                    )
                )
                product = self._apply_scenario(service, product, scenario)
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _apply_scenario(
        self, service: ProductService, product: Product, scenario: str
    ) -> Product:
        if scenario == "draft":
            return product
        if scenario == "discontinued":
            return service.discontinue_product(product.id)

        product = service.publish_product(product.id)
        if scenario == "reserved":
            product = service.reserve_stock(product.id, random.randint(5, 20))
        elif scenario == "sold":
            quantity = random.randint(5, 15)
            service.reserve_stock(product.id, quantity)
            product = service.confirm_stock(product.id, quantity)
        elif scenario == "low_stock":
            reserve = max(product.available_quantity - product.low_stock_threshold, 1)
            product = service.reserve_stock(product.id, reserve)
        return product
