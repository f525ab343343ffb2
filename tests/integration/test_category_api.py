"""Integration tests for Category API endpoints."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from django.contrib.auth import get_user_model

from rest_framework.test import APIClient

from modules.categories.models import Category
from modules.products.constants import ProductStatus
from modules.products.models import Product

pytestmark = pytest.mark.integration

User = get_user_model()

BASE_URL = "/api/v1/categories/"


@pytest.fixture()
def auth_client():
    client = APIClient()
    user = User.objects.create_user(username="catuser", password="testpass123")
    client.force_authenticate(user=user)
    return client


def _make_category(name, slug, parent=None, display_order=0):
    category = Category(name=name, slug=slug, display_order=display_order)
    category.attach_to(parent)
    category.save()
    return category


@pytest.fixture()
def tree():
    """electronics > computers > laptops, plus a separate office root."""
    electronics = _make_category("Electronics", "electronics")
    computers = _make_category("Computers", "computers", electronics)
    laptops = _make_category("Laptops", "laptops", computers)
    office = _make_category("Office", "office", display_order=1)
    return {
        "electronics": electronics,
        "computers": computers,
        "laptops": laptops,
        "office": office,
    }


def _active_product(category, sku="P-1"):
    return Product.objects.create(
        sku=sku,
        name="Product",
        base_price=Decimal("10.00"),
        status=ProductStatus.ACTIVE,
        category=category,
    )


class TestCategoryAPIAuth:
    def test_unauthenticated_returns_401(self, api_client):
        assert api_client.get(BASE_URL).status_code == 401


class TestCategoryCreate:
    def test_create_root(self, auth_client):
        response = auth_client.post(
            BASE_URL, {"name": "Garden", "slug": "garden"}, format="json"
        )
        assert response.status_code == 201
        assert response.data["level"] == 0
        assert response.data["parent_id"] is None
        assert response.data["is_active"] is True

    def test_create_child_sets_level_and_path(self, auth_client, tree):
        response = auth_client.post(
            BASE_URL,
            {
                "name": "Gaming Laptops",
                "slug": "gaming-laptops",
                "parent_id": str(tree["laptops"].id),
            },
            format="json",
        )
        assert response.status_code == 201
        assert response.data["level"] == 3
        assert response.data["full_path"] == (
            "Electronics > Computers > Laptops > Gaming Laptops"
        )

    def test_duplicate_slug_returns_409(self, auth_client, tree):
        response = auth_client.post(
            BASE_URL, {"name": "Other", "slug": "office"}, format="json"
        )
        assert response.status_code == 409

    def test_bad_slug_returns_400(self, auth_client):
        response = auth_client.post(
            BASE_URL, {"name": "Bad", "slug": "Not A Slug"}, format="json"
        )
        assert response.status_code == 400

    def test_unknown_parent_returns_404(self, auth_client):
        response = auth_client.post(
            BASE_URL,
            {"name": "Orphan", "slug": "orphan", "parent_id": str(uuid4())},
            format="json",
        )
        assert response.status_code == 404


class TestCategoryRead:
    def test_retrieve(self, auth_client, tree):
        response = auth_client.get(f"{BASE_URL}{tree['laptops'].id}/")
        assert response.status_code == 200
        assert response.data["slug"] == "laptops"

    def test_retrieve_unknown_returns_404(self, auth_client):
        assert auth_client.get(f"{BASE_URL}{uuid4()}/").status_code == 404

    def test_by_slug(self, auth_client, tree):
        response = auth_client.get(f"{BASE_URL}slug/computers/")
        assert response.status_code == 200
        assert response.data["id"] == str(tree["computers"].id)

    def test_by_unknown_slug_returns_404(self, auth_client):
        assert auth_client.get(f"{BASE_URL}slug/nothing/").status_code == 404

    def test_tree_nests_children(self, auth_client, tree):
        response = auth_client.get(f"{BASE_URL}tree/")
        assert response.status_code == 200
        assert [node["slug"] for node in response.data] == ["electronics", "office"]
        computers = response.data[0]["children"][0]
        assert computers["slug"] == "computers"
        assert computers["children"][0]["slug"] == "laptops"

    def test_children(self, auth_client, tree):
        response = auth_client.get(f"{BASE_URL}{tree['electronics'].id}/children/")
        assert response.status_code == 200
        assert [c["slug"] for c in response.data] == ["computers"]

    def test_search_requires_term(self, auth_client):
        assert auth_client.get(f"{BASE_URL}search/").status_code == 400

    def test_search(self, auth_client, tree):
        response = auth_client.get(f"{BASE_URL}search/", {"q": "lap"})
        assert [c["slug"] for c in response.data] == ["laptops"]

    def test_product_count(self, auth_client, tree):
        _active_product(tree["laptops"])
        response = auth_client.get(f"{BASE_URL}{tree['laptops'].id}/product-count/")
        assert response.status_code == 200
        assert response.data["active_products"] == 1


class TestCategoryUpdate:
    def test_rename(self, auth_client, tree):
        response = auth_client.patch(
            f"{BASE_URL}{tree['office'].id}/", {"name": "Office Supplies"}, format="json"
        )
        assert response.status_code == 200
        assert response.data["name"] == "Office Supplies"

    def test_slug_change_returns_409(self, auth_client, tree):
        response = auth_client.patch(
            f"{BASE_URL}{tree['office'].id}/", {"slug": "workplace"}, format="json"
        )
        assert response.status_code == 409


class TestCategoryMove:
    def test_move_relevels_subtree(self, auth_client, tree):
        response = auth_client.post(
            f"{BASE_URL}{tree['computers'].id}/move/",
            {"parent_id": str(tree["office"].id)},
            format="json",
        )
        assert response.status_code == 200
        assert response.data["level"] == 1
        tree["laptops"].refresh_from_db()
        assert tree["laptops"].level == 2

    def test_move_to_root(self, auth_client, tree):
        response = auth_client.post(
            f"{BASE_URL}{tree['computers'].id}/move/", {"parent_id": None}, format="json"
        )
        assert response.status_code == 200
        assert response.data["level"] == 0
        assert response.data["parent_id"] is None

    def test_move_under_descendant_returns_409(self, auth_client, tree):
        response = auth_client.post(
            f"{BASE_URL}{tree['electronics'].id}/move/",
            {"parent_id": str(tree["laptops"].id)},
            format="json",
        )
        assert response.status_code == 409


class TestCategoryActivation:
    def test_deactivate_with_active_products_returns_409(self, auth_client, tree):
        _active_product(tree["laptops"])
        response = auth_client.post(f"{BASE_URL}{tree['laptops'].id}/deactivate/")
        assert response.status_code == 409
        tree["laptops"].refresh_from_db()
        assert tree["laptops"].is_active is True

    def test_deactivate_after_discontinuing_last_product(self, auth_client, tree):
        product = _active_product(tree["laptops"])
        url = f"{BASE_URL}{tree['laptops'].id}/deactivate/"
        assert auth_client.post(url).status_code == 409

        response = auth_client.post(f"/api/v1/products/{product.id}/discontinue/")
        assert response.status_code == 200
        assert response.data["status"] == ProductStatus.DISCONTINUED

        response = auth_client.post(url)
        assert response.status_code == 200
        assert response.data["is_active"] is False

    def test_deactivate_and_activate(self, auth_client, tree):
        response = auth_client.post(f"{BASE_URL}{tree['office'].id}/deactivate/")
        assert response.status_code == 200
        assert response.data["is_active"] is False

        response = auth_client.post(f"{BASE_URL}{tree['office'].id}/activate/")
        assert response.status_code == 200
        assert response.data["is_active"] is True


class TestCategoryReorder:
    def test_reorder(self, auth_client, tree):
        response = auth_client.post(
            f"{BASE_URL}reorder/",
            {
                "orders": {
                    str(tree["electronics"].id): 5,
                    str(tree["office"].id): 0,
                    str(uuid4()): 3,
                }
            },
            format="json",
        )
        assert response.status_code == 200
        assert response.data == {"updated": 2}
        tree["electronics"].refresh_from_db()
        assert tree["electronics"].display_order == 5


class TestCategoryDelete:
    def test_delete_leaf(self, auth_client, tree):
        response = auth_client.delete(f"{BASE_URL}{tree['office'].id}/")
        assert response.status_code == 204
        assert not Category.objects.filter(slug="office").exists()

    def test_delete_with_children_returns_409(self, auth_client, tree):
        response = auth_client.delete(f"{BASE_URL}{tree['electronics'].id}/")
        assert response.status_code == 409

    def test_delete_with_active_products_returns_409(self, auth_client, tree):
        _active_product(tree["office"])
        response = auth_client.delete(f"{BASE_URL}{tree['office'].id}/")
        assert response.status_code == 409

    def test_delete_unknown_returns_404(self, auth_client):
        assert auth_client.delete(f"{BASE_URL}{uuid4()}/").status_code == 404
