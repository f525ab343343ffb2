"""Unit tests for CategoryService.

Repositories are mocked; Category instances are built in memory so the
hierarchy rules run without touching the database.

Covers:
- create / update (immutable slug).
- move: level cascade, move to root, self and cycle rejection.
- deactivate / activate / delete guards.
- reorder and queries.
"""

from __future__ import annotations

from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from modules.categories.dtos import (
    CreateCategoryDTO,
    ReorderCategoriesDTO,
    UpdateCategoryDTO,
)
from modules.categories.exceptions import (
    CategoryInUse,
    CategoryNotFound,
    DuplicateSlug,
    InvalidCategoryMove,
    SlugImmutable,
)
from modules.categories.models import Category
from modules.categories.services import CategoryService
from modules.core.exceptions import IllegalOperation

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_repo():
    repo = MagicMock()
    repo.save.side_effect = lambda c: c
    repo.save_all.side_effect = lambda entities, fields: len(entities)
    repo.get_descendants.return_value = []
    return repo


@pytest.fixture()
def mock_product_repo():
    repo = MagicMock()
    repo.exists_active_in_category.return_value = False
    return repo


@pytest.fixture()
def service(mock_repo, mock_product_repo):
    return CategoryService(repository=mock_repo, product_repository=mock_product_repo)


def _make_category(name: str, slug: str, parent: Category | None = None) -> Category:
    category = Category(name=name, slug=slug)
    category.attach_to(parent)
    return category


def _lookup(mock_repo, *categories: Category) -> None:
    by_id = {str(c.id): c for c in categories}
    mock_repo.get_by_id.side_effect = lambda id: by_id.get(str(id))


# ===========================================================================
# create_category
# ===========================================================================


class TestCreateCategory:
    def test_root(self, service, mock_repo):
        mock_repo.exists_by_slug.return_value = False

        category = service.create_category(
            CreateCategoryDTO(name="Electronics", slug="electronics")
        )

        assert category.level == 0
        assert category.parent is None
        assert category.is_active is True
        mock_repo.save.assert_called_once()

    def test_child_level(self, service, mock_repo):
        mock_repo.exists_by_slug.return_value = False
        parent = _make_category("Computers", "computers", _make_category("E", "e"))
        _lookup(mock_repo, parent)

        category = service.create_category(
            CreateCategoryDTO(name="Laptops", slug="laptops", parent_id=parent.id)
        )

        assert category.level == 2
        assert category.parent is parent

    def test_duplicate_slug(self, service, mock_repo):
        mock_repo.exists_by_slug.return_value = True
        with pytest.raises(DuplicateSlug, match="electronics"):
            service.create_category(
                CreateCategoryDTO(name="Electronics", slug="electronics")
            )
        mock_repo.save.assert_not_called()

    def test_unknown_parent(self, service, mock_repo):
        mock_repo.exists_by_slug.return_value = False
        mock_repo.get_by_id.return_value = None
        with pytest.raises(CategoryNotFound):
            service.create_category(
                CreateCategoryDTO(name="Laptops", slug="laptops", parent_id=uuid4())
            )


# ===========================================================================
# update_category
# ===========================================================================


class TestUpdateCategory:
    def test_updates_non_null_fields(self, service, mock_repo):
        category = _make_category("Old", "old")
        _lookup(mock_repo, category)

        result = service.update_category(
            str(category.id), UpdateCategoryDTO(name="New Name", display_order=4)
        )

        assert result.name == "New Name"
        assert result.display_order == 4
        assert result.description == ""

    def test_same_slug_is_accepted(self, service, mock_repo):
        category = _make_category("Books", "books")
        _lookup(mock_repo, category)
        service.update_category(str(category.id), UpdateCategoryDTO(slug="books"))
        mock_repo.save.assert_called_once()

    def test_changed_slug_rejected(self, service, mock_repo):
        category = _make_category("Books", "books")
        _lookup(mock_repo, category)
        with pytest.raises(SlugImmutable):
            service.update_category(str(category.id), UpdateCategoryDTO(slug="novels"))
        assert category.slug == "books"
        mock_repo.save.assert_not_called()

    def test_slug_error_is_illegal_operation(self, service, mock_repo):
        category = _make_category("Books", "books")
        _lookup(mock_repo, category)
        with pytest.raises(IllegalOperation):
            service.update_category(str(category.id), UpdateCategoryDTO(slug="x-y"))

    def test_not_found(self, service, mock_repo):
        mock_repo.get_by_id.return_value = None
        with pytest.raises(CategoryNotFound):
            service.update_category(str(uuid4()), UpdateCategoryDTO(name="Name"))


# ===========================================================================
# move_category
# ===========================================================================


class TestMoveCategory:
    def test_move_recomputes_subtree_levels(self, service, mock_repo):
        root = _make_category("Electronics", "electronics")
        other_root = _make_category("Archive", "archive")
        deep = _make_category("Old Stock", "old-stock", other_root)
        moving = _make_category("Computers", "computers", root)
        laptops = _make_category("Laptops", "laptops", moving)
        gaming = _make_category("Gaming", "gaming", laptops)
        _lookup(mock_repo, root, other_root, deep, moving, laptops, gaming)
        mock_repo.get_descendants.return_value = [laptops, gaming]

        result = service.move_category(str(moving.id), str(deep.id))

        assert result.parent is deep
        assert result.level == 2
        assert laptops.level == 3
        assert gaming.level == 4
        mock_repo.save_all.assert_called_once_with([laptops, gaming], ["level"])

    def test_move_to_root(self, service, mock_repo):
        root = _make_category("Electronics", "electronics")
        child = _make_category("Computers", "computers", root)
        grandchild = _make_category("Laptops", "laptops", child)
        _lookup(mock_repo, root, child, grandchild)
        mock_repo.get_descendants.return_value = [grandchild]

        result = service.move_category(str(child.id), None)

        assert result.level == 0
        assert result.parent is None
        assert grandchild.level == 1

    def test_move_under_itself_rejected(self, service, mock_repo):
        category = _make_category("Computers", "computers")
        _lookup(mock_repo, category)
        with pytest.raises(InvalidCategoryMove, match="own parent"):
            service.move_category(str(category.id), str(category.id))
        mock_repo.save.assert_not_called()

    def test_move_under_descendant_rejected(self, service, mock_repo):
        root = _make_category("Electronics", "electronics")
        child = _make_category("Computers", "computers", root)
        grandchild = _make_category("Laptops", "laptops", child)
        _lookup(mock_repo, root, child, grandchild)
        mock_repo.get_descendants.return_value = [child, grandchild]

        with pytest.raises(InvalidCategoryMove, match="descendants"):
            service.move_category(str(root.id), str(grandchild.id))

        assert root.level == 0
        assert root.parent is None
        mock_repo.save.assert_not_called()

    def test_unknown_new_parent(self, service, mock_repo):
        category = _make_category("Computers", "computers")
        _lookup(mock_repo, category)
        with pytest.raises(CategoryNotFound):
            service.move_category(str(category.id), str(uuid4()))

    def test_unknown_category(self, service, mock_repo):
        mock_repo.get_by_id.return_value = None
        with pytest.raises(CategoryNotFound):
            service.move_category(str(uuid4()), None)


# ===========================================================================
# deactivate / activate / delete
# ===========================================================================


class TestActivation:
    def test_deactivate_without_active_products(self, service, mock_repo):
        category = _make_category("Books", "books")
        _lookup(mock_repo, category)

        assert service.deactivate_category(str(category.id)).is_active is False

    def test_deactivate_with_active_products_rejected(
        self, service, mock_repo, mock_product_repo
    ):
        category = _make_category("Books", "books")
        _lookup(mock_repo, category)
        mock_product_repo.exists_active_in_category.return_value = True

        with pytest.raises(CategoryInUse, match="active products"):
            service.deactivate_category(str(category.id))

        assert category.is_active is True
        mock_product_repo.exists_active_in_category.assert_called_once_with(
            str(category.id)
        )
        mock_repo.save.assert_not_called()

    def test_deactivate_unknown(self, service, mock_repo):
        mock_repo.get_by_id.return_value = None
        with pytest.raises(CategoryNotFound):
            service.deactivate_category(str(uuid4()))

    def test_activate(self, service, mock_repo):
        category = _make_category("Books", "books")
        category.is_active = False
        _lookup(mock_repo, category)
        assert service.activate_category(str(category.id)).is_active is True


class TestDeleteCategory:
    def test_delete_leaf(self, service, mock_repo):
        category = _make_category("Books", "books")
        _lookup(mock_repo, category)
        mock_repo.has_children.return_value = False

        service.delete_category(str(category.id))

        mock_repo.delete.assert_called_once_with(str(category.id))

    def test_delete_with_children_rejected(self, service, mock_repo):
        category = _make_category("Books", "books")
        _lookup(mock_repo, category)
        mock_repo.has_children.return_value = True

        with pytest.raises(CategoryInUse, match="child"):
            service.delete_category(str(category.id))
        mock_repo.delete.assert_not_called()

    def test_delete_with_active_products_rejected(
        self, service, mock_repo, mock_product_repo
    ):
        category = _make_category("Books", "books")
        _lookup(mock_repo, category)
        mock_product_repo.exists_active_in_category.return_value = True

        with pytest.raises(CategoryInUse):
            service.delete_category(str(category.id))
        mock_repo.delete.assert_not_called()


# ===========================================================================
# reorder / queries
# ===========================================================================


class TestReorder:
    def test_reorder_found_ids_only(self, service, mock_repo):
        a = _make_category("A cat", "a-cat")
        b = _make_category("B cat", "b-cat")
        mock_repo.get_many.return_value = [a, b]
        unknown = uuid4()

        updated = service.reorder_categories(
            ReorderCategoriesDTO(orders={a.id: 5, b.id: 0, unknown: 3})
        )

        assert updated == 2
        assert (a.display_order, b.display_order) == (5, 0)
        (ids,), _ = mock_repo.get_many.call_args
        assert set(ids) == {str(a.id), str(b.id), str(unknown)}
        mock_repo.save_all.assert_called_once_with([a, b], ["display_order"])

    def test_reorder_empty(self, service, mock_repo):
        mock_repo.get_many.return_value = []
        assert service.reorder_categories(ReorderCategoriesDTO(orders={})) == 0


class TestQueries:
    def test_get_by_slug_not_found(self, service, mock_repo):
        mock_repo.get_by_slug.return_value = None
        with pytest.raises(CategoryNotFound, match="missing"):
            service.get_category_by_slug("missing")

    def test_hierarchy_delegates(self, service, mock_repo):
        service.get_hierarchy()
        mock_repo.list_roots.assert_called_once_with()

    def test_search_delegates(self, service, mock_repo):
        service.search_categories("lap")
        mock_repo.search_by_name.assert_called_once_with("lap")

    def test_count_active_products(self, service, mock_repo, mock_product_repo):
        category = _make_category("Books", "books")
        _lookup(mock_repo, category)
        mock_product_repo.count_active_in_category.return_value = 3
        assert service.count_active_products(str(category.id)) == 3

    def test_list_children_unknown(self, service, mock_repo):
        mock_repo.get_by_id.return_value = None
        with pytest.raises(CategoryNotFound):
            service.list_children(str(uuid4()))
