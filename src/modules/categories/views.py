"""Category API views.

Exposes the ``CategoryService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.categories.dtos import (
    CreateCategoryDTO,
    MoveCategoryDTO,
    ReorderCategoriesDTO,
    UpdateCategoryDTO,
)
from modules.categories.exceptions import CategoryNotFound, DuplicateSlug
from modules.categories.filters import CategoryFilter
from modules.categories.models import Category
from modules.categories.repositories import CategoryDjangoRepository
from modules.categories.serializers import CategorySerializer, CategoryTreeSerializer
from modules.categories.services import CategoryService
from modules.core.exceptions import IllegalOperation
from modules.products.repositories import ProductDjangoRepository


class CategoryViewSet(ListModelMixin, GenericViewSet):
    """ViewSet for the category hierarchy.

    Uses ``CategoryService`` with injected repositories (DIP).
    """

    filterset_class = CategoryFilter
    search_fields = ["name"]
    ordering_fields = ["name", "display_order", "level", "created_at"]
    ordering = ["level", "display_order", "name"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    queryset = Category.objects.all()
    serializer_class = CategorySerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = CategoryService(
            repository=CategoryDjangoRepository(),
            product_repository=ProductDjangoRepository(),
        )

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def get_queryset(self):
        return self._service.list_categories()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/categories/{pk}/"""
        try:
            category = self._service.get_category(pk)
        except CategoryNotFound:
            return Response(
                {"detail": "Category not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(CategorySerializer(category).data)

    @action(detail=False, methods=["get"], url_path=r"slug/(?P<slug>[^/]+)")
    def by_slug(self, request: Request, slug: str | None = None) -> Response:
        """GET /api/v1/categories/slug/{slug}/"""
        try:
            category = self._service.get_category_by_slug(slug)
        except CategoryNotFound:
            return Response(
                {"detail": "Category not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(CategorySerializer(category).data)

    @action(detail=False, methods=["get"])
    def tree(self, request: Request) -> Response:
        """GET /api/v1/categories/tree/

        Root categories ordered by display order, children nested.
        """
        roots = self._service.get_hierarchy()
        return Response(CategoryTreeSerializer(roots, many=True).data)

    @action(detail=False, methods=["get"])
    def search(self, request: Request) -> Response:
        """GET /api/v1/categories/search/?q=term"""
        term = request.query_params.get("q", "").strip()
        if not term:
            return Response(
                {"detail": "Query parameter 'q' is required."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        categories = self._service.search_categories(term)
        return Response(CategorySerializer(categories, many=True).data)

    @action(detail=True, methods=["get"])
    def children(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/categories/{pk}/children/"""
        try:
            children = self._service.list_children(pk)
        except CategoryNotFound:
            return Response(
                {"detail": "Category not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(CategorySerializer(children, many=True).data)

    @action(detail=True, methods=["get"], url_path="product-count")
    def product_count(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/categories/{pk}/product-count/"""
        try:
            count = self._service.count_active_products(pk)
        except CategoryNotFound:
            return Response(
                {"detail": "Category not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response({"category_id": pk, "active_products": count})

    # ------------------------------------------------------------------
    # Create / Update / Destroy
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/categories/"""
        data = request.data
        try:
            dto = CreateCategoryDTO(
                name=data.get("name", ""),
                slug=data.get("slug", ""),
                description=data.get("description", ""),
                parent_id=data.get("parent_id"),
                display_order=data.get("display_order", 0),
            )
        except (PydanticValidationError, ValueError) as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            category = self._service.create_category(dto)
        except CategoryNotFound as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_404_NOT_FOUND,
            )
        except DuplicateSlug as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_409_CONFLICT,
            )

        out = CategorySerializer(category)
        return Response(out.data, status=status.HTTP_201_CREATED)

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT/PATCH /api/v1/categories/{pk}/"""
        data = request.data
        try:
            dto = UpdateCategoryDTO(
                name=data.get("name"),
                slug=data.get("slug"),
                description=data.get("description"),
                display_order=data.get("display_order"),
            )
        except (PydanticValidationError, ValueError) as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            category = self._service.update_category(pk, dto)
        except CategoryNotFound:
            return Response(
                {"detail": "Category not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except IllegalOperation as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_409_CONFLICT,
            )

        return Response(CategorySerializer(category).data)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/categories/{pk}/"""
        return self.update(request, pk)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/categories/{pk}/"""
        try:
            self._service.delete_category(pk)
        except CategoryNotFound:
            return Response(
                {"detail": "Category not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except IllegalOperation as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_409_CONFLICT,
            )
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # Hierarchy operations
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def move(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/categories/{pk}/move/  ``{"parent_id": <uuid|null>}``"""
        try:
            dto = MoveCategoryDTO(parent_id=request.data.get("parent_id"))
        except (PydanticValidationError, ValueError) as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            category = self._service.move_category(pk, dto.parent_id)
        except CategoryNotFound as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_404_NOT_FOUND,
            )
        except IllegalOperation as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_409_CONFLICT,
            )

        return Response(CategorySerializer(category).data)

    @action(detail=True, methods=["post"])
    def deactivate(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/categories/{pk}/deactivate/"""
        try:
            category = self._service.deactivate_category(pk)
        except CategoryNotFound:
            return Response(
                {"detail": "Category not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except IllegalOperation as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_409_CONFLICT,
            )
        return Response(CategorySerializer(category).data)

    @action(detail=True, methods=["post"])
    def activate(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/categories/{pk}/activate/"""
        try:
            category = self._service.activate_category(pk)
        except CategoryNotFound:
            return Response(
                {"detail": "Category not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(CategorySerializer(category).data)

    @action(detail=False, methods=["post"])
    def reorder(self, request: Request) -> Response:
        """POST /api/v1/categories/reorder/  ``{"orders": {"<id>": 0, ...}}``"""
        try:
            dto = ReorderCategoriesDTO(orders=request.data.get("orders", {}))
        except (PydanticValidationError, ValueError) as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )
        updated = self._service.reorder_categories(dto)
        return Response({"updated": updated})
