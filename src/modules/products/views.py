"""Product API views.

Exposes the ``ProductService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.
"""

from __future__ import annotations

from typing import Callable

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.categories.exceptions import CategoryNotFound
from modules.categories.repositories import CategoryDjangoRepository
from modules.core.exceptions import ConcurrentModification, IllegalOperation
from modules.products.dtos import (
    BulkUpdateStatusDTO,
    CreateProductDTO,
    StockQuantityDTO,
    UpdateProductDTO,
)
from modules.products.exceptions import (
    DuplicateSku,
    InactiveCategory,
    InsufficientStock,
    InvalidQuantity,
    InvalidStockOperation,
    ProductNotFound,
)
from modules.products.filters import ProductFilter
from modules.products.models import Product
from modules.products.repositories import ProductDjangoRepository
from modules.products.serializers import ProductSerializer
from modules.products.services import ProductService

_STOCK_ACTIONS = {"reserve_stock", "release_stock", "confirm_stock"}


def _not_found(detail: str = "Product not found.") -> Response:
    return Response({"detail": detail}, status=status.HTTP_404_NOT_FOUND)


def _bad_request(exc: Exception) -> Response:
    return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)


def _conflict(exc: Exception, **extra) -> Response:
    return Response({"detail": str(exc), **extra}, status=status.HTTP_409_CONFLICT)


class ProductViewSet(ListModelMixin, GenericViewSet):
    """ViewSet for the product catalog and its inventory operations.

    Uses ``ProductService`` with ``ProductDjangoRepository`` (DIP).
    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    filterset_class = ProductFilter
    search_fields = ["name", "sku", "short_description"]
    ordering_fields = ["name", "base_price", "stock_quantity", "published_at"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    queryset = Product.objects.all()
    serializer_class = ProductSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = ProductService(
            repository=ProductDjangoRepository(),
            category_repository=CategoryDjangoRepository(),
        )

    def get_throttles(self) -> list[BaseThrottle]:
        """Stock writes get their own throttle scope."""
        self.throttle_scope = (
            "stock_operations" if self.action in _STOCK_ACTIONS else None
        )
        return super().get_throttles()

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def get_queryset(self):
        """Storefront listing shows ACTIVE products unless ``?status=`` is given."""
        if self.action == "list" and "status" not in self.request.query_params:
            return self._service.list_active_products()
        return self._service.list_products()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/products/{pk}/"""
        try:
            product = self._service.get_product(pk)
        except ProductNotFound:
            return _not_found()
        return Response(ProductSerializer(product).data)

    @action(detail=False, methods=["get"], url_path=r"sku/(?P<sku>[^/]+)")
    def by_sku(self, request: Request, sku: str | None = None) -> Response:
        """GET /api/v1/products/sku/{sku}/"""
        try:
            product = self._service.get_product_by_sku(sku)
        except ProductNotFound:
            return _not_found()
        return Response(ProductSerializer(product).data)

    @action(detail=False, methods=["get"], url_path="low-stock")
    def low_stock(self, request: Request) -> Response:
        """GET /api/v1/products/low-stock/?limit=N"""
        limit = request.query_params.get("limit")
        if limit is not None:
            if not limit.isdigit() or int(limit) == 0:
                return Response(
                    {"detail": "Query parameter 'limit' must be a positive integer."},
                    status=status.HTTP_400_BAD_REQUEST,
                )
            limit = int(limit)
        products = self._service.list_low_stock_products(limit=limit)
        return Response(ProductSerializer(products, many=True).data)

    @action(detail=False, methods=["get"])
    def search(self, request: Request) -> Response:
        """GET /api/v1/products/search/?q=term

        Published products whose name or SKU contains *term*.
        """
        term = request.query_params.get("q", "").strip()
        if not term:
            return Response(
                {"detail": "Query parameter 'q' is required."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        products = self._service.search_active_products(term)
        return Response(ProductSerializer(products, many=True).data)

    # ------------------------------------------------------------------
    # Create / Update
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/products/"""
        try:
            dto = CreateProductDTO(**_payload(request, CreateProductDTO))
        except (PydanticValidationError, ValueError) as exc:
            return _bad_request(exc)

        try:
            product = self._service.create_product(dto)
        except DuplicateSku as exc:
            return _conflict(exc)
        except CategoryNotFound as exc:
            return _not_found(str(exc))
        except InactiveCategory as exc:
            return _bad_request(exc)

        out = ProductSerializer(product)
        return Response(out.data, status=status.HTTP_201_CREATED)

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT/PATCH /api/v1/products/{pk}/"""
        try:
            dto = UpdateProductDTO(**_payload(request, UpdateProductDTO))
        except (PydanticValidationError, ValueError) as exc:
            return _bad_request(exc)

        try:
            product = self._service.update_product(pk, dto)
        except ProductNotFound:
            return _not_found()
        except CategoryNotFound as exc:
            return _not_found(str(exc))
        except InactiveCategory as exc:
            return _bad_request(exc)
        except InvalidStockOperation as exc:
            return _conflict(exc, reserved=exc.reserved, requested=exc.requested)
        except (IllegalOperation, ConcurrentModification) as exc:
            return _conflict(exc)

        return Response(ProductSerializer(product).data)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/products/{pk}/"""
        return self.update(request, pk)

    # ------------------------------------------------------------------
    # Publication
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def publish(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/products/{pk}/publish/"""
        return self._transition(self._service.publish_product, pk)

    @action(detail=True, methods=["post"])
    def unpublish(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/products/{pk}/unpublish/"""
        return self._transition(self._service.unpublish_product, pk)

    @action(detail=True, methods=["post"])
    def discontinue(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/products/{pk}/discontinue/"""
        return self._transition(self._service.discontinue_product, pk)

    @action(detail=False, methods=["post"], url_path="bulk-status")
    def bulk_status(self, request: Request) -> Response:
        """POST /api/v1/products/bulk-status/

        Body: ``{"product_ids": [...], "status": "ACTIVE"}``.  Returns 404
        when nothing was updated.
        """
        try:
            dto = BulkUpdateStatusDTO(
                product_ids=request.data.get("product_ids", []),
                status=request.data.get("status", ""),
            )
        except (PydanticValidationError, ValueError) as exc:
            return _bad_request(exc)

        updated = self._service.bulk_update_status(dto.product_ids, dto.status)
        if updated == 0:
            return _not_found("No products were updated.")
        return Response({"updated": updated, "status": dto.status})

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    @action(
        detail=True,
        methods=["post"],
        url_path="stock/reserve",
        url_name="stock-reserve",
    )
    def reserve_stock(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/products/{pk}/stock/reserve/  ``{"quantity": N}``"""
        return self._stock(request, self._service.reserve_stock, pk)

    @action(
        detail=True,
        methods=["post"],
        url_path="stock/release",
        url_name="stock-release",
    )
    def release_stock(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/products/{pk}/stock/release/  ``{"quantity": N}``"""
        return self._stock(request, self._service.release_stock, pk)

    @action(
        detail=True,
        methods=["post"],
        url_path="stock/confirm",
        url_name="stock-confirm",
    )
    def confirm_stock(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/products/{pk}/stock/confirm/  ``{"quantity": N}``"""
        return self._stock(request, self._service.confirm_stock, pk)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _transition(self, operation: Callable[[str], Product], pk: str | None) -> Response:
        try:
            product = operation(pk)
        except ProductNotFound:
            return _not_found()
        except InactiveCategory as exc:
            return _bad_request(exc)
        except (IllegalOperation, ConcurrentModification) as exc:
            return _conflict(exc)
        return Response(ProductSerializer(product).data)

    def _stock(
        self,
        request: Request,
        operation: Callable[[str, int], Product],
        pk: str | None,
    ) -> Response:
        quantity = request.data.get("quantity", request.query_params.get("quantity"))
        if quantity is None:
            return Response(
                {"detail": "Field 'quantity' is required."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            dto = StockQuantityDTO(quantity=quantity)
        except (PydanticValidationError, ValueError) as exc:
            return _bad_request(exc)

        try:
            product = operation(pk, dto.quantity)
        except ProductNotFound:
            return _not_found()
        except InvalidQuantity as exc:
            return _bad_request(exc)
        except InsufficientStock as exc:
            return _conflict(exc, available=exc.available, requested=exc.requested)
        except InvalidStockOperation as exc:
            return _conflict(exc, reserved=exc.reserved, requested=exc.requested)
        except (IllegalOperation, ConcurrentModification) as exc:
            return _conflict(exc)

        return Response(ProductSerializer(product).data)


def _payload(request: Request, dto_class) -> dict:
    """Request fields the DTO knows about; anything else is ignored."""
    return {
        key: request.data[key] for key in dto_class.model_fields if key in request.data
    }
