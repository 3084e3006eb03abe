"""HTTP views for products.

Thin DRF views: validate with pydantic, delegate to ``ProductRepository``
and render the shared envelope.
"""

from rest_framework import status
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from apps.common.errors import ServiceError
from apps.common.responses import error_response, page_params, paginated, success
from apps.common.schemas import validate_payload

from .repository import ProductRepository
from .schemas import CreateProductDTO, ProductReadDTO, UpdateProductDTO


def _dump(product) -> dict:
    return ProductReadDTO.model_validate(product, from_attributes=True).model_dump(mode="json")


class ProductsCollectionView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "products"

    def get(self, request):
        page, limit = page_params(request.query_params)
        products, total = ProductRepository().list(page, limit)
        return paginated(
            [_dump(p) for p in products],
            "Products retrieved successfully",
            page,
            limit,
            total,
        )

    def post(self, request):
        try:
            dto = validate_payload(CreateProductDTO, request.data)
            product = ProductRepository().create(dto.name, dto.price, dto.stock)
        except ServiceError as e:
            return error_response(e)
        return success(_dump(product), "Product created successfully", status=status.HTTP_201_CREATED)


class ProductDetailView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "products"

    def get(self, request, product_id: int):
        try:
            product = ProductRepository().get(product_id)
        except ServiceError as e:
            return error_response(e)
        return success(_dump(product), "Product retrieved successfully")

    def put(self, request, product_id: int):
        try:
            dto = validate_payload(UpdateProductDTO, request.data)
            product = ProductRepository().update(product_id, dto.name, dto.price, dto.stock)
        except ServiceError as e:
            return error_response(e)
        return success(_dump(product), "Product updated successfully")

    patch = put

    def delete(self, request, product_id: int):
        try:
            ProductRepository().delete(product_id)
        except ServiceError as e:
            return error_response(e)
        return success(None, "Product deleted successfully")
