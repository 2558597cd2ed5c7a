"""
Product and stock API Views.

Implements:
- CRUD for products nested under a space
- Case-insensitive name filtering with rate limiting
- Stock add/remove through the ledger, and adjustment history
"""
import logging

from rest_framework import status
from rest_framework.views import APIView

from core.rate_limiting import rate_limit
from core.responses import api_response
from . import ledger, services
from .serializers import (
    ProductSerializer,
    ProductCreateSerializer,
    ProductUpdateSerializer,
    StockOperationSerializer,
    StockAdjustmentSerializer,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Product Views
# =============================================================================

class ProductListCreateView(APIView):
    """
    GET: List products in a space
    POST: Create a product in a space

    Query Parameters (GET):
        - name: Keep products whose name contains this text (case-insensitive)
    """

    @rate_limit(max_requests=60, window_seconds=60)
    def get(self, request, space_id):
        products = services.list_products(
            space_id,
            name_filter=request.query_params.get('name'),
            owner=request.user
        )
        return api_response(ProductSerializer(products, many=True).data)

    def post(self, request, space_id):
        serializer = ProductCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        product = services.create_product(
            space_id,
            data['name'],
            data['price'],
            data['current_stock'],
            data['minimum_quantity'],
            data['maximum_quantity'],
            owner=request.user
        )
        return api_response(
            ProductSerializer(product).data,
            message='Product created successfully',
            status=status.HTTP_201_CREATED
        )


class LowStockProductListView(APIView):
    """
    GET: Products of a space at or below their minimum quantity.
    """

    def get(self, request, space_id):
        products = services.low_stock_products(space_id, owner=request.user)
        return api_response(ProductSerializer(products, many=True).data)


class ProductDetailView(APIView):
    """
    GET: Retrieve a product
    PUT/PATCH: Update name, price, minimum or maximum quantity
    DELETE: Delete a product
    """

    def get(self, request, space_id, product_id):
        product = services.get_product(product_id, owner=request.user, space_id=space_id)
        return api_response(ProductSerializer(product).data)

    def put(self, request, space_id, product_id):
        serializer = ProductUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        product = services.update_product(
            product_id,
            owner=request.user,
            space_id=space_id,
            **serializer.validated_data
        )
        return api_response(ProductSerializer(product).data, message='Product updated successfully')

    patch = put

    def delete(self, request, space_id, product_id):
        services.delete_product(product_id, owner=request.user, space_id=space_id)
        return api_response(message='Product deleted successfully')


# =============================================================================
# Stock Views
# =============================================================================

class StockAddView(APIView):
    """
    POST: Add stock to a product.

    Request Body:
    {
        "quantity": 5
    }
    """

    def post(self, request, space_id, product_id):
        serializer = StockOperationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        quantity = serializer.validated_data['quantity']

        product = ledger.add_stock(product_id, quantity, owner=request.user, space_id=space_id)
        return api_response(
            ProductSerializer(product).data,
            message=f'Added {quantity} units to stock'
        )


class StockRemoveView(APIView):
    """
    POST: Remove stock from a product.

    Returns:
        - 200: Stock removed
        - 400: Invalid quantity
        - 404: Product not found
        - 409: Quantity exceeds current stock
    """

    def post(self, request, space_id, product_id):
        serializer = StockOperationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        quantity = serializer.validated_data['quantity']

        product = ledger.remove_stock(product_id, quantity, owner=request.user, space_id=space_id)
        return api_response(
            ProductSerializer(product).data,
            message=f'Removed {quantity} units from stock'
        )


class StockHistoryView(APIView):
    """
    GET: Stock adjustments of a product, newest first.

    Query Parameters:
        - limit: Maximum number of entries (default 50)
    """

    def get(self, request, space_id, product_id):
        try:
            limit = int(request.query_params.get('limit', 50))
        except ValueError:
            limit = 50
        limit = max(1, min(limit, 500))

        adjustments = ledger.stock_history(
            product_id, owner=request.user, space_id=space_id, limit=limit
        )
        return api_response(StockAdjustmentSerializer(adjustments, many=True).data)
