"""
Serializers for product and stock endpoints.
Request serializers check shape and types; range rules live in the services.
"""
from decimal import Decimal

from rest_framework import serializers
from .models import Product, StockAdjustment
from .services import MAX_COUNT


class ProductSerializer(serializers.ModelSerializer):
    """Read representation of a product with derived stock flags."""
    space_id = serializers.UUIDField(read_only=True)
    space_name = serializers.CharField(source='space.name', read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)
    is_out_of_stock = serializers.BooleanField(read_only=True)
    total_value = serializers.DecimalField(max_digits=20, decimal_places=2, read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'space_id', 'space_name', 'name', 'price',
            'current_stock', 'minimum_quantity', 'maximum_quantity',
            'is_low_stock', 'is_out_of_stock', 'total_value',
            'created_at', 'updated_at'
        ]
        read_only_fields = [
            'id', 'name', 'price', 'current_stock', 'minimum_quantity',
            'maximum_quantity', 'created_at', 'updated_at'
        ]


class ProductCreateSerializer(serializers.Serializer):
    """
    Request format:
    {
        "name": "Widget",
        "price": "9.99",
        "current_stock": 20,
        "minimum_quantity": 5,
        "maximum_quantity": 100
    }
    """
    name = serializers.CharField(max_length=200, allow_blank=True, trim_whitespace=False)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'))
    current_stock = serializers.IntegerField(min_value=0, max_value=MAX_COUNT, default=0)
    minimum_quantity = serializers.IntegerField(min_value=0, max_value=MAX_COUNT, default=0)
    maximum_quantity = serializers.IntegerField(min_value=0, max_value=MAX_COUNT, default=0)


class ProductUpdateSerializer(serializers.Serializer):
    """Partial metadata update; ``current_stock`` is rejected, use the stock endpoints."""
    name = serializers.CharField(max_length=200, required=False, allow_blank=True, trim_whitespace=False)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    minimum_quantity = serializers.IntegerField(min_value=0, max_value=MAX_COUNT, required=False)
    maximum_quantity = serializers.IntegerField(min_value=0, max_value=MAX_COUNT, required=False)

    def validate(self, attrs):
        if 'current_stock' in self.initial_data:
            raise serializers.ValidationError(
                "current_stock cannot be edited directly; use the stock add/remove endpoints"
            )
        return attrs


class StockOperationSerializer(serializers.Serializer):
    """Request body for stock add/remove: {"quantity": 5}"""
    quantity = serializers.IntegerField(min_value=1, max_value=MAX_COUNT)


class StockAdjustmentSerializer(serializers.ModelSerializer):
    product_id = serializers.UUIDField(read_only=True)
    performed_by = serializers.CharField(source='performed_by.username', read_only=True, default=None)

    class Meta:
        model = StockAdjustment
        fields = [
            'id', 'product_id', 'direction', 'quantity',
            'previous_stock', 'resulting_stock', 'performed_by', 'created_at'
        ]
        read_only_fields = ['id', 'direction', 'quantity', 'previous_stock', 'resulting_stock', 'created_at']
