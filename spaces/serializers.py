"""
Serializers for space endpoints.
"""
from rest_framework import serializers
from .models import Space


class SpaceSerializer(serializers.ModelSerializer):
    """Read representation of a space with its owner and product count."""
    owner_id = serializers.IntegerField(source='owner.pk', read_only=True)
    owner_name = serializers.CharField(read_only=True)
    product_count = serializers.SerializerMethodField()

    class Meta:
        model = Space
        fields = ['id', 'name', 'owner_id', 'owner_name', 'product_count', 'created_at', 'updated_at']
        read_only_fields = ['id', 'name', 'created_at', 'updated_at']

    def get_product_count(self, obj):
        # Use the list annotation when present
        annotated = getattr(obj, 'product_count', None)
        if annotated is not None:
            return annotated
        return obj.products.count()


class SpaceWriteSerializer(serializers.Serializer):
    """Request body for creating or renaming a space."""
    name = serializers.CharField(max_length=100, allow_blank=True, trim_whitespace=False)
