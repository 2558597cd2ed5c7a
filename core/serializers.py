"""
Serializers for audit log endpoints.
"""
from rest_framework import serializers
from .models import AuditLog


class AuditLogSerializer(serializers.ModelSerializer):
    description = serializers.CharField(read_only=True)

    class Meta:
        model = AuditLog
        fields = [
            'id', 'entity_type', 'entity_id', 'operation', 'description', 'details',
            'related_entity_id', 'related_entity_type', 'ip_address', 'timestamp'
        ]
        read_only_fields = [
            'id', 'entity_type', 'entity_id', 'operation', 'details',
            'related_entity_id', 'related_entity_type', 'ip_address', 'timestamp'
        ]
