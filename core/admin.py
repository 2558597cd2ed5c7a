"""
Django Admin configuration for core models.
"""
from django.contrib import admin
from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['id', 'timestamp', 'user', 'operation', 'entity_type', 'entity_id']
    list_filter = ['operation', 'entity_type', 'timestamp']
    search_fields = ['entity_id', 'related_entity_id', 'user__username']
    ordering = ['-timestamp']
    readonly_fields = [
        'user', 'entity_type', 'entity_id', 'operation', 'details',
        'related_entity_id', 'related_entity_type', 'ip_address', 'user_agent', 'timestamp'
    ]
