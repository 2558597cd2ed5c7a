"""
Django Admin configuration for space models.
"""
from django.contrib import admin
from .models import Space


@admin.register(Space)
class SpaceAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'owner', 'product_count', 'created_at']
    list_filter = ['created_at']
    search_fields = ['name', 'owner__username']
    ordering = ['-created_at']
    raw_id_fields = ['owner']

    def product_count(self, obj):
        return obj.products.count()
    product_count.short_description = 'Products'
