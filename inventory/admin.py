"""
Django Admin configuration for inventory models.
"""
from django.contrib import admin
from .models import Product, StockAdjustment


class StockAdjustmentInline(admin.TabularInline):
    model = StockAdjustment
    extra = 0
    readonly_fields = ['direction', 'quantity', 'previous_stock', 'resulting_stock', 'performed_by', 'created_at']
    can_delete = False
    ordering = ['-created_at']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = [
        'id', 'name', 'space', 'price', 'current_stock',
        'minimum_quantity', 'maximum_quantity', 'is_low_stock', 'updated_at'
    ]
    list_filter = ['space', 'updated_at']
    search_fields = ['name', 'space__name']
    ordering = ['name']
    raw_id_fields = ['space']
    # Stock changes go through the ledger so they are recorded
    readonly_fields = ['current_stock', 'created_at', 'updated_at']
    inlines = [StockAdjustmentInline]

    def is_low_stock(self, obj):
        return obj.is_low_stock
    is_low_stock.boolean = True
    is_low_stock.short_description = 'Low Stock'


@admin.register(StockAdjustment)
class StockAdjustmentAdmin(admin.ModelAdmin):
    list_display = ['id', 'product', 'direction', 'quantity', 'resulting_stock', 'performed_by', 'created_at']
    list_filter = ['direction', 'created_at']
    search_fields = ['product__name']
    ordering = ['-created_at']
    raw_id_fields = ['product', 'performed_by']
