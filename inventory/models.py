"""
Inventory Models - Products tracked inside spaces and their stock history.

Models:
    - Product: Item belonging to exactly one space, with stock thresholds
    - StockAdjustment: Append-only record of every add/remove applied by the ledger
"""
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q

from spaces.models import Space


class Product(models.Model):
    """
    Product entity scoped to a single space.

    ``current_stock`` is written only by the stock ledger; metadata edits go
    through the catalog service and never touch it.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    space = models.ForeignKey(
        Space,
        on_delete=models.CASCADE,
        related_name='products',
        help_text="Space holding this product"
    )
    name = models.CharField(
        max_length=200,
        db_index=True,
        help_text="Product name for display and search"
    )
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Unit price (non-negative)"
    )
    current_stock = models.PositiveIntegerField(
        default=0,
        help_text="Units currently in stock"
    )
    minimum_quantity = models.PositiveIntegerField(
        default=0,
        help_text="Low stock threshold"
    )
    maximum_quantity = models.PositiveIntegerField(
        default=0,
        help_text="Advisory reorder ceiling (not enforced on stock additions)"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Product'
        verbose_name_plural = 'Products'
        ordering = ['name', 'id']
        constraints = [
            models.CheckConstraint(
                condition=Q(price__gte=0),
                name='product_price_non_negative'
            ),
            models.CheckConstraint(
                condition=Q(minimum_quantity__lte=F('maximum_quantity')),
                name='product_minimum_not_above_maximum'
            ),
        ]
        indexes = [
            models.Index(fields=['space', 'name'], name='product_space_name_idx'),
            models.Index(fields=['space', 'current_stock'], name='product_space_stock_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.current_stock} in {self.space.name})"

    @property
    def is_low_stock(self) -> bool:
        """Stock at or below the minimum quantity."""
        return self.current_stock <= self.minimum_quantity

    @property
    def is_out_of_stock(self) -> bool:
        return self.current_stock == 0

    @property
    def total_value(self) -> Decimal:
        return self.price * self.current_stock


class StockAdjustment(models.Model):
    """
    One add or remove applied to a product's stock, with the stock level it
    produced.
    """

    class Direction(models.TextChoices):
        ADD = 'ADD', 'Add'
        REMOVE = 'REMOVE', 'Remove'

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name='adjustments',
        help_text="Adjusted product"
    )
    direction = models.CharField(max_length=10, choices=Direction.choices)
    quantity = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Units added or removed"
    )
    previous_stock = models.PositiveIntegerField()
    resulting_stock = models.PositiveIntegerField()
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='stock_adjustments'
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = 'Stock Adjustment'
        verbose_name_plural = 'Stock Adjustments'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['product', 'created_at'], name='adjustment_product_time_idx'),
        ]

    def __str__(self):
        sign = '+' if self.direction == self.Direction.ADD else '-'
        return f"{self.product_id}: {sign}{self.quantity} -> {self.resulting_stock}"
