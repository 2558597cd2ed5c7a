"""
Core Models - Cross-cutting records shared by the domain apps.

Models:
    - AuditLog: One row per successful mutation of a space or product
"""
from django.conf import settings
from django.db import models


class AuditLog(models.Model):
    """
    Audit trail entry written in the same transaction as the mutation it records.
    """

    class EntityType(models.TextChoices):
        SPACE = 'SPACE', 'Space'
        PRODUCT = 'PRODUCT', 'Product'

    class Operation(models.TextChoices):
        CREATE = 'CREATE', 'Create'
        UPDATE = 'UPDATE', 'Update'
        DELETE = 'DELETE', 'Delete'
        STOCK_ADD = 'STOCK_ADD', 'Stock Added'
        STOCK_REMOVE = 'STOCK_REMOVE', 'Stock Removed'

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
        help_text="User who performed the operation"
    )
    entity_type = models.CharField(
        max_length=20,
        choices=EntityType.choices,
        db_index=True
    )
    entity_id = models.CharField(
        max_length=64,
        db_index=True,
        help_text="Identifier of the affected space or product"
    )
    operation = models.CharField(
        max_length=20,
        choices=Operation.choices,
        db_index=True
    )
    details = models.JSONField(default=dict, blank=True)
    related_entity_id = models.CharField(
        max_length=64,
        blank=True,
        default='',
        help_text="Parent entity (the space for product operations)"
    )
    related_entity_type = models.CharField(max_length=20, blank=True, default='')
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=500, blank=True, default='')
    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = 'Audit Log'
        verbose_name_plural = 'Audit Logs'
        ordering = ['-timestamp', '-id']
        indexes = [
            models.Index(fields=['user', 'timestamp'], name='auditlog_user_time_idx'),
            models.Index(fields=['entity_type', 'entity_id'], name='auditlog_entity_idx'),
        ]

    def __str__(self):
        return f"{self.operation} {self.entity_type} {self.entity_id}"

    @property
    def description(self) -> str:
        """Human readable summary used by the recent activity feed."""
        d = self.details or {}
        key = (self.operation, self.entity_type)
        if key == (self.Operation.CREATE, self.EntityType.SPACE):
            return f"Created space: {d.get('space_name')}"
        if key == (self.Operation.UPDATE, self.EntityType.SPACE):
            return f"Renamed space from '{d.get('old_name')}' to '{d.get('new_name')}'"
        if key == (self.Operation.DELETE, self.EntityType.SPACE):
            return f"Deleted space: {d.get('space_name')}"
        if key == (self.Operation.CREATE, self.EntityType.PRODUCT):
            return f"Created product '{d.get('product_name')}' in space '{d.get('space_name')}'"
        if key == (self.Operation.UPDATE, self.EntityType.PRODUCT):
            return f"Updated product: {d.get('product_name')}"
        if key == (self.Operation.DELETE, self.EntityType.PRODUCT):
            return f"Deleted product '{d.get('product_name')}' from space '{d.get('space_name')}'"
        if self.operation == self.Operation.STOCK_ADD:
            return f"Added {d.get('quantity')} units to '{d.get('product_name')}'"
        if self.operation == self.Operation.STOCK_REMOVE:
            return f"Removed {d.get('quantity')} units from '{d.get('product_name')}'"
        return f"{self.operation} {self.entity_type}"
