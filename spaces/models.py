"""
Space Models - Named containers that group an owner's products.

Models:
    - Space: A warehouse, store or any other location holding products
      (name unique per owner)
"""
import uuid

from django.conf import settings
from django.db import models


class Space(models.Model):
    """
    Space entity owned by exactly one user.

    Deleting a space deletes every product in it (Product.space uses CASCADE).
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Space name, unique per owner"
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='spaces',
        help_text="User who owns this space"
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Space'
        verbose_name_plural = 'Spaces'
        ordering = ['-created_at', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['owner', 'name'],
                name='unique_owner_space_name'
            )
        ]

    def __str__(self):
        return self.name

    @property
    def owner_name(self) -> str:
        return self.owner.get_full_name() or self.owner.get_username()
