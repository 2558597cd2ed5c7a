"""
Space Registry - lifecycle of spaces.

Every function runs in its own transaction and returns the updated entity.
When ``owner`` is given, lookups are restricted to that owner's spaces and a
foreign space is reported exactly like a missing one.
"""
import logging
from typing import Dict, List

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count

from core.audit import record_action
from core.exceptions import NotFoundError, ValidationError
from core.models import AuditLog
from .models import Space

logger = logging.getLogger(__name__)


def clean_name(value, label: str) -> str:
    """Strip a name, rejecting missing or whitespace-only values."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required")
    return value.strip()


def max_spaces_per_owner() -> int:
    return getattr(settings, 'INVENTORY_MAX_SPACES_PER_OWNER', 10)


def get_space(space_id, owner=None, for_update: bool = False) -> Space:
    """
    Resolve a space identifier.

    Raises:
        NotFoundError: unknown id, malformed id, or space of another owner
    """
    queryset = Space.objects.select_related('owner')
    if owner is not None:
        queryset = queryset.filter(owner=owner)
    if for_update:
        queryset = queryset.select_for_update(of=('self',))
    try:
        return queryset.get(pk=space_id)
    except (Space.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFoundError(f"Space {space_id} not found")


def _name_taken(owner, name: str, exclude_id=None) -> bool:
    queryset = Space.objects.filter(owner=owner, name=name)
    if exclude_id is not None:
        queryset = queryset.exclude(pk=exclude_id)
    return queryset.exists()


def create_space(owner, name) -> Space:
    """
    Create a space for ``owner``.

    Raises:
        ValidationError: empty name, duplicate name, or space limit reached
    """
    name = clean_name(name, 'Space name')
    limit = max_spaces_per_owner()

    with transaction.atomic():
        if Space.objects.filter(owner=owner).count() >= limit:
            raise ValidationError(
                f"Maximum limit of {limit} spaces reached. "
                "Please delete some spaces to create new ones."
            )
        if _name_taken(owner, name):
            raise ValidationError(f"Space with name '{name}' already exists")

        try:
            with transaction.atomic():
                space = Space.objects.create(owner=owner, name=name)
        except IntegrityError:
            raise ValidationError(f"Space with name '{name}' already exists")

        record_action(
            owner, AuditLog.EntityType.SPACE, space.pk, AuditLog.Operation.CREATE,
            {'space_name': space.name}
        )

    logger.info(f"Created space '{space.name}' ({space.pk}) for owner {owner.pk}")
    return space


def rename_space(space_id, new_name, owner=None) -> Space:
    """
    Rename a space.

    Raises:
        NotFoundError: space does not resolve
        ValidationError: empty name or name used by another of the owner's spaces
    """
    new_name = clean_name(new_name, 'Space name')

    with transaction.atomic():
        space = get_space(space_id, owner=owner, for_update=True)
        old_name = space.name
        if old_name == new_name:
            return space

        if _name_taken(space.owner, new_name, exclude_id=space.pk):
            raise ValidationError(f"Space with name '{new_name}' already exists")

        space.name = new_name
        space.save(update_fields=['name', 'updated_at'])

        record_action(
            owner, AuditLog.EntityType.SPACE, space.pk, AuditLog.Operation.UPDATE,
            {'old_name': old_name, 'new_name': new_name}
        )

    logger.info(f"Renamed space {space.pk} from '{old_name}' to '{new_name}'")
    return space


def delete_space(space_id, owner=None) -> None:
    """
    Delete a space together with all of its products.

    The space and its products are removed in one transaction: either all of
    them disappear or none do.

    Raises:
        NotFoundError: space does not resolve
    """
    with transaction.atomic():
        space = get_space(space_id, owner=owner, for_update=True)
        space_pk, space_name = space.pk, space.name
        product_count = space.products.count()

        space.delete()

        record_action(
            owner, AuditLog.EntityType.SPACE, space_pk, AuditLog.Operation.DELETE,
            {'space_name': space_name, 'deleted_products': product_count}
        )

    logger.info(f"Deleted space '{space_name}' ({space_pk}) and {product_count} products")


def list_spaces(owner) -> List[Space]:
    """Spaces of ``owner``, newest first, annotated with ``product_count``."""
    return list(
        Space.objects.filter(owner=owner)
        .select_related('owner')
        .annotate(product_count=Count('products'))
        .order_by('-created_at', 'id')
    )


def space_creation_status(owner) -> Dict:
    limit = max_spaces_per_owner()
    current = Space.objects.filter(owner=owner).count()
    remaining = max(0, limit - current)
    return {
        'current_spaces': current,
        'max_spaces': limit,
        'remaining_slots': remaining,
        'can_create_more': remaining > 0,
    }
