"""
Product Catalog - creation, metadata edits, deletion and listing of products.

Stock is never written here: ``current_stock`` is set once at creation and
afterwards changes only through ``inventory.ledger``.
"""
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import F

from core.audit import record_action
from core.exceptions import NotFoundError, ValidationError
from core.models import AuditLog
from spaces.services import clean_name, get_space
from .models import Product

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
MAX_PRICE = Decimal('10000000000')
# Largest value a PositiveIntegerField column holds on every backend
MAX_COUNT = 2147483647


def validate_price(value) -> Decimal:
    """Coerce a price to a two-place Decimal, rejecting negatives and non-numbers."""
    if isinstance(value, bool) or value is None:
        raise ValidationError("Product price must be a non-negative number")
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("Product price must be a non-negative number")
    if not price.is_finite() or price < 0:
        raise ValidationError("Product price must be non-negative")
    if price >= MAX_PRICE:
        raise ValidationError("Product price is too large")
    return price.quantize(CENT, rounding=ROUND_HALF_UP)


def validate_count(value, label: str) -> int:
    """Accept a non-negative integer (booleans are rejected)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{label} must be an integer")
    if value < 0:
        raise ValidationError(f"{label} must be non-negative")
    if value > MAX_COUNT:
        raise ValidationError(f"{label} must not exceed {MAX_COUNT}")
    return value


def validate_thresholds(minimum_quantity: int, maximum_quantity: int) -> None:
    if minimum_quantity > maximum_quantity:
        raise ValidationError(
            f"Minimum quantity ({minimum_quantity}) cannot exceed "
            f"maximum quantity ({maximum_quantity})"
        )


def get_product(product_id, owner=None, space_id=None, for_update: bool = False) -> Product:
    """
    Resolve a product identifier, optionally scoped to an owner and a space.

    Raises:
        NotFoundError: unknown or malformed id, or outside the given scope
    """
    queryset = Product.objects.select_related('space', 'space__owner')
    if owner is not None:
        queryset = queryset.filter(space__owner=owner)
    if for_update:
        queryset = queryset.select_for_update(of=('self',))
    try:
        if space_id is not None:
            queryset = queryset.filter(space_id=space_id)
        return queryset.get(pk=product_id)
    except (Product.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFoundError(f"Product {product_id} not found")


def create_product(space_id, name, price, current_stock, minimum_quantity,
                   maximum_quantity, owner=None) -> Product:
    """
    Create a product inside a space.

    Raises:
        NotFoundError: space does not resolve
        ValidationError: empty name, negative price/stock/minimum, or
            minimum_quantity > maximum_quantity
    """
    name = clean_name(name, 'Product name')
    price = validate_price(price)
    current_stock = validate_count(current_stock, 'Current stock')
    minimum_quantity = validate_count(minimum_quantity, 'Minimum quantity')
    maximum_quantity = validate_count(maximum_quantity, 'Maximum quantity')
    validate_thresholds(minimum_quantity, maximum_quantity)

    with transaction.atomic():
        space = get_space(space_id, owner=owner)
        product = Product.objects.create(
            space=space,
            name=name,
            price=price,
            current_stock=current_stock,
            minimum_quantity=minimum_quantity,
            maximum_quantity=maximum_quantity,
        )
        record_action(
            owner, AuditLog.EntityType.PRODUCT, product.pk, AuditLog.Operation.CREATE,
            {
                'product_name': product.name,
                'space_name': space.name,
                'price': str(price),
                'initial_stock': current_stock,
                'minimum_quantity': minimum_quantity,
                'maximum_quantity': maximum_quantity,
            },
            related_entity_id=space.pk,
            related_entity_type=AuditLog.EntityType.SPACE,
        )

    logger.info(f"Created product '{product.name}' ({product.pk}) in space '{space.name}'")
    return product


def update_product(product_id, name=None, price=None, minimum_quantity=None,
                   maximum_quantity=None, owner=None, space_id=None) -> Product:
    """
    Partially update product metadata.

    Omitted (None) fields keep their value; the merged result must satisfy the
    same rules as creation. Stock cannot be changed through this path.
    """
    updates = {}
    if name is not None:
        updates['name'] = clean_name(name, 'Product name')
    if price is not None:
        updates['price'] = validate_price(price)
    if minimum_quantity is not None:
        updates['minimum_quantity'] = validate_count(minimum_quantity, 'Minimum quantity')
    if maximum_quantity is not None:
        updates['maximum_quantity'] = validate_count(maximum_quantity, 'Maximum quantity')

    with transaction.atomic():
        product = get_product(product_id, owner=owner, space_id=space_id, for_update=True)

        validate_thresholds(
            updates.get('minimum_quantity', product.minimum_quantity),
            updates.get('maximum_quantity', product.maximum_quantity),
        )

        changes = {}
        for field, value in updates.items():
            old = getattr(product, field)
            if old != value:
                changes[field] = {'old': str(old), 'new': str(value)}
                setattr(product, field, value)

        if not changes:
            return product

        # current_stock is deliberately absent from update_fields
        product.save(update_fields=list(changes) + ['updated_at'])

        record_action(
            owner, AuditLog.EntityType.PRODUCT, product.pk, AuditLog.Operation.UPDATE,
            {
                'product_name': product.name,
                'space_name': product.space.name,
                'changes': changes,
            },
            related_entity_id=product.space_id,
            related_entity_type=AuditLog.EntityType.SPACE,
        )

    logger.info(f"Updated product {product.pk}: {', '.join(changes)}")
    return product


def delete_product(product_id, owner=None, space_id=None) -> None:
    """
    Raises:
        NotFoundError: product does not resolve
    """
    with transaction.atomic():
        product = get_product(product_id, owner=owner, space_id=space_id, for_update=True)
        details = {
            'product_name': product.name,
            'space_name': product.space.name,
            'final_stock': product.current_stock,
            'product_value': str(product.total_value),
        }
        product_pk, space_pk = product.pk, product.space_id
        product.delete()

        record_action(
            owner, AuditLog.EntityType.PRODUCT, product_pk, AuditLog.Operation.DELETE,
            details,
            related_entity_id=space_pk,
            related_entity_type=AuditLog.EntityType.SPACE,
        )

    logger.info(f"Deleted product '{details['product_name']}' ({product_pk})")


def list_products(space_id, name_filter: Optional[str] = None, owner=None) -> List[Product]:
    """
    Products of a space ordered by name.

    A non-blank ``name_filter`` keeps products whose name contains it,
    ignoring case.
    """
    space = get_space(space_id, owner=owner)
    queryset = Product.objects.filter(space=space).select_related('space')
    if name_filter and name_filter.strip():
        queryset = queryset.filter(name__icontains=name_filter.strip())
    return list(queryset.order_by('name', 'id'))


def low_stock_products(space_id, owner=None) -> List[Product]:
    space = get_space(space_id, owner=owner)
    return list(
        Product.objects.filter(space=space, current_stock__lte=F('minimum_quantity'))
        .select_related('space')
        .order_by('current_stock', 'name')
    )


def owner_products(owner):
    """Queryset of every product across the owner's spaces."""
    return Product.objects.filter(space__owner=owner).select_related('space')

