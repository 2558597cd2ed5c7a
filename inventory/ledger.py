"""
Stock Ledger - the only writer of ``Product.current_stock``.

Each adjustment runs in one transaction:
1. Lock the product row with select_for_update()
2. Validate the requested quantity against the locked stock
3. Apply the delta with a conditional F() update (no read-modify-write in Python)
4. Record a StockAdjustment and an audit entry

Concurrent adjustments to the same product are therefore serialized and can
never lose an update, even on backends without row locks.
"""
import logging
from typing import List, Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from core.audit import record_action
from core.exceptions import InsufficientStockError, ValidationError
from core.models import AuditLog
from .models import Product, StockAdjustment
from .services import MAX_COUNT, get_product

logger = logging.getLogger(__name__)


def validate_quantity(quantity) -> int:
    """
    Raises:
        ValidationError: quantity is not a positive integer
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("Quantity must be a positive integer")
    if quantity > MAX_COUNT:
        raise ValidationError(f"Quantity must not exceed {MAX_COUNT}")
    return quantity


def _record_adjustment(product: Product, direction: str, quantity: int, owner) -> StockAdjustment:
    resulting = product.current_stock
    previous = resulting + quantity if direction == StockAdjustment.Direction.REMOVE else resulting - quantity

    adjustment = StockAdjustment.objects.create(
        product=product,
        direction=direction,
        quantity=quantity,
        previous_stock=previous,
        resulting_stock=resulting,
        performed_by=owner if owner is not None and owner.is_authenticated else None,
    )

    operation = (
        AuditLog.Operation.STOCK_ADD
        if direction == StockAdjustment.Direction.ADD
        else AuditLog.Operation.STOCK_REMOVE
    )
    record_action(
        owner, AuditLog.EntityType.PRODUCT, product.pk, operation,
        {
            'product_name': product.name,
            'space_name': product.space.name,
            'old_stock': previous,
            'new_stock': resulting,
            'quantity': quantity,
        },
        related_entity_id=product.space_id,
        related_entity_type=AuditLog.EntityType.SPACE,
    )
    return adjustment


def add_stock(product_id, quantity, owner=None, space_id=None) -> Product:
    """
    Add ``quantity`` units to a product's stock.

    ``maximum_quantity`` is advisory and is not enforced here.

    Raises:
        ValidationError: quantity is not a positive integer, or the new stock
            would not fit the column
        NotFoundError: product does not resolve
    """
    validate_quantity(quantity)

    with transaction.atomic():
        product = get_product(product_id, owner=owner, space_id=space_id, for_update=True)
        if product.current_stock + quantity > MAX_COUNT:
            raise ValidationError(
                f"Resulting stock would exceed {MAX_COUNT} units. Current: {product.current_stock}"
            )

        Product.objects.filter(pk=product.pk).update(
            current_stock=F('current_stock') + quantity,
            updated_at=timezone.now(),
        )
        product.refresh_from_db(fields=['current_stock', 'updated_at'])

        _record_adjustment(product, StockAdjustment.Direction.ADD, quantity, owner)

    logger.info(f"Added {quantity} units to '{product.name}' ({product.pk}), stock now {product.current_stock}")
    return product


def remove_stock(product_id, quantity, owner=None, space_id=None) -> Product:
    """
    Remove ``quantity`` units from a product's stock.

    Raises:
        ValidationError: quantity is not a positive integer
        NotFoundError: product does not resolve
        InsufficientStockError: quantity exceeds current stock (stock unchanged)
    """
    validate_quantity(quantity)

    with transaction.atomic():
        product = get_product(product_id, owner=owner, space_id=space_id, for_update=True)
        if quantity > product.current_stock:
            raise InsufficientStockError(product.pk, quantity, product.current_stock)

        updated = Product.objects.filter(pk=product.pk, current_stock__gte=quantity).update(
            current_stock=F('current_stock') - quantity,
            updated_at=timezone.now(),
        )
        product.refresh_from_db(fields=['current_stock', 'updated_at'])
        if not updated:
            raise InsufficientStockError(product.pk, quantity, product.current_stock)

        _record_adjustment(product, StockAdjustment.Direction.REMOVE, quantity, owner)

        previous = product.current_stock + quantity
        if previous > product.minimum_quantity and product.is_low_stock:
            product_pk = str(product.pk)
            transaction.on_commit(lambda: queue_low_stock_notification(product_pk))

    logger.info(f"Removed {quantity} units from '{product.name}' ({product.pk}), stock now {product.current_stock}")
    return product


def queue_low_stock_notification(product_id: str) -> None:
    """Queue the owner notification for a product that just crossed into low stock."""
    try:
        from .tasks import notify_low_stock
        notify_low_stock.delay(product_id)
        logger.info(f"Triggered low stock notification for product {product_id}")
    except Exception as e:
        # Don't fail the adjustment if task queuing fails
        logger.error(f"Failed to queue low stock notification: {e}")


def stock_history(product_id, owner=None, space_id=None, limit: Optional[int] = None) -> List[StockAdjustment]:
    """Adjustments of a product, newest first."""
    product = get_product(product_id, owner=owner, space_id=space_id)
    queryset = product.adjustments.select_related('performed_by').order_by('-created_at', '-id')
    if limit is not None:
        queryset = queryset[:limit]
    return list(queryset)
