"""
Celery tasks for inventory notifications.

Tasks:
    - notify_low_stock: Email the space owner when a product drops into low stock
"""
import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def notify_low_stock(self, product_id: str):
    """
    Async task queued by the stock ledger after a removal leaves a product at
    or below its minimum quantity.

    Args:
        product_id: ID of the product that crossed the threshold

    Returns:
        Dict with notification outcome
    """
    from inventory.models import Product

    try:
        product = Product.objects.select_related('space__owner').get(pk=product_id)
    except Product.DoesNotExist:
        logger.error(f"Product {product_id} not found for low stock notification")
        return {'status': 'error', 'message': f'Product {product_id} not found'}

    if not product.is_low_stock:
        logger.info(f"Product {product_id} was restocked before notification, skipping")
        return {'status': 'skipped', 'message': f'Product {product_id} is no longer low on stock'}

    owner = product.space.owner
    if not owner.email:
        logger.warning(f"Owner {owner.pk} has no email address, low stock alert not sent")
        return {'status': 'skipped', 'message': 'Owner has no email address'}

    subject = f"Low stock: {product.name} ({product.space.name})"
    body = (
        f"Hello {product.space.owner_name},\n\n"
        f"'{product.name}' in space '{product.space.name}' is running low.\n"
        f"Current stock: {product.current_stock}\n"
        f"Minimum quantity: {product.minimum_quantity}\n"
        f"Maximum quantity: {product.maximum_quantity}\n\n"
        f"Consider restocking soon."
    )
    send_mail(
        subject,
        body,
        settings.LOW_STOCK_ALERT_FROM_EMAIL,
        [owner.email],
        fail_silently=False,
    )

    logger.info(f"Low stock alert for '{product.name}' sent to {owner.email}")
    return {
        'status': 'success',
        'product_id': str(product.pk),
        'message': f'Low stock alert sent for product {product_id}'
    }
