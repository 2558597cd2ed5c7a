"""
Audit logging helpers.

Services call ``record_action`` inside their own transaction so that the
audit row and the mutation commit (or roll back) together. Client details
(IP, user agent) come from the request bound by ``RequestContextMiddleware``.
"""
import logging
from contextvars import ContextVar
from datetime import timedelta
from typing import Dict

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_ipv46_address
from django.db.models import Count
from django.db.models.functions import TruncDate
from django.utils import timezone

from .exceptions import ValidationError
from .models import AuditLog

logger = logging.getLogger(__name__)

_current_request = ContextVar('current_request', default=None)

MAX_TREND_DAYS = 3650


def get_client_ip(request):
    """Extract client IP address from request; None when absent or not an IP."""
    if request is None:
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    if not ip:
        return None
    try:
        validate_ipv46_address(ip)
    except DjangoValidationError:
        logger.warning(f"Ignoring malformed client address: {ip!r}")
        return None
    return ip


class RequestContextMiddleware:
    """Bind the current request so audit entries can capture IP and user agent."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        token = _current_request.set(request)
        try:
            return self.get_response(request)
        finally:
            _current_request.reset(token)


def record_action(user, entity_type, entity_id, operation, details=None,
                  related_entity_id=None, related_entity_type=None) -> AuditLog:
    """
    Create an audit log entry.

    Args:
        user: Acting user, or None for system operations
        entity_type: AuditLog.EntityType value
        entity_id: Identifier of the affected object
        operation: AuditLog.Operation value
        details: JSON-serialisable dict describing the change
        related_entity_id: Parent object identifier (space for products)
        related_entity_type: Parent object type
    """
    request = _current_request.get()
    user_agent = request.META.get('HTTP_USER_AGENT', '') if request is not None else ''

    entry = AuditLog.objects.create(
        user=user if user is not None and user.is_authenticated else None,
        entity_type=entity_type,
        entity_id=str(entity_id),
        operation=operation,
        details=details or {},
        related_entity_id=str(related_entity_id) if related_entity_id else '',
        related_entity_type=related_entity_type or '',
        ip_address=get_client_ip(request),
        user_agent=user_agent[:500],
    )
    logger.debug(f"Audit: {operation} {entity_type} {entity_id}")
    return entry


def validate_days(days) -> int:
    """
    Raises:
        ValidationError: days is not an integer between 1 and MAX_TREND_DAYS
    """
    if isinstance(days, bool) or not isinstance(days, int) or not 1 <= days <= MAX_TREND_DAYS:
        raise ValidationError(f"days must be an integer between 1 and {MAX_TREND_DAYS}")
    return days


def activity_trends(owner, days: int = 30) -> Dict:
    """
    Audit activity of ``owner`` over the last ``days`` days.

    Returns daily counts keyed by ISO date (oldest first), counts per
    operation, the total and the period.
    """
    validate_days(days)
    since = timezone.now() - timedelta(days=days)
    queryset = AuditLog.objects.filter(user=owner, timestamp__gte=since)

    daily = (
        queryset.annotate(day=TruncDate('timestamp'))
        .values('day')
        .annotate(total=Count('id'))
        .order_by('day')
    )
    by_operation = dict(
        queryset.order_by().values_list('operation').annotate(total=Count('id'))
    )
    return {
        'daily_activity': {row['day'].isoformat(): row['total'] for row in daily},
        'operation_breakdown': by_operation,
        'total_activities': sum(by_operation.values()),
        'period': f"{days} days",
    }
