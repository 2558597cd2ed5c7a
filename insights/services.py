"""
Insights Aggregator - read-only dashboard summaries.

Every function recomputes from the current database state; nothing is cached
or written. Monetary values are Decimals quantized to cents, stock averages
are rounded to two places, and empty inputs yield zeros rather than errors.
"""
import logging
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List

from django.conf import settings
from django.db.models import Avg, Count, DecimalField, ExpressionWrapper, F, Max, Min, Q, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone

from core.audit import MAX_TREND_DAYS, validate_days
from core.exceptions import ValidationError
from core.models import AuditLog
from inventory.models import Product, StockAdjustment
from inventory.services import owner_products
from spaces.models import Space
from spaces.services import max_spaces_per_owner

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
ZERO = Decimal('0.00')

SEVERITY_CRITICAL = 'critical'
SEVERITY_HIGH = 'high'
SEVERITY_MEDIUM = 'medium'

TOP_PRODUCT_SORTS = ('value', 'stock', 'price')
MAX_TOP_PRODUCTS = 100
MAX_ACTIVITY_HOURS = MAX_TREND_DAYS * 24

STOCK_VALUE = ExpressionWrapper(
    F('price') * F('current_stock'),
    output_field=DecimalField(max_digits=20, decimal_places=2)
)


def money(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _round2(value) -> float:
    return round(float(value or 0), 2)


def stock_severity(current_stock: int, minimum_quantity: int) -> str:
    """
    Severity band of a low-stock product.

    critical: nothing left; high: at or below INVENTORY_HIGH_SEVERITY_RATIO of
    the minimum; medium: any other low-stock level.
    """
    if current_stock == 0:
        return SEVERITY_CRITICAL
    ratio = getattr(settings, 'INVENTORY_HIGH_SEVERITY_RATIO', 0.5)
    if current_stock <= minimum_quantity * ratio:
        return SEVERITY_HIGH
    return SEVERITY_MEDIUM


def _low_stock(queryset):
    return queryset.filter(current_stock__lte=F('minimum_quantity'))


def stock_status(owner) -> Dict[str, int]:
    counts = owner_products(owner).aggregate(
        out_of_stock=Count('id', filter=Q(current_stock=0)),
        low_stock=Count('id', filter=Q(current_stock__gt=0, current_stock__lte=F('minimum_quantity'))),
        total=Count('id'),
    )
    return {
        'in_stock': counts['total'] - counts['out_of_stock'] - counts['low_stock'],
        'low_stock': counts['low_stock'],
        'out_of_stock': counts['out_of_stock'],
    }


def overview(owner) -> Dict:
    """Headline numbers for the dashboard."""
    total_spaces = Space.objects.filter(owner=owner).count()
    products = owner_products(owner)
    totals = products.aggregate(
        total_products=Count('id'),
        total_value=Sum(STOCK_VALUE),
    )
    low_stock_count = _low_stock(products).count()
    limit = max_spaces_per_owner()

    return {
        'total_spaces': total_spaces,
        'max_spaces': limit,
        'space_utilization': _round2(total_spaces / limit * 100) if limit else 0.0,
        'total_products': totals['total_products'],
        'total_value': money(totals['total_value']),
        'low_stock_count': low_stock_count,
        'stock_status': stock_status(owner),
        'average_products_per_space': (
            _round2(totals['total_products'] / total_spaces) if total_spaces else 0.0
        ),
    }


def value_by_space(owner) -> Dict[str, Decimal]:
    """Total stock value per space name; spaces without products report zero."""
    rows = (
        Space.objects.filter(owner=owner)
        .annotate(total_value=Sum(
            ExpressionWrapper(
                F('products__price') * F('products__current_stock'),
                output_field=DecimalField(max_digits=20, decimal_places=2)
            )
        ))
        .order_by('name')
        .values_list('name', 'total_value')
    )
    return {name: money(total) for name, total in rows}


def product_count_by_space(owner) -> Dict[str, int]:
    rows = (
        Space.objects.filter(owner=owner)
        .annotate(product_count=Count('products'))
        .order_by('name')
        .values_list('name', 'product_count')
    )
    return dict(rows)


def price_analysis(owner) -> Dict[str, Decimal]:
    stats = owner_products(owner).aggregate(
        minimum=Min('price'),
        maximum=Max('price'),
        average=Avg('price'),
    )
    return {
        'minimum': money(stats['minimum']),
        'maximum': money(stats['maximum']),
        'average': money(stats['average']),
    }


def stock_analysis(owner) -> Dict:
    stats = owner_products(owner).aggregate(
        minimum=Min('current_stock'),
        maximum=Max('current_stock'),
        average=Avg('current_stock'),
        total=Sum('current_stock'),
    )
    return {
        'minimum': stats['minimum'] or 0,
        'maximum': stats['maximum'] or 0,
        'average': _round2(stats['average']),
        'total': stats['total'] or 0,
    }


def inventory_insights(owner) -> Dict:
    has_data = owner_products(owner).exists()
    return {
        'has_data': has_data,
        'price_analysis': price_analysis(owner),
        'stock_analysis': stock_analysis(owner),
        'value_by_space': value_by_space(owner),
        'product_count_by_space': product_count_by_space(owner),
    }


def _alert_info(product: Product) -> Dict:
    return {
        'product_id': str(product.pk),
        'product_name': product.name,
        'space_id': str(product.space_id),
        'space_name': product.space.name,
        'current_stock': product.current_stock,
        'minimum_quantity': product.minimum_quantity,
        'severity': stock_severity(product.current_stock, product.minimum_quantity),
        'stock_difference': product.minimum_quantity - product.current_stock,
    }


def low_stock_alerts(owner) -> Dict:
    """Low-stock products classified by severity and grouped by space name."""
    breakdown = {SEVERITY_CRITICAL: 0, SEVERITY_HIGH: 0, SEVERITY_MEDIUM: 0}
    alerts_by_space = defaultdict(list)

    for product in _low_stock(owner_products(owner)).order_by('space__name', 'current_stock', 'name'):
        alert = _alert_info(product)
        breakdown[alert['severity']] += 1
        alerts_by_space[product.space.name].append(alert)

    total = sum(breakdown.values())
    logger.debug(f"Owner {owner.pk}: {total} low stock alerts {breakdown}")
    return {
        'total_alerts': total,
        'severity_breakdown': breakdown,
        'alerts_by_space': dict(alerts_by_space),
        'has_alerts': total > 0,
    }


def space_health_score(product_count: int, low_stock_count: int, out_of_stock_count: int) -> float:
    """100 minus 30 points scaled by the low-stock share and 50 by the out-of-stock share."""
    if product_count == 0:
        return 100.0
    penalty = (low_stock_count / product_count) * 30 + (out_of_stock_count / product_count) * 50
    return max(0.0, _round2(100 - penalty))


def space_metrics(owner) -> Dict:
    """Per-space value, stock health and totals, highest value first."""
    spaces = (
        Space.objects.filter(owner=owner)
        .annotate(
            product_count=Count('products'),
            low_stock_count=Count(
                'products', filter=Q(products__current_stock__lte=F('products__minimum_quantity'))
            ),
            out_of_stock_count=Count('products', filter=Q(products__current_stock=0)),
        )
    )
    values = value_by_space(owner)

    metrics = [
        {
            'space_id': str(space.pk),
            'space_name': space.name,
            'product_count': space.product_count,
            'total_value': values.get(space.name, ZERO),
            'low_stock_count': space.low_stock_count,
            'health_score': space_health_score(
                space.product_count, space.low_stock_count, space.out_of_stock_count
            ),
        }
        for space in spaces
    ]
    metrics.sort(key=lambda m: (-m['total_value'], m['space_name']))

    total_value = money(sum((m['total_value'] for m in metrics), ZERO))
    return {
        'has_data': bool(metrics),
        'space_metrics': metrics,
        'summary': {
            'total_spaces': len(metrics),
            'total_value': total_value,
            'total_products': sum(m['product_count'] for m in metrics),
            'average_value_per_space': money(total_value / len(metrics)) if metrics else ZERO,
        },
    }


def top_products(owner, limit: int = 10, sort_by: str = 'value') -> Dict:
    """
    Raises:
        ValidationError: unknown sort key or non-positive limit
    """
    if sort_by not in TOP_PRODUCT_SORTS:
        raise ValidationError(f"sort_by must be one of: {', '.join(TOP_PRODUCT_SORTS)}")
    if limit < 1:
        raise ValidationError("limit must be a positive integer")
    limit = min(limit, MAX_TOP_PRODUCTS)

    ordering = {
        'value': ['-stock_value', 'name'],
        'stock': ['-current_stock', 'name'],
        'price': ['-price', 'name'],
    }[sort_by]
    products = owner_products(owner).annotate(stock_value=STOCK_VALUE).order_by(*ordering)[:limit]

    return {
        'has_data': bool(products),
        'sorted_by': sort_by,
        'limit': limit,
        'top_products': [
            {
                'product_id': str(p.pk),
                'name': p.name,
                'space_name': p.space.name,
                'price': p.price,
                'current_stock': p.current_stock,
                'total_value': money(p.total_value),
                'is_low_stock': p.is_low_stock,
            }
            for p in products
        ],
    }


def recent_activity(owner, hours: int = None, limit: int = 50) -> Dict:
    """
    Audit entries of ``owner`` within the last ``hours`` hours, newest first.

    The window is capped at MAX_ACTIVITY_HOURS.
    """
    if hours is None:
        hours = getattr(settings, 'INVENTORY_ACTIVITY_WINDOW_HOURS', 168)
    hours = min(hours, MAX_ACTIVITY_HOURS)
    since = timezone.now() - timedelta(hours=hours)
    entries = AuditLog.objects.filter(user=owner, timestamp__gte=since).order_by('-timestamp', '-id')[:limit]

    activities: List[Dict] = [
        {
            'id': entry.pk,
            'type': entry.operation.lower(),
            'entity_type': entry.entity_type.lower(),
            'entity_id': entry.entity_id,
            'timestamp': entry.timestamp,
            'description': entry.description,
            'details': entry.details,
        }
        for entry in entries
    ]
    return {
        'activities': activities,
        'total_count': len(activities),
        'has_activity': bool(activities),
    }


def inventory_trends(owner, days: int = 30) -> Dict:
    """
    Daily stock movements over the last ``days`` days plus a snapshot of the
    current totals.

    Movements come from the stock adjustment history, so products deleted
    since then no longer contribute.

    Raises:
        ValidationError: days outside 1..MAX_TREND_DAYS
    """
    validate_days(days)
    since = timezone.now() - timedelta(days=days)

    rows = (
        StockAdjustment.objects.filter(product__space__owner=owner, created_at__gte=since)
        .annotate(day=TruncDate('created_at'))
        .values('day')
        .annotate(
            adjustments=Count('id'),
            units_added=Sum('quantity', filter=Q(direction=StockAdjustment.Direction.ADD)),
            units_removed=Sum('quantity', filter=Q(direction=StockAdjustment.Direction.REMOVE)),
        )
        .order_by('day')
    )
    daily = []
    for row in rows:
        added = row['units_added'] or 0
        removed = row['units_removed'] or 0
        daily.append({
            'date': row['day'].isoformat(),
            'adjustments': row['adjustments'],
            'units_added': added,
            'units_removed': removed,
            'net_change': added - removed,
        })

    summary = overview(owner)
    return {
        'has_historical_data': bool(daily),
        'requested_days': days,
        'daily_movements': daily,
        'current_snapshot': {
            'date': timezone.now().date().isoformat(),
            'total_products': summary['total_products'],
            'total_spaces': summary['total_spaces'],
            'total_value': summary['total_value'],
            'low_stock_count': summary['low_stock_count'],
        },
    }
