"""
Dashboard API Views.

Every endpoint recomputes its numbers from current data for the
authenticated user. Rate limited per user.
"""
import logging

from rest_framework.views import APIView

from core.exceptions import ValidationError
from core.rate_limiting import RateLimitMixin
from core.responses import api_response
from . import services

logger = logging.getLogger(__name__)


def _int_param(request, name: str, default: int) -> int:
    raw = request.query_params.get(name)
    if raw in (None, ''):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


class DashboardView(RateLimitMixin, APIView):
    """Base view: subclasses implement ``compute(request)``."""
    rate_limit_max_requests = 120
    rate_limit_window_seconds = 60

    def compute(self, request):
        raise NotImplementedError

    def get(self, request):
        return api_response(self.compute(request))


class OverviewView(DashboardView):
    """GET: Totals, inventory value and stock status breakdown."""

    def compute(self, request):
        return services.overview(request.user)


class InventoryInsightsView(DashboardView):
    """GET: Price and stock analysis plus per-space value and product counts."""

    def compute(self, request):
        return services.inventory_insights(request.user)


class LowStockAlertsView(DashboardView):
    """GET: Low-stock products with severity breakdown, grouped by space."""

    def compute(self, request):
        return services.low_stock_alerts(request.user)


class SpaceMetricsView(DashboardView):
    """GET: Per-space value, low stock count and health score."""

    def compute(self, request):
        return services.space_metrics(request.user)


class TopProductsView(DashboardView):
    """
    GET: Top products.

    Query Parameters:
        - limit: Number of products (default 10)
        - sort_by: value | stock | price (default value)
    """

    def compute(self, request):
        return services.top_products(
            request.user,
            limit=_int_param(request, 'limit', 10),
            sort_by=request.query_params.get('sort_by', 'value').lower()
        )


class RecentActivityView(DashboardView):
    """
    GET: Recent audit activity of the caller.

    Query Parameters:
        - hours: Look-back window (default INVENTORY_ACTIVITY_WINDOW_HOURS)
    """

    def compute(self, request):
        hours = _int_param(request, 'hours', 0)
        if hours < 0:
            raise ValidationError("hours must be positive")
        return services.recent_activity(request.user, hours=hours or None)


class InventoryTrendsView(DashboardView):
    """
    GET: Daily stock movements and the current inventory snapshot.

    Query Parameters:
        - days: Look-back window in days (default 30)
    """

    def get(self, request):
        days = _int_param(request, 'days', 30)
        return api_response(
            services.inventory_trends(request.user, days),
            message=f'Trend data based on last {days} days'
        )
