"""
Audit log API Views.
"""
from django.db.models import Count
from rest_framework.views import APIView

from .audit import activity_trends
from .exceptions import ValidationError
from .models import AuditLog
from .responses import api_response
from .serializers import AuditLogSerializer


class AuditLogListView(APIView):
    """
    GET: The caller's audit trail, newest first.

    Query Parameters:
        - entity_type: SPACE or PRODUCT
        - operation: CREATE, UPDATE, DELETE, STOCK_ADD, STOCK_REMOVE
        - entity_id: Restrict to one space or product
        - limit: Maximum number of entries (default 100, max 500)
    """

    def get_queryset(self):
        queryset = AuditLog.objects.filter(user=self.request.user)

        entity_type = self.request.query_params.get('entity_type', '').upper()
        if entity_type in AuditLog.EntityType.values:
            queryset = queryset.filter(entity_type=entity_type)

        operation = self.request.query_params.get('operation', '').upper()
        if operation in AuditLog.Operation.values:
            queryset = queryset.filter(operation=operation)

        entity_id = self.request.query_params.get('entity_id')
        if entity_id:
            queryset = queryset.filter(entity_id=entity_id)

        return queryset.order_by('-timestamp', '-id')

    def get(self, request):
        try:
            limit = int(request.query_params.get('limit', 100))
        except ValueError:
            limit = 100
        limit = max(1, min(limit, 500))

        entries = self.get_queryset()[:limit]
        return api_response(AuditLogSerializer(entries, many=True).data)


class AuditLogSummaryView(APIView):
    """
    GET: Count of the caller's audit entries per operation and entity type.
    """

    def get(self, request):
        queryset = AuditLog.objects.filter(user=request.user)
        by_operation = dict(
            queryset.order_by().values_list('operation').annotate(total=Count('id'))
        )
        by_entity = dict(
            queryset.order_by().values_list('entity_type').annotate(total=Count('id'))
        )
        return api_response({
            'total': sum(by_operation.values()),
            'by_operation': by_operation,
            'by_entity_type': by_entity,
        })


class AuditLogTrendsView(APIView):
    """
    GET: Daily activity counts and operation breakdown of the caller.

    Query Parameters:
        - days: Look-back window in days (default 30)
    """

    def get(self, request):
        try:
            days = int(request.query_params.get('days', 30))
        except ValueError:
            raise ValidationError("days must be an integer")
        return api_response(activity_trends(request.user, days))
