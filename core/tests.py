"""
Tests for cross-cutting behaviour.

Test Cases:
1. Error envelope produced by the exception handler
2. Audit entry descriptions and request context capture
3. Redis rate limiting (counter, headers, fail-open)
4. Audit log endpoints and activity trends
"""
from datetime import timedelta
from unittest.mock import MagicMock, patch

import redis
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.test import RequestFactory, TestCase, override_settings
from django.utils import timezone
from rest_framework import exceptions as drf_exceptions
from rest_framework.test import APIClient

from core.audit import activity_trends, get_client_ip, record_action
from core.exceptions import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
    api_exception_handler,
)
from core.models import AuditLog
from core.rate_limiting import check_rate_limit
from spaces.services import create_space, rename_space

User = get_user_model()


class ExceptionHandlerTestCase(TestCase):
    """Every error is rendered as {success, message, error}."""

    def test_validation_error_is_400(self):
        response = api_exception_handler(ValidationError("Space name is required"), {})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data, {
            'success': False,
            'message': 'Space name is required',
            'error': 'validation_error',
        })

    def test_not_found_is_404(self):
        response = api_exception_handler(NotFoundError("Space 42 not found"), {})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data['error'], 'not_found')

    def test_insufficient_stock_is_409(self):
        exc = InsufficientStockError('p1', requested=8, available=3)
        response = api_exception_handler(exc, {})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['error'], 'insufficient_stock')
        self.assertEqual(response.data['message'], 'Insufficient stock. Current: 3, Requested: 8')

    def test_drf_validation_error_keeps_field_errors(self):
        exc = drf_exceptions.ValidationError({'quantity': ['Ensure this value is greater than or equal to 1.']})
        response = api_exception_handler(exc, {})

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['error'], 'validation_error')
        self.assertIn('quantity', response.data['message'])
        self.assertIn('quantity', response.data['errors'])

    def test_throttled_is_429(self):
        response = api_exception_handler(drf_exceptions.Throttled(wait=30), {})

        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.data['error'], 'throttled')

    def test_unexpected_error_is_500_without_details(self):
        with self.assertLogs('core.exceptions', level='ERROR'):
            response = api_exception_handler(RuntimeError("database exploded"), {})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data['error'], 'server_error')
        self.assertNotIn('exploded', response.data['message'])


class AuditLogTestCase(TestCase):
    """Audit entries written by services."""

    def setUp(self):
        self.user = User.objects.create_user(username='auditor', password='testpass123')

    def test_space_operations_are_described(self):
        space = create_space(self.user, 'Warehouse A')
        rename_space(space.pk, 'Warehouse B', owner=self.user)

        created, renamed = AuditLog.objects.filter(entity_id=str(space.pk)).order_by('id')

        self.assertEqual(created.description, 'Created space: Warehouse A')
        self.assertEqual(renamed.description, "Renamed space from 'Warehouse A' to 'Warehouse B'")
        self.assertEqual(renamed.user, self.user)

    def test_anonymous_actor_is_stored_as_null(self):
        entry = record_action(
            AnonymousUser(), AuditLog.EntityType.SPACE, 'abc', AuditLog.Operation.DELETE,
            {'space_name': 'Old'}
        )

        self.assertIsNone(entry.user)
        self.assertEqual(entry.description, 'Deleted space: Old')
        self.assertIsNone(entry.ip_address)

    def test_client_ip_prefers_forwarded_header(self):
        request = RequestFactory().get('/', HTTP_X_FORWARDED_FOR='203.0.113.7, 10.0.0.1')
        self.assertEqual(get_client_ip(request), '203.0.113.7')

        request = RequestFactory().get('/', REMOTE_ADDR='10.1.2.3')
        self.assertEqual(get_client_ip(request), '10.1.2.3')

    def test_malformed_client_address_is_dropped(self):
        request = RequestFactory().get('/', HTTP_X_FORWARDED_FOR='not-an-ip, 10.0.0.1')
        with self.assertLogs('core.audit', level='WARNING'):
            self.assertIsNone(get_client_ip(request))

        request = RequestFactory().get('/', HTTP_X_FORWARDED_FOR='2001:db8::1')
        self.assertEqual(get_client_ip(request), '2001:db8::1')


@override_settings(RATE_LIMIT_ENABLED=True)
class RateLimitTestCase(TestCase):
    """Fixed-window counter backed by Redis."""

    def setUp(self):
        self.request = RequestFactory().get('/api/dashboard/overview/')
        self.request.user = AnonymousUser()

    def test_first_request_sets_window(self):
        client = MagicMock()
        client.incr.return_value = 1
        client.ttl.return_value = 60

        with patch('core.rate_limiting.redis_client', client):
            state = check_rate_limit('overview', self.request, 5, 60)

        self.assertEqual(state, (4, 60))
        client.expire.assert_called_once_with('rate_limit:overview:ip:127.0.0.1', 60)

    def test_exceeding_limit_raises_throttled(self):
        client = MagicMock()
        client.incr.return_value = 6
        client.ttl.return_value = 42

        with patch('core.rate_limiting.redis_client', client):
            with self.assertRaises(drf_exceptions.Throttled) as context:
                check_rate_limit('overview', self.request, 5, 60)

        self.assertEqual(context.exception.wait, 42)

    def test_redis_errors_fail_open(self):
        client = MagicMock()
        client.incr.side_effect = redis.ConnectionError("down")

        with patch('core.rate_limiting.redis_client', client):
            self.assertIsNone(check_rate_limit('overview', self.request, 5, 60))

    def test_missing_client_disables_limiting(self):
        with patch('core.rate_limiting.redis_client', None):
            self.assertIsNone(check_rate_limit('overview', self.request, 5, 60))

    def test_dashboard_endpoint_returns_429_over_limit(self):
        user = User.objects.create_user(username='busy', password='testpass123')
        api = APIClient()
        api.force_authenticate(user=user)
        client = MagicMock()
        client.incr.return_value = 500
        client.ttl.return_value = 10

        with patch('core.rate_limiting.redis_client', client):
            response = api.get('/api/dashboard/overview/')

        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.json()['error'], 'throttled')

    def test_headers_added_under_limit(self):
        user = User.objects.create_user(username='calm', password='testpass123')
        api = APIClient()
        api.force_authenticate(user=user)
        client = MagicMock()
        client.incr.return_value = 3
        client.ttl.return_value = 55

        with patch('core.rate_limiting.redis_client', client):
            response = api.get('/api/dashboard/overview/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['X-RateLimit-Limit'], '120')
        self.assertEqual(response['X-RateLimit-Remaining'], '117')
        self.assertEqual(response['X-RateLimit-Reset'], '55')


@override_settings(RATE_LIMIT_ENABLED=False)
class AuditLogApiTestCase(TestCase):
    """Audit log endpoints only expose the caller's entries."""

    def setUp(self):
        self.user = User.objects.create_user(username='alice', password='testpass123')
        self.other = User.objects.create_user(username='bob', password='testpass123')
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)

    def test_request_context_is_captured(self):
        response = self.client.post(
            '/api/spaces/', {'name': 'Front Store'}, format='json',
            REMOTE_ADDR='10.0.0.5', HTTP_USER_AGENT='inventory-test-agent'
        )
        self.assertEqual(response.status_code, 201)

        entry = AuditLog.objects.get(operation=AuditLog.Operation.CREATE)
        self.assertEqual(entry.ip_address, '10.0.0.5')
        self.assertEqual(entry.user_agent, 'inventory-test-agent')

    def test_malformed_forwarded_address_does_not_break_writes(self):
        response = self.client.post(
            '/api/spaces/', {'name': 'Proxy Store'}, format='json',
            HTTP_X_FORWARDED_FOR='not-an-ip'
        )
        self.assertEqual(response.status_code, 201)

        entry = AuditLog.objects.get(operation=AuditLog.Operation.CREATE)
        self.assertIsNone(entry.ip_address)

    def test_list_and_filter(self):
        space = create_space(self.user, 'Garage')
        rename_space(space.pk, 'Big Garage', owner=self.user)
        create_space(self.other, 'Not Mine')

        response = self.client.get('/api/audit-logs/')
        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(len(data), 2)
        self.assertEqual(data[0]['operation'], 'UPDATE')

        response = self.client.get('/api/audit-logs/', {'operation': 'create'})
        self.assertEqual([e['operation'] for e in response.json()['data']], ['CREATE'])

    def test_summary(self):
        space = create_space(self.user, 'Garage')
        rename_space(space.pk, 'Big Garage', owner=self.user)

        response = self.client.get('/api/audit-logs/summary/')

        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(data['total'], 2)
        self.assertEqual(data['by_operation'], {'CREATE': 1, 'UPDATE': 1})
        self.assertEqual(data['by_entity_type'], {'SPACE': 2})

    def test_requires_authentication(self):
        response = APIClient().get('/api/audit-logs/')
        self.assertEqual(response.status_code, 401)

    def test_trends_endpoint(self):
        create_space(self.user, 'Garage')

        response = self.client.get('/api/audit-logs/trends/', {'days': 7})

        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(data['total_activities'], 1)
        self.assertEqual(data['period'], '7 days')

    def test_trends_invalid_days_is_400(self):
        for days in ['abc', '0', '100000000000']:
            with self.subTest(days=days):
                response = self.client.get('/api/audit-logs/trends/', {'days': days})
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()['error'], 'validation_error')


class ActivityTrendsTestCase(TestCase):
    """Daily audit activity aggregated per owner."""

    def setUp(self):
        self.user = User.objects.create_user(username='alice', password='testpass123')
        self.other = User.objects.create_user(username='bob', password='testpass123')

    def test_counts_per_day_and_operation(self):
        space = create_space(self.user, 'Garage')
        rename_space(space.pk, 'Big Garage', owner=self.user)
        create_space(self.other, 'Not Mine')

        trends = activity_trends(self.user, 7)

        today = timezone.now().date().isoformat()
        self.assertEqual(trends['daily_activity'], {today: 2})
        self.assertEqual(trends['operation_breakdown'], {'CREATE': 1, 'UPDATE': 1})
        self.assertEqual(trends['total_activities'], 2)
        self.assertEqual(trends['period'], '7 days')

    def test_entries_outside_window_are_excluded(self):
        space = create_space(self.user, 'Garage')
        AuditLog.objects.filter(entity_id=str(space.pk)).update(
            timestamp=timezone.now() - timedelta(days=40)
        )

        self.assertEqual(activity_trends(self.user, 30)['total_activities'], 0)
        self.assertEqual(activity_trends(self.user, 60)['total_activities'], 1)

    def test_invalid_days(self):
        for days in [0, -1, 10 ** 9, True, '7']:
            with self.subTest(days=days):
                with self.assertRaises(ValidationError):
                    activity_trends(self.user, days)
