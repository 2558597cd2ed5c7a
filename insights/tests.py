"""
Tests for dashboard insights.

Test Cases:
1. Overview totals and stock status
2. Empty owners yield zeros, not errors
3. Low stock alert severity bands
4. Space metrics, top products, recent activity and inventory trends
5. Dashboard API endpoints
"""
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from core.exceptions import ValidationError
from insights import services
from inventory.ledger import add_stock, remove_stock
from inventory.models import StockAdjustment
from inventory.services import create_product
from spaces.services import create_space

User = get_user_model()


class SeverityTestCase(TestCase):

    def test_bands(self):
        self.assertEqual(services.stock_severity(0, 5), 'critical')
        self.assertEqual(services.stock_severity(2, 5), 'high')
        self.assertEqual(services.stock_severity(3, 6), 'high')
        self.assertEqual(services.stock_severity(3, 5), 'medium')
        self.assertEqual(services.stock_severity(5, 5), 'medium')

    @override_settings(INVENTORY_HIGH_SEVERITY_RATIO=0.8)
    def test_ratio_is_configurable(self):
        self.assertEqual(services.stock_severity(4, 5), 'high')

    def test_health_score(self):
        self.assertEqual(services.space_health_score(0, 0, 0), 100.0)
        self.assertEqual(services.space_health_score(4, 0, 0), 100.0)
        self.assertEqual(services.space_health_score(2, 2, 1), 45.0)
        self.assertEqual(services.space_health_score(1, 1, 1), 20.0)


class InsightsTestCase(TestCase):
    """Aggregates over one owner's spaces and products."""

    def setUp(self):
        self.owner = User.objects.create_user(username='owner', password='testpass123')
        self.other = User.objects.create_user(username='other', password='testpass123')
        self.space = create_space(self.owner, 'Warehouse A')
        self.widget = create_product(
            self.space.pk, 'Widget', Decimal('9.99'), 20, 5, 100, owner=self.owner
        )

    def test_overview(self):
        data = services.overview(self.owner)

        self.assertEqual(data['total_spaces'], 1)
        self.assertEqual(data['max_spaces'], 10)
        self.assertEqual(data['space_utilization'], 10.0)
        self.assertEqual(data['total_products'], 1)
        self.assertEqual(data['total_value'], Decimal('199.80'))
        self.assertEqual(data['low_stock_count'], 0)
        self.assertEqual(data['stock_status'], {'in_stock': 1, 'low_stock': 0, 'out_of_stock': 0})
        self.assertEqual(data['average_products_per_space'], 1.0)

    def test_removal_into_low_stock(self):
        with patch('inventory.tasks.notify_low_stock.delay'):
            remove_stock(self.widget.pk, 16, owner=self.owner)

        overview = services.overview(self.owner)
        self.assertEqual(overview['low_stock_count'], 1)
        self.assertEqual(overview['total_value'], Decimal('39.96'))

        alerts = services.low_stock_alerts(self.owner)
        self.assertTrue(alerts['has_alerts'])
        self.assertEqual(alerts['total_alerts'], 1)
        self.assertEqual(alerts['severity_breakdown'], {'critical': 0, 'high': 0, 'medium': 1})
        alert = alerts['alerts_by_space']['Warehouse A'][0]
        self.assertEqual(alert['product_name'], 'Widget')
        self.assertEqual(alert['current_stock'], 4)
        self.assertEqual(alert['stock_difference'], 1)

    def test_out_of_stock_is_critical(self):
        remove_stock(self.widget.pk, 20, owner=self.owner)

        alerts = services.low_stock_alerts(self.owner)

        self.assertEqual(alerts['severity_breakdown']['critical'], 1)
        self.assertEqual(services.stock_status(self.owner)['out_of_stock'], 1)

    def test_empty_owner_gets_zeros(self):
        data = services.overview(self.other)
        self.assertEqual(data['total_spaces'], 0)
        self.assertEqual(data['total_value'], Decimal('0.00'))
        self.assertEqual(data['average_products_per_space'], 0.0)

        insights = services.inventory_insights(self.other)
        self.assertFalse(insights['has_data'])
        self.assertEqual(insights['price_analysis'], {
            'minimum': Decimal('0.00'), 'maximum': Decimal('0.00'), 'average': Decimal('0.00'),
        })
        self.assertEqual(insights['stock_analysis'], {'minimum': 0, 'maximum': 0, 'average': 0.0, 'total': 0})

        alerts = services.low_stock_alerts(self.other)
        self.assertFalse(alerts['has_alerts'])
        self.assertEqual(alerts['alerts_by_space'], {})

        metrics = services.space_metrics(self.other)
        self.assertFalse(metrics['has_data'])
        self.assertEqual(metrics['summary']['average_value_per_space'], Decimal('0.00'))

        self.assertFalse(services.top_products(self.other)['has_data'])

    def test_inventory_insights(self):
        create_product(self.space.pk, 'Gadget', Decimal('0.01'), 4, 0, 10, owner=self.owner)
        create_space(self.owner, 'Empty Shed')

        data = services.inventory_insights(self.owner)

        self.assertTrue(data['has_data'])
        self.assertEqual(data['price_analysis']['minimum'], Decimal('0.01'))
        self.assertEqual(data['price_analysis']['maximum'], Decimal('9.99'))
        self.assertEqual(data['price_analysis']['average'], Decimal('5.00'))
        self.assertEqual(data['stock_analysis'], {'minimum': 4, 'maximum': 20, 'average': 12.0, 'total': 24})
        self.assertEqual(data['value_by_space'], {
            'Empty Shed': Decimal('0.00'),
            'Warehouse A': Decimal('199.84'),
        })
        self.assertEqual(data['product_count_by_space'], {'Empty Shed': 0, 'Warehouse A': 2})

    def test_other_owner_data_is_excluded(self):
        theirs = create_space(self.other, 'Theirs')
        create_product(theirs.pk, 'Gold', Decimal('1000.00'), 10, 0, 10, owner=self.other)

        self.assertEqual(services.overview(self.owner)['total_value'], Decimal('199.80'))
        self.assertEqual(services.overview(self.other)['total_value'], Decimal('10000.00'))

    def test_space_metrics(self):
        shed = create_space(self.owner, 'Shed')
        create_product(shed.pk, 'Nail', Decimal('0.10'), 0, 10, 100, owner=self.owner)
        create_product(shed.pk, 'Screw', Decimal('0.20'), 3, 5, 100, owner=self.owner)

        data = services.space_metrics(self.owner)

        self.assertTrue(data['has_data'])
        names = [m['space_name'] for m in data['space_metrics']]
        self.assertEqual(names, ['Warehouse A', 'Shed'])
        shed_metrics = data['space_metrics'][1]
        self.assertEqual(shed_metrics['product_count'], 2)
        self.assertEqual(shed_metrics['low_stock_count'], 2)
        self.assertEqual(shed_metrics['total_value'], Decimal('0.60'))
        self.assertEqual(shed_metrics['health_score'], 45.0)
        self.assertEqual(data['space_metrics'][0]['health_score'], 100.0)
        self.assertEqual(data['summary']['total_value'], Decimal('200.40'))
        self.assertEqual(data['summary']['total_products'], 3)
        self.assertEqual(data['summary']['average_value_per_space'], Decimal('100.20'))

    def test_top_products(self):
        create_product(self.space.pk, 'Pricey', Decimal('50.00'), 1, 0, 10, owner=self.owner)
        create_product(self.space.pk, 'Bulk', Decimal('0.50'), 500, 0, 1000, owner=self.owner)

        by_value = services.top_products(self.owner, limit=2)
        self.assertEqual([p['name'] for p in by_value['top_products']], ['Bulk', 'Widget'])
        self.assertEqual(by_value['top_products'][0]['total_value'], Decimal('250.00'))

        by_price = services.top_products(self.owner, sort_by='price')
        self.assertEqual([p['name'] for p in by_price['top_products']], ['Pricey', 'Widget', 'Bulk'])

        by_stock = services.top_products(self.owner, limit=1, sort_by='stock')
        self.assertEqual([p['name'] for p in by_stock['top_products']], ['Bulk'])

        with self.assertRaises(ValidationError):
            services.top_products(self.owner, sort_by='name')
        with self.assertRaises(ValidationError):
            services.top_products(self.owner, limit=0)

    def test_recent_activity(self):
        add_stock(self.widget.pk, 5, owner=self.owner)

        data = services.recent_activity(self.owner)

        self.assertTrue(data['has_activity'])
        self.assertEqual(data['total_count'], 3)
        self.assertEqual(
            [a['type'] for a in data['activities']],
            ['stock_add', 'create', 'create']
        )
        self.assertEqual(data['activities'][0]['description'], "Added 5 units to 'Widget'")
        self.assertFalse(services.recent_activity(self.other)['has_activity'])

    def test_recent_activity_window_is_capped(self):
        data = services.recent_activity(self.owner, hours=100000000000)

        self.assertEqual(data['total_count'], 2)

    def test_top_products_limit_is_capped(self):
        data = services.top_products(self.owner, limit=10 ** 12)

        self.assertEqual(data['limit'], services.MAX_TOP_PRODUCTS)
        self.assertEqual(len(data['top_products']), 1)

    def test_inventory_trends(self):
        add_stock(self.widget.pk, 5, owner=self.owner)
        remove_stock(self.widget.pk, 3, owner=self.owner)
        old = add_stock(self.widget.pk, 1, owner=self.owner)
        StockAdjustment.objects.filter(product=old, direction=StockAdjustment.Direction.ADD, quantity=1).update(
            created_at=timezone.now() - timedelta(days=40)
        )

        data = services.inventory_trends(self.owner, 30)

        self.assertTrue(data['has_historical_data'])
        self.assertEqual(data['requested_days'], 30)
        self.assertEqual(data['daily_movements'], [{
            'date': timezone.now().date().isoformat(),
            'adjustments': 2,
            'units_added': 5,
            'units_removed': 3,
            'net_change': 2,
        }])
        snapshot = data['current_snapshot']
        self.assertEqual(snapshot['total_products'], 1)
        self.assertEqual(snapshot['total_spaces'], 1)
        self.assertEqual(snapshot['total_value'], Decimal('229.77'))
        self.assertEqual(snapshot['low_stock_count'], 0)

    def test_inventory_trends_without_history(self):
        data = services.inventory_trends(self.other, 7)

        self.assertFalse(data['has_historical_data'])
        self.assertEqual(data['daily_movements'], [])
        self.assertEqual(data['current_snapshot']['total_value'], Decimal('0.00'))

        with self.assertRaises(ValidationError):
            services.inventory_trends(self.owner, 0)


@override_settings(RATE_LIMIT_ENABLED=False)
class DashboardApiTestCase(TestCase):
    """Dashboard endpoints return the envelope with computed data."""

    def setUp(self):
        self.owner = User.objects.create_user(username='owner', password='testpass123')
        space = create_space(self.owner, 'Warehouse A')
        create_product(space.pk, 'Widget', Decimal('9.99'), 20, 5, 100, owner=self.owner)
        self.client = APIClient()
        self.client.force_authenticate(user=self.owner)

    def test_endpoints_respond(self):
        for name in [
            'overview', 'insights', 'low-stock-alerts', 'space-metrics',
            'top-products', 'recent-activity', 'trends',
        ]:
            with self.subTest(endpoint=name):
                response = self.client.get(f'/api/dashboard/{name}/')
                self.assertEqual(response.status_code, 200)
                self.assertTrue(response.json()['success'])

    def test_overview_values(self):
        data = self.client.get('/api/dashboard/overview/').json()['data']

        self.assertEqual(data['total_products'], 1)
        self.assertEqual(Decimal(str(data['total_value'])), Decimal('199.80'))

    def test_invalid_parameters_are_400(self):
        self.assertEqual(self.client.get('/api/dashboard/top-products/', {'sort_by': 'bogus'}).status_code, 400)
        self.assertEqual(self.client.get('/api/dashboard/top-products/', {'limit': 'x'}).status_code, 400)
        self.assertEqual(self.client.get('/api/dashboard/recent-activity/', {'hours': '-1'}).status_code, 400)
        self.assertEqual(self.client.get('/api/dashboard/trends/', {'days': '0'}).status_code, 400)
        self.assertEqual(self.client.get('/api/dashboard/trends/', {'days': '100000000000'}).status_code, 400)

    def test_huge_activity_window_is_accepted(self):
        response = self.client.get('/api/dashboard/recent-activity/', {'hours': '100000000000'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['total_count'], 2)

    def test_trends_message(self):
        response = self.client.get('/api/dashboard/trends/', {'days': 14})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['message'], 'Trend data based on last 14 days')
        self.assertEqual(response.json()['data']['requested_days'], 14)

    def test_requires_authentication(self):
        response = APIClient().get('/api/dashboard/overview/')
        self.assertEqual(response.status_code, 401)
