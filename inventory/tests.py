"""
Tests for the product catalog and the stock ledger.

Test Cases:
1. Product creation and metadata validation
2. Metadata updates never touch stock
3. Name filtering and low-stock listing
4. Stock add/remove, insufficient stock and history
5. Concurrent adjustments do not lose updates
6. Low stock notification queuing and delivery
7. Product and stock API status codes
"""
import threading
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core import mail
from django.db import connection
from django.test import TestCase, TransactionTestCase, override_settings
from rest_framework.test import APIClient

from core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from core.models import AuditLog
from inventory.ledger import add_stock, remove_stock, stock_history
from inventory.models import Product, StockAdjustment
from inventory.services import (
    MAX_COUNT,
    create_product,
    delete_product,
    get_product,
    list_products,
    low_stock_products,
    update_product,
)
from inventory.tasks import notify_low_stock
from spaces.models import Space
from spaces.services import create_space

User = get_user_model()


class ProductCatalogTestCase(TestCase):
    """Product metadata through the catalog service."""

    def setUp(self):
        self.owner = User.objects.create_user(username='owner', password='testpass123')
        self.other = User.objects.create_user(username='other', password='testpass123')
        self.space = create_space(self.owner, 'Warehouse A')

    def test_create_product(self):
        product = create_product(self.space.pk, ' Widget ', '9.99', 20, 5, 100, owner=self.owner)

        product.refresh_from_db()
        self.assertEqual(product.name, 'Widget')
        self.assertEqual(product.price, Decimal('9.99'))
        self.assertEqual(product.current_stock, 20)
        self.assertEqual(product.space, self.space)
        self.assertEqual(product.total_value, Decimal('199.80'))
        self.assertFalse(product.is_low_stock)

        entry = AuditLog.objects.get(entity_id=str(product.pk))
        self.assertEqual(entry.operation, AuditLog.Operation.CREATE)
        self.assertEqual(entry.related_entity_id, str(self.space.pk))
        self.assertEqual(entry.description, "Created product 'Widget' in space 'Warehouse A'")

    def test_price_is_rounded_to_cents(self):
        product = create_product(self.space.pk, 'Bolt', Decimal('0.125'), 0, 0, 0, owner=self.owner)
        self.assertEqual(product.price, Decimal('0.13'))

    def test_invalid_metadata_rejected(self):
        cases = [
            ('', Decimal('1.00'), 0, 0, 0),
            ('Widget', Decimal('-0.01'), 0, 0, 0),
            ('Widget', 'abc', 0, 0, 0),
            ('Widget', Decimal('1.00'), -1, 0, 0),
            ('Widget', Decimal('1.00'), True, 0, 0),
            ('Widget', Decimal('1.00'), 0, -1, 5),
            ('Widget', Decimal('1.00'), 0, 10, 5),
        ]
        for name, price, stock, minimum, maximum in cases:
            with self.subTest(name=name, price=price, stock=stock, minimum=minimum, maximum=maximum):
                with self.assertRaises(ValidationError):
                    create_product(self.space.pk, name, price, stock, minimum, maximum, owner=self.owner)

        self.assertFalse(Product.objects.exists())

    def test_counts_above_column_limit_rejected(self):
        for field in ['current_stock', 'minimum_quantity', 'maximum_quantity']:
            values = {'current_stock': 0, 'minimum_quantity': 0, 'maximum_quantity': MAX_COUNT}
            values[field] = MAX_COUNT + 1
            with self.subTest(field=field):
                with self.assertRaises(ValidationError):
                    create_product(self.space.pk, 'Widget', Decimal('1.00'), owner=self.owner, **values)

        product = create_product(self.space.pk, 'Widget', Decimal('1.00'), MAX_COUNT, 0, MAX_COUNT, owner=self.owner)
        self.assertEqual(product.current_stock, MAX_COUNT)
        with self.assertRaises(ValidationError):
            update_product(product.pk, maximum_quantity=10 ** 20, owner=self.owner)

    def test_threshold_message(self):
        with self.assertRaises(ValidationError) as context:
            create_product(self.space.pk, 'Widget', Decimal('1.00'), 0, 10, 5, owner=self.owner)
        self.assertEqual(
            context.exception.message,
            'Minimum quantity (10) cannot exceed maximum quantity (5)'
        )

    def test_unknown_or_foreign_space(self):
        foreign = create_space(self.other, 'Theirs')

        with self.assertRaises(NotFoundError):
            create_product(foreign.pk, 'Widget', Decimal('1.00'), 0, 0, 0, owner=self.owner)
        with self.assertRaises(NotFoundError):
            create_product('not-a-uuid', 'Widget', Decimal('1.00'), 0, 0, 0, owner=self.owner)

    def test_update_keeps_stock(self):
        product = create_product(self.space.pk, 'Widget', Decimal('9.99'), 20, 5, 100, owner=self.owner)

        updated = update_product(product.pk, name='Gadget', price=Decimal('12.50'), owner=self.owner)

        updated.refresh_from_db()
        self.assertEqual(updated.name, 'Gadget')
        self.assertEqual(updated.price, Decimal('12.50'))
        self.assertEqual(updated.current_stock, 20)
        self.assertEqual(updated.minimum_quantity, 5)

        entry = AuditLog.objects.get(operation=AuditLog.Operation.UPDATE)
        self.assertEqual(set(entry.details['changes']), {'name', 'price'})

    def test_update_validates_merged_thresholds(self):
        product = create_product(self.space.pk, 'Widget', Decimal('9.99'), 20, 5, 100, owner=self.owner)

        with self.assertRaises(ValidationError):
            update_product(product.pk, minimum_quantity=150, owner=self.owner)
        with self.assertRaises(ValidationError):
            update_product(product.pk, maximum_quantity=4, owner=self.owner)

        # Raising both together is fine
        update_product(product.pk, minimum_quantity=150, maximum_quantity=200, owner=self.owner)
        product.refresh_from_db()
        self.assertEqual((product.minimum_quantity, product.maximum_quantity), (150, 200))

    def test_update_without_changes_records_nothing(self):
        product = create_product(self.space.pk, 'Widget', Decimal('9.99'), 20, 5, 100, owner=self.owner)

        update_product(product.pk, name='Widget', owner=self.owner)

        self.assertFalse(AuditLog.objects.filter(operation=AuditLog.Operation.UPDATE).exists())

    def test_product_scoped_to_space(self):
        product = create_product(self.space.pk, 'Widget', Decimal('9.99'), 20, 5, 100, owner=self.owner)
        second = create_space(self.owner, 'Warehouse B')

        self.assertEqual(get_product(product.pk, space_id=self.space.pk), product)
        with self.assertRaises(NotFoundError):
            get_product(product.pk, space_id=second.pk)
        with self.assertRaises(NotFoundError):
            get_product(product.pk, owner=self.other)
        with self.assertRaises(NotFoundError):
            get_product(product.pk, space_id='bogus')

    def test_delete_product(self):
        product = create_product(self.space.pk, 'Widget', Decimal('9.99'), 20, 5, 100, owner=self.owner)

        delete_product(product.pk, owner=self.owner)

        self.assertFalse(Product.objects.exists())
        self.assertTrue(Space.objects.filter(pk=self.space.pk).exists())
        with self.assertRaises(NotFoundError):
            delete_product(product.pk, owner=self.owner)

    def test_name_filter_is_case_insensitive(self):
        create_product(self.space.pk, 'Widget', Decimal('1.00'), 1, 0, 10, owner=self.owner)
        create_product(self.space.pk, 'Blue WIDGET', Decimal('1.00'), 1, 0, 10, owner=self.owner)
        create_product(self.space.pk, 'Sprocket', Decimal('1.00'), 1, 0, 10, owner=self.owner)

        names = [p.name for p in list_products(self.space.pk, name_filter='widget', owner=self.owner)]
        self.assertEqual(names, ['Blue WIDGET', 'Widget'])

        self.assertEqual(len(list_products(self.space.pk, name_filter='  ', owner=self.owner)), 3)
        self.assertEqual(list_products(self.space.pk, name_filter='gear', owner=self.owner), [])

    def test_low_stock_products(self):
        create_product(self.space.pk, 'Plenty', Decimal('1.00'), 50, 5, 100, owner=self.owner)
        create_product(self.space.pk, 'At Minimum', Decimal('1.00'), 5, 5, 100, owner=self.owner)
        create_product(self.space.pk, 'Empty', Decimal('1.00'), 0, 0, 100, owner=self.owner)

        names = [p.name for p in low_stock_products(self.space.pk, owner=self.owner)]

        self.assertEqual(names, ['Empty', 'At Minimum'])


class StockLedgerTestCase(TestCase):
    """Stock adjustments through the ledger."""

    def setUp(self):
        self.owner = User.objects.create_user(username='owner', password='testpass123')
        self.space = create_space(self.owner, 'Warehouse A')
        self.product = create_product(
            self.space.pk, 'Widget', Decimal('9.99'), 10, 5, 100, owner=self.owner
        )

    def test_add_stock(self):
        product = add_stock(self.product.pk, 10, owner=self.owner)

        self.assertEqual(product.current_stock, 20)
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 20)

        adjustment = StockAdjustment.objects.get()
        self.assertEqual(adjustment.direction, StockAdjustment.Direction.ADD)
        self.assertEqual((adjustment.previous_stock, adjustment.resulting_stock), (10, 20))
        self.assertEqual(adjustment.performed_by, self.owner)

        entry = AuditLog.objects.get(operation=AuditLog.Operation.STOCK_ADD)
        self.assertEqual(entry.details['old_stock'], 10)
        self.assertEqual(entry.details['new_stock'], 20)

    def test_add_beyond_maximum_is_allowed(self):
        product = add_stock(self.product.pk, 500, owner=self.owner)
        self.assertEqual(product.current_stock, 510)

    def test_remove_stock(self):
        product = remove_stock(self.product.pk, 4, owner=self.owner)

        self.assertEqual(product.current_stock, 6)
        adjustment = StockAdjustment.objects.get()
        self.assertEqual(adjustment.direction, StockAdjustment.Direction.REMOVE)
        self.assertEqual((adjustment.previous_stock, adjustment.resulting_stock), (10, 6))

    def test_remove_exact_stock(self):
        product = remove_stock(self.product.pk, 10, owner=self.owner)
        self.assertEqual(product.current_stock, 0)
        self.assertTrue(product.is_out_of_stock)

    def test_insufficient_stock_leaves_product_unchanged(self):
        with self.assertRaises(InsufficientStockError) as context:
            remove_stock(self.product.pk, 11, owner=self.owner)

        self.assertEqual(context.exception.available, 10)
        self.assertEqual(context.exception.requested, 11)
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 10)
        self.assertFalse(StockAdjustment.objects.exists())
        self.assertFalse(AuditLog.objects.filter(operation=AuditLog.Operation.STOCK_REMOVE).exists())

    def test_invalid_quantities(self):
        for quantity in [0, -3, True, 2.5, '4', None]:
            with self.subTest(quantity=quantity):
                with self.assertRaises(ValidationError):
                    add_stock(self.product.pk, quantity, owner=self.owner)
                with self.assertRaises(ValidationError):
                    remove_stock(self.product.pk, quantity, owner=self.owner)

        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 10)

    def test_quantity_above_column_limit_rejected(self):
        for quantity in [MAX_COUNT + 1, 10 ** 20]:
            with self.subTest(quantity=quantity):
                with self.assertRaises(ValidationError):
                    add_stock(self.product.pk, quantity, owner=self.owner)
                with self.assertRaises(ValidationError):
                    remove_stock(self.product.pk, quantity, owner=self.owner)

    def test_add_that_would_overflow_stock_rejected(self):
        Product.objects.filter(pk=self.product.pk).update(current_stock=MAX_COUNT - 1)

        with self.assertRaises(ValidationError):
            add_stock(self.product.pk, 2, owner=self.owner)

        product = add_stock(self.product.pk, 1, owner=self.owner)
        self.assertEqual(product.current_stock, MAX_COUNT)
        self.assertEqual(StockAdjustment.objects.count(), 1)

    def test_unknown_product(self):
        with self.assertRaises(NotFoundError):
            add_stock('00000000-0000-0000-0000-000000000000', 1, owner=self.owner)

    def test_add_then_remove_restores_stock(self):
        add_stock(self.product.pk, 7, owner=self.owner)
        product = remove_stock(self.product.pk, 7, owner=self.owner)

        self.assertEqual(product.current_stock, 10)

    def test_sequential_adds_are_all_applied(self):
        for _ in range(10):
            add_stock(self.product.pk, 1, owner=self.owner)

        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 20)
        self.assertEqual(StockAdjustment.objects.count(), 10)

    def test_stock_history_newest_first(self):
        add_stock(self.product.pk, 5, owner=self.owner)
        remove_stock(self.product.pk, 3, owner=self.owner)

        history = stock_history(self.product.pk, owner=self.owner)

        self.assertEqual([a.resulting_stock for a in history], [12, 15])
        self.assertEqual(len(stock_history(self.product.pk, owner=self.owner, limit=1)), 1)

    def test_metadata_update_does_not_touch_stock_after_adjustment(self):
        add_stock(self.product.pk, 5, owner=self.owner)

        update_product(self.product.pk, price=Decimal('1.00'), owner=self.owner)

        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 15)


class LowStockNotificationTestCase(TestCase):
    """Crossing into low stock queues one notification after commit."""

    def setUp(self):
        self.owner = User.objects.create_user(
            username='owner', password='testpass123', email='owner@example.com'
        )
        self.space = create_space(self.owner, 'Warehouse A')
        self.product = create_product(
            self.space.pk, 'Widget', Decimal('9.99'), 20, 5, 100, owner=self.owner
        )

    @patch('inventory.tasks.notify_low_stock.delay')
    def test_crossing_threshold_queues_task(self, mock_delay):
        with self.captureOnCommitCallbacks(execute=True):
            remove_stock(self.product.pk, 16, owner=self.owner)

        mock_delay.assert_called_once_with(str(self.product.pk))

    @patch('inventory.tasks.notify_low_stock.delay')
    def test_staying_above_threshold_queues_nothing(self, mock_delay):
        with self.captureOnCommitCallbacks(execute=True):
            remove_stock(self.product.pk, 10, owner=self.owner)

        mock_delay.assert_not_called()

    @patch('inventory.tasks.notify_low_stock.delay')
    def test_already_low_queues_nothing(self, mock_delay):
        with self.captureOnCommitCallbacks(execute=True):
            remove_stock(self.product.pk, 16, owner=self.owner)
            remove_stock(self.product.pk, 1, owner=self.owner)

        self.assertEqual(mock_delay.call_count, 1)

    @patch('inventory.tasks.notify_low_stock.delay')
    def test_failed_removal_queues_nothing(self, mock_delay):
        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(InsufficientStockError):
                remove_stock(self.product.pk, 21, owner=self.owner)

        mock_delay.assert_not_called()

    @patch('inventory.tasks.notify_low_stock.delay', side_effect=ConnectionError("broker down"))
    def test_queue_failure_does_not_fail_removal(self, mock_delay):
        with self.assertLogs('inventory.ledger', level='ERROR'):
            with self.captureOnCommitCallbacks(execute=True):
                product = remove_stock(self.product.pk, 16, owner=self.owner)

        self.assertEqual(product.current_stock, 4)

    def test_task_sends_email(self):
        Product.objects.filter(pk=self.product.pk).update(current_stock=3)

        result = notify_low_stock(str(self.product.pk))

        self.assertEqual(result['status'], 'success')
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].subject, 'Low stock: Widget (Warehouse A)')
        self.assertEqual(mail.outbox[0].to, ['owner@example.com'])
        self.assertIn('Current stock: 3', mail.outbox[0].body)

    def test_task_skips_restocked_product(self):
        result = notify_low_stock(str(self.product.pk))

        self.assertEqual(result['status'], 'skipped')
        self.assertEqual(len(mail.outbox), 0)

    def test_task_skips_owner_without_email(self):
        User.objects.filter(pk=self.owner.pk).update(email='')
        Product.objects.filter(pk=self.product.pk).update(current_stock=0)

        result = notify_low_stock(str(self.product.pk))

        self.assertEqual(result['status'], 'skipped')
        self.assertEqual(len(mail.outbox), 0)

    def test_task_missing_product(self):
        result = notify_low_stock('00000000-0000-0000-0000-000000000000')
        self.assertEqual(result['status'], 'error')


class ConcurrentStockTestCase(TransactionTestCase):
    """
    Concurrent adjustments on one product.
    Uses TransactionTestCase for proper multi-threading support.
    """

    def setUp(self):
        self.owner = User.objects.create_user(username='owner', password='testpass123')
        self.space = create_space(self.owner, 'Race Track')
        self.product = create_product(
            self.space.pk, 'Limited Stock Product', Decimal('50.00'), 10, 0, 100, owner=self.owner
        )

    def _run_threads(self, target, count):
        errors = []

        def run():
            try:
                target()
            except Exception as e:
                errors.append(e)
            finally:
                connection.close()

        threads = [threading.Thread(target=run) for _ in range(count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return errors

    def test_concurrent_adds_no_lost_update(self):
        """
        Given: 10 units in stock
        When: Two concurrent additions of five units
        Then: Final stock is exactly 20
        """
        errors = self._run_threads(lambda: add_stock(self.product.pk, 5, owner=self.owner), 2)

        self.assertEqual(errors, [])

        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 20)
        self.assertEqual(StockAdjustment.objects.count(), 2)

    def test_concurrent_removals_no_overselling(self):
        """
        Given: 10 units in stock
        When: Two concurrent removals of 8 units each
        Then: Exactly one succeeds and 2 units remain
        """
        outcomes = []

        def take():
            try:
                remove_stock(self.product.pk, 8, owner=self.owner)
                outcomes.append('ok')
            except InsufficientStockError:
                outcomes.append('rejected')

        errors = self._run_threads(take, 2)

        self.assertEqual(errors, [])

        self.product.refresh_from_db()
        self.assertEqual(sorted(outcomes), ['ok', 'rejected'])
        self.assertEqual(self.product.current_stock, 2)


@override_settings(RATE_LIMIT_ENABLED=False)
class ProductApiTestCase(TestCase):
    """HTTP surface of products and stock."""

    def setUp(self):
        self.owner = User.objects.create_user(username='owner', password='testpass123')
        self.other = User.objects.create_user(username='other', password='testpass123')
        self.space = create_space(self.owner, 'Warehouse A')
        self.client = APIClient()
        self.client.force_authenticate(user=self.owner)
        self.base = f'/api/spaces/{self.space.pk}/products/'

    def _create(self, **overrides):
        payload = {
            'name': 'Widget',
            'price': '9.99',
            'current_stock': 20,
            'minimum_quantity': 5,
            'maximum_quantity': 100,
        }
        payload.update(overrides)
        return self.client.post(self.base, payload, format='json')

    def test_create_product(self):
        response = self._create()

        self.assertEqual(response.status_code, 201)
        data = response.json()['data']
        self.assertEqual(data['name'], 'Widget')
        self.assertEqual(data['price'], '9.99')
        self.assertEqual(data['current_stock'], 20)
        self.assertEqual(data['space_id'], str(self.space.pk))
        self.assertEqual(data['total_value'], '199.80')
        self.assertFalse(data['is_low_stock'])

    def test_create_invalid_product(self):
        self.assertEqual(self._create(price='-1').status_code, 400)
        self.assertEqual(self._create(minimum_quantity=200).status_code, 400)
        self.assertEqual(self._create(name='  ').status_code, 400)
        self.assertFalse(Product.objects.exists())

    def test_create_in_foreign_space_is_404(self):
        foreign = create_space(self.other, 'Theirs')

        response = self.client.post(
            f'/api/spaces/{foreign.pk}/products/',
            {'name': 'Widget', 'price': '1.00'},
            format='json'
        )

        self.assertEqual(response.status_code, 404)

    def test_list_with_name_filter(self):
        self._create(name='Widget')
        self._create(name='Sprocket')

        response = self.client.get(self.base, {'name': 'WID'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual([p['name'] for p in response.json()['data']], ['Widget'])

    def test_update_rejects_stock_edit(self):
        product_id = self._create().json()['data']['id']

        response = self.client.patch(f'{self.base}{product_id}/', {'current_stock': 999}, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(Product.objects.get(pk=product_id).current_stock, 20)

    def test_update_product(self):
        product_id = self._create().json()['data']['id']

        response = self.client.patch(f'{self.base}{product_id}/', {'price': '10.50'}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['price'], '10.50')
        self.assertEqual(response.json()['data']['current_stock'], 20)

    def test_stock_add_and_remove(self):
        product_id = self._create().json()['data']['id']
        url = f'{self.base}{product_id}/stock/'

        response = self.client.post(url + 'add/', {'quantity': 5}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['current_stock'], 25)
        self.assertEqual(response.json()['message'], 'Added 5 units to stock')

        with patch('inventory.tasks.notify_low_stock.delay'):
            response = self.client.post(url + 'remove/', {'quantity': 21}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['current_stock'], 4)
        self.assertTrue(response.json()['data']['is_low_stock'])

        response = self.client.get(url + 'history/')
        self.assertEqual(response.status_code, 200)
        history = response.json()['data']
        self.assertEqual([h['direction'] for h in history], ['REMOVE', 'ADD'])
        self.assertEqual(history[0]['performed_by'], 'owner')

    def test_remove_too_much_is_409(self):
        product_id = self._create().json()['data']['id']

        response = self.client.post(
            f'{self.base}{product_id}/stock/remove/', {'quantity': 21}, format='json'
        )

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json(), {
            'success': False,
            'message': 'Insufficient stock. Current: 20, Requested: 21',
            'error': 'insufficient_stock',
        })

    def test_oversized_integers_are_400(self):
        response = self._create(current_stock=10 ** 20)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'validation_error')

        product_id = self._create().json()['data']['id']
        response = self.client.post(
            f'{self.base}{product_id}/stock/add/', {'quantity': 10 ** 20}, format='json'
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(Product.objects.get(pk=product_id).current_stock, 20)

    def test_invalid_quantity_is_400(self):
        product_id = self._create().json()['data']['id']

        response = self.client.post(
            f'{self.base}{product_id}/stock/add/', {'quantity': 0}, format='json'
        )

        self.assertEqual(response.status_code, 400)

    def test_unknown_product_is_404(self):
        response = self.client.post(
            f'{self.base}00000000-0000-0000-0000-000000000000/stock/add/', {'quantity': 1}, format='json'
        )

        self.assertEqual(response.status_code, 404)

    def test_delete_product(self):
        product_id = self._create().json()['data']['id']

        response = self.client.delete(f'{self.base}{product_id}/')

        self.assertEqual(response.status_code, 200)
        self.assertFalse(Product.objects.filter(pk=product_id).exists())

    def test_low_stock_endpoint(self):
        self._create(name='Plenty')
        self._create(name='Scarce', current_stock=2)

        response = self.client.get(f'{self.base}low-stock/')

        self.assertEqual([p['name'] for p in response.json()['data']], ['Scarce'])
