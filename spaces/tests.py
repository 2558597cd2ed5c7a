"""
Tests for the space registry.

Test Cases:
1. Create with trimming, duplicate detection and the per-owner limit
2. Rename and owner scoping
3. Delete cascades to products and their stock history
4. Space API endpoints and status codes
"""
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from core.exceptions import NotFoundError, ValidationError
from core.models import AuditLog
from inventory.ledger import add_stock
from inventory.models import Product, StockAdjustment
from inventory.services import create_product, get_product
from spaces.models import Space
from spaces.services import (
    create_space,
    delete_space,
    get_space,
    list_spaces,
    rename_space,
    space_creation_status,
)

User = get_user_model()


class SpaceRegistryTestCase(TestCase):
    """Space lifecycle through the service layer."""

    def setUp(self):
        self.owner = User.objects.create_user(username='owner', password='testpass123')
        self.other = User.objects.create_user(username='other', password='testpass123')

    def test_create_trims_name_and_records_audit(self):
        space = create_space(self.owner, '  Warehouse A  ')

        self.assertEqual(space.name, 'Warehouse A')
        self.assertEqual(space.owner, self.owner)
        entry = AuditLog.objects.get(entity_id=str(space.pk))
        self.assertEqual(entry.operation, AuditLog.Operation.CREATE)
        self.assertEqual(entry.details, {'space_name': 'Warehouse A'})

    def test_blank_name_rejected(self):
        for name in ['', '   ', None]:
            with self.assertRaises(ValidationError):
                create_space(self.owner, name)
        self.assertFalse(Space.objects.exists())

    def test_duplicate_name_rejected_per_owner(self):
        create_space(self.owner, 'Garage')

        with self.assertRaises(ValidationError) as context:
            create_space(self.owner, 'Garage')
        self.assertIn('already exists', context.exception.message)

        # Another owner may reuse the name
        create_space(self.other, 'Garage')
        self.assertEqual(Space.objects.filter(name='Garage').count(), 2)

    @override_settings(INVENTORY_MAX_SPACES_PER_OWNER=2)
    def test_space_limit(self):
        create_space(self.owner, 'One')
        create_space(self.owner, 'Two')

        with self.assertRaises(ValidationError) as context:
            create_space(self.owner, 'Three')
        self.assertIn('Maximum limit of 2 spaces', context.exception.message)

        status = space_creation_status(self.owner)
        self.assertEqual(status, {
            'current_spaces': 2,
            'max_spaces': 2,
            'remaining_slots': 0,
            'can_create_more': False,
        })

    def test_rename(self):
        space = create_space(self.owner, 'Old Name')

        renamed = rename_space(space.pk, 'New Name', owner=self.owner)

        self.assertEqual(renamed.name, 'New Name')
        space.refresh_from_db()
        self.assertEqual(space.name, 'New Name')

    def test_rename_to_existing_name_rejected(self):
        create_space(self.owner, 'Taken')
        space = create_space(self.owner, 'Free')

        with self.assertRaises(ValidationError):
            rename_space(space.pk, 'Taken', owner=self.owner)

    def test_rename_to_same_name_is_noop(self):
        space = create_space(self.owner, 'Same')

        rename_space(space.pk, 'Same', owner=self.owner)

        self.assertFalse(AuditLog.objects.filter(operation=AuditLog.Operation.UPDATE).exists())

    def test_foreign_and_malformed_ids_not_found(self):
        space = create_space(self.other, 'Private')

        with self.assertRaises(NotFoundError):
            get_space(space.pk, owner=self.owner)
        with self.assertRaises(NotFoundError):
            rename_space(space.pk, 'Mine now', owner=self.owner)
        with self.assertRaises(NotFoundError):
            delete_space(space.pk, owner=self.owner)
        with self.assertRaises(NotFoundError):
            get_space('not-a-uuid')

    def test_delete_cascades_to_products(self):
        space = create_space(self.owner, 'Doomed')
        product = create_product(space.pk, 'Widget', Decimal('9.99'), 5, 1, 10, owner=self.owner)
        add_stock(product.pk, 3, owner=self.owner)

        delete_space(space.pk, owner=self.owner)

        self.assertFalse(Space.objects.filter(pk=space.pk).exists())
        self.assertFalse(Product.objects.filter(pk=product.pk).exists())
        self.assertFalse(StockAdjustment.objects.exists())
        with self.assertRaises(NotFoundError):
            get_product(product.pk)
        with self.assertRaises(NotFoundError):
            add_stock(product.pk, 1)
        entry = AuditLog.objects.get(operation=AuditLog.Operation.DELETE)
        self.assertEqual(entry.details, {'space_name': 'Doomed', 'deleted_products': 1})

    def test_list_spaces_scoped_with_product_count(self):
        first = create_space(self.owner, 'First')
        create_space(self.owner, 'Second')
        create_space(self.other, 'Elsewhere')
        create_product(first.pk, 'Widget', Decimal('1.00'), 0, 0, 0, owner=self.owner)

        spaces = {s.name: s.product_count for s in list_spaces(self.owner)}

        self.assertEqual(spaces, {'First': 1, 'Second': 0})


@override_settings(RATE_LIMIT_ENABLED=False)
class SpaceApiTestCase(TestCase):
    """HTTP surface of the space registry."""

    def setUp(self):
        self.owner = User.objects.create_user(
            username='owner', password='testpass123', first_name='Olive', last_name='Owner'
        )
        self.other = User.objects.create_user(username='other', password='testpass123')
        self.client = APIClient()
        self.client.force_authenticate(user=self.owner)

    def test_create_space(self):
        response = self.client.post('/api/spaces/', {'name': 'Warehouse A'}, format='json')

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body['success'])
        self.assertEqual(body['message'], 'Space created successfully')
        self.assertEqual(body['data']['name'], 'Warehouse A')
        self.assertEqual(body['data']['owner_name'], 'Olive Owner')
        self.assertEqual(body['data']['product_count'], 0)

    def test_create_blank_name_is_400(self):
        response = self.client.post('/api/spaces/', {'name': '   '}, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {
            'success': False,
            'message': 'Space name is required',
            'error': 'validation_error',
        })

    def test_missing_name_is_400(self):
        response = self.client.post('/api/spaces/', {}, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'validation_error')

    def test_list_only_own_spaces(self):
        create_space(self.owner, 'Mine')
        create_space(self.other, 'Theirs')

        response = self.client.get('/api/spaces/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual([s['name'] for s in response.json()['data']], ['Mine'])

    def test_foreign_space_is_404(self):
        space = create_space(self.other, 'Theirs')

        response = self.client.get(f'/api/spaces/{space.pk}/')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['error'], 'not_found')

    def test_rename_and_delete(self):
        space = create_space(self.owner, 'Before')

        response = self.client.patch(f'/api/spaces/{space.pk}/', {'name': 'After'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['name'], 'After')

        response = self.client.delete(f'/api/spaces/{space.pk}/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['message'], 'Space deleted successfully')

        response = self.client.get(f'/api/spaces/{space.pk}/')
        self.assertEqual(response.status_code, 404)

    def test_creation_status(self):
        create_space(self.owner, 'One')

        response = self.client.get('/api/spaces/creation-status/')

        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(data['current_spaces'], 1)
        self.assertEqual(data['max_spaces'], 10)
        self.assertEqual(data['remaining_slots'], 9)
        self.assertTrue(data['can_create_more'])

    def test_requires_authentication(self):
        response = APIClient().get('/api/spaces/')
        self.assertEqual(response.status_code, 401)
