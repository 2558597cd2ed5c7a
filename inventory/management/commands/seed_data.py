"""
Management command to seed the database with sample spaces and products.

Generates, for one user:
- Spaces up to the per-owner limit
- Products with random prices, stock levels and thresholds

Usage:
    python manage.py seed_data --username demo
    python manage.py seed_data --username demo --clear  # Remove the user's spaces first
"""
import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from core.exceptions import ValidationError
from inventory import services as product_services
from spaces import services as space_services
from spaces.models import Space


SPACE_NAMES = [
    'Main Warehouse', 'Downtown Store', 'Garage', 'Kitchen Pantry', 'Office Supplies',
    'Workshop', 'Storage Unit', 'Basement', 'Studio', 'Pop-up Shop',
]

PRODUCT_NAMES = [
    'Wireless Headphones', 'USB-C Cable', 'Power Bank', 'Laptop Stand', 'Gaming Mouse',
    'Cotton T-Shirt', 'Rain Jacket', 'Garden Hose', 'LED Light Bulbs', 'Storage Bins',
    'Yoga Mat', 'Water Bottle', 'Camping Tent', 'Cookbook', 'Board Game',
    'Printer Paper', 'Stapler', 'Coffee Beans', 'Olive Oil', 'Screwdriver Set',
]

ADJECTIVES = ['Premium', 'Classic', 'Compact', 'Portable', 'Essential', 'Eco-Friendly']


class Command(BaseCommand):
    help = 'Seed the database with sample spaces and products for a user'

    def add_arguments(self, parser):
        parser.add_argument(
            '--username',
            default='demo',
            help='Owner of the seeded data; created if missing (default: demo)',
        )
        parser.add_argument(
            '--clear',
            action='store_true',
            help="Delete the user's existing spaces before seeding",
        )
        parser.add_argument(
            '--spaces',
            type=int,
            default=3,
            help='Number of spaces to create (default: 3)',
        )
        parser.add_argument(
            '--products',
            type=int,
            default=10,
            help='Number of products per space (default: 10)',
        )

    def handle(self, *args, **options):
        User = get_user_model()
        user, created = User.objects.get_or_create(username=options['username'])
        if created:
            user.set_unusable_password()
            user.save()
            self.stdout.write(f"Created user: {user.username}")

        if options['clear']:
            deleted, _ = Space.objects.filter(owner=user).delete()
            self.stdout.write(self.style.WARNING(f'Removed {deleted} existing records.'))

        self.stdout.write('Starting database seeding...')

        with transaction.atomic():
            spaces = self._create_spaces(user, options['spaces'])
            for space in spaces:
                self._create_products(user, space, options['products'])

        self.stdout.write(self.style.SUCCESS('Database seeding completed successfully!'))

    def _create_spaces(self, user, count):
        spaces = []
        available = [name for name in SPACE_NAMES if not Space.objects.filter(owner=user, name=name).exists()]
        for name in available[:count]:
            try:
                space = space_services.create_space(user, name)
            except ValidationError as e:
                raise CommandError(e.message)
            spaces.append(space)
            self.stdout.write(f'  Created space: {name}')

        self.stdout.write(self.style.SUCCESS(f'Created {len(spaces)} spaces'))
        return spaces

    def _create_products(self, user, space, count):
        for i in range(count):
            name = f"{random.choice(ADJECTIVES)} {random.choice(PRODUCT_NAMES)} #{i + 1}"
            minimum = random.randint(0, 20)
            maximum = random.randint(minimum, minimum + 200)
            product_services.create_product(
                space.pk,
                name,
                Decimal(str(round(random.uniform(1, 500), 2))),
                random.randint(0, maximum),
                minimum,
                maximum,
                owner=user,
            )

        self.stdout.write(f'  Created {count} products in {space.name}')
