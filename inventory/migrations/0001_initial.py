import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('spaces', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(db_index=True, help_text='Product name for display and search', max_length=200)),
                ('price', models.DecimalField(decimal_places=2, help_text='Unit price (non-negative)', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('current_stock', models.PositiveIntegerField(default=0, help_text='Units currently in stock')),
                ('minimum_quantity', models.PositiveIntegerField(default=0, help_text='Low stock threshold')),
                ('maximum_quantity', models.PositiveIntegerField(default=0, help_text='Advisory reorder ceiling (not enforced on stock additions)')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('space', models.ForeignKey(help_text='Space holding this product', on_delete=django.db.models.deletion.CASCADE, related_name='products', to='spaces.space')),
            ],
            options={
                'verbose_name': 'Product',
                'verbose_name_plural': 'Products',
                'ordering': ['name', 'id'],
                'indexes': [
                    models.Index(fields=['space', 'name'], name='product_space_name_idx'),
                    models.Index(fields=['space', 'current_stock'], name='product_space_stock_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('price__gte', 0)), name='product_price_non_negative'),
                    models.CheckConstraint(condition=models.Q(('minimum_quantity__lte', models.F('maximum_quantity'))), name='product_minimum_not_above_maximum'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockAdjustment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('direction', models.CharField(choices=[('ADD', 'Add'), ('REMOVE', 'Remove')], max_length=10)),
                ('quantity', models.PositiveIntegerField(help_text='Units added or removed', validators=[django.core.validators.MinValueValidator(1)])),
                ('previous_stock', models.PositiveIntegerField()),
                ('resulting_stock', models.PositiveIntegerField()),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('performed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stock_adjustments', to=settings.AUTH_USER_MODEL)),
                ('product', models.ForeignKey(help_text='Adjusted product', on_delete=django.db.models.deletion.CASCADE, related_name='adjustments', to='inventory.product')),
            ],
            options={
                'verbose_name': 'Stock Adjustment',
                'verbose_name_plural': 'Stock Adjustments',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['product', 'created_at'], name='adjustment_product_time_idx'),
                ],
            },
        ),
    ]
