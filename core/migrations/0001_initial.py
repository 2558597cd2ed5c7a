import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('entity_type', models.CharField(choices=[('SPACE', 'Space'), ('PRODUCT', 'Product')], db_index=True, max_length=20)),
                ('entity_id', models.CharField(db_index=True, help_text='Identifier of the affected space or product', max_length=64)),
                ('operation', models.CharField(choices=[('CREATE', 'Create'), ('UPDATE', 'Update'), ('DELETE', 'Delete'), ('STOCK_ADD', 'Stock Added'), ('STOCK_REMOVE', 'Stock Removed')], db_index=True, max_length=20)),
                ('details', models.JSONField(blank=True, default=dict)),
                ('related_entity_id', models.CharField(blank=True, default='', help_text='Parent entity (the space for product operations)', max_length=64)),
                ('related_entity_type', models.CharField(blank=True, default='', max_length=20)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.CharField(blank=True, default='', max_length=500)),
                ('timestamp', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('user', models.ForeignKey(blank=True, help_text='User who performed the operation', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Audit Log',
                'verbose_name_plural': 'Audit Logs',
                'ordering': ['-timestamp', '-id'],
                'indexes': [
                    models.Index(fields=['user', 'timestamp'], name='auditlog_user_time_idx'),
                    models.Index(fields=['entity_type', 'entity_id'], name='auditlog_entity_idx'),
                ],
            },
        ),
    ]
