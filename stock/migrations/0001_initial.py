import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('medicines', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='StockMovement',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('movement_type', models.CharField(choices=[('in', 'In'), ('out', 'Out'), ('adjustment', 'Adjustment'), ('return', 'Return')], db_index=True, max_length=12, verbose_name='type')),
                ('quantity', models.IntegerField(verbose_name='quantity')),
                ('previous_stock', models.PositiveIntegerField(verbose_name='previous stock')),
                ('new_stock', models.PositiveIntegerField(verbose_name='new stock')),
                ('ledger_version', models.PositiveIntegerField(verbose_name='ledger version')),
                ('reference_type', models.CharField(choices=[('purchase', 'Purchase'), ('sale', 'Sale'), ('adjustment', 'Adjustment'), ('return', 'Return'), ('expired', 'Expired')], db_index=True, max_length=12, verbose_name='reference type')),
                ('reference_id', models.CharField(blank=True, help_text='Identifier of the sale, purchase or return that caused the movement', max_length=64, verbose_name='reference ID')),
                ('adjustment_type', models.CharField(blank=True, choices=[('add', 'Add'), ('remove', 'Remove'), ('set', 'Set')], max_length=8, verbose_name='adjustment type')),
                ('reason', models.CharField(blank=True, choices=[('purchase', 'Purchase'), ('damage', 'Damage'), ('return', 'Return'), ('correction', 'Correction'), ('donation', 'Donation'), ('transfer', 'Transfer'), ('other', 'Other')], max_length=12, verbose_name='reason')),
                ('notes', models.TextField(blank=True, verbose_name='notes')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='created at')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='created by')),
                ('medicine', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='stock_movements', to='medicines.medicine', verbose_name='medicine')),
            ],
            options={
                'verbose_name': 'stock movement',
                'verbose_name_plural': 'stock movements',
                'ordering': ['-created_at', '-ledger_version'],
                'indexes': [
                    models.Index(fields=['medicine', 'created_at'], name='stock_medicine_created_idx'),
                    models.Index(fields=['reference_type', 'created_at'], name='stock_reftype_created_idx'),
                    models.Index(fields=['created_by', 'created_at'], name='stock_created_by_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('medicine', 'ledger_version'), name='stock_unique_medicine_version'),
                    models.CheckConstraint(condition=models.Q(('new_stock', models.F('previous_stock') + models.F('quantity'))), name='stock_movement_reconciles'),
                ],
            },
        ),
    ]
