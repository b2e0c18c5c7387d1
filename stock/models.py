"""
Stock — Models

Immutable stock movements. Every ledger write on a medicine produces
exactly one row carrying the quantity before and after the change, so the
medicine's current stock can be reconciled by replaying its rows in
ledger_version order from its opening stock.

Records are INSERT ONLY and are never updated or deleted.

@file stock/models.py
"""

import uuid

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import InsertOnlyQuerySet


class StockMovement(models.Model):
    """
    One change of a medicine's stock_quantity.

    ``quantity`` is the signed effect, always ``new_stock - previous_stock``
    (``set`` adjustments included). ``ledger_version`` is the medicine
    version produced by this change: unique per medicine, gap-free, and
    the replay order.
    """

    class MovementType(models.TextChoices):
        IN = 'in', _('In')
        OUT = 'out', _('Out')
        ADJUSTMENT = 'adjustment', _('Adjustment')
        RETURN = 'return', _('Return')

    class ReferenceType(models.TextChoices):
        PURCHASE = 'purchase', _('Purchase')
        SALE = 'sale', _('Sale')
        ADJUSTMENT = 'adjustment', _('Adjustment')
        RETURN = 'return', _('Return')
        EXPIRED = 'expired', _('Expired')

    class AdjustmentType(models.TextChoices):
        ADD = 'add', _('Add')
        REMOVE = 'remove', _('Remove')
        SET = 'set', _('Set')

    class Reason(models.TextChoices):
        PURCHASE = 'purchase', _('Purchase')
        DAMAGE = 'damage', _('Damage')
        RETURN = 'return', _('Return')
        CORRECTION = 'correction', _('Correction')
        DONATION = 'donation', _('Donation')
        TRANSFER = 'transfer', _('Transfer')
        OTHER = 'other', _('Other')

    id = models.UUIDField(
        primary_key=True, default=uuid.uuid4, editable=False,
    )
    medicine = models.ForeignKey(
        'medicines.Medicine',
        on_delete=models.PROTECT,
        related_name='stock_movements',
        verbose_name=_('medicine'),
    )
    movement_type = models.CharField(
        _('type'), max_length=12,
        choices=MovementType.choices, db_index=True,
    )
    quantity = models.IntegerField(_('quantity'))
    previous_stock = models.PositiveIntegerField(_('previous stock'))
    new_stock = models.PositiveIntegerField(_('new stock'))
    ledger_version = models.PositiveIntegerField(_('ledger version'))
    reference_type = models.CharField(
        _('reference type'), max_length=12,
        choices=ReferenceType.choices, db_index=True,
    )
    reference_id = models.CharField(
        _('reference ID'), max_length=64, blank=True,
        help_text=_('Identifier of the sale, purchase or return that caused the movement'),
    )
    adjustment_type = models.CharField(
        _('adjustment type'), max_length=8,
        choices=AdjustmentType.choices, blank=True,
    )
    reason = models.CharField(
        _('reason'), max_length=12,
        choices=Reason.choices, blank=True,
    )
    notes = models.TextField(_('notes'), blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('created by'),
    )
    created_at = models.DateTimeField(
        _('created at'), auto_now_add=True, db_index=True,
    )
    # No updated_at: immutable record.

    objects = InsertOnlyQuerySet.as_manager()

    class Meta:
        verbose_name = _('stock movement')
        verbose_name_plural = _('stock movements')
        ordering = ['-created_at', '-ledger_version']
        indexes = [
            models.Index(fields=['medicine', 'created_at'], name='stock_medicine_created_idx'),
            models.Index(fields=['reference_type', 'created_at'], name='stock_reftype_created_idx'),
            models.Index(fields=['created_by', 'created_at'], name='stock_created_by_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['medicine', 'ledger_version'],
                name='stock_unique_medicine_version',
            ),
            models.CheckConstraint(
                condition=models.Q(new_stock=models.F('previous_stock') + models.F('quantity')),
                name='stock_movement_reconciles',
            ),
        ]

    def __str__(self):
        return (
            f'{self.movement_type} {self.quantity:+d} medicine={self.medicine_id} '
            f'{self.previous_stock}->{self.new_stock}'
        )

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise NotImplementedError('StockMovement is insert-only; updates are not allowed.')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise NotImplementedError('StockMovement records cannot be deleted.')
