"""
Medicines — Models

Hospital pharmacy catalog. A Medicine carries the authoritative
stock_quantity, but that field is written only by the stock ledger
(stock.services.StockLedger); catalog management creates and retires
entries.

@file medicines/models.py
"""

from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import RegulatedModel

LEDGER_FIELDS = ('stock_quantity', 'opening_stock', 'version')


class MedicineCategory(RegulatedModel):
    name = models.CharField(_('name'), max_length=150, unique=True)
    description = models.TextField(_('description'), blank=True)

    class Meta:
        verbose_name = _('medicine category')
        verbose_name_plural = _('medicine categories')
        ordering = ['name']

    def __str__(self):
        return self.name


class Medicine(RegulatedModel):
    """
    A stocked medicine.

    ``version`` increments on every ledger write and is the optimistic
    concurrency token. ``opening_stock`` records the quantity the entry
    was created with; replaying every movement from it must reproduce
    ``stock_quantity``.
    """

    medicine_code = models.CharField(
        _('medicine code'), max_length=50, unique=True,
    )
    name = models.CharField(_('name'), max_length=255, db_index=True)
    category = models.ForeignKey(
        MedicineCategory,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='medicines',
        verbose_name=_('category'),
    )
    manufacturer = models.CharField(_('manufacturer'), max_length=255, blank=True)
    strength = models.CharField(_('strength'), max_length=100, blank=True)

    stock_quantity = models.PositiveIntegerField(_('stock quantity'), default=0)
    opening_stock = models.PositiveIntegerField(
        _('opening stock'), default=0, editable=False,
    )
    reorder_level = models.PositiveIntegerField(_('reorder level'), default=0)
    unit_cost = models.DecimalField(
        _('unit cost'), max_digits=12, decimal_places=2,
        validators=[MinValueValidator(0)],
    )
    sale_price = models.DecimalField(
        _('sale price'), max_digits=12, decimal_places=2,
        validators=[MinValueValidator(0)],
    )
    version = models.PositiveIntegerField(_('ledger version'), default=0, editable=False)

    class Meta:
        verbose_name = _('medicine')
        verbose_name_plural = _('medicines')
        ordering = ['name']
        indexes = [
            models.Index(fields=['category', 'is_deleted'], name='medicine_category_live_idx'),
            models.Index(fields=['stock_quantity', 'reorder_level'], name='medicine_stock_reorder_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(stock_quantity__gte=0),
                name='medicine_stock_non_negative',
            ),
            models.CheckConstraint(
                condition=models.Q(reorder_level__gte=0),
                name='medicine_reorder_level_non_negative',
            ),
        ]

    def __str__(self):
        return f'{self.name} ({self.medicine_code})'

    def save(self, *args, **kwargs):
        if self._state.adding:
            self.opening_stock = self.stock_quantity
        elif kwargs.get('update_fields') is None:
            # catalog edits never write ledger-owned columns
            kwargs['update_fields'] = [
                f.name for f in self._meta.concrete_fields
                if not f.primary_key and f.name not in LEDGER_FIELDS
            ]
        super().save(*args, **kwargs)

    @property
    def status(self) -> str:
        from stock.classifier import classify

        return classify(self.stock_quantity, self.reorder_level)

    @property
    def stock_value(self):
        return self.stock_quantity * self.sale_price
