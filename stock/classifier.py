"""
Stock — Reorder Classifier

Stock health derived from the current quantity and the reorder level.
No stored state. ``status_filter`` is the same rule expressed as an ORM
filter so list screens and counts agree with ``classify``.

@file stock/classifier.py
"""

from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _


class StockStatus(models.TextChoices):
    IN_STOCK = 'in_stock', _('In Stock')
    LOW_STOCK = 'low_stock', _('Low Stock')
    CRITICAL = 'critical', _('Critical')
    OUT_OF_STOCK = 'out_of_stock', _('Out of Stock')


def classify(stock_quantity: int, reorder_level: int) -> str:
    """
    out_of_stock  quantity <= 0
    critical      quantity <= reorder_level * 0.5
    low_stock     quantity <= reorder_level
    in_stock      otherwise

    With reorder_level == 0 only out_of_stock and in_stock are reachable.
    """
    if stock_quantity <= 0:
        return StockStatus.OUT_OF_STOCK
    # q <= r * 0.5  <=>  2q <= r, kept in integers
    if stock_quantity * 2 <= reorder_level:
        return StockStatus.CRITICAL
    if stock_quantity <= reorder_level:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def status_filter(status: str) -> Q:
    """Q matching medicines whose classify() result is ``status``."""
    positive = Q(stock_quantity__gt=0)
    # integer division: q <= r // 2  <=>  2q <= r for non-negative r
    critical = Q(stock_quantity__lte=F('reorder_level') / 2)
    low = Q(stock_quantity__lte=F('reorder_level'))

    if status == StockStatus.OUT_OF_STOCK:
        return Q(stock_quantity__lte=0)
    if status == StockStatus.CRITICAL:
        return positive & critical
    if status == StockStatus.LOW_STOCK:
        return positive & low & ~critical
    if status == StockStatus.IN_STOCK:
        return positive & ~low
    raise ValueError(f'Unknown stock status: {status}')
