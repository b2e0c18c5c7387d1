"""
Tests — reorder classification and ledger effects.

@file stock/tests/test_classifier.py
"""

import pytest

from medicines.models import Medicine
from stock.classifier import StockStatus, classify, status_filter
from stock.effects import Absolute, Delta
from tests.factories import MedicineFactory


class TestClassify:

    @pytest.mark.parametrize('quantity, expected', [
        (0, StockStatus.OUT_OF_STOCK),
        (1, StockStatus.CRITICAL),
        (10, StockStatus.CRITICAL),
        (11, StockStatus.LOW_STOCK),
        (15, StockStatus.LOW_STOCK),
        (20, StockStatus.LOW_STOCK),
        (21, StockStatus.IN_STOCK),
        (25, StockStatus.IN_STOCK),
    ])
    def test_reorder_level_twenty(self, quantity, expected):
        assert classify(quantity, 20) == expected

    def test_odd_reorder_level_half_boundary(self):
        # half of 11 is 5.5
        assert classify(5, 11) == StockStatus.CRITICAL
        assert classify(6, 11) == StockStatus.LOW_STOCK

    def test_zero_reorder_level_only_in_or_out(self):
        assert classify(0, 0) == StockStatus.OUT_OF_STOCK
        assert classify(1, 0) == StockStatus.IN_STOCK
        assert classify(500, 0) == StockStatus.IN_STOCK

    def test_labels(self):
        assert StockStatus.OUT_OF_STOCK.label == 'Out of Stock'
        assert StockStatus.IN_STOCK.value == 'in_stock'


@pytest.mark.django_db
class TestStatusFilter:

    def test_filter_agrees_with_classify(self):
        for quantity, reorder in [(0, 20), (1, 20), (10, 20), (11, 20), (20, 20), (21, 20),
                                  (5, 11), (6, 11), (0, 0), (3, 0), (1, 1), (1, 2), (2, 3)]:
            MedicineFactory(stock_quantity=quantity, reorder_level=reorder)

        for status in StockStatus:
            filtered = set(Medicine.objects.filter(status_filter(status)).values_list('pk', flat=True))
            expected = {m.pk for m in Medicine.objects.all() if m.status == status}
            assert filtered == expected, status

    def test_unknown_status(self):
        with pytest.raises(ValueError):
            status_filter('discontinued')


class TestEffects:

    def test_delta(self):
        assert Delta(30).resolve(100) == 130
        assert Delta(-10).resolve(5) == -5

    def test_absolute_ignores_current(self):
        assert Absolute(7).resolve(100) == 7
        assert Absolute(0).resolve(0) == 0

    def test_effects_are_immutable(self):
        effect = Delta(1)
        with pytest.raises(AttributeError):
            effect.amount = 2
