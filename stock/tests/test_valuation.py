"""
Tests — inventory valuation.

@file stock/tests/test_valuation.py
"""

from decimal import Decimal

import pytest

from core.exceptions import InputValidationError
from stock.classifier import StockStatus
from stock.effects import Delta
from stock.services import MovementEntry
from stock.valuation import UNCATEGORIZED, ValuationAggregator
from tests.factories import MedicineCategoryFactory, MedicineFactory


pytestmark = pytest.mark.django_db


@pytest.fixture
def two_medicines():
    """A: 10 x 5.00 = 50 (in stock), B: 5 x 20.00 = 100 (critical)."""
    antibiotics = MedicineCategoryFactory(name='Antibiotics')
    analgesics = MedicineCategoryFactory(name='Analgesics')
    return (
        MedicineFactory(name='A', stock_quantity=10, reorder_level=5,
                        sale_price=Decimal('5.00'), category=antibiotics),
        MedicineFactory(name='B', stock_quantity=5, reorder_level=10,
                        sale_price=Decimal('20.00'), category=analgesics),
    )


class TestValuationAggregator:

    def test_total_value(self, two_medicines):
        assert ValuationAggregator().total_value() == Decimal('150.00')

    def test_by_category(self, two_medicines):
        groups = ValuationAggregator().by_category()

        assert [g['category'] for g in groups] == ['Analgesics', 'Antibiotics']
        assert groups[0]['total_value'] == Decimal('100.00')
        assert groups[0]['percentage'] == pytest.approx(66.6667, abs=0.001)
        assert groups[1]['percentage'] == pytest.approx(33.3333, abs=0.001)
        assert sum(g['percentage'] for g in groups) == pytest.approx(100, abs=0.01)

    def test_uncategorized_group(self):
        MedicineFactory(category=None, stock_quantity=2, sale_price=Decimal('1.00'))
        groups = ValuationAggregator().by_category()
        assert groups == [{
            'category_id': None,
            'category': UNCATEGORIZED,
            'item_count': 1,
            'total_units': 2,
            'total_value': Decimal('2.00'),
            'percentage': 100.0,
        }]

    def test_by_status_lists_every_status_in_order(self, two_medicines):
        groups = ValuationAggregator().by_status()

        assert [g['status'] for g in groups] == [s.value for s in StockStatus]
        by_key = {g['status']: g for g in groups}
        assert by_key['in_stock']['total_value'] == Decimal('50.00')
        assert by_key['critical']['total_value'] == Decimal('100.00')
        assert by_key['low_stock']['item_count'] == 0
        assert by_key['out_of_stock']['percentage'] == 0.0
        assert sum(g['percentage'] for g in groups) == pytest.approx(100, abs=0.01)

    def test_top_valued(self, two_medicines):
        a, b = two_medicines
        top = ValuationAggregator().top_valued(5)
        assert [row['medicine_id'] for row in top] == [str(b.pk), str(a.pk)]
        assert top[0]['total_value'] == Decimal('100.00')

    def test_top_valued_limit(self, two_medicines):
        assert len(ValuationAggregator().top_valued(1)) == 1
        assert ValuationAggregator().top_valued(0) == []
        assert len(ValuationAggregator(top_limit=1).top_valued()) == 1

    def test_top_valued_ties_ordered_by_id(self):
        medicines = [MedicineFactory(stock_quantity=1, sale_price=Decimal('3.00')) for _ in range(4)]
        top = ValuationAggregator().top_valued(4)
        assert [row['medicine_id'] for row in top] == sorted(str(m.pk) for m in medicines)

    def test_negative_top_rejected(self):
        with pytest.raises(InputValidationError):
            ValuationAggregator().top_valued(-1)

    def test_zero_total_gives_zero_percentages(self):
        MedicineFactory(stock_quantity=0)
        MedicineFactory(stock_quantity=3, sale_price=Decimal('0.00'))

        aggregator = ValuationAggregator()
        assert aggregator.total_value() == 0
        assert all(g['percentage'] == 0.0 for g in aggregator.by_category())
        assert all(g['percentage'] == 0.0 for g in aggregator.by_status())

    def test_empty_inventory(self):
        report = ValuationAggregator().report()
        assert report['total_value'] == 0
        assert report['total_items'] == 0
        assert report['by_category'] == []
        assert len(report['by_status']) == 4
        assert report['top_valued'] == []

    def test_retired_medicines_excluded(self, two_medicines):
        two_medicines[1].soft_delete()
        assert ValuationAggregator().total_value() == Decimal('50.00')

    def test_report_figures_agree(self, two_medicines):
        report = ValuationAggregator().report(top=1)

        assert report['total_value'] == Decimal('150.00')
        assert report['total_items'] == 2
        assert report['total_units'] == 15
        assert sum(g['total_value'] for g in report['by_category']) == report['total_value']
        assert sum(g['total_value'] for g in report['by_status']) == report['total_value']
        assert len(report['top_valued']) == 1

    def test_snapshot_is_isolated_from_later_writes(self, two_medicines, ledger):
        a, _ = two_medicines
        aggregator = ValuationAggregator()
        snapshot = aggregator.snapshot()

        ledger.apply(a.pk, Delta(100), MovementEntry(movement_type='in', reference_type='purchase'))

        assert aggregator.total_value(snapshot) == Decimal('150.00')
        assert aggregator.total_value() == Decimal('650.00')
