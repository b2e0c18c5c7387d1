"""
Tests — reconciliation task and management command.

@file stock/tests/test_tasks.py
"""

from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from medicines.models import Medicine
from stock.services import StockService
from stock.tasks import reconcile_ledger_task
from tests.factories import MedicineFactory


pytestmark = pytest.mark.django_db


class TestReconcileLedgerTask:

    def test_all_consistent(self):
        medicine = MedicineFactory(stock_quantity=10)
        StockService().process_sale(medicine_id=medicine.pk, quantity=4)
        MedicineFactory()

        result = reconcile_ledger_task.delay().get()

        assert result == {'checked': 2, 'inconsistent': []}

    def test_reports_broken_medicines(self):
        broken = MedicineFactory(stock_quantity=10)
        Medicine.objects.filter(pk=broken.pk).update(stock_quantity=11)

        result = reconcile_ledger_task()

        assert result == {'checked': 1, 'inconsistent': [str(broken.pk)]}


class TestReconcileStockCommand:

    def test_success(self):
        MedicineFactory(medicine_code='AMX-500')
        out = StringIO()

        call_command('reconcile_stock', stdout=out)

        assert 'OK      AMX-500' in out.getvalue()
        assert '1 medicines reconciled' in out.getvalue()

    def test_break_fails_command(self):
        broken = MedicineFactory(medicine_code='PCM-1G')
        Medicine.objects.filter(pk=broken.pk).update(stock_quantity=0)
        out = StringIO()

        with pytest.raises(CommandError, match='1 of 1'):
            call_command('reconcile_stock', stdout=out)

        assert 'BROKEN  PCM-1G' in out.getvalue()

    def test_single_medicine(self):
        MedicineFactory(medicine_code='AMX-500')
        broken = MedicineFactory(medicine_code='PCM-1G')
        Medicine.objects.filter(pk=broken.pk).update(stock_quantity=0)
        out = StringIO()

        call_command('reconcile_stock', '--medicine', 'AMX-500', stdout=out)

        assert 'PCM-1G' not in out.getvalue()

    def test_unknown_code(self):
        with pytest.raises(CommandError, match='NOPE'):
            call_command('reconcile_stock', '--medicine', 'NOPE', stdout=StringIO())
