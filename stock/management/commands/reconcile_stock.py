"""
Stock — Management Command: reconcile_stock

Replays the movement history of every live medicine (or only the ones
named) and reports whether it reproduces the current stock.

Usage::

    python manage.py reconcile_stock
    python manage.py reconcile_stock --medicine AMX-500 --medicine PCM-1G

Exits with an error when any medicine fails to reconcile.

@file stock/management/commands/reconcile_stock.py
"""

from django.core.management.base import BaseCommand, CommandError

from medicines.models import Medicine
from stock.services import StockService


class Command(BaseCommand):
    help = 'Check that every medicine\'s movement history reproduces its stock.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--medicine',
            action='append',
            dest='codes',
            metavar='CODE',
            help='Medicine code to check (repeatable). Defaults to all live medicines.',
        )

    def handle(self, *args, **options):
        codes = options.get('codes') or []
        if codes:
            known = set(
                Medicine.objects.filter(medicine_code__in=codes, is_deleted=False)
                .values_list('medicine_code', flat=True)
            )
            missing = sorted(set(codes) - known)
            if missing:
                raise CommandError(f'Unknown medicine code(s): {", ".join(missing)}')

        results = StockService.reconcile_all(medicine_codes=codes)
        codes_by_id = dict(
            Medicine.objects.filter(pk__in=[r.medicine_id for r in results])
            .values_list('pk', 'medicine_code')
        )

        broken = 0
        for result in results:
            code = codes_by_id.get(result.medicine_id, result.medicine_id)
            if result.is_consistent:
                self.stdout.write(
                    f'  OK      {code}: {result.movement_count} movements, stock {result.current_stock}'
                )
                continue
            broken += 1
            self.stdout.write(self.style.ERROR(f'  BROKEN  {code}'))
            for line in result.breaks:
                self.stdout.write(f'          {line}')

        if broken:
            raise CommandError(f'{broken} of {len(results)} medicines failed to reconcile.')
        self.stdout.write(self.style.SUCCESS(f'Done. {len(results)} medicines reconciled.'))
