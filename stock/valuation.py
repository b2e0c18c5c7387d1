"""
Stock — Inventory Valuation

Value = stock_quantity x sale_price per live medicine, summed overall and
grouped by category and by stock status. Every figure in one report is
computed from a single snapshot read, so a concurrent ledger write cannot
make the groups disagree with the total.

@file stock/valuation.py
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.exceptions import InputValidationError
from medicines.models import Medicine

from .classifier import StockStatus, classify

logger = logging.getLogger('pharmaledger')

UNCATEGORIZED = 'Uncategorized'
ZERO = Decimal('0.00')


@dataclass(frozen=True)
class StockLine:
    medicine_id: UUID
    medicine_code: str
    name: str
    category_id: UUID | None
    category_name: str | None
    stock_quantity: int
    reorder_level: int
    sale_price: Decimal

    @property
    def value(self) -> Decimal:
        return self.stock_quantity * self.sale_price

    @property
    def status(self) -> str:
        return classify(self.stock_quantity, self.reorder_level)


@dataclass(frozen=True)
class InventorySnapshot:
    lines: tuple[StockLine, ...]
    taken_at: datetime

    @property
    def total_value(self) -> Decimal:
        return sum((line.value for line in self.lines), ZERO)

    @property
    def total_units(self) -> int:
        return sum(line.stock_quantity for line in self.lines)


def _percentage(value: Decimal, total: Decimal) -> float:
    if not total:
        return 0.0
    return float(value * 100 / total)


class ValuationAggregator:
    """
    Inventory valuation over a snapshot.

    Each method takes an optional snapshot; without one it reads a fresh
    snapshot. Pass the same snapshot to several methods (as ``report``
    does) to get mutually consistent figures.
    """

    def __init__(self, top_limit: int | None = None):
        self.top_limit = (
            settings.STOCK_TOP_VALUED_LIMIT if top_limit is None else top_limit
        )

    @staticmethod
    def snapshot() -> InventorySnapshot:
        with transaction.atomic():
            rows = (
                Medicine.objects
                .filter(is_deleted=False)
                .values_list(
                    'pk', 'medicine_code', 'name', 'category_id', 'category__name',
                    'stock_quantity', 'reorder_level', 'sale_price',
                )
            )
            lines = tuple(StockLine(*row) for row in rows)
        return InventorySnapshot(lines=lines, taken_at=timezone.now())

    def total_value(self, snapshot: InventorySnapshot | None = None) -> Decimal:
        snapshot = snapshot or self.snapshot()
        return snapshot.total_value

    def by_category(self, snapshot: InventorySnapshot | None = None) -> list[dict]:
        snapshot = snapshot or self.snapshot()
        total = snapshot.total_value

        groups: dict = OrderedDict()
        for line in snapshot.lines:
            group = groups.setdefault(line.category_id, {
                'category_id': str(line.category_id) if line.category_id else None,
                'category': line.category_name or UNCATEGORIZED,
                'item_count': 0,
                'total_units': 0,
                'total_value': ZERO,
            })
            group['item_count'] += 1
            group['total_units'] += line.stock_quantity
            group['total_value'] += line.value

        result = sorted(groups.values(), key=lambda g: (-g['total_value'], g['category']))
        for group in result:
            group['percentage'] = _percentage(group['total_value'], total)
        return result

    def by_status(self, snapshot: InventorySnapshot | None = None) -> list[dict]:
        """One entry per StockStatus, in declaration order, empty groups included."""
        snapshot = snapshot or self.snapshot()
        total = snapshot.total_value

        groups = OrderedDict(
            (status, {
                'status': status.value,
                'label': str(status.label),
                'item_count': 0,
                'total_value': ZERO,
            })
            for status in StockStatus
        )
        for line in snapshot.lines:
            group = groups[StockStatus(line.status)]
            group['item_count'] += 1
            group['total_value'] += line.value

        for group in groups.values():
            group['percentage'] = _percentage(group['total_value'], total)
        return list(groups.values())

    def top_valued(self, n: int | None = None, snapshot: InventorySnapshot | None = None) -> list[dict]:
        """Highest stock value first; equal values ordered by medicine id."""
        n = self.top_limit if n is None else n
        if isinstance(n, bool) or not isinstance(n, int) or n < 0:
            raise InputValidationError(detail={'top': ['Must be a non-negative integer.']})
        snapshot = snapshot or self.snapshot()

        ranked = sorted(snapshot.lines, key=lambda line: (-line.value, str(line.medicine_id)))
        return [
            {
                'medicine_id': str(line.medicine_id),
                'medicine_code': line.medicine_code,
                'name': line.name,
                'category': line.category_name or UNCATEGORIZED,
                'stock_quantity': line.stock_quantity,
                'sale_price': line.sale_price,
                'total_value': line.value,
                'status': line.status,
            }
            for line in ranked[:n]
        ]

    def report(self, top: int | None = None) -> dict:
        snapshot = self.snapshot()
        report = {
            'total_value': snapshot.total_value,
            'total_items': len(snapshot.lines),
            'total_units': snapshot.total_units,
            'by_category': self.by_category(snapshot),
            'by_status': self.by_status(snapshot),
            'top_valued': self.top_valued(top, snapshot),
            'generated_at': snapshot.taken_at,
        }
        logger.debug(
            'Valuation report: %s items, total=%s', report['total_items'], report['total_value'],
        )
        return report
