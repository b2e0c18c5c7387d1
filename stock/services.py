"""
Stock — Service Layer

StockLedger is the only writer of Medicine.stock_quantity. Every change is
a compare-and-swap on the medicine's version followed by one appended
StockMovement, both in the same transaction. Stale reads and lock
timeouts are retried with exponential backoff, then surface as
ConflictError.

  StockLedger          apply an effect (delta / absolute) to one medicine
  MovementRecorder     append + query the movement history
  AdjustmentProcessor  validated manual adjustments (add / remove / set)
  StockService         purchase, sale, return, expiry write-off, bulk set,
                       level / availability queries, reconciliation
  StockQueries         stock overview list and counts

INSERT ONLY: StockMovement rows are never updated or deleted.

@file stock/services.py
"""

import logging
import math
import time
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Callable, Iterable
from uuid import UUID

from django.conf import settings
from django.db import DatabaseError, OperationalError, connection, transaction
from django.db.models import Count, DecimalField, ExpressionWrapper, F, Q, Sum
from django.utils import timezone

from core.constants import AUDIT_ACTION_CREATE, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from core.exceptions import (
    ConflictError,
    InputValidationError,
    InsufficientStockError,
    PersistenceError,
    ResourceNotFoundError,
)
from core.services import AuditService
from medicines.models import Medicine

from .classifier import StockStatus, status_filter
from .effects import Absolute, Delta, MovementEffect
from .filters import StockMovementFilter, StockOverviewFilter
from .models import StockMovement
from .serializers import BulkStockSerializer, StockAdjustmentSerializer

logger = logging.getLogger('pharmaledger')

# lock_not_available, serialization_failure, deadlock_detected
CONTENTION_SQLSTATES = {'55P03', '40001', '40P01'}


def _is_contention(exc: OperationalError) -> bool:
    cause = exc.__cause__
    code = getattr(cause, 'sqlstate', None) or getattr(cause, 'pgcode', None)
    if code in CONTENTION_SQLSTATES:
        return True
    # SQLite reports writer contention as "database is locked"
    return connection.vendor == 'sqlite' and 'locked' in str(exc).lower()


def _actor_or_none(actor):
    if actor is not None and getattr(actor, 'is_authenticated', False):
        return actor
    return None


def _filter_errors(filterset) -> dict[str, list[str]]:
    return {
        name: [error['message'] for error in errors]
        for name, errors in filterset.errors.get_json_data().items()
    }


def _require_positive(quantity, field_name='quantity') -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InputValidationError(detail={field_name: ['Must be a positive integer.']})
    return quantity


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MovementEntry:
    """Descriptive half of a movement; the numbers come from the ledger."""
    movement_type: str
    reference_type: str
    reference_id: str = ''
    adjustment_type: str = ''
    reason: str = ''
    notes: str = ''
    actor: Any = None


@dataclass(frozen=True)
class LedgerChange:
    medicine_id: UUID
    previous_stock: int
    new_stock: int
    version: int
    movement: StockMovement

    @property
    def quantity(self) -> int:
        return self.new_stock - self.previous_stock

    def as_dict(self) -> dict:
        return {
            'medicine_id': str(self.medicine_id),
            'previous_stock': self.previous_stock,
            'new_stock': self.new_stock,
            'movement_id': str(self.movement.pk),
        }


@dataclass
class MovementPage:
    results: list
    total: int
    current_page: int
    per_page: int
    last_page: int

    def meta(self) -> dict:
        return {
            'current_page': self.current_page,
            'per_page': self.per_page,
            'total': self.total,
            'last_page': self.last_page,
        }


@dataclass
class ReconciliationResult:
    medicine_id: UUID
    opening_stock: int
    current_stock: int
    replayed_stock: int
    movement_count: int
    breaks: list[str] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not self.breaks

    def as_dict(self) -> dict:
        return {
            'medicine_id': str(self.medicine_id),
            'opening_stock': self.opening_stock,
            'current_stock': self.current_stock,
            'replayed_stock': self.replayed_stock,
            'movement_count': self.movement_count,
            'consistent': self.is_consistent,
            'breaks': list(self.breaks),
        }


# ---------------------------------------------------------------------------
# Movement history
# ---------------------------------------------------------------------------

class MovementRecorder:
    """Appends movements and reads them back, newest first."""

    @staticmethod
    def append(
        *,
        medicine_id: UUID,
        previous_stock: int,
        new_stock: int,
        ledger_version: int,
        entry: MovementEntry,
    ) -> StockMovement:
        """
        Insert one movement. Must run inside the transaction that changed
        the medicine's stock so the pair commits or rolls back together.
        """
        actor = _actor_or_none(entry.actor)
        movement = StockMovement(
            medicine_id=medicine_id,
            movement_type=entry.movement_type,
            quantity=new_stock - previous_stock,
            previous_stock=previous_stock,
            new_stock=new_stock,
            ledger_version=ledger_version,
            reference_type=entry.reference_type,
            reference_id=str(entry.reference_id or ''),
            adjustment_type=entry.adjustment_type or '',
            reason=entry.reason or '',
            notes=entry.notes or '',
            created_by=actor,
        )
        movement.save()

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='StockMovement',
            object_id=str(movement.pk),
            new_values={
                'medicine_id': str(medicine_id),
                'movement_type': movement.movement_type,
                'quantity': movement.quantity,
                'previous_stock': previous_stock,
                'new_stock': new_stock,
                'ledger_version': ledger_version,
                'reference_type': movement.reference_type,
            },
        )
        return movement

    @staticmethod
    def query(filters=None, page=1, page_size=None) -> MovementPage:
        """
        Filtered, paginated history ordered newest first.

        ``filters`` may hold medicine_id, type, reference_type, date_from,
        date_to and search; unknown keys are ignored. A page past the end
        returns an empty result list with correct totals.
        """
        page = MovementRecorder._parse_positive(page, 'page', default=1)
        page_size = MovementRecorder._parse_positive(
            page_size, 'page_size',
            default=getattr(settings, 'STOCK_MOVEMENTS_PAGE_SIZE', DEFAULT_PAGE_SIZE),
        )
        page_size = min(page_size, MAX_PAGE_SIZE)

        filterset = StockMovementFilter(
            data=filters or {},
            queryset=StockMovement.objects.select_related('medicine', 'created_by'),
        )
        if not filterset.is_valid():
            raise InputValidationError(detail=_filter_errors(filterset))

        qs = filterset.qs.order_by('-created_at', '-ledger_version')
        total = qs.count()
        last_page = max(1, math.ceil(total / page_size))
        offset = (page - 1) * page_size
        results = list(qs[offset:offset + page_size]) if offset < total else []
        return MovementPage(
            results=results,
            total=total,
            current_page=page,
            per_page=page_size,
            last_page=last_page,
        )

    @staticmethod
    def _parse_positive(value, name, *, default) -> int:
        if value in (None, ''):
            return default
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            raise InputValidationError(detail={name: ['Must be an integer.']})
        if parsed < 1:
            raise InputValidationError(detail={name: ['Must be at least 1.']})
        return parsed


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

class StockLedger:
    """
    Applies stock effects to a single medicine with optimistic concurrency.

    The (stock, version) pair is read without locks, the new quantity is
    computed and checked, then a conditional UPDATE ... WHERE version = v
    and the movement insert run in one transaction. Zero rows updated
    means another writer got there first and the whole attempt is redone.
    """

    def __init__(
        self,
        recorder: MovementRecorder | None = None,
        *,
        max_retries: int | None = None,
        retry_backoff_ms: int | None = None,
        lock_timeout_ms: int | None = None,
    ):
        self.recorder = recorder or MovementRecorder()
        self.max_retries = (
            settings.STOCK_LEDGER_MAX_RETRIES if max_retries is None else max_retries
        )
        self.retry_backoff_ms = (
            settings.STOCK_LEDGER_RETRY_BACKOFF_MS if retry_backoff_ms is None else retry_backoff_ms
        )
        self.lock_timeout_ms = (
            settings.STOCK_LEDGER_LOCK_TIMEOUT_MS if lock_timeout_ms is None else lock_timeout_ms
        )

    def apply(
        self,
        medicine_id: UUID,
        effect: MovementEffect,
        entry: MovementEntry,
        *,
        movement_type_for: Callable[[int, int], str] | None = None,
        skip_unchanged: bool = False,
    ) -> LedgerChange | None:
        """
        Apply ``effect`` and record ``entry``; returns the change.

        ``movement_type_for(previous, new)`` picks the movement type from
        the same snapshot the write is checked against. With
        ``skip_unchanged`` an effect that leaves the quantity as it is
        writes nothing and returns None.
        """
        attempt = 0
        while True:
            try:
                change = self._attempt(
                    medicine_id, effect, entry,
                    movement_type_for=movement_type_for,
                    skip_unchanged=skip_unchanged,
                )
            except ConflictError:
                if attempt >= self.max_retries:
                    logger.warning(
                        'Stock conflict on medicine=%s: giving up after %s retries',
                        medicine_id, attempt,
                    )
                    raise
                delay_ms = self.retry_backoff_ms * (2 ** attempt)
                attempt += 1
                logger.warning(
                    'Stock conflict on medicine=%s, retry %s/%s in %sms',
                    medicine_id, attempt, self.max_retries, delay_ms,
                )
                if delay_ms:
                    time.sleep(delay_ms / 1000)
                continue

            if change is None:
                logger.debug('Stock unchanged: medicine=%s', medicine_id)
                return None
            logger.info(
                'Stock %s: medicine=%s %s -> %s (v%s)',
                change.movement.movement_type, medicine_id,
                change.previous_stock, change.new_stock, change.version,
            )
            return change

    def _load_snapshot(self, medicine_id: UUID) -> tuple[int, int]:
        row = (
            Medicine.objects
            .filter(pk=medicine_id, is_deleted=False)
            .values_list('stock_quantity', 'version')
            .first()
        )
        if row is None:
            raise ResourceNotFoundError(detail=f'Medicine {medicine_id} not found.')
        return row

    def _attempt(self, medicine_id, effect, entry, *,
                 movement_type_for=None, skip_unchanged=False) -> LedgerChange | None:
        previous_stock, version = self._load_snapshot(medicine_id)
        new_stock = effect.resolve(previous_stock)
        if new_stock < 0:
            raise InsufficientStockError(
                current_stock=previous_stock,
                requested_stock=new_stock,
                medicine_id=medicine_id,
            )
        if skip_unchanged and new_stock == previous_stock:
            # a no-op only holds if nobody wrote since the snapshot
            if not Medicine.objects.filter(pk=medicine_id, version=version).exists():
                raise ConflictError()
            return None
        if movement_type_for is not None:
            entry = replace(entry, movement_type=movement_type_for(previous_stock, new_stock))

        next_version = version + 1
        try:
            with transaction.atomic():
                self._set_lock_timeout()
                updated = Medicine.objects.filter(
                    pk=medicine_id, version=version, is_deleted=False,
                ).update(
                    stock_quantity=new_stock,
                    version=next_version,
                    updated_at=timezone.now(),
                )
                if not updated:
                    raise ConflictError()
                movement = self.recorder.append(
                    medicine_id=medicine_id,
                    previous_stock=previous_stock,
                    new_stock=new_stock,
                    ledger_version=next_version,
                    entry=entry,
                )
        except OperationalError as exc:
            if _is_contention(exc):
                raise ConflictError() from exc
            logger.exception('Stock write failed for medicine=%s', medicine_id)
            raise PersistenceError() from exc
        except DatabaseError as exc:
            logger.exception('Stock write failed for medicine=%s', medicine_id)
            raise PersistenceError() from exc

        return LedgerChange(
            medicine_id=medicine_id,
            previous_stock=previous_stock,
            new_stock=new_stock,
            version=next_version,
            movement=movement,
        )

    def _set_lock_timeout(self):
        if connection.vendor != 'postgresql' or not self.lock_timeout_ms:
            return
        with connection.cursor() as cursor:
            cursor.execute(
                "SELECT set_config('lock_timeout', %s, true)",
                [f'{int(self.lock_timeout_ms)}ms'],
            )


# ---------------------------------------------------------------------------
# Manual adjustments
# ---------------------------------------------------------------------------

class AdjustmentProcessor:
    def __init__(self, ledger: StockLedger | None = None):
        self.ledger = ledger or StockLedger()

    @staticmethod
    def build_effect(adjustment_type: str, quantity: int) -> MovementEffect:
        if adjustment_type == StockMovement.AdjustmentType.ADD:
            return Delta(quantity)
        if adjustment_type == StockMovement.AdjustmentType.REMOVE:
            return Delta(-quantity)
        if adjustment_type == StockMovement.AdjustmentType.SET:
            return Absolute(quantity)
        raise InputValidationError(detail={'adjustment_type': [f'Unknown adjustment type: {adjustment_type}']})

    def adjust(self, data: dict, *, actor=None) -> LedgerChange:
        """
        Validate and apply one manual adjustment.

        ``data`` carries medicine_id, adjustment_type (add / remove / set),
        quantity (>= 1), reason and optional notes. Removal below zero is
        rejected with InsufficientStockError whatever the reason.
        """
        serializer = StockAdjustmentSerializer(data=data)
        if not serializer.is_valid():
            raise InputValidationError(detail=serializer.errors)
        values = serializer.validated_data

        entry = MovementEntry(
            movement_type=StockMovement.MovementType.ADJUSTMENT,
            reference_type=StockMovement.ReferenceType.ADJUSTMENT,
            adjustment_type=values['adjustment_type'],
            reason=values['reason'],
            notes=values.get('notes') or f"Adjustment: {values['reason']}",
            actor=actor,
        )
        return self.ledger.apply(
            values['medicine_id'],
            self.build_effect(values['adjustment_type'], values['quantity']),
            entry,
        )


# ---------------------------------------------------------------------------
# External flows
# ---------------------------------------------------------------------------

class StockService:
    """Stock changes driven by purchases, sales, returns and stock takes."""

    def __init__(self, ledger: StockLedger | None = None):
        self.ledger = ledger or StockLedger()

    def _move(self, medicine_id, effect, *, movement_type, reference_type,
              reference_id='', notes='', actor=None) -> LedgerChange:
        entry = MovementEntry(
            movement_type=movement_type,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
            actor=actor,
        )
        return self.ledger.apply(medicine_id, effect, entry)

    def receive_purchase(self, *, medicine_id, quantity, reference_id='', notes='', actor=None):
        quantity = _require_positive(quantity)
        return self._move(
            medicine_id, Delta(quantity),
            movement_type=StockMovement.MovementType.IN,
            reference_type=StockMovement.ReferenceType.PURCHASE,
            reference_id=reference_id,
            notes=notes or 'Purchase received',
            actor=actor,
        )

    def process_sale(self, *, medicine_id, quantity, reference_id='', notes='', actor=None):
        quantity = _require_positive(quantity)
        return self._move(
            medicine_id, Delta(-quantity),
            movement_type=StockMovement.MovementType.OUT,
            reference_type=StockMovement.ReferenceType.SALE,
            reference_id=reference_id,
            notes=notes or 'Sale',
            actor=actor,
        )

    def process_return(self, *, medicine_id, quantity, reference_id='', notes='', actor=None):
        quantity = _require_positive(quantity)
        return self._move(
            medicine_id, Delta(quantity),
            movement_type=StockMovement.MovementType.RETURN,
            reference_type=StockMovement.ReferenceType.RETURN,
            reference_id=reference_id,
            notes=notes or 'Customer return',
            actor=actor,
        )

    def write_off_expired(self, *, medicine_id, quantity, reference_id='', notes='', actor=None):
        quantity = _require_positive(quantity)
        return self._move(
            medicine_id, Delta(-quantity),
            movement_type=StockMovement.MovementType.OUT,
            reference_type=StockMovement.ReferenceType.EXPIRED,
            reference_id=reference_id,
            notes=notes or 'Expired stock written off',
            actor=actor,
        )

    @staticmethod
    def _direction(previous_stock: int, new_stock: int) -> str:
        if new_stock > previous_stock:
            return StockMovement.MovementType.IN
        return StockMovement.MovementType.OUT

    def bulk_set_stock(self, items: Iterable[dict], *, actor=None, notes='') -> list[LedgerChange]:
        """
        Set absolute quantities for several medicines, all or nothing.

        ``items`` is a list of {medicine_id, new_stock}. Medicines are
        written in id order; unchanged quantities produce no movement.
        Whether a row is unchanged, and whether it moves in or out, is
        decided against the snapshot the ledger write is checked on.
        """
        serializer = BulkStockSerializer(data={'items': items})
        if not serializer.is_valid():
            raise InputValidationError(detail=serializer.errors)
        rows = sorted(serializer.validated_data['items'], key=lambda row: str(row['medicine_id']))

        entry = MovementEntry(
            movement_type=StockMovement.MovementType.IN,
            reference_type=StockMovement.ReferenceType.ADJUSTMENT,
            notes=notes or 'Bulk stock update',
            actor=actor,
        )
        changes = []
        with transaction.atomic():
            for row in rows:
                change = self.ledger.apply(
                    row['medicine_id'], Absolute(row['new_stock']), entry,
                    movement_type_for=self._direction,
                    skip_unchanged=True,
                )
                if change is not None:
                    changes.append(change)
        logger.info('Bulk stock update: %s of %s medicines changed', len(changes), len(rows))
        return changes

    @staticmethod
    def get_stock_level(medicine_id) -> int:
        level = (
            Medicine.objects
            .filter(pk=medicine_id, is_deleted=False)
            .values_list('stock_quantity', flat=True)
            .first()
        )
        if level is None:
            raise ResourceNotFoundError(detail=f'Medicine {medicine_id} not found.')
        return level

    @staticmethod
    def check_availability(medicine_id, quantity) -> bool:
        quantity = _require_positive(quantity)
        return StockService.get_stock_level(medicine_id) >= quantity

    @staticmethod
    def reconcile(medicine_id) -> ReconciliationResult:
        """
        Replay the medicine's movements in ledger_version order from its
        opening stock and report every place the chain breaks.
        """
        with transaction.atomic():
            medicine = Medicine.objects.filter(pk=medicine_id).first()
            if medicine is None:
                raise ResourceNotFoundError(detail=f'Medicine {medicine_id} not found.')
            movements = list(
                StockMovement.objects
                .filter(medicine_id=medicine_id)
                .order_by('ledger_version')
                .values_list('ledger_version', 'quantity', 'previous_stock', 'new_stock')
            )

        breaks = []
        running = medicine.opening_stock
        for expected_version, (version, quantity, previous, new) in enumerate(movements, start=1):
            if version != expected_version:
                breaks.append(f'v{version}: expected ledger version {expected_version}')
            if previous != running:
                breaks.append(f'v{version}: previous_stock {previous} != running stock {running}')
            if previous + quantity != new:
                breaks.append(f'v{version}: {previous} {quantity:+d} != {new}')
            running = new

        if running != medicine.stock_quantity:
            breaks.append(f'replayed stock {running} != current stock {medicine.stock_quantity}')
        if medicine.version != len(movements):
            breaks.append(f'medicine version {medicine.version} != movement count {len(movements)}')

        result = ReconciliationResult(
            medicine_id=medicine.pk,
            opening_stock=medicine.opening_stock,
            current_stock=medicine.stock_quantity,
            replayed_stock=running,
            movement_count=len(movements),
            breaks=breaks,
        )
        if breaks:
            logger.error(
                'Ledger inconsistency on medicine=%s (%s): %s',
                medicine.pk, medicine.medicine_code, '; '.join(breaks),
            )
        return result

    @staticmethod
    def reconcile_all(medicine_codes=None) -> list[ReconciliationResult]:
        qs = Medicine.objects.filter(is_deleted=False)
        if medicine_codes:
            qs = qs.filter(medicine_code__in=medicine_codes)
        return [
            StockService.reconcile(medicine_id)
            for medicine_id in qs.order_by('medicine_code').values_list('pk', flat=True)
        ]


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------

class StockQueries:
    @staticmethod
    def overview(search=None, category_id=None, stock_status=None):
        """Live medicines, optionally narrowed by text, category and stock status."""
        params = {'search': search, 'category': category_id, 'stock_status': stock_status}
        filterset = StockOverviewFilter(
            data={name: value for name, value in params.items() if value not in (None, '')},
            queryset=Medicine.objects.filter(is_deleted=False).select_related('category'),
        )
        if not filterset.is_valid():
            raise InputValidationError(detail=_filter_errors(filterset))
        return filterset.qs.order_by('name', 'pk')

    @staticmethod
    def overview_stats() -> dict:
        stock_value = ExpressionWrapper(
            F('stock_quantity') * F('sale_price'),
            output_field=DecimalField(max_digits=20, decimal_places=2),
        )
        stats = Medicine.objects.filter(is_deleted=False).aggregate(
            total_items=Count('pk'),
            in_stock=Count('pk', filter=status_filter(StockStatus.IN_STOCK)),
            low_stock=Count('pk', filter=status_filter(StockStatus.LOW_STOCK)),
            critical=Count('pk', filter=status_filter(StockStatus.CRITICAL)),
            out_of_stock=Count('pk', filter=status_filter(StockStatus.OUT_OF_STOCK)),
            total_value=Sum(stock_value, filter=Q(stock_quantity__gt=0)),
        )
        stats['total_value'] = stats['total_value'] or Decimal('0.00')
        return stats
