"""
Stock — Celery Tasks

Periodic ledger reconciliation.

@file stock/tasks.py
"""

import logging

from celery import shared_task

logger = logging.getLogger('pharmaledger')


@shared_task(name='stock.reconcile_ledger')
def reconcile_ledger_task():
    """
    Nightly task: replay every live medicine's movements and report the
    ones whose history no longer reproduces their stock.
    Registered with Celery Beat.
    """
    from .services import StockService

    results = StockService.reconcile_all()
    inconsistent = [str(result.medicine_id) for result in results if not result.is_consistent]
    logger.info(
        'reconcile_ledger_task completed: %d checked, %d inconsistent.',
        len(results), len(inconsistent),
    )
    return {
        'checked': len(results),
        'inconsistent': inconsistent,
    }
