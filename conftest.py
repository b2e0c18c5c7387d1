"""
PharmaLedger — Root conftest for pytest

Shared fixtures available to all test modules.

@file conftest.py
"""

import pytest
from rest_framework.test import APIClient

from stock.services import StockLedger
from tests.factories import MedicineFactory, SuperuserFactory, UserFactory


@pytest.fixture
def api_client():
    """Unauthenticated DRF test client."""
    return APIClient()


@pytest.fixture
def user(db):
    """Pharmacist account, password TestPass2026!"""
    return UserFactory()


@pytest.fixture
def admin_user(db):
    return SuperuserFactory()


@pytest.fixture
def authenticated_client(api_client, user):
    api_client.force_authenticate(user=user)
    return api_client


@pytest.fixture
def medicine(db):
    """50 units on hand, reorder at 20 -> in_stock."""
    return MedicineFactory(stock_quantity=50, reorder_level=20)


@pytest.fixture
def ledger():
    """Ledger with no retry backoff."""
    return StockLedger(retry_backoff_ms=0)
