"""
Core — Model Tests

Tests for AuditLog, AuditService and the soft-delete mixin.

@file core/tests/test_models.py
"""

import pytest
from django.contrib.auth.models import AnonymousUser

from core.models import AuditLog
from core.services import AuditService
from tests.factories import AuditLogFactory, MedicineFactory, UserFactory


@pytest.mark.django_db
class TestAuditLog:
    def test_create_audit_log(self):
        user = UserFactory()
        log = AuditService.log(
            actor=user,
            action=AuditLog.ActionChoices.CREATE,
            model_name='StockMovement',
            object_id='test-123',
            new_values={'quantity': 5},
        )
        assert log.pk is not None
        assert log.action == 'CREATE'
        assert log.actor == user

    def test_anonymous_actor_is_stored_as_null(self):
        log = AuditService.log(
            actor=AnonymousUser(),
            action=AuditLog.ActionChoices.CREATE,
            model_name='StockMovement',
            object_id='x',
        )
        assert log.actor is None

    def test_audit_log_cannot_be_updated(self):
        log = AuditLogFactory()
        log.model_name = 'Other'
        with pytest.raises(NotImplementedError):
            log.save()

    def test_audit_log_bulk_writes_blocked(self):
        log = AuditLogFactory()
        with pytest.raises(NotImplementedError, match='insert-only'):
            AuditLog.objects.filter(pk=log.pk).update(model_name='Other')
        with pytest.raises(NotImplementedError, match='cannot be deleted'):
            AuditLog.objects.all().delete()
        with pytest.raises(NotImplementedError):
            log.delete()
        assert AuditLog.objects.get(pk=log.pk).model_name == 'Medicine'

    def test_snapshot_is_json_safe(self):
        medicine = MedicineFactory()
        snapshot = AuditService.snapshot(medicine)
        assert snapshot['medicine_code'] == medicine.medicine_code
        assert snapshot['sale_price'] == '5.00'
        assert snapshot['category'] == str(medicine.category_id)

    def test_snapshot_limited_to_fields(self):
        medicine = MedicineFactory()
        assert AuditService.snapshot(medicine, fields=['name']) == {'name': medicine.name}


@pytest.mark.django_db
class TestSoftDelete:
    def test_soft_delete_keeps_row(self):
        user = UserFactory()
        medicine = MedicineFactory()
        medicine.soft_delete(user=user)
        medicine.refresh_from_db()
        assert medicine.is_deleted is True
        assert medicine.deleted_at is not None
        assert medicine.deleted_by == user
