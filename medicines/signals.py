"""
Medicines — Signals

Audit logging for catalog create / update / retire. Ledger writes bypass
these signals (they use a conditional UPDATE) and are audited by the
MovementRecorder instead.

@file medicines/signals.py
"""

from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from core.constants import AUDIT_ACTION_CREATE, AUDIT_ACTION_SOFT_DELETE, AUDIT_ACTION_UPDATE
from core.services import AuditService

from .models import Medicine, MedicineCategory


def _fields(update_fields):
    return sorted(update_fields) if update_fields else None


def _capture_previous(sender, instance, update_fields):
    if instance._state.adding or not instance.pk:
        return
    old = sender.objects.filter(pk=instance.pk).first()
    if old is not None:
        instance._audit_previous = AuditService.snapshot(old, fields=_fields(update_fields))


def _log_change(sender, instance, created, update_fields):
    old = getattr(instance, '_audit_previous', None)
    instance._audit_previous = None
    new = AuditService.snapshot(instance, fields=_fields(update_fields))
    if not created and old == new:
        return

    if created:
        action = AUDIT_ACTION_CREATE
    elif new.get('is_deleted') and not (old or {}).get('is_deleted'):
        action = AUDIT_ACTION_SOFT_DELETE
    else:
        action = AUDIT_ACTION_UPDATE

    AuditService.log(
        actor=getattr(instance, '_current_user', None),
        action=action,
        model_name=sender.__name__,
        object_id=str(instance.pk),
        old_values=old,
        new_values=new,
    )


@receiver(pre_save, sender=Medicine)
def medicine_pre_save(sender, instance, update_fields=None, **kwargs):
    _capture_previous(sender, instance, update_fields)


@receiver(post_save, sender=Medicine)
def medicine_post_save(sender, instance, created, update_fields=None, **kwargs):
    _log_change(sender, instance, created, update_fields)


@receiver(pre_save, sender=MedicineCategory)
def category_pre_save(sender, instance, update_fields=None, **kwargs):
    _capture_previous(sender, instance, update_fields)


@receiver(post_save, sender=MedicineCategory)
def category_post_save(sender, instance, created, update_fields=None, **kwargs):
    _log_change(sender, instance, created, update_fields)
