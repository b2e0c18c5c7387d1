"""
PharmaLedger — Test Factories

Factory Boy factories for generating test data. Used across all test
modules.

@file tests/factories.py
"""

import uuid
from decimal import Decimal

import factory
from django.contrib.auth import get_user_model

from core.models import AuditLog
from medicines.models import Medicine, MedicineCategory


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class UserFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = get_user_model()
        skip_postgeneration_save = True

    username = factory.Sequence(lambda n: f'pharmacist{n}')
    email = factory.LazyAttribute(lambda o: f'{o.username}@pharmacy.test')
    first_name = factory.Faker('first_name')
    last_name = factory.Faker('last_name')
    is_active = True

    @factory.post_generation
    def password(self, create, extracted, **kwargs):
        password = extracted or 'TestPass2026!'
        self.set_password(password)
        if create:
            self.save(update_fields=['password'])


class SuperuserFactory(UserFactory):
    is_staff = True
    is_superuser = True


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class MedicineCategoryFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = MedicineCategory
        django_get_or_create = ('name',)

    name = factory.Sequence(lambda n: f'Category-{n}')
    description = factory.Faker('sentence')


class MedicineFactory(factory.django.DjangoModelFactory):
    """
    Stocked medicine. ``stock_quantity`` becomes the opening stock; use
    the ledger, not the factory, to change it afterwards.
    """

    class Meta:
        model = Medicine

    medicine_code = factory.Sequence(lambda n: f'MED-{n:05d}')
    name = factory.Sequence(lambda n: f'Medicine-{n}')
    category = factory.SubFactory(MedicineCategoryFactory)
    manufacturer = factory.Sequence(lambda n: f'Manufacturer {n}')
    strength = '500mg'
    stock_quantity = 100
    reorder_level = 20
    unit_cost = factory.LazyFunction(lambda: Decimal('2.50'))
    sale_price = factory.LazyFunction(lambda: Decimal('5.00'))


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------

class AuditLogFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = AuditLog

    actor = factory.SubFactory(UserFactory)
    action = AuditLog.ActionChoices.CREATE
    model_name = 'Medicine'
    object_id = factory.LazyFunction(lambda: str(uuid.uuid4()))
