"""
Stock — Filter Sets

Query-parameter validation for movement history and the stock overview.
Both are applied inside the service layer so non-HTTP callers get the
same filtering and the same field-keyed validation errors.

@file stock/filters.py
"""

import django_filters
from django.db.models import Q

from medicines.models import Medicine

from .classifier import StockStatus, status_filter
from .models import StockMovement


class StockMovementFilter(django_filters.FilterSet):
    medicine_id = django_filters.UUIDFilter(field_name='medicine_id')
    type = django_filters.ChoiceFilter(
        field_name='movement_type', choices=StockMovement.MovementType.choices,
    )
    reference_type = django_filters.ChoiceFilter(
        choices=StockMovement.ReferenceType.choices,
    )
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = StockMovement
        fields = []

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(notes__icontains=value)
            | Q(reference_type__icontains=value)
            | Q(medicine__name__icontains=value)
        )


class StockOverviewFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search')
    category = django_filters.UUIDFilter(field_name='category_id')
    stock_status = django_filters.ChoiceFilter(
        choices=StockStatus.choices, method='filter_stock_status',
    )

    class Meta:
        model = Medicine
        fields = []

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(name__icontains=value)
            | Q(medicine_code__icontains=value)
            | Q(manufacturer__icontains=value)
        )

    def filter_stock_status(self, queryset, name, value):
        return queryset.filter(status_filter(value))
