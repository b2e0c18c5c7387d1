"""
Stock — Django Admin Configuration

Read-only movement history. Movements are written by the ledger only;
the admin can neither add, change nor delete them.

@file stock/admin.py
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from .models import StockMovement


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = (
        'created_at', 'medicine', 'movement_type', 'quantity',
        'previous_stock', 'new_stock', 'ledger_version',
        'reference_type', 'reference_id', 'created_by',
    )
    list_filter = ('movement_type', 'reference_type', 'reason', 'created_at')
    search_fields = ('medicine__name', 'medicine__medicine_code', 'reference_id', 'notes')
    readonly_fields = (
        'id', 'medicine', 'movement_type', 'quantity',
        'previous_stock', 'new_stock', 'ledger_version',
        'reference_type', 'reference_id', 'adjustment_type', 'reason', 'notes',
        'created_by', 'created_at',
    )
    list_select_related = ('medicine', 'created_by')
    show_full_result_count = False
    list_per_page = 50
    date_hierarchy = 'created_at'
    ordering = ('-created_at',)

    fieldsets = (
        (_('Movement'), {
            'fields': (
                'id', 'medicine', 'movement_type', 'quantity',
                'previous_stock', 'new_stock', 'ledger_version',
            ),
        }),
        (_('Reference'), {
            'fields': ('reference_type', 'reference_id', 'adjustment_type', 'reason', 'notes'),
        }),
        (_('Audit'), {
            'fields': ('created_by', 'created_at'),
        }),
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
