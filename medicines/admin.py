"""
Medicines — Django Admin Configuration

Catalog admin. Stock quantity can be entered when a medicine is first
catalogued; afterwards it is read-only and changes go through the stock
ledger.

@file medicines/admin.py
"""

from django.contrib import admin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _

from stock.classifier import StockStatus

from .models import Medicine, MedicineCategory

STATUS_COLORS = {
    StockStatus.IN_STOCK: '#22c55e',
    StockStatus.LOW_STOCK: '#eab308',
    StockStatus.CRITICAL: '#f97316',
    StockStatus.OUT_OF_STOCK: '#ef4444',
}


@admin.register(MedicineCategory)
class MedicineCategoryAdmin(admin.ModelAdmin):
    list_display = ('name', 'description', 'created_at')
    search_fields = ('name',)
    readonly_fields = ('id', 'created_at', 'updated_at')


@admin.register(Medicine)
class MedicineAdmin(admin.ModelAdmin):
    list_display = (
        'medicine_code', 'name', 'category', 'stock_quantity',
        'reorder_level', 'sale_price', 'status_badge', 'updated_at',
    )
    list_filter = ('category', 'is_deleted')
    search_fields = ('medicine_code', 'name', 'manufacturer')
    list_select_related = ('category',)
    show_full_result_count = False
    list_per_page = 30
    ordering = ('name',)

    fieldsets = (
        (_('Identification'), {
            'fields': ('id', 'medicine_code', 'name', 'category', 'manufacturer', 'strength'),
        }),
        (_('Stock'), {
            'fields': ('stock_quantity', 'opening_stock', 'reorder_level', 'version'),
        }),
        (_('Pricing'), {
            'fields': ('unit_cost', 'sale_price'),
        }),
        (_('Audit'), {
            'fields': ('created_at', 'updated_at', 'created_by', 'updated_by'),
            'classes': ('collapse',),
        }),
    )

    def get_readonly_fields(self, request, obj=None):
        readonly = ['id', 'opening_stock', 'version', 'created_at', 'updated_at', 'created_by', 'updated_by']
        if obj is not None:
            readonly.append('stock_quantity')
        return readonly

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        if not request.GET.get('is_deleted__exact'):
            qs = qs.filter(is_deleted=False)
        return qs

    def save_model(self, request, obj, form, change):
        obj._current_user = request.user
        if not change:
            obj.created_by = request.user
        obj.updated_by = request.user
        super().save_model(request, obj, form, change)

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description=_('Status'))
    def status_badge(self, obj):
        status = StockStatus(obj.status)
        return format_html(
            '<span style="background:{}; color:#fff; padding:2px 8px; border-radius:4px;">{}</span>',
            STATUS_COLORS[status], status.label,
        )
