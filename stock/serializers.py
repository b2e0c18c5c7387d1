"""
Stock — Serializers

Input validation for adjustments and bulk stock takes, and read
serializers for movements and the stock overview.

@file stock/serializers.py
"""

from rest_framework import serializers

from medicines.models import Medicine

from .classifier import StockStatus
from .models import StockMovement

MAX_ADJUSTMENT_QUANTITY = 1_000_000


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------

class StockAdjustmentSerializer(serializers.Serializer):
    medicine_id = serializers.UUIDField()
    adjustment_type = serializers.ChoiceField(choices=StockMovement.AdjustmentType.choices)
    quantity = serializers.IntegerField(min_value=1, max_value=MAX_ADJUSTMENT_QUANTITY)
    reason = serializers.ChoiceField(choices=StockMovement.Reason.choices)
    notes = serializers.CharField(
        required=False, allow_blank=True, max_length=500, default='',
    )


class BulkStockItemSerializer(serializers.Serializer):
    medicine_id = serializers.UUIDField()
    new_stock = serializers.IntegerField(min_value=0, max_value=MAX_ADJUSTMENT_QUANTITY)


class BulkStockSerializer(serializers.Serializer):
    items = BulkStockItemSerializer(many=True, allow_empty=False)

    def validate_items(self, items):
        ids = [item['medicine_id'] for item in items]
        if len(ids) != len(set(ids)):
            raise serializers.ValidationError('Each medicine may appear only once.')
        return items


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

class StockMovementSerializer(serializers.ModelSerializer):
    medicine_name = serializers.CharField(source='medicine.name', read_only=True)
    type = serializers.CharField(source='movement_type', read_only=True)
    created_by_name = serializers.SerializerMethodField()

    class Meta:
        model = StockMovement
        fields = [
            'id', 'medicine', 'medicine_name', 'type', 'quantity',
            'previous_stock', 'new_stock', 'ledger_version',
            'reference_type', 'reference_id',
            'adjustment_type', 'reason', 'notes',
            'created_by', 'created_by_name', 'created_at',
        ]
        read_only_fields = fields

    def get_created_by_name(self, obj):
        if obj.created_by is None:
            return 'System'
        return obj.created_by.get_full_name() or obj.created_by.get_username()


class StockOverviewSerializer(serializers.ModelSerializer):
    category = serializers.CharField(source='category.name', read_only=True, default=None)
    status = serializers.CharField(read_only=True)
    status_display = serializers.SerializerMethodField()

    class Meta:
        model = Medicine
        fields = [
            'id', 'medicine_code', 'name', 'category',
            'stock_quantity', 'reorder_level', 'status', 'status_display',
        ]
        read_only_fields = fields

    def get_status_display(self, obj):
        return str(StockStatus(obj.status).label)
