"""
BOM Serializers.
"""

from rest_framework import serializers

from infrastructure.persistence.models import BOMAuditLog
from .base import (
    AuditFieldsMixin,
    PartMinimalSerializer,
    VersionedFieldsMixin,
    decimal_field,
    percent_field,
    quantity_field,
)


class BOMLineSerializer(AuditFieldsMixin, VersionedFieldsMixin, serializers.Serializer):
    id = serializers.UUIDField()
    parent_part_id = serializers.UUIDField()
    child_part_id = serializers.UUIDField()
    qty_per = decimal_field()
    uom = serializers.CharField()
    scrap_pct = decimal_field()
    sort_order = serializers.IntegerField()
    is_active = serializers.BooleanField()
    notes = serializers.CharField()


class BOMLineCreateSerializer(serializers.Serializer):
    parent_part_id = serializers.UUIDField()
    child_part_id = serializers.UUIDField()
    qty_per = quantity_field()
    scrap_pct = percent_field(required=False, default=0)
    uom = serializers.CharField(max_length=20, required=False, allow_null=True)
    sort_order = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class BOMLineUpdateSerializer(serializers.Serializer):
    qty_per = quantity_field(required=False)
    scrap_pct = percent_field(required=False)
    uom = serializers.CharField(max_length=20, required=False)
    sort_order = serializers.IntegerField(required=False, min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True)
    is_active = serializers.BooleanField(required=False)


class MoveLineSerializer(serializers.Serializer):
    new_parent_id = serializers.UUIDField()


class BOMTreeNodeSerializer(serializers.Serializer):
    """Serializer for BOM lines in tree format."""

    line_id = serializers.UUIDField(source='line.id')
    child_part = PartMinimalSerializer()
    qty_per = decimal_field(source='line.qty_per')
    uom = serializers.CharField(source='line.uom')
    scrap_pct = decimal_field(source='line.scrap_pct')
    sort_order = serializers.IntegerField(source='line.sort_order')
    notes = serializers.CharField(source='line.notes')
    is_active = serializers.BooleanField()
    quantity = decimal_field()
    unit_cost = decimal_field(allow_null=True)
    extended_cost = decimal_field(allow_null=True)
    level = serializers.IntegerField()
    children = serializers.SerializerMethodField()

    def get_children(self, obj):
        if obj.children:
            return BOMTreeNodeSerializer(obj.children, many=True).data
        return []


class BOMTreeSerializer(serializers.Serializer):
    root_part = PartMinimalSerializer()
    children = BOMTreeNodeSerializer(many=True)
    total_cost = decimal_field()
    currency = serializers.CharField()
    as_of = serializers.DateTimeField(allow_null=True)


class TreeQuerySerializer(serializers.Serializer):
    include_inactive = serializers.BooleanField(required=False, default=False)
    as_of = serializers.DateTimeField(required=False, allow_null=True, default=None)


class CloneRequestSerializer(serializers.Serializer):
    source_part_id = serializers.UUIDField()


class CloneReportSerializer(serializers.Serializer):
    source_part_id = serializers.UUIDField()
    target_part_id = serializers.UUIDField()
    cloned_lines = serializers.IntegerField()
    reused_lines = serializers.IntegerField()
    created_line_ids = serializers.ListField(child=serializers.UUIDField())


class BOMAuditLogSerializer(serializers.ModelSerializer):

    class Meta:
        model = BOMAuditLog
        fields = [
            'id', 'timestamp', 'user', 'action',
            'parent_part', 'line', 'changes', 'reason',
        ]
        read_only_fields = fields
