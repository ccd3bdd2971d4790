"""
Part Serializers.
"""

from rest_framework import serializers

from infrastructure.persistence.models import (
    LifecycleStatusChoices,
    PartAuditLog,
    PartTypeChoices,
)
from .base import (
    AuditFieldsMixin,
    EnumValueField,
    PartMinimalSerializer,
    VersionedFieldsMixin,
    amount_field,
    decimal_field,
    quantity_field,
)


class PartSerializer(AuditFieldsMixin, VersionedFieldsMixin, serializers.Serializer):
    """Full part representation."""

    id = serializers.UUIDField(read_only=True)
    sku = serializers.CharField()
    name = serializers.CharField()
    description = serializers.CharField()
    part_type = EnumValueField()
    uom = serializers.CharField()
    purchase_uom = serializers.CharField()
    conversion_factor = decimal_field()
    std_cost = decimal_field(allow_null=True)
    decimal_precision = serializers.IntegerField()
    lifecycle_status = EnumValueField()
    obsolete_date = serializers.DateTimeField(allow_null=True)
    min_quantity = decimal_field(allow_null=True)
    max_quantity = decimal_field(allow_null=True)


class PartCreateSerializer(serializers.Serializer):
    """Input for creating a part. Domain rules are checked by the engine."""

    sku = serializers.CharField(max_length=64)
    name = serializers.CharField(max_length=300)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    part_type = serializers.ChoiceField(choices=PartTypeChoices.choices, default=PartTypeChoices.MANUFACTURED)
    uom = serializers.CharField(max_length=20, default='EA')
    purchase_uom = serializers.CharField(max_length=20, required=False, allow_null=True)
    conversion_factor = amount_field(required=False, allow_null=True)
    std_cost = amount_field(required=False, allow_null=True)
    decimal_precision = serializers.IntegerField(required=False, default=3)
    min_quantity = quantity_field(required=False, allow_null=True)
    max_quantity = quantity_field(required=False, allow_null=True)


class PartUpdateSerializer(serializers.Serializer):
    """
    Partial update.

    ``std_cost`` and ``lifecycle_status`` go through the audited paths and
    then need ``reason``; a backward lifecycle move also needs ``override``.
    """

    sku = serializers.CharField(max_length=64, required=False)
    name = serializers.CharField(max_length=300, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    part_type = serializers.ChoiceField(choices=PartTypeChoices.choices, required=False)
    uom = serializers.CharField(max_length=20, required=False)
    purchase_uom = serializers.CharField(max_length=20, required=False)
    conversion_factor = amount_field(required=False)
    std_cost = amount_field(required=False)
    decimal_precision = serializers.IntegerField(required=False)
    lifecycle_status = serializers.ChoiceField(choices=LifecycleStatusChoices.choices, required=False)
    min_quantity = quantity_field(required=False, allow_null=True)
    max_quantity = quantity_field(required=False, allow_null=True)
    reason = serializers.CharField(required=False, allow_blank=True, write_only=True)
    override = serializers.BooleanField(required=False, default=False, write_only=True)


class SetCostSerializer(serializers.Serializer):
    new_cost = amount_field()
    reason = serializers.CharField(allow_blank=True)
    effective_date = serializers.DateTimeField(required=False, allow_null=True)


class SetLifecycleSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=LifecycleStatusChoices.choices)
    reason = serializers.CharField(required=False, allow_blank=True, default='')
    override = serializers.BooleanField(required=False, default=False)


class CostHistoryEntrySerializer(serializers.Serializer):
    id = serializers.UUIDField()
    part_id = serializers.UUIDField()
    old_cost = decimal_field(allow_null=True)
    new_cost = decimal_field()
    change_reason = serializers.CharField()
    source_reference = serializers.CharField()
    effective_date = serializers.DateTimeField()
    created_by = serializers.CharField(allow_null=True)
    created_at = serializers.DateTimeField()


class CostRollupSerializer(serializers.Serializer):
    part_id = serializers.UUIDField()
    rolled_cost = decimal_field()
    currency = serializers.CharField()
    calculated_at = serializers.DateTimeField()
    as_of = serializers.DateTimeField(allow_null=True)


class WhereUsedSerializer(serializers.Serializer):
    line_id = serializers.UUIDField(source='line.id')
    parent_part = PartMinimalSerializer()
    qty_per = decimal_field(source='line.qty_per')
    uom = serializers.CharField(source='line.uom')
    scrap_pct = decimal_field(source='line.scrap_pct')
    extended_quantity = decimal_field()


class PartAuditLogSerializer(serializers.ModelSerializer):

    class Meta:
        model = PartAuditLog
        fields = [
            'id', 'timestamp', 'user', 'action',
            'field_name', 'old_value', 'new_value', 'reason',
        ]
        read_only_fields = fields
