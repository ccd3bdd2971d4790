"""
Base Serializers.

Common serializer mixins and fields. Engine read models are plain
dataclasses, so most serializers here are not model serializers.
"""

from rest_framework import serializers

from domain.shared.value_objects import (
    AMOUNT_DIGITS,
    AMOUNT_PLACES,
    PERCENT_DIGITS,
    PERCENT_PLACES,
    QUANTITY_DIGITS,
    QUANTITY_PLACES,
)


def decimal_field(**kwargs):
    """Decimal rendered as a string, without forcing a fixed scale."""
    return serializers.DecimalField(max_digits=None, decimal_places=None, **kwargs)


# Input fields carry the scale of the column they are stored in.

def quantity_field(**kwargs):
    return serializers.DecimalField(max_digits=QUANTITY_DIGITS, decimal_places=QUANTITY_PLACES, **kwargs)


def amount_field(**kwargs):
    return serializers.DecimalField(max_digits=AMOUNT_DIGITS, decimal_places=AMOUNT_PLACES, **kwargs)


def percent_field(**kwargs):
    return serializers.DecimalField(max_digits=PERCENT_DIGITS, decimal_places=PERCENT_PLACES, **kwargs)


class EnumValueField(serializers.CharField):
    """Renders ``str`` enums by value."""

    def to_representation(self, value):
        return getattr(value, 'value', value)


class AuditFieldsMixin(serializers.Serializer):
    """Mixin for audit fields (created_at, updated_at, etc.)"""

    created_at = serializers.DateTimeField(read_only=True)
    updated_at = serializers.DateTimeField(read_only=True)
    created_by = serializers.CharField(read_only=True, allow_null=True)
    updated_by = serializers.CharField(read_only=True, allow_null=True)


class VersionedFieldsMixin(serializers.Serializer):
    """Mixin for versioned fields."""

    version = serializers.IntegerField(read_only=True)


class PartMinimalSerializer(serializers.Serializer):
    """Minimal part representation for nested use."""

    id = serializers.UUIDField(read_only=True)
    sku = serializers.CharField(read_only=True)
    name = serializers.CharField(read_only=True)
    part_type = EnumValueField(read_only=True)
    uom = serializers.CharField(read_only=True)
    lifecycle_status = EnumValueField(read_only=True)
