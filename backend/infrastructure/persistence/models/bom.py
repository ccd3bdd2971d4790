"""
BOM (Bill of Materials) ORM Models.

Parts are the nodes of the product structure, BOM lines the directed
parent -> child edges between them.
"""

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator
from django.db import models

from domain.shared.value_objects import (
    AMOUNT_DIGITS,
    AMOUNT_PLACES,
    PERCENT_DIGITS,
    PERCENT_PLACES,
    QUANTITY_DIGITS,
    QUANTITY_PLACES,
    SKU_PATTERN,
    LifecycleStatus,
    PartType,
)

from .base import ActiveManager, BaseModelWithHistory


class PartTypeChoices(models.TextChoices):
    PURCHASED = PartType.PURCHASED.value, 'Purchased'
    MANUFACTURED = PartType.MANUFACTURED.value, 'Manufactured'
    PHANTOM = PartType.PHANTOM.value, 'Phantom'


class LifecycleStatusChoices(models.TextChoices):
    ACTIVE = LifecycleStatus.ACTIVE.value, 'Active'
    PHASE_OUT = LifecycleStatus.PHASE_OUT.value, 'Phase out'
    OBSOLETE = LifecycleStatus.OBSOLETE.value, 'Obsolete'
    DISCONTINUED = LifecycleStatus.DISCONTINUED.value, 'Discontinued'


class Part(BaseModelWithHistory):
    """
    A purchasable, manufacturable or phantom item.

    SKU is unique. It becomes immutable once any BOM line references the
    part, which the domain layer enforces.
    """

    # Identification
    sku = models.CharField(
        max_length=64,
        unique=True,
        validators=[RegexValidator(SKU_PATTERN)],
        verbose_name="SKU"
    )
    name = models.CharField(
        max_length=300,
        verbose_name="Name"
    )
    description = models.TextField(
        blank=True,
        verbose_name="Description"
    )
    part_type = models.CharField(
        max_length=20,
        choices=PartTypeChoices.choices,
        default=PartTypeChoices.MANUFACTURED,
        db_index=True,
        verbose_name="Part type"
    )

    # Units
    uom = models.CharField(
        max_length=20,
        default='EA',
        verbose_name="Unit of measure"
    )
    purchase_uom = models.CharField(
        max_length=20,
        default='EA',
        verbose_name="Purchase unit of measure"
    )
    conversion_factor = models.DecimalField(
        max_digits=AMOUNT_DIGITS,
        decimal_places=AMOUNT_PLACES,
        default=1,
        verbose_name="Conversion factor"
    )

    # Costing
    std_cost = models.DecimalField(
        max_digits=AMOUNT_DIGITS,
        decimal_places=AMOUNT_PLACES,
        null=True,
        blank=True,
        verbose_name="Standard cost"
    )
    decimal_precision = models.PositiveSmallIntegerField(
        default=3,
        validators=[MinValueValidator(0), MaxValueValidator(6)],
        verbose_name="Decimal precision"
    )

    # Lifecycle
    lifecycle_status = models.CharField(
        max_length=20,
        choices=LifecycleStatusChoices.choices,
        default=LifecycleStatusChoices.ACTIVE,
        db_index=True,
        verbose_name="Lifecycle status"
    )
    obsolete_date = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Obsolete since"
    )

    # Quantity bounds for lines using this part as a child
    min_quantity = models.DecimalField(
        max_digits=QUANTITY_DIGITS,
        decimal_places=QUANTITY_PLACES,
        null=True,
        blank=True,
        verbose_name="Minimum quantity"
    )
    max_quantity = models.DecimalField(
        max_digits=QUANTITY_DIGITS,
        decimal_places=QUANTITY_PLACES,
        null=True,
        blank=True,
        verbose_name="Maximum quantity"
    )

    class Meta:
        db_table = 'bom_parts'
        verbose_name = 'Part'
        verbose_name_plural = 'Parts'
        ordering = ['sku']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(conversion_factor__gt=0),
                name='part_conversion_factor_positive'
            ),
            models.CheckConstraint(
                condition=models.Q(std_cost__isnull=True) | models.Q(std_cost__gte=0),
                name='part_std_cost_non_negative'
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(min_quantity__isnull=True)
                    | models.Q(max_quantity__isnull=True)
                    | models.Q(min_quantity__lte=models.F('max_quantity'))
                ),
                name='part_quantity_bounds_ordered'
            ),
        ]

    def __str__(self):
        return f"{self.sku} - {self.name}"


class BOMLine(BaseModelWithHistory):
    """
    Directed edge: ``qty_per`` units of ``child_part`` per one ``parent_part``.

    Lines are never deleted, only deactivated.
    """

    parent_part = models.ForeignKey(
        Part,
        on_delete=models.PROTECT,
        related_name='child_lines',
        verbose_name="Parent part"
    )
    child_part = models.ForeignKey(
        Part,
        on_delete=models.PROTECT,
        related_name='parent_lines',
        verbose_name="Child part"
    )

    # Quantity
    qty_per = models.DecimalField(
        max_digits=QUANTITY_DIGITS,
        decimal_places=QUANTITY_PLACES,
        verbose_name="Quantity per"
    )
    uom = models.CharField(
        max_length=20,
        verbose_name="Unit of measure"
    )
    scrap_pct = models.DecimalField(
        max_digits=PERCENT_DIGITS,
        decimal_places=PERCENT_PLACES,
        default=0,
        verbose_name="Scrap %"
    )

    # Position in parent
    sort_order = models.PositiveIntegerField(
        default=0,
        verbose_name="Sort order"
    )

    is_active = models.BooleanField(
        default=True,
        db_index=True,
        verbose_name="Active"
    )

    notes = models.TextField(
        blank=True,
        verbose_name="Notes"
    )

    objects = models.Manager()
    active = ActiveManager()

    class Meta:
        db_table = 'bom_lines'
        verbose_name = 'BOM line'
        verbose_name_plural = 'BOM lines'
        ordering = ['parent_part', 'sort_order', 'created_at']
        indexes = [
            models.Index(fields=['parent_part', 'is_active']),
            models.Index(fields=['child_part', 'is_active']),
        ]
        constraints = [
            # at most one active edge per (parent, child) pair
            models.UniqueConstraint(
                fields=['parent_part', 'child_part'],
                condition=models.Q(is_active=True),
                name='unique_active_bom_line_per_pair'
            ),
            models.CheckConstraint(
                condition=~models.Q(parent_part=models.F('child_part')),
                name='bom_line_no_self_reference'
            ),
            models.CheckConstraint(
                condition=models.Q(qty_per__gt=0),
                name='bom_line_qty_positive'
            ),
            models.CheckConstraint(
                condition=models.Q(scrap_pct__gte=0) & models.Q(scrap_pct__lt=100),
                name='bom_line_scrap_in_range'
            ),
        ]

    def __str__(self):
        return f"{self.parent_part_id} → {self.child_part_id} x{self.qty_per}"


class CostHistoryEntry(models.Model):
    """
    Append-only standard-cost audit row.

    Rows can be inserted but never updated or deleted.
    """

    id = models.UUIDField(
        primary_key=True,
        editable=False,
        verbose_name="ID"
    )
    part = models.ForeignKey(
        Part,
        on_delete=models.PROTECT,
        related_name='cost_history',
        verbose_name="Part"
    )
    old_cost = models.DecimalField(
        max_digits=AMOUNT_DIGITS,
        decimal_places=AMOUNT_PLACES,
        null=True,
        blank=True,
        verbose_name="Old cost"
    )
    new_cost = models.DecimalField(
        max_digits=AMOUNT_DIGITS,
        decimal_places=AMOUNT_PLACES,
        verbose_name="New cost"
    )
    change_reason = models.CharField(
        max_length=500,
        verbose_name="Reason"
    )
    source_reference = models.CharField(
        max_length=200,
        blank=True,
        verbose_name="Source reference"
    )
    effective_date = models.DateTimeField(
        db_index=True,
        verbose_name="Effective date"
    )
    created_by = models.CharField(
        max_length=150,
        null=True,
        blank=True,
        verbose_name="Created by"
    )
    created_at = models.DateTimeField(
        verbose_name="Created at"
    )

    class Meta:
        db_table = 'bom_cost_history'
        verbose_name = 'Cost history entry'
        verbose_name_plural = 'Cost history'
        ordering = ['-effective_date', '-created_at']
        indexes = [
            models.Index(fields=['part', 'effective_date']),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Cost history entries are immutable")
        kwargs['force_insert'] = True
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Cost history entries cannot be deleted")

    def __str__(self):
        return f"{self.part_id}: {self.old_cost} → {self.new_cost}"


class StructureRevision(models.Model):
    """
    Singleton row locked by every structural write.

    Holding ``SELECT ... FOR UPDATE`` on it serialises writers, so a cycle
    check and the write it guards can never interleave with another edit.
    """

    id = models.PositiveSmallIntegerField(primary_key=True, default=1)
    revision = models.PositiveBigIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'bom_structure_revision'
        verbose_name = 'Structure revision'

    def __str__(self):
        return f"rev {self.revision}"
